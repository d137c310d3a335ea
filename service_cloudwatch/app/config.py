"""
Destination configuration for the CloudWatch exporter.

The ``cloudwatch`` block is either a single destination or a list of them
under ``instances``::

    cloudwatch:
      instances:
        - region: us-east-1
          processKeyForNamespace: true
          whitelist: [api.requests]
        - region: eu-west-1
          namespace: Statsd
          iamRole: any

Keys use the statsd backend's camelCase names; snake_case works too.
"""

from pathlib import Path
from typing import Any, List, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from shared.errors import ConfigurationError
from .exporters.shaper import RoutingConfig
from .ingestion.filters import FilterConfig


class CloudWatchInstanceConfig(BaseModel):
    """One export destination."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    region: Optional[str] = None
    endpoint_url: Optional[str] = None

    # Routing
    namespace: Optional[str] = None
    metric_name: Optional[str] = None
    process_key_for_namespace: bool = False

    # Filtering
    whitelist: List[str] = Field(default_factory=list)
    blacklist: List[str] = Field(default_factory=list)

    # Credentials
    iam_role: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = Field(default=None, repr=False)
    session_token: Optional[str] = Field(default=None, repr=False)

    @field_validator("whitelist", "blacklist", mode="before")
    @classmethod
    def null_list_is_empty(cls, value):
        # a bare ``whitelist:`` in YAML loads as None
        return [] if value is None else value

    def routing(self) -> RoutingConfig:
        return RoutingConfig(
            namespace=self.namespace,
            metric_name=self.metric_name,
            process_key_for_namespace=self.process_key_for_namespace,
        )

    def filters(self) -> FilterConfig:
        return FilterConfig.from_lists(self.whitelist, self.blacklist)

    def with_default_region(self, region: str) -> "CloudWatchInstanceConfig":
        if self.region:
            return self
        return self.model_copy(update={"region": region})

    def describe(self) -> dict:
        """Summary without secrets, for logs and the /instances endpoint."""
        return {
            "region": self.region,
            "namespace": self.namespace,
            "metric_name": self.metric_name,
            "process_key_for_namespace": self.process_key_for_namespace,
            "whitelist": list(self.whitelist),
            "blacklist": list(self.blacklist),
            "credentials": "iam_role" if self.iam_role else (
                "static" if self.access_key_id else "default_chain"
            ),
        }


def parse_instances(block: Optional[Mapping[str, Any]]) -> List[CloudWatchInstanceConfig]:
    """Parse a ``cloudwatch`` block into destination configs.

    Without an ``instances`` key the block itself is the only destination;
    an empty ``instances`` list configures none.
    """
    block = block or {}
    if not isinstance(block, Mapping):
        raise ConfigurationError("cloudwatch config must be a mapping", {"type": type(block).__name__})

    instances = block["instances"] if block.get("instances") is not None else [block]
    if isinstance(instances, Mapping):
        instances = list(instances.values())

    try:
        return [CloudWatchInstanceConfig.model_validate(instance) for instance in instances]
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid cloudwatch instance configuration",
            {"errors": e.errors(include_url=False)}
        ) from e


def load_config_file(path: str) -> Mapping[str, Any]:
    """Read the ``cloudwatch`` block from a YAML (or JSON) file.

    The file may hold the block at top level or under a ``cloudwatch`` key,
    as in a statsd config.
    """
    try:
        document = yaml.safe_load(Path(path).read_text()) or {}
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file: {e}", {"path": path}) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse config file: {e}", {"path": path}) from e

    if not isinstance(document, Mapping):
        raise ConfigurationError("Config file must contain a mapping", {"path": path})

    return document.get("cloudwatch", document)
