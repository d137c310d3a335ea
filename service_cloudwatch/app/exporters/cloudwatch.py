"""
boto3 CloudWatch client construction.

Each destination gets its own boto3 session and client, so nothing is shared
through boto3's module-level default session.
"""

from typing import Any, Dict, Optional

import boto3
from botocore.config import Config

from .credentials import ResolvedCredentials

# One attempt per chunk; a failed chunk is logged, never retried.
CLIENT_CONFIG = Config(retries={"max_attempts": 1, "mode": "standard"}, connect_timeout=5, read_timeout=10)


def create_cloudwatch_client(
    region: str,
    credentials: Optional[ResolvedCredentials] = None,
    endpoint_url: Optional[str] = None,
) -> Any:
    """Build a CloudWatch client for one destination."""
    kwargs: Dict[str, Any] = {"region_name": region, "config": CLIENT_CONFIG}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    if credentials is not None:
        kwargs["aws_access_key_id"] = credentials.access_key_id
        kwargs["aws_secret_access_key"] = credentials.secret_access_key
        kwargs["aws_session_token"] = credentials.session_token

    return boto3.session.Session().client("cloudwatch", **kwargs)
