"""
CloudWatch backend: one export destination and its flush pipeline.
"""

import time
import uuid
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from shared.logging import get_logger, set_flush_context, clear_context
from shared.metrics import MetricsCollector, get_metrics_collector

from .config import CloudWatchInstanceConfig, parse_instances
from .events import FLUSH_EVENT, FlushEmitter
from .exporters.batch import BatchSender
from .exporters.cloudwatch import create_cloudwatch_client
from .exporters.credentials import bootstrap_credentials, provider_for
from .exporters.datapoints import iso_timestamp
from .exporters.router import NamespaceRouter
from .exporters.shaper import MetricShaper, Routed
from .ingestion.filters import is_eligible, is_whitelisted
from .ingestion.snapshot import MetricFamily, MetricsSnapshot

DEFAULT_REGION = "us-east-1"


class CloudWatchBackend:
    """Flushes metric snapshots to one CloudWatch destination.

    Each flush runs counters, timers, gauges and sets as independent
    pipelines: filter, shape, group by namespace, then hand every group to the
    batch sender. PutMetricData calls are fire-and-forget; ``flush`` returns
    as soon as they are submitted.
    """

    def __init__(
        self,
        config: CloudWatchInstanceConfig,
        client: Optional[Any] = None,
        executor: Optional[Executor] = None,
        metrics: Optional[MetricsCollector] = None,
        max_workers: int = 4,
        metadata_timeout: float = 1.0,
    ):
        self.config = config.with_default_region(DEFAULT_REGION)
        self.region = self.config.region
        self.routing = self.config.routing()
        self.filters = self.config.filters()
        self.metrics = metrics or get_metrics_collector("cloudwatch")
        self.logger = get_logger("cloudwatch.backend").bind(region=self.region)

        if client is None:
            provider = provider_for(
                iam_role=self.config.iam_role,
                access_key_id=self.config.access_key_id,
                secret_access_key=self.config.secret_access_key,
                session_token=self.config.session_token,
                metadata_timeout=metadata_timeout,
            )
            credentials = bootstrap_credentials(provider)
            client = create_cloudwatch_client(self.region, credentials, self.config.endpoint_url)
        self.client = client

        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=f"cloudwatch-{self.region}"
        )
        self.sender = BatchSender(self.client, self.executor, self.metrics)

    def is_blacklisted(self, key: str) -> bool:
        if is_whitelisted(key, self.filters):
            self.logger.debug("Key is whitelisted", key=key)
            return False
        return not is_eligible(key, self.filters)

    def flush(self, timestamp: int, metrics: Union[MetricsSnapshot, Mapping[str, Any]]) -> int:
        """Shape and dispatch one snapshot; returns the datapoint count."""
        snapshot = metrics if isinstance(metrics, MetricsSnapshot) else MetricsSnapshot.from_mapping(metrics)
        started = time.time()
        set_flush_context(flush_id=uuid.uuid4().hex[:12], region=self.region)

        try:
            self.logger.info("Flushing metrics", at=iso_timestamp(timestamp), keys=snapshot.size())
            self.logger.debug("Metrics snapshot", metrics=snapshot)

            shaper = MetricShaper(self.routing, timestamp)
            pipelines: List[tuple] = [
                (MetricFamily.COUNTERS, shaper.counter),
                (MetricFamily.TIMERS, shaper.timer),
                (MetricFamily.GAUGES, shaper.gauge),
                (MetricFamily.SETS, shaper.set),
            ]

            dispatched = 0
            for family, shape in pipelines:
                dispatched += self._flush_family(family, snapshot.family(family), shape)

            self.metrics.record_flush(self.region, time.time() - started)
            return dispatched
        finally:
            clear_context()

    def _flush_family(
        self,
        family: MetricFamily,
        entries: Mapping[str, Any],
        shape: Callable[[str, Any], Optional[Routed]],
    ) -> int:
        """Run one family's pipeline; returns the datapoints handed to the sender.

        A key that fails to shape is logged and skipped; the rest of the
        family still goes out.
        """
        router = NamespaceRouter()
        for key, value in entries.items():
            if self.is_blacklisted(key):
                self.metrics.record_filtered(family.value)
                continue

            try:
                routed = shape(key, value)
            except Exception as e:
                self.logger.error(
                    "Metric shaping failed",
                    family=family.value,
                    key=key,
                    error=str(e),
                    exc_info=True
                )
                self.metrics.record_error("shape_error")
                continue

            if routed is not None:
                router.add(*routed)

        shaped = len(router)
        if shaped:
            self.metrics.record_shaped(family.value, shaped)

        dispatched = 0
        for namespace, datapoints in router.groups.items():
            dispatched += self.sender.dispatch(datapoints, namespace)
        return dispatched

    def describe(self) -> Dict[str, Any]:
        return {**self.config.describe(), "pending_requests": self.sender.pending}

    def wait_for_pending(self, timeout: Optional[float] = None) -> bool:
        return self.sender.wait_for_pending(timeout)

    def close(self, wait: bool = True):
        """Stop accepting work; with ``wait`` drain in-flight calls first."""
        if self._owns_executor:
            self.executor.shutdown(wait=wait)
        elif wait:
            self.wait_for_pending()


def init(
    cloudwatch_config: Optional[Mapping[str, Any]],
    emitter: FlushEmitter,
    metrics: Optional[MetricsCollector] = None,
    default_region: str = DEFAULT_REGION,
    max_workers: int = 4,
    metadata_timeout: float = 1.0,
    client_factory: Optional[Callable[[CloudWatchInstanceConfig], Any]] = None,
) -> List[CloudWatchBackend]:
    """Build one backend per configured destination and subscribe each to flushes.

    ``client_factory`` replaces credential bootstrap and boto3 client
    construction, mainly for tests.
    """
    logger = get_logger("cloudwatch.init")
    backends = []

    for instance in parse_instances(cloudwatch_config):
        instance = instance.with_default_region(default_region)
        logger.info("Starting cloudwatch reporter instance", region=instance.region)

        backend = CloudWatchBackend(
            instance,
            client=client_factory(instance) if client_factory else None,
            metrics=metrics,
            max_workers=max_workers,
            metadata_timeout=metadata_timeout,
        )
        emitter.on(FLUSH_EVENT, backend.flush)
        backends.append(backend)

    return backends
