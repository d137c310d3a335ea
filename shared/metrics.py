"""
Shared metrics configuration for the CloudWatch exporter.

These are the exporter's own Prometheus self-metrics, served on ``/metrics``;
they are unrelated to the statsd metrics being forwarded to CloudWatch.
"""

from prometheus_client import Counter, Histogram, Info, CollectorRegistry, REGISTRY
from typing import Dict, Any, Optional
import threading


class MetricsCollector:
    """Centralized metrics collector for services."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else REGISTRY
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        # Health check metrics
        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        self._setup_export_metrics()

    def _setup_export_metrics(self):
        """Set up CloudWatch export metrics."""
        self._metrics["cloudwatch_flushes_total"] = Counter(
            "cloudwatch_flushes_total",
            "Total flush cycles handled",
            ["region"],
            registry=self.registry
        )

        self._metrics["cloudwatch_datapoints_shaped_total"] = Counter(
            "cloudwatch_datapoints_shaped_total",
            "Datapoints shaped for export",
            ["family"],
            registry=self.registry
        )

        self._metrics["cloudwatch_keys_filtered_total"] = Counter(
            "cloudwatch_keys_filtered_total",
            "Metric keys dropped by the whitelist/blacklist",
            ["family"],
            registry=self.registry
        )

        self._metrics["cloudwatch_put_requests_total"] = Counter(
            "cloudwatch_put_requests_total",
            "PutMetricData calls by outcome",
            ["status"],
            registry=self.registry
        )

        self._metrics["cloudwatch_flush_duration_seconds"] = Histogram(
            "cloudwatch_flush_duration_seconds",
            "Time spent shaping and dispatching one flush",
            ["region"],
            registry=self.registry
        )

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def record_flush(self, region: str, duration: float):
        """Record a completed flush cycle."""
        self._metrics["cloudwatch_flushes_total"].labels(region=region).inc()
        self._metrics["cloudwatch_flush_duration_seconds"].labels(region=region).observe(duration)

    def record_shaped(self, family: str, count: int = 1):
        """Record datapoints shaped for one metric family."""
        self._metrics["cloudwatch_datapoints_shaped_total"].labels(family=family).inc(count)

    def record_filtered(self, family: str):
        """Record a key dropped by filtering."""
        self._metrics["cloudwatch_keys_filtered_total"].labels(family=family).inc()

    def record_put(self, status: str):
        """Record the outcome of one PutMetricData call."""
        self._metrics["cloudwatch_put_requests_total"].labels(status=status).inc()


_collectors: Dict[str, MetricsCollector] = {}
_collectors_lock = threading.Lock()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service.

    Collectors bound to the default registry are cached per service, since
    prometheus_client refuses to register the same metric name twice.
    """
    if registry is not None:
        return MetricsCollector(service_name, registry)

    with _collectors_lock:
        if service_name not in _collectors:
            _collectors[service_name] = MetricsCollector(service_name)
        return _collectors[service_name]
