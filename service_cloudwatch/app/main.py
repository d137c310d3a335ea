"""
CloudWatch exporter service.

Exposes the flush pipeline over HTTP for aggregators that run out of process,
alongside the usual health and Prometheus endpoints.
"""

from typing import Any, Dict, List, Optional

from fastapi import Body
from prometheus_client import CollectorRegistry
from pydantic import BaseModel, Field

from shared.base_service import BaseService
from shared.errors import ConfigurationError
from shared.metrics import MetricsCollector

from .backend import CloudWatchBackend, init
from .config import load_config_file
from .events import FLUSH_EVENT, FlushEmitter


class SnapshotModel(BaseModel):
    """Metrics snapshot as posted by an aggregator."""
    counters: Dict[str, float] = Field(default_factory=dict)
    gauges: Dict[str, float] = Field(default_factory=dict)
    timers: Dict[str, List[float]] = Field(default_factory=dict)
    sets: Dict[str, List[Any]] = Field(default_factory=dict)


class FlushRequest(BaseModel):
    timestamp: int
    metrics: SnapshotModel = Field(default_factory=SnapshotModel)


class CloudWatchExporterService(BaseService):
    """CloudWatch exporter service implementation.

    Injected ``backends`` keep their own metrics collector; the service
    reuses it so ``/metrics`` serves the export series too.
    """

    def __init__(
        self,
        backends: Optional[List[CloudWatchBackend]] = None,
        emitter: Optional[FlushEmitter] = None,
        registry: Optional[CollectorRegistry] = None,
        metrics: Optional[MetricsCollector] = None,
        **config_overrides
    ):
        if metrics is None and backends:
            metrics = backends[0].metrics
        super().__init__("cloudwatch", registry=registry, metrics=metrics, **config_overrides)

        self.emitter = emitter or FlushEmitter()
        if backends is None:
            block = (
                load_config_file(self.config.config_file)
                if self.config.config_file else {}
            )
            backends = init(
                block,
                self.emitter,
                metrics=self.metrics,
                default_region=self.config.region,
                max_workers=self.config.max_workers,
                metadata_timeout=self.config.metadata_timeout_seconds,
            )
        else:
            for backend in backends:
                if not self.emitter.subscribed(FLUSH_EVENT, backend.flush):
                    self.emitter.on(FLUSH_EVENT, backend.flush)
        self.backends = backends

        self._setup_exporter_routes()

    def _setup_exporter_routes(self):
        """Set up exporter-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "cloudwatch",
                "message": "statsd to CloudWatch exporter",
                "version": "1.0.0",
                "capabilities": ["flush", "namespace_routing", "key_filtering"]
            }

        @self.app.get("/instances")
        async def list_instances():
            """Configured export destinations."""
            return {
                "instances": [backend.describe() for backend in self.backends],
                "total": len(self.backends)
            }

        @self.app.post("/flush")
        async def flush(request: FlushRequest = Body(...)):
            """Run one flush cycle across every destination."""
            if not self.backends:
                raise ConfigurationError("No cloudwatch destinations configured")

            outcomes = self.emitter.dispatch(
                FLUSH_EVENT, request.timestamp, request.metrics.model_dump()
            )
            by_handler = {}
            for handler, result in outcomes:
                by_handler.setdefault(handler, result)

            instances = []
            for backend in self.backends:
                dispatched = by_handler.get(backend.flush)
                instances.append({
                    "region": backend.region,
                    "datapoints": dispatched,
                    "status": "dispatched" if dispatched is not None else "failed"
                })

            return {"timestamp": request.timestamp, "instances": instances}

        @self.app.on_event("shutdown")
        async def shutdown_event():
            self.close()

    async def _check_dependencies(self):
        """Report configured destinations."""
        return {
            "instances": len(self.backends),
            "regions": sorted({backend.region for backend in self.backends}),
            "pending_requests": sum(backend.sender.pending for backend in self.backends)
        }

    def close(self):
        """Drain in-flight PutMetricData calls."""
        for backend in self.backends:
            backend.close()
        self.logger.info("CloudWatch exporter stopped", instances=len(self.backends))


def create_app():
    """Create CloudWatch exporter application."""
    service = CloudWatchExporterService()
    return service.app


def main():
    """Run the exporter with uvicorn."""
    CloudWatchExporterService().run()


if __name__ == "__main__":
    main()
