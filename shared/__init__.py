"""
Shared utilities for the CloudWatch exporter.

- config: Service configuration via pydantic-settings
- logging: Structured logging with flush correlation
- metrics: Prometheus self-metrics
- errors: Canonical error types and responses
- base_service: FastAPI service skeleton with health and metrics routes

Do not import from service_* packages into shared/.
"""
