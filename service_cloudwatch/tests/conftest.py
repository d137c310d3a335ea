"""
Shared fixtures for CloudWatch exporter tests.
"""

import pytest
from concurrent.futures import Executor, Future
from unittest.mock import MagicMock
from prometheus_client import CollectorRegistry

from shared.metrics import get_metrics_collector
from service_cloudwatch.app.backend import CloudWatchBackend
from service_cloudwatch.app.config import CloudWatchInstanceConfig


class ImmediateExecutor(Executor):
    """Runs submitted calls inline so dispatch order is deterministic."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


@pytest.fixture
def registry():
    """Fresh Prometheus registry per test."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    """Metrics collector bound to the per-test registry."""
    return get_metrics_collector("cloudwatch", registry)


@pytest.fixture
def cloudwatch_client():
    """Stub boto3 CloudWatch client."""
    client = MagicMock()
    client.put_metric_data.return_value = {"ResponseMetadata": {"HTTPStatusCode": 200}}
    return client


@pytest.fixture
def make_backend(cloudwatch_client, metrics):
    """Factory for backends wired to the stub client."""
    def _make(**config):
        instance = CloudWatchInstanceConfig.model_validate({"region": "us-east-1", **config})
        return CloudWatchBackend(
            instance,
            client=cloudwatch_client,
            executor=ImmediateExecutor(),
            metrics=metrics,
        )
    return _make


@pytest.fixture
def immediate_executor():
    return ImmediateExecutor()


@pytest.fixture
def sent_payloads(cloudwatch_client):
    """PutMetricData keyword arguments, in call order."""
    def _sent():
        return [call.kwargs for call in cloudwatch_client.put_metric_data.call_args_list]
    return _sent
