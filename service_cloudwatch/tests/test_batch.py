"""
Unit tests for namespace routing and batched dispatch.
"""

import pytest
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock
from botocore.exceptions import ClientError, EndpointConnectionError

from service_cloudwatch.app.exporters.batch import BatchSender, chunk, describe_failure
from service_cloudwatch.app.exporters.datapoints import Datapoint, Unit
from service_cloudwatch.app.exporters.router import NamespaceRouter


def make_datapoints(count):
    return [
        Datapoint(metric_name=f"m{i}", unit=Unit.COUNT, timestamp="1970-01-01T00:00:01.000Z", value=i)
        for i in range(count)
    ]


def throttled():
    return ClientError(
        {
            "Error": {"Code": "Throttling", "Message": "Rate exceeded"},
            "ResponseMetadata": {"RequestId": "req-1", "HTTPStatusCode": 400},
        },
        "PutMetricData",
    )


class TestChunk:
    """Test cases for chunk."""

    def test_45_items(self):
        """Test 45 items split 20/20/5 in order."""
        groups = chunk(list(range(45)), 20)

        assert [len(g) for g in groups] == [20, 20, 5]
        assert [item for group in groups for item in group] == list(range(45))

    def test_exact_multiple(self):
        """Test no trailing empty chunk."""
        assert [len(g) for g in chunk(list(range(40)), 20)] == [20, 20]

    def test_empty(self):
        """Test that nothing yields no chunks."""
        assert chunk([], 20) == []

    def test_invalid_size(self):
        """Test chunk size validation."""
        with pytest.raises(ValueError):
            chunk([1], 0)


class TestNamespaceRouter:
    """Test cases for NamespaceRouter."""

    def test_groups_keep_encounter_order(self):
        """Test per-namespace ordering."""
        a, b, c = make_datapoints(3)
        router = NamespaceRouter()

        groups = router.route([("ns1", a), ("ns2", b), ("ns1", c)])

        assert list(groups) == ["ns1", "ns2"]
        assert groups["ns1"] == [a, c]
        assert groups["ns2"] == [b]
        assert len(router) == 3

    def test_empty(self):
        """Test a router with nothing routed."""
        assert NamespaceRouter().route([]) == {}


class TestBatchSender:
    """Test cases for BatchSender."""

    @pytest.fixture
    def sender(self, cloudwatch_client, immediate_executor, metrics):
        return BatchSender(cloudwatch_client, immediate_executor, metrics)

    def test_empty_is_noop(self, sender, cloudwatch_client):
        """Test that an empty list makes no calls."""
        assert sender.send([], "ns") == []
        cloudwatch_client.put_metric_data.assert_not_called()

    def test_splits_into_chunks(self, sender, sent_payloads):
        """Test 45 datapoints become calls of 20, 20 and 5."""
        datapoints = make_datapoints(45)

        futures = sender.send(datapoints, "ns")

        assert len(futures) == 3
        payloads = sent_payloads()
        assert [len(p["MetricData"]) for p in payloads] == [20, 20, 5]
        assert all(p["Namespace"] == "ns" for p in payloads)
        names = [d["MetricName"] for p in payloads for d in p["MetricData"]]
        assert names == [f"m{i}" for i in range(45)]

    def test_failed_chunk_does_not_stop_siblings(self, sender, cloudwatch_client, registry):
        """Test partial success across chunks."""
        cloudwatch_client.put_metric_data.side_effect = [throttled(), {"ok": True}, {"ok": True}]

        futures = sender.send(make_datapoints(45), "ns")

        assert cloudwatch_client.put_metric_data.call_count == 3
        assert futures[0].exception() is not None
        assert futures[1].exception() is None
        assert registry.get_sample_value("cloudwatch_put_requests_total", {"status": "error"}) == 1
        assert registry.get_sample_value("cloudwatch_put_requests_total", {"status": "ok"}) == 2

    def test_send_does_not_raise_on_failure(self, sender, cloudwatch_client):
        """Test that transport errors stay inside the future."""
        cloudwatch_client.put_metric_data.side_effect = EndpointConnectionError(endpoint_url="https://x")

        futures = sender.send(make_datapoints(1), "ns")

        assert isinstance(futures[0].exception(), EndpointConnectionError)
        assert sender.pending == 0

    def test_dispatch_counts_datapoints(self, sender):
        """Test the handed-off count across chunks."""
        assert sender.dispatch(make_datapoints(45), "ns") == 45
        assert sender.dispatch([], "ns") == 0

    def test_stops_when_executor_refuses(self, cloudwatch_client, immediate_executor, metrics, registry):
        """Test that chunks after a refused submission are not counted."""
        executor = MagicMock()
        executor.submit.side_effect = [
            immediate_executor.submit(cloudwatch_client.put_metric_data, Namespace="ns"),
            RuntimeError("cannot schedule new futures after shutdown"),
        ]

        sender = BatchSender(cloudwatch_client, executor, metrics)

        assert sender.dispatch(make_datapoints(45), "ns") == 20
        assert cloudwatch_client.put_metric_data.call_count == 1
        assert registry.get_sample_value("cloudwatch_put_requests_total", {"status": "rejected"}) == 1
        assert registry.get_sample_value("cloudwatch_put_requests_total", {"status": "ok"}) == 1

    def test_thread_pool_dispatch(self, metrics):
        """Test real fire-and-forget dispatch on a thread pool."""
        client = MagicMock()
        executor = ThreadPoolExecutor(max_workers=2)
        sender = BatchSender(client, executor, metrics)

        sender.send(make_datapoints(41), "ns")

        assert sender.wait_for_pending(timeout=5) is True
        executor.shutdown(wait=True)
        assert client.put_metric_data.call_count == 3


class TestDescribeFailure:
    """Test cases for describe_failure."""

    def test_client_error_details(self):
        """Test AWS error code and request id extraction."""
        error = describe_failure("ns", throttled())

        assert error.code == "EXPORT_ERROR"
        assert error.namespace == "ns"
        assert error.details["aws_code"] == "Throttling"
        assert error.details["request_id"] == "req-1"
        assert error.details["http_status"] == 400

    def test_other_errors(self):
        """Test generic exceptions keep their type name."""
        error = describe_failure("ns", RuntimeError("boom"))

        assert error.details == {"exception": "RuntimeError"}
        assert "boom" in error.message
