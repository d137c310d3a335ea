"""
Chunked, fire-and-forget dispatch of datapoints to PutMetricData.
"""

import threading
from concurrent.futures import Executor, Future, wait
from functools import partial
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypeVar

from botocore.exceptions import BotoCoreError, ClientError

from shared.errors import ExportError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .datapoints import Datapoint

# PutMetricData hard limit on MetricData entries per request
MAX_DATAPOINTS_PER_REQUEST = 20

T = TypeVar("T")


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    """Split ``items`` into consecutive lists of at most ``size``."""
    if size < 1:
        raise ValueError("chunk size must be positive")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def describe_failure(namespace: str, exc: BaseException) -> ExportError:
    """Wrap a failed PutMetricData call, keeping the AWS error detail."""
    details: Dict[str, Any] = {"exception": type(exc).__name__}
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        details["aws_code"] = error.get("Code")
        details["aws_message"] = error.get("Message")
        details["request_id"] = exc.response.get("ResponseMetadata", {}).get("RequestId")
        details["http_status"] = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    elif isinstance(exc, BotoCoreError):
        details["botocore"] = exc.fmt
    return ExportError(namespace, str(exc), details)


class BatchSender:
    """Sends datapoints in chunks, one independent call per chunk.

    Calls run on ``executor`` and are never awaited by the caller; each
    outcome is only logged and counted. A failed chunk does not affect the
    others.
    """

    def __init__(
        self,
        client: Any,
        executor: Executor,
        metrics: Optional[MetricsCollector] = None,
        chunk_size: int = MAX_DATAPOINTS_PER_REQUEST,
    ):
        self.client = client
        self.executor = executor
        self.metrics = metrics
        self.chunk_size = chunk_size
        self.logger = get_logger("cloudwatch.sender")

        self._pending: set = set()
        self._lock = threading.Lock()

    def send(self, datapoints: Sequence[Datapoint], namespace: str) -> List[Future]:
        """Dispatch ``datapoints`` to ``namespace``; returns the in-flight calls."""
        futures, _ = self._submit(datapoints, namespace)
        return futures

    def dispatch(self, datapoints: Sequence[Datapoint], namespace: str) -> int:
        """Like ``send``, but returns how many datapoints were handed off."""
        _, submitted = self._submit(datapoints, namespace)
        return submitted

    def _submit(self, datapoints: Sequence[Datapoint], namespace: str) -> Tuple[List[Future], int]:
        futures: List[Future] = []
        submitted = 0
        if not datapoints:
            return futures, submitted

        groups = chunk(datapoints, self.chunk_size)
        for index, group in enumerate(groups):
            payload = {
                "Namespace": namespace,
                "MetricData": [datapoint.to_payload() for datapoint in group],
            }
            self.logger.debug("Dispatching PutMetricData", payload=payload)

            try:
                future = self.executor.submit(self.client.put_metric_data, **payload)
            except RuntimeError as e:
                # executor is shut down; later chunks cannot be scheduled either
                self.logger.error(
                    "PutMetricData not submitted",
                    namespace=namespace,
                    datapoints=sum(len(g) for g in groups[index:]),
                    error=str(e)
                )
                self._record("rejected")
                break

            with self._lock:
                self._pending.add(future)
            future.add_done_callback(partial(self._on_complete, namespace, len(group)))
            futures.append(future)
            submitted += len(group)

        return futures, submitted

    def _on_complete(self, namespace: str, size: int, future: Future):
        with self._lock:
            self._pending.discard(future)

        if future.cancelled():
            self.logger.warning("PutMetricData cancelled", namespace=namespace, datapoints=size)
            self._record("cancelled")
            return

        exc = future.exception()
        if exc is not None:
            error = describe_failure(namespace, exc)
            self.logger.error(
                "PutMetricData failed",
                namespace=namespace,
                datapoints=size,
                code=error.code,
                message=error.message,
                details=error.details,
            )
            self._record("error")
            if self.metrics:
                self.metrics.record_error(error.code)
            return

        self.logger.debug("PutMetricData succeeded", namespace=namespace, datapoints=size,
                          response=future.result())
        self._record("ok")

    def _record(self, status: str):
        if self.metrics:
            self.metrics.record_put(status)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def wait_for_pending(self, timeout: Optional[float] = None) -> bool:
        """Block until in-flight calls finish. Returns False on timeout."""
        with self._lock:
            in_flight = list(self._pending)
        _, not_done = wait(in_flight, timeout=timeout)
        return not not_done
