"""
Shaping of statsd metric families into CloudWatch datapoints.
"""

from dataclasses import dataclass
from itertools import accumulate
from typing import Any, Collection, Mapping, Optional, Sequence, Tuple

from ..ingestion.keys import classify
from .datapoints import Datapoint, Number, StatisticSet, Unit, iso_timestamp

DEFAULT_NAMESPACE = "AwsCloudWatchStatsdBackend"

# (namespace, datapoint) pairs, as consumed by NamespaceRouter
Routed = Tuple[str, Datapoint]


@dataclass(frozen=True)
class RoutingConfig:
    """How keys map onto CloudWatch namespaces and metric names."""
    namespace: Optional[str] = None
    metric_name: Optional[str] = None
    process_key_for_namespace: bool = False


def timer_statistics(samples: Sequence[Number]) -> Optional[StatisticSet]:
    """Reduce timer samples to min / max / sum / count.

    Returns None for an empty sample list. ``samples`` is not modified.
    """
    if not samples:
        return None

    values = sorted(samples)
    running_totals = list(accumulate(values))
    return StatisticSet(
        minimum=values[0],
        maximum=values[-1],
        sum=running_totals[-1],
        sample_count=len(values),
    )


def set_cardinality(members: Any) -> int:
    """Number of distinct members in a statsd set.

    Accepts a plain collection or a ``{"values": [...]}`` mapping.
    """
    if isinstance(members, Mapping):
        members = members.get("values") or ()
    return len(set(members))


class MetricShaper:
    """Shapes one flush's metrics into datapoints.

    The timestamp is rendered once so every datapoint of a flush carries the
    same value.
    """

    def __init__(self, routing: RoutingConfig, timestamp: Number):
        self.routing = routing
        self.timestamp = iso_timestamp(timestamp)

    def resolve(self, key: str) -> Tuple[str, str]:
        """Return ``(namespace, metric_name)`` for a key."""
        if self.routing.process_key_for_namespace:
            parts = classify(key)
            derived_name, derived_namespace = parts.metric_name, parts.namespace
        else:
            derived_name, derived_namespace = None, None

        namespace = self.routing.namespace or derived_namespace or DEFAULT_NAMESPACE
        metric_name = self.routing.metric_name or derived_name or key
        return namespace, metric_name

    def _scalar(self, key: str, value: Number, unit: Unit) -> Routed:
        namespace, metric_name = self.resolve(key)
        return namespace, Datapoint(
            metric_name=metric_name,
            unit=unit,
            timestamp=self.timestamp,
            value=value,
        )

    def counter(self, key: str, value: Number) -> Routed:
        return self._scalar(key, value, Unit.COUNT)

    def gauge(self, key: str, value: Number) -> Routed:
        return self._scalar(key, value, Unit.NONE)

    def set(self, key: str, members: Collection[Any]) -> Routed:
        return self._scalar(key, set_cardinality(members), Unit.NONE)

    def timer(self, key: str, samples: Sequence[Number]) -> Optional[Routed]:
        statistics = timer_statistics(samples)
        if statistics is None:
            return None

        namespace, metric_name = self.resolve(key)
        return namespace, Datapoint(
            metric_name=metric_name,
            unit=Unit.MILLISECONDS,
            timestamp=self.timestamp,
            statistics=statistics,
        )
