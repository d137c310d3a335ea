"""
Metrics snapshot handed over by the upstream aggregator on each flush.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Collection, Dict, Mapping, Sequence, Union

Number = Union[int, float]


class MetricFamily(str, Enum):
    """Metric families, in the order a flush processes them."""
    COUNTERS = "counters"
    TIMERS = "timers"
    GAUGES = "gauges"
    SETS = "sets"


@dataclass(frozen=True)
class MetricsSnapshot:
    """A point-in-time read of aggregated metrics.

    The mappings are borrowed from the caller for the duration of one flush
    and must not be mutated.
    """
    counters: Mapping[str, Number] = field(default_factory=dict)
    gauges: Mapping[str, Number] = field(default_factory=dict)
    timers: Mapping[str, Sequence[Number]] = field(default_factory=dict)
    sets: Mapping[str, Collection[Any]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, metrics: Mapping[str, Any]) -> "MetricsSnapshot":
        """Build a snapshot from a statsd-style ``metrics`` mapping.

        Missing or null families are treated as empty; unknown keys (such as
        ``counter_rates`` or ``timer_data``) are ignored.
        """
        return cls(
            counters=metrics.get("counters") or {},
            gauges=metrics.get("gauges") or {},
            timers=metrics.get("timers") or {},
            sets=metrics.get("sets") or {},
        )

    def family(self, family: MetricFamily) -> Mapping[str, Any]:
        return getattr(self, family.value)

    def size(self) -> Dict[str, int]:
        """Number of keys per family, for logging."""
        return {f.value: len(self.family(f)) for f in MetricFamily}
