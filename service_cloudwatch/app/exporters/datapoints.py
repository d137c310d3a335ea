"""
CloudWatch datapoint types.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from ..ingestion.snapshot import Number


class Unit(str, Enum):
    """CloudWatch standard units used by the exporter."""
    COUNT = "Count"
    NONE = "None"
    MILLISECONDS = "Milliseconds"


@dataclass(frozen=True)
class StatisticSet:
    """Pre-aggregated timer statistics."""
    minimum: Number
    maximum: Number
    sum: Number
    sample_count: int

    def to_payload(self) -> Dict[str, Number]:
        return {
            "Minimum": self.minimum,
            "Maximum": self.maximum,
            "Sum": self.sum,
            "SampleCount": self.sample_count,
        }


@dataclass(frozen=True)
class Datapoint:
    """One CloudWatch ``MetricDatum``.

    Exactly one of ``value`` and ``statistics`` is set.
    """
    metric_name: str
    unit: Unit
    timestamp: str
    value: Optional[Number] = None
    statistics: Optional[StatisticSet] = None

    def __post_init__(self):
        if (self.value is None) == (self.statistics is None):
            raise ValueError("Datapoint needs exactly one of value or statistics")

    @property
    def is_statistic(self) -> bool:
        return self.statistics is not None

    def to_payload(self) -> Dict[str, Any]:
        """Render as a PutMetricData ``MetricData`` entry."""
        payload: Dict[str, Any] = {
            "MetricName": self.metric_name,
            "Unit": self.unit.value,
            "Timestamp": self.timestamp,
        }
        if self.statistics is not None:
            payload["StatisticValues"] = self.statistics.to_payload()
        else:
            payload["Value"] = self.value
        return payload


def iso_timestamp(timestamp: Number) -> str:
    """Epoch seconds to ISO-8601 UTC with millisecond precision.

    >>> iso_timestamp(1)
    '1970-01-01T00:00:01.000Z'
    """
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
