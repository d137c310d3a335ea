"""
Metric key classification.

Keys are hierarchical, using ``.``, ``/`` or ``-`` as separators. The last
segment is the metric name; everything before it, joined by ``/``, is the
namespace.
"""

import re
from typing import NamedTuple, Optional

KEY_SEPARATORS = re.compile(r"[./-]")


class KeyParts(NamedTuple):
    """Result of classifying a metric key."""
    metric_name: str
    namespace: Optional[str]


def classify(key: str) -> KeyParts:
    """Split ``key`` into metric name and namespace.

    >>> classify("api.requests.count")
    KeyParts(metric_name='count', namespace='api/requests')
    >>> classify("uptime")
    KeyParts(metric_name='uptime', namespace=None)
    """
    parts = KEY_SEPARATORS.split(key)
    namespace = "/".join(parts[:-1]) if len(parts) > 1 else None
    return KeyParts(metric_name=parts[-1], namespace=namespace)
