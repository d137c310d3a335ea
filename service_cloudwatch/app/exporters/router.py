"""
Grouping of shaped datapoints by CloudWatch namespace.
"""

from typing import Dict, Iterable, List

from .datapoints import Datapoint
from .shaper import Routed


class NamespaceRouter:
    """Collects datapoints per namespace for a single metric family.

    Use one router per family per flush; buckets keep encounter order.
    """

    def __init__(self):
        self.groups: Dict[str, List[Datapoint]] = {}

    def add(self, namespace: str, datapoint: Datapoint):
        self.groups.setdefault(namespace, []).append(datapoint)

    def route(self, routed: Iterable[Routed]) -> Dict[str, List[Datapoint]]:
        for namespace, datapoint in routed:
            self.add(namespace, datapoint)
        return self.groups

    def __len__(self) -> int:
        return sum(len(datapoints) for datapoints in self.groups.values())
