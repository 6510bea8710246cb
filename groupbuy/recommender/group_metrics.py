"""AI metrics attached to a group when it is created.

The four scores are placeholders with no signal: the default provider draws
each one uniformly from a fixed range. Call sites depend only on
``GroupMetricsProvider``, so a model-backed provider can replace it.

Ranges of the default provider:
    demandScore               60-100
    priceOptimizationScore    70-100
    deliveryEfficiencyScore   75-100
    memberCompatibilityScore  80-100
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import numpy as np

METRIC_RANGES: Dict[str, Tuple[float, float]] = {
    "demandScore": (60.0, 100.0),
    "priceOptimizationScore": (70.0, 100.0),
    "deliveryEfficiencyScore": (75.0, 100.0),
    "memberCompatibilityScore": (80.0, 100.0),
}


class GroupMetricsProvider(ABC):
    """Produces the AI metrics stored on a new group."""

    @abstractmethod
    def score(self, group_data: Dict[str, Any]) -> Dict[str, float]:
        """Return a value in [0, 100] for each name in ``METRIC_RANGES``.

        Args:
            group_data: Attributes of the group being created (productName,
                category, targetQuantity, pricePerUnit, marketPrice, location).
        """


class RandomGroupMetricsProvider(GroupMetricsProvider):
    """Uniform draws from ``METRIC_RANGES``; ignores the group data."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = np.random.default_rng(seed)
        # Generators are not safe to share across threads
        self._lock = threading.Lock()

    def score(self, group_data: Dict[str, Any]) -> Dict[str, float]:
        with self._lock:
            return {
                name: float(self._rng.uniform(low, high))
                for name, (low, high) in METRIC_RANGES.items()
            }
