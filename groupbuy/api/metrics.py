"""Metrics service for tracking scoring performance.

Counts calls and latency per scoring operation (recommendations, request
matching, chat replies). One instance lives on ``app.state``.
"""

import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator


class _OperationStats:
    __slots__ = ("count", "total_ms", "min_ms", "max_ms")

    def __init__(self):
        self.count = 0
        self.total_ms = 0.0
        self.min_ms = float("inf")
        self.max_ms = 0.0


class ScoringMetrics:
    """Thread-safe call counter and latency tracker per operation."""

    def __init__(self):
        self._lock = threading.Lock()
        self._operations: Dict[str, _OperationStats] = {}

    def record(self, operation: str, latency_ms: float) -> None:
        """Record one call of ``operation`` with its latency.

        Args:
            operation: Operation name, e.g. "recommendations"
            latency_ms: Latency in milliseconds
        """
        with self._lock:
            stats = self._operations.setdefault(operation, _OperationStats())
            stats.count += 1
            stats.total_ms += latency_ms
            stats.min_ms = min(stats.min_ms, latency_ms)
            stats.max_ms = max(stats.max_ms, latency_ms)

    @contextmanager
    def track(self, operation: str) -> Iterator[None]:
        """Time the enclosed block and record it under ``operation``."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(operation, (time.perf_counter() - start) * 1000)

    def get_metrics(self) -> Dict[str, Dict[str, float]]:
        """Get current metrics.

        Returns:
            Dictionary keyed by operation with:
            - count: Total number of calls
            - average_latency_ms: Average latency in milliseconds
            - min_latency_ms: Minimum latency observed
            - max_latency_ms: Maximum latency observed
        """
        with self._lock:
            return {
                name: {
                    "count": stats.count,
                    "average_latency_ms": round(stats.total_ms / stats.count, 2) if stats.count else 0.0,
                    "min_latency_ms": round(stats.min_ms, 2) if stats.count else 0.0,
                    "max_latency_ms": round(stats.max_ms, 2),
                }
                for name, stats in self._operations.items()
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._operations.clear()
