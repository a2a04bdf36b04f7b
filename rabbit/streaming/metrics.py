"""
Optional diagnostic counters for the streaming core.

Counters are observational only: nothing in the core reads them back to make
decisions. Pass a ``CounterMetrics`` to inspect them, otherwise the no-op
default is used.
"""

from collections import Counter
from typing import Protocol


class StreamMetrics(Protocol):
    def increment(self, name: str, value: int = 1) -> None: ...


class NullMetrics:
    """Discards every count."""

    def increment(self, name: str, value: int = 1) -> None:
        return None


class CounterMetrics:
    """In-memory counters, handy for tests and debug endpoints."""

    def __init__(self):
        self.counts: Counter = Counter()

    def increment(self, name: str, value: int = 1) -> None:
        self.counts[name] += value

    def __getitem__(self, name: str) -> int:
        return self.counts[name]


null_metrics = NullMetrics()
