"""
Metrics sinks

The boundary layer reports usage counters (orders placed, assignments,
failures by code) through a sink handed to it at construction time. The
engine itself reports nothing.
"""

from collections import Counter
from typing import Dict, Optional, Tuple

from logger import logger


class MetricsSink:
    """Interface for counters emitted by the boundary layer"""

    def increment(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        raise NotImplementedError


class NullMetricsSink(MetricsSink):
    def increment(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        return None


class LoggingMetricsSink(MetricsSink):
    """Writes every counter increment to the application log"""

    def increment(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        logger.info(msg=f"metric {name} +{value} tags={tags or {}}")


class InMemoryMetricsSink(MetricsSink):
    """Keeps counters in memory, keyed by name and sorted tag items"""

    def __init__(self):
        self.counters: Counter = Counter()

    def increment(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        self.counters[self._key(name, tags)] += value

    def get(self, name: str, tags: Optional[Dict[str, str]] = None) -> int:
        return self.counters[self._key(name, tags)]

    def total(self, name: str) -> int:
        return sum(count for (key, _), count in self.counters.items() if key == name)

    @staticmethod
    def _key(name: str, tags: Optional[Dict[str, str]]) -> Tuple[str, Tuple]:
        return name, tuple(sorted((tags or {}).items()))


default_metrics_sink: MetricsSink = LoggingMetricsSink()


def get_metrics_sink() -> MetricsSink:
    """FastAPI dependency; tests override it with an InMemoryMetricsSink"""
    return default_metrics_sink
