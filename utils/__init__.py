from utils.metrics import (
    InMemoryMetricsSink,
    LoggingMetricsSink,
    MetricsSink,
    NullMetricsSink,
)
from utils.result import EngineError, Failure, Result, Success, returns_result

__all__ = [
    "InMemoryMetricsSink",
    "LoggingMetricsSink",
    "MetricsSink",
    "NullMetricsSink",
    "EngineError",
    "Failure",
    "Result",
    "Success",
    "returns_result",
]
