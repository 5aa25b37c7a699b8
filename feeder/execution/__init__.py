"""Execution primitives: retrying remote calls and concurrent fan-out."""

from feeder.execution.parallel import ParallelTaskGroup
from feeder.execution.retry import DEFAULT_MAX_ATTEMPTS, RetryExecutor

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "ParallelTaskGroup",
    "RetryExecutor",
]
