"""Thread pool fan-out for generation calls"""

from .executor import ParallelExecutor, TaskOutcome, chunked

__all__ = [
    "ParallelExecutor",
    "TaskOutcome",
    "chunked"
]
