"""
Parallel execution for per-document generation calls.
Runs a batch of tasks on a thread pool and waits for all of them to settle.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar
import threading

from ..utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class TaskOutcome(Generic[T]):
    """Settled result of one task: either a value or the exception it raised."""

    index: int
    value: Optional[T] = None
    error: Optional[BaseException] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


def chunked(items: Sequence[Any], size: int) -> List[List[Any]]:
    """Split items into consecutive lists of at most ``size`` elements."""
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class ParallelExecutor:
    """Manages parallel execution of generation tasks."""

    def __init__(self, max_workers: int = 3):
        """
        Initialize the parallel executor.

        Args:
            max_workers: Maximum number of worker threads
        """
        self.max_workers = max_workers

    def execute_all_settled(self, task_func: Callable[[Any], T], tasks: Sequence[Any],
                            task_name: str = "Processing") -> List[TaskOutcome[T]]:
        """
        Run every task concurrently and wait for all of them.

        A failing task never cancels its siblings; its exception is kept in
        the returned outcome instead.

        Args:
            task_func: Function called with each task
            tasks: Task arguments
            task_name: Label for log messages

        Returns:
            One TaskOutcome per task, in task order
        """
        if not tasks:
            return []

        outcomes: List[Optional[TaskOutcome[T]]] = [None] * len(tasks)
        workers = max(1, min(self.max_workers, len(tasks)))
        logger.debug(f"{task_name}: running {len(tasks)} tasks on {workers} threads")

        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_index = {
                executor.submit(self._execute_task, task_func, task, idx): idx
                for idx, task in enumerate(tasks)
            }
            for future in as_completed(future_to_index):
                idx = future_to_index[future]
                try:
                    outcomes[idx] = future.result()
                except Exception as e:
                    logger.error(f"{task_name}: task {idx} failed: {str(e)}")
                    outcomes[idx] = TaskOutcome(index=idx, error=e)

        return outcomes

    def _execute_task(self, task_func: Callable[[Any], T], task: Any, idx: int) -> TaskOutcome[T]:
        """
        Execute a single task with timing.

        Args:
            task_func: Function to execute
            task: Task argument
            idx: Task index

        Returns:
            TaskOutcome holding the value
        """
        thread_id = threading.current_thread().name
        start_time = datetime.now()

        logger.debug(f"Thread {thread_id}: Starting task {idx}")

        try:
            result = task_func(task)
        except Exception as e:
            elapsed = (datetime.now() - start_time).total_seconds()
            logger.error(f"Thread {thread_id}: Task {idx} failed after {elapsed:.2f}s: {str(e)}")
            raise

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.debug(f"Thread {thread_id}: Completed task {idx} in {elapsed:.2f}s")
        return TaskOutcome(index=idx, value=result, elapsed=elapsed)
