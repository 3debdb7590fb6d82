"""
Worker Pool
===========

Fixed-size pool of worker threads executing WorkItems from a bounded
queue. Outcomes are streamed back to the caller as workers finish them;
the pool joins every thread before the stream ends.
"""

import os
import threading
from queue import Queue
from typing import Iterable, Iterator, List, Optional

from parmove.actions.file_operations import FileOperations, OperationMode
from parmove.processing.models import Outcome, WorkItem
from parmove.utils.exceptions import FileProcessingError
from parmove.utils.logging_config import get_correlation_id, get_logger, set_correlation_id

logger = get_logger(__name__)

_STOP = object()
_WORKER_DONE = object()


def default_thread_count() -> int:
    """Host parallelism, at least 1."""
    return os.cpu_count() or 1


class WorkerPool:
    """Executes WorkItems on a fixed number of threads.

    Features:
    - Bounded task queue filled by a feeder thread
    - Per-item failure isolation: errors become failed outcomes
    - Cooperative cancellation checked between items
    - Join barrier before the outcome stream ends
    """

    def __init__(
        self,
        mode: OperationMode,
        max_workers: Optional[int] = None,
        file_ops: Optional[FileOperations] = None,
        cancel_event: Optional[threading.Event] = None,
        queue_size: Optional[int] = None,
    ):
        """Initialize the pool.

        Args:
            mode: Move or copy.
            max_workers: Number of worker threads. Defaults to host parallelism.
            file_ops: File operation primitives shared by the workers.
            cancel_event: Event that stops execution of further items.
            queue_size: Task queue bound. Defaults to 4 items per worker.
        """
        self.mode = mode
        self.max_workers = max_workers if max_workers is not None else default_thread_count()
        if self.max_workers < 1:
            raise ValueError("Thread count must be greater than 0")
        self.file_ops = file_ops or FileOperations()
        self.cancel_event = cancel_event or threading.Event()
        self.queue_size = queue_size or self.max_workers * 4
        self.dispatched = 0
        self._feeder_errors: List[BaseException] = []

    def cancel(self) -> None:
        """Stop executing new items; in-flight operations finish."""
        if not self.cancel_event.is_set():
            logger.info("Cancellation requested")
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def run(self, work_items: Iterable[WorkItem]) -> Iterator[Outcome]:
        """Execute work items and stream their outcomes.

        Every item taken from ``work_items`` yields exactly one outcome.
        Completion order is unspecified.

        Args:
            work_items: Items to execute; consumed lazily on a feeder thread.

        Yields:
            Outcome for each item.
        """
        tasks: Queue = Queue(maxsize=self.queue_size)
        results: Queue = Queue()
        correlation_id = get_correlation_id()
        self.dispatched = 0
        self._feeder_errors = []

        feeder = threading.Thread(
            target=self._feed,
            args=(work_items, tasks, correlation_id),
            name="parmove-feeder",
        )
        workers = [
            threading.Thread(
                target=self._work,
                args=(tasks, results, correlation_id),
                name=f"parmove-worker-{i}",
            )
            for i in range(self.max_workers)
        ]

        feeder.start()
        for worker in workers:
            worker.start()
        logger.debug(f"Worker pool started with {self.max_workers} workers")

        finished = 0
        try:
            while finished < len(workers):
                outcome = results.get()
                if outcome is _WORKER_DONE:
                    finished += 1
                    continue
                yield outcome
        finally:
            if finished < len(workers):
                # Consumer stopped early
                self.cancel()
            feeder.join()
            for worker in workers:
                worker.join()
            logger.debug("Worker pool joined")

        if self._feeder_errors:
            raise self._feeder_errors[0]

    def _feed(
        self,
        work_items: Iterable[WorkItem],
        tasks: Queue,
        correlation_id: str,
    ) -> None:
        """Pull items from the source into the bounded task queue.

        The cancel flag is checked before each pull, so no destination
        is claimed for an item that would only be reported cancelled.
        """
        set_correlation_id(correlation_id)
        try:
            items = iter(work_items)
            while not self.cancelled:
                try:
                    item = next(items)
                except StopIteration:
                    break
                self.dispatched += 1
                tasks.put(item)
        except Exception as e:
            logger.error(f"Work item source failed: {e}")
            self._feeder_errors.append(e)
        finally:
            for _ in range(self.max_workers):
                tasks.put(_STOP)

    def _work(self, tasks: Queue, results: Queue, correlation_id: str) -> None:
        """Worker loop: execute items until the stop marker arrives."""
        set_correlation_id(correlation_id)
        try:
            while True:
                item = tasks.get()
                if item is _STOP:
                    break
                results.put(self._execute(item))
        finally:
            results.put(_WORKER_DONE)

    def _execute(self, item: WorkItem) -> Outcome:
        """Execute a single item, capturing any error into the outcome.

        Args:
            item: The item to execute.
        """
        if self.cancelled:
            return Outcome.cancelled(item)

        context = {"file_path": str(item.source), "category": item.category}
        try:
            final_path = self.file_ops.transfer(item.source, item.destination, self.mode)
        except (FileProcessingError, OSError) as e:
            logger.warning(f"Failed to process '{item.source}': {e}", extra=context)
            return Outcome.failure(item.source, e, item.category)
        except Exception as e:
            logger.exception(f"Unexpected error processing '{item.source}'", extra=context)
            return Outcome.failure(item.source, e, item.category)

        return Outcome.success(item, self.mode, final_path)


def dispatch(
    work_items: Iterable[WorkItem],
    thread_count: Optional[int],
    mode: OperationMode,
) -> Iterator[Outcome]:
    """Run work items on a fresh pool and stream their outcomes."""
    return WorkerPool(mode, max_workers=thread_count).run(work_items)
