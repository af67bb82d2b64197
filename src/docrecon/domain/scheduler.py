"""Bounded-concurrency batch scheduler."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from .models import ExtractionResult, Task, TaskStatus
from .queue import INTERRUPTED, TaskQueue

logger = logging.getLogger(__name__)

Worker = Callable[[Task], Awaitable[ExtractionResult]]

DEFAULT_CONCURRENCY = 3


@dataclass
class BatchReport:
    """Outcome of one scheduler run."""

    snapshot_size: int = 0
    started: int = 0
    completed: int = 0
    failed: int = 0
    cancelled: bool = False

    @property
    def not_started(self) -> int:
        return self.snapshot_size - self.started


class BatchScheduler:
    """Runs a queue snapshot with at most ``limit`` tasks in flight.

    Cancellation is cooperative: once ``cancel`` is set no new task starts,
    but tasks already in flight finish and their results are applied.
    """

    def __init__(self, limit: int = DEFAULT_CONCURRENCY) -> None:
        if limit < 1:
            raise ValueError(f"Concurrency limit must be >= 1, got {limit}")
        self.limit = limit

    async def run(
        self,
        queue: TaskQueue,
        process: Worker,
        cancel: asyncio.Event | None = None,
    ) -> BatchReport:
        cancel = cancel or asyncio.Event()
        snapshot = queue.snapshot_pending()
        report = BatchReport(snapshot_size=len(snapshot))
        logger.info(f"Starting batch: {len(snapshot)} tasks, concurrency {self.limit}")

        in_flight: dict[asyncio.Task, Task] = {}
        next_index = 0

        try:
            while True:
                while (
                    len(in_flight) < self.limit
                    and next_index < len(snapshot)
                    and not cancel.is_set()
                ):
                    task = snapshot[next_index]
                    next_index += 1
                    queue.apply_update(task.id, TaskStatus.PROCESSING)
                    report.started += 1
                    logger.info(f"Processing: {task.source_name}")
                    in_flight[asyncio.create_task(process(task))] = task

                if not in_flight:
                    break

                done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
                for future in done:
                    task = in_flight.pop(future)
                    self._apply(queue, task, future, report)
        except BaseException:
            # The run itself was cancelled or a listener raised: nothing may
            # stay in progress.
            self._interrupt(queue, snapshot, in_flight, report)
            raise

        report.cancelled = cancel.is_set() and next_index < len(snapshot)
        if report.cancelled:
            logger.info(f"Batch stopped: {report.not_started} tasks not started")
        logger.info(
            f"Batch finished: {report.completed} completed, {report.failed} failed"
        )
        return report

    def _interrupt(
        self,
        queue: TaskQueue,
        snapshot: list[Task],
        in_flight: dict[asyncio.Task, Task],
        report: BatchReport,
    ) -> None:
        """Cancel running work and fail every snapshot task still in progress."""
        for future in in_flight:
            future.cancel()
        for task in snapshot:
            if task.status != TaskStatus.PROCESSING:
                continue
            try:
                queue.apply_update(task.id, TaskStatus.ERROR, error=INTERRUPTED)
            except Exception as e:
                logger.error(f"Could not record interruption of {task.source_name}: {e}")
            report.failed += 1
        in_flight.clear()

    def _apply(
        self,
        queue: TaskQueue,
        task: Task,
        future: asyncio.Task,
        report: BatchReport,
    ) -> None:
        if future.cancelled():
            queue.apply_update(task.id, TaskStatus.ERROR, error=INTERRUPTED)
            report.failed += 1
            return
        try:
            result = future.result()
        except Exception as e:
            logger.error(f"Failed: {task.source_name} - {e}")
            queue.apply_update(task.id, TaskStatus.ERROR, error=str(e) or type(e).__name__)
            report.failed += 1
        else:
            logger.info(f"Completed: {task.source_name}")
            queue.apply_update(task.id, TaskStatus.COMPLETED, result=result)
            report.completed += 1
