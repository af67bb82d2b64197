"""In-memory task queue."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from .errors import InvalidTransitionError, TaskNotFoundError
from .models import (
    TRANSITIONS,
    DocumentResult,
    Evidence,
    ExtractionResult,
    StatementResult,
    Task,
    TaskStatus,
)

logger = logging.getLogger(__name__)

Listener = Callable[[Task], None]
Notifier = Callable[[str], None]

ELIGIBLE = (TaskStatus.PENDING, TaskStatus.ERROR)
INTERRUPTED = "Processing interrupted"


def _log_notification(message: str) -> None:
    logger.warning(message)


@dataclass(frozen=True)
class QueueStats:
    """Counts by status, derived on demand."""

    total: int
    pending: int
    processing: int
    completed: int
    error: int

    @property
    def progress(self) -> float:
        """Completed share of the queue in percent."""
        return (self.completed / self.total) * 100 if self.total else 0.0


class TaskQueue:
    """Ordered collection of tasks.

    ``apply_update`` is the only mutation path for status, result and error.
    It never suspends, so concurrent workers addressing distinct ids need no
    locking.
    """

    def __init__(self, notify: Notifier = _log_notification) -> None:
        self._tasks: dict[str, Task] = {}
        self._listeners: list[Listener] = []
        self.notify = notify

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self):
        return iter(list(self._tasks.values()))

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def get(self, task_id: str) -> Task:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise TaskNotFoundError(task_id) from None

    def subscribe(self, listener: Listener) -> None:
        """Call ``listener`` after every status change."""
        self._listeners.append(listener)

    def enqueue(self, tasks: Iterable[Task]) -> list[Task]:
        """Append new tasks, dropping duplicates by (name, size).

        Returns the tasks actually added.
        """
        added: list[Task] = []
        for task in tasks:
            if any(task.is_duplicate_of(existing) for existing in self._tasks.values()):
                self.notify(f"Duplicate ignored: {task.source_name}")
                continue
            task.status = TaskStatus.PENDING
            task.result = None
            task.error_message = None
            self._tasks[task.id] = task
            added.append(task)
            logger.debug(f"Enqueued: {task.source_name} ({task.id})")
        return added

    def restore(self, tasks: Iterable[Task]) -> None:
        """Load previously persisted tasks, keeping their status.

        Tasks left in progress by an earlier run become failed so the next
        run picks them up again.
        """
        for task in tasks:
            if task.status == TaskStatus.PROCESSING:
                task.status = TaskStatus.ERROR
                task.result = None
                task.error_message = INTERRUPTED
            self._tasks[task.id] = task

    def remove(self, task_id: str) -> Task:
        task = self.get(task_id)
        if task.status == TaskStatus.PROCESSING:
            raise InvalidTransitionError(f"Cannot remove task in progress: {task.source_name}")
        del self._tasks[task_id]
        return task

    def snapshot_pending(self) -> list[Task]:
        """Tasks eligible for (re)processing, in queue order."""
        return [t for t in self._tasks.values() if t.status in ELIGIBLE]

    def apply_update(
        self,
        task_id: str,
        status: TaskStatus,
        result: ExtractionResult | None = None,
        error: str | None = None,
    ) -> Task:
        """Move a task to ``status``, attaching a result or error message."""
        task = self.get(task_id)

        if status not in TRANSITIONS[task.status]:
            raise InvalidTransitionError(
                f"{task.source_name}: {task.status.value} -> {status.value} not allowed"
            )
        if status == TaskStatus.COMPLETED and (result is None or error is not None):
            raise InvalidTransitionError("Completed tasks need a result and no error")
        if status == TaskStatus.ERROR and (error is None or result is not None):
            raise InvalidTransitionError("Failed tasks need an error message and no result")
        if status == TaskStatus.PROCESSING and (result is not None or error is not None):
            raise InvalidTransitionError("Processing tasks carry no result or error")

        task.status = status
        task.result = result
        task.error_message = error

        for listener in self._listeners:
            listener(task)
        return task

    def count(self, status: TaskStatus) -> int:
        return sum(1 for t in self._tasks.values() if t.status == status)

    def stats(self) -> QueueStats:
        return QueueStats(
            total=len(self._tasks),
            pending=self.count(TaskStatus.PENDING),
            processing=self.count(TaskStatus.PROCESSING),
            completed=self.count(TaskStatus.COMPLETED),
            error=self.count(TaskStatus.ERROR),
        )

    def evidence(self) -> list[Evidence]:
        """Completed supporting documents, in queue order."""
        return [
            Evidence(source_name=t.source_name, document=t.result)
            for t in self._tasks.values()
            if t.status == TaskStatus.COMPLETED and isinstance(t.result, DocumentResult)
        ]

    def statements(self) -> list[Task]:
        return [
            t
            for t in self._tasks.values()
            if t.status == TaskStatus.COMPLETED and isinstance(t.result, StatementResult)
        ]
