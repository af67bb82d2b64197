"""Persistence port - interface for task storage."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..domain.models import Task


class TaskRepository(ABC):
    """Interface for storing tasks per owner."""

    @abstractmethod
    def save(self, task: "Task") -> None:
        """Store a task, replacing any stored version."""
        pass

    @abstractmethod
    def update(self, task_id: str, **fields: Any) -> "Task":
        """Update selected fields of a stored task.

        Returns the updated task.
        """
        pass

    @abstractmethod
    def delete(self, task_id: str) -> None:
        pass

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> list["Task"]:
        """Return the owner's tasks, oldest first."""
        pass
