"""Domain layer - core business logic."""

from .models import (
    Direction,
    DocumentResult,
    DocumentType,
    Evidence,
    StatementResult,
    Task,
    TaskStatus,
    Transaction,
)

__all__ = [
    "Direction",
    "DocumentResult",
    "DocumentType",
    "Evidence",
    "StatementResult",
    "Task",
    "TaskStatus",
    "Transaction",
]
