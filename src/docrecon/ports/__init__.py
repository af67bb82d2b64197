"""Ports - interfaces for external dependencies."""

from .extraction import ExtractionPort
from .persistence import TaskRepository

__all__ = ["ExtractionPort", "TaskRepository"]
