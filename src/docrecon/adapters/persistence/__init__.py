"""Persistence adapters."""

from .yaml_store import YamlTaskRepository

__all__ = ["YamlTaskRepository"]
