"""Export adapters."""

from .ledger import ledger_rows

__all__ = ["ledger_rows"]
