"""Extraction port - interface for AI document extraction."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import ExtractionResult


class ExtractionPort(ABC):
    """Interface for turning document bytes into structured financial data."""

    @abstractmethod
    async def extract(
        self, content: bytes, mime_type: str, reporting_currency: str
    ) -> "ExtractionResult":
        """Extract a document or bank statement.

        Raises ExtractionFailure on any error.
        """
        pass

    @abstractmethod
    async def summarize(self, lines: list[str], reporting_currency: str) -> str:
        """Write an executive summary of a batch, one document per line.

        Raises ExtractionFailure on any error or an empty reply.
        """
        pass
