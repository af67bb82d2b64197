"""Shared test fixtures."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from docrecon.domain.models import (
    Direction,
    DocumentResult,
    StatementResult,
    Task,
    Transaction,
)
from docrecon.domain.queue import TaskQueue
from docrecon.ports.extraction import ExtractionPort


def make_document(
    issuer: str = "Acme",
    total: str = "250.00",
    reference: str = "",
    category: str = "Office supplies",
) -> DocumentResult:
    return DocumentResult(
        issuer=issuer,
        document_date=date(2024, 3, 15),
        total_amount=Decimal(total),
        currency="CHF",
        amount_in_reporting_currency=Decimal(total),
        category=category,
        reference_code=reference,
    )


def make_transaction(
    amount: str,
    direction: Direction = Direction.EXPENSE,
    description: str = "Card payment",
    reference: str = "",
    category: str = "",
) -> Transaction:
    return Transaction(
        date=date(2024, 3, 20),
        description=description,
        amount=Decimal(amount),
        direction=direction,
        category=category,
        reference_code=reference,
    )


def make_tasks(count: int) -> list[Task]:
    return [Task(source_name=f"doc-{i}.pdf", source_bytes=b"%PDF" * (i + 1)) for i in range(count)]


@pytest.fixture
def sample_document() -> DocumentResult:
    """Sample supporting document for testing."""
    return make_document(reference="INV-4521")


@pytest.fixture
def sample_statement() -> StatementResult:
    """Sample bank statement with three lines."""
    return StatementResult(
        currency="CHF",
        period="2024-03",
        transactions=[
            make_transaction("100.00", Direction.INCOME, "Salary"),
            make_transaction("30.00", Direction.EXPENSE, "Groceries"),
            make_transaction("20.00", Direction.EXPENSE, "Coffee"),
        ],
    )


@pytest.fixture
def queue() -> TaskQueue:
    """Queue that records notifications instead of logging them."""
    notifications: list[str] = []
    q = TaskQueue(notify=notifications.append)
    q.notifications = notifications  # type: ignore[attr-defined]
    return q


@pytest.fixture
def mock_extractor(sample_document: DocumentResult) -> MagicMock:
    """Mock extraction port."""
    mock = MagicMock(spec=ExtractionPort)
    mock.extract.return_value = sample_document
    return mock
