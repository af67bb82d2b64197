"""Domain models."""

import mimetypes
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

ZERO = Decimal("0")


class TaskStatus(str, Enum):
    """Lifecycle states of a submitted document."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


# Allowed transitions, keyed by current status.
TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.PROCESSING}),
    TaskStatus.ERROR: frozenset({TaskStatus.PROCESSING}),
    TaskStatus.PROCESSING: frozenset({TaskStatus.COMPLETED, TaskStatus.ERROR}),
    TaskStatus.COMPLETED: frozenset(),
}


class Direction(str, Enum):
    """Money flow direction of a statement line."""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class DocumentType(str, Enum):
    INVOICE = "Invoice"
    RECEIPT = "Ticket/Receipt"
    UNKNOWN = "Unknown"


@dataclass
class DocumentResult:
    """Extracted supporting document (invoice, receipt)."""

    issuer: str
    document_date: date | None
    total_amount: Decimal
    currency: str
    exchange_rate: Decimal = Decimal("1")
    amount_in_reporting_currency: Decimal = ZERO
    category: str = ""
    reference_code: str = ""  # Handwritten or printed reference
    document_type: DocumentType = DocumentType.UNKNOWN
    document_number: str = ""
    vat_amount: Decimal = ZERO
    notes: str = ""


@dataclass
class Transaction:
    """Single bank statement line."""

    date: date | None
    description: str
    amount: Decimal  # Always a non-negative magnitude
    direction: Direction
    category: str = ""
    reference_code: str = ""
    match_note: str | None = None

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"Transaction amount must be non-negative: {self.amount}")

    @property
    def is_verified(self) -> bool:
        return bool(self.match_note) and self.match_note.startswith("Verified")


@dataclass
class StatementResult:
    """Extracted bank statement.

    ``total_income`` and ``total_expense`` are derived from ``transactions``
    and only ever set by the aggregator.
    """

    currency: str
    period: str
    transactions: list[Transaction] = field(default_factory=list)
    account_holder: str = ""
    opening_balance: Decimal | None = None
    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.total_income - self.total_expense

    @property
    def closing_balance(self) -> Decimal | None:
        if self.opening_balance is None:
            return None
        return self.opening_balance + self.net


ExtractionResult = DocumentResult | StatementResult


@dataclass(frozen=True)
class Evidence:
    """A completed supporting document offered to the matcher."""

    source_name: str
    document: DocumentResult


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Task:
    """One document submitted for extraction."""

    source_name: str
    source_bytes: bytes = field(repr=False)
    owner_id: str = "default"
    mime_type: str = ""
    id: str = field(default_factory=_new_id)
    status: TaskStatus = TaskStatus.PENDING
    result: ExtractionResult | None = None
    error_message: str | None = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if not self.mime_type:
            guessed, _ = mimetypes.guess_type(self.source_name)
            self.mime_type = guessed or "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.source_bytes)

    def is_duplicate_of(self, other: "Task") -> bool:
        return self.source_name == other.source_name and self.size == other.size

    @property
    def is_statement(self) -> bool:
        return isinstance(self.result, StatementResult)
