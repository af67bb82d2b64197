"""Turn model JSON responses into domain results."""

import json
import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from ...domain.errors import ExtractionFailure
from ...domain.models import (
    Direction,
    DocumentResult,
    DocumentType,
    ExtractionResult,
    StatementResult,
    Transaction,
)

logger = logging.getLogger(__name__)

BANK_STATEMENT = "Bank Statement"

# Pattern for suspicious content: path traversal, code-like, control chars
_SUSPICIOUS_PATTERN = re.compile(r"\.\./|[{}<>`]|[\x00-\x1f]")
_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def looks_suspicious(text: str) -> bool:
    """Check if text looks like injection attempt."""
    if not text:
        return False
    return bool(_SUSPICIOUS_PATTERN.search(text))


def sanitize_field(text: Any, fallback: str) -> str:
    """Return text if safe, otherwise fallback."""
    if not text or not isinstance(text, str):
        return fallback
    if looks_suspicious(text):
        return fallback
    return text.strip()


def strip_code_fence(text: str) -> str:
    """Remove a surrounding Markdown code fence, if any."""
    text = text.strip()
    match = _FENCE_PATTERN.search(text)
    return match.group(1).strip() if match else text


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    if value is None or value == "":
        return default
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        logger.warning(f"Invalid amount: {value!r}")
        return default
    if not amount.is_finite():
        raise ExtractionFailure(f"Amount is not a finite number: {value!r}")
    return amount


def to_date(value: Any) -> date | None:
    if not value or not isinstance(value, str):
        return None
    if value.lower() in ("null", "unknown", "none"):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        logger.warning(f"Invalid date format: {value}")
        return None


def _document_type(value: Any) -> DocumentType:
    try:
        return DocumentType(value)
    except ValueError:
        return DocumentType.UNKNOWN


def _transaction(item: dict[str, Any]) -> Transaction:
    amount = to_decimal(item.get("amount"))
    raw_type = str(item.get("type", "")).upper()
    if raw_type in (Direction.INCOME.value, Direction.EXPENSE.value):
        direction = Direction(raw_type)
    else:
        direction = Direction.INCOME if amount > 0 else Direction.EXPENSE
    return Transaction(
        date=to_date(item.get("date")),
        description=str(item.get("description") or "").strip(),
        amount=abs(amount),
        direction=direction,
        category=sanitize_field(item.get("category"), ""),
        reference_code=str(item.get("supportingDocRef") or "").strip(),
    )


def parse_response(text: str | None) -> ExtractionResult:
    """Parse an extraction response.

    Raises ExtractionFailure when the response is empty or not a JSON object.
    """
    if not text or not text.strip():
        raise ExtractionFailure("AI failed to return structured data")

    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid JSON response: {text[:200]}")
        raise ExtractionFailure(f"Invalid JSON response: {e}") from e

    if not isinstance(data, dict):
        raise ExtractionFailure("No data found in response")

    if data.get("documentType") == BANK_STATEMENT:
        items = data.get("lineItems") or []
        opening = data.get("openingBalance")
        return StatementResult(
            currency=sanitize_field(data.get("originalCurrency"), "").upper(),
            period=str(data.get("date") or ""),
            transactions=[_transaction(item) for item in items if isinstance(item, dict)],
            account_holder=sanitize_field(data.get("issuer"), ""),
            opening_balance=None if opening is None else to_decimal(opening),
        )

    if looks_suspicious(data.get("issuer") or ""):
        logger.warning(f"Suspicious issuer rejected: {str(data.get('issuer'))[:50]}")

    return DocumentResult(
        issuer=sanitize_field(data.get("issuer"), ""),
        document_date=to_date(data.get("date")),
        total_amount=to_decimal(data.get("totalAmount")),
        currency=sanitize_field(data.get("originalCurrency"), "").upper(),
        exchange_rate=to_decimal(data.get("conversionRateUsed"), Decimal("1")),
        amount_in_reporting_currency=to_decimal(data.get("amountInReportingCurrency")),
        category=sanitize_field(data.get("expenseCategory"), ""),
        reference_code=str(data.get("handwrittenRef") or "").strip(),
        document_type=_document_type(data.get("documentType")),
        document_number=sanitize_field(data.get("documentNumber"), ""),
        vat_amount=to_decimal(data.get("vatAmount")),
        notes=str(data.get("notes") or ""),  # Allow free-form text
    )
