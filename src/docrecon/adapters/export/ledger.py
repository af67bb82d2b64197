"""Flatten completed results into ledger rows for export."""

from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from ...domain.models import ZERO, DocumentResult, StatementResult, Task, TaskStatus

CENT = Decimal("0.01")


def _money(value: Decimal) -> str:
    return str(value.quantize(CENT))


def statement_rows(source_name: str, statement: StatementResult) -> list[dict[str, Any]]:
    rows = [
        {
            "source": source_name,
            "date": t.date.isoformat() if t.date else "",
            "description": t.description,
            "direction": t.direction.value,
            "amount": _money(t.amount),
            "currency": statement.currency,
            "category": t.category,
            "match": t.match_note or "Pending evidence",
        }
        for t in statement.transactions
    ]
    summary = {
        "total_income": _money(statement.total_income),
        "total_expense": _money(statement.total_expense),
        "net": _money(statement.net),
    }
    if statement.closing_balance is not None:
        summary["closing_balance"] = _money(statement.closing_balance)
    rows.append({"source": source_name, "summary": summary})
    return rows


def document_row(source_name: str, document: DocumentResult) -> dict[str, Any]:
    return {
        "source": source_name,
        "date": document.document_date.isoformat() if document.document_date else "",
        "issuer": document.issuer,
        "original_amount": f"{_money(document.total_amount)} {document.currency}",
        "vat": _money(document.vat_amount),
        "exchange_rate": str(document.exchange_rate),
        "total": _money(document.amount_in_reporting_currency),
        "category": document.category,
    }


def ledger_rows(tasks: Iterable[Task], reporting_currency: str) -> dict[str, Any]:
    """Build the export payload for all completed tasks.

    Match notes, categories and statement totals must already be final.
    """
    documents: list[dict[str, Any]] = []
    statements: list[dict[str, Any]] = []
    grand_total = ZERO

    for task in tasks:
        if task.status != TaskStatus.COMPLETED:
            continue
        if isinstance(task.result, StatementResult):
            statements.extend(statement_rows(task.source_name, task.result))
        elif isinstance(task.result, DocumentResult):
            documents.append(document_row(task.source_name, task.result))
            grand_total += task.result.amount_in_reporting_currency

    return {
        "reporting_currency": reporting_currency,
        "documents": documents,
        "statements": statements,
        "grand_total": f"{_money(grand_total)} {reporting_currency}",
    }
