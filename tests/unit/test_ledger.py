"""Unit tests for ledger export rows."""

from decimal import Decimal

from conftest import make_document, make_transaction
from docrecon.adapters.export import ledger_rows
from docrecon.domain.aggregator import recompute_totals
from docrecon.domain.models import Direction, StatementResult, Task, TaskStatus


def test_ledger_rows() -> None:
    txn = make_transaction("250.00", reference="4521")
    txn.match_note = "Verified: matched with invoice.pdf (Acme)"
    statement = recompute_totals(
        StatementResult(
            currency="CHF",
            period="2024-03",
            opening_balance=Decimal("100"),
            transactions=[txn, make_transaction("1000", Direction.INCOME, "Salary")],
        )
    )
    tasks = [
        Task("invoice.pdf", b"1", status=TaskStatus.COMPLETED, result=make_document(total="250.00")),
        Task("bank.pdf", b"2", status=TaskStatus.COMPLETED, result=statement),
        Task("failed.pdf", b"3", status=TaskStatus.ERROR, error_message="x"),
    ]

    rows = ledger_rows(tasks, "CHF")

    assert rows["grand_total"] == "250.00 CHF"
    assert [r["issuer"] for r in rows["documents"]] == ["Acme"]
    assert rows["statements"][0]["match"] == "Verified: matched with invoice.pdf (Acme)"
    assert rows["statements"][1]["match"] == "Pending evidence"
    assert rows["statements"][2]["summary"] == {
        "total_income": "1000.00",
        "total_expense": "250.00",
        "net": "750.00",
        "closing_balance": "850.00",
    }


def test_empty_ledger() -> None:
    rows = ledger_rows([], "EUR")
    assert rows["documents"] == []
    assert rows["grand_total"] == "0.00 EUR"
