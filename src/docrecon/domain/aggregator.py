"""Statement totals and manual transaction edits."""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any

from .models import ZERO, Direction, DocumentResult, StatementResult, Task, TaskStatus, Transaction


def recompute_totals(statement: StatementResult) -> StatementResult:
    """Recompute income and expense totals from scratch."""
    statement.total_income = sum(
        (t.amount for t in statement.transactions if t.direction == Direction.INCOME),
        ZERO,
    )
    statement.total_expense = sum(
        (t.amount for t in statement.transactions if t.direction == Direction.EXPENSE),
        ZERO,
    )
    return statement


def add_transaction(statement: StatementResult, txn: Transaction) -> StatementResult:
    statement.transactions.append(txn)
    return recompute_totals(statement)


def edit_transaction(statement: StatementResult, index: int, **changes: Any) -> StatementResult:
    """Replace fields of the transaction at ``index``.

    Amount and direction edits are reflected in the totals immediately.
    """
    statement.transactions[index] = replace(statement.transactions[index], **changes)
    return recompute_totals(statement)


def delete_transaction(statement: StatementResult, index: int) -> StatementResult:
    del statement.transactions[index]
    return recompute_totals(statement)


def batch_expense(tasks: Iterable[Task]) -> Decimal:
    """Sum of supporting documents in reporting currency."""
    return sum(
        (
            t.result.amount_in_reporting_currency
            for t in tasks
            if t.status == TaskStatus.COMPLETED and isinstance(t.result, DocumentResult)
        ),
        ZERO,
    )


UNCATEGORIZED = "Uncategorized"


@dataclass
class Insights:
    """Income, expense and per-category totals across completed statements."""

    income: Decimal = ZERO
    expense: Decimal = ZERO
    by_category: dict[str, Decimal] = field(default_factory=dict)

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


def statement_insights(tasks: Iterable[Task]) -> Insights:
    """Aggregate every transaction of every completed statement.

    Categories are ordered by total, largest first, and count both
    directions.
    """
    insights = Insights()
    by_category: dict[str, Decimal] = {}
    for task in tasks:
        if task.status != TaskStatus.COMPLETED or not isinstance(task.result, StatementResult):
            continue
        for txn in task.result.transactions:
            if txn.direction == Direction.INCOME:
                insights.income += txn.amount
            else:
                insights.expense += txn.amount
            category = txn.category.strip() or UNCATEGORIZED
            by_category[category] = by_category.get(category, ZERO) + txn.amount
    insights.by_category = dict(sorted(by_category.items(), key=lambda item: item[1], reverse=True))
    return insights


def summary_lines(tasks: Iterable[Task], reporting_currency: str) -> list[str]:
    """One "issuer - amount currency" line per completed supporting document."""
    return [
        f"{t.result.issuer or 'Unknown'} - "
        f"{t.result.amount_in_reporting_currency.quantize(Decimal('0.01'))} {reporting_currency}"
        for t in tasks
        if t.status == TaskStatus.COMPLETED and isinstance(t.result, DocumentResult)
    ]
