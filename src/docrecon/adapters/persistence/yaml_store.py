"""Task repository storing YAML documents on the local filesystem."""

import logging
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from ...domain.errors import TaskNotFoundError
from ...domain.models import (
    Direction,
    DocumentResult,
    DocumentType,
    StatementResult,
    Task,
    TaskStatus,
    Transaction,
)
from ...ports.persistence import TaskRepository

logger = logging.getLogger(__name__)

RESULT_DOCUMENT = "document"
RESULT_STATEMENT = "statement"


def _dec(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def result_to_dict(result: DocumentResult | StatementResult) -> dict[str, Any]:
    if isinstance(result, StatementResult):
        return {
            "kind": RESULT_STATEMENT,
            "currency": result.currency,
            "period": result.period,
            "account_holder": result.account_holder,
            "opening_balance": _dec(result.opening_balance),
            "total_income": _dec(result.total_income),
            "total_expense": _dec(result.total_expense),
            "transactions": [
                {
                    "date": _iso(t.date),
                    "description": t.description,
                    "amount": _dec(t.amount),
                    "direction": t.direction.value,
                    "category": t.category,
                    "reference_code": t.reference_code,
                    "match_note": t.match_note,
                }
                for t in result.transactions
            ],
        }
    return {
        "kind": RESULT_DOCUMENT,
        "issuer": result.issuer,
        "document_date": _iso(result.document_date),
        "total_amount": _dec(result.total_amount),
        "currency": result.currency,
        "exchange_rate": _dec(result.exchange_rate),
        "amount_in_reporting_currency": _dec(result.amount_in_reporting_currency),
        "category": result.category,
        "reference_code": result.reference_code,
        "document_type": result.document_type.value,
        "document_number": result.document_number,
        "vat_amount": _dec(result.vat_amount),
        "notes": result.notes,
    }


def result_from_dict(data: dict[str, Any]) -> DocumentResult | StatementResult:
    if data["kind"] == RESULT_STATEMENT:
        opening = data.get("opening_balance")
        return StatementResult(
            currency=data["currency"],
            period=data["period"],
            account_holder=data.get("account_holder", ""),
            opening_balance=None if opening is None else Decimal(opening),
            total_income=Decimal(data["total_income"]),
            total_expense=Decimal(data["total_expense"]),
            transactions=[
                Transaction(
                    date=_date(t.get("date")),
                    description=t["description"],
                    amount=Decimal(t["amount"]),
                    direction=Direction(t["direction"]),
                    category=t.get("category", ""),
                    reference_code=t.get("reference_code", ""),
                    match_note=t.get("match_note"),
                )
                for t in data.get("transactions", [])
            ],
        )
    return DocumentResult(
        issuer=data["issuer"],
        document_date=_date(data.get("document_date")),
        total_amount=Decimal(data["total_amount"]),
        currency=data["currency"],
        exchange_rate=Decimal(data["exchange_rate"]),
        amount_in_reporting_currency=Decimal(data["amount_in_reporting_currency"]),
        category=data.get("category", ""),
        reference_code=data.get("reference_code", ""),
        document_type=DocumentType(data.get("document_type", DocumentType.UNKNOWN.value)),
        document_number=data.get("document_number", ""),
        vat_amount=Decimal(data.get("vat_amount", "0")),
        notes=data.get("notes", ""),
    )


class YamlTaskRepository(TaskRepository):
    """Stores tasks as ``<base>/<owner>/<id>.yaml`` with the source alongside."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path

    def _meta_path(self, owner_id: str, task_id: str) -> Path:
        return self.base_path / owner_id / f"{task_id}.yaml"

    def _find(self, task_id: str) -> Path:
        for path in self.base_path.glob(f"*/{task_id}.yaml"):
            return path
        raise TaskNotFoundError(task_id)

    def save(self, task: Task) -> None:
        meta_path = self._meta_path(task.owner_id, task.id)
        meta_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "id": task.id,
            "owner_id": task.owner_id,
            "source_name": task.source_name,
            "mime_type": task.mime_type,
            "status": task.status.value,
            "error_message": task.error_message,
            "created_at": task.created_at.isoformat(),
            "result": result_to_dict(task.result) if task.result else None,
        }

        meta_path.with_suffix(".bin").write_bytes(task.source_bytes)
        meta_path.write_text(yaml.safe_dump(data, default_flow_style=False, allow_unicode=True))
        logger.debug(f"Saved task: {meta_path.relative_to(self.base_path)}")

    def _load(self, meta_path: Path) -> Task:
        data = yaml.safe_load(meta_path.read_text())
        return Task(
            id=data["id"],
            owner_id=data["owner_id"],
            source_name=data["source_name"],
            source_bytes=meta_path.with_suffix(".bin").read_bytes(),
            mime_type=data["mime_type"],
            status=TaskStatus(data["status"]),
            error_message=data.get("error_message"),
            created_at=datetime.fromisoformat(data["created_at"]),
            result=result_from_dict(data["result"]) if data.get("result") else None,
        )

    def update(self, task_id: str, **fields: Any) -> Task:
        task = self._load(self._find(task_id))
        for name, value in fields.items():
            if name in ("id", "owner_id") or not hasattr(task, name):
                raise ValueError(f"Cannot update field: {name}")
            setattr(task, name, value)
        self.save(task)
        return task

    def delete(self, task_id: str) -> None:
        meta_path = self._find(task_id)
        meta_path.with_suffix(".bin").unlink(missing_ok=True)
        meta_path.unlink()
        logger.info(f"Deleted task: {task_id}")

    def list_by_owner(self, owner_id: str) -> list[Task]:
        owner_dir = self.base_path / owner_id
        if not owner_dir.exists():
            return []
        tasks = []
        for meta_path in owner_dir.glob("*.yaml"):
            try:
                tasks.append(self._load(meta_path))
            except (yaml.YAMLError, KeyError, ValueError, OSError) as e:
                logger.warning(f"Failed to load task {meta_path.name}: {e}")
        return sorted(tasks, key=lambda t: t.created_at)
