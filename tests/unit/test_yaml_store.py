"""Unit tests for the YAML task repository."""

from decimal import Decimal
from pathlib import Path

import pytest

from conftest import make_document, make_transaction
from docrecon.adapters.persistence import YamlTaskRepository
from docrecon.domain.errors import TaskNotFoundError
from docrecon.domain.models import Direction, StatementResult, Task, TaskStatus


@pytest.fixture
def repository(tmp_path: Path) -> YamlTaskRepository:
    return YamlTaskRepository(tmp_path)


class TestYamlTaskRepository:
    """Tests for YamlTaskRepository."""

    def test_round_trip_statement(self, repository: YamlTaskRepository) -> None:
        txn = make_transaction("250.00", reference="4521", category="Office")
        txn.match_note = "Verified: matched with invoice.pdf (Acme)"
        statement = StatementResult(
            currency="CHF",
            period="2024-03",
            transactions=[txn, make_transaction("1000", Direction.INCOME, "Salary")],
            opening_balance=Decimal("10.50"),
            total_income=Decimal("1000"),
            total_expense=Decimal("250.00"),
        )
        task = Task(
            source_name="bank.pdf",
            source_bytes=b"%PDF-1.4",
            owner_id="client-a",
            status=TaskStatus.COMPLETED,
            result=statement,
        )

        repository.save(task)
        (loaded,) = repository.list_by_owner("client-a")

        assert loaded == task

    def test_round_trip_document_and_error(self, repository: YamlTaskRepository) -> None:
        done = Task("invoice.pdf", b"1", status=TaskStatus.COMPLETED, result=make_document(reference="INV-1"))
        failed = Task("blurry.jpg", b"22", status=TaskStatus.ERROR, error_message="Extracted total amount is zero")
        repository.save(done)
        repository.save(failed)

        loaded = {t.id: t for t in repository.list_by_owner("default")}

        assert loaded[done.id] == done
        assert loaded[failed.id] == failed
        assert loaded[failed.id].mime_type == "image/jpeg"

    def test_list_by_owner_isolates_owners(self, repository: YamlTaskRepository) -> None:
        repository.save(Task("a.pdf", b"1", owner_id="one"))
        repository.save(Task("b.pdf", b"1", owner_id="two"))
        assert [t.source_name for t in repository.list_by_owner("one")] == ["a.pdf"]
        assert repository.list_by_owner("nobody") == []

    def test_update(self, repository: YamlTaskRepository) -> None:
        task = Task("a.pdf", b"1")
        repository.save(task)

        updated = repository.update(task.id, status=TaskStatus.ERROR, error_message="boom")

        assert updated.status == TaskStatus.ERROR
        assert repository.list_by_owner("default")[0].error_message == "boom"

    def test_update_rejects_identity_fields(self, repository: YamlTaskRepository) -> None:
        task = Task("a.pdf", b"1")
        repository.save(task)
        with pytest.raises(ValueError):
            repository.update(task.id, owner_id="other")

    def test_delete(self, repository: YamlTaskRepository, tmp_path: Path) -> None:
        task = Task("a.pdf", b"1")
        repository.save(task)
        repository.delete(task.id)
        assert repository.list_by_owner("default") == []
        assert not any(tmp_path.rglob("*.bin"))

    def test_missing_task(self, repository: YamlTaskRepository) -> None:
        with pytest.raises(TaskNotFoundError):
            repository.delete("missing")

    def test_corrupt_file_skipped(self, repository: YamlTaskRepository, tmp_path: Path) -> None:
        repository.save(Task("a.pdf", b"1"))
        (tmp_path / "default" / "broken.yaml").write_text("id: [unclosed")
        assert len(repository.list_by_owner("default")) == 1
