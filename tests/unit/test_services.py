"""Unit tests for the processing service."""

import asyncio
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from conftest import make_document, make_transaction
from docrecon.domain.errors import ExtractionFailure, InvalidExtractionError
from docrecon.domain.models import Direction, StatementResult, Task, TaskStatus
from docrecon.domain.queue import TaskQueue
from docrecon.domain.services import ProcessingService, reconcile_queue, validate_result


async def no_sleep(delay: float) -> None:
    pass


def make_service(extractor: MagicMock, queue: TaskQueue, retries: int = 3) -> ProcessingService:
    return ProcessingService(
        extractor=extractor, queue=queue, retries=retries, retry_delay=2.0, sleep=no_sleep
    )


class TestValidateResult:
    def test_zero_total_rejected(self) -> None:
        with pytest.raises(InvalidExtractionError, match="zero"):
            validate_result(make_document(total="0"))

    def test_statement_without_transactions_rejected(self) -> None:
        with pytest.raises(InvalidExtractionError, match="No transactions"):
            validate_result(StatementResult(currency="CHF", period="2024-03"))

    def test_non_finite_total_rejected(self) -> None:
        with pytest.raises(InvalidExtractionError, match="not a number"):
            validate_result(make_document(total="NaN"))

    def test_valid_document(self) -> None:
        validate_result(make_document(total="0.01"))


class TestProcess:
    """Tests for ProcessingService.process."""

    def test_passes_task_content_to_extractor(self, mock_extractor: MagicMock, queue: TaskQueue) -> None:
        task = Task(source_name="receipt.png", source_bytes=b"img")
        asyncio.run(make_service(mock_extractor, queue).process(task))
        mock_extractor.extract.assert_awaited_once_with(b"img", "image/png", "CHF")

    def test_retries_transient_failures(self, mock_extractor: MagicMock, queue: TaskQueue) -> None:
        doc = make_document()
        mock_extractor.extract.side_effect = [ExtractionFailure("500"), ExtractionFailure("xhr"), doc]

        result = asyncio.run(make_service(mock_extractor, queue).process(Task("a.pdf", b"1")))

        assert result is doc
        assert mock_extractor.extract.await_count == 3

    def test_zero_total_not_retried(self, mock_extractor: MagicMock, queue: TaskQueue) -> None:
        mock_extractor.extract.return_value = make_document(total="0.00")

        with pytest.raises(InvalidExtractionError):
            asyncio.run(make_service(mock_extractor, queue).process(Task("a.pdf", b"1")))

        assert mock_extractor.extract.await_count == 1

    def test_statement_totals_and_reconciliation(self, mock_extractor: MagicMock, queue: TaskQueue) -> None:
        (invoice,) = queue.enqueue([Task("invoice.pdf", b"inv")])
        queue.apply_update(invoice.id, TaskStatus.PROCESSING)
        queue.apply_update(
            invoice.id, TaskStatus.COMPLETED, result=make_document(issuer="Acme", reference="INV-4521")
        )
        statement = StatementResult(
            currency="CHF",
            period="2024-03",
            transactions=[
                make_transaction("250.00", reference="4521"),
                make_transaction("1000.00", Direction.INCOME, "Salary"),
            ],
        )
        mock_extractor.extract.return_value = statement

        result = asyncio.run(make_service(mock_extractor, queue).process(Task("bank.pdf", b"stmt")))

        assert result.total_income == Decimal("1000.00")
        assert result.total_expense == Decimal("250.00")
        assert result.transactions[0].match_note == "Verified: matched with invoice.pdf (Acme)"
        assert result.transactions[1].match_note is None


class TestRun:
    def test_batch_with_late_evidence(self, mock_extractor: MagicMock, queue: TaskQueue) -> None:
        statement = StatementResult(
            currency="CHF", period="2024-03", transactions=[make_transaction("250.00", reference="4521")]
        )
        results = {"bank.pdf": statement, "invoice.pdf": make_document(reference="4521")}

        async def extract(content: bytes, mime_type: str, currency: str):
            return results[content.decode()]

        mock_extractor.extract.side_effect = extract
        queue.enqueue([Task("bank.pdf", b"bank.pdf"), Task("invoice.pdf", b"invoice.pdf")])

        report = asyncio.run(make_service(mock_extractor, queue).run(concurrency=1))

        assert report.completed == 2
        assert statement.transactions[0].is_verified

    def test_failed_document_marked_error(self, mock_extractor: MagicMock, queue: TaskQueue) -> None:
        mock_extractor.extract.side_effect = ExtractionFailure("no data found")
        (task,) = queue.enqueue([Task("a.pdf", b"1")])

        report = asyncio.run(make_service(mock_extractor, queue, retries=1).run(concurrency=3))

        assert report.failed == 1
        assert task.status == TaskStatus.ERROR
        assert task.error_message == "no data found"
        assert mock_extractor.extract.await_count == 2


class TestReconcileQueue:
    def test_links_statements_to_all_evidence(self, queue: TaskQueue) -> None:
        stmt_task, doc_task = queue.enqueue([Task("bank.pdf", b"1"), Task("r.pdf", b"22")])
        statement = StatementResult(
            currency="CHF", period="2024-03", transactions=[make_transaction("12.00")]
        )
        for task, result in ((stmt_task, statement), (doc_task, make_document(total="12.00"))):
            queue.apply_update(task.id, TaskStatus.PROCESSING)
            queue.apply_update(task.id, TaskStatus.COMPLETED, result=result)

        matches = reconcile_queue(queue)

        assert len(matches) == 1
        assert reconcile_queue(queue) == []


class TestSummarize:
    """Tests for ProcessingService.summarize."""

    def test_no_documents_skips_extractor(self, mock_extractor: MagicMock, queue: TaskQueue) -> None:
        assert asyncio.run(make_service(mock_extractor, queue).summarize()) == "No data."
        mock_extractor.summarize.assert_not_awaited()

    def test_retries_and_passes_lines(self, mock_extractor: MagicMock, queue: TaskQueue) -> None:
        (task,) = queue.enqueue([Task("r.pdf", b"1")])
        queue.apply_update(task.id, TaskStatus.PROCESSING)
        queue.apply_update(task.id, TaskStatus.COMPLETED, result=make_document(total="40"))
        mock_extractor.summarize.side_effect = [ExtractionFailure("503"), "Looks fine."]

        text = asyncio.run(make_service(mock_extractor, queue).summarize())

        assert text == "Looks fine."
        assert mock_extractor.summarize.await_count == 2
        mock_extractor.summarize.assert_awaited_with(["Acme - 40.00 CHF"], "CHF")
