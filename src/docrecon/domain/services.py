"""Domain services - orchestrate business logic."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ..ports.extraction import ExtractionPort
from .aggregator import recompute_totals, summary_lines
from .errors import InvalidExtractionError
from .matcher import Match, reconcile_statement
from .models import DocumentResult, ExtractionResult, StatementResult, Task
from .queue import TaskQueue
from .retry import DEFAULT_DELAY, DEFAULT_RETRIES, with_backoff
from .scheduler import BatchReport, BatchScheduler

logger = logging.getLogger(__name__)

NO_DATA = "No data."


def validate_result(result: ExtractionResult) -> None:
    """Reject values that indicate a failed scan rather than an empty document."""
    if isinstance(result, StatementResult):
        if not result.transactions:
            raise InvalidExtractionError("No transactions found in statement")
    elif isinstance(result, DocumentResult):
        if not result.total_amount.is_finite():
            raise InvalidExtractionError(f"Extracted total amount is not a number: {result.total_amount}")
        if result.total_amount == 0:
            raise InvalidExtractionError("Extracted total amount is zero")
    else:
        raise InvalidExtractionError(f"Unexpected extraction result: {type(result).__name__}")


def reconcile_queue(queue: TaskQueue) -> list[Match]:
    """Re-run the matcher over every completed statement in the queue.

    Catches evidence that finished after a statement in the same batch.
    """
    evidence = queue.evidence()
    matches: list[Match] = []
    for task in queue.statements():
        matches.extend(reconcile_statement(task.result, evidence))
    return matches


class ProcessingService:
    """Extracts, validates and reconciles the documents of a task queue."""

    def __init__(
        self,
        extractor: ExtractionPort,
        queue: TaskQueue,
        reporting_currency: str = "CHF",
        retries: int = DEFAULT_RETRIES,
        retry_delay: float = DEFAULT_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.extractor = extractor
        self.queue = queue
        self.reporting_currency = reporting_currency
        self.retries = retries
        self.retry_delay = retry_delay
        self.sleep = sleep

    async def process(self, task: Task) -> ExtractionResult:
        """Process one task.

        Pipeline:
            1. Extraction (with backoff)
            2. Validation (never retried)
            3. Totals + reconciliation (statements only)
        """
        result = await with_backoff(
            lambda: self.extractor.extract(
                task.source_bytes, task.mime_type, self.reporting_currency
            ),
            retries=self.retries,
            delay=self.retry_delay,
            sleep=self.sleep,
        )

        validate_result(result)

        if isinstance(result, StatementResult):
            recompute_totals(result)
            reconcile_statement(result, self.queue.evidence())
            logger.info(
                f"{task.source_name}: {len(result.transactions)} transactions, "
                f"income {result.total_income}, expense {result.total_expense}"
            )
        return result

    async def run(
        self,
        concurrency: int,
        cancel: asyncio.Event | None = None,
    ) -> BatchReport:
        """Process every eligible task, then reconcile statements once more."""
        scheduler = BatchScheduler(limit=concurrency)
        report = await scheduler.run(self.queue, self.process, cancel)
        matches = reconcile_queue(self.queue)
        if matches:
            logger.info(f"Post-batch reconciliation linked {len(matches)} transactions")
        return report

    async def summarize(self) -> str:
        """Ask the extractor for an executive summary of completed documents."""
        lines = summary_lines(self.queue, self.reporting_currency)
        if not lines:
            return NO_DATA
        logger.info(f"Summarizing {len(lines)} documents")
        return await with_backoff(
            lambda: self.extractor.summarize(lines, self.reporting_currency),
            retries=self.retries,
            delay=self.retry_delay,
            sleep=self.sleep,
        )
