"""Church reconciliation orchestration service.

A reconciliation run is one cancellable unit of work:
- Ingests every statement file (a failing file never aborts the run)
- Turns income rows into transactions and counts expenses
- Reads learned associations once, before matching
- Matches transactions against the church contributor lists
- Optionally asks an AI collaborator to suggest names for unidentified rows
- Records the run in the state store

Runs can be executed synchronously with run() or on a worker thread with
submit(), so callers such as a UI never block on large statements.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from ..ingestion import FileReport, OperationCancelled, Orchestrator, SourceFile
from ..matching import (
    Contributor,
    ContributorFile,
    MatchingEngine,
    MatchResult,
    ReconciliationCounts,
    ReconciliationStatus,
    Transaction,
)

if TYPE_CHECKING:
    from ..ai.suggester import NameSuggester
    from ..config import Config
    from ..state_store import StateStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]
CancelCheck = Callable[[], bool]


class ReconciliationState(str, Enum):
    """Possible states for a reconciliation run."""

    INGESTING = "INGESTING"
    MATCHING = "MATCHING"
    SUGGESTING = "SUGGESTING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


@dataclass
class ReconciliationResult:
    """Result of a reconciliation run."""

    state: ReconciliationState
    results: list[MatchResult] = field(default_factory=list)
    file_reports: list[FileReport] = field(default_factory=list)
    files_failed: int = 0
    rows_excluded: int = 0
    expenses: int = 0
    suggestions: int = 0
    counts: ReconciliationCounts | None = None
    duration_ms: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Return True if reconciliation completed without fatal errors."""
        return self.state == ReconciliationState.COMPLETED

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "state": self.state.value,
            "results": [r.to_dict() for r in self.results],
            "files": [
                {
                    "source_name": report.source_name,
                    "type": report.probe.file_type.value if report.probe else None,
                    "transactions": len(report.transactions),
                    "rows_excluded": report.rows_excluded,
                    "control_rows": report.control_rows,
                    "error": report.error,
                }
                for report in self.file_reports
            ],
            "files_failed": self.files_failed,
            "rows_excluded": self.rows_excluded,
            "expenses": self.expenses,
            "suggestions": self.suggestions,
            "counts": self.counts.to_dict() if self.counts else None,
            "duration_ms": self.duration_ms,
            "errors": self.errors,
        }


class ReconciliationService:
    """Orchestrates ingestion and matching for one set of uploads.

    Usage:
        service = ReconciliationService(config, store=StateStore(config.state_db_path))
        future = service.submit(statements, contributor_files, progress=print)
        result = future.result()
        service.shutdown()
    """

    def __init__(
        self,
        config: Config,
        store: StateStore | None = None,
        suggester: NameSuggester | None = None,
    ) -> None:
        """Initialize the reconciliation service.

        Args:
            config: Application configuration.
            store: Learned association store; without one nothing is learned.
            suggester: Optional AI collaborator for unidentified transactions.
        """
        self.config = config
        self.store = store
        self.suggester = suggester
        self.orchestrator = Orchestrator(config)
        self.engine = MatchingEngine(
            similarity_threshold=config.reconciliation.similarity_threshold,
            day_tolerance=config.reconciliation.day_tolerance,
            ignore_keywords=config.reconciliation.ignore_keywords,
        )
        self._executor: ThreadPoolExecutor | None = None

    def run(
        self,
        statement_files: Iterable[SourceFile],
        contributor_files: Sequence[ContributorFile],
        cancel_check: CancelCheck | None = None,
        progress: ProgressCallback | None = None,
    ) -> ReconciliationResult:
        """Run ingestion, matching and suggestions.

        Args:
            statement_files: Bank statements in any supported format.
            contributor_files: One expected-contribution list per church.
            cancel_check: Polled between rows and transactions.
            progress: Called as progress(stage, current, total).

        Returns:
            ReconciliationResult; cancellation and failures are reported in
            its state, never raised.
        """
        start_time = time.time()
        result = ReconciliationResult(state=ReconciliationState.INGESTING)

        try:
            logger.info("Reconciliation - Phase 1: Ingesting statements")
            result.file_reports = self.orchestrator.process_batch(
                statement_files, cancel_check, progress
            )
            transactions = self._collect_transactions(result)

            # Learned associations are read once, before matching starts
            learned = self.store.get_learned_associations() if self.store else []

            result.state = ReconciliationState.MATCHING
            logger.info(
                "Reconciliation - Phase 2: Matching %d transactions against %d churches",
                len(transactions),
                len(contributor_files),
            )
            result.results = self.engine.match(
                transactions, contributor_files, learned, cancel_check, progress
            )

            if self.suggester is not None:
                result.state = ReconciliationState.SUGGESTING
                logger.info("Reconciliation - Phase 3: Suggestions")
                self._suggest(result, contributor_files, cancel_check, progress)

            result.counts = ReconciliationCounts.from_results(result.results)
            result.state = ReconciliationState.COMPLETED
            logger.info(
                "Reconciliation completed: %d identified, %d unidentified, %d pending, %d divergent",
                result.counts.identified,
                result.counts.unidentified,
                result.counts.pending,
                result.counts.divergent,
            )

        except OperationCancelled as e:
            logger.info("Reconciliation cancelled: %s", e)
            result.state = ReconciliationState.CANCELLED
            result.errors.append(str(e))
        except Exception as e:
            logger.exception("Reconciliation failed: %s", e)
            result.state = ReconciliationState.FAILED
            result.errors.append(f"Fatal error: {e}")

        result.duration_ms = int((time.time() - start_time) * 1000)
        self._record(result)
        return result

    def submit(
        self,
        statement_files: Iterable[SourceFile],
        contributor_files: Sequence[ContributorFile],
        cancel_check: CancelCheck | None = None,
        progress: ProgressCallback | None = None,
    ) -> Future[ReconciliationResult]:
        """Run a reconciliation on the service's worker pool."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.max_workers, thread_name_prefix="reconcile"
            )
        return self._executor.submit(
            self.run, list(statement_files), contributor_files, cancel_check, progress
        )

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker pool."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def __enter__(self) -> ReconciliationService:
        return self

    def __exit__(self, *args) -> None:
        self.shutdown()

    def _collect_transactions(self, result: ReconciliationResult) -> list[Transaction]:
        """Income rows become transactions; expenses are only counted."""
        ignore_keywords = self.config.reconciliation.ignore_keywords
        transactions: list[Transaction] = []
        for report in result.file_reports:
            result.rows_excluded += report.rows_excluded
            if not report.success:
                result.files_failed += 1
                result.errors.append(f"{report.source_name}: {report.error}")
                continue
            for normalized in report.transactions:
                if normalized.amount > 0:
                    transactions.append(
                        Transaction.from_normalized(
                            normalized, f"tx-{len(transactions) + 1}", ignore_keywords
                        )
                    )
                elif normalized.amount < 0:
                    result.expenses += 1
        return transactions

    def _suggest(
        self,
        result: ReconciliationResult,
        contributor_files: Sequence[ContributorFile],
        cancel_check: CancelCheck | None,
        progress: ProgressCallback | None,
    ) -> None:
        """Attach AI suggestions to unidentified results that have none."""
        by_name: dict[str, Contributor] = {}
        for contributor_file in contributor_files:
            for contributor in contributor_file.contributors:
                by_name.setdefault(contributor.name, contributor)
        names = list(by_name)
        if not names:
            return

        pending = [
            r
            for r in result.results
            if r.status == ReconciliationStatus.UNIDENTIFIED and r.suggestion is None
        ]
        for index, match in enumerate(pending):
            if cancel_check and cancel_check():
                raise OperationCancelled(f"Suggestions cancelled at transaction {index}")
            if progress:
                progress("suggest", index, len(pending))
            name = self.suggester.suggest(match.transaction, names)
            if name and name in by_name:
                match.suggestion = by_name[name]
                result.suggestions += 1
                logger.debug("Suggested contributor for %s", match.transaction.id)
        if progress:
            progress("suggest", len(pending), len(pending))

    def _record(self, result: ReconciliationResult) -> None:
        if self.store is None:
            return
        try:
            self.store.record_run(result)
        except sqlite3.Error as e:
            logger.warning("Could not record reconciliation run: %s", e)
