"""
Ingestion orchestrator: Probe → Adapter → Parser → Normalizer.

Every supported FileType maps to exactly one (adapter, parser) pair. A file
whose type has no pair fails on its own; batches keep going.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .adapters import (
    DelimitedTextAdapter,
    PdfAdapter,
    PlainTextAdapter,
    SpreadsheetAdapter,
)
from .errors import IngestionError, UnsupportedFileTypeError
from .normalizer import normalize
from .parsers import ColumnMapping, OfxParser, ParseStats, TabularParser, TextLineParser
from .probe import probe
from .types import FileType, NormalizedTransaction, ProbeResult, SourceFile

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]


@dataclass
class FileReport:
    """Outcome of ingesting one file."""

    source_name: str
    probe: ProbeResult | None = None
    columns: ColumnMapping | None = None
    rows_total: int = 0
    rows_excluded: int = 0
    control_rows: int = 0
    transactions: list[NormalizedTransaction] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "source_name": self.source_name,
            "probe": self.probe.to_dict() if self.probe else None,
            "columns": self.columns.to_dict() if self.columns else None,
            "rows_total": self.rows_total,
            "rows_excluded": self.rows_excluded,
            "control_rows": self.control_rows,
            "transactions": [tx.to_dict() for tx in self.transactions],
            "error": self.error,
        }


class Orchestrator:
    """Runs the ingestion pipeline for single files and batches."""

    def __init__(self, config: Config | None = None) -> None:
        """Initialize the dispatch table.

        Args:
            config: Application configuration; defaults apply when omitted.
        """
        ignore_keywords: list[str] = []
        sample_size = 100
        line_tolerance = 1.0
        if config is not None:
            ignore_keywords = config.reconciliation.ignore_keywords
            sample_size = config.ingestion.sample_size
            line_tolerance = config.ingestion.pdf_line_tolerance

        def tabular() -> TabularParser:
            return TabularParser(ignore_keywords, sample_size=sample_size)

        def lines() -> TextLineParser:
            return TextLineParser(tabular())

        # Parsers keep per-document stats, so each file gets a fresh one
        self.dispatch: dict[FileType, tuple[Any, Callable[[], Any]]] = {
            FileType.XLSX: (SpreadsheetAdapter(), tabular),
            FileType.CSV: (DelimitedTextAdapter(), tabular),
            FileType.OFX: (PlainTextAdapter(FileType.OFX), OfxParser),
            FileType.PDF: (PdfAdapter(line_tolerance), lines),
            FileType.TXT: (PlainTextAdapter(FileType.TXT), lines),
        }

    def process_file(
        self,
        file: SourceFile,
        cancel_check: Callable[[], bool] | None = None,
    ) -> list[NormalizedTransaction]:
        """Ingest one file.

        Raises:
            UnsupportedFileTypeError: No adapter/parser pair for the probed type.
            AdapterError: The file could not be read.
        """
        return self.process_with_report(file, cancel_check, raise_errors=True).transactions

    def process_with_report(
        self,
        file: SourceFile,
        cancel_check: Callable[[], bool] | None = None,
        raise_errors: bool = False,
    ) -> FileReport:
        """Ingest one file and report columns, exclusions and errors."""
        report = FileReport(source_name=file.name)
        try:
            report.probe = probe(file)
            logger.info(
                "Probed %s as %s (%s confidence)",
                file.name,
                report.probe.file_type.value,
                report.probe.confidence.value,
            )
            pair = self.dispatch.get(report.probe.file_type)
            if pair is None:
                raise UnsupportedFileTypeError(report.probe.file_type.value, file.name)

            adapter, make_parser = pair
            parser = make_parser()
            document = adapter.read_raw(file)
            drafts = parser.parse(document, cancel_check)
            report.transactions = normalize(drafts)

            stats: ParseStats = parser.last_stats
            report.rows_total = stats.rows_total
            report.rows_excluded = stats.rows_excluded
            report.control_rows = stats.control_rows
            report.columns = getattr(parser, "last_mapping", None)
        except IngestionError as e:
            if raise_errors:
                raise
            logger.warning("Failed to ingest %s: %s", file.name, e)
            report.error = str(e)
            return report

        logger.info(
            "Ingested %s: %d transactions, %d rows excluded",
            file.name,
            len(report.transactions),
            report.rows_excluded,
        )
        return report

    def process_batch(
        self,
        files: Iterable[SourceFile],
        cancel_check: Callable[[], bool] | None = None,
        progress: ProgressCallback | None = None,
    ) -> list[FileReport]:
        """Ingest several files; a failing file never aborts the batch."""
        files = list(files)
        reports = []
        for index, file in enumerate(files):
            if progress:
                progress("ingest", index, len(files))
            reports.append(self.process_with_report(file, cancel_check))
        if progress:
            progress("ingest", len(files), len(files))
        return reports
