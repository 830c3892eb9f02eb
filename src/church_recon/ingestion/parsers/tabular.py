"""
Tabular parser: rows of cells → TransactionDraft list.

Columns are discovered once per document, in a fixed order:
date first, then amount (excluding the date column), then name (excluding
both). Excluding the date column first keeps day/month numbers out of the
amount candidates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date

from ..errors import OperationCancelled
from ..resolvers import AmountResolver, DateResolver, NameResolver, RowValidator
from ..types import RawDocument, TransactionDraft

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnMapping:
    """Discovered column indices (-1 when a column was not found)."""

    date: int
    amount: int
    name: int

    @property
    def is_usable(self) -> bool:
        """Date and amount are mandatory; a missing name rejects every row."""
        return self.date >= 0 and self.amount >= 0

    def to_dict(self) -> dict:
        return {"date": self.date, "amount": self.amount, "name": self.name}


@dataclass
class ParseStats:
    """Row accounting for one parsed document."""

    rows_total: int = 0
    rows_accepted: int = 0
    rows_excluded: int = 0
    control_rows: int = 0


class TabularParser:
    """Turns rows of cell strings into validated transaction drafts."""

    def __init__(
        self,
        ignore_keywords: Sequence[str] = (),
        sample_size: int = DateResolver.SAMPLE_SIZE,
        today: date | None = None,
    ) -> None:
        """Initialize the parser.

        Args:
            ignore_keywords: Extra words stripped from descriptions.
            sample_size: Rows examined by the date and amount resolvers.
            today: Reference date for the anchor-year fallback.
        """
        self.ignore_keywords = list(ignore_keywords)
        self.sample_size = sample_size
        self.today = today
        self.last_stats = ParseStats()
        self.last_mapping: ColumnMapping | None = None

    def discover_columns(self, rows: Sequence[Sequence[str]]) -> ColumnMapping:
        """Locate the date, amount and name columns."""
        date_idx = DateResolver.identify_date_column(rows, self.sample_size)
        amount_idx = AmountResolver.identify_amount_column(
            rows, exclude=[date_idx], sample_size=self.sample_size
        )
        name_idx = NameResolver.identify_name_column(rows, exclude=[date_idx, amount_idx])
        return ColumnMapping(date=date_idx, amount=amount_idx, name=name_idx)

    def parse(
        self,
        document: RawDocument,
        cancel_check: Callable[[], bool] | None = None,
    ) -> list[TransactionDraft]:
        """Parse a spreadsheet or CSV document."""
        return self.parse_rows(document.content, document.source_name, cancel_check)

    def parse_rows(
        self,
        rows: Sequence[Sequence[str]],
        source_name: str = "",
        cancel_check: Callable[[], bool] | None = None,
    ) -> list[TransactionDraft]:
        """Parse rows of cells; shared by every row-shaped source."""
        self.last_stats = ParseStats(rows_total=len(rows))
        self.last_mapping = None
        if not rows:
            return []

        anchor_year = DateResolver.discover_anchor_year(rows, today=self.today)
        mapping = self.discover_columns(rows)
        self.last_mapping = mapping
        logger.info(
            "Columns for %s: date=%d amount=%d name=%d (anchor year %d)",
            source_name or "<rows>",
            mapping.date,
            mapping.amount,
            mapping.name,
            anchor_year,
        )

        if not mapping.is_usable:
            logger.warning("No usable date/amount columns in %s", source_name or "<rows>")
            self.last_stats.rows_excluded = len(rows)
            return []

        drafts: list[TransactionDraft] = []
        for index, row in enumerate(rows):
            if cancel_check and cancel_check():
                raise OperationCancelled(f"Parsing {source_name} cancelled at row {index}")

            raw_date = _cell(row, mapping.date)
            raw_name = _cell(row, mapping.name)
            raw_amount = _cell(row, mapping.amount)

            iso_date = DateResolver.resolve_to_iso(raw_date, anchor_year)
            amount = AmountResolver.clean(raw_amount)

            if not RowValidator.is_valid(iso_date, raw_name, amount, row):
                logger.debug("Excluded row %d of %s: %r", index, source_name, list(row))
                self.last_stats.rows_excluded += 1
                continue

            is_control = RowValidator.is_control_row(raw_name)
            if is_control:
                self.last_stats.control_rows += 1

            drafts.append(
                TransactionDraft(
                    raw_date=iso_date,
                    raw_description=NameResolver.clean(raw_name, self.ignore_keywords),
                    raw_amount=amount,
                    source_row_index=index,
                    metadata={
                        "original_name": raw_name,
                        "original_date": raw_date,
                        "original_amount": raw_amount,
                        "is_expense": float(amount) < 0,
                        "parsing_confidence": "HIGH",
                        "is_control_row": is_control,
                    },
                )
            )

        self.last_stats.rows_accepted = len(drafts)
        return drafts


def _cell(row: Sequence[str], index: int) -> str:
    if 0 <= index < len(row):
        return str(row[index] or "")
    return ""
