"""
Line parser for PDF-extracted and plain-text statements.

Each line becomes synthetic cells: [date, description, amount, amount, ...].
The first date-shaped token is the date, every amount-shaped token becomes
its own cell in reading order, and the remaining words form the description.
The rows then go through the tabular parser, so the amount column (movement
versus running balance) is chosen by the same magnitude rule as for CSV.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence

from ..types import RawDocument, TransactionDraft
from .tabular import TabularParser

_DATE_TOKEN = re.compile(r"^\d{1,4}[/-]\d{1,2}(?:[/-]\d{2,4})?$")
_AMOUNT_TOKEN = re.compile(r"^\(?[-+]?(?:R\$)?[-+]?\d[\d.,]*[.,]\d{2}\)?[-+]?[DCdc]?$")
_CURRENCY_PREFIXES = {"R$", "$", "-", "+"}


def split_line(line: str) -> tuple[str, str, list[str]]:
    """Split one statement line into (date, description, amounts)."""
    date = ""
    words: list[str] = []
    amounts: list[str] = []
    pending = ""

    for token in line.split():
        if not date and not amounts and _DATE_TOKEN.match(token):
            date = token
            continue
        if token in _CURRENCY_PREFIXES:
            pending = f"{pending}{token}"
            continue
        if _AMOUNT_TOKEN.match(token):
            # A detached "R$" or sign belongs to the amount that follows it
            amounts.append(f"{pending} {token}".strip())
            pending = ""
            continue
        if pending:
            words.append(pending)
            pending = ""
        words.append(token)

    if pending:
        words.append(pending)
    return date, " ".join(words), amounts


def lines_to_rows(lines: Sequence[str]) -> list[list[str]]:
    """Build equal-width rows of synthetic cells from statement lines."""
    split = [split_line(line) for line in lines if line.strip()]
    width = max((len(amounts) for _, _, amounts in split), default=0)
    return [
        [date, description, *amounts, *([""] * (width - len(amounts)))]
        for date, description, amounts in split
    ]


class TextLineParser:
    """Parses PDF line lists and plain-text statements."""

    def __init__(self, tabular: TabularParser | None = None) -> None:
        self.tabular = tabular or TabularParser()

    @property
    def last_stats(self):
        return self.tabular.last_stats

    @property
    def last_mapping(self):
        return self.tabular.last_mapping

    def parse(
        self,
        document: RawDocument,
        cancel_check: Callable[[], bool] | None = None,
    ) -> list[TransactionDraft]:
        content = document.content
        lines = content.splitlines() if isinstance(content, str) else list(content)
        rows = lines_to_rows(lines)
        return self.tabular.parse_rows(rows, document.source_name, cancel_check)
