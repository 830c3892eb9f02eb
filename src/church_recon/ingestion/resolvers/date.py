"""
Date column discovery, anchor-year inference and ISO normalisation.

Dates are read day-first (DD/MM/YYYY), the convention of the statements this
engine ingests. Year-less dates borrow the document's anchor year.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Sequence
from datetime import date

logger = logging.getLogger(__name__)

INVALID_DATE = ""


class DateResolver:
    """Locates the date column and converts raw date text to YYYY-MM-DD."""

    SAMPLE_SIZE = 100
    # The best column must score above this share of the sample
    MIN_SCORE_SHARE = 0.20
    ANCHOR_SCAN_CHARS = 8000

    DATE_PATTERNS = (
        re.compile(r"(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})"),
        re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})"),
        re.compile(r"(\d{1,2})[/-](\d{1,2})[/-](\d{2})\b"),
        re.compile(r"\b(\d{1,2})[/-](\d{1,2})\b"),
        re.compile(r"\b(\d{1,2})[/-](\d{1,2})[/-](\d{4})\b"),
    )

    _CONTEXT_YEAR = re.compile(
        r"(ANO|EXERCICIO|DATA|EMISSAO|PERIODO|EXTRATO).*?\b(20\d{2})\b", re.IGNORECASE
    )
    _FULL_DATE_YEAR = re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-](20\d{2})\b")
    _RAW_DATE = re.compile(r"(\d{1,4})[/-](\d{1,2})([/-](\d{1,4}))?")
    _OFX_DATE = re.compile(r"^\s*(\d{4})(\d{2})(\d{2})")

    @classmethod
    def is_date_like(cls, value: str) -> bool:
        """True when the text contains a recognisable date."""
        text = (value or "").strip()
        if len(text) < 3:
            return False
        return any(pattern.search(text) for pattern in cls.DATE_PATTERNS)

    @classmethod
    def identify_date_column(
        cls, rows: Sequence[Sequence[str]], sample_size: int | None = None
    ) -> int:
        """Return the index of the densest date column, or -1."""
        sample = rows[: sample_size or cls.SAMPLE_SIZE]
        scores: dict[int, float] = {}

        for row in sample:
            for index, cell in enumerate(row):
                text = str(cell or "").strip()
                if cls.is_date_like(text):
                    score = 1.0
                    if "/" in text or "-" in text:
                        score += 0.5
                    scores[index] = scores.get(index, 0.0) + score

        if not scores:
            return -1

        best_index = min(scores, key=lambda index: (-scores[index], index))
        if scores[best_index] > len(sample) * cls.MIN_SCORE_SHARE:
            return best_index
        logger.debug("Best date column %d scored too low (%.1f)", best_index, scores[best_index])
        return -1

    @classmethod
    def discover_anchor_year(
        cls, content: Sequence[Sequence[str]] | Sequence[str] | str, today: date | None = None
    ) -> int:
        """Infer the year used for dates that do not carry one.

        A year next to a heading word (DATA, PERIODO, EXTRATO...) wins; then
        the most frequent year among full dates (first seen wins a tie); then
        the current year.
        """
        text = cls._flatten(content)[: cls.ANCHOR_SCAN_CHARS]

        context = cls._CONTEXT_YEAR.search(text)
        if context:
            return int(context.group(2))

        years = cls._FULL_DATE_YEAR.findall(text)
        if years:
            counts = Counter(years)
            best = max(counts.values())
            for year in years:
                if counts[year] == best:
                    return int(year)

        return (today or date.today()).year

    @classmethod
    def resolve_to_iso(cls, raw: str, anchor_year: int) -> str:
        """Convert raw date text to YYYY-MM-DD, or INVALID_DATE.

        Never raises: unreadable input yields the sentinel.
        """
        if not raw:
            return INVALID_DATE
        match = cls._RAW_DATE.search(str(raw))
        if not match:
            return INVALID_DATE

        first, second, third = match.group(1), match.group(2), match.group(4)
        if len(first) == 4:
            year, month, day = first, second, third or "01"
        else:
            day, month = first, second
            if not third:
                year = str(anchor_year)
            elif len(third) == 2:
                year = "20" + third
            else:
                year = third

        return cls._to_iso(int(year), int(month), int(day))

    @classmethod
    def parse_ofx_date(cls, raw: str) -> str:
        """Convert an OFX YYYYMMDD[hhmmss[.xxx][TZ]] stamp to YYYY-MM-DD."""
        match = cls._OFX_DATE.match(raw or "")
        if not match:
            return INVALID_DATE
        year, month, day = (int(part) for part in match.groups())
        return cls._to_iso(year, month, day)

    @staticmethod
    def _to_iso(year: int, month: int, day: int) -> str:
        if not (1 <= month <= 12 and 1 <= day <= 31 and 1900 <= year <= 2100):
            return INVALID_DATE
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            return INVALID_DATE

    @staticmethod
    def _flatten(content: Sequence[Sequence[str]] | Sequence[str] | str) -> str:
        if isinstance(content, str):
            return content
        parts: list[str] = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            else:
                parts.append(" ".join(str(cell or "") for cell in item))
        return " | ".join(parts)
