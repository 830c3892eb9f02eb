"""
Amount column discovery and locale-ambiguous amount cleaning.

Brazilian formatting is the default reading (comma decimal, dot thousands);
US formatting is recognised only when the separators make it unambiguous.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

# Longest numeric prefix, the way a lenient float parse reads it
_FLOAT_PREFIX = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
_TIME_PATTERN = re.compile(r"\d{1,2}:\d{2}")
_NUMERIC_START = re.compile(r"^(?:R\$|\$)?\s*[+\-(]?\s*(?:R\$\s*)?\d")
_CURRENCY_TOKEN = re.compile(r"R\$|\$|€|\b(?:BRL|USD|EUR)\b", re.IGNORECASE)

ZERO = "0.00"


def parse_float_prefix(text: str) -> float | None:
    """Parse the leading number of a string; None when there is none."""
    match = _FLOAT_PREFIX.match(text.strip())
    if not match:
        return None
    try:
        return float(match.group())
    except ValueError:
        return None


class AmountResolver:
    """Locates the transaction-amount column and normalises amount text."""

    SAMPLE_SIZE = 100
    # A column must parse as non-zero in more than this share of sampled rows
    MIN_NUMERIC_SHARE = 0.15

    @classmethod
    def identify_amount_column(
        cls,
        rows: Sequence[Sequence[str]],
        exclude: Iterable[int] = (),
        sample_size: int | None = None,
    ) -> int:
        """Return the index of the amount column, or -1.

        Running balances are larger than individual movements, so among the
        numeric columns the one with the lowest average magnitude wins.
        """
        excluded = set(exclude)
        sample = rows[: sample_size or cls.SAMPLE_SIZE]
        stats: dict[int, list[float]] = {}

        for row in sample:
            for index, cell in enumerate(row):
                if index in excluded:
                    continue
                value = cls.simple_parse(cell)
                if value is not None and value != 0:
                    entry = stats.setdefault(index, [0, 0.0])
                    entry[0] += 1
                    entry[1] += abs(value)

        minimum = len(sample) * cls.MIN_NUMERIC_SHARE
        candidates = sorted(
            (index, total / count)
            for index, (count, total) in stats.items()
            if count > minimum
        )
        if not candidates:
            logger.debug("No amount column found in %d sampled rows", len(sample))
            return -1

        # sorted() is stable, so equal averages keep the lowest index
        candidates.sort(key=lambda item: item[1])
        logger.debug("Amount column candidates (index, avg magnitude): %s", candidates)
        return candidates[0][0]

    @classmethod
    def simple_parse(cls, value: object) -> float | None:
        """Parse a cell for column scoring with the same separator rules as clean().

        Returns None for times and for cells that hold no non-zero amount.
        """
        if value is None:
            return None
        text = str(value).strip()
        if not text or ":" in text or not _NUMERIC_START.match(text):
            return None
        parsed = parse_float_prefix(cls.clean(text))
        if not parsed:
            return None
        return parsed

    @staticmethod
    def clean(raw: object) -> str:
        """Normalise an amount string to "±D.DD".

        The 3-digit-fraction rule ("1.000" is one thousand) is a deliberate
        tie-break: "1.234" is read as 1234, never as 1.234.
        """
        if raw is None:
            return ZERO
        text = str(raw).strip()
        if not text:
            return ZERO

        text = re.sub(r"[R$\s]", "", text)
        if _TIME_PATTERN.search(text):
            return ZERO

        negative = "-" in text or "(" in text or text.upper().endswith("D")
        text = re.sub(r"[^0-9.,]", "", text)

        if "," in text and "." in text:
            if text.rfind(",") > text.rfind("."):
                text = text.replace(".", "").replace(",", ".", 1)
            else:
                text = text.replace(",", "")
        elif "," in text:
            if text.count(",") > 1:
                text = text.replace(",", "")
            else:
                text = text.replace(",", ".")
        else:
            parts = text.split(".")
            if len(parts) > 2:
                text = text.replace(".", "")
            elif len(parts) == 2 and len(parts[1]) == 3:
                text = text.replace(".", "")

        value = parse_float_prefix(text)
        if value is None:
            return ZERO

        value = -abs(value) if negative else abs(value)
        formatted = f"{value:.2f}"
        return ZERO if formatted == "-0.00" else formatted

    @staticmethod
    def has_currency_token(text: str) -> bool:
        """True when the text carries a currency marker (R$, $, €, BRL, USD, EUR)."""
        return bool(_CURRENCY_TOKEN.search(text or ""))
