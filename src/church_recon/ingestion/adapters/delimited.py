"""
Delimited text adapter (CSV and friends).

Uses csv.reader with a delimiter detected from the first line. Handles BOM
via utf-8-sig and falls back to Latin-1 for legacy bank exports. Cell text is
kept verbatim.
"""

from __future__ import annotations

import csv
import io
import logging

from ..types import FileType, RawDocument, SourceFile
from .base import create_raw_document, decode_text

logger = logging.getLogger(__name__)

CANDIDATE_DELIMITERS = (";", ",", "\t", "|")
DEFAULT_DELIMITER = ";"


def detect_delimiter(text: str) -> str:
    """Most frequent candidate delimiter in the first line (";" when none)."""
    first_line = text.split("\n", 1)[0]
    counts = {delimiter: first_line.count(delimiter) for delimiter in CANDIDATE_DELIMITERS}
    best = max(CANDIDATE_DELIMITERS, key=lambda delimiter: counts[delimiter])
    return best if counts[best] > 0 else DEFAULT_DELIMITER


class DelimitedTextAdapter:
    """Read a delimited text file as rows of cell strings."""

    def read_raw(self, file: SourceFile) -> RawDocument[list[list[str]]]:
        text, encoding = decode_text(file.data)
        delimiter = detect_delimiter(text)

        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
        rows = [[cell.strip() for cell in row] for row in reader if any(c.strip() for c in row)]

        logger.debug(
            "Read %d rows from %s (delimiter %r, %s)", len(rows), file.name, delimiter, encoding
        )
        return create_raw_document(
            file.name,
            FileType.CSV,
            rows,
            size=file.size,
            encoding=encoding,
            delimiter=delimiter,
        )
