"""
PDF adapter (pdfplumber).

Statements carry no table structure in the PDF itself, so rows are rebuilt
from word coordinates: words whose vertical position rounds to the same
bucket form one line, read left to right.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterable, Mapping

import pdfplumber

from ..errors import AdapterError
from ..types import FileType, RawDocument, SourceFile
from .base import create_raw_document

logger = logging.getLogger(__name__)


def group_words_into_lines(words: Iterable[Mapping], tolerance: float = 1.0) -> list[str]:
    """Cluster positioned words into text lines.

    Args:
        words: Dicts with "text", "x0" and "top" (pdfplumber word shape).
        tolerance: Vertical rounding granularity in points. Larger values
            merge words whose baselines drift within a printed line.

    Returns:
        Lines top to bottom, words joined with single spaces, blanks skipped.
    """
    if tolerance <= 0:
        raise ValueError("tolerance must be > 0")

    buckets: dict[int, list[Mapping]] = {}
    for word in words:
        key = round(float(word["top"]) / tolerance)
        buckets.setdefault(key, []).append(word)

    lines = []
    for key in sorted(buckets):
        ordered = sorted(buckets[key], key=lambda word: float(word["x0"]))
        line = " ".join(str(word["text"]).strip() for word in ordered).strip()
        if line:
            lines.append(" ".join(line.split()))
    return lines


class PdfAdapter:
    """Read a PDF statement as a list of reconstructed text lines."""

    def __init__(self, line_tolerance: float = 1.0) -> None:
        self.line_tolerance = line_tolerance

    def read_raw(self, file: SourceFile) -> RawDocument[list[str]]:
        lines: list[str] = []
        try:
            with pdfplumber.open(io.BytesIO(file.data)) as pdf:
                page_count = len(pdf.pages)
                for page in pdf.pages:
                    words = page.extract_words()
                    lines.extend(group_words_into_lines(words, self.line_tolerance))
        except Exception as e:
            raise AdapterError(f"Cannot read PDF: {e}", file.name) from e

        logger.debug("Rebuilt %d lines from %d pages of %s", len(lines), page_count, file.name)
        return create_raw_document(
            file.name, FileType.PDF, lines, size=file.size, pages=page_count
        )
