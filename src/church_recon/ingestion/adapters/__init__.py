"""
File adapters.

Each adapter reads one format into a RawDocument without reformatting.
"""

from .base import Adapter, create_raw_document
from .delimited import DelimitedTextAdapter, detect_delimiter
from .pdf import PdfAdapter, group_words_into_lines
from .spreadsheet import SpreadsheetAdapter, display_text
from .text import PlainTextAdapter

__all__ = [
    "Adapter",
    "create_raw_document",
    "DelimitedTextAdapter",
    "detect_delimiter",
    "PdfAdapter",
    "group_words_into_lines",
    "SpreadsheetAdapter",
    "display_text",
    "PlainTextAdapter",
]
