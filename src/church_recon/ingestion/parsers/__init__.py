"""
Statement parsers: RawDocument → TransactionDraft list.
"""

from .ofx import OfxParser
from .tabular import ColumnMapping, ParseStats, TabularParser
from .text_lines import TextLineParser

__all__ = [
    "ColumnMapping",
    "OfxParser",
    "ParseStats",
    "TabularParser",
    "TextLineParser",
]
