"""
Statement ingestion.

Provides:
- probe: file type detection
- Adapters: spreadsheet, delimited text, PDF, plain text
- Column resolvers and row validation
- Parsers: tabular, OFX, text lines
- Orchestrator: single-file and batch ingestion with per-file reports
"""

from .errors import AdapterError, IngestionError, OperationCancelled, UnsupportedFileTypeError
from .normalizer import normalize
from .orchestrator import FileReport, Orchestrator
from .probe import probe
from .types import (
    FileType,
    NormalizedTransaction,
    ProbeConfidence,
    ProbeResult,
    RawDocument,
    SourceFile,
    TransactionDraft,
)

__all__ = [
    "AdapterError",
    "FileReport",
    "FileType",
    "IngestionError",
    "NormalizedTransaction",
    "OperationCancelled",
    "Orchestrator",
    "ProbeConfidence",
    "ProbeResult",
    "RawDocument",
    "SourceFile",
    "TransactionDraft",
    "UnsupportedFileTypeError",
    "normalize",
    "probe",
]
