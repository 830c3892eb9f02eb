"""
Ingestion data model.

RawDocument → TransactionDraft → NormalizedTransaction.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class FileType(str, Enum):
    """Detected source file type."""

    PDF = "PDF"
    XLSX = "XLSX"
    CSV = "CSV"
    OFX = "OFX"
    TXT = "TXT"
    UNKNOWN = "UNKNOWN"


class ProbeConfidence(str, Enum):
    """How strongly the probe believes its own answer."""

    HIGH = "HIGH"
    LOW = "LOW"


@dataclass
class SourceFile:
    """An uploaded file: name, bytes and declared MIME type."""

    name: str
    data: bytes
    mime_type: str = ""

    @classmethod
    def from_path(cls, path: Path | str) -> SourceFile:
        """Read a file from disk, guessing its MIME type from the name."""
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, data=path.read_bytes(), mime_type=mime_type or "")

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ProbeResult:
    """Result of probing a file."""

    file_type: FileType
    mime_type: str
    extension: str
    confidence: ProbeConfidence

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": self.file_type.value,
            "mime_type": self.mime_type,
            "extension": self.extension,
            "confidence": self.confidence.value,
        }


@dataclass(frozen=True)
class RawDocument(Generic[T]):
    """Unaltered content of a source file as read by an adapter.

    content is rows of cell strings for spreadsheets and CSV, a list of
    lines for PDF, and the raw string for OFX and plain text.
    """

    source_name: str
    file_type: FileType
    content: T
    timestamp: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class TransactionDraft:
    """A surviving row, still string-typed and minimally cleaned."""

    raw_date: str
    raw_description: str
    raw_amount: str
    source_row_index: int
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NormalizedTransaction:
    """Terminal ingestion output: ISO date, cleaned name, signed amount.

    Positive amounts are income, negative amounts are expenses.
    """

    date: str
    name: str
    amount: float

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"date": self.date, "name": self.name, "amount": self.amount}


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string with a Z suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
