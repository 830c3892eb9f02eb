"""
Adapter protocol and the shared RawDocument factory.

Contract:
    Adapter.read_raw() reads one file into a RawDocument without reformatting
    dates or numbers. Adapters share code through create_raw_document(), not
    through a base class.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ..types import FileType, RawDocument, SourceFile, utc_timestamp


@runtime_checkable
class Adapter(Protocol):
    """Reads a source file into its raw representation."""

    def read_raw(self, file: SourceFile) -> RawDocument:
        """Read the whole file. Side-effect free."""
        ...


def create_raw_document(
    source_name: str,
    file_type: FileType,
    content: Any,
    *,
    size: int,
    encoding: str = "UTF-8",
    **extra: Any,
) -> RawDocument:
    """Build a RawDocument stamped with the current UTC time."""
    metadata = {"size": size, "encoding": encoding}
    metadata.update(extra)
    return RawDocument(
        source_name=source_name,
        file_type=file_type,
        content=content,
        timestamp=utc_timestamp(),
        metadata=metadata,
    )


def decode_text(data: bytes) -> tuple[str, str]:
    """Decode bytes as UTF-8 (BOM tolerant), falling back to Latin-1.

    Returns:
        (text, encoding name)
    """
    try:
        return data.decode("utf-8-sig"), "UTF-8"
    except UnicodeDecodeError:
        return data.decode("latin-1"), "ISO-8859-1"
