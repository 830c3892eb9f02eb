"""
Plain text adapter for OFX and TXT statements: content is returned unmodified.
"""

from __future__ import annotations

from ..types import FileType, RawDocument, SourceFile
from .base import create_raw_document, decode_text


class PlainTextAdapter:
    """Decode a text file and hand it over as one string."""

    def __init__(self, file_type: FileType = FileType.TXT) -> None:
        self.file_type = file_type

    def read_raw(self, file: SourceFile) -> RawDocument[str]:
        text, encoding = decode_text(file.data)
        return create_raw_document(
            file.name, self.file_type, text, size=file.size, encoding=encoding
        )
