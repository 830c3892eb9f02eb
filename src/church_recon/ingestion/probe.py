"""
File type probe.

Looks only at the first bytes of a file plus its name and declared MIME type.
CSV detection from content alone is weak, so it is reported as LOW.
"""

from __future__ import annotations

from .types import FileType, ProbeConfidence, ProbeResult, SourceFile

SIGNATURE_BYTES = 10
TEXT_SAMPLE_BYTES = 100

PDF_SIGNATURE = "25504446"
ZIP_SIGNATURE = "504b0304"

# Extension-only fallback, used after every content check failed
_EXTENSION_TYPES = {
    "PDF": FileType.PDF,
    "XLSX": FileType.XLSX,
    "XLS": FileType.XLSX,
    "OFX": FileType.OFX,
    "CSV": FileType.CSV,
    "TXT": FileType.TXT,
}


def file_extension(name: str) -> str:
    """Upper-cased text after the last dot, or "" when the name has none."""
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].upper()


def probe(file: SourceFile) -> ProbeResult:
    """Detect the type of a file from signature, extension and content."""
    extension = file_extension(file.name)
    mime_type = (file.mime_type or "").lower()
    hex_signature = file.data[:SIGNATURE_BYTES].hex()
    text = file.data[:TEXT_SAMPLE_BYTES].decode("utf-8", errors="ignore")

    def result(file_type: FileType, confidence: ProbeConfidence) -> ProbeResult:
        return ProbeResult(
            file_type=file_type,
            mime_type=file.mime_type,
            extension=extension,
            confidence=confidence,
        )

    if hex_signature.startswith(PDF_SIGNATURE):
        return result(FileType.PDF, ProbeConfidence.HIGH)

    if hex_signature.startswith(ZIP_SIGNATURE) and extension in ("XLSX", "XLS"):
        return result(FileType.XLSX, ProbeConfidence.HIGH)

    if "<OFX" in text or "OFXHEADER" in text:
        return result(FileType.OFX, ProbeConfidence.HIGH)

    if extension == "CSV" or mime_type == "text/csv" or ";" in text or "," in text:
        return result(FileType.CSV, ProbeConfidence.LOW)

    if extension == "TXT" or mime_type == "text/plain":
        return result(FileType.TXT, ProbeConfidence.LOW)

    return result(_EXTENSION_TYPES.get(extension, FileType.UNKNOWN), ProbeConfidence.LOW)
