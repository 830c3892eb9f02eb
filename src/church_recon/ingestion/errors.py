"""
Ingestion error types.

Only file-stage failures are exceptions. Bad cells degrade to sentinel
values inside the resolvers and are dropped by the row validator.
"""


class IngestionError(Exception):
    """A single file could not be ingested."""

    def __init__(self, message: str, source_name: str = "") -> None:
        super().__init__(message)
        self.source_name = source_name


class UnsupportedFileTypeError(IngestionError):
    """No adapter/parser pair exists for the probed file type."""

    def __init__(self, file_type: str, source_name: str = "") -> None:
        super().__init__(f"Unsupported file type {file_type}", source_name)
        self.file_type = file_type


class AdapterError(IngestionError):
    """A supported file could not be read (corrupt or undecodable)."""

    pass


class OperationCancelled(Exception):
    """A long-running parse or match was cancelled by its caller."""

    pass
