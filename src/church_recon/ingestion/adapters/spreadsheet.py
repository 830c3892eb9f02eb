"""
Spreadsheet adapter (openpyxl).

Returns the first sheet as rows of displayed cell text. Workbooks store
values, not what the user saw, so the displayed text is rebuilt from each
cell's number format using pt-BR conventions (dd/mm/yyyy dates, "." for
thousands and "," for decimals). Locale-ambiguous text is then resolved by
the column resolvers, exactly as for CSV input.
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
from datetime import date, datetime, time

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from ..errors import AdapterError
from ..types import FileType, RawDocument, SourceFile
from .base import create_raw_document

logger = logging.getLogger(__name__)

_DECIMALS = re.compile(r"\.(0+)")


def _to_br_number(text: str) -> str:
    """Swap US separators for pt-BR ones: 1,234.56 becomes 1.234,56."""
    return text.replace(",", "\x00").replace(".", ",").replace("\x00", ".")


def display_text(value: object, number_format: str | None = None) -> str:
    """Render a cell value the way a pt-BR spreadsheet shows it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "VERDADEIRO" if value else "FALSO"
    if isinstance(value, datetime):
        if "h" in (number_format or "").lower():
            return value.strftime("%d/%m/%Y %H:%M")
        return value.strftime("%d/%m/%Y")
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, (int, float)):
        return _format_number(value, number_format or "General")
    return str(value).strip()


def _format_number(value: int | float, number_format: str) -> str:
    # Only the positive section of a multi-section format matters here
    section = number_format.split(";")[0]
    if section == "General" or not re.search(r"[0#]", section):
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return _to_br_number(f"{value:.10g}") if isinstance(value, float) else str(value)

    match = _DECIMALS.search(section)
    decimals = len(match.group(1)) if match else 0
    if "%" in section:
        return _to_br_number(f"{value * 100:.{decimals}f}") + "%"

    grouped = "," in section.split(".")[0]
    text = f"{abs(value):,.{decimals}f}" if grouped else f"{abs(value):.{decimals}f}"
    text = _to_br_number(text)
    if value < 0:
        negative_section = number_format.split(";")[1] if ";" in number_format else ""
        return f"({text})" if "(" in negative_section else f"-{text}"
    return text


class SpreadsheetAdapter:
    """Read the first sheet of an .xlsx workbook as rows of displayed text."""

    def read_raw(self, file: SourceFile) -> RawDocument[list[list[str]]]:
        try:
            workbook = openpyxl.load_workbook(io.BytesIO(file.data), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
            raise AdapterError(f"Cannot open workbook: {e}", file.name) from e

        try:
            if not workbook.worksheets:
                raise AdapterError("Workbook has no sheets", file.name)
            sheet = workbook.worksheets[0]
            rows = [
                [display_text(cell.value, getattr(cell, "number_format", None)) for cell in row]
                for row in sheet.iter_rows()
            ]
            sheet_name = sheet.title
        finally:
            workbook.close()

        while rows and not any(rows[-1]):
            rows.pop()
        width = max((len(row) for row in rows), default=0)
        rows = [row + [""] * (width - len(row)) for row in rows]

        logger.debug("Read %d rows x %d columns from %s", len(rows), width, file.name)
        return create_raw_document(
            file.name, FileType.XLSX, rows, size=file.size, sheet=sheet_name
        )
