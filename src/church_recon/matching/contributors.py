"""
Contributor list loading.

Church lists have no fixed layout either, so the same column discovery used
for statements applies: amount and name are required, date and contribution
type are optional.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from ..config import DEFAULT_CONTRIBUTION_KEYWORDS
from ..ingestion.adapters import DelimitedTextAdapter, SpreadsheetAdapter
from ..ingestion.errors import UnsupportedFileTypeError
from ..ingestion.probe import probe
from ..ingestion.resolvers import (
    INVALID_DATE,
    AmountResolver,
    DateResolver,
    NameResolver,
    TypeResolver,
)
from ..ingestion.types import FileType, SourceFile
from .models import Church, Contributor, ContributorFile

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)

_HAS_DIGIT = re.compile(r"\d")


def _cell(row: Sequence[str], index: int) -> str:
    if index < 0 or index >= len(row):
        return ""
    return str(row[index] or "").strip()


def parse_contributor_rows(
    rows: Sequence[Sequence[str]],
    church: Church,
    ignore_keywords: Iterable[str] = (),
    contribution_keywords: Iterable[str] = DEFAULT_CONTRIBUTION_KEYWORDS,
) -> list[Contributor]:
    """Turn the rows of a contributor list into Contributors, in row order.

    A row is kept when its cleaned name has at least 2 characters and its
    amount cell holds a number. Header rows fall out on the amount check.
    """
    if not rows:
        return []
    keywords = list(ignore_keywords)

    anchor_year = DateResolver.discover_anchor_year(rows)
    date_idx = DateResolver.identify_date_column(rows)
    amount_idx = AmountResolver.identify_amount_column(rows, exclude=[date_idx])
    name_idx = NameResolver.identify_name_column(rows, exclude=[date_idx, amount_idx])
    type_idx = TypeResolver.identify_type_column(
        rows, exclude=[date_idx, amount_idx, name_idx], keywords=contribution_keywords
    )
    logger.info(
        "Contributor columns for %s: date=%d amount=%d name=%d type=%d",
        church.id,
        date_idx,
        amount_idx,
        name_idx,
        type_idx,
    )

    contributors = []
    for row in rows:
        raw_name = _cell(row, name_idx)
        raw_amount = _cell(row, amount_idx)
        if not _HAS_DIGIT.search(raw_amount):
            continue
        cleaned = NameResolver.clean(raw_name, keywords)
        if len(cleaned) < 2:
            continue

        raw_date = _cell(row, date_idx)
        iso_date = DateResolver.resolve_to_iso(raw_date, anchor_year) if raw_date else INVALID_DATE
        contributors.append(
            Contributor.create(
                name=cleaned,
                amount=float(AmountResolver.clean(raw_amount)),
                date=iso_date,
                contribution_type=_cell(row, type_idx).upper(),
                ignore_keywords=keywords,
            )
        )

    logger.info("Loaded %d contributors for church %s", len(contributors), church.id)
    return contributors


def load_contributor_file(
    file: SourceFile,
    church: Church,
    config: Config | None = None,
) -> ContributorFile:
    """Read a contributor spreadsheet or delimited text file.

    Raises:
        UnsupportedFileTypeError: The file is not a spreadsheet or text list.
        AdapterError: The file could not be read.
    """
    file_type = probe(file).file_type
    if file_type == FileType.XLSX:
        adapter = SpreadsheetAdapter()
    elif file_type in (FileType.CSV, FileType.TXT):
        adapter = DelimitedTextAdapter()
    else:
        raise UnsupportedFileTypeError(file_type.value, file.name)

    ignore_keywords: list[str] = []
    contribution_keywords: list[str] = list(DEFAULT_CONTRIBUTION_KEYWORDS)
    if config is not None:
        ignore_keywords = config.reconciliation.ignore_keywords
        contribution_keywords = config.reconciliation.contribution_keywords

    document = adapter.read_raw(file)
    contributors = parse_contributor_rows(
        document.content, church, ignore_keywords, contribution_keywords
    )
    return ContributorFile(church=church, contributors=contributors)
