"""
OFX parser.

OFX 1.x is SGML: leaf tags are often left unclosed (<TRNAMT>-50.00). A small
tokenizer walks the tag stream instead of running one regex per field, so
nested or repeated tags inside a transaction do not confuse extraction. The
first occurrence of each field inside a <STMTTRN> block wins.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from ..errors import OperationCancelled
from ..resolvers import INVALID_DATE, DateResolver
from ..resolvers.amount import parse_float_prefix
from ..types import RawDocument, TransactionDraft
from .tabular import ParseStats

logger = logging.getLogger(__name__)

_TAG = re.compile(r"<(/?)([A-Za-z0-9_.]+)>([^<]*)")

TRANSACTION_TAG = "STMTTRN"
LIST_TAG = "BANKTRANLIST"
DEFAULT_DESCRIPTION = "Sem descrição"


@dataclass(frozen=True)
class OfxToken:
    """One tag event: opening or closing tag plus the text that follows it."""

    tag: str
    value: str
    closing: bool = False


def tokenize(text: str) -> Iterator[OfxToken]:
    """Yield tag events from SGML or XML flavoured OFX text."""
    for match in _TAG.finditer(text):
        yield OfxToken(
            tag=match.group(2).upper(),
            value=match.group(3).strip(),
            closing=bool(match.group(1)),
        )


def iter_transaction_blocks(text: str) -> Iterator[dict[str, str]]:
    """Yield the leaf fields of every <STMTTRN> block in document order."""
    current: dict[str, str] | None = None
    for token in tokenize(text):
        if token.tag == TRANSACTION_TAG:
            if current is not None:
                yield current
            current = None if token.closing else {}
            continue
        if current is None:
            continue
        if token.closing and token.tag == LIST_TAG:
            yield current
            current = None
            continue
        if not token.closing and token.value:
            current.setdefault(token.tag, token.value)
    if current is not None:
        yield current


def ofx_amount(raw: str) -> str:
    """TRNAMT uses a dot decimal; some banks emit a lone comma instead."""
    text = raw.strip().replace(" ", "")
    if "," in text and "." not in text:
        text = text.replace(",", ".")
    value = parse_float_prefix(text)
    if value is None:
        return ""
    formatted = f"{value:.2f}"
    return "0.00" if formatted == "-0.00" else formatted


class OfxParser:
    """Turns an OFX document into transaction drafts."""

    def __init__(self) -> None:
        self.last_stats = ParseStats()

    def parse(
        self,
        document: RawDocument[str],
        cancel_check: Callable[[], bool] | None = None,
    ) -> list[TransactionDraft]:
        drafts: list[TransactionDraft] = []
        dropped = 0
        blocks = 0

        for index, fields in enumerate(iter_transaction_blocks(document.content)):
            if cancel_check and cancel_check():
                raise OperationCancelled(f"Parsing {document.source_name} cancelled")
            blocks += 1
            date = DateResolver.parse_ofx_date(fields.get("DTPOSTED", ""))
            amount = ofx_amount(fields.get("TRNAMT", ""))
            if date == INVALID_DATE or not amount:
                dropped += 1
                continue

            description = fields.get("MEMO") or fields.get("NAME") or DEFAULT_DESCRIPTION
            drafts.append(
                TransactionDraft(
                    raw_date=date,
                    raw_description=description,
                    raw_amount=amount,
                    source_row_index=index,
                    metadata={
                        "type": fields.get("TRNTYPE", ""),
                        "is_expense": float(amount) < 0,
                        "original_date": fields.get("DTPOSTED", ""),
                        "original_amount": fields.get("TRNAMT", ""),
                    },
                )
            )

        self.last_stats = ParseStats(
            rows_total=blocks, rows_accepted=len(drafts), rows_excluded=dropped
        )
        if dropped:
            logger.debug("Dropped %d OFX blocks without date/amount in %s", dropped, document.source_name)
        return drafts
