"""
Normalizer: TransactionDraft list → NormalizedTransaction list.

Row rejection belongs to the row validator upstream. Drafts that still fail
the shape checks here are skipped and logged, never raised.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from .resolvers.amount import parse_float_prefix
from .types import NormalizedTransaction, TransactionDraft

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def normalize_draft(draft: TransactionDraft) -> NormalizedTransaction | None:
    """Convert one draft; None when it does not have the final shape."""
    name = (draft.raw_description or "").strip()
    amount = parse_float_prefix(draft.raw_amount or "")
    if not _ISO_DATE.match(draft.raw_date or "") or len(name) < 2 or amount is None:
        return None
    return NormalizedTransaction(date=draft.raw_date, name=name, amount=amount)


def normalize(drafts: Iterable[TransactionDraft]) -> list[NormalizedTransaction]:
    """Consolidate drafts into the three-field output, preserving order."""
    transactions = []
    for draft in drafts:
        transaction = normalize_draft(draft)
        if transaction is None:
            logger.debug("Skipping malformed draft at row %d", draft.source_row_index)
            continue
        transactions.append(transaction)
    return transactions
