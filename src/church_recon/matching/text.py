"""
Text and date helpers shared by matching, ranking and search.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import date, datetime
from typing import TYPE_CHECKING

from ..ingestion.resolvers import NameResolver

if TYPE_CHECKING:
    from .models import MatchResult, Transaction


def normalize_description(text: str, ignore_keywords: Iterable[str] = ()) -> str:
    """Comparison key for a description or contributor name.

    "PIX RECEBIDO - João da Silva" and "JOAO DA SILVA" share the key
    "joao da silva".
    """
    if not text:
        return ""
    cleaned = NameResolver.clean(text, list(ignore_keywords))
    return NameResolver.normalize(cleaned).lower()


def name_similarity(a: str, b: str) -> float:
    """Dice coefficient of the word sets of two normalized strings, 0-100."""
    left = set(a.split())
    right = set(b.split())
    if not left or not right:
        return 0.0
    return 2 * len(left & right) / (len(left) + len(right)) * 100


def parse_date(text: str | date | None) -> date | None:
    """Parse YYYY-MM-DD or DD/MM/YYYY (any / or - separators)."""
    if isinstance(text, date):
        return text
    if not text:
        return None
    parts = text.strip().replace("/", "-").split("-")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        return None
    try:
        if len(parts[0]) == 4:
            return date(int(parts[0]), int(parts[1]), int(parts[2]))
        return date(int(parts[2]), int(parts[1]), int(parts[0]))
    except ValueError:
        return None


def days_between(a: date | datetime, b: date | datetime) -> int:
    """Absolute distance in days, rounded up for partial days."""
    if isinstance(a, datetime) or isinstance(b, datetime):
        a = a if isinstance(a, datetime) else datetime(a.year, a.month, a.day)
        b = b if isinstance(b, datetime) else datetime(b.year, b.month, b.day)
        return math.ceil(abs((a - b).total_seconds()) / 86400)
    return abs((a - b).days)


def _amount_forms(amount: float) -> tuple[str, str]:
    dotted = f"{amount:.2f}"
    return dotted, dotted.replace(".", ",")


def matches_query(item: MatchResult | Transaction, query: str) -> bool:
    """True when every whitespace-separated term of query occurs in item.

    Searched: date, description, contribution type, amount ("1234,56" or
    "1234.56") and, for match results, contributor and church names.
    """
    terms = query.lower().split() if query else []
    if not terms:
        return True

    if hasattr(item, "transaction"):
        tx = item.transaction
        contributor = item.contributor
        fields = [
            (contributor.date if contributor and contributor.date else tx.date),
            tx.cleaned_description or tx.description,
            contributor.name if contributor else "",
            item.church.name if item.church else "",
            item.contribution_type,
        ]
        amount = item.contributor_amount if item.contributor_amount is not None else tx.amount
    else:
        fields = [item.date, item.cleaned_description or item.description, item.contribution_type]
        amount = item.amount

    haystack = [value.lower() for value in fields if value]
    haystack.extend(_amount_forms(amount))
    return all(any(term in value for value in haystack) for term in terms)
