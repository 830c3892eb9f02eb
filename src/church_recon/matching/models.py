"""
Reconciliation data model.

Transactions come from bank statements, contributors from the expected-giving
lists each church sends. A MatchResult ties one transaction to at most one
contributor and church.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..ingestion.resolvers import NameResolver, TypeResolver
from .text import normalize_description

if TYPE_CHECKING:
    from ..ingestion.types import NormalizedTransaction


class ReconciliationStatus(str, Enum):
    """Status of a match result, as shown on the church reports."""

    IDENTIFIED = "IDENTIFICADO"
    UNIDENTIFIED = "NÃO IDENTIFICADO"
    PENDING = "PENDENTE"


class MatchMethod(str, Enum):
    """How a result was identified."""

    AUTOMATIC = "AUTOMATIC"
    MANUAL = "MANUAL"
    LEARNED = "LEARNED"
    AI = "AI"
    TEMPLATE = "TEMPLATE"


@dataclass(frozen=True)
class Church:
    """A congregation that sends an expected-contribution list."""

    id: str
    name: str
    address: str = ""
    pastor: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "address": self.address, "pastor": self.pastor}


UNIDENTIFIED_CHURCH = Church(id="unidentified", name="---")


@dataclass
class Contributor:
    """One line of a church's expected-contribution list."""

    name: str
    amount: float
    date: str = ""
    contribution_type: str = ""
    cleaned_name: str = ""
    normalized_name: str = ""

    @classmethod
    def create(
        cls,
        name: str,
        amount: float,
        date: str = "",
        contribution_type: str = "",
        ignore_keywords: Iterable[str] = (),
    ) -> Contributor:
        """Build a contributor with its display and comparison names filled."""
        keywords = list(ignore_keywords)
        return cls(
            name=name,
            amount=amount,
            date=date or "",
            contribution_type=contribution_type or "",
            cleaned_name=NameResolver.clean(name, keywords),
            normalized_name=normalize_description(name, keywords),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "amount": self.amount,
            "date": self.date,
            "contribution_type": self.contribution_type,
            "normalized_name": self.normalized_name,
        }


@dataclass
class ContributorFile:
    """A church together with its expected contributors, in file order."""

    church: Church
    contributors: list[Contributor] = field(default_factory=list)


@dataclass
class Transaction:
    """A statement line entering reconciliation."""

    id: str
    date: str
    description: str
    amount: float
    cleaned_description: str = ""
    payment_method: str = ""
    contribution_type: str = ""
    is_confirmed: bool = False

    @classmethod
    def from_normalized(
        cls,
        tx: NormalizedTransaction,
        id: str,
        ignore_keywords: Iterable[str] = (),
    ) -> Transaction:
        """Wrap a NormalizedTransaction with an id and derived labels."""
        label = TypeResolver.resolve_from_description(tx.name)
        return cls(
            id=id,
            date=tx.date,
            description=tx.name,
            amount=tx.amount,
            cleaned_description=NameResolver.clean(tx.name, list(ignore_keywords)),
            payment_method=label,
            contribution_type=label,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "description": self.description,
            "amount": self.amount,
            "cleaned_description": self.cleaned_description,
            "payment_method": self.payment_method,
            "contribution_type": self.contribution_type,
        }


@dataclass(frozen=True)
class LearnedAssociation:
    """A remembered description → (church, contributor) identification.

    normalized_description is the lookup key; it is compared by equality.
    """

    normalized_description: str
    church_id: str
    contributor_name: str
    created_at: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "normalized_description": self.normalized_description,
            "church_id": self.church_id,
            "contributor_name": self.contributor_name,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class Divergence:
    """A match landed on a different church than history expects."""

    expected_church: Church
    actual_church: Church

    def to_dict(self) -> dict[str, Any]:
        return {
            "expected_church": self.expected_church.to_dict(),
            "actual_church": self.actual_church.to_dict(),
        }


@dataclass
class MatchResult:
    """One row of the reconciliation report."""

    transaction: Transaction
    contributor: Contributor | None
    church: Church
    status: ReconciliationStatus
    match_method: MatchMethod | None
    similarity: float
    contributor_amount: float | None
    divergence: Divergence | None = None
    suggestion: Contributor | None = None
    contribution_type: str = ""

    @property
    def is_ghost(self) -> bool:
        """True for an expected contribution with no statement line."""
        return self.status == ReconciliationStatus.PENDING

    def copy(self, **changes: Any) -> MatchResult:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "transaction": self.transaction.to_dict(),
            "contributor": self.contributor.to_dict() if self.contributor else None,
            "church": self.church.to_dict(),
            "status": self.status.value,
            "match_method": self.match_method.value if self.match_method else None,
            "similarity": round(self.similarity, 2),
            "contributor_amount": self.contributor_amount,
            "divergence": self.divergence.to_dict() if self.divergence else None,
            "suggestion": self.suggestion.to_dict() if self.suggestion else None,
            "contribution_type": self.contribution_type,
        }
