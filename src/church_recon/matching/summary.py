"""
Per-church report helpers over MatchResult lists.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .models import UNIDENTIFIED_CHURCH, Church, MatchResult, ReconciliationStatus


def group_by_church(results: Iterable[MatchResult]) -> dict[str, list[MatchResult]]:
    """Group results by church id, keeping result order inside each group."""
    grouped: dict[str, list[MatchResult]] = {}
    for result in results:
        key = result.church.id if result.church else UNIDENTIFIED_CHURCH.id
        grouped.setdefault(key, []).append(result)
    return grouped


@dataclass
class ChurchLedger:
    """Income received versus income expected for one church."""

    church: Church
    income: float = 0.0
    expected: float = 0.0
    identified: int = 0
    pending: int = 0

    @property
    def difference(self) -> float:
        return round(self.income - self.expected, 2)

    def to_dict(self) -> dict:
        return {
            "church": self.church.to_dict(),
            "income": round(self.income, 2),
            "expected": round(self.expected, 2),
            "difference": self.difference,
            "identified": self.identified,
            "pending": self.pending,
        }


def church_ledger(results: Iterable[MatchResult]) -> list[ChurchLedger]:
    """Build one ledger per identified church, highest income first.

    Unidentified transactions have no church and are left out; see
    ReconciliationCounts for their totals.
    """
    ledgers: list[ChurchLedger] = []
    for church_id, group in group_by_church(results).items():
        if church_id == UNIDENTIFIED_CHURCH.id:
            continue
        ledger = ChurchLedger(church=group[0].church)
        for result in group:
            if result.is_ghost:
                ledger.pending += 1
            elif result.status == ReconciliationStatus.IDENTIFIED:
                ledger.identified += 1
                ledger.income += result.transaction.amount
            else:
                continue
            ledger.expected += result.contributor_amount or 0.0
        ledgers.append(ledger)
    ledgers.sort(key=lambda ledger: ledger.income, reverse=True)
    return ledgers


@dataclass
class ReconciliationCounts:
    """Status, method and divergence counts for a result list."""

    total: int = 0
    identified: int = 0
    unidentified: int = 0
    pending: int = 0
    divergent: int = 0
    by_method: dict[str, int] = field(default_factory=dict)
    identified_amount: float = 0.0
    unidentified_amount: float = 0.0

    @classmethod
    def from_results(cls, results: Iterable[MatchResult]) -> ReconciliationCounts:
        counts = cls()
        for result in results:
            counts.total += 1
            if result.status == ReconciliationStatus.PENDING:
                counts.pending += 1
                continue
            if result.status == ReconciliationStatus.IDENTIFIED:
                counts.identified += 1
                counts.identified_amount += result.transaction.amount
            else:
                counts.unidentified += 1
                counts.unidentified_amount += result.transaction.amount
            if result.divergence is not None:
                counts.divergent += 1
            if result.match_method is not None:
                method = result.match_method.value
                counts.by_method[method] = counts.by_method.get(method, 0) + 1
        return counts

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "identified": self.identified,
            "unidentified": self.unidentified,
            "pending": self.pending,
            "divergent": self.divergent,
            "by_method": dict(self.by_method),
            "identified_amount": round(self.identified_amount, 2),
            "unidentified_amount": round(self.unidentified_amount, 2),
        }
