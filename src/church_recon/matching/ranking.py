"""
Candidate ranking for manual matches.

When an expected contribution (a ghost) has no statement line, a person
picks the right transaction by hand. Candidates are ordered by

    final_score = name_score * 10 + amount_score + date_score / 10

with name_score in 0-1, amount_score and date_score in 0-100. This is an
ordering aid only; nothing is filtered out.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .models import MatchResult, ReconciliationStatus
from .text import days_between, name_similarity, normalize_description, parse_date

SMART_AMOUNT_TOLERANCE = 0.05
SMART_EXTRA_DAYS = 2
NEUTRAL_DATE_SCORE = 50.0


@dataclass(frozen=True)
class RankedCandidate:
    """An unmatched transaction scored against a ghost entry."""

    result: MatchResult
    name_score: float
    amount_score: float
    date_score: float

    @property
    def final_score(self) -> float:
        return self.name_score * 10 + self.amount_score + self.date_score / 10

    def to_dict(self) -> dict:
        return {
            "transaction": self.result.transaction.to_dict(),
            "name_score": round(self.name_score, 4),
            "amount_score": round(self.amount_score, 2),
            "date_score": round(self.date_score, 2),
            "final_score": round(self.final_score, 2),
        }


def amount_score(amount: float, expected: float) -> float:
    """100 for an exact amount, losing 2 points per percent of difference."""
    if amount == expected:
        return 100.0
    if expected == 0:
        return 0.0
    pct = abs(amount - expected) / abs(expected)
    return max(0.0, 100 - pct * 200)


def date_score(tx_date: str, expected_date: str, day_tolerance: int) -> float:
    """100 on the same day, 50 at the tolerance edge, 0 beyond it."""
    left, right = parse_date(tx_date), parse_date(expected_date)
    if left is None or right is None:
        return NEUTRAL_DATE_SCORE
    diff = days_between(left, right)
    if diff > day_tolerance:
        return 0.0
    if day_tolerance <= 0:
        return 100.0
    return 100 - (diff / day_tolerance) * 50


def _unmatched(results: Iterable[MatchResult]) -> list[MatchResult]:
    return [
        r
        for r in results
        if r.status == ReconciliationStatus.UNIDENTIFIED
        and not r.is_ghost
        and r.transaction.amount > 0
    ]


def rank_candidates(
    ghost: MatchResult,
    results: Sequence[MatchResult],
    day_tolerance: int,
    ignore_keywords: Iterable[str] = (),
) -> list[RankedCandidate]:
    """Score every still-unmatched income transaction against a ghost.

    Args:
        ghost: The PENDING result of the expected contribution.
        results: The current reconciliation results.
        day_tolerance: Day window used by the date score.
        ignore_keywords: Extra words stripped before comparing names.

    Returns:
        Candidates sorted by final score, best first; equal scores keep
        their order in results.
    """
    keywords = list(ignore_keywords)
    contributor = ghost.contributor
    expected_name = (
        contributor.normalized_name
        if contributor and contributor.normalized_name
        else normalize_description(ghost.transaction.description, keywords)
    )
    expected_amount = (
        ghost.contributor_amount
        if ghost.contributor_amount is not None
        else (contributor.amount if contributor else 0.0)
    )
    expected_date = (contributor.date if contributor else "") or ghost.transaction.date

    ranked = []
    for result in _unmatched(results):
        tx = result.transaction
        ranked.append(
            RankedCandidate(
                result=result,
                name_score=name_similarity(
                    expected_name, normalize_description(tx.description, keywords)
                )
                / 100,
                amount_score=amount_score(tx.amount, expected_amount),
                date_score=date_score(tx.date, expected_date, day_tolerance),
            )
        )
    ranked.sort(key=lambda candidate: candidate.final_score, reverse=True)
    return ranked


def smart_candidates(
    ghost: MatchResult,
    results: Sequence[MatchResult],
    day_tolerance: int,
    ignore_keywords: Iterable[str] = (),
) -> list[RankedCandidate]:
    """Ranked candidates whose amount is within 5 cents and whose date is
    within day_tolerance + 2 days (or unknown)."""
    expected_date = parse_date(
        (ghost.contributor.date if ghost.contributor else "") or ghost.transaction.date
    )
    expected_amount = ghost.contributor_amount or 0.0
    window = day_tolerance + SMART_EXTRA_DAYS

    selected = []
    for candidate in rank_candidates(ghost, results, day_tolerance, ignore_keywords):
        tx = candidate.result.transaction
        if abs(tx.amount - expected_amount) > SMART_AMOUNT_TOLERANCE + 1e-9:
            continue
        tx_date = parse_date(tx.date)
        if expected_date and tx_date and days_between(tx_date, expected_date) > window:
            continue
        selected.append(candidate)
    return selected
