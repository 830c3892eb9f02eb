"""
Matching engine: bank transactions against church contributor lists.

Each transaction is identified by, in order of precedence:

1. Learned association: its normalized description was identified by hand
   before. The remembered church and contributor are reused as-is.
2. Automatic: the contributor name with the best word-overlap score, among
   contributors dated within the day tolerance, when that score reaches the
   similarity threshold.
3. Otherwise it stays unidentified, optionally with a suggested contributor.

Expected contributions that no transaction claimed become PENDING "ghost"
results so they show up on the church reports.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from ..ingestion.errors import OperationCancelled
from .models import (
    UNIDENTIFIED_CHURCH,
    Church,
    Contributor,
    ContributorFile,
    Divergence,
    LearnedAssociation,
    MatchMethod,
    MatchResult,
    ReconciliationStatus,
    Transaction,
)
from .text import days_between, name_similarity, normalize_description, parse_date

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]


class ReconciliationCancelled(OperationCancelled):
    """Matching was cancelled between two transactions."""

    pass


@dataclass(frozen=True)
class _Candidate:
    contributor: Contributor
    church: Church
    key: tuple[int, int]


class MatchingEngine:
    """Stateless matcher; every call to match() starts from its arguments."""

    SUGGESTION_MIN_SCORE = 40.0

    def __init__(
        self,
        similarity_threshold: float = 80.0,
        day_tolerance: int = 3,
        ignore_keywords: Iterable[str] = (),
    ) -> None:
        """Initialize the engine.

        Args:
            similarity_threshold: Minimum name score (0-100) for an automatic match.
            day_tolerance: Maximum distance in days between transaction and
                contributor dates, when both are known.
            ignore_keywords: Extra words stripped before comparing names.
        """
        self.similarity_threshold = similarity_threshold
        self.day_tolerance = day_tolerance
        self.ignore_keywords = list(ignore_keywords)

    def match(
        self,
        transactions: Sequence[Transaction],
        contributor_files: Sequence[ContributorFile],
        learned: Iterable[LearnedAssociation] = (),
        cancel_check: Callable[[], bool] | None = None,
        progress: ProgressCallback | None = None,
    ) -> list[MatchResult]:
        """Match transactions and append a ghost per unclaimed contributor.

        Returns:
            One result per transaction in input order, then the ghosts in
            contributor-list order.

        Raises:
            ReconciliationCancelled: cancel_check returned True.
            ValueError: Two contributor files share a church id.
        """
        churches: dict[str, Church] = {}
        for cf in contributor_files:
            # Ghost ids are keyed by church id, so each church has one list
            if cf.church.id in churches:
                raise ValueError(f"Duplicate contributor list for church {cf.church.id!r}")
            churches[cf.church.id] = cf.church
        candidates = [
            _Candidate(contributor, cf.church, (file_index, index))
            for file_index, cf in enumerate(contributor_files)
            for index, contributor in enumerate(cf.contributors)
        ]

        # Later associations replace earlier ones with the same key
        by_description: dict[str, LearnedAssociation] = {}
        by_contributor: dict[str, LearnedAssociation] = {}
        for association in learned:
            by_description[association.normalized_description] = association
            by_contributor[self._key(association.contributor_name)] = association

        used: set[tuple[int, int]] = set()
        results: list[MatchResult] = []
        total = len(transactions)

        for index, tx in enumerate(transactions):
            if cancel_check and cancel_check():
                raise ReconciliationCancelled(f"Matching cancelled at transaction {index}")
            if progress:
                progress("match", index, total)

            description_key = self._key(tx.description)
            association = by_description.get(description_key) if description_key else None

            if association is not None:
                result = self._learned_result(tx, association, churches, candidates, used)
            else:
                result = self._fuzzy_result(tx, description_key, candidates, used)

            if result.status == ReconciliationStatus.IDENTIFIED and result.contributor:
                result.divergence = self._divergence(result, by_contributor, churches)
            results.append(result)

        if progress:
            progress("match", total, total)

        ghosts = [
            self._ghost(candidate) for candidate in candidates if candidate.key not in used
        ]
        identified = sum(1 for r in results if r.status == ReconciliationStatus.IDENTIFIED)
        logger.info(
            "Matched %d/%d transactions, %d expected contributions pending",
            identified,
            total,
            len(ghosts),
        )
        return results + ghosts

    def _key(self, text: str) -> str:
        return normalize_description(text, self.ignore_keywords)

    def _learned_result(
        self,
        tx: Transaction,
        association: LearnedAssociation,
        churches: dict[str, Church],
        candidates: list[_Candidate],
        used: set[tuple[int, int]],
    ) -> MatchResult:
        church = churches.get(association.church_id) or Church(
            id=association.church_id, name=association.church_id
        )
        wanted = self._key(association.contributor_name)
        contributor = None
        for candidate in candidates:
            if candidate.church.id == church.id and candidate.contributor.normalized_name == wanted:
                contributor = candidate.contributor
                used.add(candidate.key)
                break

        if contributor is None:
            # The contributor is not on this month's list; identify anyway
            contributor = Contributor.create(
                association.contributor_name,
                tx.amount,
                date=tx.date,
                contribution_type=tx.contribution_type,
                ignore_keywords=self.ignore_keywords,
            )

        logger.debug("Transaction %s identified from learned association", tx.id)
        return MatchResult(
            transaction=tx,
            contributor=contributor,
            church=church,
            status=ReconciliationStatus.IDENTIFIED,
            match_method=MatchMethod.LEARNED,
            similarity=100.0,
            contributor_amount=contributor.amount,
            contribution_type=contributor.contribution_type or tx.contribution_type,
        )

    def _fuzzy_result(
        self,
        tx: Transaction,
        description_key: str,
        candidates: list[_Candidate],
        used: set[tuple[int, int]],
    ) -> MatchResult:
        tx_date = parse_date(tx.date)
        best: _Candidate | None = None
        best_score = 0.0

        for candidate in candidates:
            contributor_date = parse_date(candidate.contributor.date)
            if (
                tx_date is not None
                and contributor_date is not None
                and days_between(tx_date, contributor_date) > self.day_tolerance
            ):
                continue
            score = name_similarity(description_key, candidate.contributor.normalized_name)
            # Strictly greater: ties keep the first candidate seen
            if score > best_score:
                best, best_score = candidate, score

        if best is not None and best_score >= self.similarity_threshold:
            used.add(best.key)
            return MatchResult(
                transaction=tx,
                contributor=best.contributor,
                church=best.church,
                status=ReconciliationStatus.IDENTIFIED,
                match_method=MatchMethod.AUTOMATIC,
                similarity=best_score,
                contributor_amount=best.contributor.amount,
                contribution_type=best.contributor.contribution_type or tx.contribution_type,
            )

        suggestion = None
        if best is not None and best_score > self.SUGGESTION_MIN_SCORE:
            suggestion = best.contributor
        return MatchResult(
            transaction=tx,
            contributor=None,
            church=UNIDENTIFIED_CHURCH,
            status=ReconciliationStatus.UNIDENTIFIED,
            match_method=None,
            similarity=best_score,
            contributor_amount=None,
            suggestion=suggestion,
            contribution_type=tx.contribution_type,
        )

    def _divergence(
        self,
        result: MatchResult,
        by_contributor: dict[str, LearnedAssociation],
        churches: dict[str, Church],
    ) -> Divergence | None:
        association = by_contributor.get(result.contributor.normalized_name)
        if association is None or association.church_id == result.church.id:
            return None
        expected = churches.get(association.church_id) or Church(
            id=association.church_id, name=association.church_id
        )
        logger.info(
            "Transaction %s matched church %s, history expects %s",
            result.transaction.id,
            result.church.id,
            expected.id,
        )
        return Divergence(expected_church=expected, actual_church=result.church)

    @staticmethod
    def _ghost(candidate: _Candidate) -> MatchResult:
        contributor = candidate.contributor
        _, index = candidate.key
        tx = Transaction(
            id=f"ghost-{candidate.church.id}-{index}",
            date=contributor.date,
            description=contributor.name,
            amount=0.0,
            cleaned_description=contributor.cleaned_name,
            contribution_type=contributor.contribution_type,
        )
        return MatchResult(
            transaction=tx,
            contributor=contributor,
            church=candidate.church,
            status=ReconciliationStatus.PENDING,
            match_method=None,
            similarity=0.0,
            contributor_amount=contributor.amount,
            contribution_type=contributor.contribution_type,
        )
