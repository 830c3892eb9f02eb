"""
Reconciliation session: the human review step after matching.

A session owns one run's results and the learned associations known when it
started. Manual identifications are recorded as pending associations and
only reach the store on flush(), so they affect future runs, never the
results already produced in this one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from ..ingestion.types import utc_timestamp
from .models import (
    UNIDENTIFIED_CHURCH,
    Church,
    Contributor,
    LearnedAssociation,
    MatchMethod,
    MatchResult,
    ReconciliationStatus,
)
from .ranking import RankedCandidate, rank_candidates, smart_candidates
from .text import matches_query, normalize_description

if TYPE_CHECKING:
    from ..state_store import StateStore

logger = logging.getLogger(__name__)


class SessionClosedError(RuntimeError):
    """The session was used after close()."""

    pass


class ReconciliationSession:
    """Explicitly owned review context for one reconciliation run.

    Usage:
        with ReconciliationSession(result.results, store=store) as session:
            session.confirm_manual_match("ghost-igreja-a-0", "tx-12")
            session.flush()
    """

    def __init__(
        self,
        results: Sequence[MatchResult],
        store: StateStore | None = None,
        learned: Iterable[LearnedAssociation] | None = None,
        ignore_keywords: Iterable[str] = (),
        day_tolerance: int = 3,
    ) -> None:
        """Initialize the session.

        Args:
            results: Results of a matching run; the session works on a copy.
            store: Association store used by flush() and for the initial load.
            learned: Known associations; read from the store when omitted.
            ignore_keywords: Extra words stripped when building description keys.
            day_tolerance: Day window for candidate ranking.
        """
        self.store = store
        self.ignore_keywords = list(ignore_keywords)
        self.day_tolerance = day_tolerance
        self.results: list[MatchResult] = [r.copy() for r in results]
        if learned is None:
            learned = store.get_learned_associations() if store is not None else []
        self.learned: list[LearnedAssociation] = list(learned)
        self.pending_learned: list[LearnedAssociation] = []
        self._closed = False

    def __enter__(self) -> ReconciliationSession:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Discard the session state. Unflushed associations are lost."""
        if self.pending_learned:
            logger.warning(
                "Closing session with %d unsaved learned associations", len(self.pending_learned)
            )
        self.results = []
        self.learned = []
        self.pending_learned = []
        self._closed = True

    def get(self, transaction_id: str) -> MatchResult:
        """Return the result for a transaction (or ghost) id."""
        return self.results[self._index(transaction_id)]

    def search(self, query: str) -> list[MatchResult]:
        """Results whose date, names, type or amount contain every query term."""
        self._check_open()
        return [r for r in self.results if matches_query(r, query)]

    def candidates(self, ghost_id: str, smart: bool = False) -> list[RankedCandidate]:
        """Ranked unmatched transactions for a ghost entry."""
        ghost = self.get(ghost_id)
        if not ghost.is_ghost:
            raise ValueError(f"{ghost_id} is not a pending contribution")
        rank = smart_candidates if smart else rank_candidates
        return rank(ghost, self.results, self.day_tolerance, self.ignore_keywords)

    def identify_manually(
        self,
        transaction_id: str,
        contributor: Contributor,
        church: Church,
        method: MatchMethod = MatchMethod.MANUAL,
    ) -> MatchResult:
        """Identify a statement line by hand and remember the choice."""
        index = self._index(transaction_id)
        current = self.results[index]
        if current.is_ghost:
            raise ValueError(f"{transaction_id} is a pending contribution, not a transaction")

        updated = current.copy(
            contributor=contributor,
            church=church,
            status=ReconciliationStatus.IDENTIFIED,
            match_method=method,
            similarity=100.0,
            contributor_amount=contributor.amount,
            divergence=None,
            suggestion=None,
            contribution_type=contributor.contribution_type or current.transaction.contribution_type,
        )
        self.results[index] = updated
        self.learn(current.transaction.description, church.id, contributor.name)
        logger.info("Transaction %s identified (%s) for church %s", transaction_id, method.value, church.id)
        return updated

    def confirm_manual_match(self, ghost_id: str, transaction_id: str) -> MatchResult:
        """Attach an unmatched transaction to a ghost entry.

        The transaction's result takes the ghost's contributor and church and
        the ghost disappears from the results.
        """
        ghost = self.get(ghost_id)
        if not ghost.is_ghost:
            raise ValueError(f"{ghost_id} is not a pending contribution")
        target_index = self._index(transaction_id)
        target = self.results[target_index]
        if target.status != ReconciliationStatus.UNIDENTIFIED:
            raise ValueError(f"Transaction {transaction_id} is already {target.status.value}")

        contributor = ghost.contributor
        updated = target.copy(
            contributor=contributor,
            church=ghost.church,
            status=ReconciliationStatus.IDENTIFIED,
            match_method=MatchMethod.MANUAL,
            similarity=100.0,
            contributor_amount=ghost.contributor_amount,
            divergence=None,
            suggestion=None,
            contribution_type=(contributor.contribution_type if contributor else "")
            or target.transaction.contribution_type,
        )
        self.results[target_index] = updated
        del self.results[self._index(ghost_id)]
        if contributor is not None:
            self.learn(target.transaction.description, ghost.church.id, contributor.name)
        logger.info("Ghost %s matched to transaction %s", ghost_id, transaction_id)
        return updated

    def confirm_divergence(self, transaction_id: str) -> MatchResult:
        """Accept the church the match landed on."""
        index = self._index(transaction_id)
        current = self.results[index]
        if current.divergence is None:
            raise ValueError(f"Transaction {transaction_id} has no divergence")
        self.results[index] = current.copy(divergence=None)
        return self.results[index]

    def reject_divergence(self, transaction_id: str) -> MatchResult:
        """Move the match to the historically expected church."""
        index = self._index(transaction_id)
        current = self.results[index]
        if current.divergence is None:
            raise ValueError(f"Transaction {transaction_id} has no divergence")

        expected = current.divergence.expected_church
        if expected is None or expected.id == UNIDENTIFIED_CHURCH.id:
            updated = current.copy(
                church=UNIDENTIFIED_CHURCH,
                contributor=None,
                status=ReconciliationStatus.UNIDENTIFIED,
                match_method=None,
                contributor_amount=None,
                divergence=None,
            )
        else:
            updated = current.copy(church=expected, divergence=None)
        self.results[index] = updated
        return updated

    def learn(
        self,
        description: str,
        church_id: str,
        contributor_name: str,
    ) -> LearnedAssociation | None:
        """Record an association unless its description key is already known."""
        self._check_open()
        key = normalize_description(description, self.ignore_keywords)
        if not key:
            return None
        known = {a.normalized_description for a in (*self.learned, *self.pending_learned)}
        if key in known:
            logger.debug("Association for %r already known", key)
            return None
        association = LearnedAssociation(
            normalized_description=key,
            church_id=church_id,
            contributor_name=contributor_name,
            created_at=utc_timestamp(),
        )
        self.pending_learned.append(association)
        return association

    def flush(self, store: StateStore | None = None) -> int:
        """Persist pending associations; returns how many were new to the store."""
        self._check_open()
        store = store or self.store
        if store is None:
            raise ValueError("No store to flush learned associations to")
        saved = sum(1 for a in self.pending_learned if store.save_learned_association(a))
        self.learned.extend(self.pending_learned)
        self.pending_learned = []
        logger.info("Saved %d learned associations", saved)
        return saved

    def _index(self, transaction_id: str) -> int:
        self._check_open()
        for index, result in enumerate(self.results):
            if result.transaction.id == transaction_id:
                return index
        raise KeyError(f"No result for transaction {transaction_id}")

    def _check_open(self) -> None:
        if self._closed:
            raise SessionClosedError("Reconciliation session is closed")
