"""Tests for the contributor matching engine."""

from __future__ import annotations

import pytest

from church_recon.ingestion import NormalizedTransaction, OperationCancelled
from church_recon.matching import (
    UNIDENTIFIED_CHURCH,
    Church,
    Contributor,
    ContributorFile,
    LearnedAssociation,
    MatchingEngine,
    MatchMethod,
    ReconciliationCancelled,
    ReconciliationStatus,
    Transaction,
)


def tx(id: str, description: str, amount: float = 100.0, date: str = "2024-03-05") -> Transaction:
    return Transaction.from_normalized(NormalizedTransaction(date, description, amount), id)


def contributors(church: Church, *entries: tuple[str, float, str]) -> ContributorFile:
    return ContributorFile(
        church=church,
        contributors=[Contributor.create(name, amount, date=date) for name, amount, date in entries],
    )


@pytest.fixture
def engine() -> MatchingEngine:
    return MatchingEngine(similarity_threshold=80, day_tolerance=3)


class TestTransactionModel:
    """Tests for Transaction construction."""

    def test_from_normalized(self):
        """Test derived description and type labels."""
        transaction = tx("tx-1", "PIX RECEBIDO JOAO DA SILVA", 150.0)
        assert transaction.description == "PIX RECEBIDO JOAO DA SILVA"
        assert transaction.cleaned_description == "JOAO DA SILVA"
        assert transaction.payment_method == "PIX"
        assert transaction.contribution_type == "PIX"

    def test_contributor_create(self):
        """Test contributors get a comparison key."""
        contributor = Contributor.create("João da Silva", 150.0)
        assert contributor.normalized_name == "joao da silva"
        assert contributor.cleaned_name == "João da Silva"


class TestAutomaticMatching:
    """Tests for name-similarity matching."""

    def test_exact_name_is_identified(self, engine, church_a):
        """Test an exact name match identifies the transaction."""
        files = [contributors(church_a, ("João da Silva", 150.0, "2024-03-05"))]
        results = engine.match([tx("tx-1", "PIX RECEBIDO JOAO DA SILVA", 150.0)], files)

        assert len(results) == 1
        result = results[0]
        assert result.status == ReconciliationStatus.IDENTIFIED
        assert result.match_method == MatchMethod.AUTOMATIC
        assert result.church == church_a
        assert result.contributor.name == "João da Silva"
        assert result.contributor_amount == 150.0
        assert result.similarity == pytest.approx(100.0)

    def test_threshold_is_inclusive(self, engine, church_a):
        """Test a score equal to the threshold is enough."""
        files = [contributors(church_a, ("João da Silva", 150.0, ""))]
        results = engine.match([tx("tx-1", "JOAO SILVA")], files)
        assert results[0].status == ReconciliationStatus.IDENTIFIED
        assert results[0].similarity == pytest.approx(80.0)

    def test_below_threshold_is_unidentified(self, engine, church_a):
        """Test weak matches stay unidentified with a suggestion."""
        files = [contributors(church_a, ("João da Silva", 150.0, ""))]
        results = engine.match([tx("tx-1", "JOAO SILVA SANTOS")], files)

        result = results[0]
        assert result.status == ReconciliationStatus.UNIDENTIFIED
        assert result.church == UNIDENTIFIED_CHURCH
        assert result.contributor is None
        assert result.match_method is None
        assert result.contributor_amount is None
        assert result.similarity == pytest.approx(200 / 3)
        assert result.suggestion.name == "João da Silva"

    def test_weak_scores_give_no_suggestion(self, engine, church_a):
        """Test scores of 40 or less are not suggested."""
        files = [contributors(church_a, ("João da Silva", 150.0, ""))]
        results = engine.match([tx("tx-1", "JOAO PEREIRA")], files)
        assert results[0].suggestion is None

    def test_dates_outside_tolerance_are_skipped(self, engine, church_a):
        """Test contributors dated too far from the transaction never match."""
        files = [contributors(church_a, ("João da Silva", 150.0, "2024-03-20"))]
        results = engine.match([tx("tx-1", "JOAO DA SILVA", date="2024-03-05")], files)

        assert results[0].status == ReconciliationStatus.UNIDENTIFIED
        assert results[1].is_ghost

    def test_undated_contributors_match_any_date(self, engine, church_a):
        """Test a missing date does not block a match."""
        files = [contributors(church_a, ("João da Silva", 150.0, ""))]
        results = engine.match([tx("tx-1", "JOAO DA SILVA", date="2024-12-31")], files)
        assert results[0].status == ReconciliationStatus.IDENTIFIED

    def test_ties_keep_first_candidate(self, engine, church_a, church_b):
        """Test equal scores resolve to the first list and row."""
        files = [
            contributors(church_a, ("Ana Paula", 50.0, "")),
            contributors(church_b, ("Ana Paula", 60.0, "")),
        ]
        results = engine.match([tx("tx-1", "ANA PAULA")], files)
        assert results[0].church == church_a
        assert results[0].contributor_amount == 50.0

    def test_contributor_can_be_reused(self, engine, church_a):
        """Test two transactions may match the same contributor."""
        files = [contributors(church_a, ("Ana Paula", 50.0, ""))]
        results = engine.match([tx("tx-1", "ANA PAULA"), tx("tx-2", "PIX ANA PAULA")], files)

        assert [r.status for r in results] == [ReconciliationStatus.IDENTIFIED] * 2

    def test_ignore_keywords(self, church_a):
        """Test configured keywords are ignored when comparing names."""
        engine = MatchingEngine(ignore_keywords=["OFERTA"])
        files = [contributors(church_a, ("Ana Paula", 50.0, ""))]
        results = engine.match([tx("tx-1", "OFERTA ANA PAULA")], files)
        assert results[0].similarity == pytest.approx(100.0)

    def test_empty_inputs(self, engine):
        """Test nothing in, nothing out."""
        assert engine.match([], []) == []


class TestGhosts:
    """Tests for pending (ghost) entries."""

    def test_unclaimed_contributors_become_ghosts(self, engine, church_a):
        """Test ghosts follow the transaction results in list order."""
        files = [
            contributors(
                church_a,
                ("João da Silva", 150.0, "2024-03-05"),
                ("Pedro Santos", 80.0, "2024-03-10"),
            )
        ]
        results = engine.match([tx("tx-1", "JOAO DA SILVA", 150.0)], files)

        assert len(results) == 2
        ghost = results[1]
        assert ghost.is_ghost
        assert ghost.status == ReconciliationStatus.PENDING
        assert ghost.transaction.id == "ghost-igreja-a-1"
        assert ghost.transaction.amount == 0.0
        assert ghost.transaction.description == "Pedro Santos"
        assert ghost.transaction.date == "2024-03-10"
        assert ghost.contributor_amount == 80.0
        assert ghost.match_method is None
        assert ghost.church == church_a

    def test_ghost_ids_are_deterministic(self, engine, church_a):
        """Test repeated runs produce the same ghost ids."""
        files = [contributors(church_a, ("Ana", 10.0, ""), ("Bia", 20.0, ""))]
        first = [r.transaction.id for r in engine.match([], files)]
        second = [r.transaction.id for r in engine.match([], files)]
        assert first == second == ["ghost-igreja-a-0", "ghost-igreja-a-1"]

    def test_duplicate_church_lists_are_rejected(self, engine, church_a):
        """Test two lists for one church cannot produce clashing ghost ids."""
        files = [
            contributors(church_a, ("Ana", 10.0, "")),
            contributors(church_a, ("Bia", 20.0, "")),
        ]
        with pytest.raises(ValueError, match="igreja-a"):
            engine.match([], files)


class TestLearnedAssociations:
    """Tests for learned matching and divergence detection."""

    def test_learned_takes_precedence(self, engine, church_a, church_b):
        """Test a learned association beats a perfect fuzzy match."""
        files = [
            contributors(church_a, ("João da Silva", 150.0, "")),
            contributors(church_b, ("João da Silva", 150.0, "")),
        ]
        learned = [LearnedAssociation("joao da silva", "igreja-b", "João da Silva")]
        results = engine.match([tx("tx-1", "PIX RECEBIDO JOAO DA SILVA", 150.0)], files, learned)

        result = results[0]
        assert result.match_method == MatchMethod.LEARNED
        assert result.church == church_b
        assert result.similarity == 100.0
        assert result.divergence is None
        # Church A's entry was not claimed
        assert [r.transaction.id for r in results[1:]] == ["ghost-igreja-a-0"]

    def test_learned_contributor_missing_from_list(self, engine):
        """Test the association applies even when the list lacks the contributor."""
        learned = [LearnedAssociation("maria oliveira", "igreja-x", "Maria Oliveira")]
        results = engine.match([tx("tx-1", "MARIA OLIVEIRA", 200.0)], [], learned)

        result = results[0]
        assert result.status == ReconciliationStatus.IDENTIFIED
        assert result.church == Church(id="igreja-x", name="igreja-x")
        assert result.contributor.name == "Maria Oliveira"
        assert result.contributor_amount == 200.0

    def test_latest_association_wins(self, engine, church_a, church_b):
        """Test a later association for the same key replaces an earlier one."""
        learned = [
            LearnedAssociation("ana paula", "igreja-a", "Ana Paula"),
            LearnedAssociation("ana paula", "igreja-b", "Ana Paula"),
        ]
        files = [contributors(church_a), contributors(church_b)]
        results = engine.match([tx("tx-1", "ANA PAULA")], files, learned)
        assert results[0].church == church_b

    def test_divergence(self, engine, church_a, church_b):
        """Test a match on another church than history expects is flagged."""
        files = [
            contributors(church_a, ("João da Silva", 150.0, "")),
            contributors(church_b),
        ]
        learned = [LearnedAssociation("j silva", "igreja-b", "João da Silva")]
        results = engine.match([tx("tx-1", "PIX RECEBIDO JOAO DA SILVA", 150.0)], files, learned)

        result = results[0]
        assert result.match_method == MatchMethod.AUTOMATIC
        assert result.church == church_a
        assert result.divergence.expected_church == church_b
        assert result.divergence.actual_church == church_a

    def test_to_dict(self, engine, church_a):
        """Test results serialize with enum values."""
        files = [contributors(church_a, ("Ana Paula", 50.0, ""))]
        data = engine.match([tx("tx-1", "ANA PAULA", 50.0)], files)[0].to_dict()

        assert data["status"] == "IDENTIFICADO"
        assert data["match_method"] == "AUTOMATIC"
        assert data["church"]["id"] == "igreja-a"
        assert data["transaction"]["id"] == "tx-1"
        assert data["divergence"] is None


class TestMatchControl:
    """Tests for cancellation and progress."""

    def test_cancellation(self, engine, church_a):
        """Test the cancel check aborts matching."""
        with pytest.raises(ReconciliationCancelled) as exc_info:
            engine.match([tx("tx-1", "ANA")], [contributors(church_a)], cancel_check=lambda: True)
        assert isinstance(exc_info.value, OperationCancelled)

    def test_progress(self, engine, church_a):
        """Test progress is reported per transaction plus a final call."""
        calls = []
        engine.match(
            [tx("tx-1", "ANA"), tx("tx-2", "BIA")],
            [contributors(church_a)],
            progress=lambda *args: calls.append(args),
        )
        assert calls == [("match", 0, 2), ("match", 1, 2), ("match", 2, 2)]


class TestMatchInvariants:
    """Tests for properties that hold for every match() call."""

    @pytest.fixture
    def inputs(self, church_a, church_b):
        transactions = [
            tx("tx-1", "PIX RECEBIDO JOAO DA SILVA", 150.0, "2024-03-05"),
            tx("tx-2", "PIX RECEBIDO JOAO DA SILVA", 150.0, "2024-03-06"),
            tx("tx-3", "PIX RECEBIDO MARIA OLIVEIRA", 200.0, "2024-03-06"),
            tx("tx-4", "TED ANA PAULA", 50.0, "2024-03-07"),
            tx("tx-5", "DEPOSITO", 30.0, "2024-03-08"),
        ]
        files = [
            contributors(
                church_a,
                ("João da Silva", 150.0, "2024-03-05"),
                ("Pedro Santos", 80.0, "2024-03-10"),
            ),
            contributors(church_b, ("Ana Paula", 50.0, ""), ("Carla Souza", 40.0, "")),
        ]
        learned = [LearnedAssociation("maria oliveira", "igreja-b", "Maria Oliveira")]
        return transactions, files, learned

    def test_idempotent(self, engine, inputs):
        """Test the same inputs always give the same results."""
        transactions, files, learned = inputs
        first = [r.to_dict() for r in engine.match(transactions, files, learned)]
        second = [r.to_dict() for r in engine.match(transactions, files, learned)]
        assert first == second

    def test_each_transaction_has_one_result(self, engine, inputs):
        """Test no transaction is matched twice and ghost ids never clash."""
        transactions, files, learned = inputs
        results = engine.match(transactions, files, learned)

        ids = [r.transaction.id for r in results]
        assert len(ids) == len(set(ids))

        tx_ids = [r.transaction.id for r in results if not r.is_ghost]
        ghost_ids = {r.transaction.id for r in results if r.is_ghost}
        assert tx_ids == [t.id for t in transactions]
        assert ghost_ids
        assert ghost_ids.isdisjoint(tx_ids)
