"""Tests for state store module."""

import sqlite3

import pytest

from church_recon.matching import LearnedAssociation, ReconciliationCounts
from church_recon.services import ReconciliationResult, ReconciliationState
from church_recon.state_store import StateStore


class TestStateStore:
    """Tests for StateStore."""

    @pytest.fixture
    def store(self, temp_db):
        """Create a fresh state store."""
        return StateStore(temp_db)

    def test_init_creates_db(self, temp_db):
        """Test that initialization creates database file and tables."""
        StateStore(temp_db)
        assert temp_db.exists()

        conn = sqlite3.connect(temp_db)
        tables = {
            row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        conn.close()
        assert {"schema_version", "learned_associations", "reconciliation_runs"} <= tables

    def test_init_creates_parent_directories(self, tmp_path):
        """Test nested database paths are created."""
        db_path = tmp_path / "nested" / "dir" / "state.db"
        StateStore(db_path)
        assert db_path.exists()


class TestLearnedAssociations:
    """Tests for learned association persistence."""

    @pytest.fixture
    def store(self, temp_db):
        return StateStore(temp_db)

    def test_save_and_get(self, store):
        """Test an association round-trips through the store."""
        association = LearnedAssociation(
            "joao da silva", "igreja-a", "João da Silva", "2024-03-05T10:00:00Z"
        )
        assert store.save_learned_association(association) is True
        assert store.get_learned_association("joao da silva") == association

    def test_first_write_wins(self, store):
        """Test a second association for the same key is ignored."""
        store.save_learned_association(LearnedAssociation("ana", "igreja-a", "Ana"))
        assert store.save_learned_association(LearnedAssociation("ana", "igreja-b", "Ana")) is False
        assert store.get_learned_association("ana").church_id == "igreja-a"

    def test_created_at_defaults_to_now(self, store):
        """Test a missing timestamp is filled in."""
        store.save_learned_association(LearnedAssociation("ana", "igreja-a", "Ana"))
        assert store.get_learned_association("ana").created_at.endswith("Z")

    def test_get_all_in_insertion_order(self, store):
        """Test associations come back in the order they were saved."""
        for key in ["bia", "ana", "carla"]:
            store.save_learned_association(LearnedAssociation(key, "igreja-a", key.title()))
        keys = [a.normalized_description for a in store.get_learned_associations()]
        assert keys == ["bia", "ana", "carla"]

    def test_get_missing(self, store):
        """Test unknown keys return None."""
        assert store.get_learned_association("nobody") is None

    def test_delete(self, store):
        """Test associations can be forgotten."""
        store.save_learned_association(LearnedAssociation("ana", "igreja-a", "Ana"))
        assert store.delete_learned_association("ana") is True
        assert store.delete_learned_association("ana") is False
        assert store.get_learned_associations() == []

    def test_persists_across_instances(self, temp_db):
        """Test data survives reopening the database."""
        StateStore(temp_db).save_learned_association(LearnedAssociation("ana", "igreja-a", "Ana"))
        assert StateStore(temp_db).get_learned_association("ana") is not None


class TestRuns:
    """Tests for the reconciliation run audit trail."""

    @pytest.fixture
    def store(self, temp_db):
        return StateStore(temp_db)

    def test_record_and_get_runs(self, store):
        """Test runs store state, counts and errors."""
        result = ReconciliationResult(
            state=ReconciliationState.COMPLETED,
            counts=ReconciliationCounts(total=2, identified=1, unidentified=1),
            files_failed=1,
            duration_ms=42,
            errors=["foto.png: Unsupported file type UNKNOWN"],
        )
        run_id = store.record_run(result, started_at="2024-03-05T10:00:00Z")
        assert run_id > 0

        runs = store.get_runs()
        assert len(runs) == 1
        run = runs[0]
        assert run["state"] == "COMPLETED"
        assert run["started_at"] == "2024-03-05T10:00:00Z"
        assert run["duration_ms"] == 42
        assert run["files_failed"] == 1
        assert run["counts"]["identified"] == 1
        assert run["errors"] == ["foto.png: Unsupported file type UNKNOWN"]

    def test_run_without_counts(self, store):
        """Test failed runs have no counts."""
        store.record_run(ReconciliationResult(state=ReconciliationState.FAILED))
        assert store.get_runs()[0]["counts"] is None

    def test_runs_newest_first_with_limit(self, store):
        """Test ordering and limiting."""
        for state in [ReconciliationState.COMPLETED, ReconciliationState.CANCELLED]:
            store.record_run(ReconciliationResult(state=state))
        runs = store.get_runs(limit=1)
        assert [run["state"] for run in runs] == ["CANCELLED"]

    def test_stats(self, store):
        """Test store statistics."""
        store.save_learned_association(LearnedAssociation("ana", "igreja-a", "Ana"))
        store.save_learned_association(LearnedAssociation("bia", "igreja-a", "Bia"))
        store.save_learned_association(LearnedAssociation("carla", "igreja-b", "Carla"))
        store.record_run(ReconciliationResult(state=ReconciliationState.COMPLETED))
        store.record_run(ReconciliationResult(state=ReconciliationState.FAILED))

        assert store.get_stats() == {
            "learned_associations": 3,
            "churches_learned": 2,
            "runs_total": 2,
            "runs_failed": 1,
        }
