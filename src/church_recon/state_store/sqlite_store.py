"""
SQLite-based state store implementation.

Tables:
- learned_associations: human-confirmed description → church/contributor
- reconciliation_runs: audit trail of reconciliation runs
"""

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..matching.models import LearnedAssociation

logger = logging.getLogger(__name__)


def _association_from_row(row: sqlite3.Row) -> LearnedAssociation:
    """Create from database row."""
    return LearnedAssociation(
        normalized_description=row["normalized_description"],
        church_id=row["church_id"],
        contributor_name=row["contributor_name"],
        created_at=row["created_at"],
    )


class StateStore:
    """
    SQLite-based state store.

    Provides persistent tracking of:
    - Learned associations (append-only; the first write for a key wins)
    - Reconciliation runs (audit trail)

    Thread-safe for single-writer scenarios.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path | str):
        """
        Initialize state store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS learned_associations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    normalized_description TEXT NOT NULL UNIQUE,
                    church_id TEXT NOT NULL,
                    contributor_name TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS reconciliation_runs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    started_at TEXT NOT NULL,
                    state TEXT NOT NULL,
                    duration_ms INTEGER,
                    files_total INTEGER NOT NULL DEFAULT 0,
                    files_failed INTEGER NOT NULL DEFAULT 0,
                    counts_json TEXT,  -- JSON object
                    errors_json TEXT  -- JSON array
                )
            """
            )

            conn.execute(
                "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                (self.SCHEMA_VERSION,),
            )

    # Learned association methods

    def save_learned_association(self, association: LearnedAssociation) -> bool:
        """Insert an association. Returns False when its key already exists."""
        created_at = association.created_at or datetime.now(timezone.utc).isoformat().replace(
            "+00:00", "Z"
        )
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO learned_associations
                (normalized_description, church_id, contributor_name, created_at)
                VALUES (?, ?, ?, ?)
            """,
                (
                    association.normalized_description,
                    association.church_id,
                    association.contributor_name,
                    created_at,
                ),
            )
            saved = cursor.rowcount > 0

        if not saved:
            logger.debug(
                "Learned association for %r already exists", association.normalized_description
            )
        return saved

    def get_learned_associations(self) -> list[LearnedAssociation]:
        """Get all learned associations in insertion order."""
        with self._transaction() as conn:
            rows = conn.execute("SELECT * FROM learned_associations ORDER BY id").fetchall()
            return [_association_from_row(row) for row in rows]

    def get_learned_association(self, normalized_description: str) -> LearnedAssociation | None:
        """Get a learned association by its description key."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM learned_associations WHERE normalized_description = ?",
                (normalized_description,),
            ).fetchone()
            return _association_from_row(row) if row else None

    def delete_learned_association(self, normalized_description: str) -> bool:
        """Forget a learned association. Returns True if one was deleted."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM learned_associations WHERE normalized_description = ?",
                (normalized_description,),
            )
            return cursor.rowcount > 0

    # Reconciliation run methods

    def record_run(self, result: Any, started_at: str | None = None) -> int:
        """Record a finished reconciliation run. Returns the run ID.

        Args:
            result: A ReconciliationResult.
            started_at: ISO timestamp of the run start (defaults to now).
        """
        now = started_at or datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        counts = result.counts.to_dict() if result.counts is not None else None

        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO reconciliation_runs
                (started_at, state, duration_ms, files_total, files_failed, counts_json, errors_json)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    now,
                    result.state.value,
                    result.duration_ms,
                    len(result.file_reports),
                    result.files_failed,
                    json.dumps(counts) if counts else None,
                    json.dumps(result.errors),
                ),
            )
            return cursor.lastrowid or 0

    def get_runs(self, limit: int = 20) -> list[dict[str, Any]]:
        """Get the most recent reconciliation runs, newest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM reconciliation_runs ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()

            runs = []
            for row in rows:
                run = dict(row)
                run["counts"] = json.loads(run.pop("counts_json") or "null")
                run["errors"] = json.loads(run.pop("errors_json") or "[]")
                runs.append(run)
            return runs

    # Statistics

    def get_stats(self) -> dict[str, Any]:
        """Get store statistics."""
        with self._transaction() as conn:
            learned = conn.execute(
                "SELECT COUNT(*) as count FROM learned_associations"
            ).fetchone()
            churches = conn.execute(
                "SELECT COUNT(DISTINCT church_id) as count FROM learned_associations"
            ).fetchone()
            runs = conn.execute("SELECT COUNT(*) as count FROM reconciliation_runs").fetchone()
            failed = conn.execute(
                "SELECT COUNT(*) as count FROM reconciliation_runs WHERE state = ?",
                ("FAILED",),
            ).fetchone()

            return {
                "learned_associations": learned["count"] if learned else 0,
                "churches_learned": churches["count"] if churches else 0,
                "runs_total": runs["count"] if runs else 0,
                "runs_failed": failed["count"] if failed else 0,
            }
