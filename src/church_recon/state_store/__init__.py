"""
State Store (SQLite-based).

Lightweight persistent DB for tracking:
- Learned associations between bank descriptions and contributors
- Reconciliation runs

Enforces uniqueness on the normalized description.
"""

from .sqlite_store import StateStore

__all__ = [
    "StateStore",
]
