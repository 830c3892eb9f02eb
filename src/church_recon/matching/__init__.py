"""
Reconciliation of bank transactions against church contributor lists.

Provides:
- MatchingEngine: learned, automatic and unidentified matching plus ghosts
- rank_candidates / smart_candidates: manual-match ordering
- ReconciliationSession: manual review and learning
- church_ledger / ReconciliationCounts: report summaries
- load_contributor_file: contributor list loading
"""

from .contributors import load_contributor_file, parse_contributor_rows
from .engine import MatchingEngine, ReconciliationCancelled
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
from .ranking import RankedCandidate, rank_candidates, smart_candidates
from .session import ReconciliationSession, SessionClosedError
from .summary import ChurchLedger, ReconciliationCounts, church_ledger, group_by_church

__all__ = [
    "UNIDENTIFIED_CHURCH",
    "Church",
    "ChurchLedger",
    "Contributor",
    "ContributorFile",
    "Divergence",
    "LearnedAssociation",
    "MatchMethod",
    "MatchResult",
    "MatchingEngine",
    "RankedCandidate",
    "ReconciliationCancelled",
    "ReconciliationCounts",
    "ReconciliationSession",
    "ReconciliationStatus",
    "SessionClosedError",
    "Transaction",
    "church_ledger",
    "group_by_church",
    "load_contributor_file",
    "parse_contributor_rows",
    "rank_candidates",
    "smart_candidates",
]
