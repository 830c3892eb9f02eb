"""
Services: reconciliation runs over statements and contributor lists.
"""

from .reconciliation import ReconciliationResult, ReconciliationService, ReconciliationState

__all__ = ["ReconciliationResult", "ReconciliationService", "ReconciliationState"]
