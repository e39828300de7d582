"""
golfbets ledger - write path and audit trail

The reconciler persists settlement diffs under optimistic concurrency.
The audit log is the append-only, replayable history of those diffs.
"""

from golfbets.ledger.audit import AuditLog, AuditRecord, AuditVerification
from golfbets.ledger.reconciler import LedgerReconciler
from golfbets.ledger.store import InMemoryLedgerStore, InMemoryScoreStore, apply_diff

__all__ = [
    "AuditLog",
    "AuditRecord",
    "AuditVerification",
    "InMemoryLedgerStore",
    "InMemoryScoreStore",
    "LedgerReconciler",
    "apply_diff",
]
