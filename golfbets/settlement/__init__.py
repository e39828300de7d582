"""
golfbets Settlement Engine

Turns a score snapshot and a match's bets into ledger entries, the
minimal diff against the stored ledger, and one audit entry.

Critical Invariants:
- Every bet is zero-sum within a run
- Evaluators never see each other's output
- Same inputs, same ledger and diff (no clock, no external state)
- Settling twice on the same inputs yields an empty second diff
"""

from golfbets.settlement.engine import Settlement, SettlementEngine

__all__ = ["Settlement", "SettlementEngine"]
