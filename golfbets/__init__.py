"""
golfbets/__init__.py

golfbets: settlement engine for golf side bets.

Nassau, skins, match play and stroke play wagers are settled from a
versioned score snapshot into a minimal ledger diff with a readable
explanation per bet. Settlement is pure and deterministic; a stale diff
is rejected, never merged.
"""

__version__ = "0.3.0"

from golfbets.core.exceptions import (
    AuditLogError,
    GolfBetsError,
    InvalidConfiguration,
    InvariantViolation,
    StaleSnapshot,
    ValidationError,
    VersionConflict,
)
from golfbets.core.models import (
    AuditEntry,
    Bet,
    BetType,
    LedgerDiff,
    LedgerEntry,
    LedgerScope,
    Match,
    MatchStatus,
    Participant,
    Score,
    ScoreSnapshot,
    ScoringMode,
    TeeBox,
)
from golfbets.config import MatchSnapshot
from golfbets.ledger import AuditLog, InMemoryLedgerStore, InMemoryScoreStore, LedgerReconciler
from golfbets.settlement import Settlement, SettlementEngine

__all__ = [
    # Model
    "AuditEntry",
    "Bet",
    "BetType",
    "LedgerDiff",
    "LedgerEntry",
    "LedgerScope",
    "Match",
    "MatchStatus",
    "Participant",
    "Score",
    "ScoreSnapshot",
    "ScoringMode",
    "TeeBox",
    # Settlement
    "MatchSnapshot",
    "Settlement",
    "SettlementEngine",
    # Ledger
    "AuditLog",
    "InMemoryLedgerStore",
    "InMemoryScoreStore",
    "LedgerReconciler",
    # Errors
    "GolfBetsError",
    "ValidationError",
    "InvalidConfiguration",
    "StaleSnapshot",
    "VersionConflict",
    "InvariantViolation",
    "AuditLogError",
]
