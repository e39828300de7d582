"""
golfbets bet rules

One evaluator module per BetType. The dispatch table below is closed:
adding a BetType without registering its module fails at import time.

Each module exposes:
    validate(bet, match)  → raises InvalidConfiguration
    evaluate(bet, card)   → BetResult (pure, no I/O, no clock)
"""

from golfbets.core.models import Bet, BetType, Match
from golfbets.rules import match_play, nassau, skins, stroke_play
from golfbets.rules.base import BetResult, ResultStatus, ScoreCard, Transfer

EVALUATORS = {
    BetType.NASSAU:      nassau,
    BetType.SKINS:       skins,
    BetType.MATCH_PLAY:  match_play,
    BetType.STROKE_PLAY: stroke_play,
}

_missing = set(BetType) - set(EVALUATORS)
if _missing:
    raise RuntimeError(f"No evaluator registered for {sorted(t.value for t in _missing)}")


def validate_bet(bet: Bet, match: Match) -> None:
    EVALUATORS[bet.bet_type].validate(bet, match)


def evaluate_bet(bet: Bet, card: ScoreCard) -> BetResult:
    return EVALUATORS[bet.bet_type].evaluate(bet, card)


__all__ = [
    "EVALUATORS",
    "BetResult",
    "ResultStatus",
    "ScoreCard",
    "Transfer",
    "validate_bet",
    "evaluate_bet",
]
