"""
Match play between exactly two participants.

The match closes once the leader is more holes up than there are holes
left; scores on later holes are ignored from then on. The winner takes
one stake, or stake × final margin when params.pay_by_margin is set.
All square pays nothing.
"""

from golfbets.core.exceptions import InvalidConfiguration
from golfbets.core.models import Bet, Match
from golfbets.rules.base import (
    BetResult,
    Contest,
    ScoreCard,
    bool_param,
    validate_common,
)


def validate(bet: Bet, match: Match) -> None:
    validate_common(bet, match)
    if len(bet.participant_ids) != 2:
        raise InvalidConfiguration(
            "match play needs exactly two participants",
            {"bet_id": bet.bet_id, "participants": len(bet.participant_ids)},
        )
    bool_param(bet, "pay_by_margin", False)


def evaluate(bet: Bet, card: ScoreCard) -> BetResult:
    a, b = card.participant_ids
    contest = Contest("match", a, b, card.holes)

    for hole in card.holes:
        if contest.complete:
            break
        scores = card.hole_scores(hole)
        if scores is None:
            break
        contest.step(hole, scores[a], scores[b])

    amount = bet.stake
    if bool_param(bet, "pay_by_margin", False):
        amount = bet.stake * abs(contest.up)

    result = BetResult(bet_id=bet.bet_id, status=contest.status)
    transfer = contest.transfer(amount)
    if transfer is not None:
        result.transfers.append(transfer)

    result.explanation.append(f"{card.name(a)} v {card.name(b)}, {contest.describe(card)}")
    if contest.closed and contest.remaining:
        result.explanation.append(
            f"scores after hole {contest.closed_at} do not affect the result"
        )
    return result
