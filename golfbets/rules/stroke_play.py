"""
Stroke play: lowest total over the configured holes wins the stake from
every other participant.

Totals are only compared once every participant has a score on every
hole in range (params.first_hole..params.last_hole, default the whole
round). Tied leaders split each loser's stake evenly; the indivisible
remainder stays unallocated and is reported.
"""

from typing import List

from golfbets.core.exceptions import InvalidConfiguration
from golfbets.core.models import Bet, Match
from golfbets.rules.base import (
    BetResult,
    ResultStatus,
    ScoreCard,
    Transfer,
    validate_common,
)


def hole_range(bet: Bet, holes: int) -> List[int]:
    first = bet.param("first_hole", 1)
    last = bet.param("last_hole", holes)
    if (
        isinstance(first, bool) or isinstance(last, bool)
        or not isinstance(first, int) or not isinstance(last, int)
        or not 1 <= first <= last <= holes
    ):
        raise InvalidConfiguration(
            f"stroke play range must lie within holes 1..{holes}",
            {"bet_id": bet.bet_id, "first_hole": first, "last_hole": last},
        )
    return list(range(first, last + 1))


def validate(bet: Bet, match: Match) -> None:
    validate_common(bet, match)
    hole_range(bet, match.holes)


def evaluate(bet: Bet, card: ScoreCard) -> BetResult:
    holes = hole_range(bet, len(card.holes))
    result = BetResult(bet_id=bet.bet_id, status=ResultStatus.PENDING)

    totals = {pid: 0 for pid in card.participant_ids}
    missing = 0
    for hole in holes:
        for pid in card.participant_ids:
            value = card.score(pid, hole)
            if value is None:
                missing += 1
            else:
                totals[pid] += value

    span = f"holes {holes[0]}-{holes[-1]}"
    if missing:
        result.explanation.append(
            f"pending: {missing} score(s) still missing on {span}, totals not compared"
        )
        return result

    result.status = ResultStatus.SETTLED
    standings = ", ".join(
        f"{card.name(pid)} {totals[pid]}"
        for pid in sorted(totals, key=lambda p: (totals[p], p))
    )
    result.explanation.append(f"totals on {span}: {standings}")

    low = min(totals.values())
    leaders = sorted(pid for pid, total in totals.items() if total == low)
    losers = [pid for pid in card.participant_ids if pid not in leaders]

    if not losers:
        result.explanation.append("everyone tied, no money changes hands")
        return result

    share, remainder = divmod(bet.stake, len(leaders))
    for loser in losers:
        if share > 0:
            for leader in leaders:
                result.transfers.append(
                    Transfer(debtor=loser, creditor=leader, amount=share, label="stroke play")
                )
        result.unallocated += remainder

    names = " and ".join(card.name(pid) for pid in leaders)
    if len(leaders) == 1:
        result.explanation.append(f"{names} wins {bet.stake} from each other player")
    else:
        result.explanation.append(f"{names} tie at {low} and split each stake, {share} apiece")
    if result.unallocated:
        result.explanation.append(f"{result.unallocated} unallocated from uneven split")
    return result
