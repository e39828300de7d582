"""
Skins: the sole lowest score on a hole wins that hole's skin.

Ties for low either carry the skin onto the next evaluated hole
(params.carry_over, default true) or forfeit it. Holes where anyone has
not scored are skipped, neither evaluated nor carried.

Payout (params.payout):
    per_opponent  every opponent pays stake × skins won (default)
    split_pot     the pot (stake × skins won) is split evenly across the
                  opponents; any indivisible remainder is unallocated
"""

from golfbets.core.exceptions import InvalidConfiguration
from golfbets.core.models import Bet, Match
from golfbets.rules.base import (
    BetResult,
    ResultStatus,
    ScoreCard,
    Transfer,
    bool_param,
    validate_common,
)


PER_OPPONENT = "per_opponent"
SPLIT_POT    = "split_pot"

_PAYOUT_RULES = (PER_OPPONENT, SPLIT_POT)


def validate(bet: Bet, match: Match) -> None:
    validate_common(bet, match)
    bool_param(bet, "carry_over", True)
    payout = bet.param("payout", PER_OPPONENT)
    if payout not in _PAYOUT_RULES:
        raise InvalidConfiguration(
            f"payout must be one of {list(_PAYOUT_RULES)}",
            {"bet_id": bet.bet_id, "payout": payout},
        )


def evaluate(bet: Bet, card: ScoreCard) -> BetResult:
    carry_over = bool_param(bet, "carry_over", True)
    payout = bet.param("payout", PER_OPPONENT)

    result = BetResult(bet_id=bet.bet_id, status=None)
    carried = 0
    skipped = []

    for hole in card.holes:
        scores = card.hole_scores(hole)
        if scores is None:
            skipped.append(hole)
            continue

        skins = 1 + carried
        low = min(scores.values())
        leaders = sorted(pid for pid, value in scores.items() if value == low)

        if len(leaders) > 1:
            names = ", ".join(card.name(pid) for pid in leaders)
            if carry_over:
                carried = skins
                result.explanation.append(
                    f"hole {hole}: {names} tie at {low}, {skins} skin(s) carry over"
                )
            else:
                carried = 0
                result.explanation.append(
                    f"hole {hole}: {names} tie at {low}, skin forfeited"
                )
            continue

        winner = leaders[0]
        opponents = [pid for pid in card.participant_ids if pid != winner]
        pot = bet.stake * skins
        if payout == SPLIT_POT:
            share, remainder = divmod(pot, len(opponents))
            result.unallocated += remainder
        else:
            share, remainder = pot, 0

        label = f"hole {hole} skin" if skins == 1 else f"hole {hole} skins x{skins}"
        if share > 0:
            for pid in opponents:
                result.transfers.append(Transfer(debtor=pid, creditor=winner, amount=share, label=label))

        line = f"hole {hole}: {card.name(winner)} wins {skins} skin(s) with {low}, {share} from each opponent"
        if remainder:
            line += f", {remainder} unallocated"
        result.explanation.append(line)
        carried = 0

    if carried and skipped:
        result.explanation.append(
            f"{carried} skin(s) worth {bet.stake * carried} carried, pending holes "
            + ", ".join(str(h) for h in skipped)
        )
    elif carried:
        result.explanation.append(
            f"{carried} skin(s) worth {bet.stake * carried} left unclaimed"
        )
    if skipped:
        result.explanation.append(
            "not yet played: holes " + ", ".join(str(h) for h in skipped)
        )

    if not skipped:
        result.status = ResultStatus.SETTLED
    elif len(skipped) == len(card.holes):
        result.status = ResultStatus.PENDING
    else:
        result.status = ResultStatus.PARTIAL
    return result
