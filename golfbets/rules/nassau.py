"""
Nassau: front nine, back nine and overall, each an independent match-play
contest worth the stake.

With more than two participants the bet is played as every pairwise
Nassau, each evaluated on its own.

Presses (params.presses): when a contest's margin first reaches
params.press_threshold (default 2), a new contest at the same stake starts
on the next hole and runs to the end of the segment. A press can itself be
pressed unless params.nested_presses is false. The margin must drop back
below the threshold before the same contest can press again.
"""

from typing import List, Sequence, Tuple

from golfbets.core.exceptions import InvalidConfiguration
from golfbets.core.models import Bet, Match
from golfbets.rules.base import (
    BetResult,
    Contest,
    ScoreCard,
    bool_param,
    combine_status,
    pairs,
    validate_common,
)


DEFAULT_PRESS_THRESHOLD = 2


def segments_for(holes: int) -> List[Tuple[str, List[int]]]:
    """18 holes → front/back/overall. A 9-hole round is one overall segment."""
    if holes == 18:
        return [
            ("front", list(range(1, 10))),
            ("back", list(range(10, 19))),
            ("overall", list(range(1, 19))),
        ]
    if holes == 9:
        return [("overall", list(range(1, 10)))]
    raise InvalidConfiguration("Nassau needs a 9 or 18 hole round", {"holes": holes})


def validate(bet: Bet, match: Match) -> None:
    validate_common(bet, match)
    segments_for(match.holes)
    bool_param(bet, "presses", False)
    bool_param(bet, "nested_presses", True)
    threshold = bet.param("press_threshold", DEFAULT_PRESS_THRESHOLD)
    if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 1:
        raise InvalidConfiguration(
            "press_threshold must be a positive integer",
            {"bet_id": bet.bet_id, "press_threshold": threshold},
        )


def play_segment(
    card: ScoreCard,
    a: str,
    b: str,
    label: str,
    holes: Sequence[int],
    presses: bool = False,
    threshold: int = DEFAULT_PRESS_THRESHOLD,
    nested_presses: bool = True,
) -> List[Contest]:
    """
    Play one segment and any presses it spawns.

    Returns the segment contest first, then presses in creation order.
    Play stops at the first hole either side has not scored; contests
    not complete by then are pending.
    """
    contests = [Contest(label, a, b, holes)]
    armed = [True]

    for i, hole in enumerate(holes):
        scores = card.hole_scores(hole, [a, b])
        if scores is None:
            break

        for idx, contest in enumerate(list(contests)):
            if contest.complete or not contest.covers(hole):
                continue
            contest.step(hole, scores[a], scores[b])

            if not presses or (idx > 0 and not nested_presses):
                continue
            if abs(contest.up) < threshold:
                armed[idx] = True
                continue
            if armed[idx] and i + 1 < len(holes):
                contests.append(
                    Contest(f"{label} press {len(contests)}", a, b, holes[i + 1:])
                )
                armed.append(True)
            armed[idx] = False

    return contests


def evaluate(bet: Bet, card: ScoreCard) -> BetResult:
    presses = bool_param(bet, "presses", False)
    nested = bool_param(bet, "nested_presses", True)
    threshold = bet.param("press_threshold", DEFAULT_PRESS_THRESHOLD)
    holes = len(card.holes)

    result = BetResult(bet_id=bet.bet_id, status=None)
    statuses = []

    for a, b in pairs(card.participant_ids):
        heading = f"{card.name(a)} v {card.name(b)}"
        for label, segment_holes in segments_for(holes):
            for contest in play_segment(card, a, b, label, segment_holes, presses, threshold, nested):
                statuses.append(contest.status)
                transfer = contest.transfer(bet.stake)
                if transfer is not None:
                    result.transfers.append(transfer)
                result.explanation.append(f"{heading}, {contest.describe(card)}")

    result.status = combine_status(statuses)
    return result
