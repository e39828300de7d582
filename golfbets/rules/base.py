"""
Shared types for bet rule evaluators.

An evaluator is a pure function:

    evaluate(bet, card) -> BetResult

It reads only the ScoreCard it is handed and never consults the clock,
the store, or another bet's result.
"""

from dataclasses import dataclass, field
from enum import Enum
from itertools import combinations
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from golfbets.core.exceptions import InvalidConfiguration
from golfbets.core.handicap import allocate, net_strokes
from golfbets.core.models import (
    Bet,
    Match,
    Participant,
    ScoreSnapshot,
    ScoringMode,
)


class ResultStatus(Enum):
    SETTLED = "settled"   # every part of the bet is decided
    PARTIAL = "partial"   # some parts decided, some still waiting on scores
    PENDING = "pending"   # nothing decided yet


@dataclass(frozen=True)
class Transfer:
    """debtor pays creditor amount for the part of the bet named by label."""
    debtor:   str
    creditor: str
    amount:   int
    label:    str = ""


@dataclass
class BetResult:
    bet_id:      str
    status:      ResultStatus
    transfers:   List[Transfer] = field(default_factory=list)
    explanation: List[str] = field(default_factory=list)
    unallocated: int = 0

    def balances(self) -> Dict[str, int]:
        """Signed net per participant: positive receives, negative pays."""
        totals: Dict[str, int] = {}
        for t in self.transfers:
            totals[t.debtor] = totals.get(t.debtor, 0) - t.amount
            totals[t.creditor] = totals.get(t.creditor, 0) + t.amount
        return totals


def combine_status(statuses: Sequence[ResultStatus]) -> ResultStatus:
    """SETTLED if all settled, PENDING if none are, PARTIAL otherwise."""
    if not statuses or all(s == ResultStatus.SETTLED for s in statuses):
        return ResultStatus.SETTLED
    if all(s == ResultStatus.PENDING for s in statuses):
        return ResultStatus.PENDING
    return ResultStatus.PARTIAL


# ─────────────────────────────────────────────────────────────
# ScoreCard
# ─────────────────────────────────────────────────────────────

class ScoreCard:
    """
    The scores one bet compares: gross, or net of each participant's
    handicap strokes, for the bet's participants only.
    """

    def __init__(
        self,
        participant_ids: Sequence[str],
        holes: Sequence[int],
        snapshot: ScoreSnapshot,
        strokes_received: Optional[Mapping[str, Mapping[int, int]]] = None,
        names: Optional[Mapping[str, str]] = None,
    ):
        self.participant_ids = list(participant_ids)
        self.holes = list(holes)
        self._snapshot = snapshot
        self._strokes_received = strokes_received or {}
        self._names = dict(names or {})

    @classmethod
    def for_bet(
        cls,
        bet: Bet,
        match: Match,
        participants: Mapping[str, Participant],
        snapshot: ScoreSnapshot,
    ) -> "ScoreCard":
        ids = sorted(bet.participant_ids)
        strokes_received = None
        if bet.scoring_mode == ScoringMode.NET:
            strokes_received = {
                pid: allocate(participants[pid].handicap_index, match.stroke_indexes, match.holes)
                for pid in ids
            }
        return cls(
            participant_ids=ids,
            holes=match.hole_numbers,
            snapshot=snapshot,
            strokes_received=strokes_received,
            names={pid: participants[pid].display_name for pid in ids},
        )

    def score(self, participant_id: str, hole: int) -> Optional[int]:
        gross = self._snapshot.strokes(participant_id, hole)
        received = self._strokes_received.get(participant_id)
        if received is None:
            return gross
        return net_strokes(gross, received.get(hole, 0))

    def hole_scores(self, hole: int, participant_ids: Sequence[str] = None) -> Optional[Dict[str, int]]:
        """All scores on a hole, or None if anyone has not recorded one."""
        scores = {}
        for pid in participant_ids or self.participant_ids:
            value = self.score(pid, hole)
            if value is None:
                return None
            scores[pid] = value
        return scores

    def name(self, participant_id: str) -> str:
        return self._names.get(participant_id, participant_id)


# ─────────────────────────────────────────────────────────────
# Head-to-head contest
# ─────────────────────────────────────────────────────────────

class Contest:
    """
    Hole-by-hole match between side a and side b over a run of holes.

    up > 0 means a leads. The contest closes as soon as |up| exceeds the
    holes left; later holes are then ignored.
    """

    def __init__(self, label: str, a: str, b: str, holes: Sequence[int]):
        self.label = label
        self.a = a
        self.b = b
        self.holes = list(holes)
        self.up = 0
        self.played = 0
        self.closed_at: Optional[int] = None

    @property
    def remaining(self) -> int:
        return len(self.holes) - self.played

    @property
    def closed(self) -> bool:
        return self.closed_at is not None

    @property
    def complete(self) -> bool:
        return self.closed or self.remaining == 0

    @property
    def dormie(self) -> bool:
        return not self.closed and self.remaining > 0 and abs(self.up) == self.remaining

    def covers(self, hole: int) -> bool:
        return hole in self.holes

    def step(self, hole: int, a_score: int, b_score: int) -> None:
        if self.complete:
            return
        if a_score < b_score:
            self.up += 1
        elif b_score < a_score:
            self.up -= 1
        self.played += 1
        if self.remaining > 0 and abs(self.up) > self.remaining:
            self.closed_at = hole

    @property
    def status(self) -> ResultStatus:
        return ResultStatus.SETTLED if self.complete else ResultStatus.PENDING

    def leader(self) -> Optional[str]:
        if self.up > 0:
            return self.a
        if self.up < 0:
            return self.b
        return None

    def trailer(self) -> Optional[str]:
        if self.up > 0:
            return self.b
        if self.up < 0:
            return self.a
        return None

    def transfer(self, amount: int) -> Optional[Transfer]:
        """What the loser pays once the contest is complete."""
        if not self.complete or self.up == 0 or amount <= 0:
            return None
        return Transfer(debtor=self.trailer(), creditor=self.leader(), amount=amount, label=self.label)

    def describe(self, card: ScoreCard) -> str:
        span = f"holes {self.holes[0]}-{self.holes[-1]}"
        if self.closed:
            return (
                f"{self.label} ({span}): {card.name(self.leader())} wins "
                f"{abs(self.up)}&{self.remaining}, closed out on hole {self.closed_at}"
            )
        if self.complete:
            if self.up == 0:
                return f"{self.label} ({span}): all square, no money changes hands"
            return f"{self.label} ({span}): {card.name(self.leader())} wins {abs(self.up)} up"
        standing = "all square" if self.up == 0 else f"{card.name(self.leader())} {abs(self.up)} up"
        note = ", dormie" if self.dormie else ""
        return (
            f"{self.label} ({span}): pending after {self.played} of {len(self.holes)} holes "
            f"({standing}{note})"
        )


# ─────────────────────────────────────────────────────────────
# Validation helpers
# ─────────────────────────────────────────────────────────────

def validate_common(bet: Bet, match: Match, min_participants: int = 2) -> None:
    """Checks shared by every bet type. Raises InvalidConfiguration."""
    details = {"bet_id": bet.bet_id, "type": bet.bet_type.value}
    if isinstance(bet.stake, bool) or not isinstance(bet.stake, int) or bet.stake <= 0:
        raise InvalidConfiguration("stake must be a positive integer amount", {**details, "stake": bet.stake})
    if len(set(bet.participant_ids)) != len(bet.participant_ids):
        raise InvalidConfiguration("bet lists a participant more than once", details)
    if len(bet.participant_ids) < min_participants:
        raise InvalidConfiguration(
            f"bet needs at least {min_participants} participants",
            {**details, "participants": len(bet.participant_ids)},
        )
    unknown = sorted(set(bet.participant_ids) - set(match.participant_ids))
    if unknown:
        raise InvalidConfiguration("bet names participants outside the match", {**details, "unknown": unknown})


def bool_param(bet: Bet, name: str, default: bool) -> bool:
    value = bet.param(name, default)
    if not isinstance(value, bool):
        raise InvalidConfiguration(
            f"{name} must be true or false", {"bet_id": bet.bet_id, name: value}
        )
    return value


def pairs(participant_ids: Sequence[str]) -> List[Tuple[str, str]]:
    """Every unordered pair, in sorted order."""
    return list(combinations(sorted(participant_ids), 2))
