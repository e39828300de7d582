"""
golfbets/core/models.py

Data model for one match's wagers.

═══════════════════════════════════════════════════════════════════
CONTRACTS
═══════════════════════════════════════════════════════════════════

CONTRACT 1 — Identity
    Every record refers to others by string id only. The engine receives
    flattened snapshots, never a live object graph.

CONTRACT 2 — Scores
    At most one Score per (participant_id, hole). strokes in 1..20.
    version starts at 1 and is incremented on every mutation.

CONTRACT 3 — Snapshot version
    ScoreSnapshot.version = sum of every score's version. Any insert or
    edit in the store strictly increases it.

CONTRACT 4 — Ledger direction
    LedgerEntry.amount > 0 always. Direction lives in debtor/creditor,
    never in the sign. One entry per unordered pair per (match, bet scope).

CONTRACT 5 — Amounts
    All money is an integer number of minor currency units.
═══════════════════════════════════════════════════════════════════
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple

from golfbets.core.canonical import canonical_hash
from golfbets.core.exceptions import InvalidConfiguration, ValidationError


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────

COURSE_HOLES = 18
MIN_STROKES  = 1
MAX_STROKES  = 20


# ─────────────────────────────────────────────────────────────
# Vocabulary
# ─────────────────────────────────────────────────────────────

class BetType(Enum):
    NASSAU      = "nassau"
    SKINS       = "skins"
    MATCH_PLAY  = "match_play"
    STROKE_PLAY = "stroke_play"


class ScoringMode(Enum):
    GROSS = "gross"
    NET   = "net"


class MatchStatus(Enum):
    PENDING   = "pending"
    ACTIVE    = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TeeBox(Enum):
    CHAMPIONSHIP = "championship"
    BLUE         = "blue"
    WHITE        = "white"
    RED          = "red"


class LedgerScope(Enum):
    """How settlement groups money into ledger entries."""
    PER_BET    = "per_bet"     # one entry per pair per bet, for transparency
    MATCH_WIDE = "match_wide"  # one netted entry per pair, fewest payments


ScoreKey = Tuple[str, int]


class LedgerKey(NamedTuple):
    """Identity of a ledger entry: match, unordered pair, bet scope."""
    match_id: str
    pair:     Tuple[str, str]
    bet_id:   Optional[str]


def ordered_pair(a: str, b: str) -> Tuple[str, str]:
    """Canonical ordering of an unordered participant pair."""
    return (a, b) if a <= b else (b, a)


# ─────────────────────────────────────────────────────────────
# Match / Participant
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Participant:
    participant_id: str
    display_name:   str
    handicap_index: Optional[float] = None
    tee_box:        TeeBox = TeeBox.WHITE

    def __post_init__(self):
        if not self.participant_id:
            raise ValidationError("participant_id must be a non-empty string")

    @staticmethod
    def from_dict(data: dict) -> "Participant":
        handicap = data.get("handicap_index")
        return Participant(
            participant_id=str(data["id"]),
            display_name=data.get("display_name", str(data["id"])),
            handicap_index=float(handicap) if handicap is not None else None,
            tee_box=TeeBox(data.get("tee_box", TeeBox.WHITE.value)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.participant_id,
            "display_name": self.display_name,
            "handicap_index": self.handicap_index,
            "tee_box": self.tee_box.value,
        }


@dataclass(frozen=True)
class Match:
    """
    One round played together.

    stroke_indexes[i] is the stroke index of hole i + 1 and must be a
    permutation of 1..18 (validated by the handicap allocator).
    """
    match_id:        str
    course_name:     str
    holes:           int
    stroke_indexes:  Tuple[int, ...]
    participant_ids: Tuple[str, ...]
    status:          MatchStatus = MatchStatus.ACTIVE

    def __post_init__(self):
        if self.holes not in (9, 18):
            raise InvalidConfiguration(
                "Match must be played over 9 or 18 holes",
                {"match_id": self.match_id, "holes": self.holes},
            )
        if len(set(self.participant_ids)) != len(self.participant_ids):
            raise InvalidConfiguration(
                "Match lists a participant more than once",
                {"match_id": self.match_id},
            )

    @property
    def hole_numbers(self) -> List[int]:
        return list(range(1, self.holes + 1))

    @staticmethod
    def from_dict(data: dict) -> "Match":
        return Match(
            match_id=str(data["id"]),
            course_name=data.get("course_name", ""),
            holes=int(data.get("holes", COURSE_HOLES)),
            stroke_indexes=tuple(int(i) for i in data.get("stroke_indexes", range(1, 19))),
            participant_ids=tuple(str(p) for p in data.get("participant_ids", [])),
            status=MatchStatus(data.get("status", MatchStatus.ACTIVE.value)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.match_id,
            "course_name": self.course_name,
            "holes": self.holes,
            "stroke_indexes": list(self.stroke_indexes),
            "participant_ids": list(self.participant_ids),
            "status": self.status.value,
        }


# ─────────────────────────────────────────────────────────────
# Scores
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Score:
    """One participant's result on one hole. putts are advisory only."""
    participant_id: str
    hole:           int
    strokes:        int
    version:        int = 1
    putts:          Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.strokes, int) or not MIN_STROKES <= self.strokes <= MAX_STROKES:
            raise ValidationError(
                f"strokes must be an int in {MIN_STROKES}..{MAX_STROKES}",
                {"participant_id": self.participant_id, "hole": self.hole, "strokes": self.strokes},
            )
        if not isinstance(self.hole, int) or not 1 <= self.hole <= COURSE_HOLES:
            raise ValidationError(
                f"hole must be an int in 1..{COURSE_HOLES}",
                {"participant_id": self.participant_id, "hole": self.hole},
            )
        if not isinstance(self.version, int) or self.version < 1:
            raise ValidationError(
                "version must be a positive int",
                {"participant_id": self.participant_id, "hole": self.hole, "version": self.version},
            )
        if self.putts is not None and self.putts < 0:
            raise ValidationError("putts must not be negative")

    @property
    def key(self) -> ScoreKey:
        return (self.participant_id, self.hole)

    @staticmethod
    def from_dict(data: dict) -> "Score":
        return Score(
            participant_id=str(data["participant_id"]),
            hole=int(data["hole"]),
            strokes=int(data["strokes"]),
            version=int(data.get("version", 1)),
            putts=data.get("putts"),
        )

    def to_dict(self) -> dict:
        return {
            "participant_id": self.participant_id,
            "hole": self.hole,
            "strokes": self.strokes,
            "version": self.version,
            "putts": self.putts,
        }


class ScoreSnapshot:
    """
    Point-in-time, read-only view of every score in a match.

    Built once from the store and never mutated. Evaluators read strokes
    from it; the reconciler compares its versions against the store.
    """

    def __init__(self, scores: Iterable[Score] = ()):
        by_key: Dict[ScoreKey, Score] = {}
        for score in scores:
            if score.key in by_key:
                raise ValidationError(
                    "Duplicate score for participant and hole",
                    {"participant_id": score.participant_id, "hole": score.hole},
                )
            by_key[score.key] = score
        self._scores = by_key

    def get(self, participant_id: str, hole: int) -> Optional[Score]:
        return self._scores.get((participant_id, hole))

    def strokes(self, participant_id: str, hole: int) -> Optional[int]:
        score = self._scores.get((participant_id, hole))
        return score.strokes if score is not None else None

    def versions(self) -> Dict[ScoreKey, int]:
        return {key: score.version for key, score in self._scores.items()}

    @property
    def version(self) -> int:
        return sum(score.version for score in self._scores.values())

    @property
    def fingerprint(self) -> str:
        """SHA-256 over the canonical form of every score (putts excluded)."""
        return canonical_hash([
            [s.participant_id, s.hole, s.strokes, s.version] for s in self
        ])

    def __iter__(self) -> Iterator[Score]:
        for key in sorted(self._scores):
            yield self._scores[key]

    def __len__(self) -> int:
        return len(self._scores)

    def __contains__(self, key: ScoreKey) -> bool:
        return key in self._scores

    @staticmethod
    def from_dict(data: List[dict]) -> "ScoreSnapshot":
        return ScoreSnapshot(Score.from_dict(item) for item in data)

    def to_dict(self) -> List[dict]:
        return [score.to_dict() for score in self]

    def __repr__(self) -> str:
        return f"ScoreSnapshot(scores={len(self)}, version={self.version})"


# ─────────────────────────────────────────────────────────────
# Bets
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Bet:
    """
    A wager configuration. params carries the type-specific options,
    e.g. {"presses": True} for Nassau or {"carry_over": False} for skins.
    """
    bet_id:          str
    bet_type:        BetType
    stake:           int
    participant_ids: Tuple[str, ...]
    scoring_mode:    ScoringMode = ScoringMode.GROSS
    params:          Dict[str, Any] = field(default_factory=dict)

    def param(self, name: str, default: Any = None) -> Any:
        return self.params.get(name, default)

    @property
    def fingerprint(self) -> str:
        """Changes whenever any part of the configuration changes. Participant order is ignored."""
        return canonical_hash({**self.to_dict(), "participant_ids": sorted(self.participant_ids)})

    @staticmethod
    def from_dict(data: dict) -> "Bet":
        try:
            bet_type = BetType(data["type"])
            scoring_mode = ScoringMode(data.get("scoring_mode", ScoringMode.GROSS.value))
        except ValueError as exc:
            raise InvalidConfiguration(str(exc), {"bet_id": data.get("id")}) from exc
        return Bet(
            bet_id=str(data["id"]),
            bet_type=bet_type,
            stake=data["stake"],
            participant_ids=tuple(str(p) for p in data.get("participant_ids", [])),
            scoring_mode=scoring_mode,
            params=dict(data.get("params") or {}),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.bet_id,
            "type": self.bet_type.value,
            "stake": self.stake,
            "participant_ids": list(self.participant_ids),
            "scoring_mode": self.scoring_mode.value,
            "params": dict(self.params),
        }


# ─────────────────────────────────────────────────────────────
# Ledger
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LedgerEntry:
    """debtor owes creditor amount, within match_id and bet scope bet_id."""
    match_id:           str
    debtor:             str
    creditor:           str
    amount:             int
    bet_id:             Optional[str]
    settlement_version: int
    config_fingerprint: str = ""

    @property
    def key(self) -> LedgerKey:
        return LedgerKey(self.match_id, ordered_pair(self.debtor, self.creditor), self.bet_id)

    def same_obligation(self, other: "LedgerEntry") -> bool:
        """True if both entries move the same money in the same direction."""
        return (
            self.debtor == other.debtor
            and self.creditor == other.creditor
            and self.amount == other.amount
        )

    @staticmethod
    def from_dict(data: dict) -> "LedgerEntry":
        return LedgerEntry(
            match_id=str(data["match_id"]),
            debtor=str(data["debtor"]),
            creditor=str(data["creditor"]),
            amount=int(data["amount"]),
            bet_id=data.get("bet_id"),
            settlement_version=int(data.get("settlement_version", 0)),
            config_fingerprint=data.get("config_fingerprint", ""),
        )

    def to_dict(self) -> dict:
        return {
            "match_id": self.match_id,
            "debtor": self.debtor,
            "creditor": self.creditor,
            "amount": self.amount,
            "bet_id": self.bet_id,
            "settlement_version": self.settlement_version,
            "config_fingerprint": self.config_fingerprint,
        }


def _key_to_dict(key: LedgerKey) -> dict:
    return {"match_id": key.match_id, "pair": list(key.pair), "bet_id": key.bet_id}


def _key_from_dict(data: dict) -> LedgerKey:
    a, b = data["pair"]
    return LedgerKey(str(data["match_id"]), ordered_pair(str(a), str(b)), data.get("bet_id"))


@dataclass(frozen=True)
class LedgerDiff:
    """
    The minimal set of ledger mutations produced by one settlement run.

    score_versions is the optimistic-concurrency token: every score
    version the run read. The reconciler rejects the diff if the store
    has moved past any of them.
    """
    match_id:         str
    snapshot_version: int
    score_versions:   Dict[ScoreKey, int]
    upserts:          Tuple[LedgerEntry, ...] = ()
    removals:         Tuple[LedgerKey, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.upserts and not self.removals

    @staticmethod
    def from_dict(data: dict) -> "LedgerDiff":
        return LedgerDiff(
            match_id=str(data["match_id"]),
            snapshot_version=int(data["snapshot_version"]),
            score_versions={
                (str(v["participant_id"]), int(v["hole"])): int(v["version"])
                for v in data.get("score_versions", [])
            },
            upserts=tuple(LedgerEntry.from_dict(e) for e in data.get("upserts", [])),
            removals=tuple(_key_from_dict(k) for k in data.get("removals", [])),
        )

    def to_dict(self) -> dict:
        return {
            "match_id": self.match_id,
            "snapshot_version": self.snapshot_version,
            "score_versions": [
                {"participant_id": pid, "hole": hole, "version": version}
                for (pid, hole), version in sorted(self.score_versions.items())
            ],
            "upserts": [e.to_dict() for e in self.upserts],
            "removals": [_key_to_dict(k) for k in self.removals],
        }


# ─────────────────────────────────────────────────────────────
# Audit
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AuditEntry:
    """
    Immutable record of one settlement run.

    explanations maps bet_id → human-readable lines, statuses maps
    bet_id → "settled" | "partial" | "pending".
    """
    audit_id:             str
    match_id:             str
    timestamp:            str
    snapshot_version:     int
    snapshot_fingerprint: str
    triggered_by:         Tuple[Dict[str, Any], ...]
    scope:                LedgerScope
    diff:                 LedgerDiff
    explanations:         Dict[str, List[str]]
    statuses:             Dict[str, str]

    @staticmethod
    def from_dict(data: dict) -> "AuditEntry":
        return AuditEntry(
            audit_id=data["audit_id"],
            match_id=data["match_id"],
            timestamp=data["timestamp"],
            snapshot_version=int(data["snapshot_version"]),
            snapshot_fingerprint=data["snapshot_fingerprint"],
            triggered_by=tuple(data.get("triggered_by", [])),
            scope=LedgerScope(data["scope"]),
            diff=LedgerDiff.from_dict(data["diff"]),
            explanations={k: list(v) for k, v in data.get("explanations", {}).items()},
            statuses=dict(data.get("statuses", {})),
        )

    def to_dict(self) -> dict:
        return {
            "audit_id": self.audit_id,
            "match_id": self.match_id,
            "timestamp": self.timestamp,
            "snapshot_version": self.snapshot_version,
            "snapshot_fingerprint": self.snapshot_fingerprint,
            "triggered_by": [dict(t) for t in self.triggered_by],
            "scope": self.scope.value,
            "diff": self.diff.to_dict(),
            "explanations": {k: list(v) for k, v in self.explanations.items()},
            "statuses": dict(self.statuses),
        }
