"""
Load a match snapshot (match, participants, bets, scores, stored ledger)
from YAML or a plain dict.

    match:
      id: saturday-4ball
      course_name: Pine Valley
      holes: 18
      stroke_indexes: [7, 15, 3, 11, 1, 17, 9, 13, 5, 8, 16, 4, 12, 2, 18, 10, 14, 6]
    participants:
      - {id: alice, display_name: Alice, handicap_index: 12.4}
      - {id: bob, display_name: Bob, handicap_index: null}
    bets:
      - id: nassau
        type: nassau
        stake: 10
        participant_ids: [alice, bob]
        scoring_mode: net
        params: {presses: true}
    scores:
      alice: [4, 5, 3, null, ...]      # hole 1 first, null = not played
      bob:
        - {hole: 1, strokes: 5, version: 2}
    ledger: []                          # previously stored entries
    settlement:
      scope: per_bet                    # or match_wide

match.participant_ids defaults to the ids listed under participants.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml

from golfbets.core.exceptions import InvalidConfiguration
from golfbets.core.models import (
    Bet,
    LedgerEntry,
    LedgerScope,
    Match,
    Participant,
    Score,
    ScoreSnapshot,
)


@dataclass
class MatchSnapshot:
    match:           Match
    participants:    List[Participant]
    bets:            List[Bet]
    scores:          ScoreSnapshot
    previous_ledger: List[LedgerEntry] = field(default_factory=list)
    scope:           LedgerScope = LedgerScope.PER_BET

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "MatchSnapshot":
        if not isinstance(data, dict) or "match" not in data:
            raise InvalidConfiguration("snapshot must be a mapping with a 'match' section")

        try:
            participants = [Participant.from_dict(p) for p in data.get("participants", [])]
            match_data = dict(data["match"])
            match_data.setdefault("participant_ids", [p.participant_id for p in participants])
            match = Match.from_dict(match_data)
            bets = [Bet.from_dict(b) for b in data.get("bets", [])]
            scores = ScoreSnapshot(_load_scores(data.get("scores") or {}))
            ledger = [LedgerEntry.from_dict(e) for e in data.get("ledger") or []]
            settlement = data.get("settlement") or {}
            scope = LedgerScope(settlement.get("scope", LedgerScope.PER_BET.value))
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidConfiguration(f"malformed snapshot: {exc!r}") from exc

        return MatchSnapshot(
            match=match,
            participants=participants,
            bets=bets,
            scores=scores,
            previous_ledger=ledger,
            scope=scope,
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "MatchSnapshot":
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise InvalidConfiguration(f"invalid YAML in {path}: {exc}") from exc
        return cls.from_dict(data)


def _load_scores(data) -> List[Score]:
    if isinstance(data, list):
        return [Score.from_dict(item) for item in data]

    scores = []
    for participant_id, holes in data.items():
        for index, item in enumerate(holes or [], 1):
            if item is None:
                continue
            if isinstance(item, dict):
                scores.append(Score.from_dict({"participant_id": participant_id, "hole": index, **item}))
            else:
                scores.append(Score(participant_id=str(participant_id), hole=index, strokes=int(item)))
    return scores
