"""
In-memory reference implementations of the external stores.

The engine never talks to these directly. They exist so the write path
contract (compare-and-swap scores, atomic ledger commits) can be run
end to end without a database.

InMemoryScoreStore
    write()     compare-and-swap on (participant, hole); a stale
                expected_version raises VersionConflict, never overwrites
    snapshot()  lock-free: readers take the current immutable mapping

InMemoryLedgerStore
    commit()    runs a precondition and applies a diff under one lock
"""

import logging
import threading
from typing import Callable, Dict, List, Optional

from golfbets.core.exceptions import InvariantViolation, VersionConflict
from golfbets.core.models import (
    LedgerDiff,
    LedgerEntry,
    LedgerKey,
    Score,
    ScoreKey,
    ScoreSnapshot,
)


logger = logging.getLogger(__name__)


class InMemoryScoreStore:
    """
    Per-match score storage with optimistic versioning.

    Writers serialize on a lock and publish a fresh mapping; readers
    never take the lock, so a snapshot can never block or see a
    half-applied write.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._matches: Dict[str, Dict[ScoreKey, Score]] = {}

    def snapshot(self, match_id: str) -> ScoreSnapshot:
        scores = self._matches.get(match_id, {})
        return ScoreSnapshot(scores.values())

    def versions(self, match_id: str) -> Dict[ScoreKey, int]:
        scores = self._matches.get(match_id, {})
        return {key: score.version for key, score in scores.items()}

    def write(
        self,
        match_id:         str,
        participant_id:   str,
        hole:             int,
        strokes:          int,
        expected_version: Optional[int],
        putts:            Optional[int] = None,
    ) -> Score:
        """
        Create or update one score.

        expected_version is the version the caller read: None to create a
        score that must not exist yet, otherwise the current version.

        Raises:
            VersionConflict: the stored version differs from expected_version.
            ValidationError: strokes or hole out of range.
        """
        key = (participant_id, hole)
        with self._lock:
            current = self._matches.get(match_id, {})
            existing = current.get(key)
            actual = existing.version if existing is not None else None

            if actual != expected_version:
                raise VersionConflict(
                    "score was modified since it was read",
                    {
                        "match_id": match_id,
                        "participant_id": participant_id,
                        "hole": hole,
                        "expected": expected_version,
                        "actual": actual,
                    },
                )

            score = Score(
                participant_id=participant_id,
                hole=hole,
                strokes=strokes,
                version=(actual or 0) + 1,
                putts=putts,
            )
            updated = dict(current)
            updated[key] = score
            matches = dict(self._matches)
            matches[match_id] = updated
            self._matches = matches

        logger.debug(
            "Score %s/%s hole %d → %d strokes (v%d)",
            match_id, participant_id, hole, strokes, score.version,
        )
        return score


class InMemoryLedgerStore:
    """Ledger entries for every match, keyed by (match, pair, bet scope)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[LedgerKey, LedgerEntry] = {}

    def entries(self, match_id: str) -> List[LedgerEntry]:
        with self._lock:
            found = [e for k, e in self._entries.items() if k.match_id == match_id]
        return sorted(found, key=lambda e: (e.bet_id is not None, e.bet_id or "", e.key.pair))

    def commit(
        self,
        diff:         LedgerDiff,
        precondition: Callable[[], None] = lambda: None,
        on_commit:    Callable[[], None] = lambda: None,
    ) -> List[LedgerEntry]:
        """
        Apply diff atomically.

        precondition runs under the store lock before anything changes;
        if it raises (e.g. StaleSnapshot) the ledger is left untouched.
        on_commit runs under the same lock once the diff is known to apply,
        before the new entries are published; if it raises the ledger is
        left untouched too. Commits and their on_commit calls happen in the
        same order.
        Returns the match's entries after the commit.
        """
        with self._lock:
            precondition()
            current = {k: e for k, e in self._entries.items() if k.match_id == diff.match_id}
            updated = apply_diff(current, diff)
            on_commit()
            for key in current:
                del self._entries[key]
            self._entries.update(updated)
        return self.entries(diff.match_id)


def apply_diff(
    current: Dict[LedgerKey, LedgerEntry],
    diff: LedgerDiff,
) -> Dict[LedgerKey, LedgerEntry]:
    """
    Return current with diff applied. Never mutates current.

    Applying the same diff twice gives the same ledger: upserts overwrite
    by key and removing an absent key is a no-op.

    Raises InvariantViolation if the diff would leave a non-positive
    amount, touch another match, or name one pair twice in one scope.
    """
    touched = set()
    updated = dict(current)

    for entry in diff.upserts:
        if entry.match_id != diff.match_id:
            raise InvariantViolation(
                "diff entry belongs to another match",
                {"match_id": diff.match_id, "entry_match_id": entry.match_id},
            )
        if entry.amount <= 0 or entry.debtor == entry.creditor:
            raise InvariantViolation(
                "ledger entry must be a positive amount between two participants",
                {"debtor": entry.debtor, "creditor": entry.creditor, "amount": entry.amount},
            )
        if entry.key in touched:
            raise InvariantViolation(
                "diff names one pair twice",
                {"pair": entry.key.pair, "bet_id": entry.bet_id},
            )
        touched.add(entry.key)
        updated[entry.key] = entry

    for key in diff.removals:
        if key in touched:
            raise InvariantViolation(
                "diff both updates and removes one pair",
                {"pair": key.pair, "bet_id": key.bet_id},
            )
        touched.add(key)
        updated.pop(key, None)

    return updated
