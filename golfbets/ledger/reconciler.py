"""
Ledger reconciler: persist a settlement diff, or reject it as stale.

The diff carries every score version the settlement read. If the score
store has moved on since (an edit, a new score, a removed score) the
diff is rejected with StaleSnapshot before the ledger changes; the
caller re-fetches and re-settles. Partial diffs are never merged
against a moved target.

Collaborators (duck-typed):
    scores  .snapshot(match_id) → ScoreSnapshot
            .versions(match_id) → {(participant_id, hole): version}
    ledger  .entries(match_id)  → [LedgerEntry]
            .commit(diff, precondition, on_commit) → [LedgerEntry]
    audit   .append(AuditEntry)           (optional)
"""

import logging
from typing import Iterable, List, Optional, Sequence

from golfbets.core.exceptions import StaleSnapshot
from golfbets.core.models import (
    AuditEntry,
    Bet,
    LedgerDiff,
    LedgerEntry,
    Match,
    Participant,
    ScoreKey,
)
from golfbets.settlement.engine import Settlement, SettlementEngine


logger = logging.getLogger(__name__)


DEFAULT_MAX_ATTEMPTS = 3


class LedgerReconciler:

    def __init__(self, scores, ledger, audit=None):
        self.scores = scores
        self.ledger = ledger
        self.audit = audit

    def check_fresh(self, diff: LedgerDiff) -> None:
        """Raise StaleSnapshot if any score differs from what the diff was computed on."""
        current = self.scores.versions(diff.match_id)
        read = diff.score_versions

        moved = sorted(
            key for key in set(current) | set(read)
            if current.get(key) != read.get(key)
        )
        if moved:
            participant_id, hole = moved[0]
            raise StaleSnapshot(
                "scores changed after settlement was computed",
                {
                    "match_id": diff.match_id,
                    "changed": len(moved),
                    "first": f"{participant_id}/{hole}",
                    "read": read.get(moved[0]),
                    "current": current.get(moved[0]),
                },
            )

    def apply(self, diff: LedgerDiff, audit: Optional[AuditEntry] = None) -> List[LedgerEntry]:
        """
        Persist diff and its audit entry as one step.

        The audit entry is appended under the ledger lock before the new
        entries are published, so the audit log replays to the stored
        ledger. If the append fails the ledger is left untouched.

        Raises:
            StaleSnapshot: a score read by the settlement was superseded.
            InvariantViolation: the diff would corrupt the ledger.
            AuditLogError: the audit entry could not be written.
        """
        on_commit = lambda: None
        if audit is not None and self.audit is not None:
            on_commit = lambda: self.audit.append(audit)

        try:
            entries = self.ledger.commit(
                diff,
                precondition=lambda: self.check_fresh(diff),
                on_commit=on_commit,
            )
        except StaleSnapshot as exc:
            logger.warning("Rejected ledger diff for match %s: %s", diff.match_id, exc)
            raise

        logger.info(
            "Applied ledger diff for match %s at snapshot v%d (%d upsert(s), %d removal(s))",
            diff.match_id, diff.snapshot_version, len(diff.upserts), len(diff.removals),
        )
        return entries

    def settle_and_commit(
        self,
        engine: SettlementEngine,
        match: Match,
        participants: Sequence[Participant],
        bets: Sequence[Bet],
        triggered_by: Optional[Iterable[ScoreKey]] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> Settlement:
        """
        Fetch → settle → apply, retrying from a fresh snapshot on StaleSnapshot.

        Raises the last StaleSnapshot if every attempt loses the race.
        """
        triggers = list(triggered_by or ())
        for attempt in range(1, max_attempts + 1):
            snapshot = self.scores.snapshot(match.match_id)
            previous = self.ledger.entries(match.match_id)
            settlement = engine.settle(
                match, participants, bets, snapshot,
                previous_ledger=previous,
                triggered_by=triggers,
            )
            try:
                self.apply(settlement.diff, settlement.audit)
                return settlement
            except StaleSnapshot:
                if attempt == max_attempts:
                    raise
                logger.info(
                    "Retrying settlement of match %s (attempt %d of %d)",
                    match.match_id, attempt + 1, max_attempts,
                )
        raise StaleSnapshot("max_attempts must be at least 1", {"max_attempts": max_attempts})
