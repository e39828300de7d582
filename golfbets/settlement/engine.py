"""
Settlement engine: scores + bets → ledger diff + audit entry.

The engine performs no I/O. Every input arrives as a value and every
output leaves as a value, so it can run concurrently for different
matches without locks. Given the same snapshot and bets the ledger and
diff it returns are identical regardless of input order or history.
"""

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from golfbets.core.canonical import canonical_hash
from golfbets.core.exceptions import InvalidConfiguration, InvariantViolation
from golfbets.core.handicap import validate_stroke_indexes
from golfbets.core.models import (
    AuditEntry,
    Bet,
    LedgerDiff,
    LedgerEntry,
    LedgerKey,
    LedgerScope,
    Match,
    MatchStatus,
    Participant,
    ScoreKey,
    ScoreSnapshot,
    ordered_pair,
)
from golfbets.core.time import audit_timestamp
from golfbets.rules import BetResult, ScoreCard, evaluate_bet, validate_bet


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settlement:
    """Everything one settle() call produces."""
    diff:    LedgerDiff
    audit:   AuditEntry
    ledger:  Tuple[LedgerEntry, ...]
    results: Dict[str, BetResult]


def key_order(key: LedgerKey) -> tuple:
    """Sort key for ledger keys; bet_id may be None in match-wide scope."""
    return (key.match_id, key.bet_id is not None, key.bet_id or "", key.pair)


class SettlementEngine:
    """
    Runs every bet's evaluator, nets the transfers into ledger entries,
    and diffs them against the previously stored ledger.

    Args:
        scope:    PER_BET keeps one entry per pair per bet. MATCH_WIDE nets
                  every bet into one entry per pair.
        clock:    Timestamp source for audit entries only.
        parallel: Evaluate bets on a thread pool. Output is unchanged.
    """

    def __init__(
        self,
        scope: LedgerScope = LedgerScope.PER_BET,
        clock: Callable[[], str] = audit_timestamp,
        parallel: bool = False,
    ):
        self.scope = scope
        self.clock = clock
        self.parallel = parallel

    def settle(
        self,
        match: Match,
        participants: Sequence[Participant],
        bets: Sequence[Bet],
        scores: ScoreSnapshot,
        previous_ledger: Iterable[LedgerEntry] = (),
        triggered_by: Optional[Iterable[ScoreKey]] = None,
    ) -> Settlement:
        """
        Settle every bet of a match against one score snapshot.

        Raises:
            InvalidConfiguration: a bet or the match is malformed. Raised
                before any evaluation runs.
            InvariantViolation: a bet's transfers are not zero-sum or the
                previous ledger holds duplicate pair entries. Nothing from
                the run should be persisted.
        """
        people = self._index_participants(match, participants)
        ordered_bets = self._validate(match, bets)

        results = self._evaluate(match, people, ordered_bets, scores)
        for bet in ordered_bets:
            check_zero_sum(bet, results[bet.bet_id])

        fingerprints = self._fingerprints(ordered_bets)
        ledger = self._net(match.match_id, ordered_bets, results, fingerprints, scores.version)
        previous = index_ledger(match.match_id, previous_ledger)
        diff, invalidated = self._diff(match.match_id, ledger, previous, fingerprints, scores)

        audit = self._audit(match, ordered_bets, results, scores, diff, invalidated, triggered_by)

        logger.info(
            "Settled match %s at snapshot v%d: %d bet(s), %d upsert(s), %d removal(s)",
            match.match_id, scores.version, len(ordered_bets),
            len(diff.upserts), len(diff.removals),
        )
        return Settlement(
            diff=diff,
            audit=audit,
            ledger=tuple(ledger[k] for k in sorted(ledger, key=key_order)),
            results=results,
        )

    # ── Validation ────────────────────────────────────────────

    def _index_participants(
        self, match: Match, participants: Sequence[Participant]
    ) -> Dict[str, Participant]:
        if match.status == MatchStatus.CANCELLED:
            raise InvalidConfiguration("cannot settle a cancelled match", {"match_id": match.match_id})
        validate_stroke_indexes(match.stroke_indexes)

        people = {p.participant_id: p for p in participants}
        missing = sorted(set(match.participant_ids) - set(people))
        if missing:
            raise InvalidConfiguration(
                "match participants missing from snapshot",
                {"match_id": match.match_id, "missing": missing},
            )
        return people

    def _validate(self, match: Match, bets: Sequence[Bet]) -> List[Bet]:
        seen = set()
        for bet in bets:
            if bet.bet_id in seen:
                raise InvalidConfiguration("duplicate bet id", {"bet_id": bet.bet_id})
            seen.add(bet.bet_id)
            validate_bet(bet, match)
        return sorted(bets, key=lambda b: b.bet_id)

    # ── Evaluation ────────────────────────────────────────────

    def _evaluate(
        self,
        match: Match,
        people: Mapping[str, Participant],
        bets: Sequence[Bet],
        scores: ScoreSnapshot,
    ) -> Dict[str, BetResult]:
        def run(bet: Bet) -> BetResult:
            card = ScoreCard.for_bet(bet, match, people, scores)
            result = evaluate_bet(bet, card)
            logger.debug(
                "Bet %s (%s) → %s, %d transfer(s)",
                bet.bet_id, bet.bet_type.value, result.status.value, len(result.transfers),
            )
            return result

        if self.parallel and len(bets) > 1:
            with ThreadPoolExecutor(max_workers=len(bets)) as pool:
                evaluated = list(pool.map(run, bets))
        else:
            evaluated = [run(bet) for bet in bets]

        return {bet.bet_id: result for bet, result in zip(bets, evaluated)}

    # ── Netting ───────────────────────────────────────────────

    def _fingerprints(self, bets: Sequence[Bet]) -> Dict[Optional[str], str]:
        """Configuration fingerprint per ledger scope id."""
        if self.scope == LedgerScope.MATCH_WIDE:
            return {None: canonical_hash(sorted(b.fingerprint for b in bets))}
        return {bet.bet_id: bet.fingerprint for bet in bets}

    def _net(
        self,
        match_id: str,
        bets: Sequence[Bet],
        results: Mapping[str, BetResult],
        fingerprints: Mapping[Optional[str], str],
        settlement_version: int,
    ) -> Dict[LedgerKey, LedgerEntry]:
        """
        Sum transfers per unordered pair within each scope.

        A positive running total means pair[0] owes pair[1].
        """
        totals: Dict[LedgerKey, int] = {}
        for bet in bets:
            scope_id = bet.bet_id if self.scope == LedgerScope.PER_BET else None
            for t in results[bet.bet_id].transfers:
                pair = ordered_pair(t.debtor, t.creditor)
                key = LedgerKey(match_id, pair, scope_id)
                signed = t.amount if t.debtor == pair[0] else -t.amount
                totals[key] = totals.get(key, 0) + signed

        ledger: Dict[LedgerKey, LedgerEntry] = {}
        for key, total in totals.items():
            if total == 0:
                continue
            low, high = key.pair
            debtor, creditor = (low, high) if total > 0 else (high, low)
            ledger[key] = LedgerEntry(
                match_id=match_id,
                debtor=debtor,
                creditor=creditor,
                amount=abs(total),
                bet_id=key.bet_id,
                settlement_version=settlement_version,
                config_fingerprint=fingerprints[key.bet_id],
            )
        return ledger

    # ── Diff ──────────────────────────────────────────────────

    def _diff(
        self,
        match_id: str,
        ledger: Mapping[LedgerKey, LedgerEntry],
        previous: Mapping[LedgerKey, LedgerEntry],
        fingerprints: Mapping[Optional[str], str],
        scores: ScoreSnapshot,
    ) -> Tuple[LedgerDiff, List[LedgerKey]]:
        upserts = []
        invalidated = []
        for key in sorted(ledger, key=key_order):
            entry = ledger[key]
            old = previous.get(key)
            if old is None:
                upserts.append(entry)
            elif old.config_fingerprint != entry.config_fingerprint:
                invalidated.append(key)
                upserts.append(entry)
            elif not old.same_obligation(entry):
                upserts.append(entry)

        removals = []
        for key in sorted(previous, key=key_order):
            if key in ledger:
                continue
            removals.append(key)
            current = fingerprints.get(key.bet_id)
            if current is not None and previous[key].config_fingerprint != current:
                invalidated.append(key)

        if invalidated:
            logger.warning(
                "Match %s: %d ledger entr(ies) settled under a different bet configuration, recomputed in full",
                match_id, len(invalidated),
            )

        diff = LedgerDiff(
            match_id=match_id,
            snapshot_version=scores.version,
            score_versions=scores.versions(),
            upserts=tuple(upserts),
            removals=tuple(removals),
        )
        return diff, invalidated

    # ── Audit ─────────────────────────────────────────────────

    def _audit(
        self,
        match: Match,
        bets: Sequence[Bet],
        results: Mapping[str, BetResult],
        scores: ScoreSnapshot,
        diff: LedgerDiff,
        invalidated: Sequence[LedgerKey],
        triggered_by: Optional[Iterable[ScoreKey]],
    ) -> AuditEntry:
        explanations: Dict[str, List[str]] = {}
        statuses: Dict[str, str] = {}
        stale_bets = {key.bet_id for key in invalidated}

        for bet in bets:
            result = results[bet.bet_id]
            lines = [
                f"{bet.bet_type.value} ({bet.scoring_mode.value}, stake {bet.stake}): {result.status.value}"
            ]
            if bet.bet_id in stale_bets or (None in stale_bets):
                lines.append("configuration changed since last settlement, prior entries replaced")
            lines.extend(result.explanation)
            if result.unallocated:
                lines.append(f"unallocated: {result.unallocated}")
            explanations[bet.bet_id] = lines
            statuses[bet.bet_id] = result.status.value

        triggers = []
        for participant_id, hole in sorted(triggered_by or ()):
            score = scores.get(participant_id, hole)
            triggers.append({
                "participant_id": participant_id,
                "hole": hole,
                "version": score.version if score is not None else None,
            })

        return AuditEntry(
            audit_id=f"audit-{uuid.uuid4()}",
            match_id=match.match_id,
            timestamp=self.clock(),
            snapshot_version=scores.version,
            snapshot_fingerprint=scores.fingerprint,
            triggered_by=tuple(triggers),
            scope=self.scope,
            diff=diff,
            explanations=explanations,
            statuses=statuses,
        )


# ─────────────────────────────────────────────────────────────
# Invariant checks
# ─────────────────────────────────────────────────────────────

def check_zero_sum(bet: Bet, result: BetResult) -> None:
    """Raise InvariantViolation unless the bet's transfers only move money between its players."""
    members = set(bet.participant_ids)
    for t in result.transfers:
        if t.amount <= 0 or t.debtor == t.creditor:
            raise InvariantViolation(
                "transfer must move a positive amount between two participants",
                {"bet_id": bet.bet_id, "debtor": t.debtor, "creditor": t.creditor, "amount": t.amount},
            )
        if t.debtor not in members or t.creditor not in members:
            raise InvariantViolation(
                "transfer involves someone outside the bet",
                {"bet_id": bet.bet_id, "debtor": t.debtor, "creditor": t.creditor},
            )
    total = sum(result.balances().values())
    if total != 0:
        raise InvariantViolation("bet is not zero-sum", {"bet_id": bet.bet_id, "total": total})


def index_ledger(match_id: str, entries: Iterable[LedgerEntry]) -> Dict[LedgerKey, LedgerEntry]:
    """
    Key stored entries by (match, pair, bet scope).

    Raises InvariantViolation on a foreign match, a non-positive amount,
    or two entries for the same unordered pair in one scope.
    """
    indexed: Dict[LedgerKey, LedgerEntry] = {}
    for entry in entries:
        if entry.match_id != match_id:
            raise InvariantViolation(
                "ledger entry belongs to another match",
                {"match_id": match_id, "entry_match_id": entry.match_id},
            )
        if entry.amount <= 0 or entry.debtor == entry.creditor:
            raise InvariantViolation(
                "ledger entry must be a positive amount between two participants",
                {"debtor": entry.debtor, "creditor": entry.creditor, "amount": entry.amount},
            )
        if entry.key in indexed:
            raise InvariantViolation(
                "duplicate ledger entries for one pair",
                {"pair": entry.key.pair, "bet_id": entry.bet_id},
            )
        indexed[entry.key] = entry
    return indexed
