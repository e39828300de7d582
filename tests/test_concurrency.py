"""
tests/test_concurrency.py

Concurrency safety of the write path.

Racing score writes resolve by version check (one winner, losers retry),
readers never block, concurrent settlements never commit a stale diff,
and concurrent audit appends keep the chain intact.

Run:
    pytest tests/test_concurrency.py -v --tb=short
"""

import threading
import time

from golfbets.core.crypto import AuditKey
from golfbets.core.exceptions import StaleSnapshot, VersionConflict
from golfbets.core.models import BetType
from golfbets.ledger import AuditLog, InMemoryLedgerStore, InMemoryScoreStore, LedgerReconciler
from golfbets.settlement.engine import SettlementEngine

from helpers.scorecards import make_bet, make_match, make_people, obligations, snapshot


def start_together(targets):
    """Run every target on its own thread, released at the same moment."""
    barrier = threading.Barrier(len(targets))

    def wrap(target):
        def run():
            barrier.wait()
            target()
        return run

    threads = [threading.Thread(target=wrap(t)) for t in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


class TestScoreWriteRaces:

    def test_one_winner_per_version(self):
        """Eight writers holding version 1 race; exactly one commits."""
        store = InMemoryScoreStore()
        store.write("m1", "alice", 1, 5, expected_version=None)

        won, lost = [], []

        def writer(strokes):
            def run():
                try:
                    won.append(store.write("m1", "alice", 1, strokes, expected_version=1))
                except VersionConflict:
                    lost.append(strokes)
            return run

        start_together([writer(s) for s in range(2, 10)])

        assert len(won) == 1
        assert len(lost) == 7
        assert store.snapshot("m1").get("alice", 1) == won[0]
        assert won[0].version == 2

    def test_retrying_writers_lose_no_updates(self):
        """Read-modify-write with retry on conflict applies every edit exactly once."""
        store = InMemoryScoreStore()
        store.write("m1", "alice", 1, 1, expected_version=None)
        errors = []

        def editor():
            try:
                for _ in range(25):
                    while True:
                        current = store.snapshot("m1").get("alice", 1)
                        strokes = current.strokes % 20 + 1
                        try:
                            store.write("m1", "alice", 1, strokes, expected_version=current.version)
                            break
                        except VersionConflict:
                            continue
            except Exception as e:
                errors.append(repr(e))

        start_together([editor for _ in range(4)])

        assert errors == []
        assert store.snapshot("m1").get("alice", 1).version == 1 + 4 * 25


class TestConcurrentSettlement:

    def test_settlements_racing_edits_end_consistent(self, tmp_path):
        """Settlers racing a score editor never leave a ledger that disagrees with the scores or the audit log."""
        scores = InMemoryScoreStore()
        ledger = InMemoryLedgerStore()
        audit_log = AuditLog(tmp_path / "audit.jsonl", AuditKey.generate())
        reconciler = LedgerReconciler(scores, ledger, audit_log)
        engine = SettlementEngine()
        match = make_match()
        people = make_people()
        bets = [make_bet(BetType.SKINS), make_bet(BetType.NASSAU)]

        for hole in range(1, 19):
            scores.write("m1", "alice", hole, 4, expected_version=None)
            scores.write("m1", "bob", hole, 4, expected_version=None)

        errors = []

        def editor():
            for hole in range(1, 19):
                current = scores.snapshot("m1").get("bob", hole)
                scores.write("m1", "bob", hole, 3 if hole % 2 else 5, expected_version=current.version)

        def settler():
            for _ in range(10):
                try:
                    reconciler.settle_and_commit(engine, match, people, bets, max_attempts=5)
                except StaleSnapshot:
                    pass
                except Exception as e:
                    errors.append(repr(e))

        start_together([editor, settler, settler, settler])
        assert errors == []

        final = reconciler.settle_and_commit(engine, match, people, bets)
        expected = engine.settle(match, people, bets, scores.snapshot("m1"))

        assert obligations(ledger.entries("m1")) == obligations(expected.ledger)
        assert final.ledger == expected.ledger
        assert audit_log.replay_ledger("m1") == ledger.entries("m1")
        assert audit_log.verify_chain().valid

    def test_audit_order_follows_commit_order(self, tmp_path):
        """A settler whose audit write stalls holds back later commits, so the log replays to the ledger."""
        release = threading.Event()

        class StallingAuditLog(AuditLog):
            stalled = False

            def append(self, entry):
                if not self.stalled:
                    self.stalled = True
                    release.wait(timeout=5)
                return super().append(entry)

        scores = InMemoryScoreStore()
        ledger = InMemoryLedgerStore()
        audit_log = StallingAuditLog(tmp_path / "audit.jsonl", AuditKey.generate())
        reconciler = LedgerReconciler(scores, ledger, audit_log)
        engine = SettlementEngine()
        match = make_match()
        people = make_people()
        bets = [make_bet(BetType.STROKE_PLAY)]

        for hole in range(1, 19):
            scores.write("m1", "alice", hole, 4, expected_version=None)
            scores.write("m1", "bob", hole, 5, expected_version=None)

        first = threading.Thread(
            target=lambda: reconciler.settle_and_commit(engine, match, people, bets)
        )
        first.start()
        while not audit_log.stalled:
            time.sleep(0.001)

        for hole in range(1, 19):
            scores.write("m1", "bob", hole, 3, expected_version=1)
        second = threading.Thread(
            target=lambda: reconciler.settle_and_commit(engine, match, people, bets)
        )
        second.start()
        time.sleep(0.05)
        release.set()
        first.join()
        second.join()

        assert obligations(ledger.entries("m1")) == [("stroke_play", "alice", "bob", 10)]
        assert audit_log.replay_ledger("m1") == ledger.entries("m1")
        assert audit_log.verify_chain().total_records == 2

    def test_engine_shared_across_matches(self):
        """One engine settles many matches at once without interference."""
        engine = SettlementEngine()
        people = make_people()
        bet = make_bet(BetType.STROKE_PLAY)
        results = {}

        def settle(match_id, bob):
            def run():
                rows = {"alice": [4] * 18, "bob": [bob] * 18}
                results[match_id] = engine.settle(
                    make_match(match_id=match_id), people, [bet], snapshot(rows)
                )
            return run

        start_together([settle(f"m{i}", 3 + i % 3) for i in range(9)])

        for i in range(9):
            entries = results[f"m{i}"].ledger
            bob = 3 + i % 3
            if bob == 4:
                assert entries == ()
            else:
                assert entries[0].match_id == f"m{i}"
                assert entries[0].creditor == ("bob" if bob < 4 else "alice")


class TestConcurrentAudit:

    def test_concurrent_appends_keep_chain(self, tmp_path):
        """Two threads appending at once produce one unbroken, fully signed chain."""
        audit_log = AuditLog(tmp_path / "audit.jsonl", AuditKey.generate())
        engine = SettlementEngine()
        people = make_people()
        bet = make_bet(BetType.MATCH_PLAY)
        scores = InMemoryScoreStore()
        for hole in range(1, 19):
            scores.write("m1", "alice", hole, 4, expected_version=None)
            scores.write("m1", "bob", hole, 5, expected_version=None)
        settlement = engine.settle(make_match(), people, [bet], scores.snapshot("m1"))
        errors = []

        def append_10():
            try:
                for _ in range(10):
                    audit_log.append(settlement.audit)
            except Exception as e:
                errors.append(str(e))

        start_together([append_10, append_10])

        assert errors == [], f"Concurrent appends raised exceptions: {errors}"
        result = audit_log.verify_chain()
        assert result.total_records == 20, "Entries were lost in concurrent append()"
        assert result.valid, [v.detail for v in result.violations]
