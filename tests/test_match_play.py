"""
tests/test_match_play.py

Match play: closure freezes the result, dormie, margin payout.
"""

import pytest

from golfbets.core.exceptions import InvalidConfiguration
from golfbets.core.models import BetType
from golfbets.rules import ResultStatus, evaluate_bet, validate_bet

from helpers.scorecards import (
    card_for,
    make_bet,
    make_match,
    make_people,
    net_balances,
    snapshot,
)


def rows_for(alice_holes=(), bob_holes=(), played=18):
    """Winner of a hole shoots 3, everyone else 4. Holes after `played` blank."""
    alice, bob = [], []
    for hole in range(1, 19):
        if hole > played:
            alice.append(None)
            bob.append(None)
            continue
        alice.append(3 if hole in alice_holes else 4)
        bob.append(3 if hole in bob_holes else 4)
    return {"alice": alice, "bob": bob}


def run(rows, **bet_kwargs):
    match = make_match()
    bet = make_bet(BetType.MATCH_PLAY, **bet_kwargs)
    validate_bet(bet, match)
    return evaluate_bet(bet, card_for(bet, match, make_people(), snapshot(rows)))


class TestClosure:

    def test_two_up_with_one_to_play_is_decided(self):
        """2 up with one hole left closes the match at hole 17."""
        result = run(rows_for(alice_holes={1, 2}, played=17))

        assert result.status == ResultStatus.SETTLED
        assert net_balances(result.transfers) == {"alice": 10, "bob": -10}
        assert "Alice v Bob, match (holes 1-18): Alice wins 2&1, closed out on hole 17" in result.explanation

    def test_later_scores_do_not_change_result(self):
        """A hole entered after closure leaves the result untouched."""
        closed = run(rows_for(alice_holes={1, 2}, played=17))
        later = run(rows_for(alice_holes={1, 2}, bob_holes={18}))

        assert later.transfers == closed.transfers
        assert later.explanation[0] == closed.explanation[0]
        assert "scores after hole 17 do not affect the result" in later.explanation

    def test_early_closure(self):
        result = run(rows_for(alice_holes=set(range(1, 11)), played=10))
        assert "Alice wins 10&8, closed out on hole 10" in result.explanation[0]
        assert result.status == ResultStatus.SETTLED

    def test_win_on_last_hole(self):
        result = run(rows_for(bob_holes={18}))
        assert "Bob wins 1 up" in result.explanation[0]
        assert net_balances(result.transfers) == {"alice": -10, "bob": 10}

    def test_all_square_pays_nothing(self):
        result = run(rows_for(alice_holes={1}, bob_holes={2}))
        assert result.status == ResultStatus.SETTLED
        assert result.transfers == []
        assert "all square" in result.explanation[0]


class TestPending:

    def test_incomplete_match_pending(self):
        result = run(rows_for(alice_holes={1}, played=9))
        assert result.status == ResultStatus.PENDING
        assert result.transfers == []
        assert "pending after 9 of 18 holes (Alice 1 up)" in result.explanation[0]

    def test_dormie_reported(self):
        """2 up with 2 to play is dormie, not yet decided."""
        result = run(rows_for(alice_holes={1, 2}, played=16))
        assert result.status == ResultStatus.PENDING
        assert "Alice 2 up, dormie" in result.explanation[0]

    def test_gap_stops_play(self):
        """Holes after a missing score are not counted yet."""
        rows = rows_for(alice_holes={1, 2, 4})
        rows["bob"][2] = None
        result = run(rows)
        assert result.status == ResultStatus.PENDING
        assert "pending after 2 of 18 holes" in result.explanation[0]


class TestPayByMargin:

    def test_flat_stake_by_default(self):
        result = run(rows_for(alice_holes={1, 2, 3}))
        assert net_balances(result.transfers)["alice"] == 10

    def test_margin_multiplies_stake(self):
        """pay_by_margin pays stake × holes up at closure."""
        result = run(rows_for(alice_holes={1, 2, 3}), pay_by_margin=True)
        assert net_balances(result.transfers)["alice"] == 30


class TestValidation:

    def test_three_players_rejected(self):
        ids = ("alice", "bob", "carol")
        match = make_match(ids)
        with pytest.raises(InvalidConfiguration):
            validate_bet(make_bet(BetType.MATCH_PLAY, ids), match)

    def test_pay_by_margin_must_be_bool(self):
        with pytest.raises(InvalidConfiguration):
            validate_bet(make_bet(BetType.MATCH_PLAY, pay_by_margin="true"), make_match())
