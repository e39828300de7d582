"""
tests/test_skins.py

Skins: carry-over, forfeits, unplayed holes, payout rules.
"""

import pytest

from golfbets.core.exceptions import InvalidConfiguration
from golfbets.core.models import BetType, ScoringMode
from golfbets.rules import ResultStatus, evaluate_bet, validate_bet

from helpers.scorecards import (
    card_for,
    make_bet,
    make_match,
    make_people,
    net_balances,
    snapshot,
)


TRIO = ("alice", "bob", "carol")


def run(rows, ids=TRIO, holes=9, people=None, **bet_kwargs):
    match = make_match(ids, holes=holes)
    people = people or make_people(ids)
    bet = make_bet(BetType.SKINS, ids, **bet_kwargs)
    validate_bet(bet, match)
    return evaluate_bet(bet, card_for(bet, match, people, snapshot(rows)))


def pad(row, holes=9):
    return list(row) + [None] * (holes - len(row))


# holes 1-2 tied for low, hole 3 won outright by alice
CARRY_ROWS = {
    "alice": pad([4, 4, 3]),
    "bob":   pad([4, 4, 4]),
    "carol": pad([5, 4, 5]),
}


class TestCarryOver:

    def test_two_ties_then_winner_collects_three_skins(self):
        """Stake 10, holes 1-2 tied low, hole 3 sole low: 30 from each opponent."""
        result = run(CARRY_ROWS)

        assert net_balances(result.transfers) == {"alice": 60, "bob": -30, "carol": -30}
        assert all(t.amount == 30 for t in result.transfers)
        assert "hole 3: Alice wins 3 skin(s) with 3, 30 from each opponent" in result.explanation

    def test_tie_narrated(self):
        result = run(CARRY_ROWS)
        assert "hole 1: Alice, Bob tie at 4, 1 skin(s) carry over" in result.explanation

    def test_carry_over_disabled_forfeits_ties(self):
        """Without carry-over a tied skin is lost and hole 3 is worth one stake."""
        result = run(CARRY_ROWS, carry_over=False)

        assert net_balances(result.transfers) == {"alice": 20, "bob": -10, "carol": -10}
        assert "hole 1: Alice, Bob tie at 4, skin forfeited" in result.explanation

    def test_unclaimed_final_carry(self):
        """Skins still carried after the last hole are reported, not paid."""
        rows = {pid: [4] * 9 for pid in TRIO}
        result = run(rows)

        assert result.transfers == []
        assert result.status == ResultStatus.SETTLED
        assert "9 skin(s) worth 90 left unclaimed" in result.explanation

    def test_carry_awaiting_unplayed_holes_not_unclaimed(self):
        """A carry with holes still to play is pending, not lost."""
        rows = {
            "alice": pad([4, 4]),
            "bob":   pad([4, 4]),
            "carol": pad([5, 5]),
        }
        result = run(rows)

        assert result.transfers == []
        assert result.status == ResultStatus.PARTIAL
        assert "2 skin(s) worth 20 carried, pending holes 3, 4, 5, 6, 7, 8, 9" in result.explanation
        assert not any("left unclaimed" in line for line in result.explanation)

    def test_carry_flows_past_unplayed_hole(self):
        """An unplayed hole is skipped; the carry lands on the next played hole."""
        rows = {
            "alice": pad([4, 4, 3]),
            "bob":   pad([4, 5, 4]),
            "carol": pad([5, None, 5]),
        }
        result = run(rows)

        assert all(t.amount == 20 for t in result.transfers)
        assert net_balances(result.transfers)["alice"] == 40


class TestStatus:

    def test_partial_round(self):
        result = run(CARRY_ROWS)
        assert result.status == ResultStatus.PARTIAL
        assert "not yet played: holes 4, 5, 6, 7, 8, 9" in result.explanation

    def test_nothing_played(self):
        result = run({pid: [None] * 9 for pid in TRIO})
        assert result.status == ResultStatus.PENDING
        assert result.transfers == []

    def test_full_round_settled(self):
        rows = {"alice": [3] * 9, "bob": [4] * 9, "carol": [5] * 9}
        result = run(rows)
        assert result.status == ResultStatus.SETTLED
        assert net_balances(result.transfers) == {"alice": 180, "bob": -90, "carol": -90}


class TestPayout:

    def test_split_pot_divides_among_opponents(self):
        """split_pot: the 3-skin pot of 30 is shared by two opponents, 15 each."""
        result = run(CARRY_ROWS, payout="split_pot")
        assert net_balances(result.transfers) == {"alice": 30, "bob": -15, "carol": -15}
        assert result.unallocated == 0

    def test_split_pot_remainder_unallocated(self):
        """An indivisible pot leaves the odd unit unallocated."""
        result = run(CARRY_ROWS, stake=5, payout="split_pot")
        assert all(t.amount == 7 for t in result.transfers)
        assert result.unallocated == 1
        assert sum(net_balances(result.transfers).values()) == 0

    def test_unknown_payout_rejected(self):
        match = make_match(TRIO, holes=9)
        bet = make_bet(BetType.SKINS, TRIO, payout="winner_takes_all")
        with pytest.raises(InvalidConfiguration):
            validate_bet(bet, match)

    def test_non_bool_carry_over_rejected(self):
        match = make_match(TRIO, holes=9)
        bet = make_bet(BetType.SKINS, TRIO, carry_over="no")
        with pytest.raises(InvalidConfiguration):
            validate_bet(bet, match)


class TestNetSkins:

    def test_strokes_decide_skins(self):
        """A stroke on every hole turns equal gross scores into skins won."""
        ids = ("alice", "bob")
        rows = {"alice": [4] * 9, "bob": [4] * 9}
        people = make_people(ids, handicaps={"bob": 9})
        result = run(rows, ids=ids, people=people, scoring_mode=ScoringMode.NET)

        assert net_balances(result.transfers) == {"alice": -90, "bob": 90}

    def test_eighteen_hole_round(self):
        ids = ("alice", "bob")
        rows = {"alice": [4] * 18, "bob": [5] * 18}
        result = run(rows, ids=ids, holes=18)
        assert len(result.transfers) == 18
        assert result.status == ResultStatus.SETTLED
