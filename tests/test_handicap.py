"""
tests/test_handicap.py

Handicap stroke allocation and net score resolution.
"""

import pytest

from golfbets.core.exceptions import InvalidConfiguration
from golfbets.core.handicap import (
    allocate,
    course_handicap,
    net_strokes,
    validate_stroke_indexes,
)

from helpers.scorecards import COURSE_INDEXES, EASY_INDEXES


class TestStrokeIndexes:

    def test_permutation_accepted(self):
        """Each value 1..18 exactly once is a valid stroke index."""
        validate_stroke_indexes(COURSE_INDEXES)

    def test_duplicate_index_rejected(self):
        """A repeated stroke index is a configuration error."""
        indexes = list(EASY_INDEXES)
        indexes[17] = 1
        with pytest.raises(InvalidConfiguration):
            validate_stroke_indexes(indexes)

    def test_nine_values_rejected(self):
        """The course index always lists all 18 holes, even for a 9-hole match."""
        with pytest.raises(InvalidConfiguration):
            validate_stroke_indexes(list(range(1, 10)))

    def test_allocate_validates_indexes(self):
        """allocate() refuses a malformed index before allocating anything."""
        with pytest.raises(InvalidConfiguration):
            allocate(10, [1] * 18)


class TestCourseHandicap:

    @pytest.mark.parametrize("index, expected", [
        (12.4, 12),
        (12.5, 13),
        (0.49, 0),
        (20, 20),
        (None, 0),
        (-2.0, 0),
    ])
    def test_rounding(self, index, expected):
        """Course handicap is the index rounded half-up, never below zero."""
        assert course_handicap(index) == expected


class TestAllocate:

    def test_handicap_20_double_allocates_two_hardest(self):
        """Course handicap 20 gives 2 strokes on stroke index 1 and 2, 1 elsewhere."""
        strokes = allocate(20, EASY_INDEXES)
        assert strokes[1] == 2
        assert strokes[2] == 2
        assert all(strokes[h] == 1 for h in range(3, 19))

    def test_handicap_20_follows_course_index(self):
        """Extra strokes land on the holes carrying stroke index 1 and 2."""
        strokes = allocate(20, COURSE_INDEXES)
        assert strokes[5] == 2     # stroke index 1
        assert strokes[14] == 2    # stroke index 2
        assert sum(strokes.values()) == 20

    @pytest.mark.parametrize("index", [0, None, -3.2])
    def test_zero_null_and_plus_get_nothing(self, index):
        """Scratch, plus and gross-only players receive no strokes."""
        strokes = allocate(index, COURSE_INDEXES)
        assert set(strokes) == set(range(1, 19))
        assert all(v == 0 for v in strokes.values())

    def test_partial_allocation_hardest_first(self):
        """12 strokes go one each to stroke index 1..12."""
        strokes = allocate(12, EASY_INDEXES)
        assert [strokes[h] for h in range(1, 19)] == [1] * 12 + [0] * 6

    @pytest.mark.parametrize("index", [1, 9, 18, 27, 36, 40])
    def test_total_equals_course_handicap(self, index):
        """Every stroke of the course handicap is allocated somewhere."""
        assert sum(allocate(index, COURSE_INDEXES).values()) == index

    def test_nine_holes_wraps_over_front_nine(self):
        """On 9 holes a 12 handicap gets 1 everywhere plus 1 on the 3 hardest front holes."""
        strokes = allocate(12, EASY_INDEXES, holes_played=9)
        assert set(strokes) == set(range(1, 10))
        assert [strokes[h] for h in range(1, 10)] == [2, 2, 2, 1, 1, 1, 1, 1, 1]

    def test_nine_holes_orders_by_course_index(self):
        """The hardest front-nine holes by course index get the extra strokes."""
        strokes = allocate(10, COURSE_INDEXES, holes_played=9)
        # hole 5 carries stroke index 1, the lowest on the front nine
        assert strokes[5] == 2
        assert sum(strokes.values()) == 10

    def test_unsupported_round_length(self):
        """Only 9 and 18 hole rounds are allocated."""
        with pytest.raises(InvalidConfiguration):
            allocate(10, EASY_INDEXES, holes_played=12)


class TestNetStrokes:

    def test_subtracts_strokes(self):
        assert net_strokes(5, 1) == 4

    def test_floored_at_one(self):
        """A net score is never zero or negative."""
        assert net_strokes(2, 3) == 1
        assert net_strokes(1, 2) == 1

    def test_unplayed_hole_stays_absent(self):
        """A missing gross score is not treated as zero or par."""
        assert net_strokes(None, 1) is None
