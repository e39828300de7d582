"""
Handicap stroke allocation and net score resolution.

Course handicap is the handicap index rounded half-up. Strokes go one per
hole in stroke-index order; when the course handicap exceeds the number of
holes played, the remainder wraps onto the lowest stroke-index holes again.

Only a participant's own strokes are computed here. Relative strokes
between two players fall out of comparing their individual net scores.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional, Sequence

from golfbets.core.exceptions import InvalidConfiguration
from golfbets.core.models import COURSE_HOLES


def validate_stroke_indexes(stroke_indexes: Sequence[int]) -> None:
    """Raise InvalidConfiguration unless stroke_indexes is a permutation of 1..18."""
    if len(stroke_indexes) != COURSE_HOLES or sorted(stroke_indexes) != list(range(1, COURSE_HOLES + 1)):
        raise InvalidConfiguration(
            "Course stroke index must contain each value 1..18 exactly once",
            {"stroke_indexes": list(stroke_indexes)},
        )


def course_handicap(handicap_index: Optional[float]) -> int:
    """round(handicap_index), half-up. None and plus handicaps give 0."""
    if handicap_index is None:
        return 0
    rounded = int(Decimal(str(handicap_index)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return max(rounded, 0)


def allocate(
    handicap_index: Optional[float],
    stroke_indexes: Sequence[int],
    holes_played: int = COURSE_HOLES,
) -> Dict[int, int]:
    """
    Strokes received on each hole.

    Args:
        handicap_index: Participant's index, or None for a gross-only player.
        stroke_indexes: 18 stroke indexes, element i belongs to hole i + 1.
        holes_played:   9 (holes 1-9) or 18.

    Returns:
        {hole_number: strokes} for every hole in 1..holes_played.
    """
    validate_stroke_indexes(stroke_indexes)
    if holes_played not in (9, COURSE_HOLES):
        raise InvalidConfiguration(
            "holes_played must be 9 or 18", {"holes_played": holes_played}
        )

    holes = list(range(1, holes_played + 1))
    received = {hole: 0 for hole in holes}

    strokes = course_handicap(handicap_index)
    if strokes == 0:
        return received

    # hardest first
    ordered = sorted(holes, key=lambda h: stroke_indexes[h - 1])
    base, extra = divmod(strokes, holes_played)
    for hole in holes:
        received[hole] = base
    for hole in ordered[:extra]:
        received[hole] += 1

    return received


def net_strokes(gross: Optional[int], handicap_strokes: int) -> Optional[int]:
    """gross - handicap_strokes, floored at 1. None (hole unplayed) stays None."""
    if gross is None:
        return None
    return max(gross - handicap_strokes, 1)
