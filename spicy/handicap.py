"""Handicap arithmetic: effective handicaps, low-mode renormalisation, pops."""

import logging
import math
from typing import Mapping, Optional

from .constants import STANDARD_SLOPE, STROKE_HOLES

logger = logging.getLogger('spicy.handicap')


def course_handicap_from_slope(handicap_index: float, slope: int) -> int:
    """
    Convert a handicap index to a course handicap.

    course handicap = index * slope / 113, rounded half away from zero.
    Plus handicaps (negative indexes) stay negative.
    """
    raw = handicap_index * slope / STANDARD_SLOPE
    return int(math.copysign(math.floor(abs(raw) + 0.5), raw))


def effective_handicap(
    course_handicap: Optional[int],
    game_handicap: Optional[int] = None,
    handicap_index: Optional[float] = None,
    slope: Optional[int] = None,
) -> int:
    """
    Resolve the handicap a player plays off in this game.

    The game handicap overrides the course handicap. Without either, a
    course handicap is derived from index and slope when both are known.
    A player with no handicap information plays off zero.
    """
    if game_handicap is not None:
        return game_handicap
    if course_handicap is not None:
        return course_handicap
    if handicap_index is not None and slope is not None:
        return course_handicap_from_slope(handicap_index, slope)
    return 0


def adjust_handicaps_to_low(handicaps: Mapping[str, int]) -> dict[str, int]:
    """
    Renormalise handicaps so the lowest player plays off zero.

    Example:
        adjust_handicaps_to_low({'a': 4, 'b': 6, 'c': 10, 'd': 14})
        # {'a': 0, 'b': 2, 'c': 6, 'd': 10}
    """
    if not handicaps:
        return {}
    low = min(handicaps.values())
    logger.debug(f'Low handicap is {low}')
    return {player_id: hcp - low for player_id, hcp in handicaps.items()}


def calculate_pops(adjusted_handicap: int, allocation: int, holes: int = STROKE_HOLES) -> int:
    """
    Handicap strokes a player receives on a hole.

    pops = adj // holes + (1 if adj % holes >= allocation else 0), using
    floor division so plus handicaps give strokes back on the easiest holes.

    Args:
        adjusted_handicap: Effective (optionally low-adjusted) handicap
        allocation: Hole difficulty ranking, 1 = hardest
        holes: Number of holes strokes are spread over

    Returns:
        Strokes received (negative for a plus handicap giving strokes back)
    """
    whole, remainder = divmod(adjusted_handicap, holes)
    return whole + (1 if remainder >= allocation else 0)
