"""Competition ranking with tie handling.

Tied entries share a rank and the next distinct rank skips ahead by the size
of the tie group: 70, 70, 72 ranks as 1, 1, 3 (never 1, 1, 2).
"""

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, TypeVar

from .constants import BETTER_DIRECTIONS

T = TypeVar('T')


@dataclass(frozen=True)
class RankedItem(Generic[T]):
    """An item with its competition rank and the size of its tie group."""
    item: T
    rank: int
    tie_count: int


def rank_with_ties(
    items: Iterable[T],
    key: Callable[[T], float],
    direction: str = 'lower',
) -> list[RankedItem[T]]:
    """
    Rank items with standard competition ranking.

    Args:
        items: Items to rank
        key: Function returning the score of an item
        direction: 'lower' (golf strokes) or 'higher' (points) is better

    Returns:
        RankedItems in rank order. Items that tie keep their input order.

    Example:
        ranked = rank_with_ties([4, 3, 3, 5], key=lambda s: s)
        [(r.item, r.rank, r.tie_count) for r in ranked]
        # [(3, 1, 2), (3, 1, 2), (4, 3, 1), (5, 4, 1)]
    """
    if direction not in BETTER_DIRECTIONS:
        raise ValueError(f'Invalid ranking direction: {direction}')

    ordered = sorted(items, key=key, reverse=direction == 'higher')

    results: list[RankedItem[T]] = []
    i = 0
    while i < len(ordered):
        score = key(ordered[i])
        group = 1
        while i + group < len(ordered) and key(ordered[i + group]) == score:
            group += 1

        rank = i + 1
        for tied in ordered[i:i + group]:
            results.append(RankedItem(item=tied, rank=rank, tie_count=group))
        i += group

    return results


def matches_rank_condition(
    rank: int,
    tie_count: int,
    target_rank: int,
    target_tie_count: int,
) -> bool:
    """
    Check a rank/tie-count pair against a condition.

    matches_rank_condition(1, 1, 1, 1) is an outright winner;
    matches_rank_condition(1, 2, 1, 1) is False (two-way tie).
    """
    return rank == target_rank and tie_count == target_tie_count


def create_rank_lookup(
    ranked: Iterable[RankedItem[T]],
    id_getter: Callable[[T], str],
) -> dict[str, tuple[int, int]]:
    """Map item id -> (rank, tie_count)."""
    return {id_getter(r.item): (r.rank, r.tie_count) for r in ranked}
