"""Point arithmetic shared by the multiplier and points stages."""

import copy
from typing import Callable, Iterable, Sequence, Union

from .models import AppliedMultiplier, AwardedJunk, HoleResult
from .schemas import PointsTableEntry

Number = Union[int, float]


def junk_total(junk: Iterable[AwardedJunk]) -> Number:
    return sum((j.value for j in junk), 0)


def multiplier_product(multipliers: Iterable[AppliedMultiplier]) -> Number:
    """Multipliers stack multiplicatively: 2x and 2x make 4x."""
    product: Number = 1
    for m in multipliers:
        product *= m.value
    return product


def team_junk_points(hole: HoleResult, team_id: str) -> Number:
    """Team-scoped junk plus the junk of the team's members, before multipliers."""
    team = hole.teams[team_id]
    total = junk_total(team.junk)
    for player_id in team.player_ids:
        player = hole.players.get(player_id)
        if player is not None:
            total += junk_total(player.junk)
    return total


def calculate_hole_points(hole: HoleResult) -> HoleResult:
    """
    Final points for every player and team on a hole.

    Team formats: team points = (team junk + members' junk) * holeMultiplier,
    and a player's points = own junk * holeMultiplier.
    Individual formats: a player's points = own junk * product of that
    player's own multipliers.
    """
    result = copy.deepcopy(hole)

    if result.teams:
        for team_id, team in result.teams.items():
            team.points = team_junk_points(result, team_id) * result.hole_multiplier
        for player in result.players.values():
            player.points = junk_total(player.junk) * result.hole_multiplier
    else:
        for player in result.players.values():
            player.points = junk_total(player.junk) * multiplier_product(player.multipliers)

    return result


# Rank points

def points_from_table(rank: int, tie_count: int, table: Iterable[PointsTableEntry]) -> Number:
    """
    Points for a rank from a lookup table, or 0 if the table has no entry.

    Tables list ties explicitly, so two players tied for first can be
    worth something other than the average of first and second.

    Example:
        table = [PointsTableEntry(rank=1, tie_count=1, points=5),
                 PointsTableEntry(rank=1, tie_count=2, points=4)]
        points_from_table(1, 2, table)  # 4
    """
    for entry in table:
        if entry.rank == rank and entry.tie_count == tie_count:
            return entry.points
    return 0


def split_points(points: Sequence[Number]) -> Number:
    """Even share of the points for a run of tied positions."""
    if not points:
        return 0
    return sum(points) / len(points)


def calculate_position_points(
    rank: int,
    tie_count: int,
    points_per_rank: Callable[[int], Number],
) -> Number:
    """
    Points for a rank, splitting the tied positions evenly.

    Two players tied for first share first and second place points:
    with 3 for first and 2 for second, each gets 2.5.
    """
    if tie_count == 1:
        return points_per_rank(rank)
    return split_points([points_per_rank(rank + i) for i in range(tie_count)])
