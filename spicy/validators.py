"""Validation functions for rule-sets, game snapshots and scoreboards."""

from typing import Mapping

from .constants import BETTER_DIRECTIONS, HANDICAP_MODES
from .junk import compile_junk_rules
from .models import Scoreboard
from .multipliers import compile_multiplier_rules
from .options import game_option_value, junk_options, merge_options, multiplier_options
from .points import junk_total, multiplier_product, team_junk_points
from .schemas import GameSnapshot, Option
from .team_scoring import TEAM_SCORE_METHODS, VEGAS

# Points are compared with this tolerance to allow fractional multipliers
TOLERANCE = 1e-6


def validate_rule_set(options: Mapping[str, Option]) -> list[str]:
    """
    Check that every junk and multiplier declaration compiles.

    Reports the same problems the junk and multiplier stages would skip
    with a warning, plus game options set to unknown values.

    Args:
        options: Merged option declarations (name -> option)

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    declared_junk = junk_options(options)
    _, junk_warnings = compile_junk_rules(declared_junk)
    _, multiplier_warnings = compile_multiplier_rules(
        multiplier_options(options), [o.name for o in declared_junk]
    )
    for warning in junk_warnings + multiplier_warnings:
        errors.append(f'{warning.stage} option {warning.option_name}: {warning.message}')

    checks = (
        ('team_score', (*TEAM_SCORE_METHODS, VEGAS)),
        ('handicap_index_from', HANDICAP_MODES),
        ('better_points', BETTER_DIRECTIONS),
    )
    for name, allowed in checks:
        value = game_option_value(options, name)
        if value is not None and value not in allowed:
            errors.append(f'game option {name} is {value!r} (expected one of {", ".join(allowed)})')

    return errors


def validate_game(snapshot: GameSnapshot) -> tuple[list[str], list[str]]:
    """
    Check a game snapshot before scoring it.

    Errors:
    - Duplicate hole ids or player ids
    - Team members who are not playing in the game
    - A player on two teams on the same hole

    Warnings:
    - Scores entered for holes the game doesn't have
    - Rule declarations that will be skipped (see validate_rule_set)

    Returns:
        Tuple of (errors, warnings)
    """
    errors: list[str] = []
    warnings: list[str] = []

    hole_ids = [h.hole for h in snapshot.holes]
    duplicate_holes = sorted({h for h in hole_ids if hole_ids.count(h) > 1})
    if duplicate_holes:
        errors.append(f'Duplicate holes: {", ".join(duplicate_holes)}')

    player_ids = [r.player_id for r in snapshot.rounds]
    duplicate_players = sorted({p for p in player_ids if player_ids.count(p) > 1})
    if duplicate_players:
        errors.append(f'Duplicate players: {", ".join(duplicate_players)}')

    for game_hole in snapshot.holes:
        seen: dict[str, str] = {}
        for team in game_hole.teams:
            for player_id in team.player_ids:
                if player_id not in player_ids:
                    errors.append(
                        f'Hole {game_hole.hole}: team {team.team} has unknown player {player_id}'
                    )
                elif player_id in seen and seen[player_id] != team.team:
                    errors.append(
                        f'Hole {game_hole.hole}: {player_id} is on teams {seen[player_id]} and {team.team}'
                    )
                seen.setdefault(player_id, team.team)

    for player_round in snapshot.rounds:
        extra = sorted(set(player_round.scores) - set(hole_ids))
        if extra:
            warnings.append(
                f'{player_round.player_id} has scores for holes not in the game: {", ".join(extra)}'
            )

    warnings.extend(validate_rule_set(merge_options(snapshot.spec_options, snapshot.options)))
    return errors, warnings


def _close(a: float, b: float) -> bool:
    return abs(a - b) <= TOLERANCE


def validate_scoreboard(scoreboard: Scoreboard) -> tuple[list[str], list[str]]:
    """
    Check that a scoreboard is internally consistent.

    Errors:
    - Points don't follow from junk and multipliers
    - Running totals don't match the sum of points so far
    - Unscored players carry net, junk or points
    - Cumulative totals don't match the holes

    Warnings:
    - Holes where only some players have scored

    Returns:
        Tuple of (errors, warnings)
    """
    errors: list[str] = []
    warnings: list[str] = []
    player_running: dict[str, float] = {}
    team_running: dict[str, float] = {}
    player_points: dict[str, float] = {}
    team_points: dict[str, float] = {}

    for hole_id in scoreboard.meta.holes:
        hole = scoreboard.holes.get(hole_id)
        if hole is None:
            errors.append(f'Hole {hole_id} is missing from the scoreboard')
            continue

        if 0 < hole.scores_entered < len(hole.players):
            warnings.append(f'Hole {hole_id}: {hole.scores_entered} of {len(hole.players)} scores entered')

        for player_id, player in hole.players.items():
            if not player.scored and (player.net or player.junk or player.points):
                errors.append(f'Hole {hole_id}: {player_id} has no score but has net, junk or points')

            if hole.teams:
                expected = junk_total(player.junk) * hole.hole_multiplier
            else:
                expected = junk_total(player.junk) * multiplier_product(player.multipliers)
            if not _close(player.points, expected):
                errors.append(f'Hole {hole_id}: {player_id} has {player.points} points (expected {expected})')

            player_running[player_id] = player_running.get(player_id, 0) + player.points
            if not _close(player.running_total, player_running[player_id]):
                errors.append(
                    f'Hole {hole_id}: {player_id} running total {player.running_total} '
                    f'!= {player_running[player_id]}'
                )
            if player.scored:
                player_points[player_id] = player_points.get(player_id, 0) + player.points

        for team_id, team in hole.teams.items():
            expected = team_junk_points(hole, team_id) * hole.hole_multiplier
            if not _close(team.points, expected):
                errors.append(f'Hole {hole_id}: team {team_id} has {team.points} points (expected {expected})')

            team_running[team_id] = team_running.get(team_id, 0) + team.points
            if not _close(team.running_total, team_running[team_id]):
                errors.append(
                    f'Hole {hole_id}: team {team_id} running total {team.running_total} '
                    f'!= {team_running[team_id]}'
                )
            team_points[team_id] = team_points.get(team_id, 0) + team.points

    for player_id, total in scoreboard.cumulative.players.items():
        if not _close(total.points_total, player_points.get(player_id, 0)):
            errors.append(
                f'{player_id} points total {total.points_total} != {player_points.get(player_id, 0)}'
            )
    for team_id, total in scoreboard.cumulative.teams.items():
        if not _close(total.points_total, team_points.get(team_id, 0)):
            errors.append(
                f'Team {team_id} points total {total.points_total} != {team_points.get(team_id, 0)}'
            )

    return errors, warnings
