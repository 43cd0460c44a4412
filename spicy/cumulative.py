"""Stage 11: cumulative totals, running totals and match status."""

import copy
import logging
from dataclasses import replace
from typing import Union

from .models import HoleResult, Scoreboard, ScoringContext
from .options import game_option_flag, game_option_value, meta_option_value
from .points import junk_total, team_junk_points
from .ranking import rank_with_ties

logger = logging.getLogger('spicy.cumulative')

Number = Union[int, float]


def _team_scored(hole: HoleResult, team_id: str) -> bool:
    team = hole.teams[team_id]
    return any(hole.players[p].scored for p in team.player_ids if p in hole.players)


def _sum_players(scoreboard: Scoreboard) -> None:
    for hole in scoreboard.holes.values():
        for player_id, player in hole.players.items():
            if not player.scored:
                continue
            total = scoreboard.cumulative.players[player_id]
            total.gross_total += player.gross
            total.pops_total += player.pops
            total.net_total += player.net
            total.points_total += player.points
            total.junk_total += junk_total(player.junk)
            total.holes_played += 1


def _sum_teams(scoreboard: Scoreboard) -> None:
    for hole in scoreboard.holes.values():
        for team_id, team in hole.teams.items():
            if not _team_scored(hole, team_id):
                continue
            total = scoreboard.cumulative.teams[team_id]
            total.score_total += team.score
            total.points_total += team.points
            total.junk_total += team_junk_points(hole, team_id)
            total.holes_played += 1


def _running_totals(scoreboard: Scoreboard) -> None:
    """Prefix sums of points, hole by hole in playing order."""
    player_running: dict[str, Number] = {}
    team_running: dict[str, Number] = {}
    for hole_id in scoreboard.meta.holes:
        hole = scoreboard.holes[hole_id]
        for player_id, player in hole.players.items():
            player_running[player_id] = player_running.get(player_id, 0) + player.points
            player.running_total = player_running[player_id]
        for team_id, team in hole.teams.items():
            team_running[team_id] = team_running.get(team_id, 0) + team.points
            team.running_total = team_running[team_id]


def _head_to_head(scoreboard: Scoreboard, lower_is_better: bool, match_play: bool) -> None:
    """
    holeNetTotal, runningDiff and match status for two-team games.

    Differences are from each team's own point of view, positive meaning
    ahead. When lower points are better the sign is flipped.

    A match is over once the leader is ahead by more than the holes left
    and every hole so far is fully scored; it then stays over.
    """
    sign = -1 if lower_is_better else 1
    hole_ids = scoreboard.meta.holes
    player_count = len(scoreboard.cumulative.players)
    all_scored_so_far = True
    final: dict[str, Union[int, str]] | None = None

    for i, hole_id in enumerate(hole_ids):
        hole = scoreboard.holes[hole_id]
        if hole.scores_entered < player_count:
            all_scored_so_far = False

        first, second = hole.teams.values()
        for team, other in ((first, second), (second, first)):
            team.hole_net_total = sign * (team.points - other.points)
            team.running_diff = sign * (team.running_total - other.running_total)

        if not match_play:
            continue

        if final is not None:
            for team in (first, second):
                team.match_diff = final[team.team_id]
                team.match_over = True
            continue

        holes_remaining = len(hole_ids) - i - 1
        for team in (first, second):
            team.match_diff = team.running_diff

        lead = first.running_diff
        if abs(lead) > holes_remaining and all_scored_so_far:
            if holes_remaining > 0:
                result = f'{abs(lead)} & {holes_remaining}'
                final = {first.team_id: result, second.team_id: result}
            else:
                final = {first.team_id: first.running_diff, second.team_id: second.running_diff}
            logger.info(f'Match decided on hole {hole_id}: {final[first.team_id]}')
            for team in (first, second):
                team.match_diff = final[team.team_id]
                team.match_over = True


def _rank_cumulative(scoreboard: Scoreboard) -> None:
    players = [p for p in scoreboard.cumulative.players.values() if p.holes_played]
    for ranked in rank_with_ties(players, key=lambda p: p.net_total, direction='lower'):
        ranked.item.rank = ranked.rank
        ranked.item.tie_count = ranked.tie_count

    teams = [t for t in scoreboard.cumulative.teams.values() if t.holes_played]
    for ranked in rank_with_ties(teams, key=lambda t: t.points_total, direction='higher'):
        ranked.item.rank = ranked.rank
        ranked.item.tie_count = ranked.tie_count


def is_match_play(ctx: ScoringContext) -> bool:
    """Skins games are always scored as match play; other games opt in."""
    spec_type = ctx.game.spec_type or meta_option_value(ctx.options, 'spec_type')
    return spec_type == 'skins' or game_option_flag(ctx.options, 'match_play')


def calculate_cumulatives(ctx: ScoringContext) -> ScoringContext:
    """
    Sum every player and team over the holes they have scored, fill in
    per-hole running totals, and rank the totals.

    Players are ranked on net total (lower is better), teams on points
    total (higher is better). Only entries with a scored hole are ranked.
    """
    scoreboard = copy.deepcopy(ctx.scoreboard)

    _sum_players(scoreboard)
    _sum_teams(scoreboard)
    _running_totals(scoreboard)

    if len(scoreboard.cumulative.teams) == 2:
        lower_is_better = game_option_value(ctx.options, 'better_points', 'higher') == 'lower'
        match_play = is_match_play(ctx)
        _head_to_head(scoreboard, lower_is_better, match_play)

        last = scoreboard.meta.holes[-1] if scoreboard.meta.holes else None
        if last is not None:
            for team_id, team in scoreboard.holes[last].teams.items():
                total = scoreboard.cumulative.teams[team_id]
                total.match_diff = team.match_diff
                total.match_over = team.match_over

    _rank_cumulative(scoreboard)
    return replace(ctx, scoreboard=scoreboard)
