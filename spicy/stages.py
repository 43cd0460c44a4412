"""Pipeline stages 1-10.

Every stage takes a ScoringContext and returns a new one. The scoreboard is
deep-copied before it is updated, so a context handed to a stage (and every
scoreboard a caller kept from an earlier stage) is never modified.
"""

import copy
import logging
from dataclasses import replace

from .handicap import calculate_pops as pops_for_hole
from .junk import JunkInputs, compile_junk_rules, evaluate_junk_for_hole, possible_points
from .models import (
    HoleInfo,
    HoleResult,
    PlayerCumulative,
    PlayerHoleResult,
    Scoreboard,
    ScoreboardMeta,
    ScoringContext,
    ScoringWarning,
    TeamCumulative,
    TeamHoleResult,
)
from .multipliers import (
    MultiplierInputs,
    compile_multiplier_rules,
    evaluate_multipliers_for_hole,
    front_nine_pre_double_total,
)
from .options import game_option_flag, game_option_value, junk_options, multiplier_options
from .points import calculate_hole_points
from .ranking import rank_with_ties
from .team_scoring import (
    TEAM_SCORE_METHODS,
    VEGAS,
    calculate_team_metrics,
    calculate_vegas_score,
    team_score,
)

logger = logging.getLogger('spicy.stages')


def _with_scoreboard(ctx: ScoringContext, scoreboard: Scoreboard) -> ScoringContext:
    return replace(ctx, scoreboard=scoreboard)


def _team_ids(ctx: ScoringContext) -> list[str]:
    """Every team id in the game, in order of first appearance."""
    seen: dict[str, None] = {}
    for info in ctx.holes:
        for roster in ctx.teams_per_hole.get(info.hole, ()):
            seen.setdefault(roster.team_id, None)
    return list(seen)


# 1. Initialize

def initialize_scoreboard(ctx: ScoringContext) -> ScoringContext:
    """
    Build the zero-valued scoreboard.

    Every hole appears in ``holes`` and every player and team appears on
    every hole and in ``cumulative``, so later stages index without checks.
    A team absent from a hole's roster is present with no members.
    """
    team_ids = _team_ids(ctx)
    scoreboard = Scoreboard(
        meta=ScoreboardMeta(
            game_id=ctx.game.game_id,
            holes=[info.hole for info in ctx.holes],
            has_teams=bool(team_ids),
        ),
        warnings=list(ctx.scoreboard.warnings),
    )

    for info in ctx.holes:
        rosters = {r.team_id: r for r in ctx.teams_per_hole.get(info.hole, ())}
        teams = {}
        for team_id in team_ids:
            roster = rosters.get(team_id)
            members = list(roster.player_ids) if roster else []
            teams[team_id] = TeamHoleResult(team_id=team_id, player_ids=members)

        scoreboard.holes[info.hole] = HoleResult(
            hole=info.hole,
            par=info.par,
            players={player_id: PlayerHoleResult(player_id=player_id) for player_id in ctx.rounds},
            teams=teams,
        )

    scoreboard.cumulative.players = {pid: PlayerCumulative(player_id=pid) for pid in ctx.rounds}
    scoreboard.cumulative.teams = {tid: TeamCumulative(team_id=tid) for tid in team_ids}

    logger.debug(
        f'Initialized scoreboard: {len(ctx.holes)} holes, {len(ctx.rounds)} players, '
        f'{len(team_ids)} teams'
    )
    return _with_scoreboard(ctx, scoreboard)


# 2. Gross scores

def calculate_gross_scores(ctx: ScoringContext) -> ScoringContext:
    """Copy entered strokes into the scoreboard. Missing entries stay 0."""
    scoreboard = copy.deepcopy(ctx.scoreboard)

    for info in ctx.holes:
        hole = scoreboard.holes[info.hole]
        for player_id, player in hole.players.items():
            entry = ctx.rounds[player_id].scores.get(info.hole)
            player.gross = entry.gross if entry else 0
            player.score_to_par = player.gross - info.par if player.scored else 0
        hole.scores_entered = sum(1 for p in hole.players.values() if p.scored)

    return _with_scoreboard(ctx, scoreboard)


# 3. Pops

def calculate_pops(ctx: ScoringContext) -> ScoringContext:
    """Handicap strokes for every player on every hole."""
    scoreboard = copy.deepcopy(ctx.scoreboard)
    stroke_holes = ctx.config.stroke_holes

    for info in ctx.holes:
        for player_id, player in scoreboard.holes[info.hole].players.items():
            handicap = ctx.handicaps[player_id].adjusted_handicap
            player.pops = pops_for_hole(handicap, info.allocation, stroke_holes)

    return _with_scoreboard(ctx, scoreboard)


# 4. Net scores

def calculate_net_scores(ctx: ScoringContext) -> ScoringContext:
    """net = gross - pops, only for holes the player has scored."""
    scoreboard = copy.deepcopy(ctx.scoreboard)

    for info in ctx.holes:
        for player in scoreboard.holes[info.hole].players.values():
            if player.scored:
                player.net = player.gross - player.pops
                player.net_to_par = player.net - info.par
            else:
                player.net = 0
                player.net_to_par = 0

    return _with_scoreboard(ctx, scoreboard)


# 5. Team scores

def calculate_team_scores(ctx: ScoringContext) -> ScoringContext:
    """
    Team metrics from members' net scores.

    ``score`` (what teams are ranked on) follows the 'team_score' game
    option: best_ball (default), sum, aggregate, worst_ball, average or
    vegas. Vegas reads members' gross scores as a two-digit number.
    """
    scoreboard = copy.deepcopy(ctx.scoreboard)

    method = game_option_value(ctx.options, 'team_score', 'best_ball')
    cancel_flip = game_option_flag(ctx.options, 'birdies_cancel_flip')
    if method not in TEAM_SCORE_METHODS and method != VEGAS:
        logger.warning(f'Unknown team_score {method!r}, using best_ball')
        scoreboard.warnings.append(ScoringWarning(
            option_name='team_score',
            message=f'unknown team score method {method!r}, using best_ball',
            stage='team_scores',
        ))
        method = 'best_ball'

    for info in ctx.holes:
        hole = scoreboard.holes[info.hole]
        for team in hole.teams.values():
            metrics = calculate_team_metrics(team.player_ids, hole.players)
            team.low_ball = metrics.low_ball
            team.total = metrics.total
            team.worst_ball = metrics.worst_ball
            team.average = metrics.average
            if method == VEGAS:
                opponents = [
                    p for other in hole.teams.values() if other.team_id != team.team_id
                    for p in other.player_ids
                ]
                team.score = calculate_vegas_score(
                    team.player_ids, opponents, hole.players, cancel_flip
                ).score
            else:
                team.score = team_score(metrics, method) if metrics.scored else 0

    return _with_scoreboard(ctx, scoreboard)


# 6. Teams

def assign_teams(ctx: ScoringContext) -> ScoringContext:
    """
    Check team rosters against the players in the game.

    Membership was fixed at Initialize; this stage only logs inconsistencies
    and returns the context unchanged.
    """
    for info in ctx.holes:
        seen: dict[str, str] = {}
        for roster in ctx.teams_per_hole.get(info.hole, ()):
            for player_id in roster.player_ids:
                if player_id not in ctx.rounds:
                    logger.warning(
                        f'Hole {info.hole}: team {roster.team_id} lists unknown player {player_id}'
                    )
                if player_id in seen and seen[player_id] != roster.team_id:
                    logger.warning(
                        f'Hole {info.hole}: player {player_id} is on teams '
                        f'{seen[player_id]} and {roster.team_id}'
                    )
                seen.setdefault(player_id, roster.team_id)
    return ctx


# 7. Ranking

def _rank_hole(hole: HoleResult, vegas: bool = False) -> None:
    scored_players = [p for p in hole.players.values() if p.scored]
    for ranked in rank_with_ties(scored_players, key=lambda p: p.net, direction='lower'):
        ranked.item.rank = ranked.rank
        ranked.item.tie_count = ranked.tie_count

    # A vegas team needs two scores before it has a number to rank
    scored_teams = [
        t for t in hole.teams.values()
        if any(hole.players[p].scored for p in t.player_ids if p in hole.players)
        and not (vegas and t.score == 0)
    ]
    for ranked in rank_with_ties(scored_teams, key=lambda t: t.score, direction='lower'):
        ranked.item.rank = ranked.rank
        ranked.item.tie_count = ranked.tie_count


def rank_holes(ctx: ScoringContext) -> ScoringContext:
    """Rank players by net and teams by team score on every scored hole."""
    scoreboard = copy.deepcopy(ctx.scoreboard)
    vegas = game_option_value(ctx.options, 'team_score') == VEGAS
    for info in ctx.holes:
        hole = scoreboard.holes[info.hole]
        if hole.scores_entered:
            _rank_hole(hole, vegas)
    return _with_scoreboard(ctx, scoreboard)


# 8. Junk

def _junk_inputs(ctx: ScoringContext, info: HoleInfo, next_ball: bool) -> JunkInputs:
    player_scores = {
        player_id: rnd.scores[info.hole]
        for player_id, rnd in ctx.rounds.items()
        if info.hole in rnd.scores
    }
    team_flags = {
        roster.team_id: frozenset(
            o.option_name for o in roster.options
            if o.first_hole in (None, info.hole) and o.is_set
        )
        for roster in ctx.teams_per_hole.get(info.hole, ())
    }
    return JunkInputs(player_scores, team_flags, next_ball)


def evaluate_junk(ctx: ScoringContext) -> ScoringContext:
    """Award junk on every scored hole; malformed declarations become warnings."""
    scoreboard = copy.deepcopy(ctx.scoreboard)

    rules, warnings = compile_junk_rules(junk_options(ctx.options, ctx.config.default_seq))
    for warning in warnings:
        logger.warning(f'Skipping junk option {warning.option_name}: {warning.message}')
    scoreboard.warnings.extend(warnings)
    scoreboard.meta.points_per_hole = sum((r.value for r in rules if r.single_award), 0)

    next_ball = game_option_flag(ctx.options, 'next_ball_breaks_ties')
    for info in ctx.holes:
        hole = scoreboard.holes[info.hole]
        if not hole.scores_entered:
            continue
        scoreboard.holes[info.hole] = evaluate_junk_for_hole(
            hole, rules, _junk_inputs(ctx, info, next_ball)
        )

    return _with_scoreboard(ctx, scoreboard)


# 9. Multipliers

def evaluate_multipliers(ctx: ScoringContext) -> ScoringContext:
    """
    Apply multipliers hole by hole, in playing order.

    Availability conditions look at each team's points before the hole, so
    a running tally of provisional points is kept as holes are processed.
    Holes without scores are still evaluated (so a press made there is
    checked for availability when it is made) but their results are not
    stored.
    """
    scoreboard = copy.deepcopy(ctx.scoreboard)

    junk_options_ = junk_options(ctx.options, ctx.config.default_seq)
    junk_rules, _ = compile_junk_rules(junk_options_)  # warnings already reported by evaluate_junk
    rules, warnings = compile_multiplier_rules(
        multiplier_options(ctx.options, ctx.config.default_seq),
        [o.name for o in junk_options_],
        ctx.config.default_multiplier_value,
    )
    for warning in warnings:
        logger.warning(f'Skipping multiplier option {warning.option_name}: {warning.message}')
    scoreboard.warnings.extend(warnings)

    better_points = game_option_value(ctx.options, 'better_points', 'higher')
    pre_double_total = front_nine_pre_double_total(ctx.activations, rules)
    running = {team_id: 0 for team_id in scoreboard.cumulative.teams}
    triggered: dict[tuple[str, str], tuple] = {}
    rejected: set[tuple[str, str, str]] = set()
    previous_hole = None

    for info in ctx.holes:
        hole = scoreboard.holes[info.hole]
        inputs = MultiplierInputs(
            hole=info,
            activations=ctx.activations,
            triggered=dict(triggered),
            rejected=frozenset(rejected),
            running_points=dict(running),
            previous_hole=previous_hole,
            possible_points=possible_points(junk_rules, hole),
            better_points=better_points,
            front_nine_pre_double=pre_double_total,
        )
        outcome = evaluate_multipliers_for_hole(hole, rules, inputs)
        previous_hole = info.hole

        rejected.update(outcome.rejected)
        for activation in outcome.triggered:
            key = (activation.team_id, activation.name)
            triggered[key] = triggered.get(key, ()) + (activation,)

        if not hole.scores_entered:
            continue

        scoreboard.holes[info.hole] = outcome.hole
        scoreboard.warnings.extend(outcome.warnings)
        provisional = calculate_hole_points(outcome.hole)
        for team_id, team in provisional.teams.items():
            running[team_id] = running.get(team_id, 0) + team.points

    return _with_scoreboard(ctx, scoreboard)


# 10. Points

def calculate_points(ctx: ScoringContext) -> ScoringContext:
    """Combine junk and multipliers into points on every hole."""
    scoreboard = copy.deepcopy(ctx.scoreboard)
    for info in ctx.holes:
        scoreboard.holes[info.hole] = calculate_hole_points(scoreboard.holes[info.hole])
    return _with_scoreboard(ctx, scoreboard)
