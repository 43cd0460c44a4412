"""Scoring pipeline: build the context, then run the stages in order."""

import logging
from typing import Callable, Iterable, Optional

from .constants import HANDICAP_MODES
from .cumulative import calculate_cumulatives
from .handicap import adjust_handicaps_to_low, effective_handicap
from .models import (
    HoleInfo,
    PlayerHandicapInfo,
    Scoreboard,
    ScoringContext,
    ScoringWarning,
    TeamRoster,
)
from .multipliers import ActivationIndex
from .options import game_option_flag, game_option_value, merge_options
from .schemas import GameSnapshot, ScoringConfig
from .stages import (
    assign_teams,
    calculate_gross_scores,
    calculate_net_scores,
    calculate_points,
    calculate_pops,
    calculate_team_scores,
    evaluate_junk,
    evaluate_multipliers,
    initialize_scoreboard,
    rank_holes,
)

logger = logging.getLogger('spicy.pipeline')

Stage = Callable[[ScoringContext], ScoringContext]

STAGES: tuple[Stage, ...] = (
    initialize_scoreboard,
    calculate_gross_scores,
    calculate_pops,
    calculate_net_scores,
    calculate_team_scores,
    assign_teams,
    rank_holes,
    evaluate_junk,
    evaluate_multipliers,
    calculate_points,
    calculate_cumulatives,
)


def _hole_infos(snapshot: GameSnapshot, config: ScoringConfig) -> tuple[HoleInfo, ...]:
    """Holes in playing order, with par and allocation defaults filled in."""
    infos = []
    for position, game_hole in enumerate(snapshot.holes, start=1):
        seq = game_hole.seq if game_hole.seq is not None else position
        par = game_hole.par if game_hole.par is not None else config.default_par
        allocation = game_hole.allocation
        if allocation is None:
            allocation = int(game_hole.hole) if game_hole.hole.isdigit() else seq
        infos.append((seq, position, HoleInfo(game_hole.hole, seq, par, allocation)))
    return tuple(info for _, _, info in sorted(infos, key=lambda entry: entry[:2]))


def _handicaps(
    snapshot: GameSnapshot,
    use_handicaps: bool,
    mode: str,
) -> dict[str, PlayerHandicapInfo]:
    effective = {
        r.player_id: effective_handicap(r.course_handicap, r.game_handicap, r.handicap_index, r.slope)
        for r in snapshot.rounds
    }
    if not use_handicaps:
        adjusted = {player_id: 0 for player_id in effective}
    elif mode == 'low':
        adjusted = adjust_handicaps_to_low(effective)
    else:
        adjusted = dict(effective)

    return {
        r.player_id: PlayerHandicapInfo(
            player_id=r.player_id,
            course_handicap=r.course_handicap or 0,
            game_handicap=r.game_handicap,
            effective_handicap=effective[r.player_id],
            adjusted_handicap=adjusted[r.player_id],
        )
        for r in snapshot.rounds
    }


def build_context(snapshot: GameSnapshot, config: Optional[ScoringConfig] = None) -> ScoringContext:
    """
    Resolve a game snapshot into the immutable context the stages run on.

    Args:
        snapshot: The game to score
        config: Scoring defaults (ScoringConfig() when omitted; no file is read)

    Returns:
        ScoringContext with an empty scoreboard
    """
    config = config or ScoringConfig()
    options = merge_options(snapshot.spec_options, snapshot.options)
    warnings: list[ScoringWarning] = []

    mode = game_option_value(options, 'handicap_index_from', config.default_handicap_mode)
    if mode not in HANDICAP_MODES:
        logger.warning(f'Unknown handicap_index_from {mode!r}, using {config.default_handicap_mode}')
        warnings.append(ScoringWarning(
            option_name='handicap_index_from',
            message=f'unknown handicap mode {mode!r}, using {config.default_handicap_mode}',
            stage='context',
        ))
        mode = config.default_handicap_mode
    use_handicaps = game_option_flag(options, 'use_handicaps', True)

    holes = _hole_infos(snapshot, config)
    teams_per_hole = {
        game_hole.hole: tuple(
            TeamRoster(team.team, tuple(team.player_ids), tuple(team.options))
            for team in game_hole.teams
        )
        for game_hole in snapshot.holes
    }

    return ScoringContext(
        game=snapshot,
        config=config,
        holes=holes,
        rounds={r.player_id: r for r in snapshot.rounds},
        handicaps=_handicaps(snapshot, use_handicaps, mode),
        teams_per_hole=teams_per_hole,
        options=options,
        activations=ActivationIndex.from_holes(holes, teams_per_hole),
        handicap_mode=mode,
        scoreboard=Scoreboard(warnings=warnings),
    )


def run_pipeline(ctx: ScoringContext, stages: Iterable[Stage] = STAGES) -> ScoringContext:
    """Apply stages in order, each to the context returned by the last."""
    for stage in stages:
        logger.debug(f'Running stage {stage.__name__}')
        ctx = stage(ctx)
    return ctx


def score(snapshot: GameSnapshot, config: Optional[ScoringConfig] = None) -> Scoreboard:
    """
    Score a game.

    Pure and deterministic: the same snapshot and config always produce an
    equal scoreboard, and the snapshot is never modified.

    Example:
        scoreboard = score(GameSnapshot(**data))
        print(scoreboard.cumulative.teams['A'].points_total)
    """
    ctx = run_pipeline(build_context(snapshot, config))
    logger.info(
        f'Scored game {snapshot.game_id}: {len(ctx.holes)} holes, '
        f'{len(ctx.rounds)} players, {len(ctx.scoreboard.warnings)} warnings'
    )
    return ctx.scoreboard
