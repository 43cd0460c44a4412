"""Detect presses and tee flips made stale by editing an earlier hole.

A press is declared while the game is being played, when its availability
condition holds (the team is down the most, say). Correcting a score on an
earlier hole can change the standings the press was made against. Re-scoring
drops such a press; this module reports which ones were dropped and why, so
the caller can tell the players before the scoreboard changes under them.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .models import Scoreboard, ScoringContext
from .multipliers import DeclaredMultiplierRule, compile_multiplier_rules
from .options import game_option_flag, junk_options, multiplier_options
from .pipeline import build_context, run_pipeline
from .schemas import GameSnapshot, ScoringConfig

logger = logging.getLogger('spicy.invalidation')

DEFAULT_REASON = 'Availability condition no longer met'
TEE_FLIP_OPTIONS = ('tee_flip_winner', 'tee_flip_declined')


@dataclass
class InvalidatedItem:
    """A multiplier or tee flip result that no longer stands.

    ``kind`` is 'multiplier' or 'tee_flip'; tee flips have no team or name.
    """
    kind: str
    hole: str
    reason: str
    team_id: Optional[str] = None
    name: Optional[str] = None
    disp: Optional[str] = None


@dataclass
class ScoreImpact:
    team_id: str
    current_total: float
    projected_total: float


@dataclass
class InvalidationResult:
    items: list[InvalidatedItem] = field(default_factory=list)
    score_impact: list[ScoreImpact] = field(default_factory=list)
    scoreboard: Optional[Scoreboard] = None  # the re-scored game

    @property
    def has_invalidations(self) -> bool:
        return bool(self.items)


def _applied(scoreboard: Scoreboard, hole: str, team_id: str, name: str) -> bool:
    """Whether a declared multiplier first made on ``hole`` is on the scoreboard there."""
    hole_result = scoreboard.holes.get(hole)
    if hole_result is None or team_id not in hole_result.teams:
        return False
    return any(
        m.name == name and m.first_hole == hole
        for m in hole_result.teams[team_id].multipliers
    )


def _depends_on(availability: Optional[str], name: str) -> bool:
    if not availability or 'other_team_multiplied_with' not in availability:
        return False
    return f"'{name}'" in availability or f'"{name}"' in availability


def _multiplier_items(ctx: ScoringContext, previous: Scoreboard, holes_after: list[str]) -> list[InvalidatedItem]:
    rules, _ = compile_multiplier_rules(
        multiplier_options(ctx.options, ctx.config.default_seq),
        [o.name for o in junk_options(ctx.options, ctx.config.default_seq)],
        ctx.config.default_multiplier_value,
    )
    declared = [r for r in rules if isinstance(r, DeclaredMultiplierRule) and r.availability is not None]

    dropped = []
    for rule in declared:
        option = ctx.options[rule.name]
        for activation in ctx.activations.named(rule.name):
            hole = activation.hole.hole
            if hole not in holes_after:
                continue
            if _applied(previous, hole, activation.team_id, rule.name) and \
                    not _applied(ctx.scoreboard, hole, activation.team_id, rule.name):
                dropped.append(InvalidatedItem(
                    kind='multiplier',
                    hole=hole,
                    reason=option.invalidation_reason or DEFAULT_REASON,
                    team_id=activation.team_id,
                    name=rule.name,
                    disp=option.disp or rule.name,
                ))

    # A multiplier only available because another team's dropped one was
    # on the hole is reported against that one
    items = []
    for item in dropped:
        availability = ctx.options[item.name].availability
        cause = next((
            other for other in dropped
            if other.hole == item.hole and other.team_id != item.team_id
            and _depends_on(availability, other.name)
        ), None)
        if cause is not None:
            item.reason = f"Depends on Team {cause.team_id}'s {cause.disp}"
        items.append(item)
    return items


def _teams_tied_before(scoreboard: Scoreboard, hole_ids: list[str], index: int) -> bool:
    """All teams level after the previous hole. The first hole counts as tied."""
    if index == 0:
        return True
    previous = scoreboard.holes.get(hole_ids[index - 1])
    if previous is None:
        return True
    if len(previous.teams) < 2:
        return False
    return all(t.running_diff == 0 for t in previous.teams.values())


def _tee_flip_items(ctx: ScoringContext, hole_ids: list[str], holes_after: list[str]) -> list[InvalidatedItem]:
    items = []
    for hole in holes_after:
        flipped = any(
            option.option_name in TEE_FLIP_OPTIONS and option.first_hole == hole
            for roster in ctx.teams_per_hole.get(hole, ())
            for option in roster.options
        )
        if flipped and not _teams_tied_before(ctx.scoreboard, hole_ids, hole_ids.index(hole)):
            items.append(InvalidatedItem(kind='tee_flip', hole=hole, reason='Teams are no longer tied'))
    return items


def detect_invalidations(
    snapshot: GameSnapshot,
    previous: Scoreboard,
    edited_hole: str,
    config: Optional[ScoringConfig] = None,
) -> InvalidationResult:
    """
    Re-score an edited game and report what the edit invalidated.

    Only holes after ``edited_hole`` are checked. Tee flips are checked
    when the game has the 'tee_flip' option on.

    Args:
        snapshot: The game with the corrected score
        previous: Scoreboard computed before the correction
        edited_hole: Hole id whose score was corrected
        config: Scoring defaults (ScoringConfig() when omitted)

    Returns:
        InvalidationResult with the dropped items, each team's points total
        before and after the correction, and the re-scored scoreboard
    """
    ctx = run_pipeline(build_context(snapshot, config))
    scoreboard = ctx.scoreboard
    hole_ids = [info.hole for info in ctx.holes]

    items: list[InvalidatedItem] = []
    if edited_hole in hole_ids:
        holes_after = hole_ids[hole_ids.index(edited_hole) + 1:]
        items.extend(_multiplier_items(ctx, previous, holes_after))
        if game_option_flag(ctx.options, 'tee_flip'):
            items.extend(_tee_flip_items(ctx, hole_ids, holes_after))
    else:
        logger.warning(f'Edited hole {edited_hole} is not in game {snapshot.game_id}')

    for item in items:
        logger.info(f'Hole {item.hole}: {item.name or item.kind} invalidated ({item.reason})')

    impact = []
    for team_id, total in scoreboard.cumulative.teams.items():
        before = previous.cumulative.teams.get(team_id)
        impact.append(ScoreImpact(
            team_id=team_id,
            current_total=before.points_total if before else 0,
            projected_total=total.points_total,
        ))

    return InvalidationResult(items=items, score_impact=impact, scoreboard=scoreboard)
