"""Multiplier engine.

Two kinds of multiplier declarations:

- automatic: fires when the junk named by ``based_on`` is awarded on the hole
  (a birdie BBQ doubles the hole the birdie was made on)
- declared: a press or double recorded once as a team option at its first
  hole and inherited forward according to its scope

Declared activations are stored sparsely (only at the activation hole) and
looked up through ActivationIndex. Every multiplier active on a hole, from
any team, is combined into one ``holeMultiplier`` applied to every team.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Union

from .conditions import LogicExpression, LogicState, parse_availability
from .constants import (
    AUTOMATIC_SUB_TYPES,
    DECLARED_SUB_TYPES,
    FRONT_NINE_PRE_DOUBLE,
    MULTIPLIER_SCOPES,
    PRE_DOUBLE,
)
from .errors import RuleConfigError
from .models import Activation, AppliedMultiplier, HoleInfo, HoleResult, ScoringWarning, TeamRoster
from .points import multiplier_product
from .schemas import MultiplierOption

logger = logging.getLogger('spicy.multipliers')

Number = Union[int, float]


@dataclass(frozen=True)
class AutomaticMultiplierRule:
    name: str
    value: Number
    trigger: str  # junk name
    scope: str = 'hole'
    availability: Optional[LogicExpression] = None
    override: bool = False


@dataclass(frozen=True)
class DeclaredMultiplierRule:
    name: str
    value: Number
    scope: str = 'hole'
    availability: Optional[LogicExpression] = None
    override: bool = False
    input_value: bool = False
    value_from: Optional[str] = None


MultiplierRule = Union[AutomaticMultiplierRule, DeclaredMultiplierRule]


def compile_multiplier_rule(
    option: MultiplierOption,
    junk_names: Iterable[str],
    default_value: Number = 2,
) -> MultiplierRule:
    """
    Compile one multiplier declaration.

    Args:
        option: The declaration
        junk_names: Names of the junk declared for the game
        default_value: Value used when the declaration has none

    Raises:
        RuleConfigError: If the declaration is malformed
    """
    name = option.name
    if option.scope not in MULTIPLIER_SCOPES:
        raise RuleConfigError(name, f'unknown scope {option.scope!r}')
    if option.value_from is not None and option.value_from != FRONT_NINE_PRE_DOUBLE:
        raise RuleConfigError(name, f'unknown value_from {option.value_from!r}')

    value = option.value if option.value is not None else default_value
    availability = None
    if option.availability and option.availability.strip():
        availability = parse_availability(name, option.availability)

    sub_type = option.sub_type
    based_on = option.based_on
    triggered_by_junk = based_on not in (None, 'user') and sub_type not in DECLARED_SUB_TYPES

    if sub_type in AUTOMATIC_SUB_TYPES or triggered_by_junk:
        if not based_on or based_on == 'user':
            raise RuleConfigError(name, 'automatic multiplier needs based_on naming a junk')
        if based_on not in set(junk_names):
            raise RuleConfigError(name, f'based_on names unknown junk {based_on!r}')
        return AutomaticMultiplierRule(
            name, value, based_on, option.scope, availability, option.override
        )

    if sub_type in DECLARED_SUB_TYPES or based_on == 'user' or option.input_value:
        return DeclaredMultiplierRule(
            name,
            value,
            option.scope,
            availability,
            option.override,
            option.input_value,
            option.value_from,
        )

    raise RuleConfigError(name, 'multiplier needs based_on (a junk name or user) or a sub_type')


def compile_multiplier_rules(
    options: Iterable[MultiplierOption],
    junk_names: Iterable[str],
    default_value: Number = 2,
) -> tuple[list[MultiplierRule], list[ScoringWarning]]:
    """Compile multiplier declarations, skipping malformed ones with a warning."""
    junk_names = list(junk_names)
    rules: list[MultiplierRule] = []
    warnings: list[ScoringWarning] = []
    for option in options:
        try:
            rules.append(compile_multiplier_rule(option, junk_names, default_value))
        except RuleConfigError as e:
            warnings.append(
                ScoringWarning(option_name=e.option_name, message=e.reason, stage='multipliers')
            )
    return rules, warnings


# Activation lookup

def is_active_on_hole(first: HoleInfo, hole: HoleInfo, scope: str) -> bool:
    """
    Whether an activation made on ``first`` is in effect on ``hole``.

    'rest_of_nine' runs to the end of the activation's nine (never from 9
    into 10), 'game' to the last hole, anything else covers one hole.
    """
    if scope == 'rest_of_nine':
        return first.seq <= hole.seq and first.nine == hole.nine
    if scope == 'game':
        return first.seq <= hole.seq
    return first.hole == hole.hole


class ActivationIndex:
    """(team, option name) -> first-activation records."""

    def __init__(self, activations: Mapping[tuple[str, str], Iterable[Activation]] | None = None):
        self._activations = {
            key: tuple(sorted(items, key=lambda a: a.hole.seq))
            for key, items in (activations or {}).items()
        }

    @classmethod
    def from_holes(
        cls,
        holes: Iterable[HoleInfo],
        teams_per_hole: Mapping[str, Iterable[TeamRoster]],
    ) -> 'ActivationIndex':
        """
        Index team options by their first hole.

        An option copied onto later holes with an earlier first_hole is
        ignored there; only the record at its own first hole counts.
        """
        found: dict[tuple[str, str], list[Activation]] = {}
        for info in holes:
            for roster in teams_per_hole.get(info.hole, ()):
                for option in roster.options:
                    if option.first_hole not in (None, info.hole):
                        continue
                    key = (roster.team_id, option.option_name)
                    found.setdefault(key, []).append(
                        Activation(roster.team_id, option.option_name, info, option.value)
                    )
        return cls(found)

    def activations(self, team_id: str, name: str) -> tuple[Activation, ...]:
        return self._activations.get((team_id, name), ())

    def named(self, name: str) -> list[Activation]:
        """Activations of one option across all teams."""
        return [a for (_, n), items in self._activations.items() if n == name for a in items]

    def active_on_hole(self, team_id: str, name: str, hole: HoleInfo, scope: str) -> list[Activation]:
        return [a for a in self.activations(team_id, name) if is_active_on_hole(a.hole, hole, scope)]

    def __len__(self) -> int:
        return sum(len(items) for items in self._activations.values())


def front_nine_pre_double_total(index: ActivationIndex, rules: Iterable[MultiplierRule]) -> Number:
    """Product of every pre_double activated on the front nine (1 if none)."""
    value = next((r.value for r in rules if r.name == PRE_DOUBLE), 2)
    total: Number = 1
    for activation in index.named(PRE_DOUBLE):
        if activation.hole.nine == 0:
            total *= value
    return total


# Combination

def combine_hole_multiplier(hole: HoleResult) -> Number:
    """
    The single multiplier applied to every team on a hole.

    The product of every multiplier active on the hole from any team or
    player, unless one is an override, whose value then stands alone.
    """
    applied = [m for team in hole.teams.values() for m in team.multipliers]
    applied += [m for player in hole.players.values() for m in player.multipliers]
    for m in applied:
        if m.override:
            return m.value
    return multiplier_product(applied)


# Evaluation

@dataclass(frozen=True)
class MultiplierInputs:
    """Game state the multiplier engine needs for one hole."""
    hole: HoleInfo
    activations: ActivationIndex = field(default_factory=ActivationIndex)
    triggered: Mapping[tuple[str, str], tuple[Activation, ...]] = field(default_factory=dict)
    rejected: frozenset = frozenset()
    running_points: Mapping[str, Number] = field(default_factory=dict)
    previous_hole: Optional[str] = None  # None on the first hole
    possible_points: Number = 0
    better_points: str = 'higher'
    front_nine_pre_double: Number = 1


@dataclass
class MultiplierOutcome:
    hole: HoleResult
    warnings: list[ScoringWarning] = field(default_factory=list)
    triggered: list[Activation] = field(default_factory=list)
    rejected: list[tuple[str, str, str]] = field(default_factory=list)


def _available(rule: MultiplierRule, team_id: str, hole: HoleResult, inputs: MultiplierInputs) -> bool:
    if rule.availability is None:
        return True
    state = LogicState(
        hole=hole,
        team_id=team_id,
        running_points=inputs.running_points,
        previous_hole=inputs.previous_hole,
        possible_points=inputs.possible_points,
        better_points=inputs.better_points,
    )
    return rule.availability.holds(state)


def resolve_multiplier_value(
    rule: MultiplierRule,
    activation: Optional[Activation],
    inputs: MultiplierInputs,
) -> Number:
    """
    Value of one applied multiplier.

    Raises:
        RuleConfigError: If an input_value activation carries no number
    """
    if isinstance(rule, DeclaredMultiplierRule):
        if rule.value_from == FRONT_NINE_PRE_DOUBLE:
            return inputs.front_nine_pre_double
        if rule.input_value:
            raw = activation.value if activation else None
            try:
                number = float(raw)
            except (TypeError, ValueError) as e:
                raise RuleConfigError(
                    rule.name, f'input value {raw!r} is not a number', inputs.hole.hole
                ) from e
            return int(number) if number.is_integer() else number
    return rule.value


def _team_has_junk(hole: HoleResult, team_id: str, junk_name: str) -> bool:
    team = hole.teams[team_id]
    if any(j.name == junk_name for j in team.junk):
        return True
    return any(
        j.name == junk_name
        for player_id in team.player_ids
        if player_id in hole.players
        for j in hole.players[player_id].junk
    )


def _apply_automatic(rule: AutomaticMultiplierRule, hole: HoleResult, inputs: MultiplierInputs,
                     outcome: MultiplierOutcome) -> None:
    here = inputs.hole.hole

    if rule.scope == 'player' or not hole.teams:
        for player_id, player in hole.players.items():
            if any(j.name == rule.trigger for j in player.junk):
                player.multipliers.append(AppliedMultiplier(rule.name, rule.value, here, rule.override))
        return

    for team_id, team in hole.teams.items():
        if _team_has_junk(hole, team_id, rule.trigger) and _available(rule, team_id, hole, inputs):
            logger.debug(f'{rule.name} triggered for team {team_id} on hole {here}')
            team.multipliers.append(AppliedMultiplier(rule.name, rule.value, here, rule.override))
            if rule.scope in ('rest_of_nine', 'game'):
                outcome.triggered.append(Activation(team_id, rule.name, inputs.hole))

        for earlier in inputs.triggered.get((team_id, rule.name), ()):
            if earlier.hole.hole != here and is_active_on_hole(earlier.hole, inputs.hole, rule.scope):
                team.multipliers.append(
                    AppliedMultiplier(rule.name, rule.value, earlier.hole.hole, rule.override)
                )


def _apply_declared(rule: DeclaredMultiplierRule, hole: HoleResult, inputs: MultiplierInputs,
                    outcome: MultiplierOutcome) -> None:
    here = inputs.hole.hole
    for team_id, team in hole.teams.items():
        for activation in inputs.activations.active_on_hole(team_id, rule.name, inputs.hole, rule.scope):
            key = (team_id, rule.name, activation.hole.hole)
            if activation.hole.hole == here:
                if not _available(rule, team_id, hole, inputs):
                    logger.info(f'{rule.name} is not available to team {team_id} on hole {here}')
                    outcome.rejected.append(key)
                    outcome.warnings.append(ScoringWarning(
                        option_name=rule.name,
                        message=f'not available to team {team_id}',
                        stage='multipliers',
                        hole=here,
                    ))
                    continue
            elif key in inputs.rejected:
                continue

            try:
                value = resolve_multiplier_value(rule, activation, inputs)
            except RuleConfigError as e:
                logger.warning(f'Skipping multiplier {e}')
                outcome.warnings.append(ScoringWarning(
                    option_name=e.option_name, message=e.reason, stage='multipliers', hole=here,
                ))
                continue

            team.multipliers.append(
                AppliedMultiplier(rule.name, value, activation.hole.hole, rule.override)
            )


def evaluate_multipliers_for_hole(
    hole: HoleResult,
    rules: Iterable[MultiplierRule],
    inputs: MultiplierInputs,
) -> MultiplierOutcome:
    """
    Apply every multiplier rule to one hole, then combine them.

    Rules are applied in evaluation order so an availability condition such
    as other_team_multiplied_with sees the multipliers applied before it.

    Args:
        hole: Hole result with junk already awarded
        rules: Compiled multiplier rules in evaluation order
        inputs: Activations and game state for this hole

    Returns:
        MultiplierOutcome holding a new HoleResult (with holeMultiplier set
        for team formats), per-hole warnings, newly triggered inheritable
        activations and declared activations rejected as unavailable
    """
    outcome = MultiplierOutcome(hole=copy.deepcopy(hole))
    for rule in rules:
        if isinstance(rule, AutomaticMultiplierRule):
            _apply_automatic(rule, outcome.hole, inputs, outcome)
        else:
            _apply_declared(rule, outcome.hole, inputs, outcome)

    if outcome.hole.teams:
        outcome.hole.hole_multiplier = combine_hole_multiplier(outcome.hole)
    return outcome
