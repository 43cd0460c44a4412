"""Junk engine: evaluates bonus-point declarations against a hole's results.

Each junk option compiles to one of four rule variants:

- UserJunkRule: a flag marked by the user (player's hole score, or team option)
- ScoreToParRule: gross or net score relative to par, e.g. "exactly -1"
- ComparisonRule: a team metric compared across teams; strictly best team wins
- LogicRule: a JSON-logic expression such as "{'rankWithTies': [1, 1]}",
  evaluated for each scored player or team

No junk is game specific: birdies, prox, low ball and low total are all just
declarations.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Union

from .conditions import (
    LogicExpression,
    LogicState,
    ScoreToParCondition,
    parse_logic,
    parse_score_to_par,
)
from .constants import (
    BETTER_DIRECTIONS,
    JUNK_BASED_ON,
    JUNK_SCOPES,
    SINGLE_AWARD_LIMITS,
    TEAM_METRICS,
)
from .errors import RuleConfigError
from .models import AwardedJunk, HoleResult, ScoringWarning
from .schemas import HoleScore, JunkOption
from .team_scoring import calculate_team_metrics

logger = logging.getLogger('spicy.junk')

Number = Union[int, float]


@dataclass(frozen=True)
class UserJunkRule:
    name: str
    value: Number
    scope: str = 'player'
    single_award: bool = False


@dataclass(frozen=True)
class ScoreToParRule:
    name: str
    value: Number
    condition: ScoreToParCondition
    based_on: str = 'gross'
    scope: str = 'player'
    single_award: bool = False


@dataclass(frozen=True)
class ComparisonRule:
    name: str
    value: Number
    metric: str  # TeamMetrics attribute
    better: str = 'lower'
    based_on: str = 'net'
    scope: str = 'team'
    single_award: bool = True


@dataclass(frozen=True)
class LogicRule:
    name: str
    value: Number
    condition: LogicExpression
    scope: str = 'player'
    single_award: bool = False


JunkRule = Union[UserJunkRule, ScoreToParRule, ComparisonRule, LogicRule]


@dataclass(frozen=True)
class JunkInputs:
    """User-entered data for one hole that junk rules may read."""
    player_scores: Mapping[str, HoleScore] = field(default_factory=dict)
    team_flags: Mapping[str, frozenset] = field(default_factory=dict)
    next_ball_breaks_ties: bool = False


def compile_junk_rule(option: JunkOption) -> JunkRule:
    """
    Compile one junk declaration into its rule variant.

    Raises:
        RuleConfigError: If the declaration is malformed
    """
    name = option.name
    if option.scope not in JUNK_SCOPES:
        raise RuleConfigError(name, f'unknown scope {option.scope!r}')
    if option.based_on not in JUNK_BASED_ON:
        raise RuleConfigError(name, f'unknown based_on {option.based_on!r}')
    if option.better not in BETTER_DIRECTIONS:
        raise RuleConfigError(name, f'unknown better direction {option.better!r}')

    single_award = option.limit in SINGLE_AWARD_LIMITS

    if option.based_on == 'user':
        return UserJunkRule(name, option.value, option.scope, single_award)

    if option.scope == 'team':
        calculation = option.calculation
        if calculation == 'logic' or (calculation is None and option.logic):
            if not option.logic:
                raise RuleConfigError(name, "calculation 'logic' needs a logic expression")
            return LogicRule(
                name, option.value, parse_logic(name, option.logic), 'team', single_award
            )
        if calculation is None:
            raise RuleConfigError(name, 'team junk needs a calculation, logic or based_on user')
        metric = TEAM_METRICS.get(calculation)
        if metric is None:
            raise RuleConfigError(name, f'team results have no metric {calculation!r}')
        return ComparisonRule(name, option.value, metric, option.better, option.based_on)

    if option.score_to_par:
        condition = parse_score_to_par(name, option.score_to_par)
        return ScoreToParRule(name, option.value, condition, option.based_on, 'player', single_award)

    if option.logic:
        return LogicRule(name, option.value, parse_logic(name, option.logic), 'player', single_award)

    raise RuleConfigError(name, 'player junk needs score_to_par, logic or based_on user')


def compile_junk_rules(
    options: Iterable[JunkOption],
) -> tuple[list[JunkRule], list[ScoringWarning]]:
    """
    Compile junk declarations, skipping malformed ones.

    Args:
        options: Junk declarations in evaluation order

    Returns:
        Tuple of (rules, warnings) with one warning per rejected declaration
    """
    rules: list[JunkRule] = []
    warnings: list[ScoringWarning] = []
    for option in options:
        try:
            rules.append(compile_junk_rule(option))
        except RuleConfigError as e:
            warnings.append(ScoringWarning(option_name=e.option_name, message=e.reason, stage='junk'))
    return rules, warnings


# Evaluation

def _award(target, rule: JunkRule) -> None:
    target.junk.append(AwardedJunk(name=rule.name, value=rule.value))


def _comparison_winner(rule: ComparisonRule, hole: HoleResult, next_ball: bool) -> str | None:
    """Team id of the strictly best team, or None on a tie or missing scores."""
    entries = []
    for team_id, team in hole.teams.items():
        members = [p for p in team.player_ids if p in hole.players]
        if not members:
            continue
        metrics = calculate_team_metrics(members, hole.players, rule.based_on)
        if len(metrics.balls) < len(members):
            return None  # a member has not scored yet
        if next_ball and rule.metric == 'low_ball':
            key = metrics.balls
        else:
            key = getattr(metrics, rule.metric)
        entries.append((team_id, key))

    if not entries:
        return None

    pick = min if rule.better == 'lower' else max
    best = pick(key for _, key in entries)
    winners = [team_id for team_id, key in entries if key == best]
    return winners[0] if len(winners) == 1 else None


def _evaluate_rule(rule: JunkRule, hole: HoleResult, inputs: JunkInputs) -> None:
    if isinstance(rule, UserJunkRule):
        if rule.scope == 'team':
            for team_id, team in hole.teams.items():
                scored = any(hole.players[p].scored for p in team.player_ids if p in hole.players)
                if scored and rule.name in inputs.team_flags.get(team_id, ()):
                    _award(team, rule)
        else:
            for player_id, player in hole.players.items():
                entry = inputs.player_scores.get(player_id)
                if player.scored and entry is not None and entry.has_flag(rule.name):
                    _award(player, rule)

    elif isinstance(rule, ScoreToParRule):
        for player in hole.players.values():
            if not player.scored:
                continue
            to_par = player.net_to_par if rule.based_on == 'net' else player.score_to_par
            if rule.condition.matches(to_par):
                _award(player, rule)

    elif isinstance(rule, ComparisonRule):
        winner = _comparison_winner(rule, hole, inputs.next_ball_breaks_ties)
        if winner is not None:
            _award(hole.teams[winner], rule)
        else:
            logger.debug(f'{rule.name}: no outright winner on hole {hole.hole}')

    elif isinstance(rule, LogicRule):
        if rule.scope == 'team':
            for team_id, team in hole.teams.items():
                if not any(hole.players[p].scored for p in team.player_ids if p in hole.players):
                    continue
                if rule.condition.holds(LogicState(hole=hole, team_id=team_id)):
                    _award(team, rule)
        else:
            team_of = {p: t.team_id for t in hole.teams.values() for p in t.player_ids}
            for player_id, player in hole.players.items():
                if not player.scored:
                    continue
                state = LogicState(hole=hole, team_id=team_of.get(player_id), player_id=player_id)
                if rule.condition.holds(state):
                    _award(player, rule)


def evaluate_junk_for_hole(
    hole: HoleResult,
    rules: Iterable[JunkRule],
    inputs: JunkInputs | None = None,
) -> HoleResult:
    """
    Award junk on one hole.

    Args:
        hole: Hole result with net scores, team metrics and ranks populated
        rules: Compiled rules in evaluation order
        inputs: User-entered flags for the hole

    Returns:
        A new HoleResult with junk appended to player and team results
    """
    inputs = inputs or JunkInputs()
    result = copy.deepcopy(hole)
    for rule in rules:
        _evaluate_rule(rule, result, inputs)
    return result


def possible_points(rules: Iterable[JunkRule], hole: HoleResult) -> Number:
    """
    Most junk points a single team could hold on a hole.

    Single-award junk (one team or one player per group) always counts;
    other junk counts for each time it was actually awarded.
    """
    total: Number = 0
    for rule in rules:
        if rule.single_award:
            total += rule.value
            continue
        for player in hole.players.values():
            total += sum(j.value for j in player.junk if j.name == rule.name)
        for team in hole.teams.values():
            total += sum(j.value for j in team.junk if j.name == rule.name)
    return total
