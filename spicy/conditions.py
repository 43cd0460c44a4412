"""Parsers and evaluators for the condition strings carried by rule options.

Two kinds of condition appear in option declarations:

- ``score_to_par``: ``"<fit> <amount>"``, e.g. ``"exactly -1"`` for a birdie
- ``logic`` and ``availability``: JSON-logic expressions, usually written
  with single quotes, e.g. ``"{'rankWithTies': [1, 1]}"`` or
  ``"{'team_down_the_most': [{'getPrevHole': []}, {'var': 'team'}]}"``

JSON-logic expressions are evaluated by the json-logic library. The golf
operators (countJunk, rankWithTies, team_down_the_most, ...) are registered
on its operation table when this module is imported, and read the hole being
scored from a LogicState set for the duration of each evaluation.

Parsing happens once per declaration and raises RuleConfigError on anything
malformed or on an unknown operator.
"""

import ast
import json
import logging
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from json_logic import add_operation, jsonLogic, operations

from .constants import SCORE_TO_PAR_FITS
from .errors import RuleConfigError
from .models import HoleResult, to_wire
from .points import team_junk_points
from .team_scoring import count_team_junk

logger = logging.getLogger('spicy.conditions')

Number = Union[int, float]

# Operators the json-logic evaluator resolves itself rather than through its table
DATA_OPERATORS = ('var', 'missing', 'missing_some')


# Score to par

@dataclass(frozen=True)
class ScoreToParCondition:
    fit: str
    amount: int

    def matches(self, to_par: int) -> bool:
        if self.fit == 'exactly':
            return to_par == self.amount
        if self.fit == 'less_than':
            return to_par < self.amount
        if self.fit == 'greater_than':
            return to_par > self.amount
        if self.fit == 'at_most':
            return to_par <= self.amount
        return to_par >= self.amount


def parse_score_to_par(option_name: str, text: str) -> ScoreToParCondition:
    """
    Parse a score_to_par string.

    Example:
        parse_score_to_par('birdie', 'exactly -1')
        # ScoreToParCondition(fit='exactly', amount=-1)
    """
    parts = text.split()
    if len(parts) != 2:
        raise RuleConfigError(option_name, f'score_to_par must be "<fit> <amount>", got {text!r}')

    fit, amount = parts
    if fit not in SCORE_TO_PAR_FITS:
        raise RuleConfigError(option_name, f'unknown score_to_par fit {fit!r}')
    try:
        return ScoreToParCondition(fit=fit, amount=int(amount))
    except ValueError as e:
        raise RuleConfigError(option_name, f'score_to_par amount is not an integer: {amount!r}') from e


# Evaluation state

@dataclass(frozen=True)
class LogicState:
    """What a logic expression can see while it is evaluated.

    ``team_id`` is the team being evaluated (for a player, the player's
    team if any). ``player_id`` is set when the subject is a player.
    ``running_points`` are each team's points before this hole.
    """
    hole: HoleResult
    team_id: Optional[str] = None
    player_id: Optional[str] = None
    running_points: Mapping[str, Number] = field(default_factory=dict)
    previous_hole: Optional[str] = None
    possible_points: Number = 0
    better_points: str = 'higher'

    def subject(self):
        if self.player_id is not None:
            return self.hole.players.get(self.player_id)
        if self.team_id is not None:
            return self.hole.teams.get(self.team_id)
        return None


_current_state: ContextVar[LogicState] = ContextVar('spicy_logic_state')


def _number(value: Number) -> Number:
    # json-logic's '===' compares types, so 6.0 and 6 must look alike
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _team_view(hole: HoleResult, team_id: Optional[str]) -> Optional[dict]:
    if team_id is None or team_id not in hole.teams:
        return None
    view = to_wire(hole.teams[team_id])
    view['points'] = _number(team_junk_points(hole, team_id))
    return view


def _team_id(team: Any, state: LogicState) -> Optional[str]:
    if isinstance(team, dict) and team.get('teamId'):
        return team['teamId']
    return state.team_id


def _standings(totals: Mapping[str, Number], better_points: str) -> list[Number]:
    """Distinct running totals, worst first."""
    return sorted(set(totals.values()), reverse=better_points == 'lower')


# Golf operators. Each receives its already-evaluated arguments.

def _team(ref='this'):
    state = _current_state.get()
    if ref == 'this':
        return _team_view(state.hole, state.team_id)
    if ref == 'other':
        other = next((t for t in state.hole.teams if t != state.team_id), None)
        return _team_view(state.hole, other)
    return None


def _count_junk(team=None, junk_name=None):
    state = _current_state.get()
    team_id = _team_id(team, state)
    if team_id is None or team_id not in state.hole.teams:
        return 0
    result = state.hole.teams[team_id]
    team_count = sum(1 for j in result.junk if j.name == junk_name)
    return team_count + count_team_junk(result.player_ids, state.hole.players, junk_name)


def _rank_with_ties(rank=None, tie_count=None):
    subject = _current_state.get().subject()
    if subject is None or not subject.rank:
        return False
    return subject.rank == rank and subject.tie_count == tie_count


def _get_prev_hole():
    state = _current_state.get()
    if state.previous_hole is None:
        return None
    return {'hole': state.previous_hole, 'runningTotals': dict(state.running_points)}


def _get_curr_hole():
    hole = _current_state.get().hole
    return {'hole': hole.hole, 'par': hole.par}


def _team_down_the_most(prev_hole=None, team=None):
    """The team furthest behind before this hole. Anyone may press on the
    first hole or when all teams are level."""
    state = _current_state.get()
    if prev_hole is None:
        return True
    totals = prev_hole.get('runningTotals', {})
    standings = _standings(totals, state.better_points)
    if len(standings) <= 1:
        return True
    return totals.get(_team_id(team, state)) == standings[0]


def _team_second_to_last(prev_hole=None, team=None):
    """The team with the second-worst running total before this hole.
    Never true on the first hole."""
    state = _current_state.get()
    if prev_hole is None:
        return False
    totals = prev_hole.get('runningTotals', {})
    if len(totals) < 2:
        return False
    standings = _standings(totals, state.better_points)
    if len(standings) <= 1:
        return True
    return totals.get(_team_id(team, state)) == standings[1]


def _other_team_multiplied_with(curr_hole=None, team=None, multiplier_name=None):
    state = _current_state.get()
    team_id = _team_id(team, state)
    return any(
        m.name == multiplier_name
        for other_id, other in state.hole.teams.items()
        if other_id != team_id
        for m in other.multipliers
    )


def _players_on_team(ref='this'):
    team = _team(ref)
    return len(team['playerIds']) if team else 0


def _is_wolf_player():
    # Wolf tee order isn't part of a game snapshot, so nobody is the wolf
    return False


def _par_or_better(hole=None, score_type='gross'):
    state = _current_state.get()
    field_name = 'net_to_par' if score_type == 'net' else 'score_to_par'
    if state.player_id is not None:
        player = state.hole.players.get(state.player_id)
        return bool(player and player.scored and getattr(player, field_name) <= 0)
    team = state.hole.teams.get(state.team_id) if state.team_id else None
    if team is None:
        return False
    return any(
        state.hole.players[p].scored and getattr(state.hole.players[p], field_name) <= 0
        for p in team.player_ids
        if p in state.hole.players
    )


def _hole_par(hole=None):
    return _current_state.get().hole.par


def _existing_pre_multiplier_total(hole=None, threshold=0):
    state = _current_state.get()
    if state.team_id is None or state.team_id not in state.hole.teams:
        return False
    return team_junk_points(state.hole, state.team_id) >= threshold


GOLF_OPERATORS = {
    'team': _team,
    'countJunk': _count_junk,
    'rankWithTies': _rank_with_ties,
    'getPrevHole': _get_prev_hole,
    'getCurrHole': _get_curr_hole,
    'team_down_the_most': _team_down_the_most,
    'team_second_to_last': _team_second_to_last,
    'other_team_multiplied_with': _other_team_multiplied_with,
    'playersOnTeam': _players_on_team,
    'isWolfPlayer': _is_wolf_player,
    'parOrBetter': _par_or_better,
    'holePar': _hole_par,
    'existingPreMultiplierTotal': _existing_pre_multiplier_total,
}

for _name, _operator in GOLF_OPERATORS.items():
    add_operation(_name, _operator)


# Expressions

def load_expression(option_name: str, text: str) -> Any:
    """
    Read an expression written as JSON or with single quotes.

    Raises:
        RuleConfigError: If the text is neither
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return ast.literal_eval(text.strip())
    except (ValueError, SyntaxError) as e:
        raise RuleConfigError(option_name, f'cannot parse expression {text!r}') from e


def _check_operators(option_name: str, node: Any) -> None:
    if isinstance(node, list):
        for item in node:
            _check_operators(option_name, item)
        return
    if not isinstance(node, dict):
        return
    if len(node) != 1:
        raise RuleConfigError(option_name, f'expression node must have exactly one operator: {node!r}')
    (operator, args), = node.items()
    if operator not in operations and operator not in DATA_OPERATORS:
        raise RuleConfigError(option_name, f'unknown operator {operator!r}')
    _check_operators(option_name, args)


@dataclass(frozen=True)
class LogicExpression:
    """A parsed JSON-logic expression."""
    option_name: str
    text: str
    rule: Any = field(compare=False, hash=False, repr=False)

    def holds(self, state: LogicState) -> bool:
        """Evaluate against one team or player on one hole.

        An expression that fails at evaluation time (comparing a missing
        value, say) is logged and treated as false.
        """
        data = {
            'team': _team_view(state.hole, state.team_id),
            'teams': [_team_view(state.hole, t) for t in state.hole.teams],
            'possiblePoints': _number(state.possible_points),
            'hole': {'hole': state.hole.hole, 'par': state.hole.par},
        }
        if state.player_id is not None and state.player_id in state.hole.players:
            data['player'] = to_wire(state.hole.players[state.player_id])

        token = _current_state.set(state)
        try:
            return bool(jsonLogic(self.rule, data))
        except (TypeError, ValueError, ArithmeticError) as e:
            logger.warning(f'{self.option_name}: cannot evaluate {self.text!r} on hole {state.hole.hole}: {e}')
            return False
        finally:
            _current_state.reset(token)


def parse_logic(option_name: str, text: str) -> LogicExpression:
    """
    Parse a ``logic`` or ``availability`` expression.

    Standard JSON-logic operators (``and``, ``>=``, ``var``, ...) are
    accepted alongside the golf operators in GOLF_OPERATORS.

    Example:
        parse_logic('birdie_bbq', "{'>=': [{'countJunk': [{'team': ['this']}, 'birdie']}, 1]}")

    Raises:
        RuleConfigError: If the expression can't be read or names an unknown operator
    """
    rule = load_expression(option_name, text)
    if not isinstance(rule, dict):
        raise RuleConfigError(option_name, f'expression must be an operator object, got {text!r}')
    _check_operators(option_name, rule)
    return LogicExpression(option_name, text, rule)


# Multiplier availability uses the same language
parse_availability = parse_logic
