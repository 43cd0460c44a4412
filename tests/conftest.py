"""Shared fixtures: a five points rule-set and a game builder."""

from pathlib import Path

import pytest

from spicy.schemas import GameSnapshot

DATA_DIR = Path(__file__).parent.parent / 'data'

AVAILABLE_WHEN_DOWN = "{'team_down_the_most': [{'getPrevHole': []}, {'var': 'team'}]}"
WINNING_ALL_POINTS = "{'===': [{'var': 'team.points'}, {'var': 'possiblePoints'}]}"

FIVE_POINTS_OPTIONS = {
    'low_ball': {
        'type': 'junk', 'name': 'low_ball', 'seq': 1, 'value': 2, 'limit': 'one_team_per_group',
        'scope': 'team', 'based_on': 'net', 'calculation': 'best_ball', 'better': 'lower',
    },
    'low_total': {
        'type': 'junk', 'name': 'low_total', 'seq': 2, 'value': 2, 'limit': 'one_team_per_group',
        'scope': 'team', 'based_on': 'net', 'calculation': 'sum', 'better': 'lower',
    },
    'prox': {
        'type': 'junk', 'name': 'prox', 'seq': 3, 'value': 1, 'limit': 'one_per_group',
        'scope': 'player', 'based_on': 'user',
    },
    'birdie': {
        'type': 'junk', 'name': 'birdie', 'seq': 4, 'value': 1,
        'scope': 'player', 'based_on': 'gross', 'score_to_par': 'exactly -1',
    },
    'eagle': {
        'type': 'junk', 'name': 'eagle', 'seq': 5, 'value': 2,
        'scope': 'player', 'based_on': 'gross', 'score_to_par': 'exactly -2',
    },
    'pre_double': {
        'type': 'multiplier', 'name': 'pre_double', 'seq': 1, 'value': 2,
        'based_on': 'user', 'scope': 'rest_of_nine', 'availability': AVAILABLE_WHEN_DOWN,
    },
    'double': {
        'type': 'multiplier', 'name': 'double', 'seq': 2, 'value': 2,
        'based_on': 'user', 'scope': 'hole', 'availability': AVAILABLE_WHEN_DOWN,
    },
    'double_back': {
        'type': 'multiplier', 'name': 'double_back', 'seq': 3, 'value': 2,
        'based_on': 'user', 'scope': 'hole',
        'availability': (
            "{'and': [{'team_second_to_last': [{'getPrevHole': []}, {'var': 'team'}]}, "
            "{'other_team_multiplied_with': [{'getCurrHole': []}, {'var': 'team'}, 'double']}]}"
        ),
    },
    'birdie_bbq': {
        'type': 'multiplier', 'name': 'birdie_bbq', 'seq': 4, 'value': 2,
        'based_on': 'birdie', 'scope': 'hole', 'availability': WINNING_ALL_POINTS,
    },
    'eagle_bbq': {
        'type': 'multiplier', 'name': 'eagle_bbq', 'seq': 5, 'value': 4,
        'based_on': 'eagle', 'scope': 'hole', 'availability': WINNING_ALL_POINTS,
    },
}

TWO_TEAMS = {'A': ['p1', 'p2'], 'B': ['p3', 'p4']}


def game_option(name, value, value_type='text'):
    """A plain game option declaration."""
    return {'type': 'game', 'name': name, 'value_type': value_type, 'value': value}


def build_game_data(
    scores,
    holes=(('1', 4, 1),),
    teams=TWO_TEAMS,
    handicaps=None,
    team_options=None,
    spec_options=None,
    options=None,
):
    """
    Raw game snapshot data.

    Args:
        scores: player id -> {hole: gross, or {'gross': g, 'junk': {...}}}
        holes: (hole, par, allocation) tuples in playing order
        teams: team id -> member ids, the same on every hole ({} for individual games)
        handicaps: player id -> course handicap (default 0)
        team_options: hole -> team id -> list of option activations
        spec_options: rule-set (default five points)
        options: game-level options that override the rule-set
    """
    team_options = team_options or {}
    handicaps = handicaps or {}

    hole_data = []
    for hole, par, allocation in holes:
        hole_teams = [
            {
                'team': team_id,
                'player_ids': list(members),
                'options': team_options.get(hole, {}).get(team_id, []),
            }
            for team_id, members in teams.items()
        ]
        hole_data.append({'hole': hole, 'par': par, 'allocation': allocation, 'teams': hole_teams})

    rounds = [
        {
            'player_id': player_id,
            'name': player_id.upper(),
            'course_handicap': handicaps.get(player_id, 0),
            'scores': {
                hole: entry if isinstance(entry, dict) else {'gross': entry}
                for hole, entry in player_scores.items()
            },
        }
        for player_id, player_scores in scores.items()
    ]

    return {
        'game_id': 'test-game',
        'name': 'Test Game',
        'holes': hole_data,
        'rounds': rounds,
        'spec_options': FIVE_POINTS_OPTIONS if spec_options is None else spec_options,
        'options': options or {},
    }


def build_game(scores, **kwargs) -> GameSnapshot:
    """A validated GameSnapshot; see build_game_data."""
    return GameSnapshot.model_validate(build_game_data(scores, **kwargs))


def prox(gross):
    """A hole entry with the prox flag set."""
    return {'gross': gross, 'junk': {'prox': True}}


@pytest.fixture
def make_game():
    """Factory for game snapshots."""
    return build_game


@pytest.fixture
def sample_game_path():
    """The sample five points game shipped in data/games."""
    return DATA_DIR / 'games' / 'five_points.json'
