"""Tests for detecting presses and tee flips invalidated by a score correction."""

import logging

from spicy.invalidation import DEFAULT_REASON, detect_invalidations
from spicy.pipeline import score

from conftest import FIVE_POINTS_OPTIONS, build_game, game_option, prox

HOLES = (('1', 4, 1), ('2', 4, 2))
A_WINS_FIRST = {'p1': {'1': prox(3), '2': 4}, 'p2': {'1': 4, '2': 4}, 'p3': {'1': 4, '2': 4}, 'p4': {'1': 4, '2': 4}}
B_WINS_FIRST = {'p1': {'1': 5, '2': 4}, 'p2': {'1': 5, '2': 4}, 'p3': {'1': 4, '2': 4}, 'p4': {'1': 4, '2': 4}}
ALL_SQUARE = {'p1': {'1': 4, '2': 4}, 'p2': {'1': 4, '2': 4}, 'p3': {'1': 4, '2': 4}, 'p4': {'1': 4, '2': 4}}


def edit(before, after, **kwargs):
    """Score ``before``, then check the corrected game ``after`` against it."""
    previous = score(build_game(before, holes=HOLES, **kwargs))
    return detect_invalidations(build_game(after, holes=HOLES, **kwargs), previous, '1')


def press(team_id, name='double'):
    return {'2': {team_id: [{'option_name': name, 'first_hole': '2'}]}}


class TestMultiplierInvalidation:
    """Tests for presses that no longer stand after an edit."""

    def test_press_dropped(self):
        """Test a press made from behind is dropped once the team is ahead."""
        result = edit(A_WINS_FIRST, B_WINS_FIRST, team_options=press('B'))

        assert result.has_invalidations
        [item] = result.items
        assert (item.kind, item.hole, item.team_id, item.name) == ('multiplier', '2', 'B', 'double')
        assert item.reason == DEFAULT_REASON
        assert result.scoreboard.holes['2'].hole_multiplier == 1

    def test_score_impact(self):
        """Test each team's total before and after the correction."""
        result = edit(A_WINS_FIRST, B_WINS_FIRST, team_options=press('B'))
        impact = {i.team_id: (i.current_total, i.projected_total) for i in result.score_impact}
        assert impact == {'A': (12, 0), 'B': (0, 4)}

    def test_custom_reason(self):
        """Test the option's own invalidation reason is reported."""
        options = {name: dict(option) for name, option in FIVE_POINTS_OPTIONS.items()}
        options['double']['invalidation_reason'] = 'Team is no longer down the most'
        result = edit(A_WINS_FIRST, B_WINS_FIRST, team_options=press('B'), spec_options=options)
        assert [item.reason for item in result.items] == ['Team is no longer down the most']

    def test_dependent_press(self):
        """Test a double back is reported against the double it answered."""
        team_options = {'2': {
            'A': [{'option_name': 'double_back', 'first_hole': '2'}],
            'B': [{'option_name': 'double', 'first_hole': '2'}],
        }}
        previous = score(build_game(A_WINS_FIRST, holes=HOLES, team_options=team_options))
        assert previous.holes['2'].hole_multiplier == 4

        result = detect_invalidations(
            build_game(B_WINS_FIRST, holes=HOLES, team_options=team_options), previous, '1'
        )
        reasons = {item.name: item.reason for item in result.items}
        assert reasons == {'double': DEFAULT_REASON, 'double_back': "Depends on Team B's double"}

    def test_press_still_available(self):
        """Test an edit that keeps the standings invalidates nothing."""
        after = {**A_WINS_FIRST, 'p2': {'1': 5, '2': 4}}
        result = edit(A_WINS_FIRST, after, team_options=press('B'))
        assert not result.has_invalidations
        assert result.scoreboard.holes['2'].hole_multiplier == 2

    def test_unknown_hole(self, caplog):
        """Test an edited hole the game doesn't have is logged and checks nothing."""
        previous = score(build_game(A_WINS_FIRST, holes=HOLES, team_options=press('B')))
        game = build_game(B_WINS_FIRST, holes=HOLES, team_options=press('B'))
        with caplog.at_level(logging.WARNING, logger='spicy.invalidation'):
            result = detect_invalidations(game, previous, '19')
        assert result.items == []
        assert 'Edited hole 19 is not in game test-game' in caplog.text


class TestTeeFlipInvalidation:
    """Tests for tee flips made while the teams were level."""

    FLIP = {'2': {'A': [{'option_name': 'tee_flip_winner', 'first_hole': '2'}]}}
    TEE_FLIP_ON = {'tee_flip': game_option('tee_flip', 'true', 'bool')}

    def test_no_longer_tied(self):
        """Test a tee flip is invalid once the teams aren't level."""
        result = edit(ALL_SQUARE, A_WINS_FIRST, team_options=self.FLIP, options=self.TEE_FLIP_ON)
        [item] = result.items
        assert (item.kind, item.hole, item.reason) == ('tee_flip', '2', 'Teams are no longer tied')
        assert item.team_id is None

    def test_still_tied(self):
        """Test a tee flip stands while the teams are still level."""
        after = {**ALL_SQUARE, 'p1': {'1': 5, '2': 4}, 'p3': {'1': 5, '2': 4}}
        result = edit(ALL_SQUARE, after, team_options=self.FLIP, options=self.TEE_FLIP_ON)
        assert result.items == []

    def test_tee_flip_off(self):
        """Test tee flips aren't checked when the game doesn't use them."""
        result = edit(ALL_SQUARE, A_WINS_FIRST, team_options=self.FLIP)
        assert result.items == []
