"""Tests for the scoring pipeline, stage by stage and end to end."""

from spicy.models import AppliedMultiplier
from spicy.pipeline import STAGES, build_context, run_pipeline, score
from spicy.schemas import GameSnapshot, ScoringConfig
from spicy.stages import calculate_gross_scores, initialize_scoreboard

from conftest import FIVE_POINTS_OPTIONS, build_game, build_game_data, game_option, prox


def team_points(scoreboard, hole='1'):
    return {team_id: team.points for team_id, team in scoreboard.holes[hole].teams.items()}


def team_junk(scoreboard, team_id, hole='1'):
    return sorted(j.name for j in scoreboard.holes[hole].teams[team_id].junk)


class TestContext:
    """Tests for building the scoring context."""

    def test_holes_in_playing_order(self):
        """Test holes are ordered by seq and defaults are filled in."""
        data = build_game({'p1': {}}, holes=(('10', 4, 2), ('1', 5, 1)), teams={})
        data.holes[0].seq = 2
        data.holes[1].seq = 1
        data.holes[1].par = None
        data.holes[1].allocation = None
        ctx = build_context(data)
        assert [h.hole for h in ctx.holes] == ['1', '10']
        assert ctx.holes[0].par == 4
        assert ctx.holes[0].allocation == 1

    def test_low_mode_handicaps(self):
        """Test low mode plays everyone off the lowest handicap."""
        game = build_game(
            {'p1': {}, 'p2': {}, 'p3': {}, 'p4': {}},
            handicaps={'p1': 4, 'p2': 6, 'p3': 10, 'p4': 14},
            options={'handicap_index_from': game_option('handicap_index_from', 'low')},
        )
        ctx = build_context(game)
        assert ctx.handicap_mode == 'low'
        assert {pid: h.adjusted_handicap for pid, h in ctx.handicaps.items()} == {
            'p1': 0, 'p2': 2, 'p3': 6, 'p4': 10,
        }

    def test_unknown_handicap_mode(self):
        """Test an unknown handicap mode falls back to full with a warning."""
        game = build_game(
            {'p1': {}},
            teams={},
            handicaps={'p1': 7},
            options={'handicap_index_from': game_option('handicap_index_from', 'sideways')},
        )
        ctx = build_context(game)
        assert ctx.handicap_mode == 'full'
        assert ctx.handicaps['p1'].adjusted_handicap == 7
        assert ctx.scoreboard.warnings[0].option_name == 'handicap_index_from'

    def test_game_option_overrides_spec(self):
        """Test a game option replaces the rule-set option of the same name."""
        prox_worth_three = dict(FIVE_POINTS_OPTIONS['prox'], value=3)
        game = build_game({'p1': {}}, options={'prox': prox_worth_three})
        assert build_context(game).options['prox'].value == 3

    def test_default_seq_from_config(self):
        """Test declarations without a seq sort at the configured default_seq."""
        birdie = {k: v for k, v in FIVE_POINTS_OPTIONS['birdie'].items() if k != 'seq'}
        game = build_game(
            {'p1': {'1': prox(3)}, 'p2': {'1': 4}, 'p3': {'1': 4}, 'p4': {'1': 4}},
            spec_options={**FIVE_POINTS_OPTIONS, 'birdie': birdie},
        )
        late = score(game).holes['1'].players['p1'].junk
        early = score(game, ScoringConfig(default_seq=0)).holes['1'].players['p1'].junk
        assert [j.name for j in late] == ['prox', 'birdie']
        assert [j.name for j in early] == ['birdie', 'prox']


class TestStages:
    """Tests for individual stages."""

    def test_initialize_has_everyone_everywhere(self):
        """Test every player and team appears on every hole with zero values."""
        game = build_game({'p1': {}, 'p2': {}, 'p3': {}, 'p4': {}}, holes=(('1', 4, 1), ('2', 3, 2)))
        scoreboard = initialize_scoreboard(build_context(game)).scoreboard
        assert list(scoreboard.holes) == ['1', '2']
        for hole in scoreboard.holes.values():
            assert set(hole.players) == {'p1', 'p2', 'p3', 'p4'}
            assert set(hole.teams) == {'A', 'B'}
            assert hole.hole_multiplier == 1
            assert all(p.gross == 0 and p.points == 0 for p in hole.players.values())
        assert set(scoreboard.cumulative.players) == {'p1', 'p2', 'p3', 'p4'}
        assert scoreboard.meta.has_teams

    def test_stages_do_not_mutate_input(self):
        """Test an earlier context's scoreboard is untouched by later stages."""
        game = build_game({'p1': {'1': 4}, 'p2': {'1': 5}, 'p3': {'1': 5}, 'p4': {'1': 4}})
        initialized = initialize_scoreboard(build_context(game))
        grossed = calculate_gross_scores(initialized)
        assert grossed.scoreboard.holes['1'].players['p1'].gross == 4
        assert initialized.scoreboard.holes['1'].players['p1'].gross == 0

    def test_snapshot_not_mutated(self):
        """Test scoring leaves the game snapshot as it was."""
        game = build_game({'p1': {'1': prox(4)}, 'p2': {'1': 5}, 'p3': {'1': 5}, 'p4': {'1': 4}})
        before = game.model_dump()
        score(game)
        assert game.model_dump() == before

    def test_eleven_stages(self):
        """Test the pipeline runs initialize through cumulative."""
        assert len(STAGES) == 11
        assert STAGES[0].__name__ == 'initialize_scoreboard'
        assert STAGES[-1].__name__ == 'calculate_cumulatives'

    def test_run_subset_of_stages(self):
        """Test running only the first stages leaves later fields at defaults."""
        game = build_game({'p1': {'1': 3}, 'p2': {'1': 5}, 'p3': {'1': 5}, 'p4': {'1': 4}})
        ctx = run_pipeline(build_context(game), STAGES[:4])
        assert ctx.scoreboard.holes['1'].players['p1'].net == 3
        assert ctx.scoreboard.holes['1'].players['p1'].junk == []


class TestGrossAndNet:
    """Tests for gross, pops and net."""

    def test_pops_and_net(self):
        """Test net = gross - pops using low-mode handicaps."""
        game = build_game(
            {'p1': {'1': 4}, 'p2': {'1': 6}, 'p3': {'1': 5}, 'p4': {'1': 9}},
            holes=(('1', 4, 3),),
            handicaps={'p1': 4, 'p2': 6, 'p3': 10, 'p4': 14},
            options={'handicap_index_from': game_option('handicap_index_from', 'low')},
        )
        hole = score(game).holes['1']
        assert {pid: p.pops for pid, p in hole.players.items()} == {'p1': 0, 'p2': 0, 'p3': 1, 'p4': 1}
        assert {pid: p.net for pid, p in hole.players.items()} == {'p1': 4, 'p2': 6, 'p3': 4, 'p4': 8}
        assert hole.players['p3'].score_to_par == 1
        assert hole.players['p3'].net_to_par == 0

    def test_no_handicaps(self):
        """Test use_handicaps false gives nobody strokes."""
        game = build_game(
            {'p1': {'1': 5}},
            teams={},
            handicaps={'p1': 18},
            options={'use_handicaps': game_option('use_handicaps', 'false', 'bool')},
        )
        player = score(game).holes['1'].players['p1']
        assert player.pops == 0
        assert player.net == 5

    def test_unscored_player_net_stays_zero(self):
        """Test a player with strokes but no score has no net."""
        game = build_game({'p1': {'1': 4}, 'p2': {}}, teams={}, handicaps={'p2': 18})
        hole = score(game).holes['1']
        assert hole.players['p2'].pops == 1
        assert hole.players['p2'].net == 0
        assert hole.scores_entered == 1


class TestTeamScores:
    """Tests for team metrics and ranking."""

    def test_metrics(self):
        """Test best ball, total, worst ball and average from net scores."""
        game = build_game({'p1': {'1': 4}, 'p2': {'1': 6}, 'p3': {'1': 5}, 'p4': {'1': 5}})
        team = score(game).holes['1'].teams['A']
        assert (team.low_ball, team.total, team.worst_ball, team.average) == (4, 10, 6, 5.0)
        assert team.score == 4

    def test_team_score_option(self):
        """Test team_score picks the metric teams are ranked on."""
        game = build_game(
            {'p1': {'1': 4}, 'p2': {'1': 6}, 'p3': {'1': 5}, 'p4': {'1': 4}},
            options={'team_score': game_option('team_score', 'sum')},
        )
        hole = score(game).holes['1']
        assert hole.teams['A'].score == 10
        assert hole.teams['B'].score == 9
        assert (hole.teams['B'].rank, hole.teams['A'].rank) == (1, 2)

    def test_unknown_team_score(self):
        """Test an unknown team_score falls back to best ball with a warning."""
        game = build_game(
            {'p1': {'1': 4}, 'p2': {'1': 6}, 'p3': {'1': 5}, 'p4': {'1': 4}},
            options={'team_score': game_option('team_score', 'median')},
        )
        scoreboard = score(game)
        assert scoreboard.holes['1'].teams['A'].score == 4
        assert any(w.option_name == 'team_score' for w in scoreboard.warnings)

    def test_vegas(self):
        """Test vegas reads the two gross scores low digit first."""
        game = build_game(
            {'p1': {'1': 4}, 'p2': {'1': 5}, 'p3': {'1': 5}, 'p4': {'1': 6}},
            options={'team_score': game_option('team_score', 'vegas')},
        )
        hole = score(game).holes['1']
        assert (hole.teams['A'].score, hole.teams['B'].score) == (45, 56)
        assert (hole.teams['A'].rank, hole.teams['B'].rank) == (1, 2)

    def test_vegas_birdie_flips_opponent(self):
        """Test a birdie flips the other team's digits."""
        game = build_game(
            {'p1': {'1': 4}, 'p2': {'1': 5}, 'p3': {'1': 3}, 'p4': {'1': 5}},
            options={'team_score': game_option('team_score', 'vegas')},
        )
        hole = score(game).holes['1']
        assert (hole.teams['A'].score, hole.teams['B'].score) == (54, 35)
        assert hole.teams['B'].rank == 1

    def test_vegas_needs_two_scores(self):
        """Test a team with one score has no vegas number and isn't ranked."""
        game = build_game(
            {'p1': {'1': 4}, 'p2': {}, 'p3': {'1': 5}, 'p4': {'1': 6}},
            options={'team_score': game_option('team_score', 'vegas')},
        )
        hole = score(game).holes['1']
        assert hole.teams['A'].score == 0
        assert hole.teams['A'].rank == 0
        assert (hole.teams['B'].rank, hole.teams['B'].tie_count) == (1, 1)

    def test_hole_ranking_with_ties(self):
        """Test players rank by net with competition ranking."""
        game = build_game({'p1': {'1': 4}, 'p2': {'1': 4}, 'p3': {'1': 5}, 'p4': {'1': 3}})
        players = score(game).holes['1'].players
        assert [(players[p].rank, players[p].tie_count) for p in ('p4', 'p1', 'p2', 'p3')] == [
            (1, 1), (2, 2), (2, 2), (4, 1),
        ]


class TestFivePoints:
    """End-to-end five points holes (no handicaps)."""

    def test_prox_only(self):
        """Test tied low ball and total leave only prox."""
        game = build_game({'p1': {'1': prox(4)}, 'p2': {'1': 5}, 'p3': {'1': 5}, 'p4': {'1': 4}})
        scoreboard = score(game)
        assert team_points(scoreboard) == {'A': 1, 'B': 0}
        assert scoreboard.holes['1'].teams['A'].hole_net_total == 1
        assert scoreboard.holes['1'].teams['B'].hole_net_total == -1

    def test_prox_vs_total(self):
        """Test one point of prox against two for low total."""
        game = build_game({'p1': {'1': prox(4)}, 'p2': {'1': 5}, 'p3': {'1': 4}, 'p4': {'1': 4}})
        scoreboard = score(game)
        assert team_points(scoreboard) == {'A': 1, 'B': 2}
        assert team_junk(scoreboard, 'B') == ['low_total']

    def test_clean_sweep(self):
        """Test one team taking all five points."""
        game = build_game({'p1': {'1': prox(4)}, 'p2': {'1': 5}, 'p3': {'1': 5}, 'p4': {'1': 5}})
        scoreboard = score(game)
        assert team_points(scoreboard) == {'A': 5, 'B': 0}
        assert scoreboard.holes['1'].teams['A'].hole_net_total == 5

    def test_birdie_with_bbq(self):
        """Test a birdie on a clean sweep doubles the hole."""
        game = build_game({'p1': {'1': prox(3)}, 'p2': {'1': 4}, 'p3': {'1': 4}, 'p4': {'1': 4}})
        scoreboard = score(game)
        hole = scoreboard.holes['1']
        assert [m.name for m in hole.teams['A'].multipliers] == ['birdie_bbq']
        assert hole.hole_multiplier == 2
        assert team_points(scoreboard) == {'A': 12, 'B': 0}
        assert hole.teams['A'].hole_net_total == 12
        assert hole.players['p1'].points == 4  # prox and birdie, doubled

    def test_bbq_on_any_birdie(self):
        """Test a BBQ whose availability counts the team's birdies."""
        birdie_bbq = {
            **FIVE_POINTS_OPTIONS['birdie_bbq'],
            'availability': "{'>=': [{'countJunk': [{'team': ['this']}, 'birdie']}, 1]}",
        }
        game = build_game(
            {'p1': {'1': 3}, 'p2': {'1': 4}, 'p3': {'1': 4}, 'p4': {'1': 4}},
            spec_options={**FIVE_POINTS_OPTIONS, 'birdie_bbq': birdie_bbq},
        )
        scoreboard = score(game)
        assert scoreboard.holes['1'].hole_multiplier == 2
        assert team_points(scoreboard) == {'A': 10, 'B': 0}
        assert scoreboard.warnings == []

    def test_birdie_no_bbq_when_prox_lost(self):
        """Test no BBQ when the other team has prox."""
        game = build_game({'p1': {'1': 3}, 'p2': {'1': 4}, 'p3': {'1': 4}, 'p4': {'1': prox(4)}})
        scoreboard = score(game)
        assert scoreboard.holes['1'].hole_multiplier == 1
        assert team_points(scoreboard) == {'A': 5, 'B': 1}

    def test_birdie_chop(self):
        """Test birdies on both teams with a tied low ball."""
        game = build_game({'p1': {'1': prox(3)}, 'p2': {'1': 6}, 'p3': {'1': 3}, 'p4': {'1': 4}})
        scoreboard = score(game)
        assert scoreboard.holes['1'].hole_multiplier == 1
        assert team_points(scoreboard) == {'A': 2, 'B': 3}

    def test_partial_scores_award_no_comparison(self):
        """Test low ball waits for every player's score."""
        game = build_game({'p1': {'1': 3}, 'p2': {'1': 4}, 'p3': {'1': 5}, 'p4': {}})
        scoreboard = score(game)
        assert team_junk(scoreboard, 'A') == []
        assert [j.name for j in scoreboard.holes['1'].players['p1'].junk] == ['birdie']


class TestMultiplierStacking:
    """Tests for declared multipliers across holes."""

    TWO_HOLES = (('1', 4, 1), ('2', 4, 2))
    SCORES = {
        'p1': {'1': prox(4), '2': 4},
        'p2': {'1': 5, '2': 4},
        'p3': {'1': 5, '2': 5},
        'p4': {'1': 5, '2': 4},
    }

    def test_double_and_double_back(self):
        """Test a double and a double back stack to 4x for both teams."""
        game = build_game(
            self.SCORES,
            holes=self.TWO_HOLES,
            team_options={'2': {
                'A': [{'option_name': 'double_back', 'first_hole': '2'}],
                'B': [{'option_name': 'double', 'first_hole': '2'}],
            }},
        )
        scoreboard = score(game)
        hole = scoreboard.holes['2']
        assert hole.hole_multiplier == 4
        assert [m.name for m in hole.teams['B'].multipliers] == ['double']
        assert [m.name for m in hole.teams['A'].multipliers] == ['double_back']
        assert team_points(scoreboard, '2') == {'A': 8, 'B': 0}
        assert scoreboard.cumulative.teams['A'].points_total == 13
        assert scoreboard.warnings == []

    def test_double_rejected_when_leading(self):
        """Test a team that is ahead can't double; the attempt is reported."""
        game = build_game(
            self.SCORES,
            holes=self.TWO_HOLES,
            team_options={'2': {'A': [{'option_name': 'double', 'first_hole': '2'}]}},
        )
        scoreboard = score(game)
        assert scoreboard.holes['2'].hole_multiplier == 1
        assert scoreboard.holes['2'].teams['A'].multipliers == []
        assert [(w.option_name, w.hole) for w in scoreboard.warnings] == [('double', '2')]

    def test_pre_double_rest_of_nine(self):
        """Test a pre double carries to the end of its nine and no further."""
        holes = (('8', 4, 8), ('9', 4, 9), ('10', 4, 10))
        everyone_par = {'8': 4, '9': 4, '10': 4}
        game = build_game(
            {p: dict(everyone_par) for p in ('p1', 'p2', 'p3', 'p4')},
            holes=holes,
            team_options={'8': {'B': [{'option_name': 'pre_double', 'first_hole': '8'}]}},
        )
        scoreboard = score(game)
        assert [scoreboard.holes[h].hole_multiplier for h in ('8', '9', '10')] == [2, 2, 1]
        inherited = scoreboard.holes['9'].teams['B'].multipliers
        assert inherited == [AppliedMultiplier('pre_double', 2, '8')]

    def test_unscored_hole_keeps_defaults(self):
        """Test a declared multiplier on a hole nobody has scored changes nothing."""
        game = build_game(
            {'p1': {'1': 4}, 'p2': {'1': 4}, 'p3': {'1': 4}, 'p4': {'1': 4}},
            holes=self.TWO_HOLES,
            team_options={'2': {'B': [{'option_name': 'double', 'first_hole': '2'}]}},
        )
        hole = score(game).holes['2']
        assert hole.scores_entered == 0
        assert hole.hole_multiplier == 1
        assert all(t.multipliers == [] and t.junk == [] and t.points == 0 for t in hole.teams.values())


class TestIndividualGame:
    """Tests for games without teams."""

    OPTIONS = {
        'birdie': {
            'type': 'junk', 'name': 'birdie', 'value': 1,
            'scope': 'player', 'based_on': 'gross', 'score_to_par': 'exactly -1',
        },
        'birdie_double': {
            'type': 'multiplier', 'name': 'birdie_double', 'value': 2,
            'based_on': 'birdie', 'scope': 'player',
        },
    }

    def test_player_multipliers(self):
        """Test a player's points use only that player's multipliers."""
        game = build_game({'p1': {'1': 3}, 'p2': {'1': 4}}, teams={}, spec_options=self.OPTIONS)
        scoreboard = score(game)
        hole = scoreboard.holes['1']
        assert hole.hole_multiplier == 1
        assert hole.players['p1'].points == 2
        assert hole.players['p2'].points == 0
        assert not scoreboard.meta.has_teams
        assert scoreboard.cumulative.players['p1'].rank == 1


class TestCumulative:
    """Tests for totals, running totals and match play."""

    def test_totals_and_ranking(self):
        """Test cumulative sums over scored holes and ranks by net."""
        game = build_game(
            {
                'p1': {'1': 4, '2': 5},
                'p2': {'1': 6, '2': 6},
                'p3': {'1': 5, '2': 4},
                'p4': {'1': 10},
            },
            holes=(('1', 4, 1), ('2', 4, 2)),
        )
        cumulative = score(game).cumulative
        assert cumulative.players['p1'].gross_total == 9
        assert cumulative.players['p4'].holes_played == 1
        assert [cumulative.players[p].rank for p in ('p3', 'p1', 'p4', 'p2')] == [1, 1, 3, 4]

    def test_running_totals(self):
        """Test running totals are the sum of points so far."""
        game = build_game(
            {
                'p1': {'1': prox(4), '2': 4},
                'p2': {'1': 5, '2': 5},
                'p3': {'1': 5, '2': 4},
                'p4': {'1': 5, '2': 4},
            },
            holes=(('1', 4, 1), ('2', 4, 2), ('3', 4, 3)),
        )
        scoreboard = score(game)
        assert [scoreboard.holes[h].teams['A'].running_total for h in ('1', '2', '3')] == [5, 5, 5]
        assert [scoreboard.holes[h].teams['B'].running_total for h in ('1', '2', '3')] == [0, 2, 2]
        assert scoreboard.holes['2'].teams['A'].running_diff == 3
        assert scoreboard.holes['2'].teams['B'].running_diff == -3
        assert scoreboard.cumulative.teams['A'].rank == 1

    def test_match_play_closed_out(self):
        """Test a match that is decided before the last hole stays over."""
        game = build_game(
            {
                'p1': {'1': prox(4), '2': prox(4)},
                'p2': {'1': 5, '2': 5},
                'p3': {'1': 5, '2': 5},
                'p4': {'1': 4, '2': 5},
            },
            holes=(('1', 4, 1), ('2', 4, 2), ('3', 4, 3)),
            options={'match_play': game_option('match_play', 'true', 'bool')},
        )
        scoreboard = score(game)
        assert scoreboard.holes['1'].teams['A'].match_diff == 1
        assert scoreboard.holes['1'].teams['A'].match_over is False
        assert scoreboard.holes['2'].teams['A'].match_diff == '6 & 1'
        assert scoreboard.holes['3'].teams['B'].match_over is True
        assert scoreboard.cumulative.teams['B'].match_diff == '6 & 1'

    def test_skins_is_match_play(self):
        """Test a skins game is scored as match play without the match_play option."""
        data = build_game_data(
            {
                'p1': {'1': prox(4), '2': prox(4)},
                'p2': {'1': 5, '2': 5},
                'p3': {'1': 5, '2': 5},
                'p4': {'1': 4, '2': 5},
            },
            holes=(('1', 4, 1), ('2', 4, 2), ('3', 4, 3)),
        )
        data['spec_type'] = 'skins'
        scoreboard = score(GameSnapshot.model_validate(data))
        assert scoreboard.holes['2'].teams['A'].match_diff == '6 & 1'
        assert scoreboard.cumulative.teams['B'].match_over is True

    def test_skins_from_meta_option(self):
        """Test the rule-set's spec_type meta option also turns on match play."""
        game = build_game(
            {
                'p1': {'1': prox(4), '2': prox(4)},
                'p2': {'1': 5, '2': 5},
                'p3': {'1': 5, '2': 5},
                'p4': {'1': 4, '2': 5},
            },
            holes=(('1', 4, 1), ('2', 4, 2), ('3', 4, 3)),
            options={'spec_type': {'type': 'meta', 'name': 'spec_type', 'value': 'skins'}},
        )
        assert score(game).cumulative.teams['A'].match_diff == '6 & 1'

    def test_lower_points_flip_sign(self):
        """Test differences flip when fewer points is better."""
        game = build_game(
            {'p1': {'1': prox(4)}, 'p2': {'1': 5}, 'p3': {'1': 5}, 'p4': {'1': 4}},
            options={'better_points': game_option('better_points', 'lower')},
        )
        hole = score(game).holes['1']
        assert hole.teams['A'].hole_net_total == -1
        assert hole.teams['A'].running_diff == -1


class TestDeterminism:
    """Tests that scoring is a pure function of its input."""

    def test_same_input_same_output(self):
        """Test scoring twice gives identical scoreboards."""
        game = build_game(
            TestMultiplierStacking.SCORES,
            holes=TestMultiplierStacking.TWO_HOLES,
            team_options={'2': {'B': [{'option_name': 'double', 'first_hole': '2'}]}},
        )
        assert score(game).to_dict() == score(game).to_dict()
