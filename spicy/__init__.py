from .errors import RuleConfigError, ScoringConfigError, SpicyError
from .models import (
    Cumulative,
    HoleResult,
    PlayerCumulative,
    PlayerHoleResult,
    Scoreboard,
    ScoringContext,
    ScoringWarning,
    TeamCumulative,
    TeamHoleResult,
)
from .schemas import GameSnapshot, PointsTableEntry, PoolConfig, ScoringConfig, SettlementConfig
from .ranking import rank_with_ties
from .handicap import calculate_pops, effective_handicap
from .conditions import GOLF_OPERATORS, LogicState, parse_logic
from .junk import compile_junk_rules, evaluate_junk_for_hole
from .multipliers import ActivationIndex, compile_multiplier_rules, evaluate_multipliers_for_hole
from .points import calculate_position_points, points_from_table, split_points
from .team_scoring import calculate_vegas_score, count_team_junk
from .pipeline import STAGES, build_context, run_pipeline, score
from .invalidation import InvalidationResult, detect_invalidations
from .settlement import calculate_settlement, reconcile_debts, scoreboard_metrics
from .config import get_config, clear_config_cache
from .logging_config import setup_logging, get_logger
from .json_scorer import load_game, score_game_from_json, save_scoreboard, settle_game
from .validators import validate_rule_set, validate_game, validate_scoreboard

__all__ = [
    # Errors
    'SpicyError',
    'ScoringConfigError',
    'RuleConfigError',
    # Models
    'Scoreboard',
    'HoleResult',
    'PlayerHoleResult',
    'TeamHoleResult',
    'Cumulative',
    'PlayerCumulative',
    'TeamCumulative',
    'ScoringContext',
    'ScoringWarning',
    # Input schemas
    'GameSnapshot',
    'ScoringConfig',
    'PointsTableEntry',
    'PoolConfig',
    'SettlementConfig',
    # Engines
    'rank_with_ties',
    'GOLF_OPERATORS',
    'LogicState',
    'parse_logic',
    'points_from_table',
    'split_points',
    'calculate_position_points',
    'calculate_vegas_score',
    'count_team_junk',
    'calculate_pops',
    'effective_handicap',
    'compile_junk_rules',
    'evaluate_junk_for_hole',
    'ActivationIndex',
    'compile_multiplier_rules',
    'evaluate_multipliers_for_hole',
    # Pipeline
    'STAGES',
    'build_context',
    'run_pipeline',
    'score',
    # Edits and settlement
    'detect_invalidations',
    'InvalidationResult',
    'calculate_settlement',
    'reconcile_debts',
    'scoreboard_metrics',
    # Config and logging
    'get_config',
    'clear_config_cache',
    'setup_logging',
    'get_logger',
    # JSON files
    'load_game',
    'score_game_from_json',
    'save_scoreboard',
    'settle_game',
    # Validation
    'validate_rule_set',
    'validate_game',
    'validate_scoreboard',
]
