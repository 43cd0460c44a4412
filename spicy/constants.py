"""Constants and vocabularies for spicy scoring."""

# Golf defaults
DEFAULT_PAR = 4
STROKE_HOLES = 18
HOLES_PER_NINE = 9
DEFAULT_MULTIPLIER_VALUE = 2
DEFAULT_SEQ = 999

# Handicap modes for the 'handicap_index_from' game option
HANDICAP_MODES = ('full', 'low')

# Slope of a course of standard difficulty
STANDARD_SLOPE = 113

# Option record types
OPTION_TYPES = ('game', 'junk', 'multiplier', 'meta')

# Junk declarations
JUNK_SCOPES = ('player', 'team')
JUNK_BASED_ON = ('gross', 'net', 'user')
SCORE_TO_PAR_FITS = ('exactly', 'less_than', 'greater_than', 'at_most', 'at_least')
BETTER_DIRECTIONS = ('lower', 'higher')

# Comparison calculation -> TeamHoleResult attribute
TEAM_METRICS = {
    'best_ball': 'low_ball',
    'low_ball': 'low_ball',
    'sum': 'total',
    'aggregate': 'total',
    'total': 'total',
    'worst_ball': 'worst_ball',
    'average': 'average',
}

# Limits under which at most one award is possible per hole
SINGLE_AWARD_LIMITS = ('one_team_per_group', 'one_per_group')

# Multiplier declarations
MULTIPLIER_SCOPES = ('player', 'team', 'hole', 'rest_of_nine', 'game', 'none')
AUTOMATIC_SUB_TYPES = ('automatic', 'bbq')
DECLARED_SUB_TYPES = ('press',)
FRONT_NINE_PRE_DOUBLE = 'frontNinePreDoubleTotal'
PRE_DOUBLE = 'pre_double'

# Values that mark a user-entered flag as set
TRUE_FLAG_VALUES = ('1', 'true')
