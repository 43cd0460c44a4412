"""Pydantic schemas for game snapshots, rule options and configuration."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator

from .constants import TRUE_FLAG_VALUES


def _as_text(v):
    """Coerce JSON scalars to the string form option values are stored in."""
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, bool):
        return 'true' if v else 'false'
    return str(v)


class HoleScore(BaseModel):
    """A player's entry for one hole: strokes plus user-marked junk flags."""

    gross: int = Field(default=0, ge=0)
    junk: dict[str, bool | str | int] = Field(default_factory=dict)

    def has_flag(self, name: str) -> bool:
        value = self.junk.get(name)
        if value is None or value is False:
            return False
        return value is True or str(value).lower() in TRUE_FLAG_VALUES

    class Config:
        extra = 'forbid'


class PlayerRound(BaseModel):
    """A player's round in this game."""

    player_id: str = Field(..., min_length=1)
    name: str | None = None
    course_handicap: int | None = None
    game_handicap: int | None = None
    handicap_index: float | None = None
    slope: int | None = Field(default=None, ge=55, le=155)
    scores: dict[str, HoleScore] = Field(default_factory=dict)

    @field_validator('scores', mode='before')
    @classmethod
    def stringify_hole_keys(cls, v):
        """Hole ids are strings; accept numeric keys."""
        if isinstance(v, dict):
            return {str(k): s for k, s in v.items()}
        return v

    class Config:
        extra = 'forbid'


class TeamOption(BaseModel):
    """An option (junk flag or multiplier) recorded on a team at a hole."""

    option_name: str = Field(..., min_length=1)
    value: str | None = 'true'
    first_hole: str | None = None

    @field_validator('value', 'first_hole', mode='before')
    @classmethod
    def coerce_text(cls, v):
        return _as_text(v)

    @property
    def is_set(self) -> bool:
        """A flag recorded with value false (or none) is not set."""
        return self.value is not None and self.value.lower() in TRUE_FLAG_VALUES

    class Config:
        extra = 'forbid'


class TeamSnapshot(BaseModel):
    """A team's members and option activations on one hole."""

    team: str = Field(..., min_length=1)
    player_ids: list[str] = Field(default_factory=list)
    options: list[TeamOption] = Field(default_factory=list)

    @field_validator('team', mode='before')
    @classmethod
    def coerce_team(cls, v):
        return _as_text(v)

    class Config:
        extra = 'forbid'


class GameHole(BaseModel):
    """A hole in the game with its par, stroke allocation and teams."""

    hole: str = Field(..., min_length=1)
    seq: int | None = None
    par: int | None = Field(default=None, ge=2, le=7)
    allocation: int | None = Field(default=None, ge=1, le=27)
    teams: list[TeamSnapshot] = Field(default_factory=list)

    @field_validator('hole', mode='before')
    @classmethod
    def coerce_hole(cls, v):
        return _as_text(v)

    class Config:
        extra = 'forbid'


class BaseOption(BaseModel):
    """Fields shared by every option declaration."""

    name: str = Field(..., min_length=1)
    disp: str | None = None
    seq: int | None = None

    class Config:
        extra = 'allow'


class GameOption(BaseOption):
    """A plain game setting such as 'use_handicaps' or 'match_play'."""

    type: Literal['game']
    value_type: str = 'text'
    value: str | None = None
    default_value: str | None = None

    @field_validator('value', 'default_value', mode='before')
    @classmethod
    def coerce_value(cls, v):
        return _as_text(v)

    def resolved(self):
        """The option value converted per its value_type."""
        raw = self.value if self.value is not None else self.default_value
        if raw is None:
            return None
        if self.value_type == 'bool':
            return raw.lower() == 'true'
        if self.value_type == 'num':
            try:
                return float(raw)
            except ValueError:
                return None
        return raw


class JunkOption(BaseOption):
    """A bonus-point award declaration."""

    type: Literal['junk']
    sub_type: str | None = None
    value: int | float = 0
    scope: str = 'player'
    based_on: str = 'gross'
    score_to_par: str | None = None
    logic: str | None = None
    calculation: str | None = None
    better: str = 'lower'
    limit: str | None = None


class MultiplierOption(BaseOption):
    """A stake multiplier declaration."""

    type: Literal['multiplier']
    sub_type: str | None = None
    value: int | float | None = None
    based_on: str | None = None
    scope: str = 'hole'
    availability: str | None = None
    override: bool = False
    value_from: str | None = None
    input_value: bool = False
    invalidation_reason: str | None = None


class MetaOption(BaseOption):
    """Spec-level metadata (short name, aliases, status)."""

    type: Literal['meta']
    value_type: str = 'text'
    value: str | None = None
    value_array: list[str] | None = None

    @field_validator('value', mode='before')
    @classmethod
    def coerce_value(cls, v):
        return _as_text(v)


Option = Annotated[
    Union[GameOption, JunkOption, MultiplierOption, MetaOption],
    Field(discriminator='type'),
]


class GameSnapshot(BaseModel):
    """A fully resolved, read-only game record to be scored."""

    game_id: str = 'unknown'
    name: str | None = None
    spec_type: str | None = None
    holes: list[GameHole] = Field(default_factory=list)
    rounds: list[PlayerRound] = Field(default_factory=list)
    spec_options: dict[str, Option] = Field(default_factory=dict)
    options: dict[str, Option] = Field(default_factory=dict)

    class Config:
        extra = 'forbid'


class ScoringConfig(BaseModel):
    """Scoring defaults from data/scoring_config.json."""

    default_par: int = Field(default=4, ge=2, le=7)
    stroke_holes: int = Field(default=18, ge=9, le=27)
    default_multiplier_value: int | float = Field(default=2, gt=0)
    default_handicap_mode: str = Field(default='full', pattern=r'^(full|low)$')
    default_seq: int = 999

    class Config:
        extra = 'forbid'


class PointsTableEntry(BaseModel):
    """Points for finishing at ``rank`` tied with ``tie_count`` players or teams."""

    rank: int = Field(..., ge=1)
    tie_count: int = Field(default=1, ge=1)
    points: int | float = 0


class PoolConfig(BaseModel):
    """One pool of a betting pot, paid out on one metric (higher is better)."""

    name: str = Field(..., min_length=1)
    disp: str | None = None
    pct: float = Field(..., ge=0, le=100)
    metric: str = Field(..., min_length=1)
    split_type: Literal['places', 'per_unit', 'winner_take_all'] = 'places'
    places_paid: int | None = Field(default=None, ge=1)
    payout_pcts: list[float] | None = None

    class Config:
        extra = 'forbid'


class SettlementConfig(BaseModel):
    """How a game's pot is divided, from a settlement JSON file."""

    pot_total: float = Field(..., ge=0)
    pools: list[PoolConfig] = Field(default_factory=list)
    player_names: dict[str, str] = Field(default_factory=dict)

    @field_validator('pools')
    @classmethod
    def validate_pcts(cls, v):
        total = sum(pool.pct for pool in v)
        if v and abs(total - 100) > 0.01:
            raise ValueError(f'pool percentages add up to {total}, not 100')
        return v

    class Config:
        extra = 'forbid'
