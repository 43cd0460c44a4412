"""Data models for the scoring pipeline.

The scoreboard classes are plain dataclasses with snake_case attributes;
``to_dict()`` renders them with the camelCase field names consumed by the
presentation layer.
"""

from dataclasses import dataclass, field, fields, is_dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

from .schemas import GameSnapshot, Option, PlayerRound, ScoringConfig, TeamOption

if TYPE_CHECKING:
    from .multipliers import ActivationIndex

Number = Union[int, float]


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


def to_wire(value: Any) -> Any:
    """Convert a model (or nested containers of models) to JSON-ready data."""
    if is_dataclass(value) and not isinstance(value, type):
        return {
            _camel(f.name): to_wire(getattr(value, f.name))
            for f in fields(value)
            if f.metadata.get('wire', True)
        }
    if isinstance(value, dict):
        return {key: to_wire(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire(item) for item in value]
    return value


@dataclass
class AwardedJunk:
    """A junk award on one hole."""
    name: str
    value: Number = 0


@dataclass
class AppliedMultiplier:
    """A multiplier active on one hole."""
    name: str
    value: Number = 1
    first_hole: Optional[str] = None
    override: bool = field(default=False, metadata={'wire': False})


@dataclass
class PlayerHoleResult:
    """One player's result on one hole. gross == 0 means not yet scored."""
    player_id: str
    gross: int = 0
    pops: int = 0
    net: int = 0
    score_to_par: int = 0
    net_to_par: int = 0
    rank: int = 0
    tie_count: int = 0
    junk: List[AwardedJunk] = field(default_factory=list)
    multipliers: List[AppliedMultiplier] = field(default_factory=list)
    points: Number = 0
    running_total: Number = 0

    @property
    def scored(self) -> bool:
        return self.gross > 0


@dataclass
class TeamHoleResult:
    """One team's result on one hole."""
    team_id: str
    player_ids: List[str] = field(default_factory=list)
    score: Number = 0
    low_ball: int = 0
    total: int = 0
    worst_ball: int = 0
    average: float = 0.0
    rank: int = 0
    tie_count: int = 0
    junk: List[AwardedJunk] = field(default_factory=list)
    multipliers: List[AppliedMultiplier] = field(default_factory=list)
    points: Number = 0
    running_total: Number = 0
    running_diff: Number = 0
    hole_net_total: Number = 0
    match_diff: Union[int, str] = 0
    match_over: bool = False


@dataclass
class HoleResult:
    """Everything computed for one hole."""
    hole: str
    par: int
    players: Dict[str, PlayerHoleResult] = field(default_factory=dict)
    teams: Dict[str, TeamHoleResult] = field(default_factory=dict)
    hole_multiplier: Number = 1
    scores_entered: int = 0

    @property
    def has_teams(self) -> bool:
        return bool(self.teams)


@dataclass
class PlayerCumulative:
    player_id: str
    gross_total: int = 0
    pops_total: int = 0
    net_total: int = 0
    points_total: Number = 0
    junk_total: Number = 0
    holes_played: int = 0
    rank: int = 0
    tie_count: int = 0


@dataclass
class TeamCumulative:
    team_id: str
    score_total: Number = 0
    points_total: Number = 0
    junk_total: Number = 0
    holes_played: int = 0
    rank: int = 0
    tie_count: int = 0
    match_diff: Union[int, str] = 0
    match_over: bool = False


@dataclass
class Cumulative:
    players: Dict[str, PlayerCumulative] = field(default_factory=dict)
    teams: Dict[str, TeamCumulative] = field(default_factory=dict)


@dataclass
class ScoreboardMeta:
    game_id: str = 'unknown'
    holes: List[str] = field(default_factory=list)  # hole ids in playing order
    has_teams: bool = False
    points_per_hole: Number = 0


@dataclass
class ScoringWarning:
    """A rule declaration that could not be applied."""
    option_name: str
    message: str
    stage: str = ''
    hole: Optional[str] = None


@dataclass
class Scoreboard:
    """Result of one scoring run."""
    holes: Dict[str, HoleResult] = field(default_factory=dict)
    cumulative: Cumulative = field(default_factory=Cumulative)
    meta: ScoreboardMeta = field(default_factory=ScoreboardMeta)
    warnings: List[ScoringWarning] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Render the scoreboard with its wire field names."""
        return to_wire(self)


# Scoring context (pipeline input)

@dataclass(frozen=True)
class HoleInfo:
    """Static facts about a hole being scored."""
    hole: str
    seq: int
    par: int
    allocation: int

    @property
    def nine(self) -> int:
        """0 for the front nine, 1 for the back nine."""
        number = int(self.hole) if self.hole.isdigit() else self.seq
        return (number - 1) // 9


@dataclass(frozen=True)
class PlayerHandicapInfo:
    player_id: str
    course_handicap: int = 0
    game_handicap: Optional[int] = None
    effective_handicap: int = 0
    adjusted_handicap: int = 0


@dataclass(frozen=True)
class TeamRoster:
    """A team's members and option activations on one hole."""
    team_id: str
    player_ids: Tuple[str, ...] = ()
    options: Tuple[TeamOption, ...] = ()


@dataclass(frozen=True)
class Activation:
    """A declared option recorded on a team at its first hole."""
    team_id: str
    name: str
    hole: HoleInfo
    value: Optional[str] = None


@dataclass(frozen=True)
class ScoringContext:
    """
    Immutable input to every pipeline stage.

    Stages never mutate a context; they return a copy with a new scoreboard
    (``dataclasses.replace(ctx, scoreboard=...)``).
    """
    game: GameSnapshot
    config: ScoringConfig
    holes: Tuple[HoleInfo, ...]
    rounds: Dict[str, PlayerRound]
    handicaps: Dict[str, PlayerHandicapInfo]
    teams_per_hole: Dict[str, Tuple[TeamRoster, ...]]
    options: Dict[str, Option]
    activations: 'ActivationIndex'
    handicap_mode: str = 'full'
    scoreboard: Scoreboard = field(default_factory=Scoreboard)

    @property
    def player_ids(self) -> List[str]:
        return list(self.rounds)

    def hole_info(self, hole: str) -> Optional[HoleInfo]:
        for info in self.holes:
            if info.hole == hole:
                return info
        return None
