"""Team score metrics computed from members' hole results."""

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from .models import PlayerHoleResult

# team_score option value -> TeamMetrics attribute
TEAM_SCORE_METHODS = {
    'best_ball': 'low_ball',
    'sum': 'total',
    'aggregate': 'total',
    'worst_ball': 'worst_ball',
    'average': 'average',
}

# Scored separately by calculate_vegas_score
VEGAS = 'vegas'


@dataclass(frozen=True)
class TeamMetrics:
    """All aggregate metrics for one team on one hole."""
    low_ball: int = 0
    total: int = 0
    worst_ball: int = 0
    average: float = 0.0
    balls: tuple[int, ...] = ()  # member scores, best first

    @property
    def scored(self) -> bool:
        return bool(self.balls)


@dataclass(frozen=True)
class VegasScore:
    score: int = 0
    digits: tuple[int, ...] = ()  # in the order they were read
    flipped: bool = False


def member_scores(
    player_ids: Iterable[str],
    players: Mapping[str, PlayerHoleResult],
    score_field: str = 'net',
) -> list[int]:
    """Scores of the members who have entered a gross score on the hole."""
    scores = []
    for player_id in player_ids:
        result = players.get(player_id)
        if result is None or not result.scored:
            continue
        scores.append(getattr(result, score_field))
    return scores


def count_team_junk(
    player_ids: Iterable[str],
    players: Mapping[str, PlayerHoleResult],
    junk_name: str,
) -> int:
    """How many times the team's members were awarded one junk on a hole."""
    count = 0
    for player_id in player_ids:
        result = players.get(player_id)
        if result is not None:
            count += sum(1 for j in result.junk if j.name == junk_name)
    return count


def calculate_team_metrics(
    player_ids: Iterable[str],
    players: Mapping[str, PlayerHoleResult],
    score_field: str = 'net',
) -> TeamMetrics:
    """
    Calculate best ball, aggregate, worst ball and average for a team.

    Only members with a gross score count. A team with no scored members
    gets all-zero metrics.
    """
    scores = sorted(member_scores(player_ids, players, score_field))
    if not scores:
        return TeamMetrics()

    total = sum(scores)
    return TeamMetrics(
        low_ball=scores[0],
        total=total,
        worst_ball=scores[-1],
        average=total / len(scores),
        balls=tuple(scores),
    )


def _best_to_par(player_ids: Iterable[str], players: Mapping[str, PlayerHoleResult]) -> Optional[int]:
    to_par = member_scores(player_ids, players, 'score_to_par')
    return min(to_par) if to_par else None


def calculate_vegas_score(
    player_ids: Iterable[str],
    opponent_ids: Iterable[str],
    players: Mapping[str, PlayerHoleResult],
    birdies_cancel_flip: bool = False,
) -> VegasScore:
    """
    Vegas team score: members' gross scores read as one number.

    The lower score is the tens digit (a 4 and a 5 make 45). When an
    opponent makes a birdie or better the digits are flipped (54). With
    ``birdies_cancel_flip``, a team's own birdie cancels an opponent's
    birdie flip, and only its own eagle cancels an opponent's eagle flip.

    Fewer than two scored members gives a score of 0.
    """
    player_ids = list(player_ids)
    digits = sorted(member_scores(player_ids, players, 'gross'))
    if len(digits) < 2:
        return VegasScore()

    own_best = _best_to_par(player_ids, players)
    opponent_best = _best_to_par(opponent_ids, players)

    flipped = False
    if opponent_best is not None and opponent_best <= -2:
        flipped = not (birdies_cancel_flip and own_best is not None and own_best <= -2)
    elif opponent_best == -1:
        flipped = not (birdies_cancel_flip and own_best is not None and own_best <= -1)

    if flipped:
        digits.reverse()
    return VegasScore(score=int(''.join(str(d) for d in digits)), digits=tuple(digits), flipped=flipped)


def team_score(metrics: TeamMetrics, method: str = 'best_ball'):
    """The metric a team is ranked on, per the 'team_score' game option."""
    attribute = TEAM_SCORE_METHODS.get(method)
    if attribute is None:
        raise ValueError(f'Invalid team score method: {method}')
    return getattr(metrics, attribute)
