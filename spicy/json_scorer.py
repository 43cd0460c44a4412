"""JSON-file scoring.

Reads a game snapshot from a JSON file, scores it, and writes the
scoreboard back out in its wire form.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .models import Scoreboard
from .pipeline import score
from .schemas import GameSnapshot, ScoringConfig, SettlementConfig
from .settlement import SettlementResult, calculate_settlement, scoreboard_metrics
from .utils import load_json, save_json


def load_game(game_path: str | Path) -> GameSnapshot:
    """Load and validate a game snapshot.

    Args:
        game_path: Path to the game JSON file (e.g., data/games/five_points.json)

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file isn't a valid game snapshot
    """
    return load_json(game_path, schema=GameSnapshot)


def score_game_from_json(
    game_path: str | Path,
    config: Optional[ScoringConfig] = None,
    verbose: bool = True,
) -> tuple[GameSnapshot, Scoreboard]:
    """Score the game in a JSON file.

    Args:
        game_path: Path to the game JSON file
        config: Scoring defaults (ScoringConfig() when omitted)
        verbose: Whether to print the leaderboard

    Returns:
        Tuple of (game, scoreboard)
    """
    game = load_game(game_path)

    if verbose:
        print(f'\nScoring {game.name or game.game_id}: {len(game.rounds)} players, {len(game.holes)} holes')

    scoreboard = score(game, config)

    if verbose:
        print_leaderboard(game, scoreboard)
        for warning in scoreboard.warnings:
            where = f' (hole {warning.hole})' if warning.hole else ''
            print(f'  ⚠️  {warning.option_name}{where}: {warning.message}')

    return game, scoreboard


def print_leaderboard(game: GameSnapshot, scoreboard: Scoreboard) -> None:
    """Print team and player standings."""
    names = {r.player_id: r.name or r.player_id for r in game.rounds}

    if scoreboard.cumulative.teams:
        print('\n' + '=' * 60)
        print('TEAMS')
        print('=' * 60)
        teams = sorted(scoreboard.cumulative.teams.values(), key=lambda t: t.rank or len(game.rounds) + 1)
        for team in teams:
            match = f'  match {team.match_diff}' if team.match_over else ''
            print(f'  {team.rank or "-"}. {team.team_id}: {team.points_total} pts{match}')

    print('\n' + '=' * 60)
    print('PLAYERS')
    print('=' * 60)
    players = sorted(scoreboard.cumulative.players.values(), key=lambda p: p.rank or len(game.rounds) + 1)
    for player in players:
        print(
            f'  {player.rank or "-"}. {names.get(player.player_id, player.player_id)}: '
            f'gross {player.gross_total}, net {player.net_total}, {player.points_total} pts '
            f'({player.holes_played} holes)'
        )


def save_scoreboard(
    output_path: str | Path,
    scoreboard: Scoreboard,
    game: Optional[GameSnapshot] = None,
) -> dict[str, Any]:
    """Save a scoreboard as JSON.

    Args:
        output_path: Path to output JSON file
        scoreboard: Scored result
        game: The game that was scored, for its name

    Returns:
        The dict that was written
    """
    data = scoreboard.to_dict()
    data['scoredAt'] = datetime.now(timezone.utc).isoformat()
    if game is not None and game.name:
        data['name'] = game.name

    save_json(output_path, data)
    print(f'Scoreboard saved to {output_path}')
    return data


def settle_game(
    settlement_path: str | Path,
    game: GameSnapshot,
    scoreboard: Scoreboard,
    verbose: bool = True,
) -> SettlementResult:
    """
    Settle a scored game's pot from a settlement JSON file.

    Player names default to the names on the game's rounds; the file's
    player_names override them.
    """
    config = load_json(settlement_path, schema=SettlementConfig)
    names = {r.player_id: r.name or r.player_id for r in game.rounds}
    names.update(config.player_names)

    result = calculate_settlement(config.pools, scoreboard_metrics(scoreboard, names), config.pot_total)

    if verbose:
        print('\n' + '=' * 60)
        print(f'SETTLEMENT (pot {result.pot_total}, buy-in {result.buy_in:.2f})')
        print('=' * 60)
        for payout in result.payouts:
            place = f' #{payout.place}' if payout.place else ''
            print(f'  {payout.pool_name}{place}: {payout.player_name} wins {payout.amount}')
        for debt in result.debts:
            print(f'  {debt.from_player_name} pays {debt.to_player_name} {debt.amount:.2f}')

    return result
