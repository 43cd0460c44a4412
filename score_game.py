#!/usr/bin/env python3
"""
Spicy golf game scorer CLI

Scores a game snapshot (holes, rounds, teams and rule options) from a JSON
file and writes the scoreboard.

Usage:
    python score_game.py --game data/games/five_points.json
    python score_game.py --game data/games/five_points.json --output scoreboards/five_points.json --strict
    python score_game.py --game data/games/five_points.json --settlement data/settlements/five_points.json
"""

import argparse
import logging
import sys
from pathlib import Path

from spicy import (
    get_config,
    load_game,
    save_scoreboard,
    score_game_from_json,
    settle_game,
    setup_logging,
    validate_game,
)


def main():
    parser = argparse.ArgumentParser(description="Spicy golf game scorer")
    parser.add_argument(
        "--game", "-g",
        required=True,
        help="Path to the game JSON file",
    )
    parser.add_argument(
        "--output", "-o",
        default=None,
        help="Output path for the scoreboard JSON (defaults to scoreboards/{game file name})",
    )
    parser.add_argument(
        "--config", "-c",
        action="store_true",
        help="Use scoring defaults from data/scoring_config.json",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Refuse to score if any rule declaration would be skipped",
    )
    parser.add_argument(
        "--settlement", "-s",
        default=None,
        help="Settle the pot using this settlement JSON file (pools and pot total)",
    )
    parser.add_argument(
        "--log-dir",
        default=None,
        help="Write a log file to this directory",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress detailed output",
    )

    args = parser.parse_args()

    setup_logging(
        log_dir=Path(args.log_dir) if args.log_dir else None,
        level=logging.WARNING if args.quiet else logging.INFO,
        log_to_file=args.log_dir is not None,
    )

    game_path = Path(args.game)
    if not game_path.exists():
        print(f"❌ Game file not found: {game_path}")
        sys.exit(1)

    output_path = Path(args.output) if args.output else Path("scoreboards") / game_path.name

    errors, warnings = validate_game(load_game(game_path))
    for error in errors:
        print(f"❌ {error}")
    for warning in warnings:
        print(f"⚠️  {warning}")
    if errors or (args.strict and warnings):
        sys.exit(1)

    config = get_config() if args.config else None

    print(f"Scoring {game_path}...")
    game, scoreboard = score_game_from_json(game_path, config=config, verbose=not args.quiet)

    save_scoreboard(output_path, scoreboard, game)

    if args.settlement:
        settle_game(args.settlement, game, scoreboard, verbose=True)


if __name__ == "__main__":
    main()
