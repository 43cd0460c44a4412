#!/usr/bin/env python3
"""
Scoreboard Validation Script

Compares a saved scoreboard against a fresh scoring of its game and checks
the fresh scoreboard for internal consistency.
Outputs a list of discrepancies for review.

Usage:
    python scripts/validate_scoreboard.py --game data/games/five_points.json --scoreboard scoreboards/five_points.json
    python scripts/validate_scoreboard.py --all  # Every game in data/games with a saved scoreboard
"""

import argparse
from pathlib import Path
from typing import Any, List, Tuple

from spicy import load_game, score, validate_scoreboard
from spicy.utils import load_json


def compare_points(saved: dict[str, Any], fresh: dict[str, Any], tolerance: float = 0.0) -> List[dict]:
    """
    Compare per-hole points between two scoreboards in wire form.

    Returns:
        List of discrepancy dicts (hole, kind, id, saved, calculated, difference)
    """
    discrepancies = []

    for hole_id, fresh_hole in fresh.get('holes', {}).items():
        saved_hole = saved.get('holes', {}).get(hole_id, {})
        for kind, id_field in (('players', 'playerId'), ('teams', 'teamId')):
            for entry_id, fresh_entry in fresh_hole.get(kind, {}).items():
                saved_entry = saved_hole.get(kind, {}).get(entry_id)
                saved_points = saved_entry.get('points') if saved_entry else None
                calculated = fresh_entry['points']

                if saved_points is None:
                    discrepancies.append({
                        'hole': hole_id,
                        'kind': kind,
                        'id': fresh_entry[id_field],
                        'saved': None,
                        'calculated': calculated,
                        'difference': None,
                        'reason': 'Missing from saved scoreboard',
                    })
                elif abs(saved_points - calculated) > tolerance:
                    discrepancies.append({
                        'hole': hole_id,
                        'kind': kind,
                        'id': fresh_entry[id_field],
                        'saved': saved_points,
                        'calculated': calculated,
                        'difference': saved_points - calculated,
                        'reason': 'Points mismatch',
                    })

    return discrepancies


def validate_game_file(
    game_path: Path,
    scoreboard_path: Path,
    tolerance: float = 0.0,
) -> Tuple[List[dict], List[str], int]:
    """
    Validate one saved scoreboard.

    Returns:
        Tuple of (discrepancies, consistency errors, entries checked)
    """
    game = load_game(game_path)
    scoreboard = score(game)
    errors, _ = validate_scoreboard(scoreboard)

    fresh = scoreboard.to_dict()
    saved = load_json(scoreboard_path)
    checked = sum(len(h['players']) + len(h['teams']) for h in fresh['holes'].values())

    return compare_points(saved, fresh, tolerance), errors, checked


def print_discrepancies(discrepancies: List[dict], errors: List[str], total_checked: int, verbose: bool = True):
    """Pretty print discrepancies with stats."""
    matched = total_checked - len(discrepancies)
    pct = (matched / total_checked * 100) if total_checked > 0 else 0

    print(f"\n  Checked {total_checked} hole results: {matched} matched ({pct:.1f}%)")

    for error in errors:
        print(f"  ✗ {error}")

    if not discrepancies:
        if not errors:
            print("  ✓ All points match!")
        return

    if verbose:
        print(f"\n  ⚠ Discrepancies ({len(discrepancies)}):")
        print("  " + "-" * 60)
        print(f"  {'Hole':<6} {'Kind':<8} {'Id':<20} {'Saved':>7} {'Calc':>7}")
        print("  " + "-" * 60)
        for d in discrepancies:
            saved = '-' if d['saved'] is None else f"{d['saved']:>7}"
            print(f"  {d['hole']:<6} {d['kind']:<8} {d['id'][:20]:<20} {saved:>7} {d['calculated']:>7}")
        print()


def main():
    parser = argparse.ArgumentParser(description="Validate saved spicy scoreboards")
    parser.add_argument(
        "--game", "-g",
        help="Path to a game JSON file",
    )
    parser.add_argument(
        "--scoreboard", "-s",
        help="Path to the saved scoreboard for --game",
    )
    parser.add_argument(
        "--all", "-a",
        action="store_true",
        help="Validate every game in --games-dir that has a scoreboard in --scoreboards-dir",
    )
    parser.add_argument(
        "--games-dir",
        default="data/games",
        help="Directory of game JSON files",
    )
    parser.add_argument(
        "--scoreboards-dir",
        default="scoreboards",
        help="Directory of saved scoreboards",
    )
    parser.add_argument(
        "--tolerance", "-t",
        type=float,
        default=0.0,
        help="Allow point differences up to this amount",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Only show summary counts, not individual discrepancies",
    )

    args = parser.parse_args()

    if args.all:
        games = sorted(Path(args.games_dir).glob("*.json"))
        pairs = [(g, Path(args.scoreboards_dir) / g.name) for g in games]
        pairs = [(g, s) for g, s in pairs if s.exists()]
    elif args.game and args.scoreboard:
        pairs = [(Path(args.game), Path(args.scoreboard))]
    else:
        parser.error("Either --game with --scoreboard, or --all is required")

    print(f"Validating {len(pairs)} scoreboards")
    print("=" * 60)

    total_checked = 0
    total_discrepancies = 0
    total_errors = 0
    for game_path, scoreboard_path in pairs:
        print(f"\n{game_path.name}:")
        discrepancies, errors, checked = validate_game_file(game_path, scoreboard_path, args.tolerance)
        print_discrepancies(discrepancies, errors, checked, verbose=not args.summary)
        total_checked += checked
        total_discrepancies += len(discrepancies)
        total_errors += len(errors)

    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print(f"Total hole results checked: {total_checked}")
    print(f"Total discrepancies: {total_discrepancies}")
    print(f"Total consistency errors: {total_errors}")


if __name__ == "__main__":
    main()
