#!/usr/bin/env python3
"""Play CPU-only games and report how each role fares.

Usage:
    python scripts/simulate.py --games 200 --players 6 --seed 1
"""

import argparse
import logging
import os
import sys
import time
from collections import Counter

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from critocracy.game.presenter import LogPresenter
from critocracy.game.setup import fill_with_cpu, load_config, new_game
from critocracy.game.state import GamePhase

logger = logging.getLogger("critocracy.simulate")


def run_games(num_games: int, config, max_actions: int = 20_000, presenter=None):
    wins = Counter()
    finishes = Counter()
    rounds = []
    for i in range(num_games):
        if config.seed is not None:
            config.seed += 1
        machine = new_game(fill_with_cpu([], config.total_players), config,
                           presenter=presenter)
        machine.run_automated(max_actions)
        session = machine.session
        if session.phase != GamePhase.FINISHED:
            logger.warning(f"Game {i+1} did not finish within {max_actions} actions")
            continue
        rounds.append(session.current_round)
        winner = session.players.get(session.rankings[0])
        wins[winner.role.value] += 1
        for p in session.players:
            if p.finished:
                finishes[p.role.value] += 1
        if (i + 1) % 50 == 0:
            logger.info(f"  Game {i+1}/{num_games}...")
    return wins, finishes, rounds


def main():
    parser = argparse.ArgumentParser(description="Simulate Critocracy games")
    parser.add_argument("--config", type=str, default="configs/game.yaml")
    parser.add_argument("--games", type=int, default=100)
    parser.add_argument("--players", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--verbose", action="store_true",
                        help="Log every move, card and trade")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(name)s %(levelname)s %(message)s")
    if not args.verbose:
        logging.getLogger("critocracy.turns").setLevel(logging.WARNING)
        logging.getLogger("critocracy.trade").setLevel(logging.WARNING)
        logging.getLogger("critocracy.board").setLevel(logging.WARNING)
        logging.getLogger("critocracy.cards").setLevel(logging.WARNING)
        logging.getLogger("critocracy.effects").setLevel(logging.WARNING)
        logging.getLogger("critocracy.setup").setLevel(logging.WARNING)
    presenter = LogPresenter() if args.verbose else None

    config = load_config(args.config if os.path.exists(args.config) else None)
    if args.players is not None:
        config.total_players = args.players
    if args.seed is not None:
        config.seed = args.seed

    start = time.time()
    wins, finishes, rounds = run_games(args.games, config, presenter=presenter)
    elapsed = time.time() - start
    played = len(rounds)

    print(f"\nResults ({played} games, {config.total_players} players):")
    for role, count in wins.most_common():
        print(f"  {role:<14} wins {count:4d} ({100*count/max(played, 1):.1f}%)  "
              f"finished {finishes[role]}")
    if rounds:
        print(f"  Avg length: {sum(rounds)/len(rounds):.1f} rounds (max {max(rounds)})")
    print(f"  Time: {elapsed:.1f}s ({elapsed/max(played, 1):.3f}s per game)")


if __name__ == "__main__":
    main()
