"""Decision policies for automated players."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from critocracy.game.board import BoardGraph, PathOption
from critocracy.game.cards import END_OF_TURN_SLOTS
from critocracy.game.state import Player

logger = logging.getLogger("critocracy.agents")

# Landings on draw spaces after which a CPU player prefers to leave its path
DRAW_FATIGUE = 2


class Agent:
    """Base agent interface."""

    def choose_start(self, player: Player, options: list[PathOption]) -> PathOption:
        raise NotImplementedError

    def choose_path(self, player: Player, options: list[PathOption],
                    board: BoardGraph) -> PathOption:
        raise NotImplementedError

    def choose_end_of_turn_slot(self, player: Player) -> int:
        raise NotImplementedError

    def wants_ability(self, player: Player) -> bool:
        return False


class RandomAgent(Agent):
    """Picks uniformly among whatever is offered."""

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def _pick(self, options: list):
        if not options:
            raise ValueError("No options to choose from")
        return options[int(self.rng.integers(0, len(options)))]

    def choose_start(self, player: Player, options: list[PathOption]) -> PathOption:
        return self._pick(options)

    def choose_path(self, player: Player, options: list[PathOption],
                    board: BoardGraph) -> PathOption:
        return self._pick(options)

    def choose_end_of_turn_slot(self, player: Player) -> int:
        return self._pick(list(END_OF_TURN_SLOTS))


class HeuristicAgent(RandomAgent):
    """Stays on its own path at junctions unless pushed off it.

    A player leaves its current path when a card has forced a path change
    (the flag is consumed here) or when staying would mean yet another draw
    space after DRAW_FATIGUE of them this game.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None,
                 ability_chance: float = 0.25):
        super().__init__(rng)
        self.ability_chance = ability_chance

    def choose_path(self, player: Player, options: list[PathOption],
                    board: BoardGraph) -> PathOption:
        same = [o for o in options if o.path == player.current_path]
        other = [o for o in options if o.path != player.current_path]

        switch = False
        if player.forced_path_change:
            player.forced_path_change = False
            switch = True
            logger.debug(f"{player.name} is forced off the {player.current_path} path")
        elif player.special_event_count >= DRAW_FATIGUE and same:
            target = board.find_space(same[0].coords)
            if target is not None and target.is_draw:
                switch = True
                logger.debug(f"{player.name} avoids another draw space")

        if switch and other:
            return self._pick(other)
        if same:
            return same[0]
        return self._pick(options)

    def wants_ability(self, player: Player) -> bool:
        if player.ability_used:
            return False
        return bool(self.rng.random() < self.ability_chance)


def create_agent(kind: str, rng: Optional[np.random.Generator] = None) -> Agent:
    """Create an agent by name ("random" or "heuristic")."""
    if kind == "random":
        return RandomAgent(rng)
    elif kind == "heuristic":
        return HeuristicAgent(rng)
    raise ValueError(f"Unknown agent kind: {kind}")
