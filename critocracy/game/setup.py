"""Building a new game: configuration, seats, turn order."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np
import yaml

from critocracy.engine.agents import Agent, create_agent
from critocracy.game.board import BoardGraph, load_board
from critocracy.game.cards import CardSubsystem, load_cards
from critocracy.game.presenter import Presenter
from critocracy.game.state import (
    MAX_PLAYERS,
    MIN_PLAYERS,
    GamePhase,
    GameSession,
    PlayerRegistry,
    Role,
)
from critocracy.game.turns import TurnStateMachine

logger = logging.getLogger("critocracy.setup")


@dataclass
class GameConfig:
    """Settings for one game. Missing keys fall back to these defaults."""
    total_players: int = MAX_PLAYERS
    roll_for_turn_order: bool = True
    max_rounds: Optional[int] = None
    seed: Optional[int] = None
    agent: str = "heuristic"
    board_file: Optional[str] = None
    cards_file: Optional[str] = None

    @classmethod
    def from_dict(cls, config: dict) -> GameConfig:
        game_cfg = config.get("game", {})
        data_cfg = config.get("data", {})
        return cls(
            total_players=game_cfg.get("total_players", MAX_PLAYERS),
            roll_for_turn_order=game_cfg.get("roll_for_turn_order", True),
            max_rounds=game_cfg.get("max_rounds"),
            seed=game_cfg.get("seed"),
            agent=config.get("cpu", {}).get("agent", "heuristic"),
            board_file=data_cfg.get("board"),
            cards_file=data_cfg.get("cards"),
        )


@dataclass
class PlayerConfig:
    name: str
    role: Role
    is_human: bool = False


def load_config(path: Union[str, Path, None]) -> GameConfig:
    """Read a YAML config file. A missing path gives the defaults."""
    if path is None:
        return GameConfig()
    with open(path) as f:
        config = yaml.safe_load(f) or {}
    return GameConfig.from_dict(config)


def fill_with_cpu(players: list[PlayerConfig],
                  total: int = MAX_PLAYERS) -> list[PlayerConfig]:
    """Top up the table with automated players on the roles nobody took."""
    if not MIN_PLAYERS <= total <= MAX_PLAYERS:
        raise ValueError(f"Total players must be between {MIN_PLAYERS} and {MAX_PLAYERS}")
    filled = list(players)
    taken = {p.role for p in filled}
    for role in Role:
        if len(filled) >= total:
            break
        if role not in taken:
            filled.append(PlayerConfig(name=f"CPU {role.value.title()}", role=role))
    return filled


def determine_turn_order(player_ids: list[int], rng: np.random.Generator) -> list[int]:
    """Everyone rolls a die, highest first. Players tied for the top roll again."""
    rolls = {pid: int(rng.integers(1, 7)) for pid in player_ids}
    order: list[int] = []
    remaining = dict(rolls)
    while remaining:
        best = max(remaining.values())
        tied = [pid for pid, r in remaining.items() if r == best]
        while len(tied) > 1:
            rerolls = {pid: int(rng.integers(1, 7)) for pid in tied}
            logger.debug(f"Tie on {best}, re-rolls: {rerolls}")
            top = max(rerolls.values())
            tied = [pid for pid, r in rerolls.items() if r == top]
        # Losers of a re-roll keep their original roll for the next place
        order.append(tied[0])
        del remaining[tied[0]]
    return order


def new_session(players: list[PlayerConfig], config: Optional[GameConfig] = None,
                board: Optional[BoardGraph] = None,
                card_sets: Optional[dict] = None) -> GameSession:
    """Assemble a session in the SETUP phase with seats, decks and turn order."""
    config = config or GameConfig()
    if not MIN_PLAYERS <= len(players) <= MAX_PLAYERS:
        raise ValueError(f"A game needs {MIN_PLAYERS}-{MAX_PLAYERS} players, got {len(players)}")

    rng = np.random.default_rng(config.seed)
    registry = PlayerRegistry()
    for p in players:
        registry.add(p.name, p.role, is_human=p.is_human)

    board = board or load_board(config.board_file)
    cards = CardSubsystem(card_sets if card_sets is not None else load_cards(config.cards_file),
                          rng)
    for player in registry:
        player.position = board.start.coords

    ids = [p.player_id for p in registry]
    turn_order = determine_turn_order(ids, rng) if config.roll_for_turn_order else ids
    session = GameSession(
        players=registry,
        board=board,
        cards=cards,
        rng=rng,
        phase=GamePhase.SETUP,
        turn_order=turn_order,
        max_rounds=config.max_rounds,
    )
    logger.info(f"New game: {len(registry)} players, seed={config.seed}")
    return session


def new_game(players: list[PlayerConfig], config: Optional[GameConfig] = None,
             presenter: Optional[Presenter] = None, agent: Optional[Agent] = None,
             board: Optional[BoardGraph] = None,
             card_sets: Optional[dict] = None) -> TurnStateMachine:
    """Create a session, wrap it in a TurnStateMachine and start play."""
    config = config or GameConfig()
    session = new_session(players, config, board=board, card_sets=card_sets)
    agent = agent or create_agent(config.agent, session.rng)
    machine = TurnStateMachine(session, presenter=presenter, agent=agent)
    machine.start()
    return machine
