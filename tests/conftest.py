"""Shared test fixtures and builders for Critocracy tests."""

import numpy as np
import pytest

from critocracy.game.board import board_from_dict, load_board
from critocracy.game.cards import Card, DeckType, ResourceChange, load_cards
from critocracy.game.setup import GameConfig, PlayerConfig, new_game
from critocracy.game.state import Player, Role, TurnState

COLORS = ("purple", "blue", "cyan", "pink")


def line_board_data(purple_types=None, purple_extra=None):
    """Four straight five-space paths from (0, 0) to a finish at (1000, 150).

    Path `i` runs along y = 100 * i at x = 100..500. `purple_types` maps an
    x coordinate on the purple path to a space type; `purple_extra` maps an
    x coordinate to extra space fields (next, polygon).
    """
    purple_types = purple_types or {}
    purple_extra = purple_extra or {}
    paths = []
    for i, color in enumerate(COLORS):
        y = 100 * i
        spaces = []
        for x in range(100, 600, 100):
            space = {"coords": [x, y]}
            if color == "purple":
                if x in purple_types:
                    space["type"] = purple_types[x]
                space.update(purple_extra.get(x, {}))
            spaces.append(space)
        paths.append({"color": color, "name": f"Age {color}", "spaces": spaces})
    return {
        "start": {"coords": [0, 150],
                  "first": {c: [100, 100 * i] for i, c in enumerate(COLORS)}},
        "finish": {"coords": [1000, 150]},
        "paths": paths,
    }


def simple_card_sets(copies=3):
    """Predictable decks: path cards give 1 knowledge, end-of-turn cards 1 money."""
    sets = {}
    for deck in DeckType:
        if deck == DeckType.END_OF_TURN:
            sets[deck] = [Card("Tithe", deck, role_effects={"ALL": [ResourceChange(money=1)]})
                          for _ in range(copies)]
        else:
            sets[deck] = [Card(f"{deck.value} lesson", deck,
                               effects=[ResourceChange(knowledge=1)])
                          for _ in range(copies)]
    return sets


def make_player(position=None, role=Role.HISTORIAN, player_id=1, **kwargs):
    return Player(player_id=player_id, name=f"P{player_id}", role=role,
                  position=position, **kwargs)


def make_machine(num_players=3, humans=(), seed=0, max_rounds=None,
                 roll_for_turn_order=False, card_sets=None, board=None):
    """A started game. Players are numbered 1..n in turn order, roles in Role order."""
    roles = list(Role)[:num_players]
    players = [PlayerConfig(f"P{i+1}", role, is_human=(i + 1) in humans)
               for i, role in enumerate(roles)]
    config = GameConfig(seed=seed, roll_for_turn_order=roll_for_turn_order,
                        max_rounds=max_rounds)
    return new_game(players, config,
                    card_sets=card_sets if card_sets is not None else simple_card_sets(),
                    board=board)


def finish_turn(machine, player_id):
    """Skip straight to the end of `player_id`'s turn and end it."""
    session = machine.session
    session.players.get(player_id).has_drawn_end_of_turn_card = True
    session.turn_state = TurnState.ACTION_COMPLETE
    return machine.end_turn(player_id)


@pytest.fixture
def board():
    return load_board()


@pytest.fixture
def line_board():
    return board_from_dict(line_board_data())


@pytest.fixture
def card_sets():
    return load_cards()


@pytest.fixture
def rng():
    return np.random.default_rng(0)
