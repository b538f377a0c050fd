"""Tests for automated player policies."""

import numpy as np
import pytest

from critocracy.engine.agents import (
    DRAW_FATIGUE,
    HeuristicAgent,
    RandomAgent,
    create_agent,
)
from critocracy.game.cards import END_OF_TURN_SLOTS

from conftest import make_player


def _junction_options(board):
    # Purple junction: stay on purple (a draw space) or cross to blue
    return board.next_options((600, 200)).options


class TestHeuristicAgent:
    def test_stays_on_own_path(self, board):
        agent = HeuristicAgent(np.random.default_rng(0))
        player = make_player((600, 200), current_path="purple")
        choice = agent.choose_path(player, _junction_options(board), board)
        assert choice.path == "purple"

    def test_forced_path_change(self, board):
        agent = HeuristicAgent(np.random.default_rng(0))
        player = make_player((600, 200), current_path="purple", forced_path_change=True)
        choice = agent.choose_path(player, _junction_options(board), board)
        assert choice.path == "blue"
        assert not player.forced_path_change

    def test_avoids_draw_after_fatigue(self, board):
        agent = HeuristicAgent(np.random.default_rng(0))
        tired = make_player((600, 200), current_path="purple",
                            special_event_count=DRAW_FATIGUE)
        fresh = make_player((600, 200), current_path="purple",
                            special_event_count=DRAW_FATIGUE - 1)
        assert agent.choose_path(tired, _junction_options(board), board).path == "blue"
        assert agent.choose_path(fresh, _junction_options(board), board).path == "purple"

    def test_choicepoint_on_own_path(self, board):
        agent = HeuristicAgent(np.random.default_rng(0))
        player = make_player((500, 624), current_path="cyan")
        options = board.next_options((500, 624)).options
        assert agent.choose_path(player, options, board).coords == (600, 624)

    def test_ability_only_once(self):
        agent = HeuristicAgent(np.random.default_rng(0), ability_chance=1.0)
        player = make_player((200, 200))
        assert agent.wants_ability(player)
        player.ability_used = True
        assert not agent.wants_ability(player)


class TestRandomAgent:
    def test_choices_come_from_options(self, board):
        agent = RandomAgent(np.random.default_rng(5))
        player = make_player(board.start.coords)
        options = board.start_options()
        for _ in range(20):
            assert agent.choose_start(player, options) in options
            assert agent.choose_end_of_turn_slot(player) in END_OF_TURN_SLOTS
        assert not agent.wants_ability(player)

    def test_no_options(self, board):
        agent = RandomAgent(np.random.default_rng(5))
        with pytest.raises(ValueError):
            agent.choose_path(make_player((600, 200)), [], board)


class TestCreateAgent:
    def test_known_kinds(self):
        assert type(create_agent("random")) is RandomAgent
        assert type(create_agent("heuristic")) is HeuristicAgent

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            create_agent("minimax")
