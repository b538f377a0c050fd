"""Players, roles, and the per-game session record for Critocracy."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterator, Optional

import numpy as np

if TYPE_CHECKING:
    from critocracy.game.board import BoardGraph, PathOption
    from critocracy.game.cards import CardSubsystem
    from critocracy.game.trade import TradeOffer

MIN_PLAYERS = 2
MAX_PLAYERS = 6


class Role(str, Enum):
    HISTORIAN = "HISTORIAN"
    REVOLUTIONARY = "REVOLUTIONARY"
    COLONIALIST = "COLONIALIST"
    ENTREPRENEUR = "ENTREPRENEUR"
    POLITICIAN = "POLITICIAN"
    ARTIST = "ARTIST"


class Resource(str, Enum):
    MONEY = "money"
    KNOWLEDGE = "knowledge"
    INFLUENCE = "influence"


@dataclass(frozen=True)
class RoleProfile:
    money: int
    knowledge: int
    influence: int
    ability: str

    def starting_resources(self) -> dict[Resource, int]:
        return {
            Resource.MONEY: self.money,
            Resource.KNOWLEDGE: self.knowledge,
            Resource.INFLUENCE: self.influence,
        }


# Starting resources and once-per-game ability for each role
ROLE_PROFILES: dict[Role, RoleProfile] = {
    Role.HISTORIAN: RoleProfile(8, 14, 8, "Archive Dive: gain 3 knowledge"),
    Role.REVOLUTIONARY: RoleProfile(6, 10, 14, "Uprising: another player loses 2 influence"),
    Role.COLONIALIST: RoleProfile(14, 8, 8, "Extraction: take 2 money from another player"),
    Role.ENTREPRENEUR: RoleProfile(16, 6, 8, "Venture: gain 3 money"),
    Role.POLITICIAN: RoleProfile(8, 8, 14, "Diplomatic Cover: immunity for 1 round"),
    Role.ARTIST: RoleProfile(8, 12, 10, "Masterpiece: gain 2 influence and 1 knowledge"),
}


class GamePhase(str, Enum):
    SETUP = "setup"
    PLAYING = "playing"
    FINISHED = "finished"


class TurnState(str, Enum):
    AWAITING_START_CHOICE = "AWAITING_START_CHOICE"
    AWAITING_ROLL = "AWAITING_ROLL"
    MOVING = "MOVING"
    AWAITING_CHOICEPOINT = "AWAITING_CHOICEPOINT"
    AWAITING_PATH_CARD = "AWAITING_PATH_CARD"
    AWAITING_END_OF_TURN_CARD = "AWAITING_END_OF_TURN_CARD"
    ACTION_COMPLETE = "ACTION_COMPLETE"
    TURN_ENDED = "TURN_ENDED"


@dataclass
class Player:
    """A seat at the table: identity, token position, resources, and status."""
    player_id: int
    name: str
    role: Role
    is_human: bool = False
    position: Optional[tuple[int, int]] = None
    current_path: Optional[str] = None
    resources: dict[Resource, int] = field(default_factory=dict)
    skip_turns: int = 0
    immunity_turns: int = 0
    trade_blocked_turns: int = 0
    ability_used: bool = False
    has_drawn_end_of_turn_card: bool = False
    finished: bool = False
    finish_order: Optional[int] = None
    special_event_count: int = 0
    forced_path_change: bool = False

    def __post_init__(self):
        if not self.resources:
            self.resources = ROLE_PROFILES[self.role].starting_resources()

    def get(self, resource: Resource) -> int:
        return self.resources.get(Resource(resource), 0)

    def can_afford(self, resource: Resource, amount: int) -> bool:
        return self.get(resource) >= amount

    def adjust(self, resource: Resource, delta: int) -> int:
        """Add a signed delta, flooring at 0. Returns the change actually applied."""
        resource = Resource(resource)
        before = self.get(resource)
        after = max(0, before + delta)
        self.resources[resource] = after
        return after - before

    @property
    def total_resources(self) -> int:
        return sum(self.resources.values())

    @property
    def is_immune(self) -> bool:
        return self.immunity_turns > 0

    @property
    def is_trade_blocked(self) -> bool:
        return self.trade_blocked_turns > 0

    def to_dict(self) -> dict:
        return {
            "id": self.player_id,
            "name": self.name,
            "role": self.role.value,
            "is_human": self.is_human,
            "position": list(self.position) if self.position else None,
            "path": self.current_path,
            "resources": {r.value: v for r, v in self.resources.items()},
            "skip_turns": self.skip_turns,
            "immunity_turns": self.immunity_turns,
            "trade_blocked_turns": self.trade_blocked_turns,
            "ability_used": self.ability_used,
            "finished": self.finished,
        }


class PlayerRegistry:
    """Holds the players of one game, keyed by id, in creation order."""

    def __init__(self):
        self._players: dict[int, Player] = {}
        self._next_id = 1

    def add(self, name: str, role: Role, is_human: bool = False) -> Player:
        role = Role(role)
        if len(self._players) >= MAX_PLAYERS:
            raise ValueError(f"A game holds at most {MAX_PLAYERS} players")
        if any(p.role == role for p in self._players.values()):
            raise ValueError(f"Role {role.value} is already taken")
        player = Player(player_id=self._next_id, name=name, role=role,
                        is_human=is_human)
        self._players[player.player_id] = player
        self._next_id += 1
        return player

    def get(self, player_id: Optional[int]) -> Optional[Player]:
        if player_id is None:
            return None
        return self._players.get(player_id)

    def others(self, player_id: int) -> list[Player]:
        return [p for p in self._players.values() if p.player_id != player_id]

    def all_finished(self) -> bool:
        return bool(self._players) and all(p.finished for p in self._players.values())

    def __iter__(self) -> Iterator[Player]:
        return iter(self._players.values())

    def __len__(self) -> int:
        return len(self._players)

    def __contains__(self, player_id) -> bool:
        return player_id in self._players


@dataclass
class Alliance:
    """A pact between two players, dissolved at a round boundary once expired."""
    members: frozenset[int]
    formed_in_round: int
    duration: int = 1

    def expired(self, current_round: int) -> bool:
        return current_round - self.formed_in_round >= self.duration


@dataclass
class GameSession:
    """Everything one game owns. Constructed per game, never shared."""
    players: PlayerRegistry
    board: BoardGraph
    cards: CardSubsystem
    rng: np.random.Generator
    phase: GamePhase = GamePhase.SETUP
    turn_order: list[int] = field(default_factory=list)
    current_index: int = 0
    current_player_id: Optional[int] = None
    current_round: int = 1
    current_turn: int = 1
    turn_state: TurnState = TurnState.AWAITING_ROLL
    current_choices: list[PathOption] = field(default_factory=list)
    pending_path_deck: Optional[str] = None
    last_roll: Optional[int] = None
    pending: Optional[TradeOffer] = None
    alliances: list[Alliance] = field(default_factory=list)
    finish_counter: int = 0
    rankings: list[int] = field(default_factory=list)
    max_rounds: Optional[int] = None

    @property
    def current_player(self) -> Optional[Player]:
        return self.players.get(self.current_player_id)

    def roll_die(self) -> int:
        return int(self.rng.integers(1, 7))

    def is_allied(self, a: int, b: int) -> bool:
        pair = frozenset((a, b))
        return any(alliance.members == pair for alliance in self.alliances)

    def mark_finished(self, player: Player) -> None:
        if player.finished:
            return
        self.finish_counter += 1
        player.finished = True
        player.finish_order = self.finish_counter

    def compute_rankings(self) -> list[int]:
        """Finished players by finish order, then the rest by wealth and seat."""
        seat = {pid: i for i, pid in enumerate(self.turn_order)}
        finished = sorted((p for p in self.players if p.finished),
                          key=lambda p: p.finish_order)
        unfinished = sorted(
            (p for p in self.players if not p.finished),
            key=lambda p: (-p.total_resources, seat.get(p.player_id, len(seat))),
        )
        return [p.player_id for p in finished + unfinished]

    def snapshot(self) -> dict:
        """Plain-dict view of the session for presenters and scripts."""
        return {
            "phase": self.phase.value,
            "round": self.current_round,
            "turn": self.current_turn,
            "current_player": self.current_player_id,
            "turn_state": self.turn_state.value,
            "last_roll": self.last_roll,
            "choices": [list(c.coords) for c in self.current_choices],
            "pending_offer": self.pending.describe() if self.pending else None,
            "players": [p.to_dict() for p in self.players],
            "alliances": [sorted(a.members) for a in self.alliances],
            "rankings": list(self.rankings),
        }
