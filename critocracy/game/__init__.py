"""Critocracy game core: board, movement, cards, trades, players."""

from critocracy.game.state import (
    Player, PlayerRegistry, GameSession, Role, Resource, GamePhase, TurnState,
)
from critocracy.game.board import BoardGraph, Space, SpaceType, load_board
from critocracy.game.movement import MovementResolver, MoveResult, StopReason
from critocracy.game.cards import Card, CardSubsystem, DeckType, EffectKind, load_cards
from critocracy.game.trade import TradeSystem, TradeOffer

__all__ = [
    "Player", "PlayerRegistry", "GameSession", "Role", "Resource", "GamePhase", "TurnState",
    "BoardGraph", "Space", "SpaceType", "load_board",
    "MovementResolver", "MoveResult", "StopReason",
    "Card", "CardSubsystem", "DeckType", "EffectKind", "load_cards",
    "TradeSystem", "TradeOffer",
]
