"""Cards, effects, and the five decks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import ClassVar, Optional, Union

import numpy as np
import yaml
from pydantic import ValidationError

from critocracy.game.errors import CardDataError
from critocracy.game.schema import CardFileModel, EffectModel
from critocracy.game.state import Resource, Role

logger = logging.getLogger("critocracy.cards")

DEFAULT_CARDS_FILE = Path(__file__).resolve().parent.parent / "data" / "cards.yaml"

ALL_ROLES = "ALL"
END_OF_TURN_SLOTS = (1, 2)


class DeckType(str, Enum):
    PURPLE = "purple"
    BLUE = "blue"
    CYAN = "cyan"
    PINK = "pink"
    END_OF_TURN = "end_of_turn"


class EffectKind(str, Enum):
    RESOURCE_CHANGE = "RESOURCE_CHANGE"
    MOVEMENT = "MOVEMENT"
    STEAL = "STEAL"
    SABOTAGE = "SABOTAGE"
    SKIP_TURN = "SKIP_TURN"
    IMMUNITY = "IMMUNITY"
    TRADE_BLOCKED = "TRADE_BLOCKED"
    ALLIANCE_OFFER = "ALLIANCE_OFFER"
    TRADE_OFFER = "TRADE_OFFER"


# Effect types
@dataclass
class Effect:
    """A single card effect. Subclasses form a closed set, one per EffectKind."""
    kind: ClassVar[EffectKind]


@dataclass
class ResourceChange(Effect):
    """Signed resource deltas for the drawing player."""
    kind: ClassVar[EffectKind] = EffectKind.RESOURCE_CHANGE
    money: int = 0
    knowledge: int = 0
    influence: int = 0

    def deltas(self) -> dict[Resource, int]:
        return {
            Resource.MONEY: self.money,
            Resource.KNOWLEDGE: self.knowledge,
            Resource.INFLUENCE: self.influence,
        }


@dataclass
class Movement(Effect):
    """Move by a signed number of spaces, jump to another age, or force a path change."""
    kind: ClassVar[EffectKind] = EffectKind.MOVEMENT
    spaces: int = 0
    move_to_age: Optional[str] = None
    force_path_change: bool = False


@dataclass
class Steal(Effect):
    kind: ClassVar[EffectKind] = EffectKind.STEAL
    resource: Resource = Resource.MONEY
    amount: int = 1


@dataclass
class Sabotage(Effect):
    kind: ClassVar[EffectKind] = EffectKind.SABOTAGE
    resource: Resource = Resource.INFLUENCE
    amount: int = 1


@dataclass
class SkipTurn(Effect):
    kind: ClassVar[EffectKind] = EffectKind.SKIP_TURN
    turns: int = 1


@dataclass
class Immunity(Effect):
    kind: ClassVar[EffectKind] = EffectKind.IMMUNITY
    turns: int = 1


@dataclass
class TradeBlocked(Effect):
    kind: ClassVar[EffectKind] = EffectKind.TRADE_BLOCKED
    turns: int = 1


@dataclass
class AllianceProposal(Effect):
    kind: ClassVar[EffectKind] = EffectKind.ALLIANCE_OFFER
    duration: int = 1


@dataclass
class TradeProposal(Effect):
    """The drawing player offers a trade (or a swap) to another player."""
    kind: ClassVar[EffectKind] = EffectKind.TRADE_OFFER
    offer_resource: Resource = Resource.MONEY
    offer_amount: int = 1
    request_resource: Optional[Resource] = None
    request_amount: int = 0
    swap: bool = False


@dataclass
class Card:
    name: str
    deck: DeckType
    description: str = ""
    effects: list[Effect] = field(default_factory=list)
    role_effects: dict[str, list[Effect]] = field(default_factory=dict)

    def effects_for(self, role: Role) -> list[Effect]:
        """Effects that apply to a player of `role`.

        End-of-turn cards key their effects by role with an ALL fallback;
        a card with neither entry has no effect for that role.
        """
        if self.role_effects:
            key = Role(role).value
            if key in self.role_effects:
                return list(self.role_effects[key])
            return list(self.role_effects.get(ALL_ROLES, []))
        return list(self.effects)


class Deck:
    """Draw pile plus discard pile for one deck type."""

    def __init__(self, deck_type: DeckType, cards: list[Card], rng: np.random.Generator):
        self.deck_type = deck_type
        self.size = len(cards)
        self.rng = rng
        self.draw_pile: list[Card] = list(cards)
        self.discard_pile: list[Card] = []
        self.shuffle()

    def shuffle(self) -> None:
        """Fisher-Yates shuffle of the draw pile in place."""
        pile = self.draw_pile
        for i in range(len(pile) - 1, 0, -1):
            j = int(self.rng.integers(0, i + 1))
            pile[i], pile[j] = pile[j], pile[i]

    def draw(self) -> Optional[Card]:
        """Pop the top card, reshuffling the discard pile in when empty.

        Returns None when both piles are empty.
        """
        if not self.draw_pile:
            if not self.discard_pile:
                logger.warning(f"{self.deck_type.value} deck and discard are both empty")
                return None
            logger.info(f"Reshuffling {len(self.discard_pile)} cards into the "
                        f"{self.deck_type.value} deck")
            self.draw_pile = self.discard_pile
            self.discard_pile = []
            self.shuffle()
        return self.draw_pile.pop(0)

    def discard(self, card: Card) -> None:
        self.discard_pile.append(card)

    def __len__(self) -> int:
        return len(self.draw_pile)


class CardSubsystem:
    """The five decks of one game."""

    def __init__(self, card_sets: dict[DeckType, list[Card]], rng: np.random.Generator):
        self.decks = {
            deck_type: Deck(deck_type, card_sets.get(deck_type, []), rng)
            for deck_type in DeckType
        }

    def deck(self, deck_type: Union[DeckType, str]) -> Deck:
        return self.decks[DeckType(deck_type)]

    def draw(self, deck_type: Union[DeckType, str]) -> Optional[Card]:
        return self.deck(deck_type).draw()

    def discard(self, card: Card) -> None:
        self.deck(card.deck).discard(card)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def effect_from_model(model: EffectModel) -> Effect:
    kind = EffectKind(model.type)
    if kind == EffectKind.RESOURCE_CHANGE:
        return ResourceChange(money=model.money, knowledge=model.knowledge,
                              influence=model.influence)
    elif kind == EffectKind.MOVEMENT:
        return Movement(spaces=model.spaces, move_to_age=model.move_to_age,
                        force_path_change=model.force_path_change)
    elif kind == EffectKind.STEAL:
        return Steal(resource=model.resource, amount=model.amount)
    elif kind == EffectKind.SABOTAGE:
        return Sabotage(resource=model.resource, amount=model.amount)
    elif kind == EffectKind.SKIP_TURN:
        return SkipTurn(turns=model.turns)
    elif kind == EffectKind.IMMUNITY:
        return Immunity(turns=model.turns)
    elif kind == EffectKind.TRADE_BLOCKED:
        return TradeBlocked(turns=model.turns)
    elif kind == EffectKind.ALLIANCE_OFFER:
        return AllianceProposal(duration=model.duration)
    elif kind == EffectKind.TRADE_OFFER:
        return TradeProposal(
            offer_resource=model.offer_resource,
            offer_amount=model.offer_amount,
            request_resource=model.request_resource,
            request_amount=model.request_amount,
            swap=model.swap,
        )
    raise CardDataError(f"Unhandled effect type {model.type}")


def cards_from_dict(data: dict) -> dict[DeckType, list[Card]]:
    """Build per-deck card lists from parsed card data.

    Raises:
        CardDataError: if any card fails validation.
    """
    try:
        model = CardFileModel.model_validate(data)
    except ValidationError as e:
        raise CardDataError(f"Invalid card data: {e}") from e

    card_sets: dict[DeckType, list[Card]] = {}
    for deck_name, cards in model.decks.items():
        deck_type = DeckType(deck_name)
        card_sets[deck_type] = [
            Card(
                name=c.name,
                deck=deck_type,
                description=c.description,
                effects=[effect_from_model(e) for e in c.effects],
                role_effects={
                    role: [effect_from_model(e) for e in effects]
                    for role, effects in c.role_effects.items()
                },
            )
            for c in cards
        ]
    return card_sets


def load_cards(path: Union[str, Path, None] = None) -> dict[DeckType, list[Card]]:
    """Load card sets from YAML, defaulting to the bundled cards."""
    path = Path(path) if path else DEFAULT_CARDS_FILE
    with open(path) as f:
        data = yaml.safe_load(f)
    card_sets = cards_from_dict(data)
    logger.info(f"Loaded cards from {path}: " + ", ".join(
        f"{d.value}={len(c)}" for d, c in card_sets.items()))
    return card_sets
