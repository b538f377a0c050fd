"""Presentation hooks the game core calls out to.

The core never renders anything. It asks a presenter to animate a token,
show a card, highlight choices, and so on, then carries on once the call
returns. The base class does nothing, which is what tests and headless
simulations want.
"""

from __future__ import annotations

import logging
from typing import Optional

logger = logging.getLogger("critocracy.presenter")


class Presenter:
    """No-op presenter."""

    def animate_move(self, player, origin, destination) -> None:
        pass

    def show_card(self, player, card) -> None:
        pass

    def highlight(self, coords: list) -> None:
        pass

    def prompt_trade(self, offer) -> None:
        """Tell the target of `offer` that a decision is waiting for them."""

    def choose_target(self, player, candidates: list) -> Optional[int]:
        """Ask a human which player an effect should target. None means no preference."""
        return None

    def refresh(self, players) -> None:
        pass

    def log(self, message: str) -> None:
        pass


class LogPresenter(Presenter):
    """Writes every presentation request to the `critocracy.presenter` logger."""

    def animate_move(self, player, origin, destination) -> None:
        logger.debug(f"{player.name}: {origin} -> {destination}")

    def show_card(self, player, card) -> None:
        logger.info(f"{player.name} draws '{card.name}': {card.description}")

    def highlight(self, coords: list) -> None:
        if coords:
            logger.debug(f"Highlight {coords}")

    def prompt_trade(self, offer) -> None:
        logger.info(f"Awaiting player {offer.target_id}: {offer.describe()}")

    def log(self, message: str) -> None:
        logger.info(message)
