"""Exceptions raised by the game core."""

from __future__ import annotations

from typing import Optional


class RuleViolation(Exception):
    """An action broke a game rule. Raised before any state is mutated."""


class GameNotInProgressError(RuleViolation):
    """Raised when an action is attempted outside the PLAYING phase."""


class NotYourTurnError(RuleViolation):
    """Raised when a player acts while another player holds the turn."""

    def __init__(self, player_id: int, current_player_id: Optional[int]):
        self.player_id = player_id
        self.current_player_id = current_player_id
        super().__init__(
            f"Player {player_id} cannot act: it is player "
            f"{current_player_id}'s turn"
        )


class TurnStateError(RuleViolation):
    """Raised when an action is attempted in the wrong turn state."""

    def __init__(self, current_state, allowed: list):
        self.current_state = current_state
        self.allowed = allowed
        names = ", ".join(s.value for s in allowed)
        super().__init__(
            f"Action not allowed in {current_state.value} state. "
            f"Allowed in: {names}"
        )


class PendingDecisionError(RuleViolation):
    """Raised when an action arrives while an offer awaits a response."""

    def __init__(self, pending):
        self.pending = pending
        super().__init__(
            f"Player {pending.target_id} must respond to the pending "
            f"{pending.kind.value} offer first"
        )


class InvalidChoiceError(RuleViolation):
    """Raised when a chosen coordinate or slot is not among the offered ones."""


class AbilityError(RuleViolation):
    """Raised when a role ability cannot be used."""


class TradeError(RuleViolation):
    """Raised when a trade or alliance offer fails validation."""


class BoardDataError(ValueError):
    """Board data violates a structural invariant."""


class CardDataError(ValueError):
    """Card data is malformed."""
