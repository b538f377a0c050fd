"""Step-by-step token movement over the board graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from critocracy.game.board import BoardGraph, Coord, OptionKind, Space, SpaceType
from critocracy.game.presenter import Presenter
from critocracy.game.state import Player

logger = logging.getLogger("critocracy.movement")


class StopReason(str, Enum):
    STEPS_COMPLETE = "steps_complete"
    INTERRUPT_CHOICEPOINT = "interrupt_choicepoint"
    INTERRUPT_JUNCTION = "interrupt_junction"
    INTERRUPT_FINISH = "interrupt_finish"
    INTERRUPT_DRAW = "interrupt_draw"
    INTERRUPT_SPECIAL_EVENT = "interrupt_special_event"
    END_OF_PATH = "end_of_path"
    ERROR_BLOCKED = "error_blocked"
    ERROR_INVALID_PLAYER = "error_invalid_player"
    ERROR_INVALID_COORDS = "error_invalid_coords"
    ERROR_UNEXPECTED_OPTION = "error_unexpected_option"


ERROR_REASONS = frozenset({
    StopReason.ERROR_BLOCKED,
    StopReason.ERROR_INVALID_PLAYER,
    StopReason.ERROR_INVALID_COORDS,
    StopReason.ERROR_UNEXPECTED_OPTION,
})

DECISION_REASONS = frozenset({
    StopReason.INTERRUPT_CHOICEPOINT,
    StopReason.INTERRUPT_JUNCTION,
})

DRAW_REASONS = frozenset({
    StopReason.INTERRUPT_DRAW,
    StopReason.INTERRUPT_SPECIAL_EVENT,
})


@dataclass
class MoveResult:
    reason: StopReason
    steps_taken: int
    final_coords: Optional[Coord]
    visited: list[Coord] = field(default_factory=list)
    junction: Optional[Space] = None  # decision space whose options must be offered

    @property
    def is_error(self) -> bool:
        return self.reason in ERROR_REASONS

    def to_dict(self) -> dict:
        return {
            "reason": self.reason.value,
            "steps_taken": self.steps_taken,
            "final_coords": list(self.final_coords) if self.final_coords else None,
            "visited": [list(c) for c in self.visited],
        }


def point_in_polygon(point: Coord, polygon: list[Coord]) -> bool:
    """Ray-casting test: count edge crossings of a ray cast to the right."""
    x, y = point
    inside = False
    n = len(polygon)
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > y) != (yj > y):
            cross_x = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < cross_x:
                inside = not inside
        j = i
    return inside


class MovementResolver:
    """Advances a token one space at a time until the roll is spent or an interrupt fires.

    Landing checks run in a fixed order on every committed step:
      1. destination is FINISH, a choicepoint or a junction
      2. destination is a draw or special-event space
      3. either end of the step lies inside a decision-space polygon
    The first that applies decides the stop reason.
    """

    def __init__(self, board: BoardGraph, presenter: Optional[Presenter] = None):
        self.board = board
        self.presenter = presenter or Presenter()

    def resolve(self, player: Optional[Player], requested_steps: int) -> MoveResult:
        if player is None or player.position is None:
            return MoveResult(StopReason.ERROR_INVALID_PLAYER, 0, None)
        if requested_steps < 0:
            return self._resolve_backward(player, -requested_steps)

        steps_taken = 0
        visited: list[Coord] = []
        while steps_taken < requested_steps:
            position = player.position
            options = self.board.next_options(position)

            if options.kind == OptionKind.UNKNOWN:
                logger.error(f"{player.name}: no board space at {position}")
                return MoveResult(StopReason.ERROR_BLOCKED, steps_taken, position, visited)
            if options.kind == OptionKind.START:
                return MoveResult(StopReason.ERROR_UNEXPECTED_OPTION, steps_taken,
                                  position, visited)
            if options.kind == OptionKind.FINISH:
                return MoveResult(StopReason.INTERRUPT_FINISH, steps_taken, position, visited)
            if options.kind == OptionKind.CHOICEPOINT:
                return MoveResult(StopReason.INTERRUPT_CHOICEPOINT, steps_taken, position,
                                  visited, junction=options.space)
            if options.kind == OptionKind.JUNCTION:
                return MoveResult(StopReason.INTERRUPT_JUNCTION, steps_taken, position,
                                  visited, junction=options.space)

            destination = self.board.find_space(options.options[0].coords)
            if destination is None:
                logger.error(f"{player.name}: successor {options.options[0].coords} "
                             f"of {position} is not on the board")
                return MoveResult(StopReason.ERROR_INVALID_COORDS, steps_taken,
                                  position, visited)

            self._step(player, position, destination)
            steps_taken += 1
            visited.append(destination.coords)

            landing = self.evaluate_landing(position, destination)
            if landing is not None:
                reason, junction = landing
                return MoveResult(reason, steps_taken, destination.coords, visited, junction)

        return MoveResult(StopReason.STEPS_COMPLETE, steps_taken, player.position, visited)

    def evaluate_landing(self, origin: Optional[Coord],
                         destination: Space) -> Optional[tuple[StopReason, Optional[Space]]]:
        """Return the interrupt a landing on `destination` raises, if any."""
        if destination.space_type == SpaceType.FINISH:
            return StopReason.INTERRUPT_FINISH, None
        if destination.space_type == SpaceType.CHOICEPOINT:
            return StopReason.INTERRUPT_CHOICEPOINT, destination
        if destination.space_type == SpaceType.JUNCTION:
            return StopReason.INTERRUPT_JUNCTION, destination
        if destination.space_type == SpaceType.DRAW:
            return StopReason.INTERRUPT_DRAW, None
        if destination.space_type == SpaceType.SPECIAL_EVENT:
            return StopReason.INTERRUPT_SPECIAL_EVENT, None

        for region in self.board.polygon_spaces:
            # A token leaving a decision space must not be caught by its own polygon
            if origin is not None and region.coords == tuple(origin):
                continue
            if ((origin is not None and point_in_polygon(origin, region.polygon))
                    or point_in_polygon(destination.coords, region.polygon)):
                logger.debug(f"Step {origin} -> {destination.coords} crosses "
                             f"{region.space_type.value} at {region.coords}")
                return StopReason.INTERRUPT_JUNCTION, region
        return None

    def relocate(self, player: Player, destination: Space) -> None:
        """Move a token directly onto `destination` (choices and card effects)."""
        self._step(player, player.position, destination)

    def _resolve_backward(self, player: Player, requested_steps: int) -> MoveResult:
        # Backward moves follow predecessors and never raise interrupts
        steps_taken = 0
        visited: list[Coord] = []
        while steps_taken < requested_steps:
            position = player.position
            if self.board.find_space(position) is None:
                return MoveResult(StopReason.ERROR_BLOCKED, steps_taken, position, visited)
            previous = self.board.previous_options(position)
            if not previous or self.board.is_start(previous[0].coords):
                return MoveResult(StopReason.END_OF_PATH, steps_taken, position, visited)
            destination = self.board.find_space(previous[0].coords)
            if destination is None:
                return MoveResult(StopReason.ERROR_INVALID_COORDS, steps_taken,
                                  position, visited)
            self._step(player, position, destination)
            steps_taken += 1
            visited.append(destination.coords)
        return MoveResult(StopReason.STEPS_COMPLETE, steps_taken, player.position, visited)

    def _step(self, player: Player, origin: Optional[Coord], destination: Space) -> None:
        player.position = destination.coords
        if destination.path is not None:
            player.current_path = destination.path
        self.presenter.animate_move(player, origin, destination.coords)
