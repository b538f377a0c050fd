"""Board graph: spaces on four coloured paths between a shared start and finish."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional, Union

import yaml
from pydantic import ValidationError

from critocracy.game.errors import BoardDataError
from critocracy.game.schema import BoardModel

logger = logging.getLogger("critocracy.board")

Coord = tuple[int, int]

DEFAULT_TOLERANCE = 5.0
DEFAULT_BOARD_FILE = Path(__file__).resolve().parent.parent / "data" / "board.yaml"

# Lookup order for find_space after START and FINISH
PATH_ORDER = ("purple", "blue", "cyan", "pink")

AGE_NAMES = {
    "purple": "Age of Expansion",
    "blue": "Age of Resistance",
    "cyan": "Age of Reckoning",
    "pink": "Age of Legacy",
}


class SpaceType(str, Enum):
    REGULAR = "regular"
    DRAW = "draw"
    SPECIAL_EVENT = "special_event"
    CHOICEPOINT = "choicepoint"
    JUNCTION = "junction"
    START = "start"
    FINISH = "finish"


class OptionKind(str, Enum):
    START = "start"
    FINISH = "finish"
    REGULAR = "regular"
    CHOICEPOINT = "choicepoint"
    JUNCTION = "junction"
    UNKNOWN = "unknown"


@dataclass
class Space:
    coords: Coord
    space_type: SpaceType
    path: Optional[str] = None  # None for START and FINISH
    next: list[Coord] = field(default_factory=list)
    polygon: list[Coord] = field(default_factory=list)

    @property
    def is_decision(self) -> bool:
        return self.space_type in (SpaceType.CHOICEPOINT, SpaceType.JUNCTION)

    @property
    def is_draw(self) -> bool:
        return self.space_type in (SpaceType.DRAW, SpaceType.SPECIAL_EVENT)


@dataclass(frozen=True)
class PathOption:
    """A coordinate the player may move to, tagged with the path it belongs to."""
    coords: Coord
    path: Optional[str]


@dataclass
class NextOptions:
    kind: OptionKind
    options: list[PathOption] = field(default_factory=list)
    space: Optional[Space] = None


def distance(a: Coord, b: Coord) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def as_coord(value) -> Coord:
    x, y = value
    return (int(x), int(y))


class BoardGraph:
    """Coordinate-addressed graph of spaces.

    START fans out to the first space of each path; every path eventually
    converges on FINISH. Spaces are looked up by coordinate with a small
    tolerance, checking START, FINISH, then the paths in PATH_ORDER.
    """

    def __init__(self, start: Space, finish: Space, paths: dict[str, list[Space]],
                 names: Optional[dict[str, str]] = None):
        self.start = start
        self.finish = finish
        self.paths = {c: paths[c] for c in PATH_ORDER if c in paths}
        self.names = dict(AGE_NAMES)
        if names:
            self.names.update(names)
        self._predecessors: dict[Coord, list[Coord]] = {}
        self.validate()
        self._index_predecessors()

    # -- lookup --------------------------------------------------------------

    def spaces(self) -> Iterator[Space]:
        yield self.start
        yield self.finish
        for color in self.paths:
            yield from self.paths[color]

    def path_spaces(self, color: str) -> list[Space]:
        return self.paths.get(self.path_color_for(color), [])

    @property
    def polygon_spaces(self) -> list[Space]:
        return [s for s in self.spaces() if s.is_decision and s.polygon]

    def find_space(self, coords, tolerance: float = DEFAULT_TOLERANCE) -> Optional[Space]:
        """Return the first space within `tolerance` of `coords`, or None."""
        if coords is None:
            return None
        for space in self.spaces():
            if distance(space.coords, coords) <= tolerance:
                return space
        return None

    def is_start(self, coords) -> bool:
        return coords is not None and self.find_space(coords) is self.start

    def path_color_for(self, value: str) -> Optional[str]:
        """Accept a path colour or its age name and return the colour."""
        if value in self.paths:
            return value
        lowered = value.lower()
        for color, name in self.names.items():
            if lowered in (name.lower(), name.lower().replace("age of ", "")):
                return color
        return None

    # -- navigation ----------------------------------------------------------

    def start_options(self) -> list[PathOption]:
        return self._tag(self.start.next)

    def next_options(self, coords) -> NextOptions:
        space = self.find_space(coords)
        if space is None:
            logger.warning(f"No space at {coords}")
            return NextOptions(OptionKind.UNKNOWN)
        if space is self.start:
            return NextOptions(OptionKind.START, self.start_options(), space)
        if space is self.finish:
            return NextOptions(OptionKind.FINISH, [], space)
        if not space.next:
            logger.warning(f"Space {space.coords} has no successors")
            return NextOptions(OptionKind.UNKNOWN, [], space)
        options = self._tag(space.next)
        if space.space_type == SpaceType.CHOICEPOINT:
            return NextOptions(OptionKind.CHOICEPOINT, options, space)
        if space.space_type == SpaceType.JUNCTION:
            return NextOptions(OptionKind.JUNCTION, options, space)
        return NextOptions(OptionKind.REGULAR, options[:1], space)

    def previous_options(self, coords) -> list[PathOption]:
        """Predecessors of a space, those on the same path first."""
        space = self.find_space(coords)
        if space is None or space is self.start:
            return []
        options = self._tag(self._predecessors.get(space.coords, []))
        return sorted(options, key=lambda o: o.path != space.path)

    def nearest_space(self, coords, color: str) -> Optional[Space]:
        """Closest space on another path, used when a card relocates a token."""
        candidates = self.path_spaces(color)
        if not candidates:
            return None
        if coords is None:
            return candidates[0]
        return min(candidates, key=lambda s: distance(s.coords, coords))

    def _tag(self, coords_list: list[Coord]) -> list[PathOption]:
        options = []
        for c in coords_list:
            target = self.find_space(c)
            options.append(PathOption(coords=c, path=target.path if target else None))
        return options

    # -- integrity -----------------------------------------------------------

    def validate(self) -> None:
        """Check the structural invariants of the graph.

        Raises:
            BoardDataError: if a non-finish space has no successor, a decision
                space has fewer than two, or a successor does not resolve.
        """
        if len(self.start.next) != len(self.paths):
            raise BoardDataError(
                f"Start offers {len(self.start.next)} paths, board has {len(self.paths)}"
            )
        for space in self.spaces():
            if space is self.finish:
                continue
            if not space.next:
                raise BoardDataError(f"Space {space.coords} has no successor")
            if space.is_decision:
                if len(space.next) < 2:
                    raise BoardDataError(
                        f"{space.space_type.value} at {space.coords} has fewer than 2 successors"
                    )
                if len(space.polygon) < 3:
                    raise BoardDataError(
                        f"{space.space_type.value} at {space.coords} has no polygon"
                    )
            for succ in space.next:
                if self.find_space(succ) is None:
                    raise BoardDataError(
                        f"Successor {succ} of {space.coords} is not on the board"
                    )

    def hops_to_finish(self, coords, limit: int = 500) -> Optional[int]:
        """Fewest hops from `coords` to FINISH, or None if unreachable within `limit`."""
        origin = self.find_space(coords)
        if origin is None:
            return None
        frontier = [origin]
        seen = {origin.coords}
        for hops in range(limit + 1):
            if any(s is self.finish for s in frontier):
                return hops
            nxt = []
            for space in frontier:
                for c in space.next:
                    target = self.find_space(c)
                    if target is not None and target.coords not in seen:
                        seen.add(target.coords)
                        nxt.append(target)
            if not nxt:
                return None
            frontier = nxt
        return None

    def _index_predecessors(self) -> None:
        for space in self.spaces():
            for succ in space.next:
                target = self.find_space(succ)
                self._predecessors.setdefault(target.coords, []).append(space.coords)


def board_from_dict(data: dict) -> BoardGraph:
    """Build a BoardGraph from parsed board data.

    Raises:
        BoardDataError: if the data fails schema or graph validation.
    """
    try:
        model = BoardModel.model_validate(data)
    except ValidationError as e:
        raise BoardDataError(f"Invalid board data: {e}") from e

    finish = Space(as_coord(model.finish.coords), SpaceType.FINISH)
    paths: dict[str, list[Space]] = {}
    names: dict[str, str] = {}
    for path in model.paths:
        names[path.color] = path.name
        paths[path.color] = [
            Space(
                coords=as_coord(s.coords),
                space_type=SpaceType(s.type),
                path=path.color,
                next=[as_coord(c) for c in s.next],
                polygon=[as_coord(c) for c in s.polygon],
            )
            for s in path.spaces
        ]
        # Without explicit successors a space leads to the next one listed,
        # and the last space of a path leads to FINISH
        spaces = paths[path.color]
        for i, space in enumerate(spaces):
            if not space.next:
                space.next = [spaces[i + 1].coords if i + 1 < len(spaces) else finish.coords]
    first = [as_coord(model.start.first[c]) for c in PATH_ORDER if c in paths]
    start = Space(as_coord(model.start.coords), SpaceType.START, next=first)
    return BoardGraph(start, finish, paths, names)


def load_board(path: Union[str, Path, None] = None) -> BoardGraph:
    """Load a board from YAML, defaulting to the bundled board."""
    path = Path(path) if path else DEFAULT_BOARD_FILE
    with open(path) as f:
        data = yaml.safe_load(f)
    board = board_from_dict(data)
    logger.info(f"Loaded board from {path}: "
                f"{sum(len(s) for s in board.paths.values())} path spaces")
    return board
