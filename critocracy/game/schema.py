"""Pydantic schemas for the board and card data files."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from critocracy.game.state import Resource, Role

PathColor = Literal["purple", "blue", "cyan", "pink"]
SpaceKind = Literal[
    "regular", "draw", "special_event", "choicepoint", "junction",
]
DeckName = Literal["purple", "blue", "cyan", "pink", "end_of_turn"]
EffectName = Literal[
    "RESOURCE_CHANGE", "MOVEMENT", "STEAL", "SABOTAGE", "SKIP_TURN",
    "IMMUNITY", "TRADE_BLOCKED", "ALLIANCE_OFFER", "TRADE_OFFER",
]

Point = tuple[int, int]


# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------

class SpaceModel(BaseModel):
    coords: Point
    type: SpaceKind = "regular"
    next: list[Point] = Field(default_factory=list)
    polygon: list[Point] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_polygon(self) -> SpaceModel:
        if self.type in ("choicepoint", "junction"):
            if len(self.polygon) < 3:
                raise ValueError(
                    f"{self.type} at {self.coords} needs a polygon of at least 3 vertices"
                )
            if len(self.next) < 2:
                raise ValueError(
                    f"{self.type} at {self.coords} needs at least 2 successors"
                )
        return self


class PathModel(BaseModel):
    color: PathColor
    name: str
    spaces: list[SpaceModel] = Field(..., min_length=1)


class StartModel(BaseModel):
    coords: Point
    first: dict[PathColor, Point]


class FinishModel(BaseModel):
    coords: Point


class BoardModel(BaseModel):
    start: StartModel
    finish: FinishModel
    paths: list[PathModel] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_paths(self) -> BoardModel:
        colors = [p.color for p in self.paths]
        if len(set(colors)) != len(colors):
            raise ValueError("Each path color may appear only once")
        missing = set(colors) - set(self.start.first)
        if missing:
            raise ValueError(f"Start has no first coordinate for {sorted(missing)}")
        return self


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------

class EffectModel(BaseModel):
    type: EffectName
    money: int = 0
    knowledge: int = 0
    influence: int = 0
    spaces: int = 0
    move_to_age: Optional[str] = None
    force_path_change: bool = False
    resource: Optional[Resource] = None
    amount: int = Field(0, ge=0)
    turns: int = Field(1, ge=1)
    duration: int = Field(1, ge=1)
    offer_resource: Optional[Resource] = None
    offer_amount: int = Field(0, ge=0)
    request_resource: Optional[Resource] = None
    request_amount: int = Field(0, ge=0)
    swap: bool = False

    @model_validator(mode="after")
    def _check_payload(self) -> EffectModel:
        if self.type in ("STEAL", "SABOTAGE"):
            if self.resource is None or self.amount <= 0:
                raise ValueError(f"{self.type} needs a resource and a positive amount")
        elif self.type == "MOVEMENT":
            if not self.spaces and not self.move_to_age and not self.force_path_change:
                raise ValueError("MOVEMENT needs spaces, move_to_age or force_path_change")
        elif self.type == "TRADE_OFFER":
            if self.offer_resource is None or self.offer_amount <= 0:
                raise ValueError("TRADE_OFFER needs offer_resource and offer_amount")
            if not self.swap and (self.request_resource is None or self.request_amount <= 0):
                raise ValueError("TRADE_OFFER needs request_resource and request_amount")
        return self


class CardModel(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    effects: list[EffectModel] = Field(default_factory=list)
    role_effects: dict[str, list[EffectModel]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_effects(self) -> CardModel:
        if self.effects and self.role_effects:
            raise ValueError(f"Card '{self.name}' mixes effects and role_effects")
        allowed = {r.value for r in Role} | {"ALL"}
        unknown = set(self.role_effects) - allowed
        if unknown:
            raise ValueError(f"Card '{self.name}' names unknown roles {sorted(unknown)}")
        return self


class CardFileModel(BaseModel):
    decks: dict[DeckName, list[CardModel]]
