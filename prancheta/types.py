"""Data types for the tactical board.

This module contains the item variants, tools and small value types shared by
every other part of the engine. Items are immutable: every mutation produces a
new value through :func:`dataclasses.replace`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


class ItemType(Enum):
    """Discriminant stored in the ``type`` field of a persisted item."""

    PLAYER_BLUE = "player-blue"
    PLAYER_RED = "player-red"
    BALL = "ball"
    BLOCK = "block"
    TEXT = "text"
    ARROW = "arrow"
    FREE_DRAW = "free-draw"


class Tool(Enum):
    """Tools the toolbar can select."""

    SELECT = "select"
    FREE_DRAW = "free-draw"
    ARROW = "arrow"
    PLAYER_BLUE = "player-blue"
    PLAYER_RED = "player-red"
    BALL = "ball"
    TEXT = "text"
    BLOCK = "block"

    @property
    def places_item(self) -> bool:
        return self in PLACEMENT_TOOLS


PLACEMENT_TOOLS = frozenset(
    {Tool.PLAYER_BLUE, Tool.PLAYER_RED, Tool.BALL, Tool.TEXT, Tool.BLOCK}
)


class Team(Enum):
    BLUE = "blue"
    RED = "red"


class BlockShape(Enum):
    RECTANGLE = "rectangle"
    TRIANGLE = "triangle"
    CIRCLE = "circle"


class TextAlignment(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class ResizeHandle(Enum):
    """Resize handles around a selected item.

    Only the four corners are drawn and hit-tested; the edge handles exist so
    callers can resize a single axis.
    """

    NW = "nw"
    NE = "ne"
    SW = "sw"
    SE = "se"
    N = "n"
    E = "e"
    S = "s"
    W = "w"

    @property
    def affects_width(self) -> bool:
        return "e" in self.value or "w" in self.value

    @property
    def affects_height(self) -> bool:
        return "n" in self.value or "s" in self.value


CORNER_HANDLES = (ResizeHandle.NW, ResizeHandle.NE, ResizeHandle.SW, ResizeHandle.SE)


@dataclass(frozen=True)
class Point:
    """A point in logical court coordinates."""

    x: float
    y: float

    def translated(self, dx: float, dy: float) -> "Point":
        return Point(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class DrawingPath:
    """One freehand stroke captured by the drawing engine."""

    id: str
    points: Tuple[Point, ...]
    color: str = "#000000"
    thickness: float = 3.0
    timestamp: int = 0
    # Per-sample pressure factors; empty when the device reported none
    pressures: Tuple[float, ...] = ()

    def width_at(self, index: int) -> float:
        if index < len(self.pressures):
            return max(0.5, self.thickness * self.pressures[index])
        return self.thickness


@dataclass(frozen=True, kw_only=True)
class PlayerItem:
    """A player disc; ``team`` decides the persisted type."""

    id: str
    position: Point
    color: str = "#3b82f6"
    selected: bool = False
    team: Team = Team.BLUE
    number: Optional[int] = None
    width: float = 36.0
    height: float = 36.0

    @property
    def item_type(self) -> ItemType:
        return ItemType.PLAYER_BLUE if self.team is Team.BLUE else ItemType.PLAYER_RED


@dataclass(frozen=True, kw_only=True)
class BallItem:
    id: str
    position: Point
    color: str = "#ffffff"
    selected: bool = False
    width: float = 20.0
    height: float = 20.0

    item_type = ItemType.BALL


@dataclass(frozen=True, kw_only=True)
class BlockItem:
    """Obstacle or cone marker."""

    id: str
    position: Point
    color: str = "#F59E0B"
    selected: bool = False
    width: float = 30.0
    height: float = 30.0
    shape: BlockShape = BlockShape.TRIANGLE

    item_type = ItemType.BLOCK


@dataclass(frozen=True, kw_only=True)
class TextItem:
    """Annotated text; ``width``/``height`` follow the measured text extent."""

    id: str
    position: Point
    color: str = "#000000"
    selected: bool = False
    text: str = "Novo Texto"
    font_size: float = 16.0
    font_family: str = "Arial"
    bold: bool = False
    italic: bool = False
    alignment: TextAlignment = TextAlignment.CENTER
    background_color: Optional[str] = None
    opacity: float = 1.0
    width: float = 80.0
    height: float = 20.0

    item_type = ItemType.TEXT


@dataclass(frozen=True, kw_only=True)
class ArrowItem:
    """A directed segment from ``position`` to ``end_position``."""

    id: str
    position: Point
    end_position: Point
    color: str = "#ef4444"
    selected: bool = False
    thickness: float = 4.0

    item_type = ItemType.ARROW


@dataclass(frozen=True, kw_only=True)
class FreeDrawItem:
    id: str
    position: Point
    color: str = "#000000"
    selected: bool = False
    paths: Tuple[DrawingPath, ...] = field(default_factory=tuple)
    thickness: float = 3.0

    item_type = ItemType.FREE_DRAW


BoardItem = Union[PlayerItem, BallItem, BlockItem, TextItem, ArrowItem, FreeDrawItem]

SIZED_ITEM_TYPES = (PlayerItem, BallItem, BlockItem, TextItem)


@dataclass(frozen=True)
class DocumentMeta:
    """Document-level fields persisted next to the items."""

    id: str
    field_dimensions: Tuple[float, float] = (500, 700)
    background_color: str = "#E8B563"
    created_at: Optional[str] = None
