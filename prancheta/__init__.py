"""Prancheta tactical drawing board built with PySide6.

The engine keeps one immutable scene per editor, drives it through a pointer
state machine, and renders it onto a fixed 500x700 logical court.
"""

from .codec import MalformedDocument, deserialize, serialize
from .constants import COURT_THEMES, ITEM_PRESETS, BoardConfig
from .controller import EditorState, InteractionController
from .drawing import DrawingEngine
from .history import History
from .model import BoardModel
from .renderer import GestureOverlay, Viewport, render
from .scene import Scene
from .types import (
    ArrowItem,
    BallItem,
    BlockItem,
    BlockShape,
    DocumentMeta,
    DrawingPath,
    FreeDrawItem,
    ItemType,
    PlayerItem,
    Point,
    Team,
    TextAlignment,
    TextItem,
    Tool,
)

__all__ = [
    "ArrowItem",
    "BallItem",
    "BlockItem",
    "BlockShape",
    "BoardConfig",
    "BoardModel",
    "COURT_THEMES",
    "DocumentMeta",
    "DrawingEngine",
    "DrawingPath",
    "EditorState",
    "FreeDrawItem",
    "GestureOverlay",
    "History",
    "ITEM_PRESETS",
    "InteractionController",
    "ItemType",
    "MalformedDocument",
    "PlayerItem",
    "Point",
    "Scene",
    "Team",
    "TextAlignment",
    "TextItem",
    "Tool",
    "Viewport",
    "deserialize",
    "render",
    "serialize",
]
