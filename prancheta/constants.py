"""Constants, presets and configuration for the tactical board."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from .types import BlockShape, ItemType, Team, Tool


CANVAS_WIDTH = 500
CANVAS_HEIGHT = 700

DEFAULT_SIZE = 40.0

SELECTION_COLOR = "#10b981"


ITEM_PRESETS: Dict[Tool, Dict[str, Any]] = {
    Tool.PLAYER_BLUE: {
        "type": ItemType.PLAYER_BLUE,
        "team": Team.BLUE,
        "width": 36.0,
        "height": 36.0,
        "color": "#3b82f6",
    },
    Tool.PLAYER_RED: {
        "type": ItemType.PLAYER_RED,
        "team": Team.RED,
        "width": 36.0,
        "height": 36.0,
        "color": "#ef4444",
    },
    Tool.BALL: {
        "type": ItemType.BALL,
        "width": 20.0,
        "height": 20.0,
        "color": "#ffffff",
    },
    Tool.BLOCK: {
        "type": ItemType.BLOCK,
        "width": 30.0,
        "height": 30.0,
        "color": "#F59E0B",
        "shape": BlockShape.TRIANGLE,
    },
    Tool.TEXT: {
        "type": ItemType.TEXT,
        "width": 80.0,
        "height": 20.0,
        "text": "Novo Texto",
        "font_size": 16.0,
        "font_family": "Arial",
    },
}

# Fallback dimensions for items persisted without a usable width/height
FALLBACK_DIMENSIONS: Dict[ItemType, tuple] = {
    ItemType.PLAYER_BLUE: (36.0, 36.0),
    ItemType.PLAYER_RED: (36.0, 36.0),
    ItemType.BALL: (20.0, 20.0),
    ItemType.BLOCK: (30.0, 30.0),
    ItemType.TEXT: (80.0, 20.0),
}


DEFAULT_COLORS = [
    "#EF4444",  # Red
    "#3B82F6",  # Blue
    "#10B981",  # Green
    "#F59E0B",  # Yellow
    "#8B5CF6",  # Purple
    "#F97316",  # Orange
    "#06B6D4",  # Cyan
    "#84CC16",  # Lime
    "#EC4899",  # Pink
    "#6B7280",  # Gray
    "#000000",  # Black
    "#FFFFFF",  # White
]

FONT_FAMILIES = ["Arial", "Verdana", "Impact", "Georgia", "Courier New"]


@dataclass(frozen=True)
class CourtTheme:
    """Colors used to paint the court."""

    name: str
    field_color: str
    line_color: str
    court_line_color: str
    net_color: str


COURT_THEMES: Dict[str, CourtTheme] = {
    "beach": CourtTheme("beach", "#E8B563", "#FFFFFF", "#1E40AF", "#374151"),
    "professional": CourtTheme("professional", "#10B981", "#FFFFFF", "#FFFFFF", "#1F2937"),
    "night": CourtTheme("night", "#1F2937", "#F59E0B", "#F59E0B", "#6B7280"),
    "sunset": CourtTheme("sunset", "#F97316", "#FEF3C7", "#FEF3C7", "#92400E"),
}


def court_theme(name: str) -> CourtTheme:
    """Return the court theme called ``name``."""
    try:
        return COURT_THEMES[name]
    except KeyError:
        known = ", ".join(sorted(COURT_THEMES))
        raise ValueError(f"Unknown court theme: {name!r} (expected one of {known})") from None


@dataclass(frozen=True)
class BoardConfig:
    """Tunable settings for one editor instance."""

    width: int = CANVAS_WIDTH
    height: int = CANVAS_HEIGHT
    theme: str = "beach"
    history_limit: int = 50
    hit_tolerance: float = 5.0
    min_item_size: float = 10.0
    handle_size: float = 8.0
    arrow_thickness: float = 4.0
    arrow_head_length: float = 15.0
    free_draw_thickness: float = 3.0
    simplify_tolerance: float = 2.0
    smoothing: bool = True

    @property
    def court(self) -> CourtTheme:
        return court_theme(self.theme)

    @property
    def background_color(self) -> str:
        return self.court.field_color
