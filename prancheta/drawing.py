"""Freehand capture for the tactical board.

This module turns a pointer trail into a smoothed live preview and, when the
gesture ends, a simplified :class:`DrawingPath`.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, List, Optional, Sequence

from PySide6.QtCore import QPointF
from PySide6.QtGui import QPainterPath

from .geometry import midpoint, simplified_indices
from .types import DrawingPath, Point

logger = logging.getLogger(__name__)

MIN_THICKNESS = 1.0
MAX_THICKNESS = 50.0


def _qpoint(point: Point) -> QPointF:
    return QPointF(point.x, point.y)


def smoothed_path(points: Sequence[Point], smoothing: bool = True) -> QPainterPath:
    """Build a painter path through ``points``.

    With smoothing, each interior point becomes the control point of a
    quadratic curve ending halfway to the next point.
    """
    path = QPainterPath()
    if not points:
        return path

    path.moveTo(_qpoint(points[0]))
    if smoothing and len(points) >= 3:
        for current, following in zip(points[1:-1], points[2:]):
            path.quadTo(_qpoint(current), _qpoint(midpoint(current, following)))
        path.lineTo(_qpoint(points[-1]))
    else:
        for point in points[1:]:
            path.lineTo(_qpoint(point))
    return path


class DrawingEngine:
    """Captures one freehand stroke at a time."""

    def __init__(
        self,
        color: str = "#000000",
        thickness: float = 3.0,
        smoothing: bool = True,
        simplify_tolerance: Optional[float] = 2.0,
        clock: Callable[[], float] = time.time,
    ):
        self._color = color
        self._thickness = self._clamp_thickness(thickness)
        self._smoothing = smoothing
        self._simplify_tolerance = simplify_tolerance
        self._clock = clock

        self._is_drawing = False
        self._points: List[Point] = []
        self._pressures: List[float] = []
        self._has_pressure = False
        self._preview = QPainterPath()

    @staticmethod
    def _clamp_thickness(value: float) -> float:
        return max(MIN_THICKNESS, min(MAX_THICKNESS, value))

    # --- Settings -----------------------------------------------------------
    @property
    def color(self) -> str:
        return self._color

    def set_color(self, color: str) -> None:
        self._color = color

    @property
    def thickness(self) -> float:
        return self._thickness

    def set_thickness(self, thickness: float) -> None:
        self._thickness = self._clamp_thickness(thickness)

    @property
    def smoothing(self) -> bool:
        return self._smoothing

    def set_smoothing_enabled(self, enabled: bool) -> None:
        self._smoothing = enabled

    # --- Capture ------------------------------------------------------------
    @property
    def is_drawing(self) -> bool:
        return self._is_drawing

    @property
    def current_points(self) -> List[Point]:
        return list(self._points)

    @property
    def preview_path(self) -> QPainterPath:
        """Live path of the stroke being drawn."""
        return QPainterPath(self._preview)

    def start_drawing(self, point: Point, pressure: Optional[float] = None) -> None:
        """Open a new stroke at ``point``."""
        self._is_drawing = True
        self._points = [point]
        self._pressures = []
        self._has_pressure = False
        self._record_pressure(pressure)
        self._preview = QPainterPath()
        self._preview.moveTo(_qpoint(point))

    def continue_drawing(self, point: Point, pressure: Optional[float] = None) -> None:
        """Append ``point`` to the open stroke."""
        if not self._is_drawing:
            return

        self._points.append(point)
        self._record_pressure(pressure)

        if self._smoothing and len(self._points) >= 3:
            previous = self._points[-2]
            self._preview.quadTo(_qpoint(previous), _qpoint(midpoint(previous, point)))
        else:
            self._preview.lineTo(_qpoint(point))

    def finish_drawing(self) -> Optional[DrawingPath]:
        """Close the stroke and return it, or None when nothing was captured."""
        if not self._is_drawing or not self._points:
            self.cancel()
            return None

        points = self._points
        pressures = self._pressures if self._has_pressure else []
        if self._simplify_tolerance is not None:
            kept = simplified_indices(points, self._simplify_tolerance)
            points = [points[i] for i in kept]
            if pressures:
                pressures = [pressures[i] for i in kept]

        path = DrawingPath(
            id=f"path_{uuid.uuid4().hex[:8]}",
            points=tuple(points),
            color=self._color,
            thickness=self._thickness,
            timestamp=int(self._clock() * 1000),
            pressures=tuple(pressures),
        )
        logger.debug(
            "Stroke finished: %d captured, %d kept", len(self._points), len(points)
        )
        self.cancel()
        return path

    def cancel(self) -> None:
        """Drop the working stroke."""
        self._is_drawing = False
        self._points = []
        self._pressures = []
        self._has_pressure = False
        self._preview = QPainterPath()

    def _record_pressure(self, pressure: Optional[float]) -> None:
        if pressure is None:
            self._pressures.append(1.0)
            return
        self._has_pressure = True
        self._pressures.append(max(0.0, min(1.0, float(pressure))))
