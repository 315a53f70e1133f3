"""Raster renderer for tactical board scenes.

``render`` paints the court, every item in scene order, selection decorations
and any live gesture preview onto a ``QImage``. It never touches the scene, so
calling it twice with the same input yields the same pixels.

A ``QGuiApplication`` must exist before rendering text or measuring fonts.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import (
    QColor,
    QFont,
    QFontMetricsF,
    QImage,
    QPainter,
    QPen,
    QPolygonF,
)

from .constants import CANVAS_HEIGHT, CANVAS_WIDTH, SELECTION_COLOR, court_theme
from .drawing import smoothed_path
from .scene import (
    Scene,
    block_triangle,
    is_resizable,
    item_bounds,
    item_dimensions,
    resize_handles,
)
from .types import (
    ArrowItem,
    BallItem,
    BlockItem,
    BlockShape,
    BoardItem,
    DrawingPath,
    FreeDrawItem,
    PlayerItem,
    Point,
    TextAlignment,
    TextItem,
)

logger = logging.getLogger(__name__)

COURT_MARGIN = 50.0
COURT_LINE_WIDTH = 4.0
NET_POST_SIZE = 10.0
ARROW_HEAD_LENGTH = 15.0
ARROW_HEAD_ANGLE = math.pi / 6
HANDLE_SIZE = 8.0


@dataclass(frozen=True)
class Viewport:
    """Logical drawing area and court styling."""

    width: float = CANVAS_WIDTH
    height: float = CANVAS_HEIGHT
    theme: str = "beach"
    background_color: Optional[str] = None
    smoothing: bool = True

    @property
    def field_color(self) -> str:
        return self.background_color or court_theme(self.theme).field_color


@dataclass(frozen=True)
class GestureOverlay:
    """Uncommitted decorations drawn on top of the scene."""

    arrow_start: Optional[Point] = None
    arrow_end: Optional[Point] = None
    arrow_color: str = "#ef4444"
    arrow_thickness: float = 4.0
    stroke_points: Tuple[Point, ...] = ()
    stroke_color: str = "#000000"
    stroke_thickness: float = 3.0
    smoothing: bool = True

    @property
    def is_empty(self) -> bool:
        return self.arrow_start is None and not self.stroke_points


def _qpoint(point: Point) -> QPointF:
    return QPointF(point.x, point.y)


def _font_for(item: TextItem) -> QFont:
    font = QFont(item.font_family)
    font.setPixelSize(max(1, int(round(item.font_size))))
    font.setBold(item.bold)
    font.setItalic(item.italic)
    return font


def measure_text(item: TextItem) -> Tuple[float, float]:
    """Return the ``(width, height)`` the text occupies with real font metrics."""
    metrics = QFontMetricsF(_font_for(item))
    return (metrics.horizontalAdvance(item.text), float(item.font_size))


def _round_pen(color: str, width: float) -> QPen:
    pen = QPen(QColor(color), width)
    pen.setCapStyle(Qt.PenCapStyle.RoundCap)
    pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
    return pen


def _draw_dot(painter: QPainter, center: Point, color: str, diameter: float) -> None:
    radius = max(diameter, 1.0) / 2
    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QColor(color))
    painter.drawEllipse(_qpoint(center), radius, radius)


# --- Court ------------------------------------------------------------------
def _draw_court(painter: QPainter, viewport: Viewport) -> None:
    theme = court_theme(viewport.theme)
    width, height = viewport.width, viewport.height
    painter.fillRect(QRectF(0, 0, width, height), QColor(viewport.field_color))

    pen = QPen(QColor(theme.court_line_color), COURT_LINE_WIDTH)
    painter.setPen(pen)
    painter.setBrush(Qt.BrushStyle.NoBrush)
    painter.drawRect(
        QRectF(
            COURT_MARGIN,
            COURT_MARGIN,
            max(0.0, width - COURT_MARGIN * 2),
            max(0.0, height - COURT_MARGIN * 2),
        )
    )

    net_y = height / 2
    painter.drawLine(QPointF(COURT_MARGIN, net_y), QPointF(width - COURT_MARGIN, net_y))

    half_post = NET_POST_SIZE / 2
    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QColor(theme.net_color))
    painter.drawRect(
        QRectF(COURT_MARGIN - half_post, net_y - half_post, NET_POST_SIZE, NET_POST_SIZE)
    )
    painter.drawRect(
        QRectF(width - COURT_MARGIN - half_post, net_y - half_post, NET_POST_SIZE, NET_POST_SIZE)
    )


# --- Items ------------------------------------------------------------------
def _draw_player(painter: QPainter, item: PlayerItem) -> None:
    width, height = item_dimensions(item)
    radius = min(width, height) / 2
    center = _qpoint(item.position)
    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QColor(item.color))
    painter.drawEllipse(center, radius, radius)

    if item.number is not None:
        font = QFont("Arial")
        font.setPixelSize(max(1, int(round(radius * 0.8))))
        font.setBold(True)
        painter.setFont(font)
        painter.setPen(QColor("#FFFFFF"))
        box = QRectF(center.x() - radius, center.y() - radius, radius * 2, radius * 2)
        painter.drawText(box, Qt.AlignmentFlag.AlignCenter, str(int(item.number)))


def _draw_ball(painter: QPainter, item: BallItem) -> None:
    width, height = item_dimensions(item)
    radius = min(width, height) / 2
    center = _qpoint(item.position)
    painter.setPen(QPen(QColor("#000000"), 1))
    painter.setBrush(QColor(item.color))
    painter.drawEllipse(center, radius, radius)
    # Seam ring
    painter.setBrush(Qt.BrushStyle.NoBrush)
    painter.drawEllipse(center, radius * 2 / 3, radius * 2 / 3)


def _draw_block(painter: QPainter, item: BlockItem) -> None:
    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QColor(item.color))
    if item.shape is BlockShape.TRIANGLE:
        painter.drawPolygon(QPolygonF([_qpoint(pt) for pt in block_triangle(item)]))
    elif item.shape is BlockShape.CIRCLE:
        width, height = item_dimensions(item)
        radius = min(width, height) / 2
        painter.drawEllipse(_qpoint(item.position), radius, radius)
    else:
        painter.drawRect(QRectF(*item_bounds(item)))


def _draw_text(painter: QPainter, item: TextItem) -> None:
    font = _font_for(item)
    metrics = QFontMetricsF(font)
    advance = metrics.horizontalAdvance(item.text)
    size = float(item.font_size)

    if item.alignment is TextAlignment.LEFT:
        left = item.position.x
    elif item.alignment is TextAlignment.RIGHT:
        left = item.position.x - advance
    else:
        left = item.position.x - advance / 2

    painter.save()
    painter.setOpacity(item.opacity)
    if item.background_color and item.background_color != "transparent":
        painter.fillRect(
            QRectF(left - 4, item.position.y - size / 2 - 4, advance + 8, size + 8),
            QColor(item.background_color),
        )
    painter.setFont(font)
    painter.setPen(QColor(item.color))
    baseline = item.position.y + (metrics.ascent() - metrics.descent()) / 2
    painter.drawText(QPointF(left, baseline), item.text)
    painter.restore()


def _draw_arrow_shape(
    painter: QPainter,
    start: Point,
    end: Point,
    color: str,
    thickness: float,
    head_length: float = ARROW_HEAD_LENGTH,
) -> None:
    if start == end:
        _draw_dot(painter, start, color, thickness)
        return

    painter.setPen(_round_pen(color, thickness))
    painter.setBrush(Qt.BrushStyle.NoBrush)
    tip = _qpoint(end)
    painter.drawLine(_qpoint(start), tip)

    angle = math.atan2(end.y - start.y, end.x - start.x)
    for side in (-ARROW_HEAD_ANGLE, ARROW_HEAD_ANGLE):
        painter.drawLine(
            tip,
            QPointF(
                end.x - head_length * math.cos(angle + side),
                end.y - head_length * math.sin(angle + side),
            ),
        )


def _draw_path(painter: QPainter, path: DrawingPath, smoothing: bool) -> None:
    points = path.points
    if not points:
        return
    if len(points) == 1 or all(pt == points[0] for pt in points):
        _draw_dot(painter, points[0], path.color, path.width_at(0))
        return

    painter.setBrush(Qt.BrushStyle.NoBrush)
    if path.pressures:
        # Pressure varies the width, so each segment gets its own pen
        for index in range(1, len(points)):
            painter.setPen(_round_pen(path.color, path.width_at(index)))
            painter.drawLine(_qpoint(points[index - 1]), _qpoint(points[index]))
        return

    painter.setPen(_round_pen(path.color, path.thickness))
    painter.drawPath(smoothed_path(points, smoothing))


def _draw_item(painter: QPainter, item: BoardItem, smoothing: bool) -> None:
    if isinstance(item, PlayerItem):
        _draw_player(painter, item)
    elif isinstance(item, BallItem):
        _draw_ball(painter, item)
    elif isinstance(item, BlockItem):
        _draw_block(painter, item)
    elif isinstance(item, TextItem):
        _draw_text(painter, item)
    elif isinstance(item, ArrowItem):
        _draw_arrow_shape(painter, item.position, item.end_position, item.color, item.thickness)
    elif isinstance(item, FreeDrawItem):
        for path in item.paths:
            _draw_path(painter, path, smoothing)
    else:
        raise TypeError(f"Unsupported board item: {item!r}")


def _draw_selection(painter: QPainter, item: BoardItem) -> None:
    pen = QPen(QColor(SELECTION_COLOR), 1)
    pen.setDashPattern([4, 4])
    painter.setPen(pen)
    painter.setBrush(Qt.BrushStyle.NoBrush)
    painter.drawRect(QRectF(*item_bounds(item)))

    if is_resizable(item):
        painter.setPen(Qt.PenStyle.NoPen)
        for handle in resize_handles(item, HANDLE_SIZE).values():
            painter.fillRect(QRectF(*handle), QColor(SELECTION_COLOR))


def _draw_overlay(painter: QPainter, overlay: GestureOverlay) -> None:
    if overlay.arrow_start is not None and overlay.arrow_end is not None:
        _draw_arrow_shape(
            painter,
            overlay.arrow_start,
            overlay.arrow_end,
            overlay.arrow_color,
            overlay.arrow_thickness,
        )

    if overlay.stroke_points:
        preview = DrawingPath(
            id="preview",
            points=tuple(overlay.stroke_points),
            color=overlay.stroke_color,
            thickness=overlay.stroke_thickness,
        )
        _draw_path(painter, preview, overlay.smoothing)


def render(
    scene: Scene,
    viewport: Viewport = Viewport(),
    surface: Optional[QImage] = None,
    overlay: Optional[GestureOverlay] = None,
) -> QImage:
    """Paint ``scene`` and return the surface.

    Args:
        scene: Items to draw, bottom to top.
        viewport: Logical size and court theme.
        surface: Image to paint on. A new image the size of the viewport is
            created when omitted; a surface of another size is scaled to fit.
        overlay: Live gesture decorations drawn last.
    """
    if surface is None:
        surface = QImage(
            max(1, int(math.ceil(viewport.width))),
            max(1, int(math.ceil(viewport.height))),
            QImage.Format.Format_ARGB32_Premultiplied,
        )
    surface.fill(QColor(viewport.field_color))

    painter = QPainter(surface)
    try:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
        if viewport.width > 0 and viewport.height > 0:
            painter.scale(surface.width() / viewport.width, surface.height() / viewport.height)

        _draw_court(painter, viewport)
        for item in scene:
            _draw_item(painter, item, viewport.smoothing)
        for item in scene.selected_items:
            _draw_selection(painter, item)
        if overlay is not None and not overlay.is_empty:
            _draw_overlay(painter, overlay)
    finally:
        painter.end()

    logger.debug("Rendered %d items onto %dx%d surface", len(scene), surface.width(), surface.height())
    return surface
