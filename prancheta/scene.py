"""Scene model: the ordered collection of board items plus selection.

Scenes are immutable values. Every operation returns a new :class:`Scene` (or
the same instance when nothing changed), which lets the history keep
snapshots by reference.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .constants import DEFAULT_SIZE, FALLBACK_DIMENSIONS
from .geometry import (
    distance_to_polyline,
    distance_to_segment,
    hit_axis_aligned_box,
    hit_circle,
    hit_triangle,
    path_bounds,
)
from .types import (
    CORNER_HANDLES,
    SIZED_ITEM_TYPES,
    ArrowItem,
    BallItem,
    BlockItem,
    BlockShape,
    BoardItem,
    FreeDrawItem,
    PlayerItem,
    Point,
    ResizeHandle,
    TextAlignment,
    TextItem,
)

Bounds = Tuple[float, float, float, float]


# --- Per-item geometry ------------------------------------------------------
def is_resizable(item: BoardItem) -> bool:
    return isinstance(item, SIZED_ITEM_TYPES)


def item_dimensions(item: BoardItem) -> Tuple[float, float]:
    """Return ``(width, height)`` of a sized item.

    Items carrying a non-positive width or height fall back to the preset
    dimensions of their type.
    """
    fallback = FALLBACK_DIMENSIONS.get(item.item_type, (DEFAULT_SIZE, DEFAULT_SIZE))
    width = getattr(item, "width", None)
    height = getattr(item, "height", None)
    if not width or width <= 0:
        width = fallback[0]
    if not height or height <= 0:
        height = fallback[1]
    return float(width), float(height)


def approximate_text_size(item: TextItem) -> Tuple[float, float]:
    """Estimate the text extent without font metrics.

    Each glyph is taken as 0.6 em wide; the height is the font size.
    """
    return (len(item.text) * item.font_size * 0.6, float(item.font_size))


def item_bounds(item: BoardItem) -> Bounds:
    """Return ``(left, top, width, height)`` of the item's bounding box."""
    if isinstance(item, ArrowItem):
        return path_bounds([item.position, item.end_position])
    if isinstance(item, FreeDrawItem):
        points = [pt for path in item.paths for pt in path.points]
        return path_bounds(points or [item.position])

    width, height = item_dimensions(item)
    top = item.position.y - height / 2
    if isinstance(item, TextItem):
        if item.alignment is TextAlignment.LEFT:
            return (item.position.x, top, width, height)
        if item.alignment is TextAlignment.RIGHT:
            return (item.position.x - width, top, width, height)
    return (item.position.x - width / 2, top, width, height)


def block_triangle(item: BlockItem) -> Tuple[Point, Point, Point]:
    """Vertices of an apex-up triangle filling the block's box."""
    width, height = item_dimensions(item)
    x, y = item.position.x, item.position.y
    return (
        Point(x - width / 2, y + height / 2),
        Point(x + width / 2, y + height / 2),
        Point(x, y - height / 2),
    )


def hit_item(item: BoardItem, point: Point, tolerance: float = 5.0) -> bool:
    """Return True if ``point`` touches ``item``."""
    if isinstance(item, (PlayerItem, BallItem)):
        width, height = item_dimensions(item)
        return hit_circle(point, item.position, min(width, height) / 2)

    if isinstance(item, BlockItem):
        width, height = item_dimensions(item)
        if item.shape is BlockShape.CIRCLE:
            return hit_circle(point, item.position, min(width, height) / 2)
        if item.shape is BlockShape.TRIANGLE:
            return hit_triangle(point, *block_triangle(item))
        left, top, _, _ = item_bounds(item)
        return hit_axis_aligned_box(point, Point(left, top), width, height)

    if isinstance(item, TextItem):
        left, top, width, height = item_bounds(item)
        return hit_axis_aligned_box(point, Point(left, top), width, height)

    if isinstance(item, ArrowItem):
        return distance_to_segment(point, item.position, item.end_position) <= tolerance

    if isinstance(item, FreeDrawItem):
        return any(
            distance_to_polyline(point, path.points) <= tolerance
            for path in item.paths
        )

    raise TypeError(f"Unsupported board item: {item!r}")


def translate_item(item: BoardItem, dx: float, dy: float) -> BoardItem:
    """Return ``item`` moved by ``(dx, dy)``."""
    if dx == 0 and dy == 0:
        return item
    if isinstance(item, ArrowItem):
        return dataclasses.replace(
            item,
            position=item.position.translated(dx, dy),
            end_position=item.end_position.translated(dx, dy),
        )
    if isinstance(item, FreeDrawItem):
        paths = tuple(
            dataclasses.replace(
                path, points=tuple(pt.translated(dx, dy) for pt in path.points)
            )
            for path in item.paths
        )
        return dataclasses.replace(
            item, position=item.position.translated(dx, dy), paths=paths
        )
    return dataclasses.replace(item, position=item.position.translated(dx, dy))


def resize_handles(item: BoardItem, handle_size: float = 8.0) -> Dict[ResizeHandle, Bounds]:
    """Square handles centered on the four corners of the item's box."""
    left, top, width, height = item_bounds(item)
    half = handle_size / 2
    corners = {
        ResizeHandle.NW: (left, top),
        ResizeHandle.NE: (left + width, top),
        ResizeHandle.SW: (left, top + height),
        ResizeHandle.SE: (left + width, top + height),
    }
    return {
        handle: (corners[handle][0] - half, corners[handle][1] - half, handle_size, handle_size)
        for handle in CORNER_HANDLES
    }


def handle_at(item: BoardItem, point: Point, handle_size: float = 8.0) -> Optional[ResizeHandle]:
    """Return the resize handle of ``item`` under ``point``, if any."""
    if not is_resizable(item):
        return None
    for handle, (left, top, width, height) in resize_handles(item, handle_size).items():
        if hit_axis_aligned_box(point, Point(left, top), width, height):
            return handle
    return None


def resize_item(
    item: BoardItem,
    handle: ResizeHandle,
    pointer: Point,
    min_size: float = 10.0,
) -> BoardItem:
    """Resize ``item`` symmetrically around its box center.

    The new extent along each axis touched by ``handle`` is twice the distance
    from the center to the pointer, clamped to ``min_size``. Text items also
    take the new height as their font size; left and right aligned text moves
    its anchor so the box center stays put.
    """
    if not is_resizable(item):
        return item

    left, top, width, height = item_bounds(item)
    center_x = left + width / 2
    center_y = top + height / 2
    new_width, new_height = width, height
    if handle.affects_width:
        new_width = max(min_size, abs(pointer.x - center_x) * 2)
    if handle.affects_height:
        new_height = max(min_size, abs(pointer.y - center_y) * 2)

    if isinstance(item, TextItem):
        position = item.position
        if item.alignment is TextAlignment.LEFT:
            position = Point(center_x - new_width / 2, position.y)
        elif item.alignment is TextAlignment.RIGHT:
            position = Point(center_x + new_width / 2, position.y)
        return dataclasses.replace(
            item,
            position=position,
            width=new_width,
            height=new_height,
            font_size=new_height,
        )
    return dataclasses.replace(item, width=new_width, height=new_height)


# --- Scene ------------------------------------------------------------------
@dataclass(frozen=True)
class Scene:
    """Ordered board items; later items paint on top and win hit-tests."""

    items: Tuple[BoardItem, ...] = ()

    def __post_init__(self) -> None:
        items = tuple(self.items)
        object.__setattr__(self, "items", items)
        seen = set()
        for item in items:
            if item.id in seen:
                raise ValueError(f"Duplicate item id in scene: {item.id}")
            seen.add(item.id)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[BoardItem]:
        return iter(self.items)

    def __contains__(self, item_id: object) -> bool:
        return any(item.id == item_id for item in self.items)

    # --- Queries ------------------------------------------------------------
    @property
    def ids(self) -> List[str]:
        return [item.id for item in self.items]

    def get(self, item_id: str) -> Optional[BoardItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def index_of(self, item_id: str) -> int:
        for row, item in enumerate(self.items):
            if item.id == item_id:
                return row
        return -1

    @property
    def selected_items(self) -> List[BoardItem]:
        return [item for item in self.items if item.selected]

    @property
    def selected_ids(self) -> List[str]:
        return [item.id for item in self.items if item.selected]

    def find_topmost_at(self, point: Point, tolerance: float = 5.0) -> Optional[BoardItem]:
        """Return the last-added item under ``point``."""
        for item in reversed(self.items):
            if hit_item(item, point, tolerance):
                return item
        return None

    # --- Mutations ----------------------------------------------------------
    def add_item(self, item: BoardItem) -> "Scene":
        if item.id in self:
            raise ValueError(f"Item id already in scene: {item.id}")
        return Scene(self.items + (item,))

    def remove_item(self, item_id: str) -> "Scene":
        row = self.index_of(item_id)
        if row < 0:
            return self
        return Scene(self.items[:row] + self.items[row + 1:])

    def remove_items(self, item_ids: Iterable[str]) -> "Scene":
        doomed = set(item_ids)
        if not doomed:
            return self
        kept = tuple(item for item in self.items if item.id not in doomed)
        if len(kept) == len(self.items):
            return self
        return Scene(kept)

    def replace_item(self, item: BoardItem) -> "Scene":
        """Swap in ``item`` for the item with the same id."""
        row = self.index_of(item.id)
        if row < 0 or self.items[row] == item:
            return self
        return Scene(self.items[:row] + (item,) + self.items[row + 1:])

    def update_item(self, item_id: str, **patch) -> "Scene":
        """Apply field changes to one item; unknown ids leave the scene as is."""
        if "id" in patch:
            raise ValueError("Item ids are stable and cannot be patched")
        item = self.get(item_id)
        if item is None or not patch:
            return self
        return self.replace_item(dataclasses.replace(item, **patch))

    def set_selection(self, item_ids: Iterable[str]) -> "Scene":
        wanted = set(item_ids)
        changed = False
        items = []
        for item in self.items:
            selected = item.id in wanted
            if item.selected != selected:
                item = dataclasses.replace(item, selected=selected)
                changed = True
            items.append(item)
        return Scene(items) if changed else self

    def clear(self) -> "Scene":
        return Scene() if self.items else self


def same_content(a: Iterable[BoardItem], b: Iterable[BoardItem]) -> bool:
    """Compare two item sequences ignoring selection flags."""
    left = [dataclasses.replace(item, selected=False) for item in a]
    right = [dataclasses.replace(item, selected=False) for item in b]
    return left == right

