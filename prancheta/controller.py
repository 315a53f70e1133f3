"""Interaction controller for the tactical board.

The controller is the single owner of one editor's :class:`Scene` and
:class:`History`. Pointer and keyboard events drive a small state machine that
decides which scene mutation to apply; each finished user action produces
exactly one history entry, never one per pointer move.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from enum import Enum
from itertools import count
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from .constants import ITEM_PRESETS, BoardConfig
from .drawing import DrawingEngine
from .geometry import device_to_logical
from .history import History
from .renderer import GestureOverlay
from .scene import (
    Scene,
    approximate_text_size,
    handle_at,
    resize_item,
    same_content,
    translate_item,
)
from .types import (
    ArrowItem,
    BallItem,
    BlockItem,
    BoardItem,
    FreeDrawItem,
    PlayerItem,
    Point,
    ResizeHandle,
    Team,
    TextAlignment,
    TextItem,
    Tool,
)

logger = logging.getLogger(__name__)

TextMeasurer = Callable[[TextItem], Tuple[float, float]]

# Fields a text editor may change when it saves
TEXT_EDIT_FIELDS = frozenset(
    {
        "text",
        "font_size",
        "font_family",
        "bold",
        "italic",
        "alignment",
        "background_color",
        "opacity",
        "color",
    }
)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class EditorState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"
    DRAWING_ARROW = "drawing-arrow"
    FREE_DRAWING = "free-drawing"
    EDITING_TEXT = "editing-text"


def parse_jersey_number(text: Optional[str]) -> Optional[int]:
    """Read the leading integer of ``text``; anything else clears the number."""
    if text is None:
        return None
    match = _LEADING_INT.match(str(text))
    if not match:
        return None
    return int(match.group(1)) or None


class InteractionController:
    """Editor engine for one tactical board.

    Args:
        items: Initial items supplied by the host.
        config: Board settings; defaults to :class:`BoardConfig`.
        on_change: Called with the item list after every committed action.
        on_repaint: Called with the scene after every committed or live change.
        number_prompt: Asked for a jersey number on player double-click. It
            receives the current number and returns the typed text, or None
            when the prompt was dismissed.
        on_text_edit: Called with the text item when text editing starts.
        text_measurer: Returns ``(width, height)`` of a text item.
    """

    def __init__(
        self,
        items: Iterable[BoardItem] = (),
        config: Optional[BoardConfig] = None,
        on_change: Optional[Callable[[List[BoardItem]], None]] = None,
        on_repaint: Optional[Callable[[Scene], None]] = None,
        number_prompt: Optional[Callable[[Optional[int]], Optional[str]]] = None,
        on_text_edit: Optional[Callable[[TextItem], None]] = None,
        text_measurer: Optional[TextMeasurer] = None,
    ):
        self._config = config or BoardConfig()
        self._scene = Scene(tuple(items))
        self._history = History(self._scene.items, limit=self._config.history_limit)
        self._on_change = on_change
        self._on_repaint = on_repaint
        self.number_prompt = number_prompt
        self.on_text_edit = on_text_edit
        self._measure = text_measurer or approximate_text_size
        self._id_source = count()

        self._tool = Tool.SELECT
        self._color = "#000000"
        self._state = EditorState.IDLE

        # Gesture state
        self._gesture_tool = self._tool
        self._gesture_color = self._color
        self._gesture_start: Tuple[BoardItem, ...] = ()
        self._last_point: Optional[Point] = None
        self._active_id: Optional[str] = None
        self._drag_offset = Point(0.0, 0.0)
        self._handle: Optional[ResizeHandle] = None
        self._arrow_start: Optional[Point] = None
        self._arrow_end: Optional[Point] = None
        self._engine: Optional[DrawingEngine] = None
        self._free_draw_id: Optional[str] = None
        self._editing_id: Optional[str] = None

    # --- Read access --------------------------------------------------------
    @property
    def config(self) -> BoardConfig:
        return self._config

    @property
    def scene(self) -> Scene:
        return self._scene

    @property
    def items(self) -> List[BoardItem]:
        return list(self._scene.items)

    @property
    def history(self) -> History:
        return self._history

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def tool(self) -> Tool:
        return self._tool

    @property
    def color(self) -> str:
        return self._color

    @property
    def selected_item(self) -> Optional[BoardItem]:
        selected = self._scene.selected_items
        return selected[0] if selected else None

    @property
    def editing_item(self) -> Optional[TextItem]:
        if self._editing_id is None:
            return None
        item = self._scene.get(self._editing_id)
        return item if isinstance(item, TextItem) else None

    # --- Toolbar ------------------------------------------------------------
    def set_tool(self, tool: Union[Tool, str]) -> bool:
        """Select the tool used by the next gesture."""
        if not isinstance(tool, Tool):
            try:
                tool = Tool(tool)
            except ValueError:
                logger.warning("Ignoring unknown tool: %r", tool)
                return False
        if tool is not self._tool:
            self._tool = tool
            self._free_draw_id = None
        return True

    def set_color(self, color: str) -> None:
        """Select the color used by the next gesture."""
        self._color = color

    # --- Host wiring --------------------------------------------------------
    def to_logical(self, device_point: Point, displayed_size: Tuple[float, float]) -> Point:
        return device_to_logical(
            device_point, displayed_size, (self._config.width, self._config.height)
        )

    def reset(self, items: Iterable[BoardItem] = ()) -> None:
        """Replace the scene wholesale and forget the history."""
        self._scene = Scene(tuple(items))
        self._history.reset(self._scene.items)
        self._abort_gesture()
        self._free_draw_id = None
        self._editing_id = None
        self._set_state(EditorState.IDLE)
        self._repaint()

    def overlay(self) -> Optional[GestureOverlay]:
        """Live decorations of the gesture in flight, if any."""
        if self._state is EditorState.DRAWING_ARROW and self._arrow_end is not None:
            return GestureOverlay(
                arrow_start=self._arrow_start,
                arrow_end=self._arrow_end,
                arrow_color=self._gesture_color,
                arrow_thickness=self._config.arrow_thickness,
            )
        if self._state is EditorState.FREE_DRAWING and self._engine is not None:
            return GestureOverlay(
                stroke_points=tuple(self._engine.current_points),
                stroke_color=self._engine.color,
                stroke_thickness=self._engine.thickness,
                smoothing=self._engine.smoothing,
            )
        return None

    # --- Pointer events -----------------------------------------------------
    def pointer_down(self, point: Point, pressure: Optional[float] = None) -> None:
        if self._state is not EditorState.IDLE:
            return

        self._last_point = point
        self._gesture_tool = self._tool
        self._gesture_color = self._color
        tool = self._gesture_tool

        if tool is Tool.SELECT:
            self._press_select(point)
        elif tool.places_item:
            self._press_place(tool, point)
        elif tool is Tool.ARROW:
            self._arrow_start = point
            self._arrow_end = point
            self._set_state(EditorState.DRAWING_ARROW)
            self._repaint()
        elif tool is Tool.FREE_DRAW:
            self._engine = DrawingEngine(
                color=self._gesture_color,
                thickness=self._config.free_draw_thickness,
                smoothing=self._config.smoothing,
                simplify_tolerance=self._config.simplify_tolerance,
            )
            self._engine.start_drawing(point, pressure)
            self._set_state(EditorState.FREE_DRAWING)
            self._repaint()

    def pointer_move(self, point: Point, pressure: Optional[float] = None) -> None:
        if self._state is EditorState.IDLE or self._state is EditorState.EDITING_TEXT:
            return

        self._last_point = point
        if self._state is EditorState.DRAGGING:
            self._drag_to(point)
        elif self._state is EditorState.RESIZING:
            self._resize_to(point)
        elif self._state is EditorState.DRAWING_ARROW:
            self._arrow_end = point
        elif self._state is EditorState.FREE_DRAWING and self._engine is not None:
            self._engine.continue_drawing(point, pressure)
        self._repaint()

    def pointer_up(self, point: Optional[Point] = None) -> None:
        """Finish the gesture in flight.

        ``point`` is None when the pointer was released outside the canvas;
        the last known position is used instead.
        """
        if self._state is EditorState.IDLE or self._state is EditorState.EDITING_TEXT:
            return

        if point is None:
            point = self._last_point
        else:
            self._last_point = point

        state = self._state
        if state is EditorState.DRAGGING:
            if point is not None:
                self._drag_to(point)
            self._finish_manipulation()
        elif state is EditorState.RESIZING:
            if point is not None:
                self._resize_to(point)
            self._finish_manipulation()
        elif state is EditorState.DRAWING_ARROW:
            self._finish_arrow(point or self._arrow_start)
        elif state is EditorState.FREE_DRAWING:
            self._finish_stroke()

    def double_click(self, point: Point) -> Optional[BoardItem]:
        """Open the editor for the text or player under ``point``.

        Returns the item that was double-clicked, or None.
        """
        if self._state is not EditorState.IDLE:
            return None

        target = self._scene.find_topmost_at(point, self._config.hit_tolerance)
        if isinstance(target, TextItem):
            self._begin_text_edit(target)
        elif isinstance(target, PlayerItem) and self.number_prompt is not None:
            answer = self.number_prompt(target.number)
            if answer is not None:
                self.set_player_number(target.id, parse_jersey_number(answer))
        return target

    # --- Editing results ----------------------------------------------------
    def set_player_number(self, item_id: str, number: Optional[int]) -> bool:
        item = self._scene.get(item_id)
        if not isinstance(item, PlayerItem) or item.number == number:
            return False
        self._scene = self._scene.update_item(item_id, number=number)
        self._commit()
        return True

    def commit_text_edit(self, **fields: Any) -> bool:
        """Apply the editor's result to the text being edited and commit it."""
        if self._state is not EditorState.EDITING_TEXT:
            return False

        unknown = set(fields) - TEXT_EDIT_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit text fields: {', '.join(sorted(unknown))}")
        if "alignment" in fields and not isinstance(fields["alignment"], TextAlignment):
            fields["alignment"] = TextAlignment(fields["alignment"])

        item = self.editing_item
        self._editing_id = None
        self._set_state(EditorState.IDLE)
        if item is None:
            self._repaint()
            return False

        edited = self._measured(dataclasses.replace(item, **fields))
        self._scene = self._scene.replace_item(edited)
        if same_content(self._history.current, self._scene.items):
            self._repaint()
            return False
        self._commit()
        return True

    def cancel_text_edit(self) -> None:
        if self._state is not EditorState.EDITING_TEXT:
            return
        self._editing_id = None
        self._set_state(EditorState.IDLE)
        self._repaint()

    # --- Commands -----------------------------------------------------------
    def undo(self) -> bool:
        """Restore the previous snapshot's content.

        Selection is UI state, so the current selection is kept on the restored
        items rather than taken from the snapshot.
        """
        if self._state is not EditorState.IDLE:
            return False
        snapshot = self._history.undo()
        if snapshot is None:
            return False
        self._restore(snapshot)
        return True

    def redo(self) -> bool:
        """Reapply the next snapshot; selection is kept as in :meth:`undo`."""
        if self._state is not EditorState.IDLE:
            return False
        snapshot = self._history.redo()
        if snapshot is None:
            return False
        self._restore(snapshot)
        return True

    def delete_selected(self) -> bool:
        if self._state is not EditorState.IDLE:
            return False
        selected = self._scene.selected_ids
        if not selected:
            return False
        self._scene = self._scene.remove_items(selected)
        self._commit()
        return True

    def clear(self) -> bool:
        if self._state is not EditorState.IDLE or not len(self._scene):
            return False
        self._scene = self._scene.clear()
        self._free_draw_id = None
        self._commit()
        return True

    def select_all(self) -> None:
        if self._state is not EditorState.IDLE:
            return
        self._scene = self._scene.set_selection(self._scene.ids)
        self._repaint()

    def key_press(self, key: str) -> bool:
        """Handle an editing key; returns True when the key was used."""
        if key in ("Delete", "Backspace"):
            return self.delete_selected()
        if key == "Escape":
            if self._state is EditorState.EDITING_TEXT:
                self.cancel_text_edit()
                return True
            if self._state is EditorState.IDLE and self._scene.selected_ids:
                self._scene = self._scene.set_selection([])
                self._repaint()
                return True
        return False

    # --- Internals ----------------------------------------------------------
    def _set_state(self, state: EditorState) -> None:
        if state is not self._state:
            logger.debug("Editor state %s -> %s", self._state.value, state.value)
            self._state = state

    def _repaint(self) -> None:
        if self._on_repaint is not None:
            self._on_repaint(self._scene)

    def _commit(self) -> None:
        self._history.commit(self._scene.items)
        if self._on_change is not None:
            self._on_change(list(self._scene.items))
        self._repaint()

    def _restore(self, snapshot: Tuple[BoardItem, ...]) -> None:
        keep = self._scene.selected_ids
        self._scene = Scene(snapshot).set_selection(keep)
        self._free_draw_id = None
        if self._on_change is not None:
            self._on_change(list(self._scene.items))
        self._repaint()

    def _abort_gesture(self) -> None:
        self._active_id = None
        self._handle = None
        self._arrow_start = None
        self._arrow_end = None
        if self._engine is not None:
            self._engine.cancel()
        self._engine = None

    def _next_id(self, prefix: str) -> str:
        while True:
            candidate = f"{prefix}_{next(self._id_source)}"
            if candidate not in self._scene:
                return candidate

    def _measured(self, item: TextItem) -> TextItem:
        width, height = self._measure(item)
        if width <= 0 or height <= 0:
            return item
        return dataclasses.replace(item, width=width, height=height)

    def _press_select(self, point: Point) -> None:
        selected = self.selected_item
        if selected is not None:
            handle = handle_at(selected, point, self._config.handle_size)
            if handle is not None:
                self._gesture_start = self._scene.items
                self._active_id = selected.id
                self._handle = handle
                self._set_state(EditorState.RESIZING)
                self._repaint()
                return

        target = self._scene.find_topmost_at(point, self._config.hit_tolerance)
        if target is None:
            self._scene = self._scene.set_selection([])
            self._repaint()
            return

        self._gesture_start = self._scene.items
        self._scene = self._scene.set_selection([target.id])
        self._active_id = target.id
        self._drag_offset = Point(point.x - target.position.x, point.y - target.position.y)
        self._set_state(EditorState.DRAGGING)
        self._repaint()

    def _drag_to(self, point: Point) -> None:
        item = self._scene.get(self._active_id) if self._active_id else None
        if item is None:
            return
        dx = point.x - self._drag_offset.x - item.position.x
        dy = point.y - self._drag_offset.y - item.position.y
        self._scene = self._scene.replace_item(translate_item(item, dx, dy))

    def _resize_to(self, point: Point) -> None:
        item = self._scene.get(self._active_id) if self._active_id else None
        if item is None or self._handle is None:
            return
        resized = resize_item(item, self._handle, point, self._config.min_item_size)
        self._scene = self._scene.replace_item(resized)

    def _finish_manipulation(self) -> None:
        self._active_id = None
        self._handle = None
        self._set_state(EditorState.IDLE)
        if same_content(self._gesture_start, self._scene.items):
            self._repaint()
        else:
            self._commit()
        self._gesture_start = ()

    def _build_item(self, tool: Tool, point: Point) -> BoardItem:
        preset: Dict[str, Any] = ITEM_PRESETS[tool]
        item_type = preset["type"]
        item_id = self._next_id(item_type.value)
        common = {
            "id": item_id,
            "position": point,
            "width": preset["width"],
            "height": preset["height"],
            "selected": True,
        }

        if tool in (Tool.PLAYER_BLUE, Tool.PLAYER_RED):
            team: Team = preset["team"]
            teammates = sum(
                1 for item in self._scene
                if isinstance(item, PlayerItem) and item.team is team
            )
            return PlayerItem(team=team, number=teammates + 1, color=preset["color"], **common)
        if tool is Tool.BALL:
            return BallItem(color=preset["color"], **common)
        if tool is Tool.BLOCK:
            return BlockItem(color=preset["color"], shape=preset["shape"], **common)
        text = TextItem(
            text=preset["text"],
            font_size=preset["font_size"],
            font_family=preset["font_family"],
            color=self._gesture_color,
            **common,
        )
        return self._measured(text)

    def _press_place(self, tool: Tool, point: Point) -> None:
        target = self._scene.find_topmost_at(point, self._config.hit_tolerance)
        if target is not None:
            if tool is Tool.TEXT and isinstance(target, TextItem):
                self._begin_text_edit(target)
            return

        item = self._build_item(tool, point)
        self._scene = self._scene.set_selection([]).add_item(item)
        logger.debug("Placed %s at (%.1f, %.1f)", item.id, point.x, point.y)
        self._commit()
        if isinstance(item, TextItem):
            self._begin_text_edit(item)

    def _finish_arrow(self, end: Point) -> None:
        start = self._arrow_start or end
        self._arrow_start = None
        self._arrow_end = None
        self._set_state(EditorState.IDLE)

        arrow = ArrowItem(
            id=self._next_id("arrow"),
            position=start,
            end_position=end,
            color=self._gesture_color,
            thickness=self._config.arrow_thickness,
            selected=True,
        )
        self._scene = self._scene.set_selection([]).add_item(arrow)
        self._commit()

    def _finish_stroke(self) -> None:
        engine = self._engine
        self._engine = None
        self._set_state(EditorState.IDLE)
        path = engine.finish_drawing() if engine is not None else None
        if path is None:
            self._repaint()
            return

        existing = self._scene.get(self._free_draw_id) if self._free_draw_id else None
        if isinstance(existing, FreeDrawItem):
            item = dataclasses.replace(existing, paths=existing.paths + (path,))
            self._scene = self._scene.replace_item(item)
        else:
            item = FreeDrawItem(
                id=self._next_id("free-draw"),
                position=path.points[0],
                color=path.color,
                paths=(path,),
                thickness=path.thickness,
            )
            self._scene = self._scene.add_item(item)
            self._free_draw_id = item.id
        self._commit()

    def _begin_text_edit(self, item: TextItem) -> None:
        self._scene = self._scene.set_selection([item.id])
        self._editing_id = item.id
        self._set_state(EditorState.EDITING_TEXT)
        current = self._scene.get(item.id)
        if self.on_text_edit is not None and isinstance(current, TextItem):
            self.on_text_edit(current)
        self._repaint()
