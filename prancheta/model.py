"""Qt list model exposing a tactical board to QML and widget hosts."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Tuple

from PySide6.QtCore import (
    QAbstractListModel,
    QModelIndex,
    Property,
    Qt,
    Signal,
    Slot,
)
from PySide6.QtGui import QImage

from .codec import (
    MalformedDocument,
    deserialize,
    item_to_dict,
    load_document,
    read_meta,
    save_document,
    serialize,
)
from .constants import DEFAULT_COLORS, FONT_FAMILIES, BoardConfig
from .controller import InteractionController, parse_jersey_number
from .renderer import Viewport, measure_text, render
from .scene import Scene, item_bounds
from .types import BoardItem, DocumentMeta, PlayerItem, Point, TextItem

logger = logging.getLogger(__name__)

# camelCase editor keys -> TextItem fields
_TEXT_EDIT_KEYS = {
    "text": "text",
    "fontSize": "font_size",
    "fontFamily": "font_family",
    "bold": "bold",
    "italic": "italic",
    "alignment": "alignment",
    "backgroundColor": "background_color",
    "opacity": "opacity",
    "color": "color",
}


class BoardModel(QAbstractListModel):
    """Qt model wrapping one :class:`InteractionController`."""

    IdRole = Qt.UserRole + 1
    TypeRole = Qt.UserRole + 2
    XRole = Qt.UserRole + 3
    YRole = Qt.UserRole + 4
    WidthRole = Qt.UserRole + 5
    HeightRole = Qt.UserRole + 6
    ColorRole = Qt.UserRole + 7
    SelectedRole = Qt.UserRole + 8
    TextRole = Qt.UserRole + 9
    NumberRole = Qt.UserRole + 10

    itemsChanged = Signal()
    itemsCommitted = Signal(list)
    historyChanged = Signal()
    editorStateChanged = Signal()
    toolChanged = Signal()
    colorChanged = Signal()
    textEditRequested = Signal(dict)
    playerNumberRequested = Signal(str, int)
    errorOccurred = Signal(str)  # Emitted with error message on failure

    def __init__(
        self,
        items: Iterable[BoardItem] = (),
        config: Optional[BoardConfig] = None,
        parent=None,
    ):
        super().__init__(parent)
        config = config or BoardConfig()
        self._meta = DocumentMeta(
            id=uuid.uuid4().hex,
            field_dimensions=(config.width, config.height),
            background_color=config.background_color,
        )
        self._rows: Tuple[str, ...] = ()
        self._items: Tuple[BoardItem, ...] = ()
        self._controller = InteractionController(
            items,
            config=config,
            on_change=self._on_committed,
            on_repaint=self._on_repaint,
            on_text_edit=self._on_text_edit,
            text_measurer=measure_text,
        )
        self._items = self._controller.scene.items
        self._rows = tuple(item.id for item in self._items)

    @property
    def controller(self) -> InteractionController:
        return self._controller

    @property
    def meta(self) -> DocumentMeta:
        return self._meta

    # --- Controller callbacks -----------------------------------------------
    def _on_repaint(self, scene: Scene) -> None:
        self._sync(scene.items)

    def _on_committed(self, items: List[BoardItem]) -> None:
        self._sync(tuple(items))
        self.historyChanged.emit()
        self.itemsCommitted.emit([item_to_dict(item) for item in items])

    def _on_text_edit(self, item: TextItem) -> None:
        self.textEditRequested.emit(item_to_dict(item))

    def _sync(self, items: Tuple[BoardItem, ...]) -> None:
        if items == self._items:
            return
        rows = tuple(item.id for item in items)
        if rows == self._rows:
            self._items = items
            if items:
                self.dataChanged.emit(self.index(0), self.index(len(items) - 1))
        else:
            self.beginResetModel()
            self._items = items
            self._rows = rows
            self.endResetModel()
        self.itemsChanged.emit()

    def _dispatch(self, action, *args):
        before = self._controller.state
        result = action(*args)
        if self._controller.state is not before:
            self.editorStateChanged.emit()
        return result

    # --- Qt model overrides -------------------------------------------------
    def rowCount(self, parent: QModelIndex | None = QModelIndex()) -> int:  # type: ignore[override]
        return len(self._items)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):  # type: ignore[override]
        if not index.isValid() or not (0 <= index.row() < len(self._items)):
            return None

        item = self._items[index.row()]
        if role == self.IdRole:
            return item.id
        if role == self.TypeRole:
            return item.item_type.value
        if role == self.XRole:
            return item.position.x
        if role == self.YRole:
            return item.position.y
        if role == self.WidthRole:
            return item_bounds(item)[2]
        if role == self.HeightRole:
            return item_bounds(item)[3]
        if role == self.ColorRole:
            return item.color
        if role == self.SelectedRole:
            return item.selected
        if role == self.TextRole:
            return item.text if isinstance(item, TextItem) else ""
        if role == self.NumberRole:
            return item.number if isinstance(item, PlayerItem) else None
        return None

    def roleNames(self) -> Dict[int, bytes]:  # type: ignore[override]
        return {
            self.IdRole: b"itemId",
            self.TypeRole: b"itemType",
            self.XRole: b"x",
            self.YRole: b"y",
            self.WidthRole: b"width",
            self.HeightRole: b"height",
            self.ColorRole: b"color",
            self.SelectedRole: b"selected",
            self.TextRole: b"text",
            self.NumberRole: b"number",
        }

    # --- Properties exposed to QML -----------------------------------------
    @Property(int, notify=itemsChanged)
    def count(self) -> int:
        return len(self._items)

    @Property(str, notify=toolChanged)
    def selectedTool(self) -> str:
        return self._controller.tool.value

    @selectedTool.setter  # type: ignore[no-redef]
    def selectedTool(self, value: str) -> None:
        before = self._controller.tool
        if self._controller.set_tool(value) and self._controller.tool is not before:
            self.toolChanged.emit()

    @Property(str, notify=colorChanged)
    def selectedColor(self) -> str:
        return self._controller.color

    @selectedColor.setter  # type: ignore[no-redef]
    def selectedColor(self, value: str) -> None:
        if value != self._controller.color:
            self._controller.set_color(value)
            self.colorChanged.emit()

    @Property(str, notify=editorStateChanged)
    def editorState(self) -> str:
        return self._controller.state.value

    @Property(bool, notify=historyChanged)
    def canUndo(self) -> bool:
        return self._controller.history.can_undo

    @Property(bool, notify=historyChanged)
    def canRedo(self) -> bool:
        return self._controller.history.can_redo

    @Property(list, constant=True)
    def palette(self) -> List[str]:
        return list(DEFAULT_COLORS)

    @Property(list, constant=True)
    def fontFamilies(self) -> List[str]:
        return list(FONT_FAMILIES)

    # --- Pointer events -----------------------------------------------------
    @Slot(float, float)
    def pointerDown(self, x: float, y: float) -> None:
        self._dispatch(self._controller.pointer_down, Point(x, y))

    @Slot(float, float, float)
    def pointerDownWithPressure(self, x: float, y: float, pressure: float) -> None:
        self._dispatch(self._controller.pointer_down, Point(x, y), pressure)

    @Slot(float, float)
    def pointerMove(self, x: float, y: float) -> None:
        self._dispatch(self._controller.pointer_move, Point(x, y))

    @Slot(float, float, float)
    def pointerMoveWithPressure(self, x: float, y: float, pressure: float) -> None:
        self._dispatch(self._controller.pointer_move, Point(x, y), pressure)

    @Slot(float, float)
    def pointerUp(self, x: float, y: float) -> None:
        self._dispatch(self._controller.pointer_up, Point(x, y))

    @Slot()
    def pointerReleasedOutside(self) -> None:
        self._dispatch(self._controller.pointer_up, None)

    @Slot(float, float)
    def doubleClick(self, x: float, y: float) -> None:
        target = self._dispatch(self._controller.double_click, Point(x, y))
        if isinstance(target, PlayerItem):
            self.playerNumberRequested.emit(target.id, target.number or 0)

    # --- Editor results -----------------------------------------------------
    @Slot(str, str, result=bool)
    def setPlayerNumber(self, item_id: str, text: str) -> bool:
        return self._controller.set_player_number(item_id, parse_jersey_number(text))

    @Slot(dict, result=bool)
    def commitTextEdit(self, fields: Dict[str, Any]) -> bool:
        patch = {}
        for key, value in fields.items():
            if key not in _TEXT_EDIT_KEYS:
                self.errorOccurred.emit(f"Unknown text field: {key}")
                logger.warning("Ignoring text edit with unknown field %r", key)
                return False
            patch[_TEXT_EDIT_KEYS[key]] = value
        try:
            return self._dispatch(lambda: self._controller.commit_text_edit(**patch))
        except ValueError as e:
            error_msg = f"Invalid text edit: {e}"
            self.errorOccurred.emit(error_msg)
            logger.warning(error_msg)
            return False

    @Slot()
    def cancelTextEdit(self) -> None:
        self._dispatch(self._controller.cancel_text_edit)

    # --- Commands -----------------------------------------------------------
    @Slot(result=bool)
    def undo(self) -> bool:
        return self._controller.undo()

    @Slot(result=bool)
    def redo(self) -> bool:
        return self._controller.redo()

    @Slot(result=bool)
    def deleteSelected(self) -> bool:
        return self._controller.delete_selected()

    @Slot(result=bool)
    def clearBoard(self) -> bool:
        return self._controller.clear()

    @Slot()
    def selectAll(self) -> None:
        self._controller.select_all()

    @Slot(str, result=bool)
    def keyPress(self, key: str) -> bool:
        return self._dispatch(self._controller.key_press, key)

    # --- Serialization ------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        """Serialize the board to a ``PranchetaData`` document."""
        doc = serialize(self._controller.scene, self._meta)
        if self._meta.created_at is None:
            self._meta = DocumentMeta(
                id=self._meta.id,
                field_dimensions=self._meta.field_dimensions,
                background_color=self._meta.background_color,
                created_at=doc["createdAt"],
            )
        return doc

    def from_dict(self, data: Dict[str, Any]) -> bool:
        """Load a ``PranchetaData`` document, replacing the board and history."""
        try:
            scene = deserialize(data)
            meta = read_meta(data)
        except MalformedDocument as e:
            error_msg = f"Invalid board document: {e}"
            self.errorOccurred.emit(error_msg)
            logger.error(error_msg)
            return False

        self._meta = meta
        self._dispatch(self._controller.reset, scene.items)
        self.historyChanged.emit()
        return True

    @Slot(str, result=bool)
    def save(self, file_path: str) -> bool:
        if not file_path:
            self.errorOccurred.emit("No file path specified")
            return False
        try:
            save_document(file_path, self.to_dict())
        except OSError as e:
            error_msg = f"Failed to save board: {e}"
            self.errorOccurred.emit(error_msg)
            logger.error(error_msg)
            return False
        return True

    @Slot(str, result=bool)
    def load(self, file_path: str) -> bool:
        if not file_path:
            self.errorOccurred.emit("No file path specified")
            return False
        try:
            data = load_document(file_path)
        except MalformedDocument as e:
            error_msg = f"Invalid board document: {e}"
            self.errorOccurred.emit(error_msg)
            logger.error(error_msg)
            return False
        except OSError as e:
            error_msg = f"Failed to load board: {e}"
            self.errorOccurred.emit(error_msg)
            logger.error(error_msg)
            return False
        return self.from_dict(data)

    # --- Rendering ----------------------------------------------------------
    def viewport(self) -> Viewport:
        width, height = self._meta.field_dimensions
        config = self._controller.config
        return Viewport(
            width=width,
            height=height,
            theme=config.theme,
            background_color=self._meta.background_color,
            smoothing=config.smoothing,
        )

    @Slot(result=QImage)
    def renderImage(self) -> QImage:
        return render(self._controller.scene, self.viewport(), overlay=self._controller.overlay())

    @Slot(str, result=bool)
    def exportPng(self, file_path: str) -> bool:
        image = render(self._controller.scene, self.viewport())
        if not image.save(file_path, "PNG"):
            error_msg = f"Failed to export image: {file_path}"
            self.errorOccurred.emit(error_msg)
            logger.error(error_msg)
            return False
        logger.info("Board exported to %s", file_path)
        return True
