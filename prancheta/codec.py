"""Document codec for tactical board scenes.

Converts a :class:`Scene` to and from the ``PranchetaData`` document::

    {
        "id": "...",
        "items": [...],
        "fieldDimensions": {"width": 500, "height": 700},
        "backgroundColor": "#E8B563",
        "createdAt": "2024-01-01T00:00:00+00:00",
        "updatedAt": "2024-01-01T00:00:00+00:00"
    }

Item fields use camelCase keys. Numeric values are written back exactly as
they were read, so a document that went through ``deserialize`` and
``serialize`` keeps its ``items`` array unchanged.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .constants import CANVAS_HEIGHT, CANVAS_WIDTH, COURT_THEMES
from .scene import Scene
from .types import (
    ArrowItem,
    BallItem,
    BlockItem,
    BlockShape,
    BoardItem,
    DocumentMeta,
    DrawingPath,
    FreeDrawItem,
    ItemType,
    PlayerItem,
    Point,
    Team,
    TextAlignment,
    TextItem,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_ITEM_CLASSES = (PlayerItem, BallItem, BlockItem, TextItem, ArrowItem, FreeDrawItem)


class MalformedDocument(ValueError):
    """Raised when a document cannot be turned into a scene."""


# --- Encoding ---------------------------------------------------------------
def _point_to_dict(point: Point) -> Dict[str, Any]:
    return {"x": point.x, "y": point.y}


def _path_to_dict(path: DrawingPath) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": path.id,
        "points": [_point_to_dict(pt) for pt in path.points],
        "color": path.color,
        "thickness": path.thickness,
        "timestamp": path.timestamp,
    }
    if path.pressures:
        data["pressures"] = list(path.pressures)
    return data


def item_to_dict(item: BoardItem) -> Dict[str, Any]:
    """Encode one item as a JSON-compatible dict.

    Raises:
        MalformedDocument: ``item`` is not a board item.
    """
    if not isinstance(item, _ITEM_CLASSES):
        raise MalformedDocument(f"Cannot encode non-board item: {item!r}")

    data: Dict[str, Any] = {
        "id": item.id,
        "type": item.item_type.value,
        "position": _point_to_dict(item.position),
        "color": item.color,
    }
    # Selection is session state; only persist it when set
    if item.selected:
        data["selected"] = True

    if isinstance(item, PlayerItem):
        if item.number is not None:
            data["number"] = item.number
        data["width"] = item.width
        data["height"] = item.height
    elif isinstance(item, BallItem):
        data["width"] = item.width
        data["height"] = item.height
    elif isinstance(item, BlockItem):
        data["width"] = item.width
        data["height"] = item.height
        data["shape"] = item.shape.value
    elif isinstance(item, TextItem):
        data["text"] = item.text
        data["fontSize"] = item.font_size
        data["fontFamily"] = item.font_family
        data["bold"] = item.bold
        data["italic"] = item.italic
        data["alignment"] = item.alignment.value
        if item.background_color is not None:
            data["backgroundColor"] = item.background_color
        data["opacity"] = item.opacity
        data["width"] = item.width
        data["height"] = item.height
    elif isinstance(item, ArrowItem):
        data["endPosition"] = _point_to_dict(item.end_position)
        data["thickness"] = item.thickness
    elif isinstance(item, FreeDrawItem):
        data["thickness"] = item.thickness
        data["paths"] = [_path_to_dict(path) for path in item.paths]
    return data


def _timestamp(now: Optional[datetime]) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def serialize(
    scene: Scene,
    meta: Optional[DocumentMeta] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Encode ``scene`` as a ``PranchetaData`` document.

    Args:
        scene: Items to persist, in paint order.
        meta: Document fields from a previous load. A fresh document id and
            the default court dimensions are used when omitted.
        now: Clock override for ``updatedAt``/``createdAt``.

    Returns:
        The document dict, ready for :func:`dumps`.
    """
    if meta is None:
        meta = DocumentMeta(id=uuid.uuid4().hex)

    stamp = _timestamp(now)
    width, height = meta.field_dimensions
    return {
        "id": meta.id,
        "items": [item_to_dict(item) for item in scene],
        "fieldDimensions": {"width": width, "height": height},
        "backgroundColor": meta.background_color,
        "createdAt": meta.created_at or stamp,
        "updatedAt": stamp,
    }


# --- Decoding ---------------------------------------------------------------
def _require(data: Dict[str, Any], key: str, where: str) -> Any:
    if key not in data:
        raise MalformedDocument(f"{where} is missing '{key}'")
    return data[key]


def _number(value: Any, where: str) -> Union[int, float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedDocument(f"{where} must be a number, got {value!r}")
    return value


def _whole_number(value: Any, where: str) -> Union[int, float]:
    value = _number(value, where)
    if isinstance(value, float) and not value.is_integer():
        raise MalformedDocument(f"{where} must be a whole number, got {value!r}")
    return value


def _flag(value: Any, where: str) -> bool:
    if not isinstance(value, bool):
        raise MalformedDocument(f"{where} must be a boolean, got {value!r}")
    return value


def _string(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise MalformedDocument(f"{where} must be a string, got {value!r}")
    return value


def _point_from(value: Any, where: str) -> Point:
    if not isinstance(value, dict):
        raise MalformedDocument(f"{where} must be an object with x and y")
    return Point(
        _number(_require(value, "x", where), f"{where}.x"),
        _number(_require(value, "y", where), f"{where}.y"),
    )


def _enum(enum_cls, value: Any, where: str):
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise MalformedDocument(f"{where} must be one of {choices}, got {value!r}") from None


def _path_from(data: Any, where: str) -> DrawingPath:
    if not isinstance(data, dict):
        raise MalformedDocument(f"{where} must be an object")
    points = _require(data, "points", where)
    if not isinstance(points, list):
        raise MalformedDocument(f"{where}.points must be a list")
    pressures = data.get("pressures", [])
    if not isinstance(pressures, list):
        raise MalformedDocument(f"{where}.pressures must be a list")
    return DrawingPath(
        id=_string(_require(data, "id", where), f"{where}.id"),
        points=tuple(
            _point_from(pt, f"{where}.points[{i}]") for i, pt in enumerate(points)
        ),
        color=_string(data.get("color", "#000000"), f"{where}.color"),
        thickness=_number(data.get("thickness", 3.0), f"{where}.thickness"),
        timestamp=_number(data.get("timestamp", 0), f"{where}.timestamp"),
        pressures=tuple(
            _number(p, f"{where}.pressures[{i}]") for i, p in enumerate(pressures)
        ),
    )


def _sized(data: Dict[str, Any], where: str) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    if "width" in data:
        fields["width"] = _number(data["width"], f"{where}.width")
    if "height" in data:
        fields["height"] = _number(data["height"], f"{where}.height")
    return fields


def item_from_dict(data: Any, where: str = "item") -> BoardItem:
    """Decode one item; raises :class:`MalformedDocument` on bad input."""
    if not isinstance(data, dict):
        raise MalformedDocument(f"{where} must be an object")

    item_id = _string(_require(data, "id", where), f"{where}.id")
    where = f"{where} '{item_id}'"
    type_value = _require(data, "type", where)
    try:
        item_type = ItemType(type_value)
    except ValueError:
        raise MalformedDocument(f"{where} has unknown type {type_value!r}") from None

    common: Dict[str, Any] = {
        "id": item_id,
        "position": _point_from(_require(data, "position", where), f"{where}.position"),
        "selected": _flag(data.get("selected", False), f"{where}.selected"),
    }
    if "color" in data:
        common["color"] = _string(data["color"], f"{where}.color")

    if item_type in (ItemType.PLAYER_BLUE, ItemType.PLAYER_RED):
        number = data.get("number")
        if number is not None:
            number = _whole_number(number, f"{where}.number")
        team = Team.BLUE if item_type is ItemType.PLAYER_BLUE else Team.RED
        if "color" not in common:
            common["color"] = "#3b82f6" if team is Team.BLUE else "#ef4444"
        return PlayerItem(team=team, number=number, **common, **_sized(data, where))

    if item_type is ItemType.BALL:
        return BallItem(**common, **_sized(data, where))

    if item_type is ItemType.BLOCK:
        fields = _sized(data, where)
        if "shape" in data:
            fields["shape"] = _enum(BlockShape, data["shape"], f"{where}.shape")
        return BlockItem(**common, **fields)

    if item_type is ItemType.TEXT:
        fields = _sized(data, where)
        if "text" in data:
            fields["text"] = _string(data["text"], f"{where}.text")
        if "fontSize" in data:
            fields["font_size"] = _number(data["fontSize"], f"{where}.fontSize")
        if "fontFamily" in data:
            fields["font_family"] = _string(data["fontFamily"], f"{where}.fontFamily")
        if "bold" in data:
            fields["bold"] = _flag(data["bold"], f"{where}.bold")
        if "italic" in data:
            fields["italic"] = _flag(data["italic"], f"{where}.italic")
        if "alignment" in data:
            fields["alignment"] = _enum(TextAlignment, data["alignment"], f"{where}.alignment")
        if data.get("backgroundColor") is not None:
            fields["background_color"] = _string(
                data["backgroundColor"], f"{where}.backgroundColor"
            )
        if "opacity" in data:
            fields["opacity"] = _number(data["opacity"], f"{where}.opacity")
        return TextItem(**common, **fields)

    if item_type is ItemType.ARROW:
        end = _point_from(_require(data, "endPosition", where), f"{where}.endPosition")
        fields = {}
        if "thickness" in data:
            fields["thickness"] = _number(data["thickness"], f"{where}.thickness")
        return ArrowItem(end_position=end, **common, **fields)

    # ItemType.FREE_DRAW
    paths = data.get("paths", [])
    if not isinstance(paths, list):
        raise MalformedDocument(f"{where}.paths must be a list")
    fields = {
        "paths": tuple(_path_from(p, f"{where}.paths[{i}]") for i, p in enumerate(paths))
    }
    if "thickness" in data:
        fields["thickness"] = _number(data["thickness"], f"{where}.thickness")
    return FreeDrawItem(**common, **fields)


def deserialize(doc: Any) -> Scene:
    """Decode the ``items`` of a ``PranchetaData`` document into a scene."""
    if not isinstance(doc, dict):
        raise MalformedDocument("Document must be a JSON object")
    items_data = doc.get("items", [])
    if not isinstance(items_data, list):
        raise MalformedDocument("Document 'items' must be a list")

    items: List[BoardItem] = [
        item_from_dict(data, f"items[{i}]") for i, data in enumerate(items_data)
    ]
    try:
        return Scene(tuple(items))
    except ValueError as e:
        raise MalformedDocument(str(e)) from None


def read_meta(doc: Any) -> DocumentMeta:
    """Extract the document-level fields, filling in defaults."""
    if not isinstance(doc, dict):
        raise MalformedDocument("Document must be a JSON object")

    dims = doc.get("fieldDimensions") or {}
    if not isinstance(dims, dict):
        raise MalformedDocument("Document 'fieldDimensions' must be an object")
    width = _number(dims.get("width", CANVAS_WIDTH), "fieldDimensions.width")
    height = _number(dims.get("height", CANVAS_HEIGHT), "fieldDimensions.height")

    created_at = doc.get("createdAt")
    if created_at is not None:
        created_at = _string(created_at, "createdAt")

    doc_id = doc.get("id")
    return DocumentMeta(
        id=_string(doc_id, "id") if doc_id is not None else uuid.uuid4().hex,
        field_dimensions=(width, height),
        background_color=_string(
            doc.get("backgroundColor", COURT_THEMES["beach"].field_color),
            "backgroundColor",
        ),
        created_at=created_at,
    )


# --- Text and files ---------------------------------------------------------
def dumps(doc: Dict[str, Any]) -> str:
    return json.dumps(doc, ensure_ascii=False, indent=2)


def loads(text: str) -> Dict[str, Any]:
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedDocument(f"Invalid document JSON: {e}") from e
    if not isinstance(doc, dict):
        raise MalformedDocument("Document must be a JSON object")
    return doc


def save_document(path: PathLike, doc: Dict[str, Any]) -> None:
    """Write ``doc`` to ``path`` as UTF-8 JSON."""
    Path(path).write_text(dumps(doc), encoding="utf-8")
    logger.info("Board document saved to %s (%d items)", path, len(doc.get("items", [])))


def load_document(path: PathLike) -> Dict[str, Any]:
    """Read a document from ``path``; the items are not decoded."""
    doc = loads(Path(path).read_text(encoding="utf-8"))
    logger.info("Board document loaded from %s", path)
    return doc
