"""Command line export of board documents to PNG.

Usage::

    python -m prancheta render board.json board.png --theme night
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from PySide6.QtGui import QGuiApplication, QImage

from .codec import MalformedDocument, deserialize, load_document, read_meta
from .constants import COURT_THEMES
from .renderer import Viewport, render

logger = logging.getLogger(__name__)


def export_png(
    document_path: Path,
    output_path: Path,
    theme: Optional[str] = None,
    size: Optional[tuple] = None,
) -> None:
    """Render the document at ``document_path`` into ``output_path``.

    Raises:
        MalformedDocument: The document cannot be decoded.
        OSError: The document cannot be read or the image cannot be written.
    """
    doc = load_document(document_path)
    scene = deserialize(doc)
    meta = read_meta(doc)

    width, height = meta.field_dimensions
    viewport = Viewport(
        width=width,
        height=height,
        theme=theme or "beach",
        background_color=None if theme else meta.background_color,
    )
    surface = None
    if size is not None:
        surface = QImage(size[0], size[1], QImage.Format.Format_ARGB32_Premultiplied)

    image = render(scene, viewport, surface=surface)
    if not image.save(str(output_path), "PNG"):
        raise OSError(f"Could not write image to {output_path}")
    logger.info("Exported %d items to %s", len(scene), output_path)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="prancheta",
        description="Tactical board document tools",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    render_cmd = commands.add_parser("render", help="Render a board document to PNG")
    render_cmd.add_argument("document", type=Path, help="PranchetaData JSON file")
    render_cmd.add_argument("output", type=Path, help="PNG file to write")
    render_cmd.add_argument(
        "--theme",
        choices=sorted(COURT_THEMES),
        default=None,
        help="Court theme (default: the document's background color)",
    )
    render_cmd.add_argument("--width", type=int, default=None, help="Output width in pixels")
    render_cmd.add_argument("--height", type=int, default=None, help="Output height in pixels")
    render_cmd.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    if (args.width is None) != (args.height is None):
        parser.error("--width and --height must be given together")
    if args.width is not None and (args.width <= 0 or args.height <= 0):
        parser.error("--width and --height must be positive")
    return args


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    app = QGuiApplication.instance()
    if app is None:
        app = QGuiApplication(["prancheta"])

    size = (args.width, args.height) if args.width is not None else None
    try:
        export_png(args.document, args.output, theme=args.theme, size=size)
    except MalformedDocument as e:
        print(f"Invalid board document: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Export failed: {e}", file=sys.stderr)
        return 1
    return 0
