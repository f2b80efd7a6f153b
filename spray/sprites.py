"""SVG sprite sheet generation.

Every ``NAME.svg`` in the icon directory becomes a ``<symbol id="svg-NAME">``
in one sprite file, which the ``icon`` shortcode references with
``<use xlink:href="...#svg-NAME">``.
"""

from __future__ import annotations

import copy
from pathlib import Path
from xml.etree.ElementTree import Element, ParseError, SubElement, parse, register_namespace, tostring

from .icons import icon_symbol_id

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"

register_namespace("", SVG_NS)
register_namespace("xlink", XLINK_NS)

# Presentation attributes carried from the source <svg> onto its <symbol>.
_SYMBOL_ATTRS = ("viewBox", "fill", "stroke", "stroke-width", "stroke-linecap", "stroke-linejoin")


class SpriteError(Exception):
    """Raised when an icon file cannot be parsed.

    Attributes:
        source_path: The offending SVG file.
    """

    def __init__(self, source_path: Path, message: str):
        self.source_path = source_path
        self.message = message
        super().__init__(f"{source_path}: {message}")


def _symbol_for(path: Path) -> Element:
    try:
        root = parse(path).getroot()
    except ParseError as exc:
        raise SpriteError(path, f"invalid SVG: {exc}") from exc
    symbol = Element(f"{{{SVG_NS}}}symbol", {"id": icon_symbol_id(path.stem)})
    for name in _SYMBOL_ATTRS:
        value = root.get(name)
        if value is not None:
            symbol.set(name, value)
    if symbol.get("viewBox") is None and root.get("width") and root.get("height"):
        symbol.set("viewBox", f"0 0 {root.get('width')} {root.get('height')}")
    for child in root:
        symbol.append(copy.deepcopy(child))
    return symbol


def build_sprite(icon_dir: Path) -> str | None:
    """Build the sprite sheet markup for every SVG in ``icon_dir``.

    Returns:
        Sprite markup, or None when the directory is missing or has no icons.
    """
    if not icon_dir.is_dir():
        return None
    icons = sorted(icon_dir.glob("*.svg"))
    if not icons:
        return None
    sprite = Element(f"{{{SVG_NS}}}svg", {"aria-hidden": "true", "style": "display:none"})
    defs = SubElement(sprite, f"{{{SVG_NS}}}defs")
    for path in icons:
        defs.append(_symbol_for(path))
    return tostring(sprite, encoding="unicode")


def write_sprite(icon_dir: Path, output_path: Path) -> bool:
    """Write the sprite sheet. Returns False when there was nothing to write."""
    markup = build_sprite(icon_dir)
    if markup is None:
        return False
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(markup, encoding="utf-8")
    return True
