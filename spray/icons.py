"""Inline SVG icon rendering.

Icons live in a single sprite sheet built from ``src/assets/icons`` (see
:mod:`spray.sprites`). Each symbol id is the icon name prefixed with
``svg-``. Templates call the ``icon`` shortcode to get a ``<svg><use>``
fragment pointing either at the external sprite sheet or at a symbol
already embedded in the current document.
"""

from __future__ import annotations

from dataclasses import dataclass

from markupsafe import Markup, escape

from .html_utils import minify_markup

SPRITE_URL = "/assets/icons/icons.sprite.svg"
ICON_ID_PREFIX = "svg-"

ICON_TEMPLATE = """<svg class="icon icon--{name}" role="img" aria-hidden="true" width="24" height="24">
        <use xmlns:xlink="http://www.w3.org/1999/xlink" xlink:href="{href}"></use>
    </svg>"""


@dataclass(frozen=True)
class IconRequest:
    """A logical icon name plus whether the symbol is embedded inline."""

    name: str
    inline: bool = False

    @property
    def fragment(self) -> str:
        return f"#{ICON_ID_PREFIX}{self.name}"

    @property
    def href(self) -> str:
        if self.inline:
            return self.fragment
        return SPRITE_URL + self.fragment


def icon_symbol_id(name: str) -> str:
    """Return the sprite ``<symbol>`` id for an icon name."""
    return f"{ICON_ID_PREFIX}{name}"


def render_icon(request: IconRequest) -> Markup:
    """Render an icon request to minified markup.

    The name is escaped but not checked against the sprite; a dangling
    reference simply renders nothing in the browser.
    """
    output = ICON_TEMPLATE.format(name=escape(request.name), href=escape(request.href))
    return Markup(minify_markup(output))


def icon(icon_name: str, use_inline: bool = False) -> Markup:
    """Template shortcode: ``{{ icon("arrow") }}`` or ``{{ icon("arrow", true) }}``."""
    return render_icon(IconRequest(icon_name, bool(use_inline)))
