"""Template rendering engine for Spray.

This module uses Jinja2 to render content items into their layouts.

Layouts live in ``src/layouts`` and may themselves declare a ``layout`` in
YAML front matter, in which case their output becomes the ``content`` of
the outer layout (``post`` wraps into ``base``, for example).

Markdown bodies are templates too: ``{{ icon("rss") }}`` in a post is
expanded before the Markdown is rendered.

Key class:
- TemplateEngine: Holds the Jinja environment, globals and filters.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import Environment, FileSystemLoader, Template, TemplateNotFound, select_autoescape
from markupsafe import Markup

from .collections import CollectionSet
from .config import INCLUDES_DIR, LAYOUT_ALIASES, LAYOUTS_DIR
from .extractors import extract_frontmatter
from .icons import icon
from .navigation import NavEntry
from .renderers import MarkdownRenderer
from .utils import join_root_url

if TYPE_CHECKING:
    from .content import ContentItem

MAX_LAYOUT_DEPTH = 10
_TEMPLATE_TAG_RE = re.compile(r"\{[{%#]")


class LayoutCycleError(Exception):
    """Raised when layouts wrap each other in a loop."""


def readable_date(value: datetime, fmt: str = "%d %B %Y") -> str:
    """Format a date for display, e.g. ``05 March 2024``."""
    return value.strftime(fmt)


def html_date_string(value: datetime) -> str:
    """Format a date for ``<time datetime="...">``."""
    return value.strftime("%Y-%m-%d")


def head(items, n: int):
    """First ``n`` entries, or the last ``-n`` when ``n`` is negative."""
    items = list(items)
    if n < 0:
        return items[n:]
    return items[:n]


def current_build_date() -> str:
    return datetime.now(timezone.utc).isoformat()


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        input_dir: Directory with pages, layouts and includes.
        data: Global template data.
        collections: Named collections exposed as ``collections``.
        root_url: Optional base URL for ``url_for``.
        navigation: Top-level menu entries, exposed as ``navigation``.
        env: Jinja2 environment.
    """

    def __init__(
        self,
        input_dir: Path,
        data: dict[str, Any],
        collections: CollectionSet | None = None,
        root_url: str = "",
        aliases: dict[str, str] | None = None,
        navigation: list[NavEntry] | None = None,
        markdown: MarkdownRenderer | None = None,
    ):
        self.input_dir = input_dir
        self.data = data
        self.collections = collections
        self.root_url = root_url or ""
        self.aliases = dict(LAYOUT_ALIASES if aliases is None else aliases)
        self.navigation = navigation or []
        self.markdown = markdown or MarkdownRenderer()
        self.env = Environment(
            loader=FileSystemLoader(
                [
                    input_dir / LAYOUTS_DIR,
                    input_dir / INCLUDES_DIR,
                    input_dir,
                ]
            ),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
        )
        self._layouts: dict[str, tuple[Template, dict[str, Any]]] = {}
        self._install_globals()

    def _install_globals(self) -> None:
        self.env.globals["data"] = self.data
        self.env.globals["collections"] = self.collections
        self.env.globals["navigation"] = self.navigation
        self.env.globals["icon"] = icon
        self.env.globals["current_build_date"] = current_build_date
        self.env.globals["url_for"] = self._url_for
        self.env.filters["readable_date"] = readable_date
        self.env.filters["html_date_string"] = html_date_string
        self.env.filters["head"] = head

    def _url_for(self, path: str) -> str:
        """Generate a URL for a path, applying root_url if configured."""
        if path.startswith(("http://", "https://", "//")):
            return path
        normalized = path if path.startswith("/") else f"/{path}"
        if self.root_url:
            return join_root_url(self.root_url, normalized)
        return normalized

    def _context(self, item: ContentItem) -> dict[str, Any]:
        context: dict[str, Any] = dict(item.data)
        context.update(
            {
                "data": self.data,
                "page": item,
                "title": item.title,
                "collections": self.collections,
                "navigation": self.navigation,
            }
        )
        return context

    def render_item(self, item: ContentItem) -> str:
        """Render an item's body and wrap it in its layout chain."""
        context = self._context(item)
        body = self._render_body(item, context)
        return self._apply_layouts(item.layout, body, context)

    def expand_markdown(self, item: ContentItem) -> str:
        """HTML for a Markdown item with its template tags expanded first.

        Bodies without ``{{``, ``{%`` or ``{#`` keep the HTML rendered at
        discovery.
        """
        if item.source_type != "markdown" or not _TEMPLATE_TAG_RE.search(item.body):
            return item.content
        source = self.env.from_string(item.body).render(self._context(item))
        return self.markdown.render(source)

    def _render_body(self, item: ContentItem, context: dict[str, Any]) -> str:
        if item.source_type == "jinja":
            return self.env.from_string(item.content).render(context)
        return item.content

    def _apply_layouts(self, layout: str | None, body: str, context: dict[str, Any]) -> str:
        seen: list[str] = []
        while layout:
            if layout in seen or len(seen) >= MAX_LAYOUT_DEPTH:
                raise LayoutCycleError(" -> ".join(seen + [layout]))
            seen.append(layout)
            try:
                template, frontmatter = self._load_layout(layout)
            except TemplateNotFound as exc:
                print(f"Layout not found ({exc}); rendering body only.")
                return body
            body = template.render({**frontmatter, **context, "content": Markup(body)})
            parent = frontmatter.get("layout")
            layout = self.aliases.get(str(parent), str(parent)) if parent else None
        return body

    def _load_layout(self, name: str) -> tuple[Template, dict[str, Any]]:
        if name not in self._layouts:
            source, _, _ = self.env.loader.get_source(self.env, name)
            frontmatter, body = extract_frontmatter(source)
            self._layouts[name] = (self.env.from_string(body), frontmatter)
        return self._layouts[name]

    def render_string(self, template: str, context: dict[str, Any]) -> str:
        return self.env.from_string(template).render(**context)
