"""Page renderers.

Markdown goes through mistune with a renderer that gives every heading a
unique ``id`` and highlights fenced code with Pygments. Code blocks carry
``tabindex="0"`` so keyboard users can scroll them. Jinja pages are not
rendered here; the TemplateEngine renders them, and expands template tags
in Markdown bodies, with collections and globals in scope.
"""

from __future__ import annotations

from pathlib import Path

import mistune
from markupsafe import escape
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .html_utils import HeadingIds
from .protocols import ContentRenderer
from .utils import is_markdown, is_template

PRE_ATTRIBUTES = {"tabindex": "0"}
MARKDOWN_PLUGINS = ("strikethrough", "footnotes", "table", "url")


def _pre_open() -> str:
    attrs = "".join(f' {key}="{value}"' for key, value in PRE_ATTRIBUTES.items())
    return f"<pre{attrs}>"


def highlight_code(code: str, lang: str) -> str | None:
    """Pygments HTML for ``code``, or None when ``lang`` is unknown."""
    try:
        lexer = get_lexer_by_name(lang, stripall=True)
    except ClassNotFound:
        return None
    html = highlight(code, lexer, HtmlFormatter(cssclass="highlight"))
    return html.replace("<pre>", _pre_open(), 1)


class _BlogRenderer(mistune.HTMLRenderer):
    def __init__(self):
        super().__init__(escape=False)
        self.heading_ids = HeadingIds()

    def heading(self, text: str, level: int, **attrs) -> str:
        return f'<h{level} id="{self.heading_ids.next(text)}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        lang = info.split()[0] if info and info.strip() else ""
        if lang:
            highlighted = highlight_code(code, lang)
            if highlighted is not None:
                return highlighted
        lang_class = f' class="language-{escape(lang)}"' if lang else ""
        return f"{_pre_open()}<code{lang_class}>{escape(code)}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown content to HTML.

    A fresh mistune parser is created per document so heading ids only
    need to be unique within one page.
    """

    source_type = "markdown"

    def can_render(self, path: Path) -> bool:
        return is_markdown(path)

    def render(self, content: str) -> str:
        markdown = mistune.create_markdown(renderer=_BlogRenderer(), plugins=list(MARKDOWN_PLUGINS))
        return markdown(content)


class JinjaContentRenderer:
    """Leaves Jinja source untouched for the TemplateEngine."""

    source_type = "jinja"

    def can_render(self, path: Path) -> bool:
        return is_template(path)

    def render(self, content: str) -> str:
        return content


class RendererRegistry:
    """Renderers checked in order; the first that accepts a path wins."""

    def __init__(self, renderers: list[ContentRenderer] | None = None):
        if renderers is None:
            renderers = [MarkdownRenderer(), JinjaContentRenderer()]
        self._renderers = list(renderers)

    def get_renderer(self, path: Path) -> ContentRenderer | None:
        return next((r for r in self._renderers if r.can_render(path)), None)


default_renderer_registry = RendererRegistry()
