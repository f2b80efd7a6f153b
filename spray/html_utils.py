"""Markup string helpers.

Every function here is a pure string transformation over rendered HTML:
minifying sprite and icon markup, making site URLs absolute for feeds and
``root_url`` builds, pointing links at source files to their output URLs,
and giving headings ids.
"""

from __future__ import annotations

import re
from urllib.parse import urljoin

_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_BETWEEN_TAGS_RE = re.compile(r">\s+<")
_WHITESPACE_RE = re.compile(r"\s+")
_URL_ATTR_RE = re.compile(r"""\b(href|src|action)=(["'])([^"']+)\2""")
_UNTOUCHED_SCHEMES = ("http:", "https:", "//", "mailto:", "tel:", "#", "javascript:")


def minify_markup(
    markup: str,
    remove_comments: bool = True,
    collapse_whitespace: bool = True,
) -> str:
    """Minify an HTML/SVG fragment.

    Removes ``<!-- ... -->`` comments, drops whitespace between tags and
    collapses every remaining whitespace run to a single space.

    Args:
        markup: Markup to minify.
        remove_comments: Strip comment markup.
        collapse_whitespace: Collapse and trim whitespace.

    Examples:
        >>> minify_markup('<svg>\\n  <!-- x -->\\n  <use></use>\\n</svg>')
        '<svg><use></use></svg>'
    """
    if remove_comments:
        markup = _COMMENT_RE.sub("", markup)
    if collapse_whitespace:
        markup = _BETWEEN_TAGS_RE.sub("><", markup)
        markup = _WHITESPACE_RE.sub(" ", markup).strip()
    return markup


def join_root_url(root_url: str, path: str) -> str:
    """``root_url`` and ``path`` joined by exactly one slash."""
    if not root_url:
        return path
    return "/".join((root_url.rstrip("/"), path.lstrip("/")))


def absolutize_html_urls(html: str, root_url: str, page_url: str | None = None) -> str:
    """Make href/src/action URLs absolute against ``root_url``.

    ``/about`` becomes ``<root_url>/about``. A page-relative URL such as
    ``photo.jpg`` is first resolved against ``page_url``; without one it is
    kept as written. Other schemes and fragment links are never touched.

    Examples:
        >>> absolutize_html_urls('<img src="a.jpg">', 'https://example.com', '/posts/x/')
        '<img src="https://example.com/posts/x/a.jpg">'
    """
    if not root_url:
        return html

    def rewrite(match: re.Match) -> str:
        attr, quote, url = match.groups()
        if url.startswith(_UNTOUCHED_SCHEMES):
            return match.group(0)
        if not url.startswith("/"):
            if page_url is None:
                return match.group(0)
            url = urljoin(page_url, url)
        return f"{attr}={quote}{join_root_url(root_url, url)}{quote}"

    return _URL_ATTR_RE.sub(rewrite, html)


_TAG_RE = re.compile(r"<[^>]+>")
_NON_WORD_RE = re.compile(r"[^\w\s-]")
_SEPARATOR_RE = re.compile(r"[-\s]+")
_HEADING_RE = re.compile(r"<h([1-6])((?:\s[^>]*)?)>(.*?)</h\1\s*>", re.IGNORECASE | re.DOTALL)
_ID_ATTR_RE = re.compile(r"""(?<![\w-])id\s*=\s*["']([^"']*)["']""", re.IGNORECASE)


def heading_slug(text: str) -> str:
    """Slug for a heading's inner HTML: ``Hello <em>World</em>`` -> ``hello-world``."""
    plain = _TAG_RE.sub("", text).lower().strip()
    return _SEPARATOR_RE.sub("-", _NON_WORD_RE.sub("", plain)).strip("-")


class HeadingIds:
    """Hands out heading ids unique within one document.

    Ids in ``taken`` are never handed out; a repeated slug gets ``-1``,
    ``-2``... appended.
    """

    def __init__(self, taken=()):
        self._used = set(taken)

    def next(self, text: str) -> str:
        base = heading_slug(text) or "section"
        candidate, n = base, 0
        while candidate in self._used:
            n += 1
            candidate = f"{base}-{n}"
        self._used.add(candidate)
        return candidate


def add_heading_ids(html: str) -> str:
    """Give every ``<h1>``-``<h6>`` without an ``id`` one derived from its text.

    Existing ids anywhere in the document are kept and never reused.

    Examples:
        >>> add_heading_ids('<h2>Intro</h2><h2 id="intro">Again</h2>')
        '<h2 id="intro-1">Intro</h2><h2 id="intro">Again</h2>'
    """
    ids = HeadingIds(_ID_ATTR_RE.findall(html))

    def tag(match: re.Match) -> str:
        level, attrs, inner = match.groups()
        if _ID_ATTR_RE.search(attrs):
            return match.group(0)
        return f'<h{level} id="{ids.next(inner)}"{attrs}>{inner}</h{level}>'

    return _HEADING_RE.sub(tag, html)


def rewrite_input_paths(html: str, urls: dict[str, str]) -> str:
    """Replace links to source files with the URLs those files are built to.

    ``urls`` maps source paths (``posts/travel/lisbon.md``) to output URLs.
    A leading ``/`` or ``./`` on the link is ignored, and any ``?query`` or
    ``#fragment`` is carried over.

    Examples:
        >>> rewrite_input_paths('<a href="/about.md#team">', {"about.md": "/about/"})
        '<a href="/about/#team">'
    """
    if not urls:
        return html

    def rewrite(match: re.Match) -> str:
        attr, quote, url = match.groups()
        path, marker, rest = url.partition("#")
        path, qmark, query = path.partition("?")
        key = path[2:] if path.startswith("./") else path.lstrip("/")
        target = urls.get(key)
        if target is None:
            return match.group(0)
        suffix = f"{qmark}{query}{marker}{rest}"
        return f"{attr}={quote}{target}{suffix}{quote}"

    return _URL_ATTR_RE.sub(rewrite, html)
