"""Small helpers shared across Spray.

Names and dates come from file names (``2024-05-01-lisbon.md``), titles
and descriptions from page bodies, and a few predicates classify source
paths. The HTML helpers live in :mod:`spray.html_utils` and are re-exported
here.
"""

from __future__ import annotations

import re
import shutil
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from .html_utils import (  # noqa: F401
    absolutize_html_urls,
    add_heading_ids,
    join_root_url,
    minify_markup,
    rewrite_input_paths,
)

# YYYY-MM-DD at the start of a file name, followed by the rest of the name.
DATE_PREFIX_RE = re.compile(r"^(?P<y>\d{4})-(?P<m>\d{1,2})-(?P<d>\d{1,2})(?:-(?P<rest>.+))?$")
_NON_SLUG_RE = re.compile(r"[^a-zA-Z0-9]+")
_WORD_SPLIT_RE = re.compile(r"[\s\-_]+")
_TAG_RE = re.compile(r"<[^>]+>")
_JINJA_RE = re.compile(r"\{[%#{].*?[%#}]\}")

# Blocks that never make a good description.
_SKIPPED_BLOCK_PREFIXES = ("#", "![", "```", "---", "<!--")


def _strip_date_prefix(name: str) -> str:
    match = DATE_PREFIX_RE.match(name)
    if match and match.group("rest"):
        return match.group("rest")
    return name


def slugify(name: str) -> str:
    """Turn a file stem into a URL slug, without any date prefix.

    Examples:
        >>> slugify("2024-05-01-Hello World")
        'hello-world'
    """
    slug = _NON_SLUG_RE.sub("-", _strip_date_prefix(name)).strip("-").lower()
    return slug or "index"


def titleize(filename: str) -> str:
    """Human-readable title from a file name.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'
    """
    stem = _strip_date_prefix(Path(filename).name.split(".")[0])
    words = [word.capitalize() for word in _WORD_SPLIT_RE.split(stem) if word]
    return " ".join(words) or "Untitled"


def extract_date_from_name(name: str) -> datetime | None:
    match = DATE_PREFIX_RE.match(name)
    if not match:
        return None
    try:
        return datetime(int(match.group("y")), int(match.group("m")), int(match.group("d")))
    except ValueError:
        return None


def coerce_datetime(value: Any) -> datetime | None:
    """Turn a front matter date value into a datetime.

    PyYAML already parses ISO dates into ``date``/``datetime`` objects;
    strings are accepted in ISO format. Anything else yields None. Aware
    values are converted to naive UTC so every item date compares.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return None


def first_paragraph(text: str, limit: int = 160) -> str:
    """Plain text of the first prose block in a Markdown body.

    Headings, images, code fences, rules and comments are skipped; tags
    and Jinja syntax are removed and whitespace collapsed.
    """
    for block in text.split("\n\n"):
        block = block.strip()
        if not block or block.startswith(_SKIPPED_BLOCK_PREFIXES):
            continue
        plain = " ".join(_JINJA_RE.sub("", _TAG_RE.sub("", block)).split())
        if plain:
            return plain[:limit]
    return ""


def ensure_clean_dir(path: Path) -> None:
    """Create ``path`` as an empty directory, removing what was there."""
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def is_markdown(path: Path) -> bool:
    return path.suffix.lower() == ".md"


def is_template(path: Path) -> bool:
    """True for ``.jinja`` pages, including ``.html.jinja``."""
    return path.suffix == ".jinja"


def to_posix(path: Path | str) -> str:
    return Path(path).as_posix()
