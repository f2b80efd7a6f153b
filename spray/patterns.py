"""Content categories and the path patterns that select them.

Each category maps to a :class:`PathPattern` instead of a glob string so
matching can be tested without touching the filesystem. Depth counts the
path segments below the pattern root, file name included:

- ``posts``: ``src/posts/<category>/<slug>.md`` (exactly two levels)
- ``drafts``: ``src/drafts/**/<slug>.md`` (any depth)
- ``notes``: ``src/notes/<slug>.md`` (exactly one level)

Posts are grouped into category folders while notes are flat; keep the
depths as they are, changing them changes which files get published.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath


@dataclass(frozen=True)
class PathPattern:
    """Structured replacement for a glob like ``src/posts/*/*.md``.

    Attributes:
        root: Directory the pattern is anchored to, relative to the project root.
        depth: Number of segments below ``root`` including the file name,
            or None to accept any depth of at least one.
        extensions: Accepted file suffixes, lower case with leading dot.
    """

    root: str
    depth: int | None = 1
    extensions: tuple[str, ...] = (".md",)

    def matches(self, source_path: str) -> bool:
        path = PurePosixPath(source_path.replace("\\", "/"))
        root = PurePosixPath(self.root)
        try:
            rel = path.relative_to(root)
        except ValueError:
            return False
        parts = rel.parts
        if not parts or ".." in parts:
            return False
        if self.depth is not None and len(parts) != self.depth:
            return False
        return path.suffix.lower() in self.extensions

    def as_glob(self) -> str:
        """Render the pattern back to the equivalent glob string."""
        middle = "**/" if self.depth is None else "*/" * (self.depth - 1)
        if len(self.extensions) == 1:
            name = f"*{self.extensions[0]}"
        else:
            name = "*.{" + ",".join(ext.lstrip(".") for ext in self.extensions) + "}"
        return f"{self.root}/{middle}{name}"


class ContentCategory(str, Enum):
    POSTS = "posts"
    DRAFTS = "drafts"
    NOTES = "notes"


CONTENT_PATTERNS: dict[ContentCategory, PathPattern] = {
    ContentCategory.POSTS: PathPattern("src/posts", depth=2),
    ContentCategory.DRAFTS: PathPattern("src/drafts", depth=None),
    ContentCategory.NOTES: PathPattern("src/notes", depth=1),
}

# Media copied next to a post's output (see spray.assets.PageAssetCopier).
MEDIA_EXTENSIONS: tuple[str, ...] = (".jpg", ".png", ".gif", ".mp4", ".webp", ".webm")
PAGE_ASSET_POSTS = PathPattern("src/posts", depth=2)


def category_for(source_path: str) -> ContentCategory | None:
    """Return the first category whose pattern matches a source path."""
    for category, pattern in CONTENT_PATTERNS.items():
        if pattern.matches(source_path):
            return category
    return None


def is_media(name: str) -> bool:
    return PurePosixPath(name).suffix.lower() in MEDIA_EXTENSIONS
