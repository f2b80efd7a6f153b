"""Named collections over discovered content items.

Collections are recomputed on every build from the full discovery-ordered
item list. They hold references only; filtering never copies or mutates
an item.

- ``posts``: two-level ``src/posts`` items, without disabled permalinks,
  and without drafts in production builds.
- ``drafts``: ``src/drafts`` items without disabled permalinks.
- ``notes``: single-level ``src/notes`` items, newest discovered first.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import TYPE_CHECKING

from .patterns import CONTENT_PATTERNS, ContentCategory, PathPattern

if TYPE_CHECKING:
    from .content import ContentItem


class ItemCollection(Sequence["ContentItem"]):
    """Read-only, ordered view over content items for templates and code."""

    def __init__(self, items: Iterable[ContentItem]):
        self._items = list(items)

    def __iter__(self) -> Iterator[ContentItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return ItemCollection(self._items[item])
        return self._items[item]

    def newest_first(self) -> ItemCollection:
        """Sort by date, newest first; ties keep discovery order."""
        return ItemCollection(sorted(self._items, key=lambda i: i.date, reverse=True))

    def latest(self, count: int = 5) -> ItemCollection:
        return self.newest_first()[:count]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"ItemCollection({len(self._items)} items)"


def _permalink_enabled(item: ContentItem) -> bool:
    data = getattr(item, "data", None) or {}
    return data.get("permalink") is not False


def _is_draft(item: ContentItem) -> bool:
    data = getattr(item, "data", None) or {}
    return bool(data.get("draft"))


def filter_by_pattern(items: Iterable[ContentItem], pattern: PathPattern) -> list[ContentItem]:
    """Select items whose source path matches a pattern, keeping order."""
    return [item for item in items if pattern.matches(item.source_path)]


def build_posts(
    items: Iterable[ContentItem],
    is_production: bool,
    patterns: Mapping[ContentCategory, PathPattern] = CONTENT_PATTERNS,
) -> ItemCollection:
    """Published posts in discovery order.

    Args:
        items: Every discovered item, in discovery order.
        is_production: Drop drafts when True.
        patterns: Category pattern table.
    """
    selected = filter_by_pattern(items, patterns[ContentCategory.POSTS])
    selected = [item for item in selected if _permalink_enabled(item)]
    if is_production:
        selected = [item for item in selected if not _is_draft(item)]
    return ItemCollection(selected)


def build_drafts(
    items: Iterable[ContentItem],
    patterns: Mapping[ContentCategory, PathPattern] = CONTENT_PATTERNS,
) -> ItemCollection:
    """Every draft with an enabled permalink, whatever the build mode."""
    selected = filter_by_pattern(items, patterns[ContentCategory.DRAFTS])
    return ItemCollection(item for item in selected if _permalink_enabled(item))


def build_notes(
    items: Iterable[ContentItem],
    patterns: Mapping[ContentCategory, PathPattern] = CONTENT_PATTERNS,
) -> ItemCollection:
    """Notes in reverse discovery order. No permalink or draft filtering."""
    selected = filter_by_pattern(items, patterns[ContentCategory.NOTES])
    selected.reverse()
    return ItemCollection(selected)


def build_collections(
    items: Iterable[ContentItem],
    is_production: bool,
    patterns: Mapping[ContentCategory, PathPattern] = CONTENT_PATTERNS,
) -> dict[str, ItemCollection]:
    """Build every named collection from one discovery pass."""
    items = list(items)
    return {
        ContentCategory.POSTS.value: build_posts(items, is_production, patterns),
        ContentCategory.DRAFTS.value: build_drafts(items, patterns),
        ContentCategory.NOTES.value: build_notes(items, patterns),
    }


class CollectionSet(Mapping[str, ItemCollection]):
    """Mapping of collection name to ItemCollection, with attribute access.

    Templates can write ``collections.posts`` or ``collections["posts"]``.
    ``all`` holds every item in discovery order.
    """

    def __init__(self, items: Iterable[ContentItem], is_production: bool):
        items = list(items)
        self.is_production = is_production
        self._mapping = {"all": ItemCollection(items)}
        self._mapping.update(build_collections(items, is_production))

    def __getitem__(self, key: str) -> ItemCollection:
        return self._mapping[key]

    def __getattr__(self, name: str) -> ItemCollection:
        try:
            return self.__dict__["_mapping"][name]
        except KeyError:
            raise AttributeError(name) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"CollectionSet({', '.join(self._mapping)})"
