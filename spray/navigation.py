"""Site navigation menu.

Any page can put itself in the menu with front matter::

    navigation:
      key: Lisbon
      title: Lisbon, 2024
      parent: Travel
      order: 3

``key`` is required; ``title`` defaults to it. Entries with a ``parent``
are nested under the entry with that key, and every level is sorted by
``order`` then ``key``. Generators that write files outside the item list
(the feed) contribute their own entries.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .content import ContentItem

NAV_FIELD = "navigation"


@dataclass
class NavEntry:
    key: str
    url: str
    title: str = ""
    order: float = 0
    parent: str | None = None
    children: list[NavEntry] = field(default_factory=list)

    def __post_init__(self):
        if not self.title:
            self.title = self.key


def _order(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def nav_entry(options: Any, url: str) -> NavEntry | None:
    """NavEntry for a ``navigation`` mapping, or None when it has no key."""
    if not isinstance(options, Mapping) or not options.get("key"):
        return None
    parent = options.get("parent")
    return NavEntry(
        key=str(options["key"]),
        url=str(options.get("url") or url),
        title=str(options.get("title") or ""),
        order=_order(options.get("order", 0)),
        parent=str(parent) if parent else None,
    )


def _has_cycle(entry: NavEntry, by_key: Mapping[str, NavEntry]) -> bool:
    seen = {entry.key}
    parent = entry.parent
    while parent in by_key:
        if parent in seen:
            return True
        seen.add(parent)
        parent = by_key[parent].parent
    return False


def _sort(entries: list[NavEntry]) -> None:
    entries.sort(key=lambda entry: (entry.order, entry.key))
    for entry in entries:
        _sort(entry.children)


def build_navigation(items: Iterable[ContentItem], extra: Iterable[NavEntry] = ()) -> list[NavEntry]:
    """Top-level menu entries, children nested, every level ordered.

    Items without an output URL never appear. An entry whose parent is
    unknown, or whose parents loop back to it, stays at the top level.
    """
    entries = [
        entry
        for entry in (nav_entry(item.data.get(NAV_FIELD), item.url) for item in items if item.url is not None)
        if entry is not None
    ]
    entries.extend(extra)
    by_key = {entry.key: entry for entry in entries}
    roots: list[NavEntry] = []
    for entry in entries:
        parent = by_key.get(entry.parent) if entry.parent else None
        if parent is None or parent is entry or _has_cycle(entry, by_key):
            roots.append(entry)
        else:
            parent.children.append(entry)
    _sort(roots)
    return roots
