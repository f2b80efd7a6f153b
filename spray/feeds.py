"""Feed generation for Spray.

Builds the Atom feed for the ``posts`` collection. The feed carries an
``xml-stylesheet`` processing instruction so browsers render it with the
bundled ``pretty-atom-feed.xsl`` instead of raw XML.

Classes:
    FeedGenerator: Abstract base for feed generators.
    AtomFeedGenerator: Generates the Atom 1.0 feed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any
from xml.etree.ElementTree import Element, SubElement, tostring

from .html_utils import absolutize_html_urls, join_root_url
from .navigation import NavEntry, nav_entry

if TYPE_CHECKING:
    from .content import ContentItem

ATOM_NS = "http://www.w3.org/2005/Atom"


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class FeedGenerator(ABC):
    """Abstract base class for feed generators."""

    @property
    @abstractmethod
    def output_path(self) -> str:
        """Return the output path relative to the output directory."""
        ...

    @abstractmethod
    def generate(self, items: Iterable[ContentItem]) -> str | None:
        """Generate feed content, or None when the feed should be skipped."""
        ...

    def write(self, output_dir: Path, items: Iterable[ContentItem]) -> bool:
        """Generate and write the feed. Returns False if skipped."""
        content = self.generate(items)
        if content is None:
            return False
        target = output_dir / self.output_path.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return True


class AtomFeedGenerator(FeedGenerator):
    """Generates an Atom 1.0 feed.

    Attributes:
        metadata: ``language``, ``title``, ``subtitle``, ``base`` and
            ``author.name`` for the feed header.
        limit: Maximum number of entries; 0 means no limit.
        stylesheet: Optional XSL stylesheet href.
        navigation: Menu entry options for the feed (``key``, ``order``...).
    """

    def __init__(
        self,
        metadata: Mapping[str, Any],
        output_path: str = "/feed.xml",
        limit: int = 0,
        stylesheet: str | None = None,
        navigation: Mapping[str, Any] | None = None,
    ):
        self.metadata = dict(metadata)
        self._output_path = output_path
        self.limit = limit
        self.stylesheet = stylesheet
        self.navigation = dict(navigation or {})

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> AtomFeedGenerator:
        feed = config.get("feed") or {}
        return cls(
            metadata=feed.get("metadata") or {},
            output_path=feed.get("output_path", "/feed.xml"),
            limit=int(feed.get("limit") or 0),
            stylesheet=feed.get("stylesheet"),
            navigation=feed.get("navigation"),
        )

    @property
    def output_path(self) -> str:
        return self._output_path

    @property
    def base(self) -> str:
        return str(self.metadata.get("base") or "")

    def nav_entry(self) -> NavEntry | None:
        """The feed's own menu entry, linking to the feed file."""
        return nav_entry(self.navigation, self.output_path)

    def generate(self, items: Iterable[ContentItem]) -> str | None:
        entries = sorted(
            (item for item in items if item.url is not None),
            key=lambda item: item.date,
            reverse=True,
        )
        if self.limit:
            entries = entries[: self.limit]

        feed = Element("feed", {"xmlns": ATOM_NS})
        language = self.metadata.get("language")
        if language:
            feed.set("xml:lang", str(language))
        SubElement(feed, "title").text = str(self.metadata.get("title", ""))
        subtitle = self.metadata.get("subtitle")
        if subtitle:
            SubElement(feed, "subtitle").text = str(subtitle)
        SubElement(feed, "link", {"href": join_root_url(self.base, self.output_path), "rel": "self"})
        SubElement(feed, "link", {"href": self.base})
        updated = entries[0].date if entries else datetime.now(timezone.utc)
        SubElement(feed, "updated").text = _iso(updated)
        SubElement(feed, "id").text = self.base
        author = self.metadata.get("author") or {}
        if author.get("name"):
            author_el = SubElement(feed, "author")
            SubElement(author_el, "name").text = str(author["name"])
            if author.get("email"):
                SubElement(author_el, "email").text = str(author["email"])

        for item in entries:
            link = join_root_url(self.base, item.url)
            entry = SubElement(feed, "entry")
            SubElement(entry, "title").text = item.title
            SubElement(entry, "link", {"href": link})
            SubElement(entry, "updated").text = _iso(item.date)
            SubElement(entry, "id").text = link
            content = SubElement(entry, "content", {"type": "html"})
            content.text = absolutize_html_urls(item.content, self.base, item.url)

        header = ['<?xml version="1.0" encoding="utf-8"?>']
        if self.stylesheet:
            href = self.stylesheet if self.stylesheet.startswith("/") else f"/{self.stylesheet}"
            header.append(f'<?xml-stylesheet href="{href}" type="text/xsl"?>')
        header.append(tostring(feed, encoding="unicode"))
        return "\n".join(header)
