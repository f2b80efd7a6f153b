"""Protocol definitions for Spray.

These protocols describe the seams of the content pipeline so alternate
renderers, extractors, loaders and builders can be plugged in (and faked
in tests) without subclassing the defaults.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .content import ContentItem


@runtime_checkable
class ContentRenderer(Protocol):
    """Renders one kind of page source (Markdown, Jinja)."""

    @abstractmethod
    def can_render(self, path: Path) -> bool:
        ...

    @abstractmethod
    def render(self, content: str) -> str:
        """Render source (front matter already removed) to HTML."""
        ...

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Return the source type identifier ('markdown' or 'jinja')."""
        ...


@runtime_checkable
class MetadataExtractor(Protocol):
    """Extracts one kind of metadata from a page body and its front matter."""

    @abstractmethod
    def extract(self, body: str, path: Path, frontmatter: dict[str, Any]) -> dict[str, Any]:
        ...


@runtime_checkable
class ContentLoader(Protocol):
    """Discovers page files, in a stable order."""

    @abstractmethod
    def iter_files(self) -> list[Path]:
        ...


@runtime_checkable
class ItemBuilder(Protocol):
    """Builds a ContentItem from a source file."""

    @abstractmethod
    def build(self, path: Path) -> ContentItem:
        ...
