"""Content discovery and processing for Spray.

This module scans the input directory for pages, parses their front
matter, renders Markdown and produces :class:`ContentItem` records. The
collection builders in :mod:`spray.collections` select from these items.

Key classes:
- ContentItem: One discovered source document.
- FileContentLoader: Discovers page files in a stable order.
- LayoutResolver: Maps layout aliases and categories to template names.
- UrlDeriver: Derives output URLs from paths and permalinks.
- DefaultItemBuilder: Builds a ContentItem from a source file.
- ContentProcessor: Facade tying loader and builder together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any

from .config import ASSETS_DIR, DATA_DIR, INCLUDES_DIR, LAYOUT_ALIASES, LAYOUTS_DIR
from .extractors import CompositeMetadataExtractor, default_metadata_extractor
from .patterns import ContentCategory, category_for
from .protocols import ContentLoader, ItemBuilder
from .renderers import RendererRegistry, default_renderer_registry
from .utils import is_markdown, is_template, slugify, to_posix

# Directories directly under the input dir that never hold pages.
RESERVED_DIRS = frozenset({INCLUDES_DIR, LAYOUTS_DIR, DATA_DIR, ASSETS_DIR})

CATEGORY_LAYOUTS: dict[ContentCategory, str] = {
    ContentCategory.POSTS: "post",
    ContentCategory.DRAFTS: "draft",
    ContentCategory.NOTES: "note",
}
DEFAULT_LAYOUT = "page"


class ContentError(Exception):
    """A source file that cannot be read as UTF-8 text."""

    def __init__(self, source_path: Path, message: str, original_error: Exception | None = None):
        super().__init__(f"{source_path}: {message}")
        self.source_path = source_path
        self.message = message
        self.original_error = original_error


@dataclass
class ContentItem:
    """One discovered source document.

    Attributes:
        source_path: POSIX path relative to the project root, unique per item.
        data: Front matter. ``permalink: false`` keeps the item out of the
            output; ``draft: true`` marks a draft.
        path: Absolute filesystem path of the source.
        body: Source text with front matter removed.
        content: Rendered HTML (Markdown) or Jinja source (templates).
        title: Page title.
        date: Publication date.
        description: Short plain-text description.
        url: Output URL, or None when the permalink is disabled.
        slug: URL-friendly name.
        layout: Template name to wrap the content in, or None.
        category: Content category when the path matches one.
        source_type: "markdown" or "jinja".
    """

    source_path: str
    data: dict[str, Any]
    path: Path
    body: str = ""
    content: str = ""
    title: str = ""
    date: datetime = field(default_factory=datetime.now)
    description: str = ""
    url: str | None = None
    slug: str = ""
    layout: str | None = None
    category: ContentCategory | None = None
    source_type: str = "markdown"

    @property
    def permalink_disabled(self) -> bool:
        return self.data.get("permalink") is False

    @property
    def draft(self) -> bool:
        return bool(self.data.get("draft"))

    @property
    def output_path(self) -> str | None:
        """Path of the written file relative to the output dir."""
        if self.url is None:
            return None
        if self.url.endswith("/"):
            return f"{self.url.strip('/')}/index.html".lstrip("/")
        return self.url.lstrip("/")


class FileContentLoader:
    """Discovers page files under the input directory.

    Files are returned sorted by their relative path so the discovery
    order, and with it every collection order, is stable across builds.

    Attributes:
        input_dir: Directory containing site content.
    """

    def __init__(self, input_dir: Path):
        self.input_dir = input_dir

    def iter_files(self) -> list[Path]:
        files: list[Path] = []
        for path in self.input_dir.rglob("*"):
            if path.is_dir():
                continue
            rel = path.relative_to(self.input_dir)
            if len(rel.parts) > 1 and rel.parts[0] in RESERVED_DIRS:
                continue
            if any(part.startswith((".", "_")) for part in rel.parts):
                continue
            if is_markdown(path) or is_template(path):
                files.append(path)
        return sorted(files, key=lambda p: p.relative_to(self.input_dir).as_posix())


class LayoutResolver:
    """Resolves the layout template for an item.

    An explicit ``layout`` in front matter wins and goes through the alias
    table; ``layout: null`` or ``layout: false`` renders without a layout.
    Otherwise the category decides (posts use ``post``, notes ``note``...)
    and everything else uses ``page``.
    """

    def __init__(self, aliases: dict[str, str] | None = None):
        self.aliases = dict(LAYOUT_ALIASES if aliases is None else aliases)

    def resolve(self, data: dict[str, Any], category: ContentCategory | None) -> str | None:
        if "layout" in data:
            layout = data["layout"]
            if not layout:
                return None
            return self.aliases.get(str(layout), str(layout))
        name = CATEGORY_LAYOUTS.get(category, DEFAULT_LAYOUT) if category else DEFAULT_LAYOUT
        return self.aliases.get(name, name)


class UrlDeriver:
    """Derives output URLs for items."""

    def derive(self, rel: PurePosixPath, data: dict[str, Any]) -> str | None:
        """Derive the URL for an item.

        Args:
            rel: Path relative to the input directory.
            data: Front matter; a string ``permalink`` overrides the path.

        Returns:
            URL path, or None when ``permalink`` is False.
        """
        permalink = data.get("permalink")
        if permalink is False:
            return None
        if isinstance(permalink, str) and permalink.strip():
            url = permalink.strip()
            return url if url.startswith("/") else f"/{url}"
        stem = rel.name.split(".")[0]
        slug = slugify(stem)
        segments = [p for p in rel.parent.parts if p]
        url_parts = segments if slug == "index" else segments + [slug]
        path = "/".join(url_parts)
        return f"/{path}/" if path else "/"


class DefaultItemBuilder:
    """Builds ContentItem objects from source files.

    Attributes:
        project_root: Root directory of the project.
        input_dir: Directory containing site content.
        renderer_registry: Registry of content renderers.
        metadata_extractor: Composite metadata extractor.
    """

    def __init__(
        self,
        project_root: Path,
        input_dir: Path,
        renderer_registry: RendererRegistry | None = None,
        metadata_extractor: CompositeMetadataExtractor | None = None,
        layout_resolver: LayoutResolver | None = None,
    ):
        self.project_root = project_root
        self.input_dir = input_dir
        self.renderer_registry = renderer_registry or default_renderer_registry
        self.metadata_extractor = metadata_extractor or default_metadata_extractor
        self.layout_resolver = layout_resolver or LayoutResolver()
        self.url_deriver = UrlDeriver()

    def build(self, path: Path) -> ContentItem:
        rel = PurePosixPath(to_posix(path.relative_to(self.input_dir)))
        source_path = to_posix(path.relative_to(self.project_root))
        try:
            raw_body = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ContentError(path, f"Not valid UTF-8 ({exc.reason} at byte {exc.start})", exc) from exc
        except OSError as exc:
            raise ContentError(path, f"Cannot read file: {exc.strerror or exc}", exc) from exc

        metadata = self.metadata_extractor.extract(raw_body, path)
        data = metadata.get("frontmatter", {})
        body = metadata.get("body", raw_body)

        renderer = self.renderer_registry.get_renderer(path)
        if renderer:
            source_type = renderer.source_type
            content = renderer.render(body)
        else:
            source_type = "unknown"
            content = body

        category = category_for(source_path)
        return ContentItem(
            source_path=source_path,
            data=data,
            path=path,
            body=body,
            content=content,
            title=metadata.get("title", ""),
            date=metadata.get("date", datetime.now()),
            description=metadata.get("description", ""),
            url=self.url_deriver.derive(rel, data),
            slug=slugify(rel.name.split(".")[0]),
            layout=self.layout_resolver.resolve(data, category),
            category=category,
            source_type=source_type,
        )


class ContentProcessor:
    """Facade for discovering and building every item in a project.

    Attributes:
        project_root: Root directory of the project.
        input_dir: Directory containing site content.
    """

    def __init__(
        self,
        project_root: Path,
        input_dir: Path | None = None,
        content_loader: ContentLoader | None = None,
        item_builder: ItemBuilder | None = None,
    ):
        self.project_root = project_root
        self.input_dir = input_dir or project_root / "src"
        self._content_loader = content_loader or FileContentLoader(self.input_dir)
        self._item_builder = item_builder or DefaultItemBuilder(project_root, self.input_dir)

    def load(self) -> list[ContentItem]:
        """Discover and build all items, in discovery order.

        Drafts are always loaded; whether they are published is decided
        by the collection builders, not here.
        """
        return [self._item_builder.build(path) for path in self._content_loader.iter_files()]
