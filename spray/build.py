"""Building the blog.

``build_site`` reads ``spray.yaml`` and ``src/data/*.yaml``, expands template
tags in Markdown bodies, renders every item through its layout into the
output directory, copies passthrough files and page assets, and writes the
icon sprite and the Atom feed. Each written page also gets heading ids,
links to source files pointed at their output URLs, and its inline styles
and scripts moved into bundle files.

Collections are built once per build with the build mode passed in
explicitly; nothing below reads the environment. Unreadable sources, bad
YAML and failing templates all surface as ``BuildError``.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jinja2 import TemplateSyntaxError

from .assets import AssetPipeline
from .bundles import BundleWriter
from .collections import CollectionSet
from .config import SPRITE_CONFIG, ConfigError, feed_metadata, load_config, load_data
from .content import ContentError, ContentItem, ContentProcessor
from .feeds import AtomFeedGenerator
from .html_utils import add_heading_ids, rewrite_input_paths
from .navigation import build_navigation
from .sprites import SpriteError, write_sprite
from .templates import TemplateEngine
from .utils import absolutize_html_urls, ensure_clean_dir, to_posix

# Readable prefixes for the exception types templates commonly raise.
_ERROR_LABELS = {
    "UndefinedError": "Undefined variable",
    "LayoutCycleError": "Layout cycle",
    "TypeError": "Type error",
    "AttributeError": "Attribute error",
}


class BuildError(Exception):
    """A build failure tied to the source file that caused it.

    ``original_error`` keeps the underlying exception, if there was one.
    """

    def __init__(self, source_path: Path, message: str, original_error: Exception | None = None):
        super().__init__(f"{source_path}: {message}")
        self.source_path = source_path
        self.message = message
        self.original_error = original_error


@dataclass
class BuildResult:
    """What a build produced.

    Attributes:
        items: Every discovered item, in discovery order.
        collections: ``posts``, ``drafts`` and ``notes`` for this build.
        output_dir: Where the site was written.
        data: Global template data.
        written: Files written for rendered items.
    """

    items: list[ContentItem]
    collections: CollectionSet
    output_dir: Path
    data: dict[str, Any]
    written: list[Path] = field(default_factory=list)


def build_site(
    project_root: Path,
    is_production: bool = False,
    root_url: str | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build the site under ``project_root``.

    Args:
        project_root: Directory holding ``spray.yaml`` and ``src/``.
        is_production: Leave drafts out of ``posts``.
        root_url: Overrides ``root_url`` from ``spray.yaml``; when set, every
            page URL in the output is made absolute against it.
        clean_output: Empty the output directory first.
        output_dir_override: Write here instead of the configured directory.

    Raises:
        FileNotFoundError: The input directory is missing.
        BuildError: A config, data or source file could not be read, or an
            item, layout or icon could not be rendered.
    """
    with _reported_as_build_error():
        config = load_config(project_root)
    if root_url is not None:
        config["root_url"] = root_url
    input_name = str(config.get("input_dir", "src"))
    input_dir = project_root / input_name
    if not input_dir.exists():
        raise FileNotFoundError(f"Expected input directory at {input_dir}")

    output_dir = output_dir_override or project_root / str(config.get("output_dir", "dist"))
    _prepare_output(output_dir, clean_output)

    with _reported_as_build_error():
        data = load_data(input_dir)
        items = ContentProcessor(project_root, input_dir).load()
    data.setdefault("metadata", feed_metadata(config))
    result = BuildResult(
        items=items,
        collections=CollectionSet(items, is_production),
        output_dir=output_dir,
        data=data,
    )

    feed = AtomFeedGenerator.from_config(config)
    feed_entry = feed.nav_entry()
    site_root = str(config.get("root_url") or "")
    engine = TemplateEngine(
        input_dir,
        data,
        result.collections,
        root_url=site_root,
        navigation=build_navigation(items, [feed_entry] if feed_entry else []),
    )
    source_urls = _source_urls(items, input_dir)
    for item in items:
        if item.source_type == "markdown":
            item.content = rewrite_input_paths(_render(item, engine.expand_markdown), source_urls)

    bundles = BundleWriter(output_dir)
    for item in items:
        if item.output_path is None:
            continue
        html = rewrite_input_paths(_render(item, engine.render_item), source_urls)
        html = bundles.apply(add_heading_ids(html))
        if site_root:
            html = absolutize_html_urls(html, site_root, item.url)
        result.written.append(_write_item(output_dir, item, html))

    AssetPipeline(project_root, output_dir, input_dir=input_name).run(items)
    with _reported_as_build_error():
        write_sprite(project_root / SPRITE_CONFIG["path"], output_dir / SPRITE_CONFIG["output_filepath"])
    feed_collection = str((config.get("feed") or {}).get("collection", "posts"))
    feed.write(output_dir, result.collections[feed_collection])
    return result


def _prepare_output(output_dir: Path, clean: bool) -> None:
    if clean:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)


@contextmanager
def _reported_as_build_error():
    try:
        yield
    except (ConfigError, ContentError, SpriteError) as exc:
        raise BuildError(exc.source_path, exc.message, exc) from exc


def _render(item: ContentItem, render: Callable[[ContentItem], str]) -> str:
    try:
        return render(item)
    except TemplateSyntaxError as exc:
        message = f"Template syntax error on line {exc.lineno}: {exc.message}"
        raise BuildError(item.path, message, exc) from exc
    except Exception as exc:
        raise BuildError(item.path, _format_error_message(exc), exc) from exc


def _format_error_message(exc: Exception) -> str:
    kind = type(exc).__name__
    return f"{_ERROR_LABELS.get(kind, kind)}: {exc}"


def _source_urls(items: list[ContentItem], input_dir: Path) -> dict[str, str]:
    """Output URL of every built item, keyed by its path from the project root
    and from the input directory."""
    urls: dict[str, str] = {}
    for item in items:
        if item.url is None:
            continue
        urls[item.source_path] = item.url
        urls[to_posix(item.path.relative_to(input_dir))] = item.url
    return urls


def _write_item(output_dir: Path, item: ContentItem, html: str) -> Path:
    target = output_dir / item.output_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(html, encoding="utf-8")
    return target
