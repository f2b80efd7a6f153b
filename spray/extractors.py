"""Page metadata.

A page's metadata is assembled from three places, in order of precedence:
its front matter, its body, and finally its file name and mtime. Each
extractor below resolves one field; ``CompositeMetadataExtractor`` splits
off the front matter once and merges what every extractor returns.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from .utils import coerce_datetime, extract_date_from_name, first_paragraph, titleize

_FRONTMATTER_BLOCK_RE = re.compile(r"\A---[ \t]*\n(?P<yaml>.*?)\n---[ \t]*(?:\n|\Z)", re.DOTALL)


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split ``text`` into its front matter mapping and the body after it.

    Text without a leading ``---`` block, with malformed YAML, or whose
    YAML is not a mapping comes back unchanged alongside an empty dict.
    """
    block = _FRONTMATTER_BLOCK_RE.match(text)
    if block is None:
        return {}, text
    try:
        data = yaml.safe_load(block["yaml"]) or {}
    except yaml.YAMLError:
        return {}, text
    if isinstance(data, dict):
        return data, text[block.end() :]
    return {}, text


def _first_heading(body: str) -> str | None:
    for line in body.splitlines():
        line = line.strip()
        if line.startswith("# "):
            return line[2:].strip()
    return None


class TitleExtractor:
    """``title`` front matter, else the first ``# `` heading, else the file name."""

    def extract(self, body: str, path: Path, frontmatter: dict[str, Any]) -> dict[str, Any]:
        if frontmatter.get("title"):
            return {"title": str(frontmatter["title"])}
        return {"title": _first_heading(body) or titleize(path.name)}


class DateExtractor:
    def extract(self, body: str, path: Path, frontmatter: dict[str, Any]) -> dict[str, Any]:
        when = coerce_datetime(frontmatter.get("date")) or extract_date_from_name(path.stem)
        if when is None:
            when = datetime.fromtimestamp(path.stat().st_mtime)
        return {"date": when}


class DescriptionExtractor:
    """``description`` front matter, else the first prose paragraph."""

    def extract(self, body: str, path: Path, frontmatter: dict[str, Any]) -> dict[str, Any]:
        description = frontmatter.get("description")
        return {"description": str(description) if description else first_paragraph(body)}


class CompositeMetadataExtractor:
    """Runs a sequence of extractors over one page.

    The result always carries ``frontmatter`` and ``body``; each
    extractor's keys are merged on top, later extractors winning.
    """

    def __init__(self, extractors: list | None = None):
        if extractors is None:
            extractors = [TitleExtractor(), DateExtractor(), DescriptionExtractor()]
        self._extractors = list(extractors)

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        frontmatter, body = extract_frontmatter(content)
        metadata: dict[str, Any] = {"frontmatter": frontmatter, "body": body}
        for extractor in self._extractors:
            metadata.update(extractor.extract(body, path, frontmatter))
        return metadata


default_metadata_extractor = CompositeMetadataExtractor()
