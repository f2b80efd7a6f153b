"""Static asset handling for Spray.

Spray does not transform assets. It copies them:

- Passthrough copy: configured files and directories go to the same place
  below the output directory, with the leading ``src/`` stripped.
- Page assets: media files sitting next to a post
  (``src/posts/<category>/<slug>.md``) are copied into that post's output
  directory so relative ``<img src="photo.jpg">`` links keep working.

Key classes:
- AssetPipeline: Runs both steps for a build.
- PageAssetCopier: Per-post media copy.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from .config import PASSTHROUGH_COPY
from .patterns import PAGE_ASSET_POSTS, PathPattern, is_media

if TYPE_CHECKING:
    from .content import ContentItem


def _output_rel(source: str, input_prefix: str) -> PurePosixPath:
    rel = PurePosixPath(source)
    try:
        return rel.relative_to(input_prefix)
    except ValueError:
        return rel


class PageAssetCopier:
    """Copies media files that sit next to a post into its output directory.

    Attributes:
        pattern: Which items get their sibling media copied.
    """

    def __init__(self, pattern: PathPattern = PAGE_ASSET_POSTS):
        self.pattern = pattern

    def copy(self, items: Iterable[ContentItem], output_dir: Path) -> list[Path]:
        copied: list[Path] = []
        for item in items:
            if item.output_path is None or not self.pattern.matches(item.source_path):
                continue
            target_dir = (output_dir / item.output_path).parent
            for sibling in sorted(item.path.parent.iterdir()):
                if not sibling.is_file() or not is_media(sibling.name):
                    continue
                target_dir.mkdir(parents=True, exist_ok=True)
                dest = target_dir / sibling.name
                shutil.copy2(sibling, dest)
                copied.append(dest)
        return copied


class AssetPipeline:
    """Handles passthrough copy and page assets for one build.

    Attributes:
        project_root (Path): Root directory of the project.
        output_dir (Path): Directory where assets are written.
        passthrough (tuple[str, ...]): Sources to copy, relative to the project root.
    """

    def __init__(
        self,
        project_root: Path,
        output_dir: Path,
        input_dir: str = "src",
        passthrough: Iterable[str] = PASSTHROUGH_COPY,
        page_assets: PageAssetCopier | None = None,
    ):
        self.project_root = project_root
        self.output_dir = output_dir
        self.input_dir = input_dir
        self.passthrough = tuple(passthrough)
        self.page_assets = page_assets or PageAssetCopier()

    def run(self, items: Iterable[ContentItem] = ()) -> list[Path]:
        """Copy passthrough sources and page assets.

        Returns:
            Every destination path written.
        """
        written = self._copy_passthrough()
        written.extend(self.page_assets.copy(items, self.output_dir))
        return written

    def _copy_passthrough(self) -> list[Path]:
        written: list[Path] = []
        for source in self.passthrough:
            src = self.project_root / source
            if not src.exists():
                continue
            dest = self.output_dir / _output_rel(source, self.input_dir)
            if src.is_dir():
                shutil.copytree(src, dest, dirs_exist_ok=True)
                written.extend(p for p in dest.rglob("*") if p.is_file())
            else:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src, dest)
                written.append(dest)
        return written
