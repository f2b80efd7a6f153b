"""CSS and JS bundles.

Inline ``<style>`` and ``<script>`` blocks written in layouts and pages are
moved out of the HTML into files under ``dist/bundle/``. Each page's blocks
of one kind are joined into a single file named by the SHA-256 of its
contents, so pages sharing the same styles share one file. The first block
is replaced by a ``<link>``/``<script src>`` to that file and the rest are
removed.

Only bare tags are bundled: ``<style media="print">`` or
``<script type="module">`` stay where they are, so adding any attribute
opts a block out.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path

BUNDLE_DIR = "bundle"


@dataclass(frozen=True)
class BundleKind:
    name: str
    pattern: re.Pattern
    tag: str


BUNDLE_KINDS: tuple[BundleKind, ...] = (
    BundleKind("css", re.compile(r"<style>(.*?)</style>", re.IGNORECASE | re.DOTALL), '<link rel="stylesheet" href="{url}">'),
    BundleKind("js", re.compile(r"<script>(.*?)</script>", re.IGNORECASE | re.DOTALL), '<script src="{url}"></script>'),
)


class BundleWriter:
    """Pulls inline blocks out of rendered pages into bundle files.

    Attributes:
        output_dir: Site output directory; bundles go to ``<output_dir>/bundle``.
        written: URLs of every bundle file written so far.
    """

    def __init__(self, output_dir: Path, kinds: tuple[BundleKind, ...] = BUNDLE_KINDS):
        self.output_dir = output_dir
        self.kinds = kinds
        self.written: set[str] = set()

    def apply(self, html: str) -> str:
        for kind in self.kinds:
            html = self._bundle(html, kind)
        return html

    def _bundle(self, html: str, kind: BundleKind) -> str:
        blocks = [block.strip() for block in kind.pattern.findall(html)]
        code = "\n".join(block for block in blocks if block)
        if not code:
            return html
        url = self._write(f"{code}\n", kind.name)
        replacements = iter([kind.tag.format(url=url)])
        return kind.pattern.sub(lambda _: next(replacements, ""), html)

    def _write(self, code: str, suffix: str) -> str:
        digest = hashlib.sha256(code.encode("utf-8")).hexdigest()[:12]
        url = f"/{BUNDLE_DIR}/{digest}.{suffix}"
        if url not in self.written:
            target = self.output_dir / url.lstrip("/")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(code, encoding="utf-8")
            self.written.add(url)
        return url
