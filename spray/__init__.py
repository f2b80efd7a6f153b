"""Spray: the build pipeline for a personal blog.

Markdown and Jinja pages under ``src/`` are discovered, filtered into the
``posts``, ``drafts`` and ``notes`` collections, rendered through Jinja2
layouts and written to ``dist/`` together with an Atom feed, an SVG icon
sprite and passthrough assets.

The main entry point is the CLI module, which provides commands for
building, serving and authoring content.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
