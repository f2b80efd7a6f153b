"""Site configuration for Spray.

Loads ``spray.yaml`` and ``src/data/*.yaml`` and holds the declarative
tables the build wires together: layout aliases, passthrough copies, watch
targets, feed metadata, sprite output and the service-worker cache rules
handed to workbox.

Key functions:
- load_config: Loads site configuration from spray.yaml.
- load_data: Loads template data from YAML files in the data directory.
- is_production_build: Reads the build mode from the environment, once.
"""

from __future__ import annotations

import copy
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "spray.yaml"
ENV_VAR = "SPRAY_ENV"

DEFAULT_CONFIG: dict[str, Any] = {
    "input_dir": "src",
    "output_dir": "dist",
    "port": 8080,
    "root_url": "",
    "feed": {
        "output_path": "/feed.xml",
        "stylesheet": "pretty-atom-feed.xsl",
        "collection": "posts",
        "limit": 0,
        "metadata": {
            "language": "en",
            "title": "Blog Title",
            "subtitle": "This is a longer description about your blog.",
            "base": "https://example.com/",
            "author": {"name": "Your Name"},
        },
        "navigation": {"key": "besleme", "order": 5},
    },
}

# Directories under the input dir that hold templates and data, not pages.
INCLUDES_DIR = "includes"
LAYOUTS_DIR = "layouts"
DATA_DIR = "data"
ASSETS_DIR = "assets"

LAYOUT_ALIASES: dict[str, str] = {
    "base": "base.html.jinja",
    "home": "home.html.jinja",
    "page": "page.html.jinja",
    "post": "post.html.jinja",
    "draft": "draft.html.jinja",
    "note": "note.html.jinja",
}

# Copied verbatim, relative to the project root; ``src/`` is stripped in dist.
PASSTHROUGH_COPY: tuple[str, ...] = (
    "src/pretty-atom-feed.xsl",
    "src/site.webmanifest",
    "src/robots.txt",
    "src/assets/images",
    "src/assets/fonts",
)

WATCH_TARGETS: tuple[str, ...] = ("src", "src/assets", CONFIG_FILENAME)

SPRITE_CONFIG: dict[str, str] = {
    "path": "src/assets/icons",
    "output_filepath": "assets/icons/icons.sprite.svg",
}

SERVICE_WORKER_CONFIG: dict[str, Any] = {
    "cacheId": "spray",
    "globDirectory": "./dist",
    "globPatterns": ["**/*.woff2", "**/*.ttf"],
    "swDest": "./dist/sw.js",
    "sourcemap": False,
    "cleanupOutdatedCaches": True,
    "clientsClaim": True,
    "skipWaiting": True,
    "runtimeCaching": [
        {
            "urlPattern": r"\.(?:png|jpg|jpeg|gif|webp|avif)$",
            "handler": "CacheFirst",
            "options": {
                "cacheName": "images",
                "expiration": {
                    "maxEntries": 50,
                    "maxAgeSeconds": 60 * 60 * 24 * 365,
                },
            },
        }
    ],
}


class ConfigError(Exception):
    """A configuration or data file that is not valid YAML."""

    def __init__(self, source_path: Path, message: str, original_error: Exception | None = None):
        super().__init__(f"{source_path}: {message}")
        self.source_path = source_path
        self.message = message
        self.original_error = original_error


def _read_yaml(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(path, f"Invalid YAML: {exc}", exc) from exc


def is_production_build(environ: Mapping[str, str] | None = None) -> bool:
    """Return True when ``SPRAY_ENV`` is ``production``.

    Call this once per build and pass the result down; nothing below the
    CLI reads the environment.
    """
    env = os.environ if environ is None else environ
    return env.get(ENV_VAR, "").strip().lower() == "production"


def _merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(project_root: Path) -> dict[str, Any]:
    """Load site configuration from spray.yaml.

    Nested mappings (``feed``, ``feed.metadata``) are merged key by key
    over the defaults so a config file only needs the values it changes.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing configuration values, with defaults applied.

    Raises:
        ConfigError: spray.yaml is not valid YAML.
    """
    config_path = project_root / CONFIG_FILENAME
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path.exists():
        loaded = _read_yaml(config_path) or {}
        if isinstance(loaded, dict):
            _merge(config, loaded)
    return config


def load_data(input_dir: Path) -> dict[str, Any]:
    """Load template data from YAML files in ``<input_dir>/data``.

    ``site.yaml`` is merged at the top level; every other file is exposed
    under its stem (``data/nav.yaml`` becomes ``data.nav``).
    """
    data_dir = input_dir / DATA_DIR
    data: dict[str, Any] = {}
    if not data_dir.exists():
        return data
    for path in sorted(data_dir.glob("*.yaml")):
        payload = _read_yaml(path) or {}
        if not isinstance(payload, dict):
            continue
        if path.name == "site.yaml":
            data.update(payload)
        else:
            data[path.stem] = payload
    return data


def feed_metadata(config: Mapping[str, Any]) -> dict[str, Any]:
    feed = config.get("feed") or {}
    return dict(feed.get("metadata") or {})
