"""Command-line interface for Spray.

Commands:
- build: Build the blog into the output directory.
- serve: Run the development server with live reload.
- new: Create a post, note or draft interactively.
- icon: Print the markup the ``icon`` shortcode renders.
- sw-config: Write the workbox service-worker configuration as JSON.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import click
import questionary

from . import __version__
from .config import SERVICE_WORKER_CONFIG, ConfigError, is_production_build, load_config
from .patterns import CONTENT_PATTERNS, ContentCategory
from .utils import slugify


def _resolve_mode(production: bool | None) -> bool:
    """CLI flag wins; otherwise SPRAY_ENV decides, read exactly once here."""
    if production is not None:
        return production
    return is_production_build()


@click.group()
@click.version_option(version=__version__, prog_name="spray")
def cli():
    """Spray blog builder."""


@cli.command()
@click.option(
    "--production/--development",
    "production",
    default=None,
    help="Build mode (defaults to SPRAY_ENV=production)",
)
def build(production: bool | None):
    """Build the blog into the output directory."""
    project_root = Path.cwd()
    from .build import BuildError, build_site

    is_production = _resolve_mode(production)
    try:
        result = build_site(project_root, is_production=is_production)
    except BuildError as exc:
        _echo_build_error(exc, project_root)
        raise SystemExit(1) from None
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc)) from None
    mode = "production" if is_production else "development"
    counts = ", ".join(
        f"{len(result.collections[name])} {name}" for name in ("posts", "drafts", "notes")
    )
    click.echo(f"Built {len(result.written)} pages ({counts}) into {result.output_dir} [{mode}]")


@cli.command()
@click.option(
    "--production/--development",
    "production",
    default=None,
    help="Build mode (defaults to SPRAY_ENV=production)",
)
@click.option("--port", type=int, required=False, help="Port for the dev server (overrides spray.yaml)")
@click.option("--ws-port", type=int, required=False, help="Port for the live reload websocket")
def serve(production: bool | None, port: int | None, ws_port: int | None):
    """Run dev server with live reload."""
    project_root = Path.cwd()
    from .build import BuildError
    from .server import DevServer

    try:
        server = DevServer(
            project_root,
            http_port=port,
            ws_port=ws_port,
            is_production=_resolve_mode(production),
        )
        server.start()
    except (BuildError, ConfigError) as exc:
        _echo_build_error(exc, project_root)
        raise SystemExit(1) from None


@cli.command(name="icon")
@click.argument("name")
@click.option("--inline", is_flag=True, help="Reference a symbol embedded in the page")
def icon_command(name: str, inline: bool):
    """Print the markup for an icon."""
    from .icons import icon

    click.echo(str(icon(name, inline)))


@cli.command(name="sw-config")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("workbox-config.json"),
    show_default=True,
    help="Where to write the workbox configuration",
)
def sw_config(output: Path):
    """Write the service-worker cache configuration for workbox-cli."""
    output.write_text(json.dumps(SERVICE_WORKER_CONFIG, indent=2) + "\n", encoding="utf-8")
    click.echo(f"Wrote {output}")


@cli.command()
def new():
    """Create a new post, note or draft interactively."""
    project_root = Path.cwd()
    try:
        config = load_config(project_root)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from None
    input_dir = project_root / str(config.get("input_dir", "src"))
    if not input_dir.exists():
        raise click.ClickException(
            f"No {input_dir.name}/ directory found. Run this command from a Spray project root."
        )

    kind = questionary.select(
        "What are you writing?",
        choices=[category.value for category in ContentCategory],
        style=PROMPT_STYLE,
    ).ask()
    if kind is None:
        raise click.Abort()
    category = ContentCategory(kind)
    target_dir = project_root / CONTENT_PATTERNS[category].root

    if category is ContentCategory.POSTS:
        # Posts sit one folder deep: src/posts/<category>/<slug>.md
        folders = _get_category_folders(target_dir)
        folder = questionary.autocomplete(
            "Post category (existing or new):",
            choices=folders,
            validate=lambda x: len(x.strip()) > 0 or "Category cannot be empty",
            style=PROMPT_STYLE,
        ).ask()
        if folder is None:
            raise click.Abort()
        target_dir = target_dir / slugify(folder.strip())

    name = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=PROMPT_STYLE,
    ).ask()
    if name is None:
        raise click.Abort()
    name = name.strip()

    target_path = target_dir / f"{slugify(name)}.md"
    if target_path.exists():
        raise click.ClickException(
            f"File already exists: {target_path.relative_to(project_root)}"
        )

    target_dir.mkdir(parents=True, exist_ok=True)
    target_path.write_text(_front_matter(name, category), encoding="utf-8")
    click.echo(f"Created {target_path.relative_to(project_root)}")


def _front_matter(title: str, category: ContentCategory) -> str:
    lines = [
        "---",
        f"title: {json.dumps(title)}",
        f"date: {datetime.now().strftime('%Y-%m-%d')}",
    ]
    if category is ContentCategory.DRAFTS:
        lines.append("draft: true")
    lines.extend(["---", "", ""])
    return "\n".join(lines)


def _get_category_folders(posts_dir: Path) -> list[str]:
    """Existing post category folders, alphabetically."""
    if not posts_dir.exists():
        return []
    return sorted(
        path.name
        for path in posts_dir.iterdir()
        if path.is_dir() and not path.name.startswith(("_", "."))
    )


def _echo_build_error(exc, project_root: Path) -> None:
    source = exc.source_path
    if source.is_relative_to(project_root):
        source = source.relative_to(project_root)
    lines = [
        ("Build failed:", {"fg": "red", "bold": True}),
        (f"  File: {source}", {"fg": "yellow"}),
        (f"  Error: {exc.message}", {}),
    ]
    for text, style in lines:
        click.secho(text, err=True, **style)


PROMPT_STYLE = questionary.Style(
    [
        ("qmark", "fg:magenta bold"),
        ("question", "bold"),
        ("answer", "fg:green"),
        ("pointer", "fg:magenta bold"),
        ("highlighted", "fg:magenta"),
        ("instruction", "fg:#858585 italic"),
    ]
)


def main():
    """Entry point for the CLI application."""
    cli()
