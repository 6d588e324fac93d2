"""Command-line interface for inkpage.

Commands:
- new: Scaffold a new blog.
- build: Build the site into the output directory.
- preview: Serve the site locally with live reload.
- post: Create a new post interactively.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from datetime import date
from pathlib import Path

import click
import questionary
import yaml

from . import __version__
from .utils import slugify, strip_date_prefix, titleize

_SCAFFOLD = {
    "inkpage.yaml": (
        "content_dir: content\n"
        "output_dir: public\n"
        "static_dir: static\n"
        "port: 4000\n"
    ),
    "data/site.yaml": (
        "site_name: {name}\n"
        "twitter_handle: example\n"
        "url: https://example.com\n"
        "description: Notes and essays.\n"
    ),
    "content/posts/{today}-hello-world.md": (
        "---\n"
        "title: Hello World\n"
        "description: The first post.\n"
        "published: {today}\n"
        "tags: [meta]\n"
        "toc: false\n"
        "---\n\n"
        "Welcome to your new blog.\n"
    ),
    "static/robots.txt": "User-agent: *\nAllow: /\n",
    ".gitignore": "public/\npublic.staging/\n",
}


@click.group()
@click.version_option(version=__version__, prog_name="inkpage")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
def cli(verbose: bool):
    """inkpage static blog generator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new blog."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(
            f"Refusing to initialize into non-empty directory: {target}"
        )
    _scaffold(target)
    click.echo(f"New blog created at {target}")


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft posts")
@click.option(
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    required=False,
    help="Write the site here instead of the configured output_dir",
)
def build(drafts: bool, output: Path | None):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import BuildError, ConfigError, build_site

    try:
        result = build_site(
            project_root,
            include_drafts=drafts,
            output_dir_override=output.resolve() if output else None,
        )
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from None
    except BuildError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        if exc.source_path is not None:
            click.echo(
                click.style(f"  File: {_display_path(exc.source_path, project_root)}", fg="yellow"),
                err=True,
            )
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None

    for failure in result.failures:
        where = _display_path(failure.source_path, project_root) if failure.source_path else "?"
        click.echo(click.style(f"Skipped {where}: {failure.message}", fg="yellow"), err=True)
    click.echo(f"Built {len(result.documents)} pages into {result.output_dir}")
    if not result.ok:
        raise SystemExit(1)


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft posts")
@click.option("--port", type=int, required=False, help="HTTP port (overrides inkpage.yaml)")
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Live reload websocket port (defaults to port + 1)",
)
def preview(drafts: bool, port: int | None, ws_port: int | None):
    """Serve the site locally with live reload."""
    project_root = Path.cwd()
    from .build import ConfigError
    from .server import PreviewServer

    try:
        server = PreviewServer(project_root, http_port=port, ws_port=ws_port)
        server.start(include_drafts=drafts)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from None


@cli.command()
def post():
    """Create a new post interactively."""
    project_root = Path.cwd()
    from .build import load_config

    content_dir = project_root / str(load_config(project_root)["content_dir"])
    if not content_dir.exists():
        raise click.ClickException(
            f"No {content_dir.name}/ directory found. Run this command from a blog root."
        )

    folder = questionary.select(
        "Select folder:",
        choices=_get_content_folders(content_dir),
        style=_questionary_style(),
    ).ask()
    if folder is None:
        raise click.Abort()

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()

    tags = questionary.text(
        "Tags (comma separated):", style=_questionary_style()
    ).ask()
    if tags is None:
        raise click.Abort()

    add_date = questionary.confirm(
        "Prefix filename with today's date? (YYYY-MM-DD-)",
        default=True,
        style=_questionary_style(),
    ).ask()
    if add_date is None:
        raise click.Abort()

    today = date.today()
    slug = slugify(title)
    filename = f"{today.isoformat()}-{slug}.md" if add_date else f"{slug}.md"
    target_dir = content_dir if folder == ". (root)" else content_dir / folder
    target_path = target_dir / filename

    if target_path.exists():
        raise click.ClickException(
            f"File already exists: {_display_path(target_path, project_root)}"
        )
    conflicting = _find_slug_conflict(target_dir, slug)
    if conflicting is not None:
        raise click.ClickException(
            f"A post with slug '{slug}' already exists: {conflicting.name}"
        )

    target_dir.mkdir(parents=True, exist_ok=True)
    target_path.write_text(
        _new_post_text(title.strip(), tags, today), encoding="utf-8"
    )
    click.echo(f"Created {_display_path(target_path, project_root)}")


def _new_post_text(title: str, tags: str, today: date) -> str:
    frontmatter = {
        "title": title,
        "description": "",
        "published": today,
        "draft": True,
        "tags": [t.strip() for t in tags.split(",") if t.strip()],
        "toc": False,
    }
    header = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)
    return f"---\n{header}---\n\n"


def _get_content_folders(content_dir: Path) -> list[str]:
    """List content folders, skipping ``_`` directories, root option first."""
    folders = sorted(
        path.name
        for path in content_dir.iterdir()
        if path.is_dir() and not path.name.startswith("_")
    )
    folders.insert(0, ". (root)")
    return folders


def _find_slug_conflict(folder: Path, slug: str) -> Path | None:
    """Return an existing markdown file in ``folder`` with the same slug."""
    if not folder.exists():
        return None
    for path in folder.iterdir():
        if path.is_file() and path.suffix == ".md" and slugify(path.stem) == slug:
            return path
    return None


def _display_path(path: Path, root: Path) -> str:
    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)


def _questionary_style():
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Write the starter files of a new blog into ``root``."""
    today = date.today().isoformat()
    name = titleize(strip_date_prefix(root.name))
    for rel_template, text_template in _SCAFFOLD.items():
        dest = root / rel_template.format(today=today)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(text_template.format(name=name, today=today), encoding="utf-8")
    (root / "content" / "_layouts").mkdir(parents=True, exist_ok=True)
    _try_git_init(root)


def _try_git_init(root: Path) -> None:
    """Initialize a git repository if git is available."""
    if os.environ.get("INKPAGE_SKIP_GIT_INIT") == "1":
        return
    git_bin = shutil.which("git")
    if not git_bin:
        return
    try:
        subprocess.run([git_bin, "init"], cwd=root, check=True, capture_output=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        # Non-fatal: the user can run git init manually.
        logging.getLogger(__name__).debug("git init failed: %s", exc)
