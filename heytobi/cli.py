"""Command-line interface for heytobi.

This module defines the CLI commands using Click framework.
It provides commands for building the blog, running the development server,
checking content and writing new posts.

Commands:
- build: Build the site into the output directory.
- serve: Run development server with live reload.
- check: Check the configuration, front matter and code samples.
- post: Create a new post interactively.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import click
import questionary
import yaml

from . import __version__

DEFAULT_POSTS_DIR = Path("content") / "blog"


@click.group()
@click.version_option(version=__version__, prog_name="heytobi")
def cli():
    """Hey, I'm Tobi! blog generator."""


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft posts")
def build(drafts: bool):
    """Build the site into the output directory."""
    project_root = Path.cwd()
    from .build import BuildError, build_site

    try:
        result = build_site(project_root, include_drafts=drafts)
    except BuildError as exc:
        _echo_build_error(project_root, exc)
        raise SystemExit(1) from None
    click.echo(
        f"Built {len(result.pages)} pages ({len(result.posts)} posts) into {result.output_dir}"
    )


def _echo_build_error(project_root: Path, exc) -> None:
    try:
        rel_path = exc.source_path.relative_to(project_root)
    except ValueError:
        rel_path = exc.source_path
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    click.echo(click.style(f"  File: {rel_path}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)


@cli.command()
@click.option("--drafts", is_flag=True, help="Include draft posts")
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the dev server (overrides site.yaml)",
)
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides site.yaml ws_port)",
)
def serve(drafts: bool, port: int | None, ws_port: int | None):
    """Run dev server with live reload."""
    project_root = Path.cwd()
    from .build import BuildError
    from .config import ConfigError
    from .server import DevServer

    try:
        server = DevServer(project_root, http_port=port, ws_port=ws_port)
        server.start(include_drafts=drafts)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from None
    except BuildError as exc:
        _echo_build_error(project_root, exc)
        raise SystemExit(1) from None


@cli.command()
def check():
    """Check the configuration, front matter and code samples."""
    project_root = Path.cwd()
    from .lint import check_site

    issues = check_site(project_root)
    errors = [issue for issue in issues if issue.is_error]
    for issue in issues:
        colour = "red" if issue.is_error else "yellow"
        click.echo(click.style(issue.format(project_root), fg=colour), err=issue.is_error)

    if errors:
        click.echo(
            click.style(f"{len(errors)} error(s), {len(issues) - len(errors)} warning(s)", bold=True),
            err=True,
        )
        raise SystemExit(1)
    click.echo(f"No errors ({len(issues)} warning(s))")


@cli.command()
def post():
    """Create a new post interactively."""
    project_root = Path.cwd()
    from .utils import is_markdown, slugify

    posts_dir = _posts_dir(project_root)

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()

    description = questionary.text(
        "Description:",
        style=_questionary_style(),
    ).ask()
    if description is None:
        raise click.Abort()

    slug = slugify(title.strip())
    target_path = posts_dir / slug / "index.md"
    # a post is either <slug>/index.md or <slug>.md, both served at /<slug>/
    existing = [
        path
        for path in (posts_dir.iterdir() if posts_dir.is_dir() else [])
        if path.name == slug or (path.stem == slug and is_markdown(path))
    ]
    if existing:
        raise click.ClickException(
            f"A post with slug '{slug}' already exists: {_relative(existing[0], project_root)}"
        )

    target_path.parent.mkdir(parents=True)
    target_path.write_text(_new_post(title.strip(), description.strip()), encoding="utf-8")
    click.echo(f"Created {_relative(target_path, project_root)}")


def _posts_dir(project_root: Path) -> Path:
    """Directory of the ``blog`` filesystem source, ``content/blog`` by default."""
    from .config import ConfigError, load_config

    try:
        config = load_config(project_root)
    except ConfigError:
        return project_root / DEFAULT_POSTS_DIR
    sources = [
        decl.options for decl in config.plugins if decl.name == "source-filesystem"
    ]
    for options in sources:
        if options.get("name") == "blog" and isinstance(options.get("path"), str):
            return project_root / options["path"]
    return project_root / DEFAULT_POSTS_DIR


def _new_post(title: str, description: str) -> str:
    date = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    frontmatter = yaml.safe_dump(
        {
            "title": title,
            "date": date.replace("+00:00", "Z"),
            "description": description,
        },
        sort_keys=False,
        allow_unicode=True,
    )
    return f"---\n{frontmatter}---\n\n"


def _relative(path: Path, project_root: Path) -> Path:
    try:
        return path.relative_to(project_root)
    except ValueError:
        return path


def _questionary_style():
    """Return consistent questionary style."""
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
