"""Site building functionality for heytobi.

This module contains the core logic for building the static site.
It loads the configuration, instantiates the declared plugins, lets them
produce posts, renders every page through the templates and the plugins,
and writes the output directory.

Key functions:
- build_site: Main function to build the entire site.
- collect_pages: Lists the pages of a build (index, posts, 404).
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from jinja2 import TemplateError, TemplateSyntaxError

from .collections import PostCollection
from .config import CONFIG_FILENAME, ConfigError, SiteConfig, load_config
from .extractors import ContentError
from .html_utils import absolutize_html_urls
from .plugins import BuildContext, Page, Plugin, create_default_plugin_registry
from .templates import TemplateEngine
from .utils import ensure_clean_dir


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}")


@dataclass
class BuildResult:
    """Result of a site build operation.

    Attributes:
        posts: All posts in the site.
        pages: Every rendered page.
        output_dir: Directory where the site was built.
        config: Configuration the site was built with.
    """

    posts: PostCollection
    pages: list[Page]
    output_dir: Path
    config: SiteConfig


@contextmanager
def _error_context(project_root: Path, source_path: Path | None = None) -> Iterator[None]:
    """Convert configuration, content and template errors into BuildErrors."""
    config_path = project_root / CONFIG_FILENAME
    try:
        yield
    except BuildError:
        raise
    except ConfigError as exc:
        raise BuildError(config_path, str(exc), exc) from exc
    except ContentError as exc:
        raise BuildError(exc.source_path, exc.message, exc) from exc
    except TemplateSyntaxError as exc:
        where = Path(exc.filename) if exc.filename else (source_path or config_path)
        raise BuildError(
            where, f"Template syntax error on line {exc.lineno}: {exc.message}", exc
        ) from exc
    except Exception as exc:
        raise BuildError(
            source_path or config_path, _format_error_message(exc), exc
        ) from exc


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if isinstance(exc, TemplateError):
        return f"Template error: {error_msg}"
    if isinstance(exc, OSError) and exc.filename:
        return f"{exc.strerror or error_type}: {exc.filename}"

    return f"{error_type}: {error_msg}"


def collect_pages(ctx: BuildContext) -> list[Page]:
    """List the pages of the site: the index, one per post, and the 404 page.

    Args:
        ctx: Build context with posts already created.

    Returns:
        Pages in render order.
    """
    metadata = ctx.config.site_metadata
    ordered = ctx.posts.sorted()
    pages = [
        Page(
            url="/",
            template="index.html.jinja",
            title=metadata.title,
            description=metadata.description,
            context={"posts": ordered},
        )
    ]
    for post in ordered:
        previous, newer = ordered.neighbours(post)
        pages.append(
            Page(
                url=post.url,
                template="post.html.jinja",
                title=post.title,
                description=post.description,
                post=post,
                context={"previous": previous, "next": newer},
            )
        )
    pages.append(
        Page(
            url="/404.html",
            template="404.html.jinja",
            title="404: Not Found",
            description=metadata.description,
        )
    )
    return pages


def _run_hook(project_root: Path, plugins: list[Plugin], hook: str, ctx: BuildContext) -> None:
    for plugin in plugins:
        with _error_context(project_root):
            getattr(plugin, hook)(ctx)


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    root_url: str | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to include draft posts (paths starting with _).
        root_url: Optional base URL to absolutize links with.
        clean_output: Whether to wipe the output directory before building.
        output_dir_override: Optional path to write the build output instead of config output_dir.

    Returns:
        BuildResult containing all posts, pages, output directory, and config.

    Raises:
        BuildError: If configuration, content or templates are invalid.
    """
    with _error_context(project_root):
        config = load_config(project_root)
        plugins = create_default_plugin_registry().load(config.plugins)

    resolved_root = config.root_url if root_url is None else root_url
    output_dir = output_dir_override or (project_root / config.output_dir)
    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    ctx = BuildContext(
        project_root=project_root,
        output_dir=output_dir,
        config=config,
        include_drafts=include_drafts,
    )
    _run_hook(project_root, plugins, "on_pre_build", ctx)
    _run_hook(project_root, plugins, "on_create_pages", ctx)

    engine = TemplateEngine(project_root, config, root_url=resolved_root)
    for plugin in plugins:
        engine.add_globals(plugin.template_globals(ctx))

    pages = collect_pages(ctx)
    build_year = datetime.now(timezone.utc).year
    for page in pages:
        source_path = page.post.path if page.post else None
        with _error_context(project_root, source_path):
            html = engine.render(
                page.template,
                {"page": page, "post": page.post, "build_year": build_year, **page.context},
            )
            for plugin in plugins:
                html = plugin.on_render_page(ctx, page, html)
        if resolved_root:
            html = absolutize_html_urls(html, resolved_root)
        _write_page(output_dir, page, html)

    _run_hook(project_root, plugins, "on_post_build", ctx)
    return BuildResult(posts=ctx.posts, pages=pages, output_dir=output_dir, config=config)


def _write_page(output_dir: Path, page: Page, rendered: str) -> None:
    """Write a rendered page to the output directory.

    Args:
        output_dir: Base output directory.
        page: Page being written.
        rendered: Rendered HTML content.
    """
    html_path = output_dir / page.output_path
    html_path.parent.mkdir(parents=True, exist_ok=True)
    with open(html_path, "w", encoding="utf-8") as f:
        f.write(rendered)

