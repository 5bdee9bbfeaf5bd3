"""Template rendering engine for heytobi.

This module uses Jinja2 to render the index page, post pages and the
404 page. Templates are looked up in the project's ``templates/``
directory first, then in the defaults shipped with the package.

Key class:
- TemplateEngine: Handles template rendering and provides context to templates.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from .config import SiteConfig
from .content import Heading, Post
from .html_utils import escape_html, join_root_url

PACKAGE_TEMPLATES_DIR = Path(__file__).parent / "templates"

__all__ = ["PACKAGE_TEMPLATES_DIR", "TemplateEngine", "render_toc"]


def render_toc(post: Post) -> Markup:
    """Render a table of contents as nested HTML from post headings.

    Generates properly nested ``<ul><li><a href="#id">text</a></li></ul>``
    structure based on heading levels.

    Args:
        post: Post containing the toc (list of Heading objects).

    Returns:
        Markup-safe HTML string of the nested TOC, or empty Markup if no headings.
    """
    if not post.toc:
        return Markup("")

    return _render_toc_from_headings(post.toc)


def _render_toc_from_headings(headings: list[Heading]) -> Markup:
    html_parts: list[str] = []
    level_stack: list[int] = []

    for heading in headings:
        level = heading.level

        # Close nested lists if going to a shallower level
        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")

        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        elif not level_stack or level > level_stack[-1]:  # pragma: no branch
            html_parts.append("<ul>")
            level_stack.append(level)

        html_parts.append(
            f'<li><a href="#{escape_html(heading.id)}">{escape_html(heading.text)}</a>'
        )

    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")

    return Markup("".join(html_parts))


def _default_rhythm(lines: float) -> str:
    return f"{round(lines * 1.45, 4):g}rem"


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        project_root: Root directory of the project.
        config: Site configuration.
        root_url: Base URL applied by ``url_for``.
        env: Jinja2 environment.
    """

    def __init__(
        self,
        project_root: Path,
        config: SiteConfig,
        root_url: str | None = None,
    ):
        """Initialize the template engine.

        Args:
            project_root: Root directory of the project.
            config: Site configuration.
            root_url: Optional base URL for links.
        """
        self.project_root = project_root
        self.config = config
        self.root_url = root_url or ""
        self.env = Environment(
            loader=FileSystemLoader(
                [project_root / "templates", PACKAGE_TEMPLATES_DIR]
            ),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            enable_async=False,
        )
        self._install_globals()

    def _install_globals(self) -> None:
        """Install global variables and functions in the Jinja environment."""
        self.env.globals["site"] = self.config.site_metadata
        self.env.globals["config"] = self.config
        self.env.globals["url_for"] = self._url_for
        self.env.globals["render_toc"] = render_toc
        self.env.globals["rhythm"] = _default_rhythm

    def add_globals(self, values: dict[str, Any]) -> None:
        """Expose additional helpers (contributed by plugins) to templates."""
        self.env.globals.update(values)

    def _url_for(self, path: str) -> str:
        """Generate a URL for a path, applying root_url if configured."""
        if path.startswith(("http://", "https://", "//")):
            return path
        normalized = path if path.startswith("/") else f"/{path}"
        if self.root_url:
            return join_root_url(self.root_url, normalized)
        return normalized

    def render(self, template_name: str, context: dict[str, Any]) -> str:
        """Render a named template.

        Args:
            template_name: Template file name.
            context: Variables to make available in the template.

        Returns:
            Rendered HTML string.
        """
        return self.env.get_template(template_name).render(**context)
