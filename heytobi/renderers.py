"""Markdown rendering for heytobi.

Renders post bodies to HTML with mistune. The renderer itself only knows
about headings; everything else (images, code highlighting, typography,
linked files) is delegated to the Markdown plugins declared under the
``transformer-markdown`` plugin.

Key classes:
- RenderContext: Where the post lives and where copied files go.
- MarkdownRenderer: Renders Markdown through a list of Markdown plugins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import mistune


@dataclass
class RenderContext:
    """Per-document rendering context.

    Attributes:
        source_dir: Directory of the Markdown document (relative links resolve here).
        static_dir: Output ``static`` directory for copied or resized files.
    """

    source_dir: Path
    static_dir: Path


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text (inline HTML is stripped).

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


class _PostRenderer(mistune.HTMLRenderer):
    """Mistune renderer that consults Markdown plugins.

    Attributes:
        context: Rendering context of the current document.
        plugins: Markdown plugins in declared order.
        headings: Heading objects collected during rendering.
    """

    def __init__(self, context: RenderContext, plugins: list):
        super().__init__(escape=False)
        self.context = context
        self.plugins = plugins
        self.headings: list = []
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        # Import here to avoid circular imports
        from .content import Heading as HeadingClass

        base_id = _generate_heading_id(text)

        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id

        plain = re.sub(r"<[^>]+>", "", text)
        self.headings.append(HeadingClass(id=heading_id, text=plain, level=level))

        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def image(self, text: str, url: str, title: str | None = None) -> str:
        for plugin in self.plugins:
            rendered = plugin.render_image(self.context, text, url, title)
            if rendered is not None:
                return rendered
        return super().image(text, url, title)

    def block_code(self, code: str, info: str | None = None) -> str:
        for plugin in self.plugins:
            rendered = plugin.render_code(self.context, code, info)
            if rendered is not None:
                return rendered
        escaped = code.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        lang = info.split()[0] if info and info.strip() else ""
        lang_class = f' class="language-{lang}"' if lang else ""
        return f"<pre><code{lang_class}>{escaped}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown documents to HTML.

    Attributes:
        plugins: Markdown plugins applied in declared order.
    """

    def __init__(self, plugins: list | None = None):
        self.plugins = list(plugins or [])

    def render(self, content: str, context: RenderContext) -> tuple[str, list]:
        """Render Markdown content to HTML.

        Args:
            content: Markdown source (without front matter).
            context: Rendering context of the document.

        Returns:
            Tuple of (rendered HTML, list of Heading objects).
        """
        renderer = _PostRenderer(context, self.plugins)
        markdown = mistune.create_markdown(
            renderer=renderer, plugins=["strikethrough", "footnotes", "table", "url"]
        )
        html = markdown(content)
        for plugin in self.plugins:
            html = plugin.transform_html(context, html)
        return html, renderer.headings

    def head_snippets(self) -> str:
        """Collect markup the plugins need in the page head."""
        snippets = [plugin.head_snippet() for plugin in self.plugins]
        return "\n".join(s for s in snippets if s)
