"""Markdown plugins for heytobi.

Markdown plugins are declared in the ``plugins`` option of the
``transformer-markdown`` plugin and change how a post becomes HTML.
Each plugin handles a single concern and may hook into any of:

- ``render_image``: replace the markup of a Markdown image.
- ``render_code``: replace the markup of a fenced code block.
- ``transform_html``: rewrite the rendered document.
- ``head_snippet``: markup needed once in the page head.

Key classes:
- MarkdownPlugin: Base class with no-op hooks and option validation.
- ResponsiveImagesPlugin, ResponsiveIframePlugin, HighlightPlugin,
  CopyLinkedFilesPlugin, SmartypantsPlugin: the built-in plugins.
- MarkdownPluginRegistry: Maps identifiers to plugin classes.
"""

from __future__ import annotations

import re
from html import unescape
from pathlib import Path
from typing import Any
from urllib.parse import unquote

from mistune.util import striptags
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .config import ConfigError, PluginDeclaration, validate_options
from .html_utils import escape_html
from .images import copy_static_file, image_size, is_resizable, resized_static_url
from .renderers import RenderContext

_EXTERNAL_PREFIXES = (
    "http://",
    "https://",
    "//",
    "/",
    "#",
    "mailto:",
    "tel:",
    "data:",
    "javascript:",
)


def _is_relative_url(url: str) -> bool:
    return bool(url) and not url.startswith(_EXTERNAL_PREFIXES) and "{{" not in url


def _local_file(context: RenderContext, url: str) -> Path | None:
    """Resolve a relative URL to an existing file next to the document."""
    clean = unquote(url.split("#", 1)[0].split("?", 1)[0])
    if not clean:
        return None
    candidate = (context.source_dir / clean).resolve()
    if candidate.is_file():
        return candidate
    return None


class MarkdownPlugin:
    """Base class for Markdown plugins.

    Subclasses set ``name`` and ``OPTIONS`` (``{option: (type, default)}``)
    and override the hooks they need.
    """

    name = ""
    OPTIONS: dict[str, tuple[Any, Any]] = {}

    def __init__(self, options: dict[str, Any] | None = None, key: str | None = None):
        self.options = validate_options(self.name, options or {}, self.OPTIONS, key)

    def render_image(
        self, context: RenderContext, alt: str, url: str, title: str | None
    ) -> str | None:
        return None

    def render_code(
        self, context: RenderContext, code: str, info: str | None
    ) -> str | None:
        return None

    def transform_html(self, context: RenderContext, html: str) -> str:
        return html

    def head_snippet(self) -> str:
        return ""


class ResponsiveImagesPlugin(MarkdownPlugin):
    """Resizes local images and wraps them in a max-width container.

    Every relative raster image gets a ``srcset`` of widths derived from
    ``max_width`` (never wider than the original) and is displayed at most
    ``max_width`` pixels wide.
    """

    name = "markdown-images"
    OPTIONS = {
        "max_width": (int, 650),
        "link_images_to_original": (bool, True),
    }
    SIZE_FACTORS = (0.25, 0.5, 1, 1.5, 2, 3)

    def __init__(self, options: dict[str, Any] | None = None, key: str | None = None):
        super().__init__(options, key)
        if self.options["max_width"] <= 0:
            raise ConfigError(
                "max_width must be positive", f"{key or self.name}.options.max_width"
            )

    def srcset_widths(self, original_width: int) -> list[int]:
        """Return the srcset widths for an image of ``original_width`` pixels."""
        max_width = self.options["max_width"]
        widths = {
            int(max_width * factor)
            for factor in self.SIZE_FACTORS
            if int(max_width * factor) <= original_width
        }
        if original_width < max_width or not widths:
            widths.add(original_width)
        return sorted(w for w in widths if w > 0)

    def render_image(
        self, context: RenderContext, alt: str, url: str, title: str | None
    ) -> str | None:
        if not _is_relative_url(url):
            return None
        source = _local_file(context, url)
        if source is None:
            print(f"Image not found: {url} (in {context.source_dir})")
            return None
        if not is_resizable(source):
            return None
        try:
            original_width, _ = image_size(source)
        except OSError as exc:
            print(f"Could not read image {source.name} ({exc}); leaving it as-is.")
            return None

        max_width = self.options["max_width"]
        presentation_width = min(max_width, original_width)
        candidates = []
        src = ""
        for width in self.srcset_widths(original_width):
            url_path, _ = resized_static_url(source, context.static_dir, width)
            candidates.append(f"{url_path} {width}w")
            if width == presentation_width:
                src = url_path
        if not src:
            src = candidates[-1].split(" ", 1)[0]

        alt_attr = escape_html(unescape(striptags(alt)))
        title_attr = f' title="{escape_html(unescape(title))}"' if title else ""
        img = (
            f'<img class="resp-image" alt="{alt_attr}"{title_attr} src="{src}" '
            f'srcset="{", ".join(candidates)}" '
            f'sizes="(max-width: {presentation_width}px) 100vw, {presentation_width}px" '
            f'loading="lazy">'
        )
        if self.options["link_images_to_original"]:
            original = copy_static_file(source, context.static_dir)
            img = (
                f'<a class="resp-image-link" href="{original}" '
                f'target="_blank" rel="noopener">{img}</a>'
            )
        return (
            '<span class="resp-image-wrapper" style="position: relative; display: block; '
            f'margin-left: auto; margin-right: auto; max-width: {presentation_width}px;">'
            f"{img}</span>"
        )


class ResponsiveIframePlugin(MarkdownPlugin):
    """Wraps fixed-size iframes (embedded videos) in an aspect-ratio container."""

    name = "markdown-responsive-iframe"
    OPTIONS = {"wrapper_style": (str, "")}

    IFRAME_RE = re.compile(r"<iframe\b(?P<attrs>[^>]*)>(?P<inner>.*?)</iframe>", re.DOTALL | re.IGNORECASE)
    _DIMENSION_RE = r"\b{name}\s*=\s*[\"']?(\d+)[\"']?"

    def transform_html(self, context: RenderContext, html: str) -> str:
        return self.IFRAME_RE.sub(self._wrap, html)

    def _wrap(self, match: re.Match) -> str:
        attrs = match.group("attrs")
        width = re.search(self._DIMENSION_RE.format(name="width"), attrs, re.IGNORECASE)
        height = re.search(self._DIMENSION_RE.format(name="height"), attrs, re.IGNORECASE)
        if not width or not height or int(width.group(1)) == 0:
            return match.group(0)
        ratio = int(height.group(1)) / int(width.group(1)) * 100
        attrs = re.sub(r"\s*\b(?:width|height)\s*=\s*[\"']?\d+[\"']?", "", attrs, flags=re.IGNORECASE)
        attrs = re.sub(r"\s*\bstyle\s*=\s*\"[^\"]*\"", "", attrs, flags=re.IGNORECASE)
        iframe = (
            f'<iframe{attrs} style="position: absolute; top: 0; left: 0; '
            f'width: 100%; height: 100%;">{match.group("inner")}</iframe>'
        )
        style = f"padding-bottom: {ratio:g}%; position: relative; height: 0; overflow: hidden;"
        wrapper_style = self.options["wrapper_style"].strip()
        if wrapper_style:
            style = f"{style} {wrapper_style.rstrip(';')};"
        return f'<div class="responsive-iframe-wrapper" style="{style}">{iframe}</div>'


class HighlightPlugin(MarkdownPlugin):
    """Highlights fenced code blocks with Pygments.

    Unknown languages fall back to a plain ``<pre><code>`` block.
    """

    name = "markdown-highlight"
    OPTIONS = {
        "css_class": (str, "highlight"),
        "show_line_numbers": (bool, False),
        "aliases": (dict, {}),
    }

    def _formatter(self) -> HtmlFormatter:
        return HtmlFormatter(
            cssclass=self.options["css_class"],
            linenos="inline" if self.options["show_line_numbers"] else False,
        )

    def render_code(
        self, context: RenderContext, code: str, info: str | None
    ) -> str | None:
        if not info or not info.strip():
            return None
        language = info.split()[0].lower()
        language = self.options["aliases"].get(language, language)
        try:
            lexer = get_lexer_by_name(language, stripall=True)
        except ClassNotFound:
            return None
        highlighted = highlight(code, lexer, self._formatter())
        css_class = self.options["css_class"]
        return (
            f'<div class="{css_class}-wrapper" data-language="{escape_html(language)}">'
            f"{highlighted}</div>\n"
        )

    def head_snippet(self) -> str:
        css = self._formatter().get_style_defs(f".{self.options['css_class']}")
        return f"<style>{css}</style>"


class CopyLinkedFilesPlugin(MarkdownPlugin):
    """Copies files linked relatively from a post into the static directory."""

    name = "markdown-copy-linked-files"
    OPTIONS = {"ignore_file_extensions": (list, [])}

    LINK_RE = re.compile(
        r'(?P<prefix>\b(?:href|src|poster)=")(?P<url>[^"]+)(?P<suffix>")', re.IGNORECASE
    )
    _PAGE_EXTENSIONS = {".md", ".markdown", ".html", ".htm"}

    def transform_html(self, context: RenderContext, html: str) -> str:
        ignored = {
            ext.lower().lstrip(".") for ext in self.options["ignore_file_extensions"]
        }

        def repl(match: re.Match) -> str:
            url = match.group("url")
            if not _is_relative_url(url):
                return match.group(0)
            source = _local_file(context, url)
            if source is None:
                return match.group(0)
            suffix = source.suffix.lower()
            if suffix in self._PAGE_EXTENSIONS or suffix.lstrip(".") in ignored:
                return match.group(0)
            copied = copy_static_file(source, context.static_dir)
            return f"{match.group('prefix')}{copied}{match.group('suffix')}"

        return self.LINK_RE.sub(repl, html)


class SmartypantsPlugin(MarkdownPlugin):
    """Typographic punctuation: curly quotes, em dashes and ellipses.

    Runs over the rendered document so a quote can see the character
    before it, even when that character sits inside ``<em>``, ``<a>`` or
    ``<code>``. Tags and the contents of code, pre, script and style
    elements are left untouched.
    """

    name = "markdown-smartypants"
    OPTIONS = {
        "quotes": (bool, True),
        "dashes": (bool, True),
        "ellipses": (bool, True),
    }

    _OPENING_CONTEXT = r"([\s(\[{\u2014\u2013-])"
    _TAG_RE = re.compile(r"(<!--.*?-->|<[^>]*>)", re.DOTALL)
    _TAG_NAME_RE = re.compile(r"<\s*(/?)\s*([a-zA-Z][\w-]*)")
    _PRESERVED_TAGS = {"code", "kbd", "pre", "samp", "script", "style"}
    _INLINE_TAGS = {
        "a", "abbr", "b", "cite", "code", "del", "em", "i", "img", "kbd",
        "mark", "q", "s", "samp", "small", "span", "strong", "sub", "sup", "u",
    }

    def smarten(self, text: str, previous: str = "") -> str:
        """Convert punctuation in a plain text run.

        Args:
            text: Unescaped text.
            previous: The character rendered just before ``text``; empty at
                the start of a block.
        """
        if self.options["ellipses"]:
            text = text.replace("...", "\u2026").replace(". . .", "\u2026")
        if self.options["dashes"]:
            text = text.replace("---", "\u2014").replace("--", "\u2014")
        if self.options["quotes"]:
            text = text.replace("``", "\u201c").replace("''", "\u201d")
            # one leading character of context, stripped again below
            text = (previous or " ") + text
            text = re.sub(self._OPENING_CONTEXT + '"', "\\1\u201c", text)
            text = text.replace('"', "\u201d")
            text = re.sub(self._OPENING_CONTEXT + "'", "\\1\u2018", text)
            text = text.replace("'", "\u2019")
            text = text[1:]
        return text

    def transform_html(self, context: RenderContext, html: str) -> str:
        parts: list[str] = []
        previous = ""
        preserved = 0
        for index, chunk in enumerate(self._TAG_RE.split(html)):
            if index % 2:
                parts.append(chunk)
                match = self._TAG_NAME_RE.match(chunk)
                if not match:
                    continue
                closing, tag = match.group(1), match.group(2).lower()
                if tag in self._PRESERVED_TAGS and not chunk.endswith("/>"):
                    preserved = max(preserved - 1, 0) if closing else preserved + 1
                if tag not in self._INLINE_TAGS:
                    previous = ""
                continue
            if not chunk:
                continue
            if preserved:
                parts.append(chunk)
                previous = unescape(chunk)[-1:] or previous
                continue
            text = chunk.replace("&quot;", '"').replace("&#x27;", "'").replace("&#39;", "'")
            smart = self.smarten(text, previous)
            parts.append(smart.replace('"', "&quot;"))
            previous = unescape(smart)[-1:] or previous
        return "".join(parts)


class MarkdownPluginRegistry:
    """Registry mapping Markdown plugin identifiers to classes."""

    def __init__(self) -> None:
        self._plugins: dict[str, type[MarkdownPlugin]] = {}

    def register(self, plugin_cls: type[MarkdownPlugin]) -> None:
        self._plugins[plugin_cls.name] = plugin_cls

    def names(self) -> list[str]:
        return list(self._plugins)

    def create(self, declaration: PluginDeclaration, key: str | None = None) -> MarkdownPlugin:
        """Instantiate a declared Markdown plugin.

        Raises:
            ConfigError: If the identifier is unknown or the options are invalid.
        """
        plugin_cls = self._plugins.get(declaration.name)
        if plugin_cls is None:
            raise ConfigError(
                f"Unknown markdown plugin '{declaration.name}'", key
            )
        return plugin_cls(declaration.options, key)


def create_default_markdown_registry() -> MarkdownPluginRegistry:
    """Create a registry with the built-in Markdown plugins."""
    registry = MarkdownPluginRegistry()
    registry.register(ResponsiveImagesPlugin)
    registry.register(ResponsiveIframePlugin)
    registry.register(HighlightPlugin)
    registry.register(CopyLinkedFilesPlugin)
    registry.register(SmartypantsPlugin)
    return registry
