"""Plugin system for heytobi.

Every entry of the ``plugins`` list in ``site.yaml`` resolves to a Plugin
subclass. Plugins are instantiated in declared order and the build calls
their hooks in that same order:

1. ``on_pre_build``: validate the environment, prepare shared state.
2. ``on_create_pages``: produce posts.
3. ``template_globals``: contribute helpers to the template environment.
4. ``on_render_page``: rewrite the HTML of every rendered page.
5. ``on_post_build``: write extra files into the output directory.

Key classes:
- BuildContext: State shared by all plugins during one build.
- Page: A page about to be rendered.
- Plugin: Base class with no-op hooks and option validation.
- PluginRegistry: Maps identifiers to plugin classes.

Built-in plugins defined here:
- SourceFilesystemPlugin (``source-filesystem``)
- MarkdownTransformerPlugin (``transformer-markdown``)
- ImageTransformerPlugin (``transformer-images``)
- HeadPlugin (``head``)

The feed, manifest, offline and typography plugins live in their own modules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .collections import PostCollection
from .config import (
    REQUIRED,
    ConfigError,
    PluginDeclaration,
    SiteConfig,
    validate_options,
)
from .content import ContentProcessor, Post, PostBuilder
from .extractors import ContentError
from .html_utils import escape_html, inject_head, join_root_url
from .images import RESIZABLE_EXTENSIONS, resized_static_url
from .markdown_plugins import MarkdownPluginRegistry, create_default_markdown_registry
from .renderers import MarkdownRenderer


@dataclass
class BuildContext:
    """State shared by all plugins during one build.

    Attributes:
        project_root: Root directory of the project.
        output_dir: Directory the site is written to.
        config: Loaded site configuration.
        include_drafts: Whether draft posts are part of this build.
        sources: Filesystem sources by name.
        posts: All posts created so far.
    """

    project_root: Path
    output_dir: Path
    config: SiteConfig
    include_drafts: bool = False
    sources: dict[str, Path] = field(default_factory=dict)
    posts: PostCollection = field(default_factory=lambda: PostCollection([]))

    @property
    def static_dir(self) -> Path:
        return self.output_dir / "static"


@dataclass
class Page:
    """A page about to be rendered.

    Attributes:
        url: URL path (``/slug/`` or a file path such as ``/404.html``).
        template: Template name.
        title: Page title (without the site title).
        description: Page description for meta tags.
        post: The post shown on this page, if any.
        context: Extra template variables.
    """

    url: str
    template: str
    title: str
    description: str = ""
    post: Post | None = None
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def output_path(self) -> str:
        """Path of the written file relative to the output directory."""
        if self.url.endswith(".html"):
            return self.url.lstrip("/")
        stripped = self.url.strip("/")
        return f"{stripped}/index.html" if stripped else "index.html"


class Plugin:
    """Base class for site plugins.

    Subclasses set ``name`` and ``OPTIONS`` (``{option: (type, default)}``,
    with ``REQUIRED`` for mandatory options) and override the hooks they need.

    Attributes:
        options: Validated options with defaults applied.
        key: Key path of the declaration, used in error messages.
    """

    name = ""
    OPTIONS: dict[str, tuple[Any, Any]] = {}

    def __init__(self, options: dict[str, Any] | None = None, key: str | None = None):
        self.key = key or self.name
        self.options = validate_options(self.name, options or {}, self.OPTIONS, key)

    def on_pre_build(self, ctx: BuildContext) -> None:
        """Called before any content is loaded."""

    def on_create_pages(self, ctx: BuildContext) -> None:
        """Called once all plugins ran ``on_pre_build``."""

    def template_globals(self, ctx: BuildContext) -> dict[str, Any]:
        """Return helpers to expose to templates."""
        return {}

    def on_render_page(self, ctx: BuildContext, page: Page, html: str) -> str:
        """Rewrite the rendered HTML of a page."""
        return html

    def on_post_build(self, ctx: BuildContext) -> None:
        """Called after every page has been written."""

    def option_error(self, option: str, message: str) -> ConfigError:
        return ConfigError(message, f"{self.key}.options.{option}")


class SourceFilesystemPlugin(Plugin):
    """Registers a named content directory.

    Options:
        path: Directory relative to the project root.
        name: Source name, unique across the site.
    """

    name = "source-filesystem"
    OPTIONS = {"path": (str, REQUIRED), "name": (str, REQUIRED)}

    def resolve_path(self, project_root: Path) -> Path:
        return (project_root / self.options["path"]).resolve()

    def on_pre_build(self, ctx: BuildContext) -> None:
        source_name = self.options["name"]
        if source_name in ctx.sources:
            raise self.option_error("name", f"Duplicate source name '{source_name}'")
        path = self.resolve_path(ctx.project_root)
        if not path.is_dir():
            raise self.option_error("path", f"Source directory not found: {path}")
        ctx.sources[source_name] = path


class MarkdownTransformerPlugin(Plugin):
    """Turns the Markdown files of every filesystem source into posts.

    Options:
        plugins: Markdown plugin declarations, applied in declared order.
    """

    name = "transformer-markdown"
    OPTIONS = {"plugins": (list, [])}

    def __init__(
        self,
        options: dict[str, Any] | None = None,
        key: str | None = None,
        markdown_registry: MarkdownPluginRegistry | None = None,
    ):
        super().__init__(options, key)
        registry = markdown_registry or create_default_markdown_registry()
        plugins_key = f"{self.key}.options.plugins"
        self.markdown_plugins = []
        for index, entry in enumerate(self.options["plugins"]):
            entry_key = f"{plugins_key}[{index}]"
            declaration = PluginDeclaration.from_entry(entry, entry_key)
            self.markdown_plugins.append(registry.create(declaration, entry_key))
        self.renderer = MarkdownRenderer(self.markdown_plugins)

    def on_create_pages(self, ctx: BuildContext) -> None:
        posts: list[Post] = list(ctx.posts)
        for source_name, source_dir in ctx.sources.items():
            builder = PostBuilder(
                source_dir, ctx.static_dir, source_name, renderer=self.renderer
            )
            processor = ContentProcessor(source_dir, post_builder=builder)
            posts.extend(processor.load(include_drafts=ctx.include_drafts))

        seen: dict[str, Post] = {}
        for post in posts:
            if post.url in seen:
                raise ContentError(
                    post.path,
                    f"Duplicate post URL {post.url} (also used by {seen[post.url].path})",
                )
            seen[post.url] = post
        ctx.posts = PostCollection(posts)

    def on_render_page(self, ctx: BuildContext, page: Page, html: str) -> str:
        if page.post is None:
            return html
        return inject_head(html, self.renderer.head_snippets())


class ImageTransformerPlugin(Plugin):
    """Gives templates access to resized images from the filesystem sources.

    Exposes ``fixed_image(name, width, height=None)``, which returns the URL
    of a resized copy, or ``None`` when no source contains the image.
    """

    name = "transformer-images"

    def find_image(self, ctx: BuildContext, name: str) -> Path | None:
        """Find an image by file name, or by stem with any raster extension."""
        wanted = Path(name)
        for source_dir in ctx.sources.values():
            for path in sorted(source_dir.rglob("*")):
                if not path.is_file() or path.suffix.lower() not in RESIZABLE_EXTENSIONS:
                    continue
                if path.name == wanted.name or (not wanted.suffix and path.stem == wanted.name):
                    return path
        return None

    def template_globals(self, ctx: BuildContext) -> dict[str, Any]:
        def fixed_image(name: str, width: int, height: int | None = None) -> str | None:
            source = self.find_image(ctx, name)
            if source is None:
                return None
            url, _ = resized_static_url(source, ctx.static_dir, width, height)
            return url

        return {"fixed_image": fixed_image}


class HeadPlugin(Plugin):
    """Adds per-page description, Open Graph and Twitter meta tags."""

    name = "head"

    def head_tags(self, ctx: BuildContext, page: Page) -> list[str]:
        metadata = ctx.config.site_metadata
        description = page.description or metadata.description
        title = page.title or metadata.title
        tags = [
            ("name", "description", description),
            ("property", "og:title", title),
            ("property", "og:description", description),
            ("property", "og:type", "article" if page.post else "website"),
            ("name", "twitter:card", "summary"),
            ("name", "twitter:title", title),
            ("name", "twitter:description", description),
        ]
        twitter = metadata.social.get("twitter")
        if twitter:
            tags.append(("name", "twitter:creator", f"@{twitter.lstrip('@')}"))
        if page.post is not None:
            tags.append(
                ("property", "article:published_time", page.post.date.isoformat())
            )
        if metadata.author:
            tags.append(("name", "author", metadata.author))
        lines = [
            f'<meta {attr}="{escape_html(key)}" content="{escape_html(value)}">'
            for attr, key, value in tags
        ]
        if metadata.site_url:
            canonical = join_root_url(metadata.site_url, page.url)
            lines.append(f'<meta property="og:url" content="{escape_html(canonical)}">')
            lines.append(f'<link rel="canonical" href="{escape_html(canonical)}">')
        return lines

    def on_render_page(self, ctx: BuildContext, page: Page, html: str) -> str:
        return inject_head(html, "\n".join(self.head_tags(ctx, page)))


class PluginRegistry:
    """Registry mapping plugin identifiers to plugin classes."""

    def __init__(self) -> None:
        self._plugins: dict[str, type[Plugin]] = {}

    def register(self, plugin_cls: type[Plugin]) -> None:
        self._plugins[plugin_cls.name] = plugin_cls

    def names(self) -> list[str]:
        return list(self._plugins)

    def create(self, declaration: PluginDeclaration, key: str | None = None) -> Plugin:
        """Instantiate a declared plugin.

        Raises:
            ConfigError: If the identifier is unknown or the options are invalid.
        """
        plugin_cls = self._plugins.get(declaration.name)
        if plugin_cls is None:
            raise ConfigError(f"Unknown plugin '{declaration.name}'", key)
        return plugin_cls(declaration.options, key)

    def load(self, declarations: list[PluginDeclaration]) -> list[Plugin]:
        """Instantiate all declarations, preserving order."""
        return [
            self.create(declaration, f"plugins[{index}]")
            for index, declaration in enumerate(declarations)
        ]


def create_default_plugin_registry() -> PluginRegistry:
    """Create a registry with all built-in plugins."""
    # Import here to avoid circular imports
    from .feeds import FeedPlugin
    from .manifest import ManifestPlugin
    from .offline import OfflinePlugin
    from .typography import TypographyPlugin

    registry = PluginRegistry()
    for plugin_cls in (
        SourceFilesystemPlugin,
        MarkdownTransformerPlugin,
        ImageTransformerPlugin,
        FeedPlugin,
        ManifestPlugin,
        OfflinePlugin,
        HeadPlugin,
        TypographyPlugin,
    ):
        registry.register(plugin_cls)
    return registry
