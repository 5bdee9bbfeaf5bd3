"""Feed generation for heytobi.

This module provides the ``feed`` plugin, which writes an RSS 2.0 feed of
all published posts and advertises it in every page head.

The module uses an abstract generator so other feed formats can be added
without touching the plugin.

Classes:
    FeedGenerator: Abstract base for feed generators.
    RSSGenerator: Generates RSS 2.0 feeds.
    FeedPlugin: The ``feed`` plugin.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .html_utils import absolutize_html_urls, escape_html, inject_head, join_root_url
from .plugins import BuildContext, Page, Plugin

if TYPE_CHECKING:
    from .config import SiteMetadata
    from .content import Post

RFC_822_FORMAT = "%a, %d %b %Y %H:%M:%S +0000"


def _cdata(text: str) -> str:
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


class FeedGenerator(ABC):
    """Abstract base class for feed generators.

    Subclasses implement specific feed formats (RSS, Atom, etc.).
    """

    @abstractmethod
    def generate(
        self,
        posts: Iterable[Post],
        metadata: SiteMetadata,
        title: str | None = None,
        feed_url: str | None = None,
    ) -> str:
        """Generate feed content.

        Args:
            posts: Posts to include in the feed.
            metadata: Site metadata (title, description, site_url).
            title: Optional feed title overriding the site title.
            feed_url: Absolute URL of the feed itself.

        Returns:
            Feed content as a string.
        """
        ...

    def write(self, output_path: Path, *args: Any, **kwargs: Any) -> None:
        """Generate the feed and write it to ``output_path``."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.generate(*args, **kwargs), encoding="utf-8")


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed, newest posts first.

    Each item carries the description as summary and the full post HTML
    (with absolute links) as ``content:encoded``.
    """

    def generate(
        self,
        posts: Iterable[Post],
        metadata: SiteMetadata,
        title: str | None = None,
        feed_url: str | None = None,
    ) -> str:
        base_url = metadata.site_url.rstrip("/")
        items = []
        for post in sorted(posts, key=lambda p: p.date, reverse=True):
            link = join_root_url(base_url, post.url)
            pub_date = post.date.astimezone(timezone.utc).strftime(RFC_822_FORMAT)
            description = post.description or post.excerpt or post.title
            content = absolutize_html_urls(post.content, base_url)
            items.append(
                f"<item><title>{escape_html(post.title)}</title>"
                f"<link>{escape_html(link)}</link>"
                f'<guid isPermaLink="false">{escape_html(link)}</guid>'
                f"<description>{escape_html(description)}</description>"
                f"<pubDate>{pub_date}</pubDate>"
                f"<content:encoded>{_cdata(content)}</content:encoded></item>"
            )

        build_date = datetime.now(timezone.utc).strftime(RFC_822_FORMAT)
        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/" '
            'xmlns:atom="http://www.w3.org/2005/Atom"><channel>',
            f"<title>{escape_html(title or metadata.title)}</title>",
            f"<description>{escape_html(metadata.description)}</description>",
            f"<link>{escape_html(base_url)}</link>",
        ]
        if feed_url:
            rss.append(
                f'<atom:link href="{escape_html(feed_url)}" rel="self" type="application/rss+xml"/>'
            )
        rss.append(f"<lastBuildDate>{build_date}</lastBuildDate>")
        rss.extend(items)
        rss.append("</channel></rss>")
        return "\n".join(rss)


class FeedPlugin(Plugin):
    """Writes the RSS feed of published posts.

    Options:
        output: URL path of the feed.
        title: Feed title, defaults to the site title.
    """

    name = "feed"
    OPTIONS = {"output": (str, "/rss.xml"), "title": (str, "")}

    def __init__(self, options: dict[str, Any] | None = None, key: str | None = None):
        super().__init__(options, key)
        output = self.options["output"]
        if not output.startswith("/") or output.endswith("/"):
            raise self.option_error("output", "Feed output must be a file path starting with '/'")
        self.generator: FeedGenerator = RSSGenerator()

    def on_pre_build(self, ctx: BuildContext) -> None:
        if not ctx.config.site_metadata.site_url:
            raise self.option_error(
                "output", "The feed needs site_metadata.site_url to build absolute links"
            )

    def _title(self, ctx: BuildContext) -> str:
        return self.options["title"] or ctx.config.site_metadata.title

    def on_render_page(self, ctx: BuildContext, page: Page, html: str) -> str:
        link = (
            f'<link rel="alternate" type="application/rss+xml" '
            f'title="{escape_html(self._title(ctx))}" href="{self.options["output"]}">'
        )
        return inject_head(html, link)

    def on_post_build(self, ctx: BuildContext) -> None:
        metadata = ctx.config.site_metadata
        output = self.options["output"]
        self.generator.write(
            ctx.output_dir / output.lstrip("/"),
            ctx.posts.published(),
            metadata,
            title=self._title(ctx),
            feed_url=join_root_url(metadata.site_url, output),
        )
