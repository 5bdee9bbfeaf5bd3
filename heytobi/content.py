"""Content processing for heytobi.

This module discovers Markdown posts inside a filesystem source, extracts
their front matter, renders them and creates Post objects.

A post lives either in its own directory (``blog/hello-world/index.md``,
slug ``hello-world``) next to the images it links, or in a single file
(``blog/hello-world.md``).

Key classes:
- Post: Dataclass representing a blog post with all its metadata.
- Heading: Dataclass representing a heading for TOC generation.
- FileContentLoader: Discovers Markdown files in a source directory.
- PostBuilder: Builds Post instances from source files.
- ContentProcessor: Facade that loads every post of a source.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .extractors import CompositeMetadataExtractor, default_metadata_extractor
from .renderers import MarkdownRenderer, RenderContext
from .utils import is_internal_path, is_markdown, slugify, titleize


@dataclass
class Heading:
    """Represents a heading extracted from markdown content for TOC generation.

    Attributes:
        id: Anchor ID for the heading (URL-friendly slug).
        text: The text content of the heading.
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


@dataclass
class Post:
    """Represents a blog post.

    Attributes:
        title: Post title (front matter, falling back to the titleized slug).
        date: Publication date, timezone aware.
        description: Front matter description, falling back to the excerpt.
        excerpt: First paragraph of the body as plain text.
        body: Markdown body without front matter.
        content: Rendered HTML.
        slug: URL-friendly slug.
        url: URL path of the post page.
        path: Path to the source file.
        source: Name of the filesystem source the post came from.
        draft: Whether this is a draft post.
        frontmatter: Raw front matter mapping.
        toc: Headings in document order.
    """

    title: str
    date: datetime
    description: str
    excerpt: str
    body: str
    content: str
    slug: str
    url: str
    path: Path
    source: str = ""
    draft: bool = False
    frontmatter: dict[str, Any] = field(default_factory=dict)
    toc: list[Heading] = field(default_factory=list)


class FileContentLoader:
    """Loads Markdown files from a source directory.

    Attributes:
        source_dir: Directory to scan.
    """

    def __init__(self, source_dir: Path):
        self.source_dir = source_dir

    def iter_files(self, include_drafts: bool = False) -> list[Path]:
        """List Markdown files, sorted by path.

        Files or directories starting with ``_`` are drafts and skipped
        unless ``include_drafts`` is set.

        Args:
            include_drafts: Whether to include draft files.

        Returns:
            List of paths to Markdown files.
        """
        files: list[Path] = []
        for path in sorted(self.source_dir.rglob("*")):
            if path.is_dir() or not is_markdown(path):
                continue
            rel = path.relative_to(self.source_dir)
            if any(part.startswith(".") for part in rel.parts):
                continue
            if is_internal_path(rel) and not include_drafts:
                continue
            files.append(path)
        return files


def derive_slug(rel: Path) -> str:
    """Derive the slug of a post from its source-relative path.

    ``hello-world/index.md`` and ``hello-world.md`` both give ``hello-world``;
    nested directories are kept (``2019/recap/index.md`` -> ``2019/recap``).
    """
    parts = list(rel.parent.parts) if rel.stem == "index" else [*rel.parent.parts, rel.stem]
    slugs = [slugify(part.lstrip("_")) for part in parts if part not in ("", ".")]
    return "/".join(slugs) or "index"


class PostBuilder:
    """Builds Post objects from source files.

    Attributes:
        source_dir: Directory of the filesystem source.
        source_name: Name of the filesystem source.
        static_dir: Output directory for copied/resized files.
        renderer: Markdown renderer.
        metadata_extractor: Composite metadata extractor.
    """

    def __init__(
        self,
        source_dir: Path,
        static_dir: Path,
        source_name: str = "",
        renderer: MarkdownRenderer | None = None,
        metadata_extractor: CompositeMetadataExtractor | None = None,
    ):
        self.source_dir = source_dir
        self.static_dir = static_dir
        self.source_name = source_name
        self.renderer = renderer or MarkdownRenderer()
        self.metadata_extractor = metadata_extractor or default_metadata_extractor

    def build(self, path: Path, draft: bool = False) -> Post:
        """Build a Post object from a source file.

        Args:
            path: Path to the Markdown file.
            draft: Whether this is a draft post.

        Returns:
            Post object.

        Raises:
            ContentError: If the front matter is malformed.
        """
        rel = path.relative_to(self.source_dir)
        raw = path.read_text(encoding="utf-8")
        metadata = self.metadata_extractor.extract(raw, path)
        body = metadata.get("body", raw)

        context = RenderContext(source_dir=path.parent, static_dir=self.static_dir)
        content, toc = self.renderer.render(body, context)

        slug = derive_slug(rel)
        excerpt = metadata.get("excerpt", "")
        return Post(
            title=metadata.get("title") or titleize(slug.rsplit("/", 1)[-1]),
            date=metadata.get("date") or metadata["mtime"],
            description=metadata.get("description") or excerpt,
            excerpt=excerpt,
            body=body,
            content=content,
            slug=slug,
            url=f"/{slug}/",
            path=path,
            source=self.source_name,
            draft=draft,
            frontmatter=metadata.get("frontmatter", {}),
            toc=toc,
        )


class ContentProcessor:
    """Facade for loading all posts of one filesystem source.

    Attributes:
        source_dir: Directory of the filesystem source.
    """

    def __init__(
        self,
        source_dir: Path,
        content_loader: FileContentLoader | None = None,
        post_builder: PostBuilder | None = None,
    ):
        self.source_dir = source_dir
        self._content_loader = content_loader or FileContentLoader(source_dir)
        self._post_builder = post_builder or PostBuilder(
            source_dir, source_dir.parent / "static"
        )

    def load(self, include_drafts: bool = False) -> list[Post]:
        """Load all Markdown files and create Post objects.

        Args:
            include_drafts: Whether to include draft posts.

        Returns:
            List of Post objects.
        """
        posts: list[Post] = []
        for path in self._content_loader.iter_files(include_drafts):
            draft = is_internal_path(path.relative_to(self.source_dir))
            posts.append(self._post_builder.build(path, draft=draft))
        return posts
