"""Utility functions for heytobi.

This module contains small helpers used throughout the codebase.
These include string processing, path handling, date parsing, and output directory handling.

Key functions:
    slugify: Convert filenames and titles to URL slugs.
    titleize: Convert slugs to human-readable titles.
    first_paragraph: Extract a plain-text summary from Markdown.
    parse_iso_datetime: Parse ISO-8601 timestamps into aware datetimes.
    file_digest: Content digest used to key copied static files.
    ensure_clean_dir: Ensure a directory exists and is empty.
    is_internal_path: Check for draft/internal path components.
    is_markdown: Check if a path is a Markdown file.
"""

from __future__ import annotations

import hashlib
import re
import shutil
from datetime import date, datetime, timezone
from pathlib import Path

# Re-export from html_utils so callers only need one import
from .html_utils import escape_html, join_root_url  # noqa: F401


def slugify(name: str) -> str:
    """Convert a filename stem or title to a URL slug.

    Args:
        name: Filename stem or free text.

    Returns:
        URL-friendly slug, ``"index"`` when nothing is left.

    Examples:
        >>> slugify("Java Lambdas, Explained!")
        'java-lambdas-explained'
    """
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", name)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def titleize(slug: str) -> str:
    """Convert a slug or filename to a human-readable title.

    Examples:
        >>> titleize("hello-world")
        'Hello World'
    """
    base = Path(slug).stem if "." in slug else slug
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def first_paragraph(text: str, limit: int = 160) -> str:
    """Extract and clean the first prose paragraph from Markdown text.

    Skips headings, images, code fences and horizontal rules, strips inline
    Markdown and HTML, collapses whitespace and truncates to ``limit``.

    Args:
        text: Markdown text content.
        limit: Maximum character length of result.

    Returns:
        Cleaned first paragraph, or an empty string.
    """
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()]
    for para in paragraphs:
        if para.startswith(("#", "![", "```", "~~~", "---", "<")):
            continue
        para = re.sub(r"<[^>]+>", "", para)
        para = re.sub(r"!?\[([^\]]*)\]\([^)]*\)", r"\1", para)
        para = re.sub(r"[*_`]+", "", para)
        collapsed = " ".join(para.split())
        return collapsed[:limit]
    return ""


def parse_iso_datetime(value: str | date | datetime) -> datetime:
    """Parse an ISO-8601 timestamp into a timezone-aware datetime.

    Accepts strings such as ``2019-02-10T22:12:03.284Z`` as well as the
    ``date``/``datetime`` objects PyYAML produces for unquoted timestamps.
    Naive values are interpreted as UTC.

    Raises:
        ValueError: If the value is not a valid ISO-8601 timestamp.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported date value: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def file_digest(path: Path, length: int = 12) -> str:
    """Return a short hex digest of a file's contents."""
    digest = hashlib.md5(usedforsecurity=False)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()[:length]


def text_digest(text: str, length: int = 12) -> str:
    """Return a short hex digest of a string."""
    return hashlib.md5(text.encode("utf-8"), usedforsecurity=False).hexdigest()[:length]


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(str(path), ignore_errors=True)
        if path.exists():
            # Fallback for stubborn directories
            for item in path.rglob("*"):
                if item.is_file():
                    item.unlink()
            for item in sorted(
                [p for p in path.rglob("*") if p.is_dir()], reverse=True
            ):
                item.rmdir()
            path.rmdir()
    path.mkdir(parents=True, exist_ok=True)


def is_internal_path(path: Path) -> bool:
    """Check if a path is internal (contains components starting with _).

    Internal paths are drafts or helper directories.

    Args:
        path: Path to check.

    Returns:
        True if any path component starts with underscore.
    """
    return any(part.startswith("_") for part in path.parts)


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file.

    Args:
        path: Path to check.

    Returns:
        True if the file has .md or .markdown extension (case-insensitive).
    """
    return path.suffix.lower() in (".md", ".markdown")
