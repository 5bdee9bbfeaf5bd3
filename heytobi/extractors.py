"""Front matter and metadata extraction for heytobi.

Posts are Markdown documents with a YAML front matter block::

    ---
    title: Hello World
    date: "2019-02-10T22:12:03.284Z"
    description: A first post.
    ---

Key components:
- extract_frontmatter: Split the YAML block from the body.
- parse_frontmatter_date: Parse ISO-8601 dates into aware datetimes.
- validate_frontmatter: Check field types and parse the date.
- ContentError: Raised for malformed front matter.
- FrontmatterExtractor / DescriptionExtractor / DateExtractor: composable
  metadata extractors, merged by CompositeMetadataExtractor.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from .utils import first_paragraph, parse_iso_datetime

FRONTMATTER_RE = re.compile(r"^---[ \t]*\r?\n(.*?\n)?---[ \t]*(?:\r?\n|$)\n*", re.DOTALL)

_TEXT_FIELDS = ("title", "description")


class ContentError(Exception):
    """Malformed content document.

    Attributes:
        source_path: Path to the offending document.
        message: Human-readable error message.
    """

    def __init__(self, source_path: Path, message: str):
        self.source_path = source_path
        self.message = message
        super().__init__(f"{source_path}: {message}")


def extract_frontmatter(text: str, path: Path | None = None) -> tuple[dict[str, Any], str]:
    """Extract YAML front matter from content.

    Args:
        text: Raw file content.
        path: Source path, used in error messages.

    Returns:
        Tuple of (front matter dict, remaining content).

    Raises:
        ContentError: If the front matter block is not valid YAML or not a mapping.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1) or "") or {}
    except yaml.YAMLError as exc:
        raise ContentError(path or Path("<string>"), f"Invalid front matter: {exc}") from exc
    if not isinstance(data, dict):
        raise ContentError(path or Path("<string>"), "Front matter must be a mapping")
    return data, text[match.end() :]


def parse_frontmatter_date(value: Any) -> datetime:
    """Parse a front matter ``date`` value.

    Quoted ISO-8601 strings (a trailing ``Z`` included) arrive as ``str``;
    unquoted ones are already turned into ``date``/``datetime`` by PyYAML.
    Naive values are treated as UTC.

    Raises:
        ValueError: If the value is not an ISO-8601 timestamp.
    """
    return parse_iso_datetime(value)


def validate_frontmatter(data: dict[str, Any], path: Path) -> dict[str, Any]:
    """Check front matter field types.

    ``title`` and ``description`` must be strings, ``date`` must be an
    ISO-8601 timestamp. Missing fields are allowed.

    Returns:
        Dict of the validated fields, with ``date`` parsed to an aware datetime.

    Raises:
        ContentError: On the first invalid field.
    """
    validated: dict[str, Any] = {}
    for name in _TEXT_FIELDS:
        if name in data and data[name] is not None:
            if not isinstance(data[name], str):
                raise ContentError(path, f"Front matter field '{name}' must be text")
            validated[name] = data[name]
    if data.get("date") is not None:
        try:
            validated["date"] = parse_frontmatter_date(data["date"])
        except ValueError as exc:
            raise ContentError(
                path, f"Front matter field 'date' is not an ISO-8601 timestamp: {exc}"
            ) from exc
    return validated


class FrontmatterExtractor:
    """Extracts and validates YAML front matter.

    Returns the front matter dict, the body without it, and the typed fields
    (``title``, ``description``, ``date``) when present.
    """

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        frontmatter, body = extract_frontmatter(content, path)
        result: dict[str, Any] = {"frontmatter": frontmatter, "body": body}
        result.update(validate_frontmatter(frontmatter, path))
        return result


class DescriptionExtractor:
    """Derives an excerpt from the body's first paragraph."""

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        _, body = extract_frontmatter(content, path)
        return {"excerpt": first_paragraph(body)}


class DateExtractor:
    """Falls back to the file modification time when no date is declared."""

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        return {
            "mtime": datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        }


class CompositeMetadataExtractor:
    """Combines multiple metadata extractors.

    Runs every registered extractor and merges the results; later
    extractors override earlier ones.
    """

    def __init__(self, extractors: list | None = None):
        if extractors is None:
            self._extractors = [
                DateExtractor(),
                DescriptionExtractor(),
                FrontmatterExtractor(),
            ]
        else:
            self._extractors = list(extractors)

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for extractor in self._extractors:
            result.update(extractor.extract(content, path))
        return result


# Default composite extractor instance
default_metadata_extractor = CompositeMetadataExtractor()
