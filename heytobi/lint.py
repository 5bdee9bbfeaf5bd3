"""Content and configuration checks for heytobi.

These checks catch mistakes before a build does:

- The configuration loads, every plugin resolves, its options have the
  right types, and the paths it points at exist.
- Every Markdown document's front matter parses with string ``title``
  and ``description`` fields and an ISO-8601 ``date``.
- Every fenced code sample names a language Pygments knows, and lexes
  without error tokens.

Key functions:
- check_config: Configuration and plugin option checks.
- check_content: Front matter and code sample checks.
- check_site: Both.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import mistune
from pygments.lexers import get_lexer_by_name
from pygments.token import Token
from pygments.util import ClassNotFound

from .config import CONFIG_FILENAME, ConfigError, load_config
from .content import FileContentLoader
from .extractors import ContentError, extract_frontmatter, validate_frontmatter
from .plugins import BuildContext, create_default_plugin_registry

ERROR = "error"
WARNING = "warning"


@dataclass
class Issue:
    """A problem found by a check.

    Attributes:
        path: File the problem is in.
        message: Human-readable description.
        level: ``"error"`` or ``"warning"``.
    """

    path: Path
    message: str
    level: str = ERROR

    @property
    def is_error(self) -> bool:
        return self.level == ERROR

    def format(self, project_root: Path | None = None) -> str:
        path = self.path
        if project_root is not None:
            try:
                path = self.path.relative_to(project_root)
            except ValueError:
                pass
        return f"{path}: {self.level}: {self.message}"


def _check_config(project_root: Path) -> tuple[list[Issue], dict[str, Path]]:
    config_path = project_root / CONFIG_FILENAME
    try:
        config = load_config(project_root)
        plugins = create_default_plugin_registry().load(config.plugins)
    except ConfigError as exc:
        return [Issue(config_path, str(exc))], {}

    issues: list[Issue] = []
    ctx = BuildContext(
        project_root=project_root,
        output_dir=project_root / config.output_dir,
        config=config,
    )
    for plugin in plugins:
        try:
            plugin.on_pre_build(ctx)
        except ConfigError as exc:
            issues.append(Issue(config_path, str(exc)))
    if not config.site_metadata.title:
        issues.append(Issue(config_path, "site_metadata.title is empty", WARNING))
    return issues, ctx.sources


def check_config(project_root: Path) -> list[Issue]:
    """Check the configuration and every plugin's options.

    Args:
        project_root: Root directory of the project.

    Returns:
        Issues found, empty when the configuration is valid.
    """
    issues, _ = _check_config(project_root)
    return issues


def _iter_code_blocks(tokens: list[dict[str, Any]]) -> Iterator[dict[str, Any]]:
    for token in tokens:
        if token.get("type") == "block_code":
            yield token
        children = token.get("children")
        if isinstance(children, list):
            yield from _iter_code_blocks(children)


def check_code_samples(body: str, path: Path) -> list[Issue]:
    """Check the fenced code samples of a Markdown body.

    Args:
        body: Markdown body without front matter.
        path: Document path, for reporting.

    Returns:
        An error per unknown language, a warning per sample that lexes
        with error tokens or declares no language.
    """
    parse = mistune.create_markdown(renderer="ast")
    issues: list[Issue] = []
    for number, block in enumerate(_iter_code_blocks(parse(body)), start=1):
        if block.get("style") == "indent":
            continue
        info = (block.get("attrs") or {}).get("info") or ""
        code = block.get("raw", "")
        if not info.strip():
            issues.append(Issue(path, f"Code sample {number} declares no language", WARNING))
            continue
        language = info.split()[0]
        try:
            lexer = get_lexer_by_name(language)
        except ClassNotFound:
            issues.append(Issue(path, f"Code sample {number}: unknown language '{language}'"))
            continue
        errors = [
            value
            for token_type, value in lexer.get_tokens(code)
            if token_type in Token.Error
        ]
        if errors:
            shown = ", ".join(repr(v) for v in errors[:3])
            issues.append(
                Issue(
                    path,
                    f"Code sample {number} ({language}) has {len(errors)} "
                    f"unexpected token(s): {shown}",
                    WARNING,
                )
            )
    return issues


def check_document(path: Path) -> list[Issue]:
    """Check one Markdown document's front matter and code samples."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return [Issue(path, f"Cannot read file: {exc}")]
    try:
        frontmatter, body = extract_frontmatter(text, path)
        fields = validate_frontmatter(frontmatter, path)
    except ContentError as exc:
        return [Issue(path, exc.message)]

    issues: list[Issue] = []
    for name in ("title", "date", "description"):
        if name not in fields:
            issues.append(Issue(path, f"Front matter has no '{name}'", WARNING))
    issues.extend(check_code_samples(body, path))
    return issues


def check_content(project_root: Path, sources: dict[str, Path] | None = None) -> list[Issue]:
    """Check every Markdown document of every filesystem source (drafts included).

    Args:
        project_root: Root directory of the project.
        sources: Filesystem sources; resolved from the configuration when omitted.

    Returns:
        Issues found.
    """
    if sources is None:
        _, sources = _check_config(project_root)
    issues: list[Issue] = []
    for source_dir in sources.values():
        for path in FileContentLoader(source_dir).iter_files(include_drafts=True):
            issues.extend(check_document(path))
    return issues


def check_site(project_root: Path) -> list[Issue]:
    """Run the configuration and content checks."""
    issues, sources = _check_config(project_root)
    return issues + check_content(project_root, sources)
