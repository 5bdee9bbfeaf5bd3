"""Site configuration for heytobi.

This module loads ``site.yaml`` from the project root and turns it into typed
objects: the site metadata record and the ordered plugin declaration list.

Key components:
- SiteMetadata: Flat record of site-wide strings (title, author, ...).
- PluginDeclaration: A plugin identifier with its options record.
- SiteConfig: The whole configuration object.
- load_config: Reads, validates and types the configuration.
- validate_options: Schema check shared by all plugins.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "site.yaml"

DEFAULT_CONFIG = {
    "output_dir": "public",
    "port": 8000,
    "ws_port": None,
    "root_url": "",
}

_METADATA_FIELDS = ("title", "author", "description", "site_url")


class _Required:
    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return "REQUIRED"


# Marks an option without a default in a plugin options schema
REQUIRED: Any = _Required()


class ConfigError(Exception):
    """Invalid configuration.

    Attributes:
        message: Human-readable error message.
        key: Dotted path of the offending key, when known.
    """

    def __init__(self, message: str, key: str | None = None):
        self.message = message
        self.key = key
        super().__init__(f"{key}: {message}" if key else message)


class _UniqueKeyLoader(yaml.SafeLoader):
    """Safe YAML loader that rejects duplicate mapping keys."""

    def construct_mapping(self, node, deep=False):
        seen: set[Any] = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise ConfigError(
                    f"Duplicate key {key!r} (line {key_node.start_mark.line + 1})"
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def load_yaml(path: Path) -> Any:
    """Load a YAML document, rejecting duplicate keys."""
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.load(f, Loader=_UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path.name}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read {path.name}: {exc}") from exc


@dataclass
class SiteMetadata:
    """Site-wide metadata available to every template.

    Attributes:
        title: Site title.
        author: Author name.
        description: One-line site description.
        site_url: Canonical base URL.
        social: Social network handles keyed by network name.
    """

    title: str = ""
    author: str = ""
    description: str = ""
    site_url: str = ""
    social: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Any) -> SiteMetadata:
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError("Expected a mapping", "site_metadata")
        unknown = set(data) - set(_METADATA_FIELDS) - {"social"}
        if unknown:
            raise ConfigError(
                f"Unknown field(s): {', '.join(sorted(map(str, unknown)))}",
                "site_metadata",
            )
        values: dict[str, Any] = {}
        for name in _METADATA_FIELDS:
            value = data.get(name, "")
            if not isinstance(value, str):
                raise ConfigError("Expected plain text", f"site_metadata.{name}")
            values[name] = value
        social = data.get("social") or {}
        if not isinstance(social, dict):
            raise ConfigError("Expected a mapping", "site_metadata.social")
        for network, handle in social.items():
            if not isinstance(handle, str):
                raise ConfigError(
                    "Expected plain text", f"site_metadata.social.{network}"
                )
        return cls(social=dict(social), **values)


@dataclass
class PluginDeclaration:
    """One entry of the plugin list.

    Attributes:
        name: Plugin identifier.
        options: Options record, empty for bare identifiers.
    """

    name: str
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_entry(cls, entry: Any, key: str = "plugins") -> PluginDeclaration:
        """Build a declaration from a bare name or a ``{resolve, options}`` mapping."""
        if isinstance(entry, str):
            if not entry.strip():
                raise ConfigError("Plugin name cannot be empty", key)
            return cls(name=entry.strip())
        if isinstance(entry, dict):
            unknown = set(entry) - {"resolve", "options"}
            if unknown:
                raise ConfigError(
                    f"Unknown plugin entry key(s): {', '.join(sorted(map(str, unknown)))}",
                    key,
                )
            name = entry.get("resolve")
            if not isinstance(name, str) or not name.strip():
                raise ConfigError("Plugin entry needs a 'resolve' name", key)
            options = entry.get("options") or {}
            if not isinstance(options, dict):
                raise ConfigError("Expected a mapping", f"{key}.options")
            return cls(name=name.strip(), options=dict(options))
        raise ConfigError(
            "Expected a plugin name or a mapping with 'resolve' and 'options'", key
        )


@dataclass
class SiteConfig:
    """The typed configuration object.

    Attributes:
        site_metadata: Site-wide metadata.
        plugins: Plugin declarations in declared order.
        output_dir: Output directory relative to the project root.
        port: Dev server HTTP port.
        ws_port: Dev server live reload port (``None`` means ``port + 1``).
        root_url: Base URL used to absolutize links, empty to keep them relative.
    """

    site_metadata: SiteMetadata = field(default_factory=SiteMetadata)
    plugins: list[PluginDeclaration] = field(default_factory=list)
    output_dir: str = DEFAULT_CONFIG["output_dir"]
    port: int = DEFAULT_CONFIG["port"]
    ws_port: int | None = None
    root_url: str = ""


def parse_plugins(entries: Any, key: str = "plugins") -> list[PluginDeclaration]:
    """Parse a plugin list, preserving declared order.

    Args:
        entries: The raw list from the configuration.
        key: Key path used in error messages.

    Returns:
        List of PluginDeclaration objects.
    """
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ConfigError("Expected a list", key)
    return [
        PluginDeclaration.from_entry(entry, f"{key}[{index}]")
        for index, entry in enumerate(entries)
    ]


def validate_options(
    plugin_name: str,
    options: dict[str, Any],
    schema: dict[str, tuple[type | tuple[type, ...], Any]],
    key: str | None = None,
) -> dict[str, Any]:
    """Validate a plugin options record against a schema.

    The schema maps each option name to ``(type, default)``. A default of
    ``REQUIRED`` marks the option as mandatory. Integer options reject booleans.

    Args:
        plugin_name: Plugin identifier, used in error messages.
        options: Options as declared.
        schema: Option schema.
        key: Key path prefix for error messages.

    Returns:
        A new dict with defaults filled in.

    Raises:
        ConfigError: On unknown options, wrong types, or missing required options.
    """
    prefix = key or plugin_name
    unknown = set(options) - set(schema)
    if unknown:
        raise ConfigError(
            f"Unknown option(s) for {plugin_name}: {', '.join(sorted(map(str, unknown)))}",
            f"{prefix}.options",
        )
    resolved: dict[str, Any] = {}
    for name, (expected, default) in schema.items():
        if name not in options:
            if default is REQUIRED:
                raise ConfigError(
                    f"Missing required option for {plugin_name}",
                    f"{prefix}.options.{name}",
                )
            resolved[name] = default
            continue
        value = options[name]
        wrong_bool = isinstance(value, bool) and bool not in _as_tuple(expected)
        if wrong_bool or not isinstance(value, expected):
            names = " or ".join(t.__name__ for t in _as_tuple(expected))
            raise ConfigError(
                f"Expected {names}, got {type(value).__name__}",
                f"{prefix}.options.{name}",
            )
        resolved[name] = value
    return resolved


def _as_tuple(expected: type | tuple[type, ...]) -> tuple[type, ...]:
    return expected if isinstance(expected, tuple) else (expected,)


def load_config(project_root: Path) -> SiteConfig:
    """Load site configuration from site.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        SiteConfig with defaults applied.

    Raises:
        ConfigError: If the file is malformed.
    """
    config_path = project_root / CONFIG_FILENAME
    raw: dict[str, Any] = dict(DEFAULT_CONFIG)
    if config_path.exists():
        loaded = load_yaml(config_path) or {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping")
        raw.update(loaded)

    port = raw.get("port")
    if isinstance(port, bool) or not isinstance(port, int):
        raise ConfigError("Expected an integer", "port")
    ws_port = raw.get("ws_port")
    if ws_port is not None and (isinstance(ws_port, bool) or not isinstance(ws_port, int)):
        raise ConfigError("Expected an integer", "ws_port")
    for name in ("output_dir", "root_url"):
        if not isinstance(raw.get(name) or "", str):
            raise ConfigError("Expected plain text", name)

    return SiteConfig(
        site_metadata=SiteMetadata.from_mapping(raw.get("site_metadata")),
        plugins=parse_plugins(raw.get("plugins")),
        output_dir=raw.get("output_dir") or DEFAULT_CONFIG["output_dir"],
        port=port,
        ws_port=ws_port,
        root_url=raw.get("root_url") or "",
    )
