"""Typography for heytobi.

The ``typography`` plugin turns a small YAML theme (base font size, line
height, modular scale ratio, font stacks) into a vertical-rhythm
stylesheet inlined in every page head. Templates get a ``rhythm(n)``
helper so spacing follows the same baseline.

Theme file example::

    base_font_size: 16px
    base_line_height: 1.75
    scale_ratio: 2.5
    header_font_family: [Montserrat, sans-serif]
    body_font_family: [Merriweather, Georgia, serif]
    google_fonts:
      - name: Montserrat
        styles: ["700"]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import quote_plus

from .config import REQUIRED, ConfigError, load_yaml
from .html_utils import escape_html, inject_head
from .plugins import BuildContext, Page, Plugin

THEME_EXTENSIONS = ("", ".yaml", ".yml")

# Exponents of the modular scale for h1..h6
HEADER_SCALE = {1: 5 / 5, 2: 3 / 5, 3: 2 / 5, 4: 0, 5: -1 / 5, 6: -1.5 / 5}


def _font_stack(fonts: list[str]) -> str:
    generic = {"serif", "sans-serif", "monospace", "cursive", "fantasy", "system-ui"}
    return ",".join(f if f in generic else f"'{f}'" for f in fonts)


def _num(value: float) -> str:
    return f"{round(value, 4):g}"


@dataclass
class TypographyTheme:
    """Typographic settings.

    Attributes:
        base_font_size: Root font size in pixels.
        base_line_height: Unitless line height; one rhythm unit in rem.
        scale_ratio: Ratio of the h1 size to the body size.
        header_font_family: Header font stack.
        body_font_family: Body font stack.
        header_weight: Header font weight.
        body_weight: Body font weight.
        body_color: Body text color.
        header_color: Header text color.
        google_fonts: Google Fonts to load (``name`` plus ``styles``).
    """

    base_font_size: float = 16.0
    base_line_height: float = 1.45
    scale_ratio: float = 2.0
    header_font_family: list[str] = field(
        default_factory=lambda: ["-apple-system", "Segoe UI", "Roboto", "sans-serif"]
    )
    body_font_family: list[str] = field(default_factory=lambda: ["Georgia", "serif"])
    header_weight: str = "bold"
    body_weight: str = "normal"
    body_color: str = "hsla(0,0%,0%,0.8)"
    header_color: str = "inherit"
    google_fonts: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: dict[str, Any], source: Path) -> TypographyTheme:
        """Build a theme from a loaded YAML mapping.

        Raises:
            ConfigError: On unknown keys or values of the wrong type.
        """
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ConfigError(
                f"Unknown typography setting(s) in {source.name}: "
                f"{', '.join(sorted(map(str, unknown)))}"
            )
        values = dict(data)
        if "base_font_size" in values:
            values["base_font_size"] = _parse_px(values["base_font_size"], source)
        for name in ("base_line_height", "scale_ratio"):
            if name in values:
                value = values[name]
                if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                    raise ConfigError(f"{name} must be a positive number in {source.name}")
                values[name] = float(value)
        for name in ("header_font_family", "body_font_family"):
            if name in values and not (
                isinstance(values[name], list) and all(isinstance(f, str) for f in values[name])
            ):
                raise ConfigError(f"{name} must be a list of font names in {source.name}")
        for name in ("header_weight", "body_weight"):
            if name in values:
                values[name] = str(values[name])
        for font in values.get("google_fonts") or []:
            if not isinstance(font, dict) or not isinstance(font.get("name"), str):
                raise ConfigError(f"google_fonts entries need a name in {source.name}")
        return cls(**values)

    def rhythm(self, lines: float) -> str:
        """Vertical spacing of ``lines`` baseline units, in rem."""
        return f"{_num(lines * self.base_line_height)}rem"

    def scale(self, exponent: float) -> str:
        """Font size at a point of the modular scale, in rem."""
        return f"{_num(self.scale_ratio ** exponent)}rem"

    def to_css(self) -> str:
        """Render the stylesheet."""
        body_font = _font_stack(self.body_font_family)
        header_font = _font_stack(self.header_font_family)
        rules = [
            f"html{{font-size:{_num(self.base_font_size / 16 * 100)}%;"
            f"line-height:{_num(self.base_line_height)};box-sizing:border-box;overflow-y:scroll}}",
            "*,*:before,*:after{box-sizing:inherit}",
            f"body{{margin:0;color:{self.body_color};font-family:{body_font};"
            f"font-weight:{self.body_weight};word-wrap:break-word;font-kerning:normal}}",
            f"h1,h2,h3,h4,h5,h6{{margin:0 0 {self.rhythm(1)} 0;padding:0;"
            f"font-family:{header_font};font-weight:{self.header_weight};"
            f"color:{self.header_color};line-height:1.1;text-rendering:optimizeLegibility}}",
        ]
        for level, exponent in HEADER_SCALE.items():
            rules.append(f"h{level}{{font-size:{self.scale(exponent)}}}")
        rules.extend(
            [
                f"p,ul,ol,pre,table,blockquote,figure,hr{{margin:0 0 {self.rhythm(1)} 0;padding:0}}",
                f"ul,ol{{margin-left:{self.rhythm(1)}}}",
                f"li{{margin-bottom:{self.rhythm(0.5)}}}",
                f"blockquote{{margin-left:-{self.rhythm(0.75)};padding-left:{self.rhythm(0.5)};"
                f"border-left:{self.rhythm(0.25)} solid currentColor;font-style:italic;opacity:0.8}}",
                f"code,pre{{font-size:{self.scale(-1 / 5)};line-height:{_num(self.base_line_height)}}}",
                f"img{{max-width:100%;margin:0 0 {self.rhythm(1)} 0;padding:0}}",
            ]
        )
        return "".join(rules)

    def google_fonts_url(self) -> str | None:
        if not self.google_fonts:
            return None
        families = []
        for font in self.google_fonts:
            styles = ",".join(str(s) for s in font.get("styles") or [])
            family = quote_plus(font["name"])
            families.append(f"{family}:{styles}" if styles else family)
        return "https://fonts.googleapis.com/css?family=" + "|".join(families)


def _parse_px(value: Any, source: Path) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"base_font_size must be a pixel size in {source.name}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.strip().endswith("px"):
        try:
            return float(value.strip()[:-2])
        except ValueError:
            pass
    raise ConfigError(f"base_font_size must be a pixel size in {source.name}")


def load_theme(path: Path) -> TypographyTheme:
    """Load a theme file, trying ``path`` then ``path.yaml`` and ``path.yml``.

    Raises:
        ConfigError: If no file exists or it is malformed.
    """
    for suffix in THEME_EXTENSIONS:
        candidate = path.with_name(path.name + suffix)
        if candidate.is_file():
            data = load_yaml(candidate) or {}
            if not isinstance(data, dict):
                raise ConfigError(f"{candidate.name} must contain a mapping")
            return TypographyTheme.from_mapping(data, candidate)
    raise ConfigError(f"Typography theme not found: {path}")


class TypographyPlugin(Plugin):
    """Inlines the typography stylesheet.

    Options:
        path_to_config_module: Theme file relative to the project root
            (the ``.yaml`` extension may be omitted).
        omit_google_font: Do not link the theme's Google Fonts.
    """

    name = "typography"
    OPTIONS = {
        "path_to_config_module": (str, REQUIRED),
        "omit_google_font": (bool, False),
    }

    def __init__(self, options: dict[str, Any] | None = None, key: str | None = None):
        super().__init__(options, key)
        self.theme: TypographyTheme | None = None

    def on_pre_build(self, ctx: BuildContext) -> None:
        path = ctx.project_root / self.options["path_to_config_module"]
        try:
            self.theme = load_theme(path)
        except ConfigError as exc:
            raise self.option_error("path_to_config_module", exc.message) from exc

    def template_globals(self, ctx: BuildContext) -> dict[str, Any]:
        if self.theme is None:
            return {}
        return {"rhythm": self.theme.rhythm, "scale": self.theme.scale}

    def on_render_page(self, ctx: BuildContext, page: Page, html: str) -> str:
        if self.theme is None:
            return html
        tags = [f'<style id="typography">{self.theme.to_css()}</style>']
        fonts_url = self.theme.google_fonts_url()
        if fonts_url and not self.options["omit_google_font"]:
            tags.append(f'<link rel="stylesheet" href="{escape_html(fonts_url)}">')
        return inject_head(html, "\n".join(tags))
