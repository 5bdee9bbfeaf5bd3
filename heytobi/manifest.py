"""Web app manifest for heytobi.

The ``manifest`` plugin makes the site installable: it writes
``manifest.webmanifest``, renders the icon at every standard size with
Pillow, optionally writes a favicon, and links all of it from each page.
"""

from __future__ import annotations

import json
import re
from typing import Any

from .config import REQUIRED
from .html_utils import escape_html, inject_head
from .images import is_resizable, resize_image
from .plugins import BuildContext, Page, Plugin

ICON_SIZES = (48, 72, 96, 144, 192, 256, 384, 512)
FAVICON_SIZE = 32
DISPLAY_MODES = ("fullscreen", "standalone", "minimal-ui", "browser")
MANIFEST_FILENAME = "manifest.webmanifest"

HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


class ManifestPlugin(Plugin):
    """Writes the web app manifest and its icons.

    Options:
        name: Application name.
        short_name: Short name for home screens, defaults to ``name``.
        start_url: URL opened when the app starts.
        background_color: Splash screen background (hex color).
        theme_color: Browser UI color (hex color).
        display: One of fullscreen, standalone, minimal-ui, browser.
        icon: Source icon relative to the project root.
        include_favicon: Also write ``favicon-32x32.png`` and link it.
        lang: Optional manifest language.
    """

    name = "manifest"
    OPTIONS = {
        "name": (str, REQUIRED),
        "short_name": (str, ""),
        "start_url": (str, "/"),
        "background_color": (str, ""),
        "theme_color": (str, ""),
        "display": (str, "browser"),
        "icon": (str, ""),
        "include_favicon": (bool, True),
        "lang": (str, ""),
    }

    def __init__(self, options: dict[str, Any] | None = None, key: str | None = None):
        super().__init__(options, key)
        for option in ("background_color", "theme_color"):
            value = self.options[option]
            if value and not HEX_COLOR_RE.match(value):
                raise self.option_error(option, f"Expected a hex color, got {value!r}")
        if self.options["display"] not in DISPLAY_MODES:
            raise self.option_error(
                "display",
                f"Expected one of {', '.join(DISPLAY_MODES)}, got {self.options['display']!r}",
            )

    def icon_path(self, ctx: BuildContext):
        return ctx.project_root / self.options["icon"] if self.options["icon"] else None

    def on_pre_build(self, ctx: BuildContext) -> None:
        icon = self.icon_path(ctx)
        if icon is None:
            return
        if not icon.is_file():
            raise self.option_error("icon", f"Icon not found: {icon}")
        if not is_resizable(icon):
            raise self.option_error("icon", "Icon must be a PNG, JPEG or WebP image")

    def manifest(self) -> dict[str, Any]:
        """Build the manifest document."""
        options = self.options
        data: dict[str, Any] = {
            "name": options["name"],
            "short_name": options["short_name"] or options["name"],
            "start_url": options["start_url"],
            "display": options["display"],
        }
        if options["background_color"]:
            data["background_color"] = options["background_color"]
        if options["theme_color"]:
            data["theme_color"] = options["theme_color"]
        if options["lang"]:
            data["lang"] = options["lang"]
        if options["icon"]:
            data["icons"] = [
                {
                    "src": f"/icons/icon-{size}x{size}.png",
                    "sizes": f"{size}x{size}",
                    "type": "image/png",
                }
                for size in ICON_SIZES
            ]
        return data

    def on_render_page(self, ctx: BuildContext, page: Page, html: str) -> str:
        tags = [f'<link rel="manifest" href="/{MANIFEST_FILENAME}" crossorigin="anonymous">']
        if self.options["theme_color"]:
            tags.append(
                f'<meta name="theme-color" content="{escape_html(self.options["theme_color"])}">'
            )
        if self.options["icon"]:
            if self.options["include_favicon"]:
                tags.append(
                    f'<link rel="icon" href="/favicon-{FAVICON_SIZE}x{FAVICON_SIZE}.png" type="image/png">'
                )
            for size in ICON_SIZES:
                tags.append(
                    f'<link rel="apple-touch-icon" sizes="{size}x{size}" href="/icons/icon-{size}x{size}.png">'
                )
        return inject_head(html, "\n".join(tags))

    def on_post_build(self, ctx: BuildContext) -> None:
        icon = self.icon_path(ctx)
        if icon is not None:
            for size in ICON_SIZES:
                resize_image(icon, ctx.output_dir / "icons" / f"icon-{size}x{size}.png", size, size)
            if self.options["include_favicon"]:
                resize_image(
                    icon,
                    ctx.output_dir / f"favicon-{FAVICON_SIZE}x{FAVICON_SIZE}.png",
                    FAVICON_SIZE,
                    FAVICON_SIZE,
                )
        (ctx.output_dir / MANIFEST_FILENAME).write_text(
            json.dumps(self.manifest(), indent=2) + "\n", encoding="utf-8"
        )
