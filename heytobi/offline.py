"""Offline support for heytobi.

The ``offline`` plugin writes a service worker (``sw.js``) that precaches
the site shell and static files, serves navigations network-first with a
cached fallback, and serves everything else cache-first. Each page gets a
small registration script.

The precache list carries a content revision per URL, so any change to a
precached file changes the service worker and triggers an update.
"""

from __future__ import annotations

import fnmatch
import json
from pathlib import Path
from typing import Any

from rjsmin import jsmin

from .html_utils import inject_body_end
from .plugins import BuildContext, Page, Plugin
from .utils import file_digest, text_digest

SERVICE_WORKER_FILENAME = "sw.js"

# Files precached regardless of precache_pages
PRECACHE_EXTENSIONS = {".css", ".js", ".webmanifest", ".woff", ".woff2"}
PRECACHE_DIRECTORIES = ("icons",)

REGISTRATION_SCRIPT = """<script>
if ("serviceWorker" in navigator) {
  window.addEventListener("load", function () {
    navigator.serviceWorker.register("/sw.js");
  });
}
</script>"""

SERVICE_WORKER_TEMPLATE = """
const CACHE_NAME = "__CACHE_NAME__";
const PRECACHE = __PRECACHE__;

self.addEventListener("install", (event) => {
  event.waitUntil(
    caches
      .open(CACHE_NAME)
      .then((cache) => cache.addAll(PRECACHE.map((entry) => entry.url)))
      .then(() => self.skipWaiting())
  );
});

self.addEventListener("activate", (event) => {
  event.waitUntil(
    caches
      .keys()
      .then((keys) =>
        Promise.all(keys.filter((key) => key !== CACHE_NAME).map((key) => caches.delete(key)))
      )
      .then(() => self.clients.claim())
  );
});

const remember = (request, response) => {
  if (response && response.ok) {
    const copy = response.clone();
    caches.open(CACHE_NAME).then((cache) => cache.put(request, copy));
  }
  return response;
};

self.addEventListener("fetch", (event) => {
  const request = event.request;
  if (request.method !== "GET" || new URL(request.url).origin !== self.location.origin) {
    return;
  }
  if (request.mode === "navigate") {
    event.respondWith(
      fetch(request)
        .then((response) => remember(request, response))
        .catch(() => caches.match(request).then((cached) => cached || caches.match("/")))
    );
    return;
  }
  event.respondWith(
    caches
      .match(request)
      .then((cached) => cached || fetch(request).then((response) => remember(request, response)))
  );
});
"""


class OfflinePlugin(Plugin):
    """Writes a precaching service worker and registers it on every page.

    Options:
        precache_pages: URL glob patterns of extra pages to precache
            (the home page is always precached).
        append_script: JavaScript file, relative to the project root,
            appended to the service worker.
    """

    name = "offline"
    OPTIONS = {"precache_pages": (list, []), "append_script": (str, "")}

    def __init__(self, options: dict[str, Any] | None = None, key: str | None = None):
        super().__init__(options, key)
        for pattern in self.options["precache_pages"]:
            if not isinstance(pattern, str):
                raise self.option_error("precache_pages", "Expected a list of URL patterns")

    def append_script_path(self, ctx: BuildContext) -> Path | None:
        script = self.options["append_script"]
        return ctx.project_root / script if script else None

    def on_pre_build(self, ctx: BuildContext) -> None:
        script = self.append_script_path(ctx)
        if script is not None and not script.is_file():
            raise self.option_error("append_script", f"Script not found: {script}")

    def on_render_page(self, ctx: BuildContext, page: Page, html: str) -> str:
        return inject_body_end(html, REGISTRATION_SCRIPT)

    def precache_entries(self, output_dir: Path) -> list[dict[str, str]]:
        """List ``{url, revision}`` entries for every precached output file."""
        patterns = ["/", *self.options["precache_pages"]]
        entries = []
        for path in sorted(output_dir.rglob("*")):
            if not path.is_file() or path.name == SERVICE_WORKER_FILENAME:
                continue
            rel = path.relative_to(output_dir)
            if path.name == "index.html":
                parent = rel.parent.as_posix()
                url = "/" if parent == "." else f"/{parent}/"
                if not any(fnmatch.fnmatchcase(url, pattern) for pattern in patterns):
                    continue
            elif not (
                path.suffix in PRECACHE_EXTENSIONS
                or (rel.parts and rel.parts[0] in PRECACHE_DIRECTORIES)
            ):
                continue
            else:
                url = "/" + rel.as_posix()
            entries.append({"url": url, "revision": file_digest(path)})
        return entries

    def service_worker(self, ctx: BuildContext) -> str:
        """Render the minified service worker source."""
        entries = self.precache_entries(ctx.output_dir)
        cache_name = "heytobi-" + text_digest(json.dumps(entries, sort_keys=True))
        source = SERVICE_WORKER_TEMPLATE.replace("__CACHE_NAME__", cache_name).replace(
            "__PRECACHE__", json.dumps(entries)
        )
        script = self.append_script_path(ctx)
        if script is not None:
            source += "\n" + script.read_text(encoding="utf-8")
        return jsmin(source)

    def on_post_build(self, ctx: BuildContext) -> None:
        (ctx.output_dir / SERVICE_WORKER_FILENAME).write_text(
            self.service_worker(ctx), encoding="utf-8"
        )
