"""HTML utility functions for heytobi.

This module provides HTML manipulation utilities including escaping,
URL absolutization, and snippet injection into rendered pages.

Following the Single Responsibility Principle, this module focuses
exclusively on HTML string manipulation.

Functions:
    escape_html: Escape special HTML characters in a string.
    absolutize_html_urls: Convert root-relative URLs to absolute in HTML.
    join_root_url: Join a base URL with a path.
    inject_head: Insert markup right before ``</head>``.
    inject_body_end: Insert markup right before ``</body>``.
"""

from __future__ import annotations

import re

# URL attribute regex pattern for finding href, src, action attributes
_URL_ATTR_RE = re.compile(
    r'(?P<prefix>\b(?:href|src|action)=["\'])(?P<url>[^"\']+)(?P<suffix>["\'])'
)

# URL prefixes that should not be modified
_URL_SKIP_PREFIXES = (
    "http://",
    "https://",
    "//",
    "mailto:",
    "tel:",
    "#",
    "javascript:",
    "data:",
)


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Converts ``&``, ``<``, ``>`` and ``"`` to their entity equivalents.

    Examples:
        >>> escape_html('<script>alert("XSS")</script>')
        '&lt;script&gt;alert(&quot;XSS&quot;)&lt;/script&gt;'

        >>> escape_html('Tom & Jerry')
        'Tom &amp; Jerry'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def join_root_url(root_url: str, path: str) -> str:
    """Safely join a root URL and a path, avoiding double slashes.

    Args:
        root_url: Base URL (e.g., https://droth.net/).
        path: Path beginning with or without a leading slash.

    Returns:
        Combined URL with proper slash handling.

    Examples:
        >>> join_root_url('https://droth.net/', '/rss.xml')
        'https://droth.net/rss.xml'
    """
    if not root_url:
        return path
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"


def absolutize_html_urls(html: str, root_url: str) -> str:
    """Rewrite root-relative URLs in HTML to absolute URLs.

    External URLs, anchors, mailto/tel/data links, and javascript: URLs
    are left unchanged.

    Examples:
        >>> absolutize_html_urls('<a href="/about">About</a>', 'https://droth.net')
        '<a href="https://droth.net/about">About</a>'
    """
    if not root_url:
        return html

    def repl(match: re.Match) -> str:
        url = match.group("url")
        if not url or url.startswith(_URL_SKIP_PREFIXES):
            return match.group(0)
        absolute = join_root_url(root_url, url)
        return f"{match.group('prefix')}{absolute}{match.group('suffix')}"

    return _URL_ATTR_RE.sub(repl, html)


def inject_head(html: str, snippet: str) -> str:
    """Insert ``snippet`` before the closing head tag.

    Documents without a head get the snippet prepended.
    """
    if not snippet:
        return html
    if "</head>" in html:
        return html.replace("</head>", f"{snippet}\n</head>", 1)
    return snippet + html


def inject_body_end(html: str, snippet: str) -> str:
    """Insert ``snippet`` before the closing body tag (or append it)."""
    if not snippet:
        return html
    index = html.rfind("</body>")
    if index == -1:
        return html + snippet
    return f"{html[:index]}{snippet}\n{html[index:]}"
