"""HTML string helpers for inkpage.

Functions:
    escape_html: Escape text for element content and double-quoted attributes.
    strip_tags: Drop markup tags from an HTML fragment.
    join_root_url: Join a base URL with a path.
    absolutize_html_urls: Point root-relative links at the deployed site.
"""

from __future__ import annotations

import re

_TAG_RE = re.compile(r"<[^>]+>")

_URL_ATTR_RE = re.compile(
    r'(?P<prefix>\b(?:href|src|action)=["\'])(?P<url>[^"\']+)(?P<suffix>["\'])'
)

# Only root-relative URLs are rewritten; "//" is protocol-relative.
_ROOT_RELATIVE_RE = re.compile(r"^/(?!/)")


def escape_html(text: str) -> str:
    """Escape ``&``, ``<``, ``>`` and ``"`` in text.

    Examples:
        >>> escape_html('Tom & "Jerry"')
        'Tom &amp; &quot;Jerry&quot;'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def strip_tags(html: str) -> str:
    """Remove tags from an HTML fragment and collapse whitespace.

    Examples:
        >>> strip_tags("<p>Hello <em>there</em></p>")
        'Hello there'
    """
    return " ".join(_TAG_RE.sub(" ", html).split())


def join_root_url(root_url: str, path: str) -> str:
    """Join a root URL and a path without doubling slashes.

    Examples:
        >>> join_root_url("https://blog.example/", "posts/")
        'https://blog.example/posts/'
    """
    if not root_url:
        return path
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{root_url.rstrip('/')}{suffix}"


def absolutize_html_urls(html: str, root_url: str) -> str:
    """Rewrite root-relative ``href``/``src``/``action`` URLs to absolute ones.

    External, protocol-relative, fragment and ``mailto:`` links are untouched.

    Examples:
        >>> absolutize_html_urls('<a href="/about/">About</a>', "https://blog.example")
        '<a href="https://blog.example/about/">About</a>'
    """
    if not root_url:
        return html

    def repl(match: re.Match) -> str:
        url = match.group("url")
        if not _ROOT_RELATIVE_RE.match(url):
            return match.group(0)
        return f"{match.group('prefix')}{join_root_url(root_url, url)}{match.group('suffix')}"

    return _URL_ATTR_RE.sub(repl, html)
