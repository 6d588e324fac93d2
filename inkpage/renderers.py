"""Markup compilers for inkpage.

Turn a document body into HTML before it reaches the page layout.

Key classes:
- MarkdownRenderer: Markdown to HTML with heading anchors and Pygments highlighting.
- HTMLRenderer: Passes HTML fragments through.
- RendererRegistry: Picks a renderer by file type.
"""

from __future__ import annotations

import re
from pathlib import Path

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .html_utils import escape_html, strip_tags
from .models import Heading
from .utils import is_html, is_markdown

MARKDOWN_PLUGINS = ["strikethrough", "footnotes", "table", "url"]


def generate_heading_id(text: str) -> str:
    """Generate a URL-friendly anchor from heading text.

    Examples:
        >>> generate_heading_id("Getting Started!")
        'getting-started'
    """
    slug = strip_tags(text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-") or "section"


class _AnchoredRenderer(mistune.HTMLRenderer):
    """mistune renderer that anchors headings and highlights fenced code.

    Attributes:
        headings: Headings seen so far, in document order.
    """

    def __init__(self):
        super().__init__(escape=False)
        self.headings: list[Heading] = []
        self._seen_ids: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = generate_heading_id(text)
        if base_id in self._seen_ids:
            self._seen_ids[base_id] += 1
            heading_id = f"{base_id}-{self._seen_ids[base_id]}"
        else:
            self._seen_ids[base_id] = 0
            heading_id = base_id

        self.headings.append(Heading(id=heading_id, text=strip_tags(text), level=level))
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        lang = info.split()[0] if info and info.strip() else ""
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                return highlight(code, lexer, HtmlFormatter(cssclass="highlight"))
        lang_class = f' class="language-{escape_html(lang)}"' if lang else ""
        return f"<pre><code{lang_class}>{escape_html(code)}</code></pre>\n"


class MarkdownRenderer:
    """Compiles Markdown bodies."""

    @property
    def source_type(self) -> str:
        return "markdown"

    def can_render(self, path: Path) -> bool:
        return is_markdown(path)

    def render(self, content: str) -> tuple[str, list[Heading]]:
        """Compile Markdown to HTML.

        A fresh mistune parser is built per call, so heading ids never carry
        over from one document to the next.

        Returns:
            Tuple of (HTML, headings in document order).
        """
        renderer = _AnchoredRenderer()
        markdown = mistune.create_markdown(renderer=renderer, plugins=MARKDOWN_PLUGINS)
        return markdown(content), renderer.headings


class HTMLRenderer:
    """Passes HTML fragments through unchanged."""

    @property
    def source_type(self) -> str:
        return "html"

    def can_render(self, path: Path) -> bool:
        return is_html(path)

    def render(self, content: str) -> tuple[str, list[Heading]]:
        return content, []


class RendererRegistry:
    """Ordered set of markup renderers; the first match wins."""

    def __init__(self):
        self._renderers: list = []
        self.register(MarkdownRenderer())
        self.register(HTMLRenderer())

    def register(self, renderer) -> None:
        self._renderers.append(renderer)

    def get_renderer(self, path: Path):
        """Return the first renderer that accepts ``path``, or None."""
        for renderer in self._renderers:
            if renderer.can_render(path):
                return renderer
        return None


default_renderer_registry = RendererRegistry()
