"""Page rendering for inkpage.

This module merges a ContentDocument and the SiteMetadata into the shared HTML
layout using Jinja2.

Key objects:
- PageRenderer: Holds the Jinja2 environment and renders documents.
- render: Module-level shortcut using a default PageRenderer.
- render_toc: Nested HTML list for a document's headings.

Rendering performs no I/O once the environment is built. The copyright year is
the only input read from the clock, and callers may pin it with ``today``.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

from jinja2 import (
    ChoiceLoader,
    DictLoader,
    Environment,
    FileSystemLoader,
    StrictUndefined,
    select_autoescape,
)
from markupsafe import Markup

from .html_utils import escape_html
from .models import ContentDocument, Heading, LayoutFields, RenderedPage, SiteMetadata
from .theme import theme_script

__all__ = ["DEFAULT_LAYOUT", "LAYOUT_NAME", "PageRenderer", "render", "render_toc"]

LAYOUT_NAME = "base.html"

DEFAULT_LAYOUT = """<!DOCTYPE html>
<html lang="{{ language }}">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{{ title }} | {{ site_name }}</title>
{%- if description %}
  <meta name="description" content="{{ description }}">
{%- endif %}
  <meta name="twitter:site" content="@{{ twitter_handle }}">
  <script>{{ theme_script }}</script>
</head>
<body>
  <header class="site-header">
    <a class="site-name" href="/">{{ site_name }}</a>
    <button type="button" class="theme-toggle" onclick="toggleTheme()" aria-label="Toggle dark mode">&#9680;</button>
  </header>
  <main>
    <article>
      <h1>{{ title }}</h1>
      {{ body }}
    </article>
  </main>
  <footer class="site-footer">
    <p>&copy; {{ year }} {{ site_name }}</p>
    <a href="{{ social_url }}" rel="me">@{{ twitter_handle }}</a>
  </footer>
</body>
</html>
"""


def render_toc(headings: list[Heading]) -> Markup:
    """Render headings as a nested ``<ul>`` list of anchor links.

    Args:
        headings: Headings in document order.

    Returns:
        Markup-safe HTML string of the nested TOC, or empty Markup if no headings.
    """
    if not headings:
        return Markup("")

    html_parts: list[str] = []
    level_stack: list[int] = []

    for heading in headings:
        level = heading.level

        # Close nested lists if going to a shallower level
        while level_stack and level_stack[-1] > level:
            level_stack.pop()
            html_parts.append("</li></ul>")

        if level_stack and level_stack[-1] == level:
            html_parts.append("</li>")
        elif not level_stack or level > level_stack[-1]:  # pragma: no branch
            html_parts.append("<ul>")
            level_stack.append(level)

        html_parts.append(
            f'<li><a href="#{escape_html(heading.id)}">{escape_html(heading.text)}</a>'
        )

    while level_stack:
        level_stack.pop()
        html_parts.append("</li></ul>")

    return Markup("".join(html_parts))


class PageRenderer:
    """Renders documents into the shared layout.

    Attributes:
        env: Jinja2 environment. Undefined variables raise instead of
            rendering as empty strings.
    """

    def __init__(self, layouts_dir: Path | None = None):
        """Initialize the renderer.

        Args:
            layouts_dir: Optional directory whose ``base.html`` replaces the
                built-in layout.
        """
        loaders = []
        if layouts_dir is not None:
            loaders.append(FileSystemLoader(str(layouts_dir)))
        loaders.append(DictLoader({LAYOUT_NAME: DEFAULT_LAYOUT}))
        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(["html", "xml"], default_for_string=True),
            undefined=StrictUndefined,
            enable_async=False,
        )
        self.env.globals["theme_script"] = Markup(theme_script())
        self._layout = self.env.get_template(LAYOUT_NAME)

    def render(
        self,
        doc: ContentDocument,
        site: SiteMetadata,
        today: date | None = None,
    ) -> RenderedPage:
        """Render a document with the site layout.

        Args:
            doc: Document to render.
            site: Site metadata.
            today: Date used for the copyright year; defaults to the current date.

        Returns:
            The rendered page.

        Raises:
            MissingFieldError: If the document has no title or body.
        """
        year = (today or date.today()).year
        fields = LayoutFields.merge(doc, site, year)
        context = fields.as_context()
        context["body"] = Markup(fields.body)
        return RenderedPage(html=self._layout.render(**context))


_default_renderer: PageRenderer | None = None


def render(
    doc: ContentDocument, site: SiteMetadata, today: date | None = None
) -> RenderedPage:
    """Render a document with the built-in layout."""
    global _default_renderer
    if _default_renderer is None:
        _default_renderer = PageRenderer()
    return _default_renderer.render(doc, site, today=today)
