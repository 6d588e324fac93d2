"""Feed generation for inkpage.

Classes:
    FeedGenerator: Base class for files derived from the document list.
    SitemapGenerator: Writes sitemap.xml.
    RSSGenerator: Writes an RSS 2.0 feed.
    FeedRegistry: Runs every registered generator.

Feeds need absolute links, so every generator is skipped when the site has no
``url``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import date, datetime, timezone
from email.utils import format_datetime
from pathlib import Path

from .collections import DocumentCollection
from .html_utils import escape_html
from .models import ContentDocument, SiteMetadata


def _rfc822(day: date) -> str:
    return format_datetime(datetime(day.year, day.month, day.day, tzinfo=timezone.utc))


class FeedGenerator(ABC):
    """Base class for feed generators."""

    @property
    @abstractmethod
    def filename(self) -> str:
        ...

    @abstractmethod
    def generate(
        self, documents: Iterable[ContentDocument], site: SiteMetadata
    ) -> str | None:
        """Return the feed text, or None when it cannot be produced."""
        ...

    def write(
        self,
        output_dir: Path,
        documents: Iterable[ContentDocument],
        site: SiteMetadata,
    ) -> bool:
        """Generate and write the feed.

        Returns:
            True if the feed was written, False if skipped.
        """
        content = self.generate(documents, site)
        if content is None:
            return False
        (output_dir / self.filename).write_text(content, encoding="utf-8")
        return True


class SitemapGenerator(FeedGenerator):
    """sitemaps.org sitemap of every rendered document."""

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(
        self, documents: Iterable[ContentDocument], site: SiteMetadata
    ) -> str | None:
        base_url = site.url.rstrip("/")
        if not base_url:
            return None
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        for doc in documents:
            loc = escape_html(f"{base_url}{doc.url}")
            if doc.published:
                lastmod = doc.published.isoformat()
                lines.append(f"  <url><loc>{loc}</loc><lastmod>{lastmod}</lastmod></url>")
            else:
                lines.append(f"  <url><loc>{loc}</loc></url>")
        lines.append("</urlset>")
        return "\n".join(lines)


class RSSGenerator(FeedGenerator):
    """RSS 2.0 feed of published posts, newest first.

    ``lastBuildDate`` is the newest post date, so rebuilding unchanged content
    produces an identical feed.
    """

    def __init__(self, limit: int = 20):
        self.limit = limit

    @property
    def filename(self) -> str:
        return "rss.xml"

    def generate(
        self, documents: Iterable[ContentDocument], site: SiteMetadata
    ) -> str | None:
        base_url = site.url.rstrip("/")
        if not base_url:
            return None
        posts = DocumentCollection(documents).published().latest(self.limit)

        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{escape_html(site.site_name)}</title>",
            f"<link>{escape_html(base_url)}/</link>",
            f"<description>{escape_html(site.description or site.site_name)}</description>",
            f"<language>{escape_html(site.language)}</language>",
        ]
        dated = [doc.published for doc in posts if doc.published]
        if dated:
            rss.append(f"<lastBuildDate>{_rfc822(max(dated))}</lastBuildDate>")
        for doc in posts:
            link = escape_html(f"{base_url}{doc.url}")
            item = [
                f"<item><title>{escape_html(doc.title or '')}</title>",
                f"<link>{link}</link><guid>{link}</guid>",
                f"<description>{escape_html(doc.description or doc.title or '')}</description>",
            ]
            item.extend(f"<category>{escape_html(tag)}</category>" for tag in doc.tags)
            if doc.published:
                item.append(f"<pubDate>{_rfc822(doc.published)}</pubDate>")
            item.append("</item>")
            rss.append("".join(item))
        rss.append("</channel></rss>")
        return "\n".join(rss)


class FeedRegistry:
    """Runs a set of feed generators against the same documents."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(
        self,
        output_dir: Path,
        documents: Iterable[ContentDocument],
        site: SiteMetadata,
    ) -> list[str]:
        """Write every feed; return the filenames that were written."""
        docs = list(documents)
        return [
            generator.filename
            for generator in self._generators
            if generator.write(output_dir, docs, site)
        ]


def create_default_feed_registry() -> FeedRegistry:
    registry = FeedRegistry()
    registry.register(SitemapGenerator())
    registry.register(RSSGenerator())
    return registry
