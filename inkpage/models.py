"""Data model for inkpage.

Key classes:
- ContentDocument: One blog post, its frontmatter metadata plus compiled HTML body.
- SiteMetadata: Immutable site identity values shared by every render.
- RenderedPage: Final HTML artifact for one document.
- LayoutFields: Typed merge of a document and the site metadata, the only
  input the layout template ever sees.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

SOCIAL_URL_TEMPLATE = "https://x.com/{handle}"


class MissingFieldError(ValueError):
    """A required document field is absent.

    Attributes:
        field: Name of the missing field ("title" or "body").
        source_path: Source file of the document, when known.
    """

    def __init__(self, field: str, source_path: Path | None = None):
        self.field = field
        self.source_path = source_path
        where = f" in {source_path}" if source_path else ""
        super().__init__(f"Missing required field '{field}'{where}")


@dataclass
class Heading:
    """A heading extracted from compiled markdown, used for the table of contents.

    Attributes:
        id: Anchor ID for the heading (URL-friendly slug).
        text: The text content of the heading.
        level: Heading level (1-6).
    """

    id: str
    text: str
    level: int


@dataclass
class ContentDocument:
    """A single blog post's metadata plus compiled body markup.

    Attributes:
        title: Post title. Required for rendering.
        body: Compiled HTML body. Required for rendering.
        description: Short summary used in meta tags and feeds.
        published: Publication date.
        draft: Whether the post is a draft.
        tags: Ordered list of tags.
        table_of_contents: Whether a TOC should be prepended to the body.
        slug: URL-friendly slug derived from the filename.
        url: Output URL path, e.g. ``/posts/hello/``.
        source_path: File the document was parsed from.
        headings: Headings collected while compiling the body.
        frontmatter: Raw frontmatter mapping.
    """

    title: str | None
    body: str | None
    description: str = ""
    published: date | None = None
    draft: bool = False
    tags: list[str] = field(default_factory=list)
    table_of_contents: bool = False
    slug: str = ""
    url: str = "/"
    source_path: Path | None = None
    headings: list[Heading] = field(default_factory=list)
    frontmatter: dict[str, Any] = field(default_factory=dict)

    @property
    def group(self) -> str:
        """First folder component of the URL, e.g. ``posts``."""
        parts = [p for p in self.url.split("/") if p]
        return parts[0] if len(parts) > 1 else ""


@dataclass(frozen=True)
class SiteMetadata:
    """Process-wide site identity values.

    Attributes:
        site_name: Human-readable site name.
        twitter_handle: Social handle without the leading ``@``.
        url: Absolute base URL of the deployed site.
        description: Default site description.
        author: Site author.
        language: ``lang`` attribute of the root element.
    """

    site_name: str
    twitter_handle: str
    url: str = ""
    description: str = ""
    author: str = ""
    language: str = "en"


@dataclass(frozen=True)
class RenderedPage:
    """Final static HTML artifact for one ContentDocument."""

    html: str


def _is_blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


@dataclass(frozen=True)
class LayoutFields:
    """Everything the layout skeleton substitutes, already validated."""

    title: str
    site_name: str
    twitter_handle: str
    year: int
    body: str
    description: str
    language: str

    @classmethod
    def merge(cls, doc: ContentDocument, site: SiteMetadata, year: int) -> LayoutFields:
        """Merge a document and site metadata into layout fields.

        Raises:
            MissingFieldError: If the document has no title or no body.
        """
        if _is_blank(doc.title):
            raise MissingFieldError("title", doc.source_path)
        if _is_blank(doc.body):
            raise MissingFieldError("body", doc.source_path)
        return cls(
            title=str(doc.title),
            site_name=site.site_name,
            twitter_handle=site.twitter_handle,
            year=year,
            body=doc.body,
            description=doc.description or site.description,
            language=site.language,
        )

    @property
    def social_url(self) -> str:
        return SOCIAL_URL_TEMPLATE.format(handle=self.twitter_handle)

    def as_context(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "site_name": self.site_name,
            "twitter_handle": self.twitter_handle,
            "social_url": self.social_url,
            "year": self.year,
            "body": self.body,
            "description": self.description,
            "language": self.language,
        }
