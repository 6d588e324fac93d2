"""Content loading for inkpage.

Discovers source files under the content directory and turns each one into a
ContentDocument: metadata from the frontmatter, body compiled to HTML.

Key classes:
- FileContentLoader: Finds processable files.
- UrlDeriver: Maps a source path to its output URL.
- DefaultDocumentBuilder: Builds one ContentDocument from one file.
- ContentProcessor: Facade that loads every document, filtering drafts.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .extractors import CompositeMetadataExtractor, default_metadata_extractor
from .models import ContentDocument
from .renderers import RendererRegistry, default_renderer_registry
from .templates import render_toc
from .utils import is_html, is_internal_path, is_markdown, slugify

logger = logging.getLogger(__name__)


class UnreadableSourceError(ValueError):
    """A content file could not be decoded as UTF-8.

    Attributes:
        source_path: The offending file.
    """

    def __init__(self, source_path: Path, reason: str):
        self.source_path = source_path
        super().__init__(f"Cannot read {source_path} as UTF-8: {reason}")


class FileContentLoader:
    """Finds content files below a directory.

    Directories whose name starts with ``_`` hold layouts and partials and are
    never treated as content.
    """

    def __init__(self, content_dir: Path):
        self.content_dir = content_dir

    def iter_files(self) -> list[Path]:
        """Return processable files in a stable order."""
        files: list[Path] = []
        for path in sorted(self.content_dir.rglob("*")):
            if path.is_dir():
                continue
            rel = path.relative_to(self.content_dir)
            if is_internal_path(rel.parent):
                continue
            if is_markdown(path) or is_html(path):
                files.append(path)
        return files


class UrlDeriver:
    """Derives output URLs from source paths."""

    def derive(self, rel: Path, slug: str) -> str:
        """Derive the URL for a document.

        Args:
            rel: Path relative to the content directory.
            slug: Document slug.

        Returns:
            URL path such as ``/posts/hello/``; ``index`` files map to their folder.
        """
        segments = [slugify(p) for p in rel.parent.parts if p]
        if slug != "index":
            segments.append(slug)
        path = "/".join(segments)
        return f"/{path}/" if path else "/"


class DefaultDocumentBuilder:
    """Builds ContentDocuments from source files.

    Attributes:
        content_dir: Root of the content tree.
        renderer_registry: Markup compilers.
        metadata_extractor: Frontmatter and metadata extraction.
    """

    def __init__(
        self,
        content_dir: Path,
        renderer_registry: RendererRegistry | None = None,
        metadata_extractor: CompositeMetadataExtractor | None = None,
    ):
        self.content_dir = content_dir
        self.renderer_registry = renderer_registry or default_renderer_registry
        self.metadata_extractor = metadata_extractor or default_metadata_extractor
        self.url_deriver = UrlDeriver()

    def build(self, path: Path) -> ContentDocument:
        """Parse and compile one source file.

        The returned document may lack a title or body; that is reported when
        the document is rendered, not here.

        Raises:
            UnreadableSourceError: If the file is not valid UTF-8.
        """
        rel = path.relative_to(self.content_dir)
        try:
            raw = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise UnreadableSourceError(path, exc.reason) from exc
        metadata = self.metadata_extractor.extract(raw, path)
        source = metadata.get("body", raw)

        renderer = self.renderer_registry.get_renderer(path)
        if renderer is not None:
            body, headings = renderer.render(source)
        else:
            body, headings = source, []

        toc = bool(metadata.get("table_of_contents", False))
        if toc and headings:
            body = f'<nav class="toc">{render_toc(headings)}</nav>\n{body}'

        slug = slugify(path.stem)
        draft = bool(metadata.get("draft", False)) or path.name.startswith("_")
        logger.debug("Loaded %s (draft=%s)", rel, draft)
        return ContentDocument(
            title=metadata.get("title"),
            body=body if body.strip() else None,
            description=metadata.get("description", ""),
            published=metadata.get("published"),
            draft=draft,
            tags=list(metadata.get("tags", [])),
            table_of_contents=toc,
            slug=slug,
            url=self.url_deriver.derive(rel, slug),
            source_path=path,
            headings=headings,
            frontmatter=metadata.get("frontmatter", {}),
        )


class ContentProcessor:
    """Loads every document below the content directory.

    Attributes:
        unreadable: Files skipped by the last ``load`` because they could not
            be decoded.
    """

    def __init__(
        self,
        content_dir: Path,
        content_loader: FileContentLoader | None = None,
        document_builder: DefaultDocumentBuilder | None = None,
    ):
        self.content_dir = content_dir
        self._content_loader = content_loader or FileContentLoader(content_dir)
        self._document_builder = document_builder or DefaultDocumentBuilder(content_dir)
        self.unreadable: list[UnreadableSourceError] = []

    def load(self, include_drafts: bool = False) -> list[ContentDocument]:
        """Load documents, skipping drafts unless ``include_drafts`` is set."""
        documents: list[ContentDocument] = []
        self.unreadable = []
        for path in self._content_loader.iter_files():
            try:
                doc = self._document_builder.build(path)
            except UnreadableSourceError as exc:
                logger.warning("%s", exc)
                self.unreadable.append(exc)
                continue
            if doc.draft and not include_drafts:
                logger.debug("Skipping draft %s", path.name)
                continue
            documents.append(doc)
        return documents
