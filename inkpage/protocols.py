"""Protocol definitions for inkpage.

The interfaces the build pipeline depends on. Concrete implementations live in
renderers.py, extractors.py and content.py; tests and extensions can supply
their own.
"""

from __future__ import annotations

from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import ContentDocument, Heading


@runtime_checkable
class ContentRenderer(Protocol):
    """Compiles one kind of markup to HTML."""

    @abstractmethod
    def can_render(self, path: Path) -> bool:
        """Check if this renderer can handle the given file."""
        ...

    @abstractmethod
    def render(self, content: str) -> tuple[str, list[Heading]]:
        """Compile content to HTML.

        Returns:
            Tuple of (HTML, headings for the table of contents).
        """
        ...

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Return the source type identifier (e.g. 'markdown', 'html')."""
        ...


@runtime_checkable
class MetadataExtractor(Protocol):
    """Extracts part of a document's metadata from its source text."""

    @abstractmethod
    def extract(self, content: str, path: Path) -> dict[str, Any]:
        ...


@runtime_checkable
class ContentLoader(Protocol):
    """Discovers content files."""

    @abstractmethod
    def iter_files(self) -> list[Path]:
        ...


@runtime_checkable
class DocumentBuilder(Protocol):
    """Builds a ContentDocument from one source file."""

    @abstractmethod
    def build(self, path: Path) -> ContentDocument:
        ...
