from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from datetime import date

from .models import ContentDocument


def _sort_key(doc: ContentDocument) -> tuple:
    return (doc.published or date.min, doc.slug)


class DocumentCollection(Sequence[ContentDocument]):
    """Read-only list of documents with blog-oriented helpers."""

    def __init__(self, documents: Iterable[ContentDocument]):
        self._documents = list(documents)

    def __iter__(self) -> Iterator[ContentDocument]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __getitem__(self, item):
        return self._documents[item]

    def group(self, name: str) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if d.group == name)

    def with_tag(self, tag: str) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if tag in d.tags)

    def drafts(self) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if d.draft)

    def published(self) -> DocumentCollection:
        return DocumentCollection(d for d in self._documents if not d.draft)

    def sorted(self, reverse: bool = True) -> DocumentCollection:
        """Sort by publication date, newest first by default.

        Documents without a date sort as oldest; ties fall back to the slug so
        the order never depends on discovery order.
        """
        return DocumentCollection(sorted(self._documents, key=_sort_key, reverse=reverse))

    def latest(self, count: int = 10) -> DocumentCollection:
        return DocumentCollection(self.sorted()[:count])

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"DocumentCollection({len(self._documents)} documents)"


class TagCollection(Mapping[str, DocumentCollection]):
    """Mapping of tag name to DocumentCollection."""

    def __init__(self, mapping: Mapping[str, Iterable[ContentDocument]]):
        self._mapping = {k: DocumentCollection(v) for k, v in mapping.items()}

    def __getitem__(self, key: str) -> DocumentCollection:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TagCollection({len(self._mapping)} tags)"
