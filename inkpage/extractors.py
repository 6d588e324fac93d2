"""Metadata extractors for inkpage.

Each extractor reads one kind of metadata from a source file and returns a
partial mapping; CompositeMetadataExtractor merges them in order, so later
extractors can rely on (and override) what earlier ones produced.

Key classes:
- FrontmatterExtractor: Splits the YAML header from the body.
- FieldExtractor: Maps frontmatter keys onto ContentDocument fields.
- DateExtractor: Resolves the publication date.
- DescriptionExtractor: Falls back to the first paragraph for descriptions.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from .utils import (
    coerce_date,
    extract_date_from_name,
    first_paragraph,
    normalize_tags,
    parse_bool,
)

FRONTMATTER_RE = re.compile(r"^\ufeff?---\s*\n(.*?)\n---\s*(?:\n|$)", re.DOTALL)


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split YAML frontmatter from the rest of a file.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (frontmatter dict, remaining content). Content without a
        valid mapping header is returned whole with an empty dict.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError:
        return {}, text
    if not isinstance(data, dict):
        return {}, text
    return data, text[match.end() :]


class FrontmatterExtractor:
    """Extracts the YAML header and the body below it."""

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        frontmatter, body = extract_frontmatter(content)
        return {"frontmatter": frontmatter, "body": body}


class FieldExtractor:
    """Maps frontmatter keys onto document fields.

    ``title`` is taken as-is and may be absent; rendering rejects documents
    without one.
    """

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        frontmatter = extract_frontmatter(content)[0]
        title = frontmatter.get("title")
        return {
            "title": str(title).strip() if title is not None else None,
            "description": str(frontmatter.get("description") or "").strip(),
            "draft": parse_bool(frontmatter.get("draft")),
            "tags": normalize_tags(frontmatter.get("tags")),
            "table_of_contents": parse_bool(frontmatter.get("toc")),
        }


class DateExtractor:
    """Resolves the publication date.

    Order: ``published`` frontmatter key, ``date`` key, YYYY-MM-DD filename
    prefix, file modification time.
    """

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        frontmatter = extract_frontmatter(content)[0]
        for key in ("published", "date"):
            published = coerce_date(frontmatter.get(key))
            if published is not None:
                return {"published": published}
        published = extract_date_from_name(path.stem)
        if published is None:
            published = datetime.fromtimestamp(path.stat().st_mtime).date()
        return {"published": published}


class DescriptionExtractor:
    """Fills an empty description from the first paragraph of the body."""

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        frontmatter, body = extract_frontmatter(content)
        if str(frontmatter.get("description") or "").strip():
            return {}
        return {"description": first_paragraph(body)}


class CompositeMetadataExtractor:
    """Runs several extractors and merges their results, later ones winning."""

    def __init__(self, extractors: list | None = None):
        if extractors is None:
            self._extractors = [
                FrontmatterExtractor(),
                FieldExtractor(),
                DateExtractor(),
                DescriptionExtractor(),
            ]
        else:
            self._extractors = list(extractors)

    def add_extractor(self, extractor) -> None:
        self._extractors.append(extractor)

    def extract(self, content: str, path: Path) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for extractor in self._extractors:
            result.update(extractor.extract(content, path))
        return result


default_metadata_extractor = CompositeMetadataExtractor()
