"""Utility functions for inkpage.

String, path and date helpers shared by the loader, the build and the CLI.

Key functions:
    slugify: Convert filenames to URL slugs.
    titleize: Convert filenames to human-readable titles.
    extract_date_from_name: Read a YYYY-MM-DD filename prefix.
    coerce_date: Normalize frontmatter dates.
    parse_bool: Normalize frontmatter flags.
    normalize_tags: Normalize frontmatter tag lists.
    first_paragraph: Plain-text summary of a markdown body.
    build_tags_index: Group documents by tag.
    ensure_clean_dir: Ensure a directory exists and is empty.
"""

from __future__ import annotations

import re
import shutil
from collections.abc import Iterable
from datetime import date, datetime
from pathlib import Path
from typing import Any

_DATE_PREFIX_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:-|$)")
_TRUE_STRINGS = {"1", "true", "yes", "on", "y"}


def strip_date_prefix(stem: str) -> str:
    """Drop a leading ``YYYY-MM-DD-`` from a filename stem."""
    match = _DATE_PREFIX_RE.match(stem)
    if match and len(stem) > match.end():
        return stem[match.end() :]
    return stem


def slugify(name: str) -> str:
    """Convert a filename stem to a slug, dropping any date prefix.

    Examples:
        >>> slugify("2024-01-02-Hello World")
        'hello-world'
    """
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", strip_date_prefix(name))
    cleaned = cleaned.strip("-").lower()
    return cleaned or "index"


def titleize(filename: str) -> str:
    """Convert a filename to a human-readable title.

    Examples:
        >>> titleize("2024-01-15-hello-world.md")
        'Hello World'
    """
    base = strip_date_prefix(Path(filename).stem)
    words = re.split(r"[\s\-_]+", base)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def extract_date_from_name(name: str) -> date | None:
    """Extract a date from a filename stem with a YYYY-MM-DD prefix.

    Returns None when there is no prefix or it is not a real date.
    """
    match = _DATE_PREFIX_RE.match(name)
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def coerce_date(value: Any) -> date | None:
    """Turn a frontmatter value into a date.

    PyYAML already parses unquoted ISO dates; quoted ones arrive as strings.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def parse_bool(value: Any, default: bool = False) -> bool:
    """Interpret a frontmatter flag."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    return str(value).strip().lower() in _TRUE_STRINGS


def normalize_tags(value: Any) -> list[str]:
    """Normalize frontmatter tags into an ordered list without duplicates.

    Accepts a YAML list or a comma separated string.
    """
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.split(",")
    elif isinstance(value, (list, tuple)):
        raw = [str(item) for item in value if item is not None]
    else:
        raw = [str(value)]
    tags: list[str] = []
    for tag in raw:
        tag = tag.strip().lstrip("#").strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def first_paragraph(text: str, limit: int = 160) -> str:
    """Return the first prose paragraph of a markdown body as plain text.

    Headings, images, fences and rules are skipped; tags and inline markup
    characters are removed and the result is truncated to ``limit``.
    """
    for para in (p.strip() for p in text.split("\n\n")):
        if not para or para.startswith(("#", "![", "```", "---", "<!--")):
            continue
        para = re.sub(r"<[^>]+>", "", para)
        para = re.sub(r"!?\[([^\]]*)\]\([^)]*\)", r"\1", para)
        para = re.sub(r"[*_`]", "", para)
        collapsed = " ".join(para.split())
        if collapsed:
            return collapsed[:limit]
    return ""


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty."""
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def is_internal_path(path: Path) -> bool:
    """Check if any path component starts with ``_`` (layouts, partials)."""
    return any(part.startswith("_") for part in path.parts)


def is_markdown(path: Path) -> bool:
    return path.suffix.lower() in (".md", ".markdown")


def is_html(path: Path) -> bool:
    return path.suffix.lower() in (".html", ".htm")


def build_tags_index(documents: Iterable) -> dict[str, list]:
    """Build an index mapping tags to the documents carrying them.

    Args:
        documents: Iterable of objects with a ``tags`` attribute.

    Returns:
        Dictionary mapping tag names to lists of documents, in first-seen order.
    """
    tags: dict[str, list] = {}
    for doc in documents:
        for tag in doc.tags:
            tags.setdefault(tag, []).append(doc)
    return tags
