"""Site building for inkpage.

Loads configuration and site metadata, compiles every content document,
renders it through the page layout and writes the static output tree.

Key functions:
- build_site: Build the entire site.
- load_config: Read inkpage.yaml over DEFAULT_CONFIG.
- load_site_metadata: Read data/site.yaml into a SiteMetadata.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

import yaml
from jinja2 import TemplateError

from .collections import DocumentCollection, TagCollection
from .content import ContentProcessor
from .feeds import create_default_feed_registry
from .html_utils import absolutize_html_urls, escape_html
from .models import ContentDocument, MissingFieldError, SiteMetadata
from .templates import PageRenderer
from .utils import build_tags_index, ensure_clean_dir, slugify

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "inkpage.yaml"
SITE_METADATA_PATH = Path("data") / "site.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "content_dir": "content",
    "output_dir": "public",
    "static_dir": "static",
    "port": 4000,
    "root_url": "",
    "index": True,
    "index_title": "Latest posts",
    "index_limit": 20,
    "tag_pages": True,
}


class ConfigError(Exception):
    """Configuration or site metadata is missing or malformed."""


class BuildError(Exception):
    """Unexpected failure while rendering a page; aborts the build.

    Attributes:
        source_path: Path to the source file that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        source_path: Path | None,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{source_path}: {message}" if source_path else message)


@dataclass
class PageFailure:
    """A page left out of the build.

    Pages are skipped when a required field is missing, when the source cannot
    be decoded, or when another source already produced the same URL.
    """

    source_path: Path | None
    message: str


@dataclass
class BuildResult:
    """Result of a site build.

    Attributes:
        documents: Documents that were rendered and written.
        output_dir: Directory the site was written to.
        site: Site metadata used for every page.
        failures: Pages that were skipped; see PageFailure.
    """

    documents: list[ContentDocument]
    output_dir: Path
    site: SiteMetadata
    failures: list[PageFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def _read_yaml(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc


def load_config(project_root: Path) -> dict[str, Any]:
    """Load inkpage.yaml, with DEFAULT_CONFIG filling missing keys."""
    config = DEFAULT_CONFIG.copy()
    config_path = project_root / CONFIG_FILENAME
    if config_path.exists():
        loaded = _read_yaml(config_path) or {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"{config_path} must contain a mapping")
        config.update(loaded)
    return config


def _first(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if payload.get(key) not in (None, ""):
            return payload[key]
    return None


def load_site_metadata(project_root: Path) -> SiteMetadata:
    """Read data/site.yaml into a SiteMetadata.

    Both snake_case and camelCase keys are accepted; ``title`` is an alias of
    ``site_name``. A leading ``@`` on the handle is dropped.

    Raises:
        ConfigError: If the file is missing or lacks a name or handle.
    """
    path = project_root / SITE_METADATA_PATH
    if not path.exists():
        raise ConfigError(f"Expected site metadata at {path}")
    payload = _read_yaml(path) or {}
    if not isinstance(payload, dict):
        raise ConfigError(f"{path} must contain a mapping")

    site_name = _first(payload, "site_name", "siteName", "title")
    handle = _first(payload, "twitter_handle", "twitterHandle", "twitter")
    if site_name is None:
        raise ConfigError(f"{path} is missing 'site_name'")
    if handle is None:
        raise ConfigError(f"{path} is missing 'twitter_handle'")
    return SiteMetadata(
        site_name=str(site_name),
        twitter_handle=str(handle).strip().lstrip("@"),
        url=str(payload.get("url") or ""),
        description=str(payload.get("description") or ""),
        author=str(payload.get("author") or ""),
        language=str(payload.get("language") or "en"),
    )


def build_site(
    project_root: Path,
    include_drafts: bool = False,
    root_url: str | None = None,
    clean_output: bool = True,
    output_dir_override: Path | None = None,
    today: date | None = None,
) -> BuildResult:
    """Build the entire static site.

    Args:
        project_root: Root directory of the project.
        include_drafts: Whether to render draft documents.
        root_url: Base URL to absolutize links with; overrides the config.
        clean_output: Whether to wipe the output directory first.
        output_dir_override: Write here instead of the configured output_dir.
        today: Date used for copyright years; defaults to the current date.

    Returns:
        BuildResult with the rendered documents and any skipped pages.

    Raises:
        ConfigError: If configuration or site metadata cannot be loaded.
        BuildError: If a page fails for a reason other than a missing field.
    """
    config = load_config(project_root)
    if root_url is not None:
        config["root_url"] = root_url
    site = load_site_metadata(project_root)
    today = today or date.today()

    content_dir = project_root / config["content_dir"]
    if not content_dir.exists():
        raise ConfigError(f"Expected content directory at {content_dir}")
    output_dir = output_dir_override or (project_root / config["output_dir"])
    if clean_output:
        ensure_clean_dir(output_dir)
    else:
        output_dir.mkdir(parents=True, exist_ok=True)

    layouts_dir = content_dir / "_layouts"
    try:
        renderer = PageRenderer(layouts_dir if layouts_dir.is_dir() else None)
    except TemplateError as exc:
        raise BuildError(layouts_dir, f"Invalid layout: {exc}", exc) from exc
    resolved_root = str(config.get("root_url") or "")

    processor = ContentProcessor(content_dir)
    documents = processor.load(include_drafts=include_drafts)
    rendered: list[ContentDocument] = []
    failures = [PageFailure(exc.source_path, str(exc)) for exc in processor.unreadable]
    owners: dict[str, Path | None] = {}
    for doc in documents:
        if doc.url in owners:
            message = f"URL {doc.url} is already produced by {owners[doc.url]}"
            logger.warning("Skipping %s: %s", doc.source_path, message)
            failures.append(PageFailure(doc.source_path, message))
            continue
        try:
            page = renderer.render(doc, site, today=today)
        except MissingFieldError as exc:
            logger.warning("Skipping %s: %s", doc.source_path, exc)
            failures.append(PageFailure(doc.source_path, str(exc)))
            continue
        except TemplateError as exc:
            raise BuildError(doc.source_path, f"Template error: {exc}", exc) from exc
        _write_page(output_dir, doc.url, page.html, resolved_root)
        owners[doc.url] = doc.source_path
        rendered.append(doc)

    collection = DocumentCollection(rendered)
    taken = {doc.url for doc in rendered}
    for doc in _generated_documents(collection, config, taken):
        try:
            page = renderer.render(doc, site, today=today)
        except TemplateError as exc:
            raise BuildError(None, f"Template error in {doc.url}: {exc}", exc) from exc
        _write_page(output_dir, doc.url, page.html, resolved_root)

    _copy_static(project_root / config["static_dir"], output_dir)
    written = create_default_feed_registry().generate_all(output_dir, rendered, site)
    logger.debug("Wrote feeds: %s", ", ".join(written) or "none")
    logger.info(
        "Built %d pages into %s (%d skipped)", len(rendered), output_dir, len(failures)
    )
    return BuildResult(
        documents=rendered, output_dir=output_dir, site=site, failures=failures
    )


def _generated_documents(
    collection: DocumentCollection, config: dict[str, Any], taken: set[str]
) -> list[ContentDocument]:
    """Index and per-tag listing pages, skipping URLs a source file already owns."""
    generated: list[ContentDocument] = []
    posts = collection.published()
    if config.get("index") and "/" not in taken:
        latest = posts.latest(int(config.get("index_limit") or 20))
        generated.append(
            ContentDocument(
                title=str(config.get("index_title") or "Latest posts"),
                body=_listing_html(latest),
                url="/",
                slug="index",
            )
        )
    if config.get("tag_pages"):
        for slug, (tag, tagged) in _tags_by_slug(posts).items():
            url = f"/tags/{slug}/"
            if url in taken:
                continue
            generated.append(
                ContentDocument(
                    title=f"Tagged: {tag}",
                    body=_listing_html(tagged.sorted()),
                    url=url,
                    slug=slug,
                )
            )
    return generated


def _tags_by_slug(
    posts: DocumentCollection,
) -> dict[str, tuple[str, DocumentCollection]]:
    """Merge tags that share a URL slug, e.g. ``Python`` and ``python``.

    The first spelling seen names the page.
    """
    merged: dict[str, tuple[str, list[ContentDocument]]] = {}
    for tag, tagged in TagCollection(build_tags_index(posts)).items():
        name, docs = merged.setdefault(slugify(tag), (tag, []))
        docs.extend(doc for doc in tagged if doc not in docs)
    return {
        slug: (name, DocumentCollection(docs)) for slug, (name, docs) in merged.items()
    }


def _listing_html(documents: DocumentCollection) -> str:
    if not len(documents):
        return "<p>Nothing published yet.</p>"
    items = []
    for doc in documents:
        when = (
            f'<time datetime="{doc.published.isoformat()}">{doc.published.isoformat()}</time> '
            if doc.published
            else ""
        )
        items.append(
            f'<li>{when}<a href="{escape_html(doc.url)}">{escape_html(doc.title or "")}</a></li>'
        )
    return '<ul class="post-list">' + "".join(items) + "</ul>"


def _write_page(output_dir: Path, url: str, html: str, root_url: str) -> None:
    if root_url:
        html = absolutize_html_urls(html, root_url)
    target_dir = output_dir / url.strip("/")
    target_dir.mkdir(parents=True, exist_ok=True)
    (target_dir / "index.html").write_text(html, encoding="utf-8")


def _copy_static(static_dir: Path, output_dir: Path) -> None:
    """Copy static files verbatim into the output root."""
    if not static_dir.is_dir():
        return
    shutil.copytree(static_dir, output_dir, dirs_exist_ok=True)
