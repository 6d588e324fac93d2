from datetime import date
from pathlib import Path

import pytest

from inkpage.build import (
    DEFAULT_CONFIG,
    BuildError,
    ConfigError,
    build_site,
    load_config,
    load_site_metadata,
)

TODAY = date(2025, 1, 1)


def create_project(tmp_path: Path) -> Path:
    project = tmp_path
    posts = project / "content" / "posts"
    posts.mkdir(parents=True)
    (project / "data").mkdir()
    (project / "static").mkdir()

    (project / "inkpage.yaml").write_text(
        "content_dir: content\noutput_dir: public\n", encoding="utf-8"
    )
    (project / "data" / "site.yaml").write_text(
        "site_name: Field Notes\ntwitter_handle: '@example'\nurl: https://example.com\n",
        encoding="utf-8",
    )
    (posts / "2024-01-15-first.md").write_text(
        "---\ntitle: First\ntags: [python, notes]\n---\nHello **world**.\n",
        encoding="utf-8",
    )
    (posts / "2024-02-01-second.md").write_text(
        "---\ntitle: Second & Last\ntags: [python]\ntoc: true\n---\n## Part\n\nMore.\n",
        encoding="utf-8",
    )
    (posts / "broken.md").write_text(
        "---\ndescription: no title here\n---\nBody text.\n", encoding="utf-8"
    )
    (posts / "wip.md").write_text(
        "---\ntitle: WIP\ndraft: true\npublished: 2024-03-01\n---\nLater.\n",
        encoding="utf-8",
    )
    (project / "static" / "robots.txt").write_text("User-agent: *\n", encoding="utf-8")
    return project


def read(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def test_build_site_renders_posts(tmp_path):
    project = create_project(tmp_path)
    result = build_site(project, today=TODAY)

    out = project / "public"
    assert result.output_dir == out
    assert {d.url for d in result.documents} == {"/posts/first/", "/posts/second/"}

    first = read(out / "posts" / "first" / "index.html")
    assert "<title>First | Field Notes</title>" in first
    assert '<a href="https://x.com/example" rel="me">' in first
    assert "&copy; 2025 Field Notes" in first
    assert "<strong>world</strong>" in first

    second = read(out / "posts" / "second" / "index.html")
    assert "<title>Second &amp; Last | Field Notes</title>" in second
    assert '<nav class="toc">' in second


def test_missing_title_skips_only_that_page(tmp_path):
    project = create_project(tmp_path)
    result = build_site(project, today=TODAY)

    assert not result.ok
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert failure.source_path.name == "broken.md"
    assert "title" in failure.message
    assert not (project / "public" / "posts" / "broken").exists()
    assert (project / "public" / "posts" / "first" / "index.html").exists()


def test_drafts_are_opt_in(tmp_path):
    project = create_project(tmp_path)
    build_site(project, today=TODAY)
    assert not (project / "public" / "posts" / "wip").exists()

    result = build_site(project, include_drafts=True, today=TODAY)
    assert (project / "public" / "posts" / "wip" / "index.html").exists()
    assert "/posts/wip/" in {d.url for d in result.documents}


def test_generated_index_and_tag_pages(tmp_path):
    project = create_project(tmp_path)
    build_site(project, today=TODAY)
    out = project / "public"

    index = read(out / "index.html")
    assert "<title>Latest posts | Field Notes</title>" in index
    assert index.index('href="/posts/second/"') < index.index('href="/posts/first/"')

    python = read(out / "tags" / "python" / "index.html")
    assert "<title>Tagged: python | Field Notes</title>" in python
    assert 'href="/posts/first/"' in python
    notes = read(out / "tags" / "notes" / "index.html")
    assert 'href="/posts/second/"' not in notes


def test_tags_with_the_same_slug_share_one_page(tmp_path):
    project = create_project(tmp_path)
    posts = project / "content" / "posts"
    (posts / "2024-04-01-cpp.md").write_text(
        "---\ntitle: CPP post\ntags: [C++, Python]\n---\nTemplates.\n", encoding="utf-8"
    )
    (posts / "2024-04-02-c.md").write_text(
        "---\ntitle: C post\ntags: [C]\n---\nPointers.\n", encoding="utf-8"
    )
    build_site(project, today=TODAY)
    out = project / "public" / "tags"

    c_page = read(out / "c" / "index.html")
    assert "<title>Tagged: C++ | Field Notes</title>" in c_page
    assert "CPP post" in c_page and "C post" in c_page

    python = read(out / "python" / "index.html")
    for title in ("First", "Second &amp; Last", "CPP post"):
        assert title in python


def test_duplicate_urls_keep_the_first_source(tmp_path):
    project = create_project(tmp_path)
    posts = project / "content" / "posts"
    (posts / "2024-01-01-hello.md").write_text(
        "---\ntitle: Dated\n---\nFirst.\n", encoding="utf-8"
    )
    (posts / "hello.md").write_text("---\ntitle: Undated\n---\nSecond.\n", encoding="utf-8")
    result = build_site(project, today=TODAY)

    html = read(project / "public" / "posts" / "hello" / "index.html")
    assert "Dated" in html and "Undated" not in html
    clash = [f for f in result.failures if f.source_path.name == "hello.md"]
    assert len(clash) == 1
    assert "2024-01-01-hello.md" in clash[0].message
    assert [d.url for d in result.documents].count("/posts/hello/") == 1
    assert read(project / "public" / "sitemap.xml").count("/posts/hello/</loc>") == 1


def test_undecodable_source_skips_only_that_page(tmp_path):
    project = create_project(tmp_path)
    (project / "content" / "posts" / "latin1.md").write_bytes(
        b"---\ntitle: Caf\xe9\n---\nBody.\n"
    )
    result = build_site(project, today=TODAY)

    failed = {f.source_path.name: f.message for f in result.failures}
    assert set(failed) == {"broken.md", "latin1.md"}
    assert "UTF-8" in failed["latin1.md"]
    assert (project / "public" / "posts" / "first" / "index.html").exists()


def test_source_index_wins_over_generated_index(tmp_path):
    project = create_project(tmp_path)
    (project / "content" / "index.md").write_text(
        "---\ntitle: Welcome\n---\nMy own front page.\n", encoding="utf-8"
    )
    build_site(project, today=TODAY)
    index = read(project / "public" / "index.html")
    assert "<title>Welcome | Field Notes</title>" in index
    assert "Latest posts" not in index


def test_generated_pages_can_be_disabled(tmp_path):
    project = create_project(tmp_path)
    (project / "inkpage.yaml").write_text("index: false\ntag_pages: false\n", encoding="utf-8")
    build_site(project, today=TODAY)
    assert not (project / "public" / "index.html").exists()
    assert not (project / "public" / "tags").exists()


def test_static_files_and_feeds(tmp_path):
    project = create_project(tmp_path)
    build_site(project, today=TODAY)
    out = project / "public"

    assert read(out / "robots.txt") == "User-agent: *\n"
    sitemap = read(out / "sitemap.xml")
    assert "<loc>https://example.com/posts/first/</loc><lastmod>2024-01-15</lastmod>" in sitemap
    rss = read(out / "rss.xml")
    assert "<title>Second &amp; Last</title>" in rss
    assert "broken" not in rss


def test_feeds_skipped_without_site_url(tmp_path):
    project = create_project(tmp_path)
    (project / "data" / "site.yaml").write_text(
        "site_name: Field Notes\ntwitter_handle: example\n", encoding="utf-8"
    )
    build_site(project, today=TODAY)
    assert not (project / "public" / "sitemap.xml").exists()
    assert not (project / "public" / "rss.xml").exists()


def test_root_url_absolutizes_links(tmp_path):
    project = create_project(tmp_path)
    build_site(project, root_url="https://cdn.example", today=TODAY)
    index = read(project / "public" / "index.html")
    assert 'href="https://cdn.example/posts/first/"' in index
    assert 'href="https://x.com/example"' in index


def test_builds_are_reproducible(tmp_path):
    project = create_project(tmp_path)
    first = build_site(project, output_dir_override=tmp_path / "a", today=TODAY)
    second = build_site(project, output_dir_override=tmp_path / "b", today=TODAY)

    files_a = sorted(p.relative_to(first.output_dir) for p in first.output_dir.rglob("*") if p.is_file())
    files_b = sorted(p.relative_to(second.output_dir) for p in second.output_dir.rglob("*") if p.is_file())
    assert files_a == files_b
    for rel in files_a:
        assert (first.output_dir / rel).read_bytes() == (second.output_dir / rel).read_bytes()


def test_clean_output_removes_stale_files(tmp_path):
    project = create_project(tmp_path)
    stale = project / "public" / "old" / "index.html"
    stale.parent.mkdir(parents=True)
    stale.write_text("old", encoding="utf-8")

    build_site(project, clean_output=False, today=TODAY)
    assert stale.exists()
    build_site(project, today=TODAY)
    assert not stale.exists()


def test_broken_layout_raises_build_error(tmp_path):
    project = create_project(tmp_path)
    layouts = project / "content" / "_layouts"
    layouts.mkdir()
    (layouts / "base.html").write_text("{{ subtitle }}", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(project, today=TODAY)
    assert excinfo.value.source_path.name == "2024-01-15-first.md"

    (layouts / "base.html").write_text("{% if %}", encoding="utf-8")
    with pytest.raises(BuildError, match="Invalid layout"):
        build_site(project, today=TODAY)


def test_load_config_defaults_and_overrides(tmp_path):
    assert load_config(tmp_path) == DEFAULT_CONFIG
    (tmp_path / "inkpage.yaml").write_text("output_dir: dist\nport: 5000\n", encoding="utf-8")
    config = load_config(tmp_path)
    assert config["output_dir"] == "dist"
    assert config["port"] == 5000
    assert config["content_dir"] == "content"


def test_load_config_rejects_bad_files(tmp_path):
    (tmp_path / "inkpage.yaml").write_text("- not\n- a mapping\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(tmp_path)
    (tmp_path / "inkpage.yaml").write_text("port: [4000\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(tmp_path)


def test_load_site_metadata_accepts_aliases(tmp_path):
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "site.yaml").write_text(
        "siteName: Camel\ntwitterHandle: '@camel'\nlanguage: de\n", encoding="utf-8"
    )
    site = load_site_metadata(tmp_path)
    assert site.site_name == "Camel"
    assert site.twitter_handle == "camel"
    assert site.language == "de"
    assert site.url == ""


def test_load_site_metadata_errors(tmp_path):
    with pytest.raises(ConfigError, match="Expected site metadata"):
        load_site_metadata(tmp_path)
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "site.yaml").write_text("site_name: X\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="twitter_handle"):
        load_site_metadata(tmp_path)


def test_missing_content_dir(tmp_path):
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "site.yaml").write_text(
        "site_name: X\ntwitter_handle: x\n", encoding="utf-8"
    )
    with pytest.raises(ConfigError, match="content directory"):
        build_site(tmp_path)
