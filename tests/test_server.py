import asyncio
import io

from inkpage.build import ConfigError
from inkpage.server import (
    PreviewServer,
    _ChangeHandler,
    _ReloadHandler,
    inject_reload_script,
)


class DummyEvent:
    def __init__(self, path, is_directory=False):
        self.src_path = path
        self.is_directory = is_directory


def test_inject_reload_script():
    assert inject_reload_script("<body>x</body>", "<s/>") == "<body>x<s/></body>"
    assert inject_reload_script("fragment", "<s/>") == "fragment<s/>"


def test_ports_default_to_config(tmp_path):
    (tmp_path / "inkpage.yaml").write_text("port: 8000\nws_port: 9000\n", encoding="utf-8")
    server = PreviewServer(tmp_path)
    assert server.http_port == 8000
    assert server.ws_port == 9000
    assert 'location.hostname + \':9000\'' in server._reload_script


def test_port_override_moves_ws_port(tmp_path):
    server = PreviewServer(tmp_path, http_port=5055)
    assert server.http_port == 5055
    assert server.ws_port == 5056

    server = PreviewServer(tmp_path, http_port=5055, ws_port=6000)
    assert server.ws_port == 6000


def test_change_handler_skips_output_and_git(tmp_path):
    server = PreviewServer(tmp_path)
    called = []
    server.rebuild = lambda include_drafts: called.append(include_drafts)
    handler = _ChangeHandler(server, include_drafts=True)

    handler.on_any_event(DummyEvent(str(server.output_dir / "index.html")))
    handler.on_any_event(DummyEvent(str(server._staging_dir / "index.html")))
    handler.on_any_event(DummyEvent(str(tmp_path / ".git" / "HEAD")))
    handler.on_any_event(DummyEvent(str(tmp_path / "content"), is_directory=True))
    assert called == []

    handler.on_any_event(DummyEvent(str(tmp_path / "content" / "post.md")))
    assert called == [True]


def test_rebuild_skips_unchanged_sources(tmp_path):
    (tmp_path / "content").mkdir()
    source = tmp_path / "content" / "post.md"
    source.write_text("one", encoding="utf-8")
    server = PreviewServer(tmp_path)
    server._last_signature = server._compute_signature()

    builds = []
    reloads = []
    server._build = lambda include_drafts: builds.append(include_drafts)
    server._broadcast_reload = lambda: reloads.append(True)

    server.rebuild(False)
    assert builds == []

    source.write_text("two, longer", encoding="utf-8")
    server.rebuild(False)
    assert builds == [False]
    assert reloads == [True]
    assert server._rebuilding is False


def test_rebuild_failure_keeps_serving(tmp_path):
    (tmp_path / "content").mkdir()
    (tmp_path / "content" / "post.md").write_text("x", encoding="utf-8")
    server = PreviewServer(tmp_path)

    def failing_build(include_drafts):
        raise ConfigError("broken site.yaml")

    reloads = []
    server._build = failing_build
    server._broadcast_reload = lambda: reloads.append(True)
    server.rebuild(False)
    assert reloads == []
    assert server._rebuilding is False


def test_build_swaps_staging_into_output(tmp_path):
    (tmp_path / "content").mkdir()
    (tmp_path / "content" / "hello.md").write_text(
        "---\ntitle: Hello\n---\nHi.\n", encoding="utf-8"
    )
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "site.yaml").write_text(
        "site_name: Site\ntwitter_handle: me\n", encoding="utf-8"
    )
    server = PreviewServer(tmp_path, http_port=4100)
    server._build(include_drafts=False)

    html = (server.output_dir / "hello" / "index.html").read_text(encoding="utf-8")
    assert 'href="http://localhost:4100/"' in html
    assert not server._staging_dir.exists()


def test_async_broadcast_drops_stale_clients(tmp_path):
    server = PreviewServer(tmp_path)

    class GoodWS:
        def __init__(self):
            self.messages = []

        async def send(self, msg):
            self.messages.append(msg)

    class BadWS:
        async def send(self, msg):
            raise RuntimeError("closed")

    good, bad = GoodWS(), BadWS()
    server._ws_clients = {good, bad}
    asyncio.run(server._async_broadcast("hello"))
    assert good.messages == ["hello"]
    assert server._ws_clients == {good}


def _make_handler(directory, path):
    handler = _ReloadHandler.__new__(_ReloadHandler)
    handler.directory = str(directory)
    handler.path = path
    handler.wfile = io.BytesIO()
    handler.sent = []
    handler.send_response = lambda code, message=None: handler.sent.append(code)
    handler.send_header = lambda key, value: None
    handler.end_headers = lambda: None
    handler.send_error = lambda code, message=None: handler.sent.append(code)
    return handler


def test_reload_handler_injects_script(tmp_path):
    (tmp_path / "post").mkdir()
    (tmp_path / "post" / "index.html").write_text("<body>hi</body>", encoding="utf-8")
    handler = _make_handler(tmp_path, "/post/")
    assert handler.send_head() is None
    body = handler.wfile.getvalue().decode("utf-8")
    assert handler.sent == [200]
    assert body.startswith("<body>hi<script>")
    assert body.endswith("</script>\n</body>")


def test_reload_handler_serves_404_page(tmp_path):
    (tmp_path / "empty").mkdir()
    handler = _make_handler(tmp_path, "/missing/")
    handler.send_head()
    assert handler.sent == [404]
    assert handler.wfile.getvalue() == b""

    (tmp_path / "404.html").write_text("<body>gone</body>", encoding="utf-8")
    handler = _make_handler(tmp_path, "/empty/")
    handler.send_head()
    assert handler.sent == [404]
    assert b"gone" in handler.wfile.getvalue()
