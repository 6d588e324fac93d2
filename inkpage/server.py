"""Local preview server for inkpage.

Builds the site into a staging directory, serves it over HTTP and reloads
open browser tabs when sources change:
- A small websocket client is injected into every HTML response.
- Directory listings and missing paths get a 404 (serving 404.html when present).
- Content, data and static folders are watched; a change triggers a rebuild
  followed by a reload broadcast.

Key classes:
- PreviewServer: Owns the HTTP server, the websocket server and the watcher.
- _ReloadHandler: HTTP handler that injects the reload client.
- _ChangeHandler: watchdog handler that triggers rebuilds.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import os
import shutil
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import BuildError, ConfigError, build_site, load_config

logger = logging.getLogger(__name__)

RELOAD_SCRIPT_TEMPLATE = """<script>
(() => {{
  const ws = new WebSocket('ws://' + location.hostname + ':{ws_port}');
  ws.onmessage = (event) => {{
    const data = JSON.parse(event.data || '{{}}');
    if (data.type === 'reload') location.reload();
  }};
}})();
</script>
"""


def inject_reload_script(html: str, script: str) -> str:
    """Insert the reload client before ``</body>``, or append it."""
    if "</body>" in html:
        return html.replace("</body>", f"{script}</body>", 1)
    return html + script


class _ReloadHandler(SimpleHTTPRequestHandler):
    """Serves the built site with the reload client injected into HTML."""

    reload_script = RELOAD_SCRIPT_TEMPLATE.format(ws_port=4001)

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def log_message(self, format, *args):  # noqa: A002 - stdlib signature
        logger.debug("%s - %s", self.address_string(), format % args)

    def list_directory(self, path):  # pragma: no cover - reached through send_head
        return self._serve_404()

    def _send_html(self, status: int, html: str) -> None:
        encoded = inject_reload_script(html, self.reload_script).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)

    def _serve_404(self):
        error_page = Path(self.directory) / "404" / "index.html"
        if not error_page.exists():
            error_page = Path(self.directory) / "404.html"
        if error_page.exists():
            self._send_html(404, error_page.read_text(encoding="utf-8"))
            return None
        self.send_error(404, "File not found")
        return None

    def send_head(self):
        path = Path(self.translate_path(self.path))
        if path.is_dir():
            index_path = path / "index.html"
            if not index_path.exists():
                return self._serve_404()
            path = index_path
        elif not path.exists():
            return self._serve_404()

        if path.suffix == ".html":
            self._send_html(200, path.read_text(encoding="utf-8"))
            return None
        return super().send_head()


class PreviewServer:
    """Preview server with live reload.

    Attributes:
        project_root: Root directory of the project.
        config: Loaded inkpage.yaml.
        output_dir: Directory served over HTTP.
        http_port: HTTP port.
        ws_port: Websocket port for reload messages.
    """

    WATCHED = ("content_dir", "static_dir")

    def __init__(
        self,
        project_root: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
    ):
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output_dir = project_root / self.config["output_dir"]
        self._staging_dir = self.output_dir.with_name(self.output_dir.name + ".staging")
        self.http_port = int(http_port or self.config.get("port", 4000))
        if ws_port is not None:
            self.ws_port = int(ws_port)
        elif http_port is not None:
            self.ws_port = self.http_port + 1
        else:
            self.ws_port = int(self.config.get("ws_port", self.http_port + 1))
        self._reload_script = RELOAD_SCRIPT_TEMPLATE.format(ws_port=self.ws_port)
        self._root_url = f"http://localhost:{self.http_port}"
        self._observer: Observer | None = None
        self._ws_clients: set = set()
        self._loop = asyncio.new_event_loop()
        self._rebuilding = False
        self._last_rebuild_at = 0.0
        self._last_signature: tuple | None = None
        self._debounce_seconds = 0.05

    def watched_dirs(self) -> list[Path]:
        dirs = [self.project_root / str(self.config[key]) for key in self.WATCHED]
        dirs.append(self.project_root / "data")
        return [d for d in dirs if d.exists()]

    def start(self, include_drafts: bool = False) -> None:  # pragma: no cover - integration path
        self._build(include_drafts)
        self._last_signature = self._compute_signature()
        threading.Thread(target=self._start_http, daemon=True).start()
        threading.Thread(target=self._start_ws, daemon=True).start()
        self._start_watcher(include_drafts)
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
        self._loop.call_soon_threadsafe(self._loop.stop)

    def _build(self, include_drafts: bool) -> None:
        staging = self._prepare_staging_dir()
        result = build_site(
            self.project_root,
            include_drafts=include_drafts,
            root_url=self._root_url,
            clean_output=True,
            output_dir_override=staging,
        )
        for failure in result.failures:
            logger.warning("Skipped %s: %s", failure.source_path, failure.message)
        self._activate_staging(staging)

    def _start_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_ReloadHandlerWithPort",
            (_ReloadHandler,),
            {"reload_script": self._reload_script},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        logger.info("Serving %s at %s", self.output_dir, self._root_url)
        httpd.serve_forever()

    def _start_ws(self) -> None:  # pragma: no cover - integration path
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._run_ws_server())
        except OSError as exc:
            logger.error("Live reload unavailable on port %s: %s", self.ws_port, exc)

    async def _run_ws_server(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self._ws_handler, "0.0.0.0", self.ws_port):
            await asyncio.Future()

    async def _ws_handler(self, websocket):
        self._ws_clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._ws_clients.discard(websocket)

    def _broadcast_reload(self) -> None:
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._async_broadcast(message), self._loop)

    async def _async_broadcast(self, message: str) -> None:
        stale = set()
        for ws in list(self._ws_clients):
            try:
                await ws.send(message)
            except Exception:
                stale.add(ws)
        self._ws_clients -= stale

    def _start_watcher(self, include_drafts: bool) -> None:  # pragma: no cover - integration path
        handler = _ChangeHandler(self, include_drafts)
        observer = Observer()
        for folder in self.watched_dirs():
            observer.schedule(handler, str(folder), recursive=True)
        observer.schedule(handler, str(self.project_root), recursive=False)
        observer.start()
        self._observer = observer

    def rebuild(self, include_drafts: bool) -> None:
        now = time.time()
        if self._rebuilding or (now - self._last_rebuild_at) < self._debounce_seconds:
            return
        signature = self._compute_signature()
        if signature is not None and signature == self._last_signature:
            return
        self._rebuilding = True
        try:
            logger.info("Change detected; rebuilding...")
            self._build(include_drafts)
            self._last_signature = signature
            self._broadcast_reload()
        except (BuildError, ConfigError) as exc:
            # Keep serving the last good build until the source is fixed.
            logger.error("Rebuild failed: %s", exc)
        finally:
            self._rebuilding = False
            self._last_rebuild_at = time.time()

    def _compute_signature(self) -> tuple | None:
        entries: list[tuple] = []
        for root in self.watched_dirs():
            for path in sorted(root.rglob("*")):
                if path.is_dir():
                    continue
                try:
                    stat = path.stat()
                except OSError:
                    continue
                rel = path.relative_to(self.project_root)
                entries.append((str(rel), stat.st_mtime_ns, stat.st_size))
        config_path = self.project_root / "inkpage.yaml"
        if config_path.exists():
            stat = config_path.stat()
            entries.append(("inkpage.yaml", stat.st_mtime_ns, stat.st_size))
        return tuple(entries) if entries else None

    def _prepare_staging_dir(self) -> Path:
        staging = self._staging_dir
        if staging.exists():
            shutil.rmtree(staging)
        staging.mkdir(parents=True, exist_ok=True)
        return staging

    def _activate_staging(self, staging: Path) -> None:
        if self.output_dir.exists():
            shutil.rmtree(self.output_dir)
        os.replace(staging, self.output_dir)


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: PreviewServer, include_drafts: bool):
        super().__init__()
        self.server = server
        self.include_drafts = include_drafts

    def on_any_event(self, event):
        if event.is_directory:
            return
        path = Path(event.src_path)
        for ignored in (self.server.output_dir, self.server._staging_dir):
            if path == ignored or ignored in path.parents:
                return
        if ".git" in path.parts:
            return
        self.server.rebuild(self.include_drafts)
