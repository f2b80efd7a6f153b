"""Development server for Spray.

``spray serve`` builds the blog, serves the output directory over HTTP and
rebuilds the whole site whenever a watched source changes. Every HTML
response carries a small script that listens on a websocket; after a
successful rebuild the server sends ``{"type": "reload"}`` and open pages
refresh themselves.

Rebuilds write into a sibling ``<output>.staging`` directory which replaces
the output directory only once the build has succeeded, so a broken
template never leaves the server with a half-written site.

Key classes:
- DevServer: Ties the build, HTTP server, watcher and reload channel together.
- StagedOutput: Staging directory handling.
- ReloadBroadcaster: Websocket clients and the reload message.
"""

from __future__ import annotations

import asyncio
import functools
import json
import os
import shutil
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import BuildError, build_site
from .config import CONFIG_FILENAME, WATCH_TARGETS, load_config

RELOAD_SCRIPT = """<script>
(() => {{
  const socket = new WebSocket(`ws://${{location.hostname}}:{ws_port}`);
  socket.addEventListener("message", (event) => {{
    const data = JSON.parse(event.data || "{{}}");
    if (data.type === "reload") location.reload();
  }});
}})();
</script>"""

IGNORED_PARTS = frozenset({"node_modules", ".git"})


def reload_snippet(ws_port: int) -> str:
    return RELOAD_SCRIPT.format(ws_port=ws_port)


def inject_reload(html: str, snippet: str) -> str:
    """Insert the reload snippet before ``</body>``, or append it."""
    head, sep, tail = html.rpartition("</body>")
    if not sep:
        return html + snippet
    return f"{head}{snippet}{sep}{tail}"


class _ReloadHandler(SimpleHTTPRequestHandler):
    """Static file handler that adds the reload snippet to HTML pages.

    Directories without an ``index.html`` and missing files are answered
    with ``404.html`` from the served directory when it exists.
    """

    reload_snippet = reload_snippet(8081)

    def end_headers(self):
        self.send_header("Cache-Control", "no-store")
        super().end_headers()

    def list_directory(self, path):  # pragma: no cover - reached via send_head
        return self._not_found()

    def _write_html(self, status: int, html: str) -> None:
        body = inject_reload(html, self.reload_snippet).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _not_found(self):
        page = Path(self.directory) / "404.html"
        if page.is_file():
            self._write_html(404, page.read_text(encoding="utf-8"))
        else:
            self.send_error(404, "File not found")
        return None

    def send_head(self):
        target = Path(self.translate_path(self.path))
        if target.is_dir():
            target = target / "index.html"
        if not target.is_file():
            return self._not_found()
        if target.suffix == ".html":
            self._write_html(200, target.read_text(encoding="utf-8"))
            return None
        return super().send_head()


class StagedOutput:
    """Builds go to ``staging_dir`` and are swapped into ``output_dir``."""

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        self.staging_dir = output_dir.with_name(f"{output_dir.name}.staging")

    def prepare(self) -> Path:
        if self.staging_dir.exists():
            shutil.rmtree(self.staging_dir)
        self.staging_dir.mkdir(parents=True)
        return self.staging_dir

    def activate(self) -> None:
        if self.output_dir.exists():
            shutil.rmtree(self.output_dir)
        os.replace(self.staging_dir, self.output_dir)

    def contains(self, path: Path) -> bool:
        """True when ``path`` lies inside the output or staging directory."""
        return any(
            path == root or root in path.parents
            for root in (self.output_dir, self.staging_dir)
        )


class ReloadBroadcaster:
    """Tracks connected browsers and tells them to reload.

    The websocket server runs on its own event loop in a daemon thread;
    ``broadcast`` may be called from any thread.
    """

    def __init__(self, port: int):
        self.port = port
        self.clients: set = set()
        self.loop = asyncio.new_event_loop()

    def run(self) -> None:  # pragma: no cover - needs a real socket
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_until_complete(self._serve())
        except OSError as exc:
            print(f"Reload websocket failed to start on port {self.port}: {exc}")

    async def _serve(self) -> None:  # pragma: no cover - needs a real socket
        async with websockets.serve(self.handler, "0.0.0.0", self.port):
            await asyncio.Future()

    async def handler(self, websocket) -> None:
        self.clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self.clients.discard(websocket)

    def broadcast(self) -> None:
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self.send_all(message), self.loop)

    async def send_all(self, message: str) -> None:
        closed = []
        for client in list(self.clients):
            try:
                await client.send(message)
            except websockets.ConnectionClosed:
                closed.append(client)
        self.clients.difference_update(closed)

    def stop(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)


class DevServer:
    """Development server with live reload.

    Attributes:
        project_root: Root directory of the project.
        config: Site configuration from ``spray.yaml``.
        output: Output and staging directories.
        http_port: Port for the HTTP server.
        ws_port: Port for the reload websocket, ``http_port + 1`` by default.
        is_production: Build mode used for every build.
    """

    debounce_seconds = 0.05

    def __init__(
        self,
        project_root: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
        is_production: bool = False,
    ):
        self.project_root = project_root
        self.config = load_config(project_root)
        self.output = StagedOutput(project_root / str(self.config.get("output_dir", "dist")))
        self.http_port = int(http_port or self.config.get("port", 8080))
        self.ws_port = ws_port if ws_port is not None else self.http_port + 1
        self.is_production = is_production
        self.reloader = ReloadBroadcaster(self.ws_port)
        self._observer = None
        self._rebuilding = False
        self._last_rebuild_at = 0.0
        self._last_signature: tuple | None = None

    @property
    def output_dir(self) -> Path:
        return self.output.output_dir

    def start(self) -> None:  # pragma: no cover - blocks until interrupted
        self.build()
        self._last_signature = self._signature()
        threading.Thread(target=self._serve_http, daemon=True).start()
        threading.Thread(target=self.reloader.run, daemon=True).start()
        self._start_watcher()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
        self.reloader.stop()

    def build(self) -> None:
        """Build into the staging directory, then swap it into place."""
        staging = self.output.prepare()
        build_site(
            self.project_root,
            is_production=self.is_production,
            clean_output=True,
            output_dir_override=staging,
        )
        self.output.activate()

    def rebuild(self) -> None:
        """Rebuild after a change unless debounced or nothing changed.

        A failing build, including a missing input directory or an
        unreadable staging directory, is reported and the previous output
        stays live.
        """
        if self._rebuilding or time.time() - self._last_rebuild_at < self.debounce_seconds:
            return
        signature = self._signature()
        if signature is not None and signature == self._last_signature:
            return
        self._rebuilding = True
        try:
            print("Change detected; rebuilding...")
            try:
                self.build()
            except (BuildError, OSError) as exc:
                print(f"Build failed: {exc}")
                return
            self._last_signature = signature
            self.reloader.broadcast()
        finally:
            self._rebuilding = False
            self._last_rebuild_at = time.time()

    def _serve_http(self) -> None:  # pragma: no cover - needs a real socket
        handler_cls = type(
            "_ProjectReloadHandler",
            (_ReloadHandler,),
            {"reload_snippet": reload_snippet(self.ws_port)},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        print(f"Serving {self.output_dir} at http://localhost:{self.http_port}")
        httpd.serve_forever()

    def _watch_paths(self) -> list[tuple[Path, bool]]:
        """Existing watch targets as (path, recursive) pairs.

        Directories already covered by a recursive watch are skipped, and
        the project root is watched non-recursively to catch ``spray.yaml``.
        """
        paths: list[tuple[Path, bool]] = []
        for target in WATCH_TARGETS:
            path = self.project_root / target
            if not path.is_dir():
                continue
            if any(path == seen or seen in path.parents for seen, _ in paths):
                continue
            paths.append((path, True))
        paths.append((self.project_root, False))
        return paths

    def _start_watcher(self) -> None:
        handler = _ChangeHandler(self)
        observer = Observer()
        for path, recursive in self._watch_paths():
            observer.schedule(handler, str(path), recursive=recursive)
        observer.start()
        self._observer = observer

    def _signature(self) -> tuple | None:
        """(path, mtime, size) for every source file and ``spray.yaml``."""
        input_dir = self.project_root / str(self.config.get("input_dir", "src"))
        candidates = sorted(input_dir.rglob("*")) if input_dir.is_dir() else []
        candidates.append(self.project_root / CONFIG_FILENAME)
        entries = []
        for path in candidates:
            try:
                stat = path.stat()
            except OSError:
                continue
            if path.is_dir():
                continue
            entries.append((path.relative_to(self.project_root).as_posix(), stat.st_mtime_ns, stat.st_size))
        return tuple(entries) or None


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer):
        super().__init__()
        self.server = server

    def on_any_event(self, event):
        if event.is_directory:
            return
        path = Path(event.src_path)
        if self.server.output.contains(path) or IGNORED_PARTS.intersection(path.parts):
            return
        self.server.rebuild()
