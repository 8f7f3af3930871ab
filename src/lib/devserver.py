"""
Development server

Serves a site straight from its .vyu sources, recompiling on every request,
and pushes reload signals to open pages when sources change.

    GET /                  → index.vyu compiled in dev mode
    GET /about             → about.vyu (or /about.html)
    GET /img/logo.png      → static file from the site directory
    GET /__live_reload     → Server-Sent-Events stream:
                               data: connected   (once)
                               data: reload      (per settled change burst)

A page that fails to compile is answered with HTTP 500 and a diagnostic
page that still carries the live-reload script, so the browser recovers
on its own once the source is fixed.
"""

import html
import mimetypes
import select
import signal
import socket
import threading
import time
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Optional, Tuple, Union

from ..models.compile import CompileOptions
from .broadcaster import ReloadBroadcaster
from .bundler import ViteDevServer, dependencies_ensure
from .compiler import Compiler, liveReloadScript_make
from .errors import BundlerError, CompileError, ParseError
from .lexer import source_highlight
from .log import LOG
from .watcher import Watcher

# How often an idle live-reload stream checks for server shutdown
SSE_POLL_S = 0.25


def errorPage_render(error: Exception, source: Optional[str] = None) -> str:
    """
    Render the diagnostic page shown when a template fails to compile

    Args:
        error: The compile failure
        source: Template source, if it could be read, shown highlighted

    Returns:
        Complete HTML document including the live-reload script
    """
    details = str(error)
    if isinstance(error, ParseError) and error.context_render():
        details = f"{details}\n\n{error.context_render()}"

    source_html = ""
    if source is not None:
        source_html = f"\n<h2>Source</h2>\n{source_highlight(source)}"

    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head><title>Compile Error</title></head>\n"
        "<body>\n"
        "<h1>Compile Error</h1>\n"
        '<pre style="color: red; background: #fee; padding: 1em; border-radius: 4px;">'
        f"{html.escape(details)}</pre>"
        f"{source_html}\n"
        f"{liveReloadScript_make()}"
        "</body>\n"
        "</html>\n"
    )


class DevRequestHandler(BaseHTTPRequestHandler):
    """
    Per-request handler: live-reload stream, compiled page, or static file
    """

    server: "DevHTTPServer"  # type: ignore[assignment]

    def log_message(self, format: str, *args) -> None:
        LOG(f"{self.address_string()} {format % args}", level=3)

    def do_GET(self) -> None:
        from ..config import appsettings

        parsed = urllib.parse.urlsplit(self.path)
        if parsed.path == appsettings.live_reload_path:
            self.liveReload_stream()
            return
        self.page_serve(urllib.parse.unquote(parsed.path))

    def do_HEAD(self) -> None:
        """Same routing as GET; body_send and send_error omit the body"""
        from ..config import appsettings

        parsed = urllib.parse.urlsplit(self.path)
        if parsed.path == appsettings.live_reload_path:
            self.streamHeaders_send()
            return
        self.page_serve(urllib.parse.unquote(parsed.path))

    def path_inSite(self, path: Path) -> bool:
        """Check that a request path does not escape the site directory"""
        try:
            path.resolve().relative_to(self.server.site_dir.resolve())
        except ValueError:
            return False
        return True

    def templatePath_find(self, url_path: str) -> Path:
        """
        Map a URL path to the template that would serve it

        Example:
            "/"            → site/index.vyu
            "/blog/post"   → site/blog/post.vyu
            "/about.html"  → site/about.vyu
        """
        from ..config import appsettings

        page = url_path
        if page == "/":
            page = "/" + appsettings.index_page
        page = page.lstrip("/")
        if page.endswith(".html"):
            page = page[: -len(".html")]
        return self.server.site_dir / appsettings.templatePath_make(page)

    def page_serve(self, url_path: str) -> None:
        template = self.templatePath_find(url_path)

        if not template.is_file() or not self.path_inSite(template):
            self.static_serve(url_path)
            return

        try:
            result = self.server.compiler.file_compile(template)
        except CompileError as e:
            LOG(f"Compile error: {e}", level=1, severity="ERROR")
            try:
                source: Optional[str] = template.read_text(encoding='utf-8')
            except (OSError, UnicodeDecodeError):
                source = None
            self.body_send(500, errorPage_render(e, source).encode('utf-8'), "text/html; charset=utf-8")
            return

        self.body_send(200, result.html.encode('utf-8'), "text/html; charset=utf-8")

    def static_serve(self, url_path: str) -> None:
        """Serve a site file verbatim, or 404"""
        static = self.server.site_dir / url_path.lstrip("/")
        if not static.is_file() or not self.path_inSite(static):
            self.send_error(404, "File not found")
            return
        try:
            data = static.read_bytes()
        except OSError:
            self.send_error(404, "File not found")
            return
        content_type = mimetypes.guess_type(static.name)[0] or "application/octet-stream"
        self.body_send(200, data, content_type)

    def body_send(self, status: int, data: bytes, content_type: str) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.send_header("Cache-Control", "no-cache")
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(data)

    def event_write(self, text: str) -> None:
        self.wfile.write(text.encode('utf-8'))
        self.wfile.flush()

    def client_gone(self) -> bool:
        """True once the peer has closed its end of the connection"""
        try:
            readable, _, _ = select.select([self.connection], [], [], 0)
            if not readable:
                return False
            return self.connection.recv(1, socket.MSG_PEEK) == b""
        except (OSError, ValueError):
            return True

    def streamHeaders_send(self) -> None:
        self.send_response(200)
        self.send_header("Content-Type", "text/event-stream")
        self.send_header("Cache-Control", "no-cache")
        self.send_header("Connection", "keep-alive")
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()

    def liveReload_stream(self) -> None:
        """
        Hold a Server-Sent-Events stream open until the client or server goes

        The handle is registered before the handshake is sent and is always
        deregistered on the way out. Each poll also checks the socket for
        EOF, so a closed tab is dropped within ``SSE_POLL_S``. Idle streams
        write an SSE comment every ``sse_keepalive_s``.
        """
        from ..config import appsettings

        self.streamHeaders_send()
        self.close_connection = True

        broadcaster = self.server.broadcaster
        handle = broadcaster.connect()
        LOG(f"Live-reload client {handle.client_id} connected", level=2)
        try:
            self.event_write("data: connected\n\n")
            last_write = time.monotonic()
            while not self.server.closing.is_set():
                payload = handle.signal_wait(timeout=SSE_POLL_S)
                if payload is not None:
                    self.event_write(f"data: {payload}\n\n")
                    last_write = time.monotonic()
                elif self.client_gone():
                    break
                elif time.monotonic() - last_write >= appsettings.sse_keepalive_s:
                    self.event_write(": ping\n\n")
                    last_write = time.monotonic()
        except (BrokenPipeError, ConnectionResetError, ConnectionAbortedError):
            pass
        finally:
            broadcaster.disconnect(handle)
            LOG(f"Live-reload client {handle.client_id} disconnected", level=2)


class DevHTTPServer(ThreadingHTTPServer):
    """
    Threaded HTTP server carrying the dev server's shared state

    Attributes:
        site_dir: Site directory
        compiler: Dev-mode compiler (stateless, shared by request threads)
        broadcaster: Live-reload client registry
        closing: Set on shutdown; open live-reload streams end when they see it
    """

    daemon_threads = True

    def __init__(
        self,
        server_address: Tuple[str, int],
        site_dir: Path,
        compiler: Compiler,
        broadcaster: ReloadBroadcaster,
    ) -> None:
        self.site_dir = site_dir
        self.compiler = compiler
        self.broadcaster = broadcaster
        self.closing = threading.Event()
        self._inflight = 0
        self._inflight_cond = threading.Condition()
        super().__init__(server_address, DevRequestHandler)

    def process_request_thread(self, request, client_address) -> None:
        with self._inflight_cond:
            self._inflight += 1
        try:
            super().process_request_thread(request, client_address)
        finally:
            with self._inflight_cond:
                self._inflight -= 1
                self._inflight_cond.notify_all()

    def requests_drain(self, timeout: float) -> bool:
        """
        Wait for in-flight requests to finish

        Returns:
            True if all requests finished within ``timeout``
        """
        with self._inflight_cond:
            return self._inflight_cond.wait_for(lambda: self._inflight == 0, timeout=timeout)


class DevServer:
    """
    Dev server lifecycle: bundler, watcher and HTTP listener

    Usage:
        server = DevServer(Path("site"), vite_dir=Path("vite"))
        server.serve_forever()      # blocks until SIGINT/SIGTERM

    or, when embedding (tests):
        server.start()
        ...
        server.stop()
    """

    def __init__(
        self,
        site_dir: Union[str, Path],
        vite_dir: Optional[Union[str, Path]] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        vite_dev_url: Optional[str] = None,
    ) -> None:
        """
        Args:
            site_dir: Directory containing .vyu templates and static files
            vite_dir: Bundler project directory; None runs without a bundler
            host: Bind address (defaults to settings)
            port: Listen port, 0 for an ephemeral port (defaults to settings)
            vite_dev_url: Bundler dev server URL used for asset URLs
        """
        from ..config import appsettings

        self.site_dir = Path(site_dir)
        self.vite_dir = Path(vite_dir) if vite_dir is not None else None
        self.host = host if host is not None else appsettings.dev_host
        self.port = port if port is not None else appsettings.dev_port
        self.vite_dev_url = vite_dev_url or appsettings.vite_dev_url

        self.broadcaster = ReloadBroadcaster()
        self.compiler = Compiler(CompileOptions(
            dev_mode=True,
            dev_server_url=self.vite_dev_url,
            site_dir=self.site_dir,
        ))
        self.watcher: Optional[Watcher] = None
        self.vite: Optional[ViteDevServer] = None
        self.httpd: Optional[DevHTTPServer] = None
        self._serve_thread: Optional[threading.Thread] = None
        self._stop_lock = threading.Lock()
        self._stopped = threading.Event()

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); meaningful after start()"""
        if self.httpd is None:
            return self.host, self.port
        host, port = self.httpd.server_address[:2]
        return str(host), int(port)

    def start(self) -> None:
        """
        Start the bundler, the watcher and the HTTP listener

        Raises:
            BundlerError: If bundler dependencies cannot be installed
            WatcherError: If the site directory cannot be watched
            OSError: If the listen address is unavailable
        """
        from ..config import appsettings

        if self.vite_dir is not None:
            dependencies_ensure(self.vite_dir)
            self.vite = ViteDevServer(self.vite_dir, startup_wait=appsettings.bundler_startup_s)
            try:
                self.vite.start()
            except BundlerError as e:
                LOG(f"Warning: Vite dev server failed to start: {e}", level=1, severity="WARNING")
                self.vite = None

        self.watcher = Watcher(self.site_dir, on_change=self.broadcaster.broadcast)
        self.watcher.start()

        self.httpd = DevHTTPServer(
            (self.host, self.port), self.site_dir, self.compiler, self.broadcaster
        )
        self._serve_thread = threading.Thread(
            target=self.httpd.serve_forever, name="vaayu-http", daemon=True
        )
        self._serve_thread.start()

        host, port = self.address
        LOG(f"Vaayu dev server running at http://{host}:{port}", level=1, severity="INFO")

    def stop(self) -> None:
        """
        Shut down in order: stop accepting connections, stop the watcher,
        stop the bundler, end live-reload streams and let in-flight requests
        finish within the grace period, then close the listener.

        Safe to call more than once.
        """
        from ..config import appsettings

        with self._stop_lock:
            if self._stopped.is_set():
                return

            if self.httpd is not None:
                self.httpd.shutdown()

            if self.watcher is not None:
                self.watcher.stop()

            if self.vite is not None:
                self.vite.stop(grace=appsettings.bundler_grace_s)

            if self.httpd is not None:
                self.httpd.closing.set()
                if not self.httpd.requests_drain(appsettings.shutdown_grace_s):
                    LOG("Shutdown grace period expired with requests in flight",
                        level=1, severity="WARNING")
                self.httpd.server_close()

            if self._serve_thread is not None:
                self._serve_thread.join(timeout=appsettings.shutdown_grace_s)

            self._stopped.set()
            LOG("Dev server stopped", level=1, severity="INFO")

    def serve_forever(self) -> None:
        """Start, block until SIGINT or SIGTERM, then stop"""
        stop_requested = threading.Event()

        def request_stop(signum, frame) -> None:
            stop_requested.set()

        previous = {
            sig: signal.signal(sig, request_stop)
            for sig in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            self.start()
            while not stop_requested.wait(timeout=0.5):
                pass
        finally:
            self.stop()
            for sig, handler in previous.items():
                signal.signal(sig, handler)
