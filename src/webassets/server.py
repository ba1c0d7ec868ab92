"""
=============================================================================
ASSET SERVER
=============================================================================

The host: accepts TCP connections, parses requests, runs them through
the middleware chain (which usually ends in a WebAssetsHandler) and
writes the response, streaming large bodies straight from the store.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer.accept()                                              │
    │        │                                                             │
    │        ▼                                                             │
    │   ThreadPool.submit(_process_connection) ── queue full ──► 503      │
    │        │                                                             │
    │        ▼   (worker thread, keep-alive loop)                          │
    │   Connection.read_request() ──► RequestParser.parse()               │
    │        │                              │                              │
    │        │                              └── HTTPParseError ──► 4xx/505 │
    │        ▼                                                             │
    │   LoggingMiddleware ──► WebAssetsHandler ──► ... ──► 404             │
    │        │                  (defers via next)         (final handler)  │
    │        │                                                             │
    │        │   exception anywhere ──► 500                                │
    │        ▼                                                             │
    │   head_bytes() + iter_chunks()  ──►  Connection.send_stream()       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
FRAMING A STREAMED BODY
=============================================================================

    Content-Length known      plain body, connection may stay open
    unknown, HTTP/1.1 client  Transfer-Encoding: chunked, may stay open
    unknown, HTTP/1.0 client  Connection: close, end of body = EOF

=============================================================================
"""

import logging
import threading
from typing import Callable, Optional

from .config import ServerConfig, WebAssetsConfig
from .core import Connection, ConnectionState, SocketServer, ThreadPool
from .handlers.web_assets import WebAssetsHandler
from .http import (
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    internal_error,
    not_found,
    service_unavailable,
)
from .http.response import error_response
from .middleware import Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


class AssetServer:
    """
    Multi-threaded HTTP/1.1 server for web assets.

    =========================================================================
    USAGE
    =========================================================================

        assets = (WebAssetsConfig()
            .use_store(FileSystemAssetStore("./dist"))
            .add_processor(BaseHrefProcessor()))

        server = AssetServer(ServerConfig(port=8080))
        server.use(LoggingMiddleware())
        server.serve_assets(assets)
        server.run()                      # blocks until Ctrl+C

    Anything the middleware chain leaves unanswered gets a 404.

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration; defaults if not given.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._middleware = MiddlewarePipeline()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

        self._running = False
        self._thread: Optional[threading.Thread] = None

    # =========================================================================
    # CONFIGURATION METHODS
    # =========================================================================

    def use(self, middleware: Middleware) -> "AssetServer":
        """Add middleware; executed in the order added. Logging goes first."""
        self._middleware.add(middleware)
        self._handler = None
        return self

    def serve_assets(self, assets: WebAssetsConfig) -> "AssetServer":
        """Add a WebAssetsHandler built (and validated) from assets."""
        return self.use(WebAssetsHandler.from_config(assets))

    @property
    def address(self):
        """The bound (host, port) once listening."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self):
        """Start the server and block until SIGINT/SIGTERM or stop()."""
        self._setup_logging()
        self._serve()

    def start(self, timeout: float = 5.0) -> "AssetServer":
        """
        Run the server on a background thread and wait until it listens.
        Logging is left as the caller configured it.

        Raises:
            RuntimeError: If the socket is not listening within timeout.
        """
        self._thread = threading.Thread(target=self._serve, name="AssetServer", daemon=True)
        self._thread.start()
        if not self._socket_server.wait_until_ready(timeout):
            self.stop()
            raise RuntimeError("Server did not start listening in time")
        return self

    def stop(self, timeout: float = 5.0):
        """Stop a server started with start() (or from another thread)."""
        self._socket_server.shutdown()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
            self._thread = None

    def _serve(self):
        self._running = True
        self._handler = self._build_handler()
        self._thread_pool.start()
        logger.info(f"Starting {self.config.server_name} on {self.config.host}:{self.config.port}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def _build_handler(self) -> Callable[[HTTPRequest], HTTPResponse]:
        return self._middleware.wrap(self._final_handler)

    @staticmethod
    def _final_handler(request: HTTPRequest) -> HTTPResponse:
        return not_found(f"Not found: {request.original_path}")

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("webassets").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def handle_request(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run one request through the middleware chain.

        Unhandled exceptions become a generic 500; the traceback goes to
        the log, never to the client.
        """
        if self._handler is None:
            self._handler = self._build_handler()

        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"Handler error for {request.method} {request.original_path}: {e}")
            return internal_error()

    def _handle_connection(self, conn: Connection):
        submitted = self._thread_pool.submit(self._process_connection, args=(conn,))
        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send(conn, service_unavailable("Server overloaded"), "HTTP/1.1")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (runs in a worker thread)."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except ValueError as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    self._send_error(conn, HTTPStatus(e.status_code), str(e))
                    break

                conn.state = ConnectionState.PROCESSING
                response = self.handle_request(request)

                keep_alive = request.is_keep_alive and self.config.keep_alive
                if not self._send(conn, response, request.version, keep_alive):
                    break

                if response.get_header("Connection", "").lower() == "close":
                    break

                conn.set_keep_alive()

    def _send(
        self,
        conn: Connection,
        response: HTTPResponse,
        request_version: str,
        keep_alive: bool = False,
    ) -> bool:
        """
        Write a response, streaming its body when it has a stream.

        Sets the Connection header; a streamed body of unknown length
        sent to an HTTP/1.0 client forces the connection closed.
        """
        chunked = response.needs_chunking(request_version)
        ends_at_eof = (
            response.sends_body
            and response.is_streaming
            and not chunked
            and not response.has_header("Content-Length")
        )

        if keep_alive and not ends_at_eof and not response.has_header("Connection"):
            response.headers["Connection"] = "keep-alive"
            response.headers["Keep-Alive"] = f"timeout={int(self.config.keep_alive_timeout)}"
        elif not keep_alive or ends_at_eof:
            response.headers["Connection"] = "close"

        try:
            head = response.head_bytes(self.config.server_name, chunked)
            return conn.send_stream(head, response.iter_chunks(chunked))
        finally:
            response.close()

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Error before the handler ran (parse error, timeout); always closes."""
        self._send(conn, error_response(status, message), "HTTP/1.1")


def create_app(
    assets: Optional[WebAssetsConfig] = None,
    config: Optional[ServerConfig] = None,
) -> AssetServer:
    """
    Create an AssetServer, serving assets when a WebAssetsConfig is given.

        app = create_app(WebAssetsConfig().use_store(InMemoryAssetStore({...})))
        app.run()
    """
    server = AssetServer(config)
    if assets is not None:
        server.serve_assets(assets)
    return server
