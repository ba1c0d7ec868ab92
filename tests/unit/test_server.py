"""
End-to-end tests: a real AssetServer on an ephemeral port, spoken to over
plain sockets.
"""

import gzip
import socket
from dataclasses import replace

import pytest

from conftest import APP_JS, LAST_MODIFIED
from webassets import AssetServer, ServerConfig, WebAssetsConfig
from webassets.assets import InMemoryAssetStore
from webassets.http import format_http_date
from webassets.middleware import LoggingMiddleware
from webassets.processors import BaseHrefProcessor


class UnknownLengthStore(InMemoryAssetStore):
    """Reports .txt entries with an unknown length, like a resource reader."""

    def try_resolve(self, path):
        descriptor = super().try_resolve(path)
        if descriptor is not None and descriptor.name.endswith(".txt"):
            return replace(descriptor, length=None)
        return descriptor


STREAM_TXT = "line of streamed text\n" * 1000


@pytest.fixture
def server():
    store = UnknownLengthStore(
        {
            "/index.html": '<html><head><base href="{BASE_HREF}"></head></html>',
            "/app.js": APP_JS,
            "/logo.png": b"\x89PNG\r\n\x1a\n" + bytes(range(256)),
            "/stream.txt": STREAM_TXT,
        },
        last_modified=LAST_MODIFIED,
    )
    assets = (WebAssetsConfig()
        .use_store(store)
        .add_processor(BaseHrefProcessor())
        .with_mount_path("/ui"))

    app = AssetServer(ServerConfig(port=0, min_workers=2, max_workers=4, log_level="WARNING"))
    app.use(LoggingMiddleware())
    app.serve_assets(assets)
    app.start()
    yield app
    app.stop()


def connect(app):
    sock = socket.create_connection(app.address, timeout=5.0)
    return sock, sock.makefile("rb")


def send(sock, path, method="GET", version="HTTP/1.1", headers=None):
    lines = [f"{method} {path} {version}", "Host: localhost"]
    lines += [f"{name}: {value}" for name, value in (headers or {}).items()]
    sock.sendall(("\r\n".join(lines) + "\r\n\r\n").encode("latin-1"))


def read_response(stream, head_only=False):
    """Read one response; returns (status, lowercased headers, body)."""
    status_line = stream.readline().decode("latin-1").rstrip("\r\n")
    headers = {}
    while True:
        line = stream.readline().decode("latin-1").rstrip("\r\n")
        if not line:
            break
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()

    status = int(status_line.split()[1])
    if head_only or status == 304:
        body = b""
    elif headers.get("transfer-encoding") == "chunked":
        body = b""
        while True:
            size = int(stream.readline().strip(), 16)
            if size == 0:
                stream.readline()
                break
            body += stream.read(size)
            stream.readline()
    elif "content-length" in headers:
        body = stream.read(int(headers["content-length"]))
    else:
        body = stream.read()
    return status, headers, body


def fetch(app, path, **kwargs):
    sock, stream = connect(app)
    with sock, stream:
        send(sock, path, **kwargs)
        return read_response(stream, head_only=kwargs.get("method") == "HEAD")


class TestServing:
    """Assets over the wire."""

    def test_get_asset(self, server):
        status, headers, body = fetch(server, "/ui/logo.png")

        assert status == 200
        assert headers["content-type"] == "image/png"
        assert headers["content-length"] == str(len(body))
        assert headers["last-modified"] == format_http_date(LAST_MODIFIED)
        assert body.startswith(b"\x89PNG")
        assert "x-request-id" in headers

    def test_gzip(self, server):
        status, headers, body = fetch(server, "/ui/app.js", headers={"Accept-Encoding": "gzip"})

        assert status == 200
        assert headers["content-encoding"] == "gzip"
        assert gzip.decompress(body).decode("utf-8") == APP_JS

    def test_not_modified(self, server):
        status, headers, body = fetch(
            server, "/ui/app.js",
            headers={"If-Modified-Since": format_http_date(LAST_MODIFIED)},
        )

        assert status == 304
        assert body == b""

    def test_head(self, server):
        status, headers, body = fetch(server, "/ui/logo.png", method="HEAD")

        assert status == 200
        assert headers["content-type"] == "image/png"
        assert body == b""

    def test_fallback_with_base_href(self, server):
        status, headers, body = fetch(server, "/ui/settings/profile")

        assert status == 200
        assert headers["content-type"].startswith("text/html")
        assert b'<base href="/ui/">' in body

    def test_outside_mount_is_404(self, server):
        status, _, _ = fetch(server, "/elsewhere/app.js")
        assert status == 404

    def test_post_is_404(self, server):
        status, _, _ = fetch(server, "/ui/app.js", method="POST")
        assert status == 404


class TestLifecycle:
    """Starting and stopping."""

    def test_ephemeral_port(self, server):
        host, port = server.address
        assert host == "127.0.0.1"
        assert port > 0
        assert server.is_running

    def test_stop(self):
        app = AssetServer(ServerConfig(port=0, min_workers=1, max_workers=1, log_level="WARNING"))
        app.start()
        address = app.address

        app.stop()

        assert not app.is_running
        with pytest.raises(OSError):
            socket.create_connection(address, timeout=1.0).close()


class TestFraming:
    """Connection handling and body framing."""

    def test_malformed_request(self, server):
        sock, stream = connect(server)
        with sock, stream:
            sock.sendall(b"GARBAGE\r\n\r\n")
            status, headers, _ = read_response(stream)

        assert status == 400
        assert headers["connection"] == "close"

    def test_keep_alive(self, server):
        sock, stream = connect(server)
        with sock, stream:
            send(sock, "/ui/logo.png")
            first = read_response(stream)
            send(sock, "/ui/app.js")
            second = read_response(stream)

        assert first[0] == second[0] == 200
        assert first[1]["connection"] == "keep-alive"
        assert second[2].decode("utf-8") == APP_JS

    def test_unknown_length_is_chunked(self, server):
        status, headers, body = fetch(server, "/ui/stream.txt")

        assert status == 200
        assert headers["transfer-encoding"] == "chunked"
        assert "content-length" not in headers
        assert body.decode("utf-8") == STREAM_TXT

    def test_unknown_length_http10_closes(self, server):
        status, headers, body = fetch(server, "/ui/stream.txt", version="HTTP/1.0")

        assert status == 200
        assert "transfer-encoding" not in headers
        assert headers["connection"] == "close"
        assert body.decode("utf-8") == STREAM_TXT
