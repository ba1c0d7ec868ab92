"""
=============================================================================
HTTP RESPONSE
=============================================================================

Builds HTTP/1.1 responses, buffered or streamed.

=============================================================================
TWO KINDS OF BODY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   BUFFERED (body=b"...")            STREAMED (stream=<file>)        │
    │   ─────────────────────             ────────────────────────        │
    │                                                                      │
    │   Content-Length auto-added         Content-Length only if the      │
    │   when missing                      handler knew it                 │
    │                                                                      │
    │   one sendall()                     head, then CHUNK_SIZE reads     │
    │                                     copied to the socket            │
    │                                                                      │
    │                                     no length + HTTP/1.1            │
    │                                       → Transfer-Encoding: chunked  │
    │                                     no length + HTTP/1.0            │
    │                                       → close to end the body       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CHUNKED TRANSFER CODING (RFC 9112 §7.1)
=============================================================================

    HTTP/1.1 200 OK\\r\\n
    Transfer-Encoding: chunked\\r\\n
    \\r\\n
    1f40\\r\\n                 ← chunk size in hex (8000 bytes)
    <8000 bytes>\\r\\n
    2a\\r\\n
    <42 bytes>\\r\\n
    0\\r\\n                    ← last chunk
    \\r\\n

=============================================================================
INTERVIEW QUESTIONS ABOUT HTTP RESPONSES
=============================================================================

Q: "How does the client know when the response body ends?"
A: "Three ways: Content-Length gives the exact byte count; chunked
   transfer coding frames the body and ends with a zero-size chunk;
   or (HTTP/1.0 only) the server closes the connection."

Q: "Does a 304 have a body?"
A: "Never. The client reuses the body it cached with the earlier 200."

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO, Dict, Iterator, Optional, Union
import json

from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "webassets/1.0"

# Bytes per read when copying a streamed body to the socket
CHUNK_SIZE = 8 * 1024


@dataclass
class HTTPResponse:
    """
    An HTTP response to be sent to the client.

    Attributes:
        status:   Status code
        headers:  Header name → value (names kept as given)
        body:     Buffered body bytes
        stream:   Readable binary stream for a streamed body; the
                  response owns it and closes it once written
        bodyless: Send headers only (HEAD, 304); nothing is auto-added
                  for the missing body
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"
    stream: Optional[BinaryIO] = field(default=None, repr=False)
    bodyless: bool = False

    @property
    def status_line(self) -> str:
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def is_streaming(self) -> bool:
        return self.stream is not None

    @property
    def sends_body(self) -> bool:
        return self.status.allows_body and not self.bodyless

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def has_header(self, name: str) -> bool:
        return self.get_header(name) is not None

    def needs_chunking(self, request_version: str = "HTTP/1.1") -> bool:
        """
        True when a streamed body has no length and the client can take
        chunked framing (HTTP/1.0 clients can't; close the connection
        to end the body instead).
        """
        return (
            self.sends_body
            and self.is_streaming
            and not self.has_header("Content-Length")
            and request_version == "HTTP/1.1"
        )

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def head_bytes(self, server_name: str = DEFAULT_SERVER_NAME, chunked: bool = False) -> bytes:
        """
        Serialize the status line and headers (with the blank line).

        Auto-adds Date and Server, Content-Length for buffered bodies,
        and Transfer-Encoding when chunked.
        """
        response_headers = dict(self.headers)

        if self.sends_body and not self.is_streaming and not self.has_header("Content-Length"):
            response_headers["Content-Length"] = str(len(self.body))

        if chunked:
            response_headers["Transfer-Encoding"] = "chunked"

        if not self.has_header("Date"):
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if not self.has_header("Server"):
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        return "\r\n".join(lines).encode("latin-1") + b"\r\n"

    def iter_chunks(self, chunked: bool = False, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        """
        Yield the body as it should go on the wire.

        A streamed body is read chunk_size bytes at a time and closed at
        the end (also when the consumer stops early).
        """
        if not self.sends_body:
            self.close()
            return

        if not self.is_streaming:
            if self.body:
                yield _frame(self.body) if chunked else self.body
            if chunked:
                yield b"0\r\n\r\n"
            return

        try:
            while True:
                chunk = self.stream.read(chunk_size)
                if not chunk:
                    break
                yield _frame(chunk) if chunked else chunk
            if chunked:
                yield b"0\r\n\r\n"
        finally:
            self.close()

    def read_body(self) -> bytes:
        """The full (unframed) body; drains and closes a stream."""
        return b"".join(self.iter_chunks())

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the whole response in one piece.

        A streamed body without Content-Length is sent chunked (HTTP/1.1).
        """
        chunked = self.needs_chunking()
        return self.head_bytes(server_name, chunked) + b"".join(self.iter_chunks(chunked))

    def close(self) -> None:
        """Close the body stream, if any."""
        stream, self.stream = self.stream, None
        if stream is not None:
            stream.close()


def _frame(data: bytes) -> bytes:
    return f"{len(data):x}\r\n".encode("ascii") + data + b"\r\n"


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("Cache-Control", "no-cache")
            .body(b"...")
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body = b""
        self._stream: Optional[BinaryIO] = None
        self._bodyless = False

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body
        return self

    def stream(self, stream: BinaryIO) -> "ResponseBuilder":
        """Send the body by copying from a readable stream."""
        self._stream = stream
        return self

    def bodyless(self) -> "ResponseBuilder":
        """Headers only (HEAD)."""
        self._bodyless = True
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        return self.content_type(content_type).body(text)

    def json(self, data, pretty: bool = False) -> "ResponseBuilder":
        indent = 2 if pretty else None
        return self.content_type("application/json").body(json.dumps(data, indent=indent))

    def close_connection(self) -> "ResponseBuilder":
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
            stream=self._stream,
            bodyless=self._bodyless,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an IMF-fixdate (RFC 9110 §5.6.7).

        Wed, 01 Jan 2026 12:00:00 GMT

    Aware datetimes are converted to UTC; naive ones are taken as UTC.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year:04d} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def not_modified(headers: Optional[Dict[str, str]] = None) -> HTTPResponse:
    """304 with no body, no Content-Length and no Content-Encoding."""
    return ResponseBuilder().status(HTTPStatus.NOT_MODIFIED).headers(headers or {}).build()


def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """JSON error body: {"error": "..."}."""
    return (ResponseBuilder()
        .status(status)
        .json({"error": message or status.phrase})
        .build())


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return error_response(HTTPStatus.BAD_REQUEST, message)


def not_found(message: str = "Not Found") -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, message)


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500. Keep the message generic; details go to the log."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)


def service_unavailable(message: str = "Server is busy") -> HTTPResponse:
    return (ResponseBuilder()
        .status(HTTPStatus.SERVICE_UNAVAILABLE)
        .header("Retry-After", "1")
        .json({"error": message})
        .close_connection()
        .build())
