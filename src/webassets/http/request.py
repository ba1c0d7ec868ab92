"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into HTTPRequest objects.

An asset server only ever reads a handful of things from a request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                WHAT THE ASSET PIPELINE LOOKS AT                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    GET /ui/app.js?v=3 HTTP/1.1\r\n                                  │
    │    ─┬─ ─┬─ ───┬── ─┬─ ───┬────                                      │
    │     │   │     │    │     └── version (keep-alive rules)            │
    │     │   │     │    └── query_string (kept for client URLs)         │
    │     │   │     └── path (what the resolver looks up)                │
    │     │   └── path_base (mount prefix, stripped by the handler)      │
    │     └── method (GET/HEAD serve, anything else defers)              │
    │                                                                      │
    │    Host: example.com:8080\r\n            → client URL              │
    │    Accept-Encoding: gzip, deflate\r\n    → compression choice      │
    │    If-Modified-Since: <http-date>\r\n    → 304 short-circuit       │
    │    \r\n                                                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
HTTP DATE FORMATS
=============================================================================

RFC 9110 obliges a recipient to accept three date formats:

    Sun, 06 Nov 1994 08:49:37 GMT     IMF-fixdate (RFC 1123, preferred)
    Sunday, 06-Nov-94 08:49:37 GMT    obsolete RFC 850 format
    Sun Nov  6 08:49:37 1994          ANSI C asctime() format

email.utils.parsedate_to_datetime understands all three. A date with
no zone comes back naive and is read as UTC.

=============================================================================
INTERVIEW QUESTIONS ABOUT HTTP PARSING
=============================================================================

Q: "How do you know when the HTTP headers end?"
A: "Headers end with an empty line (\\r\\n\\r\\n). We scan for this
   delimiter, then split the request into header section and body."

Q: "What should a server do with an If-Modified-Since it can't parse?"
A: "Ignore it. An invalid date means the condition is not evaluated and
   the full response is sent."

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlparse, unquote
import re


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code to send back:

        400 Bad Request                 - Malformed request syntax
        405 Method Not Allowed          - Unknown method
        413 Payload Too Large           - Request exceeds size limit
        505 HTTP Version Not Supported  - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def parse_http_date(value: str) -> Optional[datetime]:
    """
    Parse an HTTP-date header value into an aware UTC datetime.

    Returns:
        The instant, or None when the value is empty or not a date.
    """
    if not value or not value.strip():
        return None

    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError, OverflowError):
        return None

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         GET, HEAD, POST, ...
        path:           Decoded path without query string. A mount
                        prefix, once matched, moves into path_base.
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Header name (lowercase) → value
        query_string:   Raw query string without the "?"
        query_params:   Parsed query string, name → list of values
        body:           Request body bytes
        path_base:      Mount prefix already consumed ("" at the root)
        target:         Request-target exactly as it appeared on the wire
        client_address: (ip, port) of the peer
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_string: str = ""
    query_params: Dict[str, List[str]] = field(default_factory=dict)
    body: bytes = b""

    path_base: str = ""
    target: str = ""

    client_address: Tuple[str, int] = ("", 0)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def host(self) -> str:
        """The Host header (may include a port)."""
        return self.headers.get("host", "")

    @property
    def accept_encoding(self) -> str:
        return self.headers.get("accept-encoding", "")

    @property
    def if_modified_since(self) -> Optional[datetime]:
        """If-Modified-Since as an aware UTC datetime, None if absent or invalid."""
        return parse_http_date(self.headers.get("if-modified-since", ""))

    @property
    def original_path(self) -> str:
        """The request path including any mount prefix."""
        return self.path_base + self.path

    @property
    def is_keep_alive(self) -> bool:
        """
        Check if this connection should be kept alive.

            HTTP/1.1: keep alive unless "Connection: close"
            HTTP/1.0: close unless "Connection: keep-alive"
        """
        connection = self.headers.get("connection", "").lower()

        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

        Raw Request Bytes
              │
              ▼
        1. Size check             too large?  → HTTPParseError(413)
        2. Find \\r\\n\\r\\n          missing?    → HTTPParseError(400)
        3. Request line           bad method  → 405, bad version → 505
        4. Headers                lowercase names, repeats joined by ", "
        5. Body                   exactly Content-Length bytes
              │
              ▼
        HTTPRequest
    """

    VALID_METHODS = {
        "GET", "POST", "PUT", "DELETE", "PATCH",
        "HEAD", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        """
        Args:
            max_request_size: Largest request accepted, in bytes. Asset
                              requests carry no body, so 1 MB is generous.
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data.

        Args:
            data: Raw HTTP request bytes from the socket.
            client_address: Peer (ip, port) for logging.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, target, version = self._parse_request_line(lines[0])
        path, query_string, query_params = self._split_target(target)
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_string=query_string,
            query_params=query_params,
            body=body[:content_length],
            target=target,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505
            )

        return method, target, version

    def _split_target(self, target: str) -> Tuple[str, str, Dict[str, List[str]]]:
        """
        Split a request-target into decoded path and query.

            "/app.js?v=3"  →  ("/app.js", "v=3", {"v": ["3"]})
        """
        parsed = urlparse(target)
        path = unquote(parsed.path) or "/"

        # Path traversal: "GET /../../../etc/passwd HTTP/1.1"
        if ".." in path.split("/"):
            raise HTTPParseError("Invalid path: contains ..", status_code=400)

        query_params = parse_qs(parsed.query, keep_blank_values=True)
        return path, parsed.query, query_params

    def _parse_headers(self, lines: List[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Continuation lines (leading whitespace) extend the previous
        header; repeated headers are joined with ", ".
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_size: int = 1024 * 1024
) -> HTTPRequest:
    """Parse a request with a one-off RequestParser."""
    parser = RequestParser(max_request_size=max_size)
    return parser.parse(data, client_address)
