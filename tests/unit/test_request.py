"""
Unit tests for HTTP request parsing.
"""

from datetime import datetime, timezone

import pytest

from webassets.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_http_date,
    parse_request,
)


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample asset request from a browser."""
    return (
        b"GET /static/app.js?v=3&v=4 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept-Encoding: gzip, deflate, br\r\n"
        b"If-Modified-Since: Thu, 15 Jan 2026 10:30:00 GMT\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/static/app.js"
        assert request.version == "HTTP/1.1"
        assert request.target == "/static/app.js?v=3&v=4"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, sample_get_request: bytes):
        """Test that headers are parsed correctly."""
        request = parse_request(sample_get_request)

        assert request.host == "localhost:8080"
        assert request.accept_encoding == "gzip, deflate, br"
        assert request.headers["user-agent"] == "pytest"
        assert request.is_keep_alive is True

    def test_parse_if_modified_since(self, sample_get_request: bytes):
        request = parse_request(sample_get_request)
        assert request.if_modified_since == datetime(2026, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_parse_query(self, sample_get_request: bytes):
        request = parse_request(sample_get_request)

        assert request.query_string == "v=3&v=4"
        assert request.query_params == {"v": ["3", "4"]}

    def test_parse_encoded_path(self):
        """Test URL-encoded path parsing."""
        raw = b"GET /fonts/Open%20Sans.ttf HTTP/1.1\r\nHost: test\r\n\r\n"
        assert parse_request(raw).path == "/fonts/Open Sans.ttf"

    def test_parse_invalid_method(self):
        """Test that invalid methods are rejected."""
        raw = b"INVALID /path HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 405

    def test_parse_invalid_request_line(self):
        """Test handling of malformed request line."""
        raw = b"GET\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_parse_unsupported_version(self):
        raw = b"GET / HTTP/2.0\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 505

    def test_parse_missing_terminator(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n")

    def test_parse_missing_headers(self):
        """Test parsing request with no headers."""
        request = parse_request(b"GET / HTTP/1.1\r\n\r\n")

        assert request.method == "GET"
        assert request.path == "/"
        assert len(request.headers) == 0

    def test_parse_path_traversal_blocked(self):
        """Test that path traversal attempts are blocked."""
        raw = b"GET /../../../etc/passwd HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert "path" in str(exc_info.value).lower()

    def test_parse_encoded_traversal_blocked(self):
        raw = b"GET /%2e%2e/secret HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError):
            parse_request(raw)

    def test_parse_request_too_large(self):
        """Test that oversized requests are rejected."""
        parser = RequestParser(max_request_size=100)
        raw = b"GET / HTTP/1.1\r\n" + b"X-Large: " + b"A" * 200 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == 413

    def test_http_version_parsing(self):
        """Test HTTP/1.0 and HTTP/1.1 keep-alive defaults."""
        request_10 = parse_request(b"GET / HTTP/1.0\r\nHost: test\r\n\r\n")
        assert request_10.version == "HTTP/1.0"
        assert request_10.is_keep_alive is False

        request_10_ka = parse_request(b"GET / HTTP/1.0\r\nConnection: Keep-Alive\r\n\r\n")
        assert request_10_ka.is_keep_alive is True

        request_11 = parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n\r\n")
        assert request_11.is_keep_alive is True

        request_11_close = parse_request(b"GET / HTTP/1.1\r\nConnection: close\r\n\r\n")
        assert request_11_close.is_keep_alive is False

    def test_content_length_handling(self):
        """Test Content-Length validation."""
        body = b"test body"
        raw = b"POST / HTTP/1.1\r\nContent-Length: 9\r\n\r\n" + body

        assert parse_request(raw).body == body

    def test_invalid_content_length(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"POST / HTTP/1.1\r\nContent-Length: nine\r\n\r\n")
        with pytest.raises(HTTPParseError):
            parse_request(b"POST / HTTP/1.1\r\nContent-Length: -1\r\n\r\n")

    def test_incomplete_body(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nshort")

    def test_case_insensitive_headers(self):
        """Test that header names are case-insensitive."""
        request = parse_request(b"GET / HTTP/1.1\r\nACCEPT-ENCODING: gzip\r\n\r\n")

        assert request.accept_encoding == "gzip"
        assert request.get_header("Accept-Encoding") == "gzip"

    def test_repeated_headers_joined(self):
        raw = b"GET / HTTP/1.1\r\nAccept-Encoding: gzip\r\nAccept-Encoding: deflate\r\n\r\n"
        assert parse_request(raw).accept_encoding == "gzip, deflate"

    def test_continuation_line(self):
        raw = b"GET / HTTP/1.1\r\nAccept-Encoding: gzip,\r\n deflate\r\n\r\n"
        assert parse_request(raw).accept_encoding == "gzip, deflate"


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_get_header_default(self):
        """Test get_header with default value."""
        request = HTTPRequest(method="GET", path="/")

        assert request.get_header("X-Missing") == ""
        assert request.get_header("X-Missing", "default") == "default"

    def test_original_path(self):
        request = HTTPRequest(method="GET", path="/app.js", path_base="/ui")
        assert request.original_path == "/ui/app.js"

    def test_if_modified_since_missing(self):
        assert HTTPRequest(method="GET", path="/").if_modified_since is None


class TestParseHttpDate:
    """Tests for the three HTTP-date forms."""

    EXPECTED = datetime(1994, 11, 6, 8, 49, 37, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [
        "Sun, 06 Nov 1994 08:49:37 GMT",
        "Sunday, 06-Nov-94 08:49:37 GMT",
        "Sun Nov  6 08:49:37 1994",
    ])
    def test_forms(self, value):
        assert parse_http_date(value) == self.EXPECTED

    def test_result_is_aware_utc(self):
        assert parse_http_date("Sun Nov  6 08:49:37 1994").tzinfo is timezone.utc

    @pytest.mark.parametrize("value", ["", "   ", "not a date", "Sun, 99 Foo 1994"])
    def test_invalid(self, value):
        assert parse_http_date(value) is None
