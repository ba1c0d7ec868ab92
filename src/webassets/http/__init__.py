"""
HTTP protocol layer: request parsing, responses, status codes, MIME types
and the reverse-proxy aware client URL helper.
"""

from .request import HTTPRequest, HTTPParseError, RequestParser, parse_http_date, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    not_found,
    not_modified,
    internal_error,
    service_unavailable,
)
from .status_codes import HTTPStatus
from .mime_types import lookup_content_type, is_text_type
from .forwarded import ClientUrl, client_url, url_combine, with_leading_slash, with_trailing_slash

__all__ = [
    "HTTPRequest",
    "HTTPParseError",
    "RequestParser",
    "parse_http_date",
    "parse_request",
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "not_found",
    "not_modified",
    "internal_error",
    "service_unavailable",
    "HTTPStatus",
    "lookup_content_type",
    "is_text_type",
    "ClientUrl",
    "client_url",
    "url_combine",
    "with_leading_slash",
    "with_trailing_slash",
]
