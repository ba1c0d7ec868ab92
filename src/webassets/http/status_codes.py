"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes an asset server actually emits, with reason phrases.

    ┌────────┬──────────────────────────────┬───────────────────────────────┐
    │  Code  │ Phrase                       │ When                          │
    ├────────┼──────────────────────────────┼───────────────────────────────┤
    │  200   │ OK                           │ asset served                  │
    │  304   │ Not Modified                 │ If-Modified-Since satisfied   │
    │  400   │ Bad Request                  │ unparseable request           │
    │  404   │ Not Found                    │ nothing handled the request   │
    │  405   │ Method Not Allowed           │ unknown method token          │
    │  408   │ Request Timeout              │ client went quiet             │
    │  413   │ Payload Too Large            │ request over the size limit   │
    │  500   │ Internal Server Error        │ handler or pipeline failure   │
    │  503   │ Service Unavailable          │ worker queue full             │
    │  505   │ HTTP Version Not Supported   │ not HTTP/1.0 or HTTP/1.1      │
    └────────┴──────────────────────────────┴───────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    Usage:
        >>> HTTPStatus.NOT_MODIFIED.phrase
        'Not Modified'
        >>> HTTPStatus.NOT_MODIFIED.allows_body
        False
    """

    OK = 200
    NO_CONTENT = 204

    MOVED_PERMANENTLY = 301
    FOUND = 302
    NOT_MODIFIED = 304

    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        The reason phrase for the status line.

            HTTP/1.1 304 Not Modified
                     ─── ────────────
                      │       └── phrase
                      └────────── code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def allows_body(self) -> bool:
        """False for 1xx, 204 and 304, which never carry a message body."""
        return not (self < 200 or self in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED))


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",

    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.NOT_MODIFIED: "Not Modified",

    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",

    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
