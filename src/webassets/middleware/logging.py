"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One line per request on the "webassets.access" logger.

    TEXT (Apache-like):
    127.0.0.1 - - [17/Oct/2026:10:00:00 +0000] "GET /app.js" 200 1834 gzip 0.84ms

    JSON:
    {"request_id": "3f2a9c1e", "method": "GET", "path": "/app.js",
     "status_code": 200, "content_length": 1834, "content_encoding": "gzip", ...}

A streamed response whose length is unknown logs "-" (text) or null
(JSON) for its size.

=============================================================================
INTERVIEW QUESTIONS ABOUT LOGGING
=============================================================================

Q: "Why a separate logger name for access logs?"
A: "So operations can route or silence them independently:
   logging.getLogger("webassets.access").setLevel(logging.WARNING)
   keeps application warnings while dropping per-request noise."

=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Iterable, Optional
from dataclasses import dataclass

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("webassets.access")


@dataclass
class RequestLog:
    """Structured log entry for a request."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: Optional[int]
    content_encoding: Optional[str]
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "query": self.query,
            "client_ip": self.client_ip,
            "user_agent": self.user_agent,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "content_encoding": self.content_encoding,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        size = "-" if self.content_length is None else str(self.content_length)
        encoding = self.content_encoding or "-"
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{size} {encoding} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware. Put it FIRST so it sees every request.

        server.use(LoggingMiddleware(log_format="json"))

    Args:
        log_format: "text" or "json".
        include_request_id: Add an X-Request-ID header to responses.
        log_level: Level for access entries.
        skip_paths: Paths not logged (e.g. a favicon polled by monitors).
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        if log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {log_format!r}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        # 8 hex chars of a UUID4: readable and unique enough per process
        request_id = str(uuid.uuid4())[:8]
        path = request.original_path
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        if self.include_request_id:
            response.set_header("X-Request-ID", request_id)

        if path in self.skip_paths:
            return response

        log_entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=path,
            query=request.query_string,
            client_ip=request.client_address[0] or "-",
            user_agent=request.get_header("user-agent") or "-",
            status_code=int(response.status),
            content_length=self._response_size(response),
            content_encoding=response.get_header("Content-Encoding"),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

        return response

    @staticmethod
    def _response_size(response: HTTPResponse) -> Optional[int]:
        declared = response.get_header("Content-Length")
        if declared is not None:
            try:
                return int(declared)
            except ValueError:
                return None
        if response.is_streaming:
            return None
        return len(response.body)
