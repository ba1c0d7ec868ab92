"""
=============================================================================
WEB ASSETS HANDLER
=============================================================================

Serves versioned web assets: resolve, answer conditional requests,
run the processor pipeline, compose headers, hand the body to the host.

=============================================================================
REQUEST STATE MACHINE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   RESOLVING ──── not found (fallback too) ────► DEFERRED (*)        │
    │       │                                         handle() → None     │
    │       ▼                                         host calls next()   │
    │   CHECKING_CONDITIONAL                                               │
    │       │                                                              │
    │       ├── last_modified <= If-Modified-Since ──► NOT_MODIFIED (*)   │
    │       │   (both UTC, whole seconds)              304, no body,      │
    │       │                                          pipeline skipped,  │
    │       ▼                                          stream never opened│
    │   PROCESSING           pipeline.process(asset, request)             │
    │       │                                                              │
    │       ▼                                                              │
    │   COMPOSING_HEADERS    Last-Modified   iff timestamp known          │
    │       │                Content-Length  metadata → buffer → omitted  │
    │       │                Content-Type    metadata → lookup → omitted  │
    │       │                Content-Encoding gzip/deflate, never identity│
    │       ▼                                                              │
    │   WRITING_BODY (*)     buffered → body, lazy → stream               │
    │                        (the host copies and closes it)              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Only GET and HEAD are served. Anything else defers so the rest of the
host's chain can deal with it.

=============================================================================
MOUNT PATH
=============================================================================

    WebAssetsHandler(resolver, mount_path="/ui")

        GET /ui/app.js     → resolver sees "/app.js",  path_base="/ui"
        GET /ui            → resolver sees "/",        path_base="/ui"
        GET /api/users     → outside the mount: deferred

=============================================================================
INTERVIEW QUESTIONS ABOUT CONDITIONAL REQUESTS
=============================================================================

Q: "Why truncate timestamps to seconds before comparing?"
A: "HTTP dates have one-second resolution. A file modified at 10:00:00.7
   is sent as 10:00:00; when the browser echoes that back, comparing
   against the precise mtime would wrongly say 'modified'."

Q: "Why not run the pipeline before deciding on a 304?"
A: "A 304 has no body, so any work on the body is wasted. Checking
   first also means the file is never even opened."

=============================================================================
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Optional

from ..assets.asset import Asset
from ..assets.resolver import AssetResolver
from ..http.mime_types import lookup_content_type
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, format_http_date, not_modified
from ..middleware.base import Middleware, NextHandler
from ..processors.base import AssetProcessor, ProcessorPipeline

if TYPE_CHECKING:
    from ..config import WebAssetsConfig


logger = logging.getLogger(__name__)


ContentTypeLookup = Callable[[str], Optional[str]]


class RequestState(Enum):
    RESOLVING = "resolving"
    DEFERRED = "deferred"
    CHECKING_CONDITIONAL = "checking_conditional"
    NOT_MODIFIED = "not_modified"
    PROCESSING = "processing"
    COMPOSING_HEADERS = "composing_headers"
    WRITING_BODY = "writing_body"


def normalize_timestamp(value: datetime) -> datetime:
    """UTC, whole seconds. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0)


def normalize_mount_path(mount_path: Optional[str]) -> str:
    """Leading slash, no trailing slash: "ui/" → "/ui", "/" → ""."""
    if not mount_path:
        return ""
    stripped = mount_path.strip().strip("/")
    return f"/{stripped}" if stripped else ""


class WebAssetsHandler(Middleware):
    """
    Serves assets from a resolver through a processor pipeline.

    =========================================================================
    USAGE
    =========================================================================

        store = FileSystemAssetStore("./dist")
        handler = WebAssetsHandler(
            AssetResolver(store, fallback_path="/index.html"),
            ProcessorPipeline([BaseHrefProcessor(), CompressionProcessor()]),
            mount_path="/ui",
        )

        response = handler.handle(request)   # None = not ours
        server.use(handler)                  # or as host middleware

    Build it once at startup; it holds no per-request state and is safe
    to share between worker threads.

    =========================================================================
    """

    SERVED_METHODS = ("GET", "HEAD")

    def __init__(
        self,
        resolver: AssetResolver,
        pipeline: Optional[AssetProcessor] = None,
        content_type_lookup: ContentTypeLookup = lookup_content_type,
        mount_path: str = "",
    ):
        self.resolver = resolver
        self.pipeline = pipeline if pipeline is not None else ProcessorPipeline()
        self.content_type_lookup = content_type_lookup
        self.mount_path = normalize_mount_path(mount_path)

    @classmethod
    def from_config(cls, config: "WebAssetsConfig") -> "WebAssetsHandler":
        """Validate a WebAssetsConfig and build the handler from it."""
        config.validate()
        return cls(
            resolver=AssetResolver(config.store, config.fallback_asset),
            pipeline=config.build_pipeline(),
            mount_path=config.mount_path,
        )

    # =========================================================================
    # MIDDLEWARE ENTRY POINT
    # =========================================================================

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        response = self.handle(request)
        if response is None:
            return next(request)
        return response

    # =========================================================================
    # STATE MACHINE
    # =========================================================================

    def handle(self, request: HTTPRequest) -> Optional[HTTPResponse]:
        """
        Serve a request.

        Returns:
            The response, or None when the request is not ours (wrong
            method, outside the mount, nothing resolved).

        Raises:
            Whatever the pipeline or the store raises; the host turns
            it into a 500.
        """
        if request.method not in self.SERVED_METHODS:
            return None

        request = self._scope_to_mount(request)
        if request is None:
            return None

        self._enter(RequestState.RESOLVING, request)
        asset = self.resolver.resolve(request.path)
        if asset is None:
            self._enter(RequestState.DEFERRED, request)
            return None

        self._enter(RequestState.CHECKING_CONDITIONAL, request)
        if self.is_not_modified(asset, request):
            self._enter(RequestState.NOT_MODIFIED, request)
            asset.content.close()
            return not_modified()

        self._enter(RequestState.PROCESSING, request)
        try:
            asset = self.pipeline.process(asset, request)

            self._enter(RequestState.COMPOSING_HEADERS, request)
            headers = self.compose_headers(asset)
        except Exception:
            asset.content.close()
            raise

        self._enter(RequestState.WRITING_BODY, request)
        return self._build_response(asset, headers, head_only=request.method == "HEAD")

    def is_not_modified(self, asset: Asset, request: HTTPRequest) -> bool:
        """True when the client's cached copy is still current."""
        last_modified = asset.metadata.last_modified_at
        if last_modified is None:
            return False

        if_modified_since = request.if_modified_since
        if if_modified_since is None:
            return False

        return normalize_timestamp(last_modified) <= normalize_timestamp(if_modified_since)

    def compose_headers(self, asset: Asset) -> Dict[str, str]:
        """Entity headers for the final asset."""
        metadata = asset.metadata
        content = asset.content
        headers: Dict[str, str] = {}

        if metadata.last_modified_at is not None:
            headers["Last-Modified"] = format_http_date(
                normalize_timestamp(metadata.last_modified_at)
            )

        # Lazy content of unknown length streams without Content-Length
        if metadata.content_length is not None:
            headers["Content-Length"] = str(metadata.content_length)
        elif content.is_buffered:
            headers["Content-Length"] = str(len(content.buffer()))

        content_type = metadata.content_type or self.content_type_lookup(metadata.file_name)
        if content_type:
            headers["Content-Type"] = content_type

        content_encoding = content.encoding.header_value
        if content_encoding:
            headers["Content-Encoding"] = content_encoding

        return headers

    def _build_response(self, asset: Asset, headers: Dict[str, str], head_only: bool) -> HTTPResponse:
        builder = ResponseBuilder().headers(headers)

        if head_only:
            asset.content.close()
            return builder.bodyless().build()

        content = asset.content
        if content.is_buffered:
            return builder.body(content.buffer()).build()
        return builder.stream(content.stream()).build()

    def _scope_to_mount(self, request: HTTPRequest) -> Optional[HTTPRequest]:
        """Strip the mount path into path_base, or None when outside it."""
        if not self.mount_path:
            return request

        path = request.path
        prefix = path[:len(self.mount_path)]
        rest = path[len(self.mount_path):]
        if prefix.lower() != self.mount_path.lower() or (rest and not rest.startswith("/")):
            return None

        return replace(
            request,
            path=rest or "/",
            path_base=request.path_base + prefix,
        )

    def _enter(self, state: RequestState, request: HTTPRequest) -> None:
        logger.debug(f"{request.method} {request.original_path}: {state.value}")
