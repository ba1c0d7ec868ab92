"""
=============================================================================
WEBASSETS - Versioned Web Asset Server
=============================================================================

Serves the static files of a single-page application: scripts, styles,
fonts and the index page, with the things a browser expects from a
production asset server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. CONTENT ENGINE                                                 │
    │      - Buffered or lazy, single-use streamed bodies                 │
    │      - identity / gzip / deflate, converted in 8 KiB chunks         │
    │                                                                      │
    │   2. STORES AND RESOLVER                                            │
    │      - File system, in-memory and installed-package stores          │
    │      - /index.html fallback for client-side routes                  │
    │                                                                      │
    │   3. PROCESSOR PIPELINE                                             │
    │      - Ordered stages: token substitution, base href, compression   │
    │                                                                      │
    │   4. REQUEST STATE MACHINE                                          │
    │      - 304 short-circuit on If-Modified-Since                       │
    │      - Header composition, streamed bodies                          │
    │                                                                      │
    │   5. HOST                                                           │
    │      - Raw-socket HTTP/1.1 server, thread pool, middleware chain    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    webassets/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m webassets)
    ├── server.py            # AssetServer host
    ├── config.py            # ServerConfig, WebAssetsConfig
    ├── assets/              # Content engine, asset model, stores, resolver
    ├── processors/          # Pipeline and built-in stages
    ├── handlers/            # WebAssetsHandler (request state machine)
    ├── http/                # Request, response, status codes, MIME types
    ├── middleware/          # Middleware chain, access logging
    └── core/                # Socket server, connection, thread pool

=============================================================================
QUICK START
=============================================================================

    from webassets import AssetServer, WebAssetsConfig, FileSystemAssetStore
    from webassets.middleware import LoggingMiddleware

    server = AssetServer()
    server.use(LoggingMiddleware())
    server.serve_assets(WebAssetsConfig().use_store(FileSystemAssetStore("dist")))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .assets import (
    Asset,
    AssetContent,
    AssetMetadata,
    AssetResolver,
    ContentEncoding,
    FileSystemAssetStore,
    InMemoryAssetStore,
    PackageAssetStore,
)
from .config import ServerConfig, WebAssetsConfig
from .handlers import WebAssetsHandler
from .processors import (
    AssetProcessor,
    BaseHrefProcessor,
    CompressionProcessor,
    ProcessorPipeline,
    TokenSubstitutionProcessor,
)
from .server import AssetServer, create_app

__all__ = [
    "Asset",
    "AssetContent",
    "AssetMetadata",
    "AssetResolver",
    "ContentEncoding",
    "FileSystemAssetStore",
    "InMemoryAssetStore",
    "PackageAssetStore",
    "ServerConfig",
    "WebAssetsConfig",
    "WebAssetsHandler",
    "AssetProcessor",
    "BaseHrefProcessor",
    "CompressionProcessor",
    "ProcessorPipeline",
    "TokenSubstitutionProcessor",
    "AssetServer",
    "create_app",
    "__version__",
]
