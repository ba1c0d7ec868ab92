"""
=============================================================================
CONFIGURATION
=============================================================================

Two configuration objects:

    ServerConfig      the host: socket, keep-alive, workers, logging
    WebAssetsConfig   the asset handler: store, processors, fallback,
                      compression, mount path

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m webassets --root dist --port 3000               │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── WEBASSETS_PORT=3000 python -m webassets --root dist       │
    │                                                                      │
    │   3. Default values (in the dataclasses below)                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
INTERVIEW QUESTIONS ABOUT CONFIGURATION
=============================================================================

Q: "Why validate at startup instead of on the first request?"
A: "A missing store or a bad port should stop the process before it
   accepts traffic, not surface as a 500 an hour later."

Q: "Why is compression appended last, after user processors?"
A: "Processors such as token substitution need to see plain text.
   Compressing first would force every later stage to decode again."

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .assets.asset import Asset
from .assets.resolver import DEFAULT_FALLBACK_PATH
from .assets.store import AssetStore
from .processors.base import AssetProcessor, ProcessorPipeline
from .processors.compression import CompressionProcessor, should_compress


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the asset server host.

    =========================================================================
    PRODUCTION VS DEVELOPMENT
    =========================================================================

    Development:
        ServerConfig(log_level="DEBUG")

    Production (behind a reverse proxy):
        ServerConfig(
            host="0.0.0.0",
            port=8080,
            max_workers=32,
            log_format="json",
        )

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces (production)
    """

    port: int = 8080
    """
    The port number to listen on. 0 asks the OS for a free port.
    """

    backlog: int = 128
    """
    Maximum number of queued connections waiting for accept().
    """

    buffer_size: int = 8192
    """
    Size of each socket recv() in bytes.
    """

    timeout: Optional[float] = 30.0
    """
    Socket timeout in seconds for the first request on a connection.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """
    Serve several requests on one TCP connection.
    Browsers fetch dozens of assets per page; this matters.
    """

    keep_alive_timeout: float = 5.0
    """
    Idle seconds before a keep-alive connection is closed.
    """

    max_request_size: int = 1024 * 1024
    """
    Maximum request size in bytes. Asset requests carry no body,
    so this mostly bounds header size.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """
    Worker threads created at startup.
    """

    max_workers: int = 16
    """
    Upper bound on worker threads under load.
    """

    queue_size: int = 100
    """
    Connections waiting for a worker. Beyond this the server answers 503.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    DEBUG shows every state transition and pipeline stage.
    """

    log_format: str = "text"
    """
    Access log format: 'text' (Apache-like) or 'json'.
    """

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "webassets/1.0"
    """
    Value of the Server response header.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        WEBASSETS_HOST        Server host (default: 127.0.0.1)
        WEBASSETS_PORT        Server port (default: 8080)
        WEBASSETS_WORKERS     Max worker threads (default: 16)
        WEBASSETS_TIMEOUT     Request timeout in seconds (default: 30)
        WEBASSETS_LOG_LEVEL   Logging level (default: INFO)
        WEBASSETS_LOG_FORMAT  text or json (default: text)

        =====================================================================
        """
        max_workers = int(os.getenv("WEBASSETS_WORKERS", "16"))
        return cls(
            host=os.getenv("WEBASSETS_HOST", "127.0.0.1"),
            port=int(os.getenv("WEBASSETS_PORT", "8080")),
            min_workers=min(4, max_workers),
            max_workers=max_workers,
            timeout=float(os.getenv("WEBASSETS_TIMEOUT", "30")),
            log_level=os.getenv("WEBASSETS_LOG_LEVEL", "INFO"),
            log_format=os.getenv("WEBASSETS_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """Raise ValueError on the first invalid setting."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.keep_alive_timeout <= 0:
            raise ValueError("keep_alive_timeout must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")


@dataclass
class WebAssetsConfig:
    """
    Configuration for the web assets handler, built fluently:

        config = (WebAssetsConfig()
            .use_store(FileSystemAssetStore("./dist"))
            .add_processor(BaseHrefProcessor())
            .with_mount_path("/ui"))

        handler = WebAssetsHandler.from_config(config)

    Compression is on by default and always runs after the processors
    added here.
    """

    store: Optional[AssetStore] = None
    processors: List[AssetProcessor] = field(default_factory=list)
    fallback_asset: Optional[str] = DEFAULT_FALLBACK_PATH
    compression_filter: Callable[[Asset], bool] = should_compress
    compression_enabled: bool = True
    mount_path: str = ""

    def use_store(self, store: AssetStore) -> "WebAssetsConfig":
        self.store = store
        return self

    def add_processor(self, processor: AssetProcessor) -> "WebAssetsConfig":
        self.processors.append(processor)
        return self

    def with_fallback_asset(self, path: Optional[str]) -> "WebAssetsConfig":
        """Asset served for unknown paths; None disables the fallback."""
        self.fallback_asset = path
        return self

    def with_compression_filter(self, compression_filter: Callable[[Asset], bool]) -> "WebAssetsConfig":
        self.compression_filter = compression_filter
        self.compression_enabled = True
        return self

    def without_compression(self) -> "WebAssetsConfig":
        self.compression_enabled = False
        return self

    def with_mount_path(self, mount_path: str) -> "WebAssetsConfig":
        self.mount_path = mount_path
        return self

    def build_pipeline(self) -> ProcessorPipeline:
        """User processors in order, then compression (unless disabled)."""
        pipeline = ProcessorPipeline(list(self.processors))
        if self.compression_enabled:
            pipeline.add(CompressionProcessor(compression_filter=self.compression_filter))
        return pipeline

    def validate(self) -> None:
        if self.store is None:
            raise ValueError("WebAssetsConfig requires a store (call use_store())")

        if self.fallback_asset is not None and not self.fallback_asset.startswith("/"):
            raise ValueError(f"fallback_asset must start with '/', got {self.fallback_asset!r}")
