"""
=============================================================================
WEBASSETS CLI ENTRY POINT
=============================================================================

    # Serve ./dist on localhost:8080
    python -m webassets --root ./dist

    # Mounted under /ui, rewriting {BASE_HREF} in index.html
    python -m webassets --root ./dist --mount /ui --base-href

    # Behind a proxy, all interfaces, JSON access logs
    python -m webassets --root ./dist --host 0.0.0.0 --log-format json

    # No SPA fallback: unknown paths are 404
    python -m webassets --root ./dist --fallback ""

Environment variables (WEBASSETS_PORT, WEBASSETS_LOG_LEVEL, ...) give
the defaults; command-line arguments override them.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .assets.store import FileSystemAssetStore
from .config import ServerConfig, WebAssetsConfig
from .middleware import LoggingMiddleware
from .processors import BaseHrefProcessor
from .server import AssetServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m webassets",
        description="Serve versioned web assets with compression and SPA fallback",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m webassets --root ./dist                    # Serve a build folder
  python -m webassets --root ./dist --mount /ui        # Under a sub-path
  python -m webassets --root ./dist --no-compression   # Identity only
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # ASSET ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        required=True,
        help="Directory holding the built assets",
    )
    parser.add_argument(
        "--mount", "-m",
        default="",
        help="URL prefix the assets are served under (default: /)",
    )
    parser.add_argument(
        "--fallback",
        default="/index.html",
        help="Asset served for unknown paths; empty disables (default: /index.html)",
    )
    parser.add_argument(
        "--base-href",
        action="store_true",
        help="Replace {BASE_HREF} in text assets with the client base href",
    )
    parser.add_argument(
        "--no-compression",
        action="store_true",
        help="Never gzip/deflate responses",
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVER ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.min_workers,
        help=f"Worker threads at startup; up to twice as many under load (default: {defaults.min_workers})",
    )
    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level})",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"webassets {__version__}",
    )
    return parser


def build_server(args: argparse.Namespace, defaults: ServerConfig) -> AssetServer:
    """Translate parsed arguments into a ready-to-run AssetServer."""
    config = ServerConfig(
        host=args.host,
        port=args.port,
        min_workers=args.workers,
        max_workers=args.workers * 2,
        timeout=defaults.timeout,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    assets = (WebAssetsConfig()
        .use_store(FileSystemAssetStore(args.root))
        .with_fallback_asset(args.fallback or None)
        .with_mount_path(args.mount))
    if args.base_href:
        assets.add_processor(BaseHrefProcessor())
    if args.no_compression:
        assets.without_compression()

    server = AssetServer(config)
    server.use(LoggingMiddleware(log_format=config.log_format))
    server.serve_assets(assets)
    return server


def main(argv=None) -> int:
    defaults = ServerConfig.from_env()
    parser = build_parser(defaults)
    args = parser.parse_args(argv)

    try:
        server = build_server(args, defaults)
    except (ValueError, OSError) as e:
        parser.error(str(e))

    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
