"""
Unit tests for the command-line entry point.
"""

import pytest

from webassets.__main__ import build_parser, build_server, main
from webassets.config import ServerConfig
from webassets.handlers import WebAssetsHandler
from webassets.middleware import LoggingMiddleware
from webassets.processors import BaseHrefProcessor, CompressionProcessor


@pytest.fixture
def site_root(tmp_path):
    (tmp_path / "index.html").write_text("<html></html>")
    return tmp_path


def parse(argv):
    defaults = ServerConfig()
    return build_parser(defaults).parse_args(argv), defaults


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self, site_root):
        args, _ = parse(["--root", str(site_root)])

        assert args.mount == ""
        assert args.fallback == "/index.html"
        assert args.port == 8080
        assert args.log_level == "INFO"
        assert not args.base_href
        assert not args.no_compression

    def test_log_level_case_insensitive(self, site_root):
        args, _ = parse(["-r", str(site_root), "-l", "debug"])
        assert args.log_level == "DEBUG"

    def test_root_required(self):
        with pytest.raises(SystemExit):
            parse([])


class TestBuildServer:
    """Tests for build_server."""

    def test_full_setup(self, site_root):
        args, defaults = parse([
            "--root", str(site_root),
            "--mount", "/ui",
            "--base-href",
            "--port", "0",
            "--workers", "2",
            "--log-format", "json",
        ])

        server = build_server(args, defaults)

        assert server.config.min_workers == 2
        assert server.config.max_workers == 4
        logging_mw, handler = list(server._middleware)
        assert isinstance(logging_mw, LoggingMiddleware)
        assert logging_mw.log_format == "json"
        assert isinstance(handler, WebAssetsHandler)
        assert handler.mount_path == "/ui"
        stages = list(handler.pipeline)
        assert isinstance(stages[0], BaseHrefProcessor)
        assert isinstance(stages[-1], CompressionProcessor)

    def test_no_compression_and_no_fallback(self, site_root):
        args, defaults = parse(["--root", str(site_root), "--fallback", "", "--no-compression"])

        handler = list(build_server(args, defaults)._middleware)[-1]

        assert len(handler.pipeline) == 0
        assert handler.resolver.fallback_path is None

    def test_missing_root_is_usage_error(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--root", str(tmp_path / "missing")])

        assert exc_info.value.code == 2
        assert "does not exist" in capsys.readouterr().err
