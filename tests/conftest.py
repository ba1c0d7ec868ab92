"""
pytest configuration and fixtures.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from webassets.assets import InMemoryAssetStore
from webassets.http import HTTPRequest


LAST_MODIFIED = datetime(2026, 1, 15, 10, 30, 0, tzinfo=timezone.utc)

INDEX_HTML = '<!doctype html><html><head><base href="{BASE_HREF}"></head><body></body></html>'

APP_JS = "console.log('hello from the app');\n" * 200


@pytest.fixture
def last_modified() -> datetime:
    return LAST_MODIFIED


@pytest.fixture
def memory_store() -> InMemoryAssetStore:
    """A small single-page app."""
    return InMemoryAssetStore(
        {
            "/index.html": INDEX_HTML,
            "/app.js": APP_JS,
            "/styles/site.css": "body { color: red; }\n" * 50,
            "/logo.png": b"\x89PNG\r\n\x1a\n" + bytes(range(256)),
            "/data.bin": b"\x00\x01\x02",
        },
        last_modified=LAST_MODIFIED,
    )


@pytest.fixture
def make_request() -> Callable[..., HTTPRequest]:
    """
    Factory for requests:

        make_request("/app.js", headers={"accept-encoding": "gzip"})
    """
    def factory(
        path: str = "/",
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        version: str = "HTTP/1.1",
        query_string: str = "",
    ) -> HTTPRequest:
        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers={name.lower(): value for name, value in (headers or {}).items()},
            query_string=query_string,
            target=path + (f"?{query_string}" if query_string else ""),
            client_address=("127.0.0.1", 50000),
        )

    return factory
