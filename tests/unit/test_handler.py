"""
Unit tests for WebAssetsHandler (the request state machine).
"""

import gzip
import io
import zlib
from datetime import datetime, timedelta, timezone

import pytest

from webassets.assets import AssetContent, AssetResolver, InMemoryAssetStore
from webassets.assets.store import AssetDescriptor, AssetStore
from webassets.config import WebAssetsConfig
from webassets.handlers import WebAssetsHandler, normalize_timestamp
from webassets.http import HTTPStatus, format_http_date, not_found
from webassets.processors import CompressionProcessor, ProcessorPipeline, processor


from conftest import APP_JS, INDEX_HTML, LAST_MODIFIED


class SpyStore(AssetStore):
    """Wraps a store and records every stream it opens."""

    def __init__(self, inner: AssetStore):
        self.inner = inner
        self.opened = []

    def try_resolve(self, path):
        descriptor = self.inner.try_resolve(path)
        if descriptor is None:
            return None

        def open_read():
            self.opened.append(path)
            return descriptor.open_read()

        return AssetDescriptor(descriptor.name, descriptor.length, descriptor.last_modified, open_read)


class UnknownLengthStore(AssetStore):
    """Serves one file without a known length."""

    def try_resolve(self, path):
        if path != "/big.js":
            return None
        return AssetDescriptor("big.js", None, None, lambda: io.BytesIO(APP_JS.encode()))


class TrackingStream(io.BytesIO):
    was_closed = False

    def close(self):
        self.was_closed = True
        super().close()


@pytest.fixture
def handler(memory_store):
    return WebAssetsHandler(
        AssetResolver(memory_store),
        ProcessorPipeline([CompressionProcessor()]),
    )


class TestServing:
    """Tests for the 200 path."""

    def test_plain_asset(self, handler, make_request):
        response = handler.handle(make_request("/app.js"))

        assert response.status == HTTPStatus.OK
        assert response.read_body() == APP_JS.encode()
        assert response.headers["Content-Length"] == str(len(APP_JS.encode()))
        assert response.headers["Content-Type"] == "text/javascript; charset=utf-8"
        assert response.headers["Last-Modified"] == "Thu, 15 Jan 2026 10:30:00 GMT"
        assert "Content-Encoding" not in response.headers

    def test_unprocessed_asset_streams(self, handler, make_request):
        response = handler.handle(make_request("/app.js"))
        assert response.is_streaming

    def test_gzip(self, handler, make_request):
        response = handler.handle(make_request("/app.js", headers={"Accept-Encoding": "gzip"}))

        body = response.read_body()
        assert response.headers["Content-Encoding"] == "gzip"
        assert response.headers["Content-Length"] == str(len(body))
        assert gzip.decompress(body) == APP_JS.encode()

    def test_deflate_preferred(self, handler, make_request):
        response = handler.handle(make_request("/app.js", headers={"Accept-Encoding": "gzip, deflate"}))

        assert response.headers["Content-Encoding"] == "deflate"
        assert zlib.decompress(response.read_body()) == APP_JS.encode()

    def test_png_not_compressed(self, handler, make_request):
        response = handler.handle(make_request("/logo.png", headers={"Accept-Encoding": "gzip"}))

        assert "Content-Encoding" not in response.headers
        assert response.headers["Content-Type"] == "image/png"

    def test_unknown_extension_has_no_content_type(self, handler, make_request):
        response = handler.handle(make_request("/data.bin"))
        assert "Content-Type" not in response.headers

    def test_fallback_for_client_route(self, handler, make_request):
        response = handler.handle(make_request("/users/42"))

        assert response.status == HTTPStatus.OK
        assert response.read_body() == INDEX_HTML.encode()
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"

    def test_unknown_length_omits_content_length(self, make_request):
        handler = WebAssetsHandler(AssetResolver(UnknownLengthStore(), None))
        response = handler.handle(make_request("/big.js"))

        assert "Content-Length" not in response.headers
        assert "Last-Modified" not in response.headers
        assert response.read_body() == APP_JS.encode()

    def test_pipeline_failure_propagates(self, memory_store, make_request):
        @processor
        def explode(asset, request):
            raise RuntimeError("stage failed")

        handler = WebAssetsHandler(AssetResolver(memory_store), ProcessorPipeline([explode]))
        with pytest.raises(RuntimeError, match="stage failed"):
            handler.handle(make_request("/app.js"))

    def test_header_failure_closes_content(self, make_request):
        sources = []

        class TrackingStore(AssetStore):
            def try_resolve(self, path):
                def open_read():
                    sources.append(TrackingStream(b"body"))
                    return sources[-1]
                return AssetDescriptor("a.js", None, None, open_read)

        @processor
        def rewrap(asset, request):
            return asset.with_new_content(AssetContent.from_stream(asset.content.stream()))

        def broken_lookup(file_name):
            raise LookupError("no registry")

        handler = WebAssetsHandler(
            AssetResolver(TrackingStore(), None),
            ProcessorPipeline([rewrap]),
            content_type_lookup=broken_lookup,
        )
        with pytest.raises(LookupError):
            handler.handle(make_request("/a.js"))

        assert sources[0].was_closed


class TestConditionalRequests:
    """Tests for the If-Modified-Since short-circuit."""

    def test_not_modified_when_equal(self, handler, make_request):
        request = make_request("/app.js", headers={"If-Modified-Since": format_http_date(LAST_MODIFIED)})
        response = handler.handle(request)

        assert response.status == HTTPStatus.NOT_MODIFIED
        assert response.read_body() == b""
        assert "Content-Length" not in response.headers
        assert "Content-Encoding" not in response.headers

    def test_not_modified_when_later(self, handler, make_request):
        later = format_http_date(LAST_MODIFIED + timedelta(days=1))
        response = handler.handle(make_request("/app.js", headers={"If-Modified-Since": later}))
        assert response.status == HTTPStatus.NOT_MODIFIED

    def test_modified_when_one_second_earlier(self, handler, make_request):
        earlier = format_http_date(LAST_MODIFIED - timedelta(seconds=1))
        response = handler.handle(make_request("/app.js", headers={"If-Modified-Since": earlier}))
        assert response.status == HTTPStatus.OK

    def test_subsecond_mtime_still_not_modified(self, make_request):
        store = InMemoryAssetStore({"/a.js": "x"}, last_modified=LAST_MODIFIED + timedelta(milliseconds=700))
        handler = WebAssetsHandler(AssetResolver(store))
        request = make_request("/a.js", headers={"If-Modified-Since": format_http_date(LAST_MODIFIED)})
        assert handler.handle(request).status == HTTPStatus.NOT_MODIFIED

    def test_304_skips_pipeline_and_never_opens_stream(self, memory_store, make_request):
        calls = []

        @processor
        def spy(asset, request):
            calls.append(asset.path)
            return asset

        store = SpyStore(memory_store)
        handler = WebAssetsHandler(AssetResolver(store), ProcessorPipeline([spy]))
        request = make_request("/app.js", headers={
            "If-Modified-Since": format_http_date(LAST_MODIFIED),
            "Accept-Encoding": "gzip",
        })

        response = handler.handle(request)

        assert response.status == HTTPStatus.NOT_MODIFIED
        assert calls == []
        assert store.opened == []

    def test_invalid_date_ignored(self, handler, make_request):
        response = handler.handle(make_request("/app.js", headers={"If-Modified-Since": "yesterday"}))
        assert response.status == HTTPStatus.OK

    def test_rfc850_date(self, handler, make_request):
        request = make_request("/app.js", headers={"If-Modified-Since": "Thursday, 15-Jan-26 10:30:00 GMT"})
        assert handler.handle(request).status == HTTPStatus.NOT_MODIFIED

    def test_asctime_date(self, handler, make_request):
        request = make_request("/app.js", headers={"If-Modified-Since": "Thu Jan 15 10:30:00 2026"})
        assert handler.handle(request).status == HTTPStatus.NOT_MODIFIED

    def test_no_timestamp_never_304(self, make_request):
        handler = WebAssetsHandler(AssetResolver(UnknownLengthStore(), None))
        request = make_request("/big.js", headers={"If-Modified-Since": format_http_date(LAST_MODIFIED)})
        assert handler.handle(request).status == HTTPStatus.OK


class TestMethodsAndDeferral:
    """Tests for HEAD, non-GET methods and deferral."""

    def test_head_has_headers_but_no_body(self, handler, make_request):
        get = handler.handle(make_request("/app.js", headers={"Accept-Encoding": "gzip"}))
        head = handler.handle(make_request("/app.js", method="HEAD", headers={"Accept-Encoding": "gzip"}))

        assert head.status == HTTPStatus.OK
        assert head.read_body() == b""
        assert head.headers["Content-Length"] == get.headers["Content-Length"]
        assert head.headers["Content-Encoding"] == "gzip"
        assert b"Content-Length: " + get.headers["Content-Length"].encode() in head.head_bytes()

    def test_post_defers(self, handler, make_request):
        assert handler.handle(make_request("/app.js", method="POST")) is None

    def test_nothing_found_defers(self, make_request):
        handler = WebAssetsHandler(AssetResolver(InMemoryAssetStore({"/a.js": "x"})))
        assert handler.handle(make_request("/missing")) is None

    def test_middleware_calls_next_on_deferral(self, make_request):
        handler = WebAssetsHandler(AssetResolver(InMemoryAssetStore({}), None))
        response = handler(make_request("/missing"), lambda request: not_found())
        assert response.status == HTTPStatus.NOT_FOUND

    def test_middleware_answers_when_found(self, handler, make_request):
        def next_handler(request):
            raise AssertionError("should not be called")

        assert handler(make_request("/app.js"), next_handler).status == HTTPStatus.OK


class TestMountPath:
    """Tests for serving under a mount path."""

    @pytest.fixture
    def mounted(self, memory_store):
        return WebAssetsHandler(AssetResolver(memory_store), mount_path="/ui/")

    def test_strips_prefix(self, mounted, make_request):
        response = mounted.handle(make_request("/ui/app.js"))
        assert response.read_body() == APP_JS.encode()

    def test_prefix_is_case_insensitive(self, mounted, make_request):
        assert mounted.handle(make_request("/UI/app.js")) is not None

    def test_outside_mount_defers(self, mounted, make_request):
        assert mounted.handle(make_request("/api/users")) is None
        assert mounted.handle(make_request("/uix/app.js")) is None

    def test_mount_root_falls_back(self, mounted, make_request):
        response = mounted.handle(make_request("/ui"))
        assert response.read_body() == INDEX_HTML.encode()

    def test_processors_see_path_base(self, memory_store, make_request):
        seen = []

        @processor
        def spy(asset, request):
            seen.append((request.path_base, request.path))
            return asset

        handler = WebAssetsHandler(AssetResolver(memory_store), ProcessorPipeline([spy]), mount_path="/ui")
        handler.handle(make_request("/ui/app.js"))
        assert seen == [("/ui", "/app.js")]


class TestFromConfig:
    """Tests for building a handler from WebAssetsConfig."""

    def test_base_href_with_mount(self, memory_store, make_request):
        from webassets.processors import BaseHrefProcessor

        config = (WebAssetsConfig()
            .use_store(memory_store)
            .add_processor(BaseHrefProcessor())
            .with_mount_path("/ui"))
        handler = WebAssetsHandler.from_config(config)

        response = handler.handle(make_request("/ui/some/route", headers={"Accept-Encoding": "gzip"}))

        assert response.headers["Content-Encoding"] == "gzip"
        assert b'<base href="/ui/">' in gzip.decompress(response.read_body())

    def test_requires_store(self):
        with pytest.raises(ValueError):
            WebAssetsHandler.from_config(WebAssetsConfig())


class TestNormalizeTimestamp:
    """Tests for normalize_timestamp."""

    def test_truncates_microseconds(self):
        value = datetime(2026, 1, 1, 0, 0, 0, 999999, tzinfo=timezone.utc)
        assert normalize_timestamp(value).microsecond == 0

    def test_naive_is_utc(self):
        assert normalize_timestamp(datetime(2026, 1, 1)) == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_converts_offsets(self):
        plus_two = timezone(timedelta(hours=2))
        value = datetime(2026, 1, 1, 12, 0, tzinfo=plus_two)
        assert normalize_timestamp(value) == datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)
