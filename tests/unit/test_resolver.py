"""
Unit tests for the asset resolver.
"""

from webassets.assets import AssetResolver, InMemoryAssetStore


class TestAssetResolver:
    """Tests for AssetResolver."""

    def test_exact_match(self, memory_store, last_modified):
        asset = AssetResolver(memory_store).resolve("/app.js")

        assert asset is not None
        assert asset.path == "/app.js"
        assert asset.metadata.file_name == "app.js"
        assert asset.metadata.last_modified_at == last_modified
        assert asset.metadata.content_length == len(asset.content.buffer())

    def test_fallback_for_unknown_path(self, memory_store):
        asset = AssetResolver(memory_store).resolve("/foo/bar")

        assert asset is not None
        assert asset.path == "/index.html"
        assert asset.metadata.file_name == "index.html"

    def test_no_fallback_configured(self, memory_store):
        assert AssetResolver(memory_store, fallback_path=None).resolve("/foo/bar") is None

    def test_fallback_missing_too(self):
        store = InMemoryAssetStore({"/app.js": "x"})
        assert AssetResolver(store).resolve("/foo/bar") is None

    def test_blank_paths_never_resolve(self, memory_store):
        resolver = AssetResolver(memory_store)
        assert resolver.resolve("") is None
        assert resolver.resolve("   ") is None

    def test_blank_fallback_never_resolves(self, memory_store):
        assert AssetResolver(memory_store, fallback_path="").resolve("/foo") is None

    def test_content_is_lazy(self, memory_store):
        asset = AssetResolver(memory_store).resolve("/app.js")
        assert not asset.content.is_buffered

    def test_each_resolve_gets_its_own_stream(self, memory_store):
        resolver = AssetResolver(memory_store)
        first = resolver.resolve("/app.js")
        second = resolver.resolve("/app.js")

        first.content.stream().read()
        assert second.content.buffer()
