"""
Asset model: content engine, immutable assets, stores and the resolver.
"""

from .content import (
    AssetContent,
    AssetContentError,
    ContentEncoding,
    DecodingReader,
    EncodingNotSupported,
    StreamConsumedError,
)
from .asset import Asset, AssetMetadata
from .store import (
    AssetDescriptor,
    AssetStore,
    FileSystemAssetStore,
    InMemoryAssetStore,
    PackageAssetStore,
)
from .resolver import AssetResolver, DEFAULT_FALLBACK_PATH

__all__ = [
    "AssetContent",
    "AssetContentError",
    "ContentEncoding",
    "DecodingReader",
    "EncodingNotSupported",
    "StreamConsumedError",
    "Asset",
    "AssetMetadata",
    "AssetDescriptor",
    "AssetStore",
    "FileSystemAssetStore",
    "InMemoryAssetStore",
    "PackageAssetStore",
    "AssetResolver",
    "DEFAULT_FALLBACK_PATH",
]
