"""
=============================================================================
ASSET MODEL
=============================================================================

An Asset is an immutable value: a request path, some metadata and the
content. Pipeline stages never modify one in place; they return a new
Asset built with the with_* helpers.

    Asset
    ├── path        "/index.html" (the path actually served, after fallback)
    ├── metadata
    │   ├── file_name          "index.html"
    │   ├── content_length     Optional[int]  (None = unknown)
    │   ├── last_modified_at   Optional[datetime]
    │   └── content_type       Optional[str]  (None = derive from file name)
    └── content     AssetContent

=============================================================================
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from .content import AssetContent


@dataclass(frozen=True)
class AssetMetadata:
    """Descriptive attributes of an asset."""

    file_name: str
    content_length: Optional[int] = None
    last_modified_at: Optional[datetime] = None
    content_type: Optional[str] = None

    def __post_init__(self):
        if self.content_length is not None and self.content_length < 0:
            raise ValueError(f"content_length must be >= 0, got {self.content_length}")

    def with_content_length(self, content_length: Optional[int]) -> "AssetMetadata":
        return replace(self, content_length=content_length)

    def with_last_modified_at(self, last_modified_at: Optional[datetime]) -> "AssetMetadata":
        return replace(self, last_modified_at=last_modified_at)

    def with_content_type(self, content_type: Optional[str]) -> "AssetMetadata":
        return replace(self, content_type=content_type)


@dataclass(frozen=True)
class Asset:
    """A resolved web asset."""

    path: str
    metadata: AssetMetadata
    content: AssetContent

    def with_metadata(self, metadata: AssetMetadata) -> "Asset":
        return replace(self, metadata=metadata)

    def with_new_content(self, content: AssetContent) -> "Asset":
        """
        Swap the content.

        The old content length no longer describes the new bytes, so it
        is cleared. A stage that knows the new length sets it again.
        """
        return Asset(
            path=self.path,
            metadata=self.metadata.with_content_length(None),
            content=content,
        )
