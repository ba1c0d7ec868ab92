"""
Turns request paths into Assets, with a single-page-app fallback.

    resolve("/settings/profile")
        │
        ├── store has it?            ──► Asset(path="/settings/profile")
        │
        └── no: store has fallback?  ──► Asset(path="/index.html")
                                    └──► None (caller defers / 404s)
"""

import logging
from typing import Optional

from .asset import Asset, AssetMetadata
from .content import AssetContent
from .store import AssetStore


logger = logging.getLogger(__name__)


DEFAULT_FALLBACK_PATH = "/index.html"


class AssetResolver:
    """
    Looks up assets in a store, falling back to a fixed asset when the
    requested path is missing.

    Args:
        store: Where the files live.
        fallback_path: Asset served for unknown paths (None disables it).
    """

    def __init__(self, store: AssetStore, fallback_path: Optional[str] = DEFAULT_FALLBACK_PATH):
        self.store = store
        self.fallback_path = fallback_path

    def resolve(self, path: str) -> Optional[Asset]:
        """The asset at path, else the fallback, else None. Blank paths never resolve."""
        if not path or not path.strip():
            return None

        asset = self._read(path)
        if asset is not None:
            return asset

        if not self.fallback_path or path == self.fallback_path:
            return None

        asset = self._read(self.fallback_path)
        if asset is not None:
            logger.debug(f"No asset at {path!r}, serving fallback {self.fallback_path!r}")
        return asset

    def _read(self, path: str) -> Optional[Asset]:
        if not path or not path.strip():
            return None

        descriptor = self.store.try_resolve(path)
        if descriptor is None:
            return None

        metadata = AssetMetadata(
            file_name=descriptor.name,
            content_length=descriptor.length,
            last_modified_at=descriptor.last_modified,
        )
        return Asset(
            path=path,
            metadata=metadata,
            content=AssetContent.from_opener(descriptor.open_read),
        )
