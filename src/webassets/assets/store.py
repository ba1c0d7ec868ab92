"""
=============================================================================
ASSET STORES
=============================================================================

A store maps a request path to a file-like entry. It knows nothing about
HTTP, encodings or pipelines; it only answers "is there a file at this
path, and how do I open it?".

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          STORE CONTRACT                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   try_resolve("/app.js")                                            │
    │        │                                                             │
    │        ├── found  ──► AssetDescriptor(name, length, last_modified,  │
    │        │                              open_read)                    │
    │        │                                                             │
    │        └── missing / directory / outside root ──► None             │
    │                                                                      │
    │   open_read() is NOT called by the store. The file is only opened  │
    │   when someone actually needs the bytes.                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Three implementations ship here:

    FileSystemAssetStore   files under a directory on disk
    InMemoryAssetStore     a dict of path → bytes (tests, generated assets)
    PackageAssetStore      data files bundled inside an importable package

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    GET /../../etc/passwd

    FileSystemAssetStore resolves the joined path (following .. and
    symlinks) and refuses anything that lands outside its root:

        full_path = (root_dir / path).resolve()
        full_path.relative_to(root_dir)  # Raises if outside root!

    A refused path is reported as "not found", so the resolver can still
    try its fallback asset.

=============================================================================
"""

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from importlib import resources
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Callable, Dict, Mapping, Optional, Union


logger = logging.getLogger(__name__)


def normalize_store_path(path: str) -> str:
    """
    Normalize a request path to the store's key form.

        "app.js"    → "/app.js"
        "//app.js"  → "/app.js"
        "/"         → "/"
    """
    return "/" + path.strip().lstrip("/")


@dataclass(frozen=True)
class AssetDescriptor:
    """What a store knows about one entry."""

    name: str
    length: Optional[int]
    last_modified: Optional[datetime]
    open_read: Callable[[], BinaryIO]


class AssetStore(ABC):
    """Abstract lookup of files by request path."""

    @abstractmethod
    def try_resolve(self, path: str) -> Optional[AssetDescriptor]:
        """
        Look up a path.

        Args:
            path: Request path, normally starting with "/".

        Returns:
            A descriptor, or None when nothing servable lives there.
        """
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__


class FileSystemAssetStore(AssetStore):
    """
    Serves files below a root directory.

    Directories never resolve (there is no implicit index file; the
    resolver's fallback covers "/").
    """

    def __init__(self, root_dir: Union[str, Path]):
        # Resolve to absolute path (important for the traversal check)
        self.root_dir = Path(root_dir).resolve()

        if not self.root_dir.is_dir():
            raise ValueError(f"Asset root directory does not exist: {root_dir}")

    def try_resolve(self, path: str) -> Optional[AssetDescriptor]:
        if "\x00" in path:
            return None

        relative = path.strip().lstrip("/")
        full_path = (self.root_dir / relative).resolve()

        # ─────────────────────────────────────────────────────────────────
        # SECURITY: PATH TRAVERSAL CHECK
        # ─────────────────────────────────────────────────────────────────
        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {path}")
            return None

        if not full_path.is_file():
            return None

        stat = full_path.stat()
        return AssetDescriptor(
            name=full_path.name,
            length=stat.st_size,
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            open_read=partial(full_path.open, "rb"),
        )

    def __repr__(self) -> str:
        return f"FileSystemAssetStore({str(self.root_dir)!r})"


class InMemoryAssetStore(AssetStore):
    """
    Serves a fixed mapping of path → content.

    Usage:
        store = InMemoryAssetStore({
            "/index.html": "<html>{BASE_HREF}</html>",
            "/app.js": b"console.log(1);",
        })
    """

    def __init__(
        self,
        files: Mapping[str, Union[bytes, str]],
        last_modified: Optional[datetime] = None,
    ):
        self._files: Dict[str, bytes] = {}
        for path, data in files.items():
            if isinstance(data, str):
                data = data.encode("utf-8")
            self._files[normalize_store_path(path)] = bytes(data)
        self.last_modified = last_modified

    def try_resolve(self, path: str) -> Optional[AssetDescriptor]:
        key = normalize_store_path(path)
        data = self._files.get(key)
        if data is None:
            return None

        return AssetDescriptor(
            name=PurePosixPath(key).name,
            length=len(data),
            last_modified=self.last_modified,
            open_read=partial(io.BytesIO, data),
        )

    def __contains__(self, path: str) -> bool:
        return normalize_store_path(path) in self._files

    def __len__(self) -> int:
        return len(self._files)


class PackageAssetStore(AssetStore):
    """
    Serves data files shipped inside an importable package.

    Resource readers do not expose sizes or timestamps, so entries have
    an unknown length (the response streams with chunked framing) and
    the last-modified time given at construction, if any.

    Usage:
        store = PackageAssetStore("myapp", "static")
    """

    def __init__(
        self,
        package: str,
        directory: str = "",
        last_modified: Optional[datetime] = None,
    ):
        root = resources.files(package)
        for part in PurePosixPath(directory).parts:
            root = root.joinpath(part)
        self._root = root
        self.package = package
        self.directory = directory
        self.last_modified = last_modified

    def try_resolve(self, path: str) -> Optional[AssetDescriptor]:
        parts = PurePosixPath(path.strip().lstrip("/")).parts
        if not parts or any(part in (".", "..") for part in parts):
            return None

        resource = self._root
        for part in parts:
            resource = resource.joinpath(part)

        if not resource.is_file():
            return None

        return AssetDescriptor(
            name=resource.name,
            length=None,
            last_modified=self.last_modified,
            open_read=partial(resource.open, "rb"),
        )

    def __repr__(self) -> str:
        return f"PackageAssetStore({self.package!r}, {self.directory!r})"
