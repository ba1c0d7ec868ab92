"""
=============================================================================
COMPRESSION PROCESSOR
=============================================================================

Compresses eligible assets with gzip or deflate when the client asks
for it.

=============================================================================
NEGOTIATION
=============================================================================

    Accept-Encoding: br, gzip;q=0.8, deflate
                     │   │           │
                     │   │           └── deflate  ✓
                     │   └── gzip     ✓
                     └── br (unknown, ignored)

    Server priority: (DEFLATE, GZIP)
    First server encoding the client accepts → DEFLATE

The SERVER's order decides, not the client's. Quality values are only
used to drop codings the client explicitly refuses (q=0).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      COMPRESSION DECISION                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   client accepts none of ours? ──────────────► asset unchanged      │
    │                │                                                     │
    │                ▼                                                     │
    │   compression_filter(asset) false? ──────────► asset unchanged      │
    │   (default: .js .css .yml .json .svg .txt                           │
    │             .html .map .ttf .otf)                                   │
    │                │                                                     │
    │                ▼                                                     │
    │   content.encode(chosen) ────────────────────► asset with buffered  │
    │                                                compressed content   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
INTERVIEW QUESTIONS ABOUT COMPRESSION
=============================================================================

Q: "Why not compress PNGs and WOFF2 fonts?"
A: "They're already compressed. Deflating them again burns CPU and
   usually makes the payload slightly BIGGER."

Q: "Why must compression be the last stage?"
A: "Any stage that edits text needs identity bytes. If compression ran
   first, every later stage would have to decompress, edit and the
   result would go out uncompressed anyway."

=============================================================================
"""

import logging
from typing import Callable, List, Optional, Sequence

from .base import AssetProcessor
from ..assets.asset import Asset
from ..assets.content import ContentEncoding, DEFAULT_COMPRESSION_LEVEL
from ..http.request import HTTPRequest


logger = logging.getLogger(__name__)


CompressionFilter = Callable[[Asset], bool]

# Extensions compressed by default (text formats and uncompressed fonts)
COMPRESSIBLE_EXTENSIONS = (
    ".js",
    ".css",
    ".yml",
    ".json",
    ".svg",
    ".txt",
    ".html",
    ".map",
    ".ttf",
    ".otf",
)

DEFAULT_ENCODINGS = (ContentEncoding.DEFLATE, ContentEncoding.GZIP)


def should_compress(asset: Asset) -> bool:
    """Default filter: case-insensitive extension match on the asset path."""
    return asset.path.lower().endswith(COMPRESSIBLE_EXTENSIONS)


def parse_accept_encoding(header: Optional[str]) -> List[ContentEncoding]:
    """
    Parse an Accept-Encoding header into the codings we support.

        "gzip, deflate"           → [GZIP, DEFLATE]
        "GZIP"                    → [GZIP]
        "br, gzip;q=0"            → []
        "identity, *"             → []

    Tokens split on commas and spaces; unknown tokens are ignored.
    """
    if not header:
        return []

    accepted: List[ContentEncoding] = []
    for item in header.split(","):
        token, _, params = item.strip().partition(";")
        if _is_refused(params):
            continue
        for word in token.split():
            encoding = ContentEncoding.parse(word)
            if encoding is not None and encoding.is_compressed and encoding not in accepted:
                accepted.append(encoding)
    return accepted


def _is_refused(params: str) -> bool:
    """True when the parameters carry q=0 (also 0.0, 0.000)."""
    for param in params.split(";"):
        name, _, value = param.strip().partition("=")
        if name.strip().lower() == "q":
            try:
                return float(value.strip()) == 0.0
            except ValueError:
                return False
    return False


class CompressionProcessor(AssetProcessor):
    """
    Pipeline stage that compresses eligible assets.

    Usage:
        pipeline.add(CompressionProcessor())

        # only scripts, gzip only, maximum compression
        pipeline.add(CompressionProcessor(
            compression_filter=lambda asset: asset.path.endswith(".js"),
            encodings=(ContentEncoding.GZIP,),
            level=9,
        ))

    Args:
        compression_filter: Asset predicate; False leaves the asset alone.
        encodings: Supported codings in server priority order.
        level: zlib level (1 fastest ... 9 smallest).
    """

    def __init__(
        self,
        compression_filter: CompressionFilter = should_compress,
        encodings: Sequence[ContentEncoding] = DEFAULT_ENCODINGS,
        level: int = DEFAULT_COMPRESSION_LEVEL,
    ):
        if compression_filter is None:
            raise ValueError("compression_filter is required")
        if not encodings or any(not e.is_compressed for e in encodings):
            raise ValueError("encodings must be a non-empty list of gzip/deflate")
        if not -1 <= level <= 9:
            raise ValueError(f"level must be between -1 and 9, got {level}")

        self.compression_filter = compression_filter
        self.encodings = tuple(encodings)
        self.level = level

    def choose_encoding(self, request: HTTPRequest) -> Optional[ContentEncoding]:
        """The first server encoding the client accepts, or None."""
        accepted = parse_accept_encoding(request.accept_encoding)
        for encoding in self.encodings:
            if encoding in accepted:
                return encoding
        return None

    def process(self, asset: Asset, request: HTTPRequest) -> Asset:
        encoding = self.choose_encoding(request)
        if encoding is None:
            return asset

        if not self.compression_filter(asset):
            return asset

        content = asset.content.encode(encoding, self.level)
        if content is asset.content:
            return asset

        logger.debug(f"Compressed {asset.path} with {encoding.value}")
        return asset.with_new_content(content)
