"""
=============================================================================
ASSET CONTENT
=============================================================================

The bytes of a web asset, held in one of three content-codings, with
lossless transitions between them.

=============================================================================
STORAGE MODES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ASSET CONTENT STORAGE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   BUFFERED                         LAZY STREAM                      │
    │   ────────                         ───────────                      │
    │                                                                      │
    │   • bytes held in memory           • file object (or an opener      │
    │   • can be read any number           that produces one on first     │
    │     of times                         read)                          │
    │   • length known up front          • SINGLE USE: reading it         │
    │                                      consumes and closes it         │
    │                                    • length usually unknown         │
    │                                                                      │
    │   Both carry an encoding tag that describes the CURRENT bytes:      │
    │                                                                      │
    │        IDENTITY        GZIP (RFC 1952)       DEFLATE (RFC 1950)     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ENCODING TRANSITIONS
=============================================================================

    encode(target) never mutates the receiver; it returns new content.

        same encoding ──────────────────────────────► same object back

        GZIP/DEFLATE ──► IDENTITY                     LAZY: a stream that
                         (wrap in decoder)            inflates on read

        any ──► IDENTITY ──► GZIP/DEFLATE             BUFFERED: compression
                             (feed compressor)        always materializes

    Decoding stays lazy so the "raw" path can still stream straight from
    the store to the socket. Compressing needs the whole input anyway,
    so its output is kept in memory and its length is known.

=============================================================================
WIRE FORMATS
=============================================================================

    Both compressed codings are produced and consumed with zlib. The
    window-bits argument picks the container:

        16 + MAX_WBITS  →  gzip header + deflate data + CRC32 trailer
        MAX_WBITS       →  zlib header + deflate data + Adler-32 trailer

    The zlib container is what HTTP calls "deflate" (RFC 9110 §8.4.1.2).

=============================================================================
INTERVIEW QUESTIONS ABOUT CONTENT CODINGS
=============================================================================

Q: "Why can't a lazy stream be read twice?"
A: "It is a file handle (or a decompressor wrapped around one). Once the
   bytes are pulled through, they are gone. Anything that needs the bytes
   more than once calls buffer() first."

Q: "What's the difference between Content-Encoding and Transfer-Encoding?"
A: "Content-Encoding is a property of the representation (the gzip bytes
   ARE the resource as sent). Transfer-Encoding (chunked) is hop-by-hop
   framing and is removed by the next hop."

=============================================================================
"""

import io
import zlib
import logging
from contextlib import closing
from enum import Enum
from typing import BinaryIO, Callable, Iterable, Optional, Tuple, Union


logger = logging.getLogger(__name__)


# Read/compress granularity for every stream copy in this module
CHUNK_SIZE = 8 * 1024

DEFAULT_COMPRESSION_LEVEL = 6


# =============================================================================
# ERRORS
# =============================================================================

class AssetContentError(Exception):
    """Base class for content engine failures."""


class EncodingNotSupported(AssetContentError):
    """
    Raised when asked for an encoding outside identity/gzip/deflate.

    This is a configuration error: a correctly assembled pipeline never
    asks for anything else.
    """

    def __init__(self, encoding: object):
        super().__init__(f"Content encoding not supported: {encoding!r}")
        self.encoding = encoding


class StreamConsumedError(AssetContentError):
    """Raised when single-use content is read after its stream was taken."""


# =============================================================================
# ENCODINGS
# =============================================================================

class ContentEncoding(Enum):
    """
    The compression state of an asset's bytes.

    Values double as the HTTP content-coding tokens.
    """

    IDENTITY = "identity"
    GZIP = "gzip"
    DEFLATE = "deflate"

    @property
    def header_value(self) -> Optional[str]:
        """Value for the Content-Encoding header (None for identity)."""
        if self is ContentEncoding.IDENTITY:
            return None
        return self.value

    @property
    def is_compressed(self) -> bool:
        return self is not ContentEncoding.IDENTITY

    @classmethod
    def parse(cls, token: str) -> Optional["ContentEncoding"]:
        """
        Parse a content-coding token, case-insensitively.

        Returns None for anything that is not one of our three codings
        (e.g. "br", "zstd", "*").
        """
        try:
            return cls(token.strip().lower())
        except ValueError:
            return None


EncodingLike = Union[ContentEncoding, str]

_WINDOW_BITS = {
    ContentEncoding.GZIP: 16 + zlib.MAX_WBITS,
    ContentEncoding.DEFLATE: zlib.MAX_WBITS,
}


def coerce_encoding(encoding: EncodingLike) -> ContentEncoding:
    """Turn an enum member or token into a ContentEncoding, or fail."""
    if isinstance(encoding, ContentEncoding):
        return encoding
    if isinstance(encoding, str):
        parsed = ContentEncoding.parse(encoding)
        if parsed is not None:
            return parsed
    raise EncodingNotSupported(encoding)


# =============================================================================
# STREAM HELPERS
# =============================================================================

class DecodingReader(io.RawIOBase):
    """
    Readable stream that inflates a gzip or deflate source on demand.

        DecodingReader.read(n)
              │
              ├── pending bytes left? ──► hand them out
              │
              └── otherwise: source.read(CHUNK_SIZE) ──► decompress ──► pending

    Closing the reader closes the source. A source that runs dry before
    the compressed end-of-stream marker raises EOFError.

    A gzip body may hold several members back to back (RFC 1952); each
    one is inflated in turn. Bytes after the end of a deflate stream
    raise zlib.error.
    """

    def __init__(
        self,
        source: BinaryIO,
        encoding: ContentEncoding,
        chunk_size: int = CHUNK_SIZE,
    ):
        super().__init__()
        if encoding not in _WINDOW_BITS:
            raise EncodingNotSupported(encoding)
        self._source = source
        self._encoding = encoding
        self._decoder = zlib.decompressobj(_WINDOW_BITS[encoding])
        self._chunk_size = chunk_size
        self._pending = b""
        self._offset = 0
        self._eof = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while self._offset >= len(self._pending):
            if self._eof:
                return 0
            self._fill()

        count = min(len(buffer), len(self._pending) - self._offset)
        buffer[:count] = self._pending[self._offset:self._offset + count]
        self._offset += count
        return count

    def _fill(self) -> None:
        chunk = self._source.read(self._chunk_size)
        if chunk:
            data = self._inflate(chunk)
        else:
            data = self._decoder.flush()
            self._eof = True
            if not self._decoder.eof:
                raise EOFError("Compressed stream ended before the end-of-stream marker")
        self._pending = data
        self._offset = 0

    def _inflate(self, chunk: bytes) -> bytes:
        data = self._decoder.decompress(chunk)
        while self._decoder.eof and self._decoder.unused_data:
            leftover = self._decoder.unused_data
            if self._encoding is not ContentEncoding.GZIP:
                raise zlib.error("Unexpected data after the end of the deflate stream")
            # Next gzip member
            self._decoder = zlib.decompressobj(_WINDOW_BITS[self._encoding])
            data += self._decoder.decompress(leftover)
        return data

    def close(self) -> None:
        if not self.closed:
            try:
                self._source.close()
            finally:
                super().close()


def read_fully(source: BinaryIO, chunk_size: int = CHUNK_SIZE) -> bytes:
    """Read a stream up to the end."""
    return b"".join(iter(lambda: source.read(chunk_size), b""))


def compress_stream(
    source: BinaryIO,
    encoding: ContentEncoding,
    level: int = DEFAULT_COMPRESSION_LEVEL,
) -> bytes:
    """Compress everything readable from source into a gzip/deflate buffer."""
    compressor = zlib.compressobj(level, zlib.DEFLATED, _WINDOW_BITS[encoding])
    parts = [compressor.compress(chunk) for chunk in iter(lambda: source.read(CHUNK_SIZE), b"")]
    parts.append(compressor.flush())
    return b"".join(parts)


# =============================================================================
# ASSET CONTENT
# =============================================================================

class AssetContent:
    """
    An asset's bytes plus the encoding tag describing them.

    =========================================================================
    LIFECYCLE OF A LAZY STREAM
    =========================================================================

        from_opener(open_read)       nothing opened yet
              │
              ├── buffer()           open, read to the end, close,
              │                      keep the bytes (idempotent)
              │
              ├── stream()           open and hand the file out;
              │                      the caller must close it
              │
              └── close()            never opened: nothing to do

        After stream() has handed out the lazy file, buffer() and
        stream() raise StreamConsumedError.

    =========================================================================
    USAGE
    =========================================================================

        content = AssetContent.from_buffer(b"<html>...</html>")
        gz = content.encode(ContentEncoding.GZIP)      # buffered gzip bytes
        raw = gz.decode()                              # lazy inflating stream
        assert raw.buffer() == content.buffer()

    =========================================================================
    """

    def __init__(
        self,
        *,
        buffer: Optional[bytes] = None,
        stream: Optional[BinaryIO] = None,
        opener: Optional[Callable[[], BinaryIO]] = None,
        encoding: EncodingLike = ContentEncoding.IDENTITY,
    ):
        sources = [s for s in (buffer, stream, opener) if s is not None]
        if len(sources) != 1:
            raise ValueError("AssetContent needs exactly one of buffer, stream or opener")

        self._buffer = bytes(buffer) if buffer is not None else None
        self._stream = stream
        self._opener = opener
        self._encoding = coerce_encoding(encoding)
        self._consumed = False

    # =========================================================================
    # CONSTRUCTORS
    # =========================================================================

    @classmethod
    def from_buffer(
        cls,
        data: bytes,
        encoding: EncodingLike = ContentEncoding.IDENTITY,
    ) -> "AssetContent":
        return cls(buffer=data, encoding=encoding)

    @classmethod
    def from_stream(
        cls,
        stream: BinaryIO,
        encoding: EncodingLike = ContentEncoding.IDENTITY,
    ) -> "AssetContent":
        return cls(stream=stream, encoding=encoding)

    @classmethod
    def from_opener(
        cls,
        open_read: Callable[[], BinaryIO],
        encoding: EncodingLike = ContentEncoding.IDENTITY,
    ) -> "AssetContent":
        """Lazy content whose stream is opened on first read."""
        return cls(opener=open_read, encoding=encoding)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def encoding(self) -> ContentEncoding:
        return self._encoding

    @property
    def is_identity(self) -> bool:
        return self._encoding is ContentEncoding.IDENTITY

    @property
    def is_buffered(self) -> bool:
        return self._buffer is not None

    # =========================================================================
    # READING
    # =========================================================================

    def _take_stream(self) -> BinaryIO:
        if self._consumed:
            raise StreamConsumedError("Lazy asset content can only be read once")
        self._consumed = True

        if self._stream is not None:
            stream, self._stream = self._stream, None
            return stream

        opener, self._opener = self._opener, None
        return opener()

    def stream(self) -> BinaryIO:
        """
        Get a readable binary stream over the current bytes.

        Buffered content returns a fresh in-memory reader on every call.
        Lazy content hands out its single-use stream; the caller owns it
        and must close it.
        """
        if self._buffer is not None:
            return io.BytesIO(self._buffer)
        return self._take_stream()

    def buffer(self) -> bytes:
        """Materialize the bytes (once) and return them."""
        if self._buffer is None:
            with closing(self._take_stream()) as source:
                self._buffer = read_fully(source)
        return self._buffer

    def buffered(self) -> "AssetContent":
        """Content guaranteed to be held in memory, same encoding."""
        if self.is_buffered:
            return self
        return AssetContent.from_buffer(self.buffer(), self._encoding)

    def close(self) -> None:
        """Release a lazy stream that was never read. No-op otherwise."""
        if self._buffer is not None:
            return
        stream, self._stream = self._stream, None
        self._opener = None
        self._consumed = True
        if stream is not None:
            stream.close()

    # =========================================================================
    # ENCODING
    # =========================================================================

    def encode(
        self,
        encoding: EncodingLike,
        level: int = DEFAULT_COMPRESSION_LEVEL,
    ) -> "AssetContent":
        """
        Return this content in another encoding.

        Args:
            encoding: Target encoding (enum member or token like "gzip").
            level: zlib compression level, used when compressing.

        Returns:
            self when already in the target encoding; a lazy decoding
            stream for IDENTITY; buffered compressed bytes otherwise.

        Raises:
            EncodingNotSupported: For anything but identity/gzip/deflate.
        """
        target = coerce_encoding(encoding)
        if target is self._encoding:
            return self

        if target is ContentEncoding.IDENTITY:
            return AssetContent.from_stream(
                DecodingReader(self.stream(), self._encoding),
                ContentEncoding.IDENTITY,
            )

        identity = self if self.is_identity else self.decode()
        with closing(identity.stream()) as source:
            data = compress_stream(source, target, level)

        logger.debug(f"Encoded content as {target.value}: {len(data)} bytes")
        return AssetContent.from_buffer(data, target)

    def decode(self) -> "AssetContent":
        """Shorthand for encode(ContentEncoding.IDENTITY)."""
        return self.encode(ContentEncoding.IDENTITY)

    # =========================================================================
    # TEXT
    # =========================================================================

    def text(self, text_encoding: str = "utf-8") -> str:
        """Decode identity content as text."""
        if not self.is_identity:
            raise AssetContentError(
                f"Cannot read {self._encoding.value} content as text; decode() it first"
            )
        return self.buffer().decode(text_encoding)

    def replace(
        self,
        replacements: Iterable[Tuple[str, str]],
        text_encoding: str = "utf-8",
    ) -> "AssetContent":
        """
        Apply literal substring replacements in order.

        Later replacements see the output of earlier ones:

            "a" with [("a", "b"), ("b", "c")]  →  "c"

        Returns:
            New buffered IDENTITY content.
        """
        text = self.text(text_encoding)
        for token, value in replacements:
            if not token:
                raise ValueError("Replacement token must not be empty")
            text = text.replace(token, value)
        return AssetContent.from_buffer(text.encode(text_encoding))

    def __repr__(self) -> str:
        if self._buffer is not None:
            storage = f"buffered, {len(self._buffer)} bytes"
        elif self._consumed:
            storage = "consumed"
        else:
            storage = "lazy"
        return f"AssetContent({self._encoding.value}, {storage})"
