"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps asset file names to Content-Type values.

Unlike a general file server there is NO octet-stream default here: an
asset whose type can't be determined is sent without a Content-Type
header and the browser sniffs it.

    lookup_content_type("app.js")      → "text/javascript; charset=utf-8"
    lookup_content_type("logo.png")    → "image/png"
    lookup_content_type("LICENSE")     → None

=============================================================================
INTERVIEW INSIGHT
=============================================================================

Q: "What happens if you serve JavaScript with wrong MIME type?"
A: "Modern browsers will refuse to execute it. If you serve JS as
   text/plain, the browser won't run it - it's a security feature
   called MIME type checking."

=============================================================================
"""

from pathlib import PurePosixPath
from typing import Optional


# Lowercase extension (with dot) → MIME type
MIME_TYPES = {
    # -------------------------------------------------------------------------
    # TEXT / MARKUP / CODE
    # -------------------------------------------------------------------------
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".webmanifest": "application/manifest+json",
    ".map": "application/json",    # Source maps
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # -------------------------------------------------------------------------
    # IMAGES
    # -------------------------------------------------------------------------
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",

    # -------------------------------------------------------------------------
    # FONTS
    # -------------------------------------------------------------------------
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".eot": "application/vnd.ms-fontobject",

    # -------------------------------------------------------------------------
    # MEDIA
    # -------------------------------------------------------------------------
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp4": "video/mp4",
    ".webm": "video/webm",

    # -------------------------------------------------------------------------
    # OTHER
    # -------------------------------------------------------------------------
    ".wasm": "application/wasm",
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
}

_TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/manifest+json",
    "application/xml",
    "application/javascript",
    "image/svg+xml",
}


def get_mime_type(file_name: str) -> Optional[str]:
    """Bare MIME type for a file name, or None for unknown extensions."""
    extension = PurePosixPath(file_name).suffix.lower()  # .PNG → .png
    return MIME_TYPES.get(extension)


def is_text_type(mime_type: Optional[str]) -> bool:
    """
    Check if a MIME type (parameters allowed) represents text content.

        >>> is_text_type("text/html; charset=utf-8")
        True
        >>> is_text_type("image/svg+xml")
        True
        >>> is_text_type("image/png")
        False
    """
    if not mime_type:
        return False
    bare = mime_type.split(";")[0].strip().lower()
    return bare.startswith("text/") or bare in _TEXT_APPLICATION_TYPES


def lookup_content_type(file_name: str, charset: str = "utf-8") -> Optional[str]:
    """
    Full Content-Type header value for a file name.

    Text types get a charset parameter. Unknown extensions give None.
    """
    mime_type = get_mime_type(file_name)
    if mime_type is None:
        return None
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
