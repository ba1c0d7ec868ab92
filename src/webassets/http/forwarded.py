"""
=============================================================================
CLIENT URL (REVERSE-PROXY AWARE)
=============================================================================

Reconstructs the URL the browser actually used, for pages that need an
absolute base href.

    Browser ──► https://example.com/apps/ui/settings
                        │
                  reverse proxy      X-Forwarded-Proto:  https
                        │            X-Forwarded-Host:   example.com
                        │            X-Forwarded-Port:   443
                        │            X-Forwarded-Prefix: /apps
                        ▼
    Server  ──► GET /ui/settings     (mounted at /ui → path_base="/ui")

    client_url(request)
        base_href    = "/apps/ui"
        original_uri = "https://example.com/apps/ui/settings"

=============================================================================
HEADERS CONSULTED
=============================================================================

    X-Forwarded-Prefix    path the proxy removed in front of us
    X-Virtual-Directory   same, older IIS-style name (used if no prefix)
    X-Forwarded-Strip     part of our own path_base the proxy wants hidden
    X-Forwarded-Host      public host name
    X-Forwarded-Port      public port
    X-Forwarded-Proto     public scheme

None of these are authenticated; only trust them behind a proxy that
overwrites them.

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .request import HTTPRequest


def trim_slashes(path: str) -> str:
    return path.strip("/")


def with_leading_slash(path: str) -> str:
    """Prefix a slash unless one is there: "a/b" → "/a/b"."""
    return path if path.startswith("/") else "/" + path


def with_trailing_slash(path: str) -> str:
    """Append a slash unless one is there: "/a/b" → "/a/b/"."""
    return path if path.endswith("/") else path + "/"


def url_combine(*parts: Optional[str]) -> str:
    """
    Join URL path segments with single slashes, skipping blank parts.

        url_combine("/apps/", "", "/ui/")  → "apps/ui"
    """
    return "/".join(trim_slashes(part) for part in parts if part and part.strip())


def split_host_port(host_header: str) -> Tuple[str, Optional[str]]:
    """
    Split a Host header value into host and port.

        "example.com:8080"  → ("example.com", "8080")
        "[::1]:8080"        → ("[::1]", "8080")
        "example.com"       → ("example.com", None)
    """
    host_header = host_header.strip()
    if host_header.startswith("["):
        end = host_header.find("]")
        if end != -1:
            rest = host_header[end + 1:]
            port = rest[1:] if rest.startswith(":") and rest[1:] else None
            return host_header[:end + 1], port
        return host_header, None

    host, sep, port = host_header.rpartition(":")
    if sep and port.isdigit():
        return host, port
    return host_header, None


@dataclass(frozen=True)
class ClientUrl:
    """The client's view of the request URL."""

    base_href: str
    scheme: str
    host: str
    port: str
    original_uri: str

    @property
    def base_href_with_slash(self) -> str:
        return with_trailing_slash(self.base_href)


def client_url(request: HTTPRequest) -> ClientUrl:
    """
    Work out the client-facing URL of a request.

    Args:
        request: The request (after mount-path stripping, if any).
                 Without X-Forwarded-Port or a port in the Host header
                 the scheme's default port is assumed.

    Returns:
        ClientUrl. base_href has a leading slash and no trailing slash
        ("/" at the root).
    """
    base_href = _client_base_href(request)

    host_name, host_port = split_host_port(request.host)
    scheme = request.get_header("x-forwarded-proto") or "http"
    host = request.get_header("x-forwarded-host") or host_name or "localhost"
    port = request.get_header("x-forwarded-port") or host_port
    if not port:
        port = "443" if scheme == "https" else "80"

    default_port = (scheme == "http" and port == "80") or (scheme == "https" and port == "443")
    port_part = "" if default_port else f":{port}"
    query_part = f"?{request.query_string}" if request.query_string else ""

    original_uri = (
        f"{scheme}://{host}{port_part}"
        f"{base_href.rstrip('/')}{with_leading_slash(request.path)}{query_part}"
    )

    return ClientUrl(
        base_href=base_href,
        scheme=scheme,
        host=host,
        port=port,
        original_uri=original_uri,
    )


def _client_base_href(request: HTTPRequest) -> str:
    virtual_folder = request.path_base
    strip_path = request.get_header("x-forwarded-strip")
    prefix = (
        request.get_header("x-forwarded-prefix")
        or request.get_header("x-virtual-directory")
    )

    if strip_path and virtual_folder.lower().startswith(strip_path.lower()):
        virtual_folder = virtual_folder[len(strip_path):]

    # No trailing slash: a folder or a document can serve as the href
    return with_leading_slash(trim_slashes(url_combine(prefix, virtual_folder)))
