"""
=============================================================================
TOKEN SUBSTITUTION
=============================================================================

Rewrites placeholder tokens in text assets per request.

The classic case is a single-page app whose index.html must know where
it is mounted:

    <base href="{BASE_HREF}">

    GET /ui/            (mounted at /ui)       → <base href="/ui/">
    GET /apps/ui/       (proxy adds /apps)     → <base href="/apps/ui/">

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     SUBSTITUTION STEPS                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. applies_to(asset)?          no → pass through untouched        │
    │   2. decode to identity          (a gzip asset is inflated first)   │
    │   3. replace tokens in order     later pairs see earlier output     │
    │   4. new buffered content                                            │
    │   5. content_length = new size                                      │
    │      last_modified_at = now      (the bytes really are new)         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Sequence, Tuple, Union

from .base import AssetProcessor
from ..assets.asset import Asset
from ..http.forwarded import client_url, with_trailing_slash
from ..http.mime_types import is_text_type, lookup_content_type
from ..http.request import HTTPRequest


logger = logging.getLogger(__name__)


Replacement = Tuple[str, str]
Replacements = Union[Sequence[Replacement], Callable[[HTTPRequest], Iterable[Replacement]]]


def is_text_asset(asset: Asset) -> bool:
    """True when the asset's (explicit or looked-up) type is textual."""
    content_type = asset.metadata.content_type or lookup_content_type(asset.metadata.file_name)
    return is_text_type(content_type)


class TokenSubstitutionProcessor(AssetProcessor):
    """
    Replaces literal tokens in text assets.

    Usage:
        # fixed values
        TokenSubstitutionProcessor([("{API_URL}", "https://api.example.com")])

        # values computed per request
        TokenSubstitutionProcessor(
            lambda request: [("{HOST}", request.host)]
        )

    Args:
        replacements: (token, value) pairs, or a function of the request
                      returning them.
        applies_to: Asset predicate; binary files are skipped by default.
        text_encoding: Charset used to decode and re-encode the text.
    """

    def __init__(
        self,
        replacements: Replacements,
        applies_to: Callable[[Asset], bool] = is_text_asset,
        text_encoding: str = "utf-8",
    ):
        if not callable(replacements):
            replacements = list(replacements)
            if any(not token for token, _ in replacements):
                raise ValueError("Replacement tokens must not be empty")
        self._replacements = replacements
        self.applies_to = applies_to
        self.text_encoding = text_encoding

    def replacements_for(self, request: HTTPRequest) -> List[Replacement]:
        if callable(self._replacements):
            return list(self._replacements(request))
        return list(self._replacements)

    def process(self, asset: Asset, request: HTTPRequest) -> Asset:
        if not self.applies_to(asset):
            return asset

        content = asset.content.decode().replace(
            self.replacements_for(request), self.text_encoding
        )

        metadata = (asset.metadata
            .with_content_length(len(content.buffer()))
            .with_last_modified_at(datetime.now(timezone.utc)))

        logger.debug(f"Substituted tokens in {asset.path}")
        return Asset(path=asset.path, metadata=metadata, content=content)


class BaseHrefProcessor(TokenSubstitutionProcessor):
    """
    Replaces a token with the client's base href (trailing slash included).

        <base href="{BASE_HREF}">  →  <base href="/apps/ui/">

    The value honours the mount path and X-Forwarded-Prefix,
    X-Virtual-Directory and X-Forwarded-Strip (see http/forwarded.py).
    """

    DEFAULT_TOKEN = "{BASE_HREF}"

    def __init__(
        self,
        token: str = DEFAULT_TOKEN,
        applies_to: Callable[[Asset], bool] = is_text_asset,
        text_encoding: str = "utf-8",
    ):
        if not token:
            raise ValueError("token must not be empty")
        self.token = token
        super().__init__(self._base_href_for, applies_to, text_encoding)

    def _base_href_for(self, request: HTTPRequest) -> List[Replacement]:
        base_href = with_trailing_slash(client_url(request).base_href)
        return [(self.token, base_href)]
