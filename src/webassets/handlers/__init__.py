"""
Request handlers.
"""

from .web_assets import RequestState, WebAssetsHandler, normalize_timestamp

__all__ = ["RequestState", "WebAssetsHandler", "normalize_timestamp"]
