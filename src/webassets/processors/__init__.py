"""
Asset transform pipeline and built-in stages.
"""

from .base import AssetProcessor, FunctionProcessor, ProcessorPipeline, processor
from .compression import (
    COMPRESSIBLE_EXTENSIONS,
    CompressionProcessor,
    parse_accept_encoding,
    should_compress,
)
from .substitution import BaseHrefProcessor, TokenSubstitutionProcessor, is_text_asset

__all__ = [
    "AssetProcessor",
    "FunctionProcessor",
    "ProcessorPipeline",
    "processor",
    "COMPRESSIBLE_EXTENSIONS",
    "CompressionProcessor",
    "parse_accept_encoding",
    "should_compress",
    "BaseHrefProcessor",
    "TokenSubstitutionProcessor",
    "is_text_asset",
]
