"""
Host middleware chain and access logging.
"""

from .base import (
    FunctionMiddleware,
    Middleware,
    MiddlewarePipeline,
    NextHandler,
    function_middleware,
)
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "FunctionMiddleware",
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "function_middleware",
    "LoggingMiddleware",
    "RequestLog",
]
