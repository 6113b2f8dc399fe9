"""
=============================================================================
MIDDLEWARE
=============================================================================

Wrappers around the request handler, applied in order by a pipeline:

    request ──► LoggingMiddleware ──► RequestDispatcher
                      │
                      └── logs status, size and timing after the response

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
]
