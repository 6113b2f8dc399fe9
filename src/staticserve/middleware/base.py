"""
=============================================================================
MIDDLEWARE BASE CLASSES
=============================================================================

Middleware wraps the request handler to add behaviour around it without
touching the handler itself (access logging, for one).

Handlers here do not RETURN responses; they WRITE them. So a middleware
receives the writer too, and may wrap it before passing it on:

    class MyMiddleware(Middleware):
        def __call__(self, request, writer, next):
            # before: inspect request, wrap writer
            next(request, writer)
            # after: the response has been written

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List

from ..http.request import HTTPRequest
from ..http.response import ResponseWriter


logger = logging.getLogger(__name__)


# The next middleware or the final handler
NextHandler = Callable[[HTTPRequest, ResponseWriter], None]


class Middleware(ABC):
    """Abstract base class for middleware."""

    @abstractmethod
    def __call__(
        self,
        request: HTTPRequest,
        writer: ResponseWriter,
        next: NextHandler,
    ) -> None:
        """
        Process the request.

        Must call next(request, writer), possibly with a wrapped writer,
        unless it answers the request itself.
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains middleware around a final handler.

        pipeline.add(LoggingMiddleware())    # first added = outermost
        handler = pipeline.wrap(dispatcher.handle)
        handler(request, writer)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a handler with all middleware in the pipeline.

        Wrapping runs in reverse so the first-added middleware ends up
        outermost: [MW1, MW2] → MW1(MW2(handler)).
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: NextHandler
    ) -> NextHandler:
        def wrapped(request: HTTPRequest, writer: ResponseWriter) -> None:
            middleware(request, writer, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
