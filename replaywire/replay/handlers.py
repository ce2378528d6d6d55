"""Request handlers

Programmatic mocks consulted before anything is read from disk.
"""

import threading
from typing import Callable, Optional, Union

import httpx

from ..utils.logging import get_logger
from .models import MockResponse

logger = get_logger(__name__)

RequestHandler = Callable[[httpx.Request], Optional[Union[MockResponse, httpx.Response]]]


class HandlerRegistry:
    """Ordered list of request handlers; the first non-None result wins."""

    def __init__(self):
        self._handlers: list[RequestHandler] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)

    def register(self, handler: RequestHandler) -> RequestHandler:
        """Add a handler after those already registered.

        Returns the handler so this can be used as a decorator.
        """
        with self._lock:
            self._handlers.append(handler)
        return handler

    def unregister(self, handler: RequestHandler) -> bool:
        """Remove one handler. Returns False if it was not registered."""
        with self._lock:
            try:
                self._handlers.remove(handler)
            except ValueError:
                return False
        return True

    def unregister_all(self) -> None:
        with self._lock:
            self._handlers.clear()

    def dispatch(self, request: httpx.Request) -> Optional[httpx.Response]:
        """Run handlers in registration order.

        Args:
            request: Outgoing request

        Returns:
            Response of the first handler that produced one, else None
        """
        with self._lock:
            handlers = list(self._handlers)

        for handler in handlers:
            result = handler(request)
            if result is None:
                continue
            logger.debug(f"Handler {getattr(handler, '__name__', handler)!s} matched {request.method} {request.url}")
            if isinstance(result, MockResponse):
                return result.to_httpx(request)
            return result

        return None
