"""Ordered middleware stack wrapped around an httpx transport."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Union

import httpx

logger = logging.getLogger(__name__)

Handler = Callable[[httpx.Request], httpx.Response]
Middleware = Callable[[Handler], Handler]
MiddlewareKey = Union[str, int]


class HandlerStack:
    """Named, ordered middleware around a terminal transport.

    The first middleware pushed is the outermost layer: it sees the request
    first and the response last. Pushing a name that already exists replaces
    that entry without moving it.
    """

    def __init__(self, handler: Optional[httpx.BaseTransport] = None) -> None:
        self._handler = handler if handler is not None else httpx.HTTPTransport()
        self._stack: Dict[MiddlewareKey, Middleware] = {}
        self._next_index = 0
        self._cached: Optional[Handler] = None
        self._lock = threading.Lock()

    @property
    def handler(self) -> httpx.BaseTransport:
        return self._handler

    def set_handler(self, handler: httpx.BaseTransport) -> None:
        with self._lock:
            self._handler = handler
            self._cached = None

    def push(self, middleware: Middleware, name: Optional[str] = None) -> "HandlerStack":
        with self._lock:
            if name is None:
                key: MiddlewareKey = self._next_index
                self._next_index += 1
            else:
                key = name
            self._stack[key] = middleware
            self._cached = None
        return self

    def remove(self, name: MiddlewareKey) -> None:
        with self._lock:
            del self._stack[name]
            self._cached = None

    def names(self) -> List[MiddlewareKey]:
        return list(self._stack)

    def middleware(self) -> Dict[MiddlewareKey, Middleware]:
        return dict(self._stack)

    def invalidate(self) -> None:
        with self._lock:
            self._cached = None

    def resolve(self) -> Handler:
        """Return the composed handler, building it on first use."""
        cached = self._cached
        if cached is not None:
            return cached
        with self._lock:
            if self._cached is None:
                handler: Handler = self._handler.handle_request
                for middleware in reversed(list(self._stack.values())):
                    handler = middleware(handler)
                self._cached = handler
                logger.debug("Built middleware chain layers=%s", len(self._stack))
            return self._cached

    def __contains__(self, name: object) -> bool:
        return name in self._stack

    def __len__(self) -> int:
        return len(self._stack)

    def close(self) -> None:
        self._handler.close()


class ChainTransport(httpx.BaseTransport):
    """httpx transport that sends every request through a ``HandlerStack``."""

    def __init__(self, stack: HandlerStack) -> None:
        self._stack = stack

    @property
    def stack(self) -> HandlerStack:
        return self._stack

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        return self._stack.resolve()(request)

    def close(self) -> None:
        self._stack.close()


def map_request(fn: Callable[[httpx.Request], httpx.Request]) -> Middleware:
    """Middleware that replaces each outgoing request with ``fn(request)``."""

    def middleware(next_handler: Handler) -> Handler:
        def handle(request: httpx.Request) -> httpx.Response:
            return next_handler(fn(request))

        return handle

    return middleware


def map_response(fn: Callable[[httpx.Response], httpx.Response]) -> Middleware:
    def middleware(next_handler: Handler) -> Handler:
        def handle(request: httpx.Request) -> httpx.Response:
            return fn(next_handler(request))

        return handle

    return middleware


def log_requests(log: Optional[logging.Logger] = None) -> Middleware:
    """Middleware logging each exchange with its status and duration."""
    log = log or logger

    def middleware(next_handler: Handler) -> Handler:
        def handle(request: httpx.Request) -> httpx.Response:
            started = time.perf_counter()
            try:
                response = next_handler(request)
            except httpx.TransportError as exc:
                log.warning("%s %s failed error=%s", request.method, request.url, exc)
                raise
            elapsed_ms = (time.perf_counter() - started) * 1000
            log.info(
                "%s %s status=%s ms=%.1f",
                request.method,
                request.url,
                response.status_code,
                elapsed_ms,
            )
            return response

        return handle

    return middleware


__all__ = [
    "ChainTransport",
    "Handler",
    "HandlerStack",
    "Middleware",
    "MiddlewareKey",
    "log_requests",
    "map_request",
    "map_response",
]
