"""Retry policy and the middleware that applies it."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from .exceptions import ConfigurationError
from .middleware import Handler, Middleware

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_INTERVAL_MS = 1000


@dataclass(frozen=True)
class RetryPolicy:
    """Decides whether an attempt is retried and how long to wait first.

    Backoff is linear: the k-th retry waits ``interval_ms * k``.
    """

    max_retries: int = 1
    interval_ms: int = DEFAULT_INTERVAL_MS

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ConfigurationError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.interval_ms < 1:
            raise ConfigurationError(f"interval_ms must be at least 1, got {self.interval_ms}")

    @classmethod
    def create(cls, max_retries: int = DEFAULT_MAX_RETRIES, interval_ms: int = DEFAULT_INTERVAL_MS) -> "RetryPolicy":
        """Build a policy, flooring non-positive inputs to 1 retry and 1000ms."""
        return cls(
            max_retries=max_retries if max_retries > 0 else 1,
            interval_ms=interval_ms if interval_ms > 0 else DEFAULT_INTERVAL_MS,
        )

    def should_retry(
        self,
        attempt: int,
        request: httpx.Request,
        response: Optional[httpx.Response] = None,
        error: Optional[BaseException] = None,
    ) -> bool:
        if attempt >= self.max_retries:
            return False
        if isinstance(error, httpx.TransportError):
            return True
        if response is not None and response.status_code >= 400:
            return True
        return False

    def delay(self, attempt: int) -> int:
        """Milliseconds to wait before retry number ``attempt`` (1-indexed)."""
        return self.interval_ms * attempt


def retry_middleware(policy: RetryPolicy, sleep: Callable[[float], None] = time.sleep) -> Middleware:
    """Wrap a handler in a retry loop driven by ``policy``.

    When the policy gives up, the last response is returned or the last
    error re-raised unchanged.
    """

    def middleware(next_handler: Handler) -> Handler:
        def handle(request: httpx.Request) -> httpx.Response:
            attempt = 0
            while True:
                response: Optional[httpx.Response] = None
                try:
                    response = next_handler(request)
                except Exception as exc:
                    if not policy.should_retry(attempt, request, None, exc):
                        raise
                    reason = f"error={exc!r}"
                else:
                    if not policy.should_retry(attempt, request, response, None):
                        return response
                    reason = f"status={response.status_code}"
                    response.close()

                attempt += 1
                wait_ms = policy.delay(attempt)
                logger.warning(
                    "Retrying %s %s attempt=%s/%s wait_ms=%s %s",
                    request.method,
                    request.url,
                    attempt,
                    policy.max_retries,
                    wait_ms,
                    reason,
                )
                sleep(wait_ms / 1000)

        return handle

    return middleware


__all__ = ["RetryPolicy", "retry_middleware", "DEFAULT_MAX_RETRIES", "DEFAULT_INTERVAL_MS"]
