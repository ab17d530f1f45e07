"""Synchronous HTTP client with a middleware stack and optional retries."""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from .config import ClientConfig, normalize_base_uri
from .exceptions import ConfigurationError, UnsupportedVariantError
from .middleware import ChainTransport, HandlerStack, Middleware, MiddlewareKey
from .response import unwrap_response
from .retry import DEFAULT_INTERVAL_MS, DEFAULT_MAX_RETRIES, RetryPolicy, retry_middleware

logger = logging.getLogger(__name__)

REQUEST_OPTIONS = frozenset(
    {"headers", "query", "body", "form_params", "json", "timeout", "connect_timeout", "debug", "http_errors"}
)

# request option -> httpx.Client.request keyword
_SEND_ARGUMENTS = {
    "headers": "headers",
    "query": "params",
    "body": "content",
    "form_params": "data",
    "json": "json",
}


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @classmethod
    def parse(cls, value: Any) -> "HttpMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise UnsupportedVariantError("HTTP method", value) from None


class HttpClient:
    """Request helper around a lazily built ``httpx.Client``.

    Requests pass through the client's ``HandlerStack`` before reaching the
    transport. Status codes >= 400 are returned as normal responses unless
    the ``http_errors`` request option is set.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        handler_stack: Optional[HandlerStack] = None,
    ) -> None:
        self._config = config if config is not None else ClientConfig()
        self._stack = handler_stack if handler_stack is not None else HandlerStack(transport)
        self._client: Optional[httpx.Client] = None
        self._lock = threading.Lock()
        self._retry_policy: Optional[RetryPolicy] = None

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def base_uri(self) -> str:
        return self._config.base_uri

    @base_uri.setter
    def base_uri(self, url: str) -> None:
        self._config.base_uri = normalize_base_uri(url)
        self._reset_client()

    @property
    def timeout(self) -> float:
        return self._config.timeout

    @timeout.setter
    def timeout(self, value: float) -> None:
        self._config.timeout = float(value)
        self._reset_client()

    @property
    def connect_timeout(self) -> float:
        return self._config.connect_timeout

    @connect_timeout.setter
    def connect_timeout(self, value: float) -> None:
        self._config.connect_timeout = float(value)
        self._reset_client()

    @property
    def http_options(self) -> Dict[str, Any]:
        return dict(self._config.http_options)

    def set_options(self, options: Mapping[str, Any]) -> "HttpClient":
        """Replace the extra options passed to the ``httpx.Client`` constructor."""
        self._config.http_options = dict(options)
        self._reset_client()
        return self

    def get_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "base_uri": self.base_uri,
            "timeout": self.timeout,
            "connect_timeout": self.connect_timeout,
            "handler": self._stack,
        }
        options.update(self._config.http_options)
        return options

    @property
    def handler_stack(self) -> HandlerStack:
        return self._stack

    @handler_stack.setter
    def handler_stack(self, stack: HandlerStack) -> None:
        self._stack = stack
        self._reset_client()

    @property
    def retry_policy(self) -> Optional[RetryPolicy]:
        return self._retry_policy

    def push_middleware(self, middleware: Middleware, name: Optional[str] = None) -> "HttpClient":
        self._stack.push(middleware, name)
        return self

    def get_middleware(self) -> Dict[MiddlewareKey, Middleware]:
        return self._stack.middleware()

    def enable_retry(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "HttpClient":
        policy = RetryPolicy.create(max_retries, interval_ms)
        self._retry_policy = policy
        self._stack.push(retry_middleware(policy, sleep=sleep), "retry")
        return self

    def set_http_client(self, client: httpx.Client) -> "HttpClient":
        with self._lock:
            self._client = client
        return self

    def get_http_client(self) -> httpx.Client:
        client = self._client
        if client is not None:
            return client
        with self._lock:
            if self._client is None:
                self._client = self._build_client()
            return self._client

    def _build_client(self) -> httpx.Client:
        options = self.get_options()
        base_uri = options.pop("base_uri")
        base_uri = options.pop("base_url", base_uri)
        timeout = httpx.Timeout(options.pop("timeout"), connect=options.pop("connect_timeout"))
        handler = options.pop("handler")
        transport = options.pop("transport", None)
        if transport is None:
            transport = handler if isinstance(handler, httpx.BaseTransport) else ChainTransport(handler)
        return httpx.Client(base_url=base_uri, timeout=timeout, transport=transport, **options)

    def _reset_client(self) -> None:
        # The terminal transport lives in the stack and is reused by the next
        # client, so the old client is dropped without closing it.
        with self._lock:
            self._client = None

    def _send_arguments(self, options: Dict[str, Any]) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {}
        for option, argument in _SEND_ARGUMENTS.items():
            value = options.get(option)
            if value is not None:
                kwargs[argument] = value
        if "timeout" in options or "connect_timeout" in options:
            defaults = self.get_options()
            kwargs["timeout"] = httpx.Timeout(
                options.get("timeout", defaults["timeout"]),
                connect=options.get("connect_timeout", defaults["connect_timeout"]),
            )
        return kwargs

    def request(self, method: Any, endpoint: str, options: Optional[Mapping[str, Any]] = None) -> httpx.Response:
        verb = HttpMethod.parse(method)
        options = dict(options or {})
        unknown = set(options) - REQUEST_OPTIONS
        if unknown:
            raise ConfigurationError(f"unsupported request options: {sorted(unknown)}")
        debug = bool(options.pop("debug", False))
        http_errors = bool(options.pop("http_errors", False))

        client = self.get_http_client()
        if debug:
            logger.info("Sending %s %s base_uri=%s", verb.value, endpoint, self.base_uri)
        response = client.request(verb.value, endpoint, **self._send_arguments(options))
        if debug:
            logger.info(
                "Received status=%s for %s %s",
                response.status_code,
                verb.value,
                response.request.url,
            )
        if http_errors:
            response.raise_for_status()
        return response

    def request_unwrap(self, method: Any, endpoint: str, options: Optional[Mapping[str, Any]] = None) -> Any:
        return unwrap_response(self.request(method, endpoint, options))

    def get(
        self,
        endpoint: str,
        query: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        return self.request(HttpMethod.GET, endpoint, {"headers": headers, "query": query})

    def _with_data(self, data: Any, options: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        merged = dict(options or {})
        if isinstance(data, Mapping):
            merged["form_params"] = dict(data)
        else:
            merged["body"] = data
        return merged

    def post(self, endpoint: str, data: Any, options: Optional[Mapping[str, Any]] = None) -> httpx.Response:
        """POST ``data`` form-encoded when it is a mapping, otherwise as the raw body."""
        return self.request(HttpMethod.POST, endpoint, self._with_data(data, options))

    def put(self, endpoint: str, data: Any, options: Optional[Mapping[str, Any]] = None) -> httpx.Response:
        return self.request(HttpMethod.PUT, endpoint, self._with_data(data, options))

    def patch(self, endpoint: str, data: Any, options: Optional[Mapping[str, Any]] = None) -> httpx.Response:
        return self.request(HttpMethod.PATCH, endpoint, self._with_data(data, options))

    def delete(self, endpoint: str, options: Optional[Mapping[str, Any]] = None) -> httpx.Response:
        return self.request(HttpMethod.DELETE, endpoint, options)

    def close(self) -> None:
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            client.close()
        else:
            self._stack.close()


__all__ = ["HttpClient", "HttpMethod", "REQUEST_OPTIONS"]
