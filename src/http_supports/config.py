"""Configuration objects for the http-supports client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict
from urllib.parse import urlsplit

from .exceptions import ConfigurationError

DEFAULT_TIMEOUT = 5.0
DEFAULT_CONNECT_TIMEOUT = 3.0
ENV_PREFIX = "HTTP_SUPPORTS_"


def normalize_base_uri(url: str) -> str:
    """Reduce ``url`` to ``scheme://host[:port]``.

    Path, query and fragment are discarded and the scheme defaults to
    ``http``. An empty string means "no base URI".
    """
    if not url:
        return ""
    parts = urlsplit(url)
    if not parts.netloc and "//" not in url:
        # without "//", "localhost:8080" parses as scheme "localhost"
        parts = urlsplit(f"http://{url}")
    host = parts.netloc.rpartition("@")[2]
    if not host:
        raise ConfigurationError(f"base URI has no host: {url!r}")
    scheme = parts.scheme or "http"
    return f"{scheme}://{host}"


@dataclass
class ClientConfig:
    base_uri: str = ""
    timeout: float = DEFAULT_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    http_options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.base_uri = normalize_base_uri(self.base_uri)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "ClientConfig":
        base_uri = os.environ.get(f"{prefix}BASE_URI", "")
        try:
            timeout = float(os.environ.get(f"{prefix}TIMEOUT", DEFAULT_TIMEOUT))
            connect_timeout = float(os.environ.get(f"{prefix}CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT))
        except ValueError as exc:
            raise ConfigurationError(f"invalid timeout in environment: {exc}") from exc
        return cls(base_uri=base_uri, timeout=timeout, connect_timeout=connect_timeout)


__all__ = ["ClientConfig", "normalize_base_uri", "DEFAULT_TIMEOUT", "DEFAULT_CONNECT_TIMEOUT"]
