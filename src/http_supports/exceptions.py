"""Exceptions raised by the http-supports package.

Transport failures and status errors are surfaced as the original httpx
exceptions; only failures that happen locally are defined here.
"""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised for invalid client, request or robot configuration."""


class UnsupportedVariantError(ConfigurationError):
    """Raised when an HTTP verb or message type is not supported."""

    def __init__(self, kind: str, value: object) -> None:
        super().__init__(f"unsupported {kind}: {value!r}")
        self.kind = kind
        self.value = value


class DecodeError(ValueError):
    """Raised when a response body cannot be decoded."""

    def __init__(self, message: str, content_type: str = "") -> None:
        super().__init__(message)
        self.content_type = content_type


__all__ = ["ConfigurationError", "DecodeError", "UnsupportedVariantError"]
