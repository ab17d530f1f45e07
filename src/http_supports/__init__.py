"""HTTP request helper with a middleware stack, retries and a webhook robot."""

from .client import HttpClient, HttpMethod
from .config import ClientConfig
from .exceptions import ConfigurationError, DecodeError, UnsupportedVariantError
from .middleware import ChainTransport, HandlerStack
from .response import unwrap_response
from .retry import RetryPolicy, retry_middleware
from .robot import MessageType, Robot, RobotRegistry

__all__ = [
    "ChainTransport",
    "ClientConfig",
    "ConfigurationError",
    "DecodeError",
    "HandlerStack",
    "HttpClient",
    "HttpMethod",
    "MessageType",
    "RetryPolicy",
    "Robot",
    "RobotRegistry",
    "UnsupportedVariantError",
    "retry_middleware",
    "unwrap_response",
]
