"""API clients package."""

from src.clients.errors import (
    AuthError,
    ConfigMismatchError,
    OperaClientError,
    OperaConfigurationError,
    OperaTimeoutError,
    ProtocolError,
    UpstreamError,
)
from src.clients.token_cache import TokenCache
from src.clients.opera_client import OperaPMSClient

__all__ = [
    "OperaPMSClient",
    "TokenCache",
    "OperaClientError",
    "OperaConfigurationError",
    "AuthError",
    "UpstreamError",
    "ProtocolError",
    "OperaTimeoutError",
    "ConfigMismatchError",
]
