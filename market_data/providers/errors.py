"""
Provider error taxonomy.

Callers can tell apart retryable rate limiting, upstream API errors, malformed responses,
and configuration problems (missing credentials, unsupported symbols).
"""

from typing import Optional


class ProviderError(Exception):
    """Base class for all provider failures"""


class RateLimitedError(ProviderError):
    """Upstream asked us to slow down; retry after the given delay"""

    def __init__(self, retry_after_seconds: float, provider: Optional[str] = None):
        super().__init__(f"Rate limited, retry after {retry_after_seconds:g}s")
        self.retry_after_seconds = retry_after_seconds
        self.provider = provider


class ApiError(ProviderError):
    """Non-success response from the upstream API"""

    def __init__(self, status: int, message: str):
        super().__init__(f"API error ({status}): {message}")
        self.status = status
        self.message = message


class ParseError(ProviderError):
    """Response body could not be parsed into candles"""


class ProviderConfigError(ProviderError):
    """Provider cannot be used as configured (missing credentials, unsupported symbol)"""


class TransportError(ProviderError):
    """Network-level failure (connection refused, timeout, ...)"""
