"""
Providers: capability interface, error taxonomy, registry, and concrete sources.

Concrete providers register themselves on import via @register_provider.
"""

from .errors import (
    ProviderError,
    RateLimitedError,
    ApiError,
    ParseError,
    ProviderConfigError,
    TransportError,
)
from .base import CandleProvider
from .registry import register_provider, list_providers, get_provider

# Import provider modules to trigger registration
from .alpaca import AlpacaProvider
from .yahoo import YahooProvider
from .cboe import CboeProvider

__all__ = [
    "ProviderError",
    "RateLimitedError",
    "ApiError",
    "ParseError",
    "ProviderConfigError",
    "TransportError",
    "CandleProvider",
    "register_provider",
    "list_providers",
    "get_provider",
    "AlpacaProvider",
    "YahooProvider",
    "CboeProvider",
]
