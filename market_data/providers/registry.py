"""
Provider registry for pluggable data sources.

Providers register themselves using @register_provider decorator.
Registry provides lookup and instantiation with friendly error messages.
"""

from typing import Dict, Type, List, Optional
import logging

from ..config.schemas import ProviderSettings
from .base import CandleProvider

logger = logging.getLogger(__name__)

# Global registry: name -> provider class
_provider_registry: Dict[str, Type[CandleProvider]] = {}


def register_provider(name: str):
    """
    Decorator to register a provider class.

    The class must implement from_settings(settings) -> instance.

    Example:
        @register_provider("yahoo")
        class YahooProvider(CandleProvider):
            ...
    """
    def decorator(cls: Type[CandleProvider]):
        if name in _provider_registry:
            logger.warning(f"Provider '{name}' is already registered. Overwriting.")
        _provider_registry[name] = cls
        logger.debug(f"Registered provider: {name} -> {cls.__name__}")
        return cls
    return decorator


def list_providers() -> List[str]:
    """List all registered provider names"""
    return sorted(_provider_registry.keys())


def get_provider(name: str, settings: Optional[ProviderSettings] = None) -> CandleProvider:
    """
    Get a provider instance by name.

    Args:
        name: Provider name (must be registered)
        settings: Provider settings (defaults if omitted)

    Returns:
        CandleProvider instance

    Raises:
        ValueError: If provider name is unknown
        ProviderConfigError: If the provider cannot be configured (e.g. missing credentials)
    """
    key = name.strip().lower()
    if key not in _provider_registry:
        available = ", ".join(list_providers()) or "(none registered)"
        raise ValueError(f"Unknown provider: '{name}'. Expected one of: {available}")

    provider_cls = _provider_registry[key]
    return provider_cls.from_settings(settings or ProviderSettings())
