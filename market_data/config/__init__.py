"""
Configuration system: schemas and loaders
"""

from .schemas import (
    StoreConfig,
    ProviderSettings,
    PopulateConfig,
    SessionConfig,
    AppConfig,
)
from .loader import load_config, apply_env_overrides, apply_cli_overrides

__all__ = [
    "StoreConfig",
    "ProviderSettings",
    "PopulateConfig",
    "SessionConfig",
    "AppConfig",
    "load_config",
    "apply_env_overrides",
    "apply_cli_overrides",
]
