"""
Configuration loader with YAML/JSON support, environment overrides, and CLI overrides.
"""

import json
import os
from pathlib import Path
from typing import Dict, Any, List

import yaml

from .schemas import AppConfig

ENV_PREFIX = "MDATA__"


def load_config(path: str) -> AppConfig:
    """
    Load configuration from YAML or JSON file.

    Args:
        path: Path to config file

    Returns:
        AppConfig validated instance

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If file format is unsupported
    """
    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    suffix = config_path.suffix.lower()

    if suffix in [".yaml", ".yml"]:
        with open(config_path, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f) or {}
    elif suffix == ".json":
        with open(config_path, "r", encoding="utf-8") as f:
            config_dict = json.load(f)
    else:
        raise ValueError(f"Unsupported config file format: {suffix}. Use .yaml, .yml, or .json")

    return AppConfig(**config_dict)


def _parse_value(value: str) -> Any:
    """Parse an override value: JSON first, then true/false/null and numbers, else string"""
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        pass

    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered == "null":
        return None
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return value


def _set_nested(overrides: Dict[str, Any], keys: List[str], value: Any) -> None:
    current = overrides
    for key in keys[:-1]:
        current = current.setdefault(key, {})
    current[keys[-1]] = value


def _apply_overrides(cfg: AppConfig, overrides: Dict[str, Any]) -> AppConfig:
    if not overrides:
        return cfg
    config_dict = _deep_merge(cfg.model_dump(), overrides)
    # Re-validate
    return AppConfig(**config_dict)


def apply_env_overrides(cfg: AppConfig) -> AppConfig:
    """
    Apply environment variable overrides to configuration.

    Environment variables must follow pattern: MDATA__{section}__{key}
    Example: MDATA__populate__max_gap_days=5

    A single segment addresses a top-level field: MDATA__log_level=DEBUG
    """
    overrides: Dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        # Env vars are often uppercase; field names are lowercase
        parts = key[len(ENV_PREFIX):].lower().split("__")
        if not all(parts):
            continue

        _set_nested(overrides, parts, _parse_value(value))

    return _apply_overrides(cfg, overrides)


def apply_cli_overrides(cfg: AppConfig, sets: List[str]) -> AppConfig:
    """
    Apply CLI --set key=value overrides to configuration.

    Supports nested keys: populate.max_gap_days=5 or providers.timeout_seconds=10

    Raises:
        ValueError: If an entry is not key=value
    """
    if not sets:
        return cfg

    overrides: Dict[str, Any] = {}

    for set_str in sets:
        if "=" not in set_str:
            raise ValueError(f"Invalid --set format: {set_str}. Expected 'key=value'")

        key_str, value_str = set_str.split("=", 1)
        key_parts = key_str.strip().split(".")
        if not all(key_parts):
            raise ValueError(f"Invalid --set key format: {key_str}. Expected 'section.key'")

        _set_nested(overrides, key_parts, _parse_value(value_str))

    return _apply_overrides(cfg, overrides)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries"""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
