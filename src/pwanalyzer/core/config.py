from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Mapping, Optional, Union


class ConfigError(RuntimeError):
    """Raised when the project configuration cannot be loaded or parsed."""


def load_project_config(path: Union[str, Path]) -> dict:
    """Return the parsed configuration dictionary from ``config.json``."""
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        config = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:  # pragma: no cover - invalid user config
        raise ConfigError(f"Config file {config_path} contains invalid JSON.") from exc
    if not isinstance(config, Mapping):
        raise ConfigError(f"Config file {config_path} must contain a JSON object.")
    return config


def provider_setting(config: Mapping[str, object], provider: str, key: str, default=None):
    """Read a provider-specific setting from the loaded config."""
    providers = config.get("providers") if isinstance(config, Mapping) else None
    if not isinstance(providers, Mapping):
        return default
    provider_cfg = providers.get(provider)
    if not isinstance(provider_cfg, Mapping):
        return default
    return provider_cfg.get(key, default)


def fetch_setting(config: Mapping[str, object], key: str, default=None):
    """Read a setting from the ``fetch`` section shared by all providers."""
    fetch_cfg = config.get("fetch") if isinstance(config, Mapping) else None
    if not isinstance(fetch_cfg, Mapping):
        return default
    return fetch_cfg.get(key, default)


def positive_int(value: object, *, name: str) -> int:
    """Coerce a config value to a positive integer or raise :class:`ConfigError`."""
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Setting '{name}' must be an integer, got {value!r}.") from exc
    if number <= 0:
        raise ConfigError(f"Setting '{name}' must be positive, got {number}.")
    return number


def env_or_setting(env_var: str, setting: Optional[str]) -> Optional[str]:
    """Prefer a non-empty environment variable over the configured value."""
    return os.environ.get(env_var) or setting
