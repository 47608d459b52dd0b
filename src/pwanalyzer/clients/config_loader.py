from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Mapping, Optional, Union


logger = logging.getLogger(__name__)


def load_provider_config(config_path: Optional[Union[str, Path]], provider: str) -> Mapping[str, object]:
    """
    Return the ``providers.<provider>`` block of config.json.

    The config file is optional for provider clients: a missing file or a
    missing provider block yields an empty mapping so built-in defaults apply.

    Args:
        config_path: Path to config.json, or ``None`` to use defaults only.
        provider: Provider key (matches config.json.providers.*).
    """
    if config_path is None:
        return {}
    path = Path(config_path)
    try:
        config = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("Config file not found at %s, using defaults for %s", path, provider)
        return {}
    except json.JSONDecodeError as exc:
        logger.error("Invalid JSON in config file %s: %s", path, exc)
        return {}

    providers = config.get("providers") if isinstance(config, Mapping) else None
    if not isinstance(providers, Mapping):
        return {}
    provider_cfg = providers.get(provider, {})
    if not isinstance(provider_cfg, Mapping):
        logger.error("Provider '%s' configuration in %s must be an object.", provider, path)
        return {}
    return provider_cfg
