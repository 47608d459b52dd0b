from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from ..clients import HttpTransport, ProviderClient, build_providers
from ..clients.request_utils import DEFAULT_TIMEOUT_SECONDS
from ..models import Provider
from ..realtime import REAL_TIME_UPDATE_INTERVAL, RealTimeUpdater
from ..webapi import DEFAULT_MAX_WORKERS, WebAPI
from .config import fetch_setting, load_project_config, positive_int, provider_setting


logger = logging.getLogger(__name__)


@dataclass
class FetchRuntime:
    """
    Holds the shared fetch services built from one config file.

    The config file is optional; without one every setting takes its
    built-in default. Call :meth:`close` (or use as a context manager) to
    shut down the worker pool.
    """

    config_path: Optional[Path] = None
    config_data: dict = field(init=False, default_factory=dict)
    providers: Mapping[Provider, ProviderClient] = field(init=False)
    api: WebAPI = field(init=False)
    updater: RealTimeUpdater = field(init=False)

    def __post_init__(self) -> None:
        if self.config_path is not None:
            self.config_path = Path(self.config_path)
            self.reload_config()

        max_workers = positive_int(self.fetch_setting("maxWorkers", DEFAULT_MAX_WORKERS), name="fetch.maxWorkers")
        timeout = float(self.fetch_setting("timeout", DEFAULT_TIMEOUT_SECONDS))
        default_minutes = REAL_TIME_UPDATE_INTERVAL // dt.timedelta(minutes=1)
        update_minutes = positive_int(
            self.fetch_setting("realTimeUpdateMinutes", default_minutes),
            name="fetch.realTimeUpdateMinutes",
        )

        self.providers = build_providers(self.config_path)
        self.api = WebAPI(self.providers, transport=HttpTransport(timeout), max_workers=max_workers)
        self.updater = RealTimeUpdater(self.api, update_interval=dt.timedelta(minutes=update_minutes))
        logger.debug(
            "Fetch runtime ready: %d providers, %d workers, %d min updates",
            len(self.providers),
            max_workers,
            update_minutes,
        )

    def __enter__(self) -> "FetchRuntime":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.api.close()

    def reload_config(self) -> None:
        self.config_data = load_project_config(self.config_path)

    def provider_setting(self, provider_key: str, setting: str, default=None):
        return provider_setting(self.config_data, provider_key, setting, default)

    def fetch_setting(self, setting: str, default=None):
        return fetch_setting(self.config_data, setting, default)
