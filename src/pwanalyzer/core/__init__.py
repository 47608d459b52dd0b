"""Core utilities shared by the fetch services."""

from .config import ConfigError, load_project_config, provider_setting, fetch_setting
from .dates import split_time_span, iter_time_windows, to_iso8601, parse_iso8601
from .merge import combine_fetch_results, find_new_data_points

__all__ = [
    "ConfigError",
    "load_project_config",
    "provider_setting",
    "fetch_setting",
    "split_time_span",
    "iter_time_windows",
    "to_iso8601",
    "parse_iso8601",
    "combine_fetch_results",
    "find_new_data_points",
]
