"""Fetch, merge and refresh Fingrid power and FMI weather time series."""

from .core.runtime import FetchRuntime
from .models import (
    DataLine,
    DataPoint,
    DataType,
    FetchError,
    FetchRequest,
    FetchResult,
    Provider,
    TimeSpan,
)
from .realtime import RealTimeUpdater
from .webapi import WebAPI

__version__ = "0.1.0"

__all__ = [
    "FetchRuntime",
    "RealTimeUpdater",
    "WebAPI",
    "DataLine",
    "DataPoint",
    "DataType",
    "FetchError",
    "FetchRequest",
    "FetchResult",
    "Provider",
    "TimeSpan",
]
