"""Normalised request/result types shared by every provider client."""

from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple


class Provider(enum.IntEnum):
    """Upstream data sources. Integer values are persisted in saved data lines."""

    UNSET = 0
    FINGRID = 1
    FMI = 2


class DataType(enum.IntEnum):
    """
    Every data type supported by any provider.

    EL: electricity, CONS: consumption, PROD: production, PWR: power.
    Integer values are persisted in saved data lines.
    """

    UNSET = 0
    EL_CONS = 1
    EL_CONS_FORECAST_24H = 2
    EL_PROD = 3
    EL_PROD_FORECAST_24H = 4
    HYDRO_PWR_PROD = 5
    NUCLEAR_PWR_PROD = 6
    WIND_PWR_PROD = 7
    TEMP = 8
    TEMP_FORECAST = 9
    WIND = 10
    WIND_FORECAST = 11
    CLOUDINESS = 12


class FetchError(enum.Enum):
    """Normalised failure kinds. ``NONE`` marks success."""

    UNSET = "unset"
    NONE = "none"
    TYPE_NOT_IMPL_BY_PROVIDER = "type_not_impl_by_provider"
    LOC_NOT_SUPPORTED_BY_PROVIDER = "loc_not_supported_by_provider"
    TOO_LARGE_TIME_SPAN = "too_large_time_span"
    SERVER_MAINTENANCE = "server_maintenance"
    CONNECTION_FAILED = "connection_failed"
    MALFORMED_RESPONSE = "malformed_response"


# Display names double as persistent keys, so existing entries must not change.
DATA_TYPE_NAMES: Dict[DataType, str] = {
    DataType.UNSET: "Unset data type",
    DataType.EL_CONS: "Electricity consumption",
    DataType.EL_CONS_FORECAST_24H: "Electricity consumption forecast (24h)",
    DataType.EL_PROD: "Electricity production",
    DataType.EL_PROD_FORECAST_24H: "Electricity production prediction (24h)",
    DataType.HYDRO_PWR_PROD: "Hydro power production",
    DataType.NUCLEAR_PWR_PROD: "Nuclear power production",
    DataType.WIND_PWR_PROD: "Wind power production",
    DataType.TEMP: "Temperature",
    DataType.TEMP_FORECAST: "Temperature forecast",
    DataType.WIND: "Observed wind",
    DataType.WIND_FORECAST: "Wind forecast",
    DataType.CLOUDINESS: "Observed cloudiness",
}

PROVIDER_NAMES: Dict[Provider, str] = {
    Provider.UNSET: "Unset provider",
    Provider.FINGRID: "Fingrid",
    Provider.FMI: "FMI",
}

FETCH_ERROR_MESSAGES: Dict[FetchError, str] = {
    FetchError.UNSET: "Unset fetch error",
    FetchError.NONE: "No errors",
    FetchError.TYPE_NOT_IMPL_BY_PROVIDER: "The type is not implemented by the provider",
    FetchError.LOC_NOT_SUPPORTED_BY_PROVIDER: "The location is not supported by the provider",
    FetchError.TOO_LARGE_TIME_SPAN: "Time span is too large",
    FetchError.SERVER_MAINTENANCE: "The server is at maintenance",
    FetchError.CONNECTION_FAILED: "Connection failed",
    FetchError.MALFORMED_RESPONSE: "The provider returned a malformed response",
}

# Forecast values get revised upstream, so these are always refetched in full.
FORECAST_DATA_TYPES = frozenset(
    {
        DataType.EL_CONS_FORECAST_24H,
        DataType.EL_PROD_FORECAST_24H,
        DataType.TEMP_FORECAST,
        DataType.WIND_FORECAST,
    }
)


def is_forecast(data_type: DataType) -> bool:
    return data_type in FORECAST_DATA_TYPES


def _as_aware(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value


@dataclass(frozen=True)
class DataPoint:
    """A single measurement: ``value`` observed at ``timestamp``."""

    timestamp: dt.datetime
    value: float


@dataclass(frozen=True)
class TimeSpan:
    """
    A span of time between ``start`` and ``end``.

    Naive datetimes are interpreted as UTC so spans built from mixed inputs
    stay comparable.
    """

    start: dt.datetime
    end: dt.datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", _as_aware(self.start))
        object.__setattr__(self, "end", _as_aware(self.end))

    @property
    def duration(self) -> dt.timedelta:
        return self.end - self.start

    @property
    def days(self) -> float:
        return self.duration / dt.timedelta(days=1)

    def is_valid(self) -> bool:
        return self.start <= self.end

    @property
    def whole_days(self) -> int:
        return self.duration // dt.timedelta(days=1)

    def exceeds_days(self, days: int) -> bool:
        """Compare by whole days, so a partial extra day never forces a split."""
        return self.whole_days > days


@dataclass(frozen=True)
class FetchRequest:
    """
    Everything needed to fetch one logical data line.

    Requests compare structurally, so they double as cache keys.
    ``location`` is ignored by providers whose data is location independent.
    """

    provider: Provider
    data_type: DataType
    time_span: TimeSpan
    location: str = ""


@dataclass
class DataLine:
    """A normalised, time-ordered series plus the metadata describing it."""

    provider: Provider = Provider.UNSET
    data_type: DataType = DataType.UNSET
    time_span: Optional[TimeSpan] = None
    data_points: List[DataPoint] = field(default_factory=list)
    location: str = ""
    unit: str = ""

    @property
    def last_point(self) -> Optional[DataPoint]:
        return self.data_points[-1] if self.data_points else None


@dataclass
class FetchResult:
    """Outcome of a fetch. ``data_line`` is only meaningful when ``error`` is NONE."""

    error: FetchError = FetchError.UNSET
    data_line: Optional[DataLine] = None

    @property
    def ok(self) -> bool:
        return self.error is FetchError.NONE


def persistent_name(provider: Provider, data_type: DataType) -> str:
    """Return the stable name used to refer to a provider series between sessions."""
    return f"{PROVIDER_NAMES[provider]} {DATA_TYPE_NAMES[data_type]}"


def parse_persistent_name(name: str) -> Optional[Tuple[Provider, DataType]]:
    """Inverse of :func:`persistent_name`; returns ``None`` for unknown names."""
    for provider in Provider:
        if provider is Provider.UNSET:
            continue
        for data_type in DataType:
            if data_type is DataType.UNSET:
                continue
            if persistent_name(provider, data_type) == name:
                return provider, data_type
    return None


def format_points(points: Sequence[DataPoint], limit: int = 15) -> str:
    """Render points for debug logging, truncated after ``limit`` entries."""
    lines = [f"DataPoints({len(points)}):"]
    for point in points[:limit]:
        lines.append(f"x: {point.timestamp.isoformat()}, y: {point.value}")
    if len(points) > limit:
        lines.append(f"... {len(points) - limit} more")
    return "\n".join(lines)
