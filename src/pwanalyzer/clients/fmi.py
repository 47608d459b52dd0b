import datetime as dt
import logging
import math
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import requests

from ..core.dates import to_iso8601
from ..models import DataPoint, DataType, FetchError, FetchRequest, FetchResult, Provider
from .base import MalformedResponseError, ProviderClient
from .request_utils import build_request_headers


logger = logging.getLogger(__name__)

# Large enough that no span is ever split, small enough for timedelta arithmetic.
UNBOUNDED_DAYS = 999_999


def _text_between(text: str, start: str, end: str) -> Optional[str]:
    start_index = text.find(start)
    if start_index == -1:
        return None
    end_index = text.find(end, start_index)
    if end_index == -1:
        return None
    return text[start_index + len(start):end_index].strip()


class FmiClient(ProviderClient):
    """
    Client for the Finnish Meteorological Institute open data WFS service.

    Observations and forecasts use different stored queries. Replies carry
    two parallel text blocks, one with ``lat lon epoch`` positions and one
    with values, matched line by line.

    Reference: https://en.ilmatieteenlaitos.fi/open-data-manual
    """

    provider = Provider.FMI
    config_key = "fmi"

    FORECAST_QUERY_ID = "fmi::forecast::hirlam::surface::point::multipointcoverage"
    OBSERVATION_QUERY_ID = "fmi::observations::weather::multipointcoverage"

    DATA_TYPE_PARAM_NAMES: Dict[DataType, str] = {
        DataType.TEMP: "t2m",
        DataType.TEMP_FORECAST: "Temperature",
        DataType.WIND: "ws_10min",
        DataType.WIND_FORECAST: "WindSpeedMS",
        DataType.CLOUDINESS: "n_man",
    }

    FORECAST_DATA_TYPES = frozenset({DataType.TEMP_FORECAST, DataType.WIND_FORECAST})

    UNITS: Dict[DataType, str] = {
        DataType.TEMP: "°C",
        DataType.TEMP_FORECAST: "°C",
        DataType.WIND: "m/s",
        DataType.WIND_FORECAST: "m/s",
        DataType.CLOUDINESS: "Oktas",
    }

    INVALID_LOCATION_TEXT = "No locations found for the place with the requested language!"

    POSITIONS_TAGS = ("<gmlcov:positions>", "</gmlcov:positions>")
    VALUES_TAGS = ("<gml:doubleOrNilReasonTupleList>", "</gml:doubleOrNilReasonTupleList>")

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        *,
        now: Optional[Callable[[], dt.datetime]] = None,
    ) -> None:
        super().__init__(config_path)
        self._now = now or (lambda: dt.datetime.now(dt.timezone.utc))

        # Hardcoded defaults, overridable from providers.fmi
        self.base_url: str = str(self._setting("baseUrl", "https://opendata.fmi.fi/wfs"))
        self.safe_days_per_request = int(self._setting("safeDaysPerRequest", 7))
        self.forecast_padding = dt.timedelta(seconds=60)

    @property
    def data_type_map(self) -> Dict[DataType, str]:
        return self.DATA_TYPE_PARAM_NAMES

    def supported_days_per_request(self, request: FetchRequest) -> int:
        if request.data_type in self.FORECAST_DATA_TYPES:
            return UNBOUNDED_DAYS
        return self.safe_days_per_request

    def build_request(self, request: FetchRequest) -> requests.Request:
        self._require_implemented(request)

        query_id = self.OBSERVATION_QUERY_ID
        start = request.time_span.start
        end = request.time_span.end

        if request.data_type in self.FORECAST_DATA_TYPES:
            query_id = self.FORECAST_QUERY_ID
            # Forecast history comes back as NaN, so only ask from (about) now on
            earliest = self._now() - self.forecast_padding
            start = max(start, earliest)
            end = max(end, earliest)

        params = {
            "request": "getFeature",
            "version": "2.0.0",
            "storedquery_id": query_id,
            "place": request.location,
            "starttime": to_iso8601(start),
            "endtime": to_iso8601(end),
            "parameters": self.DATA_TYPE_PARAM_NAMES[request.data_type],
        }
        headers = build_request_headers({"Content-Type": "text/xml"})
        return requests.Request("GET", self.base_url, params=params, headers=headers)

    def parse_response(self, response: requests.Response, original_request: FetchRequest) -> FetchResult:
        text = response.text
        unit = self.UNITS[original_request.data_type]

        positions = _text_between(text, *self.POSITIONS_TAGS)
        values = _text_between(text, *self.VALUES_TAGS)
        if positions is None or values is None:
            if "FeatureCollection" not in text:
                raise MalformedResponseError("FMI response is not a WFS feature collection.")
            # Valid reply without any observations
            return self._result(original_request, [], unit, location=original_request.location)

        position_lines = positions.splitlines()
        value_lines = values.splitlines()

        points: List[DataPoint] = []
        for position_line, value_line in zip(position_lines, value_lines):
            position_line = position_line.strip()
            value_line = value_line.strip()
            if not position_line or not value_line:
                continue
            try:
                # lat lon epoch
                epoch = int(float(position_line.split()[-1]))
                timestamp = dt.datetime.fromtimestamp(epoch, tz=dt.timezone.utc)
                value = float(value_line.split()[0])
            except (IndexError, ValueError, OverflowError, OSError) as exc:
                raise MalformedResponseError(
                    f"FMI row could not be parsed: {position_line!r} / {value_line!r}"
                ) from exc
            if math.isnan(value):
                continue
            points.append(DataPoint(timestamp=timestamp, value=value))

        if len(position_lines) != len(value_lines):
            logger.warning(
                "FMI blocks differ in length (%d positions, %d values); extra rows ignored",
                len(position_lines),
                len(value_lines),
            )

        return self._result(original_request, points, unit, location=original_request.location)

    def parse_error(self, response: requests.Response) -> FetchError:
        if response is None or not response.status_code:
            return FetchError.UNSET
        if response.status_code == 400 and self.INVALID_LOCATION_TEXT in (response.text or ""):
            return FetchError.LOC_NOT_SUPPORTED_BY_PROVIDER
        return FetchError.UNSET
