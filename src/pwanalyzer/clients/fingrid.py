import logging
from io import StringIO
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd
import requests

from ..core.config import env_or_setting
from ..core.dates import to_iso8601
from ..models import DataPoint, DataType, FetchError, FetchRequest, FetchResult, Provider
from .base import MalformedResponseError, ProviderClient
from .request_utils import build_request_headers


logger = logging.getLogger(__name__)


class FingridClient(ProviderClient):
    """
    Client for the Fingrid electricity statistics API.

    Variables are addressed by numeric id; replies are CSV with
    ``start_time,end_time,value`` columns. Data is grid wide, so the request
    location is ignored.

    Reference: https://data.fingrid.fi/en/pages/api
    """

    provider = Provider.FINGRID
    config_key = "fingrid"

    DATA_TYPE_IDS: Dict[DataType, int] = {
        DataType.EL_CONS: 193,
        DataType.EL_CONS_FORECAST_24H: 165,
        DataType.EL_PROD: 192,
        DataType.EL_PROD_FORECAST_24H: 242,
        DataType.HYDRO_PWR_PROD: 191,
        DataType.NUCLEAR_PWR_PROD: 188,
        DataType.WIND_PWR_PROD: 181,
    }

    REAL_TIME_DATA_TYPES = frozenset(
        {
            DataType.EL_CONS,
            DataType.EL_PROD,
            DataType.HYDRO_PWR_PROD,
            DataType.NUCLEAR_PWR_PROD,
            DataType.WIND_PWR_PROD,
        }
    )

    STATUS_ERRORS: Dict[int, FetchError] = {
        404: FetchError.TYPE_NOT_IMPL_BY_PROVIDER,
        416: FetchError.TOO_LARGE_TIME_SPAN,
        503: FetchError.SERVER_MAINTENANCE,
    }

    UNIT = "MW"

    def __init__(self, config_path: Optional[Union[str, Path]] = None) -> None:
        super().__init__(config_path)

        # Hardcoded defaults, overridable from providers.fingrid
        self.base_url: str = str(self._setting("baseUrl", "https://api.fingrid.fi/v1")).rstrip("/")
        self.safe_days_per_realtime_request = int(self._setting("safeDaysPerRealtimeRequest", 4 * 30))
        self.safe_days_per_other_request = int(self._setting("safeDaysPerOtherRequest", 4 * 365))
        self.api_key: Optional[str] = env_or_setting("FINGRID_API_KEY", self._setting("apiKey", None))
        if not self.api_key:
            logger.warning("No Fingrid API key configured; requests will likely be rejected.")

    @property
    def data_type_map(self) -> Dict[DataType, int]:
        return self.DATA_TYPE_IDS

    def supported_days_per_request(self, request: FetchRequest) -> int:
        if request.data_type in self.REAL_TIME_DATA_TYPES:
            return self.safe_days_per_realtime_request
        return self.safe_days_per_other_request

    def build_request(self, request: FetchRequest) -> requests.Request:
        self._require_implemented(request)
        variable_id = self.DATA_TYPE_IDS[request.data_type]
        params = {
            "start_time": to_iso8601(request.time_span.start),
            "end_time": to_iso8601(request.time_span.end),
        }
        headers = build_request_headers({"Content-Type": "text/csv"})
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return requests.Request(
            "GET",
            f"{self.base_url}/variable/{variable_id}/events/csv",
            params=params,
            headers=headers,
        )

    def parse_response(self, response: requests.Response, original_request: FetchRequest) -> FetchResult:
        text = response.text.strip()
        if not text:
            return self._result(original_request, [], self.UNIT)

        try:
            df = pd.read_csv(StringIO(text))
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
            raise MalformedResponseError(f"Fingrid returned unreadable CSV: {exc}") from exc

        if df.shape[1] < 3:
            raise MalformedResponseError(
                f"Fingrid CSV has {df.shape[1]} columns, expected start_time,end_time,value."
            )
        if df.empty:
            return self._result(original_request, [], self.UNIT)

        timestamps = pd.to_datetime(df.iloc[:, 0], utc=True, errors="coerce")
        values = pd.to_numeric(df.iloc[:, 2], errors="coerce")
        if timestamps.isna().any() or values.isna().any():
            raise MalformedResponseError("Fingrid CSV contains unparseable timestamps or values.")

        points: List[DataPoint] = [
            DataPoint(timestamp=stamp.to_pydatetime(), value=float(value))
            for stamp, value in zip(timestamps, values)
        ]
        return self._result(original_request, points, self.UNIT)

    def parse_error(self, response: requests.Response) -> FetchError:
        if response is None or not response.status_code:
            return FetchError.UNSET
        return self.STATUS_ERRORS.get(response.status_code, FetchError.UNSET)
