import datetime as dt
import threading

import pytest
import requests

from pwanalyzer.clients.base import MalformedResponseError, ProviderClient
from pwanalyzer.core.dates import parse_iso8601, to_iso8601
from pwanalyzer.models import DataPoint, DataType, FetchError, FetchRequest, Provider, TimeSpan
from pwanalyzer.webapi import WebAPI

UTC = dt.timezone.utc
T0 = dt.datetime(2021, 1, 1, tzinfo=UTC)


def hours(n):
    return T0 + dt.timedelta(hours=n)


def make_points(*hour_offsets, value=1.0):
    return [DataPoint(timestamp=hours(h), value=float(value if value is not None else h)) for h in hour_offsets]


def make_response(status=200, text="", url="http://test.invalid/"):
    response = requests.Response()
    response.status_code = status
    response._content = text.encode("utf-8")
    response.encoding = "utf-8"
    response.url = url
    return response


class FakeProvider(ProviderClient):
    """Provider with a 4 day request limit whose bodies are ``iso,value`` lines."""

    provider = Provider.FINGRID
    config_key = "fake"

    @property
    def data_type_map(self):
        return {DataType.EL_CONS: "cons", DataType.EL_CONS_FORECAST_24H: "cons-forecast", DataType.EL_PROD: "prod"}

    def supported_days_per_request(self, request):
        return 4

    def build_request(self, request):
        self._require_implemented(request)
        return requests.Request(
            "GET",
            f"http://fake.invalid/{self.data_type_map[request.data_type]}",
            params={
                "start": to_iso8601(request.time_span.start),
                "end": to_iso8601(request.time_span.end),
            },
        )

    def parse_response(self, response, original_request):
        points = []
        for row in response.text.splitlines():
            try:
                stamp, value = row.split(",")
                points.append(DataPoint(parse_iso8601(stamp), float(value)))
            except ValueError as exc:
                raise MalformedResponseError(row) from exc
        return self._result(original_request, points, "MW")

    def parse_error(self, response):
        if response.status_code == 503:
            return FetchError.SERVER_MAINTENANCE
        return FetchError.UNSET


def hourly_body(start, end):
    """One ``iso,value`` row per whole hour from ``start`` to ``end`` inclusive."""
    rows = []
    current = start.replace(minute=0, second=0, microsecond=0)
    if current < start:
        current += dt.timedelta(hours=1)
    while current <= end:
        rows.append(f"{to_iso8601(current)},{(current - T0) / dt.timedelta(hours=1)}")
        current += dt.timedelta(hours=1)
    return "\n".join(rows)


class FakeTransport:
    """Records wire requests and answers them with ``handler`` (hourly data by default)."""

    def __init__(self, handler=None):
        self.handler = handler or self.hourly
        self.calls = []
        self._lock = threading.Lock()

    @staticmethod
    def hourly(request):
        start = parse_iso8601(request.params["start"])
        end = parse_iso8601(request.params["end"])
        return make_response(200, hourly_body(start, end), request.url)

    def __call__(self, request):
        with self._lock:
            self.calls.append(request)
        return self.handler(request)


def make_request(start_hours=0, end_hours=24, data_type=DataType.EL_CONS, provider=Provider.FINGRID, location=""):
    return FetchRequest(
        provider=provider,
        data_type=data_type,
        time_span=TimeSpan(hours(start_hours), hours(end_hours)),
        location=location,
    )


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def api(fake_provider, transport):
    service = WebAPI({Provider.FINGRID: fake_provider}, transport=transport, max_workers=4)
    yield service
    service.close()
