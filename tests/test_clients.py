"""Tests for the Fingrid and FMI clients and the provider registry."""

import datetime as dt
import json

import pytest

from conftest import hours, make_request, make_response
from pwanalyzer.clients import FingridClient, FmiClient, MalformedResponseError, build_providers
from pwanalyzer.clients.fmi import UNBOUNDED_DAYS
from pwanalyzer.models import DataType, FetchError, FetchRequest, Provider, TimeSpan

UTC = dt.timezone.utc
NOW = dt.datetime(2021, 6, 1, 12, 0, tzinfo=UTC)

FINGRID_CSV = """start_time,end_time,value
2021-01-01T00:00:00.000Z,2021-01-01T01:00:00.000Z,8123.5
2021-01-01T01:00:00.000Z,2021-01-01T02:00:00.000Z,8100
"""

FMI_XML = """<?xml version="1.0" encoding="UTF-8"?>
<wfs:FeatureCollection timeStamp="2021-01-01T03:00:00Z" numberMatched="1" numberReturned="1">
  <gmlcov:positions>
    60.17523 24.94459  1609459200
    60.17523 24.94459  1609462800
    60.17523 24.94459  1609466400
  </gmlcov:positions>
  <gml:doubleOrNilReasonTupleList>
    -3.5
    NaN
    -2.0
  </gml:doubleOrNilReasonTupleList>
</wfs:FeatureCollection>
"""


@pytest.fixture
def fingrid(monkeypatch):
    monkeypatch.delenv("FINGRID_API_KEY", raising=False)
    return FingridClient()


@pytest.fixture
def fmi():
    return FmiClient(now=lambda: NOW)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "providers": {
                    "fingrid": {"apiKey": "secret", "baseUrl": "https://fingrid.test/v1/"},
                    "fmi": {"safeDaysPerRequest": 3},
                }
            }
        ),
        encoding="utf-8",
    )
    return path


def test_fingrid_request_shape(fingrid):
    wire = fingrid.build_request(make_request(0, 24, DataType.EL_PROD))

    assert wire.method == "GET"
    assert wire.url == "https://api.fingrid.fi/v1/variable/192/events/csv"
    assert wire.params == {
        "start_time": "2021-01-01T00:00:00+00:00",
        "end_time": "2021-01-02T00:00:00+00:00",
    }
    assert wire.headers["Content-Type"] == "text/csv"
    assert "x-api-key" not in wire.headers


def test_fingrid_reads_key_and_base_url_from_config(monkeypatch, config_file):
    monkeypatch.delenv("FINGRID_API_KEY", raising=False)
    client = FingridClient(config_file)
    wire = client.build_request(make_request(data_type=DataType.WIND_PWR_PROD))

    assert wire.url == "https://fingrid.test/v1/variable/181/events/csv"
    assert wire.headers["x-api-key"] == "secret"


def test_fingrid_environment_key_wins(monkeypatch, config_file):
    monkeypatch.setenv("FINGRID_API_KEY", "from-env")
    assert FingridClient(config_file).api_key == "from-env"


def test_fingrid_safe_days_depend_on_data_type(fingrid):
    assert fingrid.supported_days_per_request(make_request(data_type=DataType.EL_CONS)) == 120
    assert fingrid.supported_days_per_request(make_request(data_type=DataType.EL_CONS_FORECAST_24H)) == 1460


def test_fingrid_implemented_types(fingrid):
    assert fingrid.implemented_data_types() == [
        DataType.EL_CONS,
        DataType.EL_CONS_FORECAST_24H,
        DataType.EL_PROD,
        DataType.EL_PROD_FORECAST_24H,
        DataType.HYDRO_PWR_PROD,
        DataType.NUCLEAR_PWR_PROD,
        DataType.WIND_PWR_PROD,
    ]
    assert not fingrid.implements_data_type(DataType.TEMP)


def test_fingrid_rejects_unimplemented_type(fingrid):
    with pytest.raises(ValueError):
        fingrid.build_request(make_request(data_type=DataType.TEMP))


def test_fingrid_parses_csv(fingrid):
    request = make_request(0, 2, DataType.EL_CONS)
    result = fingrid.parse_response(make_response(200, FINGRID_CSV), request)

    assert result.ok
    line = result.data_line
    assert line.provider is Provider.FINGRID
    assert line.data_type is DataType.EL_CONS
    assert line.unit == "MW"
    assert line.time_span == request.time_span
    assert [p.timestamp for p in line.data_points] == [hours(0), hours(1)]
    assert [p.value for p in line.data_points] == [8123.5, 8100.0]


@pytest.mark.parametrize("body", ["", "start_time,end_time,value\n"])
def test_fingrid_empty_bodies_have_no_points(fingrid, body):
    result = fingrid.parse_response(make_response(200, body), make_request())
    assert result.ok
    assert result.data_line.data_points == []


@pytest.mark.parametrize(
    "body",
    [
        "start_time,value\n2021-01-01T00:00:00Z,1\n",
        "start_time,end_time,value\n2021-01-01T00:00:00Z,2021-01-01T01:00:00Z,abc\n",
        "start_time,end_time,value\nyesterday,today,1\n",
    ],
)
def test_fingrid_malformed_csv(fingrid, body):
    with pytest.raises(MalformedResponseError):
        fingrid.parse_response(make_response(200, body), make_request())


@pytest.mark.parametrize(
    "status, expected",
    [
        (404, FetchError.TYPE_NOT_IMPL_BY_PROVIDER),
        (416, FetchError.TOO_LARGE_TIME_SPAN),
        (503, FetchError.SERVER_MAINTENANCE),
        (500, FetchError.UNSET),
        (403, FetchError.UNSET),
    ],
)
def test_fingrid_error_mapping(fingrid, status, expected):
    assert fingrid.parse_error(make_response(status, "error")) is expected


def test_fmi_observation_request(fmi):
    request = FetchRequest(Provider.FMI, DataType.TEMP, TimeSpan(hours(0), hours(24)), "Helsinki")
    params = fmi.build_request(request).params

    assert params["storedquery_id"] == FmiClient.OBSERVATION_QUERY_ID
    assert params["place"] == "Helsinki"
    assert params["parameters"] == "t2m"
    assert params["starttime"] == "2021-01-01T00:00:00+00:00"
    assert params["endtime"] == "2021-01-02T00:00:00+00:00"


def test_fmi_forecast_request_starts_from_now(fmi):
    request = FetchRequest(
        Provider.FMI,
        DataType.WIND_FORECAST,
        TimeSpan(NOW - dt.timedelta(days=1), NOW + dt.timedelta(days=2)),
        "Oulu",
    )
    params = fmi.build_request(request).params

    assert params["storedquery_id"] == FmiClient.FORECAST_QUERY_ID
    assert params["parameters"] == "WindSpeedMS"
    assert params["starttime"] == "2021-06-01T11:59:00+00:00"
    assert params["endtime"] == "2021-06-03T12:00:00+00:00"


def test_fmi_forecast_request_in_the_past_is_clamped(fmi):
    past = FetchRequest(Provider.FMI, DataType.TEMP_FORECAST, TimeSpan(hours(0), hours(5)), "Oulu")
    params = fmi.build_request(past).params
    assert params["starttime"] == params["endtime"] == "2021-06-01T11:59:00+00:00"


def test_fmi_safe_days(fmi, config_file):
    assert fmi.supported_days_per_request(make_request(data_type=DataType.WIND, provider=Provider.FMI)) == 7
    forecast = make_request(data_type=DataType.TEMP_FORECAST, provider=Provider.FMI)
    assert fmi.supported_days_per_request(forecast) == UNBOUNDED_DAYS
    assert FmiClient(config_file).safe_days_per_request == 3


def test_fmi_parses_positions_and_values(fmi):
    request = FetchRequest(Provider.FMI, DataType.TEMP, TimeSpan(hours(0), hours(3)), "Helsinki")
    result = fmi.parse_response(make_response(200, FMI_XML), request)

    assert result.ok
    line = result.data_line
    assert line.location == "Helsinki"
    assert line.unit == "°C"
    # NaN row is skipped
    assert [(p.timestamp, p.value) for p in line.data_points] == [(hours(0), -3.5), (hours(2), -2.0)]


def test_fmi_feature_collection_without_data_is_empty(fmi):
    body = '<wfs:FeatureCollection numberMatched="0" numberReturned="0"></wfs:FeatureCollection>'
    result = fmi.parse_response(make_response(200, body), make_request(provider=Provider.FMI, data_type=DataType.WIND))
    assert result.ok
    assert result.data_line.data_points == []
    assert result.data_line.unit == "m/s"


@pytest.mark.parametrize(
    "body",
    [
        "<html>Service unavailable</html>",
        FMI_XML.replace("1609462800", "soon"),
        FMI_XML.replace("-2.0", "cold"),
        FMI_XML.replace("1609462800", "inf"),
        FMI_XML.replace("1609462800", "1e20"),
    ],
)
def test_fmi_malformed_bodies(fmi, body):
    with pytest.raises(MalformedResponseError):
        fmi.parse_response(make_response(200, body), make_request(provider=Provider.FMI, data_type=DataType.TEMP))


def test_fmi_error_mapping(fmi):
    invalid_place = make_response(400, "<ExceptionText>No locations found for the place with the requested language!</ExceptionText>")
    assert fmi.parse_error(invalid_place) is FetchError.LOC_NOT_SUPPORTED_BY_PROVIDER
    assert fmi.parse_error(make_response(400, "Invalid time")) is FetchError.UNSET
    assert fmi.parse_error(make_response(500, "")) is FetchError.UNSET


def test_build_providers_is_read_only(monkeypatch):
    monkeypatch.delenv("FINGRID_API_KEY", raising=False)
    providers = build_providers()

    assert set(providers) == {Provider.FINGRID, Provider.FMI}
    assert isinstance(providers[Provider.FMI], FmiClient)
    with pytest.raises(TypeError):
        providers[Provider.FMI] = None


def test_missing_config_file_falls_back_to_defaults(tmp_path):
    client = FmiClient(tmp_path / "missing.json")
    assert client.safe_days_per_request == 7
    assert client.base_url == "https://opendata.fmi.fi/wfs"
