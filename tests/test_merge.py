"""Tests for combining split results and finding new real-time points."""

import logging

import pytest

from conftest import hours, make_points
from pwanalyzer.core.merge import combine_fetch_results, find_new_data_points
from pwanalyzer.models import DataLine, DataType, FetchError, FetchResult, Provider, TimeSpan


def ok(points, start=None, end=None):
    span = None
    if points:
        span = TimeSpan(start or points[0].timestamp, end or points[-1].timestamp)
    return FetchResult(
        error=FetchError.NONE,
        data_line=DataLine(
            provider=Provider.FINGRID,
            data_type=DataType.EL_CONS,
            time_span=span,
            data_points=points,
            unit="MW",
        ),
    )


def timestamps(result):
    return [p.timestamp for p in result.data_line.data_points]


def test_combine_requires_results():
    with pytest.raises(ValueError):
        combine_fetch_results([])


def test_combine_single_result_is_returned_as_is():
    result = ok(make_points(0, 1))
    assert combine_fetch_results([result]) is result


def test_combine_single_failure_is_returned_as_is():
    failed = FetchResult(error=FetchError.SERVER_MAINTENANCE)
    assert combine_fetch_results([failed]) is failed


def test_combine_drops_overlapping_points():
    merged = combine_fetch_results([ok(make_points(0, 1, 2)), ok(make_points(2, 3, 4))])
    assert merged.ok
    assert timestamps(merged) == [hours(h) for h in range(5)]


def test_combine_logs_merged_points_at_debug(caplog):
    with caplog.at_level(logging.DEBUG, logger="pwanalyzer.core.merge"):
        combine_fetch_results([ok(make_points(0, 1)), ok(make_points(2, 3))])
    assert "DataPoints(4):" in caplog.text


def test_combine_orders_partials_by_first_timestamp():
    merged = combine_fetch_results([ok(make_points(6, 7)), ok(make_points(0, 1)), ok(make_points(3, 4))])
    assert timestamps(merged) == [hours(h) for h in (0, 1, 3, 4, 6, 7)]


def test_combine_skips_empty_partials_and_keeps_metadata():
    empty = FetchResult(
        error=FetchError.NONE,
        data_line=DataLine(Provider.FINGRID, DataType.EL_CONS, TimeSpan(hours(10), hours(20)), [], unit="MW"),
    )
    merged = combine_fetch_results([ok(make_points(0, 1)), empty, ok(make_points(2))])

    line = merged.data_line
    assert timestamps(merged) == [hours(0), hours(1), hours(2)]
    assert line.unit == "MW"
    assert line.data_type is DataType.EL_CONS
    assert line.time_span == TimeSpan(hours(0), hours(20))


def test_combine_all_empty_partials_yield_empty_line():
    empties = [
        FetchResult(
            error=FetchError.NONE,
            data_line=DataLine(Provider.FMI, DataType.TEMP, TimeSpan(hours(a), hours(b)), [], "Oulu", "°C"),
        )
        for a, b in ((0, 4), (4, 6))
    ]
    merged = combine_fetch_results(empties)
    assert merged.ok
    assert merged.data_line.data_points == []
    assert merged.data_line.location == "Oulu"
    assert merged.data_line.time_span == TimeSpan(hours(0), hours(6))


def test_combine_any_error_discards_all_data():
    merged = combine_fetch_results(
        [ok(make_points(0)), FetchResult(error=FetchError.CONNECTION_FAILED), ok(make_points(1))]
    )
    assert merged.error is FetchError.CONNECTION_FAILED
    assert merged.data_line is None


def test_combine_does_not_mutate_partials():
    first = ok(make_points(0, 1, 2))
    combine_fetch_results([first, ok(make_points(2, 3))])
    assert len(first.data_line.data_points) == 3


def test_find_new_points_with_empty_original_returns_all():
    candidates = make_points(0, 1)
    assert find_new_data_points([], candidates) == candidates


def test_find_new_points_returns_strictly_newer_suffix():
    original = make_points(0, 1, 2)
    candidates = make_points(1, 2, 3, 4)
    assert find_new_data_points(original, candidates) == make_points(3, 4)


def test_find_new_points_none_newer():
    assert find_new_data_points(make_points(0, 5), make_points(3, 4, 5)) == []
    assert find_new_data_points(make_points(0), []) == []
