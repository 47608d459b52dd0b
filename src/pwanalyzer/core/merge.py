"""Reduce partial fetch results into one chronological data line."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Sequence

from ..models import DataLine, DataPoint, FetchError, FetchResult, TimeSpan, format_points


logger = logging.getLogger(__name__)


def combine_fetch_results(results: Sequence[FetchResult]) -> FetchResult:
    """
    Combine partial results of one split request.

    A single result is returned as-is. If any partial failed, only its error is
    returned and all data is discarded. Otherwise empty partials are dropped, the
    rest are ordered by their first timestamp and concatenated; points of a later
    partial that do not come after the running tail are treated as overlap.
    """
    if not results:
        raise ValueError("Cannot combine an empty list of fetch results.")

    if len(results) == 1:
        return results[0]

    for result in results:
        if result.error is not FetchError.NONE:
            return FetchResult(error=result.error)

    lines = [result.data_line for result in results if result.data_line is not None]
    if not lines:
        return FetchResult(error=FetchError.NONE, data_line=DataLine())

    spans = [line.time_span for line in lines if line.time_span is not None]
    merged_span = TimeSpan(min(s.start for s in spans), max(s.end for s in spans)) if spans else None

    non_empty = [line for line in lines if line.data_points]
    if not non_empty:
        return FetchResult(
            error=FetchError.NONE,
            data_line=replace(lines[0], data_points=[], time_span=merged_span),
        )

    non_empty.sort(key=lambda line: line.data_points[0].timestamp)

    points: List[DataPoint] = list(non_empty[0].data_points)
    for line in non_empty[1:]:
        tail = points[-1].timestamp
        start = 0
        while start < len(line.data_points) and line.data_points[start].timestamp <= tail:
            start += 1
        if start:
            logger.debug("Dropped %d overlapping points at %s", start, tail.isoformat())
        points.extend(line.data_points[start:])

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Combined %d partial results into %s", len(non_empty), format_points(points))
    merged = replace(non_empty[0], data_points=points, time_span=merged_span)
    return FetchResult(error=FetchError.NONE, data_line=merged)


def find_new_data_points(original: Sequence[DataPoint], candidates: Sequence[DataPoint]) -> List[DataPoint]:
    """Return the suffix of ``candidates`` that is strictly newer than ``original``'s last point."""
    if not original:
        return list(candidates)

    last = original[-1].timestamp
    for index, point in enumerate(candidates):
        if point.timestamp > last:
            return list(candidates[index:])
    return []
