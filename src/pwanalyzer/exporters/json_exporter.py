"""
Save and restore data lines as JSON.

Layout of one saved line::

    {
        "provider": 1,
        "datatype": 3,
        "location": "",
        "yunit": "MW",
        "timespan": {"start": "2021-01-01T00:00:00+00:00", "end": "..."},
        "datapoints": [{"x": "2021-01-01T00:00:00+00:00", "y": 8123.0}, ...]
    }

A saved blob is always a JSON array of such objects, even for one line.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, List, Mapping, Union

from ..core.dates import parse_iso8601, to_iso8601
from ..models import DataLine, DataPoint, DataType, Provider, TimeSpan
from .base import BaseExporter


logger = logging.getLogger(__name__)


def _line_to_json(line: DataLine) -> dict:
    if line.time_span is None:
        raise ValueError("Data line without a time span cannot be saved.")
    return {
        "provider": int(line.provider),
        "datatype": int(line.data_type),
        "location": line.location,
        "yunit": line.unit,
        "timespan": {
            "start": to_iso8601(line.time_span.start),
            "end": to_iso8601(line.time_span.end),
        },
        "datapoints": [{"x": to_iso8601(point.timestamp), "y": point.value} for point in line.data_points],
    }


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ValueError(f"Invalid saved data line: {message}")


def _line_from_json(item: object) -> DataLine:
    _require(isinstance(item, Mapping), "expected an object")
    for key in ("provider", "datatype"):
        _require(_is_number(item.get(key)), f"'{key}' must be a number")
    for key in ("location", "yunit"):
        _require(isinstance(item.get(key), str), f"'{key}' must be a string")

    span = item.get("timespan")
    _require(isinstance(span, Mapping), "'timespan' must be an object")
    _require(isinstance(span.get("start"), str) and isinstance(span.get("end"), str), "bad 'timespan'")

    raw_points = item.get("datapoints")
    _require(isinstance(raw_points, list), "'datapoints' must be an array")
    points: List[DataPoint] = []
    for raw in raw_points:
        _require(isinstance(raw, Mapping), "data point must be an object")
        _require(isinstance(raw.get("x"), str) and _is_number(raw.get("y")), "bad data point")
        points.append(DataPoint(timestamp=parse_iso8601(raw["x"]), value=float(raw["y"])))

    return DataLine(
        provider=Provider(int(item["provider"])),
        data_type=DataType(int(item["datatype"])),
        time_span=TimeSpan(parse_iso8601(span["start"]), parse_iso8601(span["end"])),
        data_points=points,
        location=item["location"],
        unit=item["yunit"],
    )


def dump_data_lines(lines: Iterable[DataLine]) -> bytes:
    """Serialise ``lines`` into the saved JSON layout."""
    return json.dumps([_line_to_json(line) for line in lines], indent=2, ensure_ascii=False).encode("utf-8")


def load_data_lines(blob: Union[bytes, str]) -> List[DataLine]:
    """
    Restore lines written by :func:`dump_data_lines`.

    Raises:
        ValueError: If the blob is not valid JSON or any line fails validation.
            Nothing is returned partially.
    """
    try:
        document = json.loads(blob)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Saved data lines are not valid JSON: {exc}") from exc
    if not isinstance(document, list):
        raise ValueError("Saved data lines must be a JSON array.")
    return [_line_from_json(item) for item in document]


def save_data_lines(path: Union[str, Path], lines: Iterable[DataLine]) -> None:
    output_path = Path(path)
    output_path.write_bytes(dump_data_lines(lines))
    logger.debug("Saved data lines to %s", output_path)


def load_data_lines_file(path: Union[str, Path]) -> List[DataLine]:
    return load_data_lines(Path(path).read_bytes())


class JsonExporter(BaseExporter):
    """Exporter writing each line as a one-element saved-lines array."""

    suffix = ".json"

    def save(self, line: DataLine, output_path: Path) -> None:
        save_data_lines(output_path, [line])
