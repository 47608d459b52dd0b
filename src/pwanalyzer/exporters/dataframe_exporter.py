"""DataFrame-based exporter and point statistics."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Sequence

import pandas as pd

from ..models import DataLine, DataPoint
from .base import BaseExporter


logger = logging.getLogger(__name__)


def points_to_frame(points: Sequence[DataPoint]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "timestamp": pd.to_datetime([point.timestamp for point in points], utc=True),
            "value": pd.Series([point.value for point in points], dtype="float64"),
        }
    )


def data_line_to_frame(line: DataLine) -> pd.DataFrame:
    """Return ``timestamp``/``value`` columns for ``line``, metadata in ``df.attrs``."""
    df = points_to_frame(line.data_points)
    df.attrs.update(
        provider=line.provider.name,
        data_type=line.data_type.name,
        location=line.location,
        unit=line.unit,
    )
    return df


def summarize_points(points: Sequence[DataPoint]) -> Dict[str, Optional[float]]:
    """
    Sum, average, minimum and maximum of the point values.

    Statistics of an empty sequence are ``None`` except the sum, which is 0.
    """
    values = points_to_frame(points)["value"]
    if values.empty:
        return {"sum": 0.0, "average": None, "min": None, "max": None}
    return {
        "sum": float(values.sum()),
        "average": float(values.mean()),
        "min": float(values.min()),
        "max": float(values.max()),
    }


class DataFrameExporter(BaseExporter):
    """
    Exporter writing lines as CSV through pandas.

    Columns: timestamp (ISO-8601, UTC), value, unit.
    """

    suffix = ".csv"

    def save(self, line: DataLine, output_path: Path) -> None:
        df = data_line_to_frame(line)
        df["unit"] = line.unit
        df.to_csv(output_path, index=False, date_format="%Y-%m-%dT%H:%M:%S%z")
