"""Data line exporters."""

from .base import BaseExporter
from .dataframe_exporter import DataFrameExporter, data_line_to_frame, summarize_points
from .json_exporter import (
    JsonExporter,
    dump_data_lines,
    load_data_lines,
    load_data_lines_file,
    save_data_lines,
)
from .registry import create_exporter

__all__ = [
    "BaseExporter",
    "DataFrameExporter",
    "JsonExporter",
    "create_exporter",
    "data_line_to_frame",
    "summarize_points",
    "dump_data_lines",
    "load_data_lines",
    "save_data_lines",
    "load_data_lines_file",
]
