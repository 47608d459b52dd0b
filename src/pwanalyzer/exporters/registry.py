"""Exporter registry keyed by output format."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Type

from .base import BaseExporter
from .dataframe_exporter import DataFrameExporter
from .json_exporter import JsonExporter


EXPORTERS: Dict[str, Type[BaseExporter]] = {
    "csv": DataFrameExporter,
    "json": JsonExporter,
}


def create_exporter(output_format: str, data_root: Path) -> BaseExporter:
    """
    Factory function to create the exporter for an output format.

    Args:
        output_format: ``csv`` or ``json`` (a leading dot is accepted)
        data_root: Root directory for exported files

    Returns:
        Configured exporter instance
    """
    key = output_format.lower().lstrip(".")
    try:
        exporter_cls = EXPORTERS[key]
    except KeyError:
        raise ValueError(f"Unknown output format: {output_format}") from None
    return exporter_cls(data_root)
