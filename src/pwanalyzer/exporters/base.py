"""Base exporter class for writing fetched data lines to disk."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Tuple

from ..models import DataLine, persistent_name


logger = logging.getLogger(__name__)


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")


class BaseExporter(ABC):
    """
    Abstract base class for data line exporters.

    Handles common export logic like:
    - Deriving one output path per line
    - Skipping lines without points
    - Counting saved/skipped/errors
    """

    suffix = ""

    def __init__(self, data_root: Path):
        self.data_root = Path(data_root)

    def export(self, lines: Iterable[DataLine]) -> Tuple[int, int, int]:
        """
        Write every line below ``data_root``.

        Returns:
            Tuple of (saved, skipped, errors)
        """
        saved = skipped = errors = 0
        for line in lines:
            if not line.data_points:
                logger.debug("Skipping %s: no data points", persistent_name(line.provider, line.data_type))
                skipped += 1
                continue
            output_path = self.output_path(line)
            try:
                output_path.parent.mkdir(parents=True, exist_ok=True)
                self.save(line, output_path)
            except (OSError, ValueError) as exc:
                logger.warning("Could not write %s: %s", output_path, exc)
                errors += 1
                continue
            logger.info("Wrote %s (%d points)", output_path, len(line.data_points))
            saved += 1
        return saved, skipped, errors

    def output_path(self, line: DataLine) -> Path:
        """``<data_root>/<series>[/<location>]/<start>_<end><suffix>``"""
        directory = self.data_root / _slug(persistent_name(line.provider, line.data_type))
        if line.location:
            directory = directory / _slug(line.location)
        points = line.data_points
        start = line.time_span.start if line.time_span else points[0].timestamp
        end = line.time_span.end if line.time_span else points[-1].timestamp
        return directory / f"{start:%Y%m%dT%H%M}_{end:%Y%m%dT%H%M}{self.suffix}"

    @abstractmethod
    def save(self, line: DataLine, output_path: Path) -> None:
        """
        Write a single line to ``output_path``.

        Must be implemented by subclass.
        """
