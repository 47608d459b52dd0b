#!/usr/bin/env python3
"""
Fetch runner for Fingrid and FMI time series.

Fetches one series over an arbitrary time span and writes it to disk.
Features:
- Automatic splitting of long spans into provider-safe requests
- CSV or JSON output
- Optional watch mode that appends real-time points as they appear
"""

import argparse
import datetime as dt
import logging
import sys
import time
from pathlib import Path

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pwanalyzer.core import parse_iso8601
from pwanalyzer.core.config import ConfigError
from pwanalyzer.core.runtime import FetchRuntime
from pwanalyzer.exporters import DataFrameExporter, create_exporter, save_data_lines, summarize_points
from pwanalyzer.models import (
    DATA_TYPE_NAMES,
    FETCH_ERROR_MESSAGES,
    DataType,
    FetchRequest,
    Provider,
    TimeSpan,
    parse_persistent_name,
)


# Configuration
CONFIG_PATH = Path("config.json")
DATA_ROOT = Path("data")
LOG_DIR = Path("logs")
LOG_FILE = LOG_DIR / "fetch.log"

# Default range: the last 7 days up to now
DEFAULT_DAYS_BACK = 7
WATCH_POLL_SECONDS = 30
# Watched spans end this far ahead so real-time updates keep applying
WATCH_HORIZON = dt.timedelta(days=1)

LOG_DIR.mkdir(exist_ok=True)

# Configure logging - file only, no console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.FileHandler(LOG_FILE, encoding="utf-8"),
    ],
    force=True,
)

logger = logging.getLogger(__name__)


def parse_enum(enum_cls, value: str):
    """Look up an enum member by name, case-insensitively."""
    try:
        member = enum_cls[value.strip().upper()]
    except KeyError:
        choices = ", ".join(m.name.lower() for m in enum_cls if m.value)
        raise argparse.ArgumentTypeError(f"invalid choice {value!r} (choose from {choices})") from None
    if not member.value:
        raise argparse.ArgumentTypeError(f"{value!r} cannot be fetched")
    return member


def parse_series(value: str):
    """Resolve a saved series name such as 'Fingrid Electricity production'."""
    series = parse_persistent_name(value.strip())
    if series is None:
        raise argparse.ArgumentTypeError(f"unknown series {value!r}")
    return series


def build_request(args) -> FetchRequest:
    now = dt.datetime.now(dt.timezone.utc).replace(microsecond=0)
    start = parse_iso8601(args.since) if args.since else now - dt.timedelta(days=DEFAULT_DAYS_BACK)
    end = parse_iso8601(args.until) if args.until else now
    if args.watch and not args.until:
        end = now + WATCH_HORIZON
    if end < start:
        raise ValueError("--until must be on/after --since")
    return FetchRequest(
        provider=args.provider,
        data_type=args.data_type,
        time_span=TimeSpan(start, end),
        location=args.location or "",
    )


def write_output(line, output: Path = None, output_format: str = "csv") -> Path:
    """Write to ``output`` if given, otherwise below the data root."""
    if output is None:
        exporter = create_exporter(output_format, DATA_ROOT)
        exporter.export([line])
        return exporter.output_path(line)

    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() == ".json":
        save_data_lines(output, [line])
    elif output.suffix.lower() == ".csv":
        DataFrameExporter(output.parent).save(line, output)
    else:
        raise ValueError(f"Unsupported output file type: {output.suffix}")
    logger.info(f"Wrote {output} ({len(line.data_points)} points)")
    return output


def print_summary(line):
    stats = summarize_points(line.data_points)
    print(f"{DATA_TYPE_NAMES[line.data_type]} ({line.unit}): {len(line.data_points):,} points")
    if line.data_points:
        print(f"  {line.data_points[0].timestamp} .. {line.data_points[-1].timestamp}")
        print(
            f"  sum={stats['sum']:.2f} avg={stats['average']:.2f} "
            f"min={stats['min']:.2f} max={stats['max']:.2f}"
        )


def watch(runtime: FetchRuntime, key, output: Path, output_format: str):
    """Keep appending real-time points until interrupted."""

    def on_new_points(_key, points):
        logger.info(f"{len(points)} new points, last at {points[-1].timestamp}")
        print(f"+{len(points)} points (last {points[-1].timestamp}: {points[-1].value})")

    def on_refetch(_key, result):
        if result.ok:
            print(f"Refetched forecast: {len(result.data_line.data_points)} points")

    print(f"Watching for new data every {WATCH_POLL_SECONDS} s, Ctrl+C to stop.")
    while True:
        for future in runtime.updater.update_all(on_new_points, on_refetch):
            future.result()
        line = runtime.updater.data_line(key)
        if line is not None:
            write_output(line, output, output_format)
        time.sleep(WATCH_POLL_SECONDS)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Fingrid/FMI time series fetch runner")
    parser.add_argument("provider", nargs="?", type=lambda v: parse_enum(Provider, v), help="fingrid or fmi")
    parser.add_argument("data_type", nargs="?", type=lambda v: parse_enum(DataType, v), help="e.g. el_prod, temp")
    parser.add_argument("--series", type=parse_series, default=None, help="Series name instead of provider and data type, e.g. \"FMI Temperature\"")
    parser.add_argument("--since", type=str, default=None, help="Start, ISO-8601 (default: 7 days ago)")
    parser.add_argument("--until", type=str, default=None, help="End, ISO-8601 (default: now)")
    parser.add_argument("--location", type=str, default=None, help="Place name (FMI only)")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.json")
    parser.add_argument("--output", type=Path, default=None, help="Output file (.csv or .json)")
    parser.add_argument("--format", choices=("csv", "json"), default="csv", help="Format when --output is not set")
    parser.add_argument("--watch", action="store_true", help="Keep appending real-time data (for a day unless --until is set)")

    args = parser.parse_args()
    if args.series is not None:
        args.provider, args.data_type = args.series
    elif args.provider is None or args.data_type is None:
        parser.error("give provider and data_type, or --series")

    config_path = args.config
    if config_path is None and CONFIG_PATH.exists():
        config_path = CONFIG_PATH

    try:
        request = build_request(args)
    except ValueError as exc:
        print(f"Error: {exc}")
        sys.exit(2)

    try:
        runtime = FetchRuntime(config_path)
    except ConfigError as exc:
        logger.error(f"Could not load config: {exc}")
        print(f"Error: {exc}")
        sys.exit(1)

    key = "cli"
    with runtime:
        logger.info(f"Fetching {request}")
        run_start = time.time()
        result = runtime.updater.fetch(key, request).result()
        logger.info(f"Fetch completed in {time.time() - run_start:.2f} seconds")

        if not result.ok:
            logger.error(f"Fetch failed: {result.error.name}")
            print(f"Error: {FETCH_ERROR_MESSAGES[result.error]}")
            sys.exit(1)

        line = result.data_line
        print_summary(line)
        output = args.output
        if line.data_points:
            output = write_output(line, args.output, args.format)
            print(f"Saved to {output}")
        else:
            print("No data returned.")

        if args.watch:
            try:
                watch(runtime, key, output, args.format)
            except KeyboardInterrupt:
                logger.info("Watch interrupted, shutting down")
                print("\nShutdown complete.")


if __name__ == "__main__":
    main()
