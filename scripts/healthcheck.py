#!/usr/bin/env python3
"""Health check script for all providers and data types."""

import argparse
import datetime as dt
from pathlib import Path
import sys

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pwanalyzer.core.runtime import FetchRuntime
from pwanalyzer.models import DATA_TYPE_NAMES, FETCH_ERROR_MESSAGES, PROVIDER_NAMES, FetchRequest, Provider, TimeSpan

CONFIG_PATH = Path('config.json')
if not CONFIG_PATH.exists():
    CONFIG_PATH = Path('config.json.template')

# FMI data needs a place; Fingrid ignores it
DEFAULT_LOCATION = 'Helsinki'
HEALTHCHECK_HOURS = 24


def healthcheck_requests(provider_data_types, location):
    end = dt.datetime.now(dt.timezone.utc).replace(microsecond=0)
    span = TimeSpan(end - dt.timedelta(hours=HEALTHCHECK_HOURS), end)
    return [
        FetchRequest(provider=provider, data_type=data_type, time_span=span,
                     location=location if provider is Provider.FMI else '')
        for provider, data_types in provider_data_types.items()
        for data_type in data_types
    ]


def run_healthcheck(runtime, location):
    fetch_requests = healthcheck_requests(runtime.api.provider_data_types(), location)
    print(f'--- Healthcheck: {len(fetch_requests)} series over the last {HEALTHCHECK_HOURS} h ---')
    results = runtime.api.fetch_all(fetch_requests).result()

    failures = 0
    for request, result in zip(fetch_requests, results):
        name = f'{PROVIDER_NAMES[request.provider]} / {DATA_TYPE_NAMES[request.data_type]}'
        if result.ok:
            points = result.data_line.data_points
            if points:
                print(f'OK    {name}: {len(points)} points, last {points[-1].timestamp} = {points[-1].value}')
            else:
                print(f'EMPTY {name}: no data returned')
        else:
            failures += 1
            print(f'FAIL  {name}: {FETCH_ERROR_MESSAGES[result.error]}')
    print('=' * 50)
    return failures


def main():
    parser = argparse.ArgumentParser(description='Provider health check')
    parser.add_argument('--location', default=DEFAULT_LOCATION, help='Place name used for FMI')
    args = parser.parse_args()

    config_path = CONFIG_PATH if CONFIG_PATH.exists() else None
    with FetchRuntime(config_path) as runtime:
        failures = run_healthcheck(runtime, args.location)
    sys.exit(1 if failures else 0)


if __name__ == '__main__':
    main()
