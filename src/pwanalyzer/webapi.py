"""
Fetch orchestration over every registered provider.

:class:`WebAPI` hides provider differences behind two entry points,
:meth:`WebAPI.fetch` and :meth:`WebAPI.fetch_all`. Requests longer than a
provider accepts are split, issued in parallel on a thread pool and merged
back into one chronological data line before the caller is notified.
"""

from __future__ import annotations

import concurrent.futures
import functools
import logging
import threading
from dataclasses import replace
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional

import requests

from .clients import HttpTransport, MalformedResponseError, ProviderClient
from .clients.request_utils import response_excerpt
from .core.dates import split_time_span
from .core.merge import combine_fetch_results
from .models import DATA_TYPE_NAMES, PROVIDER_NAMES, DataType, FetchError, FetchRequest, FetchResult, Provider


logger = logging.getLogger(__name__)

FetchCallback = Callable[[FetchResult], None]
BatchCallback = Callable[[List[FetchResult]], None]
Transport = Callable[[requests.Request], requests.Response]

DEFAULT_MAX_WORKERS = 8


def split_fetch_request(request: FetchRequest, safe_days_per_request: int) -> List[FetchRequest]:
    """Split ``request`` into copies whose spans are at most ``safe_days_per_request`` days."""
    return [replace(request, time_span=part) for part in split_time_span(request.time_span, safe_days_per_request)]


def _describe(request: FetchRequest) -> str:
    return f"{PROVIDER_NAMES[request.provider]}/{DATA_TYPE_NAMES[request.data_type]}"


class _Batch:
    """
    Join state of a single fan-out.

    Completions may arrive from any worker thread; the lock makes the
    store-decrement-test step atomic so the batch is released exactly once.
    """

    def __init__(self, size: int, finish: Callable[[List[FetchResult]], object]) -> None:
        self.future: concurrent.futures.Future = concurrent.futures.Future()
        self._finish = finish
        self._lock = threading.Lock()
        self._remaining = size
        self._results: List[Optional[FetchResult]] = [None] * size

    def complete(self, index: int, result: FetchResult) -> None:
        with self._lock:
            if self._results[index] is not None:
                raise RuntimeError(f"Batch slot {index} completed twice.")
            self._results[index] = result
            self._remaining -= 1
            done = self._remaining == 0
        if done:
            self.release()

    def release(self) -> None:
        try:
            outcome = self._finish(list(self._results))
        except Exception as exc:
            self.future.set_exception(exc)
            raise
        self.future.set_result(outcome)


class WebAPI:
    """
    Fetch service shared by everything that needs provider data.

    Construct one per application and pass it to consumers. Callbacks run on
    worker threads (or synchronously on the calling thread when no network
    call is needed) and fire exactly once per logical fetch. The returned
    futures resolve after the callback has run.
    """

    def __init__(
        self,
        providers: Mapping[Provider, ProviderClient],
        *,
        transport: Optional[Transport] = None,
        executor: Optional[concurrent.futures.Executor] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self._providers: Mapping[Provider, ProviderClient] = MappingProxyType(dict(providers))
        self._transport: Transport = transport or HttpTransport()
        self._owns_executor = executor is None
        self._executor = executor or concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="pwa-fetch"
        )

    def __enter__(self) -> "WebAPI":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def provider_data_types(self) -> Dict[Provider, List[DataType]]:
        """Return every provider's implemented data types without touching the network."""
        return {provider: client.implemented_data_types() for provider, client in self._providers.items()}

    def fetch(self, request: FetchRequest, callback: Optional[FetchCallback] = None) -> concurrent.futures.Future:
        """
        Fetch one logical data line.

        Raises:
            ValueError: If the request names an unknown provider, an unset data
                type or an inverted time span.
        """
        provider = self._validate(request)

        if not provider.implements_data_type(request.data_type):
            logger.debug("%s is not implemented by the provider", _describe(request))
            return self._resolved(FetchResult(error=FetchError.TYPE_NOT_IMPL_BY_PROVIDER), callback)

        safe_days = provider.supported_days_per_request(request)
        if request.time_span.exceeds_days(safe_days):
            parts = split_fetch_request(request, safe_days)
            logger.info(
                "Splitting %s over %.1f days into %d requests of <= %d days",
                _describe(request),
                request.time_span.days,
                len(parts),
                safe_days,
            )
            return self._run_batch(parts, lambda results: self._notify(callback, combine_fetch_results(results)))

        return self._executor.submit(self._fetch_and_notify, provider, request, callback)

    def fetch_all(
        self,
        fetch_requests: Iterable[FetchRequest],
        callback: Optional[BatchCallback] = None,
    ) -> concurrent.futures.Future:
        """
        Fetch every request concurrently and report all results at once.

        Results keep the order of ``fetch_requests`` regardless of completion order.
        """
        request_list = list(fetch_requests)
        for request in request_list:
            self._validate(request)
        return self._run_batch(request_list, lambda results: self._notify(callback, results))

    def _run_batch(
        self,
        request_list: List[FetchRequest],
        finish: Callable[[List[FetchResult]], object],
    ) -> concurrent.futures.Future:
        batch = _Batch(len(request_list), finish)
        if not request_list:
            batch.release()
            return batch.future
        for index, request in enumerate(request_list):
            self.fetch(request, functools.partial(batch.complete, index))
        return batch.future

    def _validate(self, request: FetchRequest) -> ProviderClient:
        provider = self._providers.get(request.provider)
        if provider is None:
            raise ValueError(f"No client registered for provider {request.provider!r}.")
        if request.data_type is DataType.UNSET:
            raise ValueError("Fetch request data type must be set.")
        if not request.time_span.is_valid():
            raise ValueError(
                f"Fetch request span is inverted: {request.time_span.start} > {request.time_span.end}."
            )
        return provider

    def _fetch_and_notify(
        self,
        provider: ProviderClient,
        request: FetchRequest,
        callback: Optional[FetchCallback],
    ) -> FetchResult:
        return self._notify(callback, self._fetch_single(provider, request))

    def _fetch_single(self, provider: ProviderClient, request: FetchRequest) -> FetchResult:
        wire_request = provider.build_request(request)
        try:
            response = self._transport(wire_request)
        except requests.RequestException as exc:
            logger.warning("%s request failed: %s", _describe(request), exc)
            return FetchResult(error=FetchError.CONNECTION_FAILED)

        if 200 <= response.status_code < 300:
            try:
                return provider.parse_response(response, request)
            except MalformedResponseError as exc:
                logger.warning("%s returned a malformed body: %s", _describe(request), exc)
                return FetchResult(error=FetchError.MALFORMED_RESPONSE)
            except Exception:
                # Every fetch still reports exactly once
                logger.exception("%s response could not be parsed", _describe(request))
                return FetchResult(error=FetchError.MALFORMED_RESPONSE)

        error = provider.parse_error(response)
        if error in (FetchError.UNSET, FetchError.NONE):
            # Provider could not classify it
            logger.warning(
                "%s failed with HTTP %s: %s",
                _describe(request),
                response.status_code,
                response_excerpt(response),
            )
            error = FetchError.CONNECTION_FAILED
        else:
            logger.warning("%s failed with HTTP %s (%s)", _describe(request), response.status_code, error.name)
        return FetchResult(error=error)

    @staticmethod
    def _notify(callback, value):
        if callback is not None:
            callback(value)
        return value

    def _resolved(self, result: FetchResult, callback: Optional[FetchCallback]) -> concurrent.futures.Future:
        future: concurrent.futures.Future = concurrent.futures.Future()
        self._notify(callback, result)
        future.set_result(result)
        return future
