"""Keep fetched data lines current by appending newly published points."""

from __future__ import annotations

import concurrent.futures
import datetime as dt
import functools
import logging
import threading
from dataclasses import replace
from typing import Callable, Dict, Hashable, List, Optional

from .core.merge import find_new_data_points
from .models import DataLine, DataPoint, FetchError, FetchRequest, FetchResult, TimeSpan, is_forecast
from .webapi import WebAPI


logger = logging.getLogger(__name__)

REAL_TIME_UPDATE_INTERVAL = dt.timedelta(minutes=2)
# Smallest step past the last held point, so it is not fetched again.
UPDATE_TICK = dt.timedelta(seconds=1)

LineCallback = Callable[[Hashable, FetchResult], None]
NewPointsCallback = Callable[[Hashable, List[DataPoint]], None]


class RealTimeUpdater:
    """
    Tracks fetched data lines by key and refreshes them incrementally.

    Every key remembers the request its line came from. A completion is only
    applied if that request is still the current one for the key; results of
    superseded requests are dropped without notifying anybody.

    Held lines are never changed once published. An update stores a new
    line, so lines handed out earlier stay as they were.
    """

    def __init__(
        self,
        api: WebAPI,
        *,
        update_interval: dt.timedelta = REAL_TIME_UPDATE_INTERVAL,
        now: Optional[Callable[[], dt.datetime]] = None,
    ) -> None:
        self._api = api
        self.update_interval = update_interval
        self._now = now or (lambda: dt.datetime.now(dt.timezone.utc))
        self._lock = threading.Lock()
        self._requests: Dict[Hashable, FetchRequest] = {}
        self._lines: Dict[Hashable, DataLine] = {}

    def data_line(self, key: Hashable) -> Optional[DataLine]:
        with self._lock:
            return self._lines.get(key)

    def current_request(self, key: Hashable) -> Optional[FetchRequest]:
        with self._lock:
            return self._requests.get(key)

    def keys(self) -> List[Hashable]:
        with self._lock:
            return list(self._requests)

    def forget(self, key: Hashable) -> None:
        """Stop tracking ``key``; in-flight results for it are discarded."""
        with self._lock:
            self._requests.pop(key, None)
            self._lines.pop(key, None)

    def fetch(
        self,
        key: Hashable,
        request: FetchRequest,
        callback: Optional[LineCallback] = None,
    ) -> concurrent.futures.Future:
        """
        Fetch the full line for ``key``.

        If ``request`` equals the one the held line was fetched with, the held
        line is reported without a network call.
        """
        with self._lock:
            held = self._lines.get(key)
            cached = self._requests.get(key) == request and held is not None
            if not cached:
                self._requests[key] = request

        if cached:
            result = FetchResult(error=FetchError.NONE, data_line=held)
            future: concurrent.futures.Future = concurrent.futures.Future()
            if callback is not None:
                callback(key, result)
            future.set_result(result)
            return future

        return self._api.fetch(request, functools.partial(self._on_fetch, key, request, callback))

    def update(
        self,
        key: Hashable,
        on_new_points: Optional[NewPointsCallback] = None,
        on_refetch: Optional[LineCallback] = None,
    ) -> Optional[concurrent.futures.Future]:
        """
        Bring the line held for ``key`` up to date.

        Forecast lines are refetched in full because earlier values get
        revised. Other lines only fetch the stretch after their last point and
        append what is strictly newer. Returns ``None`` when nothing needed
        fetching.
        """
        now = self._now()
        with self._lock:
            request = self._requests.get(key)
            line = self._lines.get(key)
            if request is None or line is None or not line.data_points:
                return None
            if request.time_span.end < now:
                # Wanted span does not reach the present
                return None
            last = line.data_points[-1].timestamp

        start = last + UPDATE_TICK
        if is_forecast(request.data_type) or start > now:
            logger.debug("Refetching forecast line %r", key)
            return self._api.fetch(request, functools.partial(self._on_fetch, key, request, on_refetch))

        if now - last <= self.update_interval:
            return None

        extension = replace(request, time_span=TimeSpan(start, now))
        return self._api.fetch(extension, functools.partial(self._on_update, key, request, on_new_points))

    def update_all(
        self,
        on_new_points: Optional[NewPointsCallback] = None,
        on_refetch: Optional[LineCallback] = None,
    ) -> List[concurrent.futures.Future]:
        futures = []
        for key in self.keys():
            future = self.update(key, on_new_points, on_refetch)
            if future is not None:
                futures.append(future)
        return futures

    def _on_fetch(
        self,
        key: Hashable,
        request: FetchRequest,
        callback: Optional[LineCallback],
        result: FetchResult,
    ) -> None:
        with self._lock:
            if self._requests.get(key) != request:
                logger.debug("Discarding stale fetch for %r", key)
                return
            if result.ok:
                self._lines[key] = result.data_line
            else:
                logger.info("Fetch for %r failed: %s", key, result.error.name)
                # Forget the request too so the next fetch retries it
                self._lines.pop(key, None)
                self._requests.pop(key, None)
        if callback is not None:
            callback(key, result)

    def _on_update(
        self,
        key: Hashable,
        snapshot: FetchRequest,
        callback: Optional[NewPointsCallback],
        result: FetchResult,
    ) -> None:
        if not result.ok:
            logger.info("Real-time update for %r failed: %s", key, result.error.name)
            return

        with self._lock:
            line = self._lines.get(key)
            if self._requests.get(key) != snapshot or line is None:
                logger.debug("Discarding stale real-time update for %r", key)
                return
            new_points = find_new_data_points(line.data_points, result.data_line.data_points)
            if not new_points:
                return
            span_start = line.time_span.start if line.time_span is not None else line.data_points[0].timestamp
            self._lines[key] = replace(
                line,
                data_points=[*line.data_points, *new_points],
                time_span=TimeSpan(span_start, new_points[-1].timestamp),
            )

        logger.debug("Appended %d real-time points to %r", len(new_points), key)
        if callback is not None:
            callback(key, new_points)
