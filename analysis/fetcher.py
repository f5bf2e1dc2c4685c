"""
analysis/fetcher.py

Fetch loop: paginated, throttle-aware retrieval of REPORT lines.

Each iteration issues one page query against the log source, starting at the
requested time and restricted by the REPORT filter pattern. Every line of a
successful page goes through the EventParser into a fresh BucketStore.

Stop conditions
---------------
- source returns no next token        -> COMPLETED
- deadline elapsed between iterations -> DEADLINE (partial data, no error)
- ``max_fetches`` iterations used     -> ITERATION_CAP (partial data, no error)
- throttled                           -> sleep a fixed interval, resend the same
                                         request; counts toward the cap
- any other source error              -> LogFetchError; buckets are discarded

Single-threaded: pages are fetched and parsed sequentially.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from analysis._common import get_logger, to_epoch_millis
from analysis.bucket import BucketStore
from analysis.defaults import (
    HISTOGRAM_MAX_BINS,
    LOG_GROUP_PREFIX,
    MAX_FETCHES,
    REPORT_FILTER_PATTERN,
    THROTTLE_SLEEP_SECONDS,
)
from analysis.event_parser import EventParser, ParseDiagnostics
from contracts.errors import LogFetchError, LogSourceError, ThrottledError
from contracts.interfaces import LogSourceProtocol
from infra.config import FetchConfig, LadderConfig
from infra.logging_config import StructuredLogger

_LOGGER = StructuredLogger(get_logger("fetcher"))


class StopReason(str, Enum):
    COMPLETED = "completed"
    DEADLINE = "deadline"
    ITERATION_CAP = "iteration_cap"


@dataclass
class FetchResult:
    """Buckets assembled by one fetch, with retrieval counters."""

    buckets: BucketStore
    diagnostics: ParseDiagnostics
    stop_reason: StopReason
    iterations: int = 0
    pages: int = 0
    # Throttles that outlasted the SDK's own retries (botocore standard mode).
    throttled: int = 0
    lines_seen: int = 0

    @property
    def complete(self) -> bool:
        return self.stop_reason is StopReason.COMPLETED


class LogFetcher:
    """Drives a LogSourceProtocol until the log group is exhausted or a limit hits."""

    def __init__(
        self,
        source: LogSourceProtocol,
        *,
        max_fetches: int = MAX_FETCHES,
        throttle_sleep_seconds: float = THROTTLE_SLEEP_SECONDS,
        filter_pattern: str = REPORT_FILTER_PATTERN,
        log_group_prefix: str = LOG_GROUP_PREFIX,
        max_bins: int = HISTOGRAM_MAX_BINS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if int(max_fetches) < 1:
            raise ValueError("max_fetches must be >= 1")
        self._source = source
        self._max_fetches = int(max_fetches)
        self._throttle_sleep = float(throttle_sleep_seconds)
        self._filter_pattern = filter_pattern
        self._log_group_prefix = log_group_prefix
        self._max_bins = int(max_bins)
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        source: LogSourceProtocol,
        fetch: FetchConfig,
        ladder: LadderConfig,
        **kwargs: Any,
    ) -> LogFetcher:
        return cls(
            source,
            max_fetches=fetch.max_fetches,
            throttle_sleep_seconds=fetch.throttle_sleep_seconds,
            filter_pattern=fetch.filter_pattern,
            log_group_prefix=fetch.log_group_prefix,
            max_bins=ladder.histogram_max_bins,
            **kwargs,
        )

    def log_group_for(self, function_name: str) -> str:
        name = str(function_name or "").strip()
        if not name:
            raise ValueError("function_name must be a non-empty string")
        return f"{self._log_group_prefix}{name}"

    def fetch_buckets(
        self,
        function_name: str,
        start_time: datetime,
        timeout: float | None = None,
    ) -> FetchResult:
        """Fetch every retrievable page for the function and aggregate it.

        ``timeout`` (seconds) is checked between iterations only; an in-flight
        request is never interrupted.
        """
        log_group = self.log_group_for(function_name)
        start_ms = to_epoch_millis(start_time)
        deadline = self._clock() + float(timeout) if timeout else None

        parser = EventParser(BucketStore(max_bins=self._max_bins))
        next_token: str | None = None
        stop_reason = StopReason.ITERATION_CAP
        iterations = pages = throttled = lines_seen = 0

        _LOGGER.info("fetch_started", log_group=log_group, start_time_ms=start_ms)

        for _ in range(self._max_fetches):
            if deadline is not None and self._clock() >= deadline:
                _LOGGER.warning("fetch_timed_out", log_group=log_group, pages=pages)
                stop_reason = StopReason.DEADLINE
                break

            iterations += 1
            try:
                page = self._source.fetch_page(
                    log_group=log_group,
                    start_time_ms=start_ms,
                    filter_pattern=self._filter_pattern,
                    next_token=next_token,
                )
            except ThrottledError as exc:
                throttled += 1
                _LOGGER.info("fetch_throttled", code=exc.code, sleep_seconds=self._throttle_sleep)
                self._sleep(self._throttle_sleep)
                continue
            except LogSourceError as exc:
                _LOGGER.error("fetch_failed", log_group=log_group, code=exc.code, pages=pages)
                raise LogFetchError(
                    f"fetching logs for {log_group} failed: {exc}",
                    pages_fetched=pages,
                    lines_seen=lines_seen,
                ) from exc

            pages += 1
            lines_seen += len(page.lines)
            added = parser.parse_events(page.lines)
            _LOGGER.debug("fetch_page", page=pages, lines=len(page.lines), added=added)

            if not page.next_token:
                stop_reason = StopReason.COMPLETED
                break
            next_token = page.next_token
        else:
            _LOGGER.warning("fetch_iteration_cap_reached", max_fetches=self._max_fetches, pages=pages)

        diag = parser.diagnostics
        _LOGGER.info(
            "fetch_finished",
            stop_reason=stop_reason.value,
            pages=pages,
            throttled=throttled,
            matched=diag.matched,
            unmatched=diag.unmatched,
            malformed=diag.malformed,
            buckets=len(parser.store),
        )
        return FetchResult(
            buckets=parser.store,
            diagnostics=diag,
            stop_reason=stop_reason,
            iterations=iterations,
            pages=pages,
            throttled=throttled,
            lines_seen=lines_seen,
        )
