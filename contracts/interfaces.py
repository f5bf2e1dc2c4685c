"""
Protocol definitions for dependency injection.

This module defines explicit interfaces (Protocols) for the external
dependencies of the analyzer, enabling:
- Easy fakes in tests (see tests/aws_mocks.py)
- Clear contracts between the fetch loop and the log source

Usage:
    from contracts.interfaces import LogSourceProtocol

    # In production, use services.logs_source.CloudWatchLogsSource
    # In tests, use a hand-written fake returning LogPage objects
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from contracts.records import LogPage


@runtime_checkable
class LogsClientProtocol(Protocol):
    """Subset of the boto3 CloudWatch Logs client used by the analyzer."""

    def filter_log_events(self, **kwargs: Any) -> dict[str, Any]:
        """Filter events of a log group (paginated by nextToken)."""
        ...


@runtime_checkable
class LogSourceProtocol(Protocol):
    """Paginated source of raw log lines.

    Implementations raise ThrottledError for 'retry later' signals and
    LogSourceError for anything else.
    """

    def fetch_page(
        self,
        *,
        log_group: str,
        start_time_ms: int,
        filter_pattern: str,
        next_token: str | None = None,
    ) -> LogPage:
        """Return one page of lines matching `filter_pattern`."""
        ...
