"""
services/logs_source.py

CloudWatch Logs source for Lambda REPORT lines.

One call to :meth:`CloudWatchLogsSource.fetch_page` issues exactly one
``FilterLogEvents`` request. The source never loops over pages itself: the
fetch loop owns pagination, deadline and throttle handling.

Failures are translated into the contracts error taxonomy:
- throttling codes -> ThrottledError (retry the same request later)
- any other ClientError / BotoCoreError -> LogSourceError (abort)

Minimal IAM permission:
- logs:FilterLogEvents on the function's log group
"""

from __future__ import annotations

from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from contracts.errors import LogSourceError, ThrottledError, is_throttling_code
from contracts.interfaces import LogsClientProtocol
from contracts.records import LogPage

_OPERATION = "FilterLogEvents"


def _error_code(exc: ClientError) -> str:
    """Return the AWS error code of a ClientError (empty when absent)."""
    try:
        return str(exc.response.get("Error", {}).get("Code", ""))
    except (TypeError, ValueError, AttributeError):
        return ""


class CloudWatchLogsSource:
    """Log source backed by a boto3 ``logs`` client."""

    def __init__(self, client: LogsClientProtocol, *, page_limit: int | None = None) -> None:
        self._client = client
        self._page_limit = page_limit

    def fetch_page(
        self,
        *,
        log_group: str,
        start_time_ms: int,
        filter_pattern: str,
        next_token: str | None = None,
    ) -> LogPage:
        request: dict[str, Any] = {
            "logGroupName": log_group,
            "startTime": int(start_time_ms),
            "filterPattern": filter_pattern,
        }
        if next_token:
            request["nextToken"] = next_token
        if self._page_limit:
            request["limit"] = int(self._page_limit)

        try:
            response = self._client.filter_log_events(**request)
        except ClientError as exc:
            code = _error_code(exc)
            if is_throttling_code(code):
                raise ThrottledError(str(exc), code=code, operation=_OPERATION) from exc
            raise LogSourceError(str(exc), code=code, operation=_OPERATION) from exc
        except BotoCoreError as exc:
            raise LogSourceError(str(exc), operation=_OPERATION) from exc

        lines: list[str] = []
        for event in response.get("events", []) or []:
            message = event.get("message") if isinstance(event, dict) else None
            if message is None:
                continue
            lines.append(str(message))

        token = response.get("nextToken")
        return LogPage(lines=lines, next_token=str(token) if token else None)
