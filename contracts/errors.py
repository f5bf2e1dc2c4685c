"""
contracts/errors.py

Error taxonomy shared by the log source, the fetch loop and the parser.

- ThrottledError: recoverable, the fetch loop sleeps and retries the same request
- LogSourceError: any other transport failure, fatal for the current fetch
- LogFetchError: raised by the fetch loop when it aborts; partial data is dropped
- LineParseError: a line could not be turned into an InvocationRecord
"""

from __future__ import annotations

THROTTLING_ERROR_CODES: frozenset[str] = frozenset(
    {
        "ThrottlingException",
        "Throttling",
        "TooManyRequestsException",
        "RequestLimitExceeded",
    }
)


class LogSourceError(RuntimeError):
    """Raised when the log source fails to return a page."""

    def __init__(self, message: str, *, code: str = "", operation: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.operation = operation


class ThrottledError(LogSourceError):
    """Raised when the log source asks the caller to slow down."""


class LogFetchError(RuntimeError):
    """Raised when log retrieval aborts on a non-throttling source error.

    Buckets accumulated before the failure are discarded; only counters are
    kept for diagnostics.
    """

    def __init__(self, message: str, *, pages_fetched: int = 0, lines_seen: int = 0) -> None:
        super().__init__(message)
        self.pages_fetched = pages_fetched
        self.lines_seen = lines_seen


class LineParseError(ValueError):
    """Base class for lines that cannot become an InvocationRecord."""


class UnmatchedLineError(LineParseError):
    """The line does not follow the REPORT line layout."""


class MalformedFieldError(LineParseError):
    """The line matched the layout but a numeric field did not convert."""

    def __init__(self, field: str, raw: str) -> None:
        super().__init__(f"malformed {field}: {raw!r}")
        self.field = field
        self.raw = raw


def is_throttling_code(code: str) -> bool:
    """Return True when an AWS error code means 'retry later'."""
    return str(code or "") in THROTTLING_ERROR_CODES
