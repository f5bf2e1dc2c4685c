"""Contracts shared across the analyzer.

The contracts package defines:
- value types passed between the log source, parser and aggregator
- the error taxonomy (throttled / transport / unparseable line)
- Protocol definitions for dependency injection
- the AWS services container and its factory

Main exports:
- InvocationRecord, LogPage
- LogSourceError, ThrottledError, LogFetchError, LineParseError
- LogSourceProtocol, LogsClientProtocol
"""

from contracts.errors import (
    LineParseError,
    LogFetchError,
    LogSourceError,
    MalformedFieldError,
    ThrottledError,
    UnmatchedLineError,
)
from contracts.interfaces import LogsClientProtocol, LogSourceProtocol
from contracts.records import InvocationRecord, LogPage

__all__ = [
    "InvocationRecord",
    "LineParseError",
    "LogFetchError",
    "LogPage",
    "LogSourceError",
    "LogSourceProtocol",
    "LogsClientProtocol",
    "MalformedFieldError",
    "ThrottledError",
    "UnmatchedLineError",
]
