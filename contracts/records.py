"""
contracts/records.py

Value types passed between the log source, the parser and the aggregator.

- LogPage: one page returned by the log source (raw lines + pagination cursor)
- InvocationRecord: numeric fields of one Lambda REPORT line

Both are immutable. An InvocationRecord is consumed by Bucket.update and then
dropped; nothing retains it.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class LogPage:
    """One page of log lines.

    `next_token` is the opaque pagination cursor; None means the source has no
    further pages for the query.
    """
    lines: Sequence[str]
    next_token: str | None = None

    @property
    def has_more(self) -> bool:
        return bool(self.next_token)


@dataclass(frozen=True)
class InvocationRecord:
    """Fields extracted from one REPORT line."""
    request_id: str
    duration_ms: float
    billed_duration_ms: int
    memory_size_mb: int
    max_memory_used_mb: float
