"""
analysis/event_parser.py

Line parser for Lambda ``REPORT`` log lines.

Expected layout (tab separated, trailing fields ignored)::

    REPORT RequestId: <id>  Duration: <ms> ms  Billed Duration: <ms> ms
    Memory Size: <MB> MB  Max Memory Used: <MB> MB  [Init Duration: ...] ...

Outcomes for one line:
- matched and converted: the record is added to the BucketStore
- layout not matched: skipped, counted as ``unmatched``
- layout matched but a numeric field does not convert (or is negative /
  non-finite): skipped, counted as ``malformed``; never defaulted to zero
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from analysis._common import get_logger
from analysis.bucket import BucketStore
from analysis.defaults import MALFORMED_WARNING_LIMIT
from contracts.errors import LineParseError, MalformedFieldError, UnmatchedLineError
from contracts.records import InvocationRecord
from infra.logging_config import StructuredLogger

_LOGGER = StructuredLogger(get_logger("event_parser"))

REPORT_LINE_RX = re.compile(
    r"REPORT RequestId:\s*(?P<request_id>[\w-]+)"
    r"\s+Duration:\s*(?P<duration>\S+) ms"
    r"\s+Billed Duration:\s*(?P<billed>\S+) ms"
    r"\s+Memory Size:\s*(?P<memory>\S+) MB"
    r"\s+Max Memory Used:\s*(?P<used>\S+) MB"
)

_SNIPPET_LEN = 160


def _to_float(field_name: str, raw: str) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedFieldError(field_name, raw) from exc
    if not math.isfinite(value) or value < 0.0:
        raise MalformedFieldError(field_name, raw)
    return value


def _to_int(field_name: str, raw: str, *, positive: bool = False) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedFieldError(field_name, raw) from exc
    if value < 0 or (positive and value == 0):
        raise MalformedFieldError(field_name, raw)
    return value


def parse_report_line(line: str) -> InvocationRecord:
    """Parse one REPORT line.

    Raises UnmatchedLineError when the layout does not match and
    MalformedFieldError when a numeric field does not convert.
    """
    match = REPORT_LINE_RX.search(line or "")
    if match is None:
        raise UnmatchedLineError("not a REPORT line")

    return InvocationRecord(
        request_id=match.group("request_id"),
        duration_ms=_to_float("duration", match.group("duration")),
        billed_duration_ms=_to_int("billed_duration", match.group("billed")),
        memory_size_mb=_to_int("memory_size", match.group("memory"), positive=True),
        max_memory_used_mb=_to_float("max_memory_used", match.group("used")),
    )


@dataclass
class ParseDiagnostics:
    """Counters for lines seen by the parser."""

    matched: int = 0
    unmatched: int = 0
    malformed: int = 0
    malformed_by_field: dict[str, int] = field(default_factory=dict)

    @property
    def seen(self) -> int:
        return self.matched + self.unmatched + self.malformed

    @property
    def skipped(self) -> int:
        return self.unmatched + self.malformed


class EventParser:
    """Feeds parsed REPORT lines into a BucketStore."""

    def __init__(self, store: BucketStore | None = None) -> None:
        self.store = store if store is not None else BucketStore()
        self.diagnostics = ParseDiagnostics()

    def parse_events(self, lines: Iterable[str]) -> int:
        """Parse a batch of lines; return how many were added to the store."""
        added = 0
        for line in lines:
            if self.parse_event(line):
                added += 1
        return added

    def parse_event(self, line: str) -> bool:
        try:
            record = parse_report_line(line)
        except MalformedFieldError as exc:
            self._record_malformed(exc, line)
            return False
        except LineParseError:
            self.diagnostics.unmatched += 1
            _LOGGER.debug("line_unmatched", line=(line or "")[:_SNIPPET_LEN])
            return False

        self.store.add(record)
        self.diagnostics.matched += 1
        return True

    def _record_malformed(self, exc: MalformedFieldError, line: str) -> None:
        diag = self.diagnostics
        diag.malformed += 1
        diag.malformed_by_field[exc.field] = diag.malformed_by_field.get(exc.field, 0) + 1
        log = _LOGGER.warning if diag.malformed <= MALFORMED_WARNING_LIMIT else _LOGGER.debug
        log("line_malformed", field=exc.field, raw=exc.raw, line=(line or "")[:_SNIPPET_LEN])
