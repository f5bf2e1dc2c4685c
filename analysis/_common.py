"""Shared helpers for the analysis components.

The analysis layer tends to repeat a few patterns:
- namespaced module loggers
- normalize timestamps to UTC / epoch milliseconds
- resolve the start of the query window from user input

Keeping these helpers in one place keeps behavior consistent across modules.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from dateutil import parser as _dtparser

_LOGGER_NAMESPACE = "lambdacost"

_UNIT_SECONDS = {
    "s": 1, "sec": 1, "secs": 1, "second": 1, "seconds": 1,
    "m": 60, "min": 60, "mins": 60, "minute": 60, "minutes": 60,
    "h": 3600, "hr": 3600, "hrs": 3600, "hour": 3600, "hours": 3600,
    "d": 86400, "day": 86400, "days": 86400,
    "w": 604800, "week": 604800, "weeks": 604800,
}

_RELATIVE_RX = re.compile(r"^(?P<amount>\d+|an?)\s*(?P<unit>[a-z]+)(?:\s+ago)?$")


def get_logger(name: str) -> logging.Logger:
    """Return the module logger namespaced under ``lambdacost``."""

    return logging.getLogger(f"{_LOGGER_NAMESPACE}.{name}")


def utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Return ``dt`` converted to timezone-aware UTC (or None)."""

    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def now_utc() -> datetime:
    """Return the current UTC timestamp."""

    return datetime.now(timezone.utc)


def to_epoch_millis(dt: datetime) -> int:
    """Return milliseconds since the Unix epoch (naive datetimes are UTC)."""

    aware = utc(dt)
    assert aware is not None
    return int(aware.timestamp() * 1000)


def parse_since(text: str, *, now: Optional[datetime] = None) -> datetime:
    """Resolve a ``--since`` expression into an aware UTC datetime.

    Accepted forms:
    - compact durations: ``30m``, ``2h``, ``1d``, ``45s``, ``1w``
    - relative phrases: ``90 minutes ago``, ``an hour ago``, ``a day ago``
    - ``now`` / ``yesterday``
    - absolute timestamps understood by python-dateutil (naive means UTC)

    Raises ValueError when the expression cannot be understood.
    """

    reference = utc(now) or now_utc()
    raw = str(text or "").strip().lower()
    if not raw:
        raise ValueError("empty time expression")

    if raw == "now":
        return reference
    if raw == "yesterday":
        return reference - timedelta(days=1)

    match = _RELATIVE_RX.match(raw)
    if match and match.group("unit") in _UNIT_SECONDS:
        amount_text = match.group("amount")
        amount = 1 if amount_text in {"a", "an"} else int(amount_text)
        return reference - timedelta(seconds=amount * _UNIT_SECONDS[match.group("unit")])

    try:
        parsed = _dtparser.parse(str(text).strip())
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"could not understand time expression {text!r}") from exc
    result = utc(parsed)
    assert result is not None
    return result
