"""Tests for the analysis runner: exit codes, time window and wiring."""

from __future__ import annotations

import io
from datetime import UTC, datetime, timedelta

import pytest
from botocore.exceptions import ProfileNotFound

import runner
from analysis._common import parse_since, to_epoch_millis
from contracts.records import LogPage
from contracts.services import ServicesFactory
from infra.config import FetchConfig, Settings
from infra.logging_config import get_request_context
from services.logs_source import CloudWatchLogsSource
from tests.aws_mocks import SAMPLE_REPORT_LINES, FakeLogSource, FakeSession, throttled, transport_failure

NOW = datetime(2026, 1, 24, 18, 0, tzinfo=UTC)


def _settings(**fetch: object) -> Settings:
    return Settings(fetch=FetchConfig(throttle_sleep_seconds=0.0, **fetch))


def _run(source: FakeLogSource, **kwargs: object) -> tuple[int, str]:
    out = io.StringIO()
    params: dict[str, object] = {"function_name": "checkout", "settings": _settings(), "now": NOW}
    params.update(kwargs)
    code = runner.run_analysis(source=source, output=out, **params)
    return code, out.getvalue()


def test_successful_run_writes_report() -> None:
    source = FakeLogSource([LogPage(lines=SAMPLE_REPORT_LINES)])

    code, text = _run(source)

    assert code == runner.EXIT_OK
    assert text.startswith("=== checkout since 2026-01-24T17:30:00+00:00 ===")
    assert "Suggestion for p1: 192 MB" in text
    assert "Suggestion for p99: 896 MB" in text
    assert source.calls[0]["log_group"] == "/aws/lambda/checkout"
    assert source.calls[0]["start_time_ms"] == to_epoch_millis(NOW - timedelta(minutes=30))


def test_since_overrides_lookback() -> None:
    source = FakeLogSource([LogPage(lines=SAMPLE_REPORT_LINES)])

    code, _ = _run(source, since="2h")

    assert code == runner.EXIT_OK
    assert source.calls[0]["start_time_ms"] == to_epoch_millis(NOW - timedelta(hours=2))


def test_percentiles_override_settings() -> None:
    code, text = _run(FakeLogSource([LogPage(lines=SAMPLE_REPORT_LINES)]), percentiles=[0.5])

    assert code == runner.EXIT_OK
    assert "Suggestion for p50:" in text
    assert "Suggestion for p99:" not in text


def test_fetch_failure_returns_exit_one_and_writes_nothing() -> None:
    source = FakeLogSource([LogPage(lines=SAMPLE_REPORT_LINES, next_token="t"), transport_failure()])

    code, text = _run(source)

    assert code == runner.EXIT_FETCH_FAILED
    assert text == ""


def test_no_matching_lines_returns_exit_three() -> None:
    code, text = _run(FakeLogSource([LogPage(lines=["START RequestId: x"])]))

    assert code == runner.EXIT_NO_DATA
    assert "No REPORT lines found" in text


def test_persistent_throttling_reports_partial_empty_result() -> None:
    source = FakeLogSource([throttled()])

    code, text = _run(source, settings=_settings(max_fetches=3))

    assert code == runner.EXIT_NO_DATA
    assert "WARNING: partial data (stopped: iteration_cap)" in text
    assert len(source.calls) == 3


@pytest.mark.parametrize(
    "kwargs",
    [{"function_name": "  "}, {"since": "the day before the thing"}],
)
def test_bad_input_returns_exit_two(kwargs: dict[str, object]) -> None:
    source = FakeLogSource([LogPage(lines=SAMPLE_REPORT_LINES)])

    code, _ = _run(source, **kwargs)

    assert code == runner.EXIT_BAD_INPUT
    assert source.calls == []


def test_request_context_is_cleared_after_run() -> None:
    _run(FakeLogSource([LogPage(lines=SAMPLE_REPORT_LINES)]))

    assert get_request_context() == {}


def test_profile_errors_return_exit_two(monkeypatch: pytest.MonkeyPatch) -> None:
    def _raise(cls, profile, *, sdk_config=None):
        raise ProfileNotFound(profile=profile)

    monkeypatch.setattr(ServicesFactory, "from_profile", classmethod(_raise))

    code = runner.run_analysis(
        function_name="checkout", profile="missing", settings=_settings(), output=io.StringIO(), now=NOW
    )

    assert code == runner.EXIT_BAD_INPUT


def test_build_log_source_uses_profile_and_region(monkeypatch: pytest.MonkeyPatch) -> None:
    session = FakeSession(region_name="us-east-1")
    seen: dict[str, object] = {}

    def _from_profile(cls, profile, *, sdk_config=None):
        seen["profile"] = profile
        return cls(session=session, sdk_config=sdk_config)

    monkeypatch.setattr(ServicesFactory, "from_profile", classmethod(_from_profile))

    source = runner.build_log_source(_settings(page_limit=100), profile="prod", region="eu-west-3")

    assert isinstance(source, CloudWatchLogsSource)
    assert seen["profile"] == "prod"
    assert session.client_calls[0][0] == "logs"
    assert session.client_calls[0][1]["region_name"] == "eu-west-3"


def test_resolve_start_time_defaults_to_lookback() -> None:
    assert runner.resolve_start_time(None, lookback_minutes=45, now=NOW) == NOW - timedelta(minutes=45)
    assert runner.resolve_start_time("  ", lookback_minutes=5, now=NOW) == NOW - timedelta(minutes=5)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("30m", NOW - timedelta(minutes=30)),
        ("2h", NOW - timedelta(hours=2)),
        ("1d", NOW - timedelta(days=1)),
        ("90 minutes ago", NOW - timedelta(minutes=90)),
        ("an hour ago", NOW - timedelta(hours=1)),
        ("yesterday", NOW - timedelta(days=1)),
        ("now", NOW),
        ("2026-01-24T10:15:00", datetime(2026, 1, 24, 10, 15, tzinfo=UTC)),
        ("2026-01-24T10:15:00+02:00", datetime(2026, 1, 24, 8, 15, tzinfo=UTC)),
    ],
)
def test_parse_since(text: str, expected: datetime) -> None:
    assert parse_since(text, now=NOW) == expected


@pytest.mark.parametrize("text", ["", "soon", "5 fortnights"])
def test_parse_since_rejects_unknown_expressions(text: str) -> None:
    with pytest.raises(ValueError):
        parse_since(text, now=NOW)
