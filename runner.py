"""
runner.py

Lambda memory/cost analysis runner (CloudWatch REPORT lines -> buckets -> report).

Pipeline:
  settings -> boto3 session (profile) -> logs client
    -> fetch loop (pagination, throttle backoff, deadline, iteration cap)
      -> line parser -> bucket store
        -> report (distributions, cost estimate, memory suggestions)

Analyze the last 30 minutes (default window):
python runner.py my-function

Use a named profile and a longer window:
python runner.py my-function --profile prod --since "2 hours ago"

Exit codes:
  0  report written (including partial data after a deadline / iteration cap)
  1  log retrieval failed (accumulated data discarded)
  2  bad input (unknown time expression, AWS profile/region problem)
  3  report written but no REPORT line matched
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import TextIO

from botocore.exceptions import BotoCoreError

from analysis._common import get_logger, now_utc, parse_since
from analysis.fetcher import LogFetcher
from analysis.ladders import AnalysisTables
from analysis.report import render_report
from contracts.errors import LogFetchError
from contracts.interfaces import LogSourceProtocol
from contracts.services import ServicesFactory
from infra.aws_config import build_sdk_config
from infra.config import Settings, get_settings
from infra.logging_config import clear_request_context, set_request_context, setup_logging
from services.logs_source import CloudWatchLogsSource
from version import ENGINE_NAME, ENGINE_VERSION

EXIT_OK = 0
EXIT_FETCH_FAILED = 1
EXIT_BAD_INPUT = 2
EXIT_NO_DATA = 3

_LOGGER = get_logger("runner")


def _make_run_id(run_ts: datetime) -> str:
    return f"run-{run_ts.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')}"


def resolve_start_time(
    since: str | None,
    *,
    lookback_minutes: int,
    now: datetime | None = None,
) -> datetime:
    """Return the start of the query window (``since`` wins over the lookback)."""
    reference = now or now_utc()
    if since and since.strip():
        return parse_since(since, now=reference)
    return reference - timedelta(minutes=int(lookback_minutes))


def build_log_source(settings: Settings, *, profile: str | None, region: str | None) -> LogSourceProtocol:
    """Create the CloudWatch Logs source for the selected profile/region."""
    factory = ServicesFactory.from_profile(
        profile or settings.aws.profile,
        sdk_config=build_sdk_config(settings.aws),
    )
    services = factory.for_region(region or settings.aws.region)
    _LOGGER.debug("Created logs client", extra={"region": services.region})
    return CloudWatchLogsSource(services.logs, page_limit=settings.fetch.page_limit)


def run_analysis(
    *,
    function_name: str,
    profile: str | None = None,
    region: str | None = None,
    since: str | None = None,
    timeout_seconds: float | None = None,
    percentiles: Sequence[float] | None = None,
    settings: Settings | None = None,
    source: LogSourceProtocol | None = None,
    output: TextIO | None = None,
    now: datetime | None = None,
) -> int:
    """Fetch, aggregate and report on one function. Returns a process exit code."""
    settings = settings or get_settings()
    out = output or sys.stdout
    run_ts = now or now_utc()

    name = str(function_name or "").strip()
    if not name:
        _LOGGER.error("Missing function name")
        return EXIT_BAD_INPUT

    try:
        start_time = resolve_start_time(since, lookback_minutes=settings.fetch.lookback_minutes, now=run_ts)
    except ValueError as exc:
        _LOGGER.error("Invalid --since expression: %s", exc)
        return EXIT_BAD_INPUT

    if source is None:
        try:
            source = build_log_source(settings, profile=profile, region=region)
        except BotoCoreError as exc:
            _LOGGER.error("Could not create AWS logs client: %s", exc)
            return EXIT_BAD_INPUT

    tables = AnalysisTables.from_settings(settings.ladder, settings.report)
    fetcher = LogFetcher.from_settings(source, settings.fetch, settings.ladder)
    timeout = timeout_seconds if timeout_seconds is not None else settings.fetch.timeout_seconds

    set_request_context(
        run_id=_make_run_id(run_ts),
        function_name=name,
        log_group=fetcher.log_group_for(name),
    )
    try:
        _LOGGER.info("Start fetching logs for %s starting on %s", name, start_time.isoformat())
        try:
            result = fetcher.fetch_buckets(name, start_time, timeout=timeout)
        except LogFetchError as exc:
            _LOGGER.error(
                "Error fetching logs: %s",
                exc,
                extra={"pages_fetched": exc.pages_fetched, "lines_seen": exc.lines_seen},
            )
            return EXIT_FETCH_FAILED

        render_report(
            result,
            out,
            function_name=name,
            start_time=start_time,
            tables=tables,
            percentiles=list(percentiles) if percentiles else settings.report.percentiles,
            min_share_of_top=settings.report.min_share_of_top,
            base_cost=settings.report.base_cost_per_million,
        )
        if result.diagnostics.matched == 0:
            return EXIT_NO_DATA
        return EXIT_OK
    finally:
        clear_request_context()


def _percentile_arg(text: str) -> float:
    try:
        value = float(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from exc
    if not 0.0 <= value <= 1.0:
        raise argparse.ArgumentTypeError(f"percentile must be within [0, 1]: {text!r}")
    return value


def add_analyze_arguments(parser: argparse.ArgumentParser) -> None:
    """Arguments shared by ``python -m runner`` and ``lambdacost analyze``."""
    parser.add_argument("function_name", help="Lambda function name (log group /aws/lambda/<name>)")
    parser.add_argument("-p", "--profile", default=None, help="AWS profile used to authenticate")
    parser.add_argument("--region", default=None, help="AWS region (default: profile/env region)")
    parser.add_argument(
        "-s",
        "--since",
        default=None,
        help="Start of the window: '30m', '2h', '90 minutes ago', or a timestamp (default: 30 minutes ago)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Stop fetching after this many seconds and report partial data (default: 300)",
    )
    parser.add_argument(
        "--percentile",
        action="append",
        type=_percentile_arg,
        default=None,
        help="Percentile to report, in [0, 1]. Repeatable. Default: 0.01 0.25 0.5 0.75 0.99",
    )
    parser.add_argument("--log-level", default=None, help="DEBUG|INFO|WARNING|ERROR")
    parser.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs on stderr")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyze Lambda REPORT logs and suggest a memory size")
    add_analyze_arguments(parser)
    return parser.parse_args(argv)


def run_from_args(args: argparse.Namespace) -> int:
    setup_logging(level=args.log_level, json_logs=True if args.json_logs else None)
    _LOGGER.debug("%s %s", ENGINE_NAME, ENGINE_VERSION)
    return run_analysis(
        function_name=args.function_name,
        profile=args.profile,
        region=args.region,
        since=args.since,
        timeout_seconds=args.timeout,
        percentiles=args.percentile,
    )


def main(argv: Sequence[str]) -> int:
    return run_from_args(_parse_args(argv))


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
