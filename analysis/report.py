"""
analysis/report.py

Human-readable report for the buckets of one analysis run.

Buckets are emitted in ascending memory size and billed-duration rows in
ascending billed value, so two runs over the same data print the same text.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TextIO

from analysis.bucket import Bucket
from analysis.cost import estimate_cost_per_million
from analysis.defaults import BASE_COST_PER_MILLION_USD, REPORT_MIN_SHARE_OF_TOP, REPORT_PERCENTILES
from analysis.fetcher import FetchResult, StopReason
from analysis.ladders import AnalysisTables
from analysis.suggest import suggest_for_percentiles


def percentile_label(p: float) -> str:
    """``0.5 -> 'p50'``, ``0.999 -> 'p99.9'``."""
    value = round(float(p) * 100.0, 4)
    if value == int(value):
        return f"p{int(value)}"
    return f"p{value:g}"


def _fmt_number(value: float | None, digits: int) -> str:
    if value is None:
        return "n/a"
    return f"{value:.{digits}f}"


def top_billed_durations(bucket: Bucket, min_share_of_top: float) -> list[tuple[int, int]]:
    """Billed-duration rows whose count exceeds ``min_share_of_top`` of the top row."""
    rows = bucket.billed_durations()
    if not rows:
        return []
    max_count = max(count for _, count in rows)
    threshold = int(max_count * float(min_share_of_top))
    return [(billed, count) for billed, count in rows if count > threshold]


def render_bucket(
    bucket: Bucket,
    output: TextIO,
    *,
    tables: AnalysisTables,
    percentiles: Sequence[float] = REPORT_PERCENTILES,
    min_share_of_top: float = REPORT_MIN_SHARE_OF_TOP,
    base_cost: float = BASE_COST_PER_MILLION_USD,
) -> None:
    def emit(line: str = "") -> None:
        output.write(line + "\n")

    emit(f">> Analyzing stats for memory bucket: {bucket.size} MB (total requests: {bucket.count})")

    emit("> Top requests per billed duration")
    for billed, count in top_billed_durations(bucket, min_share_of_top):
        share = count / bucket.count if bucket.count else 0.0
        emit(f"{billed} ms: {count} ({share * 100:.2f}%)")

    cost = estimate_cost_per_million(
        bucket, prices=tables.prices, billing_ladder=tables.billing, base_cost=base_cost
    )
    emit(f"Estimated cost per million requests: {cost:.2f}$")
    emit()

    emit("> Distribution for durations")
    for p in percentiles:
        duration = bucket.duration_hist.quantile(p)
        billed = tables.billing.step_for(duration)[1] if duration is not None else None
        emit(f"{percentile_label(p)}: {_fmt_number(duration, 2)} ms (billed: {billed if billed is not None else 'n/a'} ms)")
    emit()

    emit("> Distribution for used memory")
    for p in percentiles:
        emit(f"{percentile_label(p)}: {_fmt_number(bucket.memory_hist.quantile(p), 1)} MB")
    emit()

    emit("> Suggested memory based on your usage")
    for p, suggested in suggest_for_percentiles(bucket, percentiles, tables):
        emit(f"Suggestion for {percentile_label(p)}: {suggested} MB")
    emit()


def render_report(
    result: FetchResult,
    output: TextIO,
    *,
    function_name: str,
    start_time: datetime,
    tables: AnalysisTables,
    percentiles: Sequence[float] = REPORT_PERCENTILES,
    min_share_of_top: float = REPORT_MIN_SHARE_OF_TOP,
    base_cost: float = BASE_COST_PER_MILLION_USD,
) -> None:
    """Write the run summary followed by one section per bucket."""
    diag = result.diagnostics
    output.write(f"=== {function_name} since {start_time.isoformat()} ===\n")
    output.write(
        f"pages: {result.pages}  throttled: {result.throttled}  "
        f"matched: {diag.matched}  unmatched: {diag.unmatched}  malformed: {diag.malformed}\n"
    )
    if result.stop_reason is not StopReason.COMPLETED:
        output.write(f"WARNING: partial data (stopped: {result.stop_reason.value})\n")
    output.write("\n")

    if not len(result.buckets):
        output.write("No REPORT lines found in the requested window.\n")
        return

    for bucket in result.buckets.sorted_buckets():
        render_bucket(
            bucket,
            output,
            tables=tables,
            percentiles=percentiles,
            min_share_of_top=min_share_of_top,
            base_cost=base_cost,
        )
