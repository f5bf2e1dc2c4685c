"""
analysis/suggest.py

Memory suggestion for a target percentile.

Duration is treated as roughly inversely proportional to allocated compute,
which Lambda scales with memory. The suggestion averages two ladder indexes:

1. target index: billing-ladder index of the bucket's duration at the
   percentile (smallest billed step strictly above the rounded-up duration)
2. current index: 1-based memory-ladder position of the bucket's own size
   (0 when the size is above the ladder)

    suggested = memory_ladder[clamp((target + current) // 2)]

Reference values: a four-sample bucket at 128 MB (durations 274.08, 768.76,
909.48 and 2337.93 ms) suggests 192 MB at p1 and 896 MB at p99.
"""

from __future__ import annotations

from collections.abc import Iterable

from analysis.bucket import Bucket
from analysis.ladders import AnalysisTables, BillingLadder, MemoryLadder


def suggestion_index(target_index: int, current_index: int, ladder: MemoryLadder) -> int:
    """Return the clamped memory-ladder index for the two input indexes."""
    return ladder.clamp_index((int(target_index) + int(current_index)) // 2)


def suggest_memory(
    bucket: Bucket,
    percentile: float,
    *,
    memory_ladder: MemoryLadder,
    billing_ladder: BillingLadder,
) -> int:
    """Return the recommended memory size (MB) for ``percentile`` of ``bucket``.

    Always returns a member of ``memory_ladder``.
    """
    duration = bucket.duration_hist.quantile(percentile)
    target_index, _ = billing_ladder.step_for(duration if duration is not None else 0.0)
    current_index = memory_ladder.position_of(bucket.size)
    return memory_ladder[suggestion_index(target_index, current_index, memory_ladder)]


def suggest_for_percentiles(
    bucket: Bucket,
    percentiles: Iterable[float],
    tables: AnalysisTables,
) -> list[tuple[float, int]]:
    """Return ``(percentile, suggested_mb)`` for each requested percentile."""
    return [
        (
            float(p),
            suggest_memory(bucket, p, memory_ladder=tables.memory, billing_ladder=tables.billing),
        )
        for p in percentiles
    ]
