"""
analysis/bucket.py

Per-memory-size aggregation.

A Bucket owns the running statistics for every invocation observed at one
configured memory size: a request count, streaming histograms of duration and
max memory used, and an exact tally per billed duration.

Invariants
----------
- ``count`` equals the number of update() calls
- ``sum(billed_duration_counts.values()) == count``

The BucketStore creates buckets lazily, keyed by memory size, and never merges
or drops them during a run. Neither class is safe for concurrent writers.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from analysis.defaults import HISTOGRAM_MAX_BINS
from analysis.histogram import StreamingHistogram
from contracts.records import InvocationRecord


@dataclass
class Bucket:
    """Statistics for all invocations observed at one memory size (MB)."""

    size: int
    max_bins: int = HISTOGRAM_MAX_BINS
    count: int = 0
    duration_hist: StreamingHistogram = field(init=False)
    memory_hist: StreamingHistogram = field(init=False)
    billed_duration_counts: dict[int, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.duration_hist = StreamingHistogram(self.max_bins)
        self.memory_hist = StreamingHistogram(self.max_bins)

    def update(self, duration_ms: float, memory_used_mb: float, billed_duration_ms: int) -> None:
        self.count += 1
        self.duration_hist.update(duration_ms)
        self.memory_hist.update(memory_used_mb)
        key = int(billed_duration_ms)
        self.billed_duration_counts[key] = self.billed_duration_counts.get(key, 0) + 1

    def add(self, record: InvocationRecord) -> None:
        self.update(record.duration_ms, record.max_memory_used_mb, record.billed_duration_ms)

    def billed_durations(self) -> list[tuple[int, int]]:
        """Return ``(billed_ms, count)`` pairs sorted by billed duration."""
        return sorted(self.billed_duration_counts.items())


class BucketStore:
    """Mapping of memory size (MB) -> Bucket, created on demand."""

    def __init__(self, *, max_bins: int = HISTOGRAM_MAX_BINS) -> None:
        self._max_bins = int(max_bins)
        self._buckets: dict[int, Bucket] = {}

    def get_or_create(self, size_mb: int) -> Bucket:
        key = int(size_mb)
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = Bucket(size=key, max_bins=self._max_bins)
            self._buckets[key] = bucket
        return bucket

    def add(self, record: InvocationRecord) -> Bucket:
        bucket = self.get_or_create(record.memory_size_mb)
        bucket.add(record)
        return bucket

    def get(self, size_mb: int) -> Bucket | None:
        return self._buckets.get(int(size_mb))

    def sizes(self) -> list[int]:
        return sorted(self._buckets)

    def sorted_buckets(self) -> list[Bucket]:
        """Buckets in ascending memory size (stable report order)."""
        return [self._buckets[size] for size in self.sizes()]

    @property
    def total_count(self) -> int:
        return sum(bucket.count for bucket in self._buckets.values())

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, size_mb: object) -> bool:
        return size_mb in self._buckets

    def __getitem__(self, size_mb: int) -> Bucket:
        return self._buckets[int(size_mb)]

    def __iter__(self) -> Iterator[Bucket]:
        return iter(self.sorted_buckets())
