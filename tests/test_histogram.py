"""Tests for the bounded-memory streaming histogram."""

from __future__ import annotations

import bisect
import math
import random

import pytest

from analysis.histogram import StreamingHistogram


def test_empty_histogram_answers_none() -> None:
    hist = StreamingHistogram(16)

    assert hist.count == 0
    assert hist.quantile(0.5) is None
    assert hist.min is None
    assert hist.mean is None


def test_small_sample_quantiles_are_exact_nearest_rank() -> None:
    hist = StreamingHistogram(16)
    hist.extend([2337.93, 274.08, 909.48, 768.76])

    assert hist.quantile(0.01) == 274.08
    assert hist.quantile(0.25) == 768.76
    assert hist.quantile(0.50) == 909.48
    assert hist.quantile(0.99) == 2337.93
    assert hist.quantile(0.0) == 274.08
    assert hist.quantile(1.0) == 2337.93


def test_query_can_be_interleaved_with_updates() -> None:
    hist = StreamingHistogram(8)
    hist.update(10.0)
    assert hist.quantile(0.5) == 10.0

    hist.update(30.0)
    hist.update(20.0)
    assert hist.quantile(0.5) == 20.0
    assert hist.count == 3


def test_centroid_count_stays_bounded() -> None:
    hist = StreamingHistogram(32)
    rng = random.Random(7)
    for _ in range(10_000):
        hist.update(rng.uniform(0.0, 1000.0))

    assert hist.count == 10_000
    assert len(hist.centroids()) <= 32
    assert sum(weight for _, weight in hist.centroids()) == 10_000


def test_large_uniform_stream_quantiles_are_close() -> None:
    hist = StreamingHistogram(128)
    rng = random.Random(42)
    samples = [rng.uniform(0.0, 1000.0) for _ in range(20_000)]
    hist.extend(samples)

    ordered = sorted(samples)
    for phi in (0.1, 0.5, 0.9, 0.99):
        exact = ordered[int(phi * (len(ordered) - 1) + 0.5)]
        assert abs(hist.quantile(phi) - exact) < 25.0


def test_min_max_and_mean_are_exact_after_compression() -> None:
    hist = StreamingHistogram(8)
    values = [float(v) for v in range(1, 101)]
    hist.extend(values)

    assert hist.min == 1.0
    assert hist.max == 100.0
    assert hist.mean == pytest.approx(50.5)
    assert hist.quantile(0.0) == 1.0
    assert hist.quantile(1.0) == 100.0


def test_quantile_is_monotone_in_probability() -> None:
    hist = StreamingHistogram(16)
    rng = random.Random(3)
    for _ in range(2_000):
        hist.update(rng.choice([rng.gauss(100, 5), rng.gauss(900, 40)]))

    answers = [hist.quantile(i / 100) for i in range(101)]
    assert answers == sorted(answers)


def test_merge_combines_counts_and_extremes() -> None:
    left = StreamingHistogram(16)
    right = StreamingHistogram(16)
    left.extend([1.0, 2.0, 3.0])
    right.extend([10.0, 20.0])

    left.merge(right)

    assert left.count == 5
    assert left.min == 1.0
    assert left.max == 20.0
    assert left.quantile(0.5) == 3.0
    assert right.count == 2


def test_merge_keeps_bins_bounded() -> None:
    left = StreamingHistogram(8)
    right = StreamingHistogram(8)
    left.extend(float(v) for v in range(50))
    right.extend(float(v) for v in range(50, 100))

    left.merge(right)

    assert left.count == 100
    assert len(left.centroids()) <= 8


def test_duplicate_values_share_a_centroid() -> None:
    hist = StreamingHistogram(4)
    hist.extend([5.0] * 100)

    assert hist.centroids() == [(5.0, 100)]
    assert hist.quantile(0.37) == 5.0


@pytest.mark.parametrize("phi", [-0.1, 1.5, math.nan])
def test_quantile_rejects_out_of_range_probability(phi: float) -> None:
    hist = StreamingHistogram(4)
    hist.update(1.0)

    with pytest.raises(ValueError):
        hist.quantile(phi)


def test_update_rejects_nan() -> None:
    with pytest.raises(ValueError):
        StreamingHistogram(4).update(math.nan)


def test_max_bins_must_be_at_least_two() -> None:
    with pytest.raises(ValueError):
        StreamingHistogram(1)


def _rank_error(ordered: list[float], answer: float, rank: int) -> int:
    """Distance between ``rank`` and the rank range occupied by ``answer``."""
    lo = bisect.bisect_left(ordered, answer)
    hi = bisect.bisect_right(ordered, answer)
    if lo <= rank <= hi:
        return 0
    return min(abs(rank - lo), abs(rank - hi))


def _assert_rank_errors(hist: StreamingHistogram, samples: list[float]) -> None:
    ordered = sorted(samples)
    n = len(ordered)
    for phi, tolerance in ((0.01, 0.01), (0.25, 0.02), (0.5, 0.02), (0.75, 0.02), (0.99, 0.01)):
        rank = int(phi * (n - 1) + 0.5)
        answer = hist.quantile(phi)
        assert _rank_error(ordered, answer, rank) <= tolerance * n, (phi, answer, ordered[rank])


def _bimodal_sorted(n: int) -> list[float]:
    rng = random.Random(11)
    fast = [max(1.0, rng.gauss(100.0, 10.0)) for _ in range(int(n * 0.7))]
    slow = [rng.gauss(3000.0, 20.0) for _ in range(n - len(fast))]
    return sorted(fast + slow)


def test_sorted_bimodal_stream_keeps_both_modes() -> None:
    samples = _bimodal_sorted(50_000)
    hist = StreamingHistogram(256)
    hist.extend(samples)

    assert not hist.exact
    assert len(hist.centroids()) <= 256
    assert max(weight for _, weight in hist.centroids()) <= 0.05 * len(samples)
    assert hist.quantile(0.01) < 100.0
    assert hist.quantile(0.99) > 3000.0
    _assert_rank_errors(hist, samples)


def test_descending_stream_is_as_accurate_as_ascending() -> None:
    samples = _bimodal_sorted(30_000)
    hist = StreamingHistogram(128)
    hist.extend(reversed(samples))

    _assert_rank_errors(hist, samples)


def test_drifting_stream_quantiles() -> None:
    rng = random.Random(5)
    n = 40_000
    samples = [rng.uniform(0.0, 100.0) + 900.0 * i / n for i in range(n)]
    hist = StreamingHistogram(256)
    hist.extend(samples)

    _assert_rank_errors(hist, samples)


def test_heavy_tailed_stream_p99() -> None:
    rng = random.Random(17)
    samples = [rng.lognormvariate(5.0, 1.0) for _ in range(60_000)]
    hist = StreamingHistogram(256)
    hist.extend(samples)

    ordered = sorted(samples)
    exact_p99 = ordered[int(0.99 * (len(ordered) - 1) + 0.5)]
    assert abs(hist.quantile(0.99) - exact_p99) / exact_p99 < 0.10
    _assert_rank_errors(hist, samples)


def test_tail_centroids_stay_small() -> None:
    hist = StreamingHistogram(64)
    hist.extend(float(v) for v in range(20_000))

    centroids = hist.centroids()
    middle = max(weight for _, weight in centroids)
    assert centroids[0][1] < middle
    assert centroids[-1][1] < middle


def test_exact_until_distinct_values_exceed_bins() -> None:
    hist = StreamingHistogram(8)
    hist.extend([1.0, 2.0, 3.0] * 50)

    assert hist.exact
    assert hist.quantile(0.5) == 2.0

    hist.extend(float(v) for v in range(10, 20))
    assert not hist.exact
