"""
analysis/histogram.py

Bounded-memory streaming quantile estimator.

Algorithm
---------
The histogram keeps at most ``max_bins`` weighted centroids ``(value, weight)``
sorted by value, plus an insertion buffer of at most ``max_bins`` raw samples.
Exact ``count``, ``min``, ``max`` and ``total`` are tracked separately.

update(x)
    Append ``x`` to the buffer. When the buffer is full it is flushed.

flush / merge(other)
    Merge the buffered samples (weight 1), or another histogram's centroids,
    into the sorted centroid list (equal values share one centroid). Nothing
    is merged while at most ``max_bins`` distinct values are held.

compress
    One left-to-right pass in the style of a merging t-digest. The k1 scale
    function ``k(q) = delta / (2 * pi) * asin(2q - 1)`` (``delta = max_bins - 1``)
    maps a cumulative share ``q`` to a scale position; a centroid absorbs its
    right neighbour only while the merged centroid spans at most one unit of
    ``k``. The cap on a centroid's weight depends on where it sits in the
    distribution (about ``pi * count / delta`` at the median, far less in the
    tails), never on value gaps, so time-ordered or drifting input cannot pile
    the mass into a single centroid. A pass that still leaves more than
    ``max_bins`` centroids is repeated with a smaller ``delta``.

quantile(phi)
    ``phi <= 0`` returns the exact minimum and ``phi >= 1`` the exact maximum.
    Otherwise the nearest rank ``r = floor(phi * (count - 1) + 0.5)`` is used:
    - before any compression, the centroid whose cumulative weight first
      exceeds ``r`` (exact order statistic)
    - afterwards, ``r + 0.5`` is interpolated between adjacent centroid
      centres, toward the exact min / max beyond the first / last centre;
      weight-1 centroids answer with their own value

Accuracy contract
-----------------
- While at most ``max_bins`` distinct values have been seen, quantiles are
  exact nearest-rank order statistics of the observed samples.
- Afterwards the rank error is bounded by the weight of the centroids around
  the target rank: roughly ``2 * pi / max_bins`` of ``count`` at the median and
  much less toward p1 / p99, whatever the arrival order.
- Answers stay within ``[min, max]``; quantile() is monotone non-decreasing
  in ``phi``.
- Memory is O(max_bins) regardless of the number of samples.

Not thread-safe: a histogram assumes a single writer.
"""

from __future__ import annotations

import math
from typing import Iterable

from analysis.defaults import HISTOGRAM_MAX_BINS

# Factor applied to delta when a compression pass leaves too many centroids.
_DELTA_SHRINK = 0.9


def _scale(q: float, norm: float) -> float:
    """k1 scale function: ``norm * asin(2q - 1)`` with ``q`` clamped to [0, 1]."""
    return norm * math.asin(2.0 * min(max(q, 0.0), 1.0) - 1.0)


class StreamingHistogram:
    """Approximate quantiles over an unbounded stream of floats."""

    __slots__ = (
        "_max_bins",
        "_values",
        "_weights",
        "_buffer",
        "_count",
        "_min",
        "_max",
        "_total",
        "_exact",
    )

    def __init__(self, max_bins: int = HISTOGRAM_MAX_BINS) -> None:
        if int(max_bins) < 2:
            raise ValueError("max_bins must be >= 2")
        self._max_bins = int(max_bins)
        self._values: list[float] = []
        self._weights: list[int] = []
        self._buffer: list[float] = []
        self._count = 0
        self._min = math.inf
        self._max = -math.inf
        self._total = 0.0
        # True until two distinct values have been folded into one centroid.
        self._exact = True

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def max_bins(self) -> int:
        return self._max_bins

    @property
    def count(self) -> int:
        return self._count

    @property
    def min(self) -> float | None:
        return self._min if self._count else None

    @property
    def max(self) -> float | None:
        return self._max if self._count else None

    @property
    def mean(self) -> float | None:
        return self._total / self._count if self._count else None

    @property
    def exact(self) -> bool:
        """True while quantiles are exact order statistics."""
        return self._exact

    def __len__(self) -> int:
        return self._count

    def centroids(self) -> list[tuple[float, int]]:
        """Return the current ``(value, weight)`` centroids (buffer flushed)."""
        self._flush()
        return list(zip(self._values, self._weights))

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update(self, value: float) -> None:
        x = float(value)
        if math.isnan(x):
            raise ValueError("cannot add NaN to a histogram")
        self._count += 1
        self._total += x
        if x < self._min:
            self._min = x
        if x > self._max:
            self._max = x
        self._buffer.append(x)
        if len(self._buffer) >= self._max_bins:
            self._flush()

    def extend(self, values: Iterable[float]) -> None:
        for value in values:
            self.update(value)

    def merge(self, other: StreamingHistogram) -> None:
        """Fold ``other`` into this histogram. ``other`` is left unchanged."""
        if other is self:
            raise ValueError("cannot merge a histogram into itself")
        if not other._count:
            return
        self._flush()
        pairs = sorted(
            list(zip(other._values, other._weights)) + [(x, 1) for x in other._buffer]
        )
        self._exact = self._exact and other._exact
        self._absorb(pairs)
        self._count += other._count
        self._total += other._total
        self._min = min(self._min, other._min)
        self._max = max(self._max, other._max)

    def _flush(self) -> None:
        if not self._buffer:
            return
        pairs = [(x, 1) for x in sorted(self._buffer)]
        self._buffer.clear()
        self._absorb(pairs)

    def _absorb(self, pairs: list[tuple[float, int]]) -> None:
        """Merge sorted ``(value, weight)`` pairs into the centroids, then compress."""
        values: list[float] = []
        weights: list[int] = []
        i = j = 0
        while i < len(self._values) or j < len(pairs):
            if j >= len(pairs) or (i < len(self._values) and self._values[i] <= pairs[j][0]):
                value, weight = self._values[i], self._weights[i]
                i += 1
            else:
                value, weight = pairs[j]
                j += 1
            if values and values[-1] == value:
                weights[-1] += weight
            else:
                values.append(value)
                weights.append(weight)
        self._values, self._weights = values, weights
        self._compress()

    def _compress(self) -> None:
        if len(self._values) <= self._max_bins:
            return
        self._exact = False
        delta = float(self._max_bins - 1)
        while True:
            values, weights = self._merge_pass(delta)
            if len(values) <= self._max_bins:
                break
            delta *= _DELTA_SHRINK
        self._values, self._weights = values, weights

    def _merge_pass(self, delta: float) -> tuple[list[float], list[int]]:
        total = float(sum(self._weights))
        norm = delta / (2.0 * math.pi)

        values = [self._values[0]]
        weights = [self._weights[0]]
        weight_before = 0
        k_left = _scale(0.0, norm)
        for value, weight in zip(self._values[1:], self._weights[1:]):
            merged = weights[-1] + weight
            if _scale((weight_before + merged) / total, norm) - k_left <= 1.0:
                values[-1] += (value - values[-1]) * weight / merged
                weights[-1] = merged
            else:
                weight_before += weights[-1]
                k_left = _scale(weight_before / total, norm)
                values.append(value)
                weights.append(weight)
        return values, weights

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def quantile(self, phi: float) -> float | None:
        """Return the approximate ``phi``-quantile, or None when empty."""
        p = float(phi)
        if math.isnan(p) or p < 0.0 or p > 1.0:
            raise ValueError(f"quantile probability must be within [0, 1], got {phi!r}")
        if not self._count:
            return None
        if p == 0.0:
            return self._min
        if p == 1.0:
            return self._max

        self._flush()
        rank = min(int(p * (self._count - 1) + 0.5), self._count - 1)
        if self._exact:
            answer = self._rank_value(rank)
        else:
            answer = self._interpolate(rank + 0.5)
        return min(max(answer, self._min), self._max)

    def _rank_value(self, rank: int) -> float:
        cumulative = 0
        for value, weight in zip(self._values, self._weights):
            cumulative += weight
            if cumulative > rank:
                return value
        return self._max

    def _interpolate(self, target: float) -> float:
        values, weights = self._values, self._weights
        if len(values) == 1:
            return values[0]

        first_centre = weights[0] / 2.0
        if target <= first_centre:
            if weights[0] == 1:
                return values[0]
            return self._min + (values[0] - self._min) * target / first_centre

        last_centre = self._count - weights[-1] / 2.0
        if target >= last_centre:
            if weights[-1] == 1:
                return values[-1]
            return values[-1] + (self._max - values[-1]) * (target - last_centre) / (self._count - last_centre)

        cumulative = 0
        for idx in range(len(values) - 1):
            left_w, right_w = weights[idx], weights[idx + 1]
            left_centre = cumulative + left_w / 2.0
            right_start = cumulative + left_w
            right_centre = right_start + right_w / 2.0
            if target < right_centre:
                if left_w == 1 and target < right_start:
                    return values[idx]
                if right_w == 1 and target >= right_start:
                    return values[idx + 1]
                fraction = (target - left_centre) / (right_centre - left_centre)
                return values[idx] + (values[idx + 1] - values[idx]) * fraction
            cumulative = right_start
        return values[-1]

    def quantiles(self, phis: Iterable[float]) -> list[float | None]:
        return [self.quantile(phi) for phi in phis]
