"""
analysis/ladders.py

Static tables used by the suggestion engine and the cost estimator.

- MemoryLadder: the discrete memory sizes a function can be configured with
- BillingLadder: the step function mapping a raw duration to a billed duration
- PriceTable: simplified linear price per billing step for each ladder size

The tables are immutable and built once per run (see AnalysisTables.from_settings),
then passed by reference to the components that need them.
"""

from __future__ import annotations

import math
from bisect import bisect_left
from dataclasses import dataclass, field

from analysis.defaults import (
    BILLING_CAP_MS,
    BILLING_GRANULARITY_MS,
    MEMORY_MAX_MB,
    MEMORY_MIN_MB,
    MEMORY_STEP_MB,
    UNIT_PRICE_PER_STEP_USD,
)
from infra.config import LadderConfig, ReportConfig


@dataclass(frozen=True)
class MemoryLadder:
    """Ascending, immutable sequence of supported memory sizes (MB)."""

    sizes: tuple[int, ...]

    def __post_init__(self) -> None:
        if not self.sizes:
            raise ValueError("memory ladder must not be empty")
        if any(b <= a for a, b in zip(self.sizes, self.sizes[1:])):
            raise ValueError("memory ladder must be strictly ascending")

    @classmethod
    def build(
        cls,
        minimum: int = MEMORY_MIN_MB,
        maximum: int = MEMORY_MAX_MB,
        step: int = MEMORY_STEP_MB,
    ) -> MemoryLadder:
        if step <= 0:
            raise ValueError("memory ladder step must be positive")
        return cls(sizes=tuple(range(int(minimum), int(maximum) + 1, int(step))))

    def __len__(self) -> int:
        return len(self.sizes)

    def __getitem__(self, index: int) -> int:
        return self.sizes[index]

    def __contains__(self, size: object) -> bool:
        return size in self.sizes

    @property
    def first(self) -> int:
        return self.sizes[0]

    @property
    def last(self) -> int:
        return self.sizes[-1]

    def clamp_index(self, index: int) -> int:
        return max(0, min(int(index), len(self.sizes) - 1))

    def position_of(self, size_mb: int) -> int:
        """Return the 1-based position of the first size >= ``size_mb``.

        Sizes above the top of the ladder map to position 0 (the bottom size).
        """
        idx = bisect_left(self.sizes, size_mb)
        if idx >= len(self.sizes):
            return 0
        return idx + 1


@dataclass(frozen=True)
class BillingLadder:
    """Billing steps ``granularity, 2*granularity, ... cap`` (ms)."""

    granularity_ms: int = BILLING_GRANULARITY_MS
    cap_ms: int = BILLING_CAP_MS

    def __post_init__(self) -> None:
        if self.granularity_ms <= 0:
            raise ValueError("billing granularity must be positive")
        if self.cap_ms < self.granularity_ms:
            raise ValueError("billing cap must be >= granularity")

    def __len__(self) -> int:
        return self.cap_ms // self.granularity_ms

    def value_at(self, index: int) -> int:
        return (int(index) + 1) * self.granularity_ms

    def step_for(self, duration_ms: float) -> tuple[int, int]:
        """Return ``(index, billed_ms)`` for a raw duration.

        The duration is rounded up to a whole millisecond, then mapped to the
        smallest step strictly greater than it: a duration sitting exactly on
        a boundary lands on the next step. Durations past the cap stay on the
        last step.
        """
        whole = math.ceil(duration_ms) if math.isfinite(duration_ms) else self.cap_ms
        index = max(0, whole) // self.granularity_ms
        index = min(index, len(self) - 1)
        return index, self.value_at(index)


@dataclass(frozen=True)
class PriceTable:
    """Simplified linear pricing: the i-th ladder size (1-based) costs i units per step.

    Illustrative only; this is not GB-second pricing.
    """

    unit_prices: dict[int, float] = field(default_factory=dict)

    @classmethod
    def linear(cls, ladder: MemoryLadder, unit_price: float = UNIT_PRICE_PER_STEP_USD) -> PriceTable:
        return cls(unit_prices={size: unit_price * pos for pos, size in enumerate(ladder.sizes, start=1)})

    def price_per_step(self, size_mb: int) -> float:
        """Return the price of one billing step for ``size_mb`` (0.0 off-ladder)."""
        return float(self.unit_prices.get(int(size_mb), 0.0))


@dataclass(frozen=True)
class AnalysisTables:
    """Immutable bundle of the tables a run needs."""

    memory: MemoryLadder
    billing: BillingLadder
    prices: PriceTable

    @classmethod
    def default(cls) -> AnalysisTables:
        memory = MemoryLadder.build()
        return cls(memory=memory, billing=BillingLadder(), prices=PriceTable.linear(memory))

    @classmethod
    def from_settings(cls, ladder: LadderConfig, report: ReportConfig) -> AnalysisTables:
        memory = MemoryLadder.build(ladder.memory_min_mb, ladder.memory_max_mb, ladder.memory_step_mb)
        billing = BillingLadder(granularity_ms=ladder.billing_granularity_ms, cap_ms=ladder.billing_cap_ms)
        return cls(memory=memory, billing=billing, prices=PriceTable.linear(memory, report.unit_price_per_step))
