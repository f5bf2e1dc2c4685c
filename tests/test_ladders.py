"""Tests for the memory ladder, billing ladder and price table."""

from __future__ import annotations

import pytest

from analysis.ladders import AnalysisTables, BillingLadder, MemoryLadder, PriceTable
from infra.config import LadderConfig, ReportConfig


def test_memory_ladder_default_range() -> None:
    ladder = MemoryLadder.build(128, 3008, 64)

    assert ladder.first == 128
    assert ladder.last == 3008
    assert len(ladder) == 46
    assert ladder[1] == 192


def test_memory_ladder_position_is_one_based_first_size_at_or_above() -> None:
    ladder = MemoryLadder.build()

    assert ladder.position_of(128) == 1
    assert ladder.position_of(100) == 1
    assert ladder.position_of(129) == 2
    assert ladder.position_of(3008) == 46


def test_memory_ladder_position_above_top_falls_back_to_zero() -> None:
    ladder = MemoryLadder.build()

    assert ladder.position_of(4096) == 0
    assert ladder[ladder.position_of(4096)] == 128


def test_memory_ladder_rejects_bad_input() -> None:
    with pytest.raises(ValueError):
        MemoryLadder(sizes=())
    with pytest.raises(ValueError):
        MemoryLadder(sizes=(256, 128))
    with pytest.raises(ValueError):
        MemoryLadder.build(128, 256, 0)


@pytest.mark.parametrize(
    ("duration", "index", "billed"),
    [
        (0.0, 0, 100),
        (50.0, 0, 100),
        (99.0, 0, 100),
        (150.0, 1, 200),
        (274.08, 2, 300),
        (2337.93, 23, 2400),
    ],
)
def test_billing_ladder_step_lookup(duration: float, index: int, billed: int) -> None:
    assert BillingLadder().step_for(duration) == (index, billed)


def test_billing_ladder_boundary_moves_to_next_step() -> None:
    ladder = BillingLadder()

    assert ladder.step_for(100.0) == (1, 200)
    assert ladder.step_for(200.0) == (2, 300)


def test_billing_ladder_rounds_fraction_up_before_comparing() -> None:
    # 99.01 rounds up to 100, which sits on a boundary.
    assert BillingLadder().step_for(99.01) == (1, 200)


def test_billing_ladder_clamps_at_cap() -> None:
    ladder = BillingLadder(granularity_ms=100, cap_ms=900_000)

    assert len(ladder) == 9000
    assert ladder.step_for(899_950.0) == (8999, 900_000)
    assert ladder.step_for(2_000_000.0) == (8999, 900_000)
    assert ladder.step_for(float("inf")) == (8999, 900_000)


def test_billing_ladder_negative_duration_maps_to_first_step() -> None:
    assert BillingLadder().step_for(-5.0) == (0, 100)


def test_price_table_is_linear_in_ladder_position() -> None:
    ladder = MemoryLadder.build(128, 512, 128)
    prices = PriceTable.linear(ladder, unit_price=0.5)

    assert prices.price_per_step(128) == 0.5
    assert prices.price_per_step(256) == 1.0
    assert prices.price_per_step(512) == 2.0
    assert prices.price_per_step(1024) == 0.0


def test_analysis_tables_from_settings() -> None:
    tables = AnalysisTables.from_settings(
        LadderConfig(memory_min_mb=128, memory_max_mb=10240, memory_step_mb=128, billing_granularity_ms=1),
        ReportConfig(unit_price_per_step=0.1),
    )

    assert tables.memory.last == 10240
    assert tables.billing.granularity_ms == 1
    assert tables.billing.step_for(10.0) == (10, 11)
    assert tables.prices.price_per_step(256) == pytest.approx(0.2)
