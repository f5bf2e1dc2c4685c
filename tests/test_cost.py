"""Tests for the cost-per-million estimate."""

from __future__ import annotations

import pytest

from analysis.bucket import Bucket
from analysis.cost import estimate_cost_per_million
from analysis.event_parser import EventParser
from analysis.ladders import AnalysisTables, BillingLadder, MemoryLadder, PriceTable
from tests.aws_mocks import SAMPLE_REPORT_LINES


def test_sample_bucket_cost() -> None:
    tables = AnalysisTables.default()
    parser = EventParser()
    parser.parse_events(SAMPLE_REPORT_LINES)

    cost = estimate_cost_per_million(parser.store[128], prices=tables.prices, billing_ladder=tables.billing)

    # mean billed steps (24 + 3 + 10 + 8) / 4 = 11.25 at 0.208 USD per million steps
    assert cost == pytest.approx(0.20 + 0.208 * 11.25)


def test_empty_bucket_costs_only_the_request_charge() -> None:
    tables = AnalysisTables.default()

    cost = estimate_cost_per_million(Bucket(size=128), prices=tables.prices, billing_ladder=tables.billing)

    assert cost == pytest.approx(0.20)


def test_off_ladder_size_has_no_compute_charge() -> None:
    tables = AnalysisTables.default()
    bucket = Bucket(size=10_240)
    bucket.update(500.0, 100.0, 600)

    cost = estimate_cost_per_million(
        bucket, prices=tables.prices, billing_ladder=tables.billing, base_cost=0.0
    )

    assert cost == 0.0


def test_cost_scales_with_ladder_position() -> None:
    ladder = MemoryLadder(sizes=(128, 256))
    prices = PriceTable.linear(ladder, unit_price=1e-6)
    billing = BillingLadder()

    small = Bucket(size=128)
    large = Bucket(size=256)
    for bucket in (small, large):
        bucket.update(150.0, 50.0, 200)

    small_cost = estimate_cost_per_million(small, prices=prices, billing_ladder=billing, base_cost=0.0)
    large_cost = estimate_cost_per_million(large, prices=prices, billing_ladder=billing, base_cost=0.0)

    assert small_cost == pytest.approx(2.0)
    assert large_cost == pytest.approx(4.0)
