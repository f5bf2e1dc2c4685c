"""
analysis/cost.py

Rough cost-per-million-requests estimate for one bucket.

Each billed-duration value contributes ``price_per_step * 1e6 * share * steps``
where ``share`` is its fraction of the bucket's requests and ``steps`` the
number of billing steps it spans. A fixed request charge is added on top.

Illustrative output only: the price table is linear in the memory-ladder
position, not actual GB-second pricing.
"""

from __future__ import annotations

from analysis.bucket import Bucket
from analysis.defaults import BASE_COST_PER_MILLION_USD
from analysis.ladders import BillingLadder, PriceTable

_MILLION = 1_000_000.0


def estimate_cost_per_million(
    bucket: Bucket,
    *,
    prices: PriceTable,
    billing_ladder: BillingLadder,
    base_cost: float = BASE_COST_PER_MILLION_USD,
) -> float:
    """Return the estimated USD cost of one million requests shaped like ``bucket``."""
    total = float(base_cost)
    if bucket.count <= 0:
        return total

    price = prices.price_per_step(bucket.size)
    for billed_ms, count in bucket.billed_durations():
        share = count / bucket.count
        steps = billed_ms // billing_ladder.granularity_ms
        total += price * _MILLION * share * steps
    return total
