"""Centralized default values for the Lambda log analyzer.

This module contains non-environment-specific defaults used by the analysis
components when they are built without settings (tests, REPL). The values
mirror the defaults of infra.config. Keep them deterministic and stable.
"""

from __future__ import annotations

from typing import Final

# Memory ladder (MB)
MEMORY_MIN_MB: Final[int] = 128
MEMORY_MAX_MB: Final[int] = 3008
MEMORY_STEP_MB: Final[int] = 64

# Billing ladder (ms)
BILLING_GRANULARITY_MS: Final[int] = 100
BILLING_CAP_MS: Final[int] = 900_000

# Streaming histogram
HISTOGRAM_MAX_BINS: Final[int] = 256

# Fetch loop
MAX_FETCHES: Final[int] = 100
THROTTLE_SLEEP_SECONDS: Final[float] = 1.0
FETCH_TIMEOUT_SECONDS: Final[float] = 300.0
LOOKBACK_MINUTES: Final[int] = 30
LOG_GROUP_PREFIX: Final[str] = "/aws/lambda/"
REPORT_FILTER_PATTERN: Final[str] = "REPORT RequestId"

# Report
REPORT_PERCENTILES: Final[tuple[float, ...]] = (0.01, 0.25, 0.50, 0.75, 0.99)
REPORT_MIN_SHARE_OF_TOP: Final[float] = 0.1
BASE_COST_PER_MILLION_USD: Final[float] = 0.20
UNIT_PRICE_PER_STEP_USD: Final[float] = 0.000000208

# Diagnostics: how many malformed lines are logged at WARNING before switching to DEBUG
MALFORMED_WARNING_LIMIT: Final[int] = 5
