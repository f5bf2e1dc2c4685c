"""Centralized application configuration with schema validation.

This module is intentionally compatibility-first:
- Supports flat environment names (for example ``AWS_PROFILE``).
- Supports nested names (for example ``AWS__PROFILE``) for consistency.
- Optionally reads a local ``.env`` file before process env values.
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from pathlib import Path
from threading import Lock

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

_DEFAULT_PERCENTILES = [0.01, 0.25, 0.50, 0.75, 0.99]


def _normalize_level(value: object) -> str:
    text = str(value or "").strip().upper()
    if text in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        return text
    return "INFO"


def _optional_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class AWSConfig(BaseModel):
    """AWS session and client defaults used by the services factory."""

    model_config = ConfigDict(frozen=True)

    profile: str | None = Field(default=None, description="Shared config/credentials profile")
    region: str | None = Field(default=None, description="Region override (SDK default chain when empty)")
    max_retries: int = Field(default=3, ge=1, le=25)
    timeout: int = Field(default=60, ge=1, le=300)
    connect_timeout: int = Field(default=5, ge=1, le=60)

    @field_validator("profile", "region", mode="before")
    @classmethod
    def _normalize_optional(cls, value: object) -> str | None:
        return _optional_text(value)


class LoggingSettings(BaseModel):
    """Repository-wide logging settings."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)
    override_root_handlers: bool = Field(default=False)

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return _normalize_level(value)


class FetchConfig(BaseModel):
    """Knobs for the paginated log retrieval loop."""

    model_config = ConfigDict(frozen=True)

    max_fetches: int = Field(default=100, ge=1)
    throttle_sleep_seconds: float = Field(default=1.0, ge=0.0)
    timeout_seconds: float = Field(default=300.0, gt=0.0)
    lookback_minutes: int = Field(default=30, ge=1)
    log_group_prefix: str = Field(default="/aws/lambda/")
    filter_pattern: str = Field(default="REPORT RequestId")
    page_limit: int | None = Field(default=None, ge=1, le=10_000)

    @field_validator("filter_pattern")
    @classmethod
    def _require_pattern(cls, value: str) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("fetch.filter_pattern must not be empty")
        return text


class LadderConfig(BaseModel):
    """Memory ladder, billing ladder and histogram sizing."""

    model_config = ConfigDict(frozen=True)

    memory_min_mb: int = Field(default=128, ge=1)
    memory_max_mb: int = Field(default=3008, ge=1)
    memory_step_mb: int = Field(default=64, ge=1)
    billing_granularity_ms: int = Field(default=100, ge=1)
    billing_cap_ms: int = Field(default=900_000, ge=1)
    histogram_max_bins: int = Field(default=256, ge=8)

    @model_validator(mode="after")
    def _check_bounds(self) -> LadderConfig:
        if self.memory_min_mb > self.memory_max_mb:
            raise ValueError("ladder.memory_min_mb must be <= ladder.memory_max_mb")
        if self.billing_granularity_ms > self.billing_cap_ms:
            raise ValueError("ladder.billing_granularity_ms must be <= ladder.billing_cap_ms")
        return self


class ReportConfig(BaseModel):
    """Report rendering and illustrative cost figures."""

    model_config = ConfigDict(frozen=True)

    percentiles: list[float] = Field(default_factory=lambda: list(_DEFAULT_PERCENTILES))
    min_share_of_top: float = Field(default=0.1, ge=0.0, le=1.0)
    base_cost_per_million: float = Field(default=0.20, ge=0.0)
    unit_price_per_step: float = Field(default=0.000000208, ge=0.0)

    @field_validator("percentiles", mode="before")
    @classmethod
    def _normalize_percentiles(cls, value: object) -> list[float]:
        """Accept list or comma-separated string; return sorted unique values."""
        if value is None:
            return list(_DEFAULT_PERCENTILES)

        items: list[object]
        if isinstance(value, str):
            items = [part.strip() for part in value.split(",") if part.strip()]
        elif isinstance(value, (list, tuple)):
            items = list(value)
        else:
            raise TypeError("report.percentiles must be a list[float] or comma-separated string")

        if not items:
            raise ValueError("report.percentiles must contain at least one value")

        out: set[float] = set()
        for item in items:
            number = float(str(item).strip())
            if math.isnan(number) or number < 0.0 or number > 1.0:
                raise ValueError(f"percentile must be within [0, 1], got {item!r}")
            out.add(number)
        return sorted(out)


class Settings(BaseModel):
    """Top-level settings model."""

    model_config = ConfigDict(frozen=True)

    aws: AWSConfig = Field(default_factory=AWSConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    ladder: LadderConfig = Field(default_factory=LadderConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)

    @classmethod
    def from_env(
        cls,
        *,
        env: Mapping[str, str] | None = None,
        env_file: str = ".env",
    ) -> Settings:
        """Build settings from `.env` then environment variables."""
        runtime_env = os.environ if env is None else env
        merged_env = _merge_env(_load_dotenv(Path(env_file)), runtime_env)
        payload = _build_payload(merged_env)
        return cls.model_validate(payload)


def _load_dotenv(path: Path) -> dict[str, str]:
    """Parse a minimal `.env` file format."""
    if not path.exists() or not path.is_file():
        return {}

    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, raw_value = line.split("=", 1)
        key_clean = key.strip()
        value = raw_value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        if key_clean:
            values[key_clean] = value
    return values


def _merge_env(dotenv_values: Mapping[str, str], runtime_env: Mapping[str, str]) -> dict[str, str]:
    """Return env map where process env overrides `.env` values."""
    merged = {str(k): str(v) for k, v in dotenv_values.items()}
    for key, value in runtime_env.items():
        merged[str(key)] = str(value)
    return merged


def _first_non_empty(env: Mapping[str, str], *keys: str) -> str | None:
    """Return the first non-empty value for the provided keys."""
    for key in keys:
        value = str(env.get(key, "")).strip()
        if value:
            return value
    return None


def _build_payload(env: Mapping[str, str]) -> dict[str, object]:
    """Build nested settings payload from env values."""
    aws = {
        "profile": _first_non_empty(env, "AWS__PROFILE", "AWS_PROFILE"),
        "region": _first_non_empty(env, "AWS__REGION", "AWS_REGION", "AWS_DEFAULT_REGION"),
        "max_retries": _first_non_empty(env, "AWS__MAX_RETRIES", "AWS_MAX_RETRIES"),
        "timeout": _first_non_empty(env, "AWS__TIMEOUT", "AWS_TIMEOUT"),
        "connect_timeout": _first_non_empty(env, "AWS__CONNECT_TIMEOUT", "AWS_CONNECT_TIMEOUT"),
    }
    logging_settings = {
        "level": _first_non_empty(env, "LOGGING__LEVEL", "LAMBDACOST_LOG_LEVEL"),
        "json_logs": _first_non_empty(env, "LOGGING__JSON_LOGS", "LAMBDACOST_LOG_JSON"),
        "override_root_handlers": _first_non_empty(
            env, "LOGGING__OVERRIDE_ROOT_HANDLERS", "LAMBDACOST_LOG_OVERRIDE"
        ),
    }
    fetch = {
        "max_fetches": _first_non_empty(env, "FETCH__MAX_FETCHES", "MAX_FETCHES"),
        "throttle_sleep_seconds": _first_non_empty(
            env, "FETCH__THROTTLE_SLEEP_SECONDS", "THROTTLE_SLEEP_SECONDS"
        ),
        "timeout_seconds": _first_non_empty(env, "FETCH__TIMEOUT_SECONDS", "FETCH_TIMEOUT_SECONDS"),
        "lookback_minutes": _first_non_empty(env, "FETCH__LOOKBACK_MINUTES", "LOOKBACK_MINUTES"),
        "log_group_prefix": _first_non_empty(env, "FETCH__LOG_GROUP_PREFIX", "LOG_GROUP_PREFIX"),
        "filter_pattern": _first_non_empty(env, "FETCH__FILTER_PATTERN", "FILTER_PATTERN"),
        "page_limit": _first_non_empty(env, "FETCH__PAGE_LIMIT", "PAGE_LIMIT"),
    }
    ladder = {
        "memory_min_mb": _first_non_empty(env, "LADDER__MEMORY_MIN_MB", "MEMORY_MIN_MB"),
        "memory_max_mb": _first_non_empty(env, "LADDER__MEMORY_MAX_MB", "MEMORY_MAX_MB"),
        "memory_step_mb": _first_non_empty(env, "LADDER__MEMORY_STEP_MB", "MEMORY_STEP_MB"),
        "billing_granularity_ms": _first_non_empty(
            env, "LADDER__BILLING_GRANULARITY_MS", "BILLING_GRANULARITY_MS"
        ),
        "billing_cap_ms": _first_non_empty(env, "LADDER__BILLING_CAP_MS", "BILLING_CAP_MS"),
        "histogram_max_bins": _first_non_empty(env, "LADDER__HISTOGRAM_MAX_BINS", "HISTOGRAM_MAX_BINS"),
    }
    report = {
        "percentiles": _first_non_empty(env, "REPORT__PERCENTILES", "REPORT_PERCENTILES"),
        "min_share_of_top": _first_non_empty(env, "REPORT__MIN_SHARE_OF_TOP", "REPORT_MIN_SHARE_OF_TOP"),
        "base_cost_per_million": _first_non_empty(
            env, "REPORT__BASE_COST_PER_MILLION", "REPORT_BASE_COST_PER_MILLION"
        ),
        "unit_price_per_step": _first_non_empty(
            env, "REPORT__UNIT_PRICE_PER_STEP", "REPORT_UNIT_PRICE_PER_STEP"
        ),
    }
    return {
        "aws": {k: v for k, v in aws.items() if v is not None},
        "logging": {k: v for k, v in logging_settings.items() if v is not None},
        "fetch": {k: v for k, v in fetch.items() if v is not None},
        "ladder": {k: v for k, v in ladder.items() if v is not None},
        "report": {k: v for k, v in report.items() if v is not None},
    }


_SETTINGS_LOCK = Lock()
_SETTINGS_CACHE: Settings | None = None


def get_settings(*, reload: bool = False) -> Settings:
    """Return cached settings, optionally forcing reload from env."""
    global _SETTINGS_CACHE
    with _SETTINGS_LOCK:
        if reload or _SETTINGS_CACHE is None:
            _SETTINGS_CACHE = Settings.from_env()
        return _SETTINGS_CACHE


def clear_settings_cache() -> None:
    """Clear in-process settings cache."""
    global _SETTINGS_CACHE
    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = None


__all__ = [
    "AWSConfig",
    "FetchConfig",
    "LadderConfig",
    "LoggingSettings",
    "ReportConfig",
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "ValidationError",
]
