"""AWS SDK configuration for the analyzer.

The services factory imports from this module to keep AWS/client tuning in one
place. Throttling of ``FilterLogEvents`` is retried first by botocore in
``standard`` mode (``max_attempts`` from ``AWSConfig.max_retries``) and then by
the fetch loop, which only sees the throttles that exhaust those attempts.
"""

from __future__ import annotations

from botocore.config import Config

from infra.config import AWSConfig
from version import ENGINE_NAME, ENGINE_VERSION


def build_sdk_config(aws_cfg: AWSConfig) -> Config:
    """Return the botocore client config for the given AWS settings."""
    return Config(
        retries={"max_attempts": int(aws_cfg.max_retries), "mode": "standard"},
        user_agent_extra=f"{ENGINE_NAME}/{ENGINE_VERSION}",
        connect_timeout=int(aws_cfg.connect_timeout),
        read_timeout=int(aws_cfg.timeout),
    )
