"""
contracts/services.py

Services container + profile/region-aware factory (DI-friendly).

Goals:
- The runner never builds boto3 clients inline:
    factory.for_region("eu-west-3") -> Services (cached)
- The log source receives a ready client, so tests can inject fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import boto3
from botocore.config import Config


@dataclass(frozen=True)
class Services:
    """
    Bag of SDK clients injected into the analysis run.

    `region` is informational (logged with the run).
    """
    logs: Any
    region: str = ""


class ServicesFactory:
    """
    Creates and caches AWS SDK clients per region.

    Usage:
      factory = ServicesFactory.from_profile("prod", sdk_config=SDK_CONFIG)

      svcs = factory.for_region("eu-west-3")
      svcs2 = factory.for_region("eu-west-3")  # cached, same object

    Passing region=None uses the session default (profile config, env, ...).
    """

    def __init__(self, *, session: Any, sdk_config: Config | None = None) -> None:
        self._session = session
        self._sdk_config = sdk_config
        self._by_region: dict[str, Services] = {}

    @classmethod
    def from_profile(cls, profile: str | None, *, sdk_config: Config | None = None) -> ServicesFactory:
        """Build a factory on a boto3 session using the shared config profile."""
        if profile:
            session = boto3.Session(profile_name=profile)
        else:
            session = boto3.Session()
        return cls(session=session, sdk_config=sdk_config)

    @property
    def default_region(self) -> str:
        return str(getattr(self._session, "region_name", "") or "")

    def _client(self, service: str, *, region: str | None) -> Any:
        kwargs: dict[str, Any] = {}
        if region:
            kwargs["region_name"] = region
        if self._sdk_config is not None:
            kwargs["config"] = self._sdk_config
        return self._session.client(service, **kwargs)

    def for_region(self, region: str | None = None) -> Services:
        """
        Return cached Services for a given region, creating it if needed.
        """
        reg = str(region or "").strip() or self.default_region

        cached = self._by_region.get(reg)
        if cached is not None:
            return cached

        svcs = Services(
            logs=self._client("logs", region=reg or None),
            region=reg,
        )
        self._by_region[reg] = svcs
        return svcs

    def clear_cache(self) -> None:
        """
        Clears per-region Services cache. (Mostly useful for tests.)
        """
        self._by_region.clear()
