from __future__ import annotations

import logging
from typing import Optional

import httpx

from src.chainwatch.config import MonitorConfig

logger = logging.getLogger(__name__)


class HeartbeatClient:
    """
    Liveness pings to a healthchecks.io-style receiver.

    - success: GET <base>/<slug>
    - failure: GET <base>/<slug>/fail

    The response is not inspected beyond logging an error status;
    transport failures (DNS, connect, timeout) raise.
    """

    def __init__(
        self,
        base_url: str,
        slug: Optional[str],
        timeout_sec: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._slug = slug
        self._timeout_sec = float(timeout_sec)
        self._transport = transport

    @classmethod
    def from_config(cls, config: MonitorConfig) -> "HeartbeatClient":
        return cls(config.heartbeat_base_url, config.heartbeat_slug, config.heartbeat_timeout_sec)

    @property
    def enabled(self) -> bool:
        return bool(self._slug)

    def url(self, failed: bool = False) -> str:
        suffix = "/fail" if failed else ""
        return f"{self._base_url}/{self._slug}{suffix}"

    async def _get(self, url: str) -> int:
        async with httpx.AsyncClient(timeout=self._timeout_sec, transport=self._transport) as client:
            res = await client.get(url)
        if res.is_error:
            logger.warning("Health check receiver answered status=%s", res.status_code)
        return res.status_code

    # PUBLIC_INTERFACE
    async def ping(self) -> bool:
        """Send the success ping. Returns False (and logs) when no slug is configured."""
        if not self.enabled:
            logger.warning("Heartbeat slug not configured; skipping health check ping")
            return False
        await self._get(self.url())
        return True

    # PUBLIC_INTERFACE
    async def ping_failure(self) -> bool:
        """Signal a failed run to the receiver."""
        if not self.enabled:
            return False
        await self._get(self.url(failed=True))
        return True
