"""
Per-client request rate limiting.

Two fixed-window counters keyed by client address:
- "global": API_RATE_LIMIT_MAX per API_RATE_LIMIT_WINDOW ms, one count shared
  by every /api/v1 route (health and index excluded)
- "external": EXTERNAL_RATE_LIMIT, charged by the live upstream proxies on
  top of the global count, protecting the third-party quota

Limits are enforced through FastAPI dependencies attached when routers are
mounted, so they apply regardless of how a route was included. The counters
live in process memory; each app built by `create_app` owns its own limiter.
"""

from __future__ import annotations

import logging
import time

from fastapi import Request
from limits import RateLimitItem, parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter
from slowapi.util import get_remote_address

from .config import Settings
from .errors import RateLimitedError

logger = logging.getLogger(__name__)

GLOBAL_SCOPE = "global"
EXTERNAL_SCOPE = "external"


class RateLimiter:
    def __init__(self, *, enabled: bool, global_limit: str, external_limit: str) -> None:
        self.enabled = enabled
        self.limits: dict[str, RateLimitItem] = {
            GLOBAL_SCOPE: parse(global_limit),
            EXTERNAL_SCOPE: parse(external_limit),
        }
        self._strategy = FixedWindowRateLimiter(MemoryStorage())

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimiter":
        return cls(
            enabled=settings.rate_limit_enabled,
            global_limit=settings.global_rate_limit,
            external_limit=settings.external_rate_limit,
        )

    def hit(self, scope: str, client: str) -> None:
        """
        Count one request for `client` in `scope`; raise once the window is full.
        """
        if not self.enabled:
            return
        item = self.limits[scope]
        if self._strategy.hit(item, scope, client):
            return

        reset_at, _ = self._strategy.get_window_stats(item, scope, client)
        retry_after = max(0, int(reset_at - time.time()))
        logger.warning("rate_limited scope=%s client=%s limit=%s retry_after_s=%s", scope, client, item, retry_after)
        raise RateLimitedError(details={"retryAfter": retry_after})


def get_rate_limiter(request: Request) -> RateLimiter:
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        raise RuntimeError("RateLimiter is not initialized. It is created in create_app.")
    return limiter


async def enforce_global_limit(request: Request) -> None:
    get_rate_limiter(request).hit(GLOBAL_SCOPE, get_remote_address(request))


async def enforce_external_limit(request: Request) -> None:
    get_rate_limiter(request).hit(EXTERNAL_SCOPE, get_remote_address(request))
