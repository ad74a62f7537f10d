from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

import httpx

from .cache import BaseCache, DailyQuota, build_cache
from .config import Settings, settings as default_settings


@dataclass
class HubState:
    """Everything a handler needs besides the request itself."""

    settings: Settings
    cache: BaseCache
    quota: DailyQuota
    transport: Optional[httpx.AsyncBaseTransport] = None
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    clock: Callable[[], float] = field(default=time.time)

    def http_client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        t = self.settings.request_timeout if timeout is None else timeout
        return httpx.AsyncClient(
            timeout=httpx.Timeout(t, connect=t),
            transport=self.transport,
            headers={"User-Agent": self.settings.user_agent},
        )

    def now(self) -> float:
        return self.clock()


def build_state(
    cfg: Optional[Settings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    cache: Optional[BaseCache] = None,
) -> HubState:
    cfg = cfg or default_settings
    return HubState(
        settings=cfg,
        cache=cache if cache is not None else build_cache(cfg.cache_url, clock=clock),
        quota=DailyQuota(cfg.max_daily_requests, clock=clock),
        transport=transport,
        sleep=sleep,
        clock=clock,
    )
