"""Cache slots and the daily request quota.

Handlers never keep module-level globals; they receive a cache object and a
quota object through `HubState`. Values are stored together with the time they
were cached, and freshness is always judged as `now - cached_at < ttl`.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import redis

from .redis_client import get_redis

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    cached_at: float

    def age(self, now: float) -> float:
        return now - self.cached_at

    def is_fresh(self, ttl: float, now: float) -> bool:
        return self.age(now) < ttl

    def cached_at_iso(self) -> str:
        return dt.datetime.fromtimestamp(self.cached_at, dt.timezone.utc).isoformat()


class BaseCache:
    clock: Clock

    def get(self, key: str) -> Optional[CacheEntry]:
        raise NotImplementedError

    def set(self, key: str, value: Any, cached_at: Optional[float] = None) -> CacheEntry:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def touch(self, key: str) -> Optional[CacheEntry]:
        """Refresh the timestamp of an existing slot without changing its value."""
        entry = self.get(key)
        if entry is None:
            return None
        return self.set(key, entry.value)

    def get_fresh(self, key: str, ttl: float) -> Optional[CacheEntry]:
        entry = self.get(key)
        if entry is None or not entry.is_fresh(ttl, self.clock()):
            return None
        return entry


class MemoryCache(BaseCache):
    """Process-local cache. Lost on restart, not shared between workers."""

    def __init__(self, clock: Clock = time.time):
        self.clock = clock
        self._data: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        try:
            raw = self.client.get(self.prefix + key)
        except redis.RedisError as e:
            logger.warning("cache read %s failed, treating as miss: %s", key, e)
            return None
        if not raw:
            return None
        try:
            blob = json.loads(raw)
            return CacheEntry(value=blob["value"], cached_at=float(blob["cached_at"]))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("cache slot %s unreadable, dropping: %s", key, e)
            self.delete(key)
            return None

    def set(self, key: str, value: Any, cached_at: Optional[float] = None) -> CacheEntry:
        """Store `value`; a failed write is logged and the entry is still returned."""
        entry = CacheEntry(value=value, cached_at=self.clock() if cached_at is None else cached_at)
        try:
            self.client.set(
                self.prefix + key,
                json.dumps({"value": entry.value, "cached_at": entry.cached_at}, ensure_ascii=False),
                ex=self.max_age,
            )
        except redis.RedisError as e:
            logger.warning("cache write %s failed: %s", key, e)
        return entry

    def delete(self, key: str) -> None:
        try:
            self.client.delete(self.prefix + key)
        except redis.RedisError as e:
            logger.warning("cache delete %s failed: %s", key, e)


class DailyQuota:
    """Counts refreshes per local calendar day.

    The counter resets as soon as the date string differs from the one recorded
    at the last reset. Not thread-safe; an off-by-one under concurrent requests
    is acceptable.
    """

    def __init__(self, limit: int, clock: Clock = time.time):
        self.limit = limit
        self.clock = clock
        self.count = 0
        self.day = self._today()

    def _today(self) -> str:
        return dt.date.fromtimestamp(self.clock()).isoformat()

    def roll(self) -> None:
        today = self._today()
        if today != self.day:
            logger.info("daily quota reset day=%s previous_count=%s", today, self.count)
            self.count = 0
            self.day = today

    def exhausted(self) -> bool:
        self.roll()
        return self.count >= self.limit

    def remaining(self) -> int:
        self.roll()
        return max(0, self.limit - self.count)

    def consume(self) -> int:
        self.roll()
        self.count += 1
        return self.count


def build_cache(url: str = "", clock: Clock = time.time) -> BaseCache:
    if url.startswith(("redis://", "rediss://", "unix://")):
        logger.info("using redis cache url=%s", url.split("@")[-1])
        return RedisCache(get_redis(url), clock=clock)
    return MemoryCache(clock=clock)
