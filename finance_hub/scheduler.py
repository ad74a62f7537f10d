"""Cache warmer: polls the hub's own endpoints so dashboard visitors hit warm caches."""

from __future__ import annotations

import logging
import os
from typing import Dict, Optional

import httpx
from apscheduler.schedulers.blocking import BlockingScheduler

from .config import settings
from .log_config import setup_logging

logger = logging.getLogger("finance_hub.scheduler")

WARM_PATHS = ("/api/market", "/api/news", "/api/calendar")


def warm(path: str, base_url: Optional[str] = None, client: Optional[httpx.Client] = None) -> bool:
    base = (base_url or settings.hub_base_url).rstrip("/")
    url = f"{base}{path}"
    try:
        if client is None:
            with httpx.Client(timeout=30.0) as own:
                r = own.get(url)
        else:
            r = client.get(url)
        if r.status_code >= 400:
            logger.error("warm %s: %s %s", path, r.status_code, r.text[:300])
            return False
        data = r.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("warm %s: %s", path, e)
        return False
    logger.info(
        "warm %s: success=%s from_cache=%s%s",
        path,
        data.get("success"),
        data.get("from_cache"),
        f" message={data['message']}" if data.get("message") else "",
    )
    return bool(data.get("success"))


def warm_all(base_url: Optional[str] = None, client: Optional[httpx.Client] = None) -> Dict[str, bool]:
    return {path: warm(path, base_url, client) for path in WARM_PATHS}


def main() -> None:
    setup_logging(settings.log_level)
    every = max(1, settings.warm_every_min)
    tz = os.getenv("TZ", "UTC")

    sched = BlockingScheduler(timezone=tz)
    # Market quotes expire fastest; news and calendar keep their own TTLs and quota.
    sched.add_job(warm, "interval", args=["/api/market"], minutes=every, id="market")
    sched.add_job(warm, "interval", args=["/api/news"], minutes=max(every, 15), id="news")
    sched.add_job(warm, "interval", args=["/api/calendar"], minutes=max(every, 60), id="calendar")

    logger.info("scheduler started HUB_BASE_URL=%s TZ=%s WARM_EVERY_MIN=%s", settings.hub_base_url, tz, every)

    if os.getenv("RUN_ON_START", "0") == "1":
        logger.info("RUN_ON_START=1 -> warming all endpoints")
        warm_all()

    sched.start()


if __name__ == "__main__":
    main()
