from __future__ import annotations

import asyncio
import datetime as dt
import re
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from dateutil import parser as dtparser

T = TypeVar("T")
R = TypeVar("R")


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def truncate(text: str, max_chars: int) -> str:
    text = text or ""
    return text if len(text) <= max_chars else text[:max_chars]


def now_iso(ts: Optional[float] = None) -> str:
    if ts is None:
        return dt.datetime.now(dt.timezone.utc).isoformat()
    return dt.datetime.fromtimestamp(ts, dt.timezone.utc).isoformat()


def relative_time(published_at: Optional[str], now: Optional[dt.datetime] = None) -> str:
    """'just now' under an hour, 'Nh ago' under a day, else the calendar date."""
    if not published_at:
        return ""
    try:
        published = dtparser.isoparse(published_at)
    except (ValueError, OverflowError):
        return ""
    if published.tzinfo is None:
        published = published.replace(tzinfo=dt.timezone.utc)
    now = now or dt.datetime.now(dt.timezone.utc)
    hours = int((now - published).total_seconds() // 3600)
    if hours < 1:
        return "just now"
    if hours < 24:
        return f"{hours}h ago"
    return published.date().isoformat()


async def gather_with_fallback(
    items: Sequence[T],
    worker: Callable[[int, T], Awaitable[R]],
    fallback: Callable[[int, T, Exception], R],
) -> List[R]:
    """Run `worker` over all items concurrently; failed items go through `fallback`.

    One failure never cancels the others. Results keep input order.
    """
    results = await asyncio.gather(*(worker(i, it) for i, it in enumerate(items)), return_exceptions=True)
    out: List[R] = []
    for i, (item, res) in enumerate(zip(items, results)):
        if isinstance(res, Exception):
            out.append(fallback(i, item, res))
        elif isinstance(res, BaseException):
            raise res
        else:
            out.append(res)
    return out
