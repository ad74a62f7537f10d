from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, List, Optional

import httpx

from .llm import LLMError, chat_completion
from .llm_json import extract_list, only_dicts, pick_str
from .models import CalendarEvent
from .state import HubState
from .utils import now_iso

logger = logging.getLogger(__name__)

CACHE_KEY = "calendar:latest"
HORIZON_DAYS = 7

# (day offset, event, time, importance, previous, forecast, analysis)
STATIC_EVENTS = [
    (0, "US Initial Jobless Claims", "20:30", "high", "212K", "220K", "Claims above forecast would support rate-cut hopes and equities."),
    (1, "Eurozone CPI YoY (final)", "10:00", "medium", "2.4%", "2.4%", "Stable inflation keeps further ECB easing on the table."),
    (2, "UK GDP QoQ (preliminary)", "09:00", "high", "0.1%", "0.2%", "A slow recovery in the UK economy would lend support to sterling."),
    (3, "US GDP QoQ (advance)", "13:30", "high", "3.1%", "2.8%", "Slower growth fits the soft-landing narrative."),
    (4, "Japan Unemployment Rate", "08:30", "medium", "2.4%", "2.5%", "The Japanese labour market remains steady."),
    (5, "Canada Retail Sales MoM", "13:30", "medium", "-0.2%", "0.1%", "Consumer spending is improving modestly."),
    (6, "Australia CPI QoQ", "11:30", "high", "0.4%", "0.3%", "Cooling inflation supports an RBA rate cut."),
]

DEFAULT_EVENT = "Unknown event"
DEFAULT_TIME = "00:00"
DEFAULT_VALUE = "--"
DEFAULT_ANALYSIS = "No analysis available"


def _today(state: HubState) -> dt.date:
    return dt.date.fromtimestamp(state.now())


def static_calendar(today: dt.date) -> List[Dict[str, Any]]:
    return [
        CalendarEvent(
            date=(today + dt.timedelta(days=offset)).isoformat(),
            event=event,
            time=time,
            importance=importance,
            previous=previous,
            forecast=forecast,
            analysis=analysis,
        ).model_dump()
        for offset, event, time, importance, previous, forecast, analysis in STATIC_EVENTS
    ]


def normalize_event(raw: Dict[str, Any], today: dt.date) -> Dict[str, Any]:
    """Map one model-produced event onto the canonical schema.

    Older prompts produced `name`/`impact`/`aiAnalysis`/`description`; those
    keys are still accepted.
    """
    importance = pick_str(raw, ["importance", "impact"], "medium").lower()
    return CalendarEvent(
        date=pick_str(raw, ["date"], today.isoformat()),
        event=pick_str(raw, ["event", "name"], DEFAULT_EVENT),
        time=pick_str(raw, ["time"], DEFAULT_TIME),
        importance="high" if importance == "high" else "medium",
        previous=pick_str(raw, ["previous"], DEFAULT_VALUE),
        forecast=pick_str(raw, ["forecast"], DEFAULT_VALUE),
        analysis=pick_str(raw, ["analysis", "aiAnalysis", "description"], DEFAULT_ANALYSIS),
    ).model_dump()


async def generate_events(state: HubState) -> List[Dict[str, Any]]:
    today = _today(state)
    lang = state.settings.target_language
    messages = [
        {
            "role": "system",
            "content": (
                "You are a financial analyst. List the important global economic events likely to happen "
                f"in the next {HORIZON_DAYS} days. Reply with JSON only."
            ),
        },
        {
            "role": "user",
            "content": (
                f"Today is {today.isoformat()}. Give 5-7 events within the next {HORIZON_DAYS} days, text in {lang}. "
                "Each event has: date (YYYY-MM-DD), event, time (HH:MM), importance (high or medium), "
                "previous, forecast, analysis (under 50 words).\n"
                'Format: {"events": [{"date": "2026-02-01", "event": "US Initial Jobless Claims", "time": "20:30", '
                '"importance": "high", "previous": "212K", "forecast": "220K", "analysis": "..."}]}'
            ),
        },
    ]
    text = await chat_completion(state, messages, temperature=0.5)
    res = extract_list(text, ("events", "data"))
    if not res.ok:
        raise LLMError(f"bad format: {res.error}")
    events = [normalize_event(e, today) for e in only_dicts(res.value)]
    if not events:
        raise LLMError("model returned no events")
    return events


async def get_calendar(state: HubState) -> Dict[str, Any]:
    cfg = state.settings
    cached = state.cache.get_fresh(CACHE_KEY, cfg.calendar_cache_ttl)
    if cached is not None:
        return {"success": True, **cached.value, "from_cache": True, "timestamp": cached.cached_at_iso()}

    error: Optional[str] = None
    try:
        events = await generate_events(state)
        fallback = False
    except (LLMError, httpx.HTTPError) as e:
        error = str(e) or type(e).__name__
        logger.warning("calendar generation failed, using static list: %s", error)
        events = static_calendar(_today(state))
        fallback = True

    state.cache.set(CACHE_KEY, {"events": events, "fallback": fallback})
    out: Dict[str, Any] = {
        "success": True,
        "events": events,
        "fallback": fallback,
        "from_cache": False,
        "timestamp": now_iso(state.now()),
    }
    if error:
        out["message"] = f"static calendar in use: {error}"
    return out
