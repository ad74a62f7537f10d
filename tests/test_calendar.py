"""
Tests for the economic calendar generator and its static fallback.
"""
import asyncio
import datetime as dt

import httpx

from finance_hub.calendar_events import (
    DEFAULT_ANALYSIS,
    DEFAULT_EVENT,
    DEFAULT_TIME,
    DEFAULT_VALUE,
    get_calendar,
    normalize_event,
    static_calendar,
)
from tests.upstream import LLM_HOST, llm_reply

TODAY = dt.date(2026, 10, 18)
FIELDS = {"date", "event", "time", "importance", "previous", "forecast", "analysis"}


class TestStaticCalendar:
    def test_seven_ascending_days_from_today(self):
        events = static_calendar(TODAY)

        assert len(events) == 7
        assert [e["date"] for e in events] == [(TODAY + dt.timedelta(days=i)).isoformat() for i in range(7)]
        for e in events:
            assert set(e) == FIELDS
            assert e["importance"] in ("high", "medium")
            assert all(e[k] for k in FIELDS)


class TestNormalizeEvent:
    def test_missing_fields_get_defaults(self):
        out = normalize_event({}, TODAY)

        assert out == {
            "date": "2026-10-18",
            "event": DEFAULT_EVENT,
            "time": DEFAULT_TIME,
            "importance": "medium",
            "previous": DEFAULT_VALUE,
            "forecast": DEFAULT_VALUE,
            "analysis": DEFAULT_ANALYSIS,
        }

    def test_legacy_keys_are_accepted(self):
        out = normalize_event(
            {"date": "2026-10-20", "name": "FOMC decision", "impact": "HIGH", "aiAnalysis": "Hold expected."}, TODAY
        )

        assert out["event"] == "FOMC decision"
        assert out["importance"] == "high"
        assert out["analysis"] == "Hold expected."

    def test_unknown_importance_is_medium(self):
        assert normalize_event({"importance": "low"}, TODAY)["importance"] == "medium"


class TestGetCalendar:
    def test_without_llm_key_serves_static_list(self, make_state, upstream):
        state = make_state(openai_api_key="")

        out = asyncio.run(get_calendar(state))

        assert out["success"] is True
        assert out["fallback"] is True
        assert "OPENAI_API_KEY" in out["message"]
        assert len(out["events"]) == 7
        assert out["events"][0]["date"] == TODAY.isoformat()
        assert out["events"][-1]["date"] == (TODAY + dt.timedelta(days=6)).isoformat()
        assert upstream.calls == []

    def test_generated_events_are_normalized(self, state, upstream):
        upstream.on(
            LLM_HOST,
            lambda r: llm_reply(
                {
                    "events": [
                        {"date": "2026-10-19", "event": "US Retail Sales", "time": "20:30", "importance": "high",
                         "previous": "0.4%", "forecast": "0.3%", "analysis": "Consumer check."},
                        {"event": "ECB speech"},
                        "not an event",
                    ]
                }
            ),
        )

        out = asyncio.run(get_calendar(state))

        assert out["fallback"] is False
        assert "message" not in out
        assert len(out["events"]) == 2
        assert out["events"][0]["event"] == "US Retail Sales"
        second = out["events"][1]
        assert second["date"] == TODAY.isoformat()
        assert second["time"] == DEFAULT_TIME
        assert second["previous"] == DEFAULT_VALUE
        assert second["analysis"] == DEFAULT_ANALYSIS

    def test_bare_array_reply(self, state, upstream):
        upstream.on(LLM_HOST, lambda r: llm_reply('[{"name": "BoJ decision", "impact": "high"}]'))

        out = asyncio.run(get_calendar(state))

        assert out["fallback"] is False
        assert out["events"][0]["event"] == "BoJ decision"

    def test_unparseable_reply_falls_back(self, state, upstream):
        upstream.on(LLM_HOST, lambda r: llm_reply("no calendar today"))

        out = asyncio.run(get_calendar(state))

        assert out["success"] is True
        assert out["fallback"] is True
        assert len(out["events"]) == 7

    def test_upstream_error_falls_back(self, state, upstream):
        upstream.on(LLM_HOST, lambda r: httpx.Response(502, text="bad gateway"))

        out = asyncio.run(get_calendar(state))

        assert out["fallback"] is True
        assert "502" in out["message"]

    def test_empty_event_list_falls_back(self, state, upstream):
        upstream.on(LLM_HOST, lambda r: llm_reply({"events": []}))

        out = asyncio.run(get_calendar(state))

        assert out["fallback"] is True

    def test_result_is_cached_for_an_hour(self, state, upstream, clock):
        upstream.on(LLM_HOST, lambda r: llm_reply({"events": [{"event": "US CPI", "importance": "high"}]}))
        first = asyncio.run(get_calendar(state))

        clock.advance(30 * 60)
        second = asyncio.run(get_calendar(state))
        clock.advance(30 * 60)
        third = asyncio.run(get_calendar(state))

        assert first["from_cache"] is False
        assert second["from_cache"] is True
        assert second["events"] == first["events"]
        assert second["fallback"] is False
        assert third["from_cache"] is False
        assert upstream.count(LLM_HOST) == 2
