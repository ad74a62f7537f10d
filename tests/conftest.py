import datetime as dt
from typing import Optional

import pytest

from finance_hub.config import Settings
from finance_hub.state import build_state
from tests.upstream import CRYPTO_HOST, FX_HOST, LLM_HOST, NEWS_HOST, FakeClock, FakeUpstream


@pytest.fixture
def clock():
    return FakeClock(dt.datetime(2026, 10, 18, 12, 0, 0).timestamp())


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def waits():
    """Backoff delays requested by the code under test (sleep is never real)."""
    return []


@pytest.fixture
def make_settings():
    def _make(**overrides) -> Settings:
        values = dict(
            news_api_key="news-key",
            news_api_url=f"https://{NEWS_HOST}/v2/top-headlines",
            news_page_size=3,
            news_translate_mode="concurrent",
            openai_api_key="sk-test",
            api_base_url=f"https://{LLM_HOST}/v1",
            ai_model="test-model",
            fx_api_url=f"https://{FX_HOST}/v6/latest/USD",
            crypto_api_url=f"https://{CRYPTO_HOST}/api/v3/simple/price",
            cache_url="",
            max_daily_requests=50,
            term_retry_attempts=3,
            term_retry_base_delay=1.0,
        )
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def make_state(make_settings, upstream, clock, waits):
    async def record_sleep(seconds: float) -> None:
        waits.append(seconds)

    def _make(settings: Optional[Settings] = None, **overrides):
        cfg = settings or make_settings(**overrides)
        return build_state(cfg, transport=upstream.transport, clock=clock, sleep=record_sleep)

    return _make


@pytest.fixture
def state(make_state):
    return make_state()
