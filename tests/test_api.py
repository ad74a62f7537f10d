"""
HTTP surface tests. The client is used without a context manager, so the
lifespan (logging setup) is not run.
"""
import httpx
import pytest
from fastapi.testclient import TestClient

from finance_hub.cache import MemoryCache
from finance_hub.glossary import GLOSSARY
from finance_hub.main import create_app
from finance_hub.state import build_state
from tests.upstream import CRYPTO_HOST, FX_HOST, LLM_HOST, NEWS_HOST, llm_reply, make_articles, news_handler


@pytest.fixture
def client(state):
    return TestClient(create_app(state))


class TestBasics:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"ok": True}

    def test_dashboard_page(self, client):
        r = client.get("/")
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/html")
        assert "AI Finance Hub" in r.text

    def test_dashboard_escapes_remote_text(self, client):
        page = client.get("/").text
        assert "const esc = " in page
        assert "${esc(n.title)}" in page
        assert "${safeUrl(n.url)}" in page
        assert "${n.title}" not in page
        assert "${e.analysis}" not in page
        assert "${a.name}" not in page

    def test_options_preflight(self, client):
        assert client.options("/api/news").status_code == 200
        r = client.options(
            "/api/news",
            headers={"Origin": "https://elsewhere.test", "Access-Control-Request-Method": "POST"},
        )
        assert r.status_code == 200
        assert r.headers["access-control-allow-origin"] == "*"

    def test_cors_header_on_simple_request(self, client):
        r = client.get("/health", headers={"Origin": "https://elsewhere.test"})
        assert r.headers["access-control-allow-origin"] == "*"


class TestNewsEndpoint:
    def test_headlines(self, client, upstream):
        upstream.on(NEWS_HOST, news_handler(make_articles(2)))
        upstream.on(LLM_HOST, lambda r: llm_reply({"title": "T", "summary": "S", "insight": "I", "category": "C"}))

        body = client.get("/api/news").json()

        assert body["success"] is True
        assert [n["id"] for n in body["news"]] == [1, 2]
        assert body["from_cache"] is False

    def test_term_query(self, client, upstream):
        body = client.get("/api/news", params={"term": "CPI"}).json()

        assert body["success"] is True
        assert body["explanation"] == GLOSSARY["CPI"]
        assert upstream.calls == []

    def test_wiki_lookup_post(self, client, upstream):
        upstream.on(LLM_HOST, lambda r: llm_reply({"explanation": "Spread between two yields."}))

        body = client.post("/api/news", json={"type": "wiki_lookup", "term": "Term spread"}).json()

        assert body["success"] is True
        assert body["source"] == "llm"
        assert body["explanation"] == "Spread between two yields."

    def test_portfolio_analysis_post(self, client, upstream):
        upstream.on(LLM_HOST, lambda r: llm_reply("Diversified enough."))

        body = client.post(
            "/api/news",
            json={"type": "portfolio_analysis", "portfolio": [{"name": "VT", "entry_price": 100, "quantity": 3}]},
        ).json()

        assert body["success"] is True
        assert body["result"] == "Diversified enough."
        assert body["summary"] == {"positions": 1, "total_cost": 300.0}

    def test_portfolio_analysis_rejects_invalid_holding(self, client, upstream):
        body = client.post(
            "/api/news",
            json={"type": "portfolio_analysis", "portfolio": [{"name": "VT", "entry_price": -5, "quantity": 3}]},
        ).json()

        assert body["success"] is False
        assert "entry price" in body["error"]
        assert upstream.calls == []

    def test_unknown_post_type(self, client):
        body = client.post("/api/news", json={"type": "horoscope"}).json()
        assert body["success"] is False
        assert "horoscope" in body["error"]

    @pytest.mark.parametrize("payload", [{}, {"type": "wiki_lookup", "portfolio": "lots"}])
    def test_invalid_body_is_a_soft_failure(self, client, payload):
        r = client.post("/api/news", json=payload)
        assert r.status_code == 200
        assert r.json()["success"] is False

    def test_malformed_json(self, client):
        r = client.post("/api/news", content=b"{nope", headers={"Content-Type": "application/json"})
        assert r.status_code == 200
        assert r.json()["success"] is False


class TestMarketAndCalendar:
    def test_market(self, client, upstream):
        upstream.on(FX_HOST, lambda r: httpx.Response(500))
        upstream.on(CRYPTO_HOST, lambda r: httpx.Response(500))

        body = client.get("/api/market").json()

        assert body["success"] is True
        assert body["has_error"] is True
        assert len(body["data"]) == 6

    def test_calendar(self, client, upstream):
        upstream.on(LLM_HOST, lambda r: httpx.Response(503))

        body = client.get("/api/calendar").json()

        assert body["success"] is True
        assert body["fallback"] is True
        assert len(body["events"]) == 7


class TestCalculatorEndpoints:
    def test_compound_takes_percent(self, client):
        body = client.get("/api/calc/compound", params={"principal": 100000, "rate": 7, "years": 10}).json()
        assert round(body["result"]) == 196715

    def test_mortgage(self, client):
        body = client.get("/api/calc/mortgage", params={"principal": 200000, "rate": 6, "years": 30}).json()
        assert body["result"]["periods"] == 360
        assert body["result"]["monthly_payment"] == pytest.approx(1199.10, abs=0.01)

    def test_roi_and_cagr(self, client):
        assert client.get("/api/calc/roi", params={"initial": 100, "final": 150}).json()["result"] == pytest.approx(0.5)
        out = client.get("/api/calc/cagr", params={"initial": 100, "final": 400, "years": 2}).json()
        assert out["result"] == pytest.approx(1.0)

    def test_retirement_default_rate(self, client):
        body = client.get("/api/calc/retirement", params={"monthly_expense": 3000}).json()
        assert body["result"] == pytest.approx(900000)

    def test_non_positive_input_gives_no_result(self, client):
        body = client.get("/api/calc/compound", params={"principal": 0, "rate": 7, "years": 10}).json()
        assert body == {"success": True, "result": None}

    def test_missing_parameter(self, client):
        r = client.get("/api/calc/roi", params={"initial": 100})
        assert r.status_code == 200
        assert r.json()["success"] is False


class ExplodingCache(MemoryCache):
    def get(self, key):
        raise RuntimeError("cache exploded")


class TestSoftFailures:
    def test_unexpected_error_keeps_cors_headers(self, make_settings, upstream, clock):
        state = build_state(make_settings(), transport=upstream.transport, clock=clock, cache=ExplodingCache(clock=clock))
        client = TestClient(create_app(state))

        r = client.get("/api/market", headers={"Origin": "https://elsewhere.test"})

        assert r.status_code == 200
        assert r.json()["success"] is False
        assert r.json()["error"] == "cache exploded"
        assert r.headers["access-control-allow-origin"] == "*"

    def test_negligible_mortgage_rate(self, client):
        r = client.get(
            "/api/calc/mortgage",
            params={"principal": 1000, "rate": 1e-15, "years": 1},
            headers={"Origin": "https://elsewhere.test"},
        )

        body = r.json()
        assert body["success"] is True
        assert body["result"]["monthly_payment"] == pytest.approx(1000 / 12)
        assert r.headers["access-control-allow-origin"] == "*"

    def test_overflowing_compound_input(self, client):
        body = client.get("/api/calc/compound", params={"principal": 1, "rate": 100, "years": 5000}).json()
        assert body == {"success": True, "result": None}
