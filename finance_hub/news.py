from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, List, Optional

import httpx

from .llm import LLMError, chat_completion, llm_configured
from .llm_json import extract_list, extract_object, only_dicts, pick_str
from .models import NewsItem
from .state import HubState
from .utils import gather_with_fallback, now_iso, relative_time, truncate

logger = logging.getLogger(__name__)

CACHE_KEY = "news:latest"
QUOTA_MESSAGE = "Daily refresh limit reached; showing the last update"
SYSTEM_CATEGORY = "System notice"


class NewsSourceError(RuntimeError):
    pass


def default_news() -> List[Dict[str, Any]]:
    return [
        NewsItem(
            id=1,
            title="System message",
            source="System",
            time="now",
            summary="Check the environment configuration.",
            ai_insight="Tip: make sure NEWS_API_KEY and API_BASE_URL are set correctly.",
            category="System",
            url="#",
        ).model_dump()
    ]


def _source_name(article: Dict[str, Any]) -> str:
    src = article.get("source")
    if isinstance(src, dict):
        return str(src.get("name") or "")
    return str(src or "")


def _link(url: Any, default: Optional[str] = "#") -> Optional[str]:
    """Only http(s) links reach the page."""
    if isinstance(url, str) and url.strip().lower().startswith(("http://", "https://")):
        return url.strip()
    return default


def _article_text(article: Dict[str, Any]) -> str:
    return article.get("description") or truncate(article.get("content") or "", 200)


def fallback_item(index: int, article: Dict[str, Any], reason: str, now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    """Untranslated headline with a system-message insight."""
    title = article.get("title") or ""
    return NewsItem(
        id=index + 1,
        title=title,
        source=_source_name(article),
        time=relative_time(article.get("publishedAt"), now),
        summary=article.get("description") or "Open the original article for details.",
        ai_insight=f"AI processing unavailable: {reason}",
        category=SYSTEM_CATEGORY,
        url=_link(article.get("url")),
        image=_link(article.get("urlToImage"), None),
        original_title=title,
    ).model_dump()


def build_item(index: int, article: Dict[str, Any], parsed: Dict[str, Any], now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    title = article.get("title") or ""
    return NewsItem(
        id=index + 1,
        title=pick_str(parsed, ["title"], title),
        source=_source_name(article),
        time=relative_time(article.get("publishedAt"), now),
        summary=pick_str(parsed, ["summary"], article.get("description") or ""),
        ai_insight=pick_str(parsed, ["insight", "aiInsight", "ai_insight"], ""),
        category=pick_str(parsed, ["category"], ""),
        url=_link(article.get("url")),
        image=_link(article.get("urlToImage"), None),
        original_title=title,
    ).model_dump()


def articles_are_same(articles: List[Dict[str, Any]], cached: Optional[List[Dict[str, Any]]]) -> bool:
    if not cached or len(articles) != len(cached):
        return False
    return all(a.get("title") == c.get("original_title") for a, c in zip(articles, cached))


async def fetch_headlines(state: HubState, client: httpx.AsyncClient) -> List[Dict[str, Any]]:
    cfg = state.settings
    if not cfg.news_api_key:
        raise NewsSourceError("NEWS_API_KEY is not set")
    params = {
        "category": cfg.news_category,
        "language": "en",
        "pageSize": cfg.news_page_size,
        "apiKey": cfg.news_api_key,
    }
    r = await client.get(cfg.news_api_url, params=params)
    if r.status_code >= 400:
        raise NewsSourceError(f"news API error: {r.status_code}")
    try:
        articles = r.json().get("articles") or []
    except (ValueError, AttributeError) as e:
        raise NewsSourceError(f"news API returned malformed body: {e}")
    articles = [a for a in articles if isinstance(a, dict) and a.get("title")][: cfg.news_page_size]
    if not articles:
        raise NewsSourceError("news API returned no articles")
    return articles


def _system_prompt(lang: str) -> str:
    return (
        f"You are a financial translator and analyst. Translate news into {lang} "
        "and add a short investment insight. Reply with JSON only, no markdown."
    )


def _article_block(article: Dict[str, Any]) -> str:
    return f"Title: {article.get('title')}\nSummary: {_article_text(article)}\nSource: {_source_name(article)}"


async def translate_article(state: HubState, client: httpx.AsyncClient, article: Dict[str, Any]) -> Dict[str, Any]:
    lang = state.settings.target_language
    messages = [
        {"role": "system", "content": _system_prompt(lang)},
        {
            "role": "user",
            "content": (
                f"Translate this news item into {lang} and give an investment insight. "
                'Format: {"title": "...", "summary": "...", "insight": "...", "category": "..."}\n\n'
                + _article_block(article)
            ),
        },
    ]
    text = await chat_completion(state, messages, temperature=0.5, client=client)
    res = extract_object(text)
    if not res.ok:
        raise LLMError(f"bad format: {res.error}")
    return res.value


async def translate_concurrent(state: HubState, client: httpx.AsyncClient, articles: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    now = dt.datetime.fromtimestamp(state.now(), dt.timezone.utc)

    async def worker(i: int, article: Dict[str, Any]) -> Dict[str, Any]:
        return build_item(i, article, await translate_article(state, client, article), now)

    def fallback(i: int, article: Dict[str, Any], exc: Exception) -> Dict[str, Any]:
        logger.warning("news item %s translation failed: %s", i + 1, exc)
        return fallback_item(i, article, str(exc) or type(exc).__name__, now)

    return await gather_with_fallback(articles, worker, fallback)


async def translate_batch(state: HubState, client: httpx.AsyncClient, articles: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    now = dt.datetime.fromtimestamp(state.now(), dt.timezone.utc)
    lang = state.settings.target_language
    blocks = "\n\n---\n\n".join(f"News {i + 1}:\n{_article_block(a)}" for i, a in enumerate(articles))
    messages = [
        {"role": "system", "content": _system_prompt(lang)},
        {
            "role": "user",
            "content": (
                f"Translate the following {len(articles)} news items into {lang} with an investment insight each, "
                'in the same order. Format: {"items": [{"title": "...", "summary": "...", "insight": "...", "category": "..."}]}\n\n'
                + blocks
            ),
        },
    ]
    try:
        res = extract_list(await chat_completion(state, messages, temperature=0.7, client=client), ("items", "news", "data"))
        if not res.ok:
            raise LLMError(f"bad format: {res.error}")
    except (LLMError, httpx.HTTPError) as e:
        logger.warning("batch translation failed: %s", e)
        return [fallback_item(i, a, str(e) or type(e).__name__, now) for i, a in enumerate(articles)]

    parsed = only_dicts(res.value)
    out = []
    for i, article in enumerate(articles):
        if i < len(parsed):
            out.append(build_item(i, article, parsed[i], now))
        else:
            out.append(fallback_item(i, article, "missing from batch reply", now))
    return out


async def get_news(state: HubState) -> Dict[str, Any]:
    cfg = state.settings
    state.quota.roll()

    cached = state.cache.get(CACHE_KEY)
    if cached is not None and cached.is_fresh(cfg.news_cache_ttl, state.now()):
        return {"success": True, "news": cached.value, "timestamp": cached.cached_at_iso(), "from_cache": True}

    if state.quota.exhausted():
        logger.info("news refresh skipped: daily quota %s reached", state.quota.limit)
        return {
            "success": True,
            "news": cached.value if cached is not None else default_news(),
            "timestamp": now_iso(state.now()),
            "from_cache": True,
            "message": QUOTA_MESSAGE,
        }

    try:
        async with state.http_client(cfg.request_timeout) as client:
            articles = await fetch_headlines(state, client)

            if cached is not None and articles_are_same(articles, cached.value):
                state.cache.touch(CACHE_KEY)
                logger.info("news unchanged (%s articles), cache timestamp refreshed", len(articles))
                return {"success": True, "news": cached.value, "timestamp": now_iso(state.now()), "from_cache": True}

            if llm_configured(state):
                state.quota.consume()
                if cfg.news_translate_mode == "batch":
                    items = await translate_batch(state, client, articles)
                else:
                    items = await translate_concurrent(state, client, articles)
            else:
                now = dt.datetime.fromtimestamp(state.now(), dt.timezone.utc)
                items = [fallback_item(i, a, "OPENAI_API_KEY is not set", now) for i, a in enumerate(articles)]
    except (NewsSourceError, httpx.HTTPError) as e:
        logger.error("news refresh failed: %s", e)
        return {
            "success": False,
            "error": str(e) or type(e).__name__,
            "news": cached.value if cached is not None else default_news(),
            "timestamp": now_iso(state.now()),
            "from_cache": True,
        }

    state.cache.set(CACHE_KEY, items)
    logger.info("news refreshed items=%s quota_used=%s/%s", len(items), state.quota.count, state.quota.limit)
    return {"success": True, "news": items, "timestamp": now_iso(state.now()), "from_cache": False}
