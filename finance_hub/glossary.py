from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .llm import LLMError, MissingCredentialError, RateLimitedError, chat_completion
from .llm_json import extract_object, pick_str
from .state import HubState
from .utils import normalize_whitespace

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "The AI service is busy, please try again later."
BAD_FORMAT_MESSAGE = "The AI service returned an unreadable answer (bad format)."

# Answered locally; never hits the network.
GLOSSARY: Dict[str, str] = {
    "CPI": "Consumer Price Index: the main gauge of inflation, tracking the price of a fixed basket of consumer goods and services.",
    "QT": "Quantitative tightening: a central bank shrinks its balance sheet, usually by not reinvesting maturing bonds. A contractionary monetary policy.",
    "NFP": "Non-farm payrolls: monthly US jobs report excluding farm workers, one of the most watched indicators of US economic health.",
    "GDP": "Gross Domestic Product: total value of goods and services produced in an economy over a period.",
    "PMI": "Purchasing Managers' Index: survey-based indicator of business activity; readings above 50 signal expansion.",
    "FOMC": "Federal Open Market Committee: the Federal Reserve body that sets US interest-rate policy.",
    "ETF": "Exchange-traded fund: a basket of securities that trades on an exchange like a single stock.",
    "P/E": "Price-to-earnings ratio: share price divided by earnings per share, a common valuation measure.",
    "ROI": "Return on investment: gain or loss relative to the amount invested, (final - initial) / initial.",
    "CAGR": "Compound annual growth rate: the constant yearly rate that takes an initial value to a final value over a period.",
}
_GLOSSARY_FOLDED = {k.casefold(): v for k, v in GLOSSARY.items()}


def _cache_key(term: str) -> str:
    return "term:" + term.casefold()


def dictionary_lookup(term: str) -> Optional[str]:
    return GLOSSARY.get(term) or _GLOSSARY_FOLDED.get(term.casefold())


def _result(term: str, explanation: str, source: str, error: Optional[str] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {"success": error is None, "term": term, "explanation": explanation, "source": source}
    if error is not None:
        out["error"] = error
    return out


async def _ask_llm(state: HubState, term: str) -> str:
    messages = [
        {
            "role": "system",
            "content": (
                f"You are a financial educator. Explain financial terms in {state.settings.target_language}, "
                "in plain language, in at most 120 words. Reply with JSON only."
            ),
        },
        {"role": "user", "content": f'Explain the term "{term}". Format: {{"explanation": "..."}}'},
    ]
    return await chat_completion(state, messages, temperature=0.3)


async def lookup_term(state: HubState, term: str) -> Dict[str, Any]:
    """Dictionary first, then the per-term cache, then the LLM (429s retried with backoff)."""
    cfg = state.settings
    term = normalize_whitespace(term)
    if not term:
        return _result(term, "", "none", error="term is required")

    fixed = dictionary_lookup(term)
    if fixed is not None:
        return _result(term, fixed, "dictionary")

    cached = state.cache.get_fresh(_cache_key(term), cfg.term_cache_ttl)
    if cached is not None:
        return _result(term, cached.value, "cache")

    base = cfg.term_retry_base_delay
    retrying = AsyncRetrying(
        retry=retry_if_exception_type(RateLimitedError),
        stop=stop_after_attempt(cfg.term_retry_attempts + 1),
        wait=wait_exponential(multiplier=base, min=base),
        sleep=state.sleep,
        before_sleep=lambda rs: logger.info(
            "term lookup rate limited term=%r attempt=%s, backing off", term, rs.attempt_number
        ),
        reraise=True,
    )
    try:
        text = await retrying(_ask_llm, state, term)
    except RateLimitedError:
        logger.warning("term lookup gave up after %s attempts term=%r", cfg.term_retry_attempts + 1, term)
        return _result(term, BUSY_MESSAGE, "llm", error="rate limited")
    except MissingCredentialError as e:
        return _result(term, "", "llm", error=str(e))
    except (LLMError, httpx.HTTPError) as e:
        logger.error("term lookup failed term=%r: %s", term, e)
        return _result(term, "", "llm", error=str(e) or type(e).__name__)

    res = extract_object(text)
    explanation = pick_str(res.value, ["explanation"], "") if res.ok else ""
    if not explanation:
        logger.warning("term lookup bad format term=%r raw=%s", term, text[:200])
        return _result(term, BAD_FORMAT_MESSAGE, "llm", error="bad format")

    state.cache.set(_cache_key(term), explanation)
    return _result(term, explanation, "llm")
