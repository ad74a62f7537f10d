from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

import httpx

from .models import MarketQuote
from .state import HubState

logger = logging.getLogger(__name__)

CACHE_KEY = "market:latest"

DEFAULT_FX: List[Dict[str, Any]] = [
    {"name": "USD/TWD", "price": "31.50", "change": 0.2},
    {"name": "USD/HKD", "price": "7.80", "change": 0.1},
    {"name": "USD/JPY", "price": "150.20", "change": -0.3},
    {"name": "USD/EUR", "price": "1.0870", "change": 0.5},
]

DEFAULT_CRYPTO: List[Dict[str, Any]] = [
    {"name": "BTC", "price": "$65,000", "change": 2.5},
    {"name": "ETH", "price": "$3,500", "change": 1.8},
]


class UpstreamDataError(ValueError):
    pass


def default_quotes() -> List[Dict[str, Any]]:
    return [dict(q) for q in DEFAULT_FX + DEFAULT_CRYPTO]


def _usd(value: float) -> str:
    if float(value).is_integer():
        return f"${int(value):,}"
    return f"${value:,.2f}"


def parse_fx(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    rates = data.get("rates") if isinstance(data, dict) else None
    if not isinstance(rates, dict):
        raise UpstreamDataError("FX response has no rates")
    try:
        twd, hkd, jpy, eur = (float(rates[k]) for k in ("TWD", "HKD", "JPY", "EUR"))
    except (KeyError, TypeError, ValueError) as e:
        raise UpstreamDataError(f"FX rate missing: {e}")
    if eur <= 0:
        raise UpstreamDataError("FX EUR rate is not positive")
    # The keyless FX feed has no daily change; keep the reference figures.
    changes = {q["name"]: q["change"] for q in DEFAULT_FX}
    return [
        MarketQuote(name="USD/TWD", price=f"{twd:.2f}", change=changes["USD/TWD"]).model_dump(),
        MarketQuote(name="USD/HKD", price=f"{hkd:.2f}", change=changes["USD/HKD"]).model_dump(),
        MarketQuote(name="USD/JPY", price=f"{jpy:.2f}", change=changes["USD/JPY"]).model_dump(),
        MarketQuote(name="USD/EUR", price=f"{1 / eur:.4f}", change=changes["USD/EUR"]).model_dump(),
    ]


def parse_crypto(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    out = []
    for coin, symbol in (("bitcoin", "BTC"), ("ethereum", "ETH")):
        row = data.get(coin) if isinstance(data, dict) else None
        if not isinstance(row, dict) or row.get("usd") is None:
            raise UpstreamDataError(f"crypto response has no {coin} price")
        try:
            price = float(row["usd"])
            change = round(float(row.get("usd_24h_change") or 0.0), 2)
        except (TypeError, ValueError) as e:
            raise UpstreamDataError(f"crypto {coin} malformed: {e}")
        out.append(MarketQuote(name=symbol, price=_usd(price), change=change).model_dump())
    return out


async def _fetch_json(client: httpx.AsyncClient, url: str) -> Dict[str, Any]:
    r = await client.get(url)
    r.raise_for_status()
    return r.json()


async def _fetch_group(client: httpx.AsyncClient, url: str, parse, defaults, label: str) -> Tuple[List[Dict[str, Any]], bool]:
    try:
        return parse(await _fetch_json(client, url)), False
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("%s fetch failed, using defaults: %s", label, e)
        return [dict(q) for q in defaults], True


async def get_market(state: HubState) -> Dict[str, Any]:
    cfg = state.settings
    cached = state.cache.get_fresh(CACHE_KEY, cfg.market_cache_ttl)
    if cached is not None:
        return {"success": True, "data": cached.value, "has_error": False, "from_cache": True}

    async with state.http_client(cfg.request_timeout) as client:
        fx, fx_failed = await _fetch_group(client, cfg.fx_api_url, parse_fx, DEFAULT_FX, "fx")
        crypto, crypto_failed = await _fetch_group(client, cfg.crypto_api_url, parse_crypto, DEFAULT_CRYPTO, "crypto")

    data = fx + crypto
    has_error = fx_failed or crypto_failed
    if not has_error:
        state.cache.set(CACHE_KEY, data)
    return {"success": True, "data": data or default_quotes(), "has_error": has_error, "from_cache": False}
