from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

import httpx

from .llm import LLMError, chat_completion
from .models import PortfolioAsset
from .state import HubState
from .utils import normalize_whitespace

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "AI analysis is temporarily unavailable, please try again later."


def add_asset(assets: List[PortfolioAsset], asset: PortfolioAsset) -> List[PortfolioAsset]:
    if not normalize_whitespace(asset.name):
        raise ValueError("asset name is required")
    if asset.entry_price <= 0:
        raise ValueError("entry price must be positive")
    if asset.quantity < 0:
        raise ValueError("quantity cannot be negative")
    return [*assets, asset]


def remove_asset(assets: List[PortfolioAsset], asset_id: str) -> List[PortfolioAsset]:
    """Library helper; the dashboard removes holdings client-side."""
    return [a for a in assets if a.id != asset_id]


def summarize(assets: List[PortfolioAsset]) -> Dict[str, Any]:
    total = sum(a.entry_price * a.quantity for a in assets)
    return {"positions": len(assets), "total_cost": round(total, 2)}


async def analyze_portfolio(state: HubState, assets: List[PortfolioAsset]) -> Dict[str, Any]:
    if not assets:
        return {"success": False, "error": "portfolio is empty"}
    try:
        checked: List[PortfolioAsset] = []
        for asset in assets:
            checked = add_asset(checked, asset)
    except ValueError as e:
        return {"success": False, "error": str(e)}
    assets = checked

    holdings = [{"name": a.name, "entry_price": a.entry_price, "quantity": a.quantity} for a in assets]
    messages = [
        {
            "role": "system",
            "content": (
                f"You are a cautious portfolio reviewer. Answer in {state.settings.target_language}, "
                "in plain prose under 150 words, no markdown. This is not investment advice."
            ),
        },
        {
            "role": "user",
            "content": "Review this simulated portfolio for concentration and risk:\n"
            + json.dumps(holdings, ensure_ascii=False),
        },
    ]
    try:
        text = await chat_completion(state, messages, temperature=0.5, json_mode=False)
    except (LLMError, httpx.HTTPError) as e:
        logger.warning("portfolio analysis failed: %s", e)
        return {"success": False, "error": str(e) or type(e).__name__, "result": UNAVAILABLE_MESSAGE}

    result = normalize_whitespace(text)
    if not result:
        return {"success": False, "error": "empty analysis", "result": UNAVAILABLE_MESSAGE}
    return {"success": True, "result": result, "summary": summarize(assets)}
