from __future__ import annotations

import uuid
from typing import List, Optional, Union

from pydantic import BaseModel, Field


class NewsItem(BaseModel):
    id: int
    title: str
    source: str = ""
    time: str = ""  # relative to publish time, e.g. "3h ago"
    summary: str = ""
    ai_insight: str = ""
    category: str = ""
    url: str = "#"
    image: Optional[str] = None
    original_title: str = ""  # untranslated headline; used to detect an unchanged article set


class CalendarEvent(BaseModel):
    date: str  # YYYY-MM-DD
    event: str
    time: str = "00:00"
    importance: str = "medium"  # "high" | "medium"
    previous: str = "--"
    forecast: str = "--"
    analysis: str = ""


class MarketQuote(BaseModel):
    name: str
    price: Union[str, float]
    change: float = 0.0


def new_asset_id() -> str:
    return uuid.uuid4().hex


class PortfolioAsset(BaseModel):
    id: str = Field(default_factory=new_asset_id)
    name: str
    entry_price: float
    quantity: float = 0.0


class NewsRequest(BaseModel):
    """Body of POST /api/news."""

    type: str
    term: Optional[str] = None
    portfolio: List[PortfolioAsset] = Field(default_factory=list)
