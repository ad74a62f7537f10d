from contextlib import asynccontextmanager
import logging
import os
from typing import Optional

import uvicorn

from fastapi import Body, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from . import calculators
from .calendar_events import get_calendar
from .config import settings
from .glossary import lookup_term
from .log_config import setup_logging
from .market import get_market
from .models import NewsRequest
from .news import get_news
from .portfolio import analyze_portfolio
from .state import HubState, build_state
from .ui import router as ui_router
from .utils import now_iso

logger = logging.getLogger(__name__)


def _state(request: Request) -> HubState:
    return request.app.state.hub


def create_app(state: Optional[HubState] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(app.state.hub.settings.log_level)
        logger.info(
            "finance hub starting model=%s llm=%s cache=%s",
            app.state.hub.settings.ai_model,
            "on" if app.state.hub.settings.openai_api_key else "off",
            type(app.state.hub.cache).__name__,
        )
        yield

    app = FastAPI(title="AI Finance Hub", version="1.0.0", lifespan=lifespan)
    app.state.hub = state or build_state(settings)
    app.include_router(ui_router)

    # Clients only look at `success`; failures never change the status code.
    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=200, content={"success": False, "error": "invalid request parameters", "timestamp": now_iso()})

    # Registered before CORS so it runs inside it and soft failures keep the CORS headers.
    @app.middleware("http")
    async def soft_failures(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception("%s %s failed: %s", request.method, request.url.path, exc)
            return JSONResponse(status_code=200, content={"success": False, "error": str(exc) or type(exc).__name__, "timestamp": now_iso()})

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.options("/api/{path:path}")
    def preflight(path: str):
        return Response(status_code=200)

    @app.get("/api/market")
    async def market(request: Request):
        return await get_market(_state(request))

    @app.get("/api/news")
    async def news(request: Request, term: Optional[str] = Query(None, max_length=200)):
        """Headlines; with `term`, a glossary lookup instead."""
        if term is not None:
            return await lookup_term(_state(request), term)
        return await get_news(_state(request))

    @app.post("/api/news")
    async def news_action(request: Request, body: NewsRequest = Body(...)):
        if body.type == "wiki_lookup":
            return await lookup_term(_state(request), body.term or "")
        if body.type == "portfolio_analysis":
            return await analyze_portfolio(_state(request), body.portfolio)
        return {"success": False, "error": f"unknown request type: {body.type}"}

    @app.get("/api/calendar")
    async def calendar(request: Request):
        return await get_calendar(_state(request))

    # ---------------------------------------------------------------------------
    # Calculators (same formulas as the page runs client-side; rates in percent)
    # ---------------------------------------------------------------------------

    @app.get("/api/calc/compound")
    def calc_compound(principal: float, rate: float, years: float):
        return {"success": True, "result": calculators.compound_growth(principal, rate / 100, years)}

    @app.get("/api/calc/mortgage")
    def calc_mortgage(principal: float, rate: float, years: float):
        return {"success": True, "result": calculators.mortgage(principal, rate / 100, years)}

    @app.get("/api/calc/roi")
    def calc_roi(initial: float, final: float):
        return {"success": True, "result": calculators.roi(initial, final)}

    @app.get("/api/calc/cagr")
    def calc_cagr(initial: float, final: float, years: float):
        return {"success": True, "result": calculators.cagr(initial, final, years)}

    @app.get("/api/calc/retirement")
    def calc_retirement(monthly_expense: float, withdrawal_rate: float = 4.0):
        return {"success": True, "result": calculators.retirement_target(monthly_expense, withdrawal_rate / 100)}

    return app


app = create_app()


def run() -> None:
    uvicorn.run(
        "finance_hub.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    run()
