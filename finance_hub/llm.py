from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .state import HubState

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class MissingCredentialError(LLMError):
    pass


class RateLimitedError(LLMError):
    pass


def llm_configured(state: HubState) -> bool:
    return bool(state.settings.openai_api_key.strip())


def _error_for(resp: httpx.Response) -> LLMError:
    body = resp.text or ""
    if resp.status_code == 429:
        return RateLimitedError("LLM rate limited (429)", status_code=429, detail=body[:200])
    if "<!DOCTYPE html>" in body or "<html" in body[:200].lower():
        return LLMError(
            f"LLM request blocked by a proxy ({resp.status_code}); check API_BASE_URL",
            status_code=resp.status_code,
        )
    return LLMError(f"LLM API error ({resp.status_code}): {body[:50]}", status_code=resp.status_code, detail=body[:500])


async def chat_completion(
    state: HubState,
    messages: List[Dict[str, str]],
    *,
    temperature: float = 0.5,
    json_mode: bool = True,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    """POST to `{base}/chat/completions` and return the first choice's content.

    Timeouts and transport failures surface as `httpx.HTTPError`; everything
    else the endpoint does wrong becomes an `LLMError` subclass.
    """
    cfg = state.settings
    if not llm_configured(state):
        raise MissingCredentialError("OPENAI_API_KEY is not set")

    payload: Dict[str, Any] = {
        "model": cfg.ai_model,
        "messages": messages,
        "temperature": temperature,
    }
    if json_mode:
        payload["response_format"] = {"type": "json_object"}

    url = f"{cfg.llm_base_url}/chat/completions"
    headers = {"Authorization": f"Bearer {cfg.openai_api_key}"}

    if client is None:
        async with state.http_client(cfg.llm_timeout) as own:
            r = await own.post(url, json=payload, headers=headers)
    else:
        r = await client.post(url, json=payload, headers=headers, timeout=cfg.llm_timeout)

    if r.status_code >= 400:
        err = _error_for(r)
        logger.warning("llm call failed model=%s status=%s: %s", cfg.ai_model, r.status_code, err)
        raise err

    try:
        data = r.json()
        content = data["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise LLMError(f"LLM returned unexpected body: {e}", status_code=r.status_code, detail=r.text[:500])
    return content or ""
