from pydantic import BaseModel
import os

class Settings(BaseModel):
    news_api_key: str = os.getenv("NEWS_API_KEY", "")
    news_api_url: str = os.getenv("NEWS_API_URL", "https://newsapi.org/v2/top-headlines")
    news_category: str = os.getenv("NEWS_CATEGORY", "business")
    news_page_size: int = int(os.getenv("NEWS_PAGE_SIZE", "9"))
    news_translate_mode: str = os.getenv("NEWS_TRANSLATE_MODE", "concurrent")  # "concurrent" | "batch"

    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    api_base_url: str = os.getenv("API_BASE_URL", "https://api.openai.com/v1")
    ai_model: str = os.getenv("AI_MODEL", "gpt-4o-mini")
    target_language: str = os.getenv("TARGET_LANGUAGE", "Traditional Chinese")

    fx_api_url: str = os.getenv("FX_API_URL", "https://open.er-api.com/v6/latest/USD")
    crypto_api_url: str = os.getenv(
        "CRYPTO_API_URL",
        "https://api.coingecko.com/api/v3/simple/price"
        "?ids=bitcoin,ethereum&vs_currencies=usd&include_24hr_change=true",
    )

    request_timeout: float = float(os.getenv("REQUEST_TIMEOUT", "5"))
    llm_timeout: float = float(os.getenv("LLM_TIMEOUT", "8"))
    user_agent: str = os.getenv("USER_AGENT", "ai-finance-hub/1.0")

    news_cache_ttl: float = float(os.getenv("NEWS_CACHE_TTL", str(30 * 60)))
    market_cache_ttl: float = float(os.getenv("MARKET_CACHE_TTL", str(5 * 60)))
    calendar_cache_ttl: float = float(os.getenv("CALENDAR_CACHE_TTL", str(60 * 60)))
    term_cache_ttl: float = float(os.getenv("TERM_CACHE_TTL", str(24 * 60 * 60)))
    max_daily_requests: int = int(os.getenv("MAX_DAILY_REQUESTS", "50"))

    term_retry_attempts: int = int(os.getenv("TERM_RETRY_ATTEMPTS", "3"))
    term_retry_base_delay: float = float(os.getenv("TERM_RETRY_BASE_DELAY", "1"))

    cache_url: str = os.getenv("CACHE_URL", "")  # empty -> in-process memory
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    hub_base_url: str = os.getenv("HUB_BASE_URL", "http://localhost:8000")
    warm_every_min: int = int(os.getenv("WARM_EVERY_MIN", "5"))

    @property
    def llm_base_url(self) -> str:
        # Accept both "https://host" and "https://host/v1/" style values.
        url = self.api_base_url.rstrip("/")
        if "/v1" not in url:
            url += "/v1"
        return url


settings = Settings()
