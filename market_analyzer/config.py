"""Centralized runtime settings loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings used by the batch runner and its services."""

    openrouter_api_key: str | None
    openrouter_base_url: str
    chat_model: str
    chat_max_output_tokens: int
    firecrawl_api_key: str | None
    firecrawl_base_url: str
    firecrawl_timeout_seconds: int
    fetch_max_retries: int
    fetch_backoff_seconds: float
    search_limit: int
    simulated_listings_min: int
    simulated_listings_max: int
    search_criteria_path: str
    output_dir: str
    log_level: str

    @property
    def demo_mode(self) -> bool:
        """Return True when no generative provider key is configured."""

        return not self.openrouter_api_key

    @property
    def scraping_enabled(self) -> bool:
        return bool(self.firecrawl_api_key)


def load_settings() -> Settings:
    """Load settings from environment with safe defaults for local runs."""

    def parse_int(value: str | None, default: int) -> int:
        if value is None or value.strip() == "":
            return default
        try:
            return int(value)
        except ValueError:
            return default

    def parse_float(value: str | None, default: float) -> float:
        if value is None or value.strip() == "":
            return default
        try:
            return float(value)
        except ValueError:
            return default

    def parse_secret(value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None

    listings_min = max(1, parse_int(os.getenv("SIMULATED_LISTINGS_MIN"), 15))
    listings_max = max(listings_min, parse_int(os.getenv("SIMULATED_LISTINGS_MAX"), 28))
    return Settings(
        openrouter_api_key=parse_secret(os.getenv("OPENROUTER_API_KEY")),
        openrouter_base_url=os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1"),
        chat_model=os.getenv("CHAT_MODEL", "anthropic/claude-3.5-sonnet"),
        chat_max_output_tokens=parse_int(os.getenv("CHAT_MAX_OUTPUT_TOKENS"), 1200),
        firecrawl_api_key=parse_secret(os.getenv("FIRECRAWL_API_KEY")),
        firecrawl_base_url=os.getenv("FIRECRAWL_BASE_URL", "https://api.firecrawl.dev/v1").rstrip("/"),
        firecrawl_timeout_seconds=parse_int(os.getenv("FIRECRAWL_TIMEOUT_SECONDS"), 30),
        fetch_max_retries=max(0, parse_int(os.getenv("FETCH_MAX_RETRIES"), 3)),
        fetch_backoff_seconds=max(0.0, parse_float(os.getenv("FETCH_BACKOFF_SECONDS"), 1.0)),
        search_limit=max(1, parse_int(os.getenv("SEARCH_LIMIT"), 25)),
        simulated_listings_min=listings_min,
        simulated_listings_max=listings_max,
        search_criteria_path=os.getenv("SEARCH_CRITERIA_PATH", "searches/search_criteria.csv"),
        output_dir=os.getenv("OUTPUT_DIR", "outputs"),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
