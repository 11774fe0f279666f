from __future__ import annotations

from market_analyzer.config import load_settings

_ENV_VARS = (
    "OPENROUTER_API_KEY",
    "FIRECRAWL_API_KEY",
    "FETCH_MAX_RETRIES",
    "FETCH_BACKOFF_SECONDS",
    "SEARCH_LIMIT",
    "SIMULATED_LISTINGS_MIN",
    "SIMULATED_LISTINGS_MAX",
    "LOG_LEVEL",
)


def _clear(monkeypatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_load_settings_defaults_to_demo_and_simulation(monkeypatch) -> None:
    _clear(monkeypatch)

    settings = load_settings()

    assert settings.demo_mode is True
    assert settings.scraping_enabled is False
    assert settings.fetch_max_retries == 3
    assert settings.fetch_backoff_seconds == 1.0
    assert settings.search_limit == 25
    assert (settings.simulated_listings_min, settings.simulated_listings_max) == (15, 28)
    assert settings.log_level == "INFO"


def test_load_settings_reads_keys_and_numbers_from_env(monkeypatch) -> None:
    _clear(monkeypatch)
    monkeypatch.setenv("OPENROUTER_API_KEY", " sk-test ")
    monkeypatch.setenv("FIRECRAWL_API_KEY", "fc-test")
    monkeypatch.setenv("FETCH_MAX_RETRIES", "5")
    monkeypatch.setenv("FETCH_BACKOFF_SECONDS", "0.25")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.openrouter_api_key == "sk-test"
    assert settings.demo_mode is False
    assert settings.scraping_enabled is True
    assert settings.fetch_max_retries == 5
    assert settings.fetch_backoff_seconds == 0.25
    assert settings.log_level == "DEBUG"


def test_load_settings_ignores_malformed_numbers(monkeypatch) -> None:
    _clear(monkeypatch)
    monkeypatch.setenv("SEARCH_LIMIT", "lots")
    monkeypatch.setenv("FETCH_BACKOFF_SECONDS", "soon")
    monkeypatch.setenv("OPENROUTER_API_KEY", "   ")
    monkeypatch.setenv("SIMULATED_LISTINGS_MIN", "30")

    settings = load_settings()

    assert settings.search_limit == 25
    assert settings.fetch_backoff_seconds == 1.0
    assert settings.demo_mode is True
    assert settings.simulated_listings_max == 30
