from __future__ import annotations

from datetime import date
import json

import httpx
import pytest

from market_analyzer.services.firecrawl_client import (
    FirecrawlClient,
    RetryingFetchClient,
    RetryPolicy,
    build_search_query,
)

ENDPOINT = "https://firecrawl.test/v1/search"


def _client(responses: list, sleeps: list[float]) -> tuple[RetryingFetchClient, list[httpx.Request]]:
    """Fetch client whose transport replays `responses` in order; exceptions are raised."""

    seen: list[httpx.Request] = []
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    client = RetryingFetchClient(
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=sleeps.append,
    )
    return client, seen


def test_retry_policy_schedule() -> None:
    policy = RetryPolicy()

    assert policy.max_attempts == 4
    assert [policy.backoff(n) for n in (1, 2, 3)] == [1.0, 2.0, 3.0]
    assert policy.should_retry(3) is True
    assert policy.should_retry(4) is False
    assert RetryPolicy(max_retries=2, base_delay_seconds=0.5).backoff(2) == 1.0


def test_three_failures_then_success_returns_data() -> None:
    sleeps: list[float] = []
    client, seen = _client(
        [
            httpx.Response(500, text="boom"),
            httpx.Response(502, text="bad gateway"),
            httpx.Response(429, text="slow down"),
            httpx.Response(200, json={"success": True, "data": [{"title": "Loft"}]}),
        ],
        sleeps,
    )

    result = client.fetch(ENDPOINT, {"query": "Airbnb Paris"})

    assert result.ok is True
    assert result.data == [{"title": "Loft"}]
    assert result.attempts == 4
    assert sleeps == [1.0, 2.0, 3.0]
    assert len(seen) == 4


def test_four_failures_return_empty_data_with_error() -> None:
    sleeps: list[float] = []
    client, seen = _client([httpx.Response(503, text="unavailable") for _ in range(4)], sleeps)

    result = client.fetch(ENDPOINT, {"query": "Airbnb Paris"})

    assert result.ok is False
    assert result.data == []
    assert result.error is not None and "API error: 503" in result.error
    assert result.attempts == 4
    assert sleeps == [1.0, 2.0, 3.0]
    assert len(seen) == 4


def test_transport_exceptions_are_retried() -> None:
    sleeps: list[float] = []
    request = httpx.Request("POST", ENDPOINT)
    client, _ = _client(
        [
            httpx.ConnectError("connection refused", request=request),
            httpx.Response(200, json={"data": [{"title": "A"}, {"title": "B"}]}),
        ],
        sleeps,
    )

    result = client.fetch(ENDPOINT, {})

    assert result.ok is True
    assert len(result.data) == 2
    assert sleeps == [1.0]


def test_success_without_records_is_valid_empty_result() -> None:
    sleeps: list[float] = []
    client, _ = _client([httpx.Response(200, json={"success": True})], sleeps)

    result = client.fetch(ENDPOINT, {})

    assert result.ok is True
    assert result.data == []
    assert result.attempts == 1
    assert sleeps == []


def test_firecrawl_search_posts_query_and_limit() -> None:
    sleeps: list[float] = []
    fetch_client, seen = _client([httpx.Response(200, json={"data": [{"title": "Loft"}]})], sleeps)
    firecrawl = FirecrawlClient(
        api_key="fc-test",
        base_url="https://firecrawl.test/v1/",
        fetch_client=fetch_client,
    )

    result = firecrawl.search_listings("Paris, France", guests=2, property_type="apartment", limit=25)

    assert result.data == [{"title": "Loft"}]
    assert str(seen[0].url) == ENDPOINT
    body = json.loads(seen[0].content)
    assert body["query"] == "Airbnb Paris, France 2 guests apartment"
    assert body["searchOptions"] == {"limit": 25}
    assert body["pageOptions"]["onlyMainContent"] is True


def test_firecrawl_requires_api_key() -> None:
    with pytest.raises(ValueError):
        FirecrawlClient(api_key="")


def test_build_search_query_includes_optional_filters() -> None:
    query = build_search_query(
        "Rome",
        guests=4,
        property_type="house",
        budget_max=150.0,
        check_in=date(2025, 7, 10),
        check_out=date(2025, 7, 15),
    )

    assert query == "Airbnb Rome 4 guests house under $150 2025-07-10 to 2025-07-15"
    assert build_search_query("Rome") == "Airbnb Rome"
