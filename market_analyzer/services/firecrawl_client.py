"""Retrying HTTP client and Firecrawl search wrapper for live listing samples."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
import logging
import time
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class FetchError(RuntimeError):
    """Non-success response from the remote API."""


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry schedule: one initial attempt plus `max_retries` linear-backoff retries."""

    max_retries: int = 3
    base_delay_seconds: float = 1.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def backoff(self, retry_number: int) -> float:
        """Delay before the given retry (1-based): 1x, 2x, 3x the base unit."""

        return retry_number * self.base_delay_seconds

    def should_retry(self, failed_attempts: int) -> bool:
        return failed_attempts <= self.max_retries


@dataclass
class FetchResult:
    """Outcome of one fetch; an empty `data` with no error is a valid empty result."""

    data: list[Any] = field(default_factory=list)
    error: str | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class RetryingFetchClient:
    """Wraps one POST call with retry/backoff and never raises to the caller."""

    def __init__(
        self,
        *,
        headers: dict[str, str] | None = None,
        timeout_seconds: float = 30,
        policy: RetryPolicy | None = None,
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._http_client = http_client or httpx.Client(
            headers=headers,
            timeout=max(1.0, float(timeout_seconds)),
            trust_env=False,
        )

    def fetch(self, endpoint: str, payload: dict[str, Any]) -> FetchResult:
        """POST `payload` to `endpoint`; exhausted retries yield `{data: [], error: msg}`."""

        failed_attempts = 0
        last_error = "request was not attempted"
        while True:
            try:
                response = self._http_client.post(endpoint, json=payload)
                if not response.is_success:
                    raise FetchError(f"API error: {response.status_code} - {response.text[:300]}")
            except Exception as exc:
                failed_attempts += 1
                last_error = str(exc) or type(exc).__name__
                if not self.policy.should_retry(failed_attempts):
                    break
                delay = self.policy.backoff(failed_attempts)
                logger.warning(
                    "fetch retry %s/%s endpoint=%s delay_s=%.1f error=%s",
                    failed_attempts,
                    self.policy.max_retries,
                    endpoint,
                    delay,
                    last_error,
                )
                self._sleep(delay)
                continue

            data = self._extract_data(response)
            logger.info("fetch ok endpoint=%s results=%s attempts=%s", endpoint, len(data), failed_attempts + 1)
            return FetchResult(data=data, error=None, attempts=failed_attempts + 1)

        logger.error("fetch failed after %s retries endpoint=%s error=%s", self.policy.max_retries, endpoint, last_error)
        return FetchResult(data=[], error=last_error, attempts=failed_attempts)

    def close(self) -> None:
        self._http_client.close()

    def _extract_data(self, response: httpx.Response) -> list[Any]:
        """Accept any success payload shape; only a `data` list (or a bare list) carries records."""

        try:
            body = response.json()
        except ValueError:
            return []
        if isinstance(body, dict):
            data = body.get("data")
            return list(data) if isinstance(data, list) else []
        if isinstance(body, list):
            return body
        return []


class FirecrawlClient:
    """Firecrawl search API wrapper returning raw listing records."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://api.firecrawl.dev/v1",
        timeout_seconds: int = 30,
        policy: RetryPolicy | None = None,
        fetch_client: RetryingFetchClient | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("FIRECRAWL_API_KEY is required for live listing search")
        self.base_url = base_url.rstrip("/")
        self._fetch_client = fetch_client or RetryingFetchClient(
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout_seconds=timeout_seconds,
            policy=policy,
        )

    def search_listings(
        self,
        location: str,
        *,
        guests: int | None = None,
        property_type: str | None = None,
        budget_max: float | None = None,
        check_in: date | None = None,
        check_out: date | None = None,
        limit: int = 20,
    ) -> FetchResult:
        """Search Airbnb listings for one location; failures come back as `FetchResult.error`."""

        query = build_search_query(
            location,
            guests=guests,
            property_type=property_type,
            budget_max=budget_max,
            check_in=check_in,
            check_out=check_out,
        )
        logger.info("firecrawl search query=%r limit=%s", query, limit)
        payload = {
            "query": query,
            "pageOptions": {
                "onlyMainContent": True,
                "includeHtml": False,
                "screenshot": False,
            },
            "searchOptions": {"limit": max(1, int(limit))},
        }
        return self._fetch_client.fetch(f"{self.base_url}/search", payload)


def build_search_query(
    location: str,
    *,
    guests: int | None = None,
    property_type: str | None = None,
    budget_max: float | None = None,
    check_in: date | None = None,
    check_out: date | None = None,
) -> str:
    parts = ["Airbnb", location]
    if guests:
        parts.append(f"{guests} guests")
    if property_type:
        parts.append(property_type)
    if budget_max:
        parts.append(f"under ${budget_max:g}")
    if check_in and check_out:
        parts.append(f"{check_in.isoformat()} to {check_out.isoformat()}")
    return " ".join(parts)
