"""Price-anchored listing samples: simulated listings and field extraction from scraped text."""

from __future__ import annotations

from collections.abc import Sequence
import random
import re
from typing import Any

from bs4 import BeautifulSoup

from market_analyzer.agents.price_estimator import DEFAULT_PROPERTY_TYPE, PriceEstimator, round_half_up
from market_analyzer.schemas import BatchSource, Listing, ListingBatch

AMENITY_VOCABULARY = (
    "WiFi",
    "Kitchen",
    "Parking",
    "AC",
    "Heating",
    "TV",
    "Washer",
    "Dryer",
    "Balcony",
    "Pool",
)
DEFAULT_COUNT_RANGE = (15, 28)
PRICE_VARIATION = (0.7, 1.4)
RATING_FLOOR = 3.5
RATING_SPREAD = 1.5
REVIEW_COUNT_RANGE = (5, 150)
AMENITY_SAMPLE_RANGE = (3, 6)
FALLBACK_PRICE_RANGE = (80, 200)
SIMULATED_NOTE = "Simulated data for demonstration - enable Firecrawl for real data"

_PRICE_PATTERN = re.compile(r"\$\d{1,6}(?!\d)")
_RATING_PATTERN = re.compile(r"(?<!\d)(\d\.\d{1,3})\s*(?:stars?|⭐)", re.IGNORECASE)
_REVIEWS_PATTERN = re.compile(r"(?<!\d)(\d{1,6})\s*reviews?", re.IGNORECASE)
_AMENITY_PATTERNS = (
    ("WiFi", re.compile(r"wifi|internet", re.IGNORECASE)),
    ("Kitchen", re.compile(r"kitchen|cooking", re.IGNORECASE)),
    ("Parking", re.compile(r"parking|garage", re.IGNORECASE)),
    ("AC", re.compile(r"air conditioning|\bac\b", re.IGNORECASE)),
)
_TEXT_KEYS = ("content", "markdown", "description")


class ListingSynthesizer:
    """Builds listing batches anchored to the deterministic price estimate."""

    def __init__(
        self,
        *,
        price_estimator: PriceEstimator | None = None,
        rng: random.Random | None = None,
        count_range: tuple[int, int] = DEFAULT_COUNT_RANGE,
    ) -> None:
        self._estimator = price_estimator or PriceEstimator()
        self._rng = rng or random.Random()
        self.count_range = count_range

    def synthesize(
        self,
        location: str,
        guests: int,
        property_type: str | None,
        count_range: tuple[int, int] | None = None,
        *,
        source: BatchSource = "simulated",
    ) -> ListingBatch:
        """Draw a random-sized set of listings priced around the estimate's average."""

        low, high = count_range or self.count_range
        estimate = self._estimator.estimate(location, property_type or DEFAULT_PROPERTY_TYPE, guests)
        base_price = estimate.average_price_numeric
        label = property_type.capitalize() if property_type else "Modern"

        listings: list[Listing] = []
        for index in range(1, self._rng.randint(low, high) + 1):
            variation = self._rng.uniform(*PRICE_VARIATION)
            listings.append(
                Listing(
                    title=f"{label} {index} in {location}",
                    price=f"${round_half_up(base_price * variation)}",
                    rating=self._random_rating(),
                    reviews=self._random_review_count(),
                    amenities=self._sample_amenities(self._rng.randint(*AMENITY_SAMPLE_RANGE)),
                    url=f"https://airbnb.com/rooms/{self._rng.randint(100000, 999999)}",
                    source="simulated",
                )
            )
        return ListingBatch(source=source, listings=tuple(listings), note=SIMULATED_NOTE)

    def extract(self, raw_records: Sequence[Any]) -> ListingBatch:
        """Pull listing fields out of semi-structured scrape records, filling gaps randomly."""

        listings = [self._extract_listing(record) for record in raw_records]
        return ListingBatch(
            source="firecrawl",
            listings=tuple(listings),
            raw_sample=tuple(raw_records[:3]),
        )

    def _extract_listing(self, record: Any) -> Listing:
        text = self._record_text(record)
        url = record.get("url") if isinstance(record, dict) else None
        return Listing(
            title=self._extract_title(record, text),
            price=self._extract_price(text),
            rating=self._extract_rating(text),
            reviews=self._extract_review_count(text),
            amenities=self._extract_amenities(text),
            url=url if isinstance(url, str) and url else None,
            source="live",
        )

    def _record_text(self, record: Any) -> str:
        if isinstance(record, str):
            return record
        if not isinstance(record, dict):
            return ""
        for key in _TEXT_KEYS:
            value = record.get(key)
            if isinstance(value, str) and value.strip():
                return value
        html = record.get("html")
        if isinstance(html, str) and html.strip():
            return BeautifulSoup(html, "html.parser").get_text("\n", strip=True)
        return ""

    def _extract_title(self, record: Any, text: str) -> str:
        if isinstance(record, dict):
            title = record.get("title")
            if isinstance(title, str) and title.strip():
                return title.strip()
        first_line = text.split("\n", 1)[0].strip() if text else ""
        return first_line or "Airbnb Property"

    def _extract_price(self, text: str) -> str:
        match = _PRICE_PATTERN.search(text)
        if match:
            return match.group(0)
        return f"${self._rng.randint(*FALLBACK_PRICE_RANGE)}"

    def _extract_rating(self, text: str) -> float:
        match = _RATING_PATTERN.search(text)
        if match:
            return min(5.0, float(match.group(1)))
        return self._random_rating()

    def _extract_review_count(self, text: str) -> int:
        match = _REVIEWS_PATTERN.search(text)
        if match:
            return int(match.group(1))
        return self._random_review_count()

    def _extract_amenities(self, text: str) -> tuple[str, ...]:
        found = tuple(name for name, pattern in _AMENITY_PATTERNS if pattern.search(text))
        return found or self._sample_amenities(3)

    def _random_rating(self) -> float:
        return round(RATING_FLOOR + self._rng.uniform(0, RATING_SPREAD), 1)

    def _random_review_count(self) -> int:
        return self._rng.randint(*REVIEW_COUNT_RANGE)

    def _sample_amenities(self, size: int) -> tuple[str, ...]:
        return tuple(self._rng.sample(AMENITY_VOCABULARY, size))
