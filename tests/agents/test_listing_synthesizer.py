from __future__ import annotations

import random
from types import SimpleNamespace
from typing import Any

from market_analyzer.agents.listing_synthesizer import (
    AMENITY_VOCABULARY,
    SIMULATED_NOTE,
    ListingSynthesizer,
)


def _synthesizer(seed: int = 7) -> ListingSynthesizer:
    return ListingSynthesizer(rng=random.Random(seed))


def test_synthesize_anchors_prices_to_estimate() -> None:
    batch = _synthesizer().synthesize("Paris, France", 2, "apartment")

    assert batch.source == "simulated"
    assert batch.note == SIMULATED_NOTE
    assert 15 <= batch.count <= 28
    for index, listing in enumerate(batch.listings, start=1):
        assert listing.title == f"Apartment {index} in Paris, France"
        assert listing.source == "simulated"
        price = int(listing.price.lstrip("$"))
        assert 84 <= price <= 168
        assert 3.5 <= listing.rating <= 5.0
        assert 5 <= listing.reviews <= 150
        assert 3 <= len(listing.amenities) <= 6
        assert len(set(listing.amenities)) == len(listing.amenities)
        assert set(listing.amenities) <= set(AMENITY_VOCABULARY)
        assert listing.url is not None and listing.url.startswith("https://airbnb.com/rooms/")


def test_synthesize_without_property_type_uses_modern_title() -> None:
    batch = _synthesizer().synthesize("Reykjavik", 2, None, count_range=(3, 3))

    assert batch.count == 3
    assert batch.listings[0].title == "Modern 1 in Reykjavik"


def test_synthesize_marks_enhanced_simulation_source() -> None:
    batch = _synthesizer().synthesize("Tokyo", 4, "house", source="enhanced_simulation")

    assert batch.source == "enhanced_simulation"
    assert all(listing.source == "simulated" for listing in batch.listings)


def test_synthesize_is_reproducible_with_seeded_rng() -> None:
    first = _synthesizer(11).synthesize("Rome", 2, "apartment")
    second = _synthesizer(11).synthesize("Rome", 2, "apartment")

    assert first == second


def test_extract_reads_fields_from_scraped_text() -> None:
    record = {
        "title": "Cozy loft near the canal",
        "url": "https://airbnb.com/rooms/42",
        "content": "Lovely flat for $145 per night. 4.87 stars from 132 reviews. Free wifi, full kitchen and air conditioning.",
    }

    batch = _synthesizer().extract([record])

    assert batch.source == "firecrawl"
    assert batch.count == 1
    listing = batch.listings[0]
    assert listing.title == "Cozy loft near the canal"
    assert listing.price == "$145"
    assert listing.rating == 4.87
    assert listing.reviews == 132
    assert listing.amenities == ("WiFi", "Kitchen", "AC")
    assert listing.url == "https://airbnb.com/rooms/42"
    assert listing.source == "live"


def test_extract_falls_back_to_html_and_plain_strings() -> None:
    batch = _synthesizer().extract(
        [
            {"html": "<h1>Sunny studio</h1><p>Only $99 a night</p>"},
            "Backpacker room with internet, 12 reviews",
        ]
    )

    html_listing, text_listing = batch.listings
    assert html_listing.title == "Sunny studio"
    assert html_listing.price == "$99"
    assert text_listing.title == "Backpacker room with internet, 12 reviews"
    assert text_listing.reviews == 12
    # "Backpacker" must not count as air conditioning.
    assert text_listing.amenities == ("WiFi",)


def test_extract_fills_missing_fields_randomly() -> None:
    batch = _synthesizer().extract([{"markdown": "   "}, {}])

    for listing in batch.listings:
        assert listing.title == "Airbnb Property"
        assert 80 <= int(listing.price.lstrip("$")) <= 200
        assert 3.5 <= listing.rating <= 5.0
        assert len(listing.amenities) == 3


def test_extract_caps_rating_and_keeps_first_three_raw_records() -> None:
    records = [{"content": "Castle 7.5 stars $300"}, {"content": "a"}, {"content": "b"}, {"content": "c"}]

    batch = _synthesizer().extract(records)

    assert batch.listings[0].rating == 5.0
    assert batch.raw_sample == tuple(records[:3])
    assert batch.count == 4


def test_extract_ignores_oversized_digit_runs() -> None:
    batch = _synthesizer().extract([{"content": "9" * 5000 + " reviews " + "4" * 5000 + ".5 stars $" + "1" * 5000}])

    listing = batch.listings[0]
    assert 5 <= listing.reviews <= 150
    assert 3.5 <= listing.rating <= 5.0
    assert 80 <= int(listing.price.lstrip("$")) <= 200


class _FixedEstimator:
    def estimate(self, *args: Any, **kwargs: Any) -> SimpleNamespace:
        return SimpleNamespace(average_price_numeric=2)


class _FixedVariationRandom(random.Random):
    def uniform(self, a: float, b: float) -> float:
        return 1.25


def test_synthesized_prices_round_half_up() -> None:
    synthesizer = ListingSynthesizer(price_estimator=_FixedEstimator(), rng=_FixedVariationRandom(1))

    batch = synthesizer.synthesize("Anywhere", 2, "apartment", count_range=(2, 2))

    assert [listing.price for listing in batch.listings] == ["$3", "$3"]
