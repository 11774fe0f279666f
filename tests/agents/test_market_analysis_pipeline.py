"""Stage-level and batch tests for the market analysis pipeline."""

from __future__ import annotations

from datetime import UTC, datetime
import random
from typing import Any

import pytest

from market_analyzer.agents.analysis_fusion import AnalysisFusion
from market_analyzer.agents.listing_synthesizer import ListingSynthesizer
from market_analyzer.agents.market_analysis_pipeline import (
    EmptyBatchError,
    MarketAnalysisPipeline,
    MarketAnalyzer,
)
from market_analyzer.agents.price_estimator import PriceEstimator
from market_analyzer.agents.structured_analysis import StructuredAnalysisGenerator
from market_analyzer.schemas import Query
from market_analyzer.services.firecrawl_client import FetchResult

FIXED_NOW = datetime(2025, 6, 1, tzinfo=UTC)


# -- Dummy services --


class _DummyChatService:
    is_available = False


class _DummyFirecrawl:
    def __init__(self, result: FetchResult | Exception) -> None:
        self._result = result
        self.calls: list[dict[str, Any]] = []

    def search_listings(self, location: str, **kwargs: Any) -> FetchResult:
        self.calls.append({"location": location, **kwargs})
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


class _ExplodingEstimator(PriceEstimator):
    def estimate(self, location: str, property_type: str | None = "apartment", guests: int = 2):
        if location == "Broken":
            raise KeyError("no pricing data")
        return super().estimate(location, property_type, guests)


def _pipeline(
    *,
    firecrawl: _DummyFirecrawl | None = None,
    estimator: PriceEstimator | None = None,
) -> MarketAnalysisPipeline:
    estimator = estimator or PriceEstimator()
    return MarketAnalysisPipeline(
        price_estimator=estimator,
        listing_synthesizer=ListingSynthesizer(price_estimator=estimator, rng=random.Random(3)),
        analysis_generator=StructuredAnalysisGenerator(chat_service=_DummyChatService()),
        fusion=AnalysisFusion(clock=lambda: FIXED_NOW),
        firecrawl_client=firecrawl,
        search_limit=10,
    )


def test_pipeline_without_scraper_uses_simulated_listings() -> None:
    result, steps = _pipeline().run(Query(location="Paris, France", guests=2, property_type="apartment"))

    assert result.scraped_data_source == "simulated"
    assert 15 <= result.scraped_listings_count <= 28
    assert result.average_price == "$120"
    assert result.market_insights == "Demo mode analysis for Paris, France"
    assert [step.module for step in steps] == [
        "market_analysis.price_estimation",
        "market_analysis.listing_collection",
        "market_analysis.analysis_generation",
        "market_analysis.fusion",
    ]


def test_pipeline_extracts_live_listings() -> None:
    firecrawl = _DummyFirecrawl(
        FetchResult(data=[{"title": "Loft", "content": "$140 4.9 stars 20 reviews"}], attempts=1)
    )

    result, steps = _pipeline(firecrawl=firecrawl).run(Query(location="Berlin", guests=3, budget_max=200))

    assert result.scraped_data_source == "firecrawl"
    assert result.scraped_listings_count == 1
    assert firecrawl.calls[0]["limit"] == 10
    assert firecrawl.calls[0]["budget_max"] == 200
    assert steps[1].response == {"source": "firecrawl", "count": 1}


@pytest.mark.parametrize(
    "fetched",
    [
        FetchResult(data=[], attempts=1),
        FetchResult(data=[], error="API error: 503", attempts=4),
        RuntimeError("socket closed"),
    ],
)
def test_empty_or_failed_scrape_falls_back_to_enhanced_simulation(fetched: Any) -> None:
    result, steps = _pipeline(firecrawl=_DummyFirecrawl(fetched)).run(Query(location="Lisbon"))

    assert result.scraped_data_source == "enhanced_simulation"
    assert result.scraped_listings_count > 0
    assert steps[1].prompt["mode"] == "live_fallback"


def test_batch_isolates_failing_query_and_keeps_order() -> None:
    analyzer = MarketAnalyzer(pipeline=_pipeline(estimator=_ExplodingEstimator()))
    queries = [Query(location="Paris"), Query(location="Broken"), Query(location="Tokyo")]

    outcome = analyzer.analyze_batch(queries)

    assert [result.location for result in outcome.results] == ["Paris", "Tokyo"]
    assert len(outcome.failures) == 1
    failure = outcome.failures[0]
    assert (failure.index, failure.location) == (1, "Broken")
    assert failure.error.startswith("KeyError:")
    assert any(step.module == "market_analysis.batch" for step in outcome.steps)


def test_batch_rejects_empty_input() -> None:
    with pytest.raises(EmptyBatchError):
        MarketAnalyzer(pipeline=_pipeline()).analyze_batch([])


def test_analyze_single_query() -> None:
    result = MarketAnalyzer(pipeline=_pipeline()).analyze(Query(location="Unknown City", guests=4))

    assert result.average_price == "$154"
    assert result.value_rating == "Good"
    assert result.analyzed_at == FIXED_NOW
