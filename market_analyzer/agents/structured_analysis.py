"""Generative market analysis with schema validation and graceful degradation.

The structured call is attempted once. Any exception or schema failure falls
back to a single unstructured call whose text is kept with
``schema_validated=False``; if that also fails the analysis is absent
(``None``). Without a configured chat provider a demo analysis is derived
from the deterministic estimate instead.
"""

from __future__ import annotations

import logging
from typing import Any

from market_analyzer.schemas import (
    AnalysisSchema,
    ListingBatch,
    PriceEstimate,
    Query,
    StructuredAnalysis,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a short-term-rental market analyst. Assess nightly pricing, value and "
    "competition for the requested search using the provided listing sample and your "
    "knowledge of the location. Use the $XXX price format."
)
SAMPLE_LISTING_LIMIT = 5


class StructuredAnalysisGenerator:
    """Produces an optional StructuredAnalysis for one query."""

    def __init__(self, *, chat_service: Any) -> None:
        self._chat = chat_service

    @property
    def demo_mode(self) -> bool:
        return not self._chat.is_available

    def analyze(
        self,
        query: Query,
        listing_batch: ListingBatch,
        estimate: PriceEstimate,
    ) -> StructuredAnalysis | None:
        if self.demo_mode:
            logger.info("chat service unavailable, using demo analysis for %s", query.location)
            return demo_analysis(query, estimate)

        user_prompt = build_analysis_prompt(query, listing_batch)
        try:
            parsed = self._chat.generate_structured(
                system_prompt=SYSTEM_PROMPT,
                user_prompt=user_prompt,
                schema=AnalysisSchema,
            )
            return StructuredAnalysis(**parsed.model_dump(), schema_validated=True)
        except Exception as exc:
            logger.warning(
                "structured analysis failed for %s: %s: %s; using unstructured response",
                query.location,
                type(exc).__name__,
                exc,
            )

        try:
            text = self._chat.generate(system_prompt=SYSTEM_PROMPT, user_prompt=user_prompt)
        except Exception as exc:
            logger.warning(
                "unstructured analysis failed for %s: %s: %s",
                query.location,
                type(exc).__name__,
                exc,
            )
            return None
        return StructuredAnalysis(schema_validated=False, analysis_text=text or None)


def demo_analysis(query: Query, estimate: PriceEstimate) -> StructuredAnalysis:
    """Local stand-in for the generative analysis, mirroring the estimate."""

    return StructuredAnalysis(
        location=query.location,
        property_type=estimate.property_type,
        guests=query.guests,
        average_price=estimate.average_price,
        price_range=estimate.price_range,
        peak_season_price=estimate.peak_season_price,
        value_rating=estimate.value_rating,
        best_neighborhoods=estimate.best_neighborhoods,
        seasonal_trends=estimate.market_trends,
        booking_tips=estimate.booking_tips_text,
        market_insights=f"Demo mode analysis for {query.location}",
        competition_level=estimate.competition_level,
        schema_validated=True,
        demo_mode=True,
    )


def build_analysis_prompt(query: Query, listing_batch: ListingBatch) -> str:
    if listing_batch.listings:
        sample_lines = "\n".join(
            f"- {listing.title}: {listing.price}/night, {listing.rating}⭐ ({listing.reviews} reviews)"
            for listing in listing_batch.listings[:SAMPLE_LISTING_LIMIT]
        )
        market_data = f"Real market data ({listing_batch.count} listings analyzed):\n{sample_lines}"
    else:
        market_data = "Note: Analysis based on market knowledge and pricing models."

    budget = f"Up to ${query.budget_max:g}/night" if query.budget_max else "Flexible"
    lines = [
        "Analyze the Airbnb market for this search request:",
        "",
        f"Location: {query.location}",
        f"Guests: {query.guests}",
        f"Check-in: {query.check_in.isoformat() if query.check_in else 'Flexible'}",
        f"Check-out: {query.check_out.isoformat() if query.check_out else 'Flexible'}",
        f"Budget: {budget}",
        f"Property Type: {query.property_type or 'Any'}",
        "",
        market_data,
        "",
        "Provide these fields:",
        "- average_price: Average nightly price (format: $XXX)",
        "- price_range: Min-max price range (format: $XXX-XXX)",
        "- peak_season_price: Peak season pricing (format: $XXX)",
        "- value_rating: One of: Excellent, Good, Fair, Poor",
        "- best_neighborhoods: Top 3 recommended neighborhoods (comma-separated)",
        "- seasonal_trends: Key seasonal pricing patterns",
        "- booking_tips: Specific booking optimization tips",
        "- market_insights: Unique market characteristics",
        "- competition_level: One of: Low, Medium, High",
        "",
        "Base your analysis on current market conditions, the provided data, and your knowledge of the location.",
    ]
    return "\n".join(lines)
