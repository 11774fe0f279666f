"""Field-level fusion of the deterministic estimate and the optional generative analysis.

Each output field has an ordered chain of providers in ``FUSION_RULES``. A
provider returns a value or ``None``; the first present, non-blank value wins.
The last provider of every chain always answers, so a FusedResult is always
fully populated.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from market_analyzer.schemas import (
    FusedResult,
    ListingBatch,
    PriceEstimate,
    Query,
    StructuredAnalysis,
)


class FusionError(ValueError):
    """Raised when no provider in a field's chain yields a value."""


@dataclass(frozen=True)
class FusionInputs:
    query: Query
    estimate: PriceEstimate
    analysis: StructuredAnalysis | None


Provider = Callable[[FusionInputs], Any]


def _from_analysis(field_name: str) -> Provider:
    def provide(inputs: FusionInputs) -> Any:
        if inputs.analysis is None:
            return None
        return getattr(inputs.analysis, field_name, None)

    provide.__name__ = f"analysis.{field_name}"
    return provide


def _from_estimate(attribute: str) -> Provider:
    def provide(inputs: FusionInputs) -> Any:
        return getattr(inputs.estimate, attribute)

    provide.__name__ = f"estimate.{attribute}"
    return provide


def _default_text(template: str) -> Provider:
    def provide(inputs: FusionInputs) -> str:
        return template.format(location=inputs.query.location)

    provide.__name__ = "default_text"
    return provide


FUSION_RULES: tuple[tuple[str, tuple[Provider, ...]], ...] = (
    ("average_price", (_from_analysis("average_price"), _from_estimate("average_price"))),
    ("price_range", (_from_analysis("price_range"), _from_estimate("price_range"))),
    ("peak_season_price", (_from_analysis("peak_season_price"), _from_estimate("peak_season_price"))),
    ("value_rating", (_from_analysis("value_rating"), _from_estimate("value_rating"))),
    ("best_neighborhoods", (_from_analysis("best_neighborhoods"), _from_estimate("best_neighborhoods"))),
    ("seasonal_trends", (_from_analysis("seasonal_trends"), _from_estimate("market_trends"))),
    ("booking_tips", (_from_analysis("booking_tips"), _from_estimate("booking_tips_text"))),
    ("market_insights", (_from_analysis("market_insights"), _default_text("Market analysis for {location}"))),
    ("competition_level", (_from_analysis("competition_level"), _from_estimate("competition_level"))),
)


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def resolve_field(field_name: str, providers: tuple[Provider, ...], inputs: FusionInputs) -> Any:
    """Return the first present value from `providers`, in priority order."""

    for provider in providers:
        value = provider(inputs)
        if _is_present(value):
            return value
    raise FusionError(f"no provider produced a value for '{field_name}'")


class AnalysisFusion:
    """Merges one query's estimate, listing batch and analysis into a FusedResult."""

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))

    def fuse(
        self,
        query: Query,
        listing_batch: ListingBatch,
        price_estimate: PriceEstimate,
        structured_analysis: StructuredAnalysis | None = None,
        *,
        analyzed_at: datetime | None = None,
    ) -> FusedResult:
        inputs = FusionInputs(query=query, estimate=price_estimate, analysis=structured_analysis)
        fused = {name: resolve_field(name, providers, inputs) for name, providers in FUSION_RULES}
        return FusedResult(
            location=query.location,
            guests=query.guests,
            check_in=query.check_in,
            check_out=query.check_out,
            budget_max=query.budget_max,
            property_type=query.property_type,
            market_trends=price_estimate.market_trends,
            scraped_data_source=listing_batch.source,
            scraped_listings_count=listing_batch.count,
            schema_validated=structured_analysis is None or structured_analysis.schema_validated is not False,
            analyzed_at=analyzed_at or self._clock(),
            **fused,
        )
