"""Chart-ready aggregates over a batch of fused results."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
import logging
import re

from market_analyzer.schemas import (
    ChartBundle,
    ChartPoint,
    ChartSpec,
    Dashboard,
    DashboardSummary,
    FusedResult,
    ScatterPoint,
    SeasonalSeries,
    SeriesPoint,
)
from market_analyzer.services.location_keys import LocationTable

logger = logging.getLogger(__name__)

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
SEASONAL_LIMIT = 5
DEFAULT_GUESTS = 2

SEASONAL_MULTIPLIERS: LocationTable[tuple[float, ...]] = LocationTable(
    {
        "paris": (0.9, 0.9, 1.0, 1.1, 1.2, 1.3, 1.4, 1.3, 1.1, 1.0, 0.9, 1.0),
        "barcelona": (0.8, 0.8, 0.9, 1.0, 1.1, 1.4, 1.5, 1.4, 1.2, 1.0, 0.9, 0.8),
        "tokyo": (0.9, 0.9, 1.3, 1.4, 1.2, 1.0, 1.1, 1.1, 1.0, 1.1, 1.0, 0.9),
        "new york": (0.8, 0.8, 0.9, 1.1, 1.2, 1.1, 1.0, 1.0, 1.2, 1.3, 1.0, 1.1),
    },
    fallback=(0.9, 0.9, 1.0, 1.1, 1.2, 1.3, 1.2, 1.1, 1.1, 1.0, 0.9, 0.9),
)

SERIES_COLORS = ("#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4", "#FECA57")
RATING_ORDER = ("Excellent", "Good", "Fair", "Poor")
RATING_COLORS = {
    "Excellent": "#2ECC71",
    "Good": "#F39C12",
    "Fair": "#E74C3C",
    "Poor": "#95A5A6",
}
DEFAULT_POINT_COLOR = "#3498DB"
DASHBOARD_TITLE = "Airbnb Market Analysis Dashboard"

_NON_DIGITS = re.compile(r"\D")


def extract_numeric_price(price: str | None) -> int | None:
    """Digits of a price string as an int ("$1,200" -> 1200); None when there are none."""

    if price is None:
        return None
    digits = _NON_DIGITS.sub("", str(price))
    return int(digits) if digits else None


def rating_color(rating: str | None) -> str:
    return RATING_COLORS.get(rating or "", DEFAULT_POINT_COLOR)


def seasonal_series(location: str) -> SeasonalSeries:
    multipliers = SEASONAL_MULTIPLIERS.lookup(location)
    return SeasonalSeries(
        label=location,
        data=tuple(
            SeriesPoint(x=month, y=round((multiplier - 1) * 100, 1))
            for month, multiplier in zip(MONTHS, multipliers)
        ),
    )


class ChartAggregator:
    """Builds the comparison, distribution, scatter, seasonal and dashboard payloads."""

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] | None = None,
        seasonal_limit: int = SEASONAL_LIMIT,
    ) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))
        self.seasonal_limit = seasonal_limit

    def aggregate(self, results: Sequence[FusedResult]) -> ChartBundle | None:
        if not results:
            return None

        generated_at = self._clock()
        comparison = self.comparison_chart(results, generated_at)
        distribution = self.distribution_chart(results, generated_at)
        scatter = self.scatter_chart(results, generated_at)
        seasonal = self.seasonal_chart(results, generated_at)
        dashboard = Dashboard(
            title=DASHBOARD_TITLE,
            generated_at=generated_at,
            summary=self.summary(results),
            charts=(comparison, distribution, scatter, seasonal),
        )
        logger.info(
            "charts aggregated results=%s comparison_points=%s rating_buckets=%s",
            len(results),
            len(comparison.data),
            len(distribution.data),
        )
        return ChartBundle(
            comparison=comparison,
            distribution=distribution,
            scatter=scatter,
            seasonal=seasonal,
            dashboard=dashboard,
        )

    def comparison_chart(self, results: Sequence[FusedResult], generated_at: datetime) -> ChartSpec:
        points = []
        for result in results:
            price = extract_numeric_price(result.average_price)
            if result.location and price is not None:
                points.append(ChartPoint(label=result.location, value=price))
        return ChartSpec(
            type="bar",
            title="Airbnb Price Comparison by Location",
            x_axis="Location",
            y_axis="Average Price per Night ($)",
            data=tuple(points),
            colors=SERIES_COLORS,
            metadata={
                "generated_at": generated_at.isoformat(),
                "total_locations": len(results),
                "chart_type": "price_comparison",
            },
        )

    def distribution_chart(self, results: Sequence[FusedResult], generated_at: datetime) -> ChartSpec:
        counts = Counter(result.value_rating for result in results if result.value_rating)
        # Zero-count buckets are left out rather than emitted as empty slices.
        points = tuple(
            ChartPoint(label=rating, value=counts[rating]) for rating in RATING_ORDER if counts[rating]
        )
        return ChartSpec(
            type="pie",
            title="Value Rating Distribution",
            data=points,
            colors=tuple(RATING_COLORS[rating] for rating in RATING_ORDER),
            metadata={
                "generated_at": generated_at.isoformat(),
                "total_analyzed": len(results),
                "chart_type": "value_distribution",
            },
        )

    def scatter_chart(self, results: Sequence[FusedResult], generated_at: datetime) -> ChartSpec:
        points = tuple(
            ScatterPoint(
                x=result.guests or DEFAULT_GUESTS,
                y=extract_numeric_price(result.average_price),
                label=result.location,
                color=rating_color(result.value_rating),
            )
            for result in results
        )
        return ChartSpec(
            type="scatter",
            title="Guest Capacity vs Average Price",
            x_axis="Number of Guests",
            y_axis="Average Price per Night ($)",
            data=points,
            colors=(*(RATING_COLORS[rating] for rating in RATING_ORDER), DEFAULT_POINT_COLOR),
            metadata={
                "generated_at": generated_at.isoformat(),
                "chart_type": "capacity_price_scatter",
            },
        )

    def seasonal_chart(self, results: Sequence[FusedResult], generated_at: datetime) -> ChartSpec:
        # First N in input order; no ranking is applied.
        series = tuple(seasonal_series(result.location) for result in results[: self.seasonal_limit])
        return ChartSpec(
            type="line",
            title="Seasonal Price Trends by Location",
            x_axis="Month",
            y_axis="Relative Price Change (%)",
            data=series,
            colors=SERIES_COLORS,
            metadata={
                "generated_at": generated_at.isoformat(),
                "chart_type": "seasonal_trends",
            },
        )

    def summary(self, results: Sequence[FusedResult]) -> DashboardSummary:
        prices = [price for price in (extract_numeric_price(r.average_price) for r in results) if price is not None]
        most_expensive = max(results, key=lambda r: extract_numeric_price(r.average_price) or 0)
        best_value = next((r.location for r in results if r.value_rating == "Excellent"), None)
        return DashboardSummary(
            total_locations=len(results),
            average_price=sum(prices) // len(prices) if prices else 0,
            price_range=(min(prices), max(prices)) if prices else (0, 0),
            excellent_value_count=sum(1 for r in results if r.value_rating == "Excellent"),
            most_expensive=most_expensive.location,
            best_value=best_value,
        )
