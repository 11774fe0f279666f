"""Pydantic schemas for queries, analyses, fused results, and chart payloads."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

ValueRating = Literal["Excellent", "Good", "Fair", "Poor"]
CompetitionLevel = Literal["Low", "Medium", "High"]
ListingSource = Literal["live", "simulated"]
BatchSource = Literal["firecrawl", "simulated", "enhanced_simulation"]
ChartType = Literal["bar", "pie", "scatter", "line"]


class StepLog(BaseModel):
    """Standard execution step shape recorded by every pipeline stage."""

    module: str
    prompt: dict[str, Any]
    response: dict[str, Any]


class Query(BaseModel):
    """One search request from the batch input."""

    model_config = ConfigDict(frozen=True)

    location: str = Field(min_length=1, description="Free-text 'City, Region' location")
    guests: int = Field(default=2, ge=1, description="Number of guests")
    check_in: date | None = Field(default=None, description="Optional check-in date")
    check_out: date | None = Field(default=None, description="Optional check-out date")
    budget_max: float | None = Field(default=None, gt=0, description="Optional nightly budget cap")
    property_type: str | None = Field(default=None, description="Optional property type, e.g. apartment")


class PriceEstimate(BaseModel):
    """Deterministic price, value and competition estimate for one location."""

    model_config = ConfigDict(frozen=True)

    location: str
    property_type: str
    guests: int
    average_price: str
    average_price_numeric: int
    range_low: int
    range_high: int
    price_range: str
    peak_season_price: str
    peak_price_numeric: int
    value_rating: ValueRating
    competition_level: CompetitionLevel
    neighborhoods: tuple[str, ...]
    booking_tips: tuple[str, ...]
    market_trends: str

    @property
    def best_neighborhoods(self) -> str:
        return ", ".join(self.neighborhoods)

    @property
    def booking_tips_text(self) -> str:
        return "; ".join(self.booking_tips)


class Listing(BaseModel):
    """One live or simulated rental listing."""

    model_config = ConfigDict(frozen=True)

    title: str
    price: str
    rating: float = Field(ge=0.0, le=5.0)
    reviews: int = Field(ge=0)
    amenities: tuple[str, ...] = ()
    url: str | None = None
    source: ListingSource


class ListingBatch(BaseModel):
    """Market sample for one query; an empty batch means no sample was available."""

    model_config = ConfigDict(frozen=True)

    source: BatchSource
    listings: tuple[Listing, ...] = ()
    note: str | None = None
    raw_sample: tuple[Any, ...] = ()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def count(self) -> int:
        return len(self.listings)


class AnalysisSchema(BaseModel):
    """Structured response requested from the generative model."""

    location: str = Field(description="Property location")
    property_type: str = Field(description="Type of property (apartment, house, etc.)")
    guests: int = Field(description="Number of guests accommodated")
    average_price: str = Field(description="Average nightly price (e.g., $120)")
    price_range: str = Field(description="Min-max price range (e.g., $80-160)")
    peak_season_price: str | None = Field(default=None, description="Peak season pricing (e.g., $180)")
    value_rating: ValueRating = Field(description="Value assessment rating")
    best_neighborhoods: str = Field(description="Top 3 recommended neighborhoods")
    seasonal_trends: str | None = Field(default=None, description="Key seasonal pricing patterns")
    booking_tips: str | None = Field(default=None, description="Specific booking optimization tips")
    market_insights: str | None = Field(default=None, description="Unique market characteristics")
    competition_level: CompetitionLevel | None = Field(default=None, description="Market competition level")


class StructuredAnalysis(BaseModel):
    """Externally generated analysis; every field may be missing."""

    model_config = ConfigDict(frozen=True)

    location: str | None = None
    property_type: str | None = None
    guests: int | None = None
    average_price: str | None = None
    price_range: str | None = None
    peak_season_price: str | None = None
    value_rating: ValueRating | None = None
    best_neighborhoods: str | None = None
    seasonal_trends: str | None = None
    booking_tips: str | None = None
    market_insights: str | None = None
    competition_level: CompetitionLevel | None = None
    schema_validated: bool = True
    analysis_text: str | None = None
    demo_mode: bool = False


class FusedResult(BaseModel):
    """Canonical per-query output merged from estimate, listings and analysis."""

    model_config = ConfigDict(frozen=True)

    location: str
    guests: int
    check_in: date | None
    check_out: date | None
    budget_max: float | None
    property_type: str | None
    average_price: str
    price_range: str
    peak_season_price: str
    value_rating: ValueRating
    best_neighborhoods: str
    seasonal_trends: str
    booking_tips: str
    market_insights: str
    competition_level: CompetitionLevel
    market_trends: str
    scraped_data_source: BatchSource
    scraped_listings_count: int
    schema_validated: bool
    analyzed_at: datetime


class ChartPoint(BaseModel):
    """Labelled value used by bar and pie charts."""

    model_config = ConfigDict(frozen=True)

    label: str
    value: int


class ScatterPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int
    y: int | None
    label: str
    color: str


class SeriesPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: str
    y: float


class SeasonalSeries(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    data: tuple[SeriesPoint, ...]


class ChartSpec(BaseModel):
    """Chart-ready payload handed to exporters."""

    model_config = ConfigDict(frozen=True)

    type: ChartType
    title: str
    x_axis: str | None = None
    y_axis: str | None = None
    data: tuple[ChartPoint | ScatterPoint | SeasonalSeries, ...]
    colors: tuple[str, ...]
    metadata: dict[str, Any]


class DashboardSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_locations: int
    average_price: int
    price_range: tuple[int, int]
    excellent_value_count: int
    most_expensive: str | None
    best_value: str | None


class Dashboard(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    generated_at: datetime
    summary: DashboardSummary
    charts: tuple[ChartSpec, ...]


class ChartBundle(BaseModel):
    """All chart payloads produced for one batch."""

    model_config = ConfigDict(frozen=True)

    comparison: ChartSpec
    distribution: ChartSpec
    scatter: ChartSpec
    seasonal: ChartSpec
    dashboard: Dashboard
