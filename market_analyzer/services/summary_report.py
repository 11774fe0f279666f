"""Plain-text batch summary: per-location blocks, market insights and value opportunities."""

from __future__ import annotations

from collections.abc import Sequence

from market_analyzer.agents.chart_aggregator import extract_numeric_price
from market_analyzer.schemas import FusedResult

RULE = "=" * 60


def _flexible(value: object | None) -> str:
    if value is None:
        return "Flexible"
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def _result_block(position: int, result: FusedResult) -> list[str]:
    budget = f"${result.budget_max:g}/night" if result.budget_max else "Flexible"
    return [
        f"{position}. {result.location}",
        f"   Guests: {result.guests}",
        f"   Dates: {_flexible(result.check_in)} to {_flexible(result.check_out)}",
        f"   Budget: {budget}",
        f"   Type: {result.property_type or 'Any'}",
        f"   Value Rating: {result.value_rating}",
        f"   Competition: {result.competition_level} competition",
        f"   Market Trend: {result.market_trends}",
        f"   Status: Complete with {result.scraped_listings_count} listings analyzed",
    ]


def market_insights(results: Sequence[FusedResult]) -> list[str]:
    priced = [(r, extract_numeric_price(r.average_price)) for r in results]
    prices = [price for _, price in priced if price is not None]
    if not prices:
        return []

    cheapest = min(priced, key=lambda item: item[1] if item[1] is not None else 999999)[0]
    most_expensive = max(priced, key=lambda item: item[1] or 0)[0]
    excellent = [r.location for r in results if r.value_rating == "Excellent"]

    lines = [
        f"   Average Price Across All Locations: ${sum(prices) // len(prices)}/night",
        f"   Most Affordable: {cheapest.location} ({cheapest.average_price}/night)",
        f"   Most Premium: {most_expensive.location} ({most_expensive.average_price}/night)",
        f"   Excellent Value Destinations: {len(excellent)}/{len(results)}",
    ]
    if excellent:
        lines.append(f"   Best Value Picks: {', '.join(excellent)}")
    return lines


def value_opportunities(results: Sequence[FusedResult]) -> list[str]:
    high = [r.location for r in results if r.competition_level == "High"]
    low = [r.location for r in results if r.competition_level == "Low"]
    excellent = [r.location for r in results if r.value_rating == "Excellent"]

    lines = []
    if high:
        lines.append(f"   High Competition Markets: {', '.join(high)}")
    if low:
        lines.append(f"   Low Competition Gems: {', '.join(low)}")
    if excellent:
        lines.append(f"   Exceptional Value: {', '.join(excellent)}")
    return lines


def build_summary_report(results: Sequence[FusedResult]) -> str:
    """Render the batch summary; an empty batch renders as an empty string."""

    if not results:
        return ""

    lines = ["AIRBNB ANALYSIS SUMMARY", RULE]
    for position, result in enumerate(results, start=1):
        lines.append("")
        lines.extend(_result_block(position, result))

    lines.extend(["", "MARKET INSIGHTS"])
    lines.extend(market_insights(results))
    lines.extend(["", "VALUE OPPORTUNITIES"])
    lines.extend(value_opportunities(results))
    lines.extend(["", RULE])
    return "\n".join(lines)
