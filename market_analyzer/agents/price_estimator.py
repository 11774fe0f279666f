"""Deterministic nightly price, value and competition estimates from a city lookup table."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from market_analyzer.schemas import CompetitionLevel, PriceEstimate, ValueRating
from market_analyzer.services.location_keys import LocationTable

DEFAULT_PROPERTY_TYPE = "apartment"


@dataclass(frozen=True)
class PriceProfile:
    """Base nightly price and peak multiplier, with either fixed 2-guest range bounds or
    factors applied to the guest-adjusted average."""

    base: int
    peak_multiplier: float
    range_bounds: tuple[int, int] | None = None
    range_factors: tuple[float, float] = (0.7, 1.4)

    def price_range(self, average: int, multiplier: float) -> tuple[int, int]:
        if self.range_bounds is not None:
            low, high = self.range_bounds
            return round_half_up(low * multiplier), round_half_up(high * multiplier)
        low_factor, high_factor = self.range_factors
        return round_half_up(average * low_factor), round_half_up(average * high_factor)


@dataclass(frozen=True)
class ValueTier:
    excellent_below: int
    good_below: int


# Used whenever the city or the property type is not in the table.
GENERIC_PROFILE = PriceProfile(base=110, peak_multiplier=1.5, range_factors=(0.7, 1.4))

PRICE_TABLE: LocationTable[dict[str, PriceProfile]] = LocationTable(
    {
        "paris": {
            "apartment": PriceProfile(120, 1.4, range_bounds=(80, 180)),
            "house": PriceProfile(200, 1.5, range_bounds=(150, 300)),
        },
        "tokyo": {
            "apartment": PriceProfile(90, 1.6, range_bounds=(60, 140)),
            "house": PriceProfile(180, 1.7, range_bounds=(120, 250)),
        },
        "new york": {
            "apartment": PriceProfile(180, 1.3, range_bounds=(120, 280)),
            "house": PriceProfile(350, 1.4, range_bounds=(250, 500)),
        },
        "london": {
            "apartment": PriceProfile(140, 1.3, range_bounds=(100, 200)),
            "house": PriceProfile(250, 1.4, range_bounds=(180, 350)),
        },
        "barcelona": {
            "apartment": PriceProfile(100, 1.5, range_bounds=(70, 150)),
            "house": PriceProfile(180, 1.6, range_bounds=(130, 250)),
        },
        "amsterdam": {
            "apartment": PriceProfile(130, 1.4, range_bounds=(90, 190)),
            "house": PriceProfile(220, 1.5, range_bounds=(160, 320)),
        },
        "rome": {
            "apartment": PriceProfile(110, 1.5, range_bounds=(75, 165)),
            "house": PriceProfile(200, 1.6, range_bounds=(140, 280)),
        },
        "berlin": {
            "apartment": PriceProfile(95, 1.3, range_bounds=(65, 140)),
            "house": PriceProfile(170, 1.4, range_bounds=(120, 240)),
        },
        "prague": {
            "apartment": PriceProfile(70, 1.4, range_bounds=(50, 105)),
            "house": PriceProfile(130, 1.5, range_bounds=(90, 180)),
        },
        "lisbon": {
            "apartment": PriceProfile(85, 1.4, range_bounds=(60, 125)),
            "house": PriceProfile(150, 1.5, range_bounds=(110, 210)),
        },
    },
    fallback={},
)

_BUDGET_TIER = ValueTier(excellent_below=120, good_below=160)
_PREMIUM_TIER = ValueTier(excellent_below=150, good_below=200)

VALUE_TIERS: LocationTable[ValueTier] = LocationTable(
    {
        "tokyo": _BUDGET_TIER,
        "barcelona": _BUDGET_TIER,
        "prague": _BUDGET_TIER,
        "lisbon": _BUDGET_TIER,
        "paris": _PREMIUM_TIER,
        "london": _PREMIUM_TIER,
        "amsterdam": _PREMIUM_TIER,
        "new york": ValueTier(excellent_below=200, good_below=300),
    },
    fallback=ValueTier(excellent_below=130, good_below=180),
)

_HIGH_COMPETITION = {"paris", "new york", "london", "barcelona", "amsterdam"}
_MEDIUM_COMPETITION = {"tokyo", "rome", "berlin"}

COMPETITION_LEVELS: LocationTable[CompetitionLevel] = LocationTable(
    {
        **{city: "High" for city in _HIGH_COMPETITION},
        **{city: "Medium" for city in _MEDIUM_COMPETITION},
    },
    fallback="Low",
)

NEIGHBORHOODS: LocationTable[tuple[str, ...]] = LocationTable(
    {
        "paris": ("Le Marais", "Bastille", "Canal Saint-Martin"),
        "tokyo": ("Koenji", "Nakano", "Shimokitazawa"),
        "new york": ("Brooklyn Heights", "Astoria", "Long Island City"),
        "london": ("Greenwich", "Walthamstow", "Crystal Palace"),
        "barcelona": ("Gràcia", "El Born", "Poblenou"),
        "amsterdam": ("Jordaan", "De Pijp", "Oost"),
        "rome": ("Trastevere", "San Lorenzo", "Testaccio"),
        "berlin": ("Kreuzberg", "Friedrichshain", "Prenzlauer Berg"),
        "prague": ("Vinohrady", "Karlín", "Smíchov"),
        "lisbon": ("Príncipe Real", "Alcântara", "Marvila"),
    },
    fallback=("Central areas", "Local neighborhoods", "Transit-connected zones"),
)

MARKET_TRENDS: LocationTable[str] = LocationTable(
    {
        "paris": "Steady demand year-round, summer peak pricing",
        "tokyo": "Spring cherry blossom season premium, winter value opportunities",
        "new york": "Fall and spring peak seasons, summer Broadway premium",
        "london": "Summer tourist peak, winter shoulder season savings",
        "barcelona": "Summer beach season premium, mild winter demand",
        "amsterdam": "Spring tulip season peak, canal-view premium",
        "rome": "Spring/fall optimal weather premium, summer heat discounts",
        "berlin": "Summer festival season peak, stable year-round demand",
        "prague": "Christmas market season premium, spring/fall value",
        "lisbon": "Year-round appeal, summer coastal premium",
    },
    fallback="Seasonal variation typical, book advance for peak periods",
)

BASELINE_TIPS = (
    "Book 2-3 months in advance for best selection",
    "Consider weekday stays for 10-15% savings",
    "Look for properties with 4.5+ ratings and 20+ reviews",
)
NEGOTIATION_TIPS = (
    "Message hosts directly for potential discounts on longer stays",
    "Check for new listings with introductory pricing",
)
TIMING_TIPS = (
    "Book early in the week for best rates",
    "Consider slightly outer neighborhoods with good transport",
)
NEGOTIATION_PRICE_THRESHOLD = 150


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going away from zero."""

    return int(Decimal(value).to_integral_value(rounding=ROUND_HALF_UP))


def guest_multiplier(guests: int) -> float:
    """Each guest beyond two adds 20% to every price figure."""

    return 1 + max(0, guests - 2) * 0.2


def format_price(amount: int) -> str:
    return f"${amount}"


class PriceEstimator:
    """Pure estimator: (location, property_type, guests) -> PriceEstimate, no I/O."""

    def estimate(
        self,
        location: str,
        property_type: str | None = DEFAULT_PROPERTY_TYPE,
        guests: int = 2,
    ) -> PriceEstimate:
        resolved_type = (property_type or DEFAULT_PROPERTY_TYPE).strip() or DEFAULT_PROPERTY_TYPE
        profile = self._resolve_profile(location, resolved_type)
        multiplier = guest_multiplier(guests)

        average = round_half_up(profile.base * multiplier)
        range_low, range_high = profile.price_range(average, multiplier)
        peak = round_half_up(average * profile.peak_multiplier)

        return PriceEstimate(
            location=location,
            property_type=resolved_type,
            guests=guests,
            average_price=format_price(average),
            average_price_numeric=average,
            range_low=range_low,
            range_high=range_high,
            price_range=f"${range_low}-{range_high}",
            peak_season_price=format_price(peak),
            peak_price_numeric=peak,
            value_rating=self.assess_value(average, location),
            competition_level=self.competition_level(location),
            neighborhoods=NEIGHBORHOODS.lookup(location),
            booking_tips=self.booking_tips(average),
            market_trends=MARKET_TRENDS.lookup(location),
        )

    def _resolve_profile(self, location: str, property_type: str) -> PriceProfile:
        # A known city with an unlisted property type still gets the generic profile.
        profiles = PRICE_TABLE.lookup(location)
        return profiles.get(property_type.lower(), GENERIC_PROFILE)

    def assess_value(self, average_price: int, location: str) -> ValueRating:
        tier = VALUE_TIERS.lookup(location)
        if average_price < tier.excellent_below:
            return "Excellent"
        if average_price < tier.good_below:
            return "Good"
        return "Fair"

    def competition_level(self, location: str) -> CompetitionLevel:
        return COMPETITION_LEVELS.lookup(location)

    def booking_tips(self, average_price: int) -> tuple[str, ...]:
        extra = NEGOTIATION_TIPS if average_price > NEGOTIATION_PRICE_THRESHOLD else TIMING_TIPS
        return BASELINE_TIPS + extra

