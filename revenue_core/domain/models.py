"""Domain models for pricing, forecasting and booking expiry."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Mapping, Optional


class MealPlan(str, Enum):
    EP = "EP"
    CP = "CP"
    MAP = "MAP"
    AP = "AP"


class OccupancyTier(str, Enum):
    SINGLE = "single"
    DOUBLE = "double"
    TRIPLE = "triple"
    QUAD = "quad"

    @classmethod
    def for_guests_per_room(cls, guests_per_room: int) -> "OccupancyTier":
        ordered = list(cls)
        index = min(max(guests_per_room, 1), len(ordered)) - 1
        return ordered[index]


class Weekday(str, Enum):
    # Declaration order matches date.weekday().
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return list(cls)[day.weekday()]


class DemandLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class LeadTimeTier(str, Enum):
    DAYS_30_PLUS = "30+"
    DAYS_15_TO_30 = "15-30"
    DAYS_7_TO_15 = "7-15"
    DAYS_1_TO_7 = "1-7"

    @classmethod
    def for_lead_days(cls, lead_days: int) -> "LeadTimeTier":
        if lead_days >= 30:
            return cls.DAYS_30_PLUS
        if lead_days >= 15:
            return cls.DAYS_15_TO_30
        if lead_days >= 7:
            return cls.DAYS_7_TO_15
        return cls.DAYS_1_TO_7


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class ForecastMetric(str, Enum):
    BOOKINGS = "bookings"
    REVENUE = "revenue"
    OCCUPANCY = "occupancy"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


@dataclass(frozen=True)
class RoomCategory:
    category_id: str
    name: str
    base_rate: float
    free_extra_person_limit: int
    extra_person_charge: float
    meal_plan_matrix: Mapping[MealPlan, Mapping[OccupancyTier, float]]


@dataclass(frozen=True)
class GuestSelection:
    """Guests requested for a stay.

    ``room_children`` holds one tuple of child ages per room, in room order.
    Children older than five are priced as adults.
    """

    rooms: int
    adults: int
    room_children: tuple[tuple[int, ...], ...] = ()

    @property
    def children_ages(self) -> list[int]:
        return [age for ages in self.room_children for age in ages]

    @property
    def effective_adults(self) -> int:
        return self.adults + sum(1 for age in self.children_ages if age > 5)

    @property
    def free_children(self) -> int:
        return sum(1 for age in self.children_ages if age <= 5)


@dataclass(frozen=True)
class DateRange:
    check_in: date
    check_out: date

    @property
    def nights(self) -> int:
        delta = self.check_out - self.check_in
        return math.ceil(delta.total_seconds() / 86400)

    def stay_dates(self) -> list[date]:
        first_night = (
            self.check_in.date() if isinstance(self.check_in, datetime) else self.check_in
        )
        return [first_night + timedelta(days=offset) for offset in range(self.nights)]


@dataclass(frozen=True)
class AddOn:
    name: str
    unit_price: float
    quantity: int = 1
    per_night: bool = False

    def cost(self, nights: int) -> float:
        multiplier = nights if self.per_night else 1
        return self.unit_price * self.quantity * multiplier


@dataclass(frozen=True)
class SeasonRate:
    multiplier: float
    months: frozenset[int] = frozenset()


@dataclass(frozen=True)
class SeasonalRates:
    peak: SeasonRate = SeasonRate(multiplier=1.0)
    off_peak: SeasonRate = SeasonRate(multiplier=1.0)
    shoulder: SeasonRate = SeasonRate(multiplier=1.0)

    def multiplier_for(self, month: int) -> float:
        if month in self.peak.months:
            return self.peak.multiplier
        if month in self.off_peak.months:
            return self.off_peak.multiplier
        return self.shoulder.multiplier


@dataclass(frozen=True)
class EventAdjustment:
    name: str
    start: date
    end: date
    percent: float

    def covers(self, night: date) -> bool:
        return self.start <= night <= self.end


def _neutral_table(keys: type[Enum], value: float) -> dict:
    return {key: value for key in keys}


@dataclass(frozen=True)
class DynamicPricingConfig:
    """Dynamic pricing rules for one property.

    Lookup tables are keyed by enum members and always complete; use
    ``revenue_core.domain.constraints.build_dynamic_pricing_config`` to
    construct one from raw catalog data.
    """

    enabled: bool = True
    base_price: Optional[float] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    seasonal_rates: SeasonalRates = SeasonalRates()
    weekly_rates: Mapping[Weekday, float] = field(
        default_factory=lambda: _neutral_table(Weekday, 1.0)
    )
    demand_pricing: Mapping[DemandLevel, float] = field(
        default_factory=lambda: _neutral_table(DemandLevel, 1.0)
    )
    advance_booking_discounts: Mapping[LeadTimeTier, float] = field(
        default_factory=lambda: _neutral_table(LeadTimeTier, 0.0)
    )
    last_minute_premium: float = 0.0
    event_pricing: tuple[EventAdjustment, ...] = ()


@dataclass(frozen=True)
class PricingBreakdown:
    base_room_total: float
    extra_guest_charge: float
    meal_total: float
    add_ons_total: float
    subtotal: float
    taxes: int
    service_fee: int
    total: float
    extra_guests: int
    nights: int
    nightly_rates: tuple[float, ...] = ()

    def to_dict(self) -> dict[str, float | int | list[float]]:
        return {
            "base_room_total": self.base_room_total,
            "extra_guest_charge": self.extra_guest_charge,
            "meal_total": self.meal_total,
            "add_ons_total": self.add_ons_total,
            "subtotal": self.subtotal,
            "taxes": self.taxes,
            "service_fee": self.service_fee,
            "total": self.total,
            "extra_guests": self.extra_guests,
            "nights": self.nights,
            "nightly_rates": list(self.nightly_rates),
        }


@dataclass(frozen=True)
class HistoricalDataPoint:
    date: date
    bookings_count: int
    revenue: float
    occupancy_rate: Optional[float] = None

    def value_for(self, metric: ForecastMetric) -> float:
        if metric is ForecastMetric.BOOKINGS:
            return float(self.bookings_count)
        if metric is ForecastMetric.REVENUE:
            return float(self.revenue)
        return float(self.occupancy_rate or 0.0)


@dataclass(frozen=True)
class ForecastResult:
    predicted: float
    confidence: float
    trend: Trend
    change_percent: float

    @classmethod
    def insufficient_data(cls) -> "ForecastResult":
        return cls(predicted=0.0, confidence=0.0, trend=Trend.STABLE, change_percent=0.0)

    def to_dict(self) -> dict[str, float | str]:
        return {
            "predicted": self.predicted,
            "confidence": self.confidence,
            "trend": self.trend.value,
            "change_percent": self.change_percent,
        }


@dataclass(frozen=True)
class SeasonalPattern:
    month: int
    multiplier: float
    confidence: float

    def to_dict(self) -> dict[str, float | int]:
        return {
            "month": self.month,
            "multiplier": self.multiplier,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class Booking:
    booking_id: int
    status: BookingStatus
    payment_status: str
    created_at: datetime
    date_from: datetime
    date_to: datetime
    total_amount: float = 0.0
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None


@dataclass(frozen=True)
class CancellationCandidate:
    booking: Booking
    reason: str


@dataclass(frozen=True)
class CancellationResult:
    cancelled_count: int
    errors: list[str]
    skipped_count: int = 0

    def to_dict(self) -> dict[str, int | list[str]]:
        return {
            "cancelled_count": self.cancelled_count,
            "errors": list(self.errors),
            "skipped_count": self.skipped_count,
        }
