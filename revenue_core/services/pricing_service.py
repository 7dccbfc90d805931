"""Nightly rate and quote computation for the checkout flow.

Every component here is a pure function of its inputs: configuration is
passed in per call and nothing is cached between quotes, so identical
requests always produce identical breakdowns.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from revenue_core.domain.constraints import (
    resolve_price_bounds,
    validate_date_range,
    validate_dynamic_pricing_config,
    validate_guest_selection,
    validate_room_category,
)
from revenue_core.domain.errors import ConfigurationError, ValidationError
from revenue_core.domain.models import (
    AddOn,
    DateRange,
    DemandLevel,
    DynamicPricingConfig,
    GuestSelection,
    LeadTimeTier,
    MealPlan,
    OccupancyTier,
    PricingBreakdown,
    RoomCategory,
    Weekday,
)
from revenue_core.utils.config import Settings, get_settings
from revenue_core.utils.logger import get_logger


logger = get_logger(__name__)


def round_half_up(value: float) -> int:
    """Round to whole currency units, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class RateMatrixResolver:
    """Looks up the nightly rate for a meal plan and occupancy tier."""

    def resolve(
        self,
        category: RoomCategory,
        meal_plan: MealPlan,
        occupancy_tier: OccupancyTier,
    ) -> float:
        plan_rates = category.meal_plan_matrix.get(meal_plan)
        if plan_rates is None or occupancy_tier not in plan_rates:
            raise ConfigurationError(
                f"room category '{category.category_id}' has no rate for "
                f"meal_plan={meal_plan.value} occupancy={occupancy_tier.value}"
            )
        rate = float(plan_rates[occupancy_tier])
        if rate < 0:
            raise ConfigurationError(
                f"room category '{category.category_id}' has a negative rate for "
                f"meal_plan={meal_plan.value} occupancy={occupancy_tier.value}"
            )
        return rate


class ExtraGuestAndAddOnCalculator:
    def chargeable_extra_guests(self, category: RoomCategory, guests: GuestSelection) -> int:
        free_guest_limit = guests.rooms * category.free_extra_person_limit
        return max(0, guests.effective_adults - free_guest_limit)

    def extra_guest_charge(
        self,
        category: RoomCategory,
        guests: GuestSelection,
        nights: int,
    ) -> tuple[int, float]:
        extra_guests = self.chargeable_extra_guests(category, guests)
        return extra_guests, float(extra_guests * category.extra_person_charge * nights)

    def meal_total(self, meal_total: float) -> float:
        if meal_total < 0:
            raise ValidationError("meal_total must be >= 0")
        return float(meal_total)

    def add_ons_total(self, add_ons: Sequence[AddOn], nights: int) -> float:
        total = 0.0
        for add_on in add_ons:
            if add_on.unit_price < 0:
                raise ValidationError(f"add-on '{add_on.name}' has a negative price")
            if add_on.quantity < 0:
                raise ValidationError(f"add-on '{add_on.name}' has a negative quantity")
            total += add_on.cost(nights)
        return total


class DynamicRateAdjuster:
    """Applies dynamic pricing rules night by night and clamps the result."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    @staticmethod
    def lead_days(check_in: date, now: datetime) -> int:
        if isinstance(check_in, datetime):
            arrival = check_in
            if arrival.tzinfo is None:
                arrival = arrival.replace(tzinfo=now.tzinfo)
        else:
            arrival = datetime.combine(check_in, time.min, tzinfo=now.tzinfo)
        return math.ceil((arrival - now).total_seconds() / 86400)

    def demand_level(self, occupancy_percent: float) -> DemandLevel:
        if occupancy_percent < self._settings.demand_low_threshold:
            return DemandLevel.LOW
        if occupancy_percent < self._settings.demand_high_threshold:
            return DemandLevel.MEDIUM
        return DemandLevel.HIGH

    @staticmethod
    def event_percent(config: DynamicPricingConfig, night: date) -> float:
        percents = [event.percent for event in config.event_pricing if event.covers(night)]
        return max(percents) if percents else 0.0

    def price_bounds(self, config: DynamicPricingConfig, base_price: float) -> tuple[float, float]:
        return resolve_price_bounds(
            config,
            base_price,
            default_min_factor=self._settings.default_min_price_factor,
            default_max_factor=self._settings.default_max_price_factor,
        )

    def nightly_rates(
        self,
        config: DynamicPricingConfig,
        date_range: DateRange,
        *,
        base_price: float,
        now: datetime,
        current_occupancy: Optional[float] = None,
    ) -> list[float]:
        min_price, max_price = self.price_bounds(config, base_price)

        # Lead time is measured to the stay's check-in and shared by every night.
        lead_days = self.lead_days(date_range.check_in, now)
        advance_discount = config.advance_booking_discounts[LeadTimeTier.for_lead_days(lead_days)]
        demand_multiplier = (
            config.demand_pricing[self.demand_level(current_occupancy)]
            if current_occupancy is not None
            else 1.0
        )

        rates: list[float] = []
        for night in date_range.stay_dates():
            price = base_price
            price *= config.seasonal_rates.multiplier_for(night.month)
            price *= config.weekly_rates[Weekday.of(night)]
            price *= demand_multiplier
            price *= 1 + self.event_percent(config, night) / 100
            price *= 1 - advance_discount / 100
            if lead_days <= 7:
                price *= 1 + config.last_minute_premium / 100
            rates.append(max(min_price, min(max_price, price)))
        return rates


class PriceAggregator:
    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    def aggregate(
        self,
        *,
        base_room_total: float,
        extra_guest_charge: float,
        meal_total: float,
        add_ons_total: float,
        extra_guests: int,
        nights: int,
        nightly_rates: Sequence[float] = (),
    ) -> PricingBreakdown:
        subtotal = base_room_total + extra_guest_charge + meal_total + add_ons_total
        taxes = round_half_up(subtotal * self._settings.tax_rate)
        service_fee = round_half_up(subtotal * self._settings.service_fee_rate)
        return PricingBreakdown(
            base_room_total=base_room_total,
            extra_guest_charge=extra_guest_charge,
            meal_total=meal_total,
            add_ons_total=add_ons_total,
            subtotal=subtotal,
            taxes=taxes,
            service_fee=service_fee,
            total=subtotal + taxes + service_fee,
            extra_guests=extra_guests,
            nights=nights,
            nightly_rates=tuple(nightly_rates),
        )


class PricingService:
    """Runs the full quote pipeline: matrix rate, extras, dynamic rates, totals."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        resolver: Optional[RateMatrixResolver] = None,
        calculator: Optional[ExtraGuestAndAddOnCalculator] = None,
        adjuster: Optional[DynamicRateAdjuster] = None,
        aggregator: Optional[PriceAggregator] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._resolver = resolver or RateMatrixResolver()
        self._calculator = calculator or ExtraGuestAndAddOnCalculator()
        self._adjuster = adjuster or DynamicRateAdjuster(self._settings)
        self._aggregator = aggregator or PriceAggregator(self._settings)

    def quote(
        self,
        *,
        category: RoomCategory,
        date_range: DateRange,
        guests: GuestSelection,
        meal_plan: MealPlan,
        meal_total: float = 0.0,
        add_ons: Sequence[AddOn] = (),
        dynamic_config: Optional[DynamicPricingConfig] = None,
        occupancy_tier: Optional[OccupancyTier] = None,
        current_occupancy: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> PricingBreakdown:
        validate_guest_selection(guests)
        nights = validate_date_range(date_range)
        validate_room_category(category)
        dynamic_enabled = dynamic_config is not None and dynamic_config.enabled
        if dynamic_enabled:
            validate_dynamic_pricing_config(dynamic_config)

        tier = occupancy_tier or OccupancyTier.for_guests_per_room(
            math.ceil(guests.effective_adults / guests.rooms)
        )
        rate = self._resolver.resolve(category, meal_plan, tier)
        extra_guests, extra_guest_charge = self._calculator.extra_guest_charge(
            category, guests, nights
        )
        meals = self._calculator.meal_total(meal_total)
        add_ons_total = self._calculator.add_ons_total(add_ons, nights)

        nightly_rates: list[float] = []
        if dynamic_enabled:
            nightly_rates = self._adjuster.nightly_rates(
                dynamic_config,
                date_range,
                # Configured base price, then the category's base rate, then the matrix rate.
                base_price=dynamic_config.base_price or category.base_rate or rate,
                now=now or datetime.now(timezone.utc),
                current_occupancy=current_occupancy,
            )
            base_room_total = float(sum(nightly_rates))
        else:
            base_room_total = rate * nights * guests.rooms

        breakdown = self._aggregator.aggregate(
            base_room_total=base_room_total,
            extra_guest_charge=extra_guest_charge,
            meal_total=meals,
            add_ons_total=add_ons_total,
            extra_guests=extra_guests,
            nights=nights,
            nightly_rates=nightly_rates,
        )
        logger.info(
            (
                "Quote computed | category=%s | meal_plan=%s | tier=%s | nights=%s | "
                "rooms=%s | dynamic=%s | total=%.2f"
            ),
            category.category_id,
            meal_plan.value,
            tier.value,
            nights,
            guests.rooms,
            dynamic_enabled,
            breakdown.total,
        )
        return breakdown
