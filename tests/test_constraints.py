from __future__ import annotations

from datetime import date, datetime

import pytest

from revenue_core.domain.constraints import (
    build_dynamic_pricing_config,
    resolve_price_bounds,
    validate_dynamic_pricing_config,
    validate_room_category,
)
from revenue_core.domain.errors import ConfigurationError
from revenue_core.domain.models import (
    DateRange,
    DemandLevel,
    DynamicPricingConfig,
    LeadTimeTier,
    OccupancyTier,
    RoomCategory,
    Weekday,
)


def test_builder_accepts_catalog_key_spellings() -> None:
    config = build_dynamic_pricing_config(
        {
            "seasonal_rates": {
                "peak": {"multiplier": 1.5, "months": [12, 1]},
                "offPeak": {"multiplier": 0.8, "months": [6, 7]},
            },
            "weekly_rates": {"Saturday": 1.3},
            "demand_pricing": {"lowOccupancy": 0.9, "high_occupancy": 1.25},
            "advance_booking_discounts": {"30+ days": 15, "1-7": 0},
        }
    )

    assert config.seasonal_rates.multiplier_for(12) == 1.5
    assert config.seasonal_rates.multiplier_for(7) == 0.8
    assert config.seasonal_rates.multiplier_for(4) == 1.0
    assert config.weekly_rates[Weekday.SATURDAY] == 1.3
    assert config.weekly_rates[Weekday.MONDAY] == 1.0
    assert config.demand_pricing[DemandLevel.LOW] == 0.9
    assert config.demand_pricing[DemandLevel.HIGH] == 1.25
    assert config.demand_pricing[DemandLevel.MEDIUM] == 1.0
    assert config.advance_booking_discounts[LeadTimeTier.DAYS_30_PLUS] == 15.0
    assert config.advance_booking_discounts[LeadTimeTier.DAYS_15_TO_30] == 0.0


def test_builder_parses_event_dates() -> None:
    config = build_dynamic_pricing_config(
        {
            "event_pricing": [
                {"name": "Marathon", "start": "2026-04-05", "end": date(2026, 4, 6), "percent": 25},
                {"name": "Expo", "start": datetime(2026, 5, 1, 9), "end": "2026-05-03", "percent": -10},
            ]
        }
    )

    marathon, expo = config.event_pricing
    assert marathon.covers(date(2026, 4, 6))
    assert not marathon.covers(date(2026, 4, 7))
    assert expo.start == date(2026, 5, 1)


@pytest.mark.parametrize(
    "raw",
    [
        {"seasonal_rates": {"monsoon": {"multiplier": 1.1}}},
        {"seasonal_rates": {"peak": {"multiplier": 1.1, "months": [13]}}},
        {"seasonal_rates": {"peak": {"multiplier": 0}}},
        {"weekly_rates": {"someday": 1.1}},
        {"demand_pricing": {"extreme": 2.0}},
        {"advance_booking_discounts": {"60+ days": 20}},
        {"advance_booking_discounts": {"30+": 120}},
        {"last_minute_premium": -5},
        {"base_price": 0},
        {"min_price": 5000, "max_price": 1000},
        {"event_pricing": [{"name": "Backwards", "start": "2026-04-06", "end": "2026-04-05", "percent": 10}]},
        {"event_pricing": [{"name": "Incomplete", "start": "2026-04-06"}]},
    ],
)
def test_builder_rejects_invalid_configuration(raw: dict) -> None:
    with pytest.raises(ConfigurationError):
        build_dynamic_pricing_config(raw)


def test_incomplete_tables_are_rejected() -> None:
    config = DynamicPricingConfig(weekly_rates={Weekday.MONDAY: 1.0})

    with pytest.raises(ConfigurationError):
        validate_dynamic_pricing_config(config)


def test_price_bounds_default_to_base_price_factors() -> None:
    assert resolve_price_bounds(
        DynamicPricingConfig(), 2000.0, default_min_factor=0.5, default_max_factor=3.0
    ) == (1000.0, 6000.0)
    assert resolve_price_bounds(
        DynamicPricingConfig(min_price=1500.0),
        2000.0,
        default_min_factor=0.5,
        default_max_factor=3.0,
    ) == (1500.0, 6000.0)


def test_inverted_resolved_bounds_are_rejected() -> None:
    # Explicit min above the derived max.
    config = DynamicPricingConfig(min_price=9000.0)

    with pytest.raises(ConfigurationError):
        resolve_price_bounds(config, 2000.0, default_min_factor=0.5, default_max_factor=3.0)


def test_room_category_rejects_negative_extra_person_terms() -> None:
    category = RoomCategory(
        category_id="suite",
        name="Suite",
        base_rate=5000.0,
        free_extra_person_limit=-1,
        extra_person_charge=500.0,
        meal_plan_matrix={},
    )

    with pytest.raises(ConfigurationError):
        validate_room_category(category)


@pytest.mark.parametrize(
    ("guests_per_room", "tier"),
    [(0, OccupancyTier.SINGLE), (1, OccupancyTier.SINGLE), (3, OccupancyTier.TRIPLE), (7, OccupancyTier.QUAD)],
)
def test_occupancy_tier_is_clamped(guests_per_room: int, tier: OccupancyTier) -> None:
    assert OccupancyTier.for_guests_per_room(guests_per_room) == tier


@pytest.mark.parametrize(
    ("lead_days", "tier"),
    [
        (45, LeadTimeTier.DAYS_30_PLUS),
        (30, LeadTimeTier.DAYS_30_PLUS),
        (29, LeadTimeTier.DAYS_15_TO_30),
        (15, LeadTimeTier.DAYS_15_TO_30),
        (7, LeadTimeTier.DAYS_7_TO_15),
        (6, LeadTimeTier.DAYS_1_TO_7),
        (-2, LeadTimeTier.DAYS_1_TO_7),
    ],
)
def test_lead_time_tiers(lead_days: int, tier: LeadTimeTier) -> None:
    assert LeadTimeTier.for_lead_days(lead_days) == tier


def test_nights_round_partial_days_up() -> None:
    stay = DateRange(datetime(2026, 3, 10, 14), datetime(2026, 3, 12, 11))

    assert stay.nights == 2
    assert DateRange(date(2026, 3, 10), date(2026, 3, 13)).stay_dates() == [
        date(2026, 3, 10),
        date(2026, 3, 11),
        date(2026, 3, 12),
    ]


def test_catalog_document_units_are_converted_to_percents() -> None:
    config = build_dynamic_pricing_config(
        {
            "enabled": True,
            "basePrice": 2000,
            "seasonalRates": {"offPeak": {"multiplier": 0.8, "months": [6, 7, 8, 9]}},
            "weeklyRates": {"friday": 1.2},
            "demandPricing": {"highOccupancy": 1.2},
            "advanceBookingDiscounts": {
                "30+ days": 0.1,
                "15-30 days": 0.05,
                "7-15 days": 0.02,
                "1-7 days": 0,
            },
            "lastMinutePremium": 1.1,
        }
    )

    assert config.base_price == 2000.0
    assert config.seasonal_rates.multiplier_for(7) == 0.8
    assert config.weekly_rates[Weekday.FRIDAY] == 1.2
    assert config.demand_pricing[DemandLevel.HIGH] == 1.2
    assert config.advance_booking_discounts == {
        LeadTimeTier.DAYS_30_PLUS: 10.0,
        LeadTimeTier.DAYS_15_TO_30: 5.0,
        LeadTimeTier.DAYS_7_TO_15: 2.0,
        LeadTimeTier.DAYS_1_TO_7: 0.0,
    }
    assert config.last_minute_premium == 10.0


def test_percent_keys_are_read_as_percents() -> None:
    config = build_dynamic_pricing_config(
        {"advance_booking_discounts": {"30+ days": 10}, "last_minute_premium": 10}
    )

    assert config.advance_booking_discounts[LeadTimeTier.DAYS_30_PLUS] == 10.0
    assert config.last_minute_premium == 10.0


@pytest.mark.parametrize(
    "season",
    [1.3, [1.3, [12]], {"multiplier": "high"}, {"multiplier": 1.2, "months": "december"}],
)
def test_malformed_season_entry_raises_configuration_error(season) -> None:
    with pytest.raises(ConfigurationError):
        build_dynamic_pricing_config({"seasonal_rates": {"peak": season}})
