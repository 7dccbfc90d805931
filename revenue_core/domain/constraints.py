"""Domain-level validation and construction rules for pricing inputs."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional

from revenue_core.domain.errors import ConfigurationError, ValidationError
from revenue_core.domain.models import (
    DateRange,
    DemandLevel,
    DynamicPricingConfig,
    EventAdjustment,
    GuestSelection,
    LeadTimeTier,
    RoomCategory,
    SeasonalRates,
    SeasonRate,
    Weekday,
)


_SEASON_ALIASES = {
    "peak": "peak",
    "offpeak": "off_peak",
    "off_peak": "off_peak",
    "off-peak": "off_peak",
    "shoulder": "shoulder",
}

_DEMAND_ALIASES = {
    "low": DemandLevel.LOW,
    "lowoccupancy": DemandLevel.LOW,
    "medium": DemandLevel.MEDIUM,
    "mediumoccupancy": DemandLevel.MEDIUM,
    "high": DemandLevel.HIGH,
    "highoccupancy": DemandLevel.HIGH,
}


def validate_guest_selection(guests: GuestSelection) -> None:
    if guests.rooms < 1:
        raise ValidationError("rooms must be >= 1")
    if guests.adults < 1:
        raise ValidationError("adults must be >= 1")
    if len(guests.room_children) > guests.rooms:
        raise ValidationError("room_children describes more rooms than were requested")
    if any(age < 0 for age in guests.children_ages):
        raise ValidationError("child ages must be >= 0")


def validate_date_range(date_range: DateRange) -> int:
    nights = date_range.nights
    if nights < 1:
        raise ValidationError("check_out must be at least one night after check_in")
    return nights


def validate_room_category(category: RoomCategory) -> None:
    if category.base_rate < 0:
        raise ConfigurationError(f"room category '{category.category_id}' has a negative base rate")
    if category.free_extra_person_limit < 0:
        raise ConfigurationError(
            f"room category '{category.category_id}' has a negative free extra person limit"
        )
    if category.extra_person_charge < 0:
        raise ConfigurationError(
            f"room category '{category.category_id}' has a negative extra person charge"
        )


def validate_dynamic_pricing_config(config: DynamicPricingConfig) -> None:
    if config.base_price is not None and config.base_price <= 0:
        raise ConfigurationError("base_price must be > 0")
    for name, bound in (("min_price", config.min_price), ("max_price", config.max_price)):
        if bound is not None and bound < 0:
            raise ConfigurationError(f"{name} must be >= 0")
    if config.min_price and config.max_price and config.min_price > config.max_price:
        raise ConfigurationError("min_price must not exceed max_price")

    for season in (
        config.seasonal_rates.peak,
        config.seasonal_rates.off_peak,
        config.seasonal_rates.shoulder,
    ):
        if season.multiplier <= 0:
            raise ConfigurationError("seasonal multipliers must be > 0")
        if any(not 1 <= month <= 12 for month in season.months):
            raise ConfigurationError("seasonal months must be between 1 and 12")

    _require_complete(config.weekly_rates, Weekday, "weekly_rates")
    _require_complete(config.demand_pricing, DemandLevel, "demand_pricing")
    _require_complete(config.advance_booking_discounts, LeadTimeTier, "advance_booking_discounts")

    if any(multiplier <= 0 for multiplier in config.weekly_rates.values()):
        raise ConfigurationError("weekly multipliers must be > 0")
    if any(multiplier <= 0 for multiplier in config.demand_pricing.values()):
        raise ConfigurationError("demand multipliers must be > 0")
    if any(not 0.0 <= percent <= 100.0 for percent in config.advance_booking_discounts.values()):
        raise ConfigurationError("advance booking discounts must be between 0 and 100 percent")
    if config.last_minute_premium < 0:
        raise ConfigurationError("last_minute_premium must be >= 0")
    for event in config.event_pricing:
        if event.start > event.end:
            raise ConfigurationError(f"event '{event.name}' ends before it starts")
        if event.percent <= -100.0:
            raise ConfigurationError(f"event '{event.name}' percent must be > -100")


def _require_complete(table: Mapping[Any, float], keys: Iterable[Any], name: str) -> None:
    missing = [key.value for key in keys if key not in table]
    if missing:
        raise ConfigurationError(f"{name} is missing entries for {missing}")


def resolve_price_bounds(
    config: DynamicPricingConfig,
    base_price: float,
    *,
    default_min_factor: float,
    default_max_factor: float,
) -> tuple[float, float]:
    """Return ``(min_price, max_price)``; absent or zero bounds derive from the base price."""
    min_price = config.min_price or base_price * default_min_factor
    max_price = config.max_price or base_price * default_max_factor
    if min_price > max_price:
        raise ConfigurationError(
            f"resolved price bounds are inverted: min={min_price} > max={max_price}"
        )
    return float(min_price), float(max_price)


def build_dynamic_pricing_config(raw: Mapping[str, Any]) -> DynamicPricingConfig:
    """Build a validated config from catalog data.

    Accepts the catalog's key spellings (``offPeak``, ``"30+ days"``,
    ``lowOccupancy``). Unknown keys raise ``ConfigurationError``; weekdays,
    demand levels and lead-time tiers that are not listed become neutral.

    Units follow the key that carries them. ``advance_booking_discounts`` and
    ``last_minute_premium`` are percents (``15`` is 15%). The catalog's
    camelCase ``advanceBookingDiscounts`` holds fractions (``0.1`` is 10%) and
    ``lastMinutePremium`` a multiplier (``1.1`` is +10%); both are converted
    to percents here.
    """

    config = DynamicPricingConfig(
        enabled=bool(raw.get("enabled", True)),
        base_price=_optional_float(_first_present(raw, "base_price", "basePrice")),
        min_price=_optional_float(_first_present(raw, "min_price", "minPrice")),
        max_price=_optional_float(_first_present(raw, "max_price", "maxPrice")),
        seasonal_rates=_build_seasonal_rates(
            _first_present(raw, "seasonal_rates", "seasonalRates") or {}
        ),
        weekly_rates=_build_weekly_rates(_first_present(raw, "weekly_rates", "weeklyRates") or {}),
        demand_pricing=_build_demand_pricing(
            _first_present(raw, "demand_pricing", "demandPricing") or {}
        ),
        advance_booking_discounts=_advance_discounts_from(raw),
        last_minute_premium=_last_minute_premium_from(raw),
        event_pricing=tuple(_build_event(item) for item in raw.get("event_pricing") or ()),
    )
    validate_dynamic_pricing_config(config)
    return config


def _first_present(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _advance_discounts_from(raw: Mapping[str, Any]) -> dict[LeadTimeTier, float]:
    if raw.get("advance_booking_discounts") is not None:
        return _build_advance_discounts(raw["advance_booking_discounts"])
    fractions = raw.get("advanceBookingDiscounts") or {}
    table = _build_advance_discounts(fractions)
    return {tier: round(value * 100, 6) for tier, value in table.items()}


def _last_minute_premium_from(raw: Mapping[str, Any]) -> float:
    if raw.get("last_minute_premium") is not None:
        return float(raw["last_minute_premium"])
    multiplier = raw.get("lastMinutePremium")
    if multiplier is None:
        return 0.0
    return round((float(multiplier) - 1.0) * 100, 6)


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _normalize_key(key: str) -> str:
    return str(key).strip().lower().replace(" ", "")


def _build_seasonal_rates(raw: Mapping[str, Any]) -> SeasonalRates:
    seasons: dict[str, SeasonRate] = {}
    for key, value in raw.items():
        season = _SEASON_ALIASES.get(_normalize_key(key))
        if season is None:
            raise ConfigurationError(f"unknown season '{key}' in seasonal_rates")
        if not isinstance(value, Mapping):
            raise ConfigurationError(f"season '{key}' must map multiplier and months, got {value!r}")
        try:
            seasons[season] = SeasonRate(
                multiplier=float(value.get("multiplier", 1.0)),
                months=frozenset(int(month) for month in value.get("months") or ()),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"invalid season entry '{key}': {value!r}") from exc
    return SeasonalRates(**seasons)


def _build_weekly_rates(raw: Mapping[str, Any]) -> dict[Weekday, float]:
    table = {weekday: 1.0 for weekday in Weekday}
    for key, multiplier in raw.items():
        try:
            weekday = Weekday(_normalize_key(key))
        except ValueError as exc:
            raise ConfigurationError(f"unknown weekday '{key}' in weekly_rates") from exc
        table[weekday] = float(multiplier)
    return table


def _build_demand_pricing(raw: Mapping[str, Any]) -> dict[DemandLevel, float]:
    table = {level: 1.0 for level in DemandLevel}
    for key, multiplier in raw.items():
        level = _DEMAND_ALIASES.get(_normalize_key(key).replace("_", ""))
        if level is None:
            raise ConfigurationError(f"unknown demand level '{key}' in demand_pricing")
        table[level] = float(multiplier)
    return table


def _build_advance_discounts(raw: Mapping[str, Any]) -> dict[LeadTimeTier, float]:
    table = {tier: 0.0 for tier in LeadTimeTier}
    for key, percent in raw.items():
        normalized = _normalize_key(key).removesuffix("days")
        try:
            tier = LeadTimeTier(normalized)
        except ValueError as exc:
            raise ConfigurationError(
                f"unknown lead time tier '{key}' in advance_booking_discounts"
            ) from exc
        table[tier] = float(percent)
    return table


def _build_event(raw: Mapping[str, Any]) -> EventAdjustment:
    try:
        return EventAdjustment(
            name=str(raw["name"]),
            start=_as_date(raw["start"]),
            end=_as_date(raw["end"]),
            percent=float(raw["percent"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"invalid event_pricing entry: {raw!r}") from exc


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))
