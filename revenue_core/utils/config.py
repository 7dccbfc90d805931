"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _env_str(name: str, default: str) -> str:
    return os.getenv(name, default)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    database_path: Path

    # Pricing
    tax_rate: float
    service_fee_rate: float
    default_min_price_factor: float
    default_max_price_factor: float
    demand_low_threshold: float
    demand_high_threshold: float

    # Forecasting
    forecast_min_history_points: int
    forecast_trend_window: int
    bookings_trend_threshold: float
    revenue_trend_threshold: float
    occupancy_trend_threshold: float
    seasonal_min_history_points: int
    forecast_default_days_ahead: int
    forecast_history_days: int
    property_room_count: int

    # Auto-cancellation
    payment_timeout_minutes: int
    extended_timeout_minutes: int
    cancellation_max_workers: int
    cancellation_sweep_enabled: bool
    cancellation_sweep_interval_seconds: int

    # Synthetic seed
    synthetic_random_seed: int
    synthetic_seed_days: int
    synthetic_daily_bookings: int


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; call ``cache_clear`` to re-read env."""
    return Settings(
        app_name=_env_str("APP_NAME", "Revenue Management Core"),
        app_version=_env_str("APP_VERSION", "1.0.0"),
        log_level=_env_str("LOG_LEVEL", "INFO"),
        database_path=Path(_env_str("DATABASE_PATH", "data/revenue_core.db")),
        tax_rate=_env_float("TAX_RATE", 0.12),
        service_fee_rate=_env_float("SERVICE_FEE_RATE", 0.05),
        default_min_price_factor=_env_float("DEFAULT_MIN_PRICE_FACTOR", 0.5),
        default_max_price_factor=_env_float("DEFAULT_MAX_PRICE_FACTOR", 3.0),
        demand_low_threshold=_env_float("DEMAND_LOW_THRESHOLD", 50.0),
        demand_high_threshold=_env_float("DEMAND_HIGH_THRESHOLD", 80.0),
        forecast_min_history_points=_env_int("FORECAST_MIN_HISTORY_POINTS", 7),
        forecast_trend_window=_env_int("FORECAST_TREND_WINDOW", 7),
        bookings_trend_threshold=_env_float("BOOKINGS_TREND_THRESHOLD", 5.0),
        revenue_trend_threshold=_env_float("REVENUE_TREND_THRESHOLD", 10.0),
        occupancy_trend_threshold=_env_float("OCCUPANCY_TREND_THRESHOLD", 5.0),
        seasonal_min_history_points=_env_int("SEASONAL_MIN_HISTORY_POINTS", 365),
        forecast_default_days_ahead=_env_int("FORECAST_DEFAULT_DAYS_AHEAD", 30),
        forecast_history_days=_env_int("FORECAST_HISTORY_DAYS", 400),
        property_room_count=_env_int("PROPERTY_ROOM_COUNT", 60),
        payment_timeout_minutes=_env_int("PAYMENT_TIMEOUT_MINUTES", 60),
        extended_timeout_minutes=_env_int("EXTENDED_TIMEOUT_MINUTES", 24 * 60),
        cancellation_max_workers=_env_int("CANCELLATION_MAX_WORKERS", 4),
        cancellation_sweep_enabled=_env_bool("CANCELLATION_SWEEP_ENABLED", True),
        cancellation_sweep_interval_seconds=_env_int(
            "CANCELLATION_SWEEP_INTERVAL_SECONDS", 300
        ),
        synthetic_random_seed=_env_int("SYNTHETIC_RANDOM_SEED", 42),
        synthetic_seed_days=_env_int("SYNTHETIC_SEED_DAYS", 400),
        synthetic_daily_bookings=_env_int("SYNTHETIC_DAILY_BOOKINGS", 12),
    )
