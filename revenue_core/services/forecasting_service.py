"""Booking, revenue and occupancy forecasting from daily history."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional, Sequence

import numpy as np
import pandas as pd

from revenue_core.domain.errors import ForecastValidationError
from revenue_core.domain.models import (
    ForecastMetric,
    ForecastResult,
    HistoricalDataPoint,
    SeasonalPattern,
    Trend,
)
from revenue_core.repository.data_repository import DataRepository
from revenue_core.utils.config import Settings, get_settings
from revenue_core.utils.logger import get_logger


logger = get_logger(__name__)

_EPSILON = 1e-9

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def _series(history: Sequence[HistoricalDataPoint], metric: ForecastMetric) -> np.ndarray:
    if metric is ForecastMetric.OCCUPANCY and any(
        point.occupancy_rate is None for point in history
    ):
        raise ForecastValidationError("occupancy forecasts require occupancy_rate on every point")
    ordered = sorted(history, key=lambda point: point.date)
    return np.array([point.value_for(metric) for point in ordered], dtype=float)


def _occupied_rooms_per_night(
    calendar: pd.DatetimeIndex, stays: Sequence[tuple[date, date]]
) -> pd.Series:
    # A stay occupies every night from check-in up to, not including, check-out.
    nights = [
        pd.date_range(start=check_in, end=check_out - timedelta(days=1), freq="D")
        for check_in, check_out in stays
    ]
    if not nights:
        return pd.Series(0, index=calendar, dtype=int)
    counts = pd.DatetimeIndex(np.concatenate([night.to_numpy() for night in nights])).value_counts()
    return counts.reindex(calendar, fill_value=0)


class BookingForecaster:
    """Least-squares trend forecaster with R-squared confidence."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    def _trend_threshold(self, metric: ForecastMetric) -> float:
        if metric is ForecastMetric.REVENUE:
            return self._settings.revenue_trend_threshold
        if metric is ForecastMetric.OCCUPANCY:
            return self._settings.occupancy_trend_threshold
        return self._settings.bookings_trend_threshold

    @staticmethod
    def fit_line(values: np.ndarray) -> tuple[float, float]:
        """Return ``(slope, intercept)`` for values indexed 0..n-1."""
        n = len(values)
        x = np.arange(n, dtype=float)
        sum_x = float(x.sum())
        sum_y = float(values.sum())
        sum_xy = float((x * values).sum())
        sum_x2 = float((x * x).sum())

        denominator = n * sum_x2 - sum_x * sum_x
        slope = (n * sum_xy - sum_x * sum_y) / denominator if denominator != 0 else 0.0
        intercept = (sum_y - slope * sum_x) / n
        return slope, intercept

    @staticmethod
    def r_squared(values: np.ndarray, slope: float, intercept: float) -> float:
        fitted = slope * np.arange(len(values), dtype=float) + intercept
        ss_res = float(((values - fitted) ** 2).sum())
        ss_tot = float(((values - values.mean()) ** 2).sum())
        if ss_tot <= _EPSILON:
            # A constant series is reproduced exactly by the fitted line.
            return 1.0 if ss_res <= _EPSILON else 0.0
        return 1.0 - ss_res / ss_tot

    def trend(self, values: np.ndarray, metric: ForecastMetric) -> tuple[Trend, float]:
        window = self._settings.forecast_trend_window
        recent = values[-window:]
        older = values[-2 * window : -window]
        if len(older) == 0:
            return Trend.STABLE, 0.0

        older_avg = float(older.mean())
        if older_avg == 0:
            return Trend.STABLE, 0.0

        change_percent = (float(recent.mean()) - older_avg) / older_avg * 100
        threshold = self._trend_threshold(metric)
        if change_percent > threshold:
            return Trend.UP, change_percent
        if change_percent < -threshold:
            return Trend.DOWN, change_percent
        return Trend.STABLE, change_percent

    def forecast(
        self,
        history: Sequence[HistoricalDataPoint],
        days_ahead: int,
        metric: ForecastMetric = ForecastMetric.BOOKINGS,
        seasonal_patterns: Sequence[SeasonalPattern] = (),
    ) -> ForecastResult:
        if days_ahead < 0:
            raise ForecastValidationError("days_ahead must be >= 0")
        if len(history) < self._settings.forecast_min_history_points:
            return ForecastResult.insufficient_data()

        values = _series(history, metric)
        slope, intercept = self.fit_line(values)
        predicted = max(0.0, slope * (len(values) + days_ahead) + intercept)

        if metric is ForecastMetric.REVENUE and seasonal_patterns:
            target_month = (max(point.date for point in history) + timedelta(days=days_ahead)).month
            for pattern in seasonal_patterns:
                if pattern.month == target_month:
                    predicted *= pattern.multiplier
                    break
        if metric is ForecastMetric.OCCUPANCY:
            predicted = min(predicted, 100.0)

        confidence = max(0.0, min(100.0, 100.0 * self.r_squared(values, slope, intercept)))
        trend, change_percent = self.trend(values, metric)
        return ForecastResult(
            predicted=predicted,
            confidence=confidence,
            trend=trend,
            change_percent=change_percent,
        )

    def forecast_bookings(
        self, history: Sequence[HistoricalDataPoint], days_ahead: int
    ) -> ForecastResult:
        return self.forecast(history, days_ahead, ForecastMetric.BOOKINGS)

    def forecast_revenue(
        self,
        history: Sequence[HistoricalDataPoint],
        days_ahead: int,
        seasonal_patterns: Sequence[SeasonalPattern] = (),
    ) -> ForecastResult:
        return self.forecast(history, days_ahead, ForecastMetric.REVENUE, seasonal_patterns)

    def forecast_occupancy(
        self, history: Sequence[HistoricalDataPoint], days_ahead: int
    ) -> ForecastResult:
        return self.forecast(history, days_ahead, ForecastMetric.OCCUPANCY)


class SeasonalPatternDetector:
    """Derives per-month demand multipliers from at least a year of history."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    def detect(
        self,
        history: Sequence[HistoricalDataPoint],
        metric: ForecastMetric = ForecastMetric.BOOKINGS,
    ) -> list[SeasonalPattern]:
        if len(history) < self._settings.seasonal_min_history_points:
            return []

        ordered = sorted(history, key=lambda point: point.date)
        frame = pd.DataFrame(
            {
                "month": [point.date.month for point in ordered],
                "value": _series(ordered, metric),
            }
        )
        overall_average = float(frame["value"].mean())
        monthly = frame.groupby("month")["value"].agg(
            month_average="mean",
            variance=lambda series: float(series.var(ddof=0)),
        )

        patterns: list[SeasonalPattern] = []
        for month, row in monthly.sort_index().iterrows():
            month_average = float(row["month_average"])
            multiplier = month_average / overall_average if overall_average > 0 else 1.0
            if month_average > 0:
                confidence = 100.0 * (1.0 - float(row["variance"]) / month_average)
            else:
                confidence = 0.0
            patterns.append(
                SeasonalPattern(
                    month=int(month),
                    multiplier=multiplier,
                    confidence=max(0.0, min(100.0, confidence)),
                )
            )
        return patterns


def generate_insights(
    bookings: ForecastResult,
    revenue: ForecastResult,
    patterns: Sequence[SeasonalPattern] = (),
) -> list[str]:
    """Turn forecasts and seasonal patterns into dashboard sentences."""
    insights: list[str] = []

    if bookings.trend is Trend.UP:
        insights.append(
            f"Bookings are up {bookings.change_percent:.1f}% week over week; "
            "consider tightening discounts."
        )
    elif bookings.trend is Trend.DOWN:
        insights.append(
            f"Bookings are down {abs(bookings.change_percent):.1f}% week over week; "
            "consider promotional campaigns."
        )

    if revenue.trend is Trend.UP:
        insights.append(f"Revenue is up {revenue.change_percent:.1f}% week over week.")
    elif revenue.trend is Trend.DOWN:
        insights.append(
            f"Revenue is down {abs(revenue.change_percent):.1f}% week over week; "
            "review pricing for upcoming dates."
        )

    if 0 < min(bookings.confidence, revenue.confidence) < 50:
        insights.append("Forecast confidence is low; monitor closely and adjust pricing dynamically.")

    peak_months = [MONTH_NAMES[p.month - 1] for p in patterns if p.multiplier >= 1.2]
    slow_months = [MONTH_NAMES[p.month - 1] for p in patterns if p.multiplier <= 0.8]
    if peak_months:
        insights.append(f"Peak demand months: {', '.join(peak_months)}.")
    if slow_months:
        insights.append(f"Slow demand months: {', '.join(slow_months)}; plan promotions early.")

    if not insights:
        insights.append("Demand is steady; no pricing action needed.")
    return insights


class ForecastingService:
    """Runs forecasts over caller-supplied history or the booking store's daily series."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._forecaster = BookingForecaster(self._settings)
        self._detector = SeasonalPatternDetector(self._settings)

    def load_history(
        self,
        *,
        days: Optional[int] = None,
        today: Optional[date] = None,
    ) -> list[HistoricalDataPoint]:
        """Return one point per day for the trailing window, zero-filled.

        Occupancy is the share of ``property_room_count`` occupied by
        non-cancelled stays each night, capped at 100.
        """
        room_count = self._settings.property_room_count
        if room_count <= 0:
            raise ForecastValidationError("property_room_count must be > 0")

        end = today or datetime.now(timezone.utc).date()
        start = end - timedelta(days=days or self._settings.forecast_history_days)
        rows = self._repository.get_daily_booking_totals(start=start, end=end)
        stays = self._repository.list_stays_overlapping(start=start, end=end)

        calendar = pd.date_range(start=start, end=end - timedelta(days=1), freq="D")
        frame = pd.DataFrame(rows, columns=["day", "bookings_count", "revenue"])
        frame["day"] = pd.to_datetime(frame["day"], format="%Y-%m-%d")
        frame = (
            frame.set_index("day")
            .reindex(calendar, fill_value=0)
            .rename_axis("day")
            .reset_index()
        )
        occupied = _occupied_rooms_per_night(calendar, stays)
        frame["occupancy_rate"] = (occupied.to_numpy() / room_count * 100).clip(max=100.0)
        return [
            HistoricalDataPoint(
                date=row.day.date(),
                bookings_count=int(row.bookings_count),
                revenue=float(row.revenue),
                occupancy_rate=float(row.occupancy_rate),
            )
            for row in frame.itertuples(index=False)
        ]

    def forecast(
        self,
        metric: ForecastMetric,
        *,
        days_ahead: Optional[int] = None,
        history: Optional[Sequence[HistoricalDataPoint]] = None,
    ) -> ForecastResult:
        points = list(history) if history is not None else self.load_history()
        horizon = self._settings.forecast_default_days_ahead if days_ahead is None else days_ahead
        patterns = (
            self._detector.detect(points, ForecastMetric.REVENUE)
            if metric is ForecastMetric.REVENUE
            else []
        )
        result = self._forecaster.forecast(points, horizon, metric, patterns)
        logger.info(
            (
                "Forecast computed | metric=%s | points=%s | days_ahead=%s | "
                "predicted=%.3f | confidence=%.1f | trend=%s"
            ),
            metric.value,
            len(points),
            horizon,
            result.predicted,
            result.confidence,
            result.trend.value,
        )
        return result

    def seasonality(
        self,
        metric: ForecastMetric = ForecastMetric.BOOKINGS,
        *,
        history: Optional[Sequence[HistoricalDataPoint]] = None,
    ) -> list[SeasonalPattern]:
        points = list(history) if history is not None else self.load_history()
        return self._detector.detect(points, metric)

    def analytics(
        self,
        *,
        days_ahead: Optional[int] = None,
        history: Optional[Sequence[HistoricalDataPoint]] = None,
    ) -> dict[str, Any]:
        points = list(history) if history is not None else self.load_history()
        bookings = self.forecast(ForecastMetric.BOOKINGS, days_ahead=days_ahead, history=points)
        revenue = self.forecast(ForecastMetric.REVENUE, days_ahead=days_ahead, history=points)
        patterns = self._detector.detect(points, ForecastMetric.BOOKINGS)
        return {
            "bookings": bookings,
            "revenue": revenue,
            "seasonal_patterns": patterns,
            "insights": generate_insights(bookings, revenue, patterns),
        }
