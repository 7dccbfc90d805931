"""HTTP controller layer for forecasts, seasonality and dashboard insights."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from revenue_core.controllers.dependencies import get_forecasting_service
from revenue_core.domain.errors import ForecastValidationError
from revenue_core.domain.models import (
    ForecastMetric,
    ForecastResult,
    HistoricalDataPoint,
    Trend,
)
from revenue_core.services.forecasting_service import ForecastingService
from revenue_core.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["analytics"])


class HistoricalPointPayload(BaseModel):
    date: date
    bookings_count: int = Field(ge=0)
    revenue: float = Field(ge=0.0)
    occupancy_rate: Optional[float] = Field(default=None, ge=0.0, le=100.0)

    def to_domain(self) -> HistoricalDataPoint:
        return HistoricalDataPoint(
            date=self.date,
            bookings_count=self.bookings_count,
            revenue=self.revenue,
            occupancy_rate=self.occupancy_rate,
        )


class ForecastRequest(BaseModel):
    history: list[HistoricalPointPayload]
    metric: ForecastMetric = ForecastMetric.BOOKINGS
    days_ahead: int = Field(default=30, ge=0, le=365)


class ForecastResponse(BaseModel):
    predicted: float = Field(ge=0.0)
    confidence: float = Field(ge=0.0, le=100.0)
    trend: Trend
    change_percent: float

    @classmethod
    def from_result(cls, result: ForecastResult) -> "ForecastResponse":
        return cls(**result.to_dict())


class SeasonalityRequest(BaseModel):
    history: list[HistoricalPointPayload]
    metric: ForecastMetric = ForecastMetric.BOOKINGS


class SeasonalPatternResponse(BaseModel):
    month: int = Field(ge=1, le=12)
    multiplier: float = Field(ge=0.0)
    confidence: float = Field(ge=0.0, le=100.0)


class InsightsRequest(BaseModel):
    history: list[HistoricalPointPayload]
    days_ahead: int = Field(default=30, ge=0, le=365)


class InsightsResponse(BaseModel):
    bookings: ForecastResponse
    revenue: ForecastResponse
    seasonal_patterns: list[SeasonalPatternResponse]
    insights: list[str]


def _insights_response(result: dict) -> InsightsResponse:
    return InsightsResponse(
        bookings=ForecastResponse.from_result(result["bookings"]),
        revenue=ForecastResponse.from_result(result["revenue"]),
        seasonal_patterns=[
            SeasonalPatternResponse(**pattern.to_dict())
            for pattern in result["seasonal_patterns"]
        ],
        insights=result["insights"],
    )


@router.post(
    "/forecast",
    response_model=ForecastResponse,
    status_code=status.HTTP_200_OK,
)
async def forecast(
    payload: ForecastRequest,
    service: ForecastingService = Depends(get_forecasting_service),
) -> ForecastResponse:
    """Forecast one metric from caller-supplied daily history."""
    try:
        result = service.forecast(
            payload.metric,
            days_ahead=payload.days_ahead,
            history=[point.to_domain() for point in payload.history],
        )
        return ForecastResponse.from_result(result)
    except ForecastValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected forecast failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute forecast",
        ) from exc


@router.get(
    "/forecast/{metric}",
    response_model=ForecastResponse,
    status_code=status.HTTP_200_OK,
)
async def forecast_from_store(
    metric: ForecastMetric,
    days_ahead: int = Query(default=30, ge=0, le=365),
    service: ForecastingService = Depends(get_forecasting_service),
) -> ForecastResponse:
    """Forecast one metric from the booking store's trailing daily history."""
    try:
        return ForecastResponse.from_result(service.forecast(metric, days_ahead=days_ahead))
    except ForecastValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected forecast failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute forecast",
        ) from exc


@router.post(
    "/forecast/seasonality",
    response_model=list[SeasonalPatternResponse],
    status_code=status.HTTP_200_OK,
)
async def seasonality(
    payload: SeasonalityRequest,
    service: ForecastingService = Depends(get_forecasting_service),
) -> list[SeasonalPatternResponse]:
    try:
        patterns = service.seasonality(
            payload.metric,
            history=[point.to_domain() for point in payload.history],
        )
        return [SeasonalPatternResponse(**pattern.to_dict()) for pattern in patterns]
    except ForecastValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.post(
    "/analytics/insights",
    response_model=InsightsResponse,
    status_code=status.HTTP_200_OK,
)
async def insights(
    payload: InsightsRequest,
    service: ForecastingService = Depends(get_forecasting_service),
) -> InsightsResponse:
    """Bookings and revenue forecasts plus readable insights for the dashboard."""
    try:
        result = service.analytics(
            days_ahead=payload.days_ahead,
            history=[point.to_domain() for point in payload.history],
        )
        return _insights_response(result)
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected insights failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute insights",
        ) from exc


@router.get(
    "/analytics/insights",
    response_model=InsightsResponse,
    status_code=status.HTTP_200_OK,
)
async def insights_from_store(
    days_ahead: int = Query(default=30, ge=0, le=365),
    service: ForecastingService = Depends(get_forecasting_service),
) -> InsightsResponse:
    try:
        return _insights_response(service.analytics(days_ahead=days_ahead))
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected insights failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute insights",
        ) from exc
