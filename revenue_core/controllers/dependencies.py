"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from revenue_core.services.cancellation_service import AutoCancellationPolicy
from revenue_core.services.forecasting_service import ForecastingService
from revenue_core.services.pricing_service import PricingService
from revenue_core.utils.config import get_settings


def get_pricing_service(request: Request) -> PricingService:
    service = getattr(request.app.state, "pricing_service", None)
    if service is None:
        # Pricing holds no state, so a fresh instance is always valid.
        service = PricingService(settings=get_settings())
        request.app.state.pricing_service = service
    return service


def get_forecasting_service(request: Request) -> ForecastingService:
    service = getattr(request.app.state, "forecasting_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Forecasting service is not initialized",
        )
    return service


def get_cancellation_policy(request: Request) -> AutoCancellationPolicy:
    policy = getattr(request.app.state, "cancellation_policy", None)
    if policy is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cancellation policy is not initialized",
        )
    return policy
