"""HTTP controller layer for checkout price quotes."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from revenue_core.controllers.dependencies import get_pricing_service
from revenue_core.domain.constraints import build_dynamic_pricing_config
from revenue_core.domain.errors import ConfigurationError, ValidationError
from revenue_core.domain.models import (
    AddOn,
    DateRange,
    GuestSelection,
    MealPlan,
    OccupancyTier,
    RoomCategory,
)
from revenue_core.services.pricing_service import PricingService
from revenue_core.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/pricing", tags=["pricing"])


class RoomCategoryPayload(BaseModel):
    category_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    base_rate: float = Field(ge=0.0)
    free_extra_person_limit: int = Field(default=2, ge=0)
    extra_person_charge: float = Field(default=500.0, ge=0.0)
    meal_plan_matrix: dict[MealPlan, dict[OccupancyTier, float]]


class GuestSelectionPayload(BaseModel):
    # Counts are checked by the pricing pipeline so invalid guests map to 400.
    rooms: int
    adults: int
    room_children: list[list[int]] = Field(default_factory=list)


class AddOnPayload(BaseModel):
    name: str = Field(min_length=1)
    unit_price: float
    quantity: int = 1
    per_night: bool = False


class SeasonRatePayload(BaseModel):
    multiplier: float = Field(gt=0.0)
    months: list[int] = Field(default_factory=list)


class EventAdjustmentPayload(BaseModel):
    name: str = Field(min_length=1)
    start: date
    end: date
    percent: float


class DynamicPricingPayload(BaseModel):
    enabled: bool = True
    base_price: Optional[float] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    seasonal_rates: dict[str, SeasonRatePayload] = Field(default_factory=dict)
    weekly_rates: dict[str, float] = Field(default_factory=dict)
    demand_pricing: dict[str, float] = Field(default_factory=dict)
    advance_booking_discounts: dict[str, float] = Field(default_factory=dict)
    last_minute_premium: float = 0.0
    event_pricing: list[EventAdjustmentPayload] = Field(default_factory=list)


class QuoteRequest(BaseModel):
    category: RoomCategoryPayload
    check_in: date
    check_out: date
    guests: GuestSelectionPayload
    meal_plan: MealPlan = MealPlan.EP
    meal_total: float = 0.0
    add_ons: list[AddOnPayload] = Field(default_factory=list)
    dynamic_pricing: Optional[DynamicPricingPayload] = None
    occupancy_tier: Optional[OccupancyTier] = None
    current_occupancy: Optional[float] = Field(default=None, ge=0.0, le=100.0)


class QuoteResponse(BaseModel):
    base_room_total: float = Field(ge=0.0)
    extra_guest_charge: float = Field(ge=0.0)
    meal_total: float = Field(ge=0.0)
    add_ons_total: float = Field(ge=0.0)
    subtotal: float = Field(ge=0.0)
    taxes: int = Field(ge=0)
    service_fee: int = Field(ge=0)
    total: float = Field(ge=0.0)
    extra_guests: int = Field(ge=0)
    nights: int = Field(ge=1)
    nightly_rates: list[float]


@router.post(
    "/quote",
    response_model=QuoteResponse,
    status_code=status.HTTP_200_OK,
)
async def quote(
    payload: QuoteRequest,
    service: PricingService = Depends(get_pricing_service),
) -> QuoteResponse:
    """Price a stay for checkout."""
    try:
        dynamic_config = (
            build_dynamic_pricing_config(payload.dynamic_pricing.model_dump())
            if payload.dynamic_pricing is not None
            else None
        )
        breakdown = service.quote(
            category=RoomCategory(**payload.category.model_dump()),
            date_range=DateRange(check_in=payload.check_in, check_out=payload.check_out),
            guests=GuestSelection(
                rooms=payload.guests.rooms,
                adults=payload.guests.adults,
                room_children=tuple(tuple(ages) for ages in payload.guests.room_children),
            ),
            meal_plan=payload.meal_plan,
            meal_total=payload.meal_total,
            add_ons=[AddOn(**item.model_dump()) for item in payload.add_ons],
            dynamic_config=dynamic_config,
            occupancy_tier=payload.occupancy_tier,
            current_occupancy=payload.current_occupancy,
        )
        return QuoteResponse(**breakdown.to_dict())
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except ConfigurationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected quote failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute quote",
        ) from exc
