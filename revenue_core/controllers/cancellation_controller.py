"""HTTP controller layer for the pending-booking expiry sweep."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from revenue_core.controllers.dependencies import get_cancellation_policy
from revenue_core.services.cancellation_service import AutoCancellationPolicy
from revenue_core.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/cancellations", tags=["cancellations"])


class CancellationCandidateResponse(BaseModel):
    booking_id: int = Field(gt=0)
    reason: str = Field(min_length=1)
    created_at: datetime
    date_from: datetime
    payment_status: str


class CancellationPreviewResponse(BaseModel):
    candidates: list[CancellationCandidateResponse]


class CancellationSweepResponse(BaseModel):
    cancelled_count: int = Field(ge=0)
    skipped_count: int = Field(ge=0)
    errors: list[str]


@router.get(
    "/preview",
    response_model=CancellationPreviewResponse,
    status_code=status.HTTP_200_OK,
)
async def preview(
    policy: AutoCancellationPolicy = Depends(get_cancellation_policy),
) -> CancellationPreviewResponse:
    """List bookings the next sweep would cancel, without writing."""
    try:
        candidates = policy.preview()
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected cancellation preview failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to preview cancellations",
        ) from exc
    return CancellationPreviewResponse(
        candidates=[
            CancellationCandidateResponse(
                booking_id=candidate.booking.booking_id,
                reason=candidate.reason,
                created_at=candidate.booking.created_at,
                date_from=candidate.booking.date_from,
                payment_status=candidate.booking.payment_status,
            )
            for candidate in candidates
        ]
    )


@router.post(
    "/sweep",
    response_model=CancellationSweepResponse,
    status_code=status.HTTP_200_OK,
)
async def sweep(
    policy: AutoCancellationPolicy = Depends(get_cancellation_policy),
) -> CancellationSweepResponse:
    """Run the expiry sweep now; per-booking failures are reported, not raised."""
    try:
        result = policy.run()
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected cancellation sweep failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to run cancellation sweep",
        ) from exc
    return CancellationSweepResponse(**result.to_dict())
