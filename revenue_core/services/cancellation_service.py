"""Time-windowed expiry of pending bookings.

A pending booking is cancelled when its check-in has passed or it has waited
too long for payment. Windows are evaluated in priority order and the first
matching reason is recorded. Writes are conditional on the row still being
pending, so overlapping sweeps never cancel a booking twice or overwrite a
confirmation that landed in between.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from revenue_core.domain.models import Booking, CancellationCandidate, CancellationResult
from revenue_core.repository.data_repository import DataRepository
from revenue_core.utils.config import Settings, get_settings
from revenue_core.utils.logger import get_logger


logger = get_logger(__name__)

CHECK_IN_PASSED_REASON = "check-in date passed"


def describe_minutes(minutes: int) -> str:
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"


class AutoCancellationPolicy:
    """Finds expired pending bookings and cancels them through a bounded worker pool."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    @property
    def payment_timeout_reason(self) -> str:
        return f"payment timeout ({describe_minutes(self._settings.payment_timeout_minutes)})"

    @property
    def extended_timeout_reason(self) -> str:
        return f"extended timeout ({describe_minutes(self._settings.extended_timeout_minutes)})"

    def _windows(self, now: datetime) -> list[tuple[str, Callable[[], list[Booking]]]]:
        payment_cutoff = now - timedelta(minutes=self._settings.payment_timeout_minutes)
        extended_cutoff = now - timedelta(minutes=self._settings.extended_timeout_minutes)
        return [
            (
                CHECK_IN_PASSED_REASON,
                lambda: self._repository.list_pending_with_check_in_before(now),
            ),
            (
                self.payment_timeout_reason,
                lambda: self._repository.list_pending_created_before(payment_cutoff),
            ),
            (
                self.extended_timeout_reason,
                lambda: self._repository.list_pending_created_before(extended_cutoff),
            ),
        ]

    def preview(self, now: Optional[datetime] = None) -> list[CancellationCandidate]:
        """Return expired pending bookings without writing anything."""
        current = now or datetime.now(timezone.utc)
        candidates: dict[int, CancellationCandidate] = {}
        for reason, fetch in self._windows(current):
            for booking in fetch():
                # Earlier windows win; a booking is queued once.
                candidates.setdefault(
                    booking.booking_id,
                    CancellationCandidate(booking=booking, reason=reason),
                )
        return [candidates[booking_id] for booking_id in sorted(candidates)]

    def _cancel(self, candidate: CancellationCandidate, now: datetime) -> bool:
        return self._repository.cancel_booking_if_pending(
            candidate.booking.booking_id,
            reason=candidate.reason,
            cancelled_at=now,
        )

    def run(self, now: Optional[datetime] = None) -> CancellationResult:
        """Cancel every expired pending booking; per-booking failures do not stop the batch."""
        current = now or datetime.now(timezone.utc)
        candidates = self.preview(current)
        if not candidates:
            logger.info("Cancellation sweep completed | candidates=0")
            return CancellationResult(cancelled_count=0, errors=[])

        cancelled_count = 0
        skipped_count = 0
        errors: list[str] = []
        max_workers = max(1, min(self._settings.cancellation_max_workers, len(candidates)))
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="cancel") as pool:
            futures = [pool.submit(self._cancel, candidate, current) for candidate in candidates]
            for candidate, future in zip(candidates, futures):
                booking_id = candidate.booking.booking_id
                try:
                    transitioned = future.result()
                except Exception as exc:
                    message = f"Failed to cancel booking {booking_id}: {exc}"
                    logger.warning(message)
                    errors.append(message)
                    continue
                if transitioned:
                    cancelled_count += 1
                    logger.info(
                        "Booking cancelled | booking_id=%s | reason=%s",
                        booking_id,
                        candidate.reason,
                    )
                else:
                    skipped_count += 1

        logger.info(
            "Cancellation sweep completed | candidates=%s | cancelled=%s | skipped=%s | errors=%s",
            len(candidates),
            cancelled_count,
            skipped_count,
            len(errors),
        )
        return CancellationResult(
            cancelled_count=cancelled_count,
            errors=errors,
            skipped_count=skipped_count,
        )
