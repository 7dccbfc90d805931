from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

from revenue_core.domain.models import BookingStatus
from revenue_core.repository.data_repository import (
    DataRepository,
    from_db_timestamp,
    to_db_timestamp,
)
from revenue_core.utils.config import get_settings


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _build_repository(tmp_path, filename: str, **overrides) -> DataRepository:
    settings = replace(
        get_settings(),
        database_path=tmp_path / filename,
        synthetic_seed_days=30,
        **overrides,
    )
    repository = DataRepository(settings)
    repository.initialize_database()
    return repository


def test_timestamps_are_fixed_width_utc() -> None:
    ist = timezone(timedelta(hours=5, minutes=30))

    assert to_db_timestamp(datetime(2026, 3, 1, 17, 30, tzinfo=ist)) == "2026-03-01T12:00:00.000000"
    assert to_db_timestamp(date(2026, 3, 1)) == "2026-03-01T00:00:00.000000"
    assert from_db_timestamp("2026-03-01T12:00:00.000000") == NOW


def test_seed_is_deterministic_and_runs_once(tmp_path) -> None:
    first = _build_repository(tmp_path, "seed_a.db")
    second = _build_repository(tmp_path, "seed_b.db")

    first.seed_synthetic_data(now=NOW)
    second.seed_synthetic_data(now=NOW)
    counts = first.count_bookings_by_status()
    first.seed_synthetic_data(now=NOW)

    assert counts
    assert counts == second.count_bookings_by_status()
    assert first.count_bookings_by_status() == counts
    assert "pending" not in counts


def test_conditional_cancel_only_transitions_pending_rows(tmp_path) -> None:
    repository = _build_repository(tmp_path, "cas.db")
    booking_id = repository.create_booking(
        created_at=NOW - timedelta(hours=3),
        date_from=NOW + timedelta(days=2),
        date_to=NOW + timedelta(days=4),
    )

    assert repository.cancel_booking_if_pending(booking_id, reason="first", cancelled_at=NOW)
    assert not repository.cancel_booking_if_pending(
        booking_id, reason="second", cancelled_at=NOW + timedelta(minutes=5)
    )
    booking = repository.get_booking(booking_id)
    assert booking.status == BookingStatus.CANCELLED
    assert booking.cancellation_reason == "first"
    assert booking.cancelled_at == NOW


def test_window_queries_filter_by_cutoff(tmp_path) -> None:
    repository = _build_repository(tmp_path, "windows.db")
    old_id = repository.create_booking(
        created_at=NOW - timedelta(hours=2),
        date_from=NOW + timedelta(days=5),
        date_to=NOW + timedelta(days=6),
    )
    past_id = repository.create_booking(
        created_at=NOW - timedelta(minutes=1),
        date_from=NOW - timedelta(hours=1),
        date_to=NOW + timedelta(days=1),
    )

    created_before = repository.list_pending_created_before(NOW - timedelta(hours=1))
    check_in_before = repository.list_pending_with_check_in_before(NOW)

    assert [booking.booking_id for booking in created_before] == [old_id]
    assert [booking.booking_id for booking in check_in_before] == [past_id]
    assert repository.get_booking(9999) is None
