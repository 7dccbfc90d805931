"""Repository layer responsible for all booking store access."""

from __future__ import annotations

import random
import sqlite3
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Optional

from revenue_core.domain.models import Booking, BookingStatus
from revenue_core.utils.config import Settings, get_settings
from revenue_core.utils.logger import get_logger


logger = get_logger(__name__)

_BOOKING_COLUMNS = """
    id,
    status,
    payment_status,
    created_at,
    date_from,
    date_to,
    total_amount,
    cancellation_reason,
    cancelled_at
"""


def to_db_timestamp(value: datetime | date) -> str:
    """Serialize to a fixed-width UTC string so SQL text comparison orders correctly."""
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(tzinfo=None).isoformat(timespec="microseconds")


def from_db_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


def _row_to_booking(row: sqlite3.Row) -> Booking:
    return Booking(
        booking_id=int(row["id"]),
        status=BookingStatus(row["status"]),
        payment_status=str(row["payment_status"]),
        created_at=from_db_timestamp(row["created_at"]),
        date_from=from_db_timestamp(row["date_from"]),
        date_to=from_db_timestamp(row["date_to"]),
        total_amount=float(row["total_amount"]),
        cancellation_reason=row["cancellation_reason"],
        cancelled_at=(
            from_db_timestamp(row["cancelled_at"]) if row["cancelled_at"] is not None else None
        ),
    )


class DataRepository:
    """Encapsulates SQLite access so pricing and forecasting stay storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        # One connection per call; sweep workers run on separate threads.
        connection = sqlite3.connect(self._db_path, timeout=30.0)
        connection.row_factory = sqlite3.Row
        return connection

    def initialize_database(self) -> None:
        """Create the booking table and its window-query indexes."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Bookings (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        status TEXT NOT NULL DEFAULT 'pending'
                            CHECK (status IN ('pending', 'confirmed', 'cancelled', 'completed')),
                        payment_status TEXT NOT NULL DEFAULT 'pending',
                        created_at TEXT NOT NULL,
                        date_from TEXT NOT NULL,
                        date_to TEXT NOT NULL,
                        total_amount REAL NOT NULL DEFAULT 0 CHECK (total_amount >= 0),
                        cancellation_reason TEXT,
                        cancelled_at TEXT
                    );
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_bookings_status_created
                    ON Bookings(status, created_at);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_bookings_status_date_from
                    ON Bookings(status, date_from);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_synthetic_data(self, now: Optional[datetime] = None) -> None:
        """Seed deterministic booking history only when the table is empty."""
        rng = random.Random(self._settings.synthetic_random_seed)
        current = now or datetime.now(timezone.utc)
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) AS count FROM Bookings;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Booking history already present; skipping seed")
                    return

                first_day = current.date() - timedelta(days=self._settings.synthetic_seed_days)
                rows = []
                for offset in range(self._settings.synthetic_seed_days):
                    day = first_day + timedelta(days=offset)
                    if day.month in (11, 12, 1, 2):
                        seasonal_factor = 1.3
                    elif day.month in (6, 7, 8, 9):
                        seasonal_factor = 0.8
                    else:
                        seasonal_factor = 1.0
                    weekend_factor = 1.2 if day.weekday() >= 4 else 1.0
                    expected = self._settings.synthetic_daily_bookings * seasonal_factor * weekend_factor
                    count = max(0, round(rng.gauss(expected, 2.0)))

                    for _ in range(count):
                        created_at = datetime.combine(
                            day, time(hour=rng.randint(0, 23), minute=rng.randint(0, 59)),
                            tzinfo=timezone.utc,
                        )
                        date_from = datetime.combine(
                            day + timedelta(days=rng.randint(1, 60)),
                            time(hour=12),
                            tzinfo=timezone.utc,
                        )
                        nights = rng.randint(1, 5)
                        date_to = date_from + timedelta(days=nights)
                        status = (
                            BookingStatus.COMPLETED if date_to < current else BookingStatus.CONFIRMED
                        )
                        rows.append(
                            (
                                status.value,
                                "paid",
                                to_db_timestamp(created_at),
                                to_db_timestamp(date_from),
                                to_db_timestamp(date_to),
                                float(nights * rng.randint(15, 40) * 100),
                            )
                        )

                cursor.executemany(
                    """
                    INSERT INTO Bookings (
                        status, payment_status, created_at, date_from, date_to, total_amount
                    )
                    VALUES (?, ?, ?, ?, ?, ?);
                    """,
                    rows,
                )
                conn.commit()
            logger.info("Synthetic seed completed with %s bookings", len(rows))
        except sqlite3.Error as exc:
            raise RuntimeError(f"Synthetic data seeding failed: {exc}") from exc

    def create_booking(
        self,
        *,
        created_at: datetime,
        date_from: datetime | date,
        date_to: datetime | date,
        total_amount: float = 0.0,
        status: BookingStatus = BookingStatus.PENDING,
        payment_status: str = "pending",
    ) -> int:
        """Insert a booking row and return the created id."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO Bookings (
                    status, payment_status, created_at, date_from, date_to, total_amount
                )
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (
                    status.value,
                    payment_status,
                    to_db_timestamp(created_at),
                    to_db_timestamp(date_from),
                    to_db_timestamp(date_to),
                    float(total_amount),
                ),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_BOOKING_COLUMNS} FROM Bookings WHERE id = ?;",
                (booking_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return _row_to_booking(row)

    def list_pending_with_check_in_before(self, cutoff: datetime) -> list[Booking]:
        """Return pending bookings whose check-in is earlier than ``cutoff``."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_BOOKING_COLUMNS}
                FROM Bookings
                WHERE status = 'pending' AND date_from < ?
                ORDER BY id ASC;
                """,
                (to_db_timestamp(cutoff),),
            )
            return [_row_to_booking(row) for row in cursor.fetchall()]

    def list_pending_created_before(self, cutoff: datetime) -> list[Booking]:
        """Return pending bookings created earlier than ``cutoff``."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_BOOKING_COLUMNS}
                FROM Bookings
                WHERE status = 'pending' AND created_at < ?
                ORDER BY id ASC;
                """,
                (to_db_timestamp(cutoff),),
            )
            return [_row_to_booking(row) for row in cursor.fetchall()]

    def cancel_booking_if_pending(
        self,
        booking_id: int,
        *,
        reason: str,
        cancelled_at: datetime,
    ) -> bool:
        """Compare-and-swap ``pending -> cancelled``; False when the row is no longer pending."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE Bookings
                SET status = 'cancelled',
                    cancellation_reason = ?,
                    cancelled_at = ?
                WHERE id = ? AND status = 'pending';
                """,
                (reason, to_db_timestamp(cancelled_at), booking_id),
            )
            conn.commit()
            return cursor.rowcount == 1

    def get_daily_booking_totals(self, *, start: date, end: date) -> list[tuple[str, int, float]]:
        """Aggregate non-cancelled bookings per creation day in ``[start, end)``."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT
                    substr(created_at, 1, 10) AS day,
                    COUNT(*) AS bookings_count,
                    COALESCE(SUM(total_amount), 0) AS revenue
                FROM Bookings
                WHERE status != 'cancelled'
                  AND created_at >= ?
                  AND created_at < ?
                GROUP BY day
                ORDER BY day ASC;
                """,
                (to_db_timestamp(start), to_db_timestamp(end)),
            )
            return [
                (str(row["day"]), int(row["bookings_count"]), float(row["revenue"]))
                for row in cursor.fetchall()
            ]

    def list_stays_overlapping(self, *, start: date, end: date) -> list[tuple[date, date]]:
        """Return ``(first_night, check_out_day)`` for non-cancelled stays touching ``[start, end)``."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT date_from, date_to
                FROM Bookings
                WHERE status != 'cancelled'
                  AND date_from < ?
                  AND date_to > ?
                ORDER BY id ASC;
                """,
                (to_db_timestamp(end), to_db_timestamp(start)),
            )
            return [
                (
                    from_db_timestamp(row["date_from"]).date(),
                    from_db_timestamp(row["date_to"]).date(),
                )
                for row in cursor.fetchall()
            ]

    def count_bookings_by_status(self) -> dict[str, int]:
        """Return row counts per status for diagnostics and tests."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT status, COUNT(*) AS count FROM Bookings GROUP BY status;"
            )
            return {str(row["status"]): int(row["count"]) for row in cursor.fetchall()}
