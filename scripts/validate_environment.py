#!/usr/bin/env python3
"""Check that a local checkout can price, forecast and run the expiry sweep."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from revenue_core.domain.models import DateRange, GuestSelection, MealPlan, OccupancyTier, RoomCategory
from revenue_core.repository.data_repository import DataRepository
from revenue_core.services.cancellation_service import AutoCancellationPolicy
from revenue_core.services.forecasting_service import ForecastingService
from revenue_core.services.pricing_service import PricingService
from revenue_core.utils.config import get_settings

SEPARATOR_LINE = "=" * 44

REQUIRED_PACKAGES = [
    ("fastapi", "fastapi"),
    ("uvicorn", "uvicorn"),
    ("pydantic", "pydantic"),
    ("numpy", "numpy"),
    ("pandas", "pandas"),
    ("apscheduler", "APScheduler"),
    ("httpx", "httpx"),
    ("pytest", "pytest"),
]


def _result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def _check_packages() -> tuple[bool, str]:
    problems: list[str] = []
    for module_name, dist_name in REQUIRED_PACKAGES:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except (ImportError, PackageNotFoundError) as exc:
            problems.append(f"{module_name} ({exc})")
    if problems:
        return _result("Required packages", False, "missing -> " + "; ".join(problems))
    return _result("Required packages: all importable", True)


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="revenue-core-env-")

    def record(outcome: tuple[bool, str]) -> None:
        nonlocal all_passed
        ok, line = outcome
        results.append(line)
        all_passed = all_passed and ok

    if sys.version_info >= (3, 11):
        record(_result("Python " + sys.version.split()[0], True))
    else:
        record(_result("Python version >= 3.11", False, f"found {sys.version.split()[0]}"))

    record(_check_packages())

    try:
        settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "validation.db",
            cancellation_sweep_enabled=False,
        )
        repository = DataRepository(settings)

        try:
            repository.initialize_database()
            repository.seed_synthetic_data()
            counts = repository.count_bookings_by_status()
            record(_result("Booking store", True, f": {sum(counts.values())} seeded bookings"))
        except Exception as exc:
            record(_result("Booking store", False, str(exc)))

        try:
            breakdown = PricingService(settings=settings).quote(
                category=RoomCategory(
                    category_id="validation",
                    name="Validation Room",
                    base_rate=2000.0,
                    free_extra_person_limit=2,
                    extra_person_charge=500.0,
                    meal_plan_matrix={MealPlan.EP: {OccupancyTier.DOUBLE: 2000.0}},
                ),
                date_range=DateRange(date(2026, 3, 10), date(2026, 3, 12)),
                guests=GuestSelection(rooms=1, adults=2),
                meal_plan=MealPlan.EP,
            )
            if breakdown.total != 4680.0:
                raise RuntimeError(f"expected total 4680.0, got {breakdown.total}")
            record(_result("Quote pipeline", True, f": total={breakdown.total:.2f}"))
        except Exception as exc:
            record(_result("Quote pipeline", False, str(exc)))

        try:
            report = ForecastingService(repository=repository, settings=settings).analytics()
            record(
                _result(
                    "Forecasting",
                    True,
                    f": bookings={report['bookings'].predicted:.1f} "
                    f"patterns={len(report['seasonal_patterns'])}",
                )
            )
        except Exception as exc:
            record(_result("Forecasting", False, str(exc)))

        try:
            now = datetime.now(timezone.utc)
            repository.create_booking(
                created_at=now - timedelta(hours=2),
                date_from=now + timedelta(days=7),
                date_to=now + timedelta(days=9),
            )
            outcome = AutoCancellationPolicy(repository=repository, settings=settings).run(now=now)
            if outcome.cancelled_count != 1:
                raise RuntimeError(f"expected 1 cancellation, got {outcome.cancelled_count}")
            record(_result("Cancellation sweep", True))
        except Exception as exc:
            record(_result("Cancellation sweep", False, str(exc)))
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Revenue Core Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
