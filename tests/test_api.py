from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

from fastapi import FastAPI
from fastapi.testclient import TestClient

from revenue_core.controllers.analytics_controller import router as analytics_router
from revenue_core.controllers.cancellation_controller import router as cancellation_router
from revenue_core.controllers.pricing_controller import router as pricing_router
from revenue_core.repository.data_repository import DataRepository
from revenue_core.services.cancellation_service import AutoCancellationPolicy
from revenue_core.services.forecasting_service import ForecastingService
from revenue_core.services.pricing_service import PricingService
from revenue_core.utils.config import get_settings


def _build_test_settings(tmp_path, filename: str):
    return replace(
        get_settings(),
        database_path=tmp_path / filename,
        cancellation_sweep_enabled=False,
    )


def _build_client(tmp_path, filename: str) -> tuple[TestClient, DataRepository]:
    settings = _build_test_settings(tmp_path, filename)
    repository = DataRepository(settings)
    repository.initialize_database()

    app = FastAPI()
    app.include_router(pricing_router)
    app.include_router(analytics_router)
    app.include_router(cancellation_router)
    app.state.pricing_service = PricingService(settings=settings)
    app.state.forecasting_service = ForecastingService(repository=repository, settings=settings)
    app.state.cancellation_policy = AutoCancellationPolicy(repository=repository, settings=settings)
    return TestClient(app), repository


def _quote_payload(**overrides) -> dict:
    payload = {
        "category": {
            "category_id": "deluxe",
            "name": "Deluxe Room",
            "base_rate": 2000,
            "free_extra_person_limit": 2,
            "extra_person_charge": 500,
            "meal_plan_matrix": {
                "EP": {"single": 1800, "double": 2000, "triple": 2400},
            },
        },
        "check_in": "2026-03-10",
        "check_out": "2026-03-12",
        "guests": {"rooms": 1, "adults": 3},
        "meal_plan": "EP",
    }
    payload.update(overrides)
    return payload


def _history_payload(values) -> list[dict]:
    start = date(2026, 1, 1)
    return [
        {
            "date": (start + timedelta(days=offset)).isoformat(),
            "bookings_count": value,
            "revenue": value * 100.0,
        }
        for offset, value in enumerate(values)
    ]


# --- Pricing ---

def test_quote_endpoint_returns_breakdown(tmp_path) -> None:
    client, _ = _build_client(tmp_path, "quote.db")

    response = client.post("/pricing/quote", json=_quote_payload())

    assert response.status_code == 200
    body = response.json()
    assert body["extra_guests"] == 1
    assert body["base_room_total"] == 4800.0
    assert body["extra_guest_charge"] == 1000.0
    assert body["taxes"] == 696
    assert body["service_fee"] == 290
    assert body["total"] == 6786.0
    assert body["nightly_rates"] == []


def test_quote_endpoint_with_dynamic_pricing(tmp_path) -> None:
    client, _ = _build_client(tmp_path, "dynamic.db")
    payload = _quote_payload(
        guests={"rooms": 1, "adults": 2},
        dynamic_pricing={
            "base_price": 2000,
            "max_price": 2500,
            "seasonal_rates": {"shoulder": {"multiplier": 2.0}},
        },
    )

    response = client.post("/pricing/quote", json=payload)

    assert response.status_code == 200
    assert response.json()["nightly_rates"] == [2500.0, 2500.0]


def test_quote_endpoint_rejects_invalid_guests(tmp_path) -> None:
    client, _ = _build_client(tmp_path, "guests.db")

    response = client.post("/pricing/quote", json=_quote_payload(guests={"rooms": 1, "adults": 0}))

    assert response.status_code == 400


def test_quote_endpoint_rejects_empty_stay(tmp_path) -> None:
    client, _ = _build_client(tmp_path, "stay.db")

    response = client.post("/pricing/quote", json=_quote_payload(check_out="2026-03-10"))

    assert response.status_code == 400


def test_quote_endpoint_reports_missing_matrix_rate(tmp_path) -> None:
    client, _ = _build_client(tmp_path, "matrix.db")

    response = client.post("/pricing/quote", json=_quote_payload(guests={"rooms": 1, "adults": 4}))

    assert response.status_code == 422
    assert "quad" in response.json()["detail"]


def test_quote_endpoint_reports_unknown_weekday(tmp_path) -> None:
    client, _ = _build_client(tmp_path, "weekday.db")

    response = client.post(
        "/pricing/quote",
        json=_quote_payload(dynamic_pricing={"weekly_rates": {"funday": 1.2}}),
    )

    assert response.status_code == 422


# --- Forecasting ---

def test_forecast_endpoint_flat_history(tmp_path) -> None:
    client, _ = _build_client(tmp_path, "forecast.db")

    response = client.post(
        "/forecast",
        json={"history": _history_payload([10] * 14), "metric": "bookings", "days_ahead": 7},
    )

    assert response.status_code == 200
    body = response.json()
    assert abs(body["predicted"] - 10.0) < 1e-6
    assert body["trend"] == "stable"
    assert body["confidence"] >= 80


def test_forecast_endpoint_occupancy_without_rates_is_rejected(tmp_path) -> None:
    client, _ = _build_client(tmp_path, "occupancy.db")

    response = client.post(
        "/forecast",
        json={"history": _history_payload([10] * 14), "metric": "occupancy"},
    )

    assert response.status_code == 400


def test_forecast_from_store_uses_booking_history(tmp_path) -> None:
    client, repository = _build_client(tmp_path, "store.db")
    today = datetime.now(timezone.utc)
    for days_back in range(1, 15):
        created = today - timedelta(days=days_back)
        repository.create_booking(
            created_at=created,
            date_from=created + timedelta(days=10),
            date_to=created + timedelta(days=12),
            total_amount=3000.0,
        )

    response = client.get("/forecast/revenue", params={"days_ahead": 14})

    assert response.status_code == 200
    assert response.json()["predicted"] >= 0.0


def test_seasonality_endpoint_requires_a_year(tmp_path) -> None:
    client, _ = _build_client(tmp_path, "season.db")

    response = client.post("/forecast/seasonality", json={"history": _history_payload([10] * 30)})

    assert response.status_code == 200
    assert response.json() == []


def test_insights_endpoint(tmp_path) -> None:
    client, _ = _build_client(tmp_path, "insights.db")

    response = client.post(
        "/analytics/insights",
        json={"history": _history_payload(list(range(1, 15))), "days_ahead": 7},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["bookings"]["trend"] == "up"
    assert any(line.startswith("Bookings are up") for line in body["insights"])


# --- Cancellation ---

def test_cancellation_preview_and_sweep(tmp_path) -> None:
    client, repository = _build_client(tmp_path, "cancel.db")
    now = datetime.now(timezone.utc)
    stale_id = repository.create_booking(
        created_at=now - timedelta(hours=2),
        date_from=now + timedelta(days=10),
        date_to=now + timedelta(days=12),
    )
    repository.create_booking(
        created_at=now - timedelta(minutes=5),
        date_from=now + timedelta(days=10),
        date_to=now + timedelta(days=12),
    )

    preview = client.get("/cancellations/preview")
    assert preview.status_code == 200
    candidates = preview.json()["candidates"]
    assert [item["booking_id"] for item in candidates] == [stale_id]
    assert candidates[0]["reason"] == "payment timeout (1 hour)"

    sweep = client.post("/cancellations/sweep")
    assert sweep.status_code == 200
    assert sweep.json() == {"cancelled_count": 1, "skipped_count": 0, "errors": []}

    again = client.post("/cancellations/sweep")
    assert again.json()["cancelled_count"] == 0


def test_missing_services_return_503() -> None:
    app = FastAPI()
    app.include_router(analytics_router)
    app.include_router(cancellation_router)
    client = TestClient(app)

    assert client.post("/cancellations/sweep").status_code == 503
    assert client.get("/forecast/bookings").status_code == 503


def test_health_endpoint(tmp_path) -> None:
    from revenue_core.main import create_app

    client = TestClient(create_app(_build_test_settings(tmp_path, "health.db")))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_occupancy_forecast_from_store(tmp_path) -> None:
    client, repository = _build_client(tmp_path, "store_occupancy.db")
    today = datetime.now(timezone.utc)
    for days_back in range(1, 21):
        check_in = today - timedelta(days=days_back)
        repository.create_booking(
            created_at=check_in - timedelta(days=3),
            date_from=check_in,
            date_to=check_in + timedelta(days=2),
            total_amount=2000.0,
        )

    response = client.get("/forecast/occupancy", params={"days_ahead": 7})

    assert response.status_code == 200
    assert 0.0 <= response.json()["predicted"] <= 100.0
