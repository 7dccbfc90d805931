"""FastAPI application bootstrap and lifecycle wiring."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from revenue_core.controllers.analytics_controller import router as analytics_router
from revenue_core.controllers.cancellation_controller import router as cancellation_router
from revenue_core.controllers.pricing_controller import router as pricing_router
from revenue_core.repository.data_repository import DataRepository
from revenue_core.services.cancellation_service import AutoCancellationPolicy
from revenue_core.services.forecasting_service import ForecastingService
from revenue_core.services.pricing_service import PricingService
from revenue_core.services.scheduler import CancellationSweepScheduler
from revenue_core.utils.config import Settings, get_settings
from revenue_core.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the app with every service wired explicitly onto ``app.state``."""
    settings = settings or get_settings()
    repository = DataRepository(settings)
    pricing_service = PricingService(settings=settings)
    forecasting_service = ForecastingService(repository=repository, settings=settings)
    cancellation_policy = AutoCancellationPolicy(repository=repository, settings=settings)
    sweep_scheduler = CancellationSweepScheduler(cancellation_policy, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        startup(app)
        yield
        shutdown(app)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.include_router(pricing_router)
    app.include_router(analytics_router)
    app.include_router(cancellation_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": settings.app_version}

    app.state.settings = settings
    app.state.repository = repository
    app.state.pricing_service = pricing_service
    app.state.forecasting_service = forecasting_service
    app.state.cancellation_policy = cancellation_policy
    app.state.sweep_scheduler = sweep_scheduler

    return app


def startup(app: FastAPI) -> None:
    """Initialize schema, seed history and start the sweep scheduler."""
    settings: Settings = app.state.settings
    repository: DataRepository = app.state.repository

    repository.initialize_database()
    repository.seed_synthetic_data()
    if settings.cancellation_sweep_enabled:
        app.state.sweep_scheduler.start()
    logger.info("System startup completed")


def shutdown(app: FastAPI) -> None:
    app.state.sweep_scheduler.shutdown()
    logger.info("System shutdown completed")


app = create_app()
