"""FastAPI application factory for the poissonlab API."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from poissonlab.config import Settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: create the result slot and run the first simulation."""
    settings = app.state.settings
    logger.info("Starting poissonlab API...")

    from poissonlab.analysis.simulation import ResultStore
    from poissonlab.web.cache import ChartCache

    app.state.store = ResultStore(
        seed=settings.seed,
        arrival_method=settings.arrival_method,
        terminal_sampler=settings.terminal_sampler,
        batch_size=settings.batch_size,
        max_simulations=settings.max_simulations,
        max_expected_arrivals=settings.max_expected_arrivals,
    )
    app.state.chart_cache = ChartCache(maxsize=settings.chart_cache_size)

    # First read should never find an empty slot
    app.state.store.resimulate(
        settings.default_lam,
        settings.default_mu,
        settings.default_t_max,
        settings.default_num_simulations,
    )

    logger.info("poissonlab API ready")
    yield

    app.state.chart_cache.clear()
    app.state.store.clear()
    logger.info("poissonlab API shutdown complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="poissonlab API",
        description="Compound Poisson process explorer - sample paths and terminal distribution",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Accept"],
    )

    _register_routers(app)

    return app


def _register_routers(app: FastAPI):
    """Register all API routers."""
    from poissonlab.web.routers.simulation import router as simulation_router
    from poissonlab.web.routers.system import router as system_router

    app.include_router(simulation_router, prefix="/api/v1")
    app.include_router(system_router, prefix="/api/v1")
