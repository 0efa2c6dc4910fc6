"""FastAPI dependency injection providers."""

from fastapi import Request

from poissonlab.analysis.simulation import ResultStore
from poissonlab.config import Settings
from poissonlab.web.cache import ChartCache


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    return request.app.state.settings


def get_store(request: Request) -> ResultStore:
    """Get the latest-result slot from app state."""
    return request.app.state.store


def get_chart_cache(request: Request) -> ChartCache:
    """Get the rendered-chart cache from app state."""
    return request.app.state.chart_cache
