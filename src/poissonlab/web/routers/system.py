"""System endpoints: health check."""

from fastapi import APIRouter, Depends

from poissonlab.analysis.simulation import ResultStore
from poissonlab.web.dependencies import get_store
from poissonlab.web.schemas import HealthResponse

router = APIRouter(tags=["system"])


@router.get("/health", response_model=HealthResponse)
def health(store: ResultStore = Depends(get_store)):
    """API health check."""
    return HealthResponse(
        status="ok",
        version="0.1.0",
        generation=store.generation,
        has_result=store.latest is not None,
    )
