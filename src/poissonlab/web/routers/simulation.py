"""Simulation API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from poissonlab.analysis.sim_models import InvalidParameterError
from poissonlab.analysis.simulation import (
    ResultStore,
    SimulationResult,
    compute_theory,
    format_value,
)
from poissonlab.config import Settings
from poissonlab.visualization.charts import (
    figure_to_png,
    plot_sample_path,
    plot_terminal_histogram,
)
from poissonlab.web.cache import ChartCache
from poissonlab.web.dependencies import get_chart_cache, get_settings, get_store
from poissonlab.web.schemas import (
    ApiResponse,
    Meta,
    ParameterBounds,
    PathPayload,
    SimulationRequest,
    SimulationSummary,
    SliderBounds,
    TerminalStatsPayload,
    TheoryResult,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/simulation", tags=["simulation"])


@router.get("/parameters", response_model=ApiResponse[ParameterBounds])
def get_parameter_bounds(settings: Settings = Depends(get_settings)):
    """Widget bounds and defaults for the four process parameters."""
    return ApiResponse(data=ParameterBounds(
        lam=SliderBounds(min=settings.lam_min, max=settings.lam_max,
                         step=settings.lam_step, default=settings.default_lam),
        mu=SliderBounds(min=settings.mu_min, max=settings.mu_max,
                        step=settings.mu_step, default=settings.default_mu),
        t_max=SliderBounds(min=settings.t_max_min, max=settings.t_max_max,
                           step=settings.t_max_step, default=settings.default_t_max),
        num_simulations_min=settings.num_simulations_min,
        num_simulations_step=settings.num_simulations_step,
        num_simulations_default=settings.default_num_simulations,
        max_simulations=settings.max_simulations,
        max_expected_arrivals=settings.max_expected_arrivals,
        histogram_bins=settings.histogram_bins,
    ))


@router.get("/theory", response_model=ApiResponse[TheoryResult])
def get_theory(
    lam: float = Query(..., gt=0),
    mu: float = Query(..., gt=0),
    t_max: float = Query(..., gt=0),
):
    """Closed-form mean and variance of S(T)."""
    try:
        return ApiResponse(data=_theory_payload(lam, mu, t_max))
    except InvalidParameterError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/resimulate", response_model=ApiResponse[SimulationSummary])
def resimulate(
    request: SimulationRequest,
    store: ResultStore = Depends(get_store),
):
    """Recompute the path and terminal distribution, replacing the latest result."""
    overrides = {}
    if request.seed is not None:
        overrides["seed"] = request.seed
    if request.arrival_method is not None:
        overrides["arrival_method"] = request.arrival_method
    if request.terminal_sampler is not None:
        overrides["terminal_sampler"] = request.terminal_sampler

    try:
        result = store.resimulate(
            request.lam, request.mu, request.t_max, request.num_simulations, **overrides
        )
    except InvalidParameterError as e:
        logger.info(f"Rejected simulation request: {e}")
        raise HTTPException(status_code=422, detail=str(e))

    return ApiResponse(data=_summary(result), meta=Meta(generation=store.generation))


@router.get("/latest", response_model=ApiResponse[SimulationSummary])
def get_latest(
    include_samples: bool = Query(False, description="Include raw terminal samples"),
    store: ResultStore = Depends(get_store),
):
    """Latest completed simulation."""
    result = _require_latest(store)
    return ApiResponse(
        data=_summary(result, include_samples=include_samples),
        meta=Meta(generation=store.generation),
    )


@router.get("/latest/path.png", response_class=Response)
def get_path_chart(
    store: ResultStore = Depends(get_store),
    cache: ChartCache = Depends(get_chart_cache),
    settings: Settings = Depends(get_settings),
):
    """Sample path of the latest simulation as PNG."""
    result = _require_latest(store)
    params = result["params"]

    def render() -> bytes:
        fig = plot_sample_path(result["path"], params["lam"], params["mu"])
        return figure_to_png(fig, dpi=settings.chart_dpi)

    png = cache.get_or_render(result["run_id"], "path", render)
    return Response(content=png, media_type="image/png")


@router.get("/latest/histogram.png", response_class=Response)
def get_histogram_chart(
    show_density: bool = Query(False, description="Overlay the exact density"),
    store: ResultStore = Depends(get_store),
    cache: ChartCache = Depends(get_chart_cache),
    settings: Settings = Depends(get_settings),
):
    """Terminal-value histogram of the latest simulation as PNG."""
    result = _require_latest(store)
    params = result["params"]

    def render() -> bytes:
        fig = plot_terminal_histogram(
            result["terminal_values"],
            result["theory"]["mean"],
            params["t_max"],
            bins=settings.histogram_bins,
            lam=params["lam"],
            mu=params["mu"],
            show_density=show_density,
        )
        return figure_to_png(fig, dpi=settings.chart_dpi)

    chart = "histogram+density" if show_density else "histogram"
    png = cache.get_or_render(result["run_id"], chart, render)
    return Response(content=png, media_type="image/png")


def _require_latest(store: ResultStore) -> SimulationResult:
    result = store.latest
    if result is None:
        raise HTTPException(status_code=404, detail="No simulation has been run yet")
    return result


def _theory_payload(lam: float, mu: float, t_max: float) -> TheoryResult:
    theory = compute_theory(lam, mu, t_max)
    return TheoryResult(
        lam=lam,
        mu=mu,
        t_max=t_max,
        mean=theory["mean"],
        variance=theory["variance"],
        zero_prob=theory["zero_prob"],
        mean_display=format_value(theory["mean"]),
        variance_display=format_value(theory["variance"]),
    )


def _summary(result: SimulationResult, include_samples: bool = False) -> SimulationSummary:
    params = result["params"]
    path = result["path"]
    return SimulationSummary(
        run_id=result["run_id"],
        created_at=result["created_at"],
        lam=params["lam"],
        mu=params["mu"],
        t_max=params["t_max"],
        num_simulations=params["num_simulations"],
        arrival_method=result["arrival_method"],
        terminal_sampler=result["terminal_sampler"],
        elapsed_ms=result["elapsed_ms"],
        theory=_theory_payload(params["lam"], params["mu"], params["t_max"]),
        path=PathPayload(
            times=path["times"].tolist(),
            values=path["values"].tolist(),
            num_arrivals=path["num_arrivals"],
            method=path["method"],
            truncated=path["truncated"],
        ),
        terminal_stats=TerminalStatsPayload(**result["terminal_stats"]),
        terminal_values=result["terminal_values"].tolist() if include_samples else None,
    )
