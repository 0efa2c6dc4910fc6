"""Pydantic request/response schemas for the poissonlab API."""

from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from poissonlab.analysis.sim_models import ArrivalMethod, TerminalSampler

T = TypeVar("T")


# --- Base schemas ---


class Meta(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    generation: int | None = None


class ApiResponse(BaseModel, Generic[T]):
    data: T
    meta: Meta = Field(default_factory=Meta)


# --- Request schemas ---


class SimulationRequest(BaseModel):
    lam: float = Field(2.0, gt=0, description="Poisson arrival rate λ")
    mu: float = Field(0.5, gt=0, description="Exponential jump-size rate μ")
    t_max: float = Field(20.0, gt=0, description="Time horizon T")
    num_simulations: int = Field(5000, ge=1, description="Terminal samples for the histogram")
    seed: int | None = Field(None, ge=0, description="Optional seed for a reproducible run")
    arrival_method: ArrivalMethod | None = None
    terminal_sampler: TerminalSampler | None = None


# --- Response schemas ---


class SliderBounds(BaseModel):
    min: float
    max: float
    step: float
    default: float


class ParameterBounds(BaseModel):
    lam: SliderBounds
    mu: SliderBounds
    t_max: SliderBounds
    num_simulations_min: int
    num_simulations_step: int
    num_simulations_default: int
    max_simulations: int
    max_expected_arrivals: float
    histogram_bins: int


class TheoryResult(BaseModel):
    lam: float
    mu: float
    t_max: float
    mean: float = Field(description="E[S(T)] = λT/μ")
    variance: float = Field(description="Var[S(T)] = 2λT/μ²")
    zero_prob: float = Field(description="P(S(T) = 0) = exp(-λT)")
    mean_display: str
    variance_display: str


class PathPayload(BaseModel):
    times: list[float]
    values: list[float]
    num_arrivals: int
    method: str
    truncated: bool


class TerminalStatsPayload(BaseModel):
    num_simulations: int
    mean: float
    variance: float
    std: float
    p5: float
    p25: float
    p50: float
    p75: float
    p95: float
    zero_fraction: float
    theoretical_mean: float
    theoretical_variance: float
    theoretical_zero_prob: float
    mean_rel_error: float


class SimulationSummary(BaseModel):
    run_id: str
    created_at: datetime
    lam: float
    mu: float
    t_max: float
    num_simulations: int
    arrival_method: str
    terminal_sampler: str
    elapsed_ms: float
    theory: TheoryResult
    path: PathPayload
    terminal_stats: TerminalStatsPayload
    terminal_values: list[float] | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    service: str = "poissonlab-api"
    generation: int = 0
    has_result: bool = False
