"""Simulation orchestrator.

Runs the path simulator and the terminal-value sampler for one parameter set
and keeps the latest completed result in a single slot.
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, TypedDict

import numpy as np

from poissonlab.analysis.sim_models import (
    MAX_EXPECTED_ARRIVALS,
    ArrivalMethod,
    InvalidParameterError,
    SamplePath,
    TerminalSampler,
    TerminalStats,
    check_count,
    check_expected_arrivals,
    check_positive,
)
from poissonlab.analysis.sim_models.path import DEFAULT_BATCH_SIZE, simulate_path
from poissonlab.analysis.sim_models.terminal import simulate_terminal, summarize_terminal
from poissonlab.analysis.theory import expected_value, variance, zero_probability

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_LAM = 2.0
DEFAULT_MU = 0.5
DEFAULT_T_MAX = 20.0
DEFAULT_NUM_SIMULATIONS = 5000
MAX_SIMULATIONS = 1_000_000


class SimulationParams(TypedDict):
    lam: float
    mu: float
    t_max: float
    num_simulations: int


class Theory(TypedDict):
    mean: float
    variance: float
    zero_prob: float


class SimulationResult(TypedDict):
    run_id: str
    created_at: datetime
    params: SimulationParams
    arrival_method: str
    terminal_sampler: str
    path: SamplePath
    terminal_values: np.ndarray
    terminal_stats: TerminalStats
    theory: Theory
    elapsed_ms: float


def validate_parameters(
    lam: float,
    mu: float,
    t_max: float,
    num_simulations: int,
    max_simulations: int = MAX_SIMULATIONS,
    max_expected_arrivals: float = MAX_EXPECTED_ARRIVALS,
) -> SimulationParams:
    """Check every parameter and return them normalised.

    Raises:
        InvalidParameterError: on a non-positive or non-finite rate/horizon,
            a simulation count outside [1, max_simulations], or λ·t_max
            above max_expected_arrivals.
    """
    params = SimulationParams(
        lam=check_positive("lam", lam),
        mu=check_positive("mu", mu),
        t_max=check_positive("t_max", t_max),
        num_simulations=check_count("num_simulations", num_simulations, upper=max_simulations),
    )
    check_expected_arrivals(params["lam"], params["t_max"], max_expected_arrivals)
    return params


def compute_theory(lam: float, mu: float, t_max: float) -> Theory:
    return Theory(
        mean=expected_value(lam, t_max, mu),
        variance=variance(lam, t_max, mu),
        zero_prob=zero_probability(lam, t_max),
    )


def format_value(value: float) -> str:
    """Display format for scalar outputs: at most 2 decimals, no trailing zeros.

    80.0 prints as "80", 2.5 as "2.5" and 1/3 as "0.33".
    """
    return f"{round(float(value), 2):.2f}".rstrip("0").rstrip(".")


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run_simulation(
    lam: float = DEFAULT_LAM,
    mu: float = DEFAULT_MU,
    t_max: float = DEFAULT_T_MAX,
    num_simulations: int = DEFAULT_NUM_SIMULATIONS,
    rng: np.random.Generator | None = None,
    seed: int | None = None,
    arrival_method: ArrivalMethod | str = ArrivalMethod.SEQUENTIAL,
    terminal_sampler: TerminalSampler | str = TerminalSampler.GAMMA,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_simulations: int = MAX_SIMULATIONS,
    max_expected_arrivals: float = MAX_EXPECTED_ARRIVALS,
) -> SimulationResult:
    """Simulate one sample path and the terminal-value distribution.

    Args:
        lam: Poisson arrival rate λ.
        mu: Jump-size rate μ.
        t_max: Time horizon T.
        num_simulations: Terminal samples for the histogram.
        rng: Parent random generator; ignored when ``seed`` is given.
        seed: Optional seed for a reproducible run.
        arrival_method: Arrival construction used for the path.
        terminal_sampler: Sampler used for S(T).
        batch_size: Gap batch size for ``ArrivalMethod.BATCH``.
        max_simulations: Upper bound on ``num_simulations``.
        max_expected_arrivals: Upper bound on λ·t_max.

    Returns:
        SimulationResult with the path, raw terminal samples and statistics.

    Raises:
        InvalidParameterError: if any parameter is invalid.
    """
    params = validate_parameters(
        lam, mu, t_max, num_simulations, max_simulations, max_expected_arrivals
    )
    try:
        arrival_method = ArrivalMethod(arrival_method)
        terminal_sampler = TerminalSampler(terminal_sampler)
    except ValueError as e:
        raise InvalidParameterError(str(e)) from None
    theory = compute_theory(params["lam"], params["mu"], params["t_max"])

    if seed is not None or rng is None:
        rng = np.random.default_rng(seed)

    # Independent child streams so the path does not shift the terminal draws
    path_rng, terminal_rng = rng.spawn(2)

    logger.info(
        "Simulating lam=%.3f mu=%.3f T=%.2f N=%d (method=%s, sampler=%s)",
        params["lam"], params["mu"], params["t_max"], params["num_simulations"],
        arrival_method.value, terminal_sampler.value,
    )
    started = time.perf_counter()

    path = simulate_path(
        params["lam"], params["mu"], params["t_max"], path_rng,
        method=arrival_method, batch_size=batch_size,
        max_expected_arrivals=max_expected_arrivals,
    )
    terminal_values = simulate_terminal(
        params["lam"], params["mu"], params["t_max"], params["num_simulations"],
        terminal_rng, sampler=terminal_sampler,
        max_expected_arrivals=max_expected_arrivals,
    )
    stats = summarize_terminal(terminal_values, params["lam"], params["mu"], params["t_max"])

    elapsed_ms = round((time.perf_counter() - started) * 1000, 3)
    logger.info(
        "Simulation done in %.1f ms: %d arrivals, empirical mean %.3f vs %.3f",
        elapsed_ms, path["num_arrivals"], stats["mean"], stats["theoretical_mean"],
    )

    return SimulationResult(
        run_id=uuid.uuid4().hex,
        created_at=datetime.now(timezone.utc),
        params=params,
        arrival_method=arrival_method.value,
        terminal_sampler=terminal_sampler.value,
        path=path,
        terminal_values=terminal_values,
        terminal_stats=stats,
        theory=theory,
        elapsed_ms=elapsed_ms,
    )


class ResultStore:
    """Single slot holding the latest completed simulation.

    Each trigger replaces the slot wholesale; readers only ever see a
    finished result because the computation runs before the swap.
    """

    def __init__(self, **defaults: Any):
        self._defaults = defaults
        self._latest: SimulationResult | None = None
        self._generation = 0

    def resimulate(self, lam: float, mu: float, t_max: float, num_simulations: int,
                   **overrides: Any) -> SimulationResult:
        kwargs = {**self._defaults, **overrides}
        result = run_simulation(lam, mu, t_max, num_simulations, **kwargs)
        self._latest = result
        self._generation += 1
        logger.debug("Result slot updated: generation=%d run_id=%s",
                     self._generation, result["run_id"])
        return result

    @property
    def latest(self) -> SimulationResult | None:
        return self._latest

    @property
    def generation(self) -> int:
        return self._generation

    def clear(self) -> None:
        self._latest = None
