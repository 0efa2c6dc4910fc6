"""Single sample path of the compound Poisson process.

  S(t) = X_1 + ... + X_N(t)
  N(t) ~ Poisson process(λ), X_i ~ Exponential(μ)

The path is returned as a step function: (0, 0), then for every arrival the
pair (a_i, S(a_i-)), (a_i, S(a_i)), and finally (T, S(T)).
"""

import logging
import math

import numpy as np
import pandas as pd

from . import (
    MAX_EXPECTED_ARRIVALS,
    ArrivalMethod,
    SamplePath,
    check_count,
    check_expected_arrivals,
    check_positive,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5000
MIN_CHUNK = 64


def simulate_path(
    lam: float,
    mu: float,
    t_max: float,
    rng: np.random.Generator,
    method: ArrivalMethod = ArrivalMethod.SEQUENTIAL,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_expected_arrivals: float = MAX_EXPECTED_ARRIVALS,
) -> SamplePath:
    """Simulate one path of S(t) on [0, t_max].

    Args:
        lam: Poisson arrival rate λ.
        mu: Rate μ of the exponential jump sizes (mean jump 1/μ).
        t_max: Time horizon.
        rng: NumPy random generator supplying every draw.
        method: How arrival times are generated.
        batch_size: Number of interarrival gaps drawn by ``ArrivalMethod.BATCH``.
        max_expected_arrivals: Largest accepted λ·t_max.

    Returns:
        SamplePath with 2 * num_arrivals + 2 plot points.
    """
    lam = check_positive("lam", lam)
    mu = check_positive("mu", mu)
    t_max = check_positive("t_max", t_max)
    check_expected_arrivals(lam, t_max, max_expected_arrivals)
    method = ArrivalMethod(method)

    truncated = False
    if method == ArrivalMethod.SEQUENTIAL:
        arrivals = _arrivals_sequential(lam, t_max, rng)
    elif method == ArrivalMethod.ORDER_STATISTICS:
        arrivals = _arrivals_order_statistics(lam, t_max, rng)
    else:
        batch_size = check_count("batch_size", batch_size)
        arrivals, truncated = _arrivals_batch(lam, t_max, rng, batch_size)

    num_arrivals = len(arrivals)
    if num_arrivals > 0:
        jump_sizes = rng.exponential(1.0 / mu, num_arrivals)
    else:
        jump_sizes = np.empty(0)

    times, values = _build_step_path(arrivals, np.cumsum(jump_sizes), t_max)
    logger.debug(
        "Path: %d arrivals on [0, %.2f] (method=%s, S(T)=%.4f)",
        num_arrivals, t_max, method.value, values[-1],
    )

    return SamplePath(
        times=times,
        values=values,
        arrival_times=arrivals,
        jump_sizes=jump_sizes,
        num_arrivals=num_arrivals,
        method=method.value,
        truncated=truncated,
    )


def path_to_frame(path: SamplePath) -> pd.DataFrame:
    """Tabular view of a path with ``Time`` and ``S_t`` columns."""
    return pd.DataFrame({"Time": path["times"], "S_t": path["values"]})


def _arrivals_sequential(lam: float, t_max: float, rng: np.random.Generator) -> np.ndarray:
    """Draw exponential gaps chunk by chunk until the clock passes t_max."""
    # Chunk sized to cover the expected count in one pass most of the time
    chunk = max(MIN_CHUNK, int(math.ceil(lam * t_max * 1.25)) + 16)
    kept: list[np.ndarray] = []
    elapsed = 0.0
    while True:
        clock = elapsed + np.cumsum(rng.exponential(1.0 / lam, chunk))
        kept.append(clock[clock <= t_max])
        if clock[-1] > t_max:
            break
        elapsed = float(clock[-1])
    return np.concatenate(kept)


def _arrivals_order_statistics(
    lam: float, t_max: float, rng: np.random.Generator
) -> np.ndarray:
    """Poisson count first, then sorted uniform arrival times on [0, t_max)."""
    n = int(rng.poisson(lam * t_max))
    return np.sort(rng.uniform(0.0, t_max, n))


def _arrivals_batch(
    lam: float, t_max: float, rng: np.random.Generator, batch_size: int
) -> tuple[np.ndarray, bool]:
    """Fixed oversized batch of gaps; truncates if the batch ends before t_max."""
    clock = np.cumsum(rng.exponential(1.0 / lam, batch_size))
    truncated = bool(clock[-1] <= t_max)
    if truncated:
        logger.warning(
            "Batch of %d interarrival gaps exhausted at t=%.4f before T=%.4f; "
            "path truncated (lam * T = %.1f)",
            batch_size, clock[-1], t_max, lam * t_max,
        )
    return clock[clock <= t_max], truncated


def _build_step_path(
    arrivals: np.ndarray, cumulative: np.ndarray, t_max: float
) -> tuple[np.ndarray, np.ndarray]:
    n = len(arrivals)
    times = np.empty(2 * n + 2)
    values = np.zeros(2 * n + 2)
    times[0] = 0.0
    times[-1] = t_max
    if n == 0:
        return times, values

    times[1:-1] = np.repeat(arrivals, 2)
    values[1:-1:2] = np.concatenate(([0.0], cumulative[:-1]))  # value held before the jump
    values[2:-1:2] = cumulative
    values[-1] = cumulative[-1]
    return times, values
