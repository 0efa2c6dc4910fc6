"""Monte Carlo sampler for the terminal value S(T).

  N ~ Poisson(λT), S(T) = X_1 + ... + X_N, X_i ~ Exponential(μ)

Given N = n > 0 the sum is exactly Gamma(shape=n, rate=μ), so the default
sampler draws one gamma variate per repetition instead of n exponentials.
"""

import logging

import numpy as np

from . import (
    MAX_EXPECTED_ARRIVALS,
    TerminalSampler,
    TerminalStats,
    check_count,
    check_expected_arrivals,
    check_positive,
)
from ..theory import expected_value, variance, zero_probability

logger = logging.getLogger(__name__)

# Jumps drawn at once by the SUM sampler
DEFAULT_SUM_CHUNK = 1_000_000


def simulate_terminal(
    lam: float,
    mu: float,
    t_max: float,
    num_simulations: int,
    rng: np.random.Generator,
    sampler: TerminalSampler = TerminalSampler.GAMMA,
    max_expected_arrivals: float = MAX_EXPECTED_ARRIVALS,
    chunk_jumps: int = DEFAULT_SUM_CHUNK,
) -> np.ndarray:
    """Draw ``num_simulations`` i.i.d. samples of S(t_max).

    Args:
        lam: Poisson arrival rate λ.
        mu: Rate μ of the exponential jump sizes.
        t_max: Time horizon.
        num_simulations: Number of independent repetitions.
        rng: NumPy random generator supplying every draw.
        sampler: GAMMA (one gamma draw per repetition) or SUM (explicit
            sum of exponential jumps).
        max_expected_arrivals: Largest accepted λ·t_max.
        chunk_jumps: Upper bound on exponential draws held in memory at once
            by the SUM sampler.

    Returns:
        Float array of length ``num_simulations``, all values >= 0.
    """
    lam = check_positive("lam", lam)
    mu = check_positive("mu", mu)
    t_max = check_positive("t_max", t_max)
    check_expected_arrivals(lam, t_max, max_expected_arrivals)
    num_simulations = check_count("num_simulations", num_simulations)
    chunk_jumps = check_count("chunk_jumps", chunk_jumps)
    sampler = TerminalSampler(sampler)

    counts = rng.poisson(lam * t_max, num_simulations)
    values = np.zeros(num_simulations)

    if sampler == TerminalSampler.GAMMA:
        mask = counts > 0
        if mask.any():
            values[mask] = rng.gamma(shape=counts[mask], scale=1.0 / mu)
    else:
        _sum_jumps_chunked(counts, mu, rng, chunk_jumps, out=values)

    logger.debug(
        "Terminal: %d draws (sampler=%s, mean count=%.2f)",
        num_simulations, sampler.value, float(counts.mean()),
    )
    return values


def summarize_terminal(
    values: np.ndarray, lam: float, mu: float, t_max: float
) -> TerminalStats:
    """Empirical statistics of a terminal sample next to the closed forms."""
    values = np.asarray(values, dtype=float)
    theo_mean = expected_value(lam, t_max, mu)
    emp_mean = float(np.mean(values))
    p5, p25, p50, p75, p95 = (float(v) for v in np.percentile(values, [5, 25, 50, 75, 95]))

    return TerminalStats(
        num_simulations=int(values.size),
        mean=emp_mean,
        variance=float(np.var(values, ddof=1)) if values.size > 1 else 0.0,
        std=float(np.std(values, ddof=1)) if values.size > 1 else 0.0,
        p5=p5,
        p25=p25,
        p50=p50,
        p75=p75,
        p95=p95,
        zero_fraction=round(float(np.mean(values == 0.0)), 6),
        theoretical_mean=theo_mean,
        theoretical_variance=variance(lam, t_max, mu),
        theoretical_zero_prob=zero_probability(lam, t_max),
        mean_rel_error=round(abs(emp_mean - theo_mean) / theo_mean, 6),
    )


def _sum_jumps_chunked(
    counts: np.ndarray,
    mu: float,
    rng: np.random.Generator,
    chunk_jumps: int,
    out: np.ndarray,
) -> None:
    """Fill ``out[i]`` with the sum of ``counts[i]`` exponential jumps.

    Repetitions are grouped so that each group draws at most ``chunk_jumps``
    jumps; a single repetition larger than that forms its own group.
    """
    n = len(counts)
    cumulative = np.cumsum(counts)
    start = 0
    while start < n:
        drawn_before = int(cumulative[start - 1]) if start else 0
        end = int(np.searchsorted(cumulative, drawn_before + chunk_jumps, side="right"))
        end = max(end, start + 1)
        group = counts[start:end]
        total = int(group.sum())
        if total > 0:
            jumps = rng.exponential(1.0 / mu, total)
            owner = np.repeat(np.arange(end - start), group)
            out[start:end] = np.bincount(owner, weights=jumps, minlength=end - start)
        start = end
