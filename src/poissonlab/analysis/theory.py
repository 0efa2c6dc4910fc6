"""Closed-form moments and distribution of S(T) for exponential jumps.

With N(T) ~ Poisson(λT) and X ~ Exponential(μ):
  E[S(T)]   = λT · E[X]   = λT/μ
  Var[S(T)] = λT · E[X²]  = 2λT/μ²
  P(S(T)=0) = e^{-λT}
"""

import math

import numpy as np
from scipy.special import ive

from poissonlab.analysis.sim_models import InvalidParameterError, check_positive


def expected_value(lam: float, t_max: float, mu: float) -> float:
    lam = check_positive("lam", lam)
    t_max = check_positive("t_max", t_max)
    mu = check_positive("mu", mu)
    return _finite("expected value", lam * t_max / mu)


def variance(lam: float, t_max: float, mu: float) -> float:
    lam = check_positive("lam", lam)
    t_max = check_positive("t_max", t_max)
    mu = check_positive("mu", mu)
    return _finite("variance", 2 * lam * t_max / mu / mu)


def zero_probability(lam: float, t_max: float) -> float:
    """Probability that no arrival occurs on [0, t_max]."""
    lam = check_positive("lam", lam)
    t_max = check_positive("t_max", t_max)
    return float(np.exp(-lam * t_max))


def terminal_density(x, lam: float, mu: float, t_max: float) -> np.ndarray:
    """Density of the absolutely continuous part of S(T).

    f(x) = e^{-λT-μx} · sqrt(λTμ/x) · I_1(2·sqrt(λTμx)),  x > 0

    It integrates to 1 - e^{-λT}; the remaining mass is the atom at zero.
    The exponentially scaled Bessel function keeps large arguments finite.
    """
    lam = check_positive("lam", lam)
    mu = check_positive("mu", mu)
    t_max = check_positive("t_max", t_max)

    x = np.atleast_1d(np.asarray(x, dtype=float))
    out = np.zeros_like(x)
    pos = x > 0
    if pos.any():
        xp = x[pos]
        rate = lam * t_max
        z = 2.0 * np.sqrt(rate * mu * xp)
        out[pos] = np.exp(z - rate - mu * xp) * np.sqrt(rate * mu / xp) * ive(1, z)
    return out


def _finite(name: str, value: float) -> float:
    if not math.isfinite(value):
        raise InvalidParameterError(f"{name} overflows for these parameters")
    return value
