"""Compound Poisson simulation models package.

Provides the two stochastic routines behind the explorer:
- PATH: one realized step path of S(t) on [0, T]
- TERMINAL: Monte Carlo draws of the terminal value S(T)
"""

import math
from enum import Enum
from typing import TypedDict

import numpy as np


class ArrivalMethod(str, Enum):
    SEQUENTIAL = "sequential"
    ORDER_STATISTICS = "order_statistics"
    BATCH = "batch"


class TerminalSampler(str, Enum):
    GAMMA = "gamma"
    SUM = "sum"


# Upper bound on λ·T; keeps every array draw within memory
MAX_EXPECTED_ARRIVALS = 1_000_000


class InvalidParameterError(ValueError):
    """Raised when a process parameter is outside its valid domain."""


class SamplePath(TypedDict):
    """One realization of S(t) as a renderable step function."""
    times: np.ndarray  # length 2 * num_arrivals + 2
    values: np.ndarray  # same length as times, non-decreasing
    arrival_times: np.ndarray
    jump_sizes: np.ndarray
    num_arrivals: int
    method: str
    truncated: bool


class TerminalStats(TypedDict):
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


def check_positive(name: str, value: float) -> float:
    """Return ``value`` as float, raising if it is not a finite positive number."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(value) or value <= 0:
        raise InvalidParameterError(f"{name} must be a finite number > 0, got {value}")
    return value


def check_count(name: str, value: int, upper: int | None = None) -> int:
    try:
        integral = not isinstance(value, bool) and int(value) == value
    except (TypeError, ValueError, OverflowError):
        integral = False
    if not integral:
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}")
    value = int(value)
    if value < 1:
        raise InvalidParameterError(f"{name} must be >= 1, got {value}")
    if upper is not None and value > upper:
        raise InvalidParameterError(f"{name} must be <= {upper}, got {value}")
    return value


def check_expected_arrivals(lam: float, t_max: float, upper: float) -> float:
    """Return λ·T, raising if it exceeds ``upper`` or overflows."""
    expected = lam * t_max
    if not math.isfinite(expected) or expected > upper:
        raise InvalidParameterError(
            f"lam * t_max must be <= {upper:g} expected arrivals, got {expected:g}"
        )
    return expected


__all__ = [
    "ArrivalMethod",
    "TerminalSampler",
    "InvalidParameterError",
    "SamplePath",
    "TerminalStats",
    "check_positive",
    "check_count",
    "check_expected_arrivals",
    "MAX_EXPECTED_ARRIVALS",
]
