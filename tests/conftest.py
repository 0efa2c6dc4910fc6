"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from poissonlab.config import Settings


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def app_settings(tmp_path):
    """Settings with a fixed seed and a small sample size for fast tests."""
    return Settings(
        _env_file=None,
        default_num_simulations=2000,
        max_simulations=50_000,
        seed=2024,
        log_dir=str(tmp_path / "logs"),
    )
