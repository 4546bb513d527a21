"""Shared test fixtures for the culture simulator."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from culture.model import CultureParameters


@pytest.fixture
def params():
    """Default parameters: mu_max=1, V_max=2, K_m=1, Q_min=0.1, R_s=2, d=0.5."""
    return CultureParameters()


@pytest.fixture
def closed_params():
    """Closed-system parameter set with R_s = 1."""
    return CultureParameters(mu_max=1.0, V_max=2.0, K_m=1.0, Q_min=0.1, R_s=1.0, d=0.0)


@pytest.fixture
def x0():
    return np.array([1.0, 1.0, 1.0])


@pytest.fixture
def tmp_output_dir(tmp_path):
    """Temporary directory for test outputs."""
    out = tmp_path / "output"
    out.mkdir()
    return out
