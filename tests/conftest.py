"""Shared fixtures for the alcoholism model test-suite."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from alcoholism import AlcoholismParameters
from utils.model_constants import ModelConstants


@pytest.fixture
def params() -> AlcoholismParameters:
    """Baseline parameter set."""
    return AlcoholismParameters()


@pytest.fixture
def y0() -> list:
    """DFE with one heavy drinker seeded."""
    return ModelConstants.baseline_initial_conditions()


@pytest.fixture
def short_span() -> tuple:
    """Short horizon that still covers the initial D transient."""
    return (0.0, 5.0)


@pytest.fixture
def decay_rhs():
    """Linear test system dy/dt = -k y with k = [1, 2]."""
    k = np.array([1.0, 2.0])

    def rhs(t, y):
        return -k * y

    return rhs
