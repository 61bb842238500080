"""Pytest configuration and shared fixtures for the stopping tests.

This module provides:
- Deterministic RNG fixtures for numpy and torch
- Small quadratic test problems
"""

import os

import numpy as np
import pytest
import torch

from stopping import NLPProblem


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).
    """
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    return np.random.default_rng(seed)


@pytest.fixture(scope="function", autouse=True)
def set_random_seeds() -> None:
    """Auto-use fixture to set global random seeds for reproducibility."""
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    np.random.seed(seed)
    torch.manual_seed(seed)


def make_quadratic(diag, b=None, x0=None) -> NLPProblem:
    """``f(x) = 0.5 x' A x - b' x`` with ``A = diag(diag)``."""
    A = np.diag(np.asarray(diag, dtype=float))
    n = A.shape[0]
    b = np.ones(n) if b is None else np.asarray(b, dtype=float)
    return NLPProblem(
        lambda x: float(0.5 * x @ A @ x - b @ x),
        grad=lambda x: A @ x - b,
        hess=lambda x: A.copy(),
        x0=np.zeros(n) if x0 is None else x0,
    )


@pytest.fixture
def quadratic() -> NLPProblem:
    """Two-dimensional quadratic with minimizer ``(1, 0.04)``."""
    return make_quadratic([1.0, 25.0])


@pytest.fixture
def ill_conditioned() -> NLPProblem:
    """Ten-dimensional quadratic with eigenvalues spread over ``[1, 100]``."""
    return make_quadratic(np.linspace(1.0, 100.0, 10), b=np.zeros(10), x0=np.ones(10))


@pytest.fixture
def make_problem():
    """Factory building diagonal quadratics, see :func:`make_quadratic`."""
    return make_quadratic
