from __future__ import annotations

import numpy as np
import pytest

# 1D training points normalizing to [0, 0.25, 0.5, 1.0]
LINE_TRAINING = np.array([[0.0], [1.0], [2.0], [4.0]])


@pytest.fixture
def line_training():
    return LINE_TRAINING.copy()


@pytest.fixture
def reliable():
    """Agreement of 1 and dispersion of 0 for the line training set."""
    return np.ones(len(LINE_TRAINING)), np.zeros(len(LINE_TRAINING))


@pytest.fixture
def synthetic(RNG):
    """Ten training points and twenty query points in two features with maximal reliability."""
    training = RNG.uniform(0, 10, size=(10, 2))
    query = RNG.uniform(-2, 12, size=(20, 2))
    return {
        "training": training,
        "query": query,
        "correctness": np.ones(len(query)),
        "agreement": np.ones(len(training)),
        "dispersion": np.zeros(len(training)),
    }


@pytest.fixture
def chemical_space(RNG):
    """Two clusters of training instances with noisy reliability signals and mixed correctness."""
    training = np.concatenate([RNG.normal(0, 1, size=(45, 4)), RNG.normal(5, 1, size=(35, 4))])
    query = np.concatenate([RNG.normal(0, 1.5, size=(30, 4)), RNG.normal(10, 1, size=(10, 4))])
    return {
        "training": training,
        "query": query,
        "correctness": RNG.integers(0, 2, size=len(query)).astype(float),
        "agreement": RNG.choice([0.0, 0.5, 0.8, 1.0], size=len(training)),
        "dispersion": RNG.uniform(0, 0.3, size=len(training)),
    }
