from __future__ import annotations

import numpy as np
import pytest

import rdnad.config as config

# Scan steps run in-process unless a test opts into a pool
config.set_max_processes(None)


@pytest.fixture(scope="session")
def RNG():
    return np.random.default_rng(0)
