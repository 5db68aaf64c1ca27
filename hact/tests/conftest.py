"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest
from scipy import sparse

from hact.config import AssetGridConfig, HuggettConfig, IncomeProcessConfig, TwoAssetConfig
from hact.huggett import HuggettModel
from hact.pipeline import solve


@pytest.fixture
def two_state_income():
    """Income process of the two-state Huggett economy."""
    return IncomeProcessConfig.two_state(levels=[0.1, 0.2], intensities=[0.02, 0.03])


@pytest.fixture
def small_huggett_config(two_state_income):
    """Huggett economy on a coarse 100-point grid."""
    return HuggettConfig(
        income=two_state_income,
        asset_grid=AssetGridConfig(min_value=-0.1, max_value=1.5, num_points=100),
    )


@pytest.fixture
def small_huggett_model(small_huggett_config):
    """Huggett model on a coarse grid."""
    return HuggettModel(small_huggett_config)


@pytest.fixture
def small_two_asset_config():
    """Two-asset economy on a coarse grid."""
    return TwoAssetConfig(
        liquid_grid=AssetGridConfig(name="b", min_value=-2.0, max_value=40.0, num_points=40),
        illiquid_grid=AssetGridConfig(name="a", min_value=0.0, max_value=70.0, num_points=20),
    )


@pytest.fixture(scope="session")
def huggett_solution():
    """Stationary solution of the default two-state Huggett economy (500 points, r = 3%)."""
    return solve(HuggettModel(HuggettConfig()))


@pytest.fixture
def three_state_generator():
    """Irreducible 3-state generator with stationary mass (2/7, 4/7, 1/7)."""
    return sparse.csr_matrix(
        np.array(
            [
                [-1.0, 1.0, 0.0],
                [0.5, -1.0, 0.5],
                [0.0, 2.0, -2.0],
            ]
        )
    )


@pytest.fixture
def birth_death_generator():
    """Birth-death chain on 300 states, up rate 1 and down rate 2."""
    n = 300
    up = np.ones(n - 1)
    down = 2.0 * np.ones(n - 1)
    generator = sparse.diags([up, down], [1, -1], shape=(n, n), format="lil")
    generator.setdiag(-np.asarray(generator.sum(axis=1)).ravel())
    return generator.tocsr()
