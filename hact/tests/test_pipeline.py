"""Tests for the end-to-end pipeline and StationarySolution."""

import numpy as np
import pandas as pd
import pytest

import hact
from hact.config import Config, HJBSolverConfig, InvalidModelError, TwoAssetConfig, load_preset
from hact.exceptions import ConvergenceError
from hact.huggett import HuggettModel
from hact.pipeline import StationarySolution, build_model, run, solve
from hact.two_asset import TwoAssetModel


@pytest.fixture
def solution(small_huggett_model):
    """Stationary solution on the coarse grid."""
    return solve(small_huggett_model)


class TestBuildModel:
    """Test model construction from configuration."""

    def test_from_full_config(self):
        """A full Config dispatches on its model section."""
        model = build_model(Config(model={"model_type": "two_asset"}))

        assert isinstance(model, TwoAssetModel)

    def test_from_model_config(self, small_huggett_config):
        """A bare model configuration is accepted."""
        model = build_model(small_huggett_config)

        assert isinstance(model, HuggettModel)
        assert model.state_space.shape == (2, 100)

    def test_price_overrides(self, small_huggett_config):
        """Prices are re-validated together with the configuration."""
        model = build_model(small_huggett_config, interest_rate=0.02)

        assert model.interest_rate == 0.02
        assert model.config.asset_grid.model_dump() == small_huggett_config.asset_grid.model_dump()

    def test_infeasible_prices(self, small_huggett_config):
        """Prices that violate the borrowing limit are rejected."""
        with pytest.raises(InvalidModelError):
            build_model(small_huggett_config, interest_rate=2.0)

    def test_misspelled_price(self, small_huggett_config):
        """Overrides naming no configuration field are rejected."""
        with pytest.raises(InvalidModelError, match="HuggettConfig has no field 'interst_rate'"):
            build_model(small_huggett_config, interst_rate=0.01)

    def test_price_of_other_model(self):
        """A Huggett price is not silently ignored by the two-asset model."""
        with pytest.raises(InvalidModelError, match="TwoAssetConfig has no field 'interest_rate'"):
            build_model(TwoAssetConfig(), interest_rate=0.5)

    def test_two_asset_price_override(self):
        """Known two-asset prices are applied."""
        model = build_model(TwoAssetConfig(), illiquid_return=0.04)

        assert model.config.illiquid_return == 0.04

    def test_unsupported_config(self):
        """Only known model configurations can be built."""
        with pytest.raises(TypeError, match="Unsupported model configuration"):
            build_model(object())


class TestStationarySolution:
    """Test the stationary solution container."""

    def test_type_and_shapes(self, solution):
        """Mass and density are shaped like the state space."""
        assert isinstance(solution, StationarySolution)
        assert solution.mass.shape == (2, 100)
        assert solution.density.shape == (2, 100)
        assert solution.value.shape == (2, 100)

    def test_density_is_mass_over_measure(self, solution):
        """g = mass / measure."""
        assert np.allclose(solution.density * solution.state_space.measure, solution.mass)
        assert solution.mass.sum() == pytest.approx(1.0)

    def test_aggregate_by_name(self, solution):
        """Aggregates of assets and controls by name."""
        space = solution.state_space

        assets = solution.aggregate("a")
        consumption = solution.aggregate("consumption")
        income = solution.aggregate("income")

        assert assets == pytest.approx(np.sum(space.mesh(0) * solution.mass))
        assert consumption > 0
        # in the stationary state aggregate saving is zero
        assert consumption == pytest.approx(income + 0.03 * assets, abs=1e-8)

    def test_aggregate_array_and_callable(self, solution):
        """Per-state arrays and callables are accepted."""
        assert solution.aggregate(np.ones(solution.state_space.size)) == pytest.approx(1.0)
        assert solution.aggregate(lambda s: s.value) == pytest.approx(
            np.sum(solution.value * solution.mass)
        )

    def test_aggregate_unknown_name(self, solution):
        """Unknown names raise KeyError."""
        with pytest.raises(KeyError, match="Unknown quantity 'wealth'"):
            solution.aggregate("wealth")

    def test_marginal(self, solution):
        """The marginal density integrates to one over the asset grid."""
        space = solution.state_space
        weights = 0.5 * (space.forward_widths[0] + space.backward_widths[0])

        marginal = solution.marginal(0)

        assert marginal.shape == (100,)
        assert np.sum(marginal * weights) == pytest.approx(1.0)

    def test_to_frame(self, solution):
        """One row per state with coordinates, policies and density."""
        frame = solution.to_frame()

        assert isinstance(frame, pd.DataFrame)
        assert len(frame) == 200
        assert list(frame.columns) == [
            "income_state",
            "income",
            "a",
            "value",
            "consumption",
            "drift_a",
            "density",
            "mass",
        ]
        assert frame["mass"].sum() == pytest.approx(1.0)
        assert np.allclose(frame.groupby("income_state")["income"].first(), [0.1, 0.2])


class TestSolveAndRun:
    """Test the top-level entry points."""

    def test_run_preset(self):
        """run() solves a preset with its own solver settings."""
        config = load_preset("huggett", {"model": {"asset_grid": {"num_points": 150}}})

        solution = run(config)

        assert solution.state_space.shape == (2, 150)
        assert solution.hjb.iterations < config.solver.max_iterations

    def test_warm_start(self, small_huggett_model, solution):
        """A converged value function is a good warm start."""
        warm = solve(small_huggett_model, v0=solution.value)

        assert warm.hjb.iterations <= 2
        assert np.allclose(warm.value, solution.value, atol=1e-6)

    def test_convergence_failure_propagates(self, small_huggett_model):
        """HJB convergence failures reach the caller."""
        with pytest.raises(ConvergenceError):
            solve(small_huggett_model, HJBSolverConfig(max_iterations=2))

    def test_equilibrium_residual_monotone(self, small_huggett_config):
        """Aggregate assets increase with the interest rate."""
        low = solve(build_model(small_huggett_config, interest_rate=0.02)).aggregate("a")
        high = solve(build_model(small_huggett_config, interest_rate=0.04)).aggregate("a")

        assert high > low


class TestPackageExports:
    """Test lazy top-level exports."""

    def test_lazy_attributes(self):
        """Public names resolve from the package root."""
        assert hact.HuggettModel is HuggettModel
        assert hact.solve is solve
        assert hact.ConvergenceError is ConvergenceError
        assert isinstance(hact.__version__, str)

    def test_unknown_attribute(self):
        """Unknown names raise AttributeError."""
        with pytest.raises(AttributeError):
            hact.does_not_exist  # pylint: disable=pointless-statement
