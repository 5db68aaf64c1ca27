"""End-to-end tests of the Huggett economy."""

import itertools

import numpy as np
import pytest

from hact.config import AssetGridConfig, HuggettConfig, InvalidModelError, load_preset
from hact.config.solver import StationaryConfig, StationaryMethod
from hact.generator import generator_issues
from hact.huggett import HuggettModel
from hact.pipeline import build_model, run, solve
from hact.stationary import solve_stationary


class TestHuggettModel:
    """Test the model primitives."""

    def test_cash_on_hand(self, small_huggett_model):
        """Cash on hand is w z + r a."""
        space = small_huggett_model.state_space
        expected = space.income_mesh + 0.03 * space.mesh(0)

        assert np.allclose(small_huggett_model.cash_on_hand, expected)

    def test_price_overrides(self, small_huggett_config):
        """Prices passed to the constructor override the configuration."""
        model = HuggettModel(small_huggett_config, interest_rate=0.02, wage=1.5)

        assert model.interest_rate == 0.02
        assert model.wage == 1.5
        assert model.config.interest_rate == 0.02
        assert small_huggett_config.interest_rate == 0.03

    def test_infeasible_price_override(self, small_huggett_config):
        """Overrides are validated like the configuration itself."""
        with pytest.raises(InvalidModelError, match="not feasible"):
            HuggettModel(small_huggett_config, interest_rate=2.0)

    def test_boundary_derivatives(self, small_huggett_model):
        """At either bound the household consumes its cash on hand."""
        lower, upper = small_huggett_model.boundary_derivatives(0)
        expected = small_huggett_model.cash_on_hand**-2

        assert np.allclose(lower, expected)
        assert np.allclose(upper, expected)

    def test_high_interest_rate_logged(self, small_huggett_config, caplog):
        """r >= rho is allowed but logged."""
        with caplog.at_level("WARNING", logger="hact.huggett"):
            HuggettModel(small_huggett_config, interest_rate=0.05)

        assert "assets accumulate" in caplog.text


class TestHuggettStationary:
    """Test the two-state economy on 500 points at r = 3%."""

    def test_hjb_converges(self, huggett_solution):
        """The HJB solve converges in fewer than 100 iterations."""
        assert huggett_solution.hjb.iterations < 100
        assert huggett_solution.hjb.distances[-1] < 1e-6

    def test_generator_is_valid(self, huggett_solution):
        """Off-diagonals are non-negative and rows sum to zero."""
        assert generator_issues(huggett_solution.generator) == []

    def test_mass_conservation(self, huggett_solution):
        """The density integrates to one and is non-negative."""
        space = huggett_solution.state_space

        assert np.sum(huggett_solution.density * space.measure) == pytest.approx(1.0, abs=1e-8)
        assert np.all(huggett_solution.density >= -1e-12)

    def test_methods_agree_on_aggregate_assets(self, huggett_solution):
        """All four methods give the same aggregate assets."""
        generator = huggett_solution.generator
        assets = huggett_solution.state_space.mesh(0).ravel()

        totals = [
            float(assets @ solve_stationary(generator, method=method))
            for method in StationaryMethod
        ]

        assert max(totals) - min(totals) < 1e-6

    def test_methods_agree_on_density(self, huggett_solution):
        """All four methods give densities within 1e-6 of each other."""
        generator = huggett_solution.generator
        measure = huggett_solution.state_space.measure.ravel()

        densities = {
            method: solve_stationary(generator, method=method) / measure
            for method in StationaryMethod
        }

        for first, second in itertools.combinations(StationaryMethod, 2):
            gap = np.max(np.abs(densities[first] - densities[second]))
            assert gap < 1e-6, f"{first.value} vs {second.value}: {gap:.3e}"

    def test_mass_at_borrowing_limit(self, huggett_solution):
        """Low-income households pile up at the borrowing constraint."""
        mass = huggett_solution.mass

        assert mass[0, 0] > mass[0, 1]
        assert mass[0, 0] > 0.01

    def test_saving_at_the_limit(self, huggett_solution):
        """High-income households save at the borrowing limit."""
        saving = huggett_solution.drifts["a"]

        assert saving[1, 0] > 0
        assert saving[0, 0] == 0.0

    def test_aggregate_assets_within_grid(self, huggett_solution):
        """Aggregate asset holdings lie inside the grid."""
        aggregate = huggett_solution.aggregate("a")

        assert -0.1 <= aggregate <= 1.5


class TestHuggettVariants:
    """Test other calibrations."""

    def test_non_uniform_grid(self, two_state_income):
        """A grid clustered at the borrowing limit solves as well."""
        config = HuggettConfig(
            income=two_state_income,
            asset_grid=AssetGridConfig(
                min_value=-0.1, max_value=1.5, num_points=200, curvature=2.0
            ),
        )

        solution = solve(HuggettModel(config))

        assert generator_issues(solution.generator) == []
        assert np.sum(solution.mass) == pytest.approx(1.0)
        assert np.sum(solution.density * solution.state_space.measure) == pytest.approx(1.0)

    @pytest.mark.parametrize("preset", ["huggett_three_state", "huggett_four_state"])
    def test_many_income_states(self, preset):
        """Three and four income states converge and conserve mass."""
        config = load_preset(preset, {"model": {"asset_grid": {"num_points": 200}}})

        solution = run(config)

        num_states = len(config.model.income.levels)
        assert solution.state_space.shape == (num_states, 200)
        assert solution.hjb.iterations < 100
        assert np.sum(solution.mass) == pytest.approx(1.0)
        assert generator_issues(solution.generator) == []

    def test_log_utility(self, small_huggett_config):
        """sigma = 1 uses log utility."""
        model = build_model(small_huggett_config, risk_aversion=1.0)

        solution = solve(model, stationary_config=StationaryConfig(method="death"))

        assert np.allclose(solution.hjb.reward, np.log(solution.consumption))
        assert np.sum(solution.mass) == pytest.approx(1.0)
