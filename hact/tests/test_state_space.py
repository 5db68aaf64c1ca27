"""Tests for the discretized state space."""

import numpy as np
import pytest

from hact.config import AssetGridConfig, IncomeProcessConfig, InvalidModelError
from hact.state_space import StateSpace


class TestStateSpaceLayout:
    """Test shapes and the state enumeration."""

    def test_one_asset_shape(self, two_state_income):
        """Income is the leading axis, assets follow."""
        space = StateSpace([AssetGridConfig(num_points=5)], two_state_income)

        assert space.ndim == 1
        assert space.names == ["a"]
        assert space.shape == (2, 5)
        assert space.size == 10
        assert space.axis(0) == 1

    def test_two_asset_shape(self, two_state_income):
        """Two assets are laid out in declaration order."""
        space = StateSpace(
            [
                AssetGridConfig(name="b", min_value=0.0, max_value=1.0, num_points=3),
                AssetGridConfig(name="a", min_value=0.0, max_value=2.0, num_points=4),
            ],
            two_state_income,
        )

        assert space.shape == (2, 3, 4)
        assert space.size == 24
        # last asset varies fastest
        assert np.allclose(space.mesh(1)[0, 0], [0.0, 2 / 3, 4 / 3, 2.0])
        assert np.allclose(space.mesh(0)[0, :, 0], [0.0, 0.5, 1.0])

    def test_index_bijection(self, two_state_income):
        """linear_index and multi_index are inverse to each other."""
        space = StateSpace(
            [
                AssetGridConfig(name="b", num_points=3),
                AssetGridConfig(name="a", min_value=0.0, num_points=4),
            ],
            two_state_income,
        )

        for position in range(space.size):
            assert space.linear_index(space.multi_index(position)) == position
        # income varies slowest
        assert space.linear_index((1, 0, 0)) == 12
        assert space.multi_index(5) == (0, 1, 1)

    def test_income_mesh(self, two_state_income):
        """Income levels broadcast over the asset grid."""
        space = StateSpace([AssetGridConfig(num_points=4)], two_state_income)

        assert np.allclose(space.income_mesh[0], 0.1)
        assert np.allclose(space.income_mesh[1], 0.2)

    def test_boundary_masks(self, two_state_income):
        """Boundary masks select the first and last node of each income state."""
        space = StateSpace([AssetGridConfig(num_points=4)], two_state_income)

        lower = space.lower_boundary(0)
        upper = space.upper_boundary(0)
        assert lower.sum() == 2
        assert upper.sum() == 2
        assert lower[:, 0].all()
        assert upper[:, -1].all()

    def test_coordinates(self, two_state_income):
        """Coordinates follow the linear-index order."""
        space = StateSpace([AssetGridConfig(num_points=3)], two_state_income)
        coords = space.coordinates()

        assert list(coords) == ["income_state", "income", "a"]
        assert np.array_equal(coords["income_state"], [0, 0, 0, 1, 1, 1])
        assert np.allclose(coords["income"], [0.1, 0.1, 0.1, 0.2, 0.2, 0.2])
        assert np.allclose(coords["a"], np.tile(space.grids[0], 2))


class TestWidthsAndMeasure:
    """Test cell widths and integration weights."""

    def test_uniform_grid(self, two_state_income):
        """A uniform grid has constant widths and measure."""
        space = StateSpace(
            [AssetGridConfig(min_value=0.0, max_value=1.0, num_points=11)], two_state_income
        )

        assert np.allclose(space.forward_widths[0], 0.1)
        assert np.allclose(space.backward_widths[0], 0.1)
        assert np.allclose(space.measure, 0.1)
        assert space.measure.shape == space.shape

    def test_non_uniform_grid(self, two_state_income):
        """Boundary nodes reuse the adjacent interval."""
        grid = AssetGridConfig(points=[0.0, 0.1, 0.3, 0.6])
        space = StateSpace([grid], two_state_income)

        assert np.allclose(space.forward_widths[0], [0.1, 0.2, 0.3, 0.3])
        assert np.allclose(space.backward_widths[0], [0.1, 0.1, 0.2, 0.3])
        assert np.allclose(space.measure[0], [0.1, 0.15, 0.25, 0.3])
        assert np.allclose(space.measure[1], space.measure[0])

    def test_two_dimensional_measure(self, two_state_income):
        """The measure is the product of the per-dimension weights."""
        space = StateSpace(
            [
                AssetGridConfig(name="b", min_value=0.0, max_value=1.0, num_points=3),
                AssetGridConfig(name="a", min_value=0.0, max_value=3.0, num_points=4),
            ],
            two_state_income,
        )

        assert np.allclose(space.measure, 0.5 * 1.0)

    def test_width_broadcast(self, two_state_income):
        """Per-state widths broadcast to the full shape."""
        space = StateSpace([AssetGridConfig(points=[0.0, 0.1, 0.3])], two_state_income)

        assert space.forward_width(0).shape == (2, 3)
        assert np.allclose(space.backward_width(0)[1], [0.1, 0.1, 0.2])


class TestSwitchingMatrix:
    """Test the income switching block."""

    def test_rows_sum_to_zero(self, two_state_income):
        """Every row of the switching block sums to zero."""
        space = StateSpace([AssetGridConfig(num_points=7)], two_state_income)
        switching = space.switching_matrix()

        assert switching.shape == (14, 14)
        assert np.allclose(np.asarray(switching.sum(axis=1)).ravel(), 0.0, atol=1e-15)

    def test_rates_connect_same_assets(self, two_state_income):
        """Switching moves between income states at fixed asset coordinates."""
        space = StateSpace([AssetGridConfig(num_points=3)], two_state_income)
        switching = space.switching_matrix().toarray()

        assert switching[space.linear_index((0, 1)), space.linear_index((1, 1))] == pytest.approx(
            0.02
        )
        assert switching[space.linear_index((1, 2)), space.linear_index((0, 2))] == pytest.approx(
            0.03
        )
        assert switching[space.linear_index((0, 0)), space.linear_index((1, 1))] == 0.0
        assert switching[0, 0] == pytest.approx(-0.02)

    def test_three_state_process(self):
        """Diagonal entries are the negative row sums of the off-diagonal rates."""
        income = IncomeProcessConfig(
            levels=[0.1, 0.15, 0.2],
            generator=[[-0.06, 0.04, 0.02], [0.02, -0.04, 0.02], [0.02, 0.04, -0.06]],
        )
        space = StateSpace([AssetGridConfig(num_points=2)], income)
        diagonal = space.switching_matrix().diagonal()

        assert np.allclose(diagonal, [-0.06, -0.06, -0.04, -0.04, -0.06, -0.06])


class TestInterpolation:
    """Test off-grid evaluation."""

    def test_linear_function_is_exact(self, two_state_income):
        """Linear interpolation reproduces a linear function."""
        space = StateSpace(
            [AssetGridConfig(min_value=0.0, max_value=1.0, num_points=11)], two_state_income
        )
        values = 2.0 * space.mesh(0) + space.income_mesh

        result = space.interpolate(values, np.array([0.05, 0.55]), income_index=1)

        assert np.allclose(result, [2 * 0.05 + 0.2, 2 * 0.55 + 0.2])

    def test_two_dimensional(self, two_state_income):
        """Points are given as rows of asset coordinates."""
        space = StateSpace(
            [
                AssetGridConfig(name="b", min_value=0.0, max_value=1.0, num_points=5),
                AssetGridConfig(name="a", min_value=0.0, max_value=2.0, num_points=5),
            ],
            two_state_income,
        )
        values = space.mesh(0) + 3.0 * space.mesh(1)

        result = space.interpolate(values.ravel(), np.array([[0.3, 1.1]]), income_index=0)

        assert np.allclose(result, [0.3 + 3.3])

    def test_wrong_point_dimension(self, two_state_income):
        """Points with the wrong number of columns are rejected."""
        space = StateSpace([AssetGridConfig(num_points=5)], two_state_income)

        with pytest.raises(ValueError, match="Expected points with 1 columns"):
            space.interpolate(np.zeros(space.shape), np.zeros((2, 2)), income_index=0)


class TestStateSpaceValidation:
    """Test rejected state spaces."""

    def test_no_assets(self, two_state_income):
        """At least one asset dimension is required."""
        with pytest.raises(InvalidModelError, match="at least one asset"):
            StateSpace([], two_state_income)

    def test_duplicate_names(self, two_state_income):
        """Asset names must be unique."""
        with pytest.raises(InvalidModelError, match="unique"):
            StateSpace([AssetGridConfig(), AssetGridConfig()], two_state_income)
