"""Discretized state space of the household problem.

A state is a tuple ``(income_state, asset_1, ..., asset_k)``. Per-state
arrays have shape ``(n_income, n_1, ..., n_k)`` and are flattened in C order,
so the income index varies slowest and the last asset index fastest. The
same enumeration is used by the switching block, the drift block of the
generator and every vector handed to a linear solver.
"""

from dataclasses import dataclass
import logging
from typing import Dict, List, Sequence, Tuple, Union

import numpy as np
from scipy import interpolate, sparse

from .config.exceptions import InvalidModelError
from .config.grids import AssetGridConfig, IncomeProcessConfig

logger = logging.getLogger(__name__)


@dataclass
class StateSpace:
    """Product of asset grids and a finite income process.

    Attributes:
        asset_grids: Grid configuration of each asset dimension.
        income: Income levels and switching generator.
    """

    asset_grids: List[AssetGridConfig]
    income: IncomeProcessConfig

    def __post_init__(self):
        """Build grids, widths and measures."""
        if not self.asset_grids:
            raise InvalidModelError(["State space needs at least one asset dimension"])
        names = [grid.name for grid in self.asset_grids]
        if len(set(names)) != len(names):
            raise InvalidModelError([f"Asset names must be unique, got {names}"])

        self.ndim = len(self.asset_grids)
        self.names = names
        self.num_income = self.income.num_states
        self.asset_shape = tuple(grid.num_points for grid in self.asset_grids)
        self.shape = (self.num_income,) + self.asset_shape
        self.size = int(np.prod(self.shape))

        self.grids = [grid.nodes() for grid in self.asset_grids]
        self.forward_widths = []
        self.backward_widths = []
        for nodes in self.grids:
            steps = np.diff(nodes)
            # boundary nodes reuse the adjacent interval
            self.forward_widths.append(np.append(steps, steps[-1]))
            self.backward_widths.append(np.insert(steps, 0, steps[0]))

        self.income_levels = self.income.levels_array
        self.income_mesh = np.broadcast_to(
            self.income_levels.reshape((-1,) + (1,) * self.ndim), self.shape
        ).copy()

        measure = np.ones(self.shape)
        for dim in range(self.ndim):
            node_measure = 0.5 * (self.forward_widths[dim] + self.backward_widths[dim])
            measure = measure * self.along(node_measure, dim)
        self.measure = measure

        logger.info(
            f"Initialized state space {dict(zip(names, self.asset_shape))} x "
            f"{self.num_income} income states ({self.size} states)"
        )

    def along(self, values: np.ndarray, dim: int) -> np.ndarray:
        """Reshape a 1D array over asset ``dim`` so it broadcasts against ``shape``."""
        new_shape = [1] * (self.ndim + 1)
        new_shape[dim + 1] = -1
        return values.reshape(new_shape)

    def axis(self, dim: int) -> int:
        """Array axis of asset dimension ``dim`` (axis 0 is income)."""
        return dim + 1

    def mesh(self, dim: int) -> np.ndarray:
        """Coordinate of asset ``dim`` at every state, shaped like ``shape``."""
        return np.broadcast_to(self.along(self.grids[dim], dim), self.shape).copy()

    def forward_width(self, dim: int) -> np.ndarray:
        """Forward cell width of asset ``dim`` at every state."""
        return np.broadcast_to(self.along(self.forward_widths[dim], dim), self.shape)

    def backward_width(self, dim: int) -> np.ndarray:
        """Backward cell width of asset ``dim`` at every state."""
        return np.broadcast_to(self.along(self.backward_widths[dim], dim), self.shape)

    def lower_boundary(self, dim: int) -> np.ndarray:
        """Boolean mask of states at the lower bound of asset ``dim``."""
        mask = np.zeros(self.shape, dtype=bool)
        index: List[Union[slice, int]] = [slice(None)] * (self.ndim + 1)
        index[self.axis(dim)] = 0
        mask[tuple(index)] = True
        return mask

    def upper_boundary(self, dim: int) -> np.ndarray:
        """Boolean mask of states at the upper bound of asset ``dim``."""
        mask = np.zeros(self.shape, dtype=bool)
        index: List[Union[slice, int]] = [slice(None)] * (self.ndim + 1)
        index[self.axis(dim)] = -1
        mask[tuple(index)] = True
        return mask

    def linear_index(self, multi_index: Sequence[int]) -> int:
        """Map ``(i_income, i_1, ..., i_k)`` to its position in flattened arrays."""
        return int(np.ravel_multi_index(tuple(multi_index), self.shape))

    def multi_index(self, linear_index: int) -> Tuple[int, ...]:
        """Inverse of :meth:`linear_index`."""
        return tuple(int(i) for i in np.unravel_index(linear_index, self.shape))

    def switching_matrix(self) -> sparse.csr_matrix:
        """Generator block of exogenous income switching.

        A state moves to income ``j`` at the same asset coordinates with rate
        ``Lambda[i, j]``; the diagonal makes each row sum to exactly zero.

        Returns:
            Sparse (N, N) matrix.
        """
        lam = self.income.generator_array
        off_diagonal = lam - np.diag(np.diag(lam))
        identity = sparse.identity(int(np.prod(self.asset_shape)), format="csr")
        switching = sparse.kron(sparse.csr_matrix(off_diagonal), identity, format="csr")
        row_sums = np.asarray(switching.sum(axis=1)).ravel()
        return (switching - sparse.diags(row_sums)).tocsr()

    def coordinates(self) -> Dict[str, np.ndarray]:
        """Flattened coordinates of every state, in linear-index order."""
        columns: Dict[str, np.ndarray] = {
            "income_state": np.repeat(np.arange(self.num_income), self.size // self.num_income),
            "income": self.income_mesh.ravel(),
        }
        for dim, name in enumerate(self.names):
            columns[name] = self.mesh(dim).ravel()
        return columns

    def interpolate(
        self, values: np.ndarray, points: np.ndarray, income_index: int
    ) -> np.ndarray:
        """Linearly interpolate a per-state array at off-grid asset coordinates.

        Points outside the grid are extrapolated linearly.

        Args:
            values: Per-state array, shaped like ``shape`` or flattened.
            points: Asset coordinates, shape ``(n_points, ndim)``.
            income_index: Income state to read from.

        Returns:
            Interpolated values, shape ``(n_points,)``.
        """
        values = np.asarray(values).reshape(self.shape)[income_index]
        points = np.asarray(points, dtype=float)
        if points.ndim == 1:
            points = points.reshape(-1, 1) if self.ndim == 1 else points.reshape(1, -1)
        if points.shape[1] != self.ndim:
            raise ValueError(f"Expected points with {self.ndim} columns, got {points.shape[1]}")
        interp = interpolate.RegularGridInterpolator(
            self.grids, values, method="linear", bounds_error=False, fill_value=None
        )
        return np.array(interp(points))
