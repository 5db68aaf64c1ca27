"""End-to-end stationary solve: HJB, then Kolmogorov-Forward.

An outer equilibrium loop calls :func:`solve` for different prices and reads
a scalar market-clearing residual off the result, e.g.::

    def excess_assets(r):
        model = build_model(config, interest_rate=r)
        return solve(model).aggregate("a")

    r_star = scipy.optimize.brentq(excess_assets, 0.01, 0.045)
"""

from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, Optional, Union

import numpy as np
import pandas as pd
from scipy import sparse

from .config.core import Config
from .config.exceptions import InvalidModelError
from .config.models import HuggettConfig, TwoAssetConfig
from .config.solver import HJBSolverConfig, StationaryConfig
from .hjb_solver import HJBSolution, HJBSolver
from .household import HouseholdModel
from .huggett import HuggettModel
from .state_space import StateSpace
from .stationary import solve_stationary
from .two_asset import TwoAssetModel

logger = logging.getLogger(__name__)


@dataclass
class StationarySolution:
    """Household policy together with its stationary distribution.

    Attributes:
        model: The solved household model.
        hjb: Converged HJB solution.
        mass: Probability mass per state (sums to one), shaped like the state space.
        density: Density per state, ``mass / measure``.
    """

    model: HouseholdModel
    hjb: HJBSolution
    mass: np.ndarray
    density: np.ndarray

    @property
    def state_space(self) -> StateSpace:
        """State space of the solution."""
        return self.hjb.state_space

    @property
    def value(self) -> np.ndarray:
        """Value function."""
        return self.hjb.value

    @property
    def consumption(self) -> np.ndarray:
        """Optimal consumption."""
        return self.hjb.consumption

    @property
    def controls(self) -> Dict[str, np.ndarray]:
        """All optimal controls."""
        return self.hjb.controls

    @property
    def drifts(self) -> Dict[str, np.ndarray]:
        """Net drift of every asset, keyed by asset name."""
        return self.hjb.drifts

    @property
    def generator(self) -> sparse.csr_matrix:
        """Generator of the optimal policy."""
        return self.hjb.generator

    def aggregate(self, quantity: Union[str, np.ndarray, Callable[..., np.ndarray]]) -> float:
        """Population aggregate ``sum(x * g * measure)`` of a per-state quantity.

        Args:
            quantity: An asset name (e.g. ``"a"``), a control name (e.g.
                ``"consumption"``), ``"income"``, a per-state array, or a
                callable receiving the solution and returning one.

        Returns:
            The aggregate under the stationary distribution.
        """
        if isinstance(quantity, str):
            values = self._lookup(quantity)
        elif callable(quantity):
            values = quantity(self)
        else:
            values = quantity
        return float(np.sum(np.asarray(values).reshape(self.mass.shape) * self.mass))

    def _lookup(self, name: str) -> np.ndarray:
        space = self.state_space
        if name in space.names:
            return space.mesh(space.names.index(name))
        if name == "income":
            return space.income_mesh
        if name in self.controls:
            return self.controls[name]
        raise KeyError(f"Unknown quantity '{name}'")

    def marginal(self, dim: int) -> np.ndarray:
        """Marginal density of asset ``dim`` (summed over income and other assets)."""
        space = self.state_space
        axis = space.axis(dim)
        other = tuple(i for i in range(self.mass.ndim) if i != axis)
        return self.mass.sum(axis=other) / (
            0.5 * (space.forward_widths[dim] + space.backward_widths[dim])
        )

    def to_frame(self) -> pd.DataFrame:
        """One row per state: coordinates, value, controls, drifts and density."""
        columns: Dict[str, Any] = dict(self.state_space.coordinates())
        columns["value"] = self.value.ravel()
        for name, values in self.controls.items():
            columns[name] = values.ravel()
        for name, values in self.drifts.items():
            columns[f"drift_{name}"] = values.ravel()
        columns["density"] = self.density.ravel()
        columns["mass"] = self.mass.ravel()
        return pd.DataFrame(columns)


def build_model(
    config: Union[Config, HuggettConfig, TwoAssetConfig], **prices: float
) -> HouseholdModel:
    """Instantiate the household model described by ``config``.

    Args:
        config: A model configuration or a full ``Config``.
        **prices: Overrides of price fields (e.g. ``interest_rate=0.025``);
            the configuration is re-validated with them.

    Returns:
        The household model.

    Raises:
        InvalidModelError: If an override names an unknown field or the
            re-validated configuration is infeasible.
    """
    if isinstance(config, Config):
        config = config.model
    if prices:
        unknown = sorted(set(prices) - set(type(config).model_fields))
        if unknown:
            raise InvalidModelError(
                [f"{type(config).__name__} has no field '{name}'" for name in unknown]
            )
        config = type(config).model_validate({**config.model_dump(), **prices})
    if isinstance(config, HuggettConfig):
        return HuggettModel(config)
    if isinstance(config, TwoAssetConfig):
        return TwoAssetModel(config)
    raise TypeError(f"Unsupported model configuration {type(config).__name__}")


def solve(
    model: HouseholdModel,
    solver_config: Optional[HJBSolverConfig] = None,
    stationary_config: Optional[StationaryConfig] = None,
    v0: Optional[np.ndarray] = None,
) -> StationarySolution:
    """Solve the HJB equation and the stationary distribution of ``model``.

    Args:
        model: Household model.
        solver_config: HJB solver settings.
        stationary_config: Stationary-distribution settings.
        v0: Optional warm start for the value function.

    Returns:
        The stationary solution.

    Raises:
        ConvergenceError: If the HJB solver (or power iteration) does not converge.
        SingularSystemError: If the pinned KF system is singular.
        NonFiniteResultError: If the power iteration blows up.
    """
    stationary_config = stationary_config or StationaryConfig()
    hjb = HJBSolver(model, solver_config).solve(v0)

    space = hjb.state_space
    mass = solve_stationary(hjb.generator, **stationary_config.model_dump()).reshape(space.shape)
    density = mass / space.measure
    logger.info(
        f"Stationary distribution ({stationary_config.method.value}) computed, "
        f"min mass {mass.min():.3e}"
    )
    return StationarySolution(model=model, hjb=hjb, mass=mass, density=density)


def run(config: Config) -> StationarySolution:
    """Build the model of ``config`` and solve it with its solver settings."""
    return solve(build_model(config), config.solver, config.stationary)
