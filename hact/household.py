"""Capability interface between household models and the HJB solver.

The solver is model-agnostic: it computes one-sided derivatives of the value
function and assembles the generator, while everything that depends on
preferences and laws of motion lives behind :class:`HouseholdModel`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np

from .state_space import StateSpace
from .utility import UtilityFunction

# Drift magnitudes below this are treated as zero by the upwind rule
DRIFT_THRESHOLD = 1e-12


@dataclass
class PolicyStep:
    """Upwinded policy implied by one pair of one-sided derivatives.

    All arrays are shaped like ``StateSpace.shape``.

    Attributes:
        reward: Flow utility at the selected policy.
        controls: Named control arrays (always includes ``"consumption"``).
        drift_up: Per asset dimension, the part of the drift moving the state
            to the next grid node (>= 0).
        drift_down: Per asset dimension, the part moving it to the previous
            node (<= 0).
    """

    reward: np.ndarray
    controls: Dict[str, np.ndarray]
    drift_up: List[np.ndarray]
    drift_down: List[np.ndarray]

    @property
    def consumption(self) -> np.ndarray:
        """Selected consumption."""
        return self.controls["consumption"]

    def drift(self, dim: int) -> np.ndarray:
        """Net drift of asset ``dim``."""
        return self.drift_up[dim] + self.drift_down[dim]


class HouseholdModel(ABC):
    """A household problem the HJB solver can iterate on.

    Subclasses set ``state_space``, ``discount_rate`` and ``utility`` in their
    constructor and implement the three hooks below.
    """

    state_space: StateSpace
    discount_rate: float
    utility: UtilityFunction

    @abstractmethod
    def initial_value(self) -> np.ndarray:
        """Initial guess: value of consuming cash on hand forever."""

    @abstractmethod
    def boundary_derivatives(self, dim: int) -> Tuple[np.ndarray, np.ndarray]:
        """State-constraint derivatives for asset ``dim``.

        Returns:
            ``(lower, upper)`` arrays shaped like the state space. ``lower``
            replaces the backward difference at the lower bound and ``upper``
            the forward difference at the upper bound.
        """

    @abstractmethod
    def optimal_policy(
        self, dv_forward: List[np.ndarray], dv_backward: List[np.ndarray]
    ) -> PolicyStep:
        """Invert the first-order conditions and apply the upwind rule.

        Args:
            dv_forward: Forward derivative per asset dimension, with the upper
                boundary already replaced.
            dv_backward: Backward derivative per asset dimension, with the
                lower boundary already replaced.

        Returns:
            Selected policy and its drift decomposition.
        """

    @property
    def asset_names(self) -> List[str]:
        """Names of the asset dimensions."""
        return self.state_space.names
