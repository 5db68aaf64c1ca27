"""Custom warning classes for the hact package.

These warning classes allow users to programmatically filter, suppress,
or capture warnings using Python's standard ``warnings`` module.

Example:
    Silence calibration warnings in a parameter sweep::

        import warnings
        from hact._warnings import ConfigurationWarning, StationaryDistributionWarning

        warnings.filterwarnings("ignore", category=ConfigurationWarning)

    Turn a failed eigenvalue check into an error::

        warnings.simplefilter("error", StationaryDistributionWarning)
"""

from typing import Optional

import numpy as np


class HactWarning(UserWarning):
    """Base class for all hact warnings."""


class ConfigurationWarning(HactWarning):
    """Unusual or potentially incorrect model parameters.

    Raised during config validation when a calibration is legal but known
    to misbehave (e.g. an illiquid return above ``1/chi1``, which lets
    households accumulate unbounded illiquid wealth).
    """


class StationaryDistributionWarning(HactWarning):
    """The stationary distribution may be unreliable.

    Raised when the principal eigenvalue of ``A^T`` is not numerically zero,
    which signals that ``A`` may not be a valid generator.
    """


class NonConcavityWarning(HactWarning):
    """Forward derivative exceeds backward derivative during an HJB iteration.

    The value function is locally convex there, so both the forward and the
    backward policy candidate may qualify under the upwind rule.

    Instances are not raised. The solver records one per affected iteration
    in :attr:`hact.hjb_solver.HJBSolution.diagnostics` and keeps iterating
    with the upwind rule.

    Attributes:
        iteration: HJB iteration (0-based) at which the condition was detected.
        dimension: Asset dimension whose differences were non-concave.
        states: Linear indices of the affected states.
    """

    def __init__(self, iteration: int, dimension: int, states: np.ndarray):
        self.iteration = iteration
        self.dimension = dimension
        self.states = np.asarray(states, dtype=np.int64)
        super().__init__(
            f"Value function not concave in dimension {dimension} at "
            f"{self.states.size} states (iteration {iteration})"
        )

    @property
    def first_state(self) -> Optional[int]:
        """First affected linear index, or None when the record is empty."""
        return int(self.states[0]) if self.states.size else None
