"""Period utility functions.

The HJB solver only needs three primitives of ``u``: its value, its
derivative and the inverse of its derivative (to invert the first-order
condition ``u'(c) = dv``).
"""

from abc import ABC, abstractmethod

import numpy as np

# Numerical floors
_LOG_TOLERANCE = 1e-10
_MARGINAL_UTILITY_FLOOR = 1e-10


class UtilityFunction(ABC):
    """Abstract base class for utility functions.

    Concrete implementations must be strictly increasing and strictly concave.
    """

    @abstractmethod
    def evaluate(self, consumption: np.ndarray) -> np.ndarray:
        """Evaluate utility at given consumption levels.

        Args:
            consumption: Consumption values

        Returns:
            Utility values
        """
        pass  # pylint: disable=unnecessary-pass

    @abstractmethod
    def derivative(self, consumption: np.ndarray) -> np.ndarray:
        """Compute marginal utility (first derivative).

        Args:
            consumption: Consumption values

        Returns:
            Marginal utility values
        """
        pass  # pylint: disable=unnecessary-pass

    @abstractmethod
    def inverse_derivative(self, marginal_utility: np.ndarray) -> np.ndarray:
        """Compute inverse of marginal utility.

        Used to recover consumption from the first-order condition
        ``u'(c) = dv``.

        Args:
            marginal_utility: Marginal utility values

        Returns:
            Consumption values corresponding to given marginal utilities
        """
        pass  # pylint: disable=unnecessary-pass


class CRRAUtility(UtilityFunction):
    """Constant relative risk aversion utility over consumption.

    ``u(c) = c^(1 - sigma) / (1 - sigma)``, with the log limit ``u(c) = log(c)``
    used when ``sigma`` is within ``1e-10`` of one. In both cases
    ``u'(c) = c^(-sigma)`` and ``(u')^(-1)(m) = m^(-1/sigma)``, so only the
    level of utility needs the log branch.

    Args:
        risk_aversion: Coefficient of relative risk aversion ``sigma > 0``.
        consumption_floor: Consumption below this is floored before
            evaluating ``u`` and ``u'``.
        marginal_floor: Marginal utility below this is floored before the
            first-order condition is inverted, which caps consumption.
    """

    def __init__(
        self,
        risk_aversion: float = 2.0,
        consumption_floor: float = 1e-10,
        marginal_floor: float = _MARGINAL_UTILITY_FLOOR,
    ):
        if risk_aversion <= 0:
            raise ValueError(f"risk_aversion must be positive, got {risk_aversion}")
        self.sigma = risk_aversion
        self.consumption_floor = consumption_floor
        self.marginal_floor = marginal_floor
        self.is_log = abs(risk_aversion - 1.0) < _LOG_TOLERANCE

    def evaluate(self, consumption: np.ndarray) -> np.ndarray:
        safe = np.maximum(consumption, self.consumption_floor)
        if self.is_log:
            return np.log(safe)
        return np.power(safe, 1 - self.sigma) / (1 - self.sigma)

    def derivative(self, consumption: np.ndarray) -> np.ndarray:
        safe = np.maximum(consumption, self.consumption_floor)
        return np.power(safe, -self.sigma)

    def inverse_derivative(self, marginal_utility: np.ndarray) -> np.ndarray:
        safe = np.maximum(marginal_utility, self.marginal_floor)
        return np.power(safe, -1.0 / self.sigma)
