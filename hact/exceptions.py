"""Exceptions raised by the HJB and Kolmogorov-Forward solvers.

Configuration problems are reported by
:class:`hact.config.exceptions.InvalidModelError`, re-exported here so that
callers can import every error from one place.
"""

from typing import Optional

from .config.exceptions import InvalidModelError

__all__ = [
    "ConvergenceError",
    "InvalidModelError",
    "NonFiniteResultError",
    "NumericalDivergenceError",
    "SingularSystemError",
]


class ConvergenceError(RuntimeError):
    """Raised when an iterative solver exhausts its iteration budget.

    Attributes:
        iterations: Number of iterations performed.
        residual: Convergence measure at the last iteration.
    """

    def __init__(self, message: str, iterations: int, residual: Optional[float] = None):
        self.iterations = iterations
        self.residual = residual
        super().__init__(message)


class NumericalDivergenceError(ConvergenceError):
    """Raised when the HJB solver detects NaN or Inf in the value function."""


class SingularSystemError(RuntimeError):
    """Raised when the pinned Kolmogorov-Forward system cannot be solved."""


class NonFiniteResultError(RuntimeError):
    """Raised when an iterate of the Kolmogorov-Forward operator is not finite.

    Usually signals a time step that is too large relative to the spectral
    radius of the generator.
    """
