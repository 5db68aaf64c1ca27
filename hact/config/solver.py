"""Numerical settings for the HJB and Kolmogorov-Forward solvers."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TimeSteppingScheme(str, Enum):
    """Time stepping schemes for the HJB pseudo-time iteration."""

    EXPLICIT = "explicit"
    IMPLICIT = "implicit"


class StationaryMethod(str, Enum):
    """Algorithms for the stationary distribution of a generator."""

    DIRECT = "direct"  # pin one state, sparse LU
    EIGEN = "eigen"  # eigenvector for eigenvalue 0
    DEATH = "death"  # death/birth regularization
    ITERATE = "iterate"  # power iteration of I + step * A^T


class HJBSolverConfig(BaseModel):
    """Configuration for the HJB solver.

    Attributes:
        time_step: Pseudo-time step of the implicit scheme. The implicit scheme
            is unconditionally stable, so large steps (100-1000) are used. For
            the explicit scheme the step is capped by the stability bound.
        max_iterations: Iteration budget before ``ConvergenceError``.
        tolerance: Sup-norm change of the value function that ends iteration.
        scheme: Implicit (production) or explicit (cross-check).
        verbose: Log progress every ``log_every`` iterations at INFO level.
        log_every: Logging stride when verbose.
    """

    model_config = ConfigDict(frozen=True)

    time_step: float = Field(default=1000.0, gt=0, description="Pseudo-time step")
    max_iterations: int = Field(default=100, ge=1, description="Iteration budget")
    tolerance: float = Field(default=1e-6, gt=0, description="Convergence tolerance")
    scheme: TimeSteppingScheme = Field(default=TimeSteppingScheme.IMPLICIT)
    verbose: bool = Field(default=False, description="Log progress at INFO level")
    log_every: int = Field(default=10, ge=1, description="Logging stride")


class StationaryConfig(BaseModel):
    """Configuration for the stationary-distribution solver.

    Attributes:
        method: Algorithm to use.
        pin_index: State whose mass is pinned by the direct method.
        pin_value: Positive mass assigned to the pinned state before normalizing.
        death_rate: Regularizing death rate delta of the death/birth method.
        step: Step of the power iteration; None picks 0.9 / max|diag(A)|.
        tolerance: Sup-norm change that ends the power iteration.
        max_steps: Step budget of the power iteration.
        eigenvalue_tolerance: Largest |eigenvalue| accepted as zero.
    """

    model_config = ConfigDict(frozen=True)

    method: StationaryMethod = Field(default=StationaryMethod.DIRECT)
    pin_index: int = Field(default=0, ge=0)
    pin_value: float = Field(default=0.1, gt=0)
    death_rate: float = Field(default=1e-14, gt=0)
    step: Optional[float] = Field(default=None, gt=0)
    tolerance: float = Field(default=1e-12, gt=0)
    max_steps: int = Field(default=50_000, ge=1)
    eigenvalue_tolerance: float = Field(default=1e-5, gt=0)
