"""Stationary distribution of a continuous-time Markov generator.

Given a generator ``A`` (non-negative off-diagonal entries, zero row sums) the
stationary probability mass ``p`` solves the Kolmogorov-Forward equation
``A^T p = 0`` with ``sum(p) = 1``. Four interchangeable algorithms are
offered; on a valid generator they agree to floating-point accuracy, so a
caller can fall back from one to another when one fails numerically.

The density on the grid is ``g = p / measure``, with ``sum(g * measure) = 1``.
"""

import logging
from typing import Optional, Union
import warnings

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import eigs, splu, spsolve

from ._warnings import StationaryDistributionWarning
from .config.solver import StationaryMethod
from .exceptions import ConvergenceError, NonFiniteResultError, SingularSystemError

logger = logging.getLogger(__name__)

# Dense eigendecomposition is used up to this many states
_DENSE_EIGEN_MAX_SIZE = 200
# Shift of the shift-invert eigen solve (A^T itself is singular)
_EIGEN_SHIFT = -1e-8


def _normalized(mass: np.ndarray) -> np.ndarray:
    total = mass.sum()
    if not np.isfinite(total) or total == 0:
        raise SingularSystemError(f"Cannot normalize stationary mass with total {total}")
    return mass / total


def solve_direct(
    generator: sparse.spmatrix, pin_index: int = 0, pin_value: float = 0.1
) -> np.ndarray:
    """Pinned direct solve.

    Replaces the ``pin_index`` row of ``A^T`` by the unit row and solves
    ``A^T p = pin_value e_pin`` by sparse LU, then normalizes.

    Args:
        generator: Generator ``A``.
        pin_index: State whose mass is pinned.
        pin_value: Positive mass assigned to the pinned state.

    Returns:
        Probability mass vector.

    Raises:
        SingularSystemError: If the pinned system is singular or the solution
            is not finite.
    """
    n = generator.shape[0]
    if not 0 <= pin_index < n:
        raise ValueError(f"pin_index {pin_index} out of range for {n} states")

    keep = np.ones(n)
    keep[pin_index] = 0.0
    pin = sparse.coo_matrix(([1.0], ([pin_index], [pin_index])), shape=(n, n))
    system = (sparse.diags(keep) @ generator.T.tocsr() + pin).tocsc()
    rhs = np.zeros(n)
    rhs[pin_index] = pin_value

    try:
        mass = splu(system).solve(rhs)
    except RuntimeError as exc:
        raise SingularSystemError(f"Pinned Kolmogorov-Forward system is singular: {exc}") from exc

    if not np.all(np.isfinite(mass)):
        raise SingularSystemError(
            f"Pinned Kolmogorov-Forward solve returned {int(np.sum(~np.isfinite(mass)))} "
            "non-finite entries"
        )
    return _normalized(mass)


def solve_eigen(generator: sparse.spmatrix, eigenvalue_tolerance: float = 1e-5) -> np.ndarray:
    """Eigenvector of ``A^T`` for the eigenvalue closest to zero.

    Uses ARPACK in shift-invert mode, or a dense eigendecomposition for small
    systems. Emits :class:`StationaryDistributionWarning` (and still returns
    the vector) if the eigenvalue is not numerically zero.

    Args:
        generator: Generator ``A``.
        eigenvalue_tolerance: Largest ``|eigenvalue|`` accepted as zero.

    Returns:
        Probability mass vector.
    """
    transpose = generator.T.tocsc()
    n = transpose.shape[0]
    if n <= _DENSE_EIGEN_MAX_SIZE:
        values, vectors = np.linalg.eig(transpose.toarray())
        k = int(np.argmin(np.abs(values)))
        eigenvalue, vector = values[k], vectors[:, k]
    else:
        values, vectors = eigs(transpose, k=1, sigma=_EIGEN_SHIFT, which="LM")
        eigenvalue, vector = values[0], vectors[:, 0]

    logger.debug(f"Eigenvalue closest to zero: {eigenvalue:.3e}")
    if abs(eigenvalue) > eigenvalue_tolerance:
        warnings.warn(
            f"Eigenvalue of A^T closest to zero is {abs(eigenvalue):.3e} > "
            f"{eigenvalue_tolerance:.1e}; A may not be a valid generator",
            StationaryDistributionWarning,
            stacklevel=2,
        )
    return _normalized(np.real(vector))


def solve_death(
    generator: sparse.spmatrix,
    death_rate: float = 1e-14,
    birth_distribution: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Death/birth regularization.

    Agents die at rate ``delta`` and are reborn at ``psi``; the regularized
    system ``(delta I - A^T) g = delta psi`` is non-singular and converges to
    the stationary distribution as ``delta -> 0``.

    Args:
        generator: Generator ``A``.
        death_rate: Death rate ``delta``.
        birth_distribution: Birth distribution ``psi``; uniform by default.

    Returns:
        Probability mass vector.
    """
    n = generator.shape[0]
    psi = np.full(n, 1.0 / n) if birth_distribution is None else np.asarray(birth_distribution)
    system = (death_rate * sparse.identity(n, format="csc") - generator.T).tocsc()
    mass = np.abs(spsolve(system, death_rate * psi))
    if not np.all(np.isfinite(mass)):
        raise SingularSystemError("Death/birth regularized system returned non-finite entries")
    return _normalized(mass)


def solve_iterate(
    generator: sparse.spmatrix,
    step: Optional[float] = None,
    tolerance: float = 1e-12,
    max_steps: int = 50_000,
    initial: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Power iteration ``p <- (I + step A^T) p``.

    The iteration preserves total mass; it is stable when
    ``step * max|diag A| <= 1``.

    Args:
        generator: Generator ``A``.
        step: Time step; defaults to ``0.9 / max|diag A|``.
        tolerance: Stop when ``max|p_new - p| < tolerance``.
        max_steps: Step budget.
        initial: Starting mass; uniform by default.

    Returns:
        Probability mass vector.

    Raises:
        NonFiniteResultError: If an iterate is not finite.
        ConvergenceError: If the step budget is exhausted.
    """
    n = generator.shape[0]
    if step is None:
        max_rate = float(np.max(np.abs(generator.diagonal())))
        step = 0.9 / max_rate if max_rate > 0 else 1.0
    operator = (sparse.identity(n, format="csr") + step * generator.T).tocsr()
    mass = np.full(n, 1.0 / n) if initial is None else _normalized(np.asarray(initial, float))

    change = np.inf
    for iteration in range(max_steps):
        new_mass = operator @ mass
        if not np.all(np.isfinite(new_mass)):
            raise NonFiniteResultError(
                f"Power iteration produced non-finite mass at step {iteration} "
                f"(step size {step:.3e} may be too large)"
            )
        change = float(np.max(np.abs(new_mass - mass)))
        mass = new_mass
        if change < tolerance:
            logger.debug(f"Power iteration converged after {iteration + 1} steps")
            return _normalized(mass)

    raise ConvergenceError(
        f"Power iteration did not converge after {max_steps} steps "
        f"(last change {change:.3e}, tolerance {tolerance:.1e})",
        iterations=max_steps,
        residual=change,
    )


def solve_stationary(
    generator: sparse.spmatrix,
    method: Union[StationaryMethod, str] = StationaryMethod.DIRECT,
    pin_index: int = 0,
    pin_value: float = 0.1,
    death_rate: float = 1e-14,
    step: Optional[float] = None,
    tolerance: float = 1e-12,
    max_steps: int = 50_000,
    eigenvalue_tolerance: float = 1e-5,
    birth_distribution: Optional[np.ndarray] = None,
    initial: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Stationary probability mass of ``generator`` by the chosen method.

    Keyword arguments not used by the selected method are ignored, so a
    ``StationaryConfig`` can be passed as ``**config.model_dump()``.

    Args:
        generator: Generator ``A``.
        method: One of ``direct``, ``eigen``, ``death``, ``iterate``.

    Returns:
        Probability mass vector summing to one.
    """
    method = StationaryMethod(method)
    generator = sparse.csr_matrix(generator)
    logger.debug(f"Solving for stationary distribution ({method.value})")

    if method == StationaryMethod.DIRECT:
        return solve_direct(generator, pin_index, pin_value)
    if method == StationaryMethod.EIGEN:
        return solve_eigen(generator, eigenvalue_tolerance)
    if method == StationaryMethod.DEATH:
        return solve_death(generator, death_rate, birth_distribution)
    return solve_iterate(generator, step, tolerance, max_steps, initial)


def stationary_density(
    generator: sparse.spmatrix,
    measure: np.ndarray,
    method: Union[StationaryMethod, str] = StationaryMethod.DIRECT,
    **options,
) -> np.ndarray:
    """Stationary density ``g = p / measure`` on the grid.

    Args:
        generator: Generator ``A``.
        measure: Grid measure per state (any shape with ``N`` entries).
        method: Stationary-distribution algorithm.
        **options: Passed to :func:`solve_stationary`.

    Returns:
        Flat density with ``sum(g * measure) = 1``.
    """
    mass = solve_stationary(generator, method, **options)
    return mass / np.asarray(measure).ravel()
