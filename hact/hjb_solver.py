"""Finite-difference HJB solver with upwinding and implicit time stepping.

Solves the stationary Hamilton-Jacobi-Bellman equation

    rho v = max_c u(c) + sum_k D_k v * drift_k(c) + Lambda v

of a household model on a discretized state space by pseudo-time iteration,

    ((1/dt + rho) I - A^n) v^{n+1} = u^n + v^n / dt,

where ``A^n`` is the upwind generator implied by the policy at ``v^n``
(Achdou, Han, Lasry, Lions and Moll, 2022). The implicit scheme is stable for
any ``dt``; an explicit Euler scheme is kept as a cross-check.
"""

from dataclasses import dataclass, field
import logging
from typing import Dict, List, Optional, Tuple
import warnings

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import MatrixRankWarning, spsolve

from ._warnings import NonConcavityWarning
from .config.solver import HJBSolverConfig, TimeSteppingScheme
from .exceptions import ConvergenceError, NumericalDivergenceError
from .generator import assemble_generator, generator_issues
from .household import HouseholdModel, PolicyStep
from .state_space import StateSpace

logger = logging.getLogger(__name__)

# Relative slack before D^F v > D^B v counts as a concavity violation
_CONCAVITY_TOLERANCE = 1e-10
# Safety factor on the explicit stability bound
_EXPLICIT_SAFETY = 0.9


@dataclass
class HJBSolution:
    """Converged solution of the HJB equation.

    Per-state arrays are shaped like ``state_space.shape``.

    Attributes:
        state_space: State space of the solution.
        value: Value function.
        controls: Named optimal controls (``"consumption"`` and model extras).
        drift_up: Per asset dimension, non-negative part of the drift.
        drift_down: Per asset dimension, non-positive part of the drift.
        reward: Flow utility at the optimal policy.
        generator: Upwind generator ``A`` of the optimal policy (CSR).
        discount_rate: Discount rate used by the solve.
        iterations: Number of iterations performed.
        distances: Convergence measure at every iteration.
        diagnostics: Non-concavity events, one per iteration and dimension.
        scheme: Time stepping scheme used.
    """

    state_space: StateSpace
    value: np.ndarray
    controls: Dict[str, np.ndarray]
    drift_up: List[np.ndarray]
    drift_down: List[np.ndarray]
    reward: np.ndarray
    generator: sparse.csr_matrix
    discount_rate: float
    iterations: int
    distances: List[float] = field(default_factory=list)
    diagnostics: List[NonConcavityWarning] = field(default_factory=list)
    scheme: TimeSteppingScheme = TimeSteppingScheme.IMPLICIT

    @property
    def consumption(self) -> np.ndarray:
        """Optimal consumption."""
        return self.controls["consumption"]

    def drift(self, dim: int) -> np.ndarray:
        """Net drift of asset ``dim`` under the optimal policy."""
        return self.drift_up[dim] + self.drift_down[dim]

    @property
    def drifts(self) -> Dict[str, np.ndarray]:
        """Net drift of every asset, keyed by asset name."""
        return {name: self.drift(dim) for dim, name in enumerate(self.state_space.names)}

    def policy_at(self, points: np.ndarray, income_index: int) -> Dict[str, np.ndarray]:
        """Interpolate the optimal controls and drifts off the grid.

        Args:
            points: Asset coordinates, shape ``(n_points, ndim)``.
            income_index: Income state.

        Returns:
            Dictionary of control and drift names to interpolated values.
        """
        space = self.state_space
        result = {
            name: space.interpolate(values, points, income_index)
            for name, values in self.controls.items()
        }
        for name, values in self.drifts.items():
            result[f"drift_{name}"] = space.interpolate(values, points, income_index)
        return result


def hjb_residual(solution: HJBSolution) -> float:
    """Sup-norm residual ``max|rho v - u - A v|`` of the discretized HJB.

    A converged implicit solve leaves a residual of at most ``tolerance / dt``.
    """
    v = solution.value.ravel()
    residual = (
        solution.discount_rate * v - solution.reward.ravel() - solution.generator @ v
    )
    return float(np.max(np.abs(residual)))


class HJBSolver:
    """Upwind finite-difference solver for a :class:`HouseholdModel`.

    The solver owns the value function while iterating and hands out only
    the converged result. It holds no state between solves apart from the
    precomputed income-switching block, so one instance can be reused.

    Args:
        model: Household problem to solve.
        config: Solver settings; defaults to ``HJBSolverConfig()``.
    """

    def __init__(self, model: HouseholdModel, config: Optional[HJBSolverConfig] = None):
        self.model = model
        self.config = config or HJBSolverConfig()
        self.state_space = model.state_space
        self._switching = self.state_space.switching_matrix()
        self._identity = sparse.identity(self.state_space.size, format="csr")

        logger.info(
            f"Initialized {self.config.scheme.value} HJB solver for "
            f"{self.state_space.size} states"
        )

    def differences(self, value: np.ndarray) -> Tuple[List[np.ndarray], List[np.ndarray]]:
        """One-sided derivatives of ``value`` along every asset dimension.

        The backward difference at the lower bound and the forward difference
        at the upper bound are replaced by the model's state-constraint values.

        Args:
            value: Value function shaped like the state space.

        Returns:
            ``(forward, backward)`` lists with one array per asset dimension.
        """
        space = self.state_space
        forward, backward = [], []
        for dim in range(space.ndim):
            axis = space.axis(dim)
            widths = np.diff(space.along(space.grids[dim], dim), axis=axis)
            steps = np.diff(value, axis=axis) / widths
            pad_last = [(0, 0)] * value.ndim
            pad_last[axis] = (0, 1)
            pad_first = [(0, 0)] * value.ndim
            pad_first[axis] = (1, 0)
            dv_forward = np.pad(steps, pad_last)
            dv_backward = np.pad(steps, pad_first)

            lower, upper = self.model.boundary_derivatives(dim)
            lower_mask = space.lower_boundary(dim)
            upper_mask = space.upper_boundary(dim)
            dv_backward[lower_mask] = lower[lower_mask]
            dv_forward[upper_mask] = upper[upper_mask]

            forward.append(dv_forward)
            backward.append(dv_backward)
        return forward, backward

    def _concavity_violations(
        self, forward: List[np.ndarray], backward: List[np.ndarray], iteration: int
    ) -> List[NonConcavityWarning]:
        """Interior states where the forward derivative exceeds the backward one.

        There both the forward and the backward candidate can satisfy their
        drift condition; the upwind rule then prefers the forward one.
        """
        space = self.state_space
        found = []
        for dim in range(space.ndim):
            interior = ~space.lower_boundary(dim) & ~space.upper_boundary(dim)
            slack = _CONCAVITY_TOLERANCE * np.maximum(1.0, np.abs(forward[dim]))
            violated = interior & (forward[dim] - backward[dim] > slack)
            if np.any(violated):
                states = np.flatnonzero(violated.ravel())
                logger.debug(
                    f"Iteration {iteration}: value function not concave in "
                    f"'{space.names[dim]}' at {states.size} states"
                )
                found.append(NonConcavityWarning(iteration, dim, states))
        return found

    def _clip_outbound(self, policy: PolicyStep) -> PolicyStep:
        """Zero any drift that would leave the grid (state constraint)."""
        space = self.state_space
        for dim in range(space.ndim):
            upper = space.upper_boundary(dim)
            lower = space.lower_boundary(dim)
            outbound = np.any(policy.drift_up[dim][upper] != 0) or np.any(
                policy.drift_down[dim][lower] != 0
            )
            if outbound:
                logger.debug(f"Clipping outbound drift of '{space.names[dim]}' at the boundary")
            policy.drift_up[dim] = np.where(upper, 0.0, policy.drift_up[dim])
            policy.drift_down[dim] = np.where(lower, 0.0, policy.drift_down[dim])
        return policy

    def policy(
        self, value: np.ndarray, iteration: int = 0
    ) -> Tuple[PolicyStep, sparse.csr_matrix, List[NonConcavityWarning]]:
        """Upwind policy and generator implied by ``value``.

        Args:
            value: Value function shaped like the state space.
            iteration: Iteration number recorded in diagnostics.

        Returns:
            Tuple of (policy, generator, non-concavity diagnostics).
        """
        forward, backward = self.differences(value)
        diagnostics = self._concavity_violations(forward, backward, iteration)
        policy = self._clip_outbound(self.model.optimal_policy(forward, backward))
        generator = assemble_generator(
            self.state_space, policy.drift_up, policy.drift_down, self._switching
        )
        return policy, generator, diagnostics

    def _explicit_time_step(self, generator: sparse.csr_matrix) -> float:
        """Largest stable explicit step, capped by the configured one."""
        max_rate = float(np.max(np.abs(generator.diagonal()))) + self.model.discount_rate
        return min(self.config.time_step, _EXPLICIT_SAFETY / max_rate)

    def update(
        self, value: np.ndarray, policy: PolicyStep, generator: sparse.csr_matrix, time_step: float
    ) -> np.ndarray:
        """One pseudo-time step of the configured scheme.

        Args:
            value: Current value function.
            policy: Policy implied by ``value``.
            generator: Generator implied by ``value``.
            time_step: Pseudo-time step.

        Returns:
            Updated value function, shaped like the state space.
        """
        rho = self.model.discount_rate
        v = value.ravel()
        u = policy.reward.ravel()
        if self.config.scheme == TimeSteppingScheme.IMPLICIT:
            lhs = (1.0 / time_step + rho) * self._identity - generator
            with warnings.catch_warnings():
                # a singular system shows up as NaN and is reported below
                warnings.simplefilter("ignore", MatrixRankWarning)
                new_v = spsolve(lhs.tocsc(), u + v / time_step)
        else:
            new_v = v + time_step * (u + generator @ v - rho * v)
        return np.asarray(new_v).reshape(self.state_space.shape)

    def solve(self, v0: Optional[np.ndarray] = None) -> HJBSolution:
        """Iterate to convergence.

        Args:
            v0: Optional warm start (shaped like the state space or flat);
                defaults to the model's initial guess.

        Returns:
            Converged solution.

        Raises:
            ConvergenceError: If ``max_iterations`` is exhausted.
            NumericalDivergenceError: If the value function becomes non-finite.
            ValueError: If ``v0`` has the wrong size.
        """
        space = self.state_space
        config = self.config
        if v0 is None:
            value = self.model.initial_value()
        else:
            value = np.asarray(v0, dtype=float)
            if value.size != space.size:
                raise ValueError(f"v0 has {value.size} entries, expected {space.size}")
            value = value.reshape(space.shape)
        value = np.array(value, dtype=float)

        logger.info(f"Starting HJB solution ({config.scheme.value} scheme)")

        distances: List[float] = []
        diagnostics: List[NonConcavityWarning] = []
        step_reduced = False
        distance = np.inf

        for iteration in range(config.max_iterations):
            policy, generator, found = self.policy(value, iteration)
            diagnostics.extend(found)

            time_step = config.time_step
            if config.scheme == TimeSteppingScheme.EXPLICIT:
                time_step = self._explicit_time_step(generator)
                if time_step < config.time_step and not step_reduced:
                    logger.warning(
                        f"Explicit stability bound violated. "
                        f"Auto-reducing dt from {config.time_step:.4e} to {time_step:.4e}."
                    )
                    step_reduced = True

            new_value = self.update(value, policy, generator, time_step)

            if not np.all(np.isfinite(new_value)):
                n_nan = int(np.sum(np.isnan(new_value)))
                n_inf = int(np.sum(np.isinf(new_value)))
                raise NumericalDivergenceError(
                    f"HJB solver diverged at iteration {iteration}: value function contains "
                    f"{n_nan} NaN and {n_inf} Inf values",
                    iterations=iteration + 1,
                    residual=distance,
                )

            change = float(np.max(np.abs(new_value - value)))
            distance = change
            if config.scheme == TimeSteppingScheme.EXPLICIT:
                distance = change / time_step
            distances.append(distance)
            value = new_value

            logger.debug(f"Iteration {iteration}: value change = {distance:.6e}")
            if config.verbose and iteration % config.log_every == 0:
                logger.info(f"Iteration {iteration}: value change = {distance:.6e}")

            if distance < config.tolerance:
                logger.info(f"Converged after {iteration + 1} iterations")
                issues = generator_issues(generator)
                if issues:
                    logger.warning(f"Converged generator is not valid: {'; '.join(issues)}")
                if diagnostics:
                    logger.warning(
                        f"Value function was not concave in {len(diagnostics)} "
                        "iteration/dimension pairs"
                    )
                return HJBSolution(
                    state_space=space,
                    value=value,
                    controls=policy.controls,
                    drift_up=policy.drift_up,
                    drift_down=policy.drift_down,
                    reward=policy.reward,
                    generator=generator,
                    discount_rate=self.model.discount_rate,
                    iterations=iteration + 1,
                    distances=distances,
                    diagnostics=diagnostics,
                    scheme=config.scheme,
                )

        raise ConvergenceError(
            f"HJB solver did not converge after {config.max_iterations} iterations "
            f"(last value change {distance:.3e}, tolerance {config.tolerance:.1e})",
            iterations=config.max_iterations,
            residual=distance,
        )
