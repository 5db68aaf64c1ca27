"""Assembly and validation of Markov generator matrices.

The generator of the controlled state process is the sum of an upwind drift
block and the exogenous income-switching block. The drift block is built by
accumulating (row, col, value) triples into pre-sized COO buffers and
converting to CSR once.
"""

import logging
from typing import List, Optional

import numpy as np
from scipy import sparse

from .state_space import StateSpace

logger = logging.getLogger(__name__)

# Tolerance for zero row sums and non-negative off-diagonal entries
GENERATOR_TOLERANCE = 1e-10


def drift_generator(
    state_space: StateSpace, drift_up: List[np.ndarray], drift_down: List[np.ndarray]
) -> sparse.csr_matrix:
    """Upwind generator of the asset drift.

    In every asset dimension a state moves to the next node at rate
    ``drift_up / dF`` and to the previous node at rate ``-drift_down / dB``.
    Drift pointing out of the grid must already be zero. The diagonal makes
    every row sum to zero.

    Args:
        state_space: State space the drifts live on.
        drift_up: Per dimension, non-negative drift (shaped like the state space).
        drift_down: Per dimension, non-positive drift.

    Returns:
        Sparse (N, N) generator without income switching.
    """
    n = state_space.size
    index = np.arange(n).reshape(state_space.shape)
    num_entries = n * (2 * state_space.ndim + 1)
    rows = np.empty(num_entries, dtype=np.int64)
    cols = np.empty(num_entries, dtype=np.int64)
    values = np.empty(num_entries)
    diagonal = np.zeros(n)

    position = 0
    for dim in range(state_space.ndim):
        axis = state_space.axis(dim)
        up_rate = (drift_up[dim] / state_space.forward_width(dim)).ravel()
        down_rate = (-drift_down[dim] / state_space.backward_width(dim)).ravel()

        # neighbours across the boundary fall back to the node itself with rate 0
        next_index = np.where(
            state_space.upper_boundary(dim), index, np.roll(index, -1, axis=axis)
        ).ravel()
        previous_index = np.where(
            state_space.lower_boundary(dim), index, np.roll(index, 1, axis=axis)
        ).ravel()

        for neighbour, rate in ((next_index, up_rate), (previous_index, down_rate)):
            rows[position : position + n] = index.ravel()
            cols[position : position + n] = neighbour
            values[position : position + n] = rate
            diagonal -= rate
            position += n

    rows[position:] = index.ravel()
    cols[position:] = index.ravel()
    values[position:] = diagonal

    return sparse.coo_matrix((values, (rows, cols)), shape=(n, n)).tocsr()


def assemble_generator(
    state_space: StateSpace,
    drift_up: List[np.ndarray],
    drift_down: List[np.ndarray],
    switching: Optional[sparse.spmatrix] = None,
) -> sparse.csr_matrix:
    """Full generator ``A = A_drift + A_switch``.

    Args:
        state_space: State space the drifts live on.
        drift_up: Per dimension, non-negative drift.
        drift_down: Per dimension, non-positive drift.
        switching: Precomputed income-switching block; built from the state
            space when omitted.

    Returns:
        Sparse (N, N) generator in CSR format.
    """
    if switching is None:
        switching = state_space.switching_matrix()
    return (drift_generator(state_space, drift_up, drift_down) + switching).tocsr()


def generator_issues(
    generator: sparse.spmatrix, tolerance: float = GENERATOR_TOLERANCE
) -> List[str]:
    """List the ways in which a matrix fails to be a Markov generator.

    Args:
        generator: Square sparse matrix.
        tolerance: Allowed deviation of row sums from zero and of off-diagonal
            entries below zero.

    Returns:
        Human-readable issues; empty for a valid generator.
    """
    issues = []
    rows, cols = generator.shape
    if rows != cols:
        return [f"Generator must be square, got shape {generator.shape}"]

    coo = sparse.coo_matrix(generator)
    off_diagonal = coo.row != coo.col
    negative = off_diagonal & (coo.data < -tolerance)
    if np.any(negative):
        worst = int(np.argmin(np.where(negative, coo.data, 0.0)))
        issues.append(
            f"{int(negative.sum())} negative off-diagonal entries, most negative "
            f"{coo.data[worst]:.3e} at ({coo.row[worst]}, {coo.col[worst]})"
        )

    row_sums = np.asarray(generator.sum(axis=1)).ravel()
    bad_rows = np.flatnonzero(np.abs(row_sums) > tolerance)
    if bad_rows.size:
        worst_row = bad_rows[np.argmax(np.abs(row_sums[bad_rows]))]
        issues.append(
            f"{bad_rows.size} rows do not sum to zero, worst is row {worst_row} "
            f"with sum {row_sums[worst_row]:.3e}"
        )
    return issues
