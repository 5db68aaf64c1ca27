"""State-space building blocks: asset grids and the income process.

Each asset dimension is described by an :class:`AssetGridConfig`; the
exogenous income process is a finite set of income levels together with a
continuous-time Markov generator (:class:`IncomeProcessConfig`). Both are
immutable and validated on construction.
"""

from typing import List, Optional, Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .exceptions import InvalidModelError

# Row sums of an income generator must vanish to this tolerance
GENERATOR_ROW_SUM_TOLERANCE = 1e-10


class AssetGridConfig(BaseModel):
    """Grid for one asset dimension.

    The grid is equi-spaced by default. ``curvature > 1`` clusters nodes near
    the lower bound (``x_i = min + (max - min) * (i / (n - 1)) ** curvature``),
    where the density of constrained households is concentrated. Alternatively
    an explicit, strictly increasing list of ``points`` can be supplied, in
    which case the bounds and point count are taken from it.

    Attributes:
        name: Label of the asset (used in tables and log messages).
        min_value: Lower bound (borrowing limit).
        max_value: Upper bound.
        num_points: Number of grid nodes, at least 2.
        curvature: Spacing exponent, 1 for a uniform grid.
        points: Optional explicit node list overriding the other fields.

    Examples:
        Liquid asset of the Huggett model::

            AssetGridConfig(name="a", min_value=-0.1, max_value=1.5, num_points=500)
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="a", description="Asset label")
    min_value: float = Field(default=-0.1, description="Lower bound of the grid")
    max_value: float = Field(default=1.5, description="Upper bound of the grid")
    num_points: int = Field(default=500, description="Number of grid nodes")
    curvature: float = Field(default=1.0, description="Spacing exponent (1 = uniform)")
    points: Optional[List[float]] = Field(default=None, description="Explicit grid nodes")

    @model_validator(mode="before")
    @classmethod
    def fill_from_points(cls, data):
        """Derive bounds and point count from an explicit node list."""
        if isinstance(data, dict) and data.get("points") is not None:
            points = list(data["points"])
            data = dict(data)
            if points:
                data.setdefault("min_value", points[0])
                data.setdefault("max_value", points[-1])
            data.setdefault("num_points", len(points))
        return data

    @model_validator(mode="after")
    def validate_grid(self):
        """Check bounds, point count and spacing."""
        issues = []
        if self.points is not None:
            points = np.asarray(self.points, dtype=float)
            if points.size < 2:
                issues.append(f"Grid '{self.name}' needs at least 2 points, got {points.size}")
            elif np.any(np.diff(points) <= 0):
                issues.append(f"Grid '{self.name}' points must be strictly increasing")
            elif points.size != self.num_points:
                issues.append(
                    f"Grid '{self.name}' has {points.size} points but num_points="
                    f"{self.num_points}"
                )
        else:
            if self.num_points < 2:
                issues.append(
                    f"Grid '{self.name}' needs at least 2 points, got {self.num_points}"
                )
            if not self.min_value < self.max_value:
                issues.append(
                    f"Grid '{self.name}' needs min_value < max_value, got "
                    f"[{self.min_value}, {self.max_value}]"
                )
            if self.curvature < 1.0:
                issues.append(f"Grid '{self.name}' curvature must be >= 1, got {self.curvature}")
        if issues:
            raise InvalidModelError(issues)
        return self

    def nodes(self) -> np.ndarray:
        """Generate the grid nodes.

        Returns:
            Strictly increasing array of ``num_points`` nodes.
        """
        if self.points is not None:
            return np.asarray(self.points, dtype=float)
        x = np.linspace(0.0, 1.0, self.num_points)
        if self.curvature != 1.0:
            x = x**self.curvature
        nodes = self.min_value + (self.max_value - self.min_value) * x
        # pin endpoints exactly
        nodes[0] = self.min_value
        nodes[-1] = self.max_value
        return nodes


class IncomeProcessConfig(BaseModel):
    """Finite-state Poisson income process.

    ``generator[j][k]`` is the rate at which a household in income state ``j``
    switches to state ``k``; diagonal entries make every row sum to zero.

    Attributes:
        levels: Income level of each state.
        generator: Continuous-time Markov generator (n x n).

    Examples:
        Two states with exit intensities 0.02 and 0.03::

            income = IncomeProcessConfig.two_state(levels=[0.1, 0.2], intensities=[0.02, 0.03])
    """

    model_config = ConfigDict(frozen=True)

    levels: List[float] = Field(default=[0.1, 0.2], description="Income levels")
    generator: List[List[float]] = Field(
        default=[[-0.02, 0.02], [0.03, -0.03]], description="Income switching generator"
    )

    @model_validator(mode="after")
    def validate_generator(self):
        """Check shape, sign pattern and zero row sums of the generator."""
        issues = []
        n = len(self.levels)
        if n == 0:
            issues.append("Income process needs at least one income level")
        if len(self.generator) != n or any(len(row) != n for row in self.generator):
            issues.append(f"Generator must be {n}x{n} to match {n} income levels")
            raise InvalidModelError(issues)

        lam = np.asarray(self.generator, dtype=float)
        off_diagonal = lam[~np.eye(n, dtype=bool)]
        if np.any(off_diagonal < 0):
            issues.append("Generator off-diagonal entries must be non-negative")
        row_sums = lam.sum(axis=1)
        for row, total in enumerate(row_sums):
            if abs(total) > GENERATOR_ROW_SUM_TOLERANCE:
                issues.append(f"Generator row {row} sums to {total:.3e}, expected 0")
        if issues:
            raise InvalidModelError(issues)
        return self

    @classmethod
    def two_state(
        cls, levels: Sequence[float], intensities: Sequence[float]
    ) -> "IncomeProcessConfig":
        """Build a two-state process from exit intensities.

        Args:
            levels: The two income levels.
            intensities: Rate of leaving state 1 and rate of leaving state 2.

        Returns:
            Validated income process.
        """
        lam1, lam2 = intensities
        return cls(levels=list(levels), generator=[[-lam1, lam1], [lam2, -lam2]])

    @property
    def num_states(self) -> int:
        """Number of income states."""
        return len(self.levels)

    @property
    def levels_array(self) -> np.ndarray:
        """Income levels as an array."""
        return np.asarray(self.levels, dtype=float)

    @property
    def generator_array(self) -> np.ndarray:
        """Generator as an (n, n) array."""
        return np.asarray(self.generator, dtype=float)
