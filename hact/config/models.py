"""Household model configurations.

One immutable configuration class per model variant. Prices (interest
rates, wages) are ordinary fields; an outer equilibrium loop varies them
through ``hact.build_model(config, interest_rate=r)``, which re-validates.
"""

from typing import List, Literal
import warnings

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .._warnings import ConfigurationWarning
from .exceptions import InvalidModelError
from .grids import AssetGridConfig, IncomeProcessConfig


class HuggettConfig(BaseModel):
    """Huggett economy: one liquid asset and N Poisson income states.

    Households solve

        rho v_j(a) = max_c u(c) + v_j'(a) (w z_j + r a - c) + sum_k Lambda_jk v_k(a)

    subject to ``a >= min_value`` of the asset grid, with CRRA utility.

    Attributes:
        model_type: Discriminator used by the top-level ``Config``.
        risk_aversion: CRRA coefficient sigma (log utility at 1).
        discount_rate: Rate of time preference rho.
        interest_rate: Return r on the asset.
        wage: Wage w multiplying the income levels.
        income: Income levels and switching generator.
        asset_grid: Grid of the asset dimension.

    Examples:
        The two-state calibration of Achdou et al.::

            HuggettConfig(
                income=IncomeProcessConfig.two_state([0.1, 0.2], [0.02, 0.03]),
                interest_rate=0.03,
            )
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_type: Literal["huggett"] = "huggett"
    risk_aversion: float = Field(default=2.0, gt=0, description="CRRA coefficient sigma")
    discount_rate: float = Field(default=0.05, gt=0, description="Discount rate rho")
    interest_rate: float = Field(default=0.03, description="Interest rate r")
    wage: float = Field(default=1.0, gt=0, description="Wage w")
    income: IncomeProcessConfig = Field(default_factory=IncomeProcessConfig)
    asset_grid: AssetGridConfig = Field(default_factory=AssetGridConfig)

    @model_validator(mode="after")
    def validate_borrowing_limit(self):
        """Cash on hand at the borrowing limit must be positive in every income state."""
        lowest = (
            self.wage * min(self.income.levels)
            + self.interest_rate * self.asset_grid.min_value
        )
        if lowest <= 0:
            raise InvalidModelError(
                [
                    f"Borrowing limit {self.asset_grid.min_value} is not feasible: income "
                    f"plus interest at the limit is {lowest:.4g} in the lowest income state"
                ]
            )
        return self


class TwoAssetConfig(BaseModel):
    """Two-asset economy with a liquid (b) and an illiquid (a) asset.

    Deposits ``d`` into the illiquid account pay the kinked adjustment cost
    ``chi0 |d| + chi1 d^2 / 2 / max(a, 1e-5)``. A share ``xi`` of labour income
    is deposited automatically. Liquid savings earn ``rb_pos`` and borrowing
    pays ``rb_neg``. The illiquid return is tapered at high wealth,
    ``ra (1 - (1.33 a_max / a)^(1 - tau))``, so that holdings stay bounded when
    ``ra`` is well above ``rb_pos``.

    Attributes:
        model_type: Discriminator used by the top-level ``Config``.
        risk_aversion: CRRA coefficient gamma.
        discount_rate: Rate of time preference rho.
        illiquid_return: ra.
        liquid_return_saving: rb_pos.
        liquid_return_borrowing: rb_neg.
        adjustment_cost_linear: chi0.
        adjustment_cost_convex: chi1.
        deposit_share: xi.
        wage: w.
        return_taper: tau.
        income: Income levels and switching generator.
        liquid_grid: Grid of b.
        illiquid_grid: Grid of a (lower bound must be non-negative).
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_type: Literal["two_asset"] = "two_asset"
    risk_aversion: float = Field(default=2.0, gt=0, description="CRRA coefficient gamma")
    discount_rate: float = Field(default=0.06, gt=0, description="Discount rate rho")
    illiquid_return: float = Field(default=0.05, description="Illiquid return ra")
    liquid_return_saving: float = Field(default=0.03, description="Liquid return rb_pos")
    liquid_return_borrowing: float = Field(default=0.12, description="Borrowing rate rb_neg")
    adjustment_cost_linear: float = Field(default=0.03, ge=0, description="chi0")
    adjustment_cost_convex: float = Field(default=2.0, gt=0, description="chi1")
    deposit_share: float = Field(default=0.1, ge=0, le=1, description="Automatic deposit xi")
    wage: float = Field(default=4.0, gt=0, description="Wage w")
    return_taper: float = Field(default=10.0, gt=1, description="Return taper tau")
    income: IncomeProcessConfig = Field(
        default_factory=lambda: IncomeProcessConfig(
            levels=[0.8, 1.3], generator=[[-1 / 3, 1 / 3], [1 / 3, -1 / 3]]
        )
    )
    liquid_grid: AssetGridConfig = Field(
        default_factory=lambda: AssetGridConfig(
            name="b", min_value=-2.0, max_value=40.0, num_points=100
        )
    )
    illiquid_grid: AssetGridConfig = Field(
        default_factory=lambda: AssetGridConfig(
            name="a", min_value=0.0, max_value=70.0, num_points=50
        )
    )

    @model_validator(mode="after")
    def validate_two_asset(self):
        """Check the illiquid bound and liquid borrowing limit."""
        issues: List[str] = []
        if self.illiquid_grid.min_value < 0:
            issues.append(
                f"Illiquid asset cannot be borrowed: lower bound {self.illiquid_grid.min_value} < 0"
            )
        lowest = (1 - self.deposit_share) * self.wage * min(self.income.levels)
        if self.liquid_grid.min_value < 0:
            lowest += self.liquid_return_borrowing * self.liquid_grid.min_value
        if lowest <= 0:
            issues.append(
                f"Liquid borrowing limit {self.liquid_grid.min_value} is not feasible: "
                f"disposable income at the limit is {lowest:.4g}"
            )
        if issues:
            raise InvalidModelError(issues)

        if self.illiquid_return - 1 / self.adjustment_cost_convex > 0:
            warnings.warn(
                f"ra - 1/chi1 = {self.illiquid_return - 1 / self.adjustment_cost_convex:.4f} > 0: "
                "illiquid holdings may grow without bound",
                ConfigurationWarning,
                stacklevel=2,
            )
        return self
