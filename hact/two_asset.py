"""Two-asset household problem with a kinked deposit adjustment cost.

The household holds liquid wealth ``b`` and illiquid wealth ``a >= 0``:

    db/dt = (1 - xi) w z + Rb(b) b - d - chi(d, a) - c
    da/dt = d + xi w z + Ra(a) a

with ``chi(d, a) = chi0 |d| + chi1 d^2 / 2 / max(a, 1e-5)``. Consumption and
deposits are upwinded separately in the ``b`` direction, deposits once more
in the ``a`` direction, following Kaplan, Moll and Violante (2018).
"""

import logging
from typing import List, Tuple

import numpy as np

from .config.models import TwoAssetConfig
from .household import DRIFT_THRESHOLD, HouseholdModel, PolicyStep
from .state_space import StateSpace
from .utility import CRRAUtility

logger = logging.getLogger(__name__)

LIQUID, ILLIQUID = 0, 1

# Floors used by the adjustment-cost and consumption FOCs
_ILLIQUID_FLOOR = 1e-5
_MARGINAL_FLOOR = 1e-6
# The illiquid return is tapered above this multiple of a_max
_TAPER_SCALE = 1.33


class TwoAssetModel(HouseholdModel):
    """Liquid/illiquid household problem.

    Args:
        config: Model parameters.
    """

    def __init__(self, config: TwoAssetConfig):
        self.config = config
        self.discount_rate = config.discount_rate
        self.utility = CRRAUtility(config.risk_aversion, marginal_floor=_MARGINAL_FLOOR)
        self.state_space = StateSpace([config.liquid_grid, config.illiquid_grid], config.income)

        space = self.state_space
        liquid = space.mesh(LIQUID)
        illiquid = space.mesh(ILLIQUID)
        labour = config.wage * space.income_mesh

        liquid_rate = np.where(
            liquid > 0,
            config.liquid_return_saving,
            np.where(liquid < 0, config.liquid_return_borrowing, 0.0),
        )
        self.liquid_income = liquid_rate * liquid
        self.illiquid_income = self.illiquid_return(illiquid) * illiquid
        # consumption when neither consuming out of nor adding to liquid wealth
        self.disposable_income = (1 - config.deposit_share) * labour + self.liquid_income
        self.automatic_deposit = config.deposit_share * labour
        self._illiquid = illiquid

    def illiquid_return(self, illiquid: np.ndarray) -> np.ndarray:
        """Tapered illiquid return ``ra (1 - (1.33 a_max / a)^(1 - tau))``."""
        cfg = self.config
        a_max = cfg.illiquid_grid.max_value
        with np.errstate(divide="ignore"):
            taper = (_TAPER_SCALE * a_max / np.asarray(illiquid, dtype=float)) ** (
                1 - cfg.return_taper
            )
        return cfg.illiquid_return * (1 - taper)

    def adjustment_cost(self, deposit: np.ndarray) -> np.ndarray:
        """Cost ``chi(d, a)`` of depositing ``d`` at every state."""
        cfg = self.config
        return cfg.adjustment_cost_linear * np.abs(deposit) + (
            cfg.adjustment_cost_convex
            * deposit**2
            / 2
            / np.maximum(self._illiquid, _ILLIQUID_FLOOR)
        )

    def optimal_deposit(self, dv_illiquid: np.ndarray, dv_liquid: np.ndarray) -> np.ndarray:
        """Deposit solving the first-order condition of the adjustment problem.

        Inside the inaction band ``|pa/pb - 1| <= chi0`` the deposit is zero.
        """
        cfg = self.config
        ratio = dv_illiquid / np.maximum(dv_liquid, _MARGINAL_FLOOR)
        chi0 = cfg.adjustment_cost_linear
        scaled = np.minimum(ratio - 1 + chi0, 0.0) + np.maximum(ratio - 1 - chi0, 0.0)
        return scaled * self._illiquid / cfg.adjustment_cost_convex

    def initial_value(self) -> np.ndarray:
        cash = self.disposable_income + self.illiquid_income
        return self.utility.evaluate(cash) / self.discount_rate

    def boundary_derivatives(self, dim: int) -> Tuple[np.ndarray, np.ndarray]:
        if dim == LIQUID:
            marginal = self.utility.derivative(self.disposable_income)
            return marginal, marginal
        # never selected by the upwind rule
        zeros = np.zeros(self.state_space.shape)
        return zeros, zeros

    def _upwind_deposit(
        self,
        d_forward_a: np.ndarray,
        d_backward_a: np.ndarray,
        lower_a: np.ndarray,
        upper_a: np.ndarray,
        inflow: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Split the deposit for one liquid-derivative candidate by illiquid direction.

        Returns:
            ``(up, down)``: the deposit upwinded on the forward and on the
            backward illiquid derivative. Their sum is the deposit. At ``a_max``
            the deposit is capped at ``-inflow`` so the illiquid drift cannot
            point outwards.
        """
        up = np.where(d_forward_a > 0, d_forward_a, 0.0)
        down = np.where(d_backward_a < 0, d_backward_a, 0.0)
        # no withdrawals at a_min
        up = np.where(lower_a, np.where(d_forward_a > DRIFT_THRESHOLD, d_forward_a, 0.0), up)
        down = np.where(lower_a, 0.0, down)
        # only withdrawals at a_max, at least as large as the inflow
        capped = np.minimum(np.where(d_backward_a < -DRIFT_THRESHOLD, d_backward_a, 0.0), -inflow)
        up = np.where(upper_a, 0.0, up)
        down = np.where(upper_a, capped, down)
        return up, down

    def optimal_policy(
        self, dv_forward: List[np.ndarray], dv_backward: List[np.ndarray]
    ) -> PolicyStep:
        space = self.state_space
        vb_forward, va_forward = dv_forward
        vb_backward, va_backward = dv_backward
        lower_b, upper_b = space.lower_boundary(LIQUID), space.upper_boundary(LIQUID)
        lower_a, upper_a = space.lower_boundary(ILLIQUID), space.upper_boundary(ILLIQUID)
        inflow = self.automatic_deposit + self.illiquid_income

        # consumption candidates and their liquid drift
        c_forward = self.utility.inverse_derivative(vb_forward)
        c_backward = self.utility.inverse_derivative(vb_backward)
        sc_forward = self.disposable_income - c_forward
        sc_backward = self.disposable_income - c_backward

        # deposit candidates d_xy: x is the side of Vb, y the side of Va
        d_bb = self.optimal_deposit(va_backward, vb_backward)
        d_fb = self.optimal_deposit(va_backward, vb_forward)
        d_bf = self.optimal_deposit(va_forward, vb_backward)
        d_ff = self.optimal_deposit(va_forward, vb_forward)

        up_backward, down_backward = self._upwind_deposit(d_bf, d_bb, lower_a, upper_a, inflow)
        up_forward, down_forward = self._upwind_deposit(d_ff, d_fb, lower_a, upper_a, inflow)
        deposit_backward = up_backward + down_backward
        deposit_forward = up_forward + down_forward

        sd_backward = -deposit_backward - self.adjustment_cost(deposit_backward)
        sd_forward = -deposit_forward - self.adjustment_cost(deposit_forward)
        sd_forward = np.where(upper_b, np.minimum(sd_forward, 0.0), sd_forward)

        ic_forward = (sc_forward > DRIFT_THRESHOLD) & ~upper_b
        ic_backward = (sc_backward < -DRIFT_THRESHOLD) & ~ic_forward & ~lower_b
        ic_stay = ~ic_forward & ~ic_backward

        id_forward = (sd_forward > DRIFT_THRESHOLD) & ~upper_b
        id_backward = (sd_backward < -DRIFT_THRESHOLD) & ~id_forward & ~lower_b

        consumption = (
            c_forward * ic_forward + c_backward * ic_backward + self.disposable_income * ic_stay
        )
        deposit = deposit_forward * id_forward + deposit_backward * id_backward

        # at a_max with no liquid direction the inflow is withdrawn and consumed
        absorbed = upper_a & ~id_forward & ~id_backward
        withdrawal = np.where(absorbed, -inflow, 0.0)
        consumption = consumption + np.where(
            absorbed, -withdrawal - self.adjustment_cost(withdrawal), 0.0
        )
        deposit = deposit + withdrawal

        liquid_up = sc_forward * ic_forward + sd_forward * id_forward
        liquid_down = sc_backward * ic_backward + sd_backward * id_backward

        # illiquid direction: deposits upwinded on Va, fixed inflows always up
        d_up = up_backward * id_backward + up_forward * id_forward
        d_down = down_backward * id_backward + down_forward * id_forward + withdrawal
        illiquid_up = np.where(upper_a, 0.0, d_up + inflow)
        illiquid_down = np.where(upper_a, d_down + inflow, d_down)

        return PolicyStep(
            reward=self.utility.evaluate(consumption),
            controls={"consumption": consumption, "deposit": deposit},
            drift_up=[liquid_up, illiquid_up],
            drift_down=[liquid_down, illiquid_down],
        )
