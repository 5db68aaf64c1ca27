"""Huggett economy with N Poisson income states.

The household holds one liquid asset ``a >= a_min`` with return ``r`` and
receives labour income ``w z_j``:

    rho v_j(a) = max_c u(c) + v_j'(a) (w z_j + r a - c) + sum_k Lambda_jk v_k(a)
"""

import logging
from typing import List, Optional, Tuple

import numpy as np

from .config.models import HuggettConfig
from .household import HouseholdModel, PolicyStep
from .state_space import StateSpace
from .utility import CRRAUtility

logger = logging.getLogger(__name__)


class HuggettModel(HouseholdModel):
    """One-asset household problem.

    Args:
        config: Model parameters.
        interest_rate: Optional override of ``config.interest_rate``.
        wage: Optional override of ``config.wage``.

    Examples:
        Solve the two-state economy at r = 3%::

            model = HuggettModel(HuggettConfig(), interest_rate=0.03)
            solution = hact.solve(model)
    """

    def __init__(
        self,
        config: HuggettConfig,
        interest_rate: Optional[float] = None,
        wage: Optional[float] = None,
    ):
        updates = {}
        if interest_rate is not None:
            updates["interest_rate"] = interest_rate
        if wage is not None:
            updates["wage"] = wage
        if updates:
            config = HuggettConfig.model_validate({**config.model_dump(), **updates})

        self.config = config
        self.interest_rate = config.interest_rate
        self.wage = config.wage
        self.discount_rate = config.discount_rate
        self.utility = CRRAUtility(config.risk_aversion)
        self.state_space = StateSpace([config.asset_grid], config.income)

        assets = self.state_space.mesh(0)
        self.cash_on_hand = self.wage * self.state_space.income_mesh + self.interest_rate * assets

        if self.interest_rate >= self.discount_rate:
            logger.warning(
                f"r = {self.interest_rate} >= rho = {self.discount_rate}: assets accumulate "
                "at the upper bound of the grid"
            )

    def initial_value(self) -> np.ndarray:
        return self.utility.evaluate(self.cash_on_hand) / self.discount_rate

    def boundary_derivatives(self, dim: int) -> Tuple[np.ndarray, np.ndarray]:
        # zero saving at either bound: consume cash on hand
        marginal = self.utility.derivative(self.cash_on_hand)
        return marginal, marginal

    def optimal_policy(
        self, dv_forward: List[np.ndarray], dv_backward: List[np.ndarray]
    ) -> PolicyStep:
        space = self.state_space
        cash = self.cash_on_hand

        c_forward = self.utility.inverse_derivative(dv_forward[0])
        c_backward = self.utility.inverse_derivative(dv_backward[0])
        s_forward = cash - c_forward
        s_backward = cash - c_backward

        use_forward = (s_forward > 0) & ~space.upper_boundary(0)
        use_backward = (s_backward < 0) & ~use_forward & ~space.lower_boundary(0)
        stay = ~use_forward & ~use_backward

        consumption = c_forward * use_forward + c_backward * use_backward + cash * stay
        saving_up = np.where(use_forward, s_forward, 0.0)
        saving_down = np.where(use_backward, s_backward, 0.0)

        return PolicyStep(
            reward=self.utility.evaluate(consumption),
            controls={"consumption": consumption},
            drift_up=[saving_up],
            drift_down=[saving_down],
        )
