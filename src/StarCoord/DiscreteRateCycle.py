"""
Author : Mark Kessler
Last Edit : 3/11/25
First Included in Version : 1.0.0
"""

from __future__ import annotations
import numpy as np
from .AdaptiveMove import AdaptiveMove
from .Model import CoalescentModel
from .Move import MoveError


class DiscreteRateCycle(AdaptiveMove):
    """
    Picks k distinct species tree branches and passes their discrete rate
    categories one step around the cycle they form. The proposal is
    symmetric, so the Hastings ratio is always 0 (log scale).

    k is the tuned parameter. It is kept as a continuous value and rounded
    when used, clamped to [min(3, n), n] for n branches.
    """

    def __init__(self,
                 model : CoalescentModel = None,
                 k : float = 3.0,
                 optimise : bool = True,
                 target_acceptance : float = 0.234,
                 rng : np.random.Generator = None) -> None:
        super().__init__(optimise, target_acceptance)
        self.model = model
        self.rng = rng if rng is not None else np.random.default_rng()
        self.continuous_k : float = k

    def limits(self, model : CoalescentModel) -> tuple[int, int]:
        n = len(model.branch_rates)
        return min(3, n), n

    def discrete_k(self, model : CoalescentModel) -> int:
        lower, upper = self.limits(model)
        return int(min(max(round(self.continuous_k), lower), upper))

    def get_coercable_parameter_value(self) -> float:
        return self.continuous_k

    def set_coercable_parameter_value(self, value : float) -> None:
        if self.model is not None and self.model.branch_rates is not None:
            lower, upper = self.limits(self.model)
            value = min(max(value, lower), upper)
        self.continuous_k = value

    def parameter_name(self) -> str:
        return "k"

    def execute(self, model : CoalescentModel) -> CoalescentModel:
        if model.branch_rates is None:
            raise MoveError("The model has no branch rates to cycle.")

        rates = model.branch_rates
        k = self.discrete_k(model)
        cycle = self.rng.choice(len(rates), size = k, replace = False)

        self.undo_info = rates.copy()
        # Each chosen branch takes the rate of the one before it in the cycle
        rates[cycle] = self.undo_info[np.roll(cycle, 1)]
        return model

    def undo(self, model : CoalescentModel) -> None:
        if self.undo_info is None:
            raise MoveError("There is no executed move to undo.")
        model.branch_rates[:] = self.undo_info
        self.undo_info = None

    def hastings_ratio(self) -> float:
        return 0.0
