#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- StarCoord --
##  Coordinated species and gene tree moves for multispecies coalescent MCMC
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##
##  See "LICENSE.txt" for terms and conditions of usage.
##
##############################################################################

"""
Author : Mark Kessler
Last Edit : 3/11/25
First Included in Version : 1.0.0
Docs   - [x]
Tests  - [x]
Design - [x]
"""

from __future__ import annotations
import logging
import math
from abc import abstractmethod
from .Move import Move, MoveError

logger = logging.getLogger(__name__)


class AdaptiveMove(Move):
    """
    A move with one tunable scalar (its "coercable" parameter) that is
    adjusted during a run so that the observed acceptance probability drifts
    towards a target value.

    Subclasses say what the parameter is by implementing
    get_coercable_parameter_value and set_coercable_parameter_value.
    """

    def __init__(self,
                 optimise : bool = True,
                 target_acceptance : float = 0.234) -> None:
        """
        Args:
            optimise (bool, optional): Tune the coercable parameter during the
                                       run. Defaults to True.
            target_acceptance (float, optional): Acceptance probability to aim
                                                 for. Must be in (0, 1).
                                                 Defaults to 0.234.
        Raises:
            MoveError: If target_acceptance is not in (0, 1).
        """
        super().__init__()
        if not 0 < target_acceptance < 1:
            raise MoveError("The target acceptance probability must be \
                             strictly between 0 and 1.")
        self.optimise : bool = optimise
        self.target_acceptance : float = target_acceptance
        self.accepted : int = 0
        self.rejected : int = 0

    @abstractmethod
    def get_coercable_parameter_value(self) -> float:
        raise NotImplementedError("Calling abstract method from the \
                                   AdaptiveMove superclass.")

    @abstractmethod
    def set_coercable_parameter_value(self, value : float) -> None:
        raise NotImplementedError("Calling abstract method from the \
                                   AdaptiveMove superclass.")

    def accept(self) -> None:
        self.accepted += 1

    def reject(self) -> None:
        self.rejected += 1

    def acceptance_probability(self) -> float:
        """
        Returns:
            float: Fraction of proposals that were accepted, or NaN if there
                   have been none.
        """
        total = self.accepted + self.rejected
        if total == 0:
            return math.nan
        return self.accepted / total

    def calc_delta(self, log_alpha : float) -> float:
        """
        Step size for a tuning update on the log scale. Positive when the
        last proposal was accepted more easily than the target rate, with
        steps shrinking as the run goes on.

        Args:
            log_alpha (float): log acceptance probability of the last
                               proposal.
        Returns:
            float: the change to apply to the log of the parameter.
        """
        alpha = math.exp(min(log_alpha, 0.0))
        delta = (alpha - self.target_acceptance) \
                / (self.accepted + self.rejected + 1.0)
        if math.isfinite(delta):
            return delta
        return 0.0

    def optimize(self, log_alpha : float) -> None:
        """
        Nudge the coercable parameter by calc_delta on the log scale. Does
        nothing unless optimisation is switched on.

        Args:
            log_alpha (float): log acceptance probability of the last
                               proposal.
        """
        if not self.optimise:
            return

        current = self.get_coercable_parameter_value()
        new_value = math.exp(self.calc_delta(log_alpha) + math.log(current))
        self.set_coercable_parameter_value(new_value)
        logger.debug("%s tuned %f -> %f", type(self).__name__, current,
                     self.get_coercable_parameter_value())

    def performance_suggestion(self) -> str:
        """
        Suggest a parameter value when the acceptance probability is far from
        the target.

        Returns:
            str: A suggestion, or "" when acceptance is in [0.1, 0.4] (or
                 there is no data yet).
        """
        prob = self.acceptance_probability()
        if math.isnan(prob):
            return ""

        ratio = prob / self.target_acceptance
        ratio = min(max(ratio, 0.5), 2.0)
        new_value = self.get_coercable_parameter_value() * ratio

        if prob < 0.10 or prob > 0.40:
            return f"Try setting {self.parameter_name()} to about {new_value:f}"
        return ""

    def parameter_name(self) -> str:
        return "the tuning parameter"
