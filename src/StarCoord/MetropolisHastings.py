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
Last Stable Edit : 3/11/25
First Included in Version : 1.0.0
Docs   - [x]
Tests  - [x]
Design - [x]
"""

from __future__ import annotations
from abc import ABC, abstractmethod
import logging
import math
from typing import Callable
import numpy as np
from .AdaptiveMove import AdaptiveMove
from .Model import CoalescentModel
from .Move import Move
from .State import State

logger = logging.getLogger(__name__)

###########################
#### EXCEPTION CLASSES ####
###########################

class MetropolisHastingsException(Exception):
    """
    This exception is raised when there is an error setting up or running the
    Metropolis Hastings algorithm.
    """

    def __init__(self,
                 message : str = "Error running Metropolis-Hastings") -> None:
        self.message = message
        super().__init__(self.message)

##########################
#### PROPOSAL KERNELS ####
##########################

class ProposalKernel(ABC):
    """
    Abstract class that defines proposal kernel behavior.

    In general, simply must have a generate method that spits out a move.
    """

    @abstractmethod
    def generate(self) -> Move:
        """
        *ABSTRACT METHOD*

        Pick the next move to apply to the model.

        Returns:
            Move: Any object that is a subclass of Move.
        """
        raise NotImplementedError("Calling abstract method from the \
                                  ProposalKernel superclass.")


class WeightedKernel(ProposalKernel):
    """
    Chooses among a fixed set of move instances with probability proportional
    to their weights. The same instances are returned each time, so adaptive
    moves keep their tuning state across the run.
    """

    def __init__(self,
                 moves : list[Move],
                 weights : list[float] | None = None,
                 rng : np.random.Generator = None) -> None:
        """
        Args:
            moves (list[Move]): Moves to choose from.
            weights (list[float] | None, optional): Non-negative weight per
                                                    move. Defaults to None
                                                    (equal weights).
            rng (np.random.Generator, optional): Random source. Defaults to a
                                                 fresh default_rng().
        Raises:
            MetropolisHastingsException: If there are no moves, or the weights
                                         don't match up with the moves.
        """
        if len(moves) == 0:
            raise MetropolisHastingsException("A kernel needs at least one \
                                               move.")
        if weights is None:
            weights = [1.0] * len(moves)
        if len(weights) != len(moves):
            raise MetropolisHastingsException("There must be one weight per \
                                               move.")
        weights = np.asarray(weights, dtype = float)
        if np.any(weights < 0) or weights.sum() <= 0:
            raise MetropolisHastingsException("Weights must be non-negative \
                                               and not all zero.")

        self.moves : list[Move] = list(moves)
        self.probs : np.ndarray = weights / weights.sum()
        self.rng = rng if rng is not None else np.random.default_rng()

    def generate(self) -> Move:
        return self.moves[self.rng.choice(len(self.moves), p = self.probs)]

###########################
#### METRO-HASTINGS #######
###########################

class MetropolisHastings:
    """
    Metropolis-Hastings over a multispecies coalescent model. The posterior
    is supplied by the caller, the chain only handles proposing, accepting,
    rejecting and tuning.
    """

    def __init__(self,
                 pkernel : ProposalKernel,
                 model : CoalescentModel,
                 log_posterior : Callable[[CoalescentModel], float],
                 num_iter : int = 500,
                 rng : np.random.Generator = None) -> None:
        """
        Args:
            pkernel (ProposalKernel): A concrete proposal kernel.
            model (CoalescentModel): The starting state.
            log_posterior (Callable[[CoalescentModel], float]): Unnormalized
                                                log posterior density of a
                                                model.
            num_iter (int, optional): Number of proposals to make. Defaults to
                                      500.
            rng (np.random.Generator, optional): Random source for the
                                                 accept/reject draws. Defaults
                                                 to a fresh default_rng().
        Raises:
            MetropolisHastingsException: If num_iter is negative, or the
                                         starting model has trees out of
                                         order.
        """
        if num_iter < 0:
            raise MetropolisHastingsException("The number of iterations must \
                                               be non-negative.")
        if not model.is_monotone():
            raise MetropolisHastingsException("The starting model has a node \
                                               younger than its child.")

        self.current_state = State(model)
        self.kernel = pkernel
        self.log_posterior = log_posterior
        self.num_iter = num_iter
        self.rng = rng if rng is not None else np.random.default_rng()
        self.trace : list[tuple[int, float, float]] = []

    def step(self, current : float) -> tuple[float, bool]:
        """
        Make one proposal and decide on it.

        Args:
            current (float): log posterior of the current state.
        Returns:
            tuple[float, bool]: the log posterior of the (possibly new)
                                current state, and whether the proposal was
                                accepted.
        """
        move = self.kernel.generate()

        if not self.current_state.generate_next(move):
            log_alpha = -math.inf
            accepted = False
        else:
            proposed = self.log_posterior(self.current_state.current_model)
            log_alpha = proposed - current + move.hastings_ratio()
            # 1 - u keeps the uniform draw in (0, 1]
            accepted = math.log(1.0 - self.rng.random()) < log_alpha

            if accepted:
                self.current_state.commit(move)
                current = proposed
            else:
                self.current_state.revert(move)

        if isinstance(move, AdaptiveMove):
            if accepted:
                move.accept()
            else:
                move.reject()
            move.optimize(log_alpha)

        return current, accepted

    def run(self) -> State:
        """
        Run the Metropolis-Hastings algorithm.

        Returns:
            State: The end state of the chain. Per iteration log posteriors
                   and species root heights are kept in self.trace.
        """
        self.current_state.write_line_to_summary("----------------------------")
        self.current_state.write_line_to_summary("----Begin Metro-Hastings----")

        model = self.current_state.current_model
        current = self.log_posterior(model)
        accepted_ct = 0

        for iter_no in range(self.num_iter):
            current, accepted = self.step(current)
            accepted_ct += int(accepted)

            root_height = model.species_tree.get_root().get_height()
            self.trace.append((iter_no, current, root_height))
            logger.debug("iter %d: log posterior = %f, root height = %f, "
                         "accepted = %s", iter_no, current, root_height,
                         accepted)
            self.current_state.write_line_to_summary("ITER #" + str(iter_no)
                                                     + " LOG POSTERIOR = "
                                                     + str(current))

        logger.info("Metropolis-Hastings finished %d iterations, %d accepted",
                    self.num_iter, accepted_ct)
        for move in getattr(self.kernel, "moves", []):
            if isinstance(move, AdaptiveMove):
                suggestion = move.performance_suggestion()
                if suggestion != "":
                    logger.info("%s: %s", type(move).__name__, suggestion)

        self.current_state.write_line_to_summary("DONE. EXITED WITH 0 ERRORS")
        self.current_state.write_line_to_summary("--------------------------")
        return self.current_state
