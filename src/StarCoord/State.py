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
Approved for Release: No
"""

from typing import Callable
from .Model import CoalescentModel
from .Move import Move


def monotone_routine(model : CoalescentModel) -> bool:
    """
    Checks every tree in the Model for nodes that are younger than one of
    their children.

    Args:
        model (CoalescentModel): A multispecies coalescent model.

    Returns:
        bool: True if every tree in the model is correctly ordered in time.
    """
    return model.is_monotone()


class State:
    """
    Class that implements accept/reject functionality for the
    Metropolis-Hastings algorithm around a single model that moves edit in
    place.

    Rejection is implemented by having the move undo its own edit (like git
    revert), so every height a move touches is restored to its prior value.
    Acceptance simply keeps the edit.
    """

    def __init__(self,
                 model : CoalescentModel,
                 validate : Callable[[CoalescentModel], bool] = monotone_routine
                 ) -> None:
        """
        Args:
            model (CoalescentModel): The model the chain runs on.
            validate (Callable[[CoalescentModel], bool]): A callable function
                                                that checks for model
                                                validity after a move.
                                                Defaults to
                                                'monotone_routine'.
        Returns:
            N/A
        """
        self.current_model = model
        self.validation_routine = validate

    def generate_next(self, move : Move) -> bool:
        """
        Apply one move to the model.

        Args:
            move (Move): Any instantiated subclass of Move.

        Returns:
            bool: True if the edited model is valid. If not, the move has
                  already been reverted.
        """
        move.execute(self.current_model)
        return self.validate_proposed(move)

    def revert(self, move : Move) -> None:
        """
        Undo the last move, the move that was made was not accepted.

        Args:
            move (Move): The move that was last executed.
        """
        move.undo(self.current_model)

    def commit(self, move : Move) -> None:
        """
        Keep the edit. The move's undo information is dropped.

        Args:
            move (Move): The move that was last executed.
        """
        move.undo_info = None

    def write_line_to_summary(self, line : str) -> None:
        """
        Accumulate log output by appending line to the end of the
        current string. 'line' need not be new line terminated.

        Args:
            line (str): logging information, plain text.
        """
        self.current_model.summary_str += line.strip() + "\n"

    def validate_proposed(self, prev_move : Move) -> bool:
        if self.validation_routine(self.current_model):
            return True
        self.revert(prev_move)
        return False
