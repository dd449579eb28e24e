"""
Author : Mark Kessler
Last Stable Edit : 3/11/25
First Included in Version : 1.0.0
Approved to Release Date : N/A
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from .Model import CoalescentModel


class MoveError(Exception):
    def __init__(self, message="Error making a move"):
        self.message = message
        super().__init__(self.message)


class HeightInvariantError(MoveError):
    """
    A move left a node younger than one of its children. This is never an
    expected outcome of a correct move, so it is never caught by the sampler.
    """
    def __init__(self, message="A move broke the node height ordering"):
        super().__init__(message)


class Move(ABC):
    """
    Abstract superclass for all model move types.

    A move can be executed on a model that is passed in, and makes a
    reversible edit to one aspect of the model. Enough information to restore
    the model is kept in 'undo_info' until the next execution.
    """

    def __init__(self):
        self.model = None
        self.undo_info = None

    @abstractmethod
    def execute(self, model: CoalescentModel) -> CoalescentModel:
        """
        Input: model, a CoalescentModel obj
        Output: the same model, edited in place by this operation

        """
        pass

    @abstractmethod
    def undo(self, model: CoalescentModel) -> None:
        pass

    @abstractmethod
    def hastings_ratio(self) -> float:
        """
        Returns the log Hastings ratio of the last execution.
        """
        pass

    def propose(self) -> float:
        """
        Execute this move on its own model, and return the log Hastings ratio.
        """
        if self.model is None:
            raise MoveError("This move has no model to propose changes to.")
        self.execute(self.model)
        return self.hastings_ratio()
