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
Co-ordinated species and gene tree move from Jones (2015), see
http://dx.doi.org/10.1101/010199.

The species tree root and every gene tree node that is tied to the root
population are moved by the same amount. The amount is drawn from an
exponential distribution, offset so that no moved node can pass below a node
that stays put, which preserves the topology of every tree.

Author : Mark Kessler
Last Edit : 3/11/25
First Included in Version : 1.0.0
Docs   - [x]
Tests  - [x]
Design - [x]
"""

from __future__ import annotations
from enum import Enum
import logging
import math
import numpy as np
from .AdaptiveMove import AdaptiveMove
from .Model import CoalescentModel
from .Move import HeightInvariantError, MoveError
from .Tree import Node

logger = logging.getLogger(__name__)

# Absolute slack (scaled by node height) allowed when checking that a moved
# node has not passed one of its neighbours, to absorb rounding in h + shift.
HEIGHT_TOLERANCE = 1e-10

##########################
#### HELPER FUNCTIONS ####
##########################

class MinimumDouble:
    """
    Keeps the smallest of a stream of values. Unset until the first value is
    recorded.
    """

    def __init__(self) -> None:
        self.value : float = math.inf
        self.recorded : bool = False

    def set(self, value : float) -> None:
        """
        Record a candidate. The stored value only ever goes down.

        Args:
            value (float): A candidate bound.
        """
        self.recorded = True
        if value < self.value:
            self.value = value

    def is_set(self) -> bool:
        return self.recorded

    def get(self) -> float:
        """
        Raises:
            MoveError: If nothing has been recorded yet.
        Returns:
            float: The minimum of every value recorded so far.
        """
        if not self.recorded:
            raise MoveError("MinimumDouble is unset.")
        return self.value


class Descent(Enum):
    """
    Which children of the species tree node of interest a gene tree node's
    tips descend through.
    """
    LEFT_ONLY = 0
    RIGHT_ONLY = 1
    BOTH = 2
    NEITHER = 3


def leaf_descent(leaf : Node, left_taxa : set[str],
                 right_taxa : set[str]) -> Descent:
    """
    Classify a gene tree tip by its label alone.

    Args:
        leaf (Node): A gene tree leaf.
        left_taxa (set[str]): Tip labels under the species node's left child.
        right_taxa (set[str]): Tip labels under the species node's right child.
    Returns:
        Descent: LEFT_ONLY, RIGHT_ONLY, or NEITHER if the label is in
                 neither set.
    """
    name = leaf.get_name()
    if name in left_taxa:
        return Descent.LEFT_ONLY
    elif name in right_taxa:
        return Descent.RIGHT_ONLY
    return Descent.NEITHER


def combine_descent(node : Node, left_descent : Descent,
                    right_descent : Descent, connecting : set[Node],
                    freedom : MinimumDouble) -> Descent:
    """
    Classify an internal gene tree node from the classes of its children.
    Nodes that join lineages from both sides of the species node are added to
    'connecting', and the lengths of any branches hanging off of them that
    will not move are recorded in 'freedom'.

    Args:
        node (Node): An internal gene tree node.
        left_descent (Descent): The class of node's left child.
        right_descent (Descent): The class of node's right child.
        connecting (set[Node]): Connecting nodes found so far (edited).
        freedom (MinimumDouble): Tipward freedom found so far (edited).
    Returns:
        Descent: The class of node.
    """
    if left_descent == right_descent:
        if left_descent == Descent.BOTH:
            connecting.add(node)
        return left_descent

    height = node.get_height()

    if left_descent == Descent.BOTH or right_descent == Descent.BOTH:
        if left_descent == Descent.BOTH:
            other, other_descent = node.get_right(), right_descent
        else:
            other, other_descent = node.get_left(), left_descent

        # The BOTH child is the root of a connected component
        if other_descent == Descent.NEITHER:
            return Descent.NEITHER

        # Component continues through node, the other child stays put
        freedom.set(height - other.get_height())
        connecting.add(node)
        return Descent.BOTH

    if left_descent == Descent.NEITHER or right_descent == Descent.NEITHER:
        return Descent.NEITHER

    # One LEFT_ONLY and one RIGHT_ONLY child: tip of a connected component
    freedom.set(height - node.get_left().get_height())
    freedom.set(height - node.get_right().get_height())
    connecting.add(node)
    return Descent.BOTH


def classify_descent(gene_root : Node, left_taxa : set[str],
                     right_taxa : set[str], connecting : set[Node],
                     freedom : MinimumDouble) -> Descent:
    """
    Classify every node of one gene tree (post-order, explicit stack) and
    collect the nodes whose heights are tied to the species node of interest.

    Args:
        gene_root (Node): Root of the gene tree.
        left_taxa (set[str]): Tip labels under the species node's left child.
        right_taxa (set[str]): Tip labels under the species node's right child.
        connecting (set[Node]): Receives the connecting nodes.
        freedom (MinimumDouble): Receives the tipward freedom bounds.
    Returns:
        Descent: The class of gene_root.
    """
    descent : dict[Node, Descent] = {}
    stack : list[tuple[Node, bool]] = [(gene_root, False)]

    while len(stack) != 0:
        node, children_done = stack.pop()
        if node.is_leaf():
            descent[node] = leaf_descent(node, left_taxa, right_taxa)
        elif children_done:
            descent[node] = combine_descent(node,
                                            descent.pop(node.get_left()),
                                            descent.pop(node.get_right()),
                                            connecting,
                                            freedom)
        else:
            stack.append((node, True))
            stack.append((node.get_right(), False))
            stack.append((node.get_left(), False))

    return descent[gene_root]


def connecting_nodes(left_taxa : set[str], right_taxa : set[str],
                     gene_trees : list, freedom : MinimumDouble
                     ) -> dict[int, set[Node]]:
    """
    Run the descent classification over every gene tree, sharing one
    MinimumDouble.

    Args:
        left_taxa (set[str]): Tip labels under the species node's left child.
        right_taxa (set[str]): Tip labels under the species node's right child.
        gene_trees (list): The gene trees (anything iterable of Tree).
        freedom (MinimumDouble): Receives the tipward freedom bounds.
    Returns:
        dict[int, set[Node]]: gene tree index -> connecting nodes of that tree
    """
    all_connecting : dict[int, set[Node]] = {}
    for index, gene_tree in enumerate(gene_trees):
        tree_connecting : set[Node] = set()
        classify_descent(gene_tree.get_root(), left_taxa, right_taxa,
                         tree_connecting, freedom)
        all_connecting[index] = tree_connecting
    return all_connecting

##############
#### MOVE ####
##############

class CoordinatedExponential(AdaptiveMove):
    """
    Moves the species tree root, and the gene tree nodes tied to the root
    population, by one shared amount drawn from a shifted exponential.
    """

    def __init__(self,
                 model : CoalescentModel = None,
                 beta : float = 1.0,
                 optimise : bool = True,
                 target_acceptance : float = 0.234,
                 rng : np.random.Generator = None) -> None:
        """
        Args:
            model (CoalescentModel, optional): Model for propose() to act on.
                                               Defaults to None (execute can
                                               still be given one).
            beta (float, optional): Mean of the exponential proposal
                                    distribution. Defaults to 1.0.
            optimise (bool, optional): Adjust beta during the run to improve
                                       mixing. Defaults to True.
            target_acceptance (float, optional): Acceptance probability that
                                                 tuning aims for.
                                                 Defaults to 0.234.
            rng (np.random.Generator, optional): Source of exponential draws.
                                                 Defaults to a fresh
                                                 default_rng().
        Raises:
            MoveError: If beta is not a positive, finite number.
        """
        super().__init__(optimise, target_acceptance)
        self.model = model
        self.rng = rng if rng is not None else np.random.default_rng()
        self.set_coercable_parameter_value(beta)

        self.last_slack : float = None
        self.last_shift : float = None
        self.last_connecting : dict[int, set[Node]] = {}

    def get_coercable_parameter_value(self) -> float:
        return self.beta

    def set_coercable_parameter_value(self, value : float) -> None:
        if not (math.isfinite(value) and value > 0):
            raise MoveError(f"beta must be a positive number, got {value}")
        self.beta : float = value
        self.lam : float = 1.0 / value

    def parameter_name(self) -> str:
        return "beta"

    def get_connecting_nodes(self, model : CoalescentModel,
                             species_node : Node,
                             freedom : MinimumDouble) -> dict[int, set[Node]]:
        """
        Identify gene tree nodes which descend through both (and also descend
        exclusively through) the left and right children of species_node.
        """
        left_taxa = model.descendant_taxa(species_node.get_left())
        right_taxa = model.descendant_taxa(species_node.get_right())
        return connecting_nodes(left_taxa, right_taxa, model.gene_trees,
                                freedom)

    def execute(self, model : CoalescentModel) -> CoalescentModel:
        """
        Shift the species tree root and its connecting gene tree nodes.

        Args:
            model (CoalescentModel): the model to edit in place.
        Raises:
            HeightInvariantError: If the tipward freedom is negative, or the
                                  shift leaves a node out of order.
        Returns:
            CoalescentModel: the edited model.
        """
        species_root = model.species_tree.get_root()

        current_root_height = species_root.get_height()
        left_child_height = species_root.get_left().get_height()
        right_child_height = species_root.get_right().get_height()

        tipward_freedom = MinimumDouble()
        tipward_freedom.set(current_root_height - left_child_height)
        tipward_freedom.set(current_root_height - right_child_height)

        connecting = self.get_connecting_nodes(model, species_root,
                                               tipward_freedom)
        slack = tipward_freedom.get()
        if slack < 0:
            raise HeightInvariantError(f"Negative tipward freedom ({slack}); \
                                         the trees were out of order before \
                                         the move.")

        shift = self.rng.exponential(self.beta) - slack

        # children before parents, so every child already has its final height
        moved : list[Node] = [species_root]
        for index in sorted(connecting):
            gene_tree = model.gene_trees[index]
            moved.extend(node for node in reversed(list(gene_tree.preorder()))
                         if node in connecting[index])

        self.undo_info = [(node, node.get_height()) for node in moved]
        for node in moved:
            new_height = node.get_height() + shift
            highest = max(child.get_height() for child in node.get_children())
            # land exactly on a child the shift only misses by rounding
            if 0 < highest - new_height <= HEIGHT_TOLERANCE * max(1.0, highest):
                new_height = highest
            node.set_height(new_height)

        self.last_slack = slack
        self.last_shift = shift
        self.last_connecting = connecting

        logger.debug("slack = %f, shift = %f, %d gene tree nodes moved",
                     slack, shift, len(moved) - 1)

        check_heights(moved)
        return model

    def undo(self, model : CoalescentModel) -> None:
        if self.undo_info is None:
            raise MoveError("There is no executed move to undo.")
        for node, height in self.undo_info:
            node.set_height(height)
        self.undo_info = None

    def hastings_ratio(self) -> float:
        """
        Returns:
            float: log ratio of the density of the proposed over the current
                   species tree root heights, lambda * shift.
        """
        if self.last_shift is None:
            raise MoveError("The move has not been executed yet.")
        return self.lam * self.last_shift


def check_heights(moved : list[Node]) -> None:
    """
    Make sure each moved node still sits between its parent and children.

    Args:
        moved (list[Node]): Nodes whose heights changed.
    Raises:
        HeightInvariantError: If any moved node is out of order.
    """
    for node in moved:
        height = node.get_height()
        tol = HEIGHT_TOLERANCE * max(1.0, abs(height))
        for child in node.get_children():
            if child.get_height() - height > tol:
                raise HeightInvariantError(f"Node {node.label()} moved below \
                                             its child {child.label()}.")
        parent = node.get_parent()
        if parent is not None and height - parent.get_height() > tol:
            raise HeightInvariantError(f"Node {node.label()} moved above its \
                                         parent {parent.label()}.")
