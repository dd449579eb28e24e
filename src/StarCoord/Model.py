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
import warnings
import numpy as np
from .GeneTrees import GeneTrees
from .Tree import Node, Tree

#########################
#### EXCEPTION CLASS ####
#########################

class ModelError(Exception):
    """
    Raised when a multispecies coalescent model is missing inputs or is built
    from trees that cannot support it.
    """
    def __init__(self, message : str = "Model is malformed") -> None:
        self.message = message
        super().__init__(self.message)

###############
#### MODEL ####
###############

class CoalescentModel:
    """
    The state of a multispecies coalescent analysis that moves act upon: one
    species tree, the gene trees embedded in it, and the mapping between
    species tree leaves and gene tree tips.

    The model is edited in place by moves. Undoing a rejected move is done
    by the move itself (see State).
    """

    def __init__(self,
                 species_tree : Tree,
                 gene_trees : GeneTrees | list[Tree],
                 taxon_map : dict[str, set[str]] | None = None,
                 branch_rates : np.ndarray | None = None) -> None:
        """
        Build a model.

        Args:
            species_tree (Tree): The species tree. Needs 2 or more leaves.
            gene_trees (GeneTrees | list[Tree]): The gene trees. May be empty,
                                                 but not None.
            taxon_map (dict[str, set[str]] | None, optional): species label ->
                            gene tree tip labels. Defaults to None, in which
                            case the gene trees' naming rule is used.
            branch_rates (np.ndarray | None, optional): Discrete rate category
                            per species tree node, indexed by node number.
                            Defaults to None.
        Raises:
            ModelError: If a tree input is missing or the species tree has
                        fewer than 2 leaves.
        Returns:
            N/A
        """
        if species_tree is None:
            raise ModelError("A species tree is required.")
        if gene_trees is None:
            raise ModelError("Gene trees are required (an empty collection is \
                              allowed).")
        if species_tree.leaf_count() < 2:
            raise ModelError("The species tree must have at least 2 leaves.")

        if not isinstance(gene_trees, GeneTrees):
            gene_trees = GeneTrees(list(gene_trees))

        self.species_tree : Tree = species_tree
        self.gene_trees : GeneTrees = gene_trees

        if taxon_map is None:
            taxon_map = gene_trees.taxon_map()
        self.taxon_map : dict[str, set[str]] = {species : set(tips) for
                                                species, tips in
                                                taxon_map.items()}

        if branch_rates is not None:
            branch_rates = np.asarray(branch_rates, dtype = int)
            if len(branch_rates) != species_tree.node_count():
                raise ModelError("There must be one branch rate per species \
                                  tree node.")
        self.branch_rates : np.ndarray | None = branch_rates

        self.summary_str : str = ""

        self._check_mapping()

    def _check_mapping(self) -> None:
        """
        Warn about gene tree tips that do not map to any species tree leaf.
        These are tolerated, and will never be tied to the species root.
        """
        mapped = set()
        for species in self.species_tree.leaf_names():
            mapped.update(self.taxon_map.get(species, set()))

        unmapped = self.gene_trees.taxa_names.difference(mapped)
        if len(unmapped) != 0:
            warnings.warn(f"Gene tree tips {sorted(unmapped)} do not map to \
                            any species tree leaf.")

    def descendant_taxa(self, species_node : Node) -> set[str]:
        """
        Collect the gene tree tip labels that map to the species tree leaves
        below 'species_node'.

        Args:
            species_node (Node): A node in the species tree.
        Returns:
            set[str]: All gene tree tip labels descending from species_node.
        """
        taxa : set[str] = set()
        for leaf in self.species_tree.leaf_descendants(species_node):
            taxa.update(self.taxon_map.get(leaf.get_name(), set()))
        return taxa

    def trees(self) -> list[Tree]:
        """
        Returns:
            list[Tree]: The species tree followed by every gene tree.
        """
        return [self.species_tree] + list(self.gene_trees)

    def is_monotone(self) -> bool:
        """
        Returns:
            bool: True if every tree in the model has each node at least as
                  old as its children.
        """
        return all(tree.is_monotone() for tree in self.trees())
