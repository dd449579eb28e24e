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

from typing import Any, Callable, Iterator
from .Tree import Tree

#########################
#### EXCEPTION CLASS ####
#########################

class GeneTreeError(Exception):
    def __init__(self, message : str = "Gene Tree Module Error") -> None:
        super().__init__(message)
        self.message = message

##########################
#### HELPER FUNCTIONS ####
##########################

def underscore_naming(taxa_name : str) -> str:
    """
    The default method for sorting gene tree tip labels into species. The
    species is everything before the last underscore, so "human_1" and
    "human_2" both belong to "human". A label without an underscore is its own
    species.

    Args:
        taxa_name (str): a gene tree tip label
    Raises:
        GeneTreeError: if the label is empty, or has nothing before the last
                       underscore.
    Returns:
        str: the species label for this tip
    """
    if taxa_name is None or len(taxa_name) == 0:
        raise GeneTreeError("Error Applying Naming Rule: empty tip label")

    if "_" not in taxa_name:
        return taxa_name

    species = taxa_name.rsplit("_", 1)[0]
    if len(species) == 0:
        raise GeneTreeError(f"Error Applying Naming Rule: no species prefix \
                              in '{taxa_name}'")
    return species

####################
#### GENE TREES ####
####################

class GeneTrees:
    """
    An ordered container for a set of binary trees that each represent the
    genealogy of one locus. Gene trees are addressed by their index in the
    container.
    """

    def __init__(self,
                 gene_tree_list : list[Tree] | None = None,
                 naming_rule : Callable[..., Any] = underscore_naming) -> None:
        """
        Wrapper class for a set of gene trees.

        Args:
            gene_tree_list (list[Tree], optional): A list of gene trees.
                                                   Defaults to None.
            naming_rule (Callable[..., Any], optional): A function
                                                        f : str -> str that
                                                        maps a tip label to
                                                        its species label.
                                                        Defaults to
                                                        underscore_naming.
        """
        self.trees : list[Tree] = []
        self.taxa_names : set[str] = set()
        self.naming_rule : Callable[..., Any] = naming_rule

        if gene_tree_list is not None:
            for tree in gene_tree_list:
                self.add(tree)

    def add(self, tree : Tree) -> None:
        """
        Add a gene tree to the collection. Any new tip labels that belong to
        this tree will also be added to the collection of all gene tree leaf
        labels.

        Args:
            tree (Tree): A rooted binary tree with at least 2 leaves.
        Raises:
            GeneTreeError: If the tree has fewer than 2 leaves.
        """
        if tree.leaf_count() < 2:
            raise GeneTreeError("Gene trees must have at least 2 leaves.")

        self.trees.append(tree)
        self.taxa_names.update(tree.leaf_names())

    def __len__(self) -> int:
        return len(self.trees)

    def __iter__(self) -> Iterator[Tree]:
        return iter(self.trees)

    def __getitem__(self, index : int) -> Tree:
        return self.trees[index]

    def taxon_map(self) -> dict[str, set[str]]:
        """
        Group the gene tree tip labels by species, using the naming rule.

        Returns:
            dict[str, set[str]]: species label -> set of gene tree tip labels
        """
        species_map : dict[str, set[str]] = {}
        for taxa_name in self.taxa_names:
            key = self.naming_rule(taxa_name)
            if key in species_map:
                species_map[key].add(taxa_name)
            else:
                species_map[key] = {taxa_name}
        return species_map
