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
Approved for Release : Yes
"""

from io import StringIO
from pathlib import Path
from typing import Any, Union
from warnings import warn
from Bio import Phylo
from .Tree import Node, Tree

#####################
#### Error Class ####
#####################

class TreeParserError(Exception):
    """
    Error that is raised whenever a newick string or file contains issues
    that disallow a proper parse of a rooted binary tree.
    """
    def __init__(self, message : str = "Something went wrong \
                                        parsing a tree") -> None:
        self.message = message
        super().__init__(self.message)

######################
#### Newick Parse ####
######################

def parse_clades(tree : Any, name : str = None) -> Tree:
    """
    Given a biopython Tree object (with nested clade objects), build a Tree
    with the same topology and names. Node heights are measured back in time
    from the tip furthest from the root, so an ultrametric input has all of
    its leaves at height 0.

    Leaves are numbered 0..n-1 (left to right), and internal nodes n..2n-2
    in the order they are first reached from the root.

    Args:
        tree (Any): the biopython library tree data structure
        name (str, optional): A name for the resulting tree. Defaults to None.
    Raises:
        TreeParserError: If a clade has a number of children other than 0 or 2
    Returns:
        Tree: The parsed tree.
    """
    depths : dict[Any, float] = {tree.root : 0.0}
    order : list[Any] = []
    missing_lengths : bool = False

    for clade in tree.find_clades(order = "preorder"):
        if len(clade.clades) not in (0, 2):
            raise TreeParserError(f"Clade {clade.name} has \
                                    {len(clade.clades)} children. Only \
                                    binary trees are supported.")
        order.append(clade)
        for child in clade.clades:
            if child.branch_length is None:
                missing_lengths = True
                length = 1.0
            else:
                length = float(child.branch_length)
            if length < 0:
                raise TreeParserError(f"Negative branch length above \
                                        {child.name}.")
            depths[child] = depths[clade] + length

    if missing_lengths:
        warn("No branch length has been provided for some nodes.\
              Setting those branch lengths to 1.")

    oldest = max(depths.values())
    leaves = [clade for clade in order if clade.is_terminal()]
    internals = [clade for clade in order if not clade.is_terminal()]

    nodes : dict[Any, Node] = {}
    for nr, clade in enumerate(leaves + internals):
        if clade.is_terminal() and clade.name is None:
            raise TreeParserError("Every leaf needs a taxon label.")
        nodes[clade] = Node(nr, clade.name, oldest - depths[clade])

    for clade in internals:
        nodes[clade].set_children(nodes[clade.clades[0]],
                                  nodes[clade.clades[1]])

    return Tree(nodes[tree.root], name = name)

def parse_newick(newick : str, name : str = None) -> Tree:
    """
    Parse one newick string into a Tree.

    Args:
        newick (str): A newick string, ie "((a:1,b:1):1,c:2);"
        name (str, optional): A name for the tree. Defaults to None.
    Raises:
        TreeParserError: If biopython cannot parse the string, or the tree is
                         not binary.
    Returns:
        Tree: The parsed tree.
    """
    try:
        bio_tree = Phylo.read(StringIO(newick), "newick")
    except Exception as err:
        raise TreeParserError(f"Could not parse newick string \
                                '{newick}': {err}") from err
    return parse_clades(bio_tree, name)

def parse_newick_file(filename : Union[str, Path]) -> list[Tree]:
    """
    Parse every tree in a newick file (one tree per line / semicolon).
    Trees are named "<file stem>_<index>".

    Args:
        filename (str | Path): path to the newick file.
    Raises:
        TreeParserError: If the file holds no trees, or a tree fails to parse.
    Returns:
        list[Tree]: The parsed trees, in file order.
    """
    path = Path(filename)
    try:
        bio_trees = list(Phylo.parse(str(path), "newick"))
    except Exception as err:
        raise TreeParserError(f"Could not parse newick file {path}: \
                                {err}") from err

    if len(bio_trees) == 0:
        raise TreeParserError(f"There are no trees listed in {path}")

    return [parse_clades(bio_tree, f"{path.stem}_{index}")
            for index, bio_tree in enumerate(bio_trees)]
