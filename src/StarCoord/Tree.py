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
from collections import deque
from typing import Iterator
import networkx as nx

#########################
#### EXCEPTION CLASS ####
#########################

class TreeError(Exception):
    """
    Raised whenever a tree or one of its nodes is built or edited in a way
    that breaks the rooted binary tree structure.
    """
    def __init__(self, message : str = "Error in Tree Class") -> None:
        self.message = message
        super().__init__(self.message)

###############
#### NODES ####
###############

class Node:
    """
    A node in a rooted, binary, time-calibrated tree.

    Heights are measured backwards in time, so leaves are (typically) at or
    near 0 and the root is the oldest node. Every node has either no children
    or exactly two ordered children, left and right.
    """

    def __init__(self, nr : int, name : str = None,
                 height : float = 0.0) -> None:
        """
        Initialize a node.

        Args:
            nr (int): Stable integer identity of this node within its tree.
            name (str, optional): Taxon label. Required for leaves that take
                                  part in a taxon mapping. Defaults to None.
            height (float, optional): Node height (age). Must be
                                      non-negative. Defaults to 0.0.
        Returns:
            N/A
        """
        self.nr : int = nr
        self.name : str = name
        self.height : float = 0.0
        self.left : Node = None
        self.right : Node = None
        self.parent : Node = None
        self.set_height(height)

    def get_nr(self) -> int:
        """
        Returns:
            int: The integer identity of this node.
        """
        return self.nr

    def get_name(self) -> str:
        """
        Returns:
            str: Node label, None for unnamed internal nodes.
        """
        return self.name

    def get_height(self) -> float:
        """
        Returns:
            float: The age of this node.
        """
        return self.height

    def set_height(self, height : float) -> None:
        """
        Set the age of this node. The arg 'height' must be a non-negative
        number.

        Args:
            height (float): The new node age.
        Raises:
            TreeError: If height is negative.
        """
        if height < 0:
            raise TreeError(f"Node {self.label()} was given a negative height \
                              ({height}). Heights must be non-negative!")
        self.height = float(height)

    def get_left(self) -> Node:
        return self.left

    def get_right(self) -> Node:
        return self.right

    def get_children(self) -> list[Node]:
        """
        Returns:
            list[Node]: [left, right] for internal nodes, [] for leaves.
        """
        if self.is_leaf():
            return []
        return [self.left, self.right]

    def get_parent(self) -> Node:
        return self.parent

    def set_children(self, left : Node, right : Node) -> None:
        """
        Make 'left' and 'right' the two (ordered) children of this node.

        Args:
            left (Node): The left child.
            right (Node): The right child.
        Raises:
            TreeError: If a child is missing, or both children are the same
                       node.
        """
        if left is None or right is None:
            raise TreeError("A node needs exactly two children, or none.")
        if left is right:
            raise TreeError("The left and right children must be distinct.")

        self.left = left
        self.right = right
        left.parent = self
        right.parent = self

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def is_root(self) -> bool:
        return self.parent is None

    def label(self) -> str:
        """
        Returns:
            str: The node name if it has one, otherwise its number.
        """
        if self.name is not None:
            return self.name
        return str(self.nr)

    def as_string(self) -> str:
        """
        Create a description of a node.

        Returns:
            str: A string description of the node.
        """
        my_str = "Node " + self.label() + ": "
        my_str += "nr = " + str(self.nr) + " "
        my_str += "height = " + str(round(self.height, 4))
        if not self.is_leaf():
            my_str += " children = " + str([self.left.label(),
                                            self.right.label()])
        return my_str

    def __repr__(self) -> str:
        return f"Node({self.label()}, {self.height})"

##############
#### TREE ####
##############

class Tree:
    """
    A rooted binary tree, indexed by node number. The tree does not copy its
    nodes; it wires up a view onto the structure hanging off of 'root', so
    height edits on nodes are edits on the tree.
    """

    def __init__(self, root : Node, name : str = None) -> None:
        """
        Initialize a tree from its root node. Every node reachable from the
        root is indexed by its node number.

        Args:
            root (Node): The root of the tree.
            name (str, optional): A name for this tree (ie, a locus name).
                                  Defaults to None.
        Raises:
            TreeError: If two nodes share a node number, or a node has only
                       one child.
        """
        if root is None:
            raise TreeError("A tree needs a root node.")

        self.root : Node = root
        self.name : str = name
        self.root.parent = None
        self.nodes : dict[int, Node] = {}

        for node in self.preorder():
            if (node.left is None) != (node.right is None):
                raise TreeError(f"Node {node.label()} has exactly one child. \
                                  Trees must be binary.")
            if node.nr in self.nodes:
                raise TreeError(f"Node number {node.nr} is used more than \
                                  once.")
            self.nodes[node.nr] = node

    def get_root(self) -> Node:
        return self.root

    def get_node(self, nr : int) -> Node:
        """
        Look up a node by number.

        Args:
            nr (int): A node number.
        Raises:
            TreeError: If no node in this tree has that number.
        Returns:
            Node: The node numbered 'nr'.
        """
        try:
            return self.nodes[nr]
        except KeyError:
            raise TreeError(f"No node numbered {nr} in this tree.")

    def get_nodes(self) -> list[Node]:
        """
        Returns:
            list[Node]: All nodes, sorted by node number.
        """
        return [self.nodes[nr] for nr in sorted(self.nodes)]

    def get_leaves(self) -> list[Node]:
        return [node for node in self.get_nodes() if node.is_leaf()]

    def get_internal_nodes(self) -> list[Node]:
        return [node for node in self.get_nodes() if not node.is_leaf()]

    def leaf_count(self) -> int:
        return len(self.get_leaves())

    def node_count(self) -> int:
        return len(self.nodes)

    def leaf_names(self) -> set[str]:
        return {leaf.get_name() for leaf in self.get_leaves()}

    def has_node_named(self, name : str) -> Node:
        """
        Returns:
            Node: The node with label 'name', or None if there isn't one.
        """
        for node in self.get_nodes():
            if node.get_name() == name:
                return node
        return None

    def preorder(self) -> Iterator[Node]:
        """
        Iterate over the nodes of the tree, parents before children and left
        subtrees before right subtrees. Uses an explicit stack, so deep trees
        do not exhaust the interpreter's recursion limit.
        """
        stack : deque[Node] = deque([self.root])
        while len(stack) != 0:
            cur = stack.pop()
            yield cur
            if not cur.is_leaf():
                stack.append(cur.right)
                stack.append(cur.left)

    def leaf_descendants(self, node : Node) -> set[Node]:
        """
        Compute the set of all leaf nodes that are descendants of 'node'.

        Args:
            node (Node): A node in this tree.
        Raises:
            TreeError: If node is not in this tree.
        Returns:
            set[Node]: The leaves that descend from 'node'. A leaf is its own
                       (only) descendant.
        """
        if self.nodes.get(node.nr) is not node:
            raise TreeError("Node not found in tree.")

        q : deque[Node] = deque([node])
        leaves : set[Node] = set()
        while len(q) != 0:
            cur = q.pop()
            if cur.is_leaf():
                leaves.add(cur)
            else:
                q.extend(cur.get_children())
        return leaves

    def mrca(self, names : set[str]) -> Node:
        """
        Find the youngest node whose subtree contains every leaf named in
        'names'.

        Args:
            names (set[str]): A set of leaf labels.
        Raises:
            TreeError: If a name is not a leaf label of this tree.
        Returns:
            Node: The most recent common ancestor.
        """
        missing = set(names).difference(self.leaf_names())
        if len(missing) != 0:
            raise TreeError(f"Leaves {sorted(missing)} are not in this tree.")

        best : Node = self.root
        best_size : int = self.leaf_count()
        for node in self.preorder():
            desc = {leaf.get_name() for leaf in self.leaf_descendants(node)}
            if set(names).issubset(desc) and len(desc) < best_size:
                best = node
                best_size = len(desc)
        return best

    def is_monotone(self) -> bool:
        """
        Check that every internal node is at least as old as both of its
        children. Equal heights (zero length branches) are allowed.

        Returns:
            bool: True if the heights are consistent with the topology.
        """
        for node in self.get_internal_nodes():
            if node.height < node.left.height or node.height < node.right.height:
                return False
        return True

    def get_heights(self) -> dict[int, float]:
        """
        Returns:
            dict[int, float]: Map from node number to node height.
        """
        return {nr : node.height for nr, node in self.nodes.items()}

    def set_heights(self, heights : dict[int, float]) -> None:
        """
        Write back heights, ie ones taken with get_heights.

        Args:
            heights (dict[int, float]): Map from node number to node height.
        """
        for nr, height in heights.items():
            self.get_node(nr).set_height(height)

    def newick(self) -> str:
        """
        Build the newick string for this tree, with branch lengths taken from
        the node heights.

        Returns:
            str: A newick string, semicolon terminated.
        """
        parts : dict[Node, str] = {}
        for node in reversed(list(self.preorder())):
            if node.is_leaf():
                substr = node.label()
            else:
                substr = "(" + parts.pop(node.left) + "," \
                         + parts.pop(node.right) + ")"
                if node.name is not None:
                    substr += node.name
            if node.parent is not None:
                substr += ":" + repr(node.parent.height - node.height)
            parts[node] = substr
        return parts[self.root] + ";"

    def to_networkx(self) -> nx.DiGraph:
        """
        Export this tree as a directed networkx graph (edges point from parent
        to child). Nodes are keyed by node number and carry 'name' and
        'height' attributes.

        Returns:
            nx.DiGraph: The tree as a networkx graph.
        """
        nx_tree = nx.DiGraph()
        for node in self.get_nodes():
            nx_tree.add_node(node.nr, name = node.name, height = node.height)
        for node in self.get_internal_nodes():
            nx_tree.add_edge(node.nr, node.left.nr)
            nx_tree.add_edge(node.nr, node.right.nr)
        return nx_tree

    def __repr__(self) -> str:
        return f"Tree({self.newick()})"
