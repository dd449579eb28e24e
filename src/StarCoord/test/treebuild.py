"""
Tree building helpers shared by the tests.
"""

from __future__ import annotations
import numpy as np
from StarCoord.Tree import Node, Tree


def build_tree(spec : tuple, name : str = None) -> Tree:
    """
    Build a Tree from nested tuples. A leaf is (label, height), an internal
    node is (left, right, height) or (left, right, height, label). Leaves are
    numbered first, left to right, then internal nodes in post-order.
    """
    leaves : list[Node] = []
    internals : list[tuple[Node, tuple]] = []

    def make(part : tuple) -> Node:
        if len(part) == 2:
            node = Node(-1, part[0], part[1])
            leaves.append(node)
            return node
        left = make(part[0])
        right = make(part[1])
        node = Node(-1, part[3] if len(part) > 3 else None, part[2])
        node.set_children(left, right)
        internals.append(node)
        return node

    root = make(spec)
    for nr, node in enumerate(leaves + internals):
        node.nr = nr
    return Tree(root, name)


def random_tree(tips : list[str], rng : np.random.Generator,
                tip_heights : bool = False) -> Tree:
    """
    Random coalescent-style tree: repeatedly joins two random lineages at a
    height above both.
    """
    lineages = [Node(nr, tip, rng.uniform(0, 1) if tip_heights else 0.0)
                for nr, tip in enumerate(tips)]
    nr = len(tips)
    while len(lineages) > 1:
        i, j = rng.choice(len(lineages), size = 2, replace = False)
        left, right = lineages[i], lineages[j]
        parent = Node(nr, None, max(left.get_height(), right.get_height())
                      + rng.exponential(0.5))
        parent.set_children(left, right)
        nr += 1
        lineages = [node for k, node in enumerate(lineages) if k not in (i, j)]
        lineages.append(parent)
    return Tree(lineages[0])


class FixedExponential:
    """
    Stand in for a numpy Generator that hands out preset exponential draws
    and remembers the scales it was asked for.
    """

    def __init__(self, *draws : float) -> None:
        self.draws = list(draws)
        self.scales : list[float] = []

    def exponential(self, scale : float = 1.0) -> float:
        self.scales.append(scale)
        return self.draws.pop(0)
