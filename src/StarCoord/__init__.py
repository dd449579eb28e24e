#! /usr/bin/env python
# -*- coding: utf-8 -*-

##############################################################################
##  -- StarCoord --
##  Coordinated species and gene tree moves for multispecies coalescent MCMC
##
##  Copyright 2025 Mark Kessler, Luay Nakhleh.
##  All rights reserved.
##############################################################################

"""
StarCoord - co-ordinated species tree / gene tree MCMC moves

Moves for Bayesian multispecies coalescent inference that change the species
tree root height together with the gene tree nodes tied to it.
"""

# Core data structures
from .Tree import Node, Tree, TreeError
from .GeneTrees import GeneTrees, GeneTreeError, underscore_naming
from .Model import CoalescentModel, ModelError

# Parsing
from .TreeParser import TreeParserError, parse_newick, parse_newick_file

# Moves
from .Move import Move, MoveError, HeightInvariantError
from .AdaptiveMove import AdaptiveMove
from .CoordinatedExponential import (
    CoordinatedExponential,
    Descent,
    MinimumDouble,
    classify_descent,
    connecting_nodes
)
from .DiscreteRateCycle import DiscreteRateCycle

# Sampling
from .State import State, monotone_routine
from .MetropolisHastings import (
    MetropolisHastings,
    MetropolisHastingsException,
    ProposalKernel,
    WeightedKernel
)

__version__ = "1.0.0"
__author__ = "Mark Kessler"
