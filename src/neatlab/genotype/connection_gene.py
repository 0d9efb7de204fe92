"""
NEAT Connection Gene Module

This module implements the ConnectionGene class for the
NEAT (NeuroEvolution of Augmenting Topologies) algorithm.

Classes:
    ConnectionGene: Gene encoding a weighted connection between nodes
"""

import random

from neatlab.run.config import Config

class ConnectionGene:
    """
    A gene describing a weighted connection between two nodes in a Neural Network.

    Each connection gene represents a directed edge in the neural network graph,
    connecting a source node to a destination node with an associated weight.
    Connection genes are uniquely identified by their innovation number, which
    serves as a historical marker enabling gene alignment during crossover.

    Connections can be disabled (by the add-node mutation, or when inherited
    during crossover); a disabled connection is kept in the genome but does
    not take part in network evaluation.

    Public Attributes:
        node_in:    ID of the source node
        node_out:   ID of the destination node
        weight:     Weight of the connection
        enabled:    Whether this connection is active in the network
        innovation: Innovation number uniquely identifying this connection

    Public Methods:
        mutate(rng): Stochastically mutate the connection weight
        copy():      Return an independent copy of the gene
    """

    def __init__(self,
                 node_in   : int,
                 node_out  : int,
                 weight    : float,
                 innovation: int,
                 config    : Config,
                 enabled   : bool = True):
        """
        Initialize a connection gene.

        Parameters:
            node_in:    ID of the source node
            node_out:   ID of the destination node
            weight:     Weight of the connection
            innovation: Number uniquely identifying this connection within a run
            config:     Stores configuration parameters
            enabled:    Whether this connection is active in the network
        """
        self.node_in   : int    = node_in
        self.node_out  : int    = node_out
        self.weight    : float  = weight
        self.enabled   : bool   = enabled
        self.innovation: int    = innovation
        self._config   : Config = config

    def mutate(self, rng=None) -> None:
        """
        Stochastically mutate the (gene describing the) connection.

        Mutating a connection means changing its 'weight', in one of two ways:
         + modifying the current value additively by a small amount
         + replacing the current value by a new one
        The new weight is then clipped to [-weight_limit, +weight_limit].

        Parameters:
            rng: Source of randomness (defaults to the 'random' module)
        """
        rng = rng or random
        perturb_prob = self._config.weight_perturb_prob   # prob of perturbing the 'weight'
        replace_prob = self._config.weight_replace_prob   # prob of replacing  the 'weight'
        power        = self._config.weight_perturb_power

        r = rng.random()
        if r < perturb_prob:
            if self._config.weight_perturb_distribution == "gaussian":
                chg_weight = rng.gauss(0, power)
            else:
                chg_weight = rng.uniform(-power, power)
            new_weight = self.weight + chg_weight

        elif r < perturb_prob + replace_prob:
            new_weight = rng.uniform(-self._config.weight_init_range, self._config.weight_init_range)

        else:
            return

        limit       = self._config.weight_limit
        self.weight = max(-limit, min(limit, new_weight))  # Clip it

    def copy(self) -> 'ConnectionGene':
        return ConnectionGene(self.node_in, self.node_out, self.weight,
                              self.innovation, self._config, self.enabled)

    def __repr__(self):
        return (f"ConnectionGene(node_in={self.node_in:03d}, node_out={self.node_out:03d},"
                f"weight={self.weight:+.6f}, enabled={self.enabled}, innovation={self.innovation:03d})")

    def __str__(self):
        s  = f"[{self.innovation:03d},{'E' if self.enabled else 'D'},"
        s += f"{self.node_in:02d}=>{self.node_out:02d},{self.weight:+.02f}]"
        return s
