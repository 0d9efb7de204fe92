"""
NEAT Node Gene Module.

This module implements the NodeGene class and NodeType enumeration
for the NEAT (NeuroEvolution of Augmenting Topologies) algorithm.

Classes:
    NodeType: Enumeration for node types (INPUT, HIDDEN, OUTPUT)
    NodeGene: Gene encoding a single network node
"""

from enum   import Enum
from typing import Callable

from neatlab.activations import activations, activation_codes

class NodeType(Enum):
    """
    Nodes come in three types: input, hidden, output.
    """
    INPUT  = "I"
    HIDDEN = "H"
    OUTPUT = "O"

    @property
    def rank(self) -> int:
        """
        Position of the type in evaluation order (inputs first, outputs last).
        """
        return _TYPE_RANK[self]

    @classmethod
    def from_name(cls, name: str) -> 'NodeType':
        """
        Parse a node type from either its value ("I") or its name ("input").
        """
        for node_type in cls:
            if name == node_type.value or name.upper() == node_type.name:
                return node_type
        raise ValueError(f"unknown node type '{name}'")

_TYPE_RANK = {NodeType.INPUT: 0, NodeType.HIDDEN: 1, NodeType.OUTPUT: 2}

class NodeGene:
    """
    A gene describing a node in a Neural Network.

    Node genes are identified by a unique node ID which remains consistent
    across structural mutations and crossover operations. Input and output
    nodes are created together with the genome; hidden nodes only appear
    through the add-node mutation. Node genes are never deleted.

    The node computes its output as: activation(weighted_input + bias)

    Public Attributes:
        id:              Unique identifier for this node
        type:            Type of node (INPUT, HIDDEN, or OUTPUT)
        bias:            Bias value added to the node's weighted input
        activation_name: Name of the activation function (None for input nodes)

    Public Properties:
        activation: The activation function itself (None for input nodes)
    """

    def __init__(self,
                 node_id        : int,
                 node_type      : NodeType,
                 bias           : float      = 0.0,
                 activation_name: str | None = None):
        """
        Initialize a node gene.

        Parameters:
            node_id:         Unique identifier for this node
            node_type:       Type of node (INPUT, HIDDEN, or OUTPUT)
            bias:            Bias value added to the node's weighted input
            activation_name: Name of activation function (e.g., 'tanh', 'relu');
                             ignored for input nodes
        """
        if node_type != NodeType.INPUT and activation_name not in activations:
            raise ValueError(f"unknown activation function '{activation_name}'")

        self.id             : int        = node_id
        self.type           : NodeType   = node_type
        self.bias           : float      = bias
        self.activation_name: str | None = None if node_type == NodeType.INPUT else activation_name

    @property
    def activation(self) -> Callable[[float], float] | None:
        if self.activation_name is None:
            return None
        return activations[self.activation_name]

    def set_activation(self, activation_name: str) -> None:
        """
        Switch the activation function; input nodes are left untouched.
        """
        if self.type == NodeType.INPUT:
            return
        if activation_name not in activations:
            raise ValueError(f"unknown activation function '{activation_name}'")
        self.activation_name = activation_name

    def copy(self) -> 'NodeGene':
        return NodeGene(self.id, self.type, self.bias, self.activation_name)

    def __repr__(self):
        return (f"NodeGene(node_id={self.id:+03d}, node_type=NodeType.{self.type.name:6s},"
                f"bias={self.bias}, activation={self.activation_name!r})")

    def __str__(self):
        if self.type == NodeType.INPUT:
            return f"[{self.type.value}{self.id}]"
        act_code = activation_codes.get(self.activation_name, "???")
        return f"[{self.type.value}{self.id},{act_code},b={self.bias:.2f}]"
