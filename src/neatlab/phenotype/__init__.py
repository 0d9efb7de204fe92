"""
NEAT Phenotype Package

This package implements the neural network encoded by a genome.

Exported Classes:
    Network: Evaluates the network encoded by a genome
"""

from neatlab.phenotype.network import Network

__all__ = ['Network']
