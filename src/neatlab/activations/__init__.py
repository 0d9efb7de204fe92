"""
Activations Package

This package provides activation functions for NEAT neural networks.

Exported:
    activations:      Dictionary mapping activation function names to functions
    activation_codes: Dictionary mapping activation function names to 3-letter codes
    Individual activation functions: tanh_activation, sigmoid_activation,
                                     relu_activation, sin_activation
"""

from neatlab.activations.basic_activations import (
    activations,
    activation_codes,
    tanh_activation,
    sigmoid_activation,
    relu_activation,
    sin_activation
)

__all__ = [
    'activations',
    'activation_codes',
    'tanh_activation',
    'sigmoid_activation',
    'relu_activation',
    'sin_activation'
]
