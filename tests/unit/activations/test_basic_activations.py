"""
Unit tests for the basic activation functions.
"""

import math
import numpy as np
import pytest

from neatlab.activations import activations, activation_codes
from neatlab.activations.basic_activations import (tanh_activation, sigmoid_activation,
                                                   relu_activation, sin_activation)


class TestActivationFunctions:

    def test_tanh(self):
        assert tanh_activation(0.0) == pytest.approx(0.0)
        assert tanh_activation(1.0) == pytest.approx(math.tanh(1.0))
        assert tanh_activation(-1.0) == pytest.approx(-math.tanh(1.0))

    def test_sigmoid_midpoint(self):
        assert sigmoid_activation(0.0) == pytest.approx(0.5)

    def test_sigmoid_does_not_overflow(self):
        assert sigmoid_activation(1e6) == pytest.approx(1.0)
        assert sigmoid_activation(-1e6) == pytest.approx(0.0, abs=1e-20)
        assert np.isfinite(sigmoid_activation(-1e6))

    def test_relu(self):
        assert relu_activation(-3.0) == 0.0
        assert relu_activation(2.5) == 2.5

    def test_sin(self):
        assert sin_activation(math.pi / 2) == pytest.approx(1.0)

    def test_vectorized(self):
        z = np.array([-1.0, 0.0, 1.0])
        np.testing.assert_allclose(relu_activation(z), [0.0, 0.0, 1.0])


class TestRegistry:

    def test_every_activation_has_a_code(self):
        assert set(activations) == set(activation_codes)

    @pytest.mark.parametrize("name", ["tanh", "sigmoid", "relu", "sin"])
    def test_registered(self, name):
        assert callable(activations[name])
