import numpy as np

def tanh_activation(z):
    return np.tanh(z)

def sigmoid_activation(z):
    # Clamp the argument so that np.exp cannot overflow
    z_clamped = np.clip(z, -60.0, 60.0)
    return 1.0 / (1.0 + np.exp(-z_clamped))

def relu_activation(z):
    return np.maximum(0.0, z)

def sin_activation(z):
    return np.sin(z)

activations = {
    "tanh"   : tanh_activation,
    "sigmoid": sigmoid_activation,
    "relu"   : relu_activation,
    "sin"    : sin_activation
    }

# Short codes used when printing node genes
activation_codes = {
    "tanh"   : "TNH",
    "sigmoid": "SIG",
    "relu"   : "RLU",
    "sin"    : "SIN"
    }
