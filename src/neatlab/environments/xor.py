"""
XOR Environment

The classic XOR benchmark: two binary inputs, one output that should be
1 when the inputs differ and 0 otherwise. It cannot be solved without a
hidden node, which makes it a minimal test of topology evolution.

Fitness = 4.0 - Σ(output - target)²   (floored at 0)

A perfect network scores 4.0; a run is usually considered solved above 3.9.
With the default 'tanh' activation, the network output is mapped from
[-1, 1] to [0, 1] before computing the error.
"""

from neatlab.environments.base import BaseEnvironment

XOR_INPUTS  = [[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]]
XOR_OUTPUTS = [0.0, 1.0, 1.0, 0.0]

class XorEnvironment(BaseEnvironment):
    """
    Scores a genome on the four XOR cases.
    """

    name = "XOR"

    def __init__(self, max_steps: int = 4):
        super().__init__()
        self.input_count  = 2
        self.output_count = 1
        self.max_steps    = max_steps

    def set_max_steps(self, max_steps) -> None:
        # The task always has exactly four cases
        pass

    @staticmethod
    def _scale(output: float, activation: str) -> float:
        if activation in ("tanh", "sin"):
            return (output + 1.0) / 2.0
        return output

    def evaluate(self, genome) -> float:
        fitness = 4.0
        for inputs, expected in zip(XOR_INPUTS, XOR_OUTPUTS):
            genome.reset_activations()
            output = self._scale(genome.activate(inputs)[0], genome.activation)
            fitness -= (output - expected) ** 2
        return max(0.0, fitness)

    def get_context(self) -> dict:
        return {'mode': "xor"}
