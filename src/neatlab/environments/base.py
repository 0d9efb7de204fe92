"""
NEAT Environment Base Module

This module defines the contract between the engine and a task: an
environment tells the engine how many inputs and outputs its networks
need and scores a genome by running it through the task.

Classes:
    BaseEnvironment: Abstract base class for all environments
"""

import math
from abc    import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from neatlab.genotype import Genome

def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))

def to_finite(value, default: float | None = None) -> float | None:
    """
    Convert 'value' to a finite float; return 'default' if that isn't possible.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default

class BaseEnvironment(ABC):
    """
    Abstract base class for NEAT environments.

    Subclasses must set 'input_count' and 'output_count' and implement
    'evaluate()'. Everything else is optional: the hooks below are no-ops
    here and are overridden by environments that support them. Values coming
    from the host (sizes, targets, obstacles, ...) must be validated and
    clamped by the environment, never trusted as given.

    'evaluate()' may be called concurrently from several threads (for
    different genomes), so it must not modify the environment itself.

    Public Attributes:
        name:         Human readable name
        input_count:  Number of network inputs
        output_count: Number of network outputs
        max_steps:    Step budget of one evaluation

    Public Methods:
        evaluate(genome):                Return the (non-negative) fitness of a genome
        set_max_steps(max_steps):        Change the step budget
        set_world_size(width, height):   Change the world geometry
        set_mode(mode):                  Switch task variant
        set_target(target):              Place a user target
        clear_target():                  Remove the user target
        set_obstacles(obstacles):        Replace the obstacles
        set_multi_targets(targets):      Replace the ordered list of targets
        update_context(context):         Apply several of the above at once
        get_context():                   Describe the current configuration
        get_options():                   Constructor arguments reproducing the current state
        create_visual_state(genome):     Start a step-by-step replay
        step_visual(genome, state):      Advance a replay by one step
    """

    name: str = "Base Environment"

    def __init__(self):
        self.input_count : int = 0
        self.output_count: int = 0
        self.max_steps   : int = 0

    @abstractmethod
    def evaluate(self, genome: 'Genome') -> float:
        """
        Run the genome's network through the task and score it.

        Parameters:
            genome: The genome to evaluate

        Returns:
            float: Fitness score (zero or positive)
        """
        pass

    def set_max_steps(self, max_steps) -> None:
        pass

    def set_world_size(self, width, height) -> None:
        pass

    def set_mode(self, mode) -> None:
        pass

    def set_target(self, target) -> None:
        pass

    def clear_target(self) -> None:
        pass

    def set_obstacles(self, obstacles) -> None:
        pass

    def set_multi_targets(self, targets) -> None:
        pass

    def update_context(self, context: dict) -> None:
        pass

    def get_context(self) -> dict:
        return {}

    def get_options(self) -> dict:
        """
        Constructor keyword arguments that rebuild the environment in its
        current state (used by the worker to keep edits across a RESET).
        """
        return {}

    def create_visual_state(self, genome: 'Genome | None' = None) -> dict:
        return {}

    def step_visual(self, genome: 'Genome', state: dict) -> dict:
        return state

    def describe(self) -> dict:
        """
        Plain-data summary of the environment, included in worker snapshots.
        """
        return {
            'name'        : self.name,
            'input_count' : self.input_count,
            'output_count': self.output_count,
            'max_steps'   : self.max_steps,
            'context'     : self.get_context()
        }
