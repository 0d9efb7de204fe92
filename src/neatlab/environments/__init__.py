"""
NEAT Environments Package

Environments define the tasks genomes are evaluated on.

Exported:
    BaseEnvironment:            Abstract base class for all environments
    FlappyBirdEnvironment:      Flappy Bird with a difficulty ramp
    TargetSeekerEnvironment:    Steering task (target, obstacles, multiple targets)
    XorEnvironment:             The XOR benchmark
    ENVIRONMENT_MODES:          Catalogue of the steering task variants
    normalize_environment_mode: Validate a task variant name
    make_environment(name):     Create an environment by name
"""

from neatlab.environments.base          import BaseEnvironment
from neatlab.environments.flappy_bird   import FlappyBirdEnvironment
from neatlab.environments.modes         import ENVIRONMENT_MODES, DEFAULT_ENV_MODE, normalize_environment_mode
from neatlab.environments.target_seeker import TargetSeekerEnvironment
from neatlab.environments.xor           import XorEnvironment

ENVIRONMENTS = {
    "flappy_bird"  : FlappyBirdEnvironment,
    "target_seeker": TargetSeekerEnvironment,
    "xor"          : XorEnvironment,
}

def make_environment(name: str = "flappy_bird", **options) -> BaseEnvironment:
    """
    Create an environment by name.

    The task variants of the steering environment ("obstacle_avoid",
    "multi_target") are accepted as names too.

    Parameters:
        name:    Environment or task variant name
        options: Keyword arguments for the environment's constructor

    Returns:
        The new environment
    """
    if name in ENVIRONMENT_MODES:
        options.setdefault('mode', name)
        name = "target_seeker"
    if name not in ENVIRONMENTS:
        raise ValueError(f"unknown environment '{name}'; "
                         f"available: {sorted(set(ENVIRONMENTS) | set(ENVIRONMENT_MODES))}")
    return ENVIRONMENTS[name](**options)

__all__ = ['BaseEnvironment',
           'FlappyBirdEnvironment',
           'TargetSeekerEnvironment',
           'XorEnvironment',
           'ENVIRONMENTS',
           'ENVIRONMENT_MODES',
           'DEFAULT_ENV_MODE',
           'normalize_environment_mode',
           'make_environment']
