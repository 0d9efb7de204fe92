"""
NEAT Run Package

Configuration, statistics, and the engine that drives evolution.

Modules:
    config: Config class (tunable parameters)
    stats:  GenerationStats record
    engine: NEATEngine class (import from 'neatlab.run.engine' or 'neatlab')
"""

from neatlab.run.config import Config
from neatlab.run.stats  import GenerationStats, HISTORY_LIMIT

__all__ = ['Config', 'GenerationStats', 'HISTORY_LIMIT']
