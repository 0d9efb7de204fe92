"""
NEAT Pool Package

This package implements speciation: the species of a run and the
manager that assigns genomes to them.

Exported:
    Species:           A cluster of genetically similar genomes
    SpeciesManager:    Manages all species of a run
    select_by_fitness: Roulette-wheel selection over raw fitness
"""

from neatlab.pool.species         import Species, select_by_fitness
from neatlab.pool.species_manager import SpeciesManager

__all__ = ['Species', 'SpeciesManager', 'select_by_fitness']
