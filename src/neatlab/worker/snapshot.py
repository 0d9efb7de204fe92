"""
Plain-data views of the engine state, sent to the host with most events.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from neatlab.genotype   import Genome
    from neatlab.run.engine import NEATEngine

# Maximum number of complete genome descriptions in a snapshot
VISUAL_GENOME_LIMIT = 48

def serialize_genome_full(genome: 'Genome', include_activations: bool = False) -> dict:
    return genome.to_dict(include_activations=include_activations)

def serialize_genome_lite(genome: 'Genome') -> dict:
    return {
        'id'              : genome.id,
        'fitness'         : float(genome.fitness),
        'adjusted_fitness': float(genome.adjusted_fitness),
        'species_id'      : genome.species_id,
        'node_count'      : genome.number_nodes,
        'connection_count': genome.number_connections_enabled
    }

def build_snapshot(engine: 'NEATEngine', running: bool) -> dict:
    """
    Describe the engine state using plain data only.

    Parameters:
        engine:  The engine to describe
        running: Whether the worker's generation loop is active

    Returns:
        Dictionary with keys generation, history, population,
        population_genomes, species, stats, best, config, running, environment
    """
    visible_population = engine.get_display_population()
    best               = engine.get_display_best()

    return {
        'generation'        : engine.generation,
        'history'           : [stats.to_dict() for stats in engine.history],
        'population'        : [serialize_genome_lite(genome) for genome in visible_population],
        'population_genomes': [serialize_genome_full(genome)
                               for genome in visible_population[:VISUAL_GENOME_LIMIT]],
        'species'           : engine.species_manager.to_dicts(),
        'stats'             : engine.get_stats().to_dict(),
        'best'              : serialize_genome_full(best, include_activations=True) if best is not None else None,
        'config'            : engine.get_config(),
        'running'           : running,
        'environment'       : engine.environment.describe()
    }
