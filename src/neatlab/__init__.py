"""
neatlab - NEAT (NeuroEvolution of Augmenting Topologies) laboratory.

This package evolves neural networks whose topology and weights grow
together, against pluggable task environments, and can run the evolution
loop in a background worker driven by messages.

Main components:
- genotype:     Genetic encoding (genomes, genes, innovation tracking)
- phenotype:    Network evaluation (feed-forward and recurrent)
- pool:         Species and speciation
- run:          Configuration, statistics and the NEAT engine
- environments: Tasks genomes are evaluated on
- worker:       Background evolution driven by messages
- activations:  Activation functions

Example:
    >>> from neatlab import NEATEngine, make_environment
    >>> engine = NEATEngine(make_environment("xor"), {"population_size": 100, "seed": 1})
    >>> history = engine.run(max_generations=50, fitness_threshold=3.9)
"""

__version__ = "0.1.0"

from neatlab.run.config    import Config
from neatlab.run.stats     import GenerationStats
from neatlab.genotype      import Genome, InnovationTracker, NodeGene, ConnectionGene, NodeType
from neatlab.phenotype     import Network
from neatlab.pool          import Species, SpeciesManager
from neatlab.environments  import BaseEnvironment, make_environment
from neatlab.run.engine    import NEATEngine
from neatlab.worker        import EvolutionWorker

__all__ = [
    "Config",
    "GenerationStats",
    "Genome",
    "InnovationTracker",
    "NodeGene",
    "ConnectionGene",
    "NodeType",
    "Network",
    "Species",
    "SpeciesManager",
    "BaseEnvironment",
    "make_environment",
    "NEATEngine",
    "EvolutionWorker",
]
