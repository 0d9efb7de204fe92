"""
Per-generation statistics recorded by the engine.
"""

from dataclasses import dataclass, asdict

# Maximum number of entries kept in the engine's history
HISTORY_LIMIT = 500

@dataclass(frozen=True)
class GenerationStats:
    gen                      : int
    best                     : float
    avg                      : float
    worst                    : float
    species_count            : int
    champion_node_count      : int
    champion_connection_count: int   # enabled connections only
    population_size          : int

    def to_dict(self) -> dict:
        return asdict(self)
