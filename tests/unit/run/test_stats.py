"""
Unit tests for GenerationStats.
"""

import dataclasses
import pytest

from neatlab.run.stats import GenerationStats


class TestGenerationStats:

    def test_to_dict(self):
        stats = GenerationStats(gen=3, best=2.5, avg=1.0, worst=0.0, species_count=4,
                                champion_node_count=5, champion_connection_count=6, population_size=150)
        assert stats.to_dict() == {'gen': 3, 'best': 2.5, 'avg': 1.0, 'worst': 0.0, 'species_count': 4,
                                   'champion_node_count': 5, 'champion_connection_count': 6,
                                   'population_size': 150}

    def test_frozen(self):
        stats = GenerationStats(0, 0.0, 0.0, 0.0, 0, 0, 0, 0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            stats.best = 1.0
