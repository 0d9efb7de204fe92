"""
Unit tests for neatlab.pool.species module.

This module contains tests for the Species class, which represents
a cluster of genetically similar genomes, and for roulette-wheel selection.
"""

import random
import pytest

from neatlab.genotype import Genome
from neatlab.pool.species import Species, select_by_fitness
from neatlab.run.config import Config


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def config():
    return Config()


def make_genomes(config, fitness_values, first_id=0):
    genomes = []
    for i, fitness in enumerate(fitness_values):
        genome = Genome(first_id + i, 2, 1, config)
        genome.fitness = fitness
        genomes.append(genome)
    return genomes


# ============================================================================
# Tests
# ============================================================================

class TestSpeciesInit:

    def test_founder_becomes_member(self, config):
        (founder,) = make_genomes(config, [1.0])
        species = Species(3, founder)
        assert species.members == [founder]
        assert founder.species_id == 3
        assert species.best_fitness == float('-inf')
        assert species.stale_generations == 0

    def test_representative_is_detached_copy(self, config):
        (founder,) = make_genomes(config, [1.0])
        species = Species(0, founder)
        assert species.representative is not founder
        assert species.representative.id == founder.id
        founder.fitness = 5.0
        assert species.representative.fitness == 1.0


class TestMembers:

    def test_add_and_clear(self, config):
        founder, other = make_genomes(config, [1.0, 2.0])
        species = Species(1, founder)
        species.add_member(other)
        assert other.species_id == 1
        assert len(species.members) == 2
        species.clear_members()
        assert species.members == []

    def test_refresh_representative_picks_a_member(self, config):
        genomes = make_genomes(config, [1.0, 2.0, 3.0])
        species = Species(0, genomes[0])
        for genome in genomes[1:]:
            species.add_member(genome)
        species.refresh_representative(random.Random(1))
        assert species.representative.id in {0, 1, 2}
        assert all(species.representative is not genome for genome in genomes)

    def test_refresh_representative_without_members(self, config):
        (founder,) = make_genomes(config, [1.0])
        species = Species(0, founder)
        representative = species.representative
        species.clear_members()
        species.refresh_representative()
        assert species.representative is representative

    def test_average_and_best(self, config):
        genomes = make_genomes(config, [-2.0, 1.0, 5.0])
        species = Species(0, genomes[0])
        for genome in genomes[1:]:
            species.add_member(genome)
        assert species.average_fitness() == pytest.approx(2.0)   # negative fitness counts as 0
        assert species.best_member() is genomes[2]


class TestStaleness:

    def test_improvement_resets_counter(self, config):
        (founder,) = make_genomes(config, [1.0])
        species = Species(0, founder)
        species.update_staleness()
        assert species.best_fitness == 1.0
        assert species.stale_generations == 0

        species.update_staleness()
        species.update_staleness()
        assert species.stale_generations == 2

        founder.fitness = 1.5
        species.update_staleness()
        assert species.best_fitness == 1.5
        assert species.stale_generations == 0

    def test_no_members_leaves_counter(self, config):
        (founder,) = make_genomes(config, [1.0])
        species = Species(0, founder)
        species.clear_members()
        species.update_staleness()
        assert species.stale_generations == 0
        assert species.best_fitness == float('-inf')

    def test_to_dict(self, config):
        genomes = make_genomes(config, [1.0, 2.0], first_id=10)
        species = Species(4, genomes[0])
        species.add_member(genomes[1])
        assert species.to_dict() == {'id': 4, 'members': [10, 11], 'representative_id': 10,
                                     'best_fitness': None, 'stale_generations': 0}
        species.update_staleness()
        assert species.to_dict()['best_fitness'] == 2.0


class TestSelectByFitness:

    def test_empty(self):
        assert select_by_fitness([]) is None

    def test_proportional(self, config):
        genomes = make_genomes(config, [0.0, 1.0, 3.0])
        rng     = random.Random(0)
        counts  = {genome.id: 0 for genome in genomes}
        for _ in range(4000):
            counts[select_by_fitness(genomes, rng).id] += 1
        assert counts[0] == 0
        assert counts[2] / counts[1] == pytest.approx(3.0, rel=0.2)

    def test_uniform_when_no_positive_fitness(self, config):
        genomes = make_genomes(config, [0.0, -1.0, 0.0])
        rng     = random.Random(0)
        picked  = {select_by_fitness(genomes, rng).id for _ in range(200)}
        assert picked == {0, 1, 2}
