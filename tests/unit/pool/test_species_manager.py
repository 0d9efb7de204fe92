"""
Unit tests for neatlab.pool.species_manager module.

This module contains tests for the SpeciesManager class, which handles
speciation, fitness sharing, stale species removal and offspring quotas.
"""

import random
import pytest

from neatlab.genotype import Genome, ConnectionGene, NodeGene, NodeType
from neatlab.pool.species_manager import SpeciesManager
from neatlab.run.config import Config


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def config():
    return Config(compatibility_threshold=3.0, max_stale_generations=3)


@pytest.fixture
def manager(config):
    return SpeciesManager(config)


def plain_genome(config, genome_id, fitness=0.0):
    genome = Genome(genome_id, 2, 1, config)
    genome.fitness = fitness
    return genome


def distant_genome(config, genome_id, fitness=0.0):
    """A genome with 4 connection genes no plain genome has (distance 4 > threshold)."""
    genome = plain_genome(config, genome_id, fitness)
    for node_id in (10, 11):
        genome.node_genes[node_id] = NodeGene(node_id, NodeType.HIDDEN, 0.0, genome.activation)
    for innovation, (node_in, node_out) in enumerate([(0, 10), (10, 2), (1, 11), (11, 2)], start=100):
        genome.conn_genes[innovation] = ConnectionGene(node_in, node_out, 1.0, innovation, config)
    return genome


# ============================================================================
# Speciation
# ============================================================================

class TestSpeciate:

    def test_similar_genomes_share_species(self, config, manager):
        population = [plain_genome(config, i) for i in range(5)]
        manager.speciate(population, random.Random(0))
        assert len(manager.species) == 1
        assert all(genome.species_id == 0 for genome in population)

    def test_distant_genome_founds_species(self, config, manager):
        population = [plain_genome(config, 0), distant_genome(config, 1), plain_genome(config, 2)]
        manager.speciate(population, random.Random(0))
        assert [s.id for s in manager.species] == [0, 1]
        assert [g.species_id for g in population] == [0, 1, 0]

    def test_every_genome_assigned_once(self, config, manager):
        population = [plain_genome(config, i) for i in range(4)] + [distant_genome(config, i) for i in range(4, 8)]
        manager.speciate(population, random.Random(0))
        members = [genome.id for species in manager.species for genome in species.members]
        assert sorted(members) == list(range(8))

    def test_species_persist_across_generations(self, config, manager):
        manager.speciate([plain_genome(config, 0), distant_genome(config, 1)], random.Random(0))
        manager.speciate([distant_genome(config, 2), plain_genome(config, 3)], random.Random(0))
        assert [s.id for s in manager.species] == [0, 1]
        assert manager.species[1].members[0].id == 2

    def test_extinct_species_removed(self, config, manager):
        manager.speciate([plain_genome(config, 0), distant_genome(config, 1)], random.Random(0))
        manager.speciate([plain_genome(config, 2)], random.Random(0))
        assert [s.id for s in manager.species] == [0]

    def test_reset_restarts_ids(self, config, manager):
        manager.speciate([plain_genome(config, 0), distant_genome(config, 1)], random.Random(0))
        manager.reset()
        assert manager.species == []
        manager.speciate([distant_genome(config, 2)], random.Random(0))
        assert manager.species[0].id == 0


# ============================================================================
# Fitness sharing and staleness
# ============================================================================

class TestAdjustFitness:

    def test_fitness_sharing(self, config, manager):
        population = ([plain_genome(config, i, fitness=f) for i, f in enumerate([1.0, 2.0, 3.0])] +
                      [distant_genome(config, 3, fitness=4.0)])
        manager.speciate(population, random.Random(0))
        manager.adjust_fitness()

        for species in manager.species:
            raw      = sum(genome.fitness for genome in species.members)
            adjusted = sum(genome.adjusted_fitness for genome in species.members)
            assert adjusted == pytest.approx(raw / len(species.members))
        assert population[0].adjusted_fitness == pytest.approx(1.0 / 3)
        assert population[3].adjusted_fitness == pytest.approx(4.0)

    def test_staleness_tracked(self, config, manager):
        population = [plain_genome(config, 0, fitness=1.0)]
        for _ in range(3):
            manager.speciate(population, random.Random(0))
            manager.adjust_fitness()
        assert manager.species[0].stale_generations == 2


class TestRemoveStaleSpecies:

    def _two_species(self, config, manager):
        population = [plain_genome(config, 0, fitness=5.0), distant_genome(config, 1, fitness=1.0)]
        manager.speciate(population, random.Random(0))
        return population

    def test_stale_species_removed(self, config, manager):
        population = self._two_species(config, manager)
        manager.species[1].stale_generations = 4
        removed = manager.remove_stale_species(population[0])
        assert removed == [1]
        assert [s.id for s in manager.species] == [0]

    def test_species_of_best_protected(self, config, manager):
        population = self._two_species(config, manager)
        manager.species[0].stale_generations = 10
        assert manager.remove_stale_species(population[0]) == []
        assert len(manager.species) == 2

    def test_reseed_when_none_left(self, config, manager):
        population = self._two_species(config, manager)
        for species in manager.species:
            species.stale_generations = 10
        outsider = plain_genome(config, 9, fitness=7.0)
        manager.remove_stale_species(outsider)
        assert len(manager.species) == 1
        assert manager.species[0].members == [outsider]
        assert manager.species[0].id == 2


# ============================================================================
# Offspring allocation
# ============================================================================

class TestOffspringAllocations:

    def test_proportional_to_adjusted_fitness(self, config, manager):
        population = ([plain_genome(config, i, fitness=3.0) for i in range(2)] +
                      [distant_genome(config, 2, fitness=1.0)])
        manager.speciate(population, random.Random(0))
        manager.adjust_fitness()
        # adjusted totals: 3.0 vs 1.0
        allocations = {species.id: n for species, n in manager.offspring_allocations(100)}
        assert allocations == {0: 75, 1: 25}

    def test_richest_species_first(self, config, manager):
        population = [plain_genome(config, 0, fitness=1.0), distant_genome(config, 1, fitness=9.0)]
        manager.speciate(population, random.Random(0))
        manager.adjust_fitness()
        assert [species.id for species, _ in manager.offspring_allocations(50)] == [1, 0]

    def test_at_least_one_offspring(self, config, manager):
        population = [plain_genome(config, 0, fitness=1000.0), distant_genome(config, 1, fitness=0.0)]
        manager.speciate(population, random.Random(0))
        manager.adjust_fitness()
        allocations = dict((species.id, n) for species, n in manager.offspring_allocations(20))
        assert allocations == {0: 20, 1: 1}

    def test_even_split_without_fitness(self, config, manager):
        population = [plain_genome(config, 0), distant_genome(config, 1)]
        manager.speciate(population, random.Random(0))
        manager.adjust_fitness()
        assert [n for _, n in manager.offspring_allocations(30)] == [15, 15]
