"""
NEAT Species Manager Module

This module implements the SpeciesManager class for the NEAT algorithm.
The manager coordinates the speciation process and manages the lifecycle
of all species across generations.

Speciation in NEAT:
New structural innovations often have lower initial fitness and would be
quickly eliminated in a plain genetic algorithm. NEAT addresses this by
organizing the population into species - groups of genetically similar
genomes that compete primarily within their own niche.

How Speciation Works:
1. Each genome joins the first species whose representative lies within the
   compatibility threshold, or founds a new species otherwise
2. Species left without members die out; every surviving species picks a
   random member as its representative for the next generation
3. Each member's fitness is shared with the rest of its species
   (adjusted fitness = raw fitness / species size)
4. Species that haven't improved for too long are removed, unless they
   hold the best genome of the population
5. Each species is allotted offspring in proportion to its share of the
   total adjusted fitness

Classes:
    SpeciesManager: Manages all species of a run
"""

import logging
import random
from itertools import count
from typing    import TYPE_CHECKING

from neatlab.run.config   import Config
from neatlab.pool.species import Species
if TYPE_CHECKING:
    from neatlab.genotype import Genome

logger = logging.getLogger(__name__)

class SpeciesManager:
    """
    Manages the collection of species and the speciation process across generations.

    Public Attributes:
        species: The current species, in creation order

    Public Methods:
        reset():                                 Forget all species, restart species IDs
        speciate(population, rng):               Assign all genomes to species
        adjust_fitness():                        Share fitness within species, track staleness
        remove_stale_species(global_best):       Remove species that haven't improved
        offspring_allocations(population_size):  Determine offspring count per species
    """

    def __init__(self, config: Config):
        """
        Initialize the Species Manager.

        Parameters:
            config: Stores configuration parameters.
        """
        self.species      : list[Species] = []
        self._id_generator                = count(0)  # generates species IDs
        self._config      : Config        = config

    def reset(self) -> None:
        self.species       = []
        self._id_generator = count(0)

    def new_species(self, founder: 'Genome') -> Species:
        species = Species(next(self._id_generator), founder)
        self.species.append(species)
        return species

    def speciate(self, population: list['Genome'], rng=None) -> None:
        """
        Assign all genomes of a population to species based on genetic similarity.

        Each genome is compared against the species representatives in creation
        order and joins the first one closer than the compatibility threshold.
        A genome that doesn't fit any species founds a new one (and becomes its
        representative). Afterwards empty species are dropped and every species
        picks a random member as representative for the next generation.

        Postconditions:
            - Every genome in the population belongs to exactly one species
            - Each species has at least one member

        Parameters:
            population: The genomes to speciate
            rng:        Source of randomness (defaults to the 'random' module)
        """
        rng = rng or random
        threshold = self._config.compatibility_threshold

        for species in self.species:
            species.clear_members()

        for genome in population:
            for species in self.species:
                if genome.compatibility(species.representative) < threshold:
                    species.add_member(genome)
                    break
            else:
                self.new_species(genome)

        # Remove extinct species
        self.species = [species for species in self.species if species.members]
        for species in self.species:
            species.refresh_representative(rng)

        # Error check: all genomes in the population must have been allocated to a species
        assigned_count = sum(len(species.members) for species in self.species)
        assert assigned_count == len(population), "Lost genomes during speciation!"

        logger.debug(f"speciated {len(population)} genomes into {len(self.species)} species")

    def adjust_fitness(self) -> None:
        """
        Explicit fitness sharing: each genome's adjusted fitness is its raw
        fitness divided by the number of members of its species.
        Also updates each species' staleness.
        """
        for species in self.species:
            divisor = max(1, len(species.members))
            for genome in species.members:
                genome.adjusted_fitness = genome.fitness / divisor
            species.update_staleness()

    def remove_stale_species(self, global_best: 'Genome | None') -> list[int]:
        """
        Remove species which haven't improved for more than 'max_stale_generations'.

        The species holding 'global_best' is never removed. If no species is
        left, a new species is founded around 'global_best'.

        Parameters:
            global_best: The fittest genome of the population

        Returns:
            IDs of the removed species
        """
        if not self.species:
            return []

        max_stale = self._config.max_stale_generations
        removed   = []
        survivors = []
        for species in self.species:
            contains_best = global_best is not None and any(g is global_best for g in species.members)
            if contains_best or species.stale_generations <= max_stale:
                survivors.append(species)
            else:
                removed.append(species.id)
        self.species = survivors

        if not self.species and global_best is not None:
            self.new_species(global_best)

        if removed:
            logger.debug(f"removed stale species {removed}")
        return removed

    def offspring_allocations(self, population_size: int) -> list[tuple[Species, int]]:
        """
        Determine how many offspring each species produces.

        A species' quota is its share of the total adjusted fitness (negative
        values count as zero) times the population size, rounded down and
        clamped to [1, population_size]. If the total is zero the population
        is split evenly. Species are returned richest first (by best fitness).

        Parameters:
            population_size: Target size of the next generation

        Returns:
            List of (species, number of offspring) pairs
        """
        def adjusted_total(genomes):
            return sum(max(0.0, genome.adjusted_fitness) for genome in genomes)

        all_adjusted = adjusted_total(g for species in self.species for g in species.members)
        ordered      = sorted(self.species, key=lambda species: species.best_fitness, reverse=True)

        allocations = []
        for species in ordered:
            if all_adjusted > 0:
                raw_share = adjusted_total(species.members) / all_adjusted * population_size
            else:
                raw_share = population_size / max(1, len(self.species))
            allocations.append((species, max(1, min(population_size, int(raw_share)))))
        return allocations

    def to_dicts(self) -> list[dict]:
        return [species.to_dict() for species in self.species]
