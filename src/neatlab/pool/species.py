"""
NEAT Species Module

This module implements the Species class for the NEAT algorithm.
A species represents a cluster of genetically similar genomes
that compete primarily within their own niche.

Classes:
    Species: Represents a single species with members and staleness tracking

Functions:
    select_by_fitness: Roulette-wheel selection over raw fitness
"""

import random
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from neatlab.genotype import Genome

def select_by_fitness(genomes: list['Genome'], rng=None) -> 'Genome | None':
    """
    Pick a genome with probability proportional to its (non-negative) fitness.

    Negative fitness counts as zero. If no genome has a positive fitness
    the pick is uniform.

    Parameters:
        genomes: Candidates
        rng:     Source of randomness (defaults to the 'random' module)

    Returns:
        The selected genome (None if 'genomes' is empty)
    """
    if not genomes:
        return None
    rng = rng or random

    weights = [max(0.0, genome.fitness) for genome in genomes]
    total   = sum(weights)
    if total <= 0:
        return rng.choice(genomes)

    threshold  = rng.random() * total
    cumulative = 0.0
    for genome, weight in zip(genomes, weights):
        cumulative += weight
        if cumulative >= threshold:
            return genome
    return genomes[-1]

class Species:
    """
    A species representing a cluster of genetically similar genomes in NEAT.

    Each species keeps a representative genome used for distance calculations
    during speciation. The representative is a detached copy: it survives the
    replacement of the population, so the species' identity carries over to
    the next generation even though its members don't.

    Members are references into the current population and are rebuilt every
    generation. A species becomes stale when its best member fails to improve
    on the best fitness seen so far.

    Public Attributes:
        id:                Unique species identifier
        representative:    Copy of the genome that defines species membership
        members:           Genomes of the current generation assigned to this species
        best_fitness:      Best fitness ever achieved by a member (-inf initially)
        stale_generations: Number of generations without improvement

    Public Methods:
        add_member(genome):          Add a genome to the species
        clear_members():             Forget the members (before re-speciating)
        refresh_representative(rng): Pick a random member as the new representative
        average_fitness():           Mean (non-negative) fitness of the members
        update_staleness():          Track improvement of the best member
        select_by_fitness(rng):      Roulette-wheel selection among the members
    """

    def __init__(self, species_id: int, representative: 'Genome'):
        """
        Initialize a new species; 'representative' also becomes its first member.

        Parameters:
            species_id:     unique species identifier
            representative: the genome founding this species
        """
        self.id               : int            = species_id
        self.representative   : 'Genome'       = representative.clone()
        self.members          : list['Genome'] = []
        self.best_fitness     : float          = float('-inf')
        self.stale_generations: int            = 0
        self.add_member(representative)

    def add_member(self, genome: 'Genome') -> None:
        genome.species_id = self.id
        self.members.append(genome)

    def clear_members(self) -> None:
        self.members = []

    def refresh_representative(self, rng=None) -> None:
        if not self.members:
            return
        rng = rng or random
        self.representative = rng.choice(self.members).clone()

    def average_fitness(self) -> float:
        if not self.members:
            return 0.0
        return sum(max(0.0, genome.fitness) for genome in self.members) / len(self.members)

    def best_member(self) -> 'Genome | None':
        if not self.members:
            return None
        return max(self.members, key=lambda genome: genome.fitness)

    def update_staleness(self) -> None:
        """
        Reset the stale counter if the best member beats the best fitness
        seen so far, increment it otherwise.
        """
        best = self.best_member()
        if best is None:
            return
        if best.fitness > self.best_fitness:
            self.best_fitness      = best.fitness
            self.stale_generations = 0
        else:
            self.stale_generations += 1

    def select_by_fitness(self, rng=None) -> 'Genome | None':
        return select_by_fitness(self.members, rng)

    def to_dict(self) -> dict:
        return {
            'id'               : self.id,
            'members'          : [genome.id for genome in self.members],
            'representative_id': self.representative.id,
            'best_fitness'     : self.best_fitness if self.best_fitness != float('-inf') else None,
            'stale_generations': self.stale_generations
        }

    def __repr__(self):
        return (f"Species(id={self.id}, members={len(self.members)}, "
                f"best_fitness={self.best_fitness:.3f}, stale={self.stale_generations})")
