"""
NEAT Engine Module

This module implements the NEATEngine class, which owns a population of
genomes and evolves it against an environment, one generation at a time.

One generation consists of:
1. Evaluating every genome in the environment
2. Assigning genomes to species
3. Sharing fitness within species and tracking staleness
4. Removing stale species
5. Recording statistics
6. Producing the next population (elitism, crossover, mutation)

Fitness evaluation can run in parallel (joblib, thread backend); all other
steps are sequential. The new population replaces the old one only once it
is complete, so an observer never sees a half-built generation.

Classes:
    NEATEngine: Evolves a population of genomes against an environment
"""

import logging
import math
import random
import time
from itertools  import count
from statistics import mean
from typing     import Callable

from joblib import Parallel, delayed

from neatlab.run.config   import Config
from neatlab.run.stats    import GenerationStats, HISTORY_LIMIT
from neatlab.genotype     import Genome, InnovationTracker
from neatlab.pool         import Species, SpeciesManager, select_by_fitness
from neatlab.environments import BaseEnvironment

logger = logging.getLogger(__name__)

# Progress is reported (and the thread yields) after this many evaluations
PROGRESS_INTERVAL = 8

# Add-connection attempts per mutation
ADD_CONNECTION_ATTEMPTS = 30

# Probability that a genome of the initial population gets a second connection
SECOND_CONNECTION_PROB = 0.25

class NEATEngine:
    """
    Evolves a population of genomes against an environment.

    The engine owns everything that lives for the duration of a run: the
    innovation tracker, the genome and species ID counters, the random number
    generator, the population, the species and the statistics history. Two
    engines never share any of this state.

    Public Attributes:
        environment:        The task genomes are evaluated on
        config:             Tunable parameters
        tracker:            Issues innovation numbers and node IDs
        population:         Genomes of the current generation
        display_population: Copies of the last evaluated generation, fittest first
        history:            GenerationStats of past generations (at most 500)
        generation:         Number of completed generations

    Public Methods:
        init_population(clear_history):      Create a fresh population
        seed_population(genomes):            Start a fresh population from existing genomes
        evolve_one_generation(on_progress):  Run one complete generation
        speciate():                          Assign the population to species
        adjust_fitness():                    Share fitness within species
        remove_stale_species():              Remove species that stopped improving
        create_next_generation():            Produce the next population
        update_config(partial):              Change tunables on the fly
        run(max_generations, ...):           Evolve until a termination condition is met
        get_best(), get_stats(), get_config(), get_genome_by_id(genome_id), ...
    """

    def __init__(self, environment: BaseEnvironment, config: Config | dict | None = None):
        """
        Initialize the engine and create the initial population.

        Parameters:
            environment: The task genomes are evaluated on
            config:      A Config, a dictionary of (partial) settings, or None for defaults
        """
        if isinstance(config, Config):
            self.config = config
        else:
            self.config = Config(**(config or {}))

        self.environment    : BaseEnvironment   = environment
        self.rng            : random.Random     = random.Random(self.config.seed)
        self.tracker        : InnovationTracker = InnovationTracker(environment.input_count +
                                                                    environment.output_count)
        self.species_manager: SpeciesManager    = SpeciesManager(self.config)

        self.population        : list[Genome]          = []
        self.display_population: list[Genome]          = []
        self.history           : list[GenerationStats] = []
        self.generation        : int                   = 0
        self._genome_ids                               = count(0)  # generates genome IDs

        self.environment.set_max_steps(self.config.max_steps_per_eval)
        self.init_population(clear_history=True)

        logger.info(f"engine created: environment '{environment.name}' "
                    f"({environment.input_count} inputs, {environment.output_count} outputs), "
                    f"population {self.config.population_size}")

    @property
    def species(self) -> list[Species]:
        return self.species_manager.species

    def _next_genome_id(self) -> int:
        return next(self._genome_ids)

    def _add_connection(self, genome: Genome) -> bool:
        return genome.mutate_add_connection(self.tracker,
                                            ADD_CONNECTION_ATTEMPTS,
                                            self.config.allow_recurrent,
                                            self.rng)

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def init_population(self, clear_history: bool = False) -> None:
        """
        Create a fresh population of minimal genomes, each with one random
        connection (and a second one with probability 0.25).

        Species are discarded and species IDs restart from 0. Genome IDs and
        innovation numbers keep counting; they are never reused within an engine.

        Parameters:
            clear_history: Also reset the generation counter and the statistics history
        """
        self.population = []
        self.species_manager.reset()

        if clear_history:
            self.generation = 0
            self.history    = []

        for _ in range(self.config.population_size):
            genome = Genome(self._next_genome_id(),
                            self.environment.input_count,
                            self.environment.output_count,
                            self.config)
            self._add_connection(genome)
            if self.rng.random() < SECOND_CONNECTION_PROB:
                self._add_connection(genome)
            self.population.append(genome)

        self.refresh_display_population()

    def seed_population(self, genomes: list[Genome | dict], clear_history: bool = True) -> None:
        """
        Start a fresh population from existing genomes, e.g. the champion of
        an earlier run loaded with 'Genome.from_dict()'.

        The seeds are copied once each; the rest of the population consists
        of copies with mutated weights. Connections are renumbered through
        this engine's tracker and new node IDs are issued above the seeds'
        node IDs, so the seeds line up with genes created from now on.

        Parameters:
            genomes:       Genomes or genome dictionaries (as produced by 'to_dict()')
            clear_history: Also reset the generation counter and the statistics history

        Raises:
            ValueError: No genomes given, or a genome doesn't fit the environment
        """
        seeds = [self._adopt(genome) for genome in genomes]
        if not seeds:
            raise ValueError("cannot seed a population without genomes")

        self.population = []
        self.species_manager.reset()

        if clear_history:
            self.generation = 0
            self.history    = []

        for i in range(self.config.population_size):
            child = seeds[i % len(seeds)].clone()
            if i >= len(seeds):
                child.mutate_weights(self.rng)
            self.population.append(self._prepare_offspring(child, None))

        self.refresh_display_population()
        logger.info(f"population seeded from {len(seeds)} genome(s)")

    def _adopt(self, genome: Genome | dict) -> Genome:
        genome_dict = genome if isinstance(genome, dict) else genome.to_dict()
        adopted     = Genome.from_dict(genome_dict, self.config)

        if (adopted.num_inputs, adopted.num_outputs) != (self.environment.input_count,
                                                         self.environment.output_count):
            raise ValueError(f"genome {adopted.id} has {adopted.num_inputs} inputs and "
                             f"{adopted.num_outputs} outputs, the environment needs "
                             f"{self.environment.input_count} and {self.environment.output_count}")

        conn_genes = {}
        for conn in adopted.conn_genes.values():
            conn.innovation = self.tracker.get_innovation(conn.node_in, conn.node_out)
            conn_genes[conn.innovation] = conn
        adopted.conn_genes = conn_genes
        adopted.invalidate_network()

        self.tracker.ensure_node_counter(max(adopted.node_genes) + 1)
        return adopted

    def refresh_display_population(self) -> None:
        self.display_population = sorted((genome.clone() for genome in self.population),
                                         key=lambda genome: genome.fitness, reverse=True)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def evolve_one_generation(self, on_progress: Callable[[float], None] | None = None) -> GenerationStats:
        """
        Run one complete generation.

        Parameters:
            on_progress: Called with the fraction of genomes evaluated so far
                         (every 8 genomes, and with 1.0 at the end of evaluation)

        Returns:
            The statistics of the evaluated generation
        """
        if not self.population:
            return self.get_stats()

        self._evaluate_population(on_progress)

        self.speciate()
        self.adjust_fitness()
        self.remove_stale_species()
        self.refresh_display_population()
        self.record_stats()

        new_population  = self.create_next_generation()
        self.population = new_population
        self.generation += 1

        stats = self.get_stats()
        logger.debug(f"generation {stats.gen}: best {stats.best:.3f}, avg {stats.avg:.3f}, "
                     f"{stats.species_count} species")
        return stats

    def _evaluate(self, genome: Genome) -> float:
        fitness = float(self.environment.evaluate(genome))
        return fitness if math.isfinite(fitness) else 0.0

    def _evaluate_population(self, on_progress: Callable[[float], None] | None) -> None:
        """
        Evaluate the fitness of every genome in the population.

        Uses serial or parallel evaluation based on 'config.num_jobs':
        - num_jobs=1:         Sequential evaluation in the calling thread
        - num_jobs>1 or -1:   Parallel evaluation using joblib threads
        Either way results are assigned in population order.
        """
        population = self.population
        num_genomes = len(population)

        if self.config.num_jobs == 1:
            fitness_all = (self._evaluate(genome) for genome in population)
        else:
            fitness_all = Parallel(n_jobs=self.config.num_jobs, prefer="threads",
                                   return_as="generator")(delayed(self._evaluate)(g) for g in population)

        for i, (genome, fitness) in enumerate(zip(population, fitness_all)):
            if i % PROGRESS_INTERVAL == 0:
                if on_progress is not None:
                    on_progress(i / num_genomes)
                time.sleep(0)  # let other threads run
            genome.fitness = fitness

        if on_progress is not None:
            on_progress(1.0)

    def speciate(self) -> None:
        self.species_manager.speciate(self.population, self.rng)

    def adjust_fitness(self) -> None:
        self.species_manager.adjust_fitness()

    def remove_stale_species(self) -> None:
        self.species_manager.remove_stale_species(self.get_best())

    # ------------------------------------------------------------------
    # Reproduction
    # ------------------------------------------------------------------

    def _prepare_offspring(self, child: Genome, species_id: int | None) -> Genome:
        child.id               = self._next_genome_id()
        child.fitness          = 0.0
        child.adjusted_fitness = 0.0
        child.species_id       = species_id
        child.reset_activations()
        if child.activation != self.config.activation:
            child.set_activation(self.config.activation)
        return child

    def _mutate_offspring(self, child: Genome) -> None:
        if self.rng.random() < self.config.weight_mutation_rate:
            child.mutate_weights(self.rng)
        if self.rng.random() < self.config.add_connection_rate:
            self._add_connection(child)
        if self.rng.random() < self.config.add_node_rate:
            child.mutate_add_node(self.tracker, self.rng)

    def create_next_generation(self) -> list[Genome]:
        """
        Produce the next population from the current (evaluated, speciated) one.

        - The global best genome is copied unmutated (elitism)
        - Each species gets a quota of offspring proportional to its share
          of the total adjusted fitness (richest species first)
        - Each species' champion is copied unmutated, unless it is the global best
        - The rest of the quota is filled with children, produced by crossover
          (with probability 'crossover_rate') or cloning of parents picked from the
          species' top 'survival_rate' fraction, and then mutated
        - A shortfall is padded with mutated copies of the global best; an
          overshoot is truncated

        Returns:
            The new population (exactly 'population_size' genomes)
        """
        population_size = self.config.population_size

        if not self.species:
            return [self._prepare_offspring(genome.clone(), None) for genome in self.population]

        new_population = []
        global_best    = self.get_best()
        if global_best is not None:
            new_population.append(self._prepare_offspring(global_best.clone(), global_best.species_id))

        for species, offspring in self.species_manager.offspring_allocations(population_size):
            species.members.sort(key=lambda genome: genome.fitness, reverse=True)
            champion           = species.members[0]
            champion_preserved = champion is global_best

            if not champion_preserved and len(new_population) < population_size:
                new_population.append(self._prepare_offspring(champion.clone(), species.id))

            pool_size   = max(2, int(len(species.members) * self.config.survival_rate))
            mating_pool = species.members[:pool_size]

            children_to_create = max(0, offspring - (0 if champion_preserved else 1))
            for _ in range(children_to_create):
                if len(new_population) >= population_size:
                    break

                if self.rng.random() < self.config.crossover_rate and len(mating_pool) > 1:
                    parent1 = select_by_fitness(mating_pool, self.rng) or champion
                    if self.rng.random() < self.config.inter_species_mate_rate:
                        parent2 = self.select_from_other_species(species)
                    else:
                        parent2 = None
                    parent2 = parent2 or select_by_fitness(mating_pool, self.rng) or champion

                    if parent1.fitness >= parent2.fitness:
                        child = Genome.crossover(parent1, parent2, self.rng)
                    else:
                        child = Genome.crossover(parent2, parent1, self.rng)
                else:
                    child = (select_by_fitness(mating_pool, self.rng) or champion).clone()

                self._mutate_offspring(child)
                new_population.append(self._prepare_offspring(child, species.id))

        # Pad a rounding shortfall
        while len(new_population) < population_size:
            source = global_best or self.rng.choice(self.population)
            filler = source.clone()
            filler.mutate_weights(self.rng)
            if self.rng.random() < self.config.add_connection_rate:
                self._add_connection(filler)
            new_population.append(self._prepare_offspring(filler, None))

        return new_population[:population_size]

    def select_from_other_species(self, current: Species) -> Genome | None:
        """
        Pick a mate from a random species other than 'current' (None if there is none).
        """
        others = [species for species in self.species if species.id != current.id and species.members]
        if not others:
            return None

        selected  = self.rng.choice(others)
        pool_size = max(1, int(len(selected.members) * self.config.survival_rate))
        pool      = sorted(selected.members, key=lambda genome: genome.fitness, reverse=True)[:pool_size]
        return select_by_fitness(pool, self.rng) or pool[0]

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def update_config(self, partial: dict | None) -> dict:
        """
        Change tunables while the engine is running.

        Values are clamped into range (see Config). A new activation
        function is applied to all genomes, keeping their weights. A new
        population size discards the population and starts over.

        Parameters:
            partial: Dictionary with the settings to change

        Returns:
            The complete configuration after the update
        """
        changed = self.config.update(partial)
        self.environment.set_max_steps(self.config.max_steps_per_eval)

        if 'seed' in changed:
            self.rng.seed(self.config.seed)

        if 'activation' in changed:
            for genome in self.population:
                genome.set_activation(self.config.activation)

        if 'population_size' in changed:
            logger.info(f"population size changed to {self.config.population_size}, restarting")
            self.init_population(clear_history=True)

        if changed:
            logger.debug(f"configuration updated: {changed}")
        return self.get_config()

    def get_config(self) -> dict:
        return self.config.to_dict()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_best(self) -> Genome | None:
        if not self.population:
            return None
        return max(self.population, key=lambda genome: genome.fitness)

    def get_display_population(self) -> list[Genome]:
        return self.display_population or self.population

    def get_display_best(self) -> Genome | None:
        source = self.get_display_population()
        if not source:
            return None
        return max(source, key=lambda genome: genome.fitness)

    def get_genome_by_id(self, genome_id) -> Genome | None:
        """
        Look a genome up in the display population first, then in the current population.
        """
        try:
            genome_id = int(genome_id)
        except (TypeError, ValueError):
            return None

        for genome in self.get_display_population():
            if genome.id == genome_id:
                return genome
        for genome in self.population:
            if genome.id == genome_id:
                return genome
        return None

    def record_stats(self) -> None:
        if not self.population:
            return

        fitness_all = [genome.fitness for genome in self.population]
        best        = self.get_best()
        self.history.append(GenerationStats(
            gen                       = self.generation,
            best                      = max(fitness_all),
            avg                       = mean(fitness_all),
            worst                     = min(fitness_all),
            species_count             = len(self.species),
            champion_node_count       = best.number_nodes,
            champion_connection_count = best.number_connections_enabled,
            population_size           = len(self.population)))

        if len(self.history) > HISTORY_LIMIT:
            self.history = self.history[-HISTORY_LIMIT:]

    def get_stats(self) -> GenerationStats:
        if self.history:
            return self.history[-1]
        return GenerationStats(gen=self.generation, best=0.0, avg=0.0, worst=0.0,
                               species_count=len(self.species),
                               champion_node_count=0, champion_connection_count=0,
                               population_size=len(self.population))

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def run(self,
            max_generations  : int,
            fitness_threshold: float | None = None,
            on_generation    : Callable[[GenerationStats], None] | None = None) -> list[GenerationStats]:
        """
        Evolve until 'max_generations' generations have run, or until the
        best fitness of a generation reaches 'fitness_threshold'.

        Parameters:
            max_generations:   Maximum number of generations to run
            fitness_threshold: Stop as soon as a genome reaches this fitness (optional)
            on_generation:     Called with the statistics of every generation

        Returns:
            The statistics history
        """
        for _ in range(max_generations):
            stats = self.evolve_one_generation()
            if on_generation is not None:
                on_generation(stats)

            if fitness_threshold is not None and stats.best >= fitness_threshold:
                logger.info(f"fitness threshold {fitness_threshold} reached in generation {stats.gen}")
                break

        return list(self.history)
