#!/usr/bin/env python3
"""
Utility script to run NEAT evolution on one of the built-in environments.

Usage:
    python scripts/run_evolution.py xor --config examples/configs/config_xor.ini
    python scripts/run_evolution.py flappy_bird --generations 50 --num-jobs 4
    python scripts/run_evolution.py obstacle_avoid --save-best best.json
    python scripts/run_evolution.py obstacle_avoid --start-from best.json
"""

import sys
import json
import logging
import argparse
from pathlib import Path

# Add the source directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from neatlab                import Config, make_environment
from neatlab.environments   import ENVIRONMENTS, ENVIRONMENT_MODES
from neatlab.run.engine     import NEATEngine
from neatlab.run.stats      import GenerationStats

logger = logging.getLogger("run_evolution")

THRESHOLDS = {
    'xor': 3.9,
}

def report(stats: GenerationStats) -> None:
    logger.info(f"gen {stats.gen:4d} | best {stats.best:9.3f} | avg {stats.avg:9.3f} | "
                f"species {stats.species_count:3d} | champion "
                f"{stats.champion_node_count} nodes, {stats.champion_connection_count} connections")

def main():
    parser = argparse.ArgumentParser(description='Run NEAT evolution')
    parser.add_argument('environment', choices=sorted(set(ENVIRONMENTS) | set(ENVIRONMENT_MODES)),
                        help='Environment to evolve networks for')
    parser.add_argument('--config', type=str, default=None,
                        help='INI configuration file')
    parser.add_argument('--generations', type=int, default=100,
                        help='Maximum number of generations')
    parser.add_argument('--threshold', type=float, default=None,
                        help='Stop once a genome reaches this fitness')
    parser.add_argument('--num-jobs', type=int, default=None,
                        help='Number of parallel evaluation jobs')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed of the engine')
    parser.add_argument('--start-from', type=str, default=None,
                        help='Seed the population from a genome JSON file (see --save-best)')
    parser.add_argument('--save-best', type=str, default=None,
                        help='Write the best genome to this JSON file')
    parser.add_argument('--visualize', action='store_true',
                        help='Render the best network with Graphviz')
    parser.add_argument('--verbose', action='store_true',
                        help='Log debug messages')

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    overrides = {}
    if args.num_jobs is not None:
        overrides['num_jobs'] = args.num_jobs
    if args.seed is not None:
        overrides['seed'] = args.seed
    config = Config(args.config, **overrides)

    engine    = NEATEngine(make_environment(args.environment), config)
    if args.start_from:
        with open(args.start_from) as f:
            engine.seed_population([json.load(f)])
    threshold = args.threshold if args.threshold is not None else THRESHOLDS.get(args.environment)
    engine.run(args.generations, fitness_threshold=threshold, on_generation=report)

    best = engine.get_display_best()
    logger.info(f"best fitness {best.fitness:.4f} ({best})")

    if args.save_best:
        with open(args.save_best, 'w') as f:
            json.dump(best.to_dict(), f, indent=2)
        logger.info(f"best genome saved to {args.save_best}")

    if args.visualize:
        best.network.visualize(view=True)

if __name__ == '__main__':
    main()
