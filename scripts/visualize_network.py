#!/usr/bin/env python3
"""
Utility script to visualize a genome saved by run_evolution.py.

Usage:
    python scripts/visualize_network.py --genome best.json
"""

import sys
import json
import argparse
from pathlib import Path

# Add the source directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from neatlab.genotype import Genome

def main():
    parser = argparse.ArgumentParser(description='Visualize NEAT neural networks')
    parser.add_argument('--genome', type=str, required=True,
                        help='Path to a genome JSON file')
    parser.add_argument('--output', type=str, default='network',
                        help='Output filename (without extension)')
    parser.add_argument('--format', type=str, default='png',
                        choices=['png', 'pdf', 'svg'],
                        help='Output format')
    parser.add_argument('--no-view', action='store_true',
                        help='Do not automatically open the generated file')

    args = parser.parse_args()

    with open(args.genome) as f:
        genome = Genome.from_dict(json.load(f))

    dot = genome.network.visualize(view=False)
    dot.format = args.format
    dot.render(args.output, view=not args.no_view)
    print(f"Network visualization saved to {args.output}.{args.format}")

if __name__ == '__main__':
    main()
