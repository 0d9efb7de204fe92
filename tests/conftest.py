"""Pytest configuration and shared fixtures."""

import pytest
import random
import sys
from pathlib import Path

# Add the source directory to the Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible mutations."""
    return random.Random(42)


@pytest.fixture
def default_config():
    """Configuration with default values and a fixed seed."""
    from neatlab.run.config import Config
    return Config(seed=42)


@pytest.fixture
def xor_genome_dict():
    """
    2 inputs -> 1 hidden -> 1 output, plus a direct input->output connection.
    Node 3 is hidden; connection 0->2 is disabled (it was split).
    """
    return {
        'id': 0,
        'activation': 'sigmoid',
        'num_inputs': 2,
        'num_outputs': 1,
        'nodes': [
            {'id': 0, 'type': 'input',  'bias': 0.0},
            {'id': 1, 'type': 'input',  'bias': 0.0},
            {'id': 2, 'type': 'output', 'bias': -0.5},
            {'id': 3, 'type': 'hidden', 'bias': 0.25},
        ],
        'connections': [
            {'from': 0, 'to': 2, 'weight':  0.5, 'enabled': False, 'innovation': 0},
            {'from': 1, 'to': 2, 'weight': -1.0, 'enabled': True,  'innovation': 1},
            {'from': 0, 'to': 3, 'weight':  1.0, 'enabled': True,  'innovation': 2},
            {'from': 3, 'to': 2, 'weight':  0.5, 'enabled': True,  'innovation': 3},
        ]
    }
