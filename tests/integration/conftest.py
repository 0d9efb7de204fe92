"""
Shared fixtures for integration tests.
"""

import pytest
from pathlib import Path

from neatlab.run.config import Config

CONFIG_DIR = Path(__file__).parent.parent.parent / "examples" / "configs"


@pytest.fixture
def xor_config():
    """Configuration from the bundled XOR example file (seeded)."""
    return Config(str(CONFIG_DIR / "config_xor.ini"))


@pytest.fixture
def xor_config_path():
    return str(CONFIG_DIR / "config_xor.ini")
