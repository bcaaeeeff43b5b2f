"""
Common test fixtures and configuration.

Sessions talk to scripted in-memory servers (see ``fakes.py``), so the
whole stack from endpoint selection to prepared statements runs without a
database.
"""
import logging
import random
import shutil
import sys
import tempfile
from pathlib import Path

import pytest

# Add src directory to Python path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fakes import FakeClock, FakeCodec, FakeNetwork  # noqa: E402


@pytest.fixture(autouse=True)
def setup_logging():
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)
    yield


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


@pytest.fixture
def network():
    """Empty fake network; tests add servers to it."""
    return FakeNetwork()


@pytest.fixture
def codec():
    """Codec used by every fake connection."""
    return FakeCodec()


@pytest.fixture
def clock():
    """Manually advanced clock."""
    return FakeClock()


@pytest.fixture
def rng():
    """Seeded random source for reproducible shuffles."""
    return random.Random(7)


@pytest.fixture
def connection_options():
    """Single local server, TLS on, default everything else."""
    return {
        "user": "app",
        "password": "secret",
        "schema": "shop",
        "host": "db1",
        "port": 33060,
    }
