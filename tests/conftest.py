"""
Shared fixtures for the test suite.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.utils.logger import SimulationLogger, LogLevel
from src.network.clock import SimulationClock


class ScriptedRng:
    """Generator stand-in returning a fixed sequence of uniform draws."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    def random(self):
        if not self.values:
            raise AssertionError("ScriptedRng exhausted")
        self.calls += 1
        return self.values.pop(0)


@pytest.fixture
def quiet_logger():
    """Logger that only records critical messages."""
    return SimulationLogger(name="Test", level=LogLevel.CRITICAL, use_colors=False)


@pytest.fixture
def clock():
    return SimulationClock()


@pytest.fixture
def scripted_rng():
    """Factory for generators with predetermined draws."""
    return ScriptedRng
