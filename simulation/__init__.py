"""
Simulation package - Grid mesh scenario and runners.

Contains:
- Event-driven mesh queue simulator
- Batch runner for repeated runs per bias mode
"""

from .simulator import MeshQueueSimulator, SimulatorConfig
from .runner import BatchRunner

__all__ = [
    'MeshQueueSimulator',
    'SimulatorConfig',
    'BatchRunner'
]
