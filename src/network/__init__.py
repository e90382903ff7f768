"""
Network package - Services the MAC queue consumes.

Contains implementations for:
- Simulated clock
- Grid mesh topology (distance oracle)
"""

from .clock import SimulationClock
from .topology import GridTopology

__all__ = [
    'SimulationClock',
    'GridTopology'
]
