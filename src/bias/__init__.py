"""
Bias package - Probabilistic packet delay control.

Contains implementations for:
- Mixed bias release-time decision
- Tabu search over the bias parameters
"""

from .tabu_search import BiasSolution, TabuEntry, TabuSearchEngine
from .controller import (
    BiasMode, BiasConfig, BiasController,
    compute_hop_count, compute_bias_probability
)

__all__ = [
    'BiasSolution',
    'TabuEntry',
    'TabuSearchEngine',
    'BiasMode',
    'BiasConfig',
    'BiasController',
    'compute_hop_count',
    'compute_bias_probability'
]
