"""
Utilities package - Helper functions and classes.

Contains implementations for:
- Delivery statistics at the traffic sink
- Logging utilities
"""

from .metrics import DeliveryStatistics, DeliveryStatisticsRegistry, DeliveryReport
from .logger import SimulationLogger

__all__ = [
    'DeliveryStatistics',
    'DeliveryStatisticsRegistry',
    'DeliveryReport',
    'SimulationLogger'
]
