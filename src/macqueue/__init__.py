"""
MAC queue package - Transmit queue of a mesh node.

Contains implementations for:
- Bounded, time-windowed FIFO with selective dequeue
"""

from .delay_queue import BoundedDelayQueue, QueueConfig, QueueEntry

__all__ = [
    'BoundedDelayQueue',
    'QueueConfig',
    'QueueEntry'
]
