"""
Delivery Metrics Collection

This module provides the traffic sink counters consumed by the tabu
search: received packets, lost packets and cumulative end-to-end delay.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict
import statistics


@dataclass(frozen=True)
class DeliveryReport:
    """Snapshot of a sink's cumulative counters."""
    received: int
    lost: int
    total_delay: float

    @property
    def pdr(self) -> float:
        """Packet delivery ratio (0 when nothing was accounted for)."""
        total = self.received + self.lost
        return self.received / total if total > 0 else 0.0

    @property
    def mean_delay(self) -> float:
        """Mean end-to-end delay per received packet."""
        return self.total_delay / self.received if self.received > 0 else 0.0


@dataclass
class DeliverySample:
    """Single delivery recorded at the sink."""
    timestamp: float
    delay: float
    uid: int = 0


class DeliveryStatistics:
    """
    UDP-server style sink counters.

    Accumulates what the gateway observed: how many packets arrived,
    how many were lost on the way and the total delay of those that
    arrived.

    Attributes:
        received: Number of packets delivered to the sink
        lost: Number of packets known lost
        total_delay: Sum of end-to-end delays of delivered packets
    """

    def __init__(self, keep_samples: bool = False):
        """
        Initialize sink counters.

        Args:
            keep_samples: Keep every delivery for later analysis
        """
        self.keep_samples = keep_samples

        self.received = 0
        self.lost = 0
        self.total_delay = 0.0

        self.samples: List[DeliverySample] = []

    def record_received(self, delay: float, timestamp: float = 0.0, uid: int = 0):
        """
        Record a delivered packet.

        Args:
            delay: End-to-end delay of the packet
            timestamp: Arrival time at the sink
            uid: Packet identifier
        """
        if delay < 0:
            raise ValueError("Delay must be non-negative")

        self.received += 1
        self.total_delay += delay

        if self.keep_samples:
            self.samples.append(DeliverySample(timestamp=timestamp, delay=delay, uid=uid))

    def record_lost(self, count: int = 1):
        """Record packets lost before reaching the sink."""
        self.lost += count

    def report(self) -> DeliveryReport:
        """Get a snapshot of the counters."""
        return DeliveryReport(
            received=self.received,
            lost=self.lost,
            total_delay=self.total_delay
        )

    @property
    def pdr(self) -> float:
        return self.report().pdr

    @property
    def mean_delay(self) -> float:
        return self.report().mean_delay

    def get_delay_percentiles(self) -> Dict[str, float]:
        """Median and spread of the recorded delays (needs keep_samples)."""
        delays = [s.delay for s in self.samples]
        if not delays:
            return {'median': 0.0, 'stdev': 0.0, 'max': 0.0}
        return {
            'median': statistics.median(delays),
            'stdev': statistics.stdev(delays) if len(delays) > 1 else 0.0,
            'max': max(delays)
        }

    def get_statistics(self) -> dict:
        """Get sink statistics."""
        return {
            'received': self.received,
            'lost': self.lost,
            'total_delay': self.total_delay,
            'pdr': self.pdr,
            'mean_delay': self.mean_delay
        }

    def reset(self):
        """Reset all counters."""
        self.received = 0
        self.lost = 0
        self.total_delay = 0.0
        self.samples.clear()


@dataclass
class DeliveryStatisticsRegistry:
    """
    Delivery statistics source keyed by sink address.

    Queues look up the sink they report to; an unknown sink answers
    None so the caller can log the missing statistics.
    """
    sinks: Dict[object, DeliveryStatistics] = field(default_factory=dict)

    def register(self, sink, stats: Optional[DeliveryStatistics] = None) -> DeliveryStatistics:
        """Attach a sink and return its counters."""
        if stats is None:
            stats = DeliveryStatistics()
        self.sinks[sink] = stats
        return stats

    def unregister(self, sink) -> bool:
        """Detach a sink; True if it was registered."""
        return self.sinks.pop(sink, None) is not None

    def get(self, sink) -> Optional[DeliveryStatistics]:
        return self.sinks.get(sink)

    def delivery_stats(self, sink) -> Optional[DeliveryReport]:
        """
        Get cumulative counters for a sink.

        Args:
            sink: Sink address

        Returns:
            DeliveryReport or None if the sink is not tracked
        """
        stats = self.sinks.get(sink)
        if stats is None:
            return None
        return stats.report()
