"""
Bounded Delay Queue

This module implements the MAC transmit queue of a mesh node: a FIFO
bounded in both length and residence time, with selective access by
traffic class and address for the channel access functions.

Expired entries are purged lazily at the start of every public
operation except size(), so size() may overstate occupancy until the
next purging call.
"""

from typing import Optional, Tuple, Callable, Deque
from collections import deque
from dataclasses import dataclass
import numpy as np
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from config import MAX_QUEUE_SIZE, MAX_QUEUE_DELAY
from src.mac.header import Packet, MacHeader, AddressType, Mac48Address
from src.bias.controller import BiasController, BiasConfig, Clock, DistanceOracle
from src.bias.tabu_search import DeliveryStatisticsSource
from src.utils.logger import SimulationLogger, get_logger


BlockedPredicate = Callable[[Mac48Address, int], bool]


@dataclass
class QueueConfig:
    """Configuration for the MAC queue."""
    max_size: int = MAX_QUEUE_SIZE
    max_delay: float = MAX_QUEUE_DELAY

    def __post_init__(self):
        """Validate configuration."""
        if self.max_size < 0:
            raise ValueError("Max size must be non-negative")
        if self.max_delay <= 0:
            raise ValueError("Max delay must be positive")


@dataclass
class QueueEntry:
    """
    Packet held by the queue.

    Attributes:
        packet: Packet handle (delay-marked copy if biased)
        header: MAC header
        release_time: Earliest time the entry should leave the queue;
            also the reference point of the residence limit
        enqueue_time: Time the entry was accepted
        delayed: Whether the bias delay was applied on this enqueue
    """
    packet: Packet
    header: MacHeader
    release_time: float
    enqueue_time: float
    delayed: bool = False

    def is_expired(self, now: float, max_delay: float) -> bool:
        return self.release_time + max_delay <= now

    def matches(self, tid: int, address_type: AddressType, address: Mac48Address) -> bool:
        """True for QoS data of the given class whose address at the role matches."""
        return (self.header.is_qos_data and
                self.header.qos_tid == tid and
                self.header.get_address(address_type) == address)


class BoundedDelayQueue:
    """
    Time-windowed FIFO of MAC frames.

    A full queue silently sheds new packets. Each accepted packet gets
    its release time from the bias controller; without a controller
    every packet is released on arrival.

    Attributes:
        config: Queue configuration
        clock: Simulated clock
        bias_controller: Release-time decision (optional)
        queue: Entries in release order
    """

    def __init__(
        self,
        config: Optional[QueueConfig] = None,
        clock: Optional[Clock] = None,
        bias_controller: Optional[BiasController] = None,
        on_drop: Optional[Callable[[Packet, MacHeader], None]] = None,
        on_expired: Optional[Callable[[QueueEntry], None]] = None,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize queue.

        Args:
            config: Queue configuration (defaults: 400 packets, 10 s)
            clock: Simulated clock
            bias_controller: Controller deciding release times
            on_drop: Callback when a packet is shed because the queue is full
            on_expired: Callback for each entry evicted by the residence limit
            logger: Logger instance (global logger if None)
        """
        if clock is None:
            raise ValueError("A clock is required")

        self.config = config or QueueConfig()
        self.clock = clock
        self.bias_controller = bias_controller
        self.on_drop = on_drop
        self.on_expired = on_expired
        self.logger = logger or get_logger()

        self.queue: Deque[QueueEntry] = deque()

        # Statistics
        self.total_enqueued = 0
        self.total_dequeued = 0
        self.total_delayed = 0
        self.drop_events = 0
        self.expired_packets = 0
        self.removed_packets = 0
        self.requeued_packets = 0

    @classmethod
    def create(
        cls,
        clock: Clock,
        config: Optional[QueueConfig] = None,
        bias_config: Optional[BiasConfig] = None,
        seed: Optional[int] = None,
        distance_oracle: Optional[DistanceOracle] = None,
        statistics_source: Optional[DeliveryStatisticsSource] = None,
        sink=None,
        logger: Optional[SimulationLogger] = None,
        **callbacks
    ) -> 'BoundedDelayQueue':
        """
        Build a queue together with its bias controller.

        The controller and its search engine share one generator seeded
        from `seed`, so a run is reproducible per queue instance.
        """
        controller = BiasController(
            config=bias_config or BiasConfig(),
            clock=clock,
            rng=np.random.default_rng(seed),
            distance_oracle=distance_oracle,
            statistics_source=statistics_source,
            sink=sink,
            logger=logger
        )
        return cls(config=config, clock=clock, bias_controller=controller,
                   logger=logger, **callbacks)

    @property
    def max_size(self) -> int:
        return self.config.max_size

    @property
    def max_delay(self) -> float:
        return self.config.max_delay

    def _cleanup(self):
        """Evict entries whose residence limit has passed."""
        if not self.queue:
            return

        now = self.clock.now()
        kept: Deque[QueueEntry] = deque()
        expired = []
        for entry in self.queue:
            if entry.is_expired(now, self.config.max_delay):
                expired.append(entry)
            else:
                kept.append(entry)

        if not expired:
            return

        self.queue = kept
        self.expired_packets += len(expired)
        self.logger.packets_expired(len(expired))
        if self.on_expired:
            for entry in expired:
                self.on_expired(entry)

    def _shed(self, packet: Packet, header: MacHeader):
        self.drop_events += 1
        self.logger.packet_dropped(packet.uid, len(self.queue))
        if self.on_drop:
            self.on_drop(packet, header)

    def enqueue(self, packet: Packet, header: MacHeader):
        """
        Append a packet, dropping it if the queue is full.

        Args:
            packet: Packet to queue
            header: Its MAC header
        """
        self._cleanup()
        if len(self.queue) >= self.config.max_size:
            self._shed(packet, header)
            return

        now = self.clock.now()
        if self.bias_controller is not None:
            decision = self.bias_controller.decide(packet, header)
            packet = decision.packet
            release_time = decision.release_time
            delayed = decision.delayed
        else:
            release_time = now
            delayed = False

        self.queue.append(QueueEntry(
            packet=packet,
            header=header,
            release_time=release_time,
            enqueue_time=now,
            delayed=delayed
        ))
        self.total_enqueued += 1
        if delayed:
            self.total_delayed += 1

    def push_front(self, packet: Packet, header: MacHeader):
        """
        Re-queue a packet at the head, released immediately.

        Used after a failed transmission attempt. Dropped if full.
        """
        self._cleanup()
        if len(self.queue) >= self.config.max_size:
            self._shed(packet, header)
            return

        now = self.clock.now()
        self.queue.appendleft(QueueEntry(
            packet=packet,
            header=header,
            release_time=now,
            enqueue_time=now,
            delayed=packet.delayed
        ))
        self.requeued_packets += 1

    def dequeue(self) -> Optional[Tuple[Packet, MacHeader]]:
        """
        Remove and return the head.

        Returns:
            (packet, header) or None if empty
        """
        self._cleanup()
        if not self.queue:
            return None
        entry = self.queue.popleft()
        self.total_dequeued += 1
        return entry.packet, entry.header

    def peek(self) -> Optional[Tuple[Packet, MacHeader]]:
        """Return the head without removing it."""
        self._cleanup()
        if not self.queue:
            return None
        entry = self.queue[0]
        return entry.packet, entry.header

    def _find_by_class_and_address(
        self,
        tid: int,
        address_type: AddressType,
        address: Mac48Address
    ) -> Optional[int]:
        for i, entry in enumerate(self.queue):
            if entry.matches(tid, address_type, address):
                return i
        return None

    def dequeue_by_class_and_address(
        self,
        tid: int,
        address_type: AddressType,
        address: Mac48Address
    ) -> Optional[Tuple[Packet, MacHeader]]:
        """
        Remove the first QoS entry of class `tid` whose address at the
        given role equals `address`.

        Returns:
            (packet, header) or None if nothing matches
        """
        self._cleanup()
        index = self._find_by_class_and_address(tid, address_type, address)
        if index is None:
            return None
        entry = self.queue[index]
        del self.queue[index]
        self.total_dequeued += 1
        return entry.packet, entry.header

    def peek_by_class_and_address(
        self,
        tid: int,
        address_type: AddressType,
        address: Mac48Address
    ) -> Optional[Tuple[Packet, MacHeader]]:
        """Non-removing counterpart of dequeue_by_class_and_address."""
        self._cleanup()
        index = self._find_by_class_and_address(tid, address_type, address)
        if index is None:
            return None
        entry = self.queue[index]
        return entry.packet, entry.header

    def _find_first_available(self, is_blocked: BlockedPredicate) -> Optional[int]:
        for i, entry in enumerate(self.queue):
            header = entry.header
            if not header.is_qos_data or not is_blocked(header.addr1, header.qos_tid):
                return i
        return None

    def dequeue_first_available(
        self,
        is_blocked: BlockedPredicate
    ) -> Optional[Tuple[Packet, MacHeader, float]]:
        """
        Remove the first entry that is not QoS data or whose
        (destination, class) pair is not blocked.

        Args:
            is_blocked: Predicate over (addr1, tid)

        Returns:
            (packet, header, release_time) or None
        """
        self._cleanup()
        index = self._find_first_available(is_blocked)
        if index is None:
            return None
        entry = self.queue[index]
        del self.queue[index]
        self.total_dequeued += 1
        return entry.packet, entry.header, entry.release_time

    def peek_first_available(
        self,
        is_blocked: BlockedPredicate
    ) -> Optional[Tuple[Packet, MacHeader, float]]:
        """Non-removing counterpart of dequeue_first_available."""
        self._cleanup()
        index = self._find_first_available(is_blocked)
        if index is None:
            return None
        entry = self.queue[index]
        return entry.packet, entry.header, entry.release_time

    def remove(self, packet: Packet) -> bool:
        """
        Remove a packet by identity.

        Returns:
            True if the packet was queued and has been removed
        """
        for i, entry in enumerate(self.queue):
            if entry.packet == packet:
                del self.queue[i]
                self.removed_packets += 1
                return True
        return False

    def count_by_class_and_address(
        self,
        tid: int,
        address_type: AddressType,
        address: Mac48Address
    ) -> int:
        """Count QoS entries of class `tid` with a matching address."""
        self._cleanup()
        return sum(1 for entry in self.queue if entry.matches(tid, address_type, address))

    def is_empty(self) -> bool:
        self._cleanup()
        return not self.queue

    def flush(self):
        """Drop every entry."""
        self.queue.clear()

    def size(self) -> int:
        """Number of entries held, without purging expired ones."""
        return len(self.queue)

    def __len__(self) -> int:
        return len(self.queue)

    @property
    def fill_level(self) -> float:
        """Get queue fill level (0-1)."""
        return len(self.queue) / self.config.max_size if self.config.max_size > 0 else 1.0

    def get_statistics(self) -> dict:
        """Get queue statistics."""
        stats = {
            'max_size': self.config.max_size,
            'max_delay': self.config.max_delay,
            'size': len(self.queue),
            'fill_level': self.fill_level,
            'total_enqueued': self.total_enqueued,
            'total_dequeued': self.total_dequeued,
            'total_delayed': self.total_delayed,
            'drop_events': self.drop_events,
            'expired_packets': self.expired_packets,
            'removed_packets': self.removed_packets,
            'requeued_packets': self.requeued_packets
        }
        if self.bias_controller is not None:
            stats['bias'] = self.bias_controller.get_statistics()
        return stats
