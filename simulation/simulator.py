"""
Mesh Queue Simulator - Event-Driven Grid Mesh Scenario

This module drives the MAC queues of a few source routers on a grid
mesh towards the gateway. Each source owns one bounded delay queue
with its own bias controller; the remaining path to the gateway is
modelled as per-hop latency and loss.
"""

from typing import Optional, Dict, List
from dataclasses import dataclass, field
from enum import Enum
import heapq
import itertools
import numpy as np
import sys
import os

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import (
    GRID_X, GRID_Y, SEPARATION_DISTANCE, TOTAL_TIME, PACKET_INTERVAL,
    PACKET_SIZE, MAX_PACKETS, FLOW_START_TIMES, HOP_LATENCY,
    HOP_LOSS_PROBABILITY, SERVICE_TIME, MAX_RETRIES,
    MAX_QUEUE_SIZE, MAX_QUEUE_DELAY
)
from src.mac.header import Mac48Address, MacHeader, Packet
from src.mac.blocked_destinations import QosBlockedDestinations
from src.macqueue.delay_queue import BoundedDelayQueue, QueueConfig, QueueEntry
from src.bias.controller import BiasMode, BiasConfig
from src.network.clock import SimulationClock
from src.network.topology import GridTopology
from src.utils.metrics import DeliveryStatistics, DeliveryStatisticsRegistry
from src.utils.logger import SimulationLogger, LogLevel


class EventType(Enum):
    """Types of simulation events."""
    PACKET_ARRIVAL = 0    # Application hands a packet to the MAC
    MAC_SERVICE = 1       # MAC tries to transmit from its queue
    DELIVERY = 2          # Packet reaches the gateway


@dataclass(order=True)
class SimEvent:
    """Simulation event."""
    time: float
    seq: int
    event_type: EventType = field(compare=False)
    data: dict = field(compare=False, default_factory=dict)


@dataclass
class SimulatorConfig:
    """Configuration for the simulator."""
    # Bias parameters
    mode: BiasMode = BiasMode.STATIC
    carry_over_parameters: bool = False

    # Topology
    grid_x: int = GRID_X
    grid_y: int = GRID_Y
    spacing: float = SEPARATION_DISTANCE

    # Traffic
    packet_interval: float = PACKET_INTERVAL
    packet_size: int = PACKET_SIZE
    max_packets: int = MAX_PACKETS
    flow_start_times: tuple = FLOW_START_TIMES

    # Link model
    hop_latency: float = HOP_LATENCY
    hop_loss_probability: float = HOP_LOSS_PROBABILITY
    service_time: float = SERVICE_TIME
    max_retries: int = MAX_RETRIES

    # Queue
    max_queue_size: int = MAX_QUEUE_SIZE
    max_queue_delay: float = MAX_QUEUE_DELAY

    # Simulation parameters
    seed: int = 42
    total_time: float = TOTAL_TIME
    log_level: int = LogLevel.WARNING

    def __post_init__(self):
        if not 0.0 <= self.hop_loss_probability <= 1.0:
            raise ValueError("Hop loss probability must be in [0, 1]")
        if self.packet_interval <= 0 or self.service_time <= 0:
            raise ValueError("Packet interval and service time must be positive")


@dataclass
class NodeState:
    """MAC state of one source router."""
    address: Mac48Address
    queue: BoundedDelayQueue
    hops: int
    blocked: QosBlockedDestinations = field(default_factory=QosBlockedDestinations)
    busy_until: float = 0.0
    service_scheduled: bool = False
    packets_generated: int = 0
    transmissions: int = 0


class MeshQueueSimulator:
    """
    Event-driven simulator of source queues on a grid mesh.

    Uses one clock for every queue, one delivery sink at the gateway and
    an independent generator for the link model.
    """

    def __init__(self, config: SimulatorConfig):
        """Initialize simulator."""
        self.config = config

        self.logger = SimulationLogger(name="Sim", level=config.log_level)

        self.clock = SimulationClock()
        self.topology = GridTopology(config.grid_x, config.grid_y, config.spacing)
        self.gateway = self.topology.gateway

        self.registry = DeliveryStatisticsRegistry()
        self.sink: DeliveryStatistics = self.registry.register(self.gateway)

        self.link_rng = np.random.default_rng(config.seed + 1000)

        # Transmission attempts per packet uid while it waits for a retry
        self.retries: Dict[int, int] = {}

        self.event_queue: List[SimEvent] = []
        self._event_ids = itertools.count()
        self.current_time = 0.0

        self.nodes: List[NodeState] = []
        sources = self.topology.corner_nodes()
        for index, name in enumerate(('far_corner', 'gateway_neighbour', 'last_row_start')):
            address = sources[name]
            if address == self.gateway:
                continue
            self.nodes.append(self._create_node(address, config.seed + index))

    def _create_node(self, address: Mac48Address, seed: int) -> NodeState:
        """Build the queue and controller of one source router."""
        bias_config = BiasConfig(
            mode=self.config.mode,
            separation_distance=self.config.spacing,
            carry_over_parameters=self.config.carry_over_parameters
        )
        queue = BoundedDelayQueue.create(
            clock=self.clock,
            config=QueueConfig(
                max_size=self.config.max_queue_size,
                max_delay=self.config.max_queue_delay
            ),
            bias_config=bias_config,
            seed=seed,
            distance_oracle=self.topology,
            statistics_source=self.registry,
            sink=self.gateway,
            logger=self.logger,
            on_drop=self._on_queue_drop,
            on_expired=self._on_queue_expired
        )
        return NodeState(
            address=address,
            queue=queue,
            hops=max(1, self.topology.hops_to_gateway(address))
        )

    def _schedule_event(self, time: float, event_type: EventType, data: dict = None):
        """Schedule an event."""
        event = SimEvent(time=time, seq=next(self._event_ids),
                         event_type=event_type, data=data or {})
        heapq.heappush(self.event_queue, event)

    def _on_queue_drop(self, packet: Packet, header: MacHeader):
        self.retries.pop(packet.uid, None)
        self.sink.record_lost()

    def _on_queue_expired(self, entry: QueueEntry):
        self.retries.pop(entry.packet.uid, None)
        self.sink.record_lost()

    def _kick(self, node: NodeState, at: Optional[float] = None):
        """Make sure a MAC service event is pending for the node."""
        if node.service_scheduled:
            return
        node.service_scheduled = True
        when = max(self.current_time, node.busy_until) if at is None else at
        self._schedule_event(when, EventType.MAC_SERVICE, {'node': node})

    def _handle_packet_arrival(self, data: dict):
        """Application hands a new packet to the source MAC."""
        node: NodeState = data['node']

        packet = Packet(size=self.config.packet_size, created_at=self.current_time)
        header = MacHeader(
            addr1=self.gateway,
            addr2=node.address,
            addr3=self.gateway,
            qos_tid=0
        )
        node.queue.enqueue(packet, header)
        node.packets_generated += 1
        self._kick(node)

        next_time = self.current_time + self.config.packet_interval
        if (node.packets_generated < self.config.max_packets and
                next_time < self.config.total_time):
            self._schedule_event(next_time, EventType.PACKET_ARRIVAL, {'node': node})

    def _hop_lost(self) -> bool:
        return self.link_rng.random() < self.config.hop_loss_probability

    def _handle_mac_service(self, data: dict):
        """Transmit the first available frame once it is released."""
        node: NodeState = data['node']
        node.service_scheduled = False

        if self.current_time < node.busy_until:
            self._kick(node)
            return

        head = node.queue.peek_first_available(node.blocked)
        if head is None:
            return

        _, _, release_time = head
        if release_time > self.current_time:
            self._kick(node, at=release_time)
            return

        packet, header, _ = node.queue.dequeue_first_available(node.blocked)
        node.transmissions += 1
        node.busy_until = self.current_time + self.config.service_time

        if self._hop_lost():
            attempts = self.retries.get(packet.uid, 0) + 1
            if attempts <= self.config.max_retries:
                self.retries[packet.uid] = attempts
                node.queue.push_front(packet, header)
            else:
                self.retries.pop(packet.uid, None)
                self.sink.record_lost()
                self.logger.debug(f"Packet {packet.uid} lost after {attempts - 1} retries", "MAC")
        else:
            self.retries.pop(packet.uid, None)
            if any(self._hop_lost() for _ in range(node.hops - 1)):
                self.sink.record_lost()
            else:
                arrival = node.busy_until + node.hops * self.config.hop_latency
                self._schedule_event(arrival, EventType.DELIVERY, {'packet': packet})

        self._kick(node)

    def _handle_delivery(self, data: dict):
        """Packet reaches the gateway sink."""
        packet: Packet = data['packet']
        self.sink.record_received(
            delay=self.current_time - packet.created_at,
            timestamp=self.current_time,
            uid=packet.uid
        )

    def run(self) -> Dict:
        """Run the simulation."""
        self.logger.simulation_start({
            'mode': self.config.mode.name,
            'grid': f"{self.config.grid_x}x{self.config.grid_y}",
            'sources': len(self.nodes),
            'seed': self.config.seed
        })

        for node, start in zip(self.nodes, self.config.flow_start_times):
            if start < self.config.total_time:
                self._schedule_event(start, EventType.PACKET_ARRIVAL, {'node': node})

        handlers = {
            EventType.PACKET_ARRIVAL: self._handle_packet_arrival,
            EventType.MAC_SERVICE: self._handle_mac_service,
            EventType.DELIVERY: self._handle_delivery,
        }

        events_processed = 0
        while self.event_queue:
            event = heapq.heappop(self.event_queue)
            if event.time > self.config.total_time:
                break

            self.current_time = event.time
            self.clock.set_time(event.time)
            self.logger.set_sim_time(event.time)

            handlers[event.event_type](event.data)
            events_processed += 1

        results = {
            'mode': self.config.mode.name,
            'seed': self.config.seed,
            'simulation_time': self.current_time,
            'events_processed': events_processed,
            'received': self.sink.received,
            'lost': self.sink.lost,
            'pdr': self.sink.pdr,
            'mean_delay': self.sink.mean_delay,
            'nodes': {
                str(node.address): {
                    'hops': node.hops,
                    'packets_generated': node.packets_generated,
                    'transmissions': node.transmissions,
                    'queue': node.queue.get_statistics()
                }
                for node in self.nodes
            }
        }

        self.logger.simulation_end(results)
        return results
