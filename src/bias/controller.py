"""
Mixed Bias Controller

This module decides the release time of each packet entering the MAC
queue. Packets are held back by a fixed extra delay with a probability
that depends on the node's hop distance to the gateway:

    R = 5 * [A / h^B1 + (1 - A) / h^B2],   R = 0.95 when h == 1

A packet is delayed when a uniform draw exceeds R and it has not been
delayed before. In adaptive mode every few delayed packets trigger a
tabu search cycle that retunes (A, B1, B2).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol
import math
import numpy as np
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from config import (
    DEFAULT_ALPHA, DEFAULT_BETA1, DEFAULT_BETA2, ONE_HOP_PROBABILITY,
    BIAS_SCALE, BIAS_DELAY, SEPARATION_DISTANCE, PACKET_RESET,
    TABU_LIFE, TABU_RESET, ASPIRATION_PROBABILITY, DELAY_PENALTY,
    MAX_CANDIDATE_ATTEMPTS
)
from src.mac.header import MacHeader, Packet
from src.bias.tabu_search import (
    BiasSolution, TabuSearchEngine, DeliveryStatisticsSource
)
from src.utils.logger import SimulationLogger, get_logger


class BiasMode(Enum):
    """Operating mode of the controller."""
    DISABLED = 0    # plain FIFO, every packet released immediately
    STATIC = 1      # fixed (A, B1, B2)
    ADAPTIVE = 2    # (A, B1, B2) tuned by tabu search


class Clock(Protocol):
    def now(self) -> float:
        ...


class DistanceOracle(Protocol):
    def distance(self, node_a, node_b) -> float:
        ...


@dataclass
class BiasConfig:
    """Configuration for the bias controller."""
    mode: BiasMode = BiasMode.DISABLED
    alpha: float = DEFAULT_ALPHA
    beta1: float = DEFAULT_BETA1
    beta2: float = DEFAULT_BETA2
    bias_delay: float = BIAS_DELAY
    separation_distance: float = SEPARATION_DISTANCE
    reconfigure_threshold: int = PACKET_RESET
    tabu_life: float = TABU_LIFE
    aspiration_threshold: int = TABU_RESET
    aspiration_probability: float = ASPIRATION_PROBABILITY
    delay_penalty: float = DELAY_PENALTY
    carry_over_parameters: bool = False
    max_candidate_attempts: int = MAX_CANDIDATE_ATTEMPTS

    def __post_init__(self):
        """Validate configuration."""
        if self.bias_delay < 0:
            raise ValueError("Bias delay must be non-negative")
        if self.separation_distance <= 0:
            raise ValueError("Separation distance must be positive")
        if self.reconfigure_threshold < 0:
            raise ValueError("Reconfigure threshold must be non-negative")

    def initial_solution(self) -> BiasSolution:
        return BiasSolution(self.alpha, self.beta1, self.beta2)


@dataclass
class BiasDecision:
    """Outcome of the bias decision for one packet."""
    packet: Packet
    release_time: float
    delayed: bool
    probability: float


def compute_hop_count(distance: float, separation_distance: float = SEPARATION_DISTANCE) -> int:
    """Convert a physical distance to a hop count (integer division)."""
    return int(distance / separation_distance)


def compute_bias_probability(hops: int, alpha: float, beta1: float, beta2: float) -> float:
    """
    Mixed bias probability for a hop count.

    The result is not clamped to [0, 1]. A hop count of 0 has no
    defined bias and yields inf, so such packets are never delayed.

    Args:
        hops: Hop count to the gateway
        alpha: Weight of the first term
        beta1: Exponent of the first term
        beta2: Exponent of the second term

    Returns:
        Bias probability R
    """
    if hops == 1:
        return ONE_HOP_PROBABILITY
    if hops <= 0:
        return math.inf
    return BIAS_SCALE * (alpha / hops ** beta1 + (1 - alpha) / hops ** beta2)


class BiasController:
    """
    Per-queue mixed bias controller.

    Attributes:
        config: Bias configuration
        hop_distance: Cached distance to the gateway (-1 until computed)
        packets_since_reset: Delayed packets since the last search cycle
        engine: Tabu search engine (adaptive mode only)
    """

    def __init__(
        self,
        config: BiasConfig,
        clock: Clock,
        rng: np.random.Generator,
        distance_oracle: Optional[DistanceOracle] = None,
        statistics_source: Optional[DeliveryStatisticsSource] = None,
        sink=None,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize bias controller.

        Args:
            config: Bias configuration
            clock: Simulated clock
            rng: Random generator owned by the queue instance
            distance_oracle: Provider of node distances
            statistics_source: Provider of the sink's delivery counters
            sink: Gateway address, used for distance and statistics
            logger: Logger instance (global logger if None)
        """
        self.config = config
        self.clock = clock
        self.rng = rng
        self.distance_oracle = distance_oracle
        self.sink = sink
        self.logger = logger or get_logger()

        self.hop_distance = -1.0
        self.packets_since_reset = 0
        self.static_solution = config.initial_solution()

        self.engine: Optional[TabuSearchEngine] = None
        if config.mode == BiasMode.ADAPTIVE:
            self.engine = TabuSearchEngine(
                rng=rng,
                statistics_source=statistics_source,
                sink=sink,
                initial=config.initial_solution(),
                tabu_life=config.tabu_life,
                aspiration_threshold=config.aspiration_threshold,
                aspiration_probability=config.aspiration_probability,
                delay_penalty=config.delay_penalty,
                carry_over_parameters=config.carry_over_parameters,
                max_candidate_attempts=config.max_candidate_attempts,
                logger=self.logger
            )

        # Statistics
        self.decisions = 0
        self.delayed_packets = 0
        self.reconfigurations = 0

    @property
    def mode(self) -> BiasMode:
        return self.config.mode

    @property
    def current_solution(self) -> BiasSolution:
        """Operating point in use."""
        if self.engine is not None:
            return self.engine.current
        return self.static_solution

    def _compute_distance(self, header: MacHeader):
        """Look up this node's distance to the gateway once."""
        target = self.sink if self.sink is not None else header.addr1

        if self.distance_oracle is None:
            self.hop_distance = float(self.config.separation_distance)
            return

        try:
            self.hop_distance = float(self.distance_oracle.distance(header.addr2, target))
        except KeyError as e:
            self.logger.warning(
                f"No position for {e}, assuming a single hop", "BIAS"
            )
            self.hop_distance = float(self.config.separation_distance)

    def hop_count(self, header: MacHeader) -> int:
        """Hop count to the gateway, computed on first use."""
        if self.hop_distance < 0:
            self._compute_distance(header)
        return compute_hop_count(self.hop_distance, self.config.separation_distance)

    def bias_probability(self, hops: int) -> float:
        """Bias probability for the current operating point."""
        s = self.current_solution
        return compute_bias_probability(hops, s.alpha, s.beta1, s.beta2)

    def decide(self, packet: Packet, header: MacHeader) -> BiasDecision:
        """
        Decide the release time of a packet entering the queue.

        Args:
            packet: Packet being enqueued
            header: Its MAC header

        Returns:
            BiasDecision with the (possibly delay-marked) packet copy
        """
        now = self.clock.now()
        self.decisions += 1

        if self.config.mode == BiasMode.DISABLED:
            return BiasDecision(packet=packet, release_time=now, delayed=False, probability=0.0)

        hops = self.hop_count(header)
        r = self.bias_probability(hops)
        prob = self.rng.random()

        if prob > r and not packet.delayed:
            marked = packet.mark_delayed()
            release_time = now + self.config.bias_delay
            self.delayed_packets += 1
            self.packets_since_reset += 1
            self.logger.packet_delayed(packet.uid, release_time, r)

            if (self.engine is not None and
                    self.packets_since_reset > self.config.reconfigure_threshold):
                self.packets_since_reset = 0
                self.engine.reconfigure(now)
                self.reconfigurations += 1

            return BiasDecision(packet=marked, release_time=release_time, delayed=True, probability=r)

        return BiasDecision(packet=packet, release_time=now, delayed=False, probability=r)

    def get_statistics(self) -> dict:
        """Get controller statistics."""
        stats = {
            'mode': self.config.mode.name,
            'decisions': self.decisions,
            'delayed_packets': self.delayed_packets,
            'reconfigurations': self.reconfigurations,
            'packets_since_reset': self.packets_since_reset,
            'hop_distance': self.hop_distance,
            'hop_count': (compute_hop_count(self.hop_distance, self.config.separation_distance)
                          if self.hop_distance >= 0 else None),
            'current': self.current_solution.as_tuple()
        }
        if self.engine is not None:
            stats['search'] = self.engine.get_statistics()
        return stats
