"""
Tabu Search over Mixed Bias Parameters

This module implements the online parameter search that tunes
(ALPHA, BETA1, BETA2) of the mixed bias function. Each cycle scores the
operating point in use from the gateway's delivery statistics, keeps
the best point seen so far, and moves to a randomized neighbour that
is not on the tabu list.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Protocol
import numpy as np
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from config import (
    DEFAULT_ALPHA, DEFAULT_BETA1, DEFAULT_BETA2,
    TABU_LIFE, TABU_RESET, ASPIRATION_PROBABILITY, DELAY_PENALTY,
    ALPHA_STEP, ALPHA_UPPER_BOUND, BETA_STEP, BETA_UPPER_BOUND,
    BETA_RANDOM_RANGE, STEP_UP_THRESHOLD, STEP_DOWN_THRESHOLD,
    MAX_CANDIDATE_ATTEMPTS
)
from src.utils.metrics import DeliveryReport
from src.utils.logger import SimulationLogger, get_logger


class DeliveryStatisticsSource(Protocol):
    """Anything that can report cumulative counters for a sink."""

    def delivery_stats(self, sink) -> Optional[DeliveryReport]:
        ...


@dataclass
class BiasSolution:
    """
    One operating point of the bias function.

    Attributes:
        alpha: Weight of the first (weak) bias term, in (0, 1)
        beta1: Exponent of the first term, in (0, 7.5)
        beta2: Exponent of the second term, in (0, 7.5)
        utility: Score from the last evaluation (0 = not evaluated)
    """
    alpha: float = DEFAULT_ALPHA
    beta1: float = DEFAULT_BETA1
    beta2: float = DEFAULT_BETA2
    utility: float = 0.0

    @classmethod
    def blank(cls) -> 'BiasSolution':
        """All-zero solution used as the starting point of a candidate."""
        return cls(alpha=0.0, beta1=0.0, beta2=0.0)

    def same_parameters(self, other: 'BiasSolution') -> bool:
        """Exact match on the three parameters, utility ignored."""
        return (self.alpha == other.alpha and
                self.beta1 == other.beta1 and
                self.beta2 == other.beta2)

    def copy(self) -> 'BiasSolution':
        return BiasSolution(self.alpha, self.beta1, self.beta2, self.utility)

    def as_tuple(self):
        return (self.alpha, self.beta1, self.beta2)


@dataclass
class TabuEntry:
    """A recently adopted solution that may not be chosen again before expiry."""
    alpha: float
    beta1: float
    beta2: float
    expiry: float

    @classmethod
    def from_solution(cls, solution: BiasSolution, expiry: float) -> 'TabuEntry':
        return cls(solution.alpha, solution.beta1, solution.beta2, expiry)

    def matches(self, solution: BiasSolution) -> bool:
        return (self.alpha == solution.alpha and
                self.beta1 == solution.beta1 and
                self.beta2 == solution.beta2)

    def is_expired(self, now: float) -> bool:
        return self.expiry <= now


@dataclass
class CycleRecord:
    """Outcome of one reconfiguration cycle."""
    time: float
    alpha: float
    beta1: float
    beta2: float
    utility: Optional[float]
    best_utility: float
    aspiration: bool = False


class TabuSearchEngine:
    """
    Adaptive search over the mixed bias parameters.

    Strategy:
    - score the current point as 1 / mean_delay + pdr
    - remember the best scoring point
    - step each parameter up, down or to a random value
    - never revisit a point while it is tabu
    - after TABU_RESET cycles, possibly jump back to the best point

    Attributes:
        current: Solution in use
        best: Highest utility solution observed
        tabu_list: Live tabu entries, oldest first
        iterations_since_aspiration: Cycles since the last reset to best
    """

    def __init__(
        self,
        rng: np.random.Generator,
        statistics_source: Optional[DeliveryStatisticsSource] = None,
        sink=None,
        initial: Optional[BiasSolution] = None,
        tabu_life: float = TABU_LIFE,
        aspiration_threshold: int = TABU_RESET,
        aspiration_probability: float = ASPIRATION_PROBABILITY,
        delay_penalty: float = DELAY_PENALTY,
        carry_over_parameters: bool = False,
        max_candidate_attempts: int = MAX_CANDIDATE_ATTEMPTS,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize search engine.

        Args:
            rng: Random generator shared with the owning queue
            statistics_source: Provider of the sink's delivery counters
            sink: Sink whose counters drive the utility
            initial: Starting solution (defaults A=0.5, B1=2, B2=5)
            tabu_life: Seconds an adopted solution stays tabu
            aspiration_threshold: Cycles before aspiration may trigger
            aspiration_probability: Chance of reverting to best once eligible
            delay_penalty: Mean delay used when none was measured
            carry_over_parameters: Keep current values for parameters
                whose move was rejected instead of zeroing them
            max_candidate_attempts: Ceiling on tabu regeneration
            logger: Logger instance (global logger if None)
        """
        if tabu_life < 0:
            raise ValueError("Tabu life must be non-negative")
        if aspiration_threshold < 0:
            raise ValueError("Aspiration threshold must be non-negative")
        if not 0.0 <= aspiration_probability <= 1.0:
            raise ValueError("Aspiration probability must be in [0, 1]")
        if max_candidate_attempts < 1:
            raise ValueError("At least one candidate attempt is required")

        self.rng = rng
        self.statistics_source = statistics_source
        self.sink = sink
        self.tabu_life = tabu_life
        self.aspiration_threshold = aspiration_threshold
        self.aspiration_probability = aspiration_probability
        self.delay_penalty = delay_penalty
        self.carry_over_parameters = carry_over_parameters
        self.max_candidate_attempts = max_candidate_attempts
        self.logger = logger or get_logger()

        self.current = initial.copy() if initial else BiasSolution()
        self.best = BiasSolution()
        self.tabu_list: List[TabuEntry] = []
        self.iterations_since_aspiration = 0

        # History
        self.history: List[CycleRecord] = []

        # Statistics
        self.cycles = 0
        self.evaluations = 0
        self.unavailable_cycles = 0
        self.best_updates = 0
        self.tabu_rejections = 0
        self.aspirations = 0

    @staticmethod
    def compute_utility(report: DeliveryReport, delay_penalty: float = DELAY_PENALTY) -> float:
        """
        Score delivery counters.

        utility = 1 / mean_delay + pdr, where received is taken as at
        least 1 and an unmeasured (zero) mean delay is replaced by the
        penalty value.

        Args:
            report: Cumulative sink counters
            delay_penalty: Substitute for a zero mean delay

        Returns:
            Utility score
        """
        received = report.received if report.received > 0 else 1
        mean_delay = report.total_delay / received
        if mean_delay == 0:
            mean_delay = delay_penalty
        pdr = report.received / (received + report.lost)
        return 1.0 / mean_delay + pdr

    def prune_tabu_list(self, now: float):
        """Drop tabu entries whose expiry is at or before now."""
        self.tabu_list = [t for t in self.tabu_list if not t.is_expired(now)]

    def is_tabu(self, solution: BiasSolution) -> bool:
        """Check if a solution equals any tabu entry."""
        return any(t.matches(solution) for t in self.tabu_list)

    def _perturb(self, value: float, step: float, upper: float, random_value) -> Optional[float]:
        """
        Draw one move for a single parameter.

        Returns the new value, or None when a step would leave (0, upper).
        """
        choice = self.rng.random()
        if choice <= STEP_UP_THRESHOLD:
            if value + step < upper:
                return value + step
        elif choice <= STEP_DOWN_THRESHOLD:
            if value - step > 0:
                return value - step
        else:
            return random_value()
        return None

    def generate_candidate(self) -> BiasSolution:
        """
        Propose a neighbour of the current solution.

        Each parameter gets an independent move. A rejected step leaves
        the candidate's parameter at 0.0 unless carry_over_parameters is
        set, in which case it keeps the current value.
        """
        candidate = BiasSolution.blank()
        current = self.current

        alpha = self._perturb(current.alpha, ALPHA_STEP, ALPHA_UPPER_BOUND,
                              lambda: float(self.rng.random()))
        beta1 = self._perturb(current.beta1, BETA_STEP, BETA_UPPER_BOUND,
                              lambda: float(int(self.rng.random() * BETA_RANDOM_RANGE)))
        beta2 = self._perturb(current.beta2, BETA_STEP, BETA_UPPER_BOUND,
                              lambda: float(int(self.rng.random() * BETA_RANDOM_RANGE)))

        if alpha is not None:
            candidate.alpha = alpha
        elif self.carry_over_parameters:
            candidate.alpha = current.alpha

        if beta1 is not None:
            candidate.beta1 = beta1
        elif self.carry_over_parameters:
            candidate.beta1 = current.beta1

        if beta2 is not None:
            candidate.beta2 = beta2
        elif self.carry_over_parameters:
            candidate.beta2 = current.beta2

        return candidate

    def _next_non_tabu_candidate(self) -> BiasSolution:
        candidate = self.generate_candidate()
        attempts = 1
        while self.is_tabu(candidate):
            self.tabu_rejections += 1
            if attempts >= self.max_candidate_attempts:
                self.logger.warning(
                    f"No non-tabu candidate after {attempts} attempts, "
                    f"accepting {candidate.as_tuple()}", "TABU"
                )
                break
            candidate = self.generate_candidate()
            attempts += 1
        return candidate

    def reconfigure(self, now: float) -> bool:
        """
        Run one search cycle.

        Args:
            now: Current simulated time

        Returns:
            True if the cycle evaluated the current solution and moved,
            False if delivery statistics were unavailable
        """
        self.prune_tabu_list(now)
        self.iterations_since_aspiration += 1
        self.cycles += 1

        report = None
        if self.statistics_source is not None:
            report = self.statistics_source.delivery_stats(self.sink)

        if report is None:
            self.unavailable_cycles += 1
            self.logger.warning(
                f"Cannot track received packets for sink {self.sink}, "
                f"skipping utility evaluation", "TABU"
            )
            self.history.append(CycleRecord(
                time=now, alpha=self.current.alpha, beta1=self.current.beta1,
                beta2=self.current.beta2, utility=None,
                best_utility=self.best.utility
            ))
            return False

        utility = self.compute_utility(report, self.delay_penalty)
        self.current.utility = utility
        self.evaluations += 1

        record = CycleRecord(
            time=now, alpha=self.current.alpha, beta1=self.current.beta1,
            beta2=self.current.beta2, utility=utility, best_utility=0.0
        )

        if utility > self.best.utility:
            self.best = self.current.copy()
            self.best_updates += 1
            self.logger.best_updated(self.best.alpha, self.best.beta1,
                                     self.best.beta2, self.best.utility)

        candidate = self._next_non_tabu_candidate()
        self.current = BiasSolution(candidate.alpha, candidate.beta1, candidate.beta2, 0.0)
        self.tabu_list.append(TabuEntry.from_solution(self.current, now + self.tabu_life))
        self.logger.solution_adopted(self.current.alpha, self.current.beta1, self.current.beta2)

        if self.iterations_since_aspiration > self.aspiration_threshold:
            if self.rng.random() < self.aspiration_probability:
                self.current = self.best.copy()
                self.iterations_since_aspiration = 0
                self.aspirations += 1
                record.aspiration = True
                self.logger.aspiration(self.best.utility)

        record.best_utility = self.best.utility
        self.history.append(record)
        return True

    def get_statistics(self) -> dict:
        """Get search statistics."""
        return {
            'cycles': self.cycles,
            'evaluations': self.evaluations,
            'unavailable_cycles': self.unavailable_cycles,
            'best_updates': self.best_updates,
            'tabu_rejections': self.tabu_rejections,
            'aspirations': self.aspirations,
            'tabu_list_size': len(self.tabu_list),
            'iterations_since_aspiration': self.iterations_since_aspiration,
            'current': self.current.as_tuple(),
            'best': self.best.as_tuple(),
            'best_utility': self.best.utility
        }

    def reset(self, initial: Optional[BiasSolution] = None):
        """Reset search to its initial state."""
        self.current = initial.copy() if initial else BiasSolution()
        self.best = BiasSolution()
        self.tabu_list.clear()
        self.iterations_since_aspiration = 0
        self.history.clear()
        self.cycles = 0
        self.evaluations = 0
        self.unavailable_cycles = 0
        self.best_updates = 0
        self.tabu_rejections = 0
        self.aspirations = 0
