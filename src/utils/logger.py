"""
Simulation Logger

This module provides logging utilities for the simulation,
with configurable verbosity levels and simulated-time stamps.
"""

from typing import Optional, TextIO
from datetime import datetime
from enum import IntEnum
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
from config import DEFAULT_LOG_LEVEL


class LogLevel(IntEnum):
    """Log level enumeration."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


class SimulationLogger:
    """
    Logger for simulation events.

    Provides structured logging with simulated timestamps and categories.

    Attributes:
        name: Logger name
        level: Minimum log level
        file: Optional file for logging
    """

    # Color codes for terminal output
    COLORS = {
        LogLevel.DEBUG: '\033[36m',     # Cyan
        LogLevel.INFO: '\033[32m',      # Green
        LogLevel.WARNING: '\033[33m',   # Yellow
        LogLevel.ERROR: '\033[31m',     # Red
        LogLevel.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(
        self,
        name: str = "Simulator",
        level: int = DEFAULT_LOG_LEVEL,
        log_file: Optional[str] = None,
        use_colors: bool = True,
        include_timestamp: bool = True
    ):
        """
        Initialize logger.

        Args:
            name: Logger name
            level: Minimum log level
            log_file: Optional file path for logging
            use_colors: Use ANSI colors in output
            include_timestamp: Include timestamps in log messages
        """
        self.name = name
        self.level = level
        self.use_colors = use_colors
        self.include_timestamp = include_timestamp

        self.file: Optional[TextIO] = None
        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            self.file = open(log_file, 'w')

        # Simulation time tracking
        self.sim_time: Optional[float] = None

        # Message counts
        self.message_counts = {level: 0 for level in LogLevel}

    def set_sim_time(self, time: float):
        """Set current simulation time for log messages."""
        self.sim_time = time

    def set_level(self, level: int):
        """Set minimum log level."""
        self.level = level

    def _format_message(
        self,
        level: LogLevel,
        message: str,
        category: Optional[str] = None
    ) -> str:
        """Format a log message."""
        parts = []

        # Timestamp
        if self.include_timestamp:
            if self.sim_time is not None:
                parts.append(f"[{self.sim_time:10.6f}s]")
            else:
                parts.append(f"[{datetime.now().strftime('%H:%M:%S.%f')[:-3]}]")

        # Level
        level_str = level.name.ljust(8)
        if self.use_colors:
            level_str = f"{self.COLORS[level]}{level_str}{self.RESET}"
        parts.append(level_str)

        parts.append(f"[{self.name}]")

        if category:
            parts.append(f"[{category}]")

        parts.append(message)

        return " ".join(parts)

    def _log(
        self,
        level: LogLevel,
        message: str,
        category: Optional[str] = None
    ):
        """Log a message."""
        if level < self.level:
            return

        self.message_counts[level] += 1
        formatted = self._format_message(level, message, category)

        print(formatted)

        if self.file:
            # Strip color codes for file
            clean = formatted
            for color in self.COLORS.values():
                clean = clean.replace(color, '')
            clean = clean.replace(self.RESET, '')
            self.file.write(clean + '\n')
            self.file.flush()

    def debug(self, message: str, category: Optional[str] = None):
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, category)

    def info(self, message: str, category: Optional[str] = None):
        """Log info message."""
        self._log(LogLevel.INFO, message, category)

    def warning(self, message: str, category: Optional[str] = None):
        """Log warning message."""
        self._log(LogLevel.WARNING, message, category)

    def error(self, message: str, category: Optional[str] = None):
        """Log error message."""
        self._log(LogLevel.ERROR, message, category)

    def critical(self, message: str, category: Optional[str] = None):
        """Log critical message."""
        self._log(LogLevel.CRITICAL, message, category)

    # Convenience methods for queue and controller events
    def packet_dropped(self, uid: int, size: int):
        """Log a packet shed because the queue is full."""
        self.debug(f"Queue full ({size}), packet {uid} dropped", "QUEUE")

    def packets_expired(self, count: int):
        """Log entries evicted by the residence time limit."""
        self.debug(f"{count} packet(s) expired", "QUEUE")

    def packet_delayed(self, uid: int, release_time: float, probability: float):
        """Log a biased packet."""
        self.debug(f"Packet {uid} delayed until {release_time:.4f}s (R={probability:.4f})", "BIAS")

    def solution_adopted(self, alpha: float, beta1: float, beta2: float):
        """Log a new operating point chosen by the tabu search."""
        self.debug(f"Current solution A={alpha:.2f} B1={beta1:.2f} B2={beta2:.2f}", "TABU")

    def best_updated(self, alpha: float, beta1: float, beta2: float, utility: float):
        """Log a new best operating point."""
        self.info(f"Best solution A={alpha:.2f} B1={beta1:.2f} B2={beta2:.2f} "
                  f"utility={utility:.4f}", "TABU")

    def aspiration(self, utility: float):
        """Log a reset to the best-known solution."""
        self.info(f"Aspiration: reverting to best (utility={utility:.4f})", "TABU")

    def simulation_start(self, params: dict):
        """Log simulation start."""
        param_str = ", ".join(f"{k}={v}" for k, v in params.items())
        self.info(f"Simulation started: {param_str}", "SIM")

    def simulation_end(self, metrics: dict):
        """Log simulation end."""
        self.info(f"Simulation ended: PDR={metrics.get('pdr', 0):.4f} "
                  f"delay={metrics.get('mean_delay', 0):.4f}s", "SIM")

    def get_summary(self) -> dict:
        """Get logging summary."""
        return {
            'message_counts': dict(self.message_counts),
            'total_messages': sum(self.message_counts.values())
        }

    def close(self):
        """Close log file if open."""
        if self.file:
            self.file.close()
            self.file = None

    def __del__(self):
        """Cleanup on deletion."""
        self.close()


# Global logger instance
_global_logger: Optional[SimulationLogger] = None


def get_logger() -> SimulationLogger:
    """Get global logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = SimulationLogger()
    return _global_logger


def set_logger(logger: SimulationLogger):
    """Set global logger instance."""
    global _global_logger
    _global_logger = logger
