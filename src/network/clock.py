"""
Simulation Clock

Virtual time source shared by the queue, the bias controller and the
event loop that drives them. Time only moves forward.
"""


class SimulationClock:
    """
    Monotonic simulated clock.

    Attributes:
        time: Current simulated time in seconds
    """

    def __init__(self, start_time: float = 0.0):
        self.time = start_time

    def now(self) -> float:
        """Get current simulated time."""
        return self.time

    def advance(self, delta: float) -> float:
        """
        Move time forward by delta seconds.

        Args:
            delta: Non-negative step

        Returns:
            New current time
        """
        if delta < 0:
            raise ValueError("Simulated time cannot move backwards")
        self.time += delta
        return self.time

    def set_time(self, time: float):
        """Jump to an absolute time not earlier than now."""
        if time < self.time:
            raise ValueError(
                f"Simulated time cannot move backwards ({time} < {self.time})"
            )
        self.time = time
