"""Base class for clocked simulation components."""

from __future__ import annotations

from abc import ABC, abstractmethod


class Operable(ABC):
    """A component that is ticked by the global clock, possibly at a slower rate."""

    def __init__(self, scale: float) -> None:
        self.clock_scale = scale - 1
        self.leap_operation = 0.0
        self.current_cycle = 0
        self.warmup = True
        self.initialized = False
        self.phase_begin_cycle = 0
        self.phase_end_cycle: int | None = None
        self.last_finished_cpu: int | None = None

    def tick(self) -> int:
        """Advance one global cycle, skipping work periodically for slower clocks."""
        if self.leap_operation >= 1:
            self.leap_operation -= 1
            return 0

        result = self.operate()
        self.leap_operation += self.clock_scale
        self.current_cycle += 1
        return result

    def initialize(self) -> None:
        """Prepare the component before simulation begins."""
        self.initialized = True

    @abstractmethod
    def operate(self) -> int:
        """Do one cycle of work and return the amount of progress made."""

    def begin_phase(self) -> None:
        """Record the cycle at which a simulation phase starts."""
        self.phase_begin_cycle = self.current_cycle
        self.phase_end_cycle = None

    def end_phase(self, cpu: int) -> None:
        """Record the cycle at which the given CPU finished the current phase."""
        self.phase_end_cycle = self.current_cycle
        self.last_finished_cpu = cpu

    def print_deadlock(self) -> None:
        """Report internal state when the simulation stops making progress."""
        print(f"DEADLOCK! {type(self).__name__} cycle {self.current_cycle}")