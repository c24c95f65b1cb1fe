"""Rate limiter for the confirmed ("final") reading."""

import math


class FinalValueSmoother:
    """
    Deadband plus max-step limiter.

    The static accumulator mean can jump when old samples are evicted; the
    displayed value follows it at no more than ``max_step`` degrees per update
    and ignores changes within ``deadband``.
    """

    def __init__(self, deadband: float = 0.02, max_step: float = 0.01):
        self.deadband = deadband
        self.max_step = max_step

    def update(self, previous: float, target: float) -> float:
        """Return the next displayed value given the last one and the raw mean."""
        if not math.isfinite(target):
            return math.nan
        if not math.isfinite(previous):
            return target

        delta = target - previous
        if abs(delta) <= self.deadband:
            return previous

        step = min(abs(delta), self.max_step)
        return previous + math.copysign(step, delta)
