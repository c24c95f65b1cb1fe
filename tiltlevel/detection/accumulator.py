"""Bounded accumulator of filtered samples collected while the device is static."""

import math
from collections import deque
from typing import Deque, Tuple


class StaticAccumulator:
    """
    Circular buffer of (pitch, roll) with running sums for an O(1) mean.

    Oldest samples are evicted once more than ``capacity`` are held.
    """

    def __init__(self, capacity: int = 2000):
        self.capacity = capacity
        self.pitch_samples: Deque[float] = deque()
        self.roll_samples: Deque[float] = deque()
        self.pitch_sum = 0.0
        self.roll_sum = 0.0

    @property
    def count(self) -> int:
        return len(self.pitch_samples)

    def push(self, pitch: float, roll: float) -> None:
        self.pitch_samples.append(pitch)
        self.roll_samples.append(roll)
        self.pitch_sum += pitch
        self.roll_sum += roll

        while len(self.pitch_samples) > self.capacity:
            self.pitch_sum -= self.pitch_samples.popleft()
            self.roll_sum -= self.roll_samples.popleft()

    def mean(self) -> Tuple[float, float]:
        """Mean (pitch, roll) of the held samples, NaN for both when empty."""
        n = self.count
        if n == 0:
            return math.nan, math.nan
        return self.pitch_sum / n, self.roll_sum / n

    def clear(self) -> None:
        self.pitch_samples.clear()
        self.roll_samples.clear()
        self.pitch_sum = 0.0
        self.roll_sum = 0.0
