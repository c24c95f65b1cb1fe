"""Live angle track: EMA smoothing followed by a sticky deadzone."""


class LiveAngleTrack:
    """
    Responsive per-axis track shown while the device moves.

    Runs on every sample regardless of the static/active regime. The output
    only changes when the EMA has moved at least ``deadzone`` away from the
    value currently held.
    """

    def __init__(self, alpha: float = 0.06, deadzone: float = 0.005):
        self.alpha = alpha
        self.deadzone = deadzone
        self.ema = 0.0
        self.initialized = False
        self.value = 0.0

    def update(self, filtered: float) -> float:
        if not self.initialized:
            self.ema = filtered
            self.initialized = True
        else:
            self.ema = self.alpha * filtered + (1.0 - self.alpha) * self.ema

        if abs(self.ema - self.value) >= self.deadzone:
            self.value = self.ema
        return self.value

    def reset(self) -> None:
        self.ema = 0.0
        self.initialized = False
        self.value = 0.0
