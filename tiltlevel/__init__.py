"""
Tilt Level - drift-corrected pitch/roll estimation for a leveling display.

This package turns noisy orientation samples into a stable tilt reading.

Features:
- Per-axis Kalman filtering with an EMA + deadzone live track
- Motion-variance static detection with hysteresis
- Static averaging with a rate-limited confirmed reading
- One-point and two-point zero calibration with persistence
"""

__version__ = "1.0.0"
