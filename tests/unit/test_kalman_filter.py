"""
Unit tests for the ScalarKalmanFilter.
"""

import math
import unittest

from tiltlevel.filters.kalman import ScalarKalmanFilter


class TestScalarKalmanFilter(unittest.TestCase):
    """Test cases for the ScalarKalmanFilter class."""

    def setUp(self):
        self.kf = ScalarKalmanFilter()

    def test_first_measurement_passes_through(self):
        """The seed sample is returned unchanged and marks the filter initialized."""
        for value in (0.0, 3.7, -42.125, 1e6):
            kf = ScalarKalmanFilter(0.0005, 0.18)
            self.assertEqual(kf.update(value), value)
            self.assertTrue(kf.initialized)

    def test_step_response_converges_monotonically(self):
        """After settling at 0, a constant input is approached from below without overshoot."""
        self.kf.update(0.0)

        outputs = [self.kf.update(10.0) for _ in range(100)]

        for previous, current in zip(outputs, outputs[1:]):
            self.assertGreaterEqual(current, previous)
            self.assertLessEqual(current, 10.0)
        self.assertLess(abs(outputs[-1] - 10.0), 1.0)
        self.assertAlmostEqual(outputs[-1], 10.0, delta=0.05)

    def test_filtering_smooths_a_step(self):
        """A step input is not followed immediately."""
        self.kf.update(0.0)
        self.kf.update(10.0)
        estimate = self.kf.update(10.0)
        self.assertGreater(estimate, 0.0)
        self.assertLess(estimate, 10.0)

    def test_non_finite_measurement_keeps_state(self):
        """NaN and infinity return the current estimate without touching covariance."""
        self.kf.update(5.0)
        self.kf.update(6.0)
        x, p = self.kf.x, self.kf.p

        self.assertEqual(self.kf.update(math.nan), x)
        self.assertEqual(self.kf.update(math.inf), x)
        self.assertEqual(self.kf.p, p)

    def test_set_params_ignores_invalid_values(self):
        """Only finite, positive parameters are accepted; state is never reset."""
        self.kf.update(2.0)
        self.kf.set_params(-1.0, 0.0)
        self.assertEqual(self.kf.q, 0.001)
        self.assertEqual(self.kf.r, 0.1)

        self.kf.set_params(0.01, math.nan)
        self.assertEqual(self.kf.q, 0.01)
        self.assertEqual(self.kf.r, 0.1)

        self.assertTrue(self.kf.initialized)
        self.assertEqual(self.kf.x, 2.0)

    def test_set_params_affects_next_update(self):
        """A larger process noise makes the filter follow a step faster."""
        slow = ScalarKalmanFilter(0.0005, 0.18)
        fast = ScalarKalmanFilter(0.0005, 0.18)
        for kf in (slow, fast):
            kf.update(0.0)
            for _ in range(50):
                kf.update(0.0)
        fast.set_params(0.5, 0.18)

        self.assertGreater(fast.update(10.0), slow.update(10.0))

    def test_reset(self):
        """Reset returns to the uninitialized state and the next sample seeds again."""
        self.kf.update(3.0)
        self.kf.update(4.0)
        self.kf.reset()

        self.assertFalse(self.kf.initialized)
        self.assertEqual(self.kf.x, 0.0)
        self.assertEqual(self.kf.p, 1.0)
        self.assertEqual(self.kf.update(-7.5), -7.5)


if __name__ == "__main__":
    unittest.main()
