"""
Unit tests for the TiltSensorService.

The service is wired to a real EventBus and SensorEngine; a wildcard
subscriber records every published event.
"""

import math
import unittest
from unittest.mock import MagicMock

from tiltlevel.calibration.storage import CalibrationStore, MemoryCalibrationStore
from tiltlevel.core.bus import EventBus
from tiltlevel.core.config import ApplicationConfig, StaticDetectionConfig
from tiltlevel.core.errors import CalibrationStorageError
from tiltlevel.core.events import EventType
from tiltlevel.core.models import CalibrationStep, MeasurementMode, StorageErrorReason
from tiltlevel.engine import SensorEngine
from tiltlevel.services import TiltSensorService


def small_config():
    return ApplicationConfig(static=StaticDetectionConfig(
        duration_frames=5,
        averaging_sample_count=8,
        variance_threshold=0.001,
    ))


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class TestTiltSensorService(unittest.IsolatedAsyncioTestCase):
    """Test cases for the TiltSensorService class."""

    async def asyncSetUp(self):
        self.clock = FakeClock(0.0)
        self.event_bus = EventBus()
        self.events = []

        async def collect(event):
            self.events.append(event)

        self.event_bus.subscribe(None, collect)
        self.config = small_config()
        self.engine = SensorEngine(self.config, store=MemoryCalibrationStore(), clock=self.clock)
        self.service = TiltSensorService(self.event_bus, engine=self.engine, clock=self.clock)
        await self.service.start()

    async def asyncTearDown(self):
        await self.service.stop()

    def of_type(self, event_type):
        return [e for e in self.events if e.type == event_type]

    async def feed(self, beta, gamma, count):
        for _ in range(count):
            await self.service.handle_sample(beta, gamma, now_ms=self.clock.now)

    async def test_samples_ignored_when_stopped(self):
        await self.service.stop()
        self.assertFalse(self.service.running)
        self.assertFalse(await self.service.handle_sample(1.0, 1.0))
        self.assertEqual(self.engine.sample_count, 0)

    async def test_every_sample_publishes_reading(self):
        await self.feed(2.0, -1.0, 12)

        readings = self.of_type(EventType.READING_UPDATED)
        self.assertEqual(len(readings), 12)
        self.assertEqual(readings[-1].snapshot.sample_count, 12)
        self.assertEqual(readings[-1].producer_name, "TiltSensorService")
        self.assertEqual(self.event_bus.published_counts["reading_updated"], 12)

    async def test_mode_transitions_are_published(self):
        await self.feed(2.0, -1.0, 12)

        changes = self.of_type(EventType.MEASUREMENT_MODE_CHANGED)
        self.assertEqual(
            [(e.previous_mode, e.mode) for e in changes],
            [(MeasurementMode.ACTIVE, MeasurementMode.LOCKING),
             (MeasurementMode.LOCKING, MeasurementMode.MEASURING)],
        )

    async def test_feed_counts_accepted_samples(self):
        accepted = await self.service.feed([(1.0, 1.0), (math.nan, 1.0), (2.0, 2.0)])
        self.assertEqual(accepted, 2)
        self.assertEqual(self.service.rejected_count, 1)

    async def test_sensor_loss_and_recovery(self):
        await self.service.handle_sample(1.0, 1.0, now_ms=100.0)

        self.assertFalse(await self.service.check_sensor(now_ms=600.0))
        self.assertTrue(await self.service.check_sensor(now_ms=1100.0))
        self.assertTrue(await self.service.check_sensor(now_ms=5000.0))

        lost = self.of_type(EventType.SENSOR_LOST)
        self.assertEqual(len(lost), 1)
        self.assertEqual(lost[0].silent_ms, 1000.0)
        self.assertEqual(lost[0].last_sample_at_ms, 100.0)

        self.assertFalse(await self.service.handle_sample(math.nan, 0.0, now_ms=6000.0))
        self.assertEqual(len(self.of_type(EventType.SENSOR_RECOVERED)), 0)

        self.assertTrue(await self.service.handle_sample(1.0, 1.0, now_ms=6100.0))
        self.assertFalse(self.service.sensor_lost)
        self.assertEqual(len(self.of_type(EventType.SENSOR_RECOVERED)), 1)

    async def test_invalid_stream_is_reported_as_sensor_loss(self):
        for now in (200.0, 700.0, 1500.0):
            await self.service.handle_sample(math.nan, math.nan, now_ms=now)

        self.assertTrue(self.service.sensor_lost)
        self.assertEqual(self.service.rejected_count, 3)
        self.assertEqual(len(self.of_type(EventType.SENSOR_LOST)), 1)
        self.assertEqual(self.engine.sample_count, 0)

    async def test_one_point_calibration_events(self):
        await self.feed(2.0, -1.0, 20)

        result = await self.service.calibrate_one_point()

        self.assertTrue(result.ok)
        completed = self.of_type(EventType.CALIBRATION_COMPLETED)
        self.assertEqual(len(completed), 1)
        self.assertEqual(completed[0].method, "one_point")
        self.assertTrue(completed[0].persisted)
        self.assertAlmostEqual(completed[0].calib_pitch, 2.0)
        self.assertAlmostEqual(completed[0].adjustment.roll, -1.0)

    async def test_refused_calibration_event(self):
        result = await self.service.calibrate_one_point()

        self.assertFalse(result.ok)
        failed = self.of_type(EventType.CALIBRATION_FAILED)
        self.assertEqual(len(failed), 1)
        self.assertEqual(failed[0].reason, "invalid_state")
        self.assertEqual(self.of_type(EventType.CALIBRATION_COMPLETED), [])

    async def test_two_point_step_events(self):
        await self.feed(2.0, -1.0, 2)

        await self.service.start_two_point_calibration()
        result = await self.service.capture_two_point_calibration_point()
        self.assertEqual(result.reason, "not_stable")

        await self.feed(2.0, -1.0, 20)
        await self.service.capture_two_point_calibration_point()
        await self.service.cancel_two_point_calibration()

        steps = [(e.previous_step, e.step) for e in self.of_type(EventType.TWO_POINT_STEP_CHANGED)]
        self.assertEqual(steps, [
            (CalibrationStep.IDLE, CalibrationStep.AWAITING_FIRST),
            (CalibrationStep.AWAITING_FIRST, CalibrationStep.AWAITING_SECOND),
            (CalibrationStep.AWAITING_SECOND, CalibrationStep.IDLE),
        ])
        failed = self.of_type(EventType.CALIBRATION_FAILED)
        self.assertEqual([(e.method, e.reason) for e in failed], [("two_point", "not_stable")])

    async def test_stop_cancels_two_point_session(self):
        await self.feed(2.0, -1.0, 20)
        await self.service.start_two_point_calibration()
        await self.service.stop()
        self.assertEqual(self.engine.calibration.step, CalibrationStep.IDLE)


class TestTiltSensorServiceStorage(unittest.IsolatedAsyncioTestCase):
    """Test cases for storage failures surfaced as events."""

    async def asyncSetUp(self):
        self.event_bus = EventBus()
        self.events = []

        async def collect(event):
            self.events.append(event)

        self.event_bus.subscribe(None, collect)
        self.store = MagicMock(spec=CalibrationStore)

    async def test_load_failure_is_published_on_start(self):
        self.store.load.side_effect = CalibrationStorageError(StorageErrorReason.STORAGE_UNAVAILABLE)
        engine = SensorEngine(small_config(), store=self.store)
        service = TiltSensorService(self.event_bus, engine=engine)

        await service.start()

        self.assertEqual(len(self.events), 1)
        self.assertEqual(self.events[0].type, EventType.STORAGE_ERROR)
        self.assertEqual(self.events[0].operation, "load")
        self.assertEqual(self.events[0].reason, StorageErrorReason.STORAGE_UNAVAILABLE)
        await service.stop()

    async def test_save_failure_publishes_storage_error(self):
        self.store.load.return_value = None
        self.store.save.side_effect = CalibrationStorageError(StorageErrorReason.QUOTA_EXCEEDED)
        engine = SensorEngine(small_config(), store=self.store)
        service = TiltSensorService(self.event_bus, engine=engine)
        await service.start()
        await service.feed([(3.0, 0.0)] * 10)

        await service.calibrate_one_point()

        errors = [e for e in self.events if e.type == EventType.STORAGE_ERROR]
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].operation, "save")
        self.assertEqual(errors[0].reason, StorageErrorReason.QUOTA_EXCEEDED)

        completed = [e for e in self.events if e.type == EventType.CALIBRATION_COMPLETED]
        self.assertEqual(len(completed), 1)
        self.assertFalse(completed[0].persisted)
        self.assertAlmostEqual(engine.calib_pitch, 3.0)
        await service.stop()


if __name__ == "__main__":
    unittest.main()
