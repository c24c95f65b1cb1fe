"""
This service feeds orientation samples into the SensorEngine and publishes
the results to the event bus.

It is the layer between the platform's orientation callback and the
collaborators (display, audio, data logging):
- invalid samples are treated as a sensor dropout rather than processed
- a polled watchdog reports a lost sensor once the stream goes silent
- every accepted sample produces a ReadingUpdatedEvent
- calibration commands are wrapped so their outcomes become events
"""

import structlog
from typing import Callable, Iterable, Optional, Tuple

from tiltlevel.calibration.controller import monotonic_ms
from tiltlevel.core.bus import EventBus
from tiltlevel.core.config import ApplicationConfig
from tiltlevel.core.events import BaseEvent
from tiltlevel.core.models import CalibrationResult, CalibrationStep, StorageErrorReason
from tiltlevel.engine import SensorEngine, is_finite_number
from tiltlevel.events.calibration import (
    CalibrationCompletedEvent,
    CalibrationFailedEvent,
    StorageErrorEvent,
    TwoPointStepChangedEvent,
)
from tiltlevel.events.sensors import (
    MeasurementModeChangedEvent,
    ReadingUpdatedEvent,
    SensorLostEvent,
    SensorRecoveredEvent,
)


class TiltSensorService:
    """Service wrapping a SensorEngine with event publishing and a sensor watchdog."""

    def __init__(self,
                 event_bus: EventBus,
                 engine: Optional[SensorEngine] = None,
                 config: Optional[ApplicationConfig] = None,
                 name: Optional[str] = None,
                 clock: Optional[Callable[[], float]] = None):
        """
        Initialize the service.

        Args:
            event_bus: The event bus for publishing events
            engine: The engine to drive; created from ``config`` if omitted
            config: Application configuration
            name: Optional service name (defaults to class name)
            clock: Millisecond clock for the sensor watchdog
        """
        self.event_bus = event_bus
        self.config = config or (engine.config if engine else ApplicationConfig())
        self.engine = engine or SensorEngine(self.config)
        self.name = name or self.__class__.__name__
        self.clock = clock or monotonic_ms

        # Set up structured logging with service context
        self.logger = structlog.get_logger(service=self.name)

        self._running = False
        self._last_sample_at: Optional[float] = None
        self._sensor_lost = False
        self.rejected_count = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def sensor_lost(self) -> bool:
        return self._sensor_lost

    async def start(self) -> None:
        """Start accepting samples and report a failed calibration load, if any."""
        if self._running:
            self.logger.warning("Service already running")
            return

        self._running = True
        self._sensor_lost = False
        self._last_sample_at = self.clock()
        self.logger.info("Service started")

        load_result = self.engine.last_load_result
        if not load_result.ok and load_result.reason is not None:
            await self._publish(StorageErrorEvent(operation="load", reason=load_result.reason))

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self.engine.cancel_two_point_calibration()
        self.logger.info("Service stopped")

    async def handle_sample(self, beta: float, gamma: float, now_ms: Optional[float] = None) -> bool:
        """
        Handle one orientation sample from the platform.

        Returns:
            bool: True if the engine accepted the sample
        """
        if not self._running:
            return False

        now = self.clock() if now_ms is None else now_ms

        if not (is_finite_number(beta) and is_finite_number(gamma)):
            self.rejected_count += 1
            await self.check_sensor(now)
            return False

        self._last_sample_at = now
        if self._sensor_lost:
            self._sensor_lost = False
            self.logger.info("Sensor recovered")
            await self._publish(SensorRecoveredEvent())

        previous_mode = self.engine.measurement_mode
        if not self.engine.process(beta, gamma):
            return False

        mode = self.engine.measurement_mode
        if mode is not previous_mode:
            self.logger.debug("Measurement mode changed", mode=mode.value, previous=previous_mode.value)
            await self._publish(MeasurementModeChangedEvent(mode=mode, previous_mode=previous_mode))

        await self._publish(ReadingUpdatedEvent(snapshot=self.engine.snapshot()))
        return True

    async def feed(self, samples: Iterable[Tuple[float, float]]) -> int:
        """
        Feed a sequence of (beta, gamma) samples in order.

        Returns:
            int: Number of samples the engine accepted
        """
        accepted = 0
        for beta, gamma in samples:
            if await self.handle_sample(beta, gamma):
                accepted += 1
        return accepted

    async def check_sensor(self, now_ms: Optional[float] = None) -> bool:
        """
        Watchdog poll; publishes SensorLostEvent once per dropout.

        Returns:
            bool: True if the sensor is currently considered lost
        """
        if not self._running or self._sensor_lost:
            return self._sensor_lost

        now = self.clock() if now_ms is None else now_ms
        last = self._last_sample_at if self._last_sample_at is not None else now
        silent_ms = now - last
        if silent_ms < self.config.sensor.sensor_loss_delay_ms:
            return False

        self._sensor_lost = True
        self.logger.warning("Sensor signal lost", silent_ms=silent_ms)
        await self._publish(SensorLostEvent(silent_ms=silent_ms, last_sample_at_ms=self._last_sample_at))
        return True

    # ------------------------------------------------------------------
    # Calibration commands
    # ------------------------------------------------------------------

    async def calibrate_one_point(self) -> CalibrationResult:
        result = self.engine.calibrate_one_point()
        await self._publish_calibration_outcome("one_point", result)
        return result

    async def start_two_point_calibration(self) -> CalibrationResult:
        previous = self.engine.calibration.step
        result = self.engine.start_two_point_calibration()
        await self._publish_step_change(previous)
        return result

    async def capture_two_point_calibration_point(self) -> CalibrationResult:
        previous = self.engine.calibration.step
        result = self.engine.capture_two_point_calibration_point()
        if result.done or (not result.ok and result.reason):
            await self._publish_calibration_outcome("two_point", result)
        await self._publish_step_change(previous)
        return result

    async def cancel_two_point_calibration(self) -> CalibrationResult:
        previous = self.engine.calibration.step
        result = self.engine.cancel_two_point_calibration()
        await self._publish_step_change(previous)
        return result

    async def _publish_calibration_outcome(self, method: str, result: CalibrationResult) -> None:
        if not result.done:
            self.logger.info("Calibration refused", method=method, reason=result.reason)
            await self._publish(CalibrationFailedEvent(method=method, reason=result.reason or "unknown"))
            return

        persisted = result.ok
        if not persisted and result.reason:
            await self._publish(StorageErrorEvent(operation="save", reason=StorageErrorReason(result.reason)))

        self.logger.info(
            "Calibration completed",
            method=method,
            calib_pitch=self.engine.calib_pitch,
            calib_roll=self.engine.calib_roll,
            persisted=persisted,
        )
        await self._publish(CalibrationCompletedEvent(
            method=method,
            adjustment=result.adjustment,
            calib_pitch=self.engine.calib_pitch,
            calib_roll=self.engine.calib_roll,
            persisted=persisted,
        ))

    async def _publish_step_change(self, previous: CalibrationStep) -> None:
        step = self.engine.calibration.step
        if step is not previous:
            await self._publish(TwoPointStepChangedEvent(step=step, previous_step=previous))

    async def _publish(self, event: BaseEvent) -> None:
        await self.event_bus.publish(event, self.name)
