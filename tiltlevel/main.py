"""
Replay entry point for the tilt level engine.

Reads recorded orientation samples (``beta,gamma`` per line, header optional)
and feeds them through the sensor service, logging mode transitions and
calibration outcomes and printing a summary of the final state.
"""

import argparse
import asyncio
import csv
import logging
import sys
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import structlog
from dotenv import load_dotenv

from tiltlevel.calibration.storage import JsonFileCalibrationStore
from tiltlevel.core import EventBus, EventType, get_config
from tiltlevel.core.events import BaseEvent
from tiltlevel.engine import SensorEngine
from tiltlevel.services import TiltSensorService


def setup_logging(level: str = "INFO"):
    """Configure structured logging for the application."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Set up stdlib logging
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
    )


def read_samples(path: Path) -> Iterator[Tuple[float, float]]:
    """
    Yield (beta, gamma) pairs from a CSV file.

    Rows that do not parse as two numbers (e.g. a header) are skipped; empty
    cells become NaN so the service treats them as a sensor dropout.
    """
    with open(path, newline="", encoding="utf-8") as f:
        for row in csv.reader(f):
            if len(row) < 2:
                continue
            try:
                beta = float(row[0]) if row[0].strip() else float("nan")
                gamma = float(row[1]) if row[1].strip() else float("nan")
            except ValueError:
                continue
            yield beta, gamma


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay recorded tilt samples through the sensor engine")
    parser.add_argument("samples", type=Path, help="CSV file with beta,gamma columns")
    parser.add_argument("--state-file", type=Path, default=None,
                        help="JSON file holding persisted calibration offsets")
    parser.add_argument("--one-point-after", type=int, default=None, metavar="N",
                        help="Run a one-point calibration after N samples")
    parser.add_argument("--log-level", default=None,
                        help="Log level (defaults to TILTLEVEL_LOG_LEVEL or INFO)")
    return parser.parse_args(argv)


async def replay(args: argparse.Namespace) -> int:
    logger = structlog.get_logger(app="tiltlevel")
    config = get_config()

    store = None
    if args.state_file is not None:
        store = JsonFileCalibrationStore(args.state_file)
    engine = SensorEngine(config, store=store)

    event_bus = EventBus()
    service = TiltSensorService(event_bus, engine=engine, config=config)

    async def on_mode_changed(event: BaseEvent):
        logger.info("Mode changed", mode=event.mode, previous=event.previous_mode,
                    sample=engine.sample_count)

    async def on_calibration(event: BaseEvent):
        logger.info("Calibration event", type=event.type, **event.model_dump(exclude={"type", "trace_id", "timestamp"}))

    event_bus.subscribe(EventType.MEASUREMENT_MODE_CHANGED, on_mode_changed)
    event_bus.subscribe(EventType.CALIBRATION_COMPLETED, on_calibration)
    event_bus.subscribe(EventType.CALIBRATION_FAILED, on_calibration)
    event_bus.subscribe(EventType.STORAGE_ERROR, on_calibration)

    await service.start()
    try:
        for index, (beta, gamma) in enumerate(read_samples(args.samples), start=1):
            await service.handle_sample(beta, gamma)
            if args.one_point_after is not None and index == args.one_point_after:
                await service.calibrate_one_point()
    except OSError as e:
        logger.error("Failed to read samples", path=str(args.samples), error=str(e))
        return 1
    finally:
        await service.stop()

    snapshot = engine.snapshot()
    print(snapshot.model_dump_json(indent=2))
    logger.info("Replay complete", samples=engine.sample_count, rejected=service.rejected_count,
                mode=snapshot.mode)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point."""
    load_dotenv()
    args = parse_args(argv)
    level = args.log_level or get_config().log_level.value
    setup_logging(level)
    return asyncio.run(replay(args))


if __name__ == "__main__":
    sys.exit(main())
