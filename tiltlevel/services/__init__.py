"""
Service implementations for the tilt level engine.

This package contains the services that connect the engine to the event bus.
"""

from .sensor_service import TiltSensorService

__all__ = ['TiltSensorService']
