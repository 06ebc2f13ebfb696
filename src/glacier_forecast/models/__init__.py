"""
Data models for the glacier forecast gateway.

Contains DTOs for readings, daily series, model output and locations.
"""

from .observation import (
    TemperatureReading,
    PrecipitationReading,
    Reading,
    ObservationDay,
    SimulatedDay,
    DataQuality,
    GlacierResult,
)
from .location import Station, Glacier

__all__ = [
    "TemperatureReading",
    "PrecipitationReading",
    "Reading",
    "ObservationDay",
    "SimulatedDay",
    "DataQuality",
    "GlacierResult",
    "Station",
    "Glacier",
]
