"""
Observation and mass-balance data models.

Contains DTOs flowing through the normalizer and the mass-balance model.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union


@dataclass(frozen=True)
class TemperatureReading:
    """Air temperature reading at a station."""

    timestamp: datetime  # aware, UTC
    celsius: float

    @property
    def date(self) -> date:
        return self.timestamp.date()


@dataclass(frozen=True)
class PrecipitationReading:
    """Precipitation amount reading at a station."""

    timestamp: datetime  # aware, UTC
    millimeters: float  # mm water equivalent

    @property
    def date(self) -> date:
        return self.timestamp.date()


Reading = Union[TemperatureReading, PrecipitationReading]


@dataclass(frozen=True)
class ObservationDay:
    """One calendar day of station weather input."""

    date: date
    T: Optional[float] = None  # °C at the station
    P: Optional[float] = None  # mm/day, None when no precipitation reading exists


@dataclass(frozen=True)
class SimulatedDay:
    """One modelled day at glacier elevation."""

    date: date
    T: float  # lapse-corrected °C at glacier elevation
    P: Optional[float]  # mm/day
    Melt: float  # mm w.e., >= 0
    SWE: Optional[float] = None  # mm w.e., None without precipitation data
    ROS: Optional[bool] = None  # rain-on-snow flag, None without precipitation data

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "T": self.T,
            "P": self.P,
            "Melt": self.Melt,
            "SWE": self.SWE,
            "ROS": self.ROS,
        }


class DataQuality(str, Enum):
    """How much input was available for a glacier model run."""

    FULL = "full"
    TEMP_ONLY = "temp-only"
    TODAY_ONLY = "today-only"
    NONE = "none"


@dataclass(frozen=True)
class GlacierResult:
    """Mass-balance response envelope for one glacier."""

    glacier_id: str
    glacier_name: str
    today: Optional[SimulatedDay]
    history: List[SimulatedDay]
    dataQuality: DataQuality

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape returned by the gateway."""
        return {
            "glacier_id": self.glacier_id,
            "glacier_name": self.glacier_name,
            "today": self.today.to_dict() if self.today is not None else None,
            "history": [day.to_dict() for day in self.history],
            "dataQuality": self.dataQuality.value,
        }
