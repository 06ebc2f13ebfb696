"""
Location data models.

Contains DTOs for stations and glaciers.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class Station:
    """Observation station (Frost source)."""

    id: str
    name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    elevation: Optional[float] = None  # metres above sea level

    @classmethod
    def from_frost_source(cls, source: Dict[str, Any]) -> "Station":
        """
        Build a station from a Frost ``sources`` record.

        Frost reports geometry as GeoJSON ``[lon, lat]`` and elevation as ``masl``.
        """
        coordinates = (source.get("geometry") or {}).get("coordinates") or [None, None]
        longitude, latitude = (list(coordinates) + [None, None])[:2]
        return cls(
            id=source.get("id", ""),
            name=source.get("name") or source.get("shortName") or source.get("id", ""),
            latitude=latitude,
            longitude=longitude,
            elevation=source.get("masl"),
        )


@dataclass
class Glacier:
    """Glacier outline summary from the static dataset."""

    id: str
    name: str
    latitude: float  # centroid
    longitude: float  # centroid
    elevation: float  # representative surface elevation (m)
    area_km2: Optional[float] = None
