"""
NVE hydrology service.

Caches the HydAPI station list and fans observation queries out to it.
"""

import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from ..core import constants
from .cache import TTLCache

if TYPE_CHECKING:
    from ..api import NveAPI


NVE_STATIONS_CACHE_KEY = "nve-stations"


class NveService:
    """HydAPI lookups with a cached station list."""

    def __init__(
        self,
        nve: "NveAPI",
        cache: TTLCache,
        stations_ttl: int = constants.NVE_STATIONS_CACHE_TTL,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize NVE service.

        Args:
            nve: NVE API client
            cache: Shared response cache
            stations_ttl: Cache lifetime of the station list (seconds)
            logger: Logger instance
        """
        self.nve = nve
        self.cache = cache
        self.stations_ttl = stations_ttl
        self.logger = logger or logging.getLogger(__name__)

    def get_stations(self) -> List[Dict[str, Any]]:
        """Get the NVE station list, cached."""
        return self.cache.get_or_set(
            NVE_STATIONS_CACHE_KEY, self.nve.get_stations, self.stations_ttl
        )

    def get_station_ids(self) -> List[str]:
        """Get the ids of every cached station, skipping blank ids."""
        return [
            str(s["stationId"])
            for s in self.get_stations()
            if s.get("stationId") is not None and str(s["stationId"]).strip()
        ]

    def get_latest(
        self,
        parameter: str = constants.NVE_DEFAULT_PARAMETER,
        resolution_time: int = 0,
        reference_time: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Get observations of one parameter for every known station.

        Raises:
            ValueError: If the station list has no usable ids
        """
        ids = self.get_station_ids()
        self.logger.info(f"NVE latest: {len(ids)} stations, parameter={parameter}")
        if not ids:
            raise ValueError("No valid station IDs found")

        return self.nve.get_observations(
            ids,
            parameters=parameter,
            resolution_time=resolution_time,
            reference_time=reference_time,
        )
