"""
Glacier model service.

Resolves a glacier to an observing station, gathers the best available
input and runs the tiered mass-balance model.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests  # type: ignore

from ..algorithms import GlacierModel
from ..core import constants
from ..models import Glacier, ObservationDay, Station, TemperatureReading
from .cache import TTLCache
from .glacier_catalog import GlacierCatalog
from .observation_service import ObservationService


class GlacierNotFoundError(KeyError):
    """Raised when a glacier id is not in the catalog."""


class GlacierService:
    """Serve glacier mass-balance results with graceful degradation."""

    def __init__(
        self,
        catalog: GlacierCatalog,
        observations: ObservationService,
        cache: TTLCache,
        model: Optional[GlacierModel] = None,
        cache_ttl: int = constants.GLACIER_MODEL_CACHE_TTL,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize glacier service.

        Args:
            catalog: Glacier dataset
            observations: Frost observation service
            cache: Shared response cache
            model: Glacier model (default settings when None)
            cache_ttl: Cache lifetime of a serialized result (seconds)
            logger: Logger instance
        """
        self.catalog = catalog
        self.observations = observations
        self.cache = cache
        self.logger = logger or logging.getLogger(__name__)
        self.model = model or GlacierModel(logger=self.logger)
        self.cache_ttl = cache_ttl

    def get_glacier(self, glacier_id: str) -> Glacier:
        glacier = self.catalog.get(glacier_id)
        if glacier is None:
            raise GlacierNotFoundError(glacier_id)
        return glacier

    def nearest_glaciers(self, lat: float, lon: float, limit: int = 5) -> List[Dict[str, Any]]:
        """Nearest glaciers to a point, serialized with their distance."""
        return [
            {
                "glacier_id": g.id,
                "glacier_name": g.name,
                "latitude": g.latitude,
                "longitude": g.longitude,
                "elevation": g.elevation,
                "area_km2": g.area_km2,
                "distance_km": round(distance, 3),
            }
            for g, distance in self.catalog.nearest(lat, lon, limit)
        ]

    def resolve_station(self, glacier: Glacier, station_id: Optional[str] = None) -> Optional[Station]:
        """
        Pick the station whose observations drive the model.

        An explicit station id must be a known station with an elevation;
        otherwise the nearest station with an elevation is used.

        Returns:
            Station or None when no usable station is available

        Raises:
            requests.exceptions.RequestException: If the station list cannot be fetched
        """
        stations = [Station.from_frost_source(s) for s in self.observations.get_stations()]

        if station_id:
            for station in stations:
                if station.id == station_id and station.elevation is not None:
                    return station
            self.logger.warning(f"Station {station_id} unknown or without elevation")
            return None

        nearest = GlacierCatalog.nearest_station(glacier, stations)
        if nearest is None:
            return None
        station, distance = nearest
        self.logger.info(f"Glacier {glacier.id}: nearest station {station.id} at {distance:.1f} km")
        return station

    def gather_inputs(
        self,
        station: Station,
        end: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Collect the daily series and, only when it is empty, the latest reading.

        Provider failures degrade to empty inputs and set ``upstream_error``.

        Returns:
            ``{"series", "latest", "upstream_error"}``
        """
        series: List[ObservationDay] = []
        latest: Optional[TemperatureReading] = None
        upstream_error = False

        try:
            series = self.observations.fetch_daily_series(station.id, end=end)
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Daily series fetch failed for {station.id}: {e}")
            upstream_error = True

        if not any(day.T is not None for day in series):
            try:
                latest = self.observations.fetch_latest_temperature(station.id, end=end)
            except requests.exceptions.RequestException as e:
                self.logger.error(f"Latest temperature fetch failed for {station.id}: {e}")
                upstream_error = True

        return {"series": series, "latest": latest, "upstream_error": upstream_error}

    def get_model(
        self,
        glacier_id: str,
        station_id: Optional[str] = None,
        end: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Get the serialized mass-balance result for a glacier.

        Results computed after a provider failure are returned but not cached,
        so the next request retries the providers.

        Args:
            glacier_id: Glacier id from the catalog
            station_id: Optional Frost station id overriding the nearest station
            end: Reference time (defaults to now)

        Returns:
            GlacierResult as a JSON-ready dict

        Raises:
            GlacierNotFoundError: If the glacier is not in the catalog
        """
        glacier = self.get_glacier(glacier_id)
        cache_key = f"glacier-model:{glacier.id}:{station_id or 'nearest'}:{end.date() if end else 'now'}"

        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        series: List[ObservationDay] = []
        latest: Optional[TemperatureReading] = None
        z_station = glacier.elevation
        upstream_error = False

        try:
            station = self.resolve_station(glacier, station_id)
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Station lookup failed for glacier {glacier.id}: {e}")
            station = None
            upstream_error = True

        if station is not None:
            inputs = self.gather_inputs(station, end=end)
            series = inputs["series"]
            latest = inputs["latest"]
            upstream_error = inputs["upstream_error"]
            z_station = station.elevation

        result = self.model.compute(
            glacier.id,
            glacier.name,
            glacier.elevation,
            z_station,
            series,
            latest_reading=latest,
        ).to_dict()

        self.logger.info(f"Glacier {glacier.id}: dataQuality={result['dataQuality']}")
        if upstream_error:
            self.logger.warning(f"Glacier {glacier.id}: provider error, result not cached")
        else:
            self.cache.set(cache_key, result, self.cache_ttl)
        return result
