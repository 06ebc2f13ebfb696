"""
Static glacier dataset with nearest-neighbour lookups.

Glaciers are loaded from a GeoJSON FeatureCollection of outlines and reduced
to a centroid and a representative elevation.
"""

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..core import constants
from ..models import Glacier, Station


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * constants.EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def outer_ring(geometry: Dict[str, Any]) -> List[List[float]]:
    """Return the exterior ring of a Polygon, or of the first part of a MultiPolygon."""
    kind = geometry.get("type")
    coordinates = geometry.get("coordinates") or []
    if kind == "Polygon" and coordinates:
        return coordinates[0]
    if kind == "MultiPolygon" and coordinates and coordinates[0]:
        return coordinates[0][0]
    if kind == "Point" and coordinates:
        return [coordinates]
    return []


def ring_centroid(ring: List[List[float]]) -> Optional[Tuple[float, float]]:
    """
    Mean of a ring's vertices as ``(lat, lon)``.

    The closing vertex of a closed ring is not counted twice.
    """
    if not ring:
        return None
    vertices = ring[:-1] if len(ring) > 1 and ring[0] == ring[-1] else ring
    lon = sum(v[0] for v in vertices) / len(vertices)
    lat = sum(v[1] for v in vertices) / len(vertices)
    return lat, lon


class GlacierCatalog:
    """In-memory glacier dataset."""

    def __init__(
        self,
        glaciers: Iterable[Glacier] = (),
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize glacier catalog.

        Args:
            glaciers: Glacier records
            logger: Logger instance
        """
        self.logger = logger or logging.getLogger(__name__)
        self._glaciers: Dict[str, Glacier] = {g.id: g for g in glaciers}

    @classmethod
    def from_geojson(cls, data: Dict[str, Any], logger: Optional[logging.Logger] = None) -> "GlacierCatalog":
        """
        Build a catalog from a GeoJSON FeatureCollection.

        Feature properties used: ``id`` (or ``glacier_id``), ``name``,
        ``elevation`` (or ``mean_elevation``), optional ``area_km2``.
        Features without id, geometry or elevation are skipped.
        """
        log = logger or logging.getLogger(__name__)
        glaciers = []
        for feature in data.get("features") or []:
            props = feature.get("properties") or {}
            glacier_id = props.get("id", props.get("glacier_id"))
            elevation = props.get("elevation", props.get("mean_elevation"))
            centroid = ring_centroid(outer_ring(feature.get("geometry") or {}))

            if glacier_id is None or elevation is None or centroid is None:
                log.warning(f"Skipping glacier feature with incomplete data: {props!r}")
                continue

            glaciers.append(Glacier(
                id=str(glacier_id),
                name=props.get("name") or str(glacier_id),
                latitude=centroid[0],
                longitude=centroid[1],
                elevation=float(elevation),
                area_km2=props.get("area_km2"),
            ))

        log.info(f"Loaded {len(glaciers)} glaciers")
        return cls(glaciers, logger=log)

    @classmethod
    def from_file(cls, path: str, logger: Optional[logging.Logger] = None) -> "GlacierCatalog":
        """Load a catalog from a GeoJSON file."""
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Glacier dataset not found: {path}")
        with open(file_path, "r", encoding="utf-8") as f:
            return cls.from_geojson(json.load(f), logger=logger)

    def get(self, glacier_id: str) -> Optional[Glacier]:
        return self._glaciers.get(str(glacier_id))

    def nearest(self, lat: float, lon: float, limit: int = 1) -> List[Tuple[Glacier, float]]:
        """
        Find the glaciers whose centroids are closest to a point.

        Args:
            lat: Latitude (degrees)
            lon: Longitude (degrees)
            limit: Maximum number of glaciers returned

        Returns:
            List of (glacier, distance_km), closest first
        """
        ranked = sorted(
            ((g, haversine_km(lat, lon, g.latitude, g.longitude)) for g in self._glaciers.values()),
            key=lambda pair: pair[1],
        )
        return ranked[:max(limit, 0)]

    @staticmethod
    def nearest_station(
        glacier: Glacier,
        stations: Iterable[Station]
    ) -> Optional[Tuple[Station, float]]:
        """
        Find the closest station that has coordinates and an elevation.

        Returns:
            (station, distance_km) or None when no station qualifies
        """
        best: Optional[Tuple[Station, float]] = None
        for station in stations:
            if station.latitude is None or station.longitude is None or station.elevation is None:
                continue
            distance = haversine_km(glacier.latitude, glacier.longitude, station.latitude, station.longitude)
            if best is None or distance < best[1]:
                best = (station, distance)
        return best

    def __len__(self) -> int:
        return len(self._glaciers)
