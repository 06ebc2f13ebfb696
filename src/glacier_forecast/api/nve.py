"""
NVE HydAPI operations.

Handles hydrological stations, parameters, series metadata and observations.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union
from urllib.parse import quote

import requests  # type: ignore

from ..core import constants
from .client import APIClient
from .helpers import chunk_list, join_ids


class NveAPI(APIClient):
    """NVE HydAPI client authenticated with an API key header."""

    provider = "NVE"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: int = 30,
        max_retries: int = 3,
        verify_ssl: bool = True,
        batch_size: int = constants.NVE_BATCH_SIZE,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize NVE client.

        Args:
            base_url: HydAPI base URL (e.g. https://hydapi.nve.no/api/v1)
            api_key: HydAPI key
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            verify_ssl: Whether to verify SSL certificates
            batch_size: Stations per POST when querying many stations
            logger: Logger instance
        """
        super().__init__(base_url, timeout, max_retries, verify_ssl, logger)

        if not api_key:
            raise ValueError("NVE API key is required")
        self.batch_size = batch_size
        self.session.headers.update({"X-API-Key": api_key})

    @staticmethod
    def _data(result: Any) -> List[Dict[str, Any]]:
        if isinstance(result, dict):
            return result.get("data") or []
        if isinstance(result, list):
            return result
        return []

    @staticmethod
    def normalize_station(station: Dict[str, Any]) -> Dict[str, Any]:
        """Add lower-camel keys next to HydAPI's PascalCase station fields."""
        normalized = {
            "stationId": station.get("StationId", station.get("stationId")),
            "stationName": station.get("StationName", station.get("stationName")),
            "latitude": station.get("Latitude", station.get("latitude")),
            "longitude": station.get("Longitude", station.get("longitude")),
        }
        normalized.update(station)
        return normalized

    def get_stations(self) -> List[Dict[str, Any]]:
        """
        Get all HydAPI stations.

        Returns:
            List of stations with normalized ``stationId``, ``stationName``,
            ``latitude`` and ``longitude`` keys
        """
        self.logger.info("Fetching NVE stations")
        return [self.normalize_station(s) for s in self._data(self.get("/Stations"))]

    def get_station(self, station_id: str) -> Any:
        """Get a single station record as returned by HydAPI."""
        return self.get(f"/Stations/{quote(str(station_id), safe='')}")

    def get_parameters(self) -> List[Dict[str, Any]]:
        """Get the HydAPI parameter list."""
        return self._data(self.get("/Parameters"))

    def get_series(self, station_id: str) -> Any:
        """Get the series metadata available for a station."""
        return self.get("/Series", params={"StationId": station_id})

    def get_observations(
        self,
        station_ids: Iterable[str],
        parameters: Union[str, Iterable[Union[str, int]]] = constants.NVE_DEFAULT_PARAMETER,
        resolution_time: int = 0,
        reference_time: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Get observations for one or more stations.

        A single station is queried with GET; several stations are sent as
        POST bodies of at most ``batch_size`` stations each.

        Args:
            station_ids: Station ids
            parameters: Parameter id(s)
            resolution_time: Resolution in minutes (0 = instantaneous, 60, 1440)
            reference_time: Optional HydAPI reference time expression

        Returns:
            Concatenated observation blocks
        """
        ids = [str(s) for s in station_ids if s is not None and str(s).strip()]
        if not ids:
            return []

        parameter = join_ids(parameters)

        if len(ids) == 1:
            params: Dict[str, Any] = {
                "StationId": ids[0],
                "Parameter": parameter,
                "ResolutionTime": resolution_time,
            }
            if reference_time:
                params["ReferenceTime"] = reference_time
            return self._data(self.get("/Observations", params=params))

        observations: List[Dict[str, Any]] = []
        for chunk in chunk_list(ids, self.batch_size):
            payload = []
            for station_id in chunk:
                item: Dict[str, Any] = {
                    "StationId": station_id,
                    "Parameter": parameter,
                    "ResolutionTime": resolution_time,
                }
                if reference_time:
                    item["ReferenceTime"] = reference_time
                payload.append(item)

            observations.extend(self._data(self.post("/Observations", payload)))

        self.logger.info(f"Fetched {len(observations)} NVE observation blocks for {len(ids)} stations")
        return observations

    def get_latest_observations(
        self,
        station_id: str,
        resolution_time: int = 60,
        interesting: Iterable[int] = constants.NVE_INTERESTING_PARAMETERS
    ) -> List[Dict[str, Any]]:
        """
        Get the most recent observation block for each interesting parameter of a station.

        Parameters whose query fails are logged and skipped.

        Args:
            station_id: Station id
            resolution_time: Resolution in minutes
            interesting: Parameter ids to keep from the station's series list

        Returns:
            One observation block per parameter that returned data
        """
        wanted = set(interesting)
        series = [s for s in self._data(self.get_series(station_id)) if s.get("parameter") in wanted]

        results = []
        for s in series:
            try:
                blocks = self.get_observations(
                    [station_id],
                    parameters=str(s["parameter"]),
                    resolution_time=resolution_time,
                )
            except requests.exceptions.RequestException:
                self.logger.warning(f"No NVE data for station {station_id}, parameter {s['parameter']}")
                continue
            if blocks:
                results.append(blocks[0])
        return results
