"""
Observation service for Frost station data.

Fetches station lists, latest readings and daily model series from Frost.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING

import requests  # type: ignore

from ..api.helpers import build_reference_time, chunk_list
from ..core import DateUtils, constants
from ..models import ObservationDay, TemperatureReading
from ..processing import SeriesNormalizer, flatten_frost_payload
from .cache import TTLCache
from .window_fetcher import WindowFetcher

if TYPE_CHECKING:
    from ..api import FrostAPI


STATIONS_CACHE_KEY = "stations-with-latest-temp"
SOURCES_CACHE_KEY = "frost-sources"


class ObservationService:
    """Frost-backed observation lookups."""

    def __init__(
        self,
        frost: "FrostAPI",
        cache: TTLCache,
        normalizer: Optional[SeriesNormalizer] = None,
        series_windows_days: Iterable[int] = constants.DEFAULT_SERIES_WINDOWS_DAYS,
        latest_windows_hours: Iterable[int] = constants.DEFAULT_LATEST_WINDOWS_HOURS,
        stations_ttl: int = constants.STATIONS_CACHE_TTL,
        history_days: int = constants.HISTORY_DAYS,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize observation service.

        Args:
            frost: Frost API client
            cache: Shared response cache
            normalizer: Series normalizer
            series_windows_days: Day windows tried for the daily series
            latest_windows_hours: Hour windows tried for the latest reading
            stations_ttl: Cache lifetime of the station list (seconds)
            history_days: Days kept from the daily series
            logger: Logger instance
        """
        self.frost = frost
        self.cache = cache
        self.logger = logger or logging.getLogger(__name__)
        self.normalizer = normalizer or SeriesNormalizer(logger=self.logger)
        self.series_fetcher: WindowFetcher[List[ObservationDay]] = WindowFetcher(
            series_windows_days, logger=self.logger
        )
        self.latest_fetcher: WindowFetcher[Optional[TemperatureReading]] = WindowFetcher(
            latest_windows_hours, is_empty=lambda r: r is None, logger=self.logger
        )
        self.stations_ttl = stations_ttl
        self.history_days = history_days
        self.date_utils = DateUtils(self.logger)

    @staticmethod
    def reduce_latest(payload: Any) -> Dict[str, Dict[str, Any]]:
        """
        Keep the most recent observation of every element.

        Args:
            payload: Frost observations response

        Returns:
            ``{elementId: {"value", "unit", "time"}}``
        """
        latest: Dict[str, Dict[str, Any]] = {}
        for record in flatten_frost_payload(payload):
            element_id = record.get("elementId")
            obs_time = DateUtils.parse_timestamp(record.get("time"))
            if element_id is None or obs_time is None:
                continue
            current = latest.get(element_id)
            if current is None or obs_time > DateUtils.parse_timestamp(current["time"]):
                latest[element_id] = {
                    "value": record.get("value"),
                    "unit": record.get("unit"),
                    "time": record.get("time"),
                }
        return latest

    @staticmethod
    def sum_precipitation_hourly(payload: Any, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Sum hourly precipitation into a synthetic daily element.

        Args:
            payload: Frost observations response
            now: Timestamp stamped on the result (defaults to now)

        Returns:
            ``{"elementId", "value", "unit", "time"}``
        """
        total = 0.0
        unit = "mm"
        for record in flatten_frost_payload(payload):
            if record.get("elementId") == constants.HOURLY_PRECIPITATION_ELEMENT:
                total += record.get("value") or 0
                unit = record.get("unit") or unit
        stamp = now or DateUtils.now_utc()
        return {
            "elementId": constants.DAILY_PRECIPITATION_ELEMENT,
            "value": total,
            "unit": unit,
            "time": stamp.isoformat(),
        }

    def fetch_latest_batch(
        self,
        station_ids: List[str],
        end: Optional[datetime] = None
    ) -> Dict[str, Dict[str, Any]]:
        """
        Fetch the latest air temperature for a batch of stations over the last 12 hours.

        Args:
            station_ids: Frost source ids
            end: Window end (defaults to now)

        Returns:
            ``{stationId: {"value", "unit", "time"}}``; empty on failure
        """
        start, stop = self.date_utils.get_window(
            hours=constants.LATEST_BATCH_WINDOW_HOURS, end=end
        )
        try:
            payload = self.frost.get_observations(
                station_ids,
                constants.LATEST_TEMPERATURE_ELEMENT,
                build_reference_time(start, stop),
            )
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Batch temperature fetch failed: {e}")
            return {}

        latest: Dict[str, Dict[str, Any]] = {}
        for row in payload.get("data", []):
            station = row.get("sourceId")
            for ob in row.get("observations") or []:
                if ob.get("elementId") == constants.LATEST_TEMPERATURE_ELEMENT:
                    latest[station] = {
                        "value": ob.get("value"),
                        "unit": ob.get("unit"),
                        "time": ob.get("time") or row.get("referenceTime"),
                    }
                    break
        return latest

    def get_stations(self) -> List[Dict[str, Any]]:
        """Get Frost sensor-system stations, cached."""
        return self.cache.get_or_set(
            SOURCES_CACHE_KEY,
            lambda: self.frost.get_sources(types="SensorSystem"),
            self.stations_ttl,
        )

    def get_stations_with_latest_temperature(self) -> List[Dict[str, Any]]:
        """
        Get Frost stations enriched with ``latestTemperature``.

        Latest temperatures are fetched in batches; the enriched list is cached.

        Raises:
            requests.exceptions.RequestException: If the station list itself fails
        """
        cached = self.cache.get(STATIONS_CACHE_KEY)
        if cached is not None:
            return cached

        stations = self.get_stations()

        all_latest: Dict[str, Dict[str, Any]] = {}
        ids = [s.get("id") for s in stations if s.get("id")]
        for chunk in chunk_list(ids, constants.FROST_BATCH_SIZE):
            all_latest.update(self.fetch_latest_batch(chunk))

        enriched = [
            dict(station, latestTemperature=all_latest.get(station.get("id")))
            for station in stations
        ]

        self.logger.info(
            f"Enriched {len(enriched)} stations, {len(all_latest)} with a latest temperature"
        )
        self.cache.set(STATIONS_CACHE_KEY, enriched, self.stations_ttl)
        return enriched

    def get_station_observations(
        self,
        station_id: str,
        elements: Optional[List[str]] = None,
        hours: int = constants.OBSERVATION_WINDOW_HOURS,
        end: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Get the latest value of each requested element for one station.

        When hourly precipitation is among the results, its sum over the
        window is added as the daily precipitation element.

        Args:
            station_id: Frost source id
            elements: Element ids (defaults to the standard observation set)
            hours: Window length in hours
            end: Window end (defaults to now)

        Returns:
            ``{"stationId", "latest"}``; ``latest`` is empty on failure
        """
        elements = list(elements or constants.DEFAULT_OBSERVATION_ELEMENTS)
        start, stop = self.date_utils.get_window(hours=hours, end=end)

        try:
            payload = self.frost.get_observations(
                station_id, elements, build_reference_time(start, stop)
            )
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Observations error for {station_id}: {e}")
            return {"stationId": station_id, "latest": {}}

        latest = self.reduce_latest(payload)
        if constants.HOURLY_PRECIPITATION_ELEMENT in latest:
            total = self.sum_precipitation_hourly(payload, now=stop)
            latest[total.pop("elementId")] = total

        return {"stationId": station_id, "latest": latest}

    def fetch_daily_series(
        self,
        station_id: str,
        end: Optional[datetime] = None
    ) -> List[ObservationDay]:
        """
        Fetch the daily temperature and precipitation series for the model.

        Windows are widened until a non-empty series is found; the result is
        trimmed to the most recent ``history_days`` days.

        Args:
            station_id: Frost source id
            end: Reference time (defaults to now)

        Returns:
            Normalized daily series, possibly empty

        Raises:
            requests.exceptions.RequestException: If every window failed
        """
        elements = [constants.DAILY_TEMPERATURE_ELEMENT, constants.DAILY_PRECIPITATION_ELEMENT]

        def fetch(days: int) -> List[ObservationDay]:
            start, stop = self.date_utils.get_day_window(days, end=end)
            payload = self.frost.get_observations(
                station_id,
                elements,
                build_reference_time(start, stop),
                time_offsets=constants.FROST_DEFAULT_TIME_OFFSETS,
                levels=constants.FROST_DEFAULT_LEVELS,
            )
            return self.normalizer.normalize(flatten_frost_payload(payload))

        series, window = self.series_fetcher.fetch(fetch, [])
        if window is not None:
            self.logger.info(f"Daily series for {station_id}: {len(series)} days from {window}-day window")
        else:
            self.logger.warning(f"No daily series for {station_id} in any window")
        return series[-self.history_days:]

    def fetch_latest_temperature(
        self,
        station_id: str,
        end: Optional[datetime] = None
    ) -> Optional[TemperatureReading]:
        """
        Fetch the most recent air temperature reading for a station.

        Args:
            station_id: Frost source id
            end: Reference time (defaults to now)

        Returns:
            TemperatureReading or None when no window has data

        Raises:
            requests.exceptions.RequestException: If every window failed
        """
        def fetch(hours: int) -> Optional[TemperatureReading]:
            start, stop = self.date_utils.get_window(hours=hours, end=end)
            payload = self.frost.get_observations(
                station_id,
                constants.LATEST_TEMPERATURE_ELEMENT,
                build_reference_time(start, stop),
            )
            return self.normalizer.latest_temperature(flatten_frost_payload(payload))

        reading, _ = self.latest_fetcher.fetch(fetch, None)
        return reading
