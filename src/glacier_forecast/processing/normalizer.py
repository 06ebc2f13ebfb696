"""
Series normalization module.

Reduces raw per-observation records into an ordered daily series of
temperature and precipitation.
"""

import logging
import math
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..core import constants
from ..core.date_utils import DateUtils
from ..models import (
    ObservationDay,
    PrecipitationReading,
    Reading,
    TemperatureReading,
)


def flatten_frost_payload(payload: Any) -> List[Dict[str, Any]]:
    """
    Flatten a Frost observations payload into flat ``{elementId, value, time}`` records.

    Observations without their own ``time`` inherit the row's ``referenceTime``.
    The observation ``timeOffset`` is kept so repeated copies of one
    aggregate can be told apart.

    Args:
        payload: Frost response (``{"data": [...]}``) or its ``data`` list

    Returns:
        List of flat records (empty when the payload has no usable rows)
    """
    if isinstance(payload, dict):
        rows = payload.get("data") or []
    elif isinstance(payload, list):
        rows = payload
    else:
        return []

    records: List[Dict[str, Any]] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        observations = row.get("observations")
        if not isinstance(observations, list):
            # Already flat
            if "elementId" in row:
                records.append(row)
            continue
        for ob in observations:
            if not isinstance(ob, dict):
                continue
            records.append({
                "elementId": ob.get("elementId"),
                "value": ob.get("value"),
                "unit": ob.get("unit"),
                "time": ob.get("time") or row.get("referenceTime"),
                "sourceId": row.get("sourceId"),
                "timeOffset": ob.get("timeOffset"),
            })
    return records


class SeriesNormalizer:
    """Turn raw observation records into one ObservationDay per calendar date."""

    def __init__(
        self,
        temperature_elements: Iterable[str] = constants.TEMPERATURE_ELEMENTS,
        precipitation_elements: Iterable[str] = constants.PRECIPITATION_ELEMENTS,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize series normalizer.

        Args:
            temperature_elements: Element ids read as air temperature
            precipitation_elements: Element ids read as precipitation amount
            logger: Logger instance
        """
        self.temperature_elements = frozenset(temperature_elements)
        self.precipitation_elements = frozenset(precipitation_elements)
        self.logger = logger or logging.getLogger(__name__)

    def parse_record(self, raw: Any) -> Optional[Reading]:
        """
        Parse one raw record into a typed reading.

        Args:
            raw: ``{"elementId": ..., "value": ..., "time": ...}``

        Returns:
            TemperatureReading or PrecipitationReading, or None when the record
            is of no interest or fails to parse
        """
        if not isinstance(raw, dict):
            return None

        element_id = raw.get("elementId")
        if element_id in self.temperature_elements:
            kind = TemperatureReading
        elif element_id in self.precipitation_elements:
            kind = PrecipitationReading
        else:
            return None

        value = self._to_float(raw.get("value"))
        if value is None:
            self.logger.debug(f"Skipping {element_id} record without numeric value: {raw!r}")
            return None

        timestamp = DateUtils.parse_timestamp(raw.get("time"))
        if timestamp is None:
            self.logger.debug(f"Skipping {element_id} record with bad time: {raw!r}")
            return None

        return kind(timestamp, value)

    def parse_records(self, records: Any) -> List[Reading]:
        """Parse a list of raw records, dropping anything that fails to parse."""
        if not isinstance(records, (list, tuple)):
            if records is not None:
                self.logger.warning(f"Expected a list of records, got {type(records).__name__}")
            return []

        readings = []
        skipped = 0
        for raw in records:
            reading = self.parse_record(raw)
            if reading is None:
                skipped += 1
                continue
            readings.append(reading)

        if skipped:
            self.logger.debug(f"Skipped {skipped} of {len(records)} records")
        return readings

    def select_time_offset(self, records: Any) -> Any:
        """
        Keep a single time offset per source, element and date.

        Frost can report the same daily aggregate once per time offset
        (e.g. ``PT6H`` and ``PT18H``). The first offset seen for a
        source/element/date is kept and the other copies are dropped.
        Records without a ``timeOffset`` pass through unchanged.

        Args:
            records: Flat raw records

        Returns:
            Filtered records (non-list input is returned as is)
        """
        if not isinstance(records, (list, tuple)):
            return records

        chosen: Dict[Tuple[Any, Any, date], Any] = {}
        kept = []
        dropped = 0
        for raw in records:
            offset = raw.get("timeOffset") if isinstance(raw, dict) else None
            timestamp = DateUtils.parse_timestamp(raw.get("time")) if offset is not None else None
            if timestamp is None:
                kept.append(raw)
                continue
            key = (raw.get("sourceId"), raw.get("elementId"), timestamp.date())
            if chosen.setdefault(key, offset) != offset:
                dropped += 1
                continue
            kept.append(raw)

        if dropped:
            self.logger.debug(f"Dropped {dropped} records repeating another time offset")
        return kept

    def normalize(self, records: Any) -> List[ObservationDay]:
        """
        Reduce raw records into an ascending daily series.

        Temperature: the reading with the latest timestamp on a date wins;
        on equal timestamps the later record in input order wins.
        Precipitation: readings on the same date are summed, after repeated
        copies of an aggregate under other time offsets are dropped.
        Missing dates are not filled.

        Args:
            records: Flat raw records (see ``flatten_frost_payload``)

        Returns:
            List of ObservationDay sorted by date; empty on empty/malformed input
        """
        return self.normalize_readings(self.parse_records(self.select_time_offset(records)))

    def normalize_readings(self, readings: Iterable[Reading]) -> List[ObservationDay]:
        """Reduce already typed readings into an ascending daily series."""
        temperatures: Dict[date, Tuple[datetime, float]] = {}
        precipitation: Dict[date, float] = {}

        for reading in readings:
            day = reading.date
            if isinstance(reading, TemperatureReading):
                current = temperatures.get(day)
                if current is None or reading.timestamp >= current[0]:
                    temperatures[day] = (reading.timestamp, reading.celsius)
            else:
                precipitation[day] = precipitation.get(day, 0.0) + reading.millimeters

        days = sorted(set(temperatures) | set(precipitation))
        series = [
            ObservationDay(
                date=day,
                T=temperatures[day][1] if day in temperatures else None,
                P=precipitation.get(day),
            )
            for day in days
        ]

        self.logger.debug(
            f"Normalized {len(temperatures)} temperature days and "
            f"{len(precipitation)} precipitation days into {len(series)} days"
        )
        return series

    def latest_temperature(self, records: Any) -> Optional[TemperatureReading]:
        """Return the most recent temperature reading among raw records, if any."""
        latest: Optional[TemperatureReading] = None
        for reading in self.parse_records(records):
            if isinstance(reading, TemperatureReading):
                if latest is None or reading.timestamp >= latest.timestamp:
                    latest = reading
        return latest

    @staticmethod
    def _to_float(value: Any) -> Optional[float]:
        if isinstance(value, bool) or value is None:
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if math.isnan(number) or math.isinf(number):
            return None
        return number
