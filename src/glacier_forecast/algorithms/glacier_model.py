"""
Glacier model facade.

Selects a data-quality tier from what the caller could obtain and runs the
matching subset of the mass-balance model.
"""

import logging
from collections.abc import Iterable
from typing import Any, List, Optional

from ..core import constants
from ..models import (
    DataQuality,
    GlacierResult,
    ObservationDay,
    SimulatedDay,
    TemperatureReading,
)
from .mass_balance import MassBalanceCalculator


class GlacierModel:
    """
    High-level glacier mass-balance model.

    Tiers are tried in a fixed order: full, temp-only, today-only, none.
    Degraded tiers only cover gaps in provider data; they are never chosen
    when a better tier is possible.
    """

    def __init__(
        self,
        history_days: int = constants.HISTORY_DAYS,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize glacier model.

        Args:
            history_days: Number of most recent days kept in a result history
            logger: Logger instance
        """
        self.history_days = history_days
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def select_tier(
        daily_series: List[ObservationDay],
        latest_reading: Optional[TemperatureReading] = None
    ) -> DataQuality:
        """
        Classify the available input.

        Temp-only needs a temperature on some day, not on every day. Days
        without a temperature are skipped by the simulation, and a normalized
        series without precipitation only holds days that have a temperature.

        Args:
            daily_series: Normalized daily series
            latest_reading: Most recent single temperature reading, if any

        Returns:
            DataQuality tier
        """
        has_temperature = any(day.T is not None for day in daily_series)
        has_precipitation = any(day.P is not None for day in daily_series)

        if has_temperature and has_precipitation:
            return DataQuality.FULL
        if has_temperature:
            return DataQuality.TEMP_ONLY
        if latest_reading is not None:
            return DataQuality.TODAY_ONLY
        return DataQuality.NONE

    def compute(
        self,
        glacier_id: str,
        glacier_name: Optional[str],
        z_glacier: float,
        z_station: float,
        daily_series: Any,
        latest_reading: Optional[TemperatureReading] = None
    ) -> GlacierResult:
        """
        Compute the mass-balance result for one glacier.

        Args:
            glacier_id: Glacier identifier
            glacier_name: Display name (defaults to glacier_id when empty)
            z_glacier: Glacier elevation (m)
            z_station: Station elevation (m)
            daily_series: Normalized daily series (may be empty)
            latest_reading: Most recent temperature reading, used only when no
                            daily series is usable

        Returns:
            GlacierResult

        Raises:
            TypeError: If daily_series is not a sequence of ObservationDay
        """
        series = self._prepare_series(daily_series)
        tier = self.select_tier(series, latest_reading)

        history: List[SimulatedDay] = []
        today: Optional[SimulatedDay] = None

        if tier is DataQuality.FULL:
            simulated = MassBalanceCalculator.snowpack_bucket(series, z_glacier, z_station)
            history = simulated[-self.history_days:]
            today = history[-1] if history else None
        elif tier is DataQuality.TEMP_ONLY:
            simulated = MassBalanceCalculator.temperature_only(series, z_glacier, z_station)
            history = simulated[-self.history_days:]
            today = history[-1] if history else None
        elif tier is DataQuality.TODAY_ONLY:
            today = MassBalanceCalculator.single_day(latest_reading, z_glacier, z_station)

        self.logger.debug(
            f"Glacier {glacier_id}: tier={tier.value}, "
            f"{len(series)} input days, {len(history)} history days"
        )

        return GlacierResult(
            glacier_id=glacier_id,
            glacier_name=glacier_name or glacier_id,
            today=today,
            history=history,
            dataQuality=tier,
        )

    def _prepare_series(self, daily_series: Any) -> List[ObservationDay]:
        """Validate the input shape and order the series by date, one entry per date."""
        if daily_series is None:
            return []
        if isinstance(daily_series, (str, bytes, dict)) or not isinstance(daily_series, Iterable):
            raise TypeError(
                f"daily_series must be a sequence of ObservationDay, got {type(daily_series).__name__}"
            )

        by_date = {}
        for day in daily_series:
            if not isinstance(day, ObservationDay):
                raise TypeError(f"Expected ObservationDay, got {type(day).__name__}")
            if day.date in by_date:
                self.logger.warning(f"Duplicate date {day.date} in daily series, keeping the last entry")
            by_date[day.date] = day

        return [by_date[d] for d in sorted(by_date)]


_default_model = GlacierModel()


def compute_glacier_model(
    glacier_id: str,
    glacier_name: Optional[str],
    z_glacier: float,
    z_station: float,
    daily_series: Any,
    latest_reading: Optional[TemperatureReading] = None
) -> GlacierResult:
    """
    Compute the glacier mass-balance result with the default model settings.

    See ``GlacierModel.compute``.
    """
    return _default_model.compute(
        glacier_id,
        glacier_name,
        z_glacier,
        z_station,
        daily_series,
        latest_reading=latest_reading,
    )
