"""
Glacier surface mass-balance calculation module.

Implements a lapse-rate temperature correction and a degree-day snowpack
bucket for daily accumulation and melt at glacier elevation.

The bucket keeps one accumulator (snow water equivalent) and folds it over
an ordered daily series:

- below the snow/rain threshold precipitation accumulates as snow;
- at or above it degree-day melt depletes the snowpack, floored at zero;
- rain-on-snow is flagged for wet days on a deep enough remaining snowpack.

Reference:
    Hock, R. (2003). Temperature index melt modelling in mountain areas.
    Journal of Hydrology, 282(1-4), 104-115.
"""

from typing import Iterable, List, Optional

from ..core import constants
from ..models import ObservationDay, SimulatedDay, TemperatureReading


class MassBalanceCalculator:
    """
    Calculator for daily snow accumulation and melt at glacier elevation.

    All methods are pure; each call owns its own accumulator.
    """

    @staticmethod
    def lapse_correct(t_station: float, z_glacier: float, z_station: float) -> float:
        """
        Correct a station temperature to glacier elevation.

        Args:
            t_station: Air temperature at the station (°C)
            z_glacier: Glacier elevation (m)
            z_station: Station elevation (m)

        Returns:
            Temperature at glacier elevation (°C)
        """
        return t_station + constants.LAPSE_RATE * (z_glacier - z_station)

    @staticmethod
    def degree_day_melt(t: float, snow_cover: bool = True) -> float:
        """
        Calculate daily degree-day melt.

        Args:
            t: Daily air temperature (°C)
            snow_cover: Use the snow factor when True, the ice factor otherwise

        Returns:
            Melt in mm water equivalent (>= 0)
        """
        ddf = constants.DDF_SNOW if snow_cover else constants.DDF_ICE
        return max(t - constants.T0, 0.0) * ddf

    @staticmethod
    def is_rain_on_snow(t: float, p: float, swe: float) -> bool:
        """Rain-on-snow: liquid precipitation on a sufficiently deep snowpack."""
        return (
            t > constants.TS_SNOW
            and p > constants.ROS_P_MIN
            and swe > constants.ROS_SWE_MIN
        )

    @staticmethod
    def snowpack_bucket(
        series: Iterable[ObservationDay],
        z_glacier: float,
        z_station: float,
        initial_swe: float = 0.0
    ) -> List[SimulatedDay]:
        """
        Run the snowpack bucket over an ordered daily series.

        Melt is always evaluated with the snow degree-day factor, also once
        the snowpack is depleted. Melt is reported on every day, including
        snowfall days where it does not reduce the snowpack. The rain-on-snow
        flag uses the snowpack after the day's update.

        Days without a temperature are skipped.

        Args:
            series: Daily observations sorted by date
            z_glacier: Glacier elevation (m)
            z_station: Station elevation (m)
            initial_swe: Snowpack before the first day (mm w.e.)

        Returns:
            One SimulatedDay per day with a temperature
        """
        swe = initial_swe
        history: List[SimulatedDay] = []

        for day in series:
            if day.T is None:
                continue

            t_corr = MassBalanceCalculator.lapse_correct(day.T, z_glacier, z_station)
            p = day.P or 0.0

            if t_corr < constants.TS_SNOW:
                swe += p
            else:
                swe = max(swe - MassBalanceCalculator.degree_day_melt(t_corr, True), 0.0)

            melt = MassBalanceCalculator.degree_day_melt(t_corr, True)
            ros = MassBalanceCalculator.is_rain_on_snow(t_corr, p, swe)

            history.append(SimulatedDay(
                date=day.date,
                T=t_corr,
                P=p,
                Melt=melt,
                SWE=swe,
                ROS=ros,
            ))

        return history

    @staticmethod
    def temperature_only(
        series: Iterable[ObservationDay],
        z_glacier: float,
        z_station: float
    ) -> List[SimulatedDay]:
        """
        Lapse correction and snow-factor melt without the snowpack bucket.

        Args:
            series: Daily observations sorted by date
            z_glacier: Glacier elevation (m)
            z_station: Station elevation (m)

        Returns:
            SimulatedDay list with SWE and ROS set to None
        """
        history = []
        for day in series:
            if day.T is None:
                continue
            t_corr = MassBalanceCalculator.lapse_correct(day.T, z_glacier, z_station)
            history.append(SimulatedDay(
                date=day.date,
                T=t_corr,
                P=day.P,
                Melt=MassBalanceCalculator.degree_day_melt(t_corr, True),
            ))
        return history

    @staticmethod
    def single_day(
        reading: TemperatureReading,
        z_glacier: float,
        z_station: float,
        precipitation: Optional[float] = None
    ) -> SimulatedDay:
        """Model a single day from the most recent temperature reading."""
        t_corr = MassBalanceCalculator.lapse_correct(reading.celsius, z_glacier, z_station)
        return SimulatedDay(
            date=reading.date,
            T=t_corr,
            P=precipitation,
            Melt=MassBalanceCalculator.degree_day_melt(t_corr, True),
        )
