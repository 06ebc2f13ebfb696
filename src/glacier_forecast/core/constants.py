"""
Application-wide constants for the glacier forecast gateway.

Physical parameters of the mass-balance model, upstream element identifiers,
and default operational values.
"""

# Mass-balance model parameters
LAPSE_RATE = -0.0065  # °C/m, environmental lapse rate
T0 = 0.0  # °C, melt threshold
DDF_SNOW = 3.0  # mm w.e. °C⁻¹ day⁻¹
DDF_ICE = 7.0  # mm w.e. °C⁻¹ day⁻¹, defined but not applied by the bucket
TS_SNOW = 0.5  # °C, snow/rain partition threshold
ROS_P_MIN = 5.0  # mm/day
ROS_SWE_MIN = 20.0  # mm w.e.

# Number of simulated days returned in a result history
HISTORY_DAYS = 14

# Frost element identifiers
TEMPERATURE_ELEMENTS = (
    "air_temperature",
    "mean(air_temperature P1D)",
    "mean(air_temperature PT1H)",
)
PRECIPITATION_ELEMENTS = (
    "sum(precipitation_amount P1D)",
    "sum(precipitation_amount PT1H)",
    "sum(precipitation_amount PT12H)",
    "precipitation_amount",
)
HOURLY_PRECIPITATION_ELEMENT = "sum(precipitation_amount PT1H)"
DAILY_PRECIPITATION_ELEMENT = "sum(precipitation_amount P1D)"
DAILY_TEMPERATURE_ELEMENT = "mean(air_temperature P1D)"
LATEST_TEMPERATURE_ELEMENT = "air_temperature"

# Frost series filters: one time offset and one sensor level per element
FROST_DEFAULT_TIME_OFFSETS = "default"
FROST_DEFAULT_LEVELS = "default"

DEFAULT_OBSERVATION_ELEMENTS = (
    "air_temperature",
    "wind_speed",
    "wind_from_direction",
    "relative_humidity",
    "sum(precipitation_amount PT1H)",
    "snow_depth",
)

# NVE HydAPI parameters kept by the per-station latest lookup
# 1000 stage, 1001 discharge, 1002 snow depth, 1003 air temperature, 1047 precipitation
NVE_INTERESTING_PARAMETERS = (1000, 1047, 1002, 1003, 1001)
NVE_DEFAULT_PARAMETER = "1001"

# Upstream batching
FROST_BATCH_SIZE = 50
NVE_BATCH_SIZE = 200

# Fallback windows, tried in order until one returns data
DEFAULT_SERIES_WINDOWS_DAYS = (14, 30, 60)
DEFAULT_LATEST_WINDOWS_HOURS = (12, 24, 72)
LATEST_BATCH_WINDOW_HOURS = 12
OBSERVATION_WINDOW_HOURS = 24

# Cache TTLs (seconds)
STATIONS_CACHE_TTL = 10 * 60
NVE_STATIONS_CACHE_TTL = 60 * 60
GLACIER_MODEL_CACHE_TTL = 30 * 60

# Mean Earth radius used by the nearest-neighbour lookup
EARTH_RADIUS_KM = 6371.0088
