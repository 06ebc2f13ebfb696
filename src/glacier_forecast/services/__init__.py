"""
Business logic services for the glacier forecast gateway.

Services orchestrate API operations, caching and the mass-balance model.
"""

from .cache import TTLCache
from .window_fetcher import WindowFetcher
from .observation_service import ObservationService
from .nve_service import NveService
from .glacier_catalog import GlacierCatalog, haversine_km
from .glacier_service import GlacierService, GlacierNotFoundError

__all__ = [
    "TTLCache",
    "WindowFetcher",
    "ObservationService",
    "NveService",
    "GlacierCatalog",
    "haversine_km",
    "GlacierService",
    "GlacierNotFoundError",
]
