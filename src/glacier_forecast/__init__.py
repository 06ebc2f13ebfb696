"""
Norwegian Glacier Forecast

This package aggregates Frost (MET Norway) and NVE HydAPI observations and
derives a daily glacier surface mass-balance estimate using a snowpack bucket
and degree-day melt model.
"""

__version__ = "0.1.0"
__description__ = "Glacier mass-balance gateway for Frost and NVE observations"


def __getattr__(name):
    """Lazy import to avoid importing dependencies when not needed."""
    if name == "GlacierForecastApp":
        from .main import GlacierForecastApp
        return GlacierForecastApp
    if name == "compute_glacier_model":
        from .algorithms import compute_glacier_model
        return compute_glacier_model
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "GlacierForecastApp",
    "compute_glacier_model",
]
