"""
API layer for upstream observation providers.

Provides low-level clients for Frost (meteorology) and NVE HydAPI (hydrology).
"""

from .client import APIClient
from .frost import FrostAPI
from .nve import NveAPI
from . import helpers

__all__ = [
    "APIClient",
    "FrostAPI",
    "NveAPI",
    "helpers",
]
