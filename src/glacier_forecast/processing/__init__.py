"""
Data processing module for the glacier forecast gateway.

Provides parsing and daily normalization of raw station observations.
"""

from .normalizer import SeriesNormalizer, flatten_frost_payload

__all__ = [
    "SeriesNormalizer",
    "flatten_frost_payload",
]
