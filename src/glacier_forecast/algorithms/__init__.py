"""
Calculation algorithms for glacier mass balance.

Provides the degree-day snowpack model and the tiered model facade.
"""

from .mass_balance import MassBalanceCalculator
from .glacier_model import GlacierModel, compute_glacier_model

__all__ = [
    "MassBalanceCalculator",
    "GlacierModel",
    "compute_glacier_model",
]
