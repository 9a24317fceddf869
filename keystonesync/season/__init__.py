"""
Seasonal data package for KeystoneSync.
"""

from .loader import SeasonalDataLoader, RetryPolicy, describe_season
from .readiness import ReadinessGate

__all__ = [
    "SeasonalDataLoader",
    "RetryPolicy",
    "describe_season",
    "ReadinessGate"
]
