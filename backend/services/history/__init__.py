"""
History service - completed/cancelled trips and ratings.
"""

from .aggregator import (
    complete,
    complete_ride,
    record_cancellation,
    rate,
    history,
    rating_summary,
    ROLE_PASSENGER,
    ROLE_DRIVER,
)

__all__ = [
    "complete",
    "complete_ride",
    "record_cancellation",
    "rate",
    "history",
    "rating_summary",
    "ROLE_PASSENGER",
    "ROLE_DRIVER",
]
