"""
Ride catalog service - driver-published rides.
"""

from .ride_catalog import (
    RideFilter,
    publish,
    search,
    get_ride,
    rides_for_driver,
    mark_departed,
    cancel,
    depart_due_rides,
)

__all__ = [
    "RideFilter",
    "publish",
    "search",
    "get_ride",
    "rides_for_driver",
    "mark_departed",
    "cancel",
    "depart_due_rides",
]
