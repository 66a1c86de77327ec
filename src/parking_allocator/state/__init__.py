"""State management module."""

from .driver_directory import DriverDirectory, DriverLookup
from .models import (
    Driver,
    OverlapPolicy,
    Reservation,
    ReservationStatus,
    Spot,
    SpotStatus,
)
from .reservation_ledger import ReservationLedger
from .spot_registry import SpotRegistry

__all__ = [
    "Driver",
    "DriverDirectory",
    "DriverLookup",
    "OverlapPolicy",
    "Reservation",
    "ReservationLedger",
    "ReservationStatus",
    "Spot",
    "SpotRegistry",
    "SpotStatus",
]
