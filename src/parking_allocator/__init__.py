"""Parking spot allocation and reservation scheduling engine."""

from .allocation import AllocationCoordinator, AvailabilityResolver, SpotLockRegistry
from .bootstrap import build_coordinator, load_coordinator
from .config import AppConfig, load_config
from .state import (
    Driver,
    DriverDirectory,
    OverlapPolicy,
    Reservation,
    ReservationLedger,
    ReservationStatus,
    Spot,
    SpotRegistry,
    SpotStatus,
)

__version__ = "1.0.0"

__all__ = [
    "AllocationCoordinator",
    "AppConfig",
    "AvailabilityResolver",
    "Driver",
    "DriverDirectory",
    "OverlapPolicy",
    "Reservation",
    "ReservationLedger",
    "ReservationStatus",
    "Spot",
    "SpotLockRegistry",
    "SpotRegistry",
    "SpotStatus",
    "build_coordinator",
    "load_config",
    "load_coordinator",
]
