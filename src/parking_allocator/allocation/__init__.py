"""Allocation module."""

from .availability import AvailabilityResolver
from .coordinator import AllocationCoordinator, ParkGuard
from .locks import SpotLockRegistry

__all__ = ["AllocationCoordinator", "AvailabilityResolver", "ParkGuard", "SpotLockRegistry"]
