"""Shared fixtures."""

from datetime import datetime, timedelta

import pytest

from parking_allocator.allocation import AllocationCoordinator, SpotLockRegistry
from parking_allocator.state import (
    DriverDirectory,
    OverlapPolicy,
    ReservationLedger,
    SpotRegistry,
)

BASE_TIME = datetime(2030, 1, 1, 8, 0)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = BASE_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def at(hour: int, minute: int = 0) -> datetime:
    """A time on the fixed test day."""
    return BASE_TIME.replace(hour=hour, minute=minute)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def registry(clock):
    registry = SpotRegistry(clock=clock)
    for number in ("A-1", "A-2", "B-1"):
        registry.add_spot(number)
    return registry


@pytest.fixture
def ledger(registry, clock):
    return ReservationLedger(registry, clock=clock, overlap_policy=OverlapPolicy.CLOSED)


@pytest.fixture
def drivers():
    directory = DriverDirectory()
    directory.register_driver("Jordan Smith", "xyz-123", "555-0100")
    directory.register_driver("Sam Lee", "ABC-999", "555-0101")
    return directory


@pytest.fixture
def coordinator(registry, ledger, drivers, clock):
    return AllocationCoordinator(
        registry,
        ledger,
        drivers,
        locks=SpotLockRegistry(timeout_seconds=2.0, record_metrics=False),
        clock=clock,
        record_metrics=False,
    )
