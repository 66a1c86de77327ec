"""Data models for spots, reservations and drivers."""

from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, field_validator

# Injected time source; returns the current wall-clock time.
Clock = Callable[[], datetime]


class SpotStatus(str, Enum):
    """Live occupancy state of a parking spot."""

    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"


class ReservationStatus(str, Enum):
    """Lifecycle status of a reservation."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (ReservationStatus.COMPLETED, ReservationStatus.CANCELLED)

    @classmethod
    def parse(cls, value: "ReservationStatus | str") -> "ReservationStatus":
        """Accept an enum member or a status name such as ``"cancelled"``."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown reservation status: {value!r}") from None


class OverlapPolicy(str, Enum):
    """How interval endpoints are compared when checking for overlap.

    CLOSED treats intervals sharing an endpoint as overlapping, so a booking
    ending at 11:00 blocks one starting at 11:00. HALF_OPEN allows such
    back-to-back bookings.
    """

    CLOSED = "closed"
    HALF_OPEN = "half_open"

    def overlaps(
        self,
        start_a: datetime,
        end_a: datetime,
        start_b: datetime,
        end_b: datetime,
    ) -> bool:
        if self is OverlapPolicy.CLOSED:
            return start_a <= end_b and end_a >= start_b
        return start_a < end_b and end_a > start_b


def normalize_license_plate(license_plate: str) -> str:
    """Canonical form used for storage and lookup."""
    return license_plate.strip().upper()


class Spot(BaseModel):
    """A single physical parking space and its live occupancy."""

    spot_number: str
    status: SpotStatus = SpotStatus.AVAILABLE
    current_vehicle: Optional[str] = None
    location: Optional[str] = None
    last_changed: datetime

    @property
    def is_occupied(self) -> bool:
        return self.status == SpotStatus.OCCUPIED


class Reservation(BaseModel):
    """A time-bounded claim on a spot by a driver."""

    id: int
    spot_number: str
    driver_id: int
    start_time: datetime
    end_time: datetime
    status: ReservationStatus = ReservationStatus.PENDING
    created_at: datetime
    updated_at: datetime

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600

    @property
    def is_live(self) -> bool:
        """Whether this reservation still holds its spot."""
        return not self.status.is_terminal


class Driver(BaseModel):
    """Driver record as seen by the engine."""

    id: int
    name: str
    license_plate: str
    phone_number: str
    email: Optional[str] = None
    active: bool = True

    @field_validator("license_plate")
    @classmethod
    def normalize_plate(cls, v: str) -> str:
        """Store plates upper-cased so lookups are case-insensitive."""
        plate = normalize_license_plate(v)
        if not plate:
            raise ValueError("License plate cannot be empty")
        return plate
