"""Registry of parking spots and their live occupancy."""

import logging
import threading
from datetime import datetime
from typing import Iterator, Optional

from ..errors import DuplicateSpot, SpotNotFound, VehicleAlreadyParked
from .models import Clock, Spot, SpotStatus

logger = logging.getLogger(__name__)


class SpotRegistry:
    """
    Holds the set of parking spots, keyed by spot number.

    Occupancy is changed only through ``set_occupancy``, which the
    allocation coordinator calls while holding that spot's lock. The
    registry's own lock only keeps its dictionaries consistent; it does
    not serialize check-then-act sequences.

    Every spot handed out is a copy, so callers never see a spot change
    underneath them.
    """

    def __init__(self, clock: Clock = datetime.now):
        """
        Initialize an empty registry.

        Args:
            clock: Time source for ``last_changed`` stamps
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._spots: dict[str, Spot] = {}
        self._vehicle_index: dict[str, str] = {}  # vehicle_id -> spot_number

    def add_spot(self, spot_number: str, location: Optional[str] = None) -> Spot:
        """
        Register a new spot in the AVAILABLE state.

        Raises:
            DuplicateSpot: If the spot number is already registered
        """
        spot_number = spot_number.strip()
        if not spot_number:
            raise ValueError("Spot number cannot be empty")

        with self._lock:
            if spot_number in self._spots:
                raise DuplicateSpot(spot_number)
            spot = Spot(
                spot_number=spot_number,
                status=SpotStatus.AVAILABLE,
                current_vehicle=None,
                location=location,
                last_changed=self._clock(),
            )
            self._spots[spot_number] = spot

        logger.info(f"Added parking spot '{spot_number}'")
        return spot.model_copy()

    def remove_spot(self, spot_number: str) -> Spot:
        """Administratively remove a spot. Returns the removed record."""
        with self._lock:
            spot = self._spots.pop(spot_number, None)
            if spot is None:
                raise SpotNotFound(spot_number)
            if spot.current_vehicle is not None:
                self._vehicle_index.pop(spot.current_vehicle, None)

        logger.info(f"Removed parking spot '{spot_number}'")
        return spot

    def get_spot(self, spot_number: str) -> Spot:
        """Get a snapshot of one spot."""
        with self._lock:
            spot = self._spots.get(spot_number)
            if spot is None:
                raise SpotNotFound(spot_number)
            return spot.model_copy()

    def has_spot(self, spot_number: str) -> bool:
        with self._lock:
            return spot_number in self._spots

    def list_spots(self) -> list[Spot]:
        """All spots ordered by spot number."""
        with self._lock:
            return [self._spots[k].model_copy() for k in sorted(self._spots)]

    def list_by_state(self, state: SpotStatus) -> Iterator[Spot]:
        """
        Lazily iterate spots in the given state.

        The set of spots is captured when this is called; spots changing
        state afterwards do not affect the iteration.
        """
        with self._lock:
            snapshot = [
                self._spots[k].model_copy()
                for k in sorted(self._spots)
                if self._spots[k].status == state
            ]
        return iter(snapshot)

    def find_by_vehicle(self, vehicle_id: str) -> Optional[Spot]:
        """Locate the spot a vehicle is parked in, if any."""
        with self._lock:
            spot_number = self._vehicle_index.get(vehicle_id)
            if spot_number is None:
                return None
            return self._spots[spot_number].model_copy()

    def set_occupancy(
        self,
        spot_number: str,
        status: SpotStatus,
        vehicle_id: Optional[str],
    ) -> Spot:
        """
        Change a spot's live occupancy.

        Only the allocation coordinator calls this, holding the spot's lock.

        Args:
            spot_number: Spot to change
            status: New occupancy state
            vehicle_id: Occupying vehicle; required for OCCUPIED, must be
                None for AVAILABLE

        Raises:
            SpotNotFound: If the spot is not registered
            VehicleAlreadyParked: If the vehicle occupies another spot
        """
        if (status == SpotStatus.OCCUPIED) != (vehicle_id is not None):
            raise ValueError(
                f"Inconsistent occupancy for spot {spot_number}: "
                f"status={status.value}, vehicle={vehicle_id!r}"
            )

        with self._lock:
            spot = self._spots.get(spot_number)
            if spot is None:
                raise SpotNotFound(spot_number)

            if vehicle_id is not None:
                parked_in = self._vehicle_index.get(vehicle_id)
                if parked_in is not None and parked_in != spot_number:
                    raise VehicleAlreadyParked(vehicle_id, parked_in)

            old_status = spot.status
            if spot.current_vehicle is not None:
                self._vehicle_index.pop(spot.current_vehicle, None)
            if vehicle_id is not None:
                self._vehicle_index[vehicle_id] = spot_number

            spot.status = status
            spot.current_vehicle = vehicle_id
            spot.last_changed = self._clock()
            result = spot.model_copy()

        logger.info(
            f"Spot '{spot_number}' changed: {old_status.value} -> {status.value}"
            + (f" (vehicle {vehicle_id})" if vehicle_id else "")
        )
        return result

    def get_available_count(self) -> int:
        """Get count of available spots."""
        with self._lock:
            return sum(1 for s in self._spots.values() if s.status == SpotStatus.AVAILABLE)

    def get_occupied_count(self) -> int:
        """Get count of occupied spots."""
        with self._lock:
            return sum(1 for s in self._spots.values() if s.status == SpotStatus.OCCUPIED)

    def __len__(self) -> int:
        with self._lock:
            return len(self._spots)
