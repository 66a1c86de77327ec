"""Transactional boundary for parking and reservation operations."""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional

from ..errors import (
    AllocationError,
    DriverInactive,
    DriverNotFound,
    SpotAlreadyAvailable,
    SpotNotFound,
    SpotOccupied,
    SpotUnavailable,
)
from ..metrics import record_request, record_transition, update_spot_counts
from ..state.driver_directory import DriverLookup
from ..state.models import (
    Clock,
    Driver,
    Reservation,
    ReservationStatus,
    Spot,
    SpotStatus,
    normalize_license_plate,
)
from ..state.reservation_ledger import ReservationLedger
from ..state.spot_registry import SpotRegistry
from .availability import AvailabilityResolver
from .locks import SpotLockRegistry

logger = logging.getLogger(__name__)

# Optional hook run under the spot lock before a park-now; raise to refuse.
ParkGuard = Callable[[Spot, datetime], None]


class AllocationCoordinator:
    """
    Executes park, release and reservation operations.

    Every operation that checks availability and then mutates state does
    both while holding the target spot's lock, so two requests racing for
    the same spot cannot both succeed. Failures raise an
    ``AllocationError`` subclass and leave state unchanged.

    Status changes (confirm, start, cancel, complete) do not touch live
    occupancy and run without a spot lock.
    """

    def __init__(
        self,
        spot_registry: SpotRegistry,
        ledger: ReservationLedger,
        drivers: DriverLookup,
        locks: Optional[SpotLockRegistry] = None,
        resolver: Optional[AvailabilityResolver] = None,
        clock: Clock = datetime.now,
        park_guard: Optional[ParkGuard] = None,
        record_metrics: bool = True,
    ):
        """
        Initialize the coordinator.

        Args:
            spot_registry: Registry holding live occupancy
            ledger: Reservation ledger
            drivers: Driver lookup collaborator
            locks: Per-spot lock registry (a default one is created if omitted)
            resolver: Availability resolver (built from registry and ledger
                if omitted)
            clock: Time source passed to the park guard
            park_guard: Extra check before park-now, e.g. refusing spots
                with an imminent reservation
            record_metrics: Whether to update Prometheus metrics
        """
        self.spots = spot_registry
        self.ledger = ledger
        self.drivers = drivers
        self.locks = locks or SpotLockRegistry(record_metrics=record_metrics)
        self.resolver = resolver or AvailabilityResolver(spot_registry, ledger)
        self._clock = clock
        self.park_guard = park_guard
        self.record_metrics = record_metrics

    @contextmanager
    def _request(self, operation: str) -> Iterator[None]:
        """Log and count the outcome of one operation."""
        try:
            yield
        except AllocationError as e:
            logger.warning(f"{operation} rejected: {e.message}")
            if self.record_metrics:
                record_request(operation, e.code)
            raise
        if self.record_metrics:
            record_request(operation, "ok")

    def _refresh_counts(self) -> None:
        if self.record_metrics:
            update_spot_counts(
                total=len(self.spots),
                available=self.spots.get_available_count(),
                occupied=self.spots.get_occupied_count(),
            )

    def _require_spot(self, spot_number: str) -> None:
        """Fail before locking so unknown spot numbers never get a mutex."""
        if not self.spots.has_spot(spot_number):
            raise SpotNotFound(spot_number)

    def _active_driver(self, driver: Optional[Driver], reference) -> Driver:
        if driver is None:
            raise DriverNotFound(reference)
        if not driver.active:
            raise DriverInactive(driver.id)
        return driver

    # Spots

    def add_spot(self, spot_number: str, location: Optional[str] = None) -> Spot:
        with self._request("add_spot"):
            spot = self.spots.add_spot(spot_number, location)
        self._refresh_counts()
        return spot

    def remove_spot(self, spot_number: str) -> Spot:
        """
        Administratively remove a spot.

        Refused while a vehicle is parked there or while live reservations
        are still bound to it.
        Its finished and cancelled reservations are dropped with it, so a
        spot registered later under the same number starts with no history.
        """
        with self._request("remove_spot"):
            self._require_spot(spot_number)
            with self.locks.hold(spot_number):
                spot = self.spots.get_spot(spot_number)
                if spot.is_occupied:
                    raise SpotOccupied(spot_number, spot.current_vehicle)
                if self.ledger.has_live_reservations(spot_number):
                    raise SpotUnavailable(
                        f"Parking spot {spot_number} still has active reservations"
                    )
                removed = self.spots.remove_spot(spot_number)
                self.ledger.drop_spot(spot_number)
        self._refresh_counts()
        return removed

    def get_spot(self, spot_number: str) -> Spot:
        return self.spots.get_spot(spot_number)

    def list_spots(self) -> list[Spot]:
        return self.spots.list_spots()

    def list_available_spots(self) -> list[Spot]:
        return list(self.spots.list_by_state(SpotStatus.AVAILABLE))

    def find_vehicle_location(self, license_plate: str) -> Optional[Spot]:
        return self.spots.find_by_vehicle(normalize_license_plate(license_plate))

    # Immediate occupancy

    def park_vehicle(self, license_plate: str, spot_number: str) -> Spot:
        """
        Park a registered driver's vehicle in a spot right now.

        Args:
            license_plate: Plate of the vehicle, any case
            spot_number: Spot to occupy

        Returns:
            The spot after parking

        Raises:
            DriverNotFound: If no driver has this plate
            DriverInactive: If the driver is deactivated
            SpotNotFound: If the spot does not exist
            SpotOccupied: If another vehicle holds the spot
            VehicleAlreadyParked: If the vehicle occupies another spot
        """
        plate = normalize_license_plate(license_plate)
        with self._request("park_vehicle"):
            self._active_driver(
                self.drivers.find_by_license_plate(plate),
                f"with license plate {plate}",
            )
            self._require_spot(spot_number)
            with self.locks.hold(spot_number):
                spot = self.spots.get_spot(spot_number)
                if self.park_guard is not None:
                    self.park_guard(spot, self._clock())
                if spot.status != SpotStatus.AVAILABLE:
                    raise SpotOccupied(spot_number, spot.current_vehicle)
                updated = self.spots.set_occupancy(spot_number, SpotStatus.OCCUPIED, plate)
        self._refresh_counts()
        return updated

    def release_spot(self, spot_number: str) -> Spot:
        """
        Clear a spot's occupancy.

        Raises:
            SpotNotFound: If the spot does not exist
            SpotAlreadyAvailable: If nothing is parked there
        """
        with self._request("release_spot"):
            self._require_spot(spot_number)
            with self.locks.hold(spot_number):
                spot = self.spots.get_spot(spot_number)
                if spot.status != SpotStatus.OCCUPIED:
                    raise SpotAlreadyAvailable(spot_number)
                updated = self.spots.set_occupancy(spot_number, SpotStatus.AVAILABLE, None)
        self._refresh_counts()
        return updated

    # Reservations

    def check_availability(self, spot_number: str, start: datetime, end: datetime) -> bool:
        return self.resolver.is_spot_available(spot_number, start, end)

    def create_reservation(
        self,
        spot_number: str,
        driver_id: int,
        start: datetime,
        end: datetime,
    ) -> Reservation:
        """
        Reserve a spot for a driver over ``[start, end]``.

        Raises:
            DriverNotFound: If the driver does not exist
            DriverInactive: If the driver is deactivated
            SpotNotFound: If the spot does not exist
            InvalidInterval: If the window is empty, inverted or in the past
            SpotUnavailable: If a live reservation overlaps the window
        """
        with self._request("create_reservation"):
            driver = self._active_driver(self.drivers.get_driver(driver_id), driver_id)
            self._require_spot(spot_number)
            with self.locks.hold(spot_number):
                self.ledger.validate_interval(start, end)
                if not self.resolver.is_spot_available(spot_number, start, end):
                    raise SpotUnavailable(
                        f"Parking spot {spot_number} is not available for the "
                        f"requested time period"
                    )
                return self.ledger.create(spot_number, driver.id, start, end)

    def update_reservation(
        self,
        reservation_id: int,
        spot_number: str,
        driver_id: int,
        start: datetime,
        end: datetime,
    ) -> Reservation:
        """
        Move a reservation to a new spot, driver or window.

        Both the current and the target spot are locked; the reservation's
        own record is ignored when checking for overlap.
        """
        with self._request("update_reservation"):
            existing = self.ledger.get(reservation_id)
            driver = self._active_driver(self.drivers.get_driver(driver_id), driver_id)
            self._require_spot(spot_number)
            with self.locks.hold(existing.spot_number, spot_number):
                self.ledger.validate_interval(start, end)
                if not self.resolver.is_spot_available(
                    spot_number, start, end, excluding_reservation_id=reservation_id
                ):
                    raise SpotUnavailable(
                        f"Parking spot {spot_number} is not available for the "
                        f"requested time period"
                    )
                return self.ledger.update(reservation_id, spot_number, driver.id, start, end)

    def _transition(
        self,
        operation: str,
        reservation_id: int,
        status: ReservationStatus,
    ) -> Reservation:
        with self._request(operation):
            before, reservation = self.ledger.transition(reservation_id, status)
        if self.record_metrics:
            record_transition(before.value, reservation.status.value)
        return reservation

    def confirm_reservation(self, reservation_id: int) -> Reservation:
        return self._transition("confirm_reservation", reservation_id, ReservationStatus.CONFIRMED)

    def start_reservation(self, reservation_id: int) -> Reservation:
        return self._transition("start_reservation", reservation_id, ReservationStatus.IN_PROGRESS)

    def cancel_reservation(self, reservation_id: int) -> Reservation:
        """Cancel a reservation; its window is free again immediately."""
        return self._transition("cancel_reservation", reservation_id, ReservationStatus.CANCELLED)

    def complete_reservation(self, reservation_id: int) -> Reservation:
        return self._transition("complete_reservation", reservation_id, ReservationStatus.COMPLETED)

    def delete_reservation(self, reservation_id: int) -> Reservation:
        """Administrative, destructive removal of a reservation record."""
        with self._request("delete_reservation"):
            return self.ledger.delete(reservation_id)

    def get_reservation(self, reservation_id: int) -> Reservation:
        return self.ledger.get(reservation_id)

    def list_reservations(self) -> list[Reservation]:
        return self.ledger.list_all()

    def reservations_by_status(self, status: ReservationStatus | str) -> list[Reservation]:
        return self.ledger.list_by_status(status)

    def reservations_by_driver(self, driver_id: int) -> list[Reservation]:
        """Reservations of an existing driver."""
        self.drivers.get_driver(driver_id)
        return self.ledger.list_by_driver(driver_id)

    def reservations_by_spot(self, spot_number: str) -> list[Reservation]:
        """Reservations bound to an existing spot."""
        self.spots.get_spot(spot_number)
        return self.ledger.list_by_spot(spot_number)

    def reservations_by_date_range(self, start: datetime, end: datetime) -> list[Reservation]:
        return self.ledger.list_by_date_range(start, end)
