"""Reservation storage, interval validation and the status lifecycle."""

import itertools
import logging
import threading
from datetime import datetime
from typing import Iterable, Optional

from ..errors import (
    AlreadyInState,
    InvalidInterval,
    InvalidTransition,
    ReservationNotFound,
    SpotNotFound,
    SpotUnavailable,
)
from .models import Clock, OverlapPolicy, Reservation, ReservationStatus
from .spot_registry import SpotRegistry

logger = logging.getLogger(__name__)

S = ReservationStatus

# Allowed status changes. Anything missing here is an invalid transition.
TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.COMPLETED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.IN_PROGRESS, S.COMPLETED, S.CANCELLED}),
    S.IN_PROGRESS: frozenset({S.COMPLETED, S.CANCELLED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
}


def _sort_key(reservation: Reservation) -> tuple[datetime, int]:
    return (reservation.start_time, reservation.id)


class ReservationLedger:
    """
    Holds all reservations and answers overlap queries per spot.

    Reservations refer to their spot by number. The ledger keeps its own
    spot -> reservation ids index rather than the spots holding lists of
    their reservations.
    """

    def __init__(
        self,
        spot_registry: SpotRegistry,
        clock: Clock = datetime.now,
        overlap_policy: OverlapPolicy = OverlapPolicy.CLOSED,
    ):
        """
        Initialize an empty ledger.

        Args:
            spot_registry: Registry used to check that spots exist
            clock: Time source for past-interval checks and timestamps
            overlap_policy: Endpoint comparison used by ``overlapping``
        """
        self._spots = spot_registry
        self._clock = clock
        self.overlap_policy = overlap_policy

        self._lock = threading.RLock()
        self._reservations: dict[int, Reservation] = {}
        self._by_spot: dict[str, set[int]] = {}
        self._ids = itertools.count(1)

    def validate_interval(self, start: datetime, end: datetime) -> None:
        """
        Check a requested reservation window.

        Raises:
            InvalidInterval: If either bound is missing, the window is
                empty or inverted, or it starts before now
        """
        if start is None or end is None:
            raise InvalidInterval("Start time and end time cannot be null")
        if start >= end:
            raise InvalidInterval(
                f"Start time must be before end time (start={start.isoformat()}, "
                f"end={end.isoformat()})"
            )
        if start < self._clock():
            raise InvalidInterval("Cannot create reservations in the past")

    def create(
        self,
        spot_number: str,
        driver_id: int,
        start: datetime,
        end: datetime,
    ) -> Reservation:
        """
        Record a new PENDING reservation.

        Overlap is not checked here; the coordinator checks availability
        under the spot lock before calling this.

        Raises:
            SpotNotFound: If the spot is not registered
            InvalidInterval: If the window is invalid
        """
        if not self._spots.has_spot(spot_number):
            raise SpotNotFound(spot_number)
        self.validate_interval(start, end)

        now = self._clock()
        with self._lock:
            reservation = Reservation(
                id=next(self._ids),
                spot_number=spot_number,
                driver_id=driver_id,
                start_time=start,
                end_time=end,
                status=ReservationStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            self._reservations[reservation.id] = reservation
            self._by_spot.setdefault(spot_number, set()).add(reservation.id)

        logger.info(
            f"Created reservation {reservation.id} on spot '{spot_number}' "
            f"for driver {driver_id}: {start.isoformat()} - {end.isoformat()}"
        )
        return reservation.model_copy()

    def get(self, reservation_id: int) -> Reservation:
        with self._lock:
            return self._get(reservation_id).model_copy()

    def _get(self, reservation_id: int) -> Reservation:
        reservation = self._reservations.get(reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
        return reservation

    def overlapping(
        self,
        spot_number: str,
        start: datetime,
        end: datetime,
    ) -> list[Reservation]:
        """
        All reservations on a spot overlapping ``[start, end]``, any status.

        Endpoint handling follows ``overlap_policy``.
        """
        with self._lock:
            ids = self._by_spot.get(spot_number, ())
            found = [
                self._reservations[rid].model_copy()
                for rid in ids
                if self.overlap_policy.overlaps(
                    self._reservations[rid].start_time,
                    self._reservations[rid].end_time,
                    start,
                    end,
                )
            ]
        return sorted(found, key=_sort_key)

    def live_conflicts(
        self,
        spot_number: str,
        start: datetime,
        end: datetime,
        excluding_reservation_id: Optional[int] = None,
    ) -> list[Reservation]:
        """
        Overlapping reservations that still hold the spot.

        Cancelled reservations never block, and the excluded id (a
        reservation being moved) is ignored.
        """
        return [
            r
            for r in self.overlapping(spot_number, start, end)
            if r.status != ReservationStatus.CANCELLED and r.id != excluding_reservation_id
        ]

    def update(
        self,
        reservation_id: int,
        spot_number: str,
        driver_id: int,
        start: datetime,
        end: datetime,
    ) -> Reservation:
        """
        Move a reservation to a new spot, driver or window.

        The new window is validated and checked for overlap against every
        other non-cancelled reservation on the target spot before anything
        is written.

        Raises:
            ReservationNotFound: If the reservation does not exist
            SpotNotFound: If the target spot is not registered
            InvalidInterval: If the new window is invalid
            SpotUnavailable: If the new window conflicts with another booking
        """
        with self._lock:
            existing = self._get(reservation_id)
            if not self._spots.has_spot(spot_number):
                raise SpotNotFound(spot_number)
            self.validate_interval(start, end)

            conflicts = self.live_conflicts(spot_number, start, end, reservation_id)
            if conflicts:
                raise SpotUnavailable(
                    f"Parking spot {spot_number} is not available for the requested "
                    f"time period (conflicts with reservation {conflicts[0].id})"
                )

            old_spot = existing.spot_number
            if old_spot != spot_number:
                self._by_spot[old_spot].discard(reservation_id)
                self._by_spot.setdefault(spot_number, set()).add(reservation_id)

            existing.spot_number = spot_number
            existing.driver_id = driver_id
            existing.start_time = start
            existing.end_time = end
            existing.updated_at = self._clock()
            result = existing.model_copy()

        logger.info(
            f"Updated reservation {reservation_id}: spot '{spot_number}', "
            f"{start.isoformat()} - {end.isoformat()}"
        )
        return result

    def set_status(
        self,
        reservation_id: int,
        new_status: ReservationStatus,
    ) -> Reservation:
        """Advance a reservation through its lifecycle. See ``transition``."""
        return self.transition(reservation_id, new_status)[1]

    def transition(
        self,
        reservation_id: int,
        new_status: ReservationStatus,
    ) -> tuple[ReservationStatus, Reservation]:
        """
        Advance a reservation through its lifecycle.

        Returns:
            The status held before the change, and the updated reservation

        Raises:
            ReservationNotFound: If the reservation does not exist
            AlreadyInState: If the reservation already has ``new_status``
            InvalidTransition: If the change is not allowed from the
                current status
        """
        new_status = ReservationStatus.parse(new_status)
        with self._lock:
            reservation = self._get(reservation_id)
            current = reservation.status
            if current == new_status:
                raise AlreadyInState(
                    f"Reservation {reservation_id} is already {current.value}"
                )
            if new_status not in TRANSITIONS[current]:
                raise InvalidTransition(
                    f"Cannot change reservation {reservation_id} from "
                    f"{current.value} to {new_status.value}"
                )
            reservation.status = new_status
            reservation.updated_at = self._clock()
            result = reservation.model_copy()

        logger.info(
            f"Reservation {reservation_id} changed: {current.value} -> {new_status.value}"
        )
        return current, result

    def delete(self, reservation_id: int) -> Reservation:
        """Administratively delete a reservation. Returns the removed record."""
        with self._lock:
            reservation = self._reservations.pop(reservation_id, None)
            if reservation is None:
                raise ReservationNotFound(reservation_id)
            self._by_spot.get(reservation.spot_number, set()).discard(reservation_id)

        logger.info(f"Deleted reservation {reservation_id}")
        return reservation

    def drop_spot(self, spot_number: str) -> list[Reservation]:
        """
        Remove every reservation bound to a spot that is being destroyed.

        Returns the removed records.
        """
        with self._lock:
            ids = self._by_spot.pop(spot_number, set())
            dropped = [self._reservations.pop(rid) for rid in ids]

        if dropped:
            logger.info(
                f"Dropped {len(dropped)} reservation(s) of removed spot '{spot_number}'"
            )
        return sorted(dropped, key=_sort_key)

    def has_live_reservations(self, spot_number: str) -> bool:
        """Whether any non-terminal reservation is bound to the spot."""
        with self._lock:
            return any(
                self._reservations[rid].is_live
                for rid in self._by_spot.get(spot_number, ())
            )

    def _select(self, predicate=None, ids: Optional[Iterable[int]] = None) -> list[Reservation]:
        with self._lock:
            source = (
                self._reservations.values()
                if ids is None
                else (self._reservations[rid] for rid in ids)
            )
            found = [r.model_copy() for r in source if predicate is None or predicate(r)]
        return sorted(found, key=_sort_key)

    def list_all(self) -> list[Reservation]:
        return self._select()

    def list_by_status(self, status: ReservationStatus | str) -> list[Reservation]:
        status = ReservationStatus.parse(status)
        return self._select(lambda r: r.status == status)

    def list_by_driver(self, driver_id: int) -> list[Reservation]:
        return self._select(lambda r: r.driver_id == driver_id)

    def list_by_spot(self, spot_number: str) -> list[Reservation]:
        with self._lock:
            return self._select(ids=list(self._by_spot.get(spot_number, ())))

    def list_by_date_range(self, start: datetime, end: datetime) -> list[Reservation]:
        """Reservations whose start time falls within ``[start, end]``."""
        return self._select(lambda r: start <= r.start_time <= end)

    def __len__(self) -> int:
        with self._lock:
            return len(self._reservations)
