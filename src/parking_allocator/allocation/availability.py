"""Availability checks for both allocation modes."""

import logging
from datetime import datetime
from typing import Optional

from ..errors import SpotNotFound
from ..state.models import Reservation, SpotStatus
from ..state.reservation_ledger import ReservationLedger
from ..state.spot_registry import SpotRegistry

logger = logging.getLogger(__name__)


class AvailabilityResolver:
    """
    Decides whether a spot is free, without changing anything.

    Scheduled availability comes from the reservation ledger; immediate
    (park-now) availability comes from the registry's live state. The two
    are independent: a spot can be free of reservations for tomorrow and
    occupied right now, or the other way around.
    """

    def __init__(self, spot_registry: SpotRegistry, ledger: ReservationLedger):
        self._spots = spot_registry
        self._ledger = ledger

    def conflicts(
        self,
        spot_number: str,
        start: datetime,
        end: datetime,
        excluding_reservation_id: Optional[int] = None,
    ) -> list[Reservation]:
        """Non-cancelled reservations that would clash with the window."""
        if not self._spots.has_spot(spot_number):
            raise SpotNotFound(spot_number)

        return self._ledger.live_conflicts(spot_number, start, end, excluding_reservation_id)

    def is_spot_available(
        self,
        spot_number: str,
        start: datetime,
        end: datetime,
        excluding_reservation_id: Optional[int] = None,
    ) -> bool:
        """
        Check whether a spot can be reserved for ``[start, end]``.

        Args:
            spot_number: Spot to check
            start: Window start
            end: Window end
            excluding_reservation_id: Reservation being updated, ignored
                in the check

        Returns:
            True if no live reservation overlaps the window
        """
        found = self.conflicts(spot_number, start, end, excluding_reservation_id)
        logger.debug(
            f"Spot '{spot_number}' {start.isoformat()} - {end.isoformat()}: "
            f"{len(found)} conflicting reservation(s)"
        )
        return not found

    def is_free_now(self, spot_number: str) -> bool:
        """Check whether a vehicle can park in the spot right now."""
        return self._spots.get_spot(spot_number).status == SpotStatus.AVAILABLE
