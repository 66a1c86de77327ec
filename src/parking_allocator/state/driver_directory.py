"""Driver lookup used by the allocation engine."""

import itertools
import logging
import threading
from typing import Optional, Protocol

from ..errors import DriverNotFound, DuplicateLicensePlate
from .models import Driver, normalize_license_plate

logger = logging.getLogger(__name__)


class DriverLookup(Protocol):
    """What the engine needs from the driver store."""

    def get_driver(self, driver_id: int) -> Driver:
        ...

    def find_by_license_plate(self, license_plate: str) -> Optional[Driver]:
        ...


class DriverDirectory:
    """In-memory driver store with unique, upper-cased license plates."""

    def __init__(self):
        self._lock = threading.Lock()
        self._drivers: dict[int, Driver] = {}
        self._by_plate: dict[str, int] = {}
        self._ids = itertools.count(1)

    def register_driver(
        self,
        name: str,
        license_plate: str,
        phone_number: str,
        email: Optional[str] = None,
    ) -> Driver:
        """
        Register a new, active driver.

        Raises:
            DuplicateLicensePlate: If another driver has the same plate
        """
        plate = normalize_license_plate(license_plate)
        with self._lock:
            if plate in self._by_plate:
                logger.error(f"License plate already exists: {plate}")
                raise DuplicateLicensePlate(plate)
            driver = Driver(
                id=next(self._ids),
                name=name,
                license_plate=plate,
                phone_number=phone_number,
                email=email,
                active=True,
            )
            self._drivers[driver.id] = driver
            self._by_plate[driver.license_plate] = driver.id

        logger.info(f"Driver registered successfully with ID: {driver.id}")
        return driver.model_copy()

    def update_driver(
        self,
        driver_id: int,
        name: Optional[str] = None,
        license_plate: Optional[str] = None,
        phone_number: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Driver:
        """Update contact details or plate of an existing driver."""
        with self._lock:
            driver = self._drivers.get(driver_id)
            if driver is None:
                raise DriverNotFound(driver_id)

            changes = {}
            if license_plate is not None:
                plate = normalize_license_plate(license_plate)
                owner = self._by_plate.get(plate)
                if owner is not None and owner != driver_id:
                    raise DuplicateLicensePlate(plate)
                changes["license_plate"] = plate
            if name is not None:
                changes["name"] = name
            if phone_number is not None:
                changes["phone_number"] = phone_number
            if email is not None:
                changes["email"] = email

            updated = Driver(**{**driver.model_dump(), **changes})
            del self._by_plate[driver.license_plate]
            self._by_plate[updated.license_plate] = driver_id
            self._drivers[driver_id] = updated

        logger.info(f"Updated driver {driver_id}")
        return updated.model_copy()

    def deactivate_driver(self, driver_id: int) -> Driver:
        with self._lock:
            driver = self._drivers.get(driver_id)
            if driver is None:
                raise DriverNotFound(driver_id)
            driver.active = False
            result = driver.model_copy()

        logger.info(f"Deactivated driver {driver_id}")
        return result

    def get_driver(self, driver_id: int) -> Driver:
        with self._lock:
            driver = self._drivers.get(driver_id)
            if driver is None:
                raise DriverNotFound(driver_id)
            return driver.model_copy()

    def find_by_license_plate(self, license_plate: str) -> Optional[Driver]:
        """Case-insensitive lookup by plate."""
        plate = normalize_license_plate(license_plate)
        with self._lock:
            driver_id = self._by_plate.get(plate)
            if driver_id is None:
                return None
            return self._drivers[driver_id].model_copy()

    def list_drivers(self) -> list[Driver]:
        with self._lock:
            return [d.model_copy() for d in self._drivers.values()]
