"""Domain errors raised by the allocation engine.

Every error carries a stable ``code`` so a surrounding API layer can map it to
its own response format without matching on class names.
"""


class AllocationError(Exception):
    """Base class for all allocation failures."""

    code = "allocation_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(AllocationError):
    """A referenced spot, reservation or driver does not exist."""

    code = "not_found"


class SpotNotFound(NotFound):
    def __init__(self, spot_number: str):
        super().__init__(f"Parking spot {spot_number} not found")
        self.spot_number = spot_number


class ReservationNotFound(NotFound):
    def __init__(self, reservation_id: int):
        super().__init__(f"Reservation not found with id: {reservation_id}")
        self.reservation_id = reservation_id


class DriverNotFound(NotFound):
    def __init__(self, reference):
        super().__init__(f"Driver {reference} not found")
        self.reference = reference


class DuplicateSpot(AllocationError):
    code = "duplicate_spot"

    def __init__(self, spot_number: str):
        super().__init__(f"Parking spot {spot_number} already exists")
        self.spot_number = spot_number


class DuplicateLicensePlate(AllocationError):
    code = "duplicate_license_plate"

    def __init__(self, license_plate: str):
        super().__init__(f"Driver with license plate already exists: {license_plate}")
        self.license_plate = license_plate


class DriverInactive(AllocationError):
    code = "driver_inactive"

    def __init__(self, driver_id: int):
        super().__init__(f"Driver {driver_id} is not active")
        self.driver_id = driver_id


class InvalidInterval(AllocationError):
    """Reservation window is malformed or starts in the past."""

    code = "invalid_interval"


class SpotUnavailable(AllocationError):
    """Overlap or occupancy conflict at allocation time."""

    code = "spot_unavailable"


class SpotOccupied(SpotUnavailable):
    def __init__(self, spot_number: str, vehicle_id: str | None = None):
        super().__init__(f"Parking spot {spot_number} is already occupied")
        self.spot_number = spot_number
        self.vehicle_id = vehicle_id


class VehicleAlreadyParked(SpotUnavailable):
    def __init__(self, vehicle_id: str, spot_number: str):
        super().__init__(f"Vehicle {vehicle_id} is already parked in spot {spot_number}")
        self.vehicle_id = vehicle_id
        self.spot_number = spot_number


class InvalidTransition(AllocationError):
    """Illegal reservation status change."""

    code = "invalid_transition"


class AlreadyInState(AllocationError):
    code = "already_in_state"


class SpotAlreadyAvailable(AlreadyInState):
    def __init__(self, spot_number: str):
        super().__init__(f"Parking spot {spot_number} is already available")
        self.spot_number = spot_number


class SpotBusy(AllocationError):
    """Exclusive access to a spot could not be obtained in time."""

    code = "spot_busy"

    def __init__(self, spot_number: str, timeout: float):
        super().__init__(
            f"Timed out after {timeout:.2f}s waiting for exclusive access to spot {spot_number}"
        )
        self.spot_number = spot_number
        self.timeout = timeout
