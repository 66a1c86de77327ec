"""Wiring of the allocation engine from configuration."""

import logging
from pathlib import Path
from typing import Optional

from .allocation.availability import AvailabilityResolver
from .allocation.coordinator import AllocationCoordinator, ParkGuard
from .allocation.locks import SpotLockRegistry
from .config import AppConfig, get_config_path, load_config
from .state.driver_directory import DriverDirectory, DriverLookup
from .state.models import Clock
from .state.reservation_ledger import ReservationLedger
from .state.spot_registry import SpotRegistry

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the engine."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


def build_coordinator(
    config: AppConfig,
    clock: Optional[Clock] = None,
    driver_lookup: Optional[DriverLookup] = None,
    park_guard: Optional[ParkGuard] = None,
) -> AllocationCoordinator:
    """
    Build a coordinator and its collaborators from configuration.

    Args:
        config: Validated application configuration
        clock: Time source; defaults to the wall clock
        driver_lookup: External driver store. When omitted an in-memory
            DriverDirectory seeded from ``config.drivers`` is used.
        park_guard: Optional extra check before park-now

    Returns:
        Coordinator with the configured spots registered
    """
    kwargs = {} if clock is None else {"clock": clock}

    spot_registry = SpotRegistry(**kwargs)
    ledger = ReservationLedger(
        spot_registry,
        overlap_policy=config.allocation.overlap_policy,
        **kwargs,
    )

    if driver_lookup is None:
        directory = DriverDirectory()
        for driver in config.drivers:
            directory.register_driver(
                name=driver.name,
                license_plate=driver.license_plate,
                phone_number=driver.phone_number,
                email=driver.email,
            )
        driver_lookup = directory
    elif config.drivers:
        logger.warning("Ignoring configured drivers: an external driver lookup was supplied")

    coordinator = AllocationCoordinator(
        spot_registry,
        ledger,
        driver_lookup,
        locks=SpotLockRegistry(
            timeout_seconds=config.allocation.lock_timeout_seconds,
            record_metrics=config.metrics.enabled,
        ),
        resolver=AvailabilityResolver(spot_registry, ledger),
        park_guard=park_guard,
        record_metrics=config.metrics.enabled,
        **kwargs,
    )

    for spot in config.spots:
        coordinator.add_spot(spot.spot_number, spot.location)

    logger.info(
        f"Allocation engine ready: {len(spot_registry)} spots, "
        f"{config.allocation.overlap_policy.value} overlap policy"
    )
    return coordinator


def load_coordinator(path: Optional[str | Path] = None, **kwargs) -> AllocationCoordinator:
    """
    Load configuration from YAML, configure logging and build the engine.

    Args:
        path: Config file; defaults to ``get_config_path()``
        **kwargs: Passed through to ``build_coordinator``
    """
    config_path = Path(path) if path is not None else get_config_path()
    config = load_config(config_path)
    configure_logging(config.logging.level)
    logger.info(f"Loaded configuration from {config_path}")
    return build_coordinator(config, **kwargs)
