"""Tests for configuration loading and engine wiring."""

import logging

import pytest
from pydantic import ValidationError

from conftest import FixedClock, at
from parking_allocator.bootstrap import build_coordinator, load_coordinator
from parking_allocator.config import AppConfig, load_config
from parking_allocator.errors import SpotUnavailable
from parking_allocator.state import DriverDirectory, OverlapPolicy

CONFIG_YAML = """
allocation:
  overlap_policy: half_open
  lock_timeout_seconds: 1.5
logging:
  level: debug
metrics:
  enabled: false
spots:
  - spot_number: "A-1"
    location: "Level 1"
  - spot_number: "A-2"
drivers:
  - name: "Jordan Smith"
    license_plate: "xyz-123"
    phone_number: "555-0100"
    email: "${TEST_DRIVER_EMAIL}"
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)
    return path


def test_defaults():
    config = AppConfig()

    assert config.allocation.overlap_policy == OverlapPolicy.CLOSED
    assert config.allocation.lock_timeout_seconds == 5.0
    assert config.logging.level == "INFO"
    assert config.metrics.enabled
    assert config.spots == []


def test_load_config(config_file, monkeypatch):
    monkeypatch.setenv("TEST_DRIVER_EMAIL", "jordan@example.com")
    config = load_config(config_file)

    assert config.allocation.overlap_policy == OverlapPolicy.HALF_OPEN
    assert config.allocation.lock_timeout_seconds == 1.5
    assert config.logging.level == "DEBUG"
    assert not config.metrics.enabled
    assert [s.spot_number for s in config.spots] == ["A-1", "A-2"]
    assert config.drivers[0].email == "jordan@example.com"


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_config(path) == AppConfig()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


@pytest.mark.parametrize(
    "data",
    [
        {"allocation": {"lock_timeout_seconds": 0}},
        {"allocation": {"overlap_policy": "sometimes"}},
        {"logging": {"level": "LOUD"}},
        {"spots": [{"spot_number": "A-1"}, {"spot_number": "A-1"}]},
    ],
)
def test_invalid_config(data):
    with pytest.raises(ValidationError):
        AppConfig(**data)


def test_build_coordinator(config_file):
    clock = FixedClock()
    coordinator = build_coordinator(load_config(config_file), clock=clock)

    assert [s.spot_number for s in coordinator.list_spots()] == ["A-1", "A-2"]
    assert coordinator.get_spot("A-1").location == "Level 1"
    assert coordinator.locks.timeout_seconds == 1.5
    assert not coordinator.record_metrics

    # Seeded driver can park
    assert coordinator.park_vehicle("XYZ-123", "A-1").current_vehicle == "XYZ-123"

    # half_open policy allows back-to-back bookings
    coordinator.create_reservation("A-2", 1, at(10), at(11))
    coordinator.create_reservation("A-2", 1, at(11), at(12))
    with pytest.raises(SpotUnavailable):
        coordinator.create_reservation("A-2", 1, at(11, 30), at(12, 30))


def test_build_with_external_driver_lookup(caplog):
    external = DriverDirectory()
    external.register_driver("Sam Lee", "ABC-999", "555-0101")
    config = AppConfig(
        spots=[{"spot_number": "B-1"}],
        drivers=[{"name": "Ignored", "license_plate": "IGN-1", "phone_number": "0"}],
        metrics={"enabled": False},
    )

    with caplog.at_level(logging.WARNING):
        coordinator = build_coordinator(config, driver_lookup=external)

    assert coordinator.drivers is external
    assert coordinator.park_vehicle("abc-999", "B-1").current_vehicle == "ABC-999"
    assert "Ignoring configured drivers" in caplog.text


def test_load_coordinator(config_file):
    coordinator = load_coordinator(config_file, clock=FixedClock())
    assert len(coordinator.list_spots()) == 2
