"""Configuration models and loading utilities."""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, field_validator

from .state.models import OverlapPolicy


def _resolve_env_var(v):
    """Resolve environment variable references like ${VAR_NAME}."""
    if isinstance(v, str) and v.startswith("${") and v.endswith("}"):
        env_var = v[2:-1]
        return os.environ.get(env_var, "")
    return v


class AllocationConfig(BaseModel):
    """Allocation engine configuration."""

    overlap_policy: OverlapPolicy = OverlapPolicy.CLOSED  # closed: touching intervals overlap
    lock_timeout_seconds: float = 5.0  # Max wait for a spot lock

    @field_validator("lock_timeout_seconds")
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("lock_timeout_seconds must be positive")
        return v


class SpotConfig(BaseModel):
    """A spot registered at startup."""

    spot_number: str
    location: Optional[str] = None


class DriverConfig(BaseModel):
    """A driver registered at startup."""

    name: str
    license_plate: str
    phone_number: str
    email: Optional[str] = None

    @field_validator("phone_number", "email", mode="before")
    @classmethod
    def resolve_env_var(cls, v):
        return _resolve_env_var(v)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


class MetricsConfig(BaseModel):
    """Prometheus metrics configuration."""

    enabled: bool = True


class AppConfig(BaseModel):
    """Main application configuration."""

    allocation: AllocationConfig = AllocationConfig()
    logging: LoggingConfig = LoggingConfig()
    metrics: MetricsConfig = MetricsConfig()
    spots: list[SpotConfig] = []
    drivers: list[DriverConfig] = []

    @field_validator("spots")
    @classmethod
    def unique_spot_numbers(cls, v: list[SpotConfig]) -> list[SpotConfig]:
        seen = set()
        for spot in v:
            if spot.spot_number in seen:
                raise ValueError(f"Duplicate spot number in config: {spot.spot_number}")
            seen.add(spot.spot_number)
        return v


def load_config(path: str | Path) -> AppConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the configuration file

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f)

    return AppConfig(**(data or {}))


def get_config_path() -> Path:
    """Get the default configuration file path."""
    # Check for config in current directory first
    local_config = Path("config/config.yaml")
    if local_config.exists():
        return local_config

    # Check for config in parent directory (for Docker)
    parent_config = Path("/app/config/config.yaml")
    if parent_config.exists():
        return parent_config

    return local_config  # Return default even if doesn't exist
