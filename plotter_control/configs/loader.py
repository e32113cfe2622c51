"""Configuration loader for driver profiles and job files.

A driver profile names a registered driver and lists property values.
Loading builds a default-configured driver and replays the values
through the driver's property bag, so profiles written by other driver
versions load with unknown keys ignored.

Usage::

    from plotter_control.configs.loader import load_profile, load_job
    driver = load_profile()                        # shipped DexArm profile
    driver = load_profile("/custom/profile.yaml")  # explicit path
    job = load_job("drawing.yaml")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from plotter_control.configs.schemas import (
    DriverProfileV1,
    JobFileV1,
    PropertyCommandV1,
)
from plotter_control.gcode.generic import DriverError, GenericGcodeDriver
from plotter_control.gcode.properties import PropertyTypeError
from plotter_control.gcode.registry import create_driver, driver_name
from plotter_control.job_ir.operations import (
    LaserJob,
    LineTo,
    MoveTo,
    Operation,
    PowerSpeedFocusFrequency,
    SetProperty,
    VectorPart,
)
from plotter_control.utils.fs import atomic_yaml_dump, load_yaml

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = Path(__file__).parent / "dexarm.yaml"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(Exception):
    """Raised when a profile or job file fails validation."""

    pass


# ---------------------------------------------------------------------------
# Driver profiles
# ---------------------------------------------------------------------------


def _read(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    try:
        data = load_yaml(path)
    except yaml.YAMLError as exc:
        raise ConfigError(str(exc)) from exc
    if data is None:
        raise ConfigError(f"Empty configuration file: {path}")
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at top level of {path}")
    return data


def apply_properties(driver: GenericGcodeDriver, properties: dict[str, Any]) -> None:
    """Set every entry of *properties* on *driver*.

    Raises
    ------
    ConfigError
        If a value has the wrong type or an invalid choice.
    """
    for key, value in properties.items():
        try:
            driver.set_property(key, value)
        except (PropertyTypeError, ValueError) as exc:
            raise ConfigError(f"Invalid value for '{key}': {exc}") from exc


def load_profile(path: str | Path | None = None) -> GenericGcodeDriver:
    """Load a driver profile from YAML.

    Parameters
    ----------
    path : str | Path | None
        Profile path.  ``None`` loads the DexArm profile shipped
        alongside this module.

    Returns
    -------
    GenericGcodeDriver
        Configured driver instance.

    Raises
    ------
    ConfigError
        If the file fails schema validation, names an unknown driver,
        or holds a mistyped value.
    FileNotFoundError
        If *path* does not exist.
    """
    path = DEFAULT_PROFILE if path is None else Path(path)
    logger.info("Loading driver profile from %s", path)

    data = _read(path)
    try:
        profile = DriverProfileV1(**data)
    except ValidationError as exc:
        raise ConfigError(f"Driver profile validation failed at {path}: {exc}") from exc

    try:
        driver = create_driver(profile.driver)
    except DriverError as exc:
        raise ConfigError(str(exc)) from exc

    apply_properties(driver, profile.properties)
    logger.info(
        "Loaded profile '%s' (%s)", profile.name or path.stem, driver.get_model_name(),
    )
    return driver


def save_profile(
    driver: GenericGcodeDriver,
    path: str | Path,
    name: str = "",
) -> None:
    """Write *driver*'s full configuration to a YAML profile atomically.

    Hidden keys are saved too so a reload is configuration-equal.
    """
    profile = DriverProfileV1(
        driver=driver_name(driver),
        name=name,
        properties={k: driver.get_property(k) for k in driver.all_property_keys()},
    )
    atomic_yaml_dump(profile.model_dump(by_alias=True), path)
    logger.info("Saved driver profile to %s", path)


# ---------------------------------------------------------------------------
# Job files
# ---------------------------------------------------------------------------


def _to_operation(cmd: Any) -> Operation:
    if isinstance(cmd, PropertyCommandV1):
        return SetProperty(PowerSpeedFocusFrequency(
            power=cmd.power,
            speed=cmd.speed,
            focus=cmd.focus,
            frequency=cmd.frequency,
        ))
    if cmd.op == "move":
        return MoveTo(cmd.x, cmd.y)
    return LineTo(cmd.x, cmd.y)


def load_job(path: str | Path) -> LaserJob:
    """Load and validate a vector job from YAML.

    Raises
    ------
    ConfigError
        If validation fails.
    FileNotFoundError
        If *path* does not exist.
    """
    path = Path(path)
    data = _read(path)
    try:
        job_file = JobFileV1(**data)
    except ValidationError as exc:
        raise ConfigError(f"Job validation failed at {path}: {exc}") from exc

    parts = tuple(
        VectorPart(
            commands=tuple(_to_operation(c) for c in part.commands),
            resolution=part.resolution,
        )
        for part in job_file.parts
    )
    logger.info("Loaded job '%s' (%d parts) from %s", job_file.title, len(parts), path)
    return LaserJob(
        title=job_file.title,
        parts=parts,
        name=job_file.name,
        user=job_file.user,
    )
