"""Driver selection by configuration name."""

from __future__ import annotations

from plotter_control.gcode.dexarm import DexArmDriver
from plotter_control.gcode.generic import DriverError, GenericGcodeDriver
from plotter_control.gcode.marlin import MarlinDriver

DRIVERS: dict[str, type[GenericGcodeDriver]] = {
    "generic": GenericGcodeDriver,
    "marlin": MarlinDriver,
    "dexarm": DexArmDriver,
}


def create_driver(name: str) -> GenericGcodeDriver:
    """Instantiate a default-configured driver by registry name.

    Raises
    ------
    DriverError
        If *name* is not registered.
    """
    try:
        cls = DRIVERS[name.lower()]
    except KeyError:
        raise DriverError(
            f"Unknown driver '{name}'. Available: {list(DRIVERS)}"
        ) from None
    return cls()


def driver_name(driver: GenericGcodeDriver) -> str:
    """Registry name for *driver*'s class."""
    for name, cls in DRIVERS.items():
        if type(driver) is cls:
            return name
    raise DriverError(f"Driver class {type(driver).__name__} is not registered")
