"""
G-code driver module.

Turns vector jobs into G-code lines for generic G-code devices, Marlin
firmware, and the DexArm pen plotter, and exposes each driver's settings
through a string-keyed property bag.
"""

from plotter_control.gcode.dexarm import DexArmDriver
from plotter_control.gcode.generic import (
    DriverError,
    GenericGcodeDriver,
    IllegalJobError,
    JobContext,
    MotionState,
)
from plotter_control.gcode.marlin import MarlinDriver
from plotter_control.gcode.properties import PropertyTypeError
from plotter_control.gcode.registry import DRIVERS, create_driver, driver_name

__all__ = [
    "DRIVERS",
    "DexArmDriver",
    "DriverError",
    "GenericGcodeDriver",
    "IllegalJobError",
    "JobContext",
    "MarlinDriver",
    "MotionState",
    "PropertyTypeError",
    "create_driver",
    "driver_name",
]
