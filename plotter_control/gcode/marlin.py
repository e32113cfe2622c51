"""Marlin firmware driver.

Marlin greets with ``start`` after a reset, acknowledges every line
with ``ok`` and expects CRLF line ends.  Jobs home X/Y before starting
and switch the spindle/laser off on both ends.
"""

from __future__ import annotations

from plotter_control.gcode.generic import (
    SETTING_IDENTIFICATION_STRING,
    SETTING_LINEEND,
    SETTING_SPINDLE_MAX,
    SETTING_WAIT_FOR_OK,
    GenericGcodeDriver,
)
from plotter_control.gcode.settings import GcodeSettings


class MarlinDriver(GenericGcodeDriver):
    """G-code driver tuned for Marlin-based machines."""

    model_name = "Marlin"
    HIDDEN_KEYS = GenericGcodeDriver.HIDDEN_KEYS + (
        SETTING_IDENTIFICATION_STRING,
        SETTING_WAIT_FOR_OK,
        SETTING_LINEEND,
        SETTING_SPINDLE_MAX,
    )

    @classmethod
    def default_settings(cls) -> GcodeSettings:
        s = super().default_settings()
        s.identification_line = "start"
        s.wait_for_ok = True
        s.line_end = "CRLF"
        s.pre_job_gcode = s.pre_job_gcode + ",G28 XY,M5"
        s.post_job_gcode = s.post_job_gcode + ",M5,G28 XY"
        return s
