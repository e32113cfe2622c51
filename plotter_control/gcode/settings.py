"""Driver configuration structs and job template helpers.

Every driver variant owns one settings dataclass.  Variants share the
generic fields and extend the struct with their own, so the property
table can address all of them by attribute name.

Pre-job and post-job G-code templates are comma-separated command
lists, e.g. ``"G21,G90,G28 XY,M5"``.
"""

from __future__ import annotations

from dataclasses import dataclass

LINE_ENDS = {"LF": "\n", "CR": "\r", "CRLF": "\r\n"}


@dataclass
class GcodeSettings:
    """Settings shared by every G-code driver.

    Linear dimensions are in **mm**, speeds in **mm/min**.
    """

    bed_width: float = 250.0
    bed_height: float = 280.0
    flip_x: bool = False
    flip_y: bool = False
    travel_speed: float = 3600.0
    max_speed: float = 1200.0
    pre_job_gcode: str = "G21,G90"
    post_job_gcode: str = "G0 X0 Y0"
    resolutions: str = "100,200,300,500,600,1000"
    blank_laser_during_rapids: bool = False
    spindle_max: float = 1.0
    line_end: str = "LF"
    host: str = ""
    identification_line: str = ""
    wait_for_ok: bool = False
    response_timeout_s: float = 5.0
    export_path: str = ""


@dataclass
class PenPlotterSettings(GcodeSettings):
    """Settings for pen plotters that drop the pen on Z."""

    pen_drop_mm: float = 10.0
    lift_after_line: bool = False


# ---------------------------------------------------------------------------
# Template helpers
# ---------------------------------------------------------------------------


def remove_fragment(template: str, fragment: str) -> str:
    """Remove every exact occurrence of *fragment*; no-op when absent."""
    return template.replace(fragment, "")


def prepend_command(template: str, command: str) -> str:
    """Put *command* in front of a comma-separated template."""
    if not template:
        return command
    return f"{command},{template}"


def split_template(template: str) -> list[str]:
    """Split a comma-separated template into non-empty commands."""
    return [cmd.strip() for cmd in template.split(",") if cmd.strip()]
