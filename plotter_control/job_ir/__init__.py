"""
Job Intermediate Representation module.

Defines vector jobs as immutable dataclasses. This vocabulary is the
contract between the host application and the G-code drivers.

Coordinates are pixels at each part's resolution (DPI).
"""

from plotter_control.job_ir.operations import (
    Command,
    LaserJob,
    LineTo,
    MoveTo,
    Operation,
    PowerSpeedFocusFrequency,
    SetProperty,
    VectorPart,
    count_commands,
    polyline_part,
)

__all__ = [
    "Command",
    "LaserJob",
    "LineTo",
    "MoveTo",
    "Operation",
    "PowerSpeedFocusFrequency",
    "SetProperty",
    "VectorPart",
    "count_commands",
    "polyline_part",
]
