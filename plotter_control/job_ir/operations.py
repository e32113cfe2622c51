"""Job IR operations -- the vocabulary between vector data and G-code.

A job is an ordered list of *vector parts*.  Each part carries its own
resolution (DPI) and an ordered command list.  Commands are immutable,
slotted dataclasses with **pixel** coordinates at the part resolution;
the drivers convert to millimetres at emission time.

Command vocabulary
------------------
``MoveTo``
    Travel to a point with the tool off / pen up.
``LineTo``
    Draw a straight segment from the current position.
``SetProperty``
    Change power / speed / focus for subsequent segments.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass, field
from typing import Iterable, Union

from plotter_control.utils.units import mm2px, px2mm

# ---------------------------------------------------------------------------
# Laser / pen property
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PowerSpeedFocusFrequency:
    """Drawing parameters applied to the following segments.

    Parameters
    ----------
    power : float
        Power in percent [0, 100].  Scaled by the driver's spindle max.
    speed : float
        Speed in percent [0, 100] of the driver's max speed.
    focus : float
        Focus (Z) offset in mm.
    frequency : int
        Pulse frequency in Hz.  Carried for completeness; the G-code
        drivers do not emit it.
    """

    power: float = 20.0
    speed: float = 100.0
    focus: float = 0.0
    frequency: int = 5000

    def __post_init__(self) -> None:
        for name, val in (("power", self.power), ("speed", self.speed)):
            if not 0.0 <= val <= 100.0:
                raise ValueError(f"{name} must be in [0, 100], got {val}")
        if self.frequency < 0:
            raise ValueError(
                f"frequency must be >= 0, got {self.frequency}"
            )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Operation(ABC):
    """Base class for all vector commands."""

    pass


@dataclass(frozen=True, slots=True)
class MoveTo(Operation):
    """Travel move -- pen up / laser off.

    Parameters
    ----------
    x, y : float
        Target position in pixels at the part resolution.
    """

    x: float
    y: float


@dataclass(frozen=True, slots=True)
class LineTo(Operation):
    """Drawing move from the current position.

    Parameters
    ----------
    x, y : float
        End-point in pixels at the part resolution.
    """

    x: float
    y: float


@dataclass(frozen=True, slots=True)
class SetProperty(Operation):
    """Switch drawing parameters for the following segments."""

    prop: PowerSpeedFocusFrequency


Command = Union[MoveTo, LineTo, SetProperty]


# ---------------------------------------------------------------------------
# Parts and jobs
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class VectorPart:
    """An ordered command list at one resolution.

    Parameters
    ----------
    commands : tuple[Operation, ...]
        Commands in emission order.
    resolution : float
        Dots per inch used for every coordinate of this part.
    """

    commands: tuple[Operation, ...]
    resolution: float

    def __post_init__(self) -> None:
        if self.resolution <= 0:
            raise ValueError(
                f"resolution must be > 0, got {self.resolution}"
            )

    def bounding_box(self) -> tuple[float, float, float, float] | None:
        """Return ``(min_x, min_y, max_x, max_y)`` in pixels.

        ``None`` when the part has no positional commands.
        """
        xs = [c.x for c in self.commands if isinstance(c, (MoveTo, LineTo))]
        ys = [c.y for c in self.commands if isinstance(c, (MoveTo, LineTo))]
        if not xs:
            return None
        return min(xs), min(ys), max(xs), max(ys)

    def max_extent_mm(self) -> tuple[float, float]:
        """Largest X and Y coordinate reached, in mm."""
        bbox = self.bounding_box()
        if bbox is None:
            return 0.0, 0.0
        return (
            px2mm(bbox[2], self.resolution),
            px2mm(bbox[3], self.resolution),
        )


@dataclass(frozen=True)
class LaserJob:
    """A complete job: metadata plus vector parts.

    Parameters
    ----------
    title : str
        Display title.
    parts : tuple[VectorPart, ...]
        Parts in execution order.
    name, user : str
        Job / owner identification, informational only.
    """

    title: str
    parts: tuple[VectorPart, ...] = field(default_factory=tuple)
    name: str = ""
    user: str = ""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def polyline_part(
    points_mm: Iterable[tuple[float, float]],
    resolution: float,
    prop: PowerSpeedFocusFrequency | None = None,
) -> VectorPart:
    """Build a part drawing one polyline given in millimetres.

    Parameters
    ----------
    points_mm : Iterable[tuple[float, float]]
        Ordered vertices in mm.  Must contain >= 2 points.
    resolution : float
        Part resolution (DPI) the points are converted to.
    prop : PowerSpeedFocusFrequency | None
        Drawing parameters; defaults are used when ``None``.

    Returns
    -------
    VectorPart
        ``[SetProperty, MoveTo, LineTo, ...]``
    """
    pts = [(mm2px(x, resolution), mm2px(y, resolution)) for x, y in points_mm]
    if len(pts) < 2:
        raise ValueError("Polyline requires at least 2 points")

    commands: list[Operation] = [
        SetProperty(prop if prop is not None else PowerSpeedFocusFrequency()),
        MoveTo(*pts[0]),
    ]
    commands.extend(LineTo(x, y) for x, y in pts[1:])
    return VectorPart(commands=tuple(commands), resolution=resolution)


def count_commands(job: LaserJob) -> int:
    """Total number of commands across all parts."""
    return sum(len(part.commands) for part in job.parts)
