"""Generic G-code driver -- vector jobs to G-code lines.

The driver is split into three concerns:

Configuration
    A settings dataclass (:class:`GcodeSettings` or a subclass) that is
    edited through the string-keyed property bag.  Variants declare
    which keys they add or hide; values are plain scalars so copies
    never share mutable state.

Motion state
    ``current_*`` / ``next_*`` power and speed tracking lives in a
    per-job :class:`JobContext`, never on the driver.  Redundant ``S``
    and ``F`` fields are omitted by comparing the two.

Emission
    ``move`` / ``line`` turn one command into one or more lines written
    through the job's transport.  Lines are formatted with ``%``
    formatting, which always uses ``.`` as decimal separator.

Feed rate convention:
    Speeds in settings are **mm/min**.  A segment's speed is a percentage
    of ``max_speed``::

        F_value = int(max_speed * speed_percent / 100)
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterator

from plotter_control.gcode.properties import PropertySpec, PropertyTable
from plotter_control.gcode.settings import (
    LINE_ENDS,
    GcodeSettings,
    split_template,
)
from plotter_control.hardware.transport import StreamTransport, Transport
from plotter_control.job_ir.operations import (
    LaserJob,
    LineTo,
    MoveTo,
    Operation,
    PowerSpeedFocusFrequency,
    SetProperty,
)
from plotter_control.utils.units import px2mm

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class DriverError(Exception):
    """Base exception for driver failures."""

    pass


class IllegalJobError(DriverError):
    """Raised when a job cannot be executed on the configured machine."""

    pass


# ---------------------------------------------------------------------------
# Property keys
# ---------------------------------------------------------------------------

SETTING_BED_WIDTH = "Bed width (mm)"
SETTING_BED_HEIGHT = "Bed height (mm)"
SETTING_FLIP_X = "Flip X axis"
SETTING_FLIP_Y = "Flip Y axis"
SETTING_TRAVEL_SPEED = "Travel speed (mm/min)"
SETTING_MAX_SPEED = "Max speed (mm/min)"
SETTING_PRE_JOB_GCODE = "Pre-job G-code (comma separated)"
SETTING_POST_JOB_GCODE = "Post-job G-code (comma separated)"
SETTING_RESOLUTIONS = "Supported DPI (comma separated)"
SETTING_BLANK_LASER_DURING_RAPIDS = "Force laser off during G0 moves"
SETTING_SPINDLE_MAX = "S value for 100% power"
SETTING_LINEEND = "Line end (CR, LF, CRLF)"
SETTING_HOST = "IP/Hostname"
SETTING_IDENTIFICATION_STRING = "Identification line"
SETTING_WAIT_FOR_OK = "Wait for OK after each line"
SETTING_RESPONSE_TIMEOUT = "Response timeout (s)"
SETTING_EXPORT_PATH = "Path to save exported G-code"

GENERIC_PROPERTIES = PropertyTable([
    PropertySpec(SETTING_BED_WIDTH, "bed_width", float),
    PropertySpec(SETTING_BED_HEIGHT, "bed_height", float),
    PropertySpec(SETTING_FLIP_X, "flip_x", bool),
    PropertySpec(SETTING_FLIP_Y, "flip_y", bool),
    PropertySpec(SETTING_TRAVEL_SPEED, "travel_speed", float),
    PropertySpec(SETTING_MAX_SPEED, "max_speed", float),
    PropertySpec(SETTING_PRE_JOB_GCODE, "pre_job_gcode", str),
    PropertySpec(SETTING_POST_JOB_GCODE, "post_job_gcode", str),
    PropertySpec(SETTING_RESOLUTIONS, "resolutions", str),
    PropertySpec(
        SETTING_BLANK_LASER_DURING_RAPIDS, "blank_laser_during_rapids", bool,
    ),
    PropertySpec(SETTING_SPINDLE_MAX, "spindle_max", float),
    PropertySpec(
        SETTING_LINEEND, "line_end", str, choices=tuple(LINE_ENDS),
    ),
    PropertySpec(SETTING_HOST, "host", str),
    PropertySpec(SETTING_IDENTIFICATION_STRING, "identification_line", str),
    PropertySpec(SETTING_WAIT_FOR_OK, "wait_for_ok", bool),
    PropertySpec(SETTING_RESPONSE_TIMEOUT, "response_timeout_s", float),
    PropertySpec(SETTING_EXPORT_PATH, "export_path", str),
])


# ---------------------------------------------------------------------------
# Per-job state
# ---------------------------------------------------------------------------


@dataclass
class MotionState:
    """Last emitted / next requested power and speed.

    ``-1`` marks "unknown" so the first segment always emits its fields.
    Speeds are in percent of ``max_speed`` except right after a travel
    move, where ``current_speed`` holds the travel speed in mm/min.
    """

    current_speed: float = -1.0
    current_power: float = -1.0
    next_speed: float = 100.0
    next_power: float = 0.0
    current_focus: float = -1.0


@dataclass
class JobContext:
    """Everything one job execution mutates."""

    transport: Transport
    motion: MotionState = field(default_factory=MotionState)
    lines_sent: int = 0


# ---------------------------------------------------------------------------
# Emitter interface
# ---------------------------------------------------------------------------


class MotionCommandEmitter(ABC):
    """Capability interface shared by all driver variants."""

    model_name: str = ""

    @abstractmethod
    def move(self, ctx: JobContext, x: float, y: float, resolution: float) -> None:
        """Emit a travel move to pixel ``(x, y)``."""

    @abstractmethod
    def line(self, ctx: JobContext, x: float, y: float, resolution: float) -> None:
        """Emit a drawing move to pixel ``(x, y)``."""

    @abstractmethod
    def list_property_keys(self) -> list[str]:
        """Keys the host should offer for editing."""

    @abstractmethod
    def get_property(self, key: str) -> Any:
        """Return the value for *key* or ``None`` when unknown."""

    @abstractmethod
    def set_property(self, key: str, value: Any) -> None:
        """Set *key*; unknown keys are ignored."""

    @abstractmethod
    def clone(self) -> MotionCommandEmitter:
        """Return an independent, configuration-equal copy."""

    def get_model_name(self) -> str:
        return self.model_name


# ---------------------------------------------------------------------------
# Generic driver
# ---------------------------------------------------------------------------


class GenericGcodeDriver(MotionCommandEmitter):
    """Driver for G-code devices (GRBL / Smoothie style laser cutters).

    Parameters
    ----------
    settings : GcodeSettings | None
        Configuration struct.  ``None`` uses :meth:`default_settings`.

    Notes
    -----
    Variants customise behaviour through class attributes:

    ``settings_cls``
        Dataclass holding the variant's configuration.
    ``PROPERTIES``
        Full property table, inherited keys first.
    ``HIDDEN_KEYS``
        Keys that stay readable/writable but are not listed.
    """

    model_name = "Generic G-Code Driver"
    settings_cls: type[GcodeSettings] = GcodeSettings
    PROPERTIES: PropertyTable = GENERIC_PROPERTIES
    HIDDEN_KEYS: tuple[str, ...] = ()

    def __init__(self, settings: GcodeSettings | None = None) -> None:
        self.settings = settings if settings is not None else self.default_settings()

    @classmethod
    def default_settings(cls) -> GcodeSettings:
        """Factory defaults for this variant."""
        return cls.settings_cls()

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    def bed_width(self) -> float:
        return self.settings.bed_width

    @property
    def bed_height(self) -> float:
        return self.settings.bed_height

    @property
    def line_terminator(self) -> str:
        """Characters appended to each line on the wire."""
        return LINE_ENDS[self.settings.line_end]

    def get_resolutions(self) -> list[float]:
        """Supported resolutions in DPI, parsed from the settings string."""
        result = []
        for token in self.settings.resolutions.split(","):
            token = token.strip()
            if not token:
                continue
            try:
                result.append(float(token))
            except ValueError as exc:
                raise DriverError(
                    f"Invalid resolution {token!r} in "
                    f"{self.settings.resolutions!r}"
                ) from exc
        return result

    # ------------------------------------------------------------------
    # Property bag
    # ------------------------------------------------------------------

    def list_property_keys(self) -> list[str]:
        return [k for k in self.PROPERTIES.keys() if k not in self.HIDDEN_KEYS]

    def all_property_keys(self) -> list[str]:
        """Every key, including hidden ones (used for copies)."""
        return self.PROPERTIES.keys()

    def get_property(self, key: str) -> Any:
        spec = self.PROPERTIES.get(key)
        if spec is None:
            return None
        return getattr(self.settings, spec.attr)

    def set_property(self, key: str, value: Any) -> None:
        spec = self.PROPERTIES.get(key)
        if spec is None:
            logger.debug("Ignoring unknown property %r for %s", key, self.model_name)
            return
        setattr(self.settings, spec.attr, spec.check(value))

    def copy_properties(self, other: GenericGcodeDriver) -> None:
        """Copy every property *self* knows from *other*."""
        for key in self.all_property_keys():
            value = other.get_property(key)
            if value is not None:
                self.set_property(key, value)

    def clone(self) -> GenericGcodeDriver:
        copy = type(self)()
        copy.copy_properties(self)
        return copy

    # ------------------------------------------------------------------
    # Coordinate transform
    # ------------------------------------------------------------------

    def to_machine(self, x: float, y: float, resolution: float) -> tuple[float, float]:
        """Convert pixel coordinates to machine mm, honouring axis flips."""
        mx = px2mm(x, resolution)
        my = px2mm(y, resolution)
        if self.settings.flip_x:
            mx = self.settings.bed_width - mx
        if self.settings.flip_y:
            my = self.settings.bed_height - my
        return mx, my

    # ------------------------------------------------------------------
    # Line output
    # ------------------------------------------------------------------

    def send_line(self, ctx: JobContext, fmt: str, *args: Any) -> None:
        """Format one command and write it through the job transport."""
        text = fmt % args if args else fmt
        ctx.transport.write_line(text)
        ctx.lines_sent += 1

    # ------------------------------------------------------------------
    # Per-command emission
    # ------------------------------------------------------------------

    def move(self, ctx: JobContext, x: float, y: float, resolution: float) -> None:
        mx, my = self.to_machine(x, y, resolution)
        ctx.motion.current_speed = self.settings.travel_speed
        self._send_rapid(ctx, mx, my)

    def _send_rapid(self, ctx: JobContext, mx: float, my: float) -> None:
        travel = int(self.settings.travel_speed)
        if self.settings.blank_laser_during_rapids:
            ctx.motion.current_power = 0.0
            self.send_line(ctx, "G0 X%f Y%f F%d S0", mx, my, travel)
        else:
            self.send_line(ctx, "G0 X%f Y%f F%d", mx, my, travel)

    def line(self, ctx: JobContext, x: float, y: float, resolution: float) -> None:
        mx, my = self.to_machine(x, y, resolution)
        self.send_line(ctx, "G1 X%f Y%f%s", mx, my, self._pending_fields(ctx))

    def _pending_fields(self, ctx: JobContext) -> str:
        """Build the ``S`` / ``F`` suffix for changed power / speed."""
        state = ctx.motion
        append = ""
        if state.next_power != state.current_power:
            append += " S%f" % state.next_power
            state.current_power = state.next_power
        if state.next_speed != state.current_speed:
            append += " F%d" % int(self.settings.max_speed * state.next_speed / 100.0)
            state.current_speed = state.next_speed
        return append

    def apply_property(
        self,
        ctx: JobContext,
        prop: PowerSpeedFocusFrequency,
        resolution: float,
    ) -> None:
        """Record power / speed for the next segment and apply focus."""
        ctx.motion.next_power = prop.power / 100.0 * self.settings.spindle_max
        ctx.motion.next_speed = prop.speed
        self.set_focus(ctx, prop.focus, resolution)

    def set_focus(self, ctx: JobContext, focus: float, resolution: float) -> None:
        if ctx.motion.current_focus != focus:
            self.send_line(ctx, "G0 Z%f", focus)
            ctx.motion.current_focus = focus

    # ------------------------------------------------------------------
    # Job execution
    # ------------------------------------------------------------------

    def check_job(self, job: LaserJob) -> None:
        """Reject jobs that do not fit on the bed.

        Raises
        ------
        IllegalJobError
            If a part extends beyond the bed in X or Y.
        """
        for idx, part in enumerate(job.parts):
            max_x, max_y = part.max_extent_mm()
            if max_x > self.settings.bed_width:
                raise IllegalJobError(
                    f"Part {idx}: X={max_x:.3f} mm exceeds bed width "
                    f"{self.settings.bed_width:.1f} mm"
                )
            if max_y > self.settings.bed_height:
                raise IllegalJobError(
                    f"Part {idx}: Y={max_y:.3f} mm exceeds bed height "
                    f"{self.settings.bed_height:.1f} mm"
                )

    def start_job(self, transport: Transport) -> JobContext:
        """Create fresh per-job state bound to *transport*."""
        return JobContext(transport=transport)

    def write_initialization(self, ctx: JobContext) -> None:
        for cmd in split_template(self.settings.pre_job_gcode):
            self.send_line(ctx, cmd)

    def write_shutdown(self, ctx: JobContext) -> None:
        for cmd in split_template(self.settings.post_job_gcode):
            self.send_line(ctx, cmd)

    def write_command(self, ctx: JobContext, cmd: Operation, resolution: float) -> None:
        if isinstance(cmd, MoveTo):
            self.move(ctx, cmd.x, cmd.y, resolution)
        elif isinstance(cmd, LineTo):
            self.line(ctx, cmd.x, cmd.y, resolution)
        elif isinstance(cmd, SetProperty):
            self.apply_property(ctx, cmd.prop, resolution)
        else:
            logger.warning("Unsupported command: %s", type(cmd).__name__)

    def iter_job(self, ctx: JobContext, job: LaserJob) -> Iterator[int]:
        """Emit *job*, yielding the running command count after each command.

        Initialization lines are sent before the first yield; shutdown
        lines after the last command, when the generator is exhausted.
        """
        self.check_job(job)
        logger.info(
            "Starting job '%s' on %s (%d parts)",
            job.title, self.model_name, len(job.parts),
        )
        self.write_initialization(ctx)
        done = 0
        for part in job.parts:
            for cmd in part.commands:
                self.write_command(ctx, cmd, part.resolution)
                done += 1
                yield done
        self.write_shutdown(ctx)
        logger.info("Job '%s' complete (%d lines)", job.title, ctx.lines_sent)

    def write_job(self, job: LaserJob, transport: Transport) -> JobContext:
        """Emit a complete job through an already opened *transport*."""
        ctx = self.start_job(transport)
        for _ in self.iter_job(ctx, job):
            pass
        return ctx

    def generate(self, job: LaserJob) -> str:
        """Return the complete program for *job* as text."""
        buf = io.StringIO()
        self.write_job(job, StreamTransport(buf, line_end=self.line_terminator))
        return buf.getvalue()
