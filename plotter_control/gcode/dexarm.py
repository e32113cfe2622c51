"""Rotrics DexArm driver -- the arm used as a pen plotter.

The DexArm runs Marlin, but the tool is a pen on the Z axis rather
than a laser:

    - ``G0 Z0`` lifts the pen, ``G0 Z-<drop>`` puts it on the paper.
    - Every travel move lifts the pen first; every drawn segment drops
      it first.  With "Lift pen after every line" the pen also comes up
      after each segment (slower, but safe on uneven paper).
    - Focus changes are ignored: Z belongs to the pen.
    - No homing and no spindle stop in the job templates; the job ends
      with the pen lifted before returning to the origin.

Axis flips stay available through ``get_property`` / ``set_property``
but are not offered to the host, since the arm's frame is fixed.
"""

from __future__ import annotations

from plotter_control.gcode.generic import (
    SETTING_FLIP_X,
    SETTING_FLIP_Y,
    JobContext,
)
from plotter_control.gcode.marlin import MarlinDriver
from plotter_control.gcode.properties import PropertySpec
from plotter_control.gcode.settings import (
    GcodeSettings,
    PenPlotterSettings,
    prepend_command,
    remove_fragment,
)

SETTING_PEN_DROP_DISTANCE = "Pen drop distance (mm)"
SETTING_LIFT_AFTER_LINE = "Lift pen after every line"

PEN_LIFT = "G0 Z0"


class DexArmDriver(MarlinDriver):
    """Pen-plotter driver for the DexArm."""

    model_name = "DexArm Driver"
    settings_cls = PenPlotterSettings
    PROPERTIES = MarlinDriver.PROPERTIES.extend(
        PropertySpec(SETTING_PEN_DROP_DISTANCE, "pen_drop_mm", float),
        PropertySpec(SETTING_LIFT_AFTER_LINE, "lift_after_line", bool),
    )
    HIDDEN_KEYS = MarlinDriver.HIDDEN_KEYS + (SETTING_FLIP_X, SETTING_FLIP_Y)

    settings: PenPlotterSettings

    @classmethod
    def default_settings(cls) -> GcodeSettings:
        s = super().default_settings()
        s.pre_job_gcode = remove_fragment(s.pre_job_gcode, ",G28 XY,M5")
        s.post_job_gcode = prepend_command(
            remove_fragment(s.post_job_gcode, ",M5,G28 XY"), PEN_LIFT,
        )
        return s

    @property
    def pen_drop_distance(self) -> float:
        return self.settings.pen_drop_mm

    @property
    def lift_after_line(self) -> bool:
        return self.settings.lift_after_line

    def move(self, ctx: JobContext, x: float, y: float, resolution: float) -> None:
        mx, my = self.to_machine(x, y, resolution)
        ctx.motion.current_speed = self.settings.travel_speed
        self.send_line(ctx, PEN_LIFT)
        self._send_rapid(ctx, mx, my)

    def line(self, ctx: JobContext, x: float, y: float, resolution: float) -> None:
        mx, my = self.to_machine(x, y, resolution)
        append = self._pending_fields(ctx)
        self.send_line(ctx, "G0 Z-%f", self.settings.pen_drop_mm)
        self.send_line(ctx, "G1 X%f Y%f%s", mx, my, append)
        if self.settings.lift_after_line:
            self.send_line(ctx, PEN_LIFT)

    def set_focus(self, ctx: JobContext, focus: float, resolution: float) -> None:
        pass
