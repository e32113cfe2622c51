"""
Plotter Control Package.

G-code drivers for pen plotters and laser-style G-code machines. Vector
jobs are converted to command lines by a configurable driver and sent
through a transport (file, stream, or TCP).

Subpackages:
    job_ir: Vector job model (parts, move/line/property commands)
    gcode: Drivers (generic, Marlin, DexArm) and their property bags
    hardware: Transports and the job executor
    configs: Driver profile and job file loading
    utils: Units, atomic file I/O, logging setup
"""

__version__ = "0.3.0"

__all__ = ["job_ir", "gcode", "hardware", "configs", "utils"]
