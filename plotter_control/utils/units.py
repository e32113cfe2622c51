"""Unit conversions between job pixels and machine millimetres.

Job coordinates are pixels at a part-specific resolution (dots per inch).
The G-code drivers work in millimetres::

    mm = px * 25.4 / dpi
"""

from __future__ import annotations

MM_PER_INCH = 25.4


def px2mm(px: float, dpi: float) -> float:
    """Convert a pixel coordinate at *dpi* to millimetres."""
    return px * MM_PER_INCH / dpi


def mm2px(mm: float, dpi: float) -> float:
    """Convert millimetres to a pixel coordinate at *dpi*."""
    return mm * dpi / MM_PER_INCH
