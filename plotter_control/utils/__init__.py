"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Unit conversion (units)
    - Atomic I/O and YAML (fs)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (gcode, hardware, configs).
"""

from . import fs
from . import logging_config
from . import units
