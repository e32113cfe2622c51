"""
Configuration module.

Loads driver profiles and vector job files from YAML (validated with
pydantic) and saves profiles back atomically.
"""

from plotter_control.configs.loader import (
    ConfigError,
    load_job,
    load_profile,
    save_profile,
)

__all__ = ["ConfigError", "load_job", "load_profile", "save_profile"]
