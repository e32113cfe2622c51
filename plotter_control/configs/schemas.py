"""YAML schemas for driver profiles and job files.

Validated with pydantic so malformed files fail fast with the offending
key in the message.

Units:
    - Job coordinates: pixels at the part resolution (DPI)
    - Power / speed: percent [0, 100]
    - Focus: mm
"""

from typing import Annotated, Dict, List, Literal, Union

from pydantic import BaseModel, Field, field_validator

PropertyValue = Union[bool, int, float, str]


# ============================================================================
# DRIVER PROFILE SCHEMA V1
# ============================================================================

class DriverProfileV1(BaseModel):
    """Saved driver configuration (driver_profile.v1.yaml)."""
    schema_version: str = Field("driver_profile.v1", alias="schema", description="Schema version")
    driver: str = Field(..., description="Registry name of the driver")
    name: str = Field("", description="Profile display name")
    properties: Dict[str, PropertyValue] = Field(
        default_factory=dict, description="Property key -> value"
    )

    model_config = {"populate_by_name": True}

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "driver_profile.v1":
            raise ValueError(f"Expected schema 'driver_profile.v1', got '{v}'")
        return v


# ============================================================================
# JOB SCHEMA V1
# ============================================================================

class MoveCommandV1(BaseModel):
    """Travel or draw command in pixels."""
    op: Literal["move", "line"]
    x: float
    y: float


class PropertyCommandV1(BaseModel):
    """Power / speed / focus change."""
    op: Literal["property"]
    power: float = Field(20.0, ge=0.0, le=100.0, description="Power (%)")
    speed: float = Field(100.0, ge=0.0, le=100.0, description="Speed (% of max)")
    focus: float = Field(0.0, description="Focus offset (mm)")
    frequency: int = Field(5000, ge=0, description="Pulse frequency (Hz)")


CommandV1 = Annotated[
    Union[MoveCommandV1, PropertyCommandV1], Field(discriminator="op")
]


class VectorPartV1(BaseModel):
    """One vector part."""
    resolution: float = Field(..., gt=0.0, description="Dots per inch")
    commands: List[CommandV1] = Field(..., description="Commands in order")


class JobFileV1(BaseModel):
    """Vector job file (job.v1.yaml)."""
    schema_version: str = Field("job.v1", alias="schema", description="Schema version")
    title: str = Field(..., description="Job title")
    name: str = Field("", description="Job name")
    user: str = Field("", description="Job owner")
    parts: List[VectorPartV1] = Field(..., description="Vector parts")

    model_config = {"populate_by_name": True}

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "job.v1":
            raise ValueError(f"Expected schema 'job.v1', got '{v}'")
        return v
