"""Tests for Job IR operations module.

Validates dataclass creation, immutability, validation, and part helpers.
"""

from __future__ import annotations

import dataclasses

import pytest

from plotter_control.job_ir.operations import (
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


# ---------------------------------------------------------------------------
# Dataclass creation and immutability
# ---------------------------------------------------------------------------


class TestOperationDataclasses:
    def test_move_and_line(self) -> None:
        move = MoveTo(x=10.5, y=20.3)
        line = LineTo(x=1.0, y=2.0)
        assert isinstance(move, Operation)
        assert isinstance(line, Operation)
        assert (move.x, move.y) == (10.5, 20.3)

    def test_commands_are_frozen(self) -> None:
        op = MoveTo(x=1.0, y=2.0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            op.x = 5.0  # type: ignore[misc]

    def test_set_property_wraps_prop(self) -> None:
        prop = PowerSpeedFocusFrequency(power=50.0, speed=25.0)
        op = SetProperty(prop)
        assert op.prop.power == 50.0
        assert op.prop.speed == 25.0


class TestPowerSpeedFocusFrequency:
    def test_defaults(self) -> None:
        prop = PowerSpeedFocusFrequency()
        assert prop.power == 20.0
        assert prop.speed == 100.0
        assert prop.focus == 0.0
        assert prop.frequency == 5000

    @pytest.mark.parametrize("power", [-1.0, 100.1])
    def test_power_out_of_range(self, power: float) -> None:
        with pytest.raises(ValueError, match="power"):
            PowerSpeedFocusFrequency(power=power)

    def test_speed_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="speed"):
            PowerSpeedFocusFrequency(speed=150.0)

    def test_negative_frequency(self) -> None:
        with pytest.raises(ValueError, match="frequency"):
            PowerSpeedFocusFrequency(frequency=-5)


# ---------------------------------------------------------------------------
# Parts
# ---------------------------------------------------------------------------


class TestVectorPart:
    def test_rejects_non_positive_resolution(self) -> None:
        with pytest.raises(ValueError, match="resolution"):
            VectorPart(commands=(), resolution=0.0)

    def test_bounding_box_ignores_properties(self) -> None:
        part = VectorPart(
            commands=(
                SetProperty(PowerSpeedFocusFrequency()),
                MoveTo(10.0, 5.0),
                LineTo(30.0, 40.0),
                LineTo(20.0, 2.0),
            ),
            resolution=100.0,
        )
        assert part.bounding_box() == (10.0, 2.0, 30.0, 40.0)

    def test_bounding_box_empty(self) -> None:
        part = VectorPart(commands=(SetProperty(PowerSpeedFocusFrequency()),), resolution=100.0)
        assert part.bounding_box() is None
        assert part.max_extent_mm() == (0.0, 0.0)

    def test_max_extent_mm(self) -> None:
        part = VectorPart(commands=(MoveTo(0.0, 0.0), LineTo(254.0, 127.0)), resolution=254.0)
        mx, my = part.max_extent_mm()
        assert mx == pytest.approx(25.4)
        assert my == pytest.approx(12.7)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestPolylinePart:
    def test_structure(self) -> None:
        part = polyline_part([(0.0, 0.0), (10.0, 0.0), (10.0, 10.0)], resolution=254.0)
        types = [type(c) for c in part.commands]
        assert types == [SetProperty, MoveTo, LineTo, LineTo]

    def test_points_converted_to_pixels(self) -> None:
        part = polyline_part([(0.0, 0.0), (25.4, 12.7)], resolution=100.0)
        last = part.commands[-1]
        assert isinstance(last, LineTo)
        assert last.x == pytest.approx(100.0)
        assert last.y == pytest.approx(50.0)

    def test_custom_property(self) -> None:
        prop = PowerSpeedFocusFrequency(power=80.0, speed=10.0)
        part = polyline_part([(0.0, 0.0), (1.0, 1.0)], resolution=100.0, prop=prop)
        first = part.commands[0]
        assert isinstance(first, SetProperty)
        assert first.prop is prop

    def test_requires_two_points(self) -> None:
        with pytest.raises(ValueError, match="at least 2 points"):
            polyline_part([(0.0, 0.0)], resolution=100.0)


class TestCountCommands:
    def test_counts_across_parts(self) -> None:
        job = LaserJob(
            title="t",
            parts=(
                polyline_part([(0, 0), (1, 1)], 100.0),
                polyline_part([(0, 0), (1, 1), (2, 2)], 100.0),
            ),
        )
        assert count_commands(job) == 3 + 4

    def test_empty_job(self) -> None:
        assert count_commands(LaserJob(title="empty")) == 0
