"""Tests for unit conversion, atomic file helpers, and logging setup."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from plotter_control.utils import fs
from plotter_control.utils.logging_config import (
    ContextFormatter,
    pop_context,
    push_context,
    setup_logging,
)
from plotter_control.utils.units import mm2px, px2mm


class TestUnits:
    def test_px2mm(self) -> None:
        assert px2mm(100.0, 254.0) == pytest.approx(10.0)
        assert px2mm(5.0, 100.0) == pytest.approx(1.27)

    def test_inverse(self) -> None:
        assert mm2px(px2mm(37.0, 300.0), 300.0) == pytest.approx(37.0)


class TestFs:
    def test_atomic_write_creates_parents(self, tmp_path: Path) -> None:
        path = tmp_path / "a" / "b" / "out.txt"
        fs.atomic_write_text(path, "hello")
        assert path.read_text(encoding="utf-8") == "hello"
        assert not path.with_suffix(".txt.tmp").exists()

    def test_blocked_staging_path_raises_runtime_error(self, tmp_path: Path) -> None:
        path = tmp_path / "out.gcode"
        (tmp_path / "out.gcode.tmp").mkdir()
        with pytest.raises(RuntimeError, match="Atomic write"):
            fs.atomic_write_text(path, "G21\n")
        assert not path.exists()
        assert (tmp_path / "out.gcode.tmp").is_dir()

    def test_yaml_keeps_key_order(self, tmp_path: Path) -> None:
        path = tmp_path / "p.yaml"
        fs.atomic_yaml_dump({"z": 1, "a": {"k": True}}, path)
        assert list(fs.load_yaml(path)) == ["z", "a"]

    def test_load_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            fs.load_yaml(tmp_path / "missing.yaml")


class TestLogging:
    def _record(self, msg: str) -> logging.LogRecord:
        return logging.LogRecord("plotter", logging.INFO, __file__, 1, msg, None, None)

    def test_json_includes_context(self) -> None:
        push_context(driver="dexarm")
        try:
            line = ContextFormatter("json", use_color=False).format(self._record("hi"))
        finally:
            pop_context(["driver"])
        data = json.loads(line)
        assert data["msg"] == "hi"
        assert data["lvl"] == "INFO"
        assert data["driver"] == "dexarm"

    def test_human_format(self) -> None:
        push_context(job="demo")
        try:
            line = ContextFormatter("human", use_color=False).format(self._record("go"))
        finally:
            pop_context(["job"])
        assert "| INFO     |" in line
        assert "job=demo" in line
        assert line.endswith("go")

    def test_setup_is_idempotent(self, tmp_path: Path) -> None:
        root = logging.getLogger()
        saved = list(root.handlers)
        try:
            first = setup_logging("DEBUG", str(tmp_path / "log" / "run.log"), to_stderr=False)
            handlers = setup_logging("DEBUG", str(tmp_path / "log" / "run.log"), to_stderr=False)
            assert len(handlers) == 1
            assert first[0] not in root.handlers
            assert handlers[0] in root.handlers
            logging.getLogger("plotter_control.test").info("written")
            handlers[0].flush()
            assert "written" in (tmp_path / "log" / "run.log").read_text(encoding="utf-8")
        finally:
            for h in list(root.handlers):
                if h not in saved:
                    root.removeHandler(h)
                    h.close()
            pop_context()
