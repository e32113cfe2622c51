"""File helpers for exported G-code and driver profiles.

A plotter host may pick up an export as soon as it appears, so every
write goes to a sibling ``.tmp`` file first, is fsync'ed, and is then
renamed over the target.  Readers see either the old file or the
complete new one.

Usage:
    from plotter_control.utils import fs
    fs.atomic_write_text("out/job.gcode", program)
    fs.atomic_yaml_dump(profile_dict, "profiles/dexarm.yaml")
    data = fs.load_yaml("profiles/dexarm.yaml")
"""

import os
from pathlib import Path
from typing import Any, Union

import yaml

PathLike = Union[str, Path]


def ensure_dir(p: PathLike) -> Path:
    """Create *p* (and parents) if missing; return it as a Path."""
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def atomic_write_bytes(path: PathLike, data: bytes, tmp_suffix: str = ".tmp") -> None:
    """Replace *path* with *data* in one rename.

    Parameters
    ----------
    path : str | Path
        Destination; missing parent directories are created.
    data : bytes
        Full file content.
    tmp_suffix : str
        Suffix of the staging file, created next to *path* so the
        rename never crosses filesystems.

    Raises
    ------
    RuntimeError
        If the write or rename fails.  The staging file is removed.
    """
    target = Path(path)
    ensure_dir(target.parent)
    staging = target.with_name(target.name + tmp_suffix)

    try:
        with open(staging, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(staging, target)
    except OSError as e:
        if staging.is_file():
            staging.unlink()
        raise RuntimeError(f"Atomic write to {target} failed: {e}") from e


def atomic_write_text(path: PathLike, text: str, encoding: str = "utf-8") -> None:
    """Text variant of :func:`atomic_write_bytes`."""
    atomic_write_bytes(path, text.encode(encoding))


def atomic_yaml_dump(obj: Any, path: PathLike) -> None:
    """Write *obj* as block-style YAML, preserving mapping order.

    Property keys contain spaces and parentheses; ``safe_dump`` quotes
    them only where YAML requires it.
    """
    text = yaml.safe_dump(obj, default_flow_style=False, sort_keys=False, allow_unicode=True)
    atomic_write_text(path, text)


def load_yaml(path: PathLike) -> Any:
    """Parse a YAML file with ``safe_load``.

    Returns ``None`` for an empty file; callers decide whether that is
    an error.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    yaml.YAMLError
        If the file is not valid YAML (message includes the path).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")
    with open(path, "r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in {path}: {e}") from e
