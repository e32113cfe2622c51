#!/usr/bin/env python3
"""
Run Job Script.

Convert a vector job to G-code with a configured driver and send it to
a file, stdout, or a networked controller.

Usage:
    plotter-run-job --job drawing.yaml --output drawing.gcode
    plotter-run-job --profile my_dexarm.yaml --job drawing.yaml --host 192.168.1.50
    plotter-run-job --driver dexarm --set "Lift pen after every line=true" --job drawing.yaml
    plotter-run-job --driver marlin --list-properties
    plotter-run-job --driver dexarm --set "Pen drop distance (mm)=12" --save-profile mine.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

import yaml

from plotter_control.configs.loader import (
    ConfigError,
    apply_properties,
    load_job,
    load_profile,
    save_profile,
)
from plotter_control.gcode.generic import DriverError, GenericGcodeDriver
from plotter_control.gcode.registry import DRIVERS, create_driver
from plotter_control.hardware.job_executor import ExecutorProgress, JobExecutor
from plotter_control.hardware.transport import TransportError, create_transport
from plotter_control.utils.logging_config import push_context, setup_logging

logger = logging.getLogger(__name__)


def parse_assignment(text: str) -> tuple[str, str]:
    """Split ``KEY=VALUE``; VALUE is kept as raw text."""
    key, sep, raw = text.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {text!r}")
    return key.strip(), raw


def parse_value(driver: GenericGcodeDriver, key: str, raw: str) -> Any:
    """Convert a raw ``--set`` value for *key*.

    String-typed keys take the text verbatim, so hostnames such as
    ``on`` or ``no`` stay strings.  Other keys are parsed as YAML
    scalars (``true``, ``12.5``).
    """
    spec = driver.PROPERTIES.get(key)
    if (spec is not None and spec.kind is str) or not raw.strip():
        return raw
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate and send G-code for a vector job",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Available drivers: {', '.join(DRIVERS)}",
    )

    # Driver source
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--profile",
        "-p",
        type=str,
        help="Driver profile YAML (default: shipped DexArm profile)",
    )
    source.add_argument(
        "--driver",
        "-d",
        type=str,
        choices=list(DRIVERS),
        help="Start from a default-configured driver instead of a profile",
    )
    parser.add_argument(
        "--set",
        "-s",
        dest="assignments",
        action="append",
        type=parse_assignment,
        default=[],
        metavar="KEY=VALUE",
        help="Override a driver property (repeatable); text keys take VALUE verbatim",
    )

    # Job and destination
    parser.add_argument("--job", "-j", type=str, help="Job file (YAML)")
    dest = parser.add_mutually_exclusive_group()
    dest.add_argument("--output", "-o", type=str, help="Write G-code to this file")
    dest.add_argument("--host", type=str, help="Send to host[:port] over TCP")

    # Profile utilities
    parser.add_argument(
        "--list-properties",
        action="store_true",
        help="Print the driver's property keys and values, then exit",
    )
    parser.add_argument(
        "--save-profile",
        type=str,
        help="Save the resulting driver configuration to this file",
    )

    # Logging
    parser.add_argument("--log-level", type=str, default="INFO")
    parser.add_argument("--log-file", type=str)
    return parser


def _build_driver(args: argparse.Namespace) -> GenericGcodeDriver:
    if args.driver:
        driver = create_driver(args.driver)
    else:
        driver = load_profile(args.profile)
    apply_properties(
        driver, {key: parse_value(driver, key, raw) for key, raw in args.assignments},
    )
    if args.host:
        driver.set_property("IP/Hostname", args.host)
    return driver


def _print_progress(progress: ExecutorProgress) -> None:
    logger.debug(
        "%s: %d/%d commands",
        progress.state.name,
        progress.completed_commands,
        progress.total_commands,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.log_file, context={"app": "run_job"})

    try:
        driver = _build_driver(args)
    except (ConfigError, DriverError, FileNotFoundError) as e:
        logger.error("Error loading driver: %s", e)
        return 1
    push_context(driver=driver.get_model_name())

    if args.list_properties:
        for key in driver.list_property_keys():
            print(f"{key}: {driver.get_property(key)!r}")
        return 0

    if args.save_profile:
        save_profile(driver, args.save_profile)

    if not args.job:
        if args.save_profile:
            return 0
        parser.error("--job is required unless --list-properties or --save-profile is given")

    try:
        job = load_job(args.job)
    except (ConfigError, FileNotFoundError) as e:
        logger.error("Error loading job: %s", e)
        return 1

    executor = JobExecutor(driver, create_transport(driver, args.output))
    executor.set_progress_callback(_print_progress)
    try:
        executor.run(job)
    except (DriverError, TransportError, TimeoutError, OSError) as e:
        logger.error("Job failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
