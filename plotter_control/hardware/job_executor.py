"""Job executor -- runs a job through a driver and a transport.

The executor owns the transport lifecycle and reports progress per
command.  Cancellation is cooperative: ``cancel()`` may be called from
another thread and takes effect at the next command boundary, after
which the driver's post-job code is sent so the pen ends lifted and the
machine parked.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable

from plotter_control.gcode.generic import GenericGcodeDriver
from plotter_control.hardware.transport import Transport
from plotter_control.job_ir.operations import LaserJob, count_commands

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


class ExecutorState(Enum):
    """Current job-executor state."""

    IDLE = auto()
    RUNNING = auto()
    CANCELLED = auto()
    ERROR = auto()


@dataclass
class ExecutorProgress:
    """Execution progress snapshot."""

    state: ExecutorState
    total_commands: int = 0
    completed_commands: int = 0
    message: str = ""

    @property
    def fraction(self) -> float:
        if self.total_commands == 0:
            return 1.0
        return self.completed_commands / self.total_commands


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


class JobExecutor:
    """Run jobs on one driver / transport pair.

    Parameters
    ----------
    driver : GenericGcodeDriver
        Configured driver.
    transport : Transport
        Unopened transport; ``run`` opens and closes it.
    """

    def __init__(
        self,
        driver: GenericGcodeDriver,
        transport: Transport,
    ) -> None:
        self._driver = driver
        self._transport = transport

        self._state = ExecutorState.IDLE
        self._cancel_flag = threading.Event()
        self._progress_cb: Callable[[ExecutorProgress], None] | None = None
        self._progress = ExecutorProgress(state=ExecutorState.IDLE)

    def get_state(self) -> ExecutorState:
        """Return current executor state."""
        return self._state

    def set_progress_callback(
        self, fn: Callable[[ExecutorProgress], None],
    ) -> None:
        """Register a callback invoked on progress updates."""
        self._progress_cb = fn

    def cancel(self) -> None:
        """Request cancellation at the next command boundary."""
        self._cancel_flag.set()
        logger.info("Cancel requested")

    def _notify(self, **kwargs: object) -> None:
        """Update internal progress and fire callback."""
        for k, v in kwargs.items():
            if hasattr(self._progress, k):
                setattr(self._progress, k, v)
        self._progress.state = self._state
        if self._progress_cb is not None:
            try:
                self._progress_cb(self._progress)
            except Exception as exc:  # noqa: BLE001
                logger.error("Progress callback error: %s", exc)

    def run(self, job: LaserJob) -> ExecutorProgress:
        """Execute *job* to completion or cancellation.

        Returns
        -------
        ExecutorProgress
            Final progress snapshot.

        Raises
        ------
        Exception
            Anything raised by the driver or transport, after the state
            has been set to ``ERROR``.
        """
        total = count_commands(job)
        self._cancel_flag.clear()
        self._state = ExecutorState.RUNNING
        self._progress = ExecutorProgress(state=self._state)
        self._notify(total_commands=total, completed_commands=0, message="Starting")

        try:
            with self._transport:
                ctx = self._driver.start_job(self._transport)
                jobgen = self._driver.iter_job(ctx, job)
                for done in jobgen:
                    self._notify(
                        completed_commands=done,
                        message=f"Command {done}/{total}",
                    )
                    if self._cancel_flag.is_set():
                        jobgen.close()
                        logger.info("Job cancelled after command %d/%d", done, total)
                        self._driver.write_shutdown(ctx)
                        self._state = ExecutorState.CANCELLED
                        self._notify(message="Cancelled")
                        return self._progress
        except Exception as exc:
            self._state = ExecutorState.ERROR
            logger.error("Job '%s' failed: %s", job.title, exc)
            self._notify(message=f"Error: {exc}")
            raise

        self._state = ExecutorState.IDLE
        self._notify(message="Complete")
        return self._progress
