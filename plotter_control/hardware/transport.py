"""Line transports -- where generated G-code goes.

Every transport accepts one command at a time via ``write_line`` and
appends its configured line end.  Writes are strictly ordered; nothing
is reordered or batched beyond line assembly.

Transports:
    - :class:`StreamTransport`: any text stream (stdout, ``StringIO``)
    - :class:`FileTransport`: export file, written atomically on close
    - :class:`SocketTransport`: TCP connection to a networked controller
      (ESP3D / telnet bridge) with optional ``ok`` handshaking

All transports are context managers::

    with SocketTransport("192.168.1.50", wait_for_ok=True) as t:
        driver.write_job(job, t)
"""

from __future__ import annotations

import logging
import socket
import sys
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, TextIO

from plotter_control.utils import fs

if TYPE_CHECKING:
    from plotter_control.gcode.generic import GenericGcodeDriver

logger = logging.getLogger(__name__)

DEFAULT_PORT = 23


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class TransportError(Exception):
    """Base exception for all transport errors."""

    pass


class TransportConnectionError(TransportError):
    """Socket-level connection failure (initial or during operation)."""

    pass


class DeviceResponseError(TransportError):
    """The controller answered a line with an error."""

    pass


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class Transport(ABC):
    """Sink for G-code lines."""

    def __init__(self, line_end: str = "\n") -> None:
        self.line_end = line_end

    def open(self) -> None:
        """Prepare the transport; default is a no-op."""

    def close(self) -> None:
        """Release the transport; default is a no-op."""

    @abstractmethod
    def write_line(self, text: str) -> None:
        """Send one command line (without line end)."""

    def __enter__(self) -> Transport:
        self.open()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Stream
# ---------------------------------------------------------------------------


class StreamTransport(Transport):
    """Write lines to a text stream.  The stream is not closed."""

    def __init__(self, stream: TextIO, line_end: str = "\n") -> None:
        super().__init__(line_end)
        self.stream = stream

    def write_line(self, text: str) -> None:
        self.stream.write(text + self.line_end)

    def close(self) -> None:
        self.stream.flush()


# ---------------------------------------------------------------------------
# File
# ---------------------------------------------------------------------------


class FileTransport(Transport):
    """Buffer lines and write them to *path* atomically on close.

    If the ``with`` block exits with an exception, the buffered lines
    are discarded and no file is written.
    """

    def __init__(self, path: str | Path, line_end: str = "\n") -> None:
        super().__init__(line_end)
        self.path = Path(path)
        self._lines: list[str] = []

    def open(self) -> None:
        self._lines = []

    def write_line(self, text: str) -> None:
        self._lines.append(text + self.line_end)

    def close(self) -> None:
        data = "".join(self._lines)
        fs.atomic_write_text(self.path, data)
        logger.info("Wrote G-code to %s (%d bytes)", self.path, len(data))

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc_type is not None:
            logger.warning("Discarding export to %s after error", self.path)
            self._lines = []
            return
        self.close()


# ---------------------------------------------------------------------------
# Socket
# ---------------------------------------------------------------------------


def parse_host(host: str, default_port: int = DEFAULT_PORT) -> tuple[str, int]:
    """Split ``"host[:port]"`` into ``(host, port)``."""
    if ":" in host:
        name, _, port = host.rpartition(":")
        try:
            return name, int(port)
        except ValueError as exc:
            raise TransportError(f"Invalid port in host {host!r}") from exc
    return host, default_port


class SocketTransport(Transport):
    """Send lines over TCP.

    Parameters
    ----------
    host : str
        Hostname or IP, optionally ``host:port``.
    port : int | None
        Port; overrides one given in *host*.  Defaults to 23.
    timeout : float
        Seconds to wait for connect and for each response.
    wait_for_ok : bool
        Block after each line until the controller replies ``ok``.
    identification_line : str
        If set, wait after connecting for a line starting with it.
    line_end : str
        Appended to every line.
    connect_attempts : int
        Connection tries before giving up.
    retry_interval : float
        Seconds between connection tries.
    """

    def __init__(
        self,
        host: str,
        port: int | None = None,
        *,
        timeout: float = 5.0,
        wait_for_ok: bool = False,
        identification_line: str = "",
        line_end: str = "\n",
        connect_attempts: int = 3,
        retry_interval: float = 1.0,
    ) -> None:
        super().__init__(line_end)
        name, parsed_port = parse_host(host)
        self.host = name
        self.port = port if port is not None else parsed_port
        self.timeout = timeout
        self.wait_for_ok = wait_for_ok
        self.identification_line = identification_line
        self.connect_attempts = connect_attempts
        self.retry_interval = retry_interval

        self._sock: socket.socket | None = None
        self._recv_buffer = b""

    @property
    def is_connected(self) -> bool:
        return self._sock is not None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Connect, retrying up to ``connect_attempts`` times.

        Raises
        ------
        TransportConnectionError
            If no connection could be established.
        """
        for attempt in range(1, self.connect_attempts + 1):
            try:
                logger.info(
                    "Connecting to %s:%d (attempt %d/%d)",
                    self.host, self.port, attempt, self.connect_attempts,
                )
                self._sock = socket.create_connection(
                    (self.host, self.port), timeout=self.timeout,
                )
                break
            except OSError as exc:
                logger.warning("Connection attempt %d failed: %s", attempt, exc)
                self._close_socket()
                if attempt < self.connect_attempts:
                    time.sleep(self.retry_interval)
        else:
            raise TransportConnectionError(
                f"Failed to connect to {self.host}:{self.port} "
                f"after {self.connect_attempts} attempts"
            )

        if self.identification_line:
            self._wait_for_identification()
        logger.info("Connected to %s:%d", self.host, self.port)

    def close(self) -> None:
        self._close_socket()

    def _close_socket(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None
        self._recv_buffer = b""

    # ------------------------------------------------------------------
    # I/O
    # ------------------------------------------------------------------

    def write_line(self, text: str) -> None:
        if self._sock is None:
            raise TransportConnectionError("Not connected")
        payload = (text + self.line_end).encode("ascii")
        try:
            self._sock.sendall(payload)
        except OSError as exc:
            self._close_socket()
            raise TransportConnectionError(f"Socket error: {exc}") from exc
        logger.debug("Sent: %s", text)
        if self.wait_for_ok:
            self._wait_for_ok(text)

    def _wait_for_ok(self, sent: str) -> None:
        while True:
            reply = self.read_line()
            if reply.startswith("ok"):
                return
            if reply.lower().startswith("error"):
                raise DeviceResponseError(
                    f"Controller rejected {sent!r}: {reply}"
                )
            logger.debug("Ignoring reply while waiting for ok: %s", reply)

    def _wait_for_identification(self) -> None:
        deadline = time.monotonic() + self.timeout
        try:
            while True:
                line = self.read_line(deadline - time.monotonic())
                if line.startswith(self.identification_line):
                    return
                logger.debug("Skipping greeting line: %s", line)
        except TimeoutError:
            self._close_socket()
            raise TransportConnectionError(
                f"Controller did not identify with {self.identification_line!r}"
            ) from None

    def read_line(self, timeout: float | None = None) -> str:
        """Read one reply line (CR/LF stripped).

        Raises
        ------
        TimeoutError
            If no complete line arrives within *timeout*.
        TransportConnectionError
            If the peer closed the connection.
        """
        if self._sock is None:
            raise TransportConnectionError("Not connected")
        deadline = time.monotonic() + (timeout if timeout is not None else self.timeout)

        while b"\n" not in self._recv_buffer:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TimeoutError("Timed out waiting for controller reply")
            self._sock.settimeout(remaining)
            try:
                chunk = self._sock.recv(4096)
            except socket.timeout:
                raise TimeoutError("Timed out waiting for controller reply") from None
            except OSError as exc:
                self._close_socket()
                raise TransportConnectionError(f"Socket error: {exc}") from exc
            if not chunk:
                self._close_socket()
                raise TransportConnectionError("Connection closed by controller")
            self._recv_buffer += chunk

        idx = self._recv_buffer.index(b"\n")
        raw = self._recv_buffer[:idx]
        self._recv_buffer = self._recv_buffer[idx + 1:]
        return raw.decode("ascii", errors="replace").strip()


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_transport(
    driver: GenericGcodeDriver,
    output: str | Path | None = None,
) -> Transport:
    """Pick a transport from the driver settings.

    Priority: explicit *output* path, the driver's export path, the
    driver's host, then stdout.
    """
    s = driver.settings
    line_end = driver.line_terminator
    path = output or s.export_path
    if path:
        return FileTransport(path, line_end=line_end)
    if s.host:
        return SocketTransport(
            s.host,
            timeout=s.response_timeout_s,
            wait_for_ok=s.wait_for_ok,
            identification_line=s.identification_line,
            line_end=line_end,
        )
    return StreamTransport(sys.stdout, line_end=line_end)
