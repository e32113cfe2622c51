"""Tests for line transports.

Socket tests run against a local TCP controller stand-in that records
received lines and answers each one with a configurable reply.
"""

from __future__ import annotations

import io
import socket
import threading
from pathlib import Path

import pytest

from plotter_control.gcode.generic import SETTING_EXPORT_PATH, SETTING_HOST
from plotter_control.gcode.marlin import MarlinDriver
from plotter_control.hardware.transport import (
    DeviceResponseError,
    FileTransport,
    SocketTransport,
    StreamTransport,
    TransportConnectionError,
    TransportError,
    create_transport,
    parse_host,
)


# ---------------------------------------------------------------------------
# Fake controller
# ---------------------------------------------------------------------------


class FakeController:
    """Single-connection TCP server answering every line with *reply*."""

    def __init__(self, greeting: bytes = b"", reply: bytes = b"ok\n") -> None:
        self.greeting = greeting
        self.reply = reply
        self.received: list[str] = []

        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._server.bind(("127.0.0.1", 0))
        self._server.listen(1)
        self._server.settimeout(5.0)
        self.port = self._server.getsockname()[1]

        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        try:
            conn, _ = self._server.accept()
        except OSError:
            return
        with conn:
            conn.settimeout(5.0)
            if self.greeting:
                conn.sendall(self.greeting)
            buf = b""
            while True:
                try:
                    data = conn.recv(4096)
                except OSError:
                    break
                if not data:
                    break
                buf += data
                while b"\n" in buf:
                    line, buf = buf.split(b"\n", 1)
                    self.received.append(line.decode("ascii").rstrip("\r"))
                    if self.reply:
                        conn.sendall(self.reply)

    def stop(self) -> None:
        self._server.close()
        self._thread.join(timeout=5.0)


@pytest.fixture()
def controller():
    ctrl = FakeController()
    yield ctrl
    ctrl.stop()


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


# ---------------------------------------------------------------------------
# Stream / file
# ---------------------------------------------------------------------------


class TestStreamTransport:
    def test_appends_line_end(self) -> None:
        buf = io.StringIO()
        with StreamTransport(buf, line_end="\r\n") as t:
            t.write_line("G21")
            t.write_line("G90")
        assert buf.getvalue() == "G21\r\nG90\r\n"


class TestFileTransport:
    def test_writes_on_close(self, tmp_path: Path) -> None:
        path = tmp_path / "sub" / "job.gcode"
        with FileTransport(path) as t:
            t.write_line("G21")
            assert not path.exists()
        assert path.read_text(encoding="utf-8") == "G21\n"

    def test_discards_on_error(self, tmp_path: Path) -> None:
        path = tmp_path / "job.gcode"
        with pytest.raises(RuntimeError):
            with FileTransport(path) as t:
                t.write_line("G21")
                raise RuntimeError("boom")
        assert not path.exists()


# ---------------------------------------------------------------------------
# Socket
# ---------------------------------------------------------------------------


class TestParseHost:
    def test_with_port(self) -> None:
        assert parse_host("plotter.local:8080") == ("plotter.local", 8080)

    def test_default_port(self) -> None:
        assert parse_host("192.168.1.50") == ("192.168.1.50", 23)

    def test_bad_port(self) -> None:
        with pytest.raises(TransportError, match="Invalid port"):
            parse_host("plotter:abc")


class TestSocketTransport:
    def test_sends_lines(self, controller: FakeController) -> None:
        with SocketTransport("127.0.0.1", controller.port, wait_for_ok=True) as t:
            t.write_line("G21")
            t.write_line("G90")
        assert controller.received == ["G21", "G90"]

    def test_port_in_host_string(self, controller: FakeController) -> None:
        t = SocketTransport(f"127.0.0.1:{controller.port}")
        assert t.port == controller.port

    def test_waits_for_identification(self) -> None:
        ctrl = FakeController(greeting=b"echo: booting\nstart\n")
        try:
            with SocketTransport(
                "127.0.0.1", ctrl.port,
                identification_line="start",
                wait_for_ok=True,
                line_end="\r\n",
            ) as t:
                assert t.is_connected
                t.write_line("M5")
            assert ctrl.received == ["M5"]
        finally:
            ctrl.stop()

    def test_identification_timeout(self) -> None:
        ctrl = FakeController(reply=b"")
        try:
            t = SocketTransport(
                "127.0.0.1", ctrl.port, timeout=0.3, identification_line="start",
            )
            with pytest.raises(TransportConnectionError, match="identify"):
                t.open()
            assert not t.is_connected
        finally:
            ctrl.stop()

    def test_error_reply(self) -> None:
        ctrl = FakeController(reply=b"error:22\n")
        try:
            with SocketTransport("127.0.0.1", ctrl.port, wait_for_ok=True) as t:
                with pytest.raises(DeviceResponseError, match="G1 X9999"):
                    t.write_line("G1 X9999")
        finally:
            ctrl.stop()

    def test_ignores_chatter_before_ok(self) -> None:
        ctrl = FakeController(reply=b"busy: processing\nok\n")
        try:
            with SocketTransport("127.0.0.1", ctrl.port, wait_for_ok=True) as t:
                t.write_line("G28 XY")
            assert ctrl.received == ["G28 XY"]
        finally:
            ctrl.stop()

    def test_connection_refused(self) -> None:
        t = SocketTransport(
            "127.0.0.1", _free_port(),
            timeout=0.5, connect_attempts=2, retry_interval=0.01,
        )
        with pytest.raises(TransportConnectionError, match="after 2 attempts"):
            t.open()

    def test_write_without_open(self) -> None:
        with pytest.raises(TransportConnectionError, match="Not connected"):
            SocketTransport("127.0.0.1", 1).write_line("G21")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestCreateTransport:
    def test_explicit_output_wins(self, tmp_path: Path) -> None:
        driver = MarlinDriver()
        driver.set_property(SETTING_HOST, "plotter.local")
        t = create_transport(driver, tmp_path / "out.gcode")
        assert isinstance(t, FileTransport)
        assert t.line_end == "\r\n"

    def test_export_path(self, tmp_path: Path) -> None:
        driver = MarlinDriver()
        driver.set_property(SETTING_EXPORT_PATH, str(tmp_path / "x.gcode"))
        assert isinstance(create_transport(driver), FileTransport)

    def test_host_uses_driver_handshake(self) -> None:
        driver = MarlinDriver()
        driver.set_property(SETTING_HOST, "plotter.local:2323")
        t = create_transport(driver)
        assert isinstance(t, SocketTransport)
        assert t.port == 2323
        assert t.wait_for_ok is True
        assert t.identification_line == "start"

    def test_stdout_fallback(self) -> None:
        assert isinstance(create_transport(MarlinDriver()), StreamTransport)
