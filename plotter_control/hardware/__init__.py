"""
Hardware communication module.

Provides the line transports (stream, file export, TCP socket). The job
executor lives in ``plotter_control.hardware.job_executor``.
"""

from plotter_control.hardware.transport import (
    DeviceResponseError,
    FileTransport,
    SocketTransport,
    StreamTransport,
    Transport,
    TransportConnectionError,
    TransportError,
    create_transport,
)

__all__ = [
    "DeviceResponseError",
    "FileTransport",
    "SocketTransport",
    "StreamTransport",
    "Transport",
    "TransportConnectionError",
    "TransportError",
    "create_transport",
]
