"""Byte links to the bootloader: a serial port or a UDP socket."""

from __future__ import annotations

import socket
from abc import ABC, abstractmethod

import serial
from serial.tools import list_ports

BAUD_RATES: tuple[int, ...] = (9600, 115200, 230400, 460800, 921600)
DEFAULT_BAUD_RATE = BAUD_RATES[0]
_MAX_DATAGRAM = 65535


def list_serial_ports() -> list[str]:
    """Return the names of the serial ports present on this machine."""
    return [port.device for port in list_ports.comports()]


class Transport(ABC):
    """A bidirectional byte link that can be used as a context manager."""

    @abstractmethod
    def send(self, data: bytes) -> None:
        """Send a block of bytes."""

    @abstractmethod
    def receive(self, timeout: float | None) -> bytes:
        """Wait up to timeout seconds for data; return b"" if none arrived."""

    @abstractmethod
    def close(self) -> None:
        """Release the link."""

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class SerialTransport(Transport):
    """A serial port at 8 data bits, no parity, one stop bit, no flow control."""

    def __init__(self, port: str, baudrate: int = DEFAULT_BAUD_RATE) -> None:
        self._serial = serial.serial_for_url(
            port,
            baudrate=baudrate,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            xonxoff=False,
            rtscts=False,
            timeout=0,
        )

    @property
    def baudrate(self) -> int:
        return self._serial.baudrate

    @property
    def is_open(self) -> bool:
        return bool(self._serial.is_open)

    def send(self, data: bytes) -> None:
        self._serial.write(bytes(data))

    def receive(self, timeout: float | None) -> bytes:
        self._serial.timeout = timeout
        data = self._serial.read(1)
        if data:
            waiting = self._serial.in_waiting
            if waiting:
                data += self._serial.read(waiting)
        return bytes(data)

    def close(self) -> None:
        self._serial.close()


class UdpTransport(Transport):
    """A UDP socket that sends to one remote address and listens on a local port."""

    def __init__(self, remote_host: str, remote_port: int, local_port: int | None = None) -> None:
        self._remote = (remote_host, int(remote_port))
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            self._socket.bind(("", local_port or 0))
        except OSError:
            self._socket.close()
            raise

    @property
    def local_port(self) -> int:
        return self._socket.getsockname()[1]

    @property
    def remote(self) -> tuple[str, int]:
        return self._remote

    def send(self, data: bytes) -> None:
        self._socket.sendto(bytes(data), self._remote)

    def receive(self, timeout: float | None) -> bytes:
        self._socket.settimeout(timeout)
        try:
            data, _sender = self._socket.recvfrom(_MAX_DATAGRAM)
        except (TimeoutError, BlockingIOError):
            return b""
        return data

    def close(self) -> None:
        self._socket.close()