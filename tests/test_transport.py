import socket
from types import SimpleNamespace
from unittest import mock

import pytest
import serial

from chipflasher.transport import (
    BAUD_RATES,
    SerialTransport,
    Transport,
    UdpTransport,
    list_serial_ports,
)


def test_transport_is_abstract():
    with pytest.raises(TypeError):
        Transport()


def test_serial_loopback_round_trip():
    with SerialTransport("loop://", 115200) as link:
        link.send(b"\xc1\xb7P\x20")
        assert link.receive(0.5) == b"\xc1\xb7P\x20"


def test_serial_uses_requested_baud_rate():
    with SerialTransport("loop://", BAUD_RATES[-1]) as link:
        assert link.baudrate == BAUD_RATES[-1]


def test_serial_receive_times_out_empty():
    with SerialTransport("loop://") as link:
        assert link.receive(0.01) == b""


def test_serial_context_manager_closes_port():
    with SerialTransport("loop://") as link:
        assert link.is_open
    assert not link.is_open
    with pytest.raises(serial.SerialException):
        link.send(b"x")


def test_list_serial_ports_reports_device_names():
    ports = [SimpleNamespace(device="/dev/ttyUSB0"), SimpleNamespace(device="/dev/ttyUSB1")]
    with mock.patch("serial.tools.list_ports.comports", return_value=ports):
        assert list_serial_ports() == ["/dev/ttyUSB0", "/dev/ttyUSB1"]


@pytest.fixture
def peer():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2)
    yield sock
    sock.close()


def test_udp_send_and_receive(peer):
    peer_port = peer.getsockname()[1]
    with UdpTransport("127.0.0.1", peer_port, 0) as link:
        link.send(b"hello")
        data, sender = peer.recvfrom(100)
        assert data == b"hello"
        assert sender[1] == link.local_port
        peer.sendto(b"reply", ("127.0.0.1", link.local_port))
        assert link.receive(2) == b"reply"


def test_udp_receive_times_out_empty(peer):
    with UdpTransport("127.0.0.1", peer.getsockname()[1]) as link:
        assert link.receive(0.01) == b""


def test_udp_remote_address_is_kept(peer):
    port = peer.getsockname()[1]
    with UdpTransport("127.0.0.1", port) as link:
        assert link.remote == ("127.0.0.1", port)
        assert link.local_port > 0


def test_udp_closed_socket_refuses_to_send(peer):
    link = UdpTransport("127.0.0.1", peer.getsockname()[1])
    link.close()
    with pytest.raises(OSError):
        link.send(b"x")