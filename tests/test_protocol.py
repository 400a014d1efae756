import pytest

from chipflasher.protocol import (
    Command,
    Frame,
    FrameParser,
    boot_frame,
    command_frame,
    crc16,
    data_frame,
)


def _reply(command, payload):
    checksum = (sum(payload) & 0xFFFF).to_bytes(2, "little")
    return b"\xc1\xb7P" + bytes([command, 4]) + bytes(payload) + checksum


def test_crc_of_nothing_is_initial_value():
    assert crc16(b"") == 0xFFFF


def test_crc_detects_change():
    assert crc16(b"abc") != crc16(b"abd")


def test_crc_is_sixteen_bits():
    for data in (b"\x00", b"\xff" * 40, bytes(range(256))):
        assert 0 <= crc16(data) <= 0xFFFF


def test_command_frame_layout():
    frame = command_frame(Command.ERASE, 0x0102)
    assert frame == b"\xc1\xb7P\x18\x02\x02\x01\x03\x00"


def test_command_frame_rejects_large_value():
    with pytest.raises(ValueError):
        command_frame(Command.ERASE, 0x10000)


def test_data_frame_structure():
    chunk = bytes(range(16))
    frame = data_frame(3, chunk)
    assert frame[:4] == b"\xc1\xb7P\x15"
    assert frame[4] == 2 + len(chunk)
    assert frame[5:7] == (3).to_bytes(2, "little")
    assert frame[7:-2] == chunk
    assert int.from_bytes(frame[-2:], "little") == sum(frame[5:-2]) & 0xFFFF


def test_data_frame_empty_tail():
    frame = data_frame(2, b"")
    assert frame == b"\xc1\xb7P\x15\x02\x02\x00\x02\x00"


def test_data_frame_rejects_oversized_chunk():
    with pytest.raises(ValueError):
        data_frame(0, bytes(17))


def test_boot_frame_bytes():
    assert boot_frame() == b"\xc1\xb7P\x55\x02\xaa\x55\xff\x00\x81"


def test_frame_from_bytes_reads_fields():
    raw = _reply(Command.DEVICE_ID, b"\x50\x04\x12\x34")[2:]
    frame = Frame.from_bytes(raw)
    assert frame.command == Command.DEVICE_ID
    assert frame.payload == b"\x50\x04\x12\x34"
    assert frame.value == 0x0450
    assert frame.word == 0x34120450


def test_frame_from_bytes_rejects_bad_checksum():
    raw = bytearray(_reply(Command.DATA, b"\x01\x00\x00\x00")[2:])
    raw[-1] ^= 0xFF
    with pytest.raises(ValueError):
        Frame.from_bytes(bytes(raw))


def test_frame_from_bytes_rejects_wrong_length():
    with pytest.raises(ValueError):
        Frame.from_bytes(b"P\x15\x04")


def test_parser_finds_frame_after_noise():
    parser = FrameParser()
    frames = parser.feed(b"\x00\x11\xc1" + _reply(Command.PREPARE, b"\x00\x00\x00\x00"))
    assert [f.command for f in frames] == [Command.PREPARE]


def test_parser_handles_split_input():
    parser = FrameParser()
    stream = _reply(Command.DATA, b"\x07\x00\x00\x00")
    assert parser.feed(stream[:5]) == []
    frames = parser.feed(stream[5:])
    assert len(frames) == 1
    assert frames[0].value == 7


def test_parser_drops_corrupt_frame_and_recovers():
    parser = FrameParser()
    bad = bytearray(_reply(Command.DATA, b"\x01\x00\x00\x00"))
    bad[-1] ^= 0x01
    good = _reply(Command.ERASE_PROGRESS, b"\x05\x00\x00\x00")
    frames = parser.feed(bytes(bad) + good)
    assert [(f.command, f.value) for f in frames] == [(Command.ERASE_PROGRESS, 5)]


def test_parser_feed_byte_returns_frame_on_last_byte():
    parser = FrameParser()
    stream = _reply(Command.ERASE, b"\x00\x00\x00\x00")
    results = [parser.feed_byte(b) for b in stream]
    assert all(r is None for r in results[:-1])
    assert results[-1].command == Command.ERASE