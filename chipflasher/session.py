"""The programming conversation with the bootloader, driven by ticks and incoming bytes."""

from __future__ import annotations

import time
from enum import Enum
from typing import Callable

from chipflasher.devices import Device
from chipflasher.firmware import FirmwareImage
from chipflasher.protocol import Command, Frame, FrameParser, command_frame, data_frame
from chipflasher.transport import Transport

TICK_INTERVAL = 0.02
RESET_WAIT_SECONDS = 20
TICKS_PER_COUNTDOWN_STEP = 30
STALL_TICKS = 5
ERASE_CHECK_TICKS = 50
ERASE_STEPS = 15


class SessionState(Enum):
    IDLE = "idle"
    WAITING_FOR_DEVICE = "waiting for device"
    ERASING = "erasing"
    PROGRAMMING = "programming"
    DONE = "done"
    FAILED = "failed"


_ACTIVE = (SessionState.WAITING_FOR_DEVICE, SessionState.ERASING, SessionState.PROGRAMMING)


class SessionError(Exception):
    """Programming was aborted."""


class DeviceMismatchError(SessionError):
    """The connected chip is not the one selected."""


class ConnectionLostError(SessionError):
    """The device stopped answering."""


class ResetTimeoutError(SessionError):
    """The device was not reset into its bootloader in time."""


class ProgrammingSession:
    """Sends an image to a device, one chunk per acknowledgement."""

    def __init__(self, image: FirmwareImage, device: Device, send: Callable[[bytes], object]) -> None:
        self.image = image
        self.device = device
        self._send = send
        self._chunks = list(image.chunks())
        self._total = image.chunk_count()
        self.state = SessionState.IDLE
        self.status = ""
        self._reset()

    def _reset(self) -> None:
        self._parser = FrameParser()
        self._index = 0
        self._progress = 0
        self._writing = False
        self._sending = False
        self._watching = False
        self._erasing = False
        self._got_reply = False
        self._countdown = RESET_WAIT_SECONDS
        self._stall = 0
        self._last_index = 0
        self._erase_ticks = 0
        self._erase_step = 0
        self._last_erase_step = 0
        self._countdown_ticks = 0

    @property
    def active(self) -> bool:
        return self.state in _ACTIVE

    def start(self) -> None:
        """Begin asking the device for its identifier."""
        command_frame(Command.DEVICE_ID, self._total)
        self._reset()
        self.state = SessionState.WAITING_FOR_DEVICE
        self._writing = True
        self.status = f"Please Reset Micro {self._countdown} Second"

    def feed(self, data: bytes) -> None:
        """Process bytes received from the device."""
        for frame in self._parser.feed(data):
            self.handle_frame(frame)

    def handle_frame(self, frame: Frame) -> None:
        """React to one reply frame from the device."""
        if not self.active:
            return
        self._got_reply = True
        self._countdown = RESET_WAIT_SECONDS
        self._stall = 0
        command = frame.command
        if command == Command.DATA:
            if frame.value + 1 == self._index:
                self._sending = True
        elif command == Command.ERASE:
            self._erasing = False
            self._sending = True
            self._watching = True
            self._progress = 0
            self.status = "Programming..."
            self.state = SessionState.PROGRAMMING
        elif command == Command.PREPARE:
            self._index = 0
            self._writing = False
            self.state = SessionState.ERASING
            self._send(command_frame(Command.ERASE, self._total))
        elif command == Command.ERASE_PROGRESS:
            self._erasing = True
            self._erase_step = frame.payload[0]
            self._progress = min(100, int(100.0 / ERASE_STEPS * self._erase_step))
            self.status = "Erasing..."
            self.state = SessionState.ERASING
        elif command == Command.DEVICE_ID:
            if self.device.matches(frame.word):
                self._send(command_frame(Command.PREPARE, self._total))
            else:
                self._fail(DeviceMismatchError(
                    f"selected chip is {self.device.name}, device reports 0x{frame.word:08x}"
                ))

    def tick(self) -> None:
        """Advance timers and send whatever is due; call every TICK_INTERVAL seconds."""
        if not self.active:
            return
        previous, self._last_index = self._last_index, self._index
        if previous == self._index and self._watching:
            self._stall += 1
            if self._stall >= STALL_TICKS:
                self._fail(ConnectionLostError("connection lost"))

        if self._erasing:
            self._erase_ticks += 1
            if self._erase_ticks >= ERASE_CHECK_TICKS:
                self._erase_ticks = 0
                previous_step, self._last_erase_step = self._last_erase_step, self._erase_step
                if previous_step == self._erase_step:
                    self._fail(ConnectionLostError("connection lost while erasing"))

        self._countdown_ticks += 1
        if self._countdown_ticks >= TICKS_PER_COUNTDOWN_STEP and not self._got_reply:
            self._countdown_ticks = 0
            self._countdown -= 1
            self.status = f"Please Reset Micro {self._countdown} Second"
            if self._countdown == 0:
                self._fail(ResetTimeoutError("device was not reset in time"))

        if self._sending:
            self._sending = False
            self._send_next_chunk()

        if self._writing:
            self._send(command_frame(Command.DEVICE_ID, self._total))

    def progress(self) -> int:
        """Percentage shown for the current phase."""
        return self._progress

    def done(self) -> bool:
        """Whether the whole image has been sent."""
        return self.state is SessionState.DONE

    def _send_next_chunk(self) -> None:
        if self._index >= len(self._chunks):
            return
        index, chunk = self._chunks[self._index]
        final = self._index >= len(self._chunks) - 1
        self._send(data_frame(index, chunk))
        self._index += 1
        self._update_progress()
        if final:
            self._watching = False
            self.status = ""
            self.state = SessionState.DONE
        elif self._index >= len(self._chunks) - 1:
            self._watching = False

    def _update_progress(self) -> None:
        if self._total:
            self._progress = min(100, int(100.0 / self._total * self._index))
        else:
            self._progress = 100

    def _fail(self, error: SessionError) -> None:
        self._writing = False
        self._sending = False
        self._watching = False
        self._erasing = False
        self._progress = 0
        self.status = ""
        self.state = SessionState.FAILED
        raise error


def run_session(session: ProgrammingSession, transport: Transport, interval: float = TICK_INTERVAL) -> None:
    """Drive a session over a transport until the image is sent; errors propagate."""
    if session.state is SessionState.IDLE:
        session.start()
    deadline = time.monotonic() + interval
    while session.active:
        remaining = deadline - time.monotonic()
        if remaining > 0:
            data = transport.receive(remaining)
            if data:
                session.feed(data)
            continue
        session.tick()
        deadline = max(deadline + interval, time.monotonic())