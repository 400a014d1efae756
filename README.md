# chipflasher

`chipflasher` writes firmware to microcontrollers that run a small packet-based
bootloader. It talks to the bootloader over a serial port or over UDP. It knows
four targets: LPC1788, LPC1768, STM32H743 and TMS320F28377S.

## Installation

```
pip install .
```

## Firmware images

The bootloader is given *images*. An image is a raw binary payload with a
short header in front of it: one length byte, a UTF-8 description of at most
255 bytes, and a CRC-16 of those two parts. The payload goes to the device in
16-byte chunks.

```python
from chipflasher.firmware import FirmwareImage

with open("app.bin", "rb") as fh:
    image = FirmwareImage.from_fields(fh.read(), ["board", "v1.2", "2024-01-01"])
image.save("app-image.bin")

loaded = FirmwareImage.load("app-image.bin")
print(loaded.describe())      # "<size>KByte Len=<chunks>" and the description
print(loaded.chunk_count())   # number of 16-byte chunks
```

`from_fields` joins the fields with spaces and raises `ValueError` if a field
is empty or the description is too long. `FirmwareImage.parse` and
`FirmwareImage.load` raise `InvalidImageError` when the image is empty, shorter
than its header, or its header CRC does not match.

## Command line

```
chipflasher --help
```

Subcommands:

- `chipflasher ports` lists the serial ports on this machine.
- `chipflasher convert INPUT OUTPUT FIELD FIELD FIELD` wraps a raw binary into
  an image whose description is the three fields joined by spaces.
- `chipflasher info IMAGE` prints an image's size, chunk count and description.
- `chipflasher program IMAGE --device NAME (--port PORT | --host ADDRESS)`
  writes an image to a device. `--device` defaults to `LPC1788`. Reset the
  microcontroller into its bootloader when asked.
- `chipflasher boot (--port PORT | --host ADDRESS)` asks a running application
  to enter the bootloader.
- `chipflasher app [--image IMAGE] (--port PORT | --host ADDRESS)` asks the
  bootloader to start the application; with `--image` the image's chunk count
  is sent along, otherwise 0.

Link options shared by `program`, `boot` and `app`:

- `--port PORT` uses a serial port (8 data bits, no parity, one stop bit, no
  flow control). `--baud` picks 9600, 115200, 230400, 460800 or 921600; the
  default is 9600.
- `--host ADDRESS` uses UDP and needs `--remote-port`. `--listen-port` sets the
  local port replies are received on; without it the system picks one.

On failure the command prints `error: ...` to standard error and exits with
status 1.

## Library use

- `chipflasher.protocol`: `command_frame`, `data_frame` and `boot_frame` build
  frames; `FrameParser` turns a byte stream into `Frame` objects and drops
  frames with a bad checksum; `crc16` computes the image header CRC; `Command`
  lists the command codes.
- `chipflasher.devices`: `Device` definitions in `DEVICES`, looked up by name
  with `device_by_name` (raises `KeyError` for an unknown name).
  `Device.matches` checks a reported identifier; for STM32H743 only the low
  16 bits are compared.
- `chipflasher.transport`: `SerialTransport` and `UdpTransport`, both context
  managers with `send`, `receive` and `close`; `list_serial_ports` lists the
  serial ports.
- `chipflasher.session`: `ProgrammingSession` runs the sequence of device
  identification, erase and data chunks, driven by `feed` (incoming bytes) and
  `tick` (timers). `run_session` drives a session over a transport until it
  finishes and raises `DeviceMismatchError`, `ConnectionLostError` or
  `ResetTimeoutError` (all `SessionError`) when it is aborted.

```python
from chipflasher.devices import device_by_name
from chipflasher.firmware import FirmwareImage
from chipflasher.session import ProgrammingSession, run_session
from chipflasher.transport import SerialTransport

image = FirmwareImage.load("app-image.bin")
with SerialTransport("/dev/ttyUSB0", 115200) as link:
    session = ProgrammingSession(image, device_by_name("STM32H743"), link.send)
    run_session(session, link, 0.02)
```

## What it does not do

There is no graphical interface and no progress display on the command line;
progress and status text are available from `ProgrammingSession.progress()`
and `ProgrammingSession.status` when the package is used as a library. Only
the four targets listed above are known.

## Running the tests

```
pip install .[test]
pytest
```