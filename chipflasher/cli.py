"""Command-line front end: list ports, build and inspect images, program a device."""

from __future__ import annotations

import argparse
import sys

from chipflasher.devices import DEVICES, device_by_name
from chipflasher.firmware import FirmwareImage, InvalidImageError
from chipflasher.protocol import Command, boot_frame, command_frame
from chipflasher.session import ProgrammingSession, SessionError, run_session
from chipflasher.transport import (
    BAUD_RATES,
    DEFAULT_BAUD_RATE,
    SerialTransport,
    Transport,
    UdpTransport,
    list_serial_ports,
)


class _UsageError(Exception):
    pass


def _add_link_options(parser: argparse.ArgumentParser) -> None:
    link = parser.add_mutually_exclusive_group(required=True)
    link.add_argument("--port", help="serial port to use")
    link.add_argument("--host", help="IP address of the device for a UDP link")
    parser.add_argument("--baud", type=int, choices=BAUD_RATES, default=DEFAULT_BAUD_RATE,
                        help="serial baud rate")
    parser.add_argument("--remote-port", type=int, help="UDP port of the device")
    parser.add_argument("--listen-port", type=int, help="local UDP port to receive on")


def _open_link(args: argparse.Namespace) -> Transport:
    if args.host:
        if args.remote_port is None:
            raise _UsageError("--remote-port is required with --host")
        return UdpTransport(args.host, args.remote_port, args.listen_port)
    return SerialTransport(args.port, args.baud)


def _cmd_ports(args: argparse.Namespace) -> int:
    for name in list_serial_ports():
        print(name)
    return 0


def _cmd_convert(args: argparse.Namespace) -> int:
    with open(args.input, "rb") as handle:
        payload = handle.read()
    image = FirmwareImage.from_fields(payload, args.fields)
    image.save(args.output)
    print(f"{len(payload)} Byte Len={image.chunk_count()}")
    return 0


def _cmd_info(args: argparse.Namespace) -> int:
    print(FirmwareImage.load(args.image).describe())
    return 0


def _cmd_program(args: argparse.Namespace) -> int:
    image = FirmwareImage.load(args.image)
    device = device_by_name(args.device)
    print(image.describe())
    with _open_link(args) as link:
        session = ProgrammingSession(image, device, link.send)
        print(f"Please reset the {device.name} into its bootloader")
        run_session(session, link)
    print(f"Programmed {image.chunk_count()} chunks")
    return 0


def _cmd_boot(args: argparse.Namespace) -> int:
    with _open_link(args) as link:
        link.send(boot_frame())
    return 0


def _cmd_app(args: argparse.Namespace) -> int:
    value = FirmwareImage.load(args.image).chunk_count() if args.image else 0
    with _open_link(args) as link:
        link.send(command_frame(Command.RUN_APP, value))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all subcommands."""
    parser = argparse.ArgumentParser(prog="chipflasher", description="Bootloader programming tool.")
    commands = parser.add_subparsers(dest="command", required=True)

    ports = commands.add_parser("ports", help="list serial ports")
    ports.set_defaults(handler=_cmd_ports)

    convert = commands.add_parser("convert", help="wrap a raw binary into an image")
    convert.add_argument("input")
    convert.add_argument("output")
    convert.add_argument("fields", nargs=3, metavar="FIELD", help="description fields")
    convert.set_defaults(handler=_cmd_convert)

    info = commands.add_parser("info", help="show an image's header")
    info.add_argument("image")
    info.set_defaults(handler=_cmd_info)

    program = commands.add_parser("program", help="write an image to a device")
    program.add_argument("image")
    program.add_argument("--device", choices=[d.name for d in DEVICES], default=DEVICES[0].name)
    _add_link_options(program)
    program.set_defaults(handler=_cmd_program)

    boot = commands.add_parser("boot", help="ask the running application to enter the bootloader")
    _add_link_options(boot)
    boot.set_defaults(handler=_cmd_boot)

    app = commands.add_parser("app", help="ask the bootloader to start the application")
    app.add_argument("--image", help="image whose chunk count is sent along")
    _add_link_options(app)
    app.set_defaults(handler=_cmd_app)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the command line; return the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.handler(args)
    except _UsageError as error:
        parser.error(str(error))
    except InvalidImageError as error:
        print(f"error: invalid image: {error}", file=sys.stderr)
    except (SessionError, ValueError, OSError) as error:
        print(f"error: {error}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())