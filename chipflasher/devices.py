"""Target microcontrollers and the identifiers they report."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Device:
    """A supported target and the identifier its bootloader reports."""

    name: str
    device_id: int
    mask: int = 0xFFFFFFFF

    def matches(self, device_id: int) -> bool:
        """Return whether a reported identifier belongs to this device."""
        return (device_id & self.mask) == self.device_id


DEVICES: tuple[Device, ...] = (
    Device("LPC1788", 0x281D3F47),
    Device("LPC1768", 0x26013F37),
    Device("STM32H743", 0x450, mask=0xFFFF),
    Device("TMS320F28377S", 0x00FF0400),
)


def device_by_name(name: str) -> Device:
    """Return the device with the given name; raise KeyError if unknown."""
    for device in DEVICES:
        if device.name == name:
            return device
    raise KeyError(f"unknown device: {name}")