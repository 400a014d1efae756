"""Firmware images, bootloader frames and programming sessions over serial or UDP."""

__version__ = "0.1.0"
__all__ = ["cli", "devices", "firmware", "protocol", "session", "transport"]