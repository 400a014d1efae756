[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chipflasher"
version = "0.1.0"
description = "Flash firmware images to microcontroller bootloaders over a serial port or UDP"
requires-python = ">=3.10"
keywords = ["bootloader", "firmware", "flash", "serial", "udp", "microcontroller"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems",
]
dependencies = [
    "pyserial",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
chipflasher = "chipflasher.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["chipflasher"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
