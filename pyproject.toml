[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "openinv"
version = "0.1.0"
description = "Inverter and vehicle-controller building blocks: fixed-point math, CAN signal mapping, CANopen SDO, OBD2, LIN framing and motor control helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["can", "canopen", "sdo", "obd2", "lin", "inverter", "fixed-point", "foc", "crc8"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems :: Controller Area Network (CAN)",
    "Topic :: Software Development :: Embedded Systems",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["openinv"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
