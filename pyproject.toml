[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "canardio"
version = "0.1.0"
description = "CAN frame drivers (SocketCAN, UDP multicast, bxCAN model), bit-timing solver and transfer dispatch for DroneCAN nodes"
requires-python = ">=3.10"
dependencies = []
keywords = ["can", "canbus", "dronecan", "uavcan", "socketcan", "multicast", "bxcan", "stm32"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems :: Controller Area Network (CAN)",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["canardio"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
