"""CAN frame drivers, a bxCAN model and bit-timing solver, and transfer dispatch for DroneCAN nodes."""

__version__ = "0.1.0"