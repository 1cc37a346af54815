"""CAN frame representation and errors shared by the bus drivers."""

from __future__ import annotations

import os
import select
import socket
from dataclasses import dataclass

CAN_FRAME_EFF = 1 << 31
CAN_FRAME_RTR = 1 << 30
CAN_FRAME_ERR = 1 << 29
CAN_EXT_ID_MASK = 0x1FFFFFFF
CAN_STD_ID_MASK = 0x7FF
CAN_MAX_DLEN = 8
CANFD_MAX_DLEN = 64


class CanDriverError(OSError):
    """Error reported by a CAN driver; ``errno`` holds the cause."""

    def __init__(self, code: int, message: str | None = None) -> None:
        super().__init__(code, message or os.strerror(code))


@dataclass(frozen=True)
class CanFrame:
    """A CAN or CAN FD frame.

    ``id`` carries the identifier together with the EFF/RTR/ERR flag bits.
    """

    id: int
    data: bytes = b""
    canfd: bool = False
    iface_id: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))
        if not 0 <= self.id <= 0xFFFFFFFF:
            raise ValueError(f"frame id out of range: {self.id:#x}")
        limit = CANFD_MAX_DLEN if self.canfd else CAN_MAX_DLEN
        if len(self.data) > limit:
            raise ValueError(
                f"payload of {len(self.data)} bytes exceeds the {limit}-byte limit"
            )


def _wait_ready(sock: socket.socket, timeout_ms: int, writable: bool) -> bool:
    """Wait until ``sock`` is readable or writable; a negative timeout blocks."""
    timeout = None if timeout_ms < 0 else timeout_ms / 1000.0
    if writable:
        _, ready, _ = select.select([], [sock], [], timeout)
    else:
        ready, _, _ = select.select([sock], [], [], timeout)
    return bool(ready)