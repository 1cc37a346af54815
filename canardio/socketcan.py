"""Linux SocketCAN driver."""

from __future__ import annotations

import errno
import socket
import struct

from canardio.frame import (
    CAN_MAX_DLEN,
    CANFD_MAX_DLEN,
    CanDriverError,
    CanFrame,
    _wait_ready,
)

IFNAMSIZ = 16

# struct can_frame and struct canfd_frame, in host byte order.
_CAN_FRAME = struct.Struct("=IB3x8s")
_CANFD_FRAME = struct.Struct("=IBB2x64s")


def pack_frame(frame: CanFrame, canfd: bool = False) -> bytes:
    """Serialise a frame into the kernel's can_frame or canfd_frame layout."""
    if canfd:
        return _CANFD_FRAME.pack(frame.id, len(frame.data), 0, frame.data)
    if len(frame.data) > CAN_MAX_DLEN:
        raise ValueError(f"payload of {len(frame.data)} bytes does not fit a classic frame")
    return _CAN_FRAME.pack(frame.id, len(frame.data), frame.data)


def unpack_frame(data: bytes, canfd: bool = False) -> CanFrame:
    """Parse a kernel can_frame or canfd_frame, raising CanDriverError(EIO) if invalid."""
    layout, limit = (_CANFD_FRAME, CANFD_MAX_DLEN) if canfd else (_CAN_FRAME, CAN_MAX_DLEN)
    if len(data) != layout.size:
        raise CanDriverError(errno.EIO, f"expected {layout.size} bytes, got {len(data)}")
    if canfd:
        can_id, length, _flags, payload = layout.unpack(data)
    else:
        can_id, length, payload = layout.unpack(data)
    if length > limit:
        raise CanDriverError(errno.EIO, f"data length {length} exceeds {limit}")
    return CanFrame(can_id, payload[:length], canfd=canfd, iface_id=0)


class SocketCAN:
    """A raw CAN socket bound to one network interface."""

    def __init__(self, iface_name: str, canfd: bool = False) -> None:
        if len(iface_name.encode()) + 1 > IFNAMSIZ:
            raise CanDriverError(errno.EINVAL, f"interface name too long: {iface_name!r}")
        family = getattr(socket, "AF_CAN", None)
        if family is None:
            raise CanDriverError(errno.EAFNOSUPPORT, "SocketCAN is not available")
        self.canfd = canfd
        self._sock = socket.socket(family, socket.SOCK_RAW, socket.CAN_RAW)
        try:
            self._sock.setblocking(False)
            if canfd:
                self._sock.setsockopt(socket.SOL_CAN_RAW, socket.CAN_RAW_FD_FRAMES, 1)
            self._sock.bind((iface_name,))
        except OSError:
            self._sock.close()
            raise

    def _open(self) -> socket.socket:
        if self._sock.fileno() < 0:
            raise CanDriverError(errno.EBADF, "interface is closed")
        return self._sock

    def close(self) -> None:
        """Close the socket."""
        self._sock.close()

    def transmit(self, frame: CanFrame, timeout_ms: int = -1) -> bool:
        """Send a frame; False on timeout. A negative timeout blocks."""
        sock = self._open()
        if not _wait_ready(sock, timeout_ms, writable=True):
            return False
        raw = pack_frame(frame, frame.canfd)
        if sock.send(raw) != len(raw):
            raise CanDriverError(errno.EIO, "short write")
        return True

    def receive(self, timeout_ms: int = -1) -> CanFrame | None:
        """Receive a frame; None on timeout. A negative timeout blocks."""
        sock = self._open()
        if not _wait_ready(sock, timeout_ms, writable=False):
            return None
        size = (_CANFD_FRAME if self.canfd else _CAN_FRAME).size
        return unpack_frame(sock.recv(size), self.canfd)

    def fileno(self) -> int:
        """File descriptor of the socket, for external multiplexing; -1 once closed."""
        return self._sock.fileno()

    def __enter__(self) -> SocketCAN:
        return self

    def __exit__(self, *args) -> None:
        self.close()