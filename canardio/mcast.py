"""CAN frames carried over multicast UDP."""

from __future__ import annotations

import errno
import re
import socket
import struct

from canardio.frame import CanDriverError, CanFrame, _wait_ready

MCAST_ADDRESS_BASE = "239.65.82."
MCAST_PORT = 57732
MCAST_MAGIC = 0x2934
MCAST_FLAG_CANFD = 0x0001
MCAST_HEADER_LEN = 10
MCAST_MAX_PKT_LEN = 74

_HEADER = struct.Struct("<HHHI")
_BODY_HEADER = struct.Struct("<HI")
_PREFIX = struct.Struct("<HH")
_ATOI = re.compile(r"\s*([+-]?\d+)")


def crc16_ccitt(data: bytes) -> int:
    """CCITT 16-bit CRC with initial value 0xFFFF."""
    crc = 0xFFFF
    for byte in bytes(data):
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return crc


def encode_packet(frame: CanFrame) -> bytes:
    """Build the UDP datagram carrying ``frame``."""
    flags = MCAST_FLAG_CANFD if frame.canfd else 0
    body = _BODY_HEADER.pack(flags, frame.id) + frame.data
    return _PREFIX.pack(MCAST_MAGIC, crc16_ccitt(body)) + body


def decode_packet(packet: bytes) -> CanFrame:
    """Parse a UDP datagram into a frame, raising CanDriverError(EIO) if invalid."""
    packet = bytes(packet)
    if not MCAST_HEADER_LEN <= len(packet) <= MCAST_MAX_PKT_LEN:
        raise CanDriverError(errno.EIO, f"bad packet length {len(packet)}")
    magic, crc, flags, message_id = _HEADER.unpack_from(packet)
    if magic != MCAST_MAGIC:
        raise CanDriverError(errno.EIO, f"bad packet magic {magic:#06x}")
    if crc != crc16_ccitt(packet[4:]):
        raise CanDriverError(errno.EIO, "packet CRC mismatch")
    try:
        return CanFrame(
            message_id,
            packet[MCAST_HEADER_LEN:],
            canfd=bool(flags & MCAST_FLAG_CANFD),
        )
    except ValueError as exc:
        raise CanDriverError(errno.EIO, str(exc)) from exc


def multicast_address(iface_name: str) -> tuple[str, int]:
    """Map an interface name such as ``mcast:3`` to its group address and port."""
    if not iface_name.startswith("mcast:"):
        raise CanDriverError(errno.EINVAL, f"not a multicast interface: {iface_name!r}")
    bus = 0
    rest = iface_name[6:]
    if rest:
        match = _ATOI.match(rest)
        bus = int(match.group(1)) if match else 0
        if not 0 <= bus <= 9:
            raise CanDriverError(errno.EINVAL, f"bus number out of range: {bus}")
    return f"{MCAST_ADDRESS_BASE}{bus}", MCAST_PORT


class McastCAN:
    """A CAN bus emulated with a UDP multicast group."""

    def __init__(self, iface_name: str, canfd: bool = False) -> None:
        address, port = multicast_address(iface_name)
        self.canfd = canfd
        self._sock_in: socket.socket | None = None
        self._sock_out: socket.socket | None = None
        try:
            self._sock_in = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            self._sock_in.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._sock_in.bind((address, port))
            mreq = socket.inet_aton(address) + struct.pack("!I", socket.INADDR_ANY)
            self._sock_in.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)

            self._sock_out = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            self._sock_out.connect((address, port))
        except OSError:
            self.close()
            raise

    @staticmethod
    def _open(sock: socket.socket | None) -> socket.socket:
        if sock is None:
            raise CanDriverError(errno.EBADF, "interface is closed")
        return sock

    def close(self) -> None:
        """Close both sockets."""
        for sock in (self._sock_in, self._sock_out):
            if sock is not None:
                sock.close()
        self._sock_in = None
        self._sock_out = None

    def transmit(self, frame: CanFrame, timeout_ms: int = -1) -> bool:
        """Send a frame; False on timeout. A negative timeout blocks."""
        sock = self._open(self._sock_out)
        if not _wait_ready(sock, timeout_ms, writable=True):
            return False
        if sock.send(encode_packet(frame)) <= 0:
            raise CanDriverError(errno.EIO, "nothing was sent")
        return True

    def receive(self, timeout_ms: int = -1) -> CanFrame | None:
        """Receive a frame; None on timeout. A negative timeout blocks."""
        sock = self._open(self._sock_in)
        if not _wait_ready(sock, timeout_ms, writable=False):
            return None
        return decode_packet(sock.recv(MCAST_MAX_PKT_LEN))

    def __enter__(self) -> McastCAN:
        return self

    def __exit__(self, *args) -> None:
        self.close()