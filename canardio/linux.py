"""Driver that picks SocketCAN or multicast UDP from the interface name."""

from __future__ import annotations

import errno

from canardio.frame import CanDriverError, CanFrame
from canardio.mcast import McastCAN
from canardio.socketcan import SocketCAN


def open_can(iface_name: str, canfd: bool = False) -> McastCAN | SocketCAN:
    """Open a multicast bus for names starting with ``mcast``, else a SocketCAN interface."""
    if iface_name.startswith("mcast"):
        return McastCAN(iface_name, canfd)
    return SocketCAN(iface_name, canfd)


class LinuxCAN:
    """A CAN interface backed by either SocketCAN or multicast UDP."""

    def __init__(self, iface_name: str, canfd: bool = False) -> None:
        self._driver: McastCAN | SocketCAN | None = open_can(iface_name, canfd)

    def _active(self) -> McastCAN | SocketCAN:
        if self._driver is None:
            raise CanDriverError(errno.EINVAL, "interface is closed")
        return self._driver

    def close(self) -> None:
        """Close the underlying driver; closing twice raises CanDriverError(EINVAL)."""
        driver = self._active()
        self._driver = None
        driver.close()

    def transmit(self, frame: CanFrame, timeout_ms: int = -1) -> bool:
        """Send a frame; False on timeout. A negative timeout blocks."""
        return self._active().transmit(frame, timeout_ms)

    def receive(self, timeout_ms: int = -1) -> CanFrame | None:
        """Receive a frame; None on timeout. A negative timeout blocks."""
        return self._active().receive(timeout_ms)

    def __enter__(self) -> LinuxCAN:
        return self

    def __exit__(self, *args) -> None:
        if self._driver is not None:
            self.close()