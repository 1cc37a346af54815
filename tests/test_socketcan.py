import errno
import sys

import pytest

from canardio.frame import CAN_FRAME_EFF, CAN_MAX_DLEN, CanDriverError, CanFrame
from canardio.socketcan import SocketCAN, pack_frame, unpack_frame


def test_classic_layout():
    frame = CanFrame(0x123, b"\x01\x02")
    raw = pack_frame(frame, False)
    assert len(raw) == 16
    assert raw[:4] == (0x123).to_bytes(4, sys.byteorder)
    assert raw[4] == len(frame.data)
    assert raw[8:10] == frame.data


def test_canfd_layout_size():
    assert len(pack_frame(CanFrame(1, b"x", canfd=True), True)) == 72


def test_classic_round_trip():
    frame = CanFrame(CAN_FRAME_EFF | 0x1ABCDE, b"\xde\xad\xbe\xef")
    assert unpack_frame(pack_frame(frame, False), False) == frame


def test_canfd_round_trip():
    frame = CanFrame(CAN_FRAME_EFF | 0x42, bytes(range(48)), canfd=True)
    assert unpack_frame(pack_frame(frame, True), True) == frame


def test_classic_frame_in_fd_layout():
    frame = CanFrame(0x7, b"abc")
    decoded = unpack_frame(pack_frame(frame, True), True)
    assert decoded.data == frame.data
    assert decoded.id == frame.id


def test_pack_classic_rejects_long_payload():
    with pytest.raises(ValueError):
        pack_frame(CanFrame(1, bytes(12), canfd=True), False)


def test_unpack_wrong_size():
    raw = pack_frame(CanFrame(1, b"a"), False)
    with pytest.raises(CanDriverError) as info:
        unpack_frame(raw[:-1], False)
    assert info.value.errno == errno.EIO


def test_unpack_fd_size_as_classic():
    raw = pack_frame(CanFrame(1, b"a", canfd=True), True)
    with pytest.raises(CanDriverError) as info:
        unpack_frame(raw, False)
    assert info.value.errno == errno.EIO


def test_unpack_bad_length_code():
    raw = bytearray(pack_frame(CanFrame(1), False))
    raw[4] = CAN_MAX_DLEN + 1
    with pytest.raises(CanDriverError) as info:
        unpack_frame(bytes(raw), False)
    assert info.value.errno == errno.EIO


def test_interface_name_too_long():
    with pytest.raises(CanDriverError) as info:
        SocketCAN("a" * 16)
    assert info.value.errno == errno.EINVAL