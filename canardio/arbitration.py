"""CAN arbitration order and bxCAN identifier register conversions."""

from __future__ import annotations

from canardio.bxcan import RIR_IDE, RIR_RTR, TIR_IDE, TIR_RTR
from canardio.frame import CAN_EXT_ID_MASK, CAN_FRAME_EFF, CAN_FRAME_RTR, CAN_STD_ID_MASK


def is_frame_priority_higher(a: int, b: int) -> bool:
    """True if a frame with id ``a`` wins bus arbitration against one with id ``b``.

    Both ids carry the EFF/RTR flag bits. A tie is not a win.
    """
    clean_a = a & CAN_EXT_ID_MASK
    clean_b = b & CAN_EXT_ID_MASK

    # Standard against extended: if the 11 leading bits match, the extended frame loses.
    ext_a = bool(a & CAN_FRAME_EFF)
    ext_b = bool(b & CAN_FRAME_EFF)
    if ext_a != ext_b:
        arb11_a = clean_a >> 18 if ext_a else clean_a
        arb11_b = clean_b >> 18 if ext_b else clean_b
        if arb11_a != arb11_b:
            return arb11_a < arb11_b
        return ext_b

    # Remote against data frame with the same identifier: the remote frame loses.
    rtr_a = bool(a & CAN_FRAME_RTR)
    rtr_b = bool(b & CAN_FRAME_RTR)
    if clean_a == clean_b and rtr_a != rtr_b:
        return rtr_b

    return clean_a < clean_b


def frame_id_to_register(frame_id: int) -> int:
    """Convert a frame id with flag bits into the TX mailbox identifier register layout."""
    if frame_id & CAN_FRAME_EFF:
        out = ((frame_id & CAN_EXT_ID_MASK) << 3) | TIR_IDE
    else:
        out = (frame_id & CAN_STD_ID_MASK) << 21
    if frame_id & CAN_FRAME_RTR:
        out |= TIR_RTR
    return out


def register_to_frame_id(value: int) -> int:
    """Convert a TX or RX mailbox identifier register value into a frame id with flag bits."""
    if value & RIR_IDE:
        out = (CAN_EXT_ID_MASK & (value >> 3)) | CAN_FRAME_EFF
    else:
        out = CAN_STD_ID_MASK & (value >> 21)
    if value & RIR_RTR:
        out |= CAN_FRAME_RTR
    return out


def filter_to_registers(frame_id: int, mask: int) -> tuple[int, int]:
    """Convert an acceptance filter (id, mask) into the filter bank (FR1, FR2) values.

    If the mask does not pin the EFF bit, or the id asks for extended frames,
    the filter is set up in extended layout; otherwise the hardware would
    reject every extended frame.
    """
    if (frame_id & CAN_FRAME_EFF) or not (mask & CAN_FRAME_EFF):
        reg_id = ((frame_id & CAN_EXT_ID_MASK) << 3) | RIR_IDE
        reg_mask = (mask & CAN_EXT_ID_MASK) << 3
    else:
        reg_id = (frame_id & CAN_STD_ID_MASK) << 21
        reg_mask = (mask & CAN_STD_ID_MASK) << 21

    if frame_id & CAN_FRAME_RTR:
        reg_id |= RIR_RTR
    if mask & CAN_FRAME_EFF:
        reg_mask |= RIR_IDE
    if mask & CAN_FRAME_RTR:
        reg_mask |= RIR_RTR
    return reg_id, reg_mask