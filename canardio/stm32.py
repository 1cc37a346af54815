"""Driver for the bxCAN controller found in STM32 microcontrollers.

The driver works on a :class:`~canardio.bxcan.BxCanRegisters` block, so it
can be pointed at a memory-mapped view of real hardware or at a model of it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterable

from canardio import bxcan
from canardio.arbitration import (
    filter_to_registers,
    frame_id_to_register,
    is_frame_priority_higher,
    register_to_frame_id,
)
from canardio.bxcan import BxCanRegisters
from canardio.frame import CAN_FRAME_ERR, CAN_MAX_DLEN, CanFrame
from canardio.timings import CanTimings

ERROR_UNSUPPORTED_BIT_RATE = 1000
ERROR_MSR_INAK_NOT_SET = 1001
ERROR_MSR_INAK_NOT_CLEARED = 1002
ERROR_UNSUPPORTED_FRAME_FORMAT = 1003

NUM_ACCEPTANCE_FILTERS = 14
INAK_TIMEOUT_MS = 1000

_ALL_TME = bxcan.TSR_TME0 | bxcan.TSR_TME1 | bxcan.TSR_TME2
_RX_FIFO_REGISTERS = ("rf0r", "rf1r")


class IfaceMode(Enum):
    """Operating mode of the controller."""

    NORMAL = 0
    SILENT = 1
    AUTOMATIC_TX_ABORT_ON_ERROR = 2


@dataclass
class Stm32Stats:
    """Running interface statistics."""

    rx_overflow_count: int = 0
    error_count: int = 0


@dataclass(frozen=True)
class AcceptanceFilter:
    """Identifier and mask of a hardware acceptance filter, with EFF/RTR flag bits."""

    id: int
    mask: int


class Stm32CanError(Exception):
    """Failure reported by the controller; ``code`` holds the driver error code."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code


class Stm32Can:
    """Polled, non-blocking bxCAN driver.

    ``can1`` is always the filter owner. If ``can2`` is given, it becomes the
    active controller, CAN1 is held in initialisation mode, and filters are
    placed from bank 14 onwards. ``sleep`` is called with a delay in seconds
    while waiting for the controller to change mode.
    """

    def __init__(
        self,
        can1: BxCanRegisters,
        can2: BxCanRegisters | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.can1 = can1
        self.can2 = can2
        self._sleep = sleep
        self._stats = Stm32Stats()
        self._abort_tx_on_error = False

    @property
    def _bxcan(self) -> BxCanRegisters:
        return self.can2 if self.can2 is not None else self.can1

    @property
    def _filter_offset(self) -> int:
        return NUM_ACCEPTANCE_FILTERS if self.can2 is not None else 0

    def _wait_inak(self, regs: BxCanRegisters, target_state: bool) -> bool:
        for _ in range(INAK_TIMEOUT_MS):
            if bool(regs.msr & bxcan.MSR_INAK) == target_state:
                return True
            self._sleep(0.001)
        return False

    def _enter_init_mode(self, regs: BxCanRegisters) -> None:
        regs.ier = 0
        regs.mcr &= ~bxcan.MCR_SLEEP
        regs.mcr |= bxcan.MCR_INRQ
        if not self._wait_inak(regs, True):
            regs.mcr = bxcan.MCR_RESET
            raise Stm32CanError(
                ERROR_MSR_INAK_NOT_SET, "controller did not enter initialisation mode"
            )

    def _process_error_status(self) -> None:
        regs = self._bxcan
        lec = (regs.esr & bxcan.ESR_LEC_MASK) >> bxcan.ESR_LEC_SHIFT
        if lec == 0:
            return
        # Writing zero to ESR clears only the last error code; the rest is read-only.
        regs.esr &= ~bxcan.ESR_LEC_MASK
        self._stats.error_count += 1
        if self._abort_tx_on_error or regs.esr & bxcan.ESR_BOFF:
            regs.tsr |= bxcan.TSR_ABRQ_ALL

    def init(self, timings: CanTimings, mode: IfaceMode = IfaceMode.NORMAL) -> None:
        """(Re)initialise the controller with the given timings and mode.

        Raises ValueError for bad arguments and Stm32CanError if the
        controller does not acknowledge a mode change.
        """
        try:
            mode = IfaceMode(mode)
        except ValueError:
            raise ValueError(f"invalid interface mode: {mode!r}") from None

        if (
            timings is None
            or not 1 <= timings.bit_rate_prescaler <= 1024
            or not 1 <= timings.max_resynchronization_jump_width <= 4
            or not 1 <= timings.bit_segment_1 <= 16
            or not 1 <= timings.bit_segment_2 <= 8
        ):
            raise ValueError(f"invalid timings: {timings!r}")

        self._stats = Stm32Stats()
        self._abort_tx_on_error = mode is IfaceMode.AUTOMATIC_TX_ABORT_ON_ERROR

        if self.can2 is not None:
            # CAN2 is a slave of CAN1, which stays in initialisation mode for good.
            self._enter_init_mode(self.can1)

        regs = self._bxcan
        self._enter_init_mode(regs)

        regs.mcr = bxcan.MCR_ABOM | bxcan.MCR_AWUM | bxcan.MCR_INRQ
        regs.btr = timings.to_btr(silent=mode is IfaceMode.SILENT)

        regs.mcr &= ~bxcan.MCR_INRQ
        if not self._wait_inak(regs, False):
            regs.mcr = bxcan.MCR_RESET
            raise Stm32CanError(
                ERROR_MSR_INAK_NOT_CLEARED, "controller did not leave initialisation mode"
            )

        can1 = self.can1
        fmr = can1.fmr & 0xFFFFC0F1
        fmr |= NUM_ACCEPTANCE_FILTERS << 8
        can1.fmr = fmr | bxcan.FMR_FINIT

        can1.fm1r = 0
        can1.fs1r = 0x0FFFFFFF
        # Alternate banks between FIFO0 and FIFO1 to balance the load.
        can1.ffa1r = 0x0AAAAAAA

        bank = self._filter_offset
        can1.filter_registers[bank].fr1 = 0
        can1.filter_registers[bank].fr2 = 0
        can1.fa1r = 1 << bank

        can1.fmr &= ~bxcan.FMR_FINIT

    def transmit(self, frame: CanFrame) -> bool:
        """Queue a frame into a free mailbox.

        Returns False if no mailbox can take it without priority inversion.
        """
        if frame.id & CAN_FRAME_ERR:
            raise Stm32CanError(ERROR_UNSUPPORTED_FRAME_FORMAT, "error frames cannot be sent")
        if len(frame.data) > CAN_MAX_DLEN:
            raise ValueError(f"payload of {len(frame.data)} bytes does not fit a classic frame")

        self._process_error_status()

        regs = self._bxcan
        if regs.tsr & _ALL_TME != _ALL_TME:
            tx_mailbox = None
            for index, (tme, mailbox) in enumerate(zip(bxcan.TSR_TME, regs.tx_mailboxes)):
                if regs.tsr & tme:
                    tx_mailbox = index
                elif not is_frame_priority_higher(frame.id, register_to_frame_id(mailbox.tir)):
                    # A pending frame of higher or equal priority would be overtaken.
                    return False
            if tx_mailbox is None:
                return False
        else:
            tx_mailbox = 0

        data = frame.data.ljust(CAN_MAX_DLEN, b"\x00")
        mailbox = regs.tx_mailboxes[tx_mailbox]
        mailbox.tdtr = len(frame.data)
        mailbox.tdhr = int.from_bytes(data[4:8], "little")
        mailbox.tdlr = int.from_bytes(data[0:4], "little")
        mailbox.tir = frame_id_to_register(frame.id) | bxcan.TIR_TXRQ
        return True

    def receive(self) -> CanFrame | None:
        """Read one frame from the receive FIFOs, or None if both are empty."""
        self._process_error_status()

        regs = self._bxcan
        for name, mailbox in zip(_RX_FIFO_REGISTERS, regs.rx_mailboxes):
            rfr = getattr(regs, name)
            if not rfr & bxcan.RFR_FMP_MASK:
                continue
            if rfr & bxcan.RFR_FOVR:
                self._stats.rx_overflow_count += 1

            frame_id = register_to_frame_id(mailbox.rir)
            length = mailbox.rdtr & bxcan.RDTR_DLC_MASK
            data = mailbox.rdlr.to_bytes(4, "little") + mailbox.rdhr.to_bytes(4, "little")

            setattr(regs, name, bxcan.RFR_RFOM | bxcan.RFR_FOVR | bxcan.RFR_FULL)
            return CanFrame(frame_id, data[: min(length, CAN_MAX_DLEN)])
        return None

    def configure_acceptance_filters(self, filters: Iterable[AcceptanceFilter]) -> None:
        """Replace the acceptance filters; an empty list rejects every frame."""
        filters = list(filters)
        if len(filters) > NUM_ACCEPTANCE_FILTERS:
            raise ValueError(
                f"{len(filters)} filters given, at most {NUM_ACCEPTANCE_FILTERS} supported"
            )

        can1 = self.can1
        can1.fa1r = 0
        for position, config in enumerate(filters):
            bank = position + self._filter_offset
            fr1, fr2 = filter_to_registers(config.id, config.mask)
            can1.filter_registers[bank].fr1 = fr1
            can1.filter_registers[bank].fr2 = fr2
            can1.fa1r |= 1 << bank

    def stats(self) -> Stm32Stats:
        """A snapshot of the running statistics."""
        return replace(self._stats)