"""Register model of the bxCAN controller and its bit definitions."""

from __future__ import annotations

from dataclasses import dataclass, field, fields

NUM_TX_MAILBOXES = 3
NUM_RX_MAILBOXES = 2
NUM_FILTER_REGISTERS = 28

CAN1_BASE = 0x40006400
CAN2_BASE = 0x40006800

# Master control register
MCR_INRQ = 1 << 0
MCR_SLEEP = 1 << 1
MCR_TXFP = 1 << 2
MCR_RFLM = 1 << 3
MCR_NART = 1 << 4
MCR_AWUM = 1 << 5
MCR_ABOM = 1 << 6
MCR_TTCM = 1 << 7
MCR_RESET = 1 << 15
MCR_DBF = 1 << 16

# Master status register
MSR_INAK = 1 << 0
MSR_SLAK = 1 << 1
MSR_ERRI = 1 << 2
MSR_WKUI = 1 << 3
MSR_SLAKI = 1 << 4
MSR_TXM = 1 << 8
MSR_RXM = 1 << 9
MSR_SAMP = 1 << 10
MSR_RX = 1 << 11

# Transmit status register
TSR_RQCP0 = 1 << 0
TSR_TXOK0 = 1 << 1
TSR_ALST0 = 1 << 2
TSR_TERR0 = 1 << 3
TSR_ABRQ0 = 1 << 7
TSR_RQCP1 = 1 << 8
TSR_TXOK1 = 1 << 9
TSR_ALST1 = 1 << 10
TSR_TERR1 = 1 << 11
TSR_ABRQ1 = 1 << 15
TSR_RQCP2 = 1 << 16
TSR_TXOK2 = 1 << 17
TSR_ALST2 = 1 << 18
TSR_TERR2 = 1 << 19
TSR_ABRQ2 = 1 << 23
TSR_CODE_SHIFT = 24
TSR_CODE_MASK = 3 << TSR_CODE_SHIFT
TSR_TME0 = 1 << 26
TSR_TME1 = 1 << 27
TSR_TME2 = 1 << 28
TSR_LOW0 = 1 << 29
TSR_LOW1 = 1 << 30
TSR_LOW2 = 1 << 31
TSR_TME = (TSR_TME0, TSR_TME1, TSR_TME2)
TSR_ABRQ_ALL = TSR_ABRQ0 | TSR_ABRQ1 | TSR_ABRQ2

# Receive FIFO 0/1 registers
RFR_FMP_SHIFT = 0
RFR_FMP_MASK = 3 << RFR_FMP_SHIFT
RFR_FULL = 1 << 3
RFR_FOVR = 1 << 4
RFR_RFOM = 1 << 5

# Interrupt enable register
IER_TMEIE = 1 << 0
IER_FMPIE0 = 1 << 1
IER_FFIE0 = 1 << 2
IER_FOVIE0 = 1 << 3
IER_FMPIE1 = 1 << 4
IER_FFIE1 = 1 << 5
IER_FOVIE1 = 1 << 6
IER_EWGIE = 1 << 8
IER_EPVIE = 1 << 9
IER_BOFIE = 1 << 10
IER_LECIE = 1 << 11
IER_ERRIE = 1 << 15
IER_WKUIE = 1 << 16
IER_SLKIE = 1 << 17

# Error status register
ESR_EWGF = 1 << 0
ESR_EPVF = 1 << 1
ESR_BOFF = 1 << 2
ESR_LEC_SHIFT = 4
ESR_LEC_MASK = 7 << ESR_LEC_SHIFT
ESR_NOERROR = 0 << ESR_LEC_SHIFT
ESR_STUFFERROR = 1 << ESR_LEC_SHIFT
ESR_FORMERROR = 2 << ESR_LEC_SHIFT
ESR_ACKERROR = 3 << ESR_LEC_SHIFT
ESR_BRECERROR = 4 << ESR_LEC_SHIFT
ESR_BDOMERROR = 5 << ESR_LEC_SHIFT
ESR_CRCERROR = 6 << ESR_LEC_SHIFT
ESR_SWERROR = 7 << ESR_LEC_SHIFT
ESR_TEC_SHIFT = 16
ESR_TEC_MASK = 0xFF << ESR_TEC_SHIFT
ESR_REC_SHIFT = 24
ESR_REC_MASK = 0xFF << ESR_REC_SHIFT

# Bit timing register
BTR_BRP_SHIFT = 0
BTR_BRP_MASK = 0x03FF << BTR_BRP_SHIFT
BTR_TS1_SHIFT = 16
BTR_TS1_MASK = 0x0F << BTR_TS1_SHIFT
BTR_TS2_SHIFT = 20
BTR_TS2_MASK = 7 << BTR_TS2_SHIFT
BTR_SJW_SHIFT = 24
BTR_SJW_MASK = 3 << BTR_SJW_SHIFT
BTR_LBKM = 1 << 30
BTR_SILM = 1 << 31
BTR_BRP_MAX = 1024
BTR_TSEG1_MAX = 16
BTR_TSEG2_MAX = 8

# TX mailbox identifier register
TIR_TXRQ = 1 << 0
TIR_RTR = 1 << 1
TIR_IDE = 1 << 2
TIR_EXID_SHIFT = 3
TIR_EXID_MASK = 0x1FFFFFFF << TIR_EXID_SHIFT
TIR_STID_SHIFT = 21
TIR_STID_MASK = 0x07FF << TIR_STID_SHIFT

# TX mailbox data length control and time stamp register
TDTR_DLC_SHIFT = 0
TDTR_DLC_MASK = 0x0F << TDTR_DLC_SHIFT
TDTR_TGT = 1 << 8
TDTR_TIME_SHIFT = 16
TDTR_TIME_MASK = 0xFFFF << TDTR_TIME_SHIFT

# RX FIFO mailbox identifier register
RIR_RTR = 1 << 1
RIR_IDE = 1 << 2
RIR_EXID_SHIFT = 3
RIR_EXID_MASK = 0x1FFFFFFF << RIR_EXID_SHIFT
RIR_STID_SHIFT = 21
RIR_STID_MASK = 0x07FF << RIR_STID_SHIFT

# RX FIFO mailbox data length control and time stamp register
RDTR_DLC_SHIFT = 0
RDTR_DLC_MASK = 0x0F << RDTR_DLC_SHIFT
RDTR_FM_SHIFT = 8
RDTR_FM_MASK = 0xFF << RDTR_FM_SHIFT
RDTR_TIME_SHIFT = 16
RDTR_TIME_MASK = 0xFFFF << RDTR_TIME_SHIFT

# Filter master register
FMR_FINIT = 1 << 0


@dataclass
class TxMailbox:
    """One transmit mailbox: identifier, length/time, and data registers."""

    tir: int = 0
    tdtr: int = 0
    tdlr: int = 0
    tdhr: int = 0


@dataclass
class RxMailbox:
    """One receive FIFO output mailbox."""

    rir: int = 0
    rdtr: int = 0
    rdlr: int = 0
    rdhr: int = 0


@dataclass
class FilterRegister:
    """One acceptance filter bank: identifier in ``fr1``, mask in ``fr2``."""

    fr1: int = 0
    fr2: int = 0


def _tx_mailboxes() -> list[TxMailbox]:
    return [TxMailbox() for _ in range(NUM_TX_MAILBOXES)]


def _rx_mailboxes() -> list[RxMailbox]:
    return [RxMailbox() for _ in range(NUM_RX_MAILBOXES)]


def _filter_registers() -> list[FilterRegister]:
    return [FilterRegister() for _ in range(NUM_FILTER_REGISTERS)]


@dataclass
class BxCanRegisters:
    """The register block of one bxCAN controller."""

    mcr: int = 0
    msr: int = 0
    tsr: int = 0
    rf0r: int = 0
    rf1r: int = 0
    ier: int = 0
    esr: int = 0
    btr: int = 0
    tx_mailboxes: list[TxMailbox] = field(default_factory=_tx_mailboxes)
    rx_mailboxes: list[RxMailbox] = field(default_factory=_rx_mailboxes)
    fmr: int = 0
    fm1r: int = 0
    fs1r: int = 0
    ffa1r: int = 0
    fa1r: int = 0
    filter_registers: list[FilterRegister] = field(default_factory=_filter_registers)

    def reset(self) -> None:
        """Return every register to zero, keeping this object in place."""
        fresh = BxCanRegisters()
        for spec in fields(self):
            setattr(self, spec.name, getattr(fresh, spec.name))