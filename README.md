# canardio

Frame-level CAN I/O and helpers for DroneCAN / UAVCAN v0 nodes.

## Modules

- `canardio.frame`: `CanFrame` is the frozen frame type that every driver
  uses. Its `id` carries the identifier together with the EFF/RTR/ERR flag
  bits. `data` may hold at most 8 bytes, or 64 if `canfd` is set. The module
  also defines `CanDriverError`, an `OSError` whose `errno` gives the cause.
- `canardio.socketcan`: `SocketCAN` is a raw Linux SocketCAN socket for classic
  CAN or CAN FD. It offers `transmit`, `receive`, `fileno` and `close`, and
  works as a context manager. `pack_frame` and `unpack_frame` convert between
  `CanFrame` and the kernel's `can_frame` / `canfd_frame` layout.
- `canardio.mcast`: `McastCAN` carries CAN frames over UDP multicast, using
  interface names `mcast:0` to `mcast:9` on group `239.65.82.N`, port 57732. The
  module also provides the packet codec (`encode_packet`, `decode_packet`), the
  CCITT CRC-16 that the codec uses (`crc16_ccitt`, initial value 0xFFFF), and
  `multicast_address`.
- `canardio.linux`: `open_can` and `LinuxCAN` choose multicast for names that
  start with `mcast` and SocketCAN for any other name.
- `canardio.timings`: `compute_can_timings(clock, bitrate)` solves bxCAN bit
  timings. It returns a `CanTimings`, whose `to_btr(silent)` gives the bit
  timing register value. It raises `UnsupportedBitRateError` when no exact
  solution exists.
- `canardio.handlers`: `HandlerRegistry` routes an `RxTransfer` to the handlers
  linked for its data type id and `TransferType`. `MessageHandler` decodes a
  transfer and calls a callback. Broadcasts reach every matching handler.
  Requests and responses stop at the first handler that accepts them.
- `canardio.bxcan`: a model of the STM32 bxCAN register block
  (`BxCanRegisters`, `TxMailbox`, `RxMailbox`, `FilterRegister`) and its bit
  constants.
- `canardio.arbitration`: CAN arbitration order (`is_frame_priority_higher`)
  and conversions between frame ids and the bxCAN identifier and filter
  register layouts.
- `canardio.stm32`: `Stm32Can` is a polled bxCAN driver that runs on a
  `BxCanRegisters` block. It provides `init`, `transmit` (which avoids priority
  inversion), `receive`, `configure_acceptance_filters` and `stats`.

Operations that time out return `False` (`transmit`) or `None` (`receive`). A
negative timeout blocks until the operation completes.

## Examples

Sending and receiving frames:

```python
from canardio.frame import CanFrame
from canardio.linux import open_can

with open_can("mcast:0", False) as bus:
    bus.transmit(CanFrame(id=0x80000123, data=b"\x01\x02"), 100)
    frame = bus.receive(100)     # None on timeout
```

Computing bit timings:

```python
from canardio.timings import compute_can_timings

timings = compute_can_timings(36_000_000, 1_000_000)
btr = timings.to_btr(False)      # 0x00060003
```

## What it does not do

The package works at the level of single frames and already assembled
transfers. It does not:

- split outgoing transfers into frames;
- reassemble received frames into `RxTransfer` objects;
- encode or decode message types;
- provide a command-line tool.

`HandlerRegistry` expects the caller to build transfers and supply the decode
functions.

## Tests

```
pip install -e .[test]
pytest
```