"""Registry that routes received transfers to the handlers subscribed to them."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable

DEFAULT_NUM_HANDLERS = 3
DEFAULT_NUM_BUCKETS = 8


class TransferType(IntEnum):
    """Kind of transfer carried on the bus."""

    RESPONSE = 0
    REQUEST = 1
    BROADCAST = 2


@dataclass
class RxTransfer:
    """A transfer reassembled from received frames."""

    data_type_id: int
    transfer_type: TransferType
    payload: bytes = b""
    source_node_id: int = 0
    transfer_id: int = 0
    priority: int = 0
    timestamp_usec: int = 0
    canfd: bool = False


class Handler(ABC):
    """Something that consumes transfers of one data type and transfer type."""

    def __init__(
        self,
        registry: HandlerRegistry,
        transfer_type: TransferType,
        msgid: int,
        signature: int,
        index: int,
    ) -> None:
        self.registry = registry
        self.transfer_type = TransferType(transfer_type)
        self.msgid = msgid
        self.signature = signature
        self.index = index

    @abstractmethod
    def handle(self, transfer: RxTransfer) -> bool:
        """Process a transfer; return True if it was meant for this handler."""


class MessageHandler(Handler):
    """Decodes a transfer and passes the message to a callback.

    ``decode`` takes the transfer and returns the message, raising ValueError
    if the payload cannot be decoded. ``callback`` receives the transfer and
    the message. The handler links itself into the registry on creation.
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        transfer_type: TransferType,
        msgid: int,
        signature: int,
        index: int,
        decode: Callable[[RxTransfer], Any],
        callback: Callable[[RxTransfer, Any], None],
    ) -> None:
        super().__init__(registry, transfer_type, msgid, signature, index)
        self.decode = decode
        self.callback = callback
        registry.link(self)

    def handle(self, transfer: RxTransfer) -> bool:
        """Decode and dispatch; False if the payload could not be decoded."""
        try:
            message = self.decode(transfer)
        except ValueError:
            return False
        self.callback(transfer, message)
        return True


class HandlerRegistry:
    """Handlers grouped by interface index, hashed into buckets by data type id."""

    def __init__(
        self,
        num_handlers: int = DEFAULT_NUM_HANDLERS,
        num_buckets: int = DEFAULT_NUM_BUCKETS,
    ) -> None:
        if num_handlers < 1 or num_buckets < 1:
            raise ValueError("registry needs at least one index and one bucket")
        self.num_handlers = num_handlers
        self.num_buckets = num_buckets
        self._buckets: list[list[list[Handler]]] = [
            [[] for _ in range(num_buckets)] for _ in range(num_handlers)
        ]
        self._locks = [threading.RLock() for _ in range(num_handlers)]

    def _bucket(self, index: int, msgid: int) -> list[Handler]:
        if not 0 <= index < self.num_handlers:
            raise IndexError(f"handler index {index} out of range")
        return self._buckets[index][msgid % self.num_buckets]

    def link(self, handler: Handler) -> None:
        """Add a handler; the most recently linked one is consulted first."""
        bucket = self._bucket(handler.index, handler.msgid)
        with self._locks[handler.index]:
            bucket.insert(0, handler)

    def unlink(self, handler: Handler) -> None:
        """Remove a handler; a handler that is not linked is ignored."""
        bucket = self._bucket(handler.index, handler.msgid)
        with self._locks[handler.index]:
            for position, entry in enumerate(bucket):
                if entry is handler:
                    del bucket[position]
                    return

    def accept_message(self, index: int, msgid: int, transfer_type: TransferType) -> int | None:
        """Signature of the data type if some handler wants it, else None."""
        bucket = self._bucket(index, msgid)
        with self._locks[index]:
            for entry in bucket:
                if entry.msgid == msgid and entry.transfer_type == transfer_type:
                    return entry.signature
        return None

    def handle_message(self, index: int, transfer: RxTransfer) -> None:
        """Pass a transfer to its handlers.

        Broadcasts reach every matching handler; requests and responses stop
        at the first handler that accepts them.
        """
        bucket = self._bucket(index, transfer.data_type_id)
        with self._locks[index]:
            for entry in tuple(bucket):
                if (
                    entry.msgid == transfer.data_type_id
                    and entry.transfer_type == transfer.transfer_type
                    and entry.handle(transfer)
                    and transfer.transfer_type != TransferType.BROADCAST
                ):
                    break