import pytest

from canardio.handlers import (
    Handler,
    HandlerRegistry,
    MessageHandler,
    RxTransfer,
    TransferType,
)


def _decode(transfer):
    if not transfer.payload:
        raise ValueError("empty payload")
    return transfer.payload


def _recorder(registry, transfer_type, msgid, index=0, signature=0x1234, decode=_decode):
    calls = []
    handler = MessageHandler(
        registry,
        transfer_type,
        msgid,
        signature,
        index,
        decode,
        lambda transfer, msg: calls.append(msg),
    )
    return handler, calls


def test_accept_returns_signature_of_linked_handler():
    registry = HandlerRegistry()
    _recorder(registry, TransferType.BROADCAST, 341, signature=0xABCD)
    assert registry.accept_message(0, 341, TransferType.BROADCAST) == 0xABCD


def test_accept_rejects_other_transfer_type_and_id():
    registry = HandlerRegistry()
    _recorder(registry, TransferType.BROADCAST, 341)
    assert registry.accept_message(0, 341, TransferType.REQUEST) is None
    assert registry.accept_message(0, 342, TransferType.BROADCAST) is None


def test_indices_are_isolated():
    registry = HandlerRegistry()
    _, calls = _recorder(registry, TransferType.BROADCAST, 341, index=1)
    assert registry.accept_message(0, 341, TransferType.BROADCAST) is None
    registry.handle_message(0, RxTransfer(341, TransferType.BROADCAST, b"x"))
    assert calls == []
    registry.handle_message(1, RxTransfer(341, TransferType.BROADCAST, b"x"))
    assert calls == [b"x"]


def test_broadcast_reaches_every_handler():
    registry = HandlerRegistry()
    recorded = [_recorder(registry, TransferType.BROADCAST, 341)[1] for _ in range(5)]
    registry.handle_message(0, RxTransfer(341, TransferType.BROADCAST, b"hi"))
    assert all(calls == [b"hi"] for calls in recorded)


def test_request_stops_at_first_handler_newest_first():
    registry = HandlerRegistry()
    _, first = _recorder(registry, TransferType.REQUEST, 1)
    _, second = _recorder(registry, TransferType.REQUEST, 1)
    registry.handle_message(0, RxTransfer(1, TransferType.REQUEST, b"q"))
    assert second == [b"q"]
    assert first == []


def test_request_falls_through_when_decode_fails():
    registry = HandlerRegistry()
    _, fallback = _recorder(registry, TransferType.REQUEST, 1, decode=lambda t: "decoded")
    _, strict = _recorder(registry, TransferType.REQUEST, 1)
    registry.handle_message(0, RxTransfer(1, TransferType.REQUEST, b""))
    assert strict == []
    assert fallback == ["decoded"]


def test_bucket_collision_keeps_ids_apart():
    registry = HandlerRegistry(num_handlers=1, num_buckets=8)
    _, one = _recorder(registry, TransferType.BROADCAST, 1, signature=11)
    _, nine = _recorder(registry, TransferType.BROADCAST, 9, signature=99)
    assert registry.accept_message(0, 1, TransferType.BROADCAST) == 11
    assert registry.accept_message(0, 9, TransferType.BROADCAST) == 99
    registry.handle_message(0, RxTransfer(9, TransferType.BROADCAST, b"n"))
    assert one == []
    assert nine == [b"n"]


def test_unlink_stops_delivery():
    registry = HandlerRegistry()
    handler, calls = _recorder(registry, TransferType.BROADCAST, 341)
    registry.unlink(handler)
    registry.handle_message(0, RxTransfer(341, TransferType.BROADCAST, b"x"))
    assert calls == []
    assert registry.accept_message(0, 341, TransferType.BROADCAST) is None


def test_unlink_middle_handler_keeps_others():
    registry = HandlerRegistry()
    _, a = _recorder(registry, TransferType.BROADCAST, 5)
    b_handler, b = _recorder(registry, TransferType.BROADCAST, 5)
    _, c = _recorder(registry, TransferType.BROADCAST, 5)
    registry.unlink(b_handler)
    registry.unlink(b_handler)
    registry.handle_message(0, RxTransfer(5, TransferType.BROADCAST, b"z"))
    assert (a, b, c) == ([b"z"], [], [b"z"])


def test_handler_unlinking_itself_during_dispatch():
    registry = HandlerRegistry()
    calls = []
    holder = {}

    def callback(transfer, msg):
        calls.append(msg)
        registry.unlink(holder["h"])

    holder["h"] = MessageHandler(
        registry, TransferType.BROADCAST, 7, 0, 0, _decode, callback
    )
    _, other = _recorder(registry, TransferType.BROADCAST, 7)
    registry.handle_message(0, RxTransfer(7, TransferType.BROADCAST, b"a"))
    registry.handle_message(0, RxTransfer(7, TransferType.BROADCAST, b"b"))
    assert calls == [b"a"]
    assert other == [b"a", b"b"]


def test_custom_handler_subclass():
    class Counting(Handler):
        def __init__(self, registry):
            super().__init__(registry, TransferType.RESPONSE, 2, 0, 0)
            self.seen = []

        def handle(self, transfer):
            self.seen.append(transfer.transfer_id)
            return True

    registry = HandlerRegistry()
    handler = Counting(registry)
    registry.link(handler)
    registry.handle_message(0, RxTransfer(2, TransferType.RESPONSE, transfer_id=4))
    assert handler.seen == [4]


def test_handler_base_is_abstract():
    with pytest.raises(TypeError):
        Handler(HandlerRegistry(), TransferType.BROADCAST, 1, 0, 0)


def test_index_out_of_range():
    registry = HandlerRegistry(num_handlers=2)
    with pytest.raises(IndexError):
        registry.accept_message(2, 1, TransferType.BROADCAST)
    with pytest.raises(IndexError):
        _recorder(registry, TransferType.BROADCAST, 1, index=5)


def test_registry_rejects_empty_shape():
    with pytest.raises(ValueError):
        HandlerRegistry(num_handlers=0)
    with pytest.raises(ValueError):
        HandlerRegistry(num_buckets=0)