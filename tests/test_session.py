import pytest

from switchback.websockets import (
    ConnectionSession,
    MessageType,
    ProtocolViolation,
    TransportError,
    WebsocketError,
    WebsocketState,
    build_response,
    encode_text,
)

from .conftest import ACCEPT, HANDSHAKE, FakeSocket, make_frame


def collect(session):
    received = []
    session.accept(lambda type, data: received.append((type, data)))
    return received


def test_accept_dispatches_text_and_binary():
    sock = FakeSocket(
        HANDSHAKE
        + make_frame(b'hello', 0x1)
        + make_frame(b'\x00\x01', 0x2)
        + make_frame(b'', 0x8)
    )
    session = ConnectionSession(sock)

    assert collect(session) == [
        (MessageType.TEXT, 'hello'),
        (MessageType.BINARY, b'\x00\x01'),
    ]
    assert session.state is WebsocketState.CLOSED
    assert sock.closed


def test_rejected_handshake_closes_silently():
    sock = FakeSocket(b'GET / HTTP/1.1\r\n\r\n' + make_frame(b'hello', 0x1))
    session = ConnectionSession(sock)

    assert collect(session) == []
    assert session.is_closed()
    assert sock.closed
    assert sock.sent == b''


def test_close_frame_stops_without_handler_call():
    sock = FakeSocket(HANDSHAKE + make_frame(b'', 0x8) + make_frame(b'late', 0x1))

    assert collect(ConnectionSession(sock)) == []


def test_ping_and_unknown_opcodes_are_not_dispatched():
    sock = FakeSocket(
        HANDSHAKE
        + make_frame(b'', 0x9)
        + make_frame(b'', 0xA)
        + make_frame(b'raw', 0x3)
        + make_frame(b'', 0x8)
    )

    assert collect(ConnectionSession(sock)) == []
    assert bytes(sock.sent) == build_response(ACCEPT) + b'\x8a\x00'


def test_fragmented_message_is_delivered_once():
    sock = FakeSocket(
        HANDSHAKE
        + make_frame(b'AB', 0x1, fin=False)
        + make_frame(b'CD', 0x0, fin=False)
        + make_frame(b'EF', 0x0, fin=True)
        + make_frame(b'', 0x8)
    )

    assert collect(ConnectionSession(sock)) == [(MessageType.TEXT, 'ABCDEF')]


def test_strict_session_rejects_unknown_opcodes():
    sock = FakeSocket(HANDSHAKE + make_frame(b'raw', 0x3))
    session = ConnectionSession(sock, strict=True)

    with pytest.raises(ProtocolViolation):
        collect(session)

    assert session.is_closed()


def test_stream_ending_is_transport_error():
    sock = FakeSocket(HANDSHAKE + make_frame(b'hello', 0x1) + b'\x81')
    session = ConnectionSession(sock)
    received = []

    with pytest.raises(TransportError):
        session.accept(lambda type, data: received.append(data))

    assert received == ['hello']
    assert session.is_closed()
    assert sock.closed


def test_send_from_handler():
    sock = FakeSocket(HANDSHAKE + make_frame(b'ping me', 0x1) + make_frame(b'', 0x8))
    session = ConnectionSession(sock)

    session.accept(lambda type, data: session.send(data.upper()))

    assert bytes(sock.sent) == build_response(ACCEPT) + encode_text('PING ME')


def test_send_requires_open_session():
    session = ConnectionSession(FakeSocket(HANDSHAKE))

    with pytest.raises(WebsocketError):
        session.send('too early')

    assert session.handshake()
    session.close()

    with pytest.raises(WebsocketError):
        session.send('too late')


def test_send_failure_closes_session():
    sock = FakeSocket(HANDSHAKE)
    session = ConnectionSession(sock)
    assert session.handshake()

    sock.fail_on_send = True

    with pytest.raises(TransportError):
        session.send('hello')

    assert session.is_closed()


def test_iterating_yields_messages():
    sock = FakeSocket(
        HANDSHAKE
        + make_frame(b'one', 0x1)
        + make_frame(b'', 0x9)
        + make_frame(b'two', 0x1)
        + make_frame(b'', 0x8)
    )

    with ConnectionSession(sock) as session:
        assert [message.data for message in session] == ['one', 'two']


def test_handshake_only_once():
    session = ConnectionSession(FakeSocket(HANDSHAKE))
    assert session.handshake()

    with pytest.raises(WebsocketError):
        session.handshake()


def test_close_is_idempotent():
    sock = FakeSocket(HANDSHAKE)
    session = ConnectionSession(sock)

    session.close()
    session.close()

    assert sock.closed
    assert session.state is WebsocketState.CLOSED


def test_handler_error_closes_session():
    sock = FakeSocket(HANDSHAKE + make_frame(b'hello', 0x1) + make_frame(b'', 0x8))
    session = ConnectionSession(sock)

    def handler(type, data):
        raise RuntimeError('handler failed')

    with pytest.raises(RuntimeError):
        session.accept(handler)

    assert session.is_closed()
    assert sock.closed


def test_handshake_read_failure_is_transport_error():
    sock = FakeSocket(fail_on_recv=True)
    session = ConnectionSession(sock)

    with pytest.raises(TransportError):
        session.handshake()

    assert session.is_closed()
    assert sock.closed
