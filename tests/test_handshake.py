import pytest

from switchback.streams import SocketStream
from switchback.websockets import (
    HandshakeNegotiator,
    HandshakeTooLarge,
    InvalidHandshake,
    build_response,
    compute_accept_key,
    parse_key,
)

from .conftest import ACCEPT, HANDSHAKE, FakeSocket


def test_accept_key_vector():
    assert compute_accept_key('dGhlIHNhbXBsZSBub25jZQ==') == ACCEPT


def test_parse_key():
    assert parse_key(HANDSHAKE.decode()) == 'dGhlIHNhbXBsZSBub25jZQ=='


def test_parse_key_is_case_sensitive():
    assert parse_key('GET / HTTP/1.1\r\nsec-websocket-key: abc\r\n') is None


def test_response_uses_crlf():
    response = build_response(ACCEPT)

    assert response == (
        b'HTTP/1.1 101 Switching Protocols\r\n'
        b'Upgrade: websocket\r\n'
        b'Connection: Upgrade\r\n'
        b'Sec-WebSocket-Accept: s3pPLMBiTxaQ9kYGzzhZRbK+xOo=\r\n'
        b'\r\n'
    )


def test_negotiate_accepts():
    sock = FakeSocket(HANDSHAKE + b'\x81\x00', chunk=7)
    stream = SocketStream(sock)

    assert HandshakeNegotiator().negotiate(stream)
    assert bytes(sock.sent) == build_response(ACCEPT)
    # bytes after the blank line belong to the first frame
    assert stream.read(2) == b'\x81\x00'


def test_negotiate_rejects_missing_key():
    sock = FakeSocket(b'GET / HTTP/1.1\r\nHost: example.com\r\n\r\n')

    assert not HandshakeNegotiator().negotiate(SocketStream(sock))
    assert sock.sent == b''


def test_negotiate_rejects_oversized_request():
    request = b'GET / HTTP/1.1\r\nX-Padding: ' + b'a' * 200 + b'\r\n' + HANDSHAKE.split(b'\r\n', 1)[1]
    negotiator = HandshakeNegotiator(max_size=128)

    with pytest.raises(HandshakeTooLarge):
        negotiator.read_request(SocketStream(FakeSocket(request)))

    assert not negotiator.negotiate(SocketStream(FakeSocket(request)))


def test_negotiate_rejects_unterminated_request():
    truncated = HANDSHAKE[:-2]

    with pytest.raises(InvalidHandshake):
        HandshakeNegotiator().read_request(SocketStream(FakeSocket(truncated)))

    assert not HandshakeNegotiator().negotiate(SocketStream(FakeSocket(truncated)))


def test_request_exactly_at_limit_is_accepted():
    negotiator = HandshakeNegotiator(max_size=len(HANDSHAKE))

    assert negotiator.negotiate(SocketStream(FakeSocket(HANDSHAKE)))
