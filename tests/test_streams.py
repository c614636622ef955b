import pytest

from switchback.streams import SocketStream
from switchback.websockets import TransportError

from .conftest import FakeSocket


def test_read_exact_across_chunks():
    stream = SocketStream(FakeSocket(b'abcdefgh', chunk=3))

    assert stream.read(5) == b'abcde'
    assert stream.read(3) == b'fgh'


def test_read_short_raises_transport_error():
    stream = SocketStream(FakeSocket(b'abc'))

    with pytest.raises(TransportError):
        stream.read(4)


def test_readline_keeps_terminator():
    stream = SocketStream(FakeSocket(b'first\r\nsecond\r\n\r\n', chunk=4))

    assert stream.readline() == b'first\r\n'
    assert stream.readline() == b'second\r\n'
    assert stream.readline() == b'\r\n'
    assert stream.readline() == b''


def test_readline_respects_limit():
    stream = SocketStream(FakeSocket(b'0123456789\r\n'))

    assert stream.readline(4) == b'0123'
    assert stream.readline() == b'456789\r\n'


def test_write_failure_is_transport_error():
    stream = SocketStream(FakeSocket(fail_on_send=True))

    with pytest.raises(TransportError):
        stream.write(b'data')


def test_write_after_close_is_transport_error():
    sock = FakeSocket()
    stream = SocketStream(sock)
    stream.close()
    stream.close()

    assert sock.closed
    assert stream.is_closed()

    with pytest.raises(TransportError):
        stream.write(b'data')
