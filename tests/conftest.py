from typing import Optional
import struct

import pytest

from switchback.streams import SocketStream


class FakeSocket:
    """An in-memory stand-in for a connected socket."""

    def __init__(self, data: bytes = b'', chunk: Optional[int] = None, fail_on_send: bool = False, fail_on_recv: bool = False):
        self.incoming = bytearray(data)
        self.sent = bytearray()
        self.chunk = chunk
        self.closed = False
        self.fail_on_send = fail_on_send
        self.fail_on_recv = fail_on_recv

    def recv(self, bufsize: int) -> bytes:
        if self.closed:
            raise OSError('socket is closed')

        if self.fail_on_recv:
            raise ConnectionResetError('peer reset')

        size = min(bufsize, self.chunk or bufsize)
        data = bytes(self.incoming[:size])
        del self.incoming[:size]
        return data

    def sendall(self, data) -> None:
        if self.fail_on_send:
            raise ConnectionResetError('peer reset')

        self.sent.extend(data)

    def close(self) -> None:
        self.closed = True


def make_frame(payload: bytes, opcode: int = 0x1, *, fin: bool = True, mask: Optional[bytes] = b'\x00\x00\x00\x00') -> bytes:
    """Builds a client-to-server frame byte by byte."""
    head = (0x80 if fin else 0x00) | opcode
    length = len(payload)

    if length < 126:
        header = bytes([head, length])
    elif length <= 0xFFFF:
        header = bytes([head, 126]) + struct.pack('!H', length)
    else:
        header = bytes([head, 127]) + struct.pack('!Q', length)

    if mask is None:
        return header + payload

    header = bytes([header[0], header[1] | 0x80]) + header[2:]
    masked = bytes(b ^ mask[i % 4] for i, b in enumerate(payload))
    return header + mask + masked


HANDSHAKE = (
    b'GET /chat HTTP/1.1\r\n'
    b'Host: server.example.com\r\n'
    b'Upgrade: websocket\r\n'
    b'Connection: Upgrade\r\n'
    b'Sec-WebSocket-Key: dGhlIHNhbXBsZSBub25jZQ==\r\n'
    b'Sec-WebSocket-Version: 13\r\n'
    b'\r\n'
)

ACCEPT = 's3pPLMBiTxaQ9kYGzzhZRbK+xOo='


@pytest.fixture
def stream_of():
    def factory(data: bytes, chunk: Optional[int] = None) -> SocketStream:
        return SocketStream(FakeSocket(data, chunk=chunk))
    return factory
