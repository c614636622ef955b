"""
MIT License

Copyright (c) 2021 blanketsucks

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE.
"""
from typing import Any, Optional
import logging

from .types import BytesLike, Transport
from .websockets.errors import TransportError

__all__ = (
    'SocketStream',
)

log = logging.getLogger(__name__)

class SocketStream:
    """
    A blocking, buffered wrapper around a connected socket-like object.
    Every failure of the underlying transport is reported as a
    :class:`~switchback.websockets.errors.TransportError`.

    Parameters
    -----------
    transport: :class:`socket.socket`
        Anything with ``recv``, ``sendall`` and ``close`` methods.
    chunk_size: :class:`int`
        How many bytes to ask the transport for on every read.

    Attributes
    ----------
    buffer: :class:`bytearray`
        Data received from the transport but not consumed yet.
    """
    def __init__(self, transport: Transport, *, chunk_size: int = 65536) -> None:
        self.buffer = bytearray()
        self.chunk_size = chunk_size

        self._transport = transport
        self._eof = False
        self._closed = False

    def __repr__(self) -> str:
        return f'<SocketStream buffered={len(self.buffer)} closed={self._closed}>'

    def __enter__(self):
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @property
    def transport(self) -> Transport:
        """
        The transport wrapped by this stream.
        """
        return self._transport

    def is_closed(self) -> bool:
        """
        True if the stream has been closed.
        """
        return self._closed

    def _fill(self) -> bool:
        if self._closed:
            raise TransportError('Stream is closed')

        if self._eof:
            return False

        try:
            data = self._transport.recv(self.chunk_size)
        except OSError as exc:
            raise TransportError(f'Failed to read from the transport: {exc}') from exc

        if not data:
            self._eof = True
            return False

        self.buffer.extend(data)
        return True

    def read(self, nbytes: int) -> bytes:
        """
        Reads exactly ``nbytes`` off the stream.

        Parameters
        ----------
        nbytes: :class:`int`
            Number of bytes to read.

        Raises
        ------
        TransportError: If the stream ends before ``nbytes`` were received.
        """
        while len(self.buffer) < nbytes:
            if not self._fill():
                raise TransportError(
                    f'Stream ended after {len(self.buffer)} of {nbytes} expected bytes'
                )

        data = bytes(self.buffer[:nbytes])
        del self.buffer[:nbytes]

        return data

    def readline(self, limit: Optional[int] = None) -> bytes:
        """
        Reads a line off the stream, terminator included.
        Like :meth:`io.IOBase.readline`, at most ``limit`` bytes are returned
        and an empty or unterminated result means the stream ended.

        Parameters
        ----------
        limit: Optional[:class:`int`]
            Maximum number of bytes to return.
        """
        while True:
            index = self.buffer.find(b'\n')
            if index != -1:
                end = index + 1
                break

            if limit is not None and len(self.buffer) >= limit:
                end = limit
                break

            if not self._fill():
                end = len(self.buffer)
                break

        if limit is not None:
            end = min(end, limit)

        data = bytes(self.buffer[:end])
        del self.buffer[:end]

        return data

    def write(self, data: BytesLike) -> int:
        """
        Writes data to the transport.

        Parameters
        ----------
        data: Union[:class:`bytearray`, :class:`bytes`]
            data to write.

        Raises
        ------
        TransportError: If the stream is closed or the transport fails.
        """
        if self._closed:
            raise TransportError('Stream is closed')

        try:
            self._transport.sendall(data)
        except OSError as exc:
            raise TransportError(f'Failed to write to the transport: {exc}') from exc

        return len(data)

    def close(self) -> None:
        """
        Closes the transport. Calling this more than once does nothing.
        """
        if self._closed:
            return

        self._closed = True

        try:
            self._transport.close()
        except OSError as exc:
            log.debug(f'[Stream] Ignoring error while closing the transport: {exc}')
