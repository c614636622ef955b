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
from typing import Any, Iterator, Union
import logging

from switchback.streams import SocketStream
from switchback.types import BytesLike, Handler, Stream, Transport
from .enums import MessageType, WebsocketState
from .errors import ProtocolViolation, TransportError, WebsocketError
from .frame import DEFAULT_MAX_FRAGMENTS, Message, decode_message, encode_text
from .handshake import DEFAULT_MAX_HANDSHAKE_SIZE, HandshakeNegotiator

__all__ = (
    'ConnectionSession',
)

log = logging.getLogger(__name__)

class ConnectionSession:
    """
    Owns a single connection: runs the opening handshake, then reads messages
    until the peer sends a close frame or the stream ends.

    Parameters
    -----------
    stream: Union[:class:`~switchback.streams.SocketStream`, :class:`socket.socket`]
        The connected stream. Plain sockets get wrapped in a :class:`~switchback.streams.SocketStream`.
    max_handshake_size: :class:`int`
        The maximum size of the handshake request.
    max_fragments: :class:`int`
        The maximum number of frames a single message may span.
    strict: :class:`bool`
        Whether to treat frames with unknown opcodes as a protocol violation
        instead of dropping them.
    """
    def __init__(
        self,
        stream: Union[Stream, Transport],
        *,
        max_handshake_size: int = DEFAULT_MAX_HANDSHAKE_SIZE,
        max_fragments: int = DEFAULT_MAX_FRAGMENTS,
        strict: bool = False
    ) -> None:
        if not hasattr(stream, 'readline'):
            stream = SocketStream(stream)  # type: ignore

        self._stream: Stream = stream  # type: ignore
        self._state = WebsocketState.IDLE

        self.negotiator = HandshakeNegotiator(max_handshake_size)
        self.max_fragments = max_fragments
        self.strict = strict

    def __repr__(self) -> str:
        return f'<ConnectionSession state={self._state.name}>'

    def __enter__(self):
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _set_state(self, state: WebsocketState):
        log.debug(f'[Session] {self._state.name} -> {state.name}')
        self._state = state

    @property
    def state(self) -> WebsocketState:
        """
        The state of the session.
        """
        return self._state

    @property
    def stream(self) -> Stream:
        """
        The stream used by the session.
        """
        return self._stream

    def is_open(self) -> bool:
        """
        True if the handshake succeeded and the session hasn't been closed.
        """
        return self._state is WebsocketState.OPEN

    def is_closed(self) -> bool:
        """
        True if the session has been closed.
        """
        return self._state is WebsocketState.CLOSED

    def handshake(self) -> bool:
        """
        Performs the opening handshake. Rejected handshakes close the stream.
        Returns whether the connection was upgraded.

        Raises
        ------
        WebsocketError: If the session was already used.
        TransportError: If the stream fails during the handshake.
        """
        if self._state is not WebsocketState.IDLE:
            raise WebsocketError(f'Cannot handshake a session in the {self._state.name} state')

        self._set_state(WebsocketState.HANDSHAKING)

        try:
            accepted = self.negotiator.negotiate(self._stream)
        except TransportError:
            self.close()
            raise

        if not accepted:
            self.close()
            return False

        self._set_state(WebsocketState.OPEN)
        return True

    def receive(self) -> Message:
        """
        Receives the next message, reassembling fragments.
        A close message closes the session.

        Raises
        ------
        WebsocketError: If the session is not open.
        TransportError: If the stream fails. The session is closed first.
        ProtocolViolation: If the peer misbehaves. The session is closed first.
        """
        if not self.is_open():
            raise WebsocketError('websocket is not open')

        try:
            message = decode_message(self._stream, max_fragments=self.max_fragments)
        except WebsocketError:
            self.close()
            raise

        if message.type is MessageType.CLOSED:
            log.info('[Session] Received a close frame.')
            self.close()
        elif message.type is MessageType.OTHER and self.strict:
            self.close()
            raise ProtocolViolation(f'Received a frame with an unknown opcode: {message.opcode!r}')

        return message

    def __iter__(self) -> Iterator[Message]:
        if self._state is WebsocketState.IDLE and not self.handshake():
            return

        while self.is_open():
            message = self.receive()

            if message.is_data():
                yield message

    def accept(self, handler: Handler) -> None:
        """
        Runs the handshake, then calls ``handler(type, data)`` for every text or binary
        message until the peer closes the connection. Returns immediately if the
        handshake is rejected.

        Parameters
        ----------
        handler: Callable[[:class:`~switchback.websockets.enums.MessageType`, Union[:class:`str`, :class:`bytes`]], None]
            The function to call with every message.
        """
        try:
            for message in self:
                handler(message.type, message.data)  # type: ignore
        finally:
            self.close()

    def send(self, data: Union[str, BytesLike]) -> int:
        """
        Sends ``data`` as a text frame.

        Parameters
        -----------
        data: Union[:class:`str`, :class:`bytes`]
            The data to send.

        Raises
        ------
        WebsocketError: If the session is not open.
        TransportError: If the stream fails. The session is closed first.
        """
        if not self.is_open():
            raise WebsocketError('websocket is not open')

        try:
            return self._stream.write(encode_text(data))
        except TransportError:
            self.close()
            raise

    def close(self) -> None:
        """
        Closes the stream. Calling this more than once does nothing.
        """
        if self._state is WebsocketState.CLOSED:
            return

        self._stream.close()
        self._set_state(WebsocketState.CLOSED)
