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
from typing import Any, Optional, Tuple
import logging
import socket

from switchback.settings import Settings, make_settings
from switchback.streams import SocketStream
from switchback.types import Handler
from switchback.websockets import ConnectionSession, TransportError, WebsocketError
from switchback import utils

__all__ = (
    'TCPServer',
    'WebsocketServer',
    'create_server',
)

log = logging.getLogger(__name__)

class TCPServer:
    """
    A blocking TCP server

    Parameters
    ----------
    host: :class:`str`
        The host to listen on.
    port: :class:`int`
        The port to listen on. ``0`` picks a free one.
    ipv6: :class:`bool`
        Whether to use IPv6.
    backlog: :class:`int`
        How many connections may wait to be accepted.

    Attributes
    ----------
    host: :class:`str`
        The host to listen on.
    port: :class:`int`
        The port to listen on.
    ipv6: :class:`bool`
        Whether to use IPv6.
    """
    def __init__(self, 
                host: Optional[str] = None, 
                port: Optional[int] = None, 
                *,
                ipv6: bool = False,
                backlog: int = 5) -> None:
        if ipv6 and not socket.has_ipv6:
            raise RuntimeError('IPv6 is not supported')

        self.host = utils.validate_ip(host, ipv6=ipv6)
        self.port = 8080 if port is None else port
        self.ipv6 = ipv6
        self.backlog = backlog

        self._socket: Optional[socket.socket] = None
        self._closed = False

    def __repr__(self) -> str:
        repr = [f'<{self.__class__.__name__}']

        for attr in ('host', 'port', 'is_closed', 'is_serving'):
            value = getattr(self, attr)
            if callable(value):
                value = value()

            repr.append(f'{attr}={value!r}')

        return ' '.join(repr) + '>'

    def __enter__(self):
        self.listen()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address the server is bound to.
        """
        if self._socket is None:
            return (self.host, self.port)

        return self._socket.getsockname()[:2]

    def is_serving(self) -> bool:
        """
        True if the server is listening.
        """
        return self._socket is not None

    def is_closed(self) -> bool:
        """
        True if the server is closed.
        """
        return self._closed

    def listen(self, sock: Optional[socket.socket] = None) -> None:
        """
        Starts listening.

        Parameters
        ----------
        sock: :class:`socket.socket`
            An already bound socket to use.
        """
        if self._socket is not None:
            raise RuntimeError('Server already listening')

        if sock is None:
            family = socket.AF_INET6 if self.ipv6 else socket.AF_INET
            sock = socket.create_server((self.host, self.port), family=family, backlog=self.backlog)
        else:
            sock.listen(self.backlog)

        self._socket = sock
        self.port = self.address[1]

        log.info(f'[Server] Listening on {self.host}:{self.port}.')

    def accept(self) -> Tuple[SocketStream, Any]:
        """
        Blocks until a client connects. Returns the stream and the peer's address.

        Raises
        ------
        RuntimeError: If the server isn't listening.
        TransportError: If accepting fails.
        """
        if self._socket is None:
            raise RuntimeError('Server not started')

        try:
            client, address = self._socket.accept()
        except OSError as exc:
            raise TransportError(f'Failed to accept a connection: {exc}') from exc

        return SocketStream(client), address

    def close(self) -> None:
        """
        Closes the server.
        """
        if self._socket is not None:
            sock, self._socket = self._socket, None

            # Wakes up a thread blocked in accept()
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass

            sock.close()

            log.info('[Server] Closed.')

        self._closed = True

class WebsocketServer(TCPServer):
    """
    A TCP server that serves websocket connections one after another.

    Parameters
    ----------
    host: :class:`str`
        The host to listen on.
    port: :class:`int`
        The port to listen on.
    settings: :class:`~switchback.settings.Settings`
        Limits and protocol strictness applied to every session.
        ``host`` and ``port`` are taken from here when not passed in.
    """
    def __init__(self, 
                host: Optional[str] = None, 
                port: Optional[int] = None, 
                *,
                settings: Optional[Settings] = None,
                **kwargs: Any) -> None:
        self.settings: Settings = settings or make_settings()

        super().__init__(
            host or (None if kwargs.get('ipv6') else self.settings['host']),
            self.settings['port'] if port is None else port,
            **kwargs
        )

        self.session: Optional[ConnectionSession] = None

    def create_session(self, stream: SocketStream) -> ConnectionSession:
        """
        Creates the session for a freshly accepted stream.
        """
        return ConnectionSession(
            stream,
            max_handshake_size=self.settings['max_handshake_size'],
            max_fragments=self.settings['max_fragments'],
            strict=self.settings['strict'],
        )

    def accept_session(self, handler: Handler) -> ConnectionSession:
        """
        Accepts one connection and runs its session to completion.
        Errors that end the session are logged, not raised.

        Parameters
        ----------
        handler: Callable[[:class:`~switchback.websockets.enums.MessageType`, Union[:class:`str`, :class:`bytes`]], None]
            The function to call with every text or binary message.
        """
        stream, address = self.accept()
        log.info(f'[Server] Accepted a connection from {address}.')

        self.session = session = self.create_session(stream)

        try:
            session.accept(handler)
        except WebsocketError as exc:
            log.warning(f'[Server] Session with {address} ended with an error: {exc}')
        finally:
            session.close()
            self.session = None

        log.info(f'[Server] Connection with {address} closed.')
        return session

    def serve(self, handler: Handler, *, once: bool = False) -> None:
        """
        Serves connections sequentially until the server is closed.

        Parameters
        ----------
        handler: Callable[[:class:`~switchback.websockets.enums.MessageType`, Union[:class:`str`, :class:`bytes`]], None]
            The function to call with every text or binary message.
        once: :class:`bool`
            Whether to stop after the first connection.
        """
        if not self.is_serving():
            self.listen()

        while self.is_serving():
            try:
                self.accept_session(handler)
            except TransportError:
                # close() was called while accept() was blocked
                if not self.is_serving():
                    break

                raise

            if once:
                break

def create_server(
    host: Optional[str] = None,
    port: Optional[int] = None,
    *,
    settings: Optional[Settings] = None,
    **kwargs: Any
) -> WebsocketServer:
    """
    A helper function to create a websocket server.

    Example
    ---------
    .. code-block:: python3

        def handler(type, data):
            print(type, data)

        with create_server(port=8765) as server:
            server.serve(handler)
    """
    return WebsocketServer(host, port, settings=settings, **kwargs)
