from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional
import base64
import hashlib
import logging
import re

from switchback.utils import CRLF, GUID
from .errors import HandshakeTooLarge, InvalidHandshake

if TYPE_CHECKING:
    from switchback.types import Stream

__all__ = (
    'HandshakeNegotiator',
    'compute_accept_key',
    'parse_key',
    'build_response',
    'DEFAULT_MAX_HANDSHAKE_SIZE',
)

DEFAULT_MAX_HANDSHAKE_SIZE = 8192

KEY_REGEX = re.compile(r'^Sec-WebSocket-Key: (\S+)', re.MULTILINE)

log = logging.getLogger(__name__)

def compute_accept_key(key: str) -> str:
    """
    Derives the ``Sec-WebSocket-Accept`` value for a client's ``Sec-WebSocket-Key``.

    Parameters
    ----------
    key: :class:`str`
        The key sent by the client.
    """
    sha1 = hashlib.sha1((key + GUID).encode()).digest()
    return base64.b64encode(sha1).decode()

def parse_key(request: str) -> Optional[str]:
    """
    Finds the ``Sec-WebSocket-Key`` header in a raw request.
    The header name is matched case-sensitively.

    Parameters
    ----------
    request: :class:`str`
        The raw request text, status line included.
    """
    match = KEY_REGEX.search(request)
    if match is None:
        return None

    return match.group(1)

def build_response(accept: str) -> bytes:
    """
    Builds the ``101 Switching Protocols`` response.

    Parameters
    ----------
    accept: :class:`str`
        The value of the ``Sec-WebSocket-Accept`` header.
    """
    headers: Dict[str, str] = {
        'Upgrade': 'websocket',
        'Connection': 'Upgrade',
        'Sec-WebSocket-Accept': accept,
    }

    messages: List[str] = ['HTTP/1.1 101 Switching Protocols']
    messages.extend(f'{k}: {v}' for k, v in headers.items())

    handshake = '\r\n'.join(messages)
    handshake += '\r\n\r\n'

    return handshake.encode()

class HandshakeNegotiator:
    """
    Performs the server side of the opening handshake.

    Parameters
    ----------
    max_size: :class:`int`
        The maximum number of bytes the request may span, blank line included.
    """
    def __init__(self, max_size: int = DEFAULT_MAX_HANDSHAKE_SIZE) -> None:
        self.max_size = max_size

    def __repr__(self) -> str:
        return f'<HandshakeNegotiator max_size={self.max_size}>'

    def read_request(self, stream: Stream) -> str:
        """
        Reads the request line by line until the blank line that ends it.

        Raises
        ------
        HandshakeTooLarge: If the request exceeds ``max_size``.
        InvalidHandshake: If the stream ends before the blank line.
        """
        lines: List[bytes] = []
        size = 0

        while True:
            line = stream.readline(self.max_size - size + 1)
            size += len(line)

            if size > self.max_size:
                raise HandshakeTooLarge(self.max_size)

            if not line.endswith(b'\n'):
                raise InvalidHandshake('Stream ended before the end of the handshake request')

            if line == CRLF:
                break

            lines.append(line)

        return b''.join(lines).decode('latin-1')

    def negotiate(self, stream: Stream) -> bool:
        """
        Reads the client's upgrade request and answers it.
        Returns ``True`` if the connection was upgraded. On ``False`` nothing was
        written and the caller is expected to close the stream.

        Parameters
        ----------
        stream: :class:`~switchback.streams.SocketStream`
            The stream of a freshly accepted connection.

        Raises
        ------
        TransportError: If the stream fails.
        """
        try:
            request = self.read_request(stream)
        except HandshakeTooLarge as exc:
            log.warning(f'[Handshake] Rejected: {exc}')
            return False
        except InvalidHandshake as exc:
            log.info(f'[Handshake] Rejected: {exc}')
            return False

        key = parse_key(request)
        if key is None:
            log.info('[Handshake] Rejected a request without a Sec-WebSocket-Key header.')
            return False

        stream.write(build_response(compute_accept_key(key)))
        log.debug('[Handshake] Switched protocols.')

        return True
