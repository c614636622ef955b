from switchback.errors import SwitchbackException

__all__ = (
    'WebsocketError',
    'TransportError',
    'InvalidHandshake',
    'HandshakeTooLarge',
    'ProtocolViolation',
    'TooManyFragments',
)

class WebsocketError(SwitchbackException):
    """
    Base class for all websocket related errors.
    """

class TransportError(WebsocketError):
    """
    Raised when reading from or writing to the underlying stream fails,
    including the peer closing the stream in the middle of a frame.
    """

class InvalidHandshake(WebsocketError):
    """
    Raised when the opening handshake can't be parsed.
    """

class HandshakeTooLarge(InvalidHandshake):
    """
    Raised when the opening handshake exceeds the configured size limit.
    """
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f'Handshake request exceeded {limit} bytes')

class ProtocolViolation(WebsocketError):
    """
    Raised when the peer sends something a strict endpoint must not accept.
    """

class TooManyFragments(ProtocolViolation):
    """
    Raised when a fragmented message spans more frames than allowed.
    """
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f'Received a message fragmented into more than {limit} frames')
