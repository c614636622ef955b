import enum

__all__ = (
    'WebsocketState',
    'WebsocketOpcode',
    'MessageType',
    'CONTROL_OPCODES',
)

class WebsocketState(enum.Enum):
    """
    The lifecycle of a :class:`~switchback.websockets.ConnectionSession`.
    ``CLOSED`` is terminal.
    """
    IDLE = 0
    HANDSHAKING = 1
    OPEN = 2
    CLOSED = 3

class WebsocketOpcode(enum.IntEnum):
    """
    An enumeration.
    """
    CONTINUATION = 0x0
    TEXT = 0x1
    BINARY = 0x2
    CLOSE = 0x8
    PING = 0x9
    PONG = 0xA

class MessageType(enum.Enum):
    """
    What a decoded, defragmented message turned out to be.
    Only ``TEXT`` and ``BINARY`` ever reach a user handler.
    """
    CONTINUATION = 'continuation'
    TEXT = 'text'
    BINARY = 'binary'
    CLOSED = 'closed'
    PING = 'ping'
    PONG = 'pong'
    OTHER = 'other'

CONTROL_OPCODES = frozenset({WebsocketOpcode.CLOSE, WebsocketOpcode.PING, WebsocketOpcode.PONG})
