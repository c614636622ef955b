from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
    overload
)
import struct
import logging
import os
import json

from .enums import CONTROL_OPCODES, MessageType, WebsocketOpcode
from .errors import ProtocolViolation, TooManyFragments

if TYPE_CHECKING:
    from switchback.types import BytesLike, MessageData, Stream

    Format = Literal['short', 'longlong', 'head']

    from enum import IntEnum
    _T = TypeVar('_T', bound=IntEnum)

SHORT = struct.Struct('!H')
LONGLONG = struct.Struct('!Q')
HEAD = struct.Struct('!BB')

FORMATS = {
    'short': SHORT,
    'longlong': LONGLONG,
    'head': HEAD
}

DEFAULT_MAX_FRAGMENTS = 1024

log = logging.getLogger(__name__)

__all__ = (
    'Message',
    'WebsocketFrame',
    'encode_text',
    'decode_message',
    'DEFAULT_MAX_FRAGMENTS',
)


def _try_enum(enum: Type[_T], value: int) -> Union[_T, int]:
    try:
        return enum(value)
    except ValueError:
        return value


class Message:
    """
    Returned by :func:`~switchback.websockets.frame.decode_message`.

    Attributes
    -----------
    type: :class:`~switchback.websockets.enums.MessageType`
        What kind of message this is.
    data: Optional[Union[:class:`str`, :class:`bytes`]]
        A :class:`str` for text messages, raw bytes for binary, continuation and
        unknown messages, ``None`` for close, ping and pong.
    opcode: :class:`int`
        The opcode of the first frame of the message.
    fin: :class:`bool`
        The FIN bit of the frame that completed the message.
    """
    def __init__(self, type: MessageType, data: Optional[MessageData] = None, *, opcode: int, fin: bool = True) -> None:
        self.type = type
        self.data = data
        self.opcode = opcode
        self.fin = fin

    def __repr__(self) -> str:
        return f'<Message type={self.type.name} opcode={self.opcode!r} fin={self.fin}>'

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Message):
            return NotImplemented

        return (self.type, self.data, self.opcode, self.fin) == (other.type, other.data, other.opcode, other.fin)

    def is_data(self) -> bool:
        """
        True if this message should be handed to a user handler.
        """
        return self.type is MessageType.TEXT or self.type is MessageType.BINARY

    def as_string(self) -> str:
        """
        The data received as a string.
        """
        if isinstance(self.data, str):
            return self.data

        return (self.data or b'').decode()

    def as_json(self) -> Dict[str, Any]:
        """
        The data received as a JSON object.
        """
        return json.loads(self.as_string())


class WebsocketFrame:
    """
    Represents a websocket data frame.

    Parameters
    -----------
    data: :class:`bytes`
        The frame's data. Can be any bytes-like object.
    head: :class:`int`
        The frame's first byte, holding the FIN bit, the reserved bits and the opcode.
    mask: Optional[:class:`bytes`]
        The 4 byte masking key the frame was received with, if any.
    """
    def __init__(self, *, data: BytesLike, head: int = 0, mask: Optional[bytes] = None):
        if mask is not None and len(mask) != 4:
            raise ValueError(f'Masking keys must be 4 bytes long, got {len(mask)}')

        self.data = bytes(data)
        self.mask = mask

        self._head = head

    def __repr__(self) -> str:
        attrs = ('fin', 'opcode', 'masked')
        s = ' '.join(f'{name}={getattr(self, name)!r}' for name in attrs)
        return f'<{self.__class__.__name__} {s} length={len(self.data)}>'

    def _modify_head(self, value: bool, bit: int):
        if value:
            self._head |= 1 << bit
        else:
            self._head &= ~(1 << bit)

    @classmethod
    def create(cls, data: BytesLike, *, opcode: WebsocketOpcode, fin: bool = True):
        """
        Creates a frame ready to be encoded.

        Parameters
        ----------
        data: :class:`bytes`
            The frame's data. Can be any bytes-like object.
        opcode: :class:`~.WebsocketOpcode`
            The frame's opcode
        fin: :class:`bool`
            Whether this is the final frame of its message.
        """
        self = cls(data=data)

        self.opcode = opcode
        self.fin = fin

        return self

    @classmethod
    def decode(cls, stream: Stream) -> WebsocketFrame:
        """
        Decodes exactly one websocket frame, unmasking its payload if needed.
        The reserved bits are kept on the frame but otherwise ignored.

        Parameters
        ----------
        stream: :class:`~switchback.streams.SocketStream`
            The stream to read from. ``stream.read(n)`` must return exactly ``n`` bytes.

        Raises
        -------
        TransportError
            If the stream fails or ends in the middle of the frame.
        """
        fbyte, sbyte = cls.unpack(stream, 'head')

        masked = sbyte & 0x80
        length = sbyte & 0x7F

        if length == 126:
            length, = cls.unpack(stream, 'short')
        elif length == 127:
            length, = cls.unpack(stream, 'longlong')

        mask = stream.read(4) if masked else None
        data = stream.read(length)

        if mask is not None:
            data = cls.apply_mask(data, mask)

        return cls(head=fbyte, data=data, mask=mask)

    @overload
    @staticmethod
    def unpack(stream: Stream, format: Literal['short', 'longlong']) -> Tuple[int]:
        ...
    @overload
    @staticmethod
    def unpack(stream: Stream, format: Literal['head']) -> Tuple[int, int]:
        ...
    @staticmethod
    def unpack(stream: Stream, format: Format) -> Tuple[int, ...]:
        """
        Reads data from the stream and unpacks it.
        Valid formats are: ``short``, ``longlong``, ``head``.

        Parameters
        ----------
        stream: :class:`~switchback.streams.SocketStream`
            The stream to read from.
        format: :class:`str`
            The format to unpack the data with.

        Raises
        -------
        ValueError
            If the format is not valid.
        """
        fmt = FORMATS.get(format)
        if not fmt:
            raise ValueError(f'Unknown format {format}')

        return fmt.unpack(stream.read(fmt.size))

    @staticmethod
    def pack(data: int, format: Format) -> bytes:
        """
        Packs the data into the format.
        Valid formats are: ``short``, ``longlong``, ``head``.

        Parameters
        ----------
        data: :class:`int`
            The data to be packed.
        format: :class:`str`
            The format to pack the data with.
        
        Raises
        -------
        ValueError
            If the format is not valid.
        """
        fmt = FORMATS.get(format)
        if not fmt:
            raise ValueError(f'Unknown format {format}')

        return fmt.pack(data)

    @staticmethod
    def apply_mask(data: bytes, mask: bytes) -> bytes:
        """
        Masks or unmasks the data passed in, the operation is its own inverse.

        Parameters
        ----------
        data: :class:`bytes`
            The data to mask.
        mask: :class:`bytes`
            The 4 byte mask to use.
        """
        return bytes(byte ^ mask[i % 4] for i, byte in enumerate(data))

    @property
    def opcode(self) -> Union[WebsocketOpcode, int]:
        """
        The frame's opcode, a plain :class:`int` if it isn't a known one.
        """
        return _try_enum(WebsocketOpcode, self._head & 0x0F)

    @opcode.setter
    def opcode(self, value: int):
        self._head = (self._head & 0xF0) | (int(value) & 0x0F)

    @property
    def fin(self) -> bool:
        """
        Whether the frame is the final frame in a fragmented message.
        """
        return bool(self._head & 0x80)

    @fin.setter
    def fin(self, value: bool):
        self._modify_head(value, 7)

    @property
    def rsv1(self) -> bool:
        return bool(self._head & 0x40)

    @property
    def rsv2(self) -> bool:
        return bool(self._head & 0x20)

    @property
    def rsv3(self) -> bool:
        return bool(self._head & 0x10)

    @property
    def masked(self) -> bool:
        return self.mask is not None

    def is_control(self) -> bool:
        """
        Whether this frame is a control frame or not
        """
        return self.opcode > 0x7

    def encode(self, masked: bool = False) -> bytearray:
        """
        Encodes the frame into a sendable buffer.
        Servers never mask what they send, ``masked`` exists for client-side use.

        Parameters
        ----------
        masked: :class:`bool`
            Whether to mask the data or not.
        """
        data = self.data

        buffer = bytearray(2)
        length = len(data)

        buffer[0] = self._head
        buffer[1] = masked << 7

        if length < 126:
            buffer[1] |= length
        elif length <= 0xFFFF:
            buffer[1] |= 126
            buffer.extend(self.pack(length, 'short'))
        else:
            buffer[1] |= 127
            buffer.extend(self.pack(length, 'longlong'))

        if masked:
            mask = os.urandom(4)

            buffer.extend(mask)
            data = self.apply_mask(data, mask)

        buffer.extend(data)
        return buffer


def encode_text(data: Union[str, BytesLike]) -> bytes:
    """
    Encodes ``data`` as a single, final, unmasked text frame.

    Parameters
    ----------
    data: Union[:class:`str`, :class:`bytes`]
        The payload. Strings are encoded as UTF-8.
    """
    if isinstance(data, str):
        data = data.encode('utf-8')

    frame = WebsocketFrame.create(data, opcode=WebsocketOpcode.TEXT)
    return bytes(frame.encode())


def _pong(stream: Stream) -> None:
    frame = WebsocketFrame.create(b'', opcode=WebsocketOpcode.PONG)
    stream.write(frame.encode())

    log.debug('[Frame] Answered a ping with a pong.')


def _reassemble(stream: Stream, first: WebsocketFrame, max_fragments: int) -> Tuple[bytes, bool]:
    chunks: List[bytes] = [first.data]
    fragments = 1

    while True:
        frame = WebsocketFrame.decode(stream)

        # Control frames may be interleaved with the fragments of a message.
        if frame.is_control():
            if frame.opcode is WebsocketOpcode.PING:
                _pong(stream)
                continue

            if frame.opcode is WebsocketOpcode.CLOSE:
                return b''.join(chunks), False

            if frame.opcode in CONTROL_OPCODES:
                continue

        fragments += 1
        if fragments > max_fragments:
            raise TooManyFragments(max_fragments)

        chunks.append(frame.data)
        if frame.fin:
            return b''.join(chunks), True


def decode_message(
    stream: Stream,
    *,
    allow_fragmentation: bool = True,
    max_fragments: int = DEFAULT_MAX_FRAGMENTS
) -> Message:
    """
    Decodes the next message off the stream.

    When the first frame isn't final and ``allow_fragmentation`` is set, the following
    frames are read and their payloads concatenated until a final frame arrives.
    The result is then dispatched on the first frame's opcode. Receiving a ping
    writes a pong back to ``stream`` before returning.

    Parameters
    ----------
    stream: :class:`~switchback.streams.SocketStream`
        The stream to read from and to answer pings on.
    allow_fragmentation: :class:`bool`
        Whether to reassemble fragmented messages.
    max_fragments: :class:`int`
        The maximum number of frames a single message may span.

    Raises
    -------
    TooManyFragments
        If a message spans more than ``max_fragments`` frames.
    ProtocolViolation
        If a text message is not valid UTF-8.
    TransportError
        If the stream fails or ends in the middle of a frame.
    """
    frame = WebsocketFrame.decode(stream)

    opcode = frame.opcode
    data = frame.data
    fin = frame.fin

    if not fin and allow_fragmentation:
        data, fin = _reassemble(stream, frame, max_fragments)

        # A close frame interrupted the message.
        if not fin:
            return Message(MessageType.CLOSED, opcode=WebsocketOpcode.CLOSE)

    if opcode is WebsocketOpcode.CONTINUATION:
        return Message(MessageType.CONTINUATION, data, opcode=opcode, fin=fin)

    if opcode is WebsocketOpcode.TEXT:
        try:
            text = data.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise ProtocolViolation('Received a text message that is not valid UTF-8') from exc

        return Message(MessageType.TEXT, text, opcode=opcode, fin=fin)

    if opcode is WebsocketOpcode.BINARY:
        return Message(MessageType.BINARY, data, opcode=opcode, fin=fin)

    if opcode is WebsocketOpcode.CLOSE:
        return Message(MessageType.CLOSED, opcode=opcode, fin=fin)

    if opcode is WebsocketOpcode.PING:
        _pong(stream)
        return Message(MessageType.PING, opcode=opcode, fin=fin)

    if opcode is WebsocketOpcode.PONG:
        return Message(MessageType.PONG, opcode=opcode, fin=fin)

    log.debug(f'[Frame] Received a frame with an unknown opcode: {opcode!r}')
    return Message(MessageType.OTHER, data, opcode=opcode, fin=fin)
