from typing import Callable, Protocol, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .websockets.enums import MessageType

BytesLike = Union[bytes, bytearray, memoryview]
MessageData = Union[str, bytes]
Handler = Callable[['MessageType', MessageData], None]

class Transport(Protocol):
    def recv(self, bufsize: int) -> bytes:
        ...

    def sendall(self, data: bytes) -> None:
        ...

    def close(self) -> None:
        ...

class Stream(Protocol):
    def read(self, nbytes: int) -> bytes:
        ...

    def readline(self, limit: int = ...) -> bytes:
        ...

    def write(self, data: BytesLike) -> int:
        ...

    def close(self) -> None:
        ...
