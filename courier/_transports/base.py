from __future__ import annotations

import typing
from types import TracebackType

__all__ = ["BaseAgent", "BaseByteStream", "ByteStream", "ResponseHead"]

T = typing.TypeVar("T", bound="BaseAgent")


class BaseByteStream:
    """
    The body of a response as delivered by an agent.

    Iterating yields raw chunks in the order the agent received them.
    `close()` releases the underlying connection and is safe to call twice.
    """

    def __iter__(self) -> typing.Iterator[bytes]:
        raise NotImplementedError(
            "The '__iter__' method must be implemented."
        )  # pragma: no cover
        yield b""  # pragma: no cover

    def close(self) -> None:
        """
        Subclasses can override this method to release any network resources
        after a request/response cycle is complete.
        """


class ByteStream(BaseByteStream):
    """
    A byte stream over in-memory content, or over any iterable of chunks.
    """

    def __init__(self, content: bytes | typing.Iterable[bytes] = b"") -> None:
        self._content = content
        self._closed = False

    def __iter__(self) -> typing.Iterator[bytes]:
        if isinstance(self._content, (bytes, bytearray)):
            if self._content:
                yield bytes(self._content)
            return
        for chunk in self._content:
            if self._closed:
                break
            yield chunk

    def close(self) -> None:
        self._closed = True
        close = getattr(self._content, "close", None)
        if callable(close):
            close()


class ResponseHead(typing.NamedTuple):
    """
    Status line and headers, available before any body bytes.
    """

    status: int
    headers: list[tuple[str, str]]
    stream: BaseByteStream
    reason_phrase: str = ""
    http_version: str = "HTTP/1.1"


class BaseAgent:
    """
    The transport collaborator: sends one request and returns its head.

    Failures must be raised as `courier.TransportError` subclasses.
    An agent may be shared by many requests.
    """

    def __enter__(self: T) -> T:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ) -> None:
        self.close()

    def send(
        self,
        method: str,
        url: str,
        headers: list[tuple[str, str]],
        body: bytes,
        *,
        timeout: float | None = None,
    ) -> ResponseHead:
        raise NotImplementedError(
            "The 'send' method must be implemented."
        )  # pragma: no cover

    def close(self) -> None:
        pass
