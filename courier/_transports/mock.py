from __future__ import annotations

import typing

from .base import BaseAgent, ByteStream, ResponseHead

__all__ = ["MockAgent", "MockRequest", "MockResponse"]


class MockRequest(typing.NamedTuple):
    method: str
    url: str
    headers: dict[str, str]
    body: bytes

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")


class MockResponse(typing.NamedTuple):
    status: int = 200
    headers: typing.Sequence[tuple[str, str]] = ()
    body: bytes | typing.Iterable[bytes] = b""


Handler = typing.Callable[[MockRequest], MockResponse]


class MockAgent(BaseAgent):
    """
    An agent that answers every request with a Python handler.

    Sent requests are recorded on `.requests` in order.
    """

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self.requests: list[MockRequest] = []
        self.closed = False

    def send(
        self,
        method: str,
        url: str,
        headers: list[tuple[str, str]],
        body: bytes,
        *,
        timeout: float | None = None,
    ) -> ResponseHead:
        request = MockRequest(method, url, {name.lower(): value for name, value in headers}, body)
        self.requests.append(request)
        response = self.handler(request)
        return ResponseHead(
            status=response.status,
            headers=list(response.headers),
            stream=ByteStream(response.body),
        )

    def close(self) -> None:
        self.closed = True
