"""
The default agent, backed by an `httpcore` connection pool.

Example usage:

    agent = courier.HTTPCoreAgent(max_connections=20)
    response = courier.get("https://www.example.com/").agent(agent).end()
"""

from __future__ import annotations

import contextlib
import logging
import ssl
import typing

import httpcore

from .._exceptions import (
    ConnectError,
    ConnectTimeout,
    LocalProtocolError,
    NetworkError,
    PoolTimeout,
    ProtocolError,
    ProxyError,
    ReadError,
    ReadTimeout,
    RemoteProtocolError,
    TimeoutException,
    TransportError,
    UnsupportedProtocol,
    WriteError,
    WriteTimeout,
)
from .base import BaseAgent, BaseByteStream, ResponseHead

__all__ = ["HTTPCoreAgent"]

logger = logging.getLogger("courier")

HTTPCORE_EXC_MAP: dict[type[Exception], type[TransportError]] = {
    httpcore.TimeoutException: TimeoutException,
    httpcore.ConnectTimeout: ConnectTimeout,
    httpcore.ReadTimeout: ReadTimeout,
    httpcore.WriteTimeout: WriteTimeout,
    httpcore.PoolTimeout: PoolTimeout,
    httpcore.NetworkError: NetworkError,
    httpcore.ConnectError: ConnectError,
    httpcore.ReadError: ReadError,
    httpcore.WriteError: WriteError,
    httpcore.ProxyError: ProxyError,
    httpcore.UnsupportedProtocol: UnsupportedProtocol,
    httpcore.ProtocolError: ProtocolError,
    httpcore.LocalProtocolError: LocalProtocolError,
    httpcore.RemoteProtocolError: RemoteProtocolError,
}


@contextlib.contextmanager
def map_httpcore_exceptions() -> typing.Iterator[None]:
    try:
        yield
    except Exception as exc:
        mapped_exc = None

        for from_exc, to_exc in HTTPCORE_EXC_MAP.items():
            if not isinstance(exc, from_exc):
                continue
            # We want to map to the most specific exception we can find.
            # Eg if `exc` is an `httpcore.ReadTimeout`, we want to map to
            # `courier.ReadTimeout`, not just `courier.TimeoutException`.
            if mapped_exc is None or issubclass(to_exc, mapped_exc):
                mapped_exc = to_exc

        if mapped_exc is None:  # pragma: no cover
            raise

        message = str(exc)
        raise mapped_exc(message) from exc


def encode_headers(headers: list[tuple[str, str]]) -> list[tuple[bytes, bytes]]:
    encoded = []
    for name, value in headers:
        try:
            encoded.append((name.encode("latin-1"), value.encode("latin-1")))
        except UnicodeEncodeError as exc:
            raise LocalProtocolError(
                f"Header {name!r} cannot be encoded as latin-1: {value!r}"
            ) from exc
    return encoded


class ResponseStream(BaseByteStream):
    def __init__(self, httpcore_stream: typing.Iterable[bytes]) -> None:
        self._httpcore_stream = httpcore_stream

    def __iter__(self) -> typing.Iterator[bytes]:
        with map_httpcore_exceptions():
            for part in self._httpcore_stream:
                yield part

    def close(self) -> None:
        if hasattr(self._httpcore_stream, "close"):
            with map_httpcore_exceptions():
                self._httpcore_stream.close()


class HTTPCoreAgent(BaseAgent):
    def __init__(
        self,
        *,
        ssl_context: ssl.SSLContext | None = None,
        max_connections: int | None = 10,
        max_keepalive_connections: int | None = None,
        keepalive_expiry: float | None = 5.0,
        http2: bool = False,
        retries: int = 0,
    ) -> None:
        self._pool = httpcore.ConnectionPool(
            ssl_context=ssl_context,
            max_connections=max_connections,
            max_keepalive_connections=max_keepalive_connections,
            keepalive_expiry=keepalive_expiry,
            http1=True,
            http2=http2,
            retries=retries,
        )

    def send(
        self,
        method: str,
        url: str,
        headers: list[tuple[str, str]],
        body: bytes,
        *,
        timeout: float | None = None,
    ) -> ResponseHead:
        req = httpcore.Request(
            method=method.encode("ascii"),
            url=url,
            headers=encode_headers(headers),
            content=body,
            extensions={
                "timeout": {
                    "connect": timeout,
                    "read": timeout,
                    "write": timeout,
                    "pool": timeout,
                }
            },
        )

        with map_httpcore_exceptions():
            resp = self._pool.handle_request(req)

        assert isinstance(resp.stream, typing.Iterable)

        reason_phrase = resp.extensions.get("reason_phrase", b"")
        http_version = resp.extensions.get("http_version", b"HTTP/1.1")
        return ResponseHead(
            status=resp.status,
            headers=[
                (name.decode("latin-1"), value.decode("latin-1"))
                for name, value in resp.headers
            ],
            stream=ResponseStream(resp.stream),
            reason_phrase=reason_phrase.decode("ascii", errors="ignore"),
            http_version=http_version.decode("ascii", errors="ignore"),
        )

    def close(self) -> None:
        logger.debug("Closing connection pool %r", self._pool)
        self._pool.close()
