from __future__ import annotations

import base64
import logging
import typing
from collections.abc import Mapping
from urllib.parse import unquote

from ._codecs import FORM, JSON, expand_type
from ._config import Config
from ._events import EventEmitter
from ._exceptions import EncodingError, RequestError, StateError
from ._headers import Headers
from ._materialize import ResponseMaterializer
from ._query import QueryParams, QueryParamTypes, primitive_value_to_str
from ._response import Response
from ._transports.base import BaseAgent
from ._urlparse import ParsedURL, resolve, to_string
from ._utils import normalize_mime

if typing.TYPE_CHECKING:
    from ._client import Client

__all__ = ["Callback", "Request", "WritableSink"]

logger = logging.getLogger("courier")

Callback = typing.Callable[[typing.Optional[BaseException], typing.Optional[Response]], typing.Any]

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

# Distinguishes "never called .agent()" from ".agent(None)".
_UNSET: typing.Any = object()


class WritableSink(typing.Protocol):
    def write(self, chunk: bytes) -> typing.Any: ...

    def end(self) -> typing.Any: ...


def _copy_data(data: typing.Any) -> typing.Any:
    if isinstance(data, Mapping):
        return dict(data)
    if isinstance(data, list):
        return list(data)
    return data


class Request(EventEmitter):
    """
    A fluent, single-use HTTP request.

    Configure it with chained calls, then execute it exactly once with
    `.end()` or `.pipe()`. After that every mutator raises `StateError`.

    ```python
    >>> request = courier.post("http://localhost:5000/echo").send({"foo": "bar"})
    >>> request.end(lambda err, res: print(res.text))
    {"foo":"bar"}
    ```

    Events: `request` (about to be sent), `response`, `end` and `error`.
    """

    def __init__(
        self,
        method: str,
        url: typing.Any = None,
        *,
        config: Config | None = None,
        client: Client | None = None,
    ) -> None:
        super().__init__()
        self.method = method.upper()
        self.url = to_string(url) if url is not None else ""
        self.headers = Headers()
        self.qs = QueryParams()
        self.response: Response | None = None
        self._config = config if config is not None else client.config if client is not None else Config()
        self._client = client
        self._data: typing.Any = None
        self._chunks: list[bytes] = []
        self._buffer: bool | None = None
        self._timeout: float | None = self._config.timeout
        self._agent: typing.Any = _UNSET
        self._executed = False

    # Builder

    def _check_mutable(self) -> None:
        if self._executed:
            raise StateError(f"Cannot modify a request that has already been sent: {self!r}")

    def set(self, field: str | Mapping[str, typing.Any], value: typing.Any = None) -> Request:
        self._check_mutable()
        self.headers.set(field, value)
        return self

    def unset(self, field: str) -> Request:
        self._check_mutable()
        self.headers.unset(field)
        return self

    def get(self, field: str) -> str | None:
        return self.headers.get(field)

    def type(self, mime: str) -> Request:
        return self.set("Content-Type", expand_type(mime))

    def accept(self, mime: str) -> Request:
        return self.set("Accept", expand_type(mime))

    def auth(self, user: str, password: str = "") -> Request:
        credentials = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
        return self.set("Authorization", f"Basic {credentials}")

    def query(self, params: QueryParamTypes) -> Request:
        self._check_mutable()
        self.qs.add(params)
        return self

    def send(self, data: typing.Any) -> Request:
        """
        Stage a request body.

        Mappings merge into a staged mapping, strings append to a staged
        string (with `&` for form bodies), anything else replaces.
        """
        self._check_mutable()
        staged = self._data
        if isinstance(data, Mapping) and isinstance(staged, Mapping):
            self._data = {**staged, **data}
        elif isinstance(data, str) and isinstance(staged, str):
            content_type = normalize_mime(self.headers.get("content-type"))
            separator = "&" if content_type in ("", FORM) else ""
            self._data = f"{staged}{separator}{data}"
        elif isinstance(data, bytes) and isinstance(staged, bytes):
            self._data = staged + data
        else:
            self._data = _copy_data(data)
        return self

    def write(self, chunk: str | bytes) -> bool:
        """
        Append a raw chunk to the body, sent after any staged `send()` data.
        """
        self._check_mutable()
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        self._chunks.append(bytes(chunk))
        return True

    def buffer(self, flag: bool = True) -> Request:
        self._check_mutable()
        self._buffer = bool(flag)
        return self

    def timeout(self, seconds: float | None) -> Request:
        self._check_mutable()
        if seconds is not None and seconds <= 0:
            raise ValueError(f"timeout must be positive or None, got {seconds!r}")
        self._timeout = seconds
        return self

    @typing.overload
    def agent(self) -> BaseAgent | None | typing.Literal[False]: ...

    @typing.overload
    def agent(self, agent: BaseAgent | None) -> Request: ...

    def agent(self, agent: typing.Any = _UNSET) -> typing.Any:
        """
        Read or set the agent.

        With no argument, returns `False` when no agent was ever set, `None`
        when it was explicitly set to `None`, otherwise the agent itself.
        Requests without an agent use their client's default agent.
        """
        if agent is _UNSET:
            return False if self._agent is _UNSET else self._agent
        self._check_mutable()
        self._agent = agent
        return self

    # Description

    def parsed_url(self) -> ParsedURL:
        """
        The normalized target with the staged query appended.

        Recomputed from the stored URL on every call.
        """
        return resolve(self.url).merge_query(self.qs.encode())

    def to_json(self) -> dict[str, typing.Any]:
        return {
            "method": self.method,
            "url": self.url,
            "data": _copy_data(self._data),
            "headers": self.headers.to_dict(),
        }

    def __repr__(self) -> str:
        return f"<Request({self.method!r}, {self.url!r})>"

    # Execution

    def end(self, callback: Callback | None = None) -> typing.Any:
        """
        Send the request.

        With a callback, calls `callback(err, res)` and returns the request;
        request failures arrive as `err` and are never raised. Without one,
        returns the `Response` and raises failures.
        """
        self._freeze()
        try:
            response = self._execute(self._buffer)
        except RequestError as exc:
            if callback is None:
                raise
            callback(exc, exc.response)
            return self
        if callback is None:
            return response
        callback(None, response)
        self.emit("end")
        return self

    def pipe(self, sink: WritableSink) -> WritableSink:
        """
        Send the request and forward the response body to `sink`.

        Each chunk is written as it arrives, then `sink.end()` is called.
        Failures are emitted as `error`, and raised when nothing listens.
        """
        self._freeze()
        try:
            response = self._execute(False)
            for chunk in response.iter_bytes():
                sink.write(chunk)
        except RequestError as exc:
            if not self.emit("error", exc):
                raise
            return sink
        sink.end()
        self.emit("end")
        return sink

    def _freeze(self) -> None:
        if self._executed:
            raise StateError(f"Request has already been sent: {self!r}")
        self._executed = True

    def _resolve_agent(self) -> BaseAgent:
        if self._agent is not _UNSET and self._agent is not None:
            return self._agent  # type: ignore[no-any-return]
        if self._config.agent is not None:
            return self._config.agent
        client = self._client
        if client is None:
            from ._api import get_default_client

            client = get_default_client()
        return client.agent

    def _prepare(self, url: ParsedURL) -> tuple[Headers, bytes]:
        headers = self.headers.copy()
        headers.merge(self._config.default_headers())
        if url.userinfo:
            username, _, password = url.userinfo.partition(":")
            credentials = f"{unquote(username)}:{unquote(password)}".encode("utf-8")
            headers.merge({"Authorization": f"Basic {base64.b64encode(credentials).decode('ascii')}"})

        body = self._encode(headers)
        headers.merge({"Host": url.host})
        if body or self.method in BODY_METHODS:
            headers.set("Content-Length", str(len(body)))
        return headers, body

    def _encode(self, headers: Headers) -> bytes:
        data = self._data
        if data is None:
            content = b""
        elif isinstance(data, (bytes, bytearray)):
            content = bytes(data)
        elif isinstance(data, str):
            headers.merge({"Content-Type": FORM})
            content = data.encode("utf-8")
        else:
            headers.merge({"Content-Type": JSON})
            content_type = headers.get("content-type") or JSON
            codecs = self._config.codecs
            if codecs.match(content_type) is not None:
                content, _ = codecs.encode_for(content_type, data)
            elif isinstance(data, (bool, int, float)):
                content = primitive_value_to_str(data).encode("utf-8")
            else:
                raise EncodingError(
                    f"No codec for {content_type!r} can encode {type(data).__name__}",
                    request=self,
                )
        return content + b"".join(self._chunks)

    def _execute(self, buffer: bool | None) -> Response:
        url = self.parsed_url()
        try:
            headers, body = self._prepare(url)
            agent = self._resolve_agent()
            self.emit("request", self)
            head = agent.send(
                self.method,
                str(url._replace(userinfo="", fragment=None)),
                headers.multi_items(),
                body,
                timeout=self._timeout,
            )
        except RequestError as exc:
            exc.request = self
            logger.debug("%s %s failed: %r", self.method, url, exc)
            raise

        response = ResponseMaterializer(self, head, self._config.codecs, buffer).materialize()
        logger.info(
            'HTTP Request: %s %s "%s %d %s"',
            self.method,
            url,
            response.http_version,
            response.status,
            response.reason_phrase,
        )
        self.response = response
        self.emit("response", response)
        return response
